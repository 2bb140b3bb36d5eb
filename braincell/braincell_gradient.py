# braincell/braincell_gradient.py
from __future__ import annotations

from enum import Enum
from typing import Tuple

import numpy as np

from braincell.braincell_errors import DimensionMismatchError
from braincell.braincell_matrix import Matrix
from braincell.braincell_network import Network


class GradientMethod(str, Enum):
    """
    The two interchangeable ways of filling a gradient network.

    - FINITE_DIFF => numeric estimate, one cost evaluation per parameter
    - BACKPROP    => analytic reverse pass, one forward + backward per row

    Both write d(cost)/d(param) into the gradient network's weights / biases,
    so the optimizer step is the same for either.
    """

    FINITE_DIFF = "finite_diff"
    BACKPROP = "backprop"

    @staticmethod
    def from_value(val: str | GradientMethod) -> GradientMethod:
        if isinstance(val, GradientMethod):
            return val

        if isinstance(val, str):
            val_lower = val.lower().replace("-", "_")
            for m in GradientMethod:
                if m.value == val_lower:
                    return m

        raise ValueError(
            f"Invalid gradient method: {val!r}. "
            f"Expected one of: {[m.value for m in GradientMethod]}"
        )


def _check_pair(net: Network, grad: Network) -> None:
    if not net.same_shape(grad):
        raise DimensionMismatchError(
            f"Gradient network {grad.arch} does not match network {net.arch}"
        )


# ------------------------------------------------------
# Finite difference
# ------------------------------------------------------
def finite_diff(
    net: Network,
    grad: Network,
    eps: float,
    inputs: Matrix,
    targets: Matrix,
    central: bool = False,
) -> None:
    """
    Numeric gradient, one parameter at a time.

    Forward difference (default):
        g = (cost(p + eps) - cost(p)) / eps

    Central difference (central=True):
        g = (cost(p + eps) - cost(p - eps)) / (2 * eps)

    Parameters are visited layer by layer, weights before biases, and every
    one is restored after it is perturbed. Needs no activation derivative, which
    makes it the oracle for backprop. Costs one full pass over the training
    set per parameter (two when central).
    """
    if not eps > 0.0:
        raise ValueError(f"finite_diff: eps must be positive, got {eps}")
    _check_pair(net, grad)
    net.check_training_set(inputs, targets)

    c = net.cost(inputs, targets)

    for i in range(net.count):
        for m, g in ((net.weights[i], grad.weights[i]), (net.biases[i], grad.biases[i])):
            md = m.data
            gd = g.data

            for j in range(m.rows):
                for k in range(m.cols):
                    saved = md[j, k]

                    md[j, k] = saved + eps
                    c_plus = net.cost(inputs, targets)

                    if central:
                        md[j, k] = saved - eps
                        c_minus = net.cost(inputs, targets)
                        gd[j, k] = (c_plus - c_minus) / (2.0 * eps)
                    else:
                        gd[j, k] = (c_plus - c) / eps

                    md[j, k] = saved


# ------------------------------------------------------
# Backpropagation
# ------------------------------------------------------
def backprop(
    net: Network,
    grad: Network,
    _aux: float,
    inputs: Matrix,
    targets: Matrix,
) -> None:
    """
    Analytic gradient by a reverse pass per training row.

    The gradient network's activation slots hold the error signal
    e[l] = d(cost_row)/d(a[l]) while a row is processed; they are cleared
    before every row.

    For one row:

        e[L] = 2 * (a[L] - target)

        for l = L .. 1:
            delta      = e[l] * act'(a[l])           (d cost / d z[l])
            gb[l-1]   += delta
            gW[l-1]   += outer(a[l-1], delta)
            e[l-1]    += W[l-1] @ delta               (skipped for l == 1)

    After every row, weights / biases are divided by the row count, giving
    the same d(cost)/d(param) as finite_diff. `_aux` is unused; it keeps the
    signature identical to finite_diff's.
    """
    _check_pair(net, grad)
    net.check_training_set(inputs, targets)

    n = inputs.rows
    act = net.activation
    last = net.count

    grad.zero()

    for i in range(n):
        net.input.data[0, :] = inputs.data[i]
        net.forward()

        for e in grad.activations:
            e.fill(0.0)

        grad.activations[last].data[0, :] = 2.0 * (net.output.data[0] - targets.data[i])

        for l in range(last, 0, -1):
            a = net.activations[l].data[0]
            e = grad.activations[l].data[0]

            delta = e * act.derivative(a)

            grad.biases[l - 1].data[0, :] += delta
            grad.weights[l - 1].data += np.outer(net.activations[l - 1].data[0], delta)

            if l > 1:
                grad.activations[l - 1].data[0, :] += net.weights[l - 1].data @ delta

    scale = 1.0 / n
    for g in grad.parameters():
        g *= scale


# ------------------------------------------------------
# Dispatch
# ------------------------------------------------------
def compute_gradient(
    method: GradientMethod | str,
    net: Network,
    grad: Network,
    aux: float,
    inputs: Matrix,
    targets: Matrix,
) -> None:
    """
    Fill `grad` using the chosen method. `aux` is eps for FINITE_DIFF and
    ignored by BACKPROP.
    """
    method = GradientMethod.from_value(method)

    if method is GradientMethod.FINITE_DIFF:
        finite_diff(net, grad, aux, inputs, targets)
    else:
        backprop(net, grad, aux, inputs, targets)


def compare_gradients(
    net: Network,
    inputs: Matrix,
    targets: Matrix,
    eps: float = 1e-3,
    central: bool = False,
) -> Tuple[Network, Network, float]:
    """
    Run both methods on the same network and report the largest absolute
    per-parameter difference.

    Returns:
        (finite_diff gradient, backprop gradient, max |fd - bp|)
    """
    fd = Network.like(net, name="FiniteDiffGradient")
    bp = Network.like(net, name="BackpropGradient")

    finite_diff(net, fd, eps, inputs, targets, central=central)
    backprop(net, bp, eps, inputs, targets)

    max_diff = 0.0
    for g1, g2 in zip(fd.parameters(), bp.parameters()):
        max_diff = max(max_diff, float(np.max(np.abs(g1.astype(np.float64) - g2.astype(np.float64)))))

    return fd, bp, max_diff
