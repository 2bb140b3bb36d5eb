# backprop_cross_verify.py

from __future__ import annotations

import numpy as np
import pytest

torch = pytest.importorskip("torch")

from braincell.braincell_activation import Activation
from braincell.braincell_gradient import backprop
from braincell.braincell_matrix import Matrix
from braincell.braincell_network import Network


# --------------------------------------------------
# Config
# --------------------------------------------------

NUM_TRIALS = 64

TORCH_ACTIVATIONS = {
    Activation.SIGMOID: torch.sigmoid,
    Activation.TANH: torch.tanh,
    Activation.RELU: torch.relu,
    Activation.IDENTITY: lambda z: z,
}


# --------------------------------------------------
# Helpers
# --------------------------------------------------

def assert_allclose(a, b, atol=1e-4, rtol=1e-4):
    if not np.allclose(a, b, atol=atol, rtol=rtol):
        diff = np.abs(a - b)
        raise AssertionError(
            f"Arrays differ: max |a-b| = {float(diff.max())}, "
            f"atol={atol}, rtol={rtol}"
        )


def make_random_problem(rng: np.random.Generator):
    """
    Random architecture (2..4 layers, widths 1..6), random training set
    (1..8 rows) and a random activation.
    """
    depth = int(rng.integers(2, 5))
    arch = [int(rng.integers(1, 7)) for _ in range(depth)]
    rows = int(rng.integers(1, 9))
    activation = list(Activation)[int(rng.integers(0, len(Activation)))]

    net = Network.alloc(arch, seed=True, activation=activation, rng=rng, arena=bool(rng.integers(0, 2)))

    inputs = Matrix(rng.uniform(-1.0, 1.0, size=(rows, arch[0])).astype(np.float32))
    targets = Matrix(rng.uniform(0.0, 1.0, size=(rows, arch[-1])).astype(np.float32))
    return net, inputs, targets


def torch_gradients(net: Network, inputs: Matrix, targets: Matrix):
    """
    Same network and cost expressed in torch; returns [dW0, db0, dW1, db1, ...].
    """
    act = TORCH_ACTIVATIONS[net.activation]

    params = []
    for w, b in zip(net.weights, net.biases):
        params.append(torch.tensor(w.data.astype(np.float64), requires_grad=True))
        params.append(torch.tensor(b.data.astype(np.float64), requires_grad=True))

    a = torch.tensor(inputs.data.astype(np.float64))
    for i in range(net.count):
        a = act(a @ params[2 * i] + params[2 * i + 1])

    y = torch.tensor(targets.data.astype(np.float64))
    cost = ((y - a) ** 2).sum(dim=1).mean()
    cost.backward()

    return [p.grad.detach().numpy() for p in params]


# --------------------------------------------------
# Core cross-verify
# --------------------------------------------------

def cross_verify_backprop_once(rng: np.random.Generator) -> None:
    net, inputs, targets = make_random_problem(rng)
    grad = Network.like(net)

    backprop(net, grad, 0.0, inputs, targets)
    expected = torch_gradients(net, inputs, targets)

    for ours, theirs in zip(grad.parameters(), expected):
        assert_allclose(ours.astype(np.float64), theirs)


def test_backprop_cross_verify():
    rng = np.random.default_rng(1234)
    for _ in range(NUM_TRIALS):
        cross_verify_backprop_once(rng)


if __name__ == "__main__":
    print(f"[backprop_cross_verify] Running {NUM_TRIALS} random trials...")
    rng = np.random.default_rng(1234)

    for i in range(NUM_TRIALS):
        try:
            cross_verify_backprop_once(rng)
        except AssertionError as e:
            print(f"[backprop_cross_verify] FAILED on trial {i}: {e}")
            raise
        print(f"  [OK] trial {i + 1}/{NUM_TRIALS}")

    print("[backprop_cross_verify] backprop == torch.autograd for all random networks.")
