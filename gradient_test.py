# gradient_test.py

from __future__ import annotations

import numpy as np
import pytest

from braincell.braincell_activation import Activation
from braincell.braincell_errors import DimensionMismatchError
from braincell.braincell_gradient import (
    GradientMethod,
    backprop,
    compare_gradients,
    compute_gradient,
    finite_diff,
)
from braincell.braincell_matrix import Matrix
from braincell.braincell_network import Network
from braincell.braincell_optimizer import GradientDescent, learn
from braincell_ext.braincell_datasets import gate_set, twice_set


def random_problem(seed: int, arch, rows: int, activation=Activation.SIGMOID, arena=True):
    rng = np.random.default_rng(seed)
    net = Network.alloc(arch, seed=True, activation=activation, rng=rng, arena=arena)
    inputs = Matrix(rng.uniform(-1.0, 1.0, size=(rows, arch[0])).astype(np.float32))
    targets = Matrix(rng.uniform(0.0, 1.0, size=(rows, arch[-1])).astype(np.float32))
    return net, inputs, targets


# --------------------------------------------------
# Finite difference vs backprop
# --------------------------------------------------

@pytest.mark.parametrize("seed, arch, rows", [
    (0, [2, 2, 1], 4),
    (1, [3, 4, 2], 5),
    (2, [2, 3, 3, 2], 6),
    (3, [1, 1], 3),
])
@pytest.mark.parametrize("arena", [True, False])
def test_finite_diff_agrees_with_backprop(seed, arch, rows, arena):
    eps = 1e-2
    net, inputs, targets = random_problem(seed, arch, rows, arena=arena)

    _, _, max_diff = compare_gradients(net, inputs, targets, eps=eps)
    assert max_diff < 10 * eps


@pytest.mark.parametrize("activation", [Activation.TANH, Activation.IDENTITY])
def test_central_diff_agrees_for_other_activations(activation):
    eps = 1e-2
    net, inputs, targets = random_problem(9, [2, 3, 2], 4, activation=activation)

    _, _, max_diff = compare_gradients(net, inputs, targets, eps=eps, central=True)
    assert max_diff < 10 * eps


def test_finite_diff_restores_parameters():
    net, inputs, targets = random_problem(4, [2, 3, 1], 4)
    before = [p.copy() for p in net.parameters()]

    finite_diff(net, Network.like(net), 1e-3, inputs, targets)

    for p, q in zip(net.parameters(), before):
        assert np.array_equal(p, q)


def test_finite_diff_rejects_bad_eps():
    net, inputs, targets = random_problem(4, [2, 1], 2)
    with pytest.raises(ValueError):
        finite_diff(net, Network.like(net), 0.0, inputs, targets)


@pytest.mark.parametrize("central", [False, True])
def test_finite_diff_eps_below_float32_resolution(central):
    # 0.5 + 1e-8 rounds back to 0.5 in float32
    net = Network.alloc([1, 1])
    net.weights[0].put(0, 0, 0.5)
    inputs = Matrix.from_values(1, 1, [1.0])
    targets = Matrix.from_values(1, 1, [1.0])
    grad = Network.like(net)

    finite_diff(net, grad, 1e-8, inputs, targets, central=central)

    assert grad.weights[0].at(0, 0) == 0.0
    for g in grad.parameters():
        assert np.all(np.isfinite(g))


def test_gradient_network_must_match():
    net, inputs, targets = random_problem(4, [2, 2, 1], 2)
    wrong = Network.alloc([2, 3, 1])
    with pytest.raises(DimensionMismatchError):
        backprop(net, wrong, 0.0, inputs, targets)
    with pytest.raises(DimensionMismatchError):
        finite_diff(net, wrong, 1e-3, inputs, targets)


def test_backprop_single_neuron_by_hand():
    # one identity neuron, one row: cost = (w*x + b - y)^2
    net = Network.alloc([1, 1], activation="identity")
    net.weights[0].set([0.5])
    net.biases[0].set([0.25])
    grad = Network.like(net)

    inputs = Matrix.from_values(1, 1, [2.0])
    targets = Matrix.from_values(1, 1, [3.0])
    backprop(net, grad, 0.0, inputs, targets)

    err = 0.5 * 2.0 + 0.25 - 3.0
    assert grad.weights[0].at(0, 0) == pytest.approx(2 * err * 2.0)
    assert grad.biases[0].at(0, 0) == pytest.approx(2 * err)


def test_backprop_clears_previous_gradient():
    net, inputs, targets = random_problem(6, [2, 3, 1], 4)
    grad = Network.like(net)

    backprop(net, grad, 0.0, inputs, targets)
    first = [g.copy() for g in grad.parameters()]
    backprop(net, grad, 0.0, inputs, targets)

    for g, f in zip(grad.parameters(), first):
        assert np.allclose(g, f)


def test_compute_gradient_dispatch():
    net, inputs, targets = random_problem(8, [2, 2, 1], 4)
    g_fd = Network.like(net)
    g_bp = Network.like(net)

    compute_gradient("finite_diff", net, g_fd, 1e-2, inputs, targets)
    compute_gradient(GradientMethod.BACKPROP, net, g_bp, 0.0, inputs, targets)

    for a, b in zip(g_fd.parameters(), g_bp.parameters()):
        assert np.max(np.abs(a - b)) < 0.1


def test_gradient_method_from_value():
    assert GradientMethod.from_value("finite-diff") is GradientMethod.FINITE_DIFF
    assert GradientMethod.from_value("BACKPROP") is GradientMethod.BACKPROP
    with pytest.raises(ValueError):
        GradientMethod.from_value("adam")


# --------------------------------------------------
# Optimizer step
# --------------------------------------------------

def test_learn_subtracts_scaled_gradient():
    net = Network.alloc([1, 1], arena=False)
    grad = Network.like(net)
    net.weights[0].set([1.0])
    grad.weights[0].set([0.5])
    grad.biases[0].set([-2.0])

    learn(net, grad, 0.1)

    assert net.weights[0].at(0, 0) == pytest.approx(0.95)
    assert net.biases[0].at(0, 0) == pytest.approx(0.2)


@pytest.mark.parametrize("arena", [True, False])
def test_gradient_descent_matches_learn(arena):
    net, inputs, targets = random_problem(12, [2, 3, 1], 4, arena=arena)
    twin = Network.alloc(net.arch, arena=arena)
    for p, q in zip(twin.parameters(), net.parameters()):
        p[...] = q

    grad = Network.like(net)
    backprop(net, grad, 0.0, inputs, targets)

    GradientDescent(net, grad, lr=0.5).step()
    learn(twin, grad, 0.5)

    for p, q in zip(net.parameters(), twin.parameters()):
        assert np.allclose(p, q)


def test_gradient_descent_validates():
    net = Network.alloc([2, 1])
    with pytest.raises(ValueError):
        GradientDescent(net, Network.like(net), lr=0.0)
    with pytest.raises(DimensionMismatchError):
        GradientDescent(net, Network.alloc([2, 2]), lr=1.0)


def test_descent_step_lowers_cost():
    ts = gate_set("or")
    net = Network.alloc([2, 1], seed=True, rng=np.random.default_rng(2))
    grad = Network.like(net)

    before = net.cost(ts.inputs, ts.targets)
    backprop(net, grad, 0.0, ts.inputs, ts.targets)
    learn(net, grad, 0.1)
    assert net.cost(ts.inputs, ts.targets) < before


# --------------------------------------------------
# Single-neuron regression, f(x) = 2x
# --------------------------------------------------

def test_twice_regression_by_finite_difference():
    ts = twice_set()
    net = Network.alloc([1, 1], seed=True, activation="identity", rng=np.random.default_rng(0))
    grad = Network.like(net)

    for _ in range(1000):
        finite_diff(net, grad, 1e-3, ts.inputs, ts.targets)
        learn(net, grad, 1e-2)

    assert net.weights[0].at(0, 0) == pytest.approx(2.0, abs=0.05)
    assert net.biases[0].at(0, 0) == pytest.approx(0.0, abs=0.05)
