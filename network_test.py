# network_test.py

from __future__ import annotations

import numpy as np
import pytest

from braincell.braincell_activation import Activation
from braincell.braincell_errors import DimensionMismatchError, InvalidDimensionError
from braincell.braincell_layout import NetworkLayout
from braincell.braincell_matrix import Matrix
from braincell.braincell_network import Network


# --------------------------------------------------
# Layout
# --------------------------------------------------

def test_layout_offsets():
    layout = NetworkLayout.compute([2, 3, 1])

    assert layout.input == (0, 2)
    assert layout.weights == [(2, 6), (8, 3)]
    assert layout.biases == [(11, 3), (14, 1)]
    assert layout.activations == [(15, 3), (18, 1)]
    assert layout.output == (18, 1)
    assert layout.params == (2, 13)
    assert layout.size == 19
    assert layout.nbytes == 19 * 4


@pytest.mark.parametrize("arch", [[3], [], [2, 0, 1], [2, -1]])
def test_bad_architecture(arch):
    with pytest.raises(InvalidDimensionError):
        Network.alloc(arch)


# --------------------------------------------------
# Allocation
# --------------------------------------------------

@pytest.mark.parametrize("arena", [True, False])
def test_shapes_follow_architecture(arena):
    net = Network.alloc([4, 3, 2], arena=arena)

    assert net.count == 2
    assert [w.shape for w in net.weights] == [(4, 3), (3, 2)]
    assert [b.shape for b in net.biases] == [(1, 3), (1, 2)]
    assert [a.shape for a in net.activations] == [(1, 4), (1, 3), (1, 2)]
    assert net.parameter_count == 4 * 3 + 3 + 3 * 2 + 2

    for i in range(net.count):
        assert net.weights[i].cols == net.biases[i].cols == net.activations[i + 1].cols
        assert net.weights[i].rows == net.activations[i].cols


def test_arena_matrices_are_views():
    net = Network.alloc([2, 2, 1])
    assert net.is_arena
    assert all(m.is_view for m in net.weights + net.biases + net.activations)

    net.weights[1].put(1, 0, 7.0)
    offset = net.layout.weights[1][0]
    assert net.values[offset + 1] == 7.0

    # params covers exactly weights + biases
    assert net.params.size == net.parameter_count
    net.params[-1] = 3.0
    assert net.biases[-1].at(0, 0) == 3.0


def test_seeded_parameters_are_symmetric():
    rng = np.random.default_rng(3)
    net = Network.alloc([8, 16, 8], seed=True, rng=rng)

    assert net.params.min() >= -1.0
    assert net.params.max() < 1.0
    assert net.params.min() < 0.0

    # activations are not touched by seeding
    assert all(np.all(a.data == 0.0) for a in net.activations)


def test_unseeded_is_zero():
    net = Network.alloc([2, 3, 1], arena=False)
    assert all(np.all(p == 0.0) for p in net.parameters())


def test_like_matches_network():
    net = Network.alloc([3, 2, 2], activation="tanh", arena=False)
    g = Network.like(net)
    assert g.arch == net.arch
    assert g.activation is Activation.TANH
    assert not g.is_arena


# --------------------------------------------------
# Forward
# --------------------------------------------------

def test_forward_hand_computed():
    net = Network.alloc([2, 1], activation=Activation.IDENTITY)
    net.weights[0].set([2.0, -1.0])
    net.biases[0].set([0.5])

    out = net.forward(Matrix.from_values(1, 2, [3.0, 4.0]))
    assert out.at(0, 0) == pytest.approx(2.0 * 3.0 - 4.0 + 0.5)


def test_forward_sigmoid_two_layers():
    net = Network.alloc([1, 1, 1])
    net.weights[0].set([1.0])
    net.weights[1].set([1.0])

    out = net.forward(Matrix.from_values(1, 1, [0.0]))
    hidden = 0.5
    assert net.activations[1].at(0, 0) == pytest.approx(hidden)
    assert out.at(0, 0) == pytest.approx(1.0 / (1.0 + np.exp(-hidden)), rel=1e-6)


@pytest.mark.parametrize("arena", [True, False])
def test_forward_is_deterministic(arena):
    rng = np.random.default_rng(11)
    net = Network.alloc([3, 5, 4, 2], seed=True, rng=rng, arena=arena)
    x = Matrix(rng.uniform(-1, 1, size=(1, 3)).astype(np.float32))

    first = net.forward(x).data.copy()
    for _ in range(5):
        assert np.array_equal(net.forward(x).data, first)


def test_arena_and_independent_agree():
    rng = np.random.default_rng(5)
    a = Network.alloc([2, 3, 2], seed=True, rng=rng, arena=True)
    b = Network.alloc([2, 3, 2], arena=False)
    for pa, pb in zip(a.parameters(), b.parameters()):
        pb[...] = pa

    x = Matrix.from_values(1, 2, [0.25, -0.75])
    assert np.array_equal(a.forward(x).data, b.forward(x).data)


def test_activation_is_a_parameter():
    x = Matrix.from_values(1, 1, [-2.0])
    outs = {}
    for act in Activation:
        net = Network.alloc([1, 1], activation=act)
        net.weights[0].set([1.0])
        outs[act] = net.forward(x).at(0, 0)

    assert outs[Activation.RELU] == 0.0
    assert outs[Activation.IDENTITY] == -2.0
    assert outs[Activation.TANH] == pytest.approx(np.tanh(-2.0), rel=1e-6)
    assert outs[Activation.SIGMOID] == pytest.approx(1.0 / (1.0 + np.exp(2.0)), rel=1e-6)


def test_predict_returns_copy():
    net = Network.alloc([2, 2], seed=True, rng=np.random.default_rng(1))
    out = net.predict(Matrix.from_values(1, 2, [1, 0]))
    out.put(0, 0, 42.0)
    assert net.output.at(0, 0) != 42.0


# --------------------------------------------------
# Cost
# --------------------------------------------------

def test_cost_is_mean_squared_error():
    net = Network.alloc([1, 1], activation="identity")
    net.weights[0].set([1.0])

    inputs = Matrix.from_values(2, 1, [1.0, 2.0])
    targets = Matrix.from_values(2, 1, [2.0, 2.0])

    # errors: (2-1)^2 = 1, (2-2)^2 = 0 -> mean 0.5
    assert net.cost(inputs, targets) == pytest.approx(0.5)


def test_cost_sums_output_columns():
    net = Network.alloc([1, 2], activation="identity")
    inputs = Matrix.from_values(1, 1, [0.0])
    targets = Matrix.from_values(1, 2, [1.0, 2.0])
    assert net.cost(inputs, targets) == pytest.approx(5.0)


def test_cost_rejects_mismatched_sets():
    net = Network.alloc([2, 1])
    with pytest.raises(DimensionMismatchError):
        net.cost(Matrix.alloc(4, 2), Matrix.alloc(3, 1))
    with pytest.raises(DimensionMismatchError):
        net.cost(Matrix.alloc(4, 3), Matrix.alloc(4, 1))
    with pytest.raises(DimensionMismatchError):
        net.cost(Matrix.alloc(4, 2), Matrix.alloc(4, 2))
