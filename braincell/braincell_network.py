# braincell/braincell_network.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from braincell.braincell_activation import Activation
from braincell.braincell_errors import DimensionMismatchError
from braincell.braincell_layout import NetworkLayout, check_arch
from braincell.braincell_matrix import FLOAT_SIZE, Matrix, SeedMode, fill_random

logger = logging.getLogger(__name__)


class Network:
    """
    Fully-connected feed-forward network:

        a[0]   = input                        (1, arch[0])
        a[i+1] = act(a[i] · W[i] + b[i])      (1, arch[i+1])

    where:
        W[i]: (arch[i], arch[i+1])   weights
        b[i]: (1, arch[i+1])         biases
        a[i]: (1, arch[i])           activations, a[count] is the output

    Storage comes in two flavours:

    - arena=True:  one bytearray holds input, all weights, all biases and
                   all activations (see NetworkLayout). Every Matrix is a
                   view into it, and `params` is one flat float32 view over
                   all weights + biases.
    - arena=False: every Matrix owns its own array; `params` is None.

    Both behave identically for forward / cost / training.

    A gradient network is just another Network with the same architecture
    (see Network.like): its weights / biases hold d(cost)/d(param) and its
    activation slots are scratch space for backprop's error signal.
    """

    def __init__(
        self,
        arch: Sequence[int],
        activation: Activation | str = Activation.SIGMOID,
        arena: bool = True,
        name: str | None = None,
    ):
        self.arch: List[int] = check_arch(arch)
        self.count: int = len(self.arch) - 1
        self.activation: Activation = Activation.from_value(activation)
        self.name = name or f"Network({'-'.join(str(w) for w in self.arch)})"

        self.weights: List[Matrix] = []
        self.biases: List[Matrix] = []
        self.activations: List[Matrix] = []

        self.layout: Optional[NetworkLayout] = None
        self.buffer: Optional[bytearray] = None
        self.values: Optional[np.ndarray] = None
        self.params: Optional[np.ndarray] = None

        if arena:
            self._alloc_arena()
        else:
            self._alloc_independent()

    # ------------------------------------------------------
    # Allocation
    # ------------------------------------------------------
    def _alloc_arena(self) -> None:
        layout = NetworkLayout.compute(self.arch)
        buffer = bytearray(layout.nbytes)

        def view(span, rows, cols, name):
            return Matrix.view(buffer, span[0] * FLOAT_SIZE, rows, cols, name=name)

        self.activations.append(view(layout.input, 1, self.arch[0], "a0"))

        for i in range(self.count):
            rows, cols = self.arch[i], self.arch[i + 1]
            self.weights.append(view(layout.weights[i], rows, cols, f"w{i}"))
            self.biases.append(view(layout.biases[i], 1, cols, f"b{i}"))
            self.activations.append(view(layout.activations[i], 1, cols, f"a{i + 1}"))

        offset, length = layout.params
        self.layout = layout
        self.buffer = buffer
        self.values = np.frombuffer(buffer, dtype=np.float32)
        self.params = np.frombuffer(buffer, dtype=np.float32, count=length, offset=offset * FLOAT_SIZE)

    def _alloc_independent(self) -> None:
        self.activations.append(Matrix.alloc(1, self.arch[0], name="a0"))

        for i in range(self.count):
            rows, cols = self.arch[i], self.arch[i + 1]
            self.weights.append(Matrix.alloc(rows, cols, name=f"w{i}"))
            self.biases.append(Matrix.alloc(1, cols, name=f"b{i}"))
            self.activations.append(Matrix.alloc(1, cols, name=f"a{i + 1}"))

    @classmethod
    def alloc(
        cls,
        arch: Sequence[int],
        seed: bool = False,
        activation: Activation | str = Activation.SIGMOID,
        arena: bool = True,
        rng: Optional[np.random.Generator] = None,
        name: str | None = None,
    ) -> "Network":
        """
        Build a network; when `seed` is set, weights and biases are drawn
        uniformly from [-1, 1), otherwise everything starts at zero.
        """
        net = cls(arch, activation=activation, arena=arena, name=name)
        if seed:
            net.randomize(rng)

        logger.debug("[Network] Allocated %r with %d parameters", net, net.parameter_count)
        return net

    @classmethod
    def like(cls, net: "Network", name: str | None = None) -> "Network":
        """
        Zeroed network with the same architecture, activation and storage flavour.
        Used for gradient networks.
        """
        return cls(net.arch, activation=net.activation, arena=net.is_arena, name=name or "Gradient")

    # ------------------------------------------------------
    # Introspection
    # ------------------------------------------------------
    @property
    def is_arena(self) -> bool:
        return self.buffer is not None

    @property
    def input(self) -> Matrix:
        return self.activations[0]

    @property
    def output(self) -> Matrix:
        return self.activations[self.count]

    @property
    def parameter_count(self) -> int:
        return sum(w.size + b.size for w, b in zip(self.weights, self.biases))

    def parameters(self) -> List[np.ndarray]:
        """
        Flat list of learnable arrays, layer by layer: [W0, b0, W1, b1, ...].
        """
        params = []
        for w, b in zip(self.weights, self.biases):
            params.append(w.data)
            params.append(b.data)
        return params

    def same_shape(self, other: "Network") -> bool:
        return self.arch == other.arch

    # ------------------------------------------------------
    # Parameter initialisation
    # ------------------------------------------------------
    def randomize(
        self,
        rng: Optional[np.random.Generator] = None,
        seed: SeedMode | str | bool = SeedMode.SYMMETRIC,
    ) -> None:
        rng = rng if rng is not None else np.random.default_rng()
        mode = SeedMode.from_value(seed)

        if self.params is not None:
            # single linear scan over the arena
            fill_random(self.params, mode, rng)
            return

        for w, b in zip(self.weights, self.biases):
            fill_random(w.data, mode, rng)
            fill_random(b.data, mode, rng)

    def zero(self) -> None:
        """
        Zero every weight, bias and activation.
        """
        if self.values is not None:
            self.values.fill(0.0)
            return

        for m in self.weights + self.biases + self.activations:
            m.fill(0.0)

    # ------------------------------------------------------
    # Forward
    # ------------------------------------------------------
    def load(self, inputs: Matrix, row: int) -> None:
        """
        Copy row `row` of a training-input matrix into the input slot.
        """
        if inputs.cols != self.arch[0]:
            raise DimensionMismatchError(
                f"{self.name}: input has {inputs.cols} columns, network expects {self.arch[0]}"
            )
        self.input.copy_from(inputs.row(row))

    def forward(self, input: Optional[Matrix] = None) -> Matrix:
        """
        Propagate activations[0] through every layer, overwriting the
        activation slots. If `input` is given it is copied in first.

        Returns the output slot (a view, not a copy).
        """
        if input is not None:
            self.input.copy_from(input)

        act = self.activation
        for i in range(self.count):
            out = self.activations[i + 1]
            out.dot(self.activations[i], self.weights[i])
            out.add(self.biases[i])
            # whole-array activation, not a per-entry map
            out.data[...] = act.forward(out.data)

        return self.output

    def predict(self, row: Matrix) -> Matrix:
        """
        Load one (1, arch[0]) row, run forward, return a copy of the output.
        """
        return self.forward(row).clone()

    # ------------------------------------------------------
    # Cost
    # ------------------------------------------------------
    def check_training_set(self, inputs: Matrix, targets: Matrix) -> None:
        if inputs.rows != targets.rows:
            raise DimensionMismatchError(
                f"{self.name}: {inputs.rows} input rows vs {targets.rows} target rows"
            )
        if inputs.cols != self.arch[0]:
            raise DimensionMismatchError(
                f"{self.name}: inputs {inputs.dim()} do not match input width {self.arch[0]}"
            )
        if targets.cols != self.arch[-1]:
            raise DimensionMismatchError(
                f"{self.name}: targets {targets.dim()} do not match output width {self.arch[-1]}"
            )

    def cost(self, inputs: Matrix, targets: Matrix) -> float:
        """
        Mean over rows of the summed squared error:

            cost = (1/n) Σ_i Σ_j (targets[i, j] - output[j])^2
        """
        self.check_training_set(inputs, targets)

        n = inputs.rows
        total = 0.0

        for i in range(n):
            self.input.data[0, :] = inputs.data[i]
            self.forward()

            d = targets.data[i].astype(np.float64) - self.output.data[0].astype(np.float64)
            total += float(np.dot(d, d))

        return total / n

    def __repr__(self) -> str:
        storage = "arena" if self.is_arena else "independent"
        return f"{self.name}(arch={self.arch}, activation={self.activation.value}, {storage})"
