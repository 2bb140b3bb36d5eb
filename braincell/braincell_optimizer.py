# braincell/braincell_optimizer.py
from __future__ import annotations

from typing import List, Tuple

import numpy as np

from braincell.braincell_errors import DimensionMismatchError
from braincell.braincell_network import Network


def learn(net: Network, grad: Network, rate: float) -> None:
    """
    One plain gradient-descent step:

        param -= rate * d(cost)/d(param)

    for every weight and bias. `rate` is not bounded here; a rate that is
    too large shows up later as a growing or non-finite cost.
    """
    if not net.same_shape(grad):
        raise DimensionMismatchError(f"learn: gradient {grad.arch} does not match network {net.arch}")

    for p, g in zip(net.parameters(), grad.parameters()):
        p -= rate * g


class GradientDescent:
    """
    Minimal optimizer bound to one (network, gradient network) pair.

    - step(): apply `learn` with the current lr
    - lr:     mutable, so a schedule can change it between steps

    When both networks use the arena layout the update is a single
    vector operation over the flat parameter views.
    """

    def __init__(self, net: Network, grad: Network, lr: float = 1.0) -> None:
        if not net.same_shape(grad):
            raise DimensionMismatchError(
                f"GradientDescent: gradient {grad.arch} does not match network {net.arch}"
            )
        if not lr > 0.0:
            raise ValueError(f"Invalid lr: {lr}")

        self.net = net
        self.grad = grad
        self.lr: float = float(lr)
        self.steps: int = 0

        if net.params is not None and grad.params is not None:
            self._pairs: List[Tuple[np.ndarray, np.ndarray]] = [(net.params, grad.params)]
        else:
            self._pairs = list(zip(net.parameters(), grad.parameters()))

    def step(self) -> None:
        lr = self.lr
        for p, g in self._pairs:
            p -= lr * g
        self.steps += 1

    def __repr__(self) -> str:
        return f"GradientDescent(lr={self.lr}, steps={self.steps})"
