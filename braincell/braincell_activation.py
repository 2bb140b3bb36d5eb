# braincell/braincell_activation.py
from __future__ import annotations

from enum import Enum

import numpy as np


def sigmoid(x: np.ndarray) -> np.ndarray:
    # exp overflow for very negative x just saturates to 0
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(x, 0.0)


def tanh(x: np.ndarray) -> np.ndarray:
    return np.tanh(x)


def identity(x: np.ndarray) -> np.ndarray:
    return x


class Activation(str, Enum):
    """
    Pointwise activation applied after every affine step of the forward pass.

    forward(z):
        a = act(z), element-wise

    derivative(a):
        d act / dz, written in terms of the OUTPUT a, which is what the
        network keeps in its activation slots:

            sigmoid   a * (1 - a)
            tanh      1 - a^2
            relu      1 where a > 0, else 0
            identity  1
    """

    SIGMOID = "sigmoid"
    RELU = "relu"
    TANH = "tanh"
    IDENTITY = "identity"

    @staticmethod
    def from_value(val: str | Activation) -> Activation:
        """
        Accepts either an Activation or its string name (case-insensitive).
        """
        if isinstance(val, Activation):
            return val

        if isinstance(val, str):
            val_lower = val.lower()
            for act in Activation:
                if act.value == val_lower:
                    return act

        raise ValueError(
            f"Invalid activation: {val!r}. "
            f"Expected one of: {[a.value for a in Activation]}"
        )

    def forward(self, x: np.ndarray) -> np.ndarray:
        if self is Activation.SIGMOID:
            return sigmoid(x)
        if self is Activation.RELU:
            return relu(x)
        if self is Activation.TANH:
            return tanh(x)
        return identity(x)

    def derivative(self, a: np.ndarray) -> np.ndarray:
        if self is Activation.SIGMOID:
            return a * (1.0 - a)
        if self is Activation.RELU:
            return (a > 0).astype(np.float32)
        if self is Activation.TANH:
            return 1.0 - a * a
        return np.ones_like(a)

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.forward(x)
