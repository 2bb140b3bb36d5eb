# braincell/braincell_layout.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from braincell.braincell_errors import InvalidDimensionError

Span = Tuple[int, int]  # (offset, length), both counted in floats


def check_arch(arch: Sequence[int]) -> List[int]:
    """
    Validate an architecture (ordered layer widths) and return it as a list.
    """
    widths = [int(w) for w in arch]
    if len(widths) < 2:
        raise InvalidDimensionError(f"Architecture needs at least 2 layers, got {widths}")
    if any(w <= 0 for w in widths):
        raise InvalidDimensionError(f"Layer widths must be positive, got {widths}")
    return widths


@dataclass
class NetworkLayout:
    """
    Partition of one contiguous float32 arena into the blocks of a network.

    Arena order:

        [ input | w0 w1 ... w{n-1} | b0 b1 ... b{n-1} | a1 a2 ... a{n} ]

    - input:        arch[0] floats             (activations[0])
    - weights[i]:   arch[i] * arch[i+1] floats
    - biases[i]:    arch[i+1] floats
    - activations:  arch[i+1] floats for layers 1..n (output is the last one)

    Weights and biases are adjacent, so every learnable parameter sits in
    the single span `params`.
    """

    arch: List[int]
    input: Span = (0, 0)
    weights: List[Span] = field(default_factory=list)
    biases: List[Span] = field(default_factory=list)
    activations: List[Span] = field(default_factory=list)
    size: int = 0

    @classmethod
    def compute(cls, arch: Sequence[int]) -> "NetworkLayout":
        widths = check_arch(arch)
        inputs, layers = widths[0], widths[1:]

        layout = cls(arch=widths)

        layout.input = (0, inputs)
        layout.size = inputs

        for i, width in enumerate(layers):
            span = (layout.size, widths[i] * width)
            layout.weights.append(span)
            layout.size += span[1]

        for width in layers:
            span = (layout.size, width)
            layout.biases.append(span)
            layout.size += span[1]

        for width in layers:
            span = (layout.size, width)
            layout.activations.append(span)
            layout.size += span[1]

        return layout

    @property
    def output(self) -> Span:
        return self.activations[-1]

    @property
    def params(self) -> Span:
        start = self.weights[0][0]
        last_offset, last_len = self.biases[-1]
        return (start, last_offset + last_len - start)

    @property
    def nbytes(self) -> int:
        return self.size * 4
