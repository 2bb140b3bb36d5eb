# braincell_ext/braincell_datasets.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from braincell.braincell_matrix import Matrix


@dataclass
class TrainingSet:
    """
    Labeled examples: row i of `inputs` maps to row i of `targets`.
    """
    inputs: Matrix
    targets: Matrix
    name: str = "set"

    def __post_init__(self) -> None:
        if self.inputs.rows != self.targets.rows:
            raise ValueError(
                f"TrainingSet {self.name}: {self.inputs.rows} input rows vs "
                f"{self.targets.rows} target rows"
            )

    @classmethod
    def from_table(cls, table: Sequence[Sequence[float]], input_cols: int, name: str = "set") -> "TrainingSet":
        """
        Split a row table like [[x1, x2, y], ...] into inputs / targets.
        """
        rows = len(table)
        cols = len(table[0])
        flat = [float(v) for row in table for v in row]

        whole = Matrix.from_values(rows, cols, flat, name=name)
        inputs, targets = whole.split_columns([input_cols, cols - input_cols])
        return cls(inputs=inputs, targets=targets, name=name)

    @property
    def rows(self) -> int:
        return self.inputs.rows

    def shuffle(self, rng: Optional[np.random.Generator] = None) -> None:
        """
        Reorder the examples in place. Row i of inputs and row i of targets
        move together.
        """
        both = Matrix.hstack([self.inputs, self.targets])
        both.shuffle_rows(rng)
        inputs, targets = both.split_columns([self.inputs.cols, self.targets.cols])
        self.inputs.copy_from(inputs)
        self.targets.copy_from(targets)


# --------------------------------------------------
# Logic gates
# --------------------------------------------------

GATE_TABLES: Dict[str, List[List[int]]] = {
    "or": [
        [0, 0, 0],
        [0, 1, 1],
        [1, 0, 1],
        [1, 1, 1],
    ],
    "and": [
        [0, 0, 0],
        [0, 1, 0],
        [1, 0, 0],
        [1, 1, 1],
    ],
    "nand": [
        [0, 0, 1],
        [0, 1, 1],
        [1, 0, 1],
        [1, 1, 0],
    ],
    "xor": [
        [0, 0, 0],
        [0, 1, 1],
        [1, 0, 1],
        [1, 1, 0],
    ],
    "xnor": [
        [0, 0, 1],
        [0, 1, 0],
        [1, 0, 0],
        [1, 1, 1],
    ],
}


def gate_set(name: str) -> TrainingSet:
    """
    Two-input truth table: inputs (4, 2), targets (4, 1).
    """
    key = name.lower()
    if key not in GATE_TABLES:
        raise ValueError(f"Unknown gate {name!r}. Expected one of: {sorted(GATE_TABLES)}")
    return TrainingSet.from_table(GATE_TABLES[key], input_cols=2, name=key)


# --------------------------------------------------
# Binary adder
# --------------------------------------------------

def binary_adder_set(bits: int) -> TrainingSet:
    """
    Every pair of `bits`-bit operands and their sum.

    Row i encodes x = i // 2^bits, y = i % 2^bits.

    inputs:  (4^bits, 2*bits)  x bits then y bits, little-endian
    targets: (4^bits, bits+1)  low `bits` bits of x + y, then the overflow bit
    """
    if bits < 1:
        raise ValueError(f"binary_adder_set: bits must be >= 1, got {bits}")

    n = 1 << bits
    rows = n * n
    inputs = Matrix.alloc(rows, 2 * bits, name=f"adder{bits}_in")
    targets = Matrix.alloc(rows, bits + 1, name=f"adder{bits}_out")

    for i in range(rows):
        x = i // n
        y = i % n
        z = x + y

        for j in range(bits):
            inputs.put(i, j, (x >> j) & 1)
            inputs.put(i, j + bits, (y >> j) & 1)
            targets.put(i, j, (z >> j) & 1)
        targets.put(i, bits, 1 if z >= n else 0)

    return TrainingSet(inputs=inputs, targets=targets, name=f"adder{bits}")


# --------------------------------------------------
# f(x) = 2x
# --------------------------------------------------

def twice_set() -> TrainingSet:
    """
    Five exact samples of f(x) = 2x for x = 0..4.
    """
    table = [[x, 2 * x] for x in range(5)]
    return TrainingSet.from_table(table, input_cols=1, name="twice")
