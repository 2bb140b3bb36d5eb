# braincell/braincell_evaluation.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from braincell.braincell_matrix import Matrix
from braincell.braincell_network import Network


@dataclass
class RowOutcome:
    index: int
    expected: np.ndarray
    actual: np.ndarray
    ok: bool


@dataclass
class Evaluation:
    cost: float
    rows: int
    correct: int
    outcomes: List[RowOutcome] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        return self.correct / self.rows if self.rows > 0 else 0.0

    @property
    def passed(self) -> bool:
        return self.correct == self.rows

    def failures(self) -> List[RowOutcome]:
        return [o for o in self.outcomes if not o.ok]


def evaluate(
    net: Network,
    inputs: Matrix,
    targets: Matrix,
    tolerance: Optional[float] = None,
) -> Evaluation:
    """
    Run every training row through the network and check the output.

    By default a row is correct when every output, rounded to the nearest
    integer, equals its target (logic gates, bit patterns). With a
    `tolerance`, a row is correct when every |output - target| <= tolerance.
    """
    c = net.cost(inputs, targets)

    outcomes = []
    correct = 0
    for i in range(inputs.rows):
        net.load(inputs, i)
        actual = net.forward().data[0].copy()
        expected = targets.data[i].copy()

        if tolerance is None:
            ok = bool(np.array_equal(np.rint(actual), np.rint(expected)))
        else:
            ok = bool(np.all(np.abs(actual - expected) <= tolerance))

        correct += int(ok)
        outcomes.append(RowOutcome(index=i, expected=expected, actual=actual, ok=ok))

    return Evaluation(cost=c, rows=inputs.rows, correct=correct, outcomes=outcomes)
