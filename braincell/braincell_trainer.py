# braincell/braincell_trainer.py
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from braincell.braincell_gradient import GradientMethod, compute_gradient
from braincell.braincell_matrix import Matrix
from braincell.braincell_network import Network
from braincell.braincell_optimizer import GradientDescent

module_logger = logging.getLogger(__name__)

MAX_RANK = 10


# ===============================================================
# Cost rank / rate schedule
# ===============================================================
def cost_rank(cost: float) -> int:
    """
    Coarse convergence signal: roughly how many leading decimal zeros the
    cost has.

        rank = -floor(log10(cost)), clamped to [0, MAX_RANK]

    cost 0.5 -> 1, cost 0.005 -> 3, cost >= 1 -> 0, cost 0 -> MAX_RANK.
    Non-finite costs rank 0.
    """
    if not math.isfinite(cost) or cost < 0.0:
        return 0
    if cost == 0.0:
        return MAX_RANK
    return max(0, min(MAX_RANK, -math.floor(math.log10(cost))))


def scaled_rate(rate: float, cost: float, progress: float, aggression: float = 0.0) -> float:
    """
    Learning rate for the next batch.

        a = clamp(1 / (cost + 1 - aggression * progress), 1, 10)
        r = rate/2 + rate/2 * a

    With aggression == 0 this is just `rate`. A positive aggression lets the
    rate grow (up to 5.5x) as progress = step / max_steps increases and
    the cost drops.
    """
    if not math.isfinite(cost):
        return rate

    denom = cost + 1.0 - aggression * progress
    a = 10.0 if denom <= 0.0 else min(10.0, max(1.0, 1.0 / denom))
    return rate / 2.0 + rate / 2.0 * a


# ===============================================================
# Config
# ===============================================================
OPTION_ALIASES: Dict[str, str] = {
    "maxSteps": "max_steps",
    "targetRank": "target_rank",
    "maxRank": "target_rank",
    "batchSize": "batch_size",
    "epochSize": "batch_size",
    "eps": "epsilon",
}


@dataclass
class TrainingConfig:
    """
    Hyper-parameters of one training run.

    max_steps:    step budget (gradient + update = one step)
    target_rank:  stop as FINISHED once cost_rank(cost) reaches this
    rate:         base learning rate
    batch_size:   steps per batch; the trainer only yields between batches
    epsilon:      finite-difference perturbation (FINITE_DIFF only)
    method:       GradientMethod
    aggression:   rate-schedule knob, see scaled_rate()

    Every step computes the gradient over the whole training set, so row
    order does not affect training.
    """

    max_steps: int = 10000
    target_rank: int = 4
    rate: float = 1.0
    batch_size: int = 100
    epsilon: float = 1e-3
    method: GradientMethod = GradientMethod.BACKPROP
    aggression: float = 0.0

    def __post_init__(self) -> None:
        self.max_steps = int(self.max_steps)
        self.target_rank = int(self.target_rank)
        self.rate = float(self.rate)
        self.batch_size = int(self.batch_size)
        self.epsilon = float(self.epsilon)
        self.method = GradientMethod.from_value(self.method)
        self.aggression = float(self.aggression)

        if self.max_steps < 1:
            raise ValueError(f"Invalid max_steps: {self.max_steps}")
        if not 0 <= self.target_rank <= MAX_RANK:
            raise ValueError(f"Invalid target_rank: {self.target_rank} (expected 0..{MAX_RANK})")
        if not self.rate > 0.0:
            raise ValueError(f"Invalid rate: {self.rate}")
        if self.batch_size < 1:
            raise ValueError(f"Invalid batch_size: {self.batch_size}")
        if not self.epsilon > 0.0:
            raise ValueError(f"Invalid epsilon: {self.epsilon}")

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "TrainingConfig":
        """
        Build a config from a loose options mapping, e.g.

            {"maxSteps": 10000, "maxRank": 4, "rate": 6, "epochSize": 20}

        Accepts field names and the camelCase names above.
        """
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}

        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in names:
                raise ValueError(f"Unknown training option: {key!r}")
            kwargs[name] = value

        return cls(**kwargs)


# ===============================================================
# State / reports
# ===============================================================
class TrainState(str, Enum):
    IDLE = "idle"
    TRAINING = "training"
    STOPPED = "stopped"
    FINISHED = "finished"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TrainState.STOPPED, TrainState.FINISHED, TrainState.CANCELLED)


@dataclass
class TrainingProgress:
    """Snapshot yielded after every batch."""

    state: TrainState
    step: int
    max_steps: int
    cost: float
    rank: int
    rate: float
    elapsed: float


@dataclass
class TrainingResult:
    state: TrainState
    steps: int
    cost: float
    rank: int
    rate: float
    elapsed: float
    grad: Network
    cost_history: List[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.state is TrainState.FINISHED


# ===============================================================
# Trainer
# ===============================================================
class Trainer:
    """
    Batched training loop for one network.

        IDLE -> TRAINING -> { FINISHED | STOPPED | CANCELLED }

    Each batch runs up to `batch_size` (gradient, update) steps, then
    re-evaluates the cost and its rank:

        rank >= target_rank   -> FINISHED
        step >= max_steps     -> STOPPED

    Cancellation (cancel() or the `should_cancel` callable) is only looked
    at between batches, never inside one.

    batches() is a generator that yields a TrainingProgress after every
    batch; that yield is the only point where control goes back to the
    caller. run() drains it and returns a TrainingResult.

    The trainer owns its gradient network. The network itself must not be
    touched by anyone else while a batch runs.
    """

    def __init__(
        self,
        net: Network,
        inputs: Matrix,
        targets: Matrix,
        config: Optional[TrainingConfig] = None,
        logger: Optional[logging.Logger] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> None:
        net.check_training_set(inputs, targets)

        self.net = net
        self.inputs = inputs
        self.targets = targets
        self.config = config if config is not None else TrainingConfig()
        self.logger = logger if logger is not None else module_logger
        self.should_cancel = should_cancel

        self.grad = Network.like(net)
        self.optimizer = GradientDescent(net, self.grad, lr=self.config.rate)

        self.state = TrainState.IDLE
        self.step = 0
        self.cost = math.inf
        self.rank = 0
        self.cost_history: List[float] = []
        self.elapsed = 0.0

        self._cancel_requested = False

    # ------------------------------------------------------
    # Control
    # ------------------------------------------------------
    def cancel(self) -> None:
        """Ask the loop to stop at the next batch boundary."""
        self._cancel_requested = True

    def _cancelled(self) -> bool:
        if self._cancel_requested:
            return True
        return self.should_cancel is not None and bool(self.should_cancel())

    def _progress(self) -> TrainingProgress:
        return TrainingProgress(
            state=self.state,
            step=self.step,
            max_steps=self.config.max_steps,
            cost=self.cost,
            rank=self.rank,
            rate=self.optimizer.lr,
            elapsed=self.elapsed,
        )

    # ------------------------------------------------------
    # Loop
    # ------------------------------------------------------
    def batches(self) -> Iterator[TrainingProgress]:
        if self.state is not TrainState.IDLE:
            raise RuntimeError(f"Trainer already ran (state={self.state.value})")

        cfg = self.config
        log = self.logger

        self.state = TrainState.TRAINING
        start = time.perf_counter()
        self.cost = self.net.cost(self.inputs, self.targets)
        self.rank = cost_rank(self.cost)

        log.info(
            "[Trainer] Training %s for %d steps (%s, batch=%d, rate=%g)...",
            self.net.name, cfg.max_steps, cfg.method.value, cfg.batch_size, cfg.rate,
        )

        while self.state is TrainState.TRAINING:
            if self._cancelled():
                self.state = TrainState.CANCELLED
                self.elapsed = time.perf_counter() - start
                yield self._progress()
                break

            self.optimizer.lr = scaled_rate(
                cfg.rate, self.cost, self.step / cfg.max_steps, cfg.aggression
            )

            n = min(cfg.batch_size, cfg.max_steps - self.step)
            for _ in range(n):
                compute_gradient(cfg.method, self.net, self.grad, cfg.epsilon, self.inputs, self.targets)
                self.optimizer.step()

            self.step += n
            self.cost = self.net.cost(self.inputs, self.targets)
            self.rank = cost_rank(self.cost)
            self.cost_history.append(self.cost)
            self.elapsed = time.perf_counter() - start

            if self.rank >= cfg.target_rank:
                self.state = TrainState.FINISHED
            elif self.step >= cfg.max_steps:
                self.state = TrainState.STOPPED

            log.debug(
                "[Trainer] %d %.6f  step %d/%d  rate %.3f",
                self.rank, self.cost, self.step, cfg.max_steps, self.optimizer.lr,
            )

            yield self._progress()

        if self.state is TrainState.FINISHED:
            log.info("[Trainer] Finished in %.2fms and %d steps", self.elapsed * 1000.0, self.step)
        elif self.state is TrainState.STOPPED:
            log.warning("[Trainer] Stopping at rank %d after %d steps.", self.rank, self.step)
        else:
            log.warning("[Trainer] Cancelled at rank %d after %d steps.", self.rank, self.step)

    def run(self) -> TrainingResult:
        for _ in self.batches():
            pass
        return self.result()

    def result(self) -> TrainingResult:
        return TrainingResult(
            state=self.state,
            steps=self.step,
            cost=self.cost,
            rank=self.rank,
            rate=self.optimizer.lr,
            elapsed=self.elapsed,
            grad=self.grad,
            cost_history=list(self.cost_history),
        )


def train(
    net: Network,
    inputs: Matrix,
    targets: Matrix,
    options: Optional[Mapping[str, Any] | TrainingConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> TrainingResult:
    """
    One-call training: accepts a TrainingConfig or an options mapping.
    """
    if options is None:
        config = TrainingConfig()
    elif isinstance(options, TrainingConfig):
        config = options
    else:
        config = TrainingConfig.from_options(options)

    return Trainer(net, inputs, targets, config, logger=logger).run()
