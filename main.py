# main.py

from __future__ import annotations

import logging
import os
import sys

import numpy as np

from braincell.braincell_evaluation import evaluate
from braincell.braincell_gradient import GradientMethod, finite_diff
from braincell.braincell_network import Network
from braincell.braincell_optimizer import learn
from braincell.braincell_trainer import TrainingConfig, train
from braincell_ext.braincell_datasets import binary_adder_set, gate_set, twice_set


def configure_logging() -> None:
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run_gates(rng: np.random.Generator) -> None:
    """
    Single sigmoid neuron per gate, trained by finite differences.
    """
    for name in ("or", "and", "nand"):
        ts = gate_set(name)
        net = Network.alloc([2, 1], seed=True, rng=rng, name=name.upper())

        config = TrainingConfig(
            max_steps=10000,
            target_rank=3,
            rate=1.0,
            batch_size=500,
            epsilon=1e-2,
            method=GradientMethod.FINITE_DIFF,
        )
        result = train(net, ts.inputs, ts.targets, config)
        ev = evaluate(net, ts.inputs, ts.targets)
        print(f"[gates] {name:>4}: {result.state.value}, cost={result.cost:.6f}, "
              f"{ev.correct}/{ev.rows} rows")


def run_xor(rng: np.random.Generator) -> None:
    ts = gate_set("xor")
    net = Network.alloc([2, 2, 1], seed=True, rng=rng, name="XOR")

    result = train(net, ts.inputs, ts.targets, {
        "maxSteps": 100000,
        "maxRank": 4,
        "epochSize": 10,
        "rate": 4,
    })

    ev = evaluate(net, ts.inputs, ts.targets)
    print(f"[xor] {result.state.value} after {result.steps} steps, cost={result.cost:.6f}")
    for o in ev.outcomes:
        print(f"  {'OK' if o.ok else 'XX'}  in={ts.inputs.data[o.index].tolist()}  "
              f"exp={o.expected[0]:.0f}  act={o.actual[0]:.4f}")


def run_adder(rng: np.random.Generator, bits: int = 2) -> None:
    ts = binary_adder_set(bits)
    net = Network.alloc([2 * bits, 4 * bits, 3 * bits, bits + 1], seed=True, rng=rng, name=f"Adder{bits}")

    result = train(net, ts.inputs, ts.targets, {
        "maxSteps": 10000,
        "maxRank": 4,
        "rate": 6,
        "epochSize": 20,
    })

    ev = evaluate(net, ts.inputs, ts.targets)
    print(f"[adder] {result.state.value} after {result.steps} steps, cost={result.cost:.6f}, "
          f"{ev.correct}/{ev.rows} sums exact")

    for o in ev.failures():
        x = ts.inputs.sub(o.index, 0, 1, bits).smush()
        y = ts.inputs.sub(o.index, bits, 1, bits).smush()
        act = int(sum(int(round(float(v))) << j for j, v in enumerate(o.actual)))
        print(f"  XX  {x} + {y} -> {act}")


def run_twice(rng: np.random.Generator) -> None:
    """
    f(x) = 2x with one linear neuron: w -> 2, b -> 0.
    """
    ts = twice_set()
    net = Network.alloc([1, 1], seed=True, activation="identity", rng=rng, name="Twice")
    grad = Network.like(net)

    for _ in range(1000):
        finite_diff(net, grad, 1e-3, ts.inputs, ts.targets)
        learn(net, grad, 1e-2)

    w = net.weights[0].at(0, 0)
    b = net.biases[0].at(0, 0)
    print(f"[twice] cost={net.cost(ts.inputs, ts.targets):.6f}, w={w:.3f}, b={b:.3f}")


EXAMPLES = {
    "gates": run_gates,
    "xor": run_xor,
    "adder": run_adder,
    "twice": run_twice,
}


def main() -> None:
    configure_logging()

    names = sys.argv[1:] or list(EXAMPLES)
    rng = np.random.default_rng(int(os.getenv("SEED", "1337")))

    for name in names:
        if name not in EXAMPLES:
            print(f"Unknown example {name!r}. Expected one of: {sorted(EXAMPLES)}")
            sys.exit(2)
        EXAMPLES[name](rng)


if __name__ == "__main__":
    main()
