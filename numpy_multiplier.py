import argparse
import sys

import numpy as np

from pyrtlmul.constants import PIPELINE_LATENCY
from pyrtlmul.harness import (
    Tally,
    golden_product,
    make_test_vectors,
    simulate_numpy_pipeline,
)
from pyrtlmul.numpy_multiplier import RANK_NAMES, NumPyMultiplierPipeline


def _display_ranks(tick: int, pipeline: NumPyMultiplierPipeline) -> None:
    """Print every rank's contents in hex."""
    print(f"tick {tick}")
    for name, value in pipeline.ranks.items():
        formatted = np.array2string(
            np.atleast_1d(value), formatter={"int": lambda x: f"{x:08x}"}
        )
        print(f"  {name:>16} {formatted}")


def main() -> None:
    """Run the NumPy model of the pipelined multiplier.

    First, one operand pair is traced through every rank, tick by tick. Then a batch of
    test vectors is issued one per tick, and each product is checked against ordinary
    integer multiplication.
    """
    parser = argparse.ArgumentParser(prog="numpy_multiplier.py")
    parser.add_argument("--multiplicand", type=int, default=1234)
    parser.add_argument("--multiplier", type=int, default=5678)
    parser.add_argument("--num_vectors", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    print(f"Tracing {args.multiplicand} * {args.multiplier}")
    print("Ranks:", ", ".join(RANK_NAMES))
    pipeline = NumPyMultiplierPipeline()
    pipeline.step(args.multiplicand, args.multiplier)
    _display_ranks(tick=0, pipeline=pipeline)
    for tick in range(1, PIPELINE_LATENCY):
        pipeline.step()
        _display_ranks(tick=tick, pipeline=pipeline)

    expected = golden_product(args.multiplicand, args.multiplier)
    if pipeline.result == expected:
        print(f"\nCorrect product {pipeline.result}\n")
    else:
        print(f"\nINCORRECT product {pipeline.result}, expected {expected}\n")

    vectors = make_test_vectors(args.num_vectors, seed=args.seed)
    tally = Tally("numpy pipeline")
    simulate_numpy_pipeline(NumPyMultiplierPipeline(), vectors, tally)
    tally.display()

    if not tally.all_passed:
        sys.exit(1)


if __name__ == "__main__":
    main()
