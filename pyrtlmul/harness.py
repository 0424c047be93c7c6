"""
Verification harness for the multipliers.

The harness drives operand pairs into a multiplier, waits for each product, and compares
it bit for bit against ordinary integer multiplication. Results are accumulated in a
:class:`Tally`.

The pipelined multiplier built by :func:`.make_multiplier_io` is driven by
:func:`simulate_pipeline`, which issues one operand pair per cycle and reads each
product :data:`.PIPELINE_LATENCY` cycles later. The combinational baseline built by
:func:`.make_baseline_io` is driven by :func:`simulate_baseline`, which reads each
product in the same cycle, after the combinational logic settles.
"""

import numpy as np
import pyrtl

from pyrtlmul.constants import OPERAND_BITWIDTH, PIPELINE_LATENCY, PRODUCT_BITWIDTH
from pyrtlmul.numpy_multiplier import NumPyMultiplierPipeline, check_operand

DIRECTED_VECTORS = (
    (0, 0),
    (1, 1),
    (255, 255),
    (65535, 1),
    (65535, 65535),
    (1234, 5678),
)
"""Operand pairs that are always tested first."""


def make_test_vectors(num_vectors: int, seed: int = 0) -> np.ndarray:
    """Return ``num_vectors`` operand pairs.

    The pairs start with :data:`DIRECTED_VECTORS`, followed by uniformly random pairs.

    :param num_vectors: Number of operand pairs to return.
    :param seed: Seed for :func:`numpy.random.default_rng`.
    :returns: ``uint16`` array of shape ``(num_vectors, 2)``. Each row is a
        ``(multiplicand, multiplier)`` pair.
    """
    if num_vectors < 0:
        msg = f"num_vectors must be non-negative, got {num_vectors}"
        raise ValueError(msg)

    directed = np.array(DIRECTED_VECTORS, dtype=np.uint16)
    rng = np.random.default_rng(seed)
    num_random = max(0, num_vectors - len(directed))
    random_vectors = rng.integers(
        0,
        2**OPERAND_BITWIDTH - 1,
        size=(num_random, 2),
        dtype=np.uint16,
        endpoint=True,
    )
    return np.concatenate([directed, random_vectors])[:num_vectors]


def golden_product(multiplicand: int, multiplier: int) -> int:
    """Multiply with ordinary integer arithmetic, truncated to 32 bits."""
    return (int(multiplicand) * int(multiplier)) & (2**PRODUCT_BITWIDTH - 1)


class Tally:
    """Count passing and failing tests, and display a summary."""

    def __init__(self, name: str) -> None:
        """:param name: Name of the design under test, used in the summary."""
        self.name = name
        self.num_passed = 0
        self.failures = []

    @property
    def num_failed(self) -> int:
        return len(self.failures)

    @property
    def num_tests(self) -> int:
        return self.num_passed + self.num_failed

    @property
    def all_passed(self) -> bool:
        """``True`` when at least one test ran, and no test failed."""
        return self.num_tests > 0 and self.num_failed == 0

    def update(
        self, actual: int, expected: int, operands: tuple[int, int] = None
    ) -> bool:
        """Record one test. The test passes when ``actual == expected``.

        :param actual: Product observed from the design under test.
        :param expected: Golden product.
        :param operands: Operand pair that produced ``actual``. Included in the summary
            for failing tests.
        :returns: ``True`` if the test passed.
        """
        if actual == expected:
            self.num_passed += 1
            return True
        self.failures.append((operands, actual, expected))
        return False

    def display(self) -> None:
        """Print a summary of all tests.

        The printed summary looks like:

        .. code-block:: text

            pipeline: 100/100 tests passed, ALL PASS

        or, when any test failed:

        .. code-block:: text

            pipeline: 99/100 tests passed, 1 FAILED
              1234 * 5678: actual 0 expected 7006652
        """
        if self.all_passed:
            print(
                f"{self.name}: {self.num_passed}/{self.num_tests} tests passed, "
                "ALL PASS"
            )
            return

        print(
            f"{self.name}: {self.num_passed}/{self.num_tests} tests passed, "
            f"{self.num_failed} FAILED"
        )
        for operands, actual, expected in self.failures:
            if operands is None:
                label = "?"
            else:
                label = f"{operands[0]} * {operands[1]}"
            print(f"  {label}: actual {actual} expected {expected}")


def _operand_pair(vector: np.ndarray) -> tuple[int, int]:
    multiplicand, multiplier = vector
    return (
        check_operand(multiplicand, "multiplicand"),
        check_operand(multiplier, "multiplier"),
    )


def simulate_pipeline(
    sim: pyrtl.Simulation, vectors: np.ndarray, tally: Tally
) -> list[int]:
    """Issue one operand pair per cycle to a pipeline built by
    :func:`.make_multiplier_io`, and check every product.

    ``reset`` is held low. After the last pair is issued, the pipeline is drained with
    zero operands until every product has been read.

    :param sim: Simulation of a design built by :func:`.make_multiplier_io`.
    :param vectors: Operand pairs, as returned by :func:`make_test_vectors`.
    :param tally: Records each comparison.
    :returns: Observed products, in issue order.
    """
    idle_inputs = {"multiplicand": 0, "multiplier": 0, "reset": False}
    operand_pairs = [_operand_pair(vector) for vector in vectors]

    products = []
    for cycle in range(len(operand_pairs) + PIPELINE_LATENCY):
        if cycle < len(operand_pairs):
            multiplicand, multiplier = operand_pairs[cycle]
            sim.step(
                idle_inputs | {"multiplicand": multiplicand, "multiplier": multiplier}
            )
        else:
            sim.step(idle_inputs)

        # The product for the pair issued in cycle ``issued`` appears now.
        issued = cycle - PIPELINE_LATENCY
        if issued >= 0:
            actual = sim.inspect("result")
            operands = operand_pairs[issued]
            tally.update(actual, golden_product(*operands), operands)
            products.append(actual)
    return products


def simulate_baseline(
    sim: pyrtl.Simulation, vectors: np.ndarray, tally: Tally
) -> list[int]:
    """Check every product of a baseline built by :func:`.make_baseline_io`.

    The baseline is combinational, so each product is read in the same cycle as its
    operands.

    :returns: Observed products, in issue order.
    """
    products = []
    for vector in vectors:
        multiplicand, multiplier = _operand_pair(vector)
        sim.step({"multiplicand": multiplicand, "multiplier": multiplier})
        actual = sim.inspect("product")
        tally.update(
            actual,
            golden_product(multiplicand, multiplier),
            (multiplicand, multiplier),
        )
        products.append(actual)
    return products


def simulate_numpy_pipeline(
    pipeline: NumPyMultiplierPipeline, vectors: np.ndarray, tally: Tally
) -> list[int]:
    """Like :func:`simulate_pipeline`, for the :class:`.NumPyMultiplierPipeline` model.

    :returns: Observed products, in issue order.
    """
    operand_pairs = [_operand_pair(vector) for vector in vectors]

    products = []
    for cycle in range(len(operand_pairs) + PIPELINE_LATENCY):
        if cycle < len(operand_pairs):
            actual = pipeline.step(*operand_pairs[cycle])
        else:
            actual = pipeline.step()

        issued = cycle - PIPELINE_LATENCY
        if issued >= 0:
            operands = operand_pairs[issued]
            tally.update(actual, golden_product(*operands), operands)
            products.append(actual)
    return products
