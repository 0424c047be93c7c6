"""
Software reference model of the pipelined multiplier, implemented with `NumPy`_.

.. _NumPy: https://numpy.org/

This does not build any hardware. It implements the same partial product generator,
4-to-2 compressors and carry-lookahead adder as :ref:`pyrtl_multiplier`, as pure
functions over ``uint32`` arrays, and it is useful for verifying the correctness of the
PyRTL hardware. All arithmetic wraps modulo ``2**32``, like the 32-bit hardware.

Every function accepts scalars or arrays, and broadcasts elementwise, so many test
vectors can be processed in one call.

The ``numpy_multiplier.py`` demo uses :class:`NumPyMultiplierPipeline` to run the
software model cycle by cycle.
"""

from typing import NamedTuple

import numpy as np

from pyrtlmul.constants import (
    CLA_BLOCK_BITWIDTH,
    NUM_PARTIAL_PRODUCTS,
    OPERAND_BITWIDTH,
    PRODUCT_BITWIDTH,
)
from pyrtlmul.lookahead_util import group_propagate, lookahead_carries

_OPERAND_MASK = np.uint32(2**OPERAND_BITWIDTH - 1)
_BLOCK_MASK = np.uint32(2**CLA_BLOCK_BITWIDTH - 1)
_ONE = np.uint32(1)


def check_operand(value: int, name: str) -> int:
    """Reject operands that do not fit in :data:`.OPERAND_BITWIDTH` unsigned bits.

    Operands are rejected rather than truncated, because every downstream stage assumes
    exactly 16-bit operands.

    :param value: Operand to check.
    :param name: Operand name, used in the error message.
    :returns: ``value`` as a Python ``int``.
    :raises ValueError: If ``value`` is negative or larger than ``65535``.
    """
    value = int(value)
    if value < 0 or value > _OPERAND_MASK:
        msg = f"{name} must be in the range [0, {int(_OPERAND_MASK)}], got {value}"
        raise ValueError(msg)
    return value


def _bit(x: np.ndarray, k: int) -> np.ndarray:
    """Return bit ``k`` of each element in ``x``."""
    return (x >> np.uint32(k)) & _ONE


def partial_products(multiplicand: np.ndarray, multiplier: np.ndarray) -> np.ndarray:
    """Generate the 16 shifted partial products of ``multiplicand * multiplier``.

    Partial product ``i`` is ``multiplicand << i`` when bit ``i`` of ``multiplier`` is
    set, and zero otherwise. Each partial product is zero-extended to 32 bits before the
    shift, so no bits are lost.

    :param multiplicand: 16-bit unsigned operand(s).
    :param multiplier: 16-bit unsigned operand(s).
    :returns: ``uint32`` array with a trailing axis of length 16. Element ``[..., i]``
        is partial product ``i``.
    """
    multiplicand = np.asarray(multiplicand, dtype=np.uint32) & _OPERAND_MASK
    multiplier = np.asarray(multiplier, dtype=np.uint32) & _OPERAND_MASK

    rows = []
    for i in range(NUM_PARTIAL_PRODUCTS):
        # Replicate ``multiplier[i]`` across all 16 operand bits, so the AND below
        # computes ``multiplicand[j] & multiplier[i]`` for every bit ``j``.
        replicated_bit = _bit(multiplier, i) * _OPERAND_MASK
        row_bits = multiplicand & replicated_bit
        rows.append(row_bits << np.uint32(i))
    return np.stack(rows, axis=-1)


def majority(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """Bitwise majority: each bit is set where at least two of the inputs are set."""
    return (a & b) | (a & c) | (b & c)


def compress_4_to_2(
    in1: np.ndarray, in2: np.ndarray, in3: np.ndarray, in4: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Reduce four 32-bit values to a ``(sum, carry)`` pair with the same total.

    This is two cascaded carry-save steps. The first step adds ``in1``, ``in2`` and
    ``in3``. The second step adds the first step's sum, its left-shifted carry, and
    ``in4``.

    ``sum + carry == in1 + in2 + in3 + in4`` modulo ``2**32``, for all inputs.

    :returns: ``(sum, carry)``. ``carry`` has already been shifted into position, so it
        can be added directly to ``sum``.
    """
    in1, in2, in3, in4 = (
        np.asarray(value, dtype=np.uint32) for value in (in1, in2, in3, in4)
    )

    temp_sum = in1 ^ in2 ^ in3
    shifted_carry = majority(in1, in2, in3) << _ONE

    sum_out = temp_sum ^ in4 ^ shifted_carry
    carry_out = majority(temp_sum, in4, shifted_carry) << _ONE
    return sum_out, carry_out


def compress_level(values: np.ndarray) -> np.ndarray:
    """Apply one level of 4-to-2 compression to the last axis of ``values``.

    Consecutive groups of four values are each reduced by :func:`compress_4_to_2`. The
    outputs are interleaved as ``[sum0, carry0, sum1, carry1, ...]``, so a level with
    ``16`` inputs produces ``8`` outputs.

    :param values: ``uint32`` array whose last axis length is a multiple of four.
    :returns: ``uint32`` array whose last axis is half as long as ``values``'s.
    """
    values = np.asarray(values, dtype=np.uint32)
    assert values.shape[-1] % 4 == 0

    groups = values.reshape(*values.shape[:-1], -1, 4)
    sums, carries = compress_4_to_2(
        groups[..., 0], groups[..., 1], groups[..., 2], groups[..., 3]
    )
    return np.stack([sums, carries], axis=-1).reshape(*values.shape[:-1], -1)


class ClaBlockResult(NamedTuple):
    """Outputs of a 4-bit carry-lookahead block."""

    sum: np.ndarray
    carry_out: np.ndarray
    group_propagate: np.ndarray
    """Set when a carry into the block would propagate out of the block."""
    group_generate: np.ndarray
    """Set when the block produces a carry-out regardless of its carry-in."""


def cla_block(a: np.ndarray, b: np.ndarray, carry_in: np.ndarray) -> ClaBlockResult:
    """Add two 4-bit values with a 4-bit carry-lookahead block.

    :param a: 4-bit value(s).
    :param b: 4-bit value(s).
    :param carry_in: 1-bit carry-in(s).
    :returns: A :class:`ClaBlockResult` with the 4-bit sum, the carry-out, and the
        group propagate and generate signals used by the next level of lookahead.
    """
    a = np.asarray(a, dtype=np.uint32)
    b = np.asarray(b, dtype=np.uint32)
    carry_in = np.asarray(carry_in, dtype=np.uint32)

    propagate = [_bit(a, k) ^ _bit(b, k) for k in range(CLA_BLOCK_BITWIDTH)]
    generate = [_bit(a, k) & _bit(b, k) for k in range(CLA_BLOCK_BITWIDTH)]
    carries = lookahead_carries(propagate, generate, carry_in)

    block_sum = np.zeros(np.broadcast(a, b, carry_in).shape, dtype=np.uint32)
    for k in range(CLA_BLOCK_BITWIDTH):
        block_sum |= (propagate[k] ^ carries[k]) << np.uint32(k)

    # The group generate is the block's carry-out with a zero carry-in.
    group_generate = lookahead_carries(propagate, generate, np.uint32(0))[-1]

    return ClaBlockResult(
        sum=block_sum,
        carry_out=carries[-1],
        group_propagate=group_propagate(propagate),
        group_generate=group_generate,
    )


def _block_add(
    a: np.ndarray, b: np.ndarray, carry_in: np.ndarray, two_level: bool
) -> tuple[np.ndarray, np.ndarray]:
    """Add ``a`` and ``b`` with eight 4-bit :func:`cla_block` instances."""
    a = np.asarray(a, dtype=np.uint32)
    b = np.asarray(b, dtype=np.uint32)
    carry_in = np.asarray(carry_in, dtype=np.uint32) & _ONE

    total = np.zeros(np.broadcast(a, b, carry_in).shape, dtype=np.uint32)
    block_carry = carry_in
    for k in range(PRODUCT_BITWIDTH // CLA_BLOCK_BITWIDTH):
        shift = np.uint32(k * CLA_BLOCK_BITWIDTH)
        block = cla_block(
            (a >> shift) & _BLOCK_MASK, (b >> shift) & _BLOCK_MASK, block_carry
        )
        total |= block.sum << shift
        if two_level:
            block_carry = block.group_generate | (
                block.group_propagate & block_carry
            )
        else:
            block_carry = block.carry_out
    return total, block_carry


def carry_lookahead_add(
    a: np.ndarray, b: np.ndarray, carry_in: np.ndarray = 0
) -> tuple[np.ndarray, np.ndarray]:
    """Add two 32-bit values with a two-level carry-lookahead adder.

    The operands are split into eight 4-bit blocks. Block 0 receives ``carry_in``. Each
    following block's carry-in is computed from the previous block's group propagate
    and group generate signals, ``carry[k + 1] = G[k] | (P[k] & carry[k])``, so it does
    not wait on the previous block's internal carries.

    :returns: ``(sum, carry_out)`` where ``sum == (a + b + carry_in) % 2**32`` and
        ``carry_out`` is ``1`` exactly when ``a + b + carry_in >= 2**32``.
    """
    return _block_add(a, b, carry_in, two_level=True)


def ripple_block_add(
    a: np.ndarray, b: np.ndarray, carry_in: np.ndarray = 0
) -> tuple[np.ndarray, np.ndarray]:
    """Add two 32-bit values by chaining each 4-bit block's actual carry-out.

    This is the simpler composition used by the baseline multiplier. It produces the
    same results as :func:`carry_lookahead_add`.
    """
    return _block_add(a, b, carry_in, two_level=False)


def multiply(multiplicand: np.ndarray, multiplier: np.ndarray) -> np.ndarray:
    """Combinationally multiply through the full compression tree, without pipelining.

    :returns: ``uint32`` product(s).
    """
    level0 = partial_products(multiplicand, multiplier)
    level1 = compress_level(level0)
    level2 = compress_level(level1)
    level3 = compress_level(level2)
    product, _ = carry_lookahead_add(level3[..., 0], level3[..., 1])
    return product


RANK_NAMES = (
    "operands",
    "partial_products",
    "level1",
    "level2",
    "level3",
    "result",
)
"""Names of the pipeline's register ranks, in data flow order."""


class NumPyMultiplierPipeline:
    """Cycle-accurate software model of the six-rank multiplier pipeline.

    Each call to :meth:`step` is one clock tick. All ranks' next values are computed
    from a snapshot of the current ranks, then all ranks are replaced at once, so no
    rank observes another rank's updated value within the same tick.

    Timing matches :class:`~pyrtl.Simulation`: :meth:`step` returns the result visible
    during the tick, before the clock edge. If operands are passed to :meth:`step` in
    tick ``T``, their product is returned by :meth:`step` in tick ``T + 6``.
    """

    def __init__(self) -> None:
        self._ranks = self._zero_ranks()
        self.num_ticks = 0

    @staticmethod
    def _zero_ranks() -> dict[str, np.ndarray]:
        return {
            "operands": np.zeros(2, dtype=np.uint32),
            "partial_products": np.zeros(NUM_PARTIAL_PRODUCTS, dtype=np.uint32),
            "level1": np.zeros(8, dtype=np.uint32),
            "level2": np.zeros(4, dtype=np.uint32),
            "level3": np.zeros(2, dtype=np.uint32),
            "result": np.zeros((), dtype=np.uint32),
        }

    @property
    def ranks(self) -> dict[str, np.ndarray]:
        """A copy of every rank's current contents, keyed by :data:`RANK_NAMES`."""
        return {name: self._ranks[name].copy() for name in RANK_NAMES}

    @property
    def result(self) -> int:
        """The result rank's current contents, visible during the next tick."""
        return int(self._ranks["result"])

    def step(
        self, multiplicand: int = 0, multiplier: int = 0, reset: bool = False
    ) -> int:
        """Advance the pipeline by one clock tick.

        :param multiplicand: 16-bit operand sampled at this tick.
        :param multiplier: 16-bit operand sampled at this tick.
        :param reset: When ``True``, every rank is cleared to zero, and the operands are
            ignored. Reset takes priority over the normal update.
        :returns: The result visible during this tick, before the clock edge.
        :raises ValueError: If an operand is outside ``[0, 65535]``.
        """
        multiplicand = check_operand(multiplicand, "multiplicand")
        multiplier = check_operand(multiplier, "multiplier")

        if reset:
            next_ranks = self._zero_ranks()
        else:
            current = self._ranks
            level3 = current["level3"]
            next_ranks = {
                "operands": np.array([multiplicand, multiplier], dtype=np.uint32),
                "partial_products": partial_products(*current["operands"]),
                "level1": compress_level(current["partial_products"]),
                "level2": compress_level(current["level1"]),
                "level3": compress_level(current["level2"]),
                "result": np.asarray(
                    carry_lookahead_add(level3[0], level3[1])[0], dtype=np.uint32
                ),
            }

        observed = self.result
        self._ranks = next_ranks
        self.num_ticks += 1
        return observed

    def reset(self) -> None:
        """Clear every rank. Equivalent to one :meth:`step` with ``reset=True``."""
        self.step(reset=True)
