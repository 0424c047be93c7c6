"""
Pipelined 16×16 → 32-bit unsigned multiplier, in the `PyRTL`_ hardware description
language.

.. _PyRTL: https://github.com/UCSBarchlab/PyRTL

The multiplier generates 16 partial products, reduces them to a ``(sum, carry)`` pair
with a three-level tree of 4-to-2 compressors, and resolves the pair with a two-level
carry-lookahead adder. Each step is followed by a rank of :class:`Registers
<pyrtl.Register>`, so a new operand pair can enter every cycle, and each product appears
six cycles after its operands are sampled.

The ``pyrtl_multiplier.py`` demo uses :func:`make_multiplier_io` to build the
multiplier, and checks it against ordinary integer multiplication.
"""

import pyrtl

from pyrtlmul.constants import (
    CLA_BLOCK_BITWIDTH,
    NUM_PARTIAL_PRODUCTS,
    OPERAND_BITWIDTH,
    PRODUCT_BITWIDTH,
)
from pyrtlmul.lookahead_util import group_propagate, lookahead_carries


@pyrtl.wire_struct
class SumCarry:
    """Output of a 4-to-2 compressor. ``carry`` is already shifted into position."""

    sum: PRODUCT_BITWIDTH
    carry: PRODUCT_BITWIDTH


@pyrtl.wire_struct
class ClaBlock:
    """Outputs of a 4-bit carry-lookahead block."""

    sum: CLA_BLOCK_BITWIDTH
    carry_out: 1
    group_propagate: 1
    group_generate: 1


@pyrtl.wire_struct
class Operands:
    """The multiplier's input rank."""

    multiplicand: OPERAND_BITWIDTH
    multiplier: OPERAND_BITWIDTH


def _shift_left(value: pyrtl.WireVector, amount: int) -> pyrtl.WireVector:
    """Shift ``value`` left by a constant ``amount``, keeping its bitwidth."""
    if amount == 0:
        return value
    return pyrtl.concat(
        value[: value.bitwidth - amount], pyrtl.Const(0, bitwidth=amount)
    )


def _majority(
    a: pyrtl.WireVector, b: pyrtl.WireVector, c: pyrtl.WireVector
) -> pyrtl.WireVector:
    """Bitwise majority of three equal-width wires."""
    return (a & b) | (a & c) | (b & c)


def make_partial_products(
    multiplicand: pyrtl.WireVector, multiplier: pyrtl.WireVector
) -> list[pyrtl.WireVector]:
    """Generate the 16 shifted partial products of ``multiplicand * multiplier``.

    Row ``i`` ANDs every bit of ``multiplicand`` with bit ``i`` of ``multiplier``,
    zero-extends the 16-bit row to 32 bits, then shifts it left by ``i``.

    This implementation is fully combinational (no registers).

    :param multiplicand: 16-bit operand.
    :param multiplier: 16-bit operand.
    :returns: 16 32-bit partial products. Their sum is ``multiplicand * multiplier``.
    """
    assert multiplicand.bitwidth == OPERAND_BITWIDTH
    assert multiplier.bitwidth == OPERAND_BITWIDTH

    rows = []
    for i in range(NUM_PARTIAL_PRODUCTS):
        bit_products = [
            multiplicand[j] & multiplier[i] for j in range(OPERAND_BITWIDTH)
        ]
        # ``concat_list`` puts its first element in the least significant bit.
        row_bits = pyrtl.concat_list(bit_products).zero_extended(PRODUCT_BITWIDTH)
        rows.append(_shift_left(row_bits, i))
    return rows


def make_compressor(
    in1: pyrtl.WireVector,
    in2: pyrtl.WireVector,
    in3: pyrtl.WireVector,
    in4: pyrtl.WireVector,
) -> SumCarry:
    """Reduce four 32-bit values to a :class:`SumCarry` pair with the same total.

    The compressor is two cascaded carry-save adders::

        in1 in2 in3
         │   │   │
         ▼   ▼   ▼
        ┌───────────┐
        │   CSA 1   │─── temp_sum ────────┐
        └───────────┘                     │
              │                           │
              └── carry << 1 ──┐          │   in4
                               ▼          ▼    │
                             ┌───────────────┐ │
                             │     CSA 2     │◀┘
                             └───────────────┘
                               │          │
                              sum     carry << 1

    ``sum + carry == in1 + in2 + in3 + in4`` modulo ``2**32``.

    This implementation is fully combinational (no registers).

    :returns: The compressor's ``sum`` and ``carry`` outputs.
    """
    for value in (in1, in2, in3, in4):
        assert value.bitwidth == PRODUCT_BITWIDTH

    temp_sum = in1 ^ in2 ^ in3
    shifted_carry = _shift_left(_majority(in1, in2, in3), 1)

    return SumCarry(
        sum=temp_sum ^ in4 ^ shifted_carry,
        carry=_shift_left(_majority(temp_sum, in4, shifted_carry), 1),
    )


def make_compression_level(values: list[pyrtl.WireVector]) -> list[pyrtl.WireVector]:
    """Apply one level of 4-to-2 compression.

    Consecutive groups of four ``values`` are each reduced by one
    :func:`make_compressor`. The outputs are ordered ``[sum0, carry0, sum1, carry1,
    ...]``.

    :param values: 32-bit values. The number of values must be a multiple of four.
    :returns: Half as many 32-bit values, with the same total.
    """
    assert len(values) % 4 == 0

    outputs = []
    for group in range(0, len(values), 4):
        sum_carry = make_compressor(*values[group : group + 4])
        outputs.extend([sum_carry.sum, sum_carry.carry])
    return outputs


def make_cla_block(
    a: pyrtl.WireVector, b: pyrtl.WireVector, carry_in: pyrtl.WireVector | int
) -> ClaBlock:
    """Add two 4-bit values with a carry-lookahead block.

    Each bit has a propagate signal ``p = a ^ b`` and a generate signal ``g = a & b``.
    All four internal carries are computed in parallel from ``carry_in``, see
    :func:`.lookahead_carries`.

    This implementation is fully combinational (no registers).

    :param a: 4-bit addend.
    :param b: 4-bit addend.
    :param carry_in: 1-bit carry-in.
    :returns: The block's 4-bit sum, its carry-out, and its group propagate and group
        generate signals, for use by the next level of lookahead.
    """
    assert a.bitwidth == CLA_BLOCK_BITWIDTH
    assert b.bitwidth == CLA_BLOCK_BITWIDTH
    carry_in = pyrtl.as_wires(carry_in, bitwidth=1)

    propagate = [a[k] ^ b[k] for k in range(CLA_BLOCK_BITWIDTH)]
    generate = [a[k] & b[k] for k in range(CLA_BLOCK_BITWIDTH)]
    carries = lookahead_carries(propagate, generate, carry_in)

    return ClaBlock(
        sum=pyrtl.concat_list(
            [propagate[k] ^ carries[k] for k in range(CLA_BLOCK_BITWIDTH)]
        ),
        carry_out=carries[-1],
        group_propagate=group_propagate(propagate),
        # The group generate is the block's carry-out with a zero carry-in.
        group_generate=lookahead_carries(
            propagate, generate, pyrtl.Const(0, bitwidth=1)
        )[-1],
    )


def make_block_adder(
    a: pyrtl.WireVector,
    b: pyrtl.WireVector,
    carry_in: pyrtl.WireVector | int = 0,
    two_level: bool = True,
) -> tuple[pyrtl.WireVector, pyrtl.WireVector]:
    """Add two 32-bit values with eight :func:`make_cla_block` instances.

    :param a: 32-bit addend.
    :param b: 32-bit addend.
    :param carry_in: 1-bit carry-in for the least significant block.
    :param two_level: When ``True``, each block's carry-in is computed from the
        previous block's group signals, ``carry[k + 1] = G[k] | (P[k] & carry[k])``.
        When ``False``, each block's carry-in is the previous block's carry-out.
    :returns: ``(sum, carry_out)``, where ``sum`` is 32 bits and ``carry_out`` is 1 bit.
    """
    assert a.bitwidth == PRODUCT_BITWIDTH
    assert b.bitwidth == PRODUCT_BITWIDTH

    block_sums = []
    block_carry = pyrtl.as_wires(carry_in, bitwidth=1)
    for start in range(0, PRODUCT_BITWIDTH, CLA_BLOCK_BITWIDTH):
        end = start + CLA_BLOCK_BITWIDTH
        block = make_cla_block(a[start:end], b[start:end], block_carry)
        block_sums.append(block.sum)
        if two_level:
            block_carry = block.group_generate | (block.group_propagate & block_carry)
        else:
            block_carry = block.carry_out
    return pyrtl.concat_list(block_sums), block_carry


def make_carry_lookahead_adder(
    a: pyrtl.WireVector, b: pyrtl.WireVector, carry_in: pyrtl.WireVector | int = 0
) -> tuple[pyrtl.WireVector, pyrtl.WireVector]:
    """Add two 32-bit values with a two-level carry-lookahead adder.

    The inter-block carries resolve from group propagate and generate signals, without
    waiting for each block's internal carries.

    This implementation is fully combinational (no registers).

    :returns: ``(sum, carry_out)``. ``sum == (a + b + carry_in) % 2**32``.
    """
    return make_block_adder(a, b, carry_in, two_level=True)


def _make_rank(
    name: str, values: list[pyrtl.WireVector], reset: pyrtl.WireVector
) -> pyrtl.WireVector:
    """Register ``values`` in one pipeline rank, which clears to zero on ``reset``.

    :returns: A :func:`~pyrtl.wire_matrix` of :class:`~pyrtl.Register`. Index it to
        read each registered value.
    """
    Rank = pyrtl.wire_matrix(component_schema=PRODUCT_BITWIDTH, size=len(values))
    rank = Rank(name=name, concatenated_type=pyrtl.Register)
    rank.next <<= pyrtl.select(reset, 0, Rank(values=values))
    return rank


class MultiplierPipeline:
    """Six-rank pipelined multiplier hardware.

    The diagram below shows the data flow. Every box is combinational, and every
    ``rank`` is a row of :class:`Registers<pyrtl.Register>`::

        multiplicand, multiplier
            │
            ▼
        operands rank ──▶ partial products (16) ──▶ partial_products rank
                                                        │
            ┌───────────────────────────────────────────┘
            ▼
        level 1 compression (16 → 8) ──▶ level1 rank
            │
            ▼
        level 2 compression (8 → 4) ──▶ level2 rank
            │
            ▼
        level 3 compression (4 → 2) ──▶ level3 rank
            │
            ▼
        carry-lookahead adder (2 → 1) ──▶ result rank

    All ranks update on the same clock edge. When ``reset`` is high, every rank's next
    value is zero, regardless of its combinational input.

    Rank registers are named ``{name}.operands``, ``{name}.partial_products``,
    ``{name}.level1``, ``{name}.level2``, ``{name}.level3`` and ``{name}.result``.
    """

    operands: Operands
    """Input rank, holding the sampled operands."""

    partial_products: pyrtl.WireVector
    """Rank holding 16 partial products."""

    level1: pyrtl.WireVector
    """Rank holding the 8 outputs of the first compression level."""

    level2: pyrtl.WireVector
    """Rank holding the 4 outputs of the second compression level."""

    level3: pyrtl.WireVector
    """Rank holding the final ``(sum, carry)`` pair."""

    result: pyrtl.Register
    """32-bit product register."""

    def __init__(
        self,
        name: str,
        multiplicand: pyrtl.WireVector,
        multiplier: pyrtl.WireVector,
        reset: pyrtl.WireVector,
    ) -> None:
        """Build the pipeline hardware.

        :param name: Prefix for all rank register names.
        :param multiplicand: 16-bit operand, sampled every cycle.
        :param multiplier: 16-bit operand, sampled every cycle.
        :param reset: 1-bit synchronous reset. Clears every rank.
        """
        assert reset.bitwidth == 1
        self.name = name

        self.operands = Operands(
            name=f"{name}.operands", concatenated_type=pyrtl.Register
        )
        self.operands.next <<= pyrtl.select(
            reset, 0, Operands(multiplicand=multiplicand, multiplier=multiplier)
        )

        self.partial_products = _make_rank(
            f"{name}.partial_products",
            make_partial_products(
                self.operands.multiplicand, self.operands.multiplier
            ),
            reset,
        )

        previous = self.partial_products
        num_values = NUM_PARTIAL_PRODUCTS
        levels = []
        for level in range(1, 4):
            outputs = make_compression_level([previous[i] for i in range(num_values)])
            num_values = len(outputs)
            previous = _make_rank(f"{name}.level{level}", outputs, reset)
            levels.append(previous)
        self.level1, self.level2, self.level3 = levels

        total, _ = make_carry_lookahead_adder(self.level3[0], self.level3[1])
        self.result = pyrtl.Register(bitwidth=PRODUCT_BITWIDTH, name=f"{name}.result")
        self.result.next <<= pyrtl.select(reset, 0, total)

    @property
    def ranks(self) -> list[pyrtl.WireVector]:
        """All six ranks, in data flow order."""
        return [
            self.operands,
            self.partial_products,
            self.level1,
            self.level2,
            self.level3,
            self.result,
        ]


def make_multiplier_io(name: str = "mul") -> MultiplierPipeline:
    """Build a :class:`MultiplierPipeline` with top-level Inputs and Outputs.

    This creates the :class:`Inputs<pyrtl.Input>` ``multiplicand`` (16 bits),
    ``multiplier`` (16 bits) and ``reset`` (1 bit), and the :class:`~pyrtl.Output`
    ``result`` (32 bits). The ``result`` for operands sampled in cycle ``T`` is
    available in cycle ``T + 6``, as long as ``reset`` stays low in between.

    :param name: Prefix for the pipeline's rank register names.
    :returns: The pipeline, so its ranks can be inspected in a
        :class:`~pyrtl.Simulation`.
    """
    multiplicand = pyrtl.Input(bitwidth=OPERAND_BITWIDTH, name="multiplicand")
    multiplier = pyrtl.Input(bitwidth=OPERAND_BITWIDTH, name="multiplier")
    reset = pyrtl.Input(bitwidth=1, name="reset")

    pipeline = MultiplierPipeline(
        name=name, multiplicand=multiplicand, multiplier=multiplier, reset=reset
    )

    result = pyrtl.Output(bitwidth=PRODUCT_BITWIDTH, name="result")
    result <<= pipeline.result
    return pipeline
