"""
Combinational baseline multiplier, for comparison with :class:`.MultiplierPipeline`.

The baseline adds the 16 shifted partial products one after another, with a chain of
32-bit block adders. Each adder chains its 4-bit blocks by their actual carry-outs,
without the second level of carry lookahead. There are no registers, so the product is
valid in the same cycle as the operands.
"""

import pyrtl

from pyrtlmul.constants import OPERAND_BITWIDTH, PRODUCT_BITWIDTH
from pyrtlmul.pyrtl_multiplier import make_block_adder, make_partial_products


def make_baseline_multiplier(
    multiplicand: pyrtl.WireVector, multiplier: pyrtl.WireVector
) -> pyrtl.WireVector:
    """Combinationally multiply two 16-bit values.

    :param multiplicand: 16-bit operand.
    :param multiplier: 16-bit operand.
    :returns: 32-bit product.
    """
    partial_products = make_partial_products(multiplicand, multiplier)

    total = partial_products[0]
    for partial_product in partial_products[1:]:
        # The product always fits in 32 bits, so the carry-out is always zero.
        total, _ = make_block_adder(total, partial_product, two_level=False)
    return total


def make_baseline_io() -> pyrtl.WireVector:
    """Build a baseline multiplier with top-level Inputs and Outputs.

    This creates the :class:`Inputs<pyrtl.Input>` ``multiplicand`` and ``multiplier``
    (16 bits each), and the :class:`~pyrtl.Output` ``product`` (32 bits).

    :returns: The ``product`` :class:`~pyrtl.Output`.
    """
    multiplicand = pyrtl.Input(bitwidth=OPERAND_BITWIDTH, name="multiplicand")
    multiplier = pyrtl.Input(bitwidth=OPERAND_BITWIDTH, name="multiplier")

    product = pyrtl.Output(bitwidth=PRODUCT_BITWIDTH, name="product")
    product <<= make_baseline_multiplier(multiplicand, multiplier)
    return product
