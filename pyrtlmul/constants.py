# Bitwidth of each unsigned operand.
OPERAND_BITWIDTH = 16

# Bitwidth of the product, and of every partial product and compressor output.
PRODUCT_BITWIDTH = 32

# Bitwidth of one carry-lookahead block.
CLA_BLOCK_BITWIDTH = 4

# One partial product per multiplier bit.
NUM_PARTIAL_PRODUCTS = OPERAND_BITWIDTH

# Number of register ranks between the operand inputs and the result: operands, partial
# products, three compression levels, and the final sum.
PIPELINE_LATENCY = 6
