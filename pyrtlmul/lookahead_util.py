def lookahead_carries(propagate: list, generate: list, carry_in) -> list:
    """Compute every carry of a lookahead block directly from ``carry_in``.

    ``carry[k + 1] = generate[k] | (propagate[k] & carry[k])``, expanded into sum of
    products form so no carry depends on another carry::

        carry[1] = g0 | p0 c0
        carry[2] = g1 | p1 g0 | p1 p0 c0
        carry[3] = g2 | p2 g1 | p2 p1 g0 | p2 p1 p0 c0
        ...

    This works with any type that supports ``&`` and ``|``, so it is shared by the
    :ref:`numpy_multiplier` model, where the signals are ``uint32`` arrays of zeroes and
    ones, and the :ref:`pyrtl_multiplier` hardware, where the signals are 1-bit
    :class:`WireVectors<pyrtl.WireVector>`.

    :param propagate: Per-bit propagate signals, least significant bit first.
    :param generate: Per-bit generate signals, least significant bit first.
    :param carry_in: Block carry-in.
    :returns: ``len(propagate) + 1`` carries. ``carries[0]`` is ``carry_in``, and
        ``carries[-1]`` is the block's carry-out.
    """
    assert len(propagate) == len(generate)

    carries = [carry_in]
    for k in range(len(propagate)):
        # Term where ``carry_in`` propagates through bits 0..k.
        carry = carry_in
        for j in range(k + 1):
            carry = carry & propagate[j]
        # Terms where bit j generates a carry that propagates through bits j+1..k.
        for j in range(k + 1):
            term = generate[j]
            for m in range(j + 1, k + 1):
                term = term & propagate[m]
            carry = carry | term
        carries.append(carry)
    return carries


def group_propagate(propagate: list):
    """AND of all per-bit propagate signals.

    :returns: A signal that is set when a carry into the block would propagate all the
        way through the block.
    """
    output = propagate[0]
    for signal in propagate[1:]:
        output = output & signal
    return output
