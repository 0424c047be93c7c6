import unittest

import numpy as np
import pyrtl

import pyrtlmul.numpy_multiplier as numpy_multiplier
import pyrtlmul.pyrtl_multiplier as pyrtl_multiplier
from pyrtlmul.constants import PIPELINE_LATENCY

MASK_32 = 2**32 - 1


class TestPyrtlMultiplierComponents(unittest.TestCase):
    def setUp(self):
        pyrtl.reset_working_block()
        self.rng = np.random.default_rng(seed=2)

    def random_uint32(self) -> int:
        return int(self.rng.integers(0, MASK_32, endpoint=True))

    def test_partial_products(self):
        """Hardware partial products match the NumPy model."""
        multiplicand = pyrtl.Input(bitwidth=16, name="multiplicand")
        multiplier = pyrtl.Input(bitwidth=16, name="multiplier")
        rows = pyrtl_multiplier.make_partial_products(multiplicand, multiplier)
        self.assertEqual(len(rows), 16)
        for i, row in enumerate(rows):
            output = pyrtl.Output(bitwidth=32, name=f"pp{i}")
            output <<= row

        sim = pyrtl.Simulation()
        for a, b in [(0xBEEF, 0x8005), (65535, 65535), (0, 65535), (1234, 5678)]:
            sim.step({"multiplicand": a, "multiplier": b})
            actual = [sim.inspect(f"pp{i}") for i in range(16)]
            np.testing.assert_array_equal(
                actual, numpy_multiplier.partial_products(a, b)
            )
            self.assertEqual(sum(actual), a * b)

    def test_compressor_invariant(self):
        """``sum + carry`` equals the sum of four random 32-bit inputs, mod 2**32."""
        inputs = [pyrtl.Input(bitwidth=32, name=f"in{i}") for i in range(1, 5)]
        sum_carry = pyrtl_multiplier.make_compressor(*inputs)
        sum_output = pyrtl.Output(bitwidth=32, name="sum")
        sum_output <<= sum_carry.sum
        carry_output = pyrtl.Output(bitwidth=32, name="carry")
        carry_output <<= sum_carry.carry

        sim = pyrtl.Simulation()
        for _ in range(300):
            values = [self.random_uint32() for _ in range(4)]
            sim.step({f"in{i}": value for i, value in enumerate(values, start=1)})
            actual_sum = sim.inspect("sum")
            actual_carry = sim.inspect("carry")

            self.assertEqual(
                (actual_sum + actual_carry) & MASK_32, sum(values) & MASK_32
            )
            expected_sum, expected_carry = numpy_multiplier.compress_4_to_2(*values)
            self.assertEqual(actual_sum, int(expected_sum))
            self.assertEqual(actual_carry, int(expected_carry))

    def test_compression_levels(self):
        """Three compression levels reduce 16 values to 2, preserving their total."""
        inputs = [pyrtl.Input(bitwidth=32, name=f"in{i}") for i in range(16)]
        values = inputs
        for expected_size in (8, 4, 2):
            values = pyrtl_multiplier.make_compression_level(values)
            self.assertEqual(len(values), expected_size)
        for i, value in enumerate(values):
            output = pyrtl.Output(bitwidth=32, name=f"out{i}")
            output <<= value

        sim = pyrtl.Simulation()
        for _ in range(50):
            provided = {f"in{i}": self.random_uint32() for i in range(16)}
            sim.step(provided)
            self.assertEqual(
                (sim.inspect("out0") + sim.inspect("out1")) & MASK_32,
                sum(provided.values()) & MASK_32,
            )

    def test_cla_block_exhaustive(self):
        """Check every 4-bit ``a``, ``b`` and ``carry_in``."""
        a = pyrtl.Input(bitwidth=4, name="a")
        b = pyrtl.Input(bitwidth=4, name="b")
        carry_in = pyrtl.Input(bitwidth=1, name="carry_in")
        block = pyrtl_multiplier.make_cla_block(a, b, carry_in)
        for field in ("sum", "carry_out", "group_propagate", "group_generate"):
            wire = getattr(block, field)
            output = pyrtl.Output(bitwidth=wire.bitwidth, name=f"block_{field}")
            output <<= wire

        sim = pyrtl.Simulation()
        for a_value in range(16):
            for b_value in range(16):
                for carry_value in range(2):
                    sim.step({"a": a_value, "b": b_value, "carry_in": carry_value})
                    total = a_value + b_value + carry_value
                    self.assertEqual(sim.inspect("block_sum"), total & 0xF)
                    self.assertEqual(sim.inspect("block_carry_out"), total >> 4)
                    self.assertEqual(
                        sim.inspect("block_group_propagate"),
                        int(a_value ^ b_value == 0xF),
                    )
                    self.assertEqual(
                        sim.inspect("block_group_generate"),
                        (a_value + b_value) >> 4,
                    )

    def make_adder_io(self, two_level: bool) -> None:
        a = pyrtl.Input(bitwidth=32, name="a")
        b = pyrtl.Input(bitwidth=32, name="b")
        carry_in = pyrtl.Input(bitwidth=1, name="carry_in")
        total, carry_out = pyrtl_multiplier.make_block_adder(
            a, b, carry_in, two_level=two_level
        )
        total_output = pyrtl.Output(bitwidth=32, name="total")
        total_output <<= total
        carry_output = pyrtl.Output(bitwidth=1, name="carry_out")
        carry_output <<= carry_out

    def check_adder(self):
        sim = pyrtl.Simulation()
        cases = [(MASK_32, 0, 1), (MASK_32, MASK_32, 1), (0, 0, 0), (0x0FFF_FFFF, 1, 0)]
        cases += [
            (self.random_uint32(), self.random_uint32(), carry_in)
            for carry_in in (0, 1)
            for _ in range(150)
        ]
        for a, b, carry_in in cases:
            sim.step({"a": a, "b": b, "carry_in": carry_in})
            total = a + b + carry_in
            self.assertEqual(sim.inspect("total"), total & MASK_32)
            self.assertEqual(sim.inspect("carry_out"), int(total > MASK_32))

    def test_carry_lookahead_adder(self):
        self.make_adder_io(two_level=True)
        self.check_adder()

    def test_ripple_block_adder(self):
        self.make_adder_io(two_level=False)
        self.check_adder()

    def test_carry_lookahead_adder_constant_carry_in(self):
        """``carry_in`` defaults to a constant zero."""
        a = pyrtl.Input(bitwidth=32, name="a")
        b = pyrtl.Input(bitwidth=32, name="b")
        total, carry_out = pyrtl_multiplier.make_carry_lookahead_adder(a, b)
        self.assertEqual(total.bitwidth, 32)
        self.assertEqual(carry_out.bitwidth, 1)
        total_output = pyrtl.Output(bitwidth=32, name="total")
        total_output <<= total

        sim = pyrtl.Simulation()
        sim.step({"a": 0xFFFF_0000, "b": 0x0001_FFFF})
        self.assertEqual(sim.inspect("total"), (0xFFFF_0000 + 0x0001_FFFF) & MASK_32)


class TestMultiplierPipeline(unittest.TestCase):
    def setUp(self):
        pyrtl.reset_working_block()
        self.pipeline = pyrtl_multiplier.make_multiplier_io(name="mul")
        self.sim = pyrtl.Simulation()

    def step(self, multiplicand: int = 0, multiplier: int = 0, reset: bool = False):
        """Run one cycle, and return the ``result`` visible during that cycle."""
        self.sim.step(
            {"multiplicand": multiplicand, "multiplier": multiplier, "reset": reset}
        )
        return self.sim.inspect("result")

    def test_rank_names(self):
        self.assertEqual(
            [rank.name for rank in self.pipeline.ranks],
            [
                "mul.operands",
                "mul.partial_products",
                "mul.level1",
                "mul.level2",
                "mul.level3",
                "mul.result",
            ],
        )

    def test_latency(self):
        """The product appears exactly six cycles after the operands are sampled."""
        observed = [self.step(1234, 5678)]
        for _ in range(PIPELINE_LATENCY):
            observed.append(self.step())
        self.assertEqual(observed, [0, 0, 0, 0, 0, 0, 7006652])

    def test_scenarios(self):
        for a, b, expected in [
            (0, 0, 0),
            (1, 1, 1),
            (255, 255, 65025),
            (65535, 1, 65535),
            (65535, 65535, 4294836225),
            (1234, 5678, 7006652),
        ]:
            self.step(a, b)
            for _ in range(PIPELINE_LATENCY - 1):
                self.step()
            self.assertEqual(self.step(), expected)

    def test_throughput(self):
        """Operand pairs issued on consecutive cycles produce consecutive products."""
        rng = np.random.default_rng(seed=3)
        pairs = [(3, 5), (65535, 65535), (1, 65535)]
        pairs += [
            tuple(int(x) for x in rng.integers(0, 2**16, size=2)) for _ in range(40)
        ]

        observed = []
        for cycle in range(len(pairs) + PIPELINE_LATENCY):
            if cycle < len(pairs):
                observed.append(self.step(*pairs[cycle]))
            else:
                observed.append(self.step())

        self.assertEqual(observed[:PIPELINE_LATENCY], [0] * PIPELINE_LATENCY)
        self.assertEqual(observed[PIPELINE_LATENCY:], [a * b for a, b in pairs])

    def test_matches_numpy_pipeline(self):
        """The hardware and the NumPy model agree on every cycle, including resets."""
        model = numpy_multiplier.NumPyMultiplierPipeline()
        rng = np.random.default_rng(seed=4)
        for cycle in range(60):
            a, b = (int(x) for x in rng.integers(0, 2**16, size=2))
            reset = cycle % 17 == 16
            self.assertEqual(self.step(a, b, reset), model.step(a, b, reset))

    def test_reset(self):
        """Reset zeroes every rank, and the next six results."""
        for a, b in [(100, 200), (300, 400), (500, 600), (700, 800)]:
            self.step(a, b)
        self.step(65535, 65535, reset=True)

        # Registers show their reset values in the cycle after reset.
        observed = [self.step(9, 9)]
        for rank in self.pipeline.ranks:
            self.assertEqual(self.sim.inspect(rank.name), 0, rank.name)

        for _ in range(PIPELINE_LATENCY - 1):
            observed.append(self.step())
        self.assertEqual(observed, [0] * PIPELINE_LATENCY)
        # The operands sampled in the cycle after reset emerge next.
        self.assertEqual(self.step(), 81)

    def test_reset_priority(self):
        """Holding reset keeps the result at zero, regardless of the operands."""
        observed = [self.step(65535, 65535, reset=True) for _ in range(10)]
        self.assertEqual(observed, [0] * 10)

    def test_out_of_range_operand(self):
        with self.assertRaises(pyrtl.PyrtlError):
            self.step(65536, 1)


if __name__ == "__main__":
    unittest.main()
