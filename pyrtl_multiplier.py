import argparse
import sys

import pyrtl

from pyrtlmul.harness import (
    Tally,
    make_test_vectors,
    simulate_baseline,
    simulate_pipeline,
)
from pyrtlmul.pyrtl_baseline import make_baseline_io
from pyrtlmul.pyrtl_multiplier import make_multiplier_io


def _render_trace(sim: pyrtl.Simulation, prefixes: list[str]) -> None:
    """Display traces that start with a prefix in ``prefixes``, as unsigned integers."""
    trace_list = []
    # Iterate over ``prefixes`` first so the display order matches the prefix order.
    for prefix in prefixes:
        for trace_name in sorted(sim.tracer.trace.keys()):
            if trace_name.startswith(prefix) and trace_name not in trace_list:
                trace_list.append(trace_name)

    sim.tracer.render_trace(trace_list=trace_list, repr_func=int)


def main() -> None:
    """Simulate the pipelined multiplier with PyRTL, and verify every product.

    Operand pairs are issued one per cycle. Each product is compared against ordinary
    integer multiplication. With ``--baseline``, the combinational baseline multiplier
    is simulated instead.
    """
    parser = argparse.ArgumentParser(prog="pyrtl_multiplier.py")
    parser.add_argument("--num_vectors", type=int, default=100)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--baseline", action="store_true", default=False)
    parser.add_argument("--trace", action="store_true", default=False)
    parser.add_argument("--verilog", action="store_true", default=False)
    args = parser.parse_args()

    vectors = make_test_vectors(args.num_vectors, seed=args.seed)

    if args.baseline:
        make_baseline_io()
        tally = Tally("baseline")
        sim = pyrtl.Simulation()
        simulate_baseline(sim, vectors, tally)
        trace_prefixes = ["multiplicand", "multiplier", "product"]
        design_name = "pyrtl_baseline"
        display_cmd = '$display("time %3t, product %d", $time, product);'
    else:
        make_multiplier_io(name="mul")
        tally = Tally("pipeline")
        sim = pyrtl.Simulation()
        simulate_pipeline(sim, vectors, tally)
        trace_prefixes = [
            "multiplicand",
            "multiplier",
            "reset",
            "mul.operands",
            "mul.result",
            "result",
        ]
        design_name = "pyrtl_multiplier"
        display_cmd = '$display("time %3t, result %d", $time, result);'

    if args.trace:
        _render_trace(sim=sim, prefixes=trace_prefixes)
        print()

    tally.display()

    if args.verilog:
        with open(f"{design_name}.v", "w") as output:
            pyrtl.output_to_verilog(output)
            pyrtl.output_verilog_testbench(
                output,
                simulation_trace=sim.tracer,
                vcd=f"{design_name}.vcd",
                cmd=display_cmd,
            )
        print(f"Wrote {design_name}.v")

    if not tally.all_passed:
        sys.exit(1)


if __name__ == "__main__":
    main()
