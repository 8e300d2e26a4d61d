"""
cpu8 — command-line front end

Usage:
    cpu8 <input.asm> [--listing] [--disasm] [--run] [--start 0x00]
                     [--break ADDR] [--watch ADDR] [--max-steps N]
                     [--trace N] [--verbose] [--log-file PATH]

With no action flag the image is printed as hex bytes.

Examples:
    cpu8 countdown.asm --listing
    cpu8 countdown.asm --run --trace 20
    cpu8 countdown.asm --run --watch 0x80
"""

import argparse
import logging
import sys

from . import __version__
from .assembler import Assembler, AssemblyError, parse_number
from .config import DEFAULT_MAX_STEPS, TRACE_TAIL
from .log_setup import setup_logging
from .session import DebugSession


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...) or decimal."""
    n = parse_number(value.strip())
    if n is None:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpu8",
        description="cpu8 assembler, disassembler and debugger",
    )
    parser.add_argument("input", help="Input assembly source file")
    parser.add_argument("--listing", action="store_true",
                        help="Print the assembly listing")
    parser.add_argument("--disasm", action="store_true",
                        help="Disassemble the assembled image")
    parser.add_argument("--run", action="store_true",
                        help="Run the program until it stops")
    parser.add_argument("--start", type=parse_int_arg, default=0,
                        help="Origin and load address (default 0)")
    parser.add_argument("--break", dest="breakpoint", default=None,
                        help="Breakpoint address (decimal or 0x hex)")
    parser.add_argument("--watch", default=None,
                        help="Write watchpoint address (decimal or 0x hex)")
    parser.add_argument("--max-steps", type=parse_int_arg, default=DEFAULT_MAX_STEPS,
                        help=f"Step budget for --run (default {DEFAULT_MAX_STEPS})")
    parser.add_argument("--trace", type=parse_int_arg, default=0, nargs="?",
                        const=TRACE_TAIL,
                        help=f"Print the last N trace lines after --run (default {TRACE_TAIL})")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--log-file", default=None,
                        help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"cpu8 {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging(console_level=level, log_file=args.log_file)

    try:
        with open(args.input, encoding="utf-8") as f:
            source = f.read()
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    asm = Assembler()
    try:
        image = asm.assemble(source, args.start)
    except AssemblyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.listing:
        print(asm.get_listing())

    session = DebugSession()
    session.load(image, args.start)

    if args.disasm:
        for inst in session.disassembly():
            print(inst.format())

    if not (args.listing or args.disasm or args.run):
        print(' '.join(f'{b:02X}' for b in image))

    if args.run:
        if not session.set_breakpoint(args.breakpoint):
            print(f"error: bad breakpoint {args.breakpoint!r}", file=sys.stderr)
            return 1
        if not session.set_watchpoint(args.watch):
            print(f"error: bad watchpoint {args.watch!r}", file=sys.stderr)
            return 1

        reason = session.run_until_stop(args.max_steps)
        for line in session.machine.output:
            print(line)
        if args.trace:
            print("--- trace ---")
            for line in session.trace_tail(args.trace):
                print(line)
        print(f"--- stopped: {reason.value} ---")
        print(session.machine.regs.display())

    return 0


if __name__ == "__main__":
    sys.exit(main())
