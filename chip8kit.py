#!/usr/bin/env python3
"""
chip8kit — CHIP-8 Virtual Machine Toolkit
==========================================

One CLI for everything:
    chip8kit run     — Run a program (hex listing or raw image) or a bundled demo
    chip8kit disasm  — Disassemble a program
    chip8kit demos   — List the bundled demo programs

Usage:
    python chip8kit.py <command> [options]
    python chip8kit.py --help
    python chip8kit.py <command> --help

Examples:
    python chip8kit.py run --demo hex-to-decimal --render
    python chip8kit.py run game.ch8 --max-steps 100000 --keypad-port /dev/ttyUSB0
    python chip8kit.py run prog.hex --trace -v --log-file run.log
    python chip8kit.py disasm game.ch8 --start 0x200 --count 32
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from chip8_vm import __version__
from chip8_vm.config import KEYPAD_BAUD, PROGRAM_START
from chip8_vm.cpu.decoder import disassemble, format_line
from chip8_vm.emu import Chip8System
from chip8_vm.errors import CpuError, LoaderError, MemoryBoundsError
from chip8_vm.loader import load_file
from chip8_vm.mem.memory import Memory
from chip8_vm.periph.display import TerminalRenderer
from chip8_vm.periph.keyboard import SerialKeypad
from chip8_vm.programs import PROGRAMS

logger = logging.getLogger("chip8kit")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8kit",
        description="CHIP-8 Virtual Machine — run, disassemble, inspect",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Run a program file or a bundled demo until HALT
  disasm     Disassemble a program file
  demos      List bundled demo programs
""",
    )
    parser.add_argument("--version", action="version", version=f"chip8kit {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (-v for debug)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a program until HALT")
    src = p_run.add_mutually_exclusive_group(required=True)
    src.add_argument("input", nargs="?", help="Program file (.hex/.txt listing or raw image)")
    src.add_argument("--demo", choices=sorted(PROGRAMS), help="Run a bundled demo program")
    p_run.add_argument("--max-steps", type=int, default=None,
                       help="Stop after this many instructions (default: run until HALT)")
    p_run.add_argument("--trace", action="store_true",
                       help="Print an instruction trace after the run")
    p_run.add_argument("--render", action="store_true",
                       help="Draw the framebuffer to stdout on every refresh")
    p_run.add_argument("--keypad-port", help="Serial port of a hardware hex keypad")
    p_run.add_argument("--baud", type=int, default=KEYPAD_BAUD,
                       help=f"Keypad baud rate (default: {KEYPAD_BAUD})")
    p_run.add_argument("--dump-mem", action="store_true",
                       help="Print non-zero memory after the run")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a program file")
    p_dis.add_argument("input", help="Program file (.hex/.txt listing or raw image)")
    p_dis.add_argument("--start", type=_parse_hex, default=PROGRAM_START,
                       help="First address (hex, default: 0x200)")
    p_dis.add_argument("--count", type=int, default=None,
                       help="Number of instructions (default: the loaded size)")

    # ── demos ────────────────────────────────────────────────────────────
    sub.add_parser("demos", help="List bundled demo programs")
    return parser


def setup_logging(verbose: int = 0, quiet: bool = False, log_file=None):
    """Console at INFO (-v: DEBUG, -q: ERROR) plus an optional debug file."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handlers = []
    console = RichHandler(
        console=Console(stderr=True),
        level=level,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handlers.append(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        handlers=handlers,
        force=True
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.verbose, args.quiet, args.log_file)

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except (CpuError, LoaderError, MemoryBoundsError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _parse_hex(s):
    """Parse hex string with optional 0x or $ prefix."""
    s = s.strip()
    if s.startswith("0x") or s.startswith("0X"):
        return int(s, 16)
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 16)


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args):
    renderer = TerminalRenderer(sys.stdout) if args.render else None
    keyboard = None
    if args.keypad_port:
        keyboard = SerialKeypad(args.keypad_port, baud=args.baud)

    vm = Chip8System(renderer=renderer, keyboard=keyboard)
    vm.cpu.enable_trace(args.trace)
    with vm:
        if args.demo:
            loaded = vm.load_program(args.demo)
            logger.info(f"Loaded demo '{args.demo}' ({loaded} bytes)")
        else:
            loaded = load_file(args.input, vm.mem)
            logger.info(f"Loaded {args.input} ({loaded} bytes)")
        try:
            reason = vm.run(max_steps=args.max_steps)
        finally:
            if args.trace:
                print(vm.cpu.get_trace())

    logger.info(f"Stopped: {reason.value} after {vm.cpu.regs.steps} instructions")
    print(vm.cpu.dump())
    if args.dump_mem:
        print(vm.mem.dump())
    return 0


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args):
    mem = Memory()
    loaded = load_file(args.input, mem, base_addr=args.start)
    count = args.count if args.count is not None else (loaded + 1) // 2
    for addr, word, instr in disassemble(mem, args.start, count):
        print(format_line(addr, word, instr))
    return 0


# ── demos ────────────────────────────────────────────────────────────────
def cmd_demos(args):
    width = max(len(name) for name in PROGRAMS)
    for name, (description, _) in sorted(PROGRAMS.items()):
        print(f"  {name:<{width}}  {description}")
    return 0


COMMANDS = {
    "run": cmd_run,
    "disasm": cmd_disasm,
    "demos": cmd_demos,
}


if __name__ == "__main__":
    sys.exit(main())
