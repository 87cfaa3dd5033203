"""
CHIP-8 Virtual Machine
======================
A software CHIP-8 machine: 4K memory, sixteen 8-bit registers, a 16-deep
call stack, a 64x32 monochrome XOR framebuffer, a hex keypad and the
delay / sound timers.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────────────┐
    │ Loader   │───>│  Memory  │<──>│   Cpu    │<──>│ Display / Keypad  │
    │ (.hex)   │    │  (4K)    │    │ (emu.py) │    │ Delay / Sound     │
    └──────────┘    └──────────┘    └──────────┘    └───────────────────┘

    - loader.py:         textual hex listings → memory
    - firmware.py:       boot vector + hex glyphs at $100
    - cpu/decoder.py:    16-bit word → Instruction (total, never fails)
    - cpu/regs.py:       V0-VF, I, PC, call stack
    - emu.py:            fetch / decode / dispatch, Chip8System
    - periph/:           framebuffer, timers, keypad
"""

__version__ = "0.1.0"

from .errors import (
    CpuError, StackOverflow, StackUnderflow, AddressOverflow,
    IllegalInstruction, MemoryAccessError, MemoryBoundsError, Halt,
    Breakpoint, LoaderError,
)
from .cpu.decoder import Instruction, decode, disassemble
from .mem.memory import Memory
from .periph.display import Display, TerminalRenderer
from .periph.keyboard import Keyboard, SerialKeypad
from .periph.timer import DelayTimer, SoundTimer
from .loader import load_hex, load_file
from .emu import Cpu, Chip8System, StopReason


def run_program(name: str, max_steps: int = 100_000) -> Chip8System:
    """Load a bundled program into a fresh machine and run it.

    Timers are driven by their threads for the duration of the run.
    Returns the machine so callers can inspect registers and display.
    """
    vm = Chip8System()
    vm.load_program(name)
    with vm:
        vm.run(max_steps=max_steps)
    return vm
