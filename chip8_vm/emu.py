"""
CHIP-8 Virtual Machine — Processor and System

Cpu integrates:
  - register file + call stack (cpu/regs.py)
  - opcode decoder (cpu/decoder.py)
  - ALU helpers (cpu/alu.py)
and operates on collaborators handed to run()/step():
  - Memory (mem/memory.py)
  - DelayTimer / SoundTimer (periph/timer.py)
  - Display (periph/display.py)
  - Keyboard (periph/keyboard.py)

Execution model, one instruction per step:
  1. Breakpoint check at PC
  2. Fetch the big-endian word at PC
  3. PC += 2 (before execute, so CALL pushes the return address)
  4. Decode → Instruction
  5. Dispatch on mnemonic → handler mutates registers / memory /
     framebuffer or talks to timers and keypad

Skips add a further 2 to PC, giving 4 in total relative to fetch.

Termination:
  - HALT (0000 / F000) raises Halt; run() catches it and returns True
  - every other CpuError propagates out of run() unchanged
  - MemoryBoundsError from Memory is re-raised as MemoryAccessError
"""

import logging
import random
from collections import deque
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional, Set

from .config import (
    ADDRESS_MAX, FLAG_REGISTER, HEX_SPRITE_BASE, HEX_SPRITE_HEIGHT,
    INSTRUCTION_SIZE, PROGRAM_START, TRACE, TRACE_DEPTH,
)
from .cpu import alu
from .cpu.decoder import Instruction, decode
from .cpu.regs import Registers
from .errors import (
    AddressOverflow, Breakpoint, CpuError, Halt, IllegalInstruction,
    MemoryAccessError, MemoryBoundsError,
)
from .firmware import load_firmware
from .loader import load_hex
from .mem.memory import Memory
from .periph.display import Display
from .periph.keyboard import Keyboard
from .periph.timer import DelayTimer, SoundTimer, log_tone
from .programs import get_program

logger = logging.getLogger(__name__)


class Bus(NamedTuple):
    """The collaborators one run() call operates on."""
    memory: Memory
    delay: DelayTimer
    display: Display
    keyboard: Keyboard
    sound: SoundTimer


def addr_add(base: int, offset: int) -> int:
    """Checked address arithmetic. No wraparound past ADDRESS_MAX."""
    result = base + offset
    if result > ADDRESS_MAX:
        raise AddressOverflow(base, offset)
    return result


class Cpu:
    """CHIP-8 processor.

    Usage:
        cpu = Cpu()
        cpu.run(mem, delay, display, keyboard, sound)
        print(cpu.dump())
    """

    def __init__(self, seed: Optional[int] = None):
        self.regs = Registers()
        self._rng = random.Random(seed)

        # Breakpoints: set of PC addresses that raise Breakpoint
        self._breakpoints: Set[int] = set()

        # Trace output
        self._trace = TRACE
        self._trace_output = deque(maxlen=TRACE_DEPTH)

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Register access
    # ══════════════════════════════════════════════

    def get_register(self, idx: int) -> int:
        return self.regs.V[idx]

    def set_register(self, idx: int, value: int):
        self.regs.V[idx] = value & 0xFF

    @property
    def pc(self) -> int:
        return self.regs.PC

    @property
    def index(self) -> int:
        return self.regs.I

    @property
    def sp(self) -> int:
        return self.regs.SP

    def dump(self) -> str:
        return self.regs.dump()

    def reset(self):
        """Power-on registers; clears trace and breakpoints."""
        self.regs.reset()
        self._breakpoints.clear()
        self._trace_output.clear()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def run(self, memory, delay, display, keyboard, sound,
            max_steps: Optional[int] = None) -> bool:
        """Fetch/decode/execute until HALT.

        Returns True on HALT, False when max_steps instructions ran
        without halting. Any other CpuError propagates.
        """
        bus = Bus(memory, delay, display, keyboard, sound)
        steps = 0
        while max_steps is None or steps < max_steps:
            try:
                self._step(bus)
            except Halt:
                return True
            steps += 1
        return False

    def step(self, memory, delay, display, keyboard, sound) -> Instruction:
        """Execute exactly one instruction. HALT surfaces as Halt."""
        return self._step(Bus(memory, delay, display, keyboard, sound))

    def _step(self, bus: Bus) -> Instruction:
        pc = self.regs.PC
        if pc in self._breakpoints:
            raise Breakpoint(pc)

        try:
            opcode = self._fetch(bus.memory)
            instr = decode(opcode)
            if self._trace:
                line = f"${pc:03X}: {opcode:04X}  {str(instr):20s} {self.regs.display()}"
                self._trace_output.append(line)
                logger.debug(line)
            self._dispatch[instr.mnem](instr, bus)
        except MemoryBoundsError as e:
            raise MemoryAccessError(e) from e

        self.regs.steps += 1
        return instr

    def _fetch(self, memory) -> int:
        opcode = memory.read16(self.regs.PC)
        self.regs.PC = addr_add(self.regs.PC, INSTRUCTION_SIZE)
        return opcode

    def _skip(self):
        self.regs.PC = addr_add(self.regs.PC, INSTRUCTION_SIZE)

    def _set_flag(self, value: int):
        self.regs.V[FLAG_REGISTER] = value

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(instr, bus)

    def _build_dispatch(self) -> dict:
        """Build mnemonic → handler dispatch table."""
        return {
            # ── Control ──
            'HALT':    self._op_halt,
            'SYS':     self._op_nop,
            'ILLEGAL': self._op_illegal,

            # ── Flow ──
            'JP':      self._op_jp,
            'JPV0':    self._op_jpv0,
            'CALL':    self._op_call,
            'RET':     self._op_ret,

            # ── Conditional skips ──
            'SE':      self._op_se,
            'SNE':     self._op_sne,
            'SEXY':    self._op_sexy,
            'SNEXY':   self._op_snexy,
            'SKP':     self._op_skp,
            'SKNP':    self._op_sknp,

            # ── Register load / arithmetic ──
            'LD':      self._op_ld,
            'ADD':     self._op_add,
            'MOV':     self._op_mov,
            'OR':      self._op_or,
            'AND':     self._op_and,
            'XOR':     self._op_xor,
            'ADDXY':   self._op_addxy,
            'SUB':     self._op_sub,
            'SUBN':    self._op_subn,
            'SHR':     self._op_shr,
            'SHL':     self._op_shl,
            'RND':     self._op_rnd,

            # ── Index register / memory blocks ──
            'LDI':     self._op_ldi,
            'ADDI':    self._op_addi,
            'LDSPR':   self._op_ldspr,
            'BCD':     self._op_bcd,
            'STREGS':  self._op_stregs,
            'LDREGS':  self._op_ldregs,

            # ── Timers / keypad ──
            'LDDT':    self._op_lddt,
            'STDT':    self._op_stdt,
            'STST':    self._op_stst,
            'LDK':     self._op_ldk,

            # ── Display ──
            'CLS':     self._op_cls,
            'DRW':     self._op_drw,
        }

    # ── Control ──

    def _op_halt(self, ins, bus):
        raise Halt()

    def _op_nop(self, ins, bus):
        pass

    def _op_illegal(self, ins, bus):
        raise IllegalInstruction(ins.opcode)

    # ── Flow ──

    def _op_jp(self, ins, bus):
        self.regs.PC = ins.addr

    def _op_jpv0(self, ins, bus):
        self.regs.PC = addr_add(self.regs.V[0], ins.addr)

    def _op_call(self, ins, bus):
        """Push the already-advanced PC, then jump."""
        self.regs.push(self.regs.PC)
        self.regs.PC = ins.addr

    def _op_ret(self, ins, bus):
        self.regs.PC = self.regs.pop()

    # ── Conditional skips ──

    def _op_se(self, ins, bus):
        if self.regs.V[ins.x] == ins.imm:
            self._skip()

    def _op_sne(self, ins, bus):
        if self.regs.V[ins.x] != ins.imm:
            self._skip()

    def _op_sexy(self, ins, bus):
        if self.regs.V[ins.x] == self.regs.V[ins.y]:
            self._skip()

    def _op_snexy(self, ins, bus):
        if self.regs.V[ins.x] != self.regs.V[ins.y]:
            self._skip()

    def _op_skp(self, ins, bus):
        """Skip if VX is the key currently held. No key never matches."""
        if bus.keyboard.get_pressed() == self.regs.V[ins.x]:
            self._skip()

    def _op_sknp(self, ins, bus):
        if bus.keyboard.get_pressed() != self.regs.V[ins.x]:
            self._skip()

    # ── Register load / arithmetic ──

    def _op_ld(self, ins, bus):
        self.regs.V[ins.x] = ins.imm

    def _op_add(self, ins, bus):
        """VX += NN. Wraps, VF untouched."""
        self.regs.V[ins.x] = alu.add_imm8(self.regs.V[ins.x], ins.imm)

    def _op_mov(self, ins, bus):
        self.regs.V[ins.x] = self.regs.V[ins.y]

    def _op_or(self, ins, bus):
        self.regs.V[ins.x] = alu.or8(self.regs.V[ins.x], self.regs.V[ins.y])

    def _op_and(self, ins, bus):
        self.regs.V[ins.x] = alu.and8(self.regs.V[ins.x], self.regs.V[ins.y])

    def _op_xor(self, ins, bus):
        self.regs.V[ins.x] = alu.xor8(self.regs.V[ins.x], self.regs.V[ins.y])

    # The flag is written after the result, so VF as destination ends up
    # holding the flag.

    def _op_addxy(self, ins, bus):
        result, flag = alu.add8(self.regs.V[ins.x], self.regs.V[ins.y])
        self.regs.V[ins.x] = result
        self._set_flag(flag)

    def _op_sub(self, ins, bus):
        result, flag = alu.sub8(self.regs.V[ins.x], self.regs.V[ins.y])
        self.regs.V[ins.x] = result
        self._set_flag(flag)

    def _op_subn(self, ins, bus):
        """VX = VY - VX."""
        result, flag = alu.sub8(self.regs.V[ins.y], self.regs.V[ins.x])
        self.regs.V[ins.x] = result
        self._set_flag(flag)

    def _op_shr(self, ins, bus):
        result, flag = alu.shr1(self.regs.V[ins.x])
        self.regs.V[ins.x] = result
        self._set_flag(flag)

    def _op_shl(self, ins, bus):
        result, flag = alu.shl1(self.regs.V[ins.x])
        self.regs.V[ins.x] = result
        self._set_flag(flag)

    def _op_rnd(self, ins, bus):
        self.regs.V[ins.x] = self._rng.randint(0, 0xFF) & ins.imm

    # ── Index register / memory blocks ──

    def _op_ldi(self, ins, bus):
        self.regs.I = ins.addr

    def _op_addi(self, ins, bus):
        """I += VX, truncated to the address width."""
        self.regs.I = (self.regs.I + self.regs.V[ins.x]) & ADDRESS_MAX

    def _op_ldspr(self, ins, bus):
        self.regs.I = HEX_SPRITE_BASE + self.regs.V[ins.x] * HEX_SPRITE_HEIGHT

    def _block_base(self, count: int) -> int:
        """I, after checking I + count - 1 stays inside the address width.

        Memory bounds are checked by the block access itself, before any
        byte is stored.
        """
        addr_add(self.regs.I, count - 1)
        return self.regs.I

    def _op_bcd(self, ins, bus):
        """[I], [I+1], [I+2] = hundreds, tens, units of VX."""
        base = self._block_base(3)
        bus.memory.write_block(base, bytes(alu.bcd3(self.regs.V[ins.x])))

    def _op_stregs(self, ins, bus):
        """[I + n] = Vn for n = 0..X. I itself is not changed."""
        base = self._block_base(ins.x + 1)
        bus.memory.write_block(base, bytes(self.regs.V[:ins.x + 1]))

    def _op_ldregs(self, ins, bus):
        base = self._block_base(ins.x + 1)
        self.regs.V[:ins.x + 1] = bus.memory.read_block(base, ins.x + 1)

    # ── Timers / keypad ──

    def _op_lddt(self, ins, bus):
        self.regs.V[ins.x] = bus.delay.get()

    def _op_stdt(self, ins, bus):
        bus.delay.set(self.regs.V[ins.x])

    def _op_stst(self, ins, bus):
        bus.sound.set(self.regs.V[ins.x])

    def _op_ldk(self, ins, bus):
        """Blocks the CPU until the keypad delivers a key."""
        self.regs.V[ins.x] = bus.keyboard.await_press() & 0xFF

    # ── Display ──

    def _op_cls(self, ins, bus):
        bus.display.clear()

    def _op_drw(self, ins, bus):
        collision = bus.display.draw(self.regs.V[ins.x], self.regs.V[ins.y],
                                     ins.imm, self.regs.I, bus.memory)
        self._set_flag(1 if collision else 0)

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Execution raises Breakpoint when PC reaches addr."""
        self._breakpoints.add(addr)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Enable instruction trace logging."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()


class StopReason(Enum):
    HALT = 'HALT'
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'


class Chip8System:
    """A complete machine: CPU, memory with firmware, display, keypad
    and both timers.

    Usage:
        vm = Chip8System()
        vm.load_program('hex-to-decimal')
        reason = vm.run(max_steps=10_000)
        print(vm.cpu.dump())
    """

    def __init__(self, renderer=None, keyboard: Optional[Keyboard] = None,
                 tone=log_tone, seed: Optional[int] = None):
        self.cpu = Cpu(seed)
        self.mem = Memory()
        self.display = Display(renderer)
        self.keyboard = keyboard if keyboard is not None else Keyboard()
        self.delay = DelayTimer()
        self.sound = SoundTimer(tone=tone)
        load_firmware(self.mem)

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_hex(self, text: str) -> int:
        """Load a hex listing given as text. Returns the bytes loaded."""
        return load_hex(text, self.mem)

    def load_hex_file(self, path) -> int:
        return load_hex(Path(path).read_text(encoding='utf-8'), self.mem)

    def load_binary(self, path_or_data, base_addr: int = PROGRAM_START) -> int:
        if isinstance(path_or_data, (str, Path)):
            data = Path(path_or_data).read_bytes()
        else:
            data = bytes(path_or_data)
        self.mem.load_binary(data, base_addr)
        return len(data)

    def load_program(self, name: str) -> int:
        """Load one of the bundled programs (see programs.PROGRAMS)."""
        return load_hex(get_program(name), self.mem)

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until HALT, a breakpoint, or max_steps instructions.

        Other CpuErrors propagate to the caller.
        """
        try:
            halted = self.cpu.run(self.mem, self.delay, self.display,
                                  self.keyboard, self.sound, max_steps=max_steps)
        except Breakpoint as bp:
            logger.info(f"Breakpoint at ${bp.addr:03X}")
            return StopReason.BREAK
        return StopReason.HALT if halted else StopReason.TIMEOUT

    def step(self) -> Instruction:
        """Single instruction. Halt and breakpoints surface as exceptions."""
        return self.cpu.step(self.mem, self.delay, self.display,
                             self.keyboard, self.sound)

    def start_timers(self):
        self.delay.start()
        self.sound.start()

    def shutdown(self):
        self.delay.stop()
        self.sound.stop()
        close = getattr(self.keyboard, 'close', None)
        if close is not None:
            close()

    def __enter__(self):
        self.start_timers()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    def reset(self):
        """CPU and timers back to power-on; memory keeps its contents."""
        self.cpu.reset()
        self.delay.reset()
        self.sound.reset()


__all__ = ['Cpu', 'Chip8System', 'StopReason', 'Bus', 'addr_add', 'CpuError']
