"""
CHIP-8 Virtual Machine — CPU Register Set + Call Stack

Register model:
  V0–VE  8-bit general purpose
  VF     8-bit flag register (carry / no-borrow / shifted-out bit /
         collision). Overwritten by ADD, SUB, SUBN, SHR, SHL and DRW.
  I      Index register, an address into the 4K space
  PC     Program counter, advanced 2 bytes per fetch
  SP     Stack pointer, number of used return-address slots

The call stack is a fixed array of STACK_DEPTH return addresses. A push
with every slot used raises StackOverflow, a pop with none used raises
StackUnderflow. Neither wraps.
"""

from ..config import REGISTER_COUNT, STACK_DEPTH, FLAG_REGISTER, RESET_PC
from ..errors import StackOverflow, StackUnderflow


class Registers:
    """CHIP-8 register file."""

    __slots__ = ('V', 'I', 'PC', 'SP', 'stack', 'steps')

    def __init__(self):
        self.V = bytearray(REGISTER_COUNT)  # V0–VF
        self.I: int = 0                     # Index register
        self.PC: int = RESET_PC             # Program counter
        self.SP: int = 0                    # Used stack slots
        self.stack = [0] * STACK_DEPTH      # Return addresses
        self.steps: int = 0                 # Instructions executed

    # --- Flag register ---

    @property
    def VF(self) -> int:
        return self.V[FLAG_REGISTER]

    @VF.setter
    def VF(self, value: int):
        self.V[FLAG_REGISTER] = value & 0xFF

    # --- Stack operations ---

    def push(self, addr: int):
        """Save a return address. The 17th nested push overflows."""
        if self.SP >= len(self.stack):
            raise StackOverflow()
        self.stack[self.SP] = addr
        self.SP += 1

    def pop(self) -> int:
        if self.SP <= 0:
            raise StackUnderflow()
        self.SP -= 1
        return self.stack[self.SP]

    # --- Display ---

    def display(self) -> str:
        """One-line register summary for trace output."""
        regs = ' '.join(f'{v:02X}' for v in self.V)
        return f"PC={self.PC:03X} I={self.I:03X} SP={self.SP:X} V=[{regs}]"

    def dump(self) -> str:
        """Multi-line dump: PC/I, registers (hex + decimal), stack."""
        lines = [f"PC: {self.PC:03X}    I: {self.I:03X}    SP: {self.SP:X}", "Regs: "]
        row = []
        for reg_id, value in enumerate(self.V):
            row.append(f"   {reg_id:X}: {value:02X} ({value:3d})")
            if (reg_id + 1) % 4 == 0:
                lines.append(''.join(row))
                row = []
        lines.append("Stack: ")
        row = []
        for slot, addr in enumerate(self.stack):
            mark = '>>' if slot == self.SP else '  '
            row.append(f" {mark}{slot:X}: {addr:03X}")
            if (slot + 1) % 8 == 0:
                lines.append(''.join(row))
                row = []
        return '\n'.join(lines)

    def reset(self):
        """Reset CPU to power-on state."""
        self.V = bytearray(REGISTER_COUNT)
        self.I = 0
        self.PC = RESET_PC
        self.SP = 0
        self.stack = [0] * STACK_DEPTH
        self.steps = 0
