"""
CHIP-8 Virtual Machine — Opcode Decoder

decode() maps every 16-bit word to exactly one Instruction. It never
raises: unknown bit patterns decode to ILLEGAL (the CPU raises
IllegalInstruction when it executes one), and the legacy machine-code
call 0NNN plus Fx17 decode to SYS, which executes as a no-op.

Opcode classes (top nibble):
  0   00E0 CLS, 00EE RET, 0000 HALT, else SYS
  1   JP     NNN          2   CALL   NNN
  3   SE     VX, NN       4   SNE    VX, NN
  5   SE     VX, VY (low nibble 0 only)
  6   LD     VX, NN       7   ADD    VX, NN
  8   ALU    VX, VY       (low nibble selects the operation)
  9   SNE    VX, VY (low nibble 0 only)
  A   LD     I, NNN       B   JP     V0, NNN
  C   RND    VX, NN       D   DRW    VX, VY, N
  E   SKP / SKNP VX       (low byte 9E / A1)
  F   timers, keypad, index and memory block ops (low byte);
      the literal word F000 is a second HALT encoding

Operand forms:
  INH     no operand
  ADDR    12-bit address        (NNN)
  REG     one register          (X)
  REG_IMM register + byte       (X, NN)
  REG_REG register pair         (X, Y)
  DRAW    register pair + nibble (X, Y, N)
  RAW     raw opcode kept for diagnostics (SYS, ILLEGAL)
"""

from dataclasses import dataclass
from typing import Iterator, Optional

# ──────────────────────────────────────────────
# Operand forms
# ──────────────────────────────────────────────

INH     = 'INH'
ADDR    = 'ADDR'
REG     = 'REG'
REG_IMM = 'REG_IMM'
REG_REG = 'REG_REG'
DRAW    = 'DRAW'
RAW     = 'RAW'


# ──────────────────────────────────────────────
# Sub-opcode tables
# ──────────────────────────────────────────────
# Format: discriminant -> (mnemonic, operand_form)

# 1NNN, 2NNN, ANNN, BNNN
ADDR_OPS = {
    0x1: ('JP',   ADDR),
    0x2: ('CALL', ADDR),
    0xA: ('LDI',  ADDR),    # I <- NNN
    0xB: ('JPV0', ADDR),    # PC <- V0 + NNN
}

# 3XNN, 4XNN, 6XNN, 7XNN, CXNN
REG_IMM_OPS = {
    0x3: ('SE',   REG_IMM),
    0x4: ('SNE',  REG_IMM),
    0x6: ('LD',   REG_IMM),
    0x7: ('ADD',  REG_IMM),
    0xC: ('RND',  REG_IMM),
}

# 5XY0, 9XY0
REG_CMP_OPS = {
    0x5: ('SEXY',  REG_REG),
    0x9: ('SNEXY', REG_REG),
}

# 8XYn, low nibble
ALU_OPS = {
    0x0: ('MOV',  REG_REG),   # VX <- VY
    0x1: ('OR',   REG_REG),
    0x2: ('AND',  REG_REG),
    0x3: ('XOR',  REG_REG),
    0x4: ('ADDXY', REG_REG),  # VF <- overflow
    0x5: ('SUB',  REG_REG),   # VF <- no borrow
    0x6: ('SHR',  REG),       # VF <- old LSB
    0x7: ('SUBN', REG_REG),   # VX <- VY - VX, VF <- no borrow
    0xE: ('SHL',  REG),       # VF <- old MSB
}

# EXnn, low byte
KEY_OPS = {
    0x9E: ('SKP',  REG),
    0xA1: ('SKNP', REG),
}

# FXnn, low byte
MISC_OPS = {
    0x07: ('LDDT',   REG),    # VX <- DT
    0x0A: ('LDK',    REG),    # VX <- await key
    0x15: ('STDT',   REG),    # DT <- VX
    0x18: ('STST',   REG),    # ST <- VX
    0x1E: ('ADDI',   REG),    # I <- I + VX
    0x29: ('LDSPR',  REG),    # I <- glyph address of VX
    0x33: ('BCD',    REG),    # [I..I+2] <- decimal digits of VX
    0x55: ('STREGS', REG),    # [I..] <- V0..VX
    0x65: ('LDREGS', REG),    # V0..VX <- [I..]
    0x17: ('SYS',    RAW),    # legacy, ignored
}

# Exact-match words in class 0 (and the F000 halt)
SPECIAL_OPS = {
    0x0000: ('HALT', INH),
    0x00E0: ('CLS',  INH),
    0x00EE: ('RET',  INH),
    0xF000: ('HALT', INH),
}

# Every mnemonic decode() can produce
MNEMONICS = sorted(
    {m for table in (ADDR_OPS, REG_IMM_OPS, REG_CMP_OPS, ALU_OPS,
                     KEY_OPS, MISC_OPS, SPECIAL_OPS)
     for m, _ in table.values()} | {'DRW', 'SYS', 'ILLEGAL'}
)

# Display names where the internal mnemonic differs from assembler syntax
_SYNTAX = {
    'SEXY': 'SE', 'SNEXY': 'SNE', 'ADDXY': 'ADD', 'MOV': 'LD',
    'LDI': 'LD', 'JPV0': 'JP',
}


@dataclass(frozen=True)
class Instruction:
    """A decoded opcode. Only the fields its form needs are set."""
    mnem: str
    form: str
    opcode: int
    x: Optional[int] = None
    y: Optional[int] = None
    imm: Optional[int] = None
    addr: Optional[int] = None

    @property
    def operand_str(self) -> str:
        if self.form == ADDR:
            if self.mnem == 'LDI':
                return f"I, ${self.addr:03X}"
            if self.mnem == 'JPV0':
                return f"V0, ${self.addr:03X}"
            return f"${self.addr:03X}"
        if self.form == REG:
            return f"V{self.x:X}"
        if self.form == REG_IMM:
            return f"V{self.x:X}, #${self.imm:02X}"
        if self.form == REG_REG:
            return f"V{self.x:X}, V{self.y:X}"
        if self.form == DRAW:
            return f"V{self.x:X}, V{self.y:X}, {self.imm}"
        if self.form == RAW:
            return f"${self.opcode:04X}"
        return ""

    def __str__(self) -> str:
        return f"{_SYNTAX.get(self.mnem, self.mnem):6s} {self.operand_str}".strip()


def _reg_x(opcode: int) -> int:
    return (opcode & 0x0F00) >> 8


def _reg_y(opcode: int) -> int:
    return (opcode & 0x00F0) >> 4


def _illegal(opcode: int) -> Instruction:
    return Instruction('ILLEGAL', RAW, opcode)


def decode(opcode: int) -> Instruction:
    """Decode a 16-bit opcode. Total: never raises."""
    opcode &= 0xFFFF
    if opcode in SPECIAL_OPS:
        mnem, form = SPECIAL_OPS[opcode]
        return Instruction(mnem, form, opcode)

    op_cls = (opcode & 0xF000) >> 12

    if op_cls == 0x0:
        return Instruction('SYS', RAW, opcode)

    if op_cls in ADDR_OPS:
        mnem, form = ADDR_OPS[op_cls]
        return Instruction(mnem, form, opcode, addr=opcode & 0x0FFF)

    if op_cls in REG_IMM_OPS:
        mnem, form = REG_IMM_OPS[op_cls]
        return Instruction(mnem, form, opcode, x=_reg_x(opcode), imm=opcode & 0x00FF)

    if op_cls in REG_CMP_OPS:
        if opcode & 0x000F != 0x0:
            return _illegal(opcode)
        mnem, form = REG_CMP_OPS[op_cls]
        return Instruction(mnem, form, opcode, x=_reg_x(opcode), y=_reg_y(opcode))

    if op_cls == 0x8:
        entry = ALU_OPS.get(opcode & 0x000F)
        if entry is None:
            return _illegal(opcode)
        mnem, form = entry
        if form == REG:
            return Instruction(mnem, form, opcode, x=_reg_x(opcode))
        return Instruction(mnem, form, opcode, x=_reg_x(opcode), y=_reg_y(opcode))

    if op_cls == 0xD:
        return Instruction('DRW', DRAW, opcode, x=_reg_x(opcode), y=_reg_y(opcode),
                           imm=opcode & 0x000F)

    # 0xE / 0xF: low byte discriminates
    table = KEY_OPS if op_cls == 0xE else MISC_OPS
    entry = table.get(opcode & 0x00FF)
    if entry is None:
        return _illegal(opcode)
    mnem, form = entry
    if form == RAW:
        return Instruction(mnem, form, opcode)
    return Instruction(mnem, form, opcode, x=_reg_x(opcode))


def disassemble(memory, start: int, count: int) -> Iterator[tuple]:
    """Yield (addr, word, Instruction) for `count` words from `start`.

    Stops early at the end of memory instead of raising.
    """
    addr = start
    for _ in range(count):
        if addr + 1 >= memory.size:
            return
        word = memory.read16(addr)
        yield addr, word, decode(word)
        addr += 2


def format_line(addr: int, word: int, instr: Instruction) -> str:
    """`$200: 6105  LD     V1, #$05`"""
    return f"${addr:03X}: {word:04X}  {instr}"
