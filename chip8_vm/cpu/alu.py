"""
CHIP-8 Virtual Machine — ALU Operations

Pure 8-bit helpers. The register-pair operations return a tuple
(result_byte, vf) and leave it to the caller to store VF:

  add8   VF = 1 on unsigned overflow, else 0
  sub8   VF = 1 when NO borrow occurred, 0 on borrow (inverted carry)
  shr1   VF = bit 0 before the shift
  shl1   VF = bit 7 before the shift; result truncated to 8 bits

The bitwise helpers and add_imm8 have no flag effect and return only
the result byte.
"""


def add8(a: int, b: int) -> tuple:
    """VX + VY with wraparound. VF = carry out of bit 7."""
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """a - b with wraparound. VF = 1 - borrow."""
    result = a - b
    return (result & 0xFF, 0 if result < 0 else 1)


def shr1(val: int) -> tuple:
    """Logical shift right by one. VF = former LSB."""
    return ((val & 0xFF) >> 1, val & 0x01)


def shl1(val: int) -> tuple:
    """Shift left by one, silently truncated. VF = former MSB."""
    return ((val << 1) & 0xFF, (val & 0x80) >> 7)


def add_imm8(a: int, imm: int) -> int:
    """VX + NN with wraparound. No flag effect."""
    return (a + imm) & 0xFF


def or8(a: int, b: int) -> int:
    return (a | b) & 0xFF


def and8(a: int, b: int) -> int:
    return a & b & 0xFF


def xor8(a: int, b: int) -> int:
    return (a ^ b) & 0xFF


def bcd3(val: int) -> tuple:
    """Split 0–255 into three decimal digits, most significant first.

    Each digit is its numeric value (0–9), not an ASCII character.
    """
    val &= 0xFF
    return (val // 100, (val // 10) % 10, val % 10)
