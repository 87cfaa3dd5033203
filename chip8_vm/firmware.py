"""
CHIP-8 Virtual Machine — Built-in Firmware

Boot vector at $000 (JP $200) and the sixteen hexadecimal glyphs, 4×5
pixels each, at HEX_SPRITE_BASE. Fx29 (LDSPR) points I at
HEX_SPRITE_BASE + VX * HEX_SPRITE_HEIGHT.
"""

from .config import HEX_SPRITE_BASE, HEX_SPRITE_HEIGHT, PROGRAM_START
from .loader import load_hex

GLYPHS = (
    (0xF0, 0x90, 0x90, 0x90, 0xF0),  # 0
    (0x20, 0x60, 0x20, 0x20, 0x70),  # 1
    (0xF0, 0x10, 0xF0, 0x80, 0xF0),  # 2
    (0xF0, 0x10, 0xF0, 0x10, 0xF0),  # 3
    (0x90, 0x90, 0xF0, 0x10, 0x10),  # 4
    (0xF0, 0x80, 0xF0, 0x10, 0xF0),  # 5
    (0xF0, 0x80, 0xF0, 0x90, 0xF0),  # 6
    (0xF0, 0x10, 0x20, 0x40, 0x40),  # 7
    (0xF0, 0x90, 0xF0, 0x90, 0xF0),  # 8
    (0xF0, 0x90, 0xF0, 0x10, 0xF0),  # 9
    (0xF0, 0x90, 0xF0, 0x90, 0x90),  # A
    (0xE0, 0x90, 0xE0, 0x90, 0xE0),  # B
    (0xF0, 0x80, 0x80, 0x80, 0xF0),  # C
    (0xE0, 0x90, 0x90, 0x90, 0xE0),  # D
    (0xF0, 0x80, 0xF0, 0x80, 0xF0),  # E
    (0xF0, 0x80, 0xF0, 0x80, 0x80),  # F
)


def _firmware_listing() -> str:
    lines = ["# boot: JP $200", f"0000   {0x1000 | PROGRAM_START:04X}", "# hex glyphs"]
    for digit, rows in enumerate(GLYPHS):
        addr = HEX_SPRITE_BASE + digit * HEX_SPRITE_HEIGHT
        lines.append(f"{addr:04X}   " + ''.join(f"{b:02X}" for b in rows))
    return '\n'.join(lines) + '\n'


FIRMWARE = _firmware_listing()


def load_firmware(memory):
    load_hex(FIRMWARE, memory, strict=True)
