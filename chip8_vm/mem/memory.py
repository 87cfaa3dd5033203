"""
CHIP-8 Virtual Machine — 4K Bounds-Checked Memory

Memory map:
  $000–$001  Boot vector
  $100–$14F  Hexadecimal glyphs (loaded by firmware.py)
  $200–$FFF  Program space

Unlike a real bus there is no wraparound: every address must be below
the memory size, and multi-byte accesses must not straddle the end of
the array. Out-of-range accesses raise MemoryBoundsError, which the CPU
wraps into MemoryAccessError.

Block writes validate the whole span before touching anything, so a
failed load never leaves a partial image behind.
"""

from typing import Callable, Dict, List, Optional

from ..config import MEMORY_SIZE
from ..errors import MemoryBoundsError


class Memory:
    """Flat byte-addressable store, zero-initialised.

    Watchpoints fire on write8() so a test or debugger can see which
    addresses a program touches.
    """

    def __init__(self, size: int = MEMORY_SIZE):
        self._mem = bytearray(size)

        # Watchpoints: addr → [callback(addr, old_val, new_val)]
        self._watchpoints: Dict[int, List[Callable]] = {}

    @property
    def size(self) -> int:
        return len(self._mem)

    def _check(self, addr: int, length: int = 1):
        if addr < 0 or length < 0 or addr >= len(self._mem) \
                or addr + length > len(self._mem):
            raise MemoryBoundsError(addr, length)

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        self._check(addr)
        return self._mem[addr]

    def write8(self, addr: int, value: int):
        """Write one byte. Watchpoint callbacks fire before the store."""
        self._check(addr)
        value &= 0xFF
        if addr in self._watchpoints:
            old = self._mem[addr]
            for cb in self._watchpoints[addr]:
                cb(addr, old, value)
        self._mem[addr] = value

    def read16(self, addr: int) -> int:
        """Read 16-bit value (big-endian). Both bytes must be in range."""
        self._check(addr, 2)
        return (self._mem[addr] << 8) | self._mem[addr + 1]

    def write16(self, addr: int, value: int):
        """Write 16-bit value (big-endian)."""
        self._check(addr, 2)
        self.write8(addr, (value >> 8) & 0xFF)
        self.write8(addr + 1, value & 0xFF)

    def read_block(self, start: int, length: int) -> bytes:
        """Copy `length` bytes starting at `start`. Validated up front."""
        if length == 0:
            self._check(start, 0)
            return b''
        self._check(start, length)
        return bytes(self._mem[start:start + length])

    def write_block(self, start: int, data: bytes):
        """Store `data` byte by byte through write8, so watchpoints fire.

        The whole span is validated before the first byte is written.
        """
        self._check(start, len(data))
        for offset, value in enumerate(data):
            self.write8(start + offset, value)

    # --- Bulk load ---

    def load_binary(self, data: bytes, base_addr: int):
        """Copy `data` into memory at `base_addr`.

        The whole span is checked first. `base_addr` past the end is an
        error even for empty data.
        """
        self._check(base_addr, len(data))
        self._mem[base_addr:base_addr + len(data)] = data

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """callback(addr, old_val, new_val) is called on every write to addr."""
        self._watchpoints.setdefault(addr, []).append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        if addr in self._watchpoints:
            if callback is None:
                del self._watchpoints[addr]
            else:
                self._watchpoints[addr] = [
                    cb for cb in self._watchpoints[addr] if cb != callback
                ]

    # --- Snapshots ---

    def snapshot(self, start: int = 0, end: Optional[int] = None) -> bytes:
        """Capture memory [start, end] (inclusive) for later diffing."""
        if end is None:
            end = len(self._mem) - 1
        return self.read_block(start, end - start + 1)

    def diff_snapshots(self, snap_a: bytes, snap_b: bytes,
                       base_addr: int = 0) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        changes = {}
        for i in range(min(len(snap_a), len(snap_b))):
            if snap_a[i] != snap_b[i]:
                changes[base_addr + i] = (snap_a[i], snap_b[i])
        return changes

    # --- Dumps ---

    def hexdump(self, start: int, length: int = 256) -> str:
        """Hex + ASCII dump of [start, start+length), clipped to memory."""
        lines = []
        end = min(start + length, len(self._mem))
        for addr in range(start, end, 16):
            row = self._mem[addr:min(addr + 16, end)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes:<47}  {ascii_bytes}')
        return '\n'.join(lines)

    def dump(self) -> str:
        """Whole-memory dump; all-zero 16-byte blocks collapse to '...'."""
        lines = ['Memory:']
        skipped = False
        for addr in range(0, len(self._mem), 16):
            block = self._mem[addr:addr + 16]
            if not any(block):
                skipped = True
                continue
            if skipped:
                lines.append('   ...')
                skipped = False
            words = ' '.join(f'{block[i]:02X}{block[i + 1]:02X}'
                             for i in range(0, len(block) - 1, 2))
            lines.append(f' {addr:03X}: {words}')
        if skipped:
            lines.append('   ...')
        return '\n'.join(lines)
