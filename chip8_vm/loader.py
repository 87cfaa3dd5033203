"""
CHIP-8 Virtual Machine — Textual Hex Program Loader

Format, one record per line:

    # comment
    0200   00E0 6380 6400
    0210   D455 F129

The first field is a 4-digit hex address. The remaining fields are hex
digits, concatenated, and must form whole bytes. Blank lines and '#'
comments are skipped. A malformed line is skipped with a warning, or
raises LoaderError when strict=True.
"""

import logging
from pathlib import Path
from typing import List, Tuple

from .config import PROGRAM_START
from .errors import LoaderError

logger = logging.getLogger(__name__)

_HEX_DIGITS = set('0123456789abcdefABCDEF')


def _bogus(line: str, strict: bool):
    if strict:
        raise LoaderError(f"Bogus line: {line}")
    logger.warning(f"Bogus line: {line}")


def parse_hex(text: str, strict: bool = False) -> List[Tuple[int, bytes]]:
    """Parse hex records into [(addr, data), ...] in file order."""
    records = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue

        parts = line.split()
        if len(parts) < 2:
            _bogus(line, strict)
            continue

        addr_s = parts[0]
        if len(addr_s) != 4 or not set(addr_s) <= _HEX_DIGITS:
            _bogus(line, strict)
            continue

        data_s = ''.join(parts[1:])
        if len(data_s) % 2 != 0 or not set(data_s) <= _HEX_DIGITS:
            _bogus(line, strict)
            continue

        records.append((int(addr_s, 16), bytes.fromhex(data_s)))
    return records


def load_hex(text: str, memory, strict: bool = False) -> int:
    """Write every record into memory. Returns the number of bytes loaded.

    An out-of-range record raises MemoryBoundsError; records before it
    stay loaded.
    """
    total = 0
    for addr, data in parse_hex(text, strict):
        memory.load_binary(data, addr)
        total += len(data)
    return total


def load_file(path, memory, base_addr: int = PROGRAM_START) -> int:
    """Load a .hex/.txt listing as text, anything else as a raw image."""
    path = Path(path)
    if path.suffix.lower() in ('.hex', '.txt'):
        return load_hex(path.read_text(encoding='utf-8'), memory)
    data = path.read_bytes()
    memory.load_binary(data, base_addr)
    return len(data)
