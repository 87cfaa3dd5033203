"""
CHIP-8 Virtual Machine — 64×32 Monochrome Framebuffer

Sprites are 8 pixels wide and 1–15 rows high, one byte per row. Bit 7
of each byte is the leftmost pixel. Each sprite pixel is XORed onto the
grid; coordinates wrap modulo width/height (toroidal), they never clip.

draw() returns True when any touched pixel changed state. With XOR that
is exactly the set of 1 bits in the sprite, so an all-zero sprite never
collides and leaves the grid untouched.

Rendering is a side effect only: after every draw() or clear() the
display calls its renderer (if any) with itself. The grid is the
authoritative state.
"""

from typing import Callable, Optional, TextIO

from ..config import DISPLAY_WIDTH, DISPLAY_HEIGHT, PIXEL_ON, PIXEL_OFF


class Display:
    """Bit grid plus renderer hook."""

    def __init__(self, renderer: Optional[Callable] = None,
                 width: int = DISPLAY_WIDTH, height: int = DISPLAY_HEIGHT):
        self.width = width
        self.height = height
        self.renderer = renderer
        self.redraws = 0
        self._grid = [bytearray(width) for _ in range(height)]

    def pixel(self, x: int, y: int) -> int:
        return self._grid[y % self.height][x % self.width]

    def rows(self):
        """Snapshot of the grid as a tuple of bytes rows."""
        return tuple(bytes(row) for row in self._grid)

    def clear(self):
        for row in self._grid:
            row[:] = bytes(self.width)
        self.refresh()

    def draw(self, x: int, y: int, height: int, start: int, memory) -> bool:
        """XOR a `height`-row sprite from memory[start:] at (x, y).

        The sprite bytes are read in one block before the grid is
        touched, so an out-of-range sprite raises MemoryBoundsError
        with the framebuffer unchanged.
        """
        sprite = memory.read_block(start, height)
        x %= self.width
        y %= self.height
        changed = False
        for ri, line in enumerate(sprite):
            row = self._grid[(y + ri) % self.height]
            for ci in range(8):
                bit = (line >> (7 - ci)) & 0x01
                if not bit:
                    continue
                col = (x + ci) % self.width
                row[col] ^= 1
                changed = True
        self.refresh()
        return changed

    def refresh(self):
        self.redraws += 1
        if self.renderer is not None:
            self.renderer(self)

    def render_text(self) -> str:
        border = '-' * self.width
        lines = [f"/{border}\\"]
        for row in self._grid:
            lines.append('|' + ''.join(PIXEL_ON if p else PIXEL_OFF for p in row) + '|')
        lines.append(f"\\{border}/")
        return '\n'.join(lines)


class TerminalRenderer:
    """Writes the ASCII frame to a stream on every refresh."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def __call__(self, display: Display):
        self.stream.write(display.render_text() + '\n')
        self.stream.flush()
