"""
CHIP-8 VM - 64x32 Monochrome Framebuffer

Pixels are stored row-major, cell = row * 64 + col, True = lit. Sprites
are XORed on; a lit pixel turned off by a sprite is a collision.

The dirty flag is raised by any write (CLS, or a draw, even one that
only erases) and cleared by whoever consumes the frame.
"""

from typing import List, Tuple

from ..config import SCREEN_WIDTH, SCREEN_HEIGHT, SCREEN_PIXELS


class Framebuffer:

    def __init__(self):
        self._pixels: List[bool] = [False] * SCREEN_PIXELS
        self.dirty = False

    def pixel(self, col: int, row: int) -> bool:
        return self._pixels[(row % SCREEN_HEIGHT) * SCREEN_WIDTH + (col % SCREEN_WIDTH)]

    def clear(self):
        """00E0: blank every cell."""
        self._pixels = [False] * SCREEN_PIXELS
        self.dirty = True

    def draw_sprite(self, x: int, y: int, sprite: bytes) -> bool:
        """XOR *sprite* onto the screen with its top-left corner at (x, y).

        Each sprite byte is one 8-pixel row, bit 7 leftmost. Both axes
        wrap independently, so a sprite near an edge tiles onto the
        opposite side. Returns True if any lit pixel was erased.
        """
        pixels = self._pixels
        collision = False
        for r, bits in enumerate(sprite):
            row_base = ((y + r) % SCREEN_HEIGHT) * SCREEN_WIDTH
            for c in range(8):
                if not bits & (0x80 >> c):
                    continue
                cell = row_base + (x + c) % SCREEN_WIDTH
                if pixels[cell]:
                    collision = True
                pixels[cell] = not pixels[cell]
        if sprite:
            self.dirty = True
        return collision

    def snapshot(self) -> Tuple[bool, ...]:
        """Immutable copy of the grid for the front end."""
        return tuple(self._pixels)

    def consume(self) -> bool:
        """Return the dirty flag and clear it."""
        was_dirty = self.dirty
        self.dirty = False
        return was_dirty

    def lit_count(self) -> int:
        return sum(self._pixels)

    def rows(self, on: str = '#', off: str = '.') -> List[str]:
        """Text rendering, one string per screen row."""
        return [
            ''.join(on if p else off
                    for p in self._pixels[r * SCREEN_WIDTH:(r + 1) * SCREEN_WIDTH])
            for r in range(SCREEN_HEIGHT)
        ]

    def reset(self):
        self._pixels = [False] * SCREEN_PIXELS
        self.dirty = False
