"""
CHIP-8 VM - Built-in Hex Glyphs

Sixteen 4x5 sprites for the digits 0-F, resident at FONT_ADDR. Each
byte is one row; only the high nibble is lit. Fx29 points I at
``FONT_ADDR + digit * FONT_GLYPH_SIZE``.
"""

from ..config import FONT_ADDR, FONT_GLYPH_SIZE

FONT = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


def glyph_addr(digit: int) -> int:
    """Address of the glyph for the low nibble of *digit*."""
    return FONT_ADDR + (digit & 0x0F) * FONT_GLYPH_SIZE


def glyph(digit: int) -> bytes:
    start = (digit & 0x0F) * FONT_GLYPH_SIZE
    return FONT[start:start + FONT_GLYPH_SIZE]
