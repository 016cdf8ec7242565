"""
CHIP-8 VM - 4K Flat Memory

Memory map:
  $000-$04F  Hex glyph table (16 x 5 bytes)
  $050-$1FF  Unused (zero), historically the interpreter itself
  $200-$FFF  Program image and program data

There is no ROM protection and no I/O routing: every byte is plain RAM.
All accesses are bounds-checked and raise OutOfBounds instead of
wrapping, since a runaway I register is a program bug, not a feature.
"""

import logging
from pathlib import Path
from typing import Dict

from ..config import MEM_SIZE, ROM_START, MAX_ROM_SIZE, FONT_ADDR
from ..errors import OutOfBounds, ImageTooLarge
from .font import FONT

log = logging.getLogger(__name__)


class Memory:
    """4096-byte memory with bounds-checked byte and block access."""

    def __init__(self):
        self._mem = bytearray(MEM_SIZE)
        self._mem[FONT_ADDR:FONT_ADDR + len(FONT)] = FONT
        self.program_size = 0

    def __len__(self) -> int:
        return MEM_SIZE

    def _check(self, addr: int, length: int):
        if addr < 0 or length < 0 or addr + length > MEM_SIZE:
            raise OutOfBounds(addr, length)

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        self._check(addr, 1)
        return self._mem[addr]

    def write8(self, addr: int, value: int):
        self._check(addr, 1)
        self._mem[addr] = value & 0xFF

    def read16(self, addr: int) -> int:
        """Read a big-endian word, the opcode byte order."""
        self._check(addr, 2)
        return (self._mem[addr] << 8) | self._mem[addr + 1]

    def read_block(self, addr: int, length: int) -> bytes:
        self._check(addr, length)
        return bytes(self._mem[addr:addr + length])

    def write_block(self, addr: int, data: bytes):
        self._check(addr, len(data))
        self._mem[addr:addr + len(data)] = data

    # --- Program image ---

    def load_program(self, data: bytes, base_addr: int = ROM_START):
        """Copy a program image into memory starting at *base_addr*.

        Everything from *base_addr* up is zeroed first, so no bytes of an
        earlier image survive. Raises ImageTooLarge when the image would
        run past the end of memory. Nothing is written in that case.
        """
        limit = MEM_SIZE - base_addr
        if len(data) > limit:
            raise ImageTooLarge(len(data), limit)
        self._mem[base_addr:] = bytes(MEM_SIZE - base_addr)
        self._mem[base_addr:base_addr + len(data)] = data
        self.program_size = len(data)
        log.info("Loaded %d byte program at $%03X", len(data), base_addr)

    def clear_ram(self):
        """Zero everything above the glyph table, keeping the program image."""
        program = bytes(self._mem[ROM_START:ROM_START + self.program_size])
        self._mem[:] = bytes(MEM_SIZE)
        self._mem[FONT_ADDR:FONT_ADDR + len(FONT)] = FONT
        self._mem[ROM_START:ROM_START + len(program)] = program

    # --- Snapshots ---

    def snapshot(self, start: int = ROM_START, end: int = MEM_SIZE - 1) -> bytes:
        """Copy of the inclusive range [start, end] for later diffing."""
        self._check(start, end - start + 1)
        return bytes(self._mem[start:end + 1])

    @staticmethod
    def diff_snapshots(snap_a: bytes, snap_b: bytes,
                       base_addr: int = ROM_START) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changed bytes."""
        changes = {}
        for i in range(min(len(snap_a), len(snap_b))):
            if snap_a[i] != snap_b[i]:
                changes[base_addr + i] = (snap_a[i], snap_b[i])
        return changes

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 256) -> str:
        """Hex dump of [start, start+length), clipped to memory."""
        end = min(start + length, MEM_SIZE)
        lines = []
        for addr in range(start, end, 16):
            row = self._mem[addr:min(addr + 16, end)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes:<47s}  {ascii_bytes}')
        return '\n'.join(lines)


def read_rom(path) -> bytes:
    """Read a ROM file, refusing anything that cannot fit at ROM_START."""
    data = Path(path).read_bytes()
    if len(data) > MAX_ROM_SIZE:
        raise ImageTooLarge(len(data), MAX_ROM_SIZE)
    return data
