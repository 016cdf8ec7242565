"""
CHIP-8 VM - Text-Mode Front End

Paints the 64x32 grid into the terminal with rich, two pixels per
character cell (upper/lower half blocks), so the whole screen fits in
64 x 16 characters. There is no live keyboard: the held-key mask is
fixed when the front end is built (see chip8run.py --keys).
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.text import Text

from ..config import SCREEN_WIDTH, SCREEN_HEIGHT

log = logging.getLogger(__name__)

# (top lit, bottom lit) -> glyph
_HALF_BLOCKS = {
    (False, False): ' ',
    (True, False): '▀',
    (False, True): '▄',
    (True, True): '█',
}


def render_text(pixels: Sequence[bool]) -> str:
    """Fold a row-major 64x32 pixel grid into 16 lines of half blocks."""
    lines = []
    for row in range(0, SCREEN_HEIGHT, 2):
        top = pixels[row * SCREEN_WIDTH:(row + 1) * SCREEN_WIDTH]
        bottom = pixels[(row + 1) * SCREEN_WIDTH:(row + 2) * SCREEN_WIDTH]
        lines.append(''.join(_HALF_BLOCKS[(bool(t), bool(b))]
                             for t, b in zip(top, bottom)))
    return '\n'.join(lines)


class ConsoleFrontEnd:

    def __init__(self, console: Optional[Console] = None, key_mask: int = 0,
                 clear: bool = True, style: str = "bright_green on black"):
        self.console = console or Console()
        self.key_mask = key_mask
        self.clear = clear
        self.style = style
        self._frame = 0
        self._last_beep_frame = -1
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def stop(self):
        self._running = False

    def update(self, pixels: Sequence[bool]):
        if self.clear:
            self.console.clear()
        self.console.print(Text(render_text(pixels), style=self.style))

    def beep(self):
        # One bell per tone, not one per frame it lasts.
        if self._last_beep_frame != self._frame - 1:
            self.console.bell()
            log.debug("Sound timer active")
        self._last_beep_frame = self._frame

    def keypad(self) -> int:
        # Called once at the top of every frame.
        self._frame += 1
        return self.key_mask
