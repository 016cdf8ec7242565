from __future__ import annotations

from typing import List, Protocol, Sequence


class FrontEnd(Protocol):
    """What the frame driver needs from a host: a screen, a beeper, a keypad."""

    @property
    def running(self) -> bool: ...

    def update(self, pixels: Sequence[bool]) -> None: ...

    def beep(self) -> None: ...

    def keypad(self) -> int: ...


class NullFrontEnd:
    """A front end that never touches a terminal but remembers what it saw.
    Used for headless runs and tests.
    """
    def __init__(self, key_mask: int = 0, keep_frames: bool = False) -> None:
        self.key_mask = key_mask
        self.keep_frames = keep_frames
        self.frames: List[tuple] = []
        self.updates = 0
        self.beeps = 0
        self.last_pixels: tuple = ()
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        self._running = False

    def update(self, pixels: Sequence[bool]) -> None:
        self.updates += 1
        self.last_pixels = tuple(pixels)
        if self.keep_frames:
            self.frames.append(self.last_pixels)

    def beep(self) -> None:
        self.beeps += 1

    def keypad(self) -> int:
        return self.key_mask
