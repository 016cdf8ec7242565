"""
CHIP-8 VM - Delay and Sound Timers

Two independent 8-bit down-counters. Programs load them with Fx15 /
Fx18 and the frame driver ticks both once per 60 Hz frame. They stop
at zero, never wrapping.

While the sound timer is non-zero the front end should be sounding
its tone.
"""


class CountdownTimer:

    def __init__(self, name: str):
        self.name = name
        self.value = 0

    def set(self, value: int):
        self.value = value & 0xFF

    def tick(self):
        """Decrement once, saturating at zero."""
        if self.value > 0:
            self.value -= 1

    @property
    def active(self) -> bool:
        return self.value > 0

    def reset(self):
        self.value = 0

    def __repr__(self) -> str:
        return f"CountdownTimer({self.name!r}, value={self.value})"
