# CHIP-8 Virtual Machine: 4K memory, 16 registers, 64x32 monochrome display
#
# The execution core lives in emu.py. Everything the host has to supply
# (pixels on a screen, a beeper, a key matrix) sits behind the FrontEnd
# protocol in ui/base.py.

from .emu import Chip8, FrameResult, StopReason
from .errors import (
    Chip8Error, DecodeError, OutOfBounds,
    StackOverflow, StackUnderflow, ImageTooLarge,
)

__version__ = "0.4.0"

__all__ = [
    "Chip8", "FrameResult", "StopReason",
    "Chip8Error", "DecodeError", "OutOfBounds",
    "StackOverflow", "StackUnderflow", "ImageTooLarge",
]
