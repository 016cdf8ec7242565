"""
CHIP-8 VM - Return Address Stack

A dedicated 16-slot LIFO of 16-bit return addresses. It does not live
in addressable memory, so programs cannot inspect or corrupt it.
"""

from typing import List

from ..config import STACK_DEPTH
from ..errors import StackOverflow, StackUnderflow


class CallStack:

    def __init__(self, depth: int = STACK_DEPTH):
        self.depth = depth
        self._slots: List[int] = []

    def __len__(self) -> int:
        return len(self._slots)

    def push(self, addr: int):
        if len(self._slots) >= self.depth:
            raise StackOverflow(
                f"Call stack full ({self.depth} levels), cannot push ${addr:03X}")
        self._slots.append(addr & 0xFFFF)

    def pop(self) -> int:
        if not self._slots:
            raise StackUnderflow("Can't return from the root routine, the stack is empty")
        return self._slots.pop()

    def frames(self) -> List[int]:
        """Return addresses, innermost last."""
        return list(self._slots)

    def reset(self):
        self._slots.clear()
