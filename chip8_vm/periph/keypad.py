"""
CHIP-8 VM - 16-Key Hex Keypad

The machine only ever sees a 16-bit mask: bit k set means key k is
held. The front end writes it once before each frame; the VM never
debounces or detects edges.

Host layout (left) folded onto the COSMAC VIP keypad (right):

  1 2 3 4        1 2 3 C
  q w e r   ->   4 5 6 D
  a s d f        7 8 9 E
  z x c v        A 0 B F
"""

from typing import Iterable, Optional

from ..config import NUM_KEYS

HOST_KEY_MAP = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}

KEY_MASK = (1 << NUM_KEYS) - 1


def keypad_from_keys(keys: Iterable[str]) -> int:
    """Fold host key names into a keypad bitmask. Unmapped keys are ignored."""
    mask = 0
    for key in keys:
        k = HOST_KEY_MAP.get(key.lower())
        if k is not None:
            mask |= 1 << k
    return mask


class Keypad:

    def __init__(self):
        self.mask = 0

    def set_mask(self, mask: int):
        self.mask = mask & KEY_MASK

    def is_pressed(self, key: int) -> bool:
        return bool(self.mask & (1 << (key & 0xF)))

    def first_pressed(self) -> Optional[int]:
        """Lowest held key index, or None when nothing is held."""
        if not self.mask:
            return None
        return (self.mask & -self.mask).bit_length() - 1

    def reset(self):
        self.mask = 0
