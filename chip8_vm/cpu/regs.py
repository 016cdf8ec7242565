"""
CHIP-8 VM - CPU Register Set

Register model:
  V0-VF  16 x 8-bit general purpose registers
         VF doubles as the carry / borrow / shifted-bit / collision flag
         and is overwritten by 8xy4-8xyE and Dxyn
  I      16-bit index register (memory pointer)
  PC     16-bit program counter, starts at $200
"""

from ..config import NUM_REGISTERS, FLAG_REG, ROM_START


class Registers:
    """CHIP-8 register file.

    ``V`` is a bytearray, so stores are range checked by Python itself:
    callers mask to 8 bits before writing.
    """

    __slots__ = ('V', 'I', 'PC')

    def __init__(self):
        self.V = bytearray(NUM_REGISTERS)
        self.I: int = 0
        self.PC: int = ROM_START

    # --- Flag register ---

    @property
    def VF(self) -> int:
        return self.V[FLAG_REG]

    @VF.setter
    def VF(self, value: int):
        self.V[FLAG_REG] = 1 if value else 0

    # --- Display ---

    def display(self) -> str:
        """One-line register dump for trace output."""
        v = ' '.join(f'{x:02X}' for x in self.V)
        return f"PC={self.PC:03X} I={self.I:03X} V=[{v}]"

    def reset(self):
        """Reset to power-on state."""
        self.V[:] = bytes(NUM_REGISTERS)
        self.I = 0
        self.PC = ROM_START
