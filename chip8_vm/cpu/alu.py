"""
CHIP-8 VM - 8-bit ALU

Each helper returns ``(result, flag)`` with the result already wrapped
to 8 bits. The caller stores the result into Vx first and the flag
into VF second, so the flag survives when x == F.

  add8   flag = carry out of bit 7
  sub8   flag = 1 when no borrow (Vx > Vy)
  subn8  flag = 1 when no borrow (Vy > Vx)
  shr8   flag = bit shifted out of bit 0
  shl8   flag = bit shifted out of bit 7
"""


def add8(a: int, b: int) -> tuple:
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """Vx - Vy."""
    return ((a - b) & 0xFF, 1 if a > b else 0)


def subn8(a: int, b: int) -> tuple:
    """Vy - Vx, with a = Vx and b = Vy."""
    return ((b - a) & 0xFF, 1 if b > a else 0)


def shr8(a: int) -> tuple:
    return (a >> 1, a & 0x01)


def shl8(a: int) -> tuple:
    return ((a << 1) & 0xFF, (a >> 7) & 0x01)


def add_wrap8(a: int, b: int) -> int:
    """7xkk: add without touching VF."""
    return (a + b) & 0xFF


def bcd(value: int) -> bytes:
    """Hundreds, tens and ones digits of an 8-bit value."""
    value &= 0xFF
    return bytes([value // 100, value // 10 % 10, value % 10])
