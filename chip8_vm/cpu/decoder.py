"""
CHIP-8 VM - Opcode Decoder

Every CHIP-8 instruction is one big-endian 16-bit word. The high nibble
picks a family; the rest is sliced into fields by fixed masks:

  nnn  = opcode & 0x0FFF      12-bit address
  x    = (opcode >> 8) & 0xF  register index
  y    = (opcode >> 4) & 0xF  register index
  kk   = opcode & 0x00FF      immediate byte
  n    = opcode & 0x000F      nibble (sprite height / sub-opcode)

Opcode map (base set, 35 instructions):
  00E0 CLS          00EE RET          0nnn SYS nnn
  1nnn JP nnn       2nnn CALL nnn     Bnnn JP V0, nnn
  3xkk SE Vx, kk    4xkk SNE Vx, kk   5xy0 SE Vx, Vy    9xy0 SNE Vx, Vy
  6xkk LD Vx, kk    7xkk ADD Vx, kk
  8xy0 LD   8xy1 OR   8xy2 AND  8xy3 XOR  8xy4 ADD
  8xy5 SUB  8xy6 SHR  8xy7 SUBN 8xyE SHL
  Annn LD I, nnn    Cxkk RND Vx, kk   Dxyn DRW Vx, Vy, n
  Ex9E SKP Vx       ExA1 SKNP Vx
  Fx07 LD Vx, DT    Fx0A LD Vx, K     Fx15 LD DT, Vx    Fx18 LD ST, Vx
  Fx1E ADD I, Vx    Fx29 LD F, Vx     Fx33 LD B, Vx
  Fx55 LD [I], Vx   Fx65 LD Vx, [I]

Anything else, including unknown sub-opcodes inside the 5, 8, 9, E and F
families, is a DecodeError. Super-CHIP extensions are not decoded.
"""

from enum import Enum
from typing import Iterator, NamedTuple

from ..errors import DecodeError


class Op(Enum):
    CLS = 'CLS'
    RET = 'RET'
    SYS = 'SYS'
    JP = 'JP'
    JP_V0 = 'JP_V0'
    CALL = 'CALL'
    SE_BYTE = 'SE_BYTE'
    SNE_BYTE = 'SNE_BYTE'
    SE_REG = 'SE_REG'
    SNE_REG = 'SNE_REG'
    LD_BYTE = 'LD_BYTE'
    ADD_BYTE = 'ADD_BYTE'
    LD_REG = 'LD_REG'
    OR = 'OR'
    AND = 'AND'
    XOR = 'XOR'
    ADD_REG = 'ADD_REG'
    SUB = 'SUB'
    SHR = 'SHR'
    SUBN = 'SUBN'
    SHL = 'SHL'
    LD_I = 'LD_I'
    RND = 'RND'
    DRW = 'DRW'
    SKP = 'SKP'
    SKNP = 'SKNP'
    LD_VX_DT = 'LD_VX_DT'
    LD_VX_K = 'LD_VX_K'
    LD_DT_VX = 'LD_DT_VX'
    LD_ST_VX = 'LD_ST_VX'
    ADD_I = 'ADD_I'
    LD_F = 'LD_F'
    LD_B = 'LD_B'
    STORE_REGS = 'STORE_REGS'
    LOAD_REGS = 'LOAD_REGS'


# Listing templates, filled from the Instruction fields
_LISTING = {
    Op.CLS:        'CLS',
    Op.RET:        'RET',
    Op.SYS:        'SYS ${nnn:03X}',
    Op.JP:         'JP ${nnn:03X}',
    Op.JP_V0:      'JP V0, ${nnn:03X}',
    Op.CALL:       'CALL ${nnn:03X}',
    Op.SE_BYTE:    'SE V{x:X}, ${kk:02X}',
    Op.SNE_BYTE:   'SNE V{x:X}, ${kk:02X}',
    Op.SE_REG:     'SE V{x:X}, V{y:X}',
    Op.SNE_REG:    'SNE V{x:X}, V{y:X}',
    Op.LD_BYTE:    'LD V{x:X}, ${kk:02X}',
    Op.ADD_BYTE:   'ADD V{x:X}, ${kk:02X}',
    Op.LD_REG:     'LD V{x:X}, V{y:X}',
    Op.OR:         'OR V{x:X}, V{y:X}',
    Op.AND:        'AND V{x:X}, V{y:X}',
    Op.XOR:        'XOR V{x:X}, V{y:X}',
    Op.ADD_REG:    'ADD V{x:X}, V{y:X}',
    Op.SUB:        'SUB V{x:X}, V{y:X}',
    Op.SHR:        'SHR V{x:X}',
    Op.SUBN:       'SUBN V{x:X}, V{y:X}',
    Op.SHL:        'SHL V{x:X}',
    Op.LD_I:       'LD I, ${nnn:03X}',
    Op.RND:        'RND V{x:X}, ${kk:02X}',
    Op.DRW:        'DRW V{x:X}, V{y:X}, {n}',
    Op.SKP:        'SKP V{x:X}',
    Op.SKNP:       'SKNP V{x:X}',
    Op.LD_VX_DT:   'LD V{x:X}, DT',
    Op.LD_VX_K:    'LD V{x:X}, K',
    Op.LD_DT_VX:   'LD DT, V{x:X}',
    Op.LD_ST_VX:   'LD ST, V{x:X}',
    Op.ADD_I:      'ADD I, V{x:X}',
    Op.LD_F:       'LD F, V{x:X}',
    Op.LD_B:       'LD B, V{x:X}',
    Op.STORE_REGS: 'LD [I], V{x:X}',
    Op.LOAD_REGS:  'LD V{x:X}, [I]',
}


class Instruction(NamedTuple):
    """One decoded instruction. Fields an op does not use are zero."""
    op: Op
    opcode: int = 0
    x: int = 0
    y: int = 0
    n: int = 0
    kk: int = 0
    nnn: int = 0

    def __str__(self) -> str:
        return _LISTING[self.op].format(
            x=self.x, y=self.y, n=self.n, kk=self.kk, nnn=self.nnn)


# ──────────────────────────────────────────────
# Sub-opcode tables
# ──────────────────────────────────────────────

# 8xyN: low nibble
ALU_OPS = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# ExKK: low byte
KEY_OPS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# FxKK: low byte
MISC_OPS = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I,
    0x29: Op.LD_F,
    0x33: Op.LD_B,
    0x55: Op.STORE_REGS,
    0x65: Op.LOAD_REGS,
}

# Families that need no sub-decoding: high nibble -> op
SIMPLE_OPS = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_BYTE,
    0x4: Op.SNE_BYTE,
    0x6: Op.LD_BYTE,
    0x7: Op.ADD_BYTE,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}


def decode_opcode(opcode: int, pc: int = 0) -> Instruction:
    """Turn a 16-bit opcode word into an Instruction.

    *pc* is only used to make the DecodeError message useful.
    """
    opcode &= 0xFFFF
    family = opcode >> 12
    fields = dict(
        opcode=opcode,
        x=(opcode >> 8) & 0xF,
        y=(opcode >> 4) & 0xF,
        n=opcode & 0xF,
        kk=opcode & 0xFF,
        nnn=opcode & 0xFFF,
    )

    if family == 0x0:
        if opcode == 0x00E0:
            return Instruction(Op.CLS, opcode)
        if opcode == 0x00EE:
            return Instruction(Op.RET, opcode)
        return Instruction(Op.SYS, **fields)

    if family in SIMPLE_OPS:
        return Instruction(SIMPLE_OPS[family], **fields)

    if family in (0x5, 0x9):
        if fields['n'] != 0:
            raise DecodeError(opcode, pc)
        op = Op.SE_REG if family == 0x5 else Op.SNE_REG
        return Instruction(op, **fields)

    if family == 0x8:
        op = ALU_OPS.get(fields['n'])
    elif family == 0xE:
        op = KEY_OPS.get(fields['kk'])
    else:  # 0xF
        op = MISC_OPS.get(fields['kk'])

    if op is None:
        raise DecodeError(opcode, pc)
    return Instruction(op, **fields)


def disassemble(data: bytes, base_addr: int = 0x200) -> Iterator[str]:
    """Yield one listing line per 2-byte word of *data*.

    Words that do not decode (sprite data, usually) are shown as DW.
    """
    for offset in range(0, len(data) - 1, 2):
        addr = base_addr + offset
        word = (data[offset] << 8) | data[offset + 1]
        try:
            text = str(decode_opcode(word, addr))
        except DecodeError:
            text = f'DW ${word:04X}'
        yield f'{addr:03X}: {word:04X}  {text}'
    if len(data) % 2:
        addr = base_addr + len(data) - 1
        yield f'{addr:03X}: {data[-1]:02X}    DB ${data[-1]:02X}'
