"""
CHIP-8 VM - Machine Profile
===========================

Fixed hardware figures for the COSMAC VIP style interpreter. Nothing in
here is read from disk; per-instance overrides go through the Chip8()
constructor and the CLI flags.

Instruction costs are the commonly quoted COSMAC VIP timings, rounded to
whole microseconds. They are what decides how many instructions fit in
one 60 Hz frame.
"""

# =============================================================================
#  MEMORY MAP
# =============================================================================
MEM_SIZE = 0x1000          # 4096 bytes
FONT_ADDR = 0x000          # glyph table lives at the very bottom
FONT_GLYPH_SIZE = 5        # bytes per hex digit
ROM_START = 0x200          # programs load (and PC starts) here
MAX_ROM_SIZE = MEM_SIZE - ROM_START


# =============================================================================
#  CPU
# =============================================================================
NUM_REGISTERS = 16
FLAG_REG = 0xF             # VF: carry / borrow / collision
STACK_DEPTH = 16


# =============================================================================
#  DISPLAY
# =============================================================================
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SCREEN_PIXELS = SCREEN_WIDTH * SCREEN_HEIGHT


# =============================================================================
#  KEYPAD
# =============================================================================
NUM_KEYS = 16


# =============================================================================
#  TIMING
# =============================================================================
TIMER_HZ = 60
FRAME_BUDGET_US = 16_666   # 1/60 s of modeled execution time
FRAME_PERIOD_S = 1 / TIMER_HZ   # wall-clock pacing for interactive front ends
SKIP_TAKEN_US = 9          # extra cost when a conditional skip fires

# Mnemonic -> microseconds. Keys match Op member names in cpu/decoder.py.
INSTRUCTION_COST_US = {
    'CLS':        109,
    'RET':        105,
    'SYS':        105,
    'JP':         105,
    'JP_V0':      105,
    'CALL':       105,
    'SE_BYTE':     46,
    'SNE_BYTE':    46,
    'SE_REG':      64,
    'SNE_REG':     64,
    'LD_BYTE':     27,
    'ADD_BYTE':    45,
    'LD_REG':     200,
    'OR':         200,
    'AND':        200,
    'XOR':        200,
    'ADD_REG':    200,
    'SUB':        200,
    'SHR':        200,
    'SUBN':       200,
    'SHL':        200,
    'LD_I':        55,
    'RND':        164,
    'DRW':      22734,
    'SKP':         64,
    'SKNP':        64,
    'LD_VX_DT':    45,
    'LD_VX_K':     45,
    'LD_DT_VX':    45,
    'LD_ST_VX':    45,
    'ADD_I':       86,
    'LD_F':        91,
    'LD_B':       927,
    'STORE_REGS': 605,
    'LOAD_REGS':  605,
}
