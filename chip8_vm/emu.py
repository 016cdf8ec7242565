"""
CHIP-8 VM - Main Machine Class

Integrates:
  - CPU registers (cpu/regs.py)
  - Call stack (cpu/stack.py)
  - Opcode decoder (cpu/decoder.py)
  - ALU helpers (cpu/alu.py)
  - 4K memory + glyph table (mem/)
  - Framebuffer, delay/sound timers, keypad (periph/)

Execution model, one instruction:
  1. Fetch the big-endian word at PC
  2. Advance PC by 2 (before decoding, like the real fetch)
  3. Decode into an Instruction (DecodeError on unknown patterns)
  4. Run the handler, which may overwrite PC (jumps) or add 2 (skips)
  5. Report the modeled cost in microseconds

Execution model, one frame:
  1. Step until the summed cost reaches the frame budget (16.666 ms)
  2. Latch the sound signal, then tick the delay and sound timers once
  3. Hand the framebuffer and its dirty flag to the caller, clear the flag

Faults (DecodeError, OutOfBounds, StackOverflow, StackUnderflow) are
raised straight out of step() and run_frame(); the VM never retries.
"""

import logging
import random
from enum import Enum
from time import monotonic, sleep
from typing import List, NamedTuple, Optional, Tuple

from .config import (
    FLAG_REG, FRAME_BUDGET_US, INSTRUCTION_COST_US, SKIP_TAKEN_US,
)
from .cpu import alu
from .cpu.decoder import Instruction, Op, decode_opcode
from .cpu.regs import Registers
from .cpu.stack import CallStack
from .errors import Chip8Error
from .mem.font import glyph_addr
from .mem.memory import Memory, read_rom
from .periph.display import Framebuffer
from .periph.keypad import Keypad
from .periph.timer import CountdownTimer

log = logging.getLogger(__name__)


class StopReason(Enum):
    FRAMES = 'FRAMES'    # max_frames reached
    QUIT = 'QUIT'        # front end stopped running


class FrameResult(NamedTuple):
    pixels: Tuple[bool, ...]
    updated: bool
    sound: bool


class Chip8:
    """CHIP-8 virtual machine.

    Usage:
        vm = Chip8()
        vm.load_program(rom_bytes)
        vm.set_keypad(0x0000)
        frame = vm.run_frame()
        if frame.updated:
            paint(frame.pixels)
    """

    def __init__(self, frame_budget_us: int = FRAME_BUDGET_US,
                 rng: Optional[random.Random] = None):
        self.regs = Registers()
        self.mem = Memory()
        self.stack = CallStack()
        self.display = Framebuffer()
        self.keypad = Keypad()
        self.delay_timer = CountdownTimer('delay')
        self.sound_timer = CountdownTimer('sound')

        self.frame_budget_us = frame_budget_us
        self.rng = rng if rng is not None else random.Random()

        self.frames = 0
        self.instructions = 0

        self._trace = False
        self._trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_program(self, data: bytes):
        """Copy a program image to $200. Raises ImageTooLarge if it won't fit."""
        self.mem.load_program(bytes(data))

    def load_file(self, path):
        self.load_program(read_rom(path))

    # ══════════════════════════════════════════════
    # Host-side state
    # ══════════════════════════════════════════════

    def set_keypad(self, mask: int):
        """Snapshot of held keys, bit k = key k. Set before each frame."""
        self.keypad.set_mask(mask)

    @property
    def sound_on(self) -> bool:
        return self.sound_timer.active

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def fetch(self) -> Instruction:
        """Read the word at PC, advance PC by 2, decode."""
        pc = self.regs.PC
        opcode = self.mem.read16(pc)
        self.regs.PC = (pc + 2) & 0xFFFF
        return decode_opcode(opcode, pc)

    def execute(self, ins: Instruction) -> int:
        """Apply one decoded instruction; return its cost in microseconds."""
        extra = self._dispatch[ins.op](ins)
        self.instructions += 1
        return INSTRUCTION_COST_US[ins.op.name] + (extra or 0)

    def step(self) -> Tuple[Instruction, int]:
        """Fetch, decode and execute one instruction."""
        pc = self.regs.PC
        try:
            ins = self.fetch()
            cost = self.execute(ins)
        except Chip8Error as e:
            if self._trace:
                self._trace_output.append(f"${pc:03X}: ERROR: {e}")
            raise
        if self._trace:
            self._trace_output.append(
                f"${pc:03X}: {str(ins):18s} {self.regs.display()}")
        return ins, cost

    def run_frame(self) -> FrameResult:
        """Run one 60 Hz frame.

        Instructions execute until their summed cost reaches the frame
        budget. The instruction that crosses the budget still completes;
        the overshoot is not carried into the next frame.
        """
        elapsed = 0
        while elapsed < self.frame_budget_us:
            _, cost = self.step()
            elapsed += cost

        # a tone set this frame sounds for this frame, even ST=1
        sound = self.sound_timer.active
        self.delay_timer.tick()
        self.sound_timer.tick()
        self.frames += 1

        updated = self.display.consume()
        return FrameResult(self.display.snapshot(), updated, sound)

    def drive(self, front_end, max_frames: Optional[int] = None,
              frame_period_s: Optional[float] = None) -> StopReason:
        """Host loop: keypad in, frame out, until told to stop.

        *front_end* is anything satisfying ui.base.FrontEnd.
        With *frame_period_s* set, each frame is held to that much wall-clock
        time (config.FRAME_PERIOD_S for 60 Hz). A host that falls behind
        restarts its schedule instead of running frames back to back.
        """
        count = 0
        deadline = monotonic()
        while front_end.running:
            if max_frames is not None and count >= max_frames:
                return StopReason.FRAMES
            self.set_keypad(front_end.keypad())
            frame = self.run_frame()
            if frame.updated:
                front_end.update(frame.pixels)
            if frame.sound:
                front_end.beep()
            count += 1

            if frame_period_s:
                deadline += frame_period_s
                remaining = deadline - monotonic()
                if remaining > 0:
                    sleep(remaining)
                else:
                    log.debug("Frame %d late by %.1f ms", self.frames, -remaining * 1000)
                    deadline = monotonic()
        return StopReason.QUIT

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins) -> Optional[int]
    # The return value is extra cost on top of INSTRUCTION_COST_US.

    def _build_dispatch(self) -> dict:
        return {
            # ── Flow control ──
            Op.CLS:        self._op_cls,
            Op.RET:        self._op_ret,
            Op.SYS:        self._op_sys,
            Op.JP:         self._op_jp,
            Op.JP_V0:      self._op_jp_v0,
            Op.CALL:       self._op_call,

            # ── Conditional skips ──
            Op.SE_BYTE:    self._op_se_byte,
            Op.SNE_BYTE:   self._op_sne_byte,
            Op.SE_REG:     self._op_se_reg,
            Op.SNE_REG:    self._op_sne_reg,
            Op.SKP:        self._op_skp,
            Op.SKNP:       self._op_sknp,

            # ── Register load / ALU ──
            Op.LD_BYTE:    self._op_ld_byte,
            Op.ADD_BYTE:   self._op_add_byte,
            Op.LD_REG:     self._op_ld_reg,
            Op.OR:         self._op_or,
            Op.AND:        self._op_and,
            Op.XOR:        self._op_xor,
            Op.ADD_REG:    self._op_add_reg,
            Op.SUB:        self._op_sub,
            Op.SHR:        self._op_shr,
            Op.SUBN:       self._op_subn,
            Op.SHL:        self._op_shl,
            Op.RND:        self._op_rnd,

            # ── Index register / memory ──
            Op.LD_I:       self._op_ld_i,
            Op.ADD_I:      self._op_add_i,
            Op.LD_F:       self._op_ld_f,
            Op.LD_B:       self._op_ld_b,
            Op.STORE_REGS: self._op_store_regs,
            Op.LOAD_REGS:  self._op_load_regs,

            # ── Display ──
            Op.DRW:        self._op_drw,

            # ── Timers / keypad ──
            Op.LD_VX_DT:   self._op_ld_vx_dt,
            Op.LD_VX_K:    self._op_ld_vx_k,
            Op.LD_DT_VX:   self._op_ld_dt_vx,
            Op.LD_ST_VX:   self._op_ld_st_vx,
        }

    def _skip_if(self, cond: bool) -> Optional[int]:
        if cond:
            self.regs.PC = (self.regs.PC + 2) & 0xFFFF
            return SKIP_TAKEN_US
        return None

    def _set_with_flag(self, x: int, result: tuple):
        # Result first, VF last: VF as a destination ends up holding the flag.
        value, flag = result
        self.regs.V[x] = value
        self.regs.V[FLAG_REG] = flag

    # ── Flow control ──

    def _op_cls(self, ins):
        self.display.clear()

    def _op_ret(self, ins):
        self.regs.PC = self.stack.pop()

    def _op_sys(self, ins):
        # Machine-code call on the original hardware; modern interpreters ignore it.
        log.debug("Ignoring SYS $%03X at $%03X", ins.nnn, (self.regs.PC - 2) & 0xFFFF)

    def _op_jp(self, ins):
        self.regs.PC = ins.nnn

    def _op_jp_v0(self, ins):
        self.regs.PC = (ins.nnn + self.regs.V[0]) & 0xFFFF

    def _op_call(self, ins):
        self.stack.push(self.regs.PC)
        self.regs.PC = ins.nnn

    # ── Conditional skips ──

    def _op_se_byte(self, ins):
        return self._skip_if(self.regs.V[ins.x] == ins.kk)

    def _op_sne_byte(self, ins):
        return self._skip_if(self.regs.V[ins.x] != ins.kk)

    def _op_se_reg(self, ins):
        return self._skip_if(self.regs.V[ins.x] == self.regs.V[ins.y])

    def _op_sne_reg(self, ins):
        return self._skip_if(self.regs.V[ins.x] != self.regs.V[ins.y])

    def _op_skp(self, ins):
        return self._skip_if(self.keypad.is_pressed(self.regs.V[ins.x]))

    def _op_sknp(self, ins):
        return self._skip_if(not self.keypad.is_pressed(self.regs.V[ins.x]))

    # ── Register load / ALU ──

    def _op_ld_byte(self, ins):
        self.regs.V[ins.x] = ins.kk

    def _op_add_byte(self, ins):
        self.regs.V[ins.x] = alu.add_wrap8(self.regs.V[ins.x], ins.kk)

    def _op_ld_reg(self, ins):
        self.regs.V[ins.x] = self.regs.V[ins.y]

    def _op_or(self, ins):
        self.regs.V[ins.x] |= self.regs.V[ins.y]

    def _op_and(self, ins):
        self.regs.V[ins.x] &= self.regs.V[ins.y]

    def _op_xor(self, ins):
        self.regs.V[ins.x] ^= self.regs.V[ins.y]

    def _op_add_reg(self, ins):
        self._set_with_flag(ins.x, alu.add8(self.regs.V[ins.x], self.regs.V[ins.y]))

    def _op_sub(self, ins):
        self._set_with_flag(ins.x, alu.sub8(self.regs.V[ins.x], self.regs.V[ins.y]))

    def _op_subn(self, ins):
        self._set_with_flag(ins.x, alu.subn8(self.regs.V[ins.x], self.regs.V[ins.y]))

    def _op_shr(self, ins):
        self._set_with_flag(ins.x, alu.shr8(self.regs.V[ins.x]))

    def _op_shl(self, ins):
        self._set_with_flag(ins.x, alu.shl8(self.regs.V[ins.x]))

    def _op_rnd(self, ins):
        self.regs.V[ins.x] = self.rng.randrange(256) & ins.kk

    # ── Index register / memory ──

    def _op_ld_i(self, ins):
        self.regs.I = ins.nnn

    def _op_add_i(self, ins):
        self.regs.I = (self.regs.I + self.regs.V[ins.x]) & 0xFFFF

    def _op_ld_f(self, ins):
        self.regs.I = glyph_addr(self.regs.V[ins.x])

    def _op_ld_b(self, ins):
        self.mem.write_block(self.regs.I, alu.bcd(self.regs.V[ins.x]))

    def _op_store_regs(self, ins):
        """Fx55: V0..Vx inclusive -> [I]. I is left unchanged."""
        self.mem.write_block(self.regs.I, bytes(self.regs.V[:ins.x + 1]))

    def _op_load_regs(self, ins):
        """Fx65: [I] -> V0..Vx inclusive. I is left unchanged."""
        self.regs.V[:ins.x + 1] = self.mem.read_block(self.regs.I, ins.x + 1)

    # ── Display ──

    def _op_drw(self, ins):
        """Dxyn: XOR an n-row sprite from [I] at (Vx, Vy); VF = collision."""
        sprite = self.mem.read_block(self.regs.I, ins.n & 0x0F)
        collision = self.display.draw_sprite(
            self.regs.V[ins.x], self.regs.V[ins.y], sprite)
        self.regs.VF = collision

    # ── Timers / keypad ──

    def _op_ld_vx_dt(self, ins):
        self.regs.V[ins.x] = self.delay_timer.value

    def _op_ld_vx_k(self, ins):
        """Fx0A: wait for a key by re-running this instruction until one is held."""
        key = self.keypad.first_pressed()
        if key is None:
            self.regs.PC = (self.regs.PC - 2) & 0xFFFF
        else:
            self.regs.V[ins.x] = key

    def _op_ld_dt_vx(self, ins):
        self.delay_timer.set(self.regs.V[ins.x])

    def _op_ld_st_vx(self, ins):
        self.sound_timer.set(self.regs.V[ins.x])

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record one line per executed instruction."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def reset(self):
        """Power-on reset. The loaded program image is kept."""
        self.regs.reset()
        self.stack.reset()
        self.mem.clear_ram()
        self.display.reset()
        self.keypad.reset()
        self.delay_timer.reset()
        self.sound_timer.reset()
        self.frames = 0
        self.instructions = 0
        self._trace_output.clear()
        log.info("Machine reset, PC=$%03X", self.regs.PC)
