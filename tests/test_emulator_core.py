"""
CHIP-8 VM - Instruction Tests

Each test hand-assembles opcode words, loads them at $200 and steps the
machine. Flag behaviour follows the COSMAC VIP interpreter with the
usual modern choices (shifts operate on Vx, Fx55/Fx65 leave I alone).
"""

import random
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm import (
    Chip8, OutOfBounds, StackOverflow, StackUnderflow, DecodeError,
)
from chip8_vm.config import ROM_START, INSTRUCTION_COST_US, SKIP_TAKEN_US
from chip8_vm.cpu.decoder import Op
from chip8_vm.mem.font import glyph


def make_vm(*words, **kwargs) -> Chip8:
    """Chip8 with the given 16-bit opcode words loaded at $200."""
    vm = Chip8(**kwargs)
    data = b''.join(w.to_bytes(2, 'big') for w in words)
    vm.load_program(data)
    return vm


def run(vm: Chip8, count: int):
    for _ in range(count):
        vm.step()


# ═══════════════════════════════════════════════
# Flow control
# ═══════════════════════════════════════════════

class TestFlow:

    def test_pc_starts_at_program(self):
        vm = Chip8()
        assert vm.regs.PC == ROM_START

    def test_fetch_advances_pc(self):
        """6005 → PC moves from $200 to $202"""
        vm = make_vm(0x6005)
        vm.step()
        assert vm.regs.PC == 0x202

    def test_jp(self):
        """1234 → PC=$234"""
        vm = make_vm(0x1234)
        vm.step()
        assert vm.regs.PC == 0x234

    def test_jp_v0(self):
        """6010; B300 → PC=$310"""
        vm = make_vm(0x6010, 0xB300)
        run(vm, 2)
        assert vm.regs.PC == 0x310

    def test_call_pushes_return_address(self):
        """2300 → PC=$300, stack=[$202]"""
        vm = make_vm(0x2300)
        vm.step()
        assert vm.regs.PC == 0x300
        assert vm.stack.frames() == [0x202]

    def test_call_ret_round_trip(self):
        """CALL $204; (skipped word); RET → PC back to $202"""
        vm = make_vm(0x2204, 0x0000, 0x00EE)
        vm.step()
        assert vm.regs.PC == 0x204
        vm.step()
        assert vm.regs.PC == 0x202
        assert len(vm.stack) == 0

    def test_ret_empty_stack(self):
        vm = make_vm(0x00EE)
        with pytest.raises(StackUnderflow):
            vm.step()

    def test_sixteen_calls_fit_seventeenth_overflows(self):
        """2200 calls itself forever: 16 nest fine, the 17th faults."""
        vm = make_vm(0x2200)
        run(vm, 16)
        assert len(vm.stack) == 16
        with pytest.raises(StackOverflow):
            vm.step()

    def test_sys_is_ignored(self):
        """0123 → no effect beyond the fetch"""
        vm = make_vm(0x0123)
        vm.step()
        assert vm.regs.PC == 0x202
        assert len(vm.stack) == 0

    def test_unknown_opcode_raises(self):
        vm = make_vm(0x8008)
        with pytest.raises(DecodeError) as exc:
            vm.step()
        assert exc.value.opcode == 0x8008
        assert exc.value.pc == 0x200

    def test_fetch_past_end_of_memory(self):
        vm = Chip8()
        vm.regs.PC = 0xFFF
        with pytest.raises(OutOfBounds):
            vm.step()


# ═══════════════════════════════════════════════
# Conditional skips
# ═══════════════════════════════════════════════

class TestSkips:

    def test_se_byte_taken(self):
        """6042; 3042 → skip"""
        vm = make_vm(0x6042, 0x3042)
        run(vm, 2)
        assert vm.regs.PC == 0x206

    def test_se_byte_not_taken(self):
        vm = make_vm(0x6042, 0x3043)
        run(vm, 2)
        assert vm.regs.PC == 0x204

    def test_sne_byte(self):
        vm = make_vm(0x6042, 0x4043)
        run(vm, 2)
        assert vm.regs.PC == 0x206

    def test_se_reg(self):
        """V0=V1=7; 5010 → skip"""
        vm = make_vm(0x6007, 0x6107, 0x5010)
        run(vm, 3)
        assert vm.regs.PC == 0x208

    def test_sne_reg(self):
        vm = make_vm(0x6007, 0x6108, 0x9010)
        run(vm, 3)
        assert vm.regs.PC == 0x208

    def test_sne_reg_not_taken(self):
        vm = make_vm(0x6007, 0x6107, 0x9010)
        run(vm, 3)
        assert vm.regs.PC == 0x206

    def test_skp(self):
        """V3=$A, key A held; E39E → skip"""
        vm = make_vm(0x630A, 0xE39E)
        vm.set_keypad(1 << 0xA)
        run(vm, 2)
        assert vm.regs.PC == 0x206

    def test_skp_not_held(self):
        vm = make_vm(0x630A, 0xE39E)
        vm.set_keypad(1 << 0xB)
        run(vm, 2)
        assert vm.regs.PC == 0x204

    def test_sknp(self):
        vm = make_vm(0x630A, 0xE3A1)
        vm.set_keypad(0)
        run(vm, 2)
        assert vm.regs.PC == 0x206

    def test_taken_skip_costs_more(self):
        vm = make_vm(0x3000, 0x0000, 0x3001)
        _, taken = vm.step()
        _, not_taken = vm.step()
        assert taken == INSTRUCTION_COST_US['SE_BYTE'] + SKIP_TAKEN_US
        assert not_taken == INSTRUCTION_COST_US['SE_BYTE']


# ═══════════════════════════════════════════════
# Register loads and ALU
# ═══════════════════════════════════════════════

class TestArithmetic:

    def test_ld_byte(self):
        vm = make_vm(0x6A5C)
        vm.step()
        assert vm.regs.V[0xA] == 0x5C

    def test_add_byte_wraps_without_flag(self):
        """V0=$FF; 7002 → V0=$01, VF untouched"""
        vm = make_vm(0x60FF, 0x6F07, 0x7002)
        run(vm, 3)
        assert vm.regs.V[0] == 0x01
        assert vm.regs.VF == 7

    def test_ld_reg(self):
        vm = make_vm(0x6133, 0x8010)
        run(vm, 2)
        assert vm.regs.V[0] == 0x33

    def test_or_and_xor(self):
        vm = make_vm(0x60F0, 0x613C, 0x8011)
        run(vm, 3)
        assert vm.regs.V[0] == 0xFC
        vm = make_vm(0x60F0, 0x613C, 0x8012)
        run(vm, 3)
        assert vm.regs.V[0] == 0x30
        vm = make_vm(0x60F0, 0x613C, 0x8013)
        run(vm, 3)
        assert vm.regs.V[0] == 0xCC

    @pytest.mark.parametrize("a, b", [(0, 0), (200, 55), (200, 56), (255, 255), (1, 254)])
    def test_add_reg_carry(self, a, b):
        """8014: VF = 1 iff Vx + Vy > 255"""
        vm = make_vm(0x6000 | a, 0x6100 | b, 0x8014)
        run(vm, 3)
        assert vm.regs.V[0] == (a + b) & 0xFF
        assert vm.regs.VF == (1 if a + b > 255 else 0)

    @pytest.mark.parametrize("a, b", [(10, 3), (3, 10), (7, 7), (0, 255), (255, 0)])
    def test_sub(self, a, b):
        """8015: VF = 1 iff Vx > Vy"""
        vm = make_vm(0x6000 | a, 0x6100 | b, 0x8015)
        run(vm, 3)
        assert vm.regs.V[0] == (a - b) & 0xFF
        assert vm.regs.VF == (1 if a > b else 0)

    @pytest.mark.parametrize("a, b", [(10, 3), (3, 10), (7, 7)])
    def test_subn(self, a, b):
        """8017: Vx = Vy - Vx, VF = 1 iff Vy > Vx"""
        vm = make_vm(0x6000 | a, 0x6100 | b, 0x8017)
        run(vm, 3)
        assert vm.regs.V[0] == (b - a) & 0xFF
        assert vm.regs.VF == (1 if b > a else 0)

    def test_shr(self):
        """V0=$05; 8006 → V0=$02, VF=1"""
        vm = make_vm(0x6005, 0x8006)
        run(vm, 2)
        assert vm.regs.V[0] == 0x02
        assert vm.regs.VF == 1

    def test_shr_even(self):
        vm = make_vm(0x6004, 0x8006)
        run(vm, 2)
        assert vm.regs.V[0] == 0x02
        assert vm.regs.VF == 0

    def test_shl(self):
        """V0=$81; 800E → V0=$02, VF=1"""
        vm = make_vm(0x6081, 0x800E)
        run(vm, 2)
        assert vm.regs.V[0] == 0x02
        assert vm.regs.VF == 1

    def test_shl_ignores_vy(self):
        vm = make_vm(0x6040, 0x61FF, 0x801E)
        run(vm, 3)
        assert vm.regs.V[0] == 0x80
        assert vm.regs.VF == 0

    def test_flag_wins_when_vf_is_destination(self):
        """VF=$FF, V1=$01; 8F14 → result $00 overwritten by carry 1"""
        vm = make_vm(0x6FFF, 0x6101, 0x8F14)
        run(vm, 3)
        assert vm.regs.VF == 1

    def test_rnd_masked(self):
        vm = make_vm(0xC00F, rng=random.Random(1234))
        vm.step()
        assert vm.regs.V[0] <= 0x0F

    def test_rnd_zero_mask(self):
        vm = make_vm(0xC000)
        vm.step()
        assert vm.regs.V[0] == 0

    def test_rnd_is_reproducible_with_seed(self):
        a = make_vm(0xC0FF, rng=random.Random(42))
        b = make_vm(0xC0FF, rng=random.Random(42))
        a.step()
        b.step()
        assert a.regs.V[0] == b.regs.V[0]


# ═══════════════════════════════════════════════
# Index register and memory
# ═══════════════════════════════════════════════

class TestIndex:

    def test_ld_i(self):
        vm = make_vm(0xA123)
        vm.step()
        assert vm.regs.I == 0x123

    def test_add_i(self):
        vm = make_vm(0xA100, 0x6510, 0xF51E)
        run(vm, 3)
        assert vm.regs.I == 0x110

    def test_font_scenario(self):
        """00E0; 6005; F029 → I=25, [25..30) is the glyph for 5"""
        vm = make_vm(0x00E0, 0x6005, 0xF029)
        run(vm, 3)
        assert vm.regs.I == 25
        assert vm.mem.read_block(25, 5) == glyph(5)
        assert vm.mem.read_block(25, 5) == bytes([0xF0, 0x80, 0xF0, 0x10, 0xF0])

    def test_ld_f_uses_low_nibble(self):
        vm = make_vm(0x60F3, 0xF029)
        run(vm, 2)
        assert vm.regs.I == 15

    def test_bcd(self):
        """V0=254; A300; F033 → [300..303) = 2, 5, 4"""
        vm = make_vm(0x60FE, 0xA300, 0xF033)
        run(vm, 3)
        assert vm.mem.read_block(0x300, 3) == bytes([2, 5, 4])

    def test_bcd_out_of_bounds(self):
        vm = make_vm(0xAFFE, 0xF033)
        vm.step()
        with pytest.raises(OutOfBounds):
            vm.step()

    def test_store_regs_inclusive(self):
        """V0..V2 = 1,2,3; A300; F255 → [300..303) = 1,2,3, [303] untouched"""
        vm = make_vm(0x6001, 0x6102, 0x6203, 0x6304, 0xA300, 0xF255)
        run(vm, 6)
        assert vm.mem.read_block(0x300, 4) == bytes([1, 2, 3, 0])
        assert vm.regs.I == 0x300

    def test_load_regs_inclusive(self):
        vm = make_vm(0xA300, 0xF265)
        vm.mem.write_block(0x300, bytes([9, 8, 7, 6]))
        run(vm, 2)
        assert list(vm.regs.V[:4]) == [9, 8, 7, 0]
        assert vm.regs.I == 0x300

    def test_store_regs_out_of_bounds(self):
        vm = make_vm(0xAFFF, 0xF155)
        vm.step()
        with pytest.raises(OutOfBounds):
            vm.step()

    def test_load_regs_out_of_bounds(self):
        """AFFE; F265: V0..V2 would read $FFE..$1000"""
        vm = make_vm(0x6109, 0xAFFE, 0xF265)
        run(vm, 2)
        with pytest.raises(OutOfBounds):
            vm.step()
        assert vm.regs.V[1] == 9

    def test_store_regs_last_byte_fits(self):
        vm = make_vm(0x6077, 0xAFFF, 0xF055)
        run(vm, 3)
        assert vm.mem.read8(0xFFF) == 0x77


# ═══════════════════════════════════════════════
# Timers and keypad
# ═══════════════════════════════════════════════

class TestTimersAndKeys:

    def test_set_and_get_delay(self):
        vm = make_vm(0x6030, 0xF015, 0xF107)
        run(vm, 3)
        assert vm.delay_timer.value == 0x30
        assert vm.regs.V[1] == 0x30

    def test_set_sound(self):
        vm = make_vm(0x6003, 0xF018)
        run(vm, 2)
        assert vm.sound_timer.value == 3
        assert vm.sound_on

    def test_key_wait_rewinds_pc(self):
        """F30A with no key held → PC stays on the instruction"""
        vm = make_vm(0xF30A)
        vm.step()
        assert vm.regs.PC == 0x200
        vm.step()
        assert vm.regs.PC == 0x200

    def test_key_wait_takes_lowest_key(self):
        vm = make_vm(0xF30A)
        vm.set_keypad((1 << 0xB) | (1 << 0x4))
        vm.step()
        assert vm.regs.PC == 0x202
        assert vm.regs.V[3] == 0x4


# ═══════════════════════════════════════════════
# Display instructions
# ═══════════════════════════════════════════════

class TestDrawInstruction:

    def test_cls(self):
        vm = make_vm(0x00E0)
        vm.display.draw_sprite(0, 0, b'\xFF')
        vm.display.consume()
        vm.step()
        assert vm.display.lit_count() == 0
        assert vm.display.dirty

    def test_drw_glyph(self):
        """V0=0; F029 (glyph 0); D005 → 0 glyph at (0,0), VF=0"""
        vm = make_vm(0x6000, 0xF029, 0xD005)
        run(vm, 3)
        assert vm.display.rows()[0].startswith('####....')
        assert vm.display.rows()[1].startswith('#..#....')
        assert vm.regs.VF == 0
        assert vm.display.dirty

    def test_drw_twice_is_self_inverse(self):
        vm = make_vm(0x600A, 0x610C, 0xA000, 0xD015, 0xD015)
        run(vm, 4)
        assert vm.regs.VF == 0
        vm.step()
        assert vm.regs.VF == 1
        assert vm.display.lit_count() == 0

    def test_drw_uses_vx_vy(self):
        """Original test: sprite rows $FF,$00,$FF,$FF at (2,3)"""
        vm = Chip8()
        vm.regs.V[0] = 2
        vm.regs.V[1] = 3
        vm.regs.I = ROM_START
        vm.mem.write_block(ROM_START, bytes([0xFF, 0x00, 0xFF, 0xFF]))
        vm.mem.write_block(0x300, (0xD014).to_bytes(2, 'big'))
        vm.regs.PC = 0x300
        vm.step()
        for row in (3, 5, 6):
            assert vm.display.rows()[row][2:10] == '#' * 8
        assert vm.display.rows()[4] == '.' * 64

    def test_drw_out_of_bounds(self):
        vm = make_vm(0xAFFD, 0xD005)
        vm.step()
        with pytest.raises(OutOfBounds):
            vm.step()

    def test_drw_costs_more_than_a_frame(self):
        vm = make_vm(0xD001)
        _, cost = vm.step()
        assert cost == INSTRUCTION_COST_US['DRW']
        assert cost > vm.frame_budget_us


# ═══════════════════════════════════════════════
# Trace / reset
# ═══════════════════════════════════════════════

class TestTraceAndReset:

    def test_trace_lines(self):
        vm = make_vm(0x6005, 0xA123)
        vm.enable_trace()
        run(vm, 2)
        lines = vm.get_trace().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith('$200: LD V0, $05')
        assert 'I=123' in lines[1]

    def test_trace_records_fault(self):
        vm = make_vm(0x6005, 0x00EE)
        vm.enable_trace()
        vm.step()
        with pytest.raises(StackUnderflow):
            vm.step()
        lines = vm.get_trace().splitlines()
        assert len(lines) == 2
        assert lines[1].startswith("$202: ERROR: ")

    def test_trace_records_decode_fault(self):
        vm = make_vm(0xFFFF)
        vm.enable_trace()
        with pytest.raises(DecodeError):
            vm.step()
        assert vm.get_trace() == "$200: ERROR: Unknown opcode $FFFF at $200"

    def test_trace_off_by_default(self):
        vm = make_vm(0x6005)
        vm.step()
        assert vm.get_trace() == ''

    def test_reset_keeps_program(self):
        vm = make_vm(0x6005, 0xA300, 0xF055, 0x00E0)
        run(vm, 3)
        vm.reset()
        assert vm.regs.PC == ROM_START
        assert vm.regs.V[0] == 0
        assert vm.mem.read8(0x300) == 0
        assert vm.mem.read16(0x200) == 0x6005
        assert vm.fetch().op is Op.LD_BYTE
