#!/usr/bin/env python3
"""
chip8run - CHIP-8 VM runner

Usage:
    python chip8run.py <rom.ch8> [--frames N] [--keys 1,q,...] [--seed S]
                                 [--headless] [--trace] [--disasm]
                                 [--dump ADDR:LEN] [--diff] [--unpaced]
                                 [-v] [--log-dir DIR]

The terminal front end is display-only: the held keys are fixed for the
whole run with --keys, using the host layout

    1 2 3 4 / q w e r / a s d f / z x c v

The screen runs at 60 frames per second of wall-clock time. --headless
and --unpaced run frames as fast as the host allows.

Exit codes:
    0  ran the requested number of frames
    1  the program faulted (bad opcode, stack imbalance, I out of range)
    2  bad arguments or the ROM could not be loaded

Examples:
    python chip8run.py IBM.ch8 --frames 60
    python chip8run.py INVADERS.ch8 --frames 600 --keys q,e
    python chip8run.py PONG.ch8 --disasm
    python chip8run.py test.ch8 --headless --frames 10 --dump 0x300:32
    python chip8run.py test.ch8 --headless --frames 10 --diff
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from chip8_vm import Chip8, Chip8Error, ImageTooLarge, __version__
from chip8_vm.config import FRAME_PERIOD_S, MEM_SIZE, ROM_START
from chip8_vm.cpu.decoder import disassemble
from chip8_vm.log_setup import setup_logging
from chip8_vm.mem.memory import read_rom
from chip8_vm.periph.keypad import keypad_from_keys
from chip8_vm.ui.base import NullFrontEnd
from chip8_vm.ui.console import ConsoleFrontEnd

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_USAGE = 2


def parse_int_arg(value: str) -> int:
    """Parse an integer that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("$"):
        return int(value[1:], 16)
    return int(value)


def parse_dump_arg(value: str) -> tuple:
    """ADDR:LEN -> (addr, length)."""
    addr, _, length = value.partition(":")
    return parse_int_arg(addr), parse_int_arg(length or "256")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8run",
        description="Run a CHIP-8 program in the terminal",
    )
    parser.add_argument("rom", help="Program image (.ch8)")
    parser.add_argument("--frames", type=int, default=600,
                        help="Number of 60 Hz frames to run (default: 600)")
    parser.add_argument("--keys", default="",
                        help="Comma separated host keys held for the whole run")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the RND instruction")
    parser.add_argument("--headless", action="store_true",
                        help="Do not draw the screen")
    parser.add_argument("--trace", action="store_true",
                        help="Print an instruction trace after the run")
    parser.add_argument("--disasm", action="store_true",
                        help="List the program and exit")
    parser.add_argument("--dump", type=parse_dump_arg, default=None,
                        help="Hex dump ADDR:LEN of memory after the run")
    parser.add_argument("--diff", action="store_true",
                        help="List program RAM bytes changed by the run")
    parser.add_argument("--unpaced", action="store_true",
                        help="Do not hold the screen to 60 frames per second")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="More console logging (-v info, -vv debug)")
    parser.add_argument("--log-dir", type=Path, default=None,
                        help="Also write a full DEBUG log file here")
    parser.add_argument("--version", action="version",
                        version=f"chip8run {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    log = setup_logging("chip8_vm", console_level=console_level, log_dir=args.log_dir)

    try:
        rom = read_rom(args.rom)
    except (OSError, ImageTooLarge) as e:
        log.error("Cannot load %s: %s", args.rom, e)
        return EXIT_USAGE

    if args.disasm:
        for line in disassemble(rom):
            print(line)
        return EXIT_OK

    rng = random.Random(args.seed) if args.seed is not None else None
    vm = Chip8(rng=rng)
    vm.load_program(rom)
    vm.enable_trace(args.trace)

    key_mask = keypad_from_keys(k for k in args.keys.split(",") if k)
    if args.headless:
        front_end = NullFrontEnd(key_mask=key_mask)
    else:
        front_end = ConsoleFrontEnd(key_mask=key_mask)
    paced = not (args.headless or args.unpaced)

    before = vm.mem.snapshot(ROM_START, MEM_SIZE - 1) if args.diff else None

    status = EXIT_OK
    try:
        reason = vm.drive(front_end, max_frames=args.frames,
                          frame_period_s=FRAME_PERIOD_S if paced else None)
        log.info("Stopped: %s after %d frames, %d instructions",
                 reason.value, vm.frames, vm.instructions)
    except Chip8Error as e:
        log.error("Machine fault at frame %d: %s", vm.frames, e)
        log.error("Registers: %s", vm.regs.display())
        status = EXIT_FAULT

    if args.trace:
        print(vm.get_trace())
    if args.dump is not None:
        addr, length = args.dump
        print(vm.mem.hexdump(addr, length))
    if before is not None:
        after = vm.mem.snapshot(ROM_START, MEM_SIZE - 1)
        changes = vm.mem.diff_snapshots(before, after, ROM_START)
        for addr, (old, new) in sorted(changes.items()):
            print(f"{addr:03X}: {old:02X} -> {new:02X}")
        log.info("%d bytes of program RAM changed", len(changes))

    return status


if __name__ == "__main__":
    sys.exit(main())
