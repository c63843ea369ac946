#!/usr/bin/env python3
"""
toycc - toy CPU toolchain CLI

Usage:
    python toycc.py asm <input.asm> [-o output.bin] [--listing]
    python toycc.py compile <input.mc> [-o output.bin]
    python toycc.py run <input> [--format asm|mc|hex|bin] [--base 0x0000]
                                [--max-steps N] [--input TEXT] [--dump] [--mem ADDR ...]
    python toycc.py disasm <input.bin> [--base 0x0000]

Program format for `run` is auto-detected from the file extension:
    .asm / .s  → assembly text
    .mc / .c   → Micro-C source
    .hex       → whitespace-separated hex bytes ("03 05 FF")
    other      → raw binary image

Examples:
    python toycc.py compile sum.mc -o sum.bin
    python toycc.py run hello.asm --dump
    python toycc.py run sum.mc --mem 0x10 0x11 -v
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from microc import compile_source, assemble, parse_hex_program, Assembler, AssemblerError
from microc.opcodes import USER_PROGRAM_START_ADDRESS
from toyemu import ToyEmulator, ConsolePort
from toyemu.cpu.decoder import disassemble
from toyemu.log_setup import setup_logging

log = logging.getLogger("toycc")

FORMAT_BY_EXT = {
    '.asm': 'asm', '.s': 'asm',
    '.mc': 'mc', '.c': 'mc',
    '.hex': 'hex',
}


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("$"):
        return int(value[1:], 16)
    return int(value)


def _int_arg(value: str) -> int:
    try:
        return parse_int_arg(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")


def _hex_str(data: bytes) -> str:
    return ' '.join(f'{b:02X}' for b in data)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _build_image(path: str, fmt: str, base: int = USER_PROGRAM_START_ADDRESS) -> bytes:
    """Translate the input file into a program image (b"" on failure).

    Assembly labels resolve relative to base, the address the image is loaded at.
    """
    if fmt == 'asm':
        return assemble(_read_text(path), origin=base)
    if fmt == 'mc':
        return compile_source(_read_text(path))
    if fmt == 'hex':
        return parse_hex_program(_read_text(path))
    return Path(path).read_bytes()


def _write_or_print(image: bytes, output: str):
    if output:
        Path(output).write_bytes(image)
        log.info("Wrote %d bytes to %s", len(image), output)
    else:
        print(_hex_str(image))


# ──────────────────────────────────────────────
# Subcommands
# ──────────────────────────────────────────────

def cmd_asm(args) -> int:
    source = _read_text(args.input)
    asm = Assembler(origin=args.base)
    try:
        image = asm.assemble(source)
    except AssemblerError as e:
        log.error("Assembler error: %s", e)
        print("Failed to assemble program.", file=sys.stderr)
        return 1
    if args.listing:
        print(asm.get_listing())
    _write_or_print(image, args.output)
    return 0


def cmd_compile(args) -> int:
    image = compile_source(_read_text(args.input))
    if not image:
        print("Failed to compile program.", file=sys.stderr)
        return 1
    _write_or_print(image, args.output)
    return 0


def cmd_run(args) -> int:
    fmt = args.format
    if fmt is None:
        ext = os.path.splitext(args.input)[1].lower()
        fmt = FORMAT_BY_EXT.get(ext, 'bin')

    image = _build_image(args.input, fmt, args.base)
    if not image:
        print(f"Failed to build program from '{args.input}'.", file=sys.stderr)
        return 1

    console = ConsolePort()
    if args.input_text is not None:
        console.inject_rx(args.input_text)

    emu = ToyEmulator(console=console)
    if not emu.load_program(image, args.base):
        return 1
    print(f"Program '{args.input}' loaded at 0x{args.base:04X} ({len(image)} bytes).")

    reason = emu.run(max_steps=args.max_steps)
    if console.console_output:
        print()
    print(f"Program finished ({reason.value}, {emu.steps} steps).")

    if args.dump:
        print(emu.dump_state().display())
    for addr in args.mem or []:
        try:
            value = emu.read_memory(addr)
        except IndexError:
            print(f"Invalid memory address: 0x{addr:X}")
            continue
        print(f"Memory at 0x{addr:04X}: 0x{value:02X} ({value})")
    return 0


def cmd_disasm(args) -> int:
    data = Path(args.input).read_bytes()
    for addr, text in disassemble(data, args.base):
        print(f"${addr:04X}  {text}")
    return 0


# ──────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toycc",
        description="Assembler, Micro-C compiler and emulator for the toy CPU",
    )
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show the instruction trace and compiler details")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only report errors")
    parser.add_argument("--log-dir", default=None,
                        help="Also write a DEBUG log file into this directory")
    parser.add_argument("--version", action="version", version="toycc 0.1.0")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("asm", help="Assemble a .asm file")
    p.add_argument("input")
    p.add_argument("-o", "--output", help="Write the binary image here (default: hex to stdout)")
    p.add_argument("--listing", action="store_true", help="Print an address/bytes listing")
    p.add_argument("--base", type=_int_arg, default=USER_PROGRAM_START_ADDRESS,
                   help="Origin address for labels")
    p.set_defaults(func=cmd_asm)

    p = sub.add_parser("compile", help="Compile a Micro-C file")
    p.add_argument("input")
    p.add_argument("-o", "--output", help="Write the binary image here (default: hex to stdout)")
    p.set_defaults(func=cmd_compile)

    p = sub.add_parser("run", help="Translate, load and run a program")
    p.add_argument("input")
    p.add_argument("--format", choices=["asm", "mc", "hex", "bin"], default=None,
                   help="Input format (auto-detected from the extension if not set)")
    p.add_argument("--base", type=_int_arg, default=USER_PROGRAM_START_ADDRESS,
                   help="Load address (default 0x0000)")
    p.add_argument("--max-steps", type=_int_arg, default=None,
                   help="Stop after this many instructions")
    p.add_argument("--input", dest="input_text", default=None,
                   help="Characters fed to READ_CHAR before stdin")
    p.add_argument("--dump", action="store_true", help="Print the CPU state afterwards")
    p.add_argument("--mem", type=_int_arg, nargs="+", help="Print these memory cells afterwards")
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("disasm", help="Disassemble a binary image")
    p.add_argument("input")
    p.add_argument("--base", type=_int_arg, default=USER_PROGRAM_START_ADDRESS)
    p.set_defaults(func=cmd_disasm)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    setup_logging("toycc", console_level=level, log_dir=args.log_dir)

    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
