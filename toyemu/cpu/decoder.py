"""
Toy CPU Opcode Decoder / Disassembler

Maps opcode bytes to their table entry and reads the operand byte, using
the same opcode table as the assembler (microc.opcodes), so the decoder
and both front ends agree on every operand width.

Decode errors:
  PCOutOfBounds - the opcode or operand byte lies past the end of memory
  IllegalOpcode - the byte at PC is not in the opcode table
"""

from __future__ import annotations
from typing import Iterator, Optional, Tuple

from microc.opcodes import Opcode, OpcodeInfo, instruction_size, lookup_code


class DecodeError(Exception):
    """Base class for decode errors."""
    def __init__(self, message: str, pc: int):
        self.pc = pc
        super().__init__(message)


class PCOutOfBounds(DecodeError):
    def __init__(self, pc: int):
        super().__init__(f"Program Counter out of bounds: 0x{pc:X}", pc)


class IllegalOpcode(DecodeError):
    def __init__(self, opcode: int, pc: int):
        self.opcode = opcode
        super().__init__(f"Unknown instruction: 0x{opcode:02x} at 0x{pc:04X}", pc)


def decode_opcode(memory, pc: int) -> Tuple[OpcodeInfo, Optional[int], int]:
    """Decode the instruction at pc.

    Returns (info, operand, next_pc). operand is None for inherent opcodes.
    """
    size = len(memory)
    if not 0 <= pc < size:
        raise PCOutOfBounds(pc)
    opcode = memory.read8(pc)
    info = lookup_code(opcode)
    if info is None:
        raise IllegalOpcode(opcode, pc)
    length = instruction_size(info.mnemonic)

    operand = None
    if length > 1:
        if pc + 1 >= size:
            raise PCOutOfBounds(pc + 1)
        operand = memory.read8(pc + 1)
    return info, operand, pc + length


def format_instruction(info: OpcodeInfo, operand: Optional[int]) -> str:
    """Render one decoded instruction the way the trace shows it."""
    if operand is None:
        return info.mnemonic
    if info.code in (Opcode.STORE_A, Opcode.JMP):
        return f"{info.mnemonic} 0x{operand:02x}"
    return f"{info.mnemonic} {operand}"


def disassemble(data: bytes, base_addr: int = 0) -> Iterator[Tuple[int, str]]:
    """Yield (address, text) for each instruction in data.

    Bytes that are not opcodes, or an operand-bearing opcode cut off at the
    end of data, are shown as DB directives.
    """
    i = 0
    while i < len(data):
        addr = base_addr + i
        info = lookup_code(data[i])
        length = instruction_size(info.mnemonic) if info is not None else 1
        if info is None or i + length > len(data):
            yield addr, f"DB 0x{data[i]:02X}"
            i += 1
            continue
        operand = data[i + 1] if length > 1 else None
        yield addr, format_instruction(info, operand)
        i += length
