"""
Opcode table for the toy CPU.

One table drives everything that needs to know the instruction set:
  - assembler.py: mnemonic lookup and per-line size accounting (pass 1)
                  and byte emission (pass 2)
  - codegen.py:   the Micro-C byte emitter
  - toyemu:       the decoder / execution engine

Instruction format:
  [opcode]            - inherent, 1 byte
  [opcode] [operand]  - one 8-bit operand, 2 bytes

The operand of STORE_A and JMP is an address, but it is still a single
byte, so only $00-$FF can be stored to or jumped to. Labels that resolve
above $FF are truncated by the assembler.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional

__all__ = [
    'Opcode', 'OpcodeInfo', 'Syscall', 'OPCODES', 'BY_CODE',
    'instruction_size', 'lookup_mnemonic', 'lookup_code',
    'MEMORY_SIZE', 'STACK_SIZE', 'USER_PROGRAM_START_ADDRESS',
    'KERNEL_START_ADDRESS', 'VARIABLE_BASE_ADDRESS',
]


# ──────────────────────────────────────────────
# Machine constants
# ──────────────────────────────────────────────

MEMORY_SIZE = 0x10000               # 64 KiB flat address space
STACK_SIZE = 0x100                  # separate 256-byte stack (PUSH_B / POP_B only)
USER_PROGRAM_START_ADDRESS = 0x0000
KERNEL_START_ADDRESS = 0x1000       # reserved, nothing is loaded there yet
VARIABLE_BASE_ADDRESS = 0x10        # first Micro-C variable slot


class Opcode(enum.IntEnum):
    # Data movement
    PUSH_B = 0x01
    POP_B = 0x02
    LOAD_A = 0x03
    LOAD_B = 0x04
    STORE_A = 0x05
    # Arithmetic
    ADD_A_B = 0x10
    SUB_A_B = 0x11
    # Control flow
    JMP = 0x20
    # System call
    SYSCALL = 0x30
    HALT = 0xFF


class Syscall(enum.IntEnum):
    PRINT_CHAR = 1
    READ_CHAR = 2


@dataclass(frozen=True)
class OpcodeInfo:
    code: int
    mnemonic: str
    operand_width: int      # 0 or 1 byte
    description: str

    @property
    def size(self) -> int:
        return 1 + self.operand_width


# ──────────────────────────────────────────────
# Table construction
# ──────────────────────────────────────────────
# Format: _op(opcode, operand_width, description)

_by_name: Dict[str, OpcodeInfo] = {}
_by_code: Dict[int, OpcodeInfo] = {}


def _op(opcode: Opcode, operand_width: int, description: str):
    """Register an opcode entry in both directions."""
    info = OpcodeInfo(int(opcode), opcode.name, operand_width, description)
    if info.mnemonic in _by_name or info.code in _by_code:
        raise ValueError(f"Duplicate opcode entry: {info.mnemonic} (${info.code:02X})")
    _by_name[info.mnemonic] = info
    _by_code[info.code] = info


# ── Inherent ──
_op(Opcode.PUSH_B,  0, "stack[SP] <- B, SP <- SP+1")
_op(Opcode.POP_B,   0, "SP <- SP-1, B <- stack[SP]")
_op(Opcode.ADD_A_B, 0, "A <- A + B (mod 256)")
_op(Opcode.SUB_A_B, 0, "A <- A - B (mod 256)")
_op(Opcode.SYSCALL, 0, "trap to the syscall handler (number in A)")
_op(Opcode.HALT,    0, "stop execution")

# ── One-byte operand ──
_op(Opcode.LOAD_A,  1, "A <- imm8")
_op(Opcode.LOAD_B,  1, "B <- imm8")
_op(Opcode.STORE_A, 1, "memory[addr8] <- A")
_op(Opcode.JMP,     1, "PC <- addr8")

OPCODES: Mapping[str, OpcodeInfo] = MappingProxyType(_by_name)
BY_CODE: Mapping[int, OpcodeInfo] = MappingProxyType(_by_code)


def lookup_mnemonic(name: str) -> Optional[OpcodeInfo]:
    return OPCODES.get(name)


def lookup_code(code: int) -> Optional[OpcodeInfo]:
    return BY_CODE.get(code)


def instruction_size(mnemonic: str) -> int:
    """Encoded length in bytes (opcode + operand). KeyError if unknown."""
    return OPCODES[mnemonic].size
