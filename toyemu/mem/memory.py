"""
Toy CPU Memory - flat 64K address space plus a separate stack.

Memory map:
  $0000-...    User program (USER_PROGRAM_START_ADDRESS)
  $0010-$00FF  Micro-C variables (one byte each)
  $1000        Kernel area (reserved, unused)

The stack is not part of the address space. It is a 256-byte array that
only PUSH_B / POP_B reach; pushing when full or popping when empty does
nothing.
"""

from __future__ import annotations
import logging
from typing import Optional, Tuple

from microc.opcodes import MEMORY_SIZE, STACK_SIZE

log = logging.getLogger(__name__)


class MemoryCapacityError(Exception):
    """Raised when a program image does not fit in memory."""
    def __init__(self, base_addr: int, length: int, capacity: int = MEMORY_SIZE):
        self.base_addr = base_addr
        self.length = length
        self.capacity = capacity
        super().__init__(
            f"Program too large for memory at address 0x{base_addr:04X} "
            f"({length} bytes, {capacity} byte address space)")


class Memory:
    """64K byte-addressable memory."""

    def __init__(self, size: int = MEMORY_SIZE):
        self.size = size
        self._data = bytearray(size)

    def __len__(self) -> int:
        return self.size

    def read8(self, addr: int) -> int:
        if not 0 <= addr < self.size:
            raise IndexError(f"Memory address out of range: 0x{addr:X}")
        return self._data[addr]

    def write8(self, addr: int, value: int):
        if not 0 <= addr < self.size:
            raise IndexError(f"Memory address out of range: 0x{addr:X}")
        self._data[addr] = value & 0xFF

    def load_binary(self, data: bytes, base_addr: int):
        """Copy data into memory at base_addr. Nothing is written if it does not fit."""
        if base_addr < 0 or base_addr + len(data) > self.size:
            raise MemoryCapacityError(base_addr, len(data), self.size)
        self._data[base_addr:base_addr + len(data)] = data


class Stack:
    """Fixed-size stack used only by PUSH_B / POP_B.

    The stack pointer is the index of the next free slot. It is held in the
    register file, so push/pop take and return it.
    """

    def __init__(self, size: int = STACK_SIZE):
        self.size = size
        self._data = bytearray(size)

    def push(self, sp: int, value: int) -> int:
        """Store value at sp and return the new SP. No-op when full."""
        if sp >= self.size:
            log.debug("Stack full (SP=0x%X), push ignored", sp)
            return sp
        self._data[sp] = value & 0xFF
        return sp + 1

    def pop(self, sp: int) -> Tuple[int, Optional[int]]:
        """Return (new SP, value). Value is None when the stack is empty."""
        if sp <= 0:
            log.debug("Stack empty, pop ignored")
            return sp, None
        sp -= 1
        return sp, self._data[sp]