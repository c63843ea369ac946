"""
Toy CPU Execution Engine - Main Emulator Class

This is the top-level class that integrates:
  - CPU registers (cpu/regs.py)
  - Memory and the separate stack (mem/memory.py)
  - Opcode decoder (cpu/decoder.py)
  - ALU operations (cpu/alu.py)
  - Syscall handler + console (syscall.py, periph/console.py)

Execution model (one step):
  1. Check PC is inside memory
  2. Fetch opcode at PC, PC += 1
  3. For LOAD_A / LOAD_B / STORE_A / JMP fetch the operand byte, PC += 1
  4. Execute the instruction handler → update registers, memory, stack
  5. Record one trace line: "[PC: 0x0000] LOAD_A 5"

Termination reasons:
  - HALT:     HALT instruction
  - ILLEGAL:  byte at PC is not an opcode
  - BOUNDS:   PC (or an operand byte) outside memory
  - TIMEOUT:  run(max_steps=...) limit reached
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from microc.opcodes import Opcode, USER_PROGRAM_START_ADDRESS
from .cpu.regs import Registers
from .cpu.decoder import decode_opcode, IllegalOpcode, PCOutOfBounds
from .cpu import alu
from .mem.memory import Memory, Stack, MemoryCapacityError
from .periph.console import ConsolePort
from .syscall import SyscallHandler

log = logging.getLogger(__name__)
trace_log = logging.getLogger("toyemu.trace")


class StopReason(Enum):
    HALT = 'HALT'
    ILLEGAL = 'ILLEGAL'
    BOUNDS = 'BOUNDS'
    TIMEOUT = 'TIMEOUT'


@dataclass(frozen=True)
class MachineSnapshot:
    """Read-only copy of the register state."""
    A: int
    B: int
    PC: int
    SP: int
    privileged: bool
    stop_reason: Optional[StopReason] = None

    def display(self) -> str:
        return "\n".join([
            "--- CPU State ---",
            f"A: {self.A}, B: {self.B}",
            f"PC: 0x{self.PC:04X}, SP: 0x{self.SP:04X}",
            f"Privileged: {'Yes' if self.privileged else 'No'}",
            "-----------------",
        ])


class ToyEmulator:
    """Toy CPU execution engine.

    Usage:
        emu = ToyEmulator()
        emu.load_program(compile_source(src))
        reason = emu.run()
        print(emu.dump_state().display())
        print(emu.read_memory(0x10))
    """

    DEFAULT_TRACE_DEPTH = 1000

    def __init__(self, console: Optional[ConsolePort] = None,
                 trace_depth: int = DEFAULT_TRACE_DEPTH):
        self.regs = Registers()
        self.mem = Memory()
        self.stack = Stack()
        self.console = console if console is not None else ConsolePort()
        self.syscall = SyscallHandler(self.regs, self.console)

        self.stop_reason: Optional[StopReason] = None
        self.steps: int = 0
        self._fetch_pc: int = 0

        # Most recent trace lines, oldest dropped first
        self.trace: deque = deque(maxlen=trace_depth)

        # Opcode → handler(operand) -> trace text (None if the handler traced itself)
        self._dispatch: Dict[int, Callable[[Optional[int]], Optional[str]]] = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_image(self, data: bytes, base_addr: int = USER_PROGRAM_START_ADDRESS) -> bool:
        """Copy a program image into memory at base_addr.

        Returns False (and writes nothing) if the image does not fit.
        """
        try:
            self.mem.load_binary(bytes(data), base_addr)
        except MemoryCapacityError as e:
            log.error("Error: %s", e)
            return False
        log.debug("Loaded %d bytes at 0x%04X", len(data), base_addr)
        return True

    def load_program(self, data: bytes, base_addr: int = USER_PROGRAM_START_ADDRESS) -> bool:
        """load_image() and point PC at the first byte."""
        if not self.load_image(data, base_addr):
            return False
        self.regs.PC = base_addr
        self.stop_reason = None
        return True

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> bool:
        """Execute one instruction. Returns False on halt or a decode error."""
        pc = self.regs.PC
        try:
            info, operand, next_pc = decode_opcode(self.mem, pc)
        except PCOutOfBounds as e:
            log.error("Error: %s. Halting.", e)
            self.stop_reason = StopReason.BOUNDS
            return False
        except IllegalOpcode as e:
            self.regs.PC = pc + 1
            log.error("%s", e)
            self.stop_reason = StopReason.ILLEGAL
            return False

        self.regs.PC = next_pc
        self._fetch_pc = pc
        text = self._dispatch[info.code](operand)
        if text is not None:
            self._record(pc, text)
        self.steps += 1

        if info.code == Opcode.HALT:
            self.stop_reason = StopReason.HALT
            return False
        return True

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Call step() until it returns False.

        With max_steps, stop with TIMEOUT after that many instructions.
        """
        executed = 0
        while max_steps is None or executed < max_steps:
            if not self.step():
                return self.stop_reason
            executed += 1
        self.stop_reason = StopReason.TIMEOUT
        log.warning("Stopped after %d steps (PC=0x%04X)", executed, self.regs.PC)
        return self.stop_reason

    def reset(self):
        """Zero PC, A and B. Memory, the stack and SP are kept."""
        self.regs.reset()
        self.stop_reason = None

    # ══════════════════════════════════════════════
    # Inspection
    # ══════════════════════════════════════════════

    def dump_state(self) -> MachineSnapshot:
        r = self.regs
        return MachineSnapshot(r.A, r.B, r.PC, r.SP, r.privileged, self.stop_reason)

    def read_memory(self, address: int) -> int:
        return self.mem.read8(address)

    def _record(self, pc: int, text: str):
        line = f"[PC: 0x{pc:04X}] {text}"
        self.trace.append(line)
        trace_log.debug(line)

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════

    def _build_dispatch(self) -> dict:
        return {
            Opcode.LOAD_A:  self._op_load_a,
            Opcode.LOAD_B:  self._op_load_b,
            Opcode.STORE_A: self._op_store_a,
            Opcode.ADD_A_B: self._op_add_a_b,
            Opcode.SUB_A_B: self._op_sub_a_b,
            Opcode.PUSH_B:  self._op_push_b,
            Opcode.POP_B:   self._op_pop_b,
            Opcode.JMP:     self._op_jmp,
            Opcode.SYSCALL: self._op_syscall,
            Opcode.HALT:    self._op_halt,
        }

    def _op_load_a(self, operand: int) -> str:
        self.regs.A = operand
        return f"LOAD_A {operand}"

    def _op_load_b(self, operand: int) -> str:
        self.regs.B = operand
        return f"LOAD_B {operand}"

    def _op_store_a(self, operand: int) -> str:
        self.mem.write8(operand, self.regs.A)
        return f"STORE_A at 0x{operand:02x}"

    def _op_add_a_b(self, operand: None) -> str:
        self.regs.A = alu.add8(self.regs.A, self.regs.B)
        return f"ADD_A_B -> A={self.regs.A}"

    def _op_sub_a_b(self, operand: None) -> str:
        self.regs.A = alu.sub8(self.regs.A, self.regs.B)
        return f"SUB_A_B -> A={self.regs.A}"

    def _op_push_b(self, operand: None) -> str:
        sp = self.stack.push(self.regs.SP, self.regs.B)
        if sp == self.regs.SP:
            return "PUSH_B (stack full, ignored)"
        self.regs.SP = sp
        return "PUSH_B"

    def _op_pop_b(self, operand: None) -> str:
        sp, value = self.stack.pop(self.regs.SP)
        if value is None:
            return "POP_B (stack empty, ignored)"
        self.regs.SP = sp
        self.regs.B = value
        return "POP_B"

    def _op_jmp(self, operand: int) -> str:
        self.regs.PC = operand
        return f"JMP to 0x{operand:02x}"

    def _op_syscall(self, operand: None) -> None:
        # Traced before dispatch: READ_CHAR may block
        self._record(self._fetch_pc, f"SYSCALL {self.regs.A}")
        self.syscall()
        return None

    def _op_halt(self, operand: None) -> str:
        return "HALT"
