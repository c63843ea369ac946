"""
Toy CPU Syscall Handler

Entered only through the SYSCALL opcode. The syscall number is taken from
register A; register B carries the argument or the result.

  A = 1  PRINT_CHAR  write chr(B) to the console
  A = 2  READ_CHAR   block for one character, B <- its code

The privilege flag is raised for the duration of the call and always
lowered again before control returns to the engine. Nothing checks the
flag yet; it is visible through dump_state().
"""

from __future__ import annotations
import logging
from typing import Callable, Dict

from microc.opcodes import Syscall
from .cpu.regs import Registers
from .periph.console import ConsolePort

log = logging.getLogger(__name__)


class SyscallHandler:
    """Dispatches SYSCALL traps to console operations."""

    def __init__(self, regs: Registers, console: ConsolePort):
        self.regs = regs
        self.console = console
        self._dispatch: Dict[int, Callable[[], None]] = {
            Syscall.PRINT_CHAR: self._sys_print_char,
            Syscall.READ_CHAR: self._sys_read_char,
        }

    def __call__(self):
        self.regs.privileged = True
        try:
            handler = self._dispatch.get(self.regs.A)
            if handler is None:
                log.error("Unknown syscall number: %d", self.regs.A)
                return
            handler()
        finally:
            self.regs.privileged = False

    def _sys_print_char(self):
        self.console.write_char(self.regs.B)

    def _sys_read_char(self):
        value = self.console.read_char()
        if value is None:
            log.warning("READ_CHAR: end of input, B unchanged")
            return
        self.regs.B = value
