# Toy CPU Emulator - fetch/decode/execute engine for microc program images
# Part of the toyvm toolchain
#
#   emu.py           ToyEmulator (load_image / step / run / dump_state)
#   syscall.py       PRINT_CHAR / READ_CHAR trap handler
#   cpu/             registers, decoder, ALU
#   mem/             64K memory + separate 256-byte stack
#   periph/          character console
#   log_setup.py     logger configuration for front ends

from .emu import ToyEmulator, StopReason, MachineSnapshot
from .mem.memory import MemoryCapacityError
from .periph.console import ConsolePort

__all__ = ['ToyEmulator', 'StopReason', 'MachineSnapshot', 'MemoryCapacityError', 'ConsolePort']
