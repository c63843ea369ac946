"""
Toy CPU Register Set

Register model:
  A          - 8-bit general register (left operand / result)
  B          - 8-bit general register (right operand, stack transfer)
  PC         - 16-bit program counter
  SP         - 16-bit stack pointer into the separate 256-byte stack
               (grows upward: SP is the next free slot)
  privileged - True only while the syscall handler is running
"""


class Registers:
    """Toy CPU register set."""

    __slots__ = ('A', 'B', 'PC', 'SP', 'privileged')

    def __init__(self):
        self.A: int = 0
        self.B: int = 0
        self.PC: int = 0
        self.SP: int = 0
        self.privileged: bool = False

    def reset(self):
        """Zero PC, A and B. SP and the privilege flag are left alone."""
        self.A = 0
        self.B = 0
        self.PC = 0
