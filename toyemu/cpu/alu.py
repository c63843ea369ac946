"""
Toy CPU ALU - 8-bit wraparound arithmetic.

There are no condition flags: results simply wrap modulo 256.
"""


def add8(a: int, b: int) -> int:
    """A + B, wrapping at 8 bits (250 + 10 -> 4)."""
    return (a + b) & 0xFF


def sub8(a: int, b: int) -> int:
    """A - B, wrapping at 8 bits (5 - 10 -> 251). Not saturating."""
    return (a - b) & 0xFF
