"""
AST Node definitions for the Micro-C compiler.

Micro-C is straight-line code: a program is a list of statements, and a
statement is either a declaration or an assignment. Each node records the
line/column of its first token for error reporting.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class ASTNode:
    """Base class for all AST nodes."""
    line: int = 0
    col: int = 0


# ──────────────────────────────────────────────
# Operands
# ──────────────────────────────────────────────

@dataclass
class IntLiteral(ASTNode):
    """Decimal constant (may be negative before byte truncation)."""
    value: int = 0


@dataclass
class VarRef(ASTNode):
    """Reference to a declared variable."""
    name: str = ""


Operand = Union[IntLiteral, VarRef]


# ──────────────────────────────────────────────
# Statements
# ──────────────────────────────────────────────

@dataclass
class Declaration(ASTNode):
    """int name;"""
    name: str = ""


@dataclass
class Assignment(ASTNode):
    """name = left;  or  name = left op right;"""
    target: str = ""
    left: Optional[Operand] = None
    op: Optional[str] = None
    right: Optional[Operand] = None

    @property
    def is_binary(self) -> bool:
        return self.op is not None


Statement = Union[Declaration, Assignment]


@dataclass
class Program(ASTNode):
    """Root node: the statements in source order."""
    statements: List[Statement] = field(default_factory=list)
