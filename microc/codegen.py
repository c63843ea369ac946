"""
Micro-C Code Generator for the toy CPU.

Translates Micro-C statements directly into opcode bytes (no assembly
text in between).

Register usage:
  - A: left operand and result
  - B: right operand of a binary expression

Memory layout:
  - $0000-...: program image (loaded at USER_PROGRAM_START_ADDRESS)
  - $10-$FF:   variables, one byte each, allocated in declaration order

Operand values:
  The instruction set has no load-from-memory opcode; LOAD_A / LOAD_B only
  take an immediate byte. Micro-C has no control flow, so every variable's
  value is known at each point of the program. The generator tracks those
  values and emits a variable operand as its current value. STORE_A still
  writes every result to the variable's address, so memory holds the
  results after the program runs.

Statement encodings:
  x = v;          LOAD_A v   STORE_A &x
  x = v1 + v2;    LOAD_A v1  LOAD_B v2  ADD_A_B  STORE_A &x
  x = v1 - v2;    LOAD_A v1  LOAD_B v2  SUB_A_B  STORE_A &x
  <end>           HALT
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, Optional

from .ast_nodes import *
from .lexer import CompileError
from .opcodes import Opcode, USER_PROGRAM_START_ADDRESS, VARIABLE_BASE_ADDRESS

log = logging.getLogger(__name__)

MAX_VARIABLE_ADDRESS = 0xFF     # STORE_A operand is one byte


class CodeGenError(CompileError):
    def __init__(self, message: str, node: ASTNode):
        self.node = node
        super().__init__(f"Code generation error at L{node.line}:{node.col}: {message}")


class CodeGenerator:
    """Emits toy-CPU bytes for Micro-C statements, one statement at a time."""

    def __init__(self, var_base: int = VARIABLE_BASE_ADDRESS,
                 program_base: int = USER_PROGRAM_START_ADDRESS):
        self.var_base = var_base
        self.program_base = program_base
        self.variables: Dict[str, int] = {}   # name -> address
        self.values: Dict[str, int] = {}      # name -> current value
        self.next_var_addr = var_base
        self.code = bytearray()

    # ── Entry points ──────────────────────────

    def generate(self, statements: Iterable[Statement]) -> bytes:
        """Emit every statement, then the terminating HALT."""
        for stmt in statements:
            self.emit_statement(stmt)
        return self.finish()

    def emit_statement(self, stmt: Statement):
        if isinstance(stmt, Declaration):
            self._declare(stmt)
        elif isinstance(stmt, Assignment):
            self._assign(stmt)
        else:
            raise CodeGenError(f"Unsupported statement {type(stmt).__name__}", stmt)

    def finish(self) -> bytes:
        self.code.append(Opcode.HALT)
        self._check_overlap()
        return bytes(self.code)

    # ── Statements ────────────────────────────

    def _declare(self, decl: Declaration):
        if decl.name in self.variables:
            raise CodeGenError(f"Variable '{decl.name}' already declared", decl)
        if self.next_var_addr > MAX_VARIABLE_ADDRESS:
            raise CodeGenError(
                f"No variable space left for '{decl.name}' "
                f"(addresses must be <= ${MAX_VARIABLE_ADDRESS:02X})", decl)
        self.variables[decl.name] = self.next_var_addr
        self.next_var_addr += 1
        log.info("Declared variable '%s' at address $%02X", decl.name, self.variables[decl.name])

    def _assign(self, stmt: Assignment):
        if stmt.target not in self.variables:
            raise CodeGenError(f"Undefined variable '{stmt.target}'", stmt)

        left = self._operand_value(stmt.left)
        if not stmt.is_binary:
            result = left
            self._emit(Opcode.LOAD_A, left)
        else:
            right = self._operand_value(stmt.right)
            self._emit(Opcode.LOAD_A, left)
            self._emit(Opcode.LOAD_B, right)
            if stmt.op == '+':
                self._emit(Opcode.ADD_A_B)
                result = (left + right) & 0xFF
            elif stmt.op == '-':
                self._emit(Opcode.SUB_A_B)
                result = (left - right) & 0xFF
            else:
                raise CodeGenError(f"Unknown operator '{stmt.op}'", stmt)

        self._emit(Opcode.STORE_A, self.variables[stmt.target])
        self.values[stmt.target] = result

    # ── Helpers ───────────────────────────────

    def _operand_value(self, node: Operand) -> int:
        """Byte value an operand has at this point of the program."""
        if isinstance(node, IntLiteral):
            if not -0x80 <= node.value <= 0xFF:
                log.warning("L%d: literal %d truncated to one byte ($%02X)",
                            node.line, node.value, node.value & 0xFF)
            return node.value & 0xFF
        if isinstance(node, VarRef):
            if node.name not in self.variables:
                raise CodeGenError(f"Undefined variable '{node.name}'", node)
            if node.name not in self.values:
                log.warning("L%d: variable '%s' read before assignment, using 0",
                            node.line, node.name)
            return self.values.get(node.name, 0)
        raise CodeGenError(f"Invalid operand {node!r}", node)

    def _emit(self, opcode: Opcode, operand: Optional[int] = None):
        self.code.append(opcode)
        if operand is not None:
            self.code.append(operand & 0xFF)

    def _check_overlap(self):
        """Warn when the program image runs into the variable area."""
        if not self.variables:
            return
        code_end = self.program_base + len(self.code)
        if self.program_base < self.next_var_addr and self.var_base < code_end:
            log.warning("Program image $%04X-$%04X overlaps variables at $%02X-$%02X; "
                        "STORE_A will overwrite code",
                        self.program_base, code_end - 1, self.var_base, self.next_var_addr - 1)
