"""
Statement parser for the Micro-C compiler.

Parses a token stream from the Lexer into the nodes defined in ast_nodes.
Grammar:

  statement   := declaration | assignment
  declaration := 'int' IDENT end
  assignment  := IDENT '=' operand [ ('+' | '-') operand ] end
  operand     := IDENT | INT_LITERAL | '-' INT_LITERAL
  end         := ';' | <line break> | <end of input>

A missing ';' is accepted when the statement is the last thing on its line.
Statements are yielded one at a time (iter_statements) so the code
generator can emit bytes in a single forward pass.
"""

from __future__ import annotations
from typing import Iterator, List
from .lexer import CompileError, Token, TokenType
from .ast_nodes import *


class ParseError(CompileError):
    def __init__(self, message: str, token: Token):
        self.token = token
        loc = f"L{token.line}:{token.col}"
        super().__init__(f"Parse error at {loc}: {message}")


class Parser:
    """Single-pass parser producing Micro-C statements from tokens."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    # ── Helpers ─────────────────────────────

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _prev(self) -> Token:
        return self.tokens[self.pos - 1] if self.pos > 0 else self.tokens[0]

    def _peek(self, offset: int = 0) -> Token:
        i = self.pos + offset
        if i < len(self.tokens):
            return self.tokens[i]
        return self.tokens[-1]  # EOF

    def _at(self, *types: TokenType) -> bool:
        return self._cur().type in types

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, ttype: TokenType, msg: str = "") -> Token:
        if self._cur().type != ttype:
            if not msg:
                msg = f"Expected {ttype.value!r}"
            raise ParseError(msg, self._cur())
        return self._advance()

    def _at_statement_end(self) -> bool:
        """True at ';', end of input, or a token on a later line."""
        if self._at(TokenType.SEMI, TokenType.EOF):
            return True
        return self._cur().line > self._prev().line

    def _end_statement(self):
        if self._at(TokenType.SEMI):
            self._advance()
            return
        if not self._at_statement_end():
            raise ParseError(f"Expected ';' before '{self._cur().text}'", self._cur())

    # ── Statements ────────────────────────────

    def parse(self) -> Program:
        """Parse the full token stream into a Program."""
        prog = Program(line=1, col=1)
        prog.statements.extend(self.iter_statements())
        return prog

    def iter_statements(self) -> Iterator[Statement]:
        while not self._at(TokenType.EOF):
            # Stray ';' is an empty statement
            if self._at(TokenType.SEMI):
                self._advance()
                continue
            yield self._parse_statement()

    def _parse_statement(self) -> Statement:
        tok = self._cur()
        if tok.type == TokenType.KW_INT:
            return self._parse_declaration()
        if tok.type == TokenType.IDENT:
            return self._parse_assignment()
        raise ParseError(f"Expected declaration or assignment, got '{tok.text}'", tok)

    def _parse_declaration(self) -> Declaration:
        kw = self._advance()  # 'int'
        name = self._expect(TokenType.IDENT, "Expected variable name after 'int'")
        self._end_statement()
        return Declaration(line=kw.line, col=kw.col, name=name.value)

    def _parse_assignment(self) -> Assignment:
        target = self._advance()
        self._expect(TokenType.ASSIGN, "Expected '=' in assignment statement")
        left = self._parse_operand()

        stmt = Assignment(line=target.line, col=target.col, target=target.value, left=left)
        if self._at_statement_end():
            self._end_statement()
            return stmt

        op = self._advance()
        if op.type not in (TokenType.PLUS, TokenType.MINUS):
            raise ParseError(f"Unknown operator '{op.text}'", op)
        stmt.op = op.value
        stmt.right = self._parse_operand()
        self._end_statement()
        return stmt

    def _parse_operand(self) -> Operand:
        tok = self._cur()
        if tok.type == TokenType.IDENT:
            self._advance()
            return VarRef(line=tok.line, col=tok.col, name=tok.value)
        if tok.type == TokenType.INT_LITERAL:
            self._advance()
            return IntLiteral(line=tok.line, col=tok.col, value=tok.value)
        if tok.type == TokenType.MINUS:
            nxt = self._peek(1)
            if nxt.type == TokenType.INT_LITERAL and nxt.line == tok.line:
                self._advance()
                self._advance()
                return IntLiteral(line=tok.line, col=tok.col, value=-nxt.value)
        if tok.type == TokenType.EOF or self._at(TokenType.SEMI):
            raise ParseError("Missing operand", tok)
        raise ParseError(f"Invalid operand '{tok.text}'", tok)
