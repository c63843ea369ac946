"""
Lexer / Tokenizer for the Micro-C compiler.

Converts Micro-C source text into a stream of tokens for the parser.

Micro-C only has declarations and assignments, so the token set is small:
words (identifiers, keywords and decimal literals), '=', ';' and single
character operators. A word made only of digits is an INT_LITERAL; a word
that mixes digits and letters but does not start like an identifier is kept
as a BAD_WORD so the parser can report it as an invalid operand.

'//' starts a comment that runs to the end of the line.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Dict, List


class CompileError(Exception):
    """Base class for all Micro-C translation errors."""


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    INT_LITERAL = "INT_LITERAL"
    IDENT = "IDENT"
    BAD_WORD = "BAD_WORD"

    KW_INT = "int"

    PLUS = "+"
    MINUS = "-"
    ASSIGN = "="
    SEMI = ";"
    OPERATOR = "OPERATOR"   # any other punctuation character

    EOF = "EOF"


@dataclass
class Token:
    type: TokenType
    value: str | int
    line: int
    col: int
    text: str = ""

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.col})"


KEYWORDS: Dict[str, TokenType] = {
    "int": TokenType.KW_INT,
}

SINGLE_CHAR_OPS: Dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "=": TokenType.ASSIGN,
    ";": TokenType.SEMI,
}


class LexerError(CompileError):
    def __init__(self, message: str, line: int, col: int):
        self.line = line
        self.col = col
        super().__init__(f"Lexer error at L{line}:{col}: {message}")


class Lexer:
    """Tokenizes Micro-C source into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: List[Token] = []

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _skip_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos] in " \t\r\n":
            self._advance()

    def _skip_line_comment(self):
        while self.pos < len(self.source) and self.source[self.pos] != "\n":
            self._advance()

    def _read_word(self) -> Token:
        start_line, start_col = self.line, self.col
        start_pos = self.pos

        while self.pos < len(self.source) and (self.source[self.pos].isalnum() or self.source[self.pos] == "_"):
            self._advance()

        text = self.source[start_pos:self.pos]

        if not text.isascii():
            return Token(TokenType.BAD_WORD, text, start_line, start_col, text)
        if text.isdigit():
            return Token(TokenType.INT_LITERAL, int(text, 10), start_line, start_col, text)
        if text[0].isdigit():
            return Token(TokenType.BAD_WORD, text, start_line, start_col, text)
        if text in KEYWORDS:
            return Token(KEYWORDS[text], text, start_line, start_col, text)
        return Token(TokenType.IDENT, text, start_line, start_col, text)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source and return a list of tokens."""
        self.tokens = []

        while self.pos < len(self.source):
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self._peek()

            # Line comment
            if ch == "/" and self._peek(1) == "/":
                self._skip_line_comment()
                continue

            # Identifier, keyword or number
            if ch.isalnum() or ch == "_":
                self.tokens.append(self._read_word())
                continue

            if ch.isprintable():
                start_line, start_col = self.line, self.col
                self._advance()
                ttype = SINGLE_CHAR_OPS.get(ch, TokenType.OPERATOR)
                self.tokens.append(Token(ttype, ch, start_line, start_col, ch))
                continue

            raise LexerError(f"Unexpected character: {ch!r}", self.line, self.col)

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.col))
        return self.tokens
