"""
Micro-C Compiler Tests

Tests the lexer, parser, code generator, and end-to-end compilation
of Micro-C source into toy-CPU program images.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest
from microc import compile_source, compile_program
from microc.lexer import Lexer, TokenType, LexerError
from microc.parser import Parser, ParseError
from microc.codegen import CodeGenError
from microc.ast_nodes import Declaration, Assignment, IntLiteral, VarRef
from toyemu import ToyEmulator, StopReason


def _run(image: bytes) -> ToyEmulator:
    emu = ToyEmulator()
    assert emu.load_program(image)
    assert emu.run(max_steps=1000) == StopReason.HALT
    return emu


# ──────────────────────────────────────────────
# Lexer Tests
# ──────────────────────────────────────────────

class TestLexer:
    def test_declaration_tokens(self):
        tokens = Lexer("int a;").tokenize()
        types = [t.type for t in tokens]
        assert types == [TokenType.KW_INT, TokenType.IDENT, TokenType.SEMI, TokenType.EOF]

    def test_assignment_tokens(self):
        tokens = Lexer("b = a + 2;").tokenize()
        assert [t.type for t in tokens] == [
            TokenType.IDENT, TokenType.ASSIGN, TokenType.IDENT, TokenType.PLUS,
            TokenType.INT_LITERAL, TokenType.SEMI, TokenType.EOF,
        ]
        assert tokens[4].value == 2

    def test_line_comment_skipped(self):
        tokens = Lexer("// nothing here\nint x;").tokenize()
        assert tokens[0].type == TokenType.KW_INT
        assert tokens[0].line == 2

    def test_word_starting_with_digit(self):
        tokens = Lexer("3x").tokenize()
        assert tokens[0].type == TokenType.BAD_WORD

    def test_unknown_operator_is_a_token(self):
        tokens = Lexer("*").tokenize()
        assert tokens[0].type == TokenType.OPERATOR

    def test_control_character_rejected(self):
        with pytest.raises(LexerError):
            Lexer("int a;\x01").tokenize()


# ──────────────────────────────────────────────
# Parser Tests
# ──────────────────────────────────────────────

class TestParser:
    def _parse(self, src):
        return Parser(Lexer(src).tokenize()).parse().statements

    def test_declaration(self):
        stmts = self._parse("int counter;")
        assert len(stmts) == 1
        assert isinstance(stmts[0], Declaration)
        assert stmts[0].name == "counter"

    def test_simple_assignment(self):
        stmt = self._parse("a = 7;")[0]
        assert isinstance(stmt, Assignment)
        assert not stmt.is_binary
        assert isinstance(stmt.left, IntLiteral) and stmt.left.value == 7

    def test_binary_assignment(self):
        stmt = self._parse("b = a - 2;")[0]
        assert stmt.is_binary
        assert stmt.op == '-'
        assert isinstance(stmt.left, VarRef) and stmt.left.name == "a"
        assert stmt.right.value == 2

    def test_negative_literal(self):
        stmt = self._parse("a = -5;")[0]
        assert stmt.left.value == -5

    def test_missing_semicolon_at_end_of_line(self):
        stmts = self._parse("int a\na = 1\n")
        assert [type(s) for s in stmts] == [Declaration, Assignment]

    def test_missing_semicolon_on_same_line(self):
        with pytest.raises(ParseError, match="Expected ';'"):
            self._parse("int a int b;")

    def test_missing_equals(self):
        with pytest.raises(ParseError, match="Expected '='"):
            self._parse("a 4;")

    def test_unknown_operator(self):
        with pytest.raises(ParseError, match=r"Unknown operator '\*'"):
            self._parse("a = 2 * 3;")

    def test_invalid_operand(self):
        with pytest.raises(ParseError, match="Invalid operand '3x'"):
            self._parse("a = 3x;")

    def test_missing_operand(self):
        with pytest.raises(ParseError, match="Missing operand"):
            self._parse("a = ;")

    def test_stray_semicolons(self):
        assert len(self._parse(";; int a;;")) == 1


# ──────────────────────────────────────────────
# Code Generation Tests
# ──────────────────────────────────────────────

class TestCodeGen:
    def test_empty_program_is_halt(self):
        assert compile_source("") == b'\xFF'

    def test_declaration_emits_nothing(self):
        assert compile_source("int a;") == b'\xFF'

    def test_simple_assignment_bytes(self):
        img = compile_source("int x; x = 7;")
        assert img == bytes([0x03, 0x07, 0x05, 0x10, 0xFF])

    def test_sum_program_bytes(self):
        img = compile_source("int a;\nint b;\na = 3;\nb = a + 2;")
        assert img == bytes([
            0x03, 0x03, 0x05, 0x10,                 # a = 3
            0x03, 0x03, 0x04, 0x02, 0x10, 0x05, 0x11,  # b = a + 2
            0xFF,
        ])

    def test_subtraction_uses_sub(self):
        img = compile_source("int x; x = 5 - 10;")
        assert img == bytes([0x03, 0x05, 0x04, 0x0A, 0x11, 0x05, 0x10, 0xFF])

    def test_variable_addresses_increment(self):
        img = compile_source("int a; int b; int c; c = 1;")
        assert img == bytes([0x03, 0x01, 0x05, 0x12, 0xFF])

    def test_negative_literal_encoding(self):
        assert compile_source("int x; x = -1;") == bytes([0x03, 0xFF, 0x05, 0x10, 0xFF])

    def test_comments_ignored(self):
        src = "// header\nint x;\n    // indented\nx = 7;\n"
        assert compile_source(src) == bytes([0x03, 0x07, 0x05, 0x10, 0xFF])

    def test_declared_variable_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="microc"):
            compile_source("int a;")
        assert "'a'" in caplog.text and "$10" in caplog.text

    def test_read_before_assignment_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            img = compile_source("int a; int b; b = a + 1;")
        assert "before assignment" in caplog.text
        assert img == bytes([0x03, 0x00, 0x04, 0x01, 0x10, 0x05, 0x11, 0xFF])

    def test_wide_literal_truncated(self, caplog):
        with caplog.at_level(logging.WARNING):
            img = compile_source("int a; a = 300;")
        assert img[1] == 0x2C
        assert "truncated" in caplog.text

    def test_overlap_warning(self, caplog):
        src = "int a; int b; a = 10; b = a - 3; a = b + b;"
        with caplog.at_level(logging.WARNING):
            img = compile_source(src)
        assert len(img) == 19
        assert "overlaps variables" in caplog.text


# ──────────────────────────────────────────────
# Error Handling
# ──────────────────────────────────────────────

class TestErrors:
    def test_undeclared_target(self):
        assert compile_source("a = 1;") == b""

    def test_undeclared_operand(self):
        assert compile_source("int a; a = y;") == b""

    def test_duplicate_declaration(self):
        assert compile_source("int a; int a;") == b""

    def test_unknown_operator(self):
        assert compile_source("int x; x = 2 * 3;") == b""

    def test_error_logged(self, caplog):
        with caplog.at_level(logging.ERROR):
            compile_source("int a; int a;")
        assert "already declared" in caplog.text

    def test_compile_program_raises(self):
        with pytest.raises(CodeGenError, match="Undefined variable 'q'"):
            compile_program("q = 1;")

    def test_variable_space_exhausted(self):
        src = "".join(f"int v{i};" for i in range(240))
        assert compile_source(src) == b'\xFF'
        assert compile_source(src + "int extra;") == b""


# ──────────────────────────────────────────────
# End-to-End Tests
# ──────────────────────────────────────────────

class TestEndToEnd:
    def test_sum_program(self):
        emu = _run(compile_source("int a; int b; a = 3; b = a + 2;"))
        assert emu.read_memory(0x10) == 3
        assert emu.read_memory(0x11) == 5

    def test_subtraction_wraps(self):
        emu = _run(compile_source("int x; x = 5 - 10;"))
        assert emu.read_memory(0x10) == 251

    def test_chained_values(self):
        emu = _run(compile_source("int a; int b; a = 10; b = a - 3;"))
        assert emu.read_memory(0x10) == 10
        assert emu.read_memory(0x11) == 7

    def test_reassignment(self):
        emu = _run(compile_source("int a; a = 1; a = 2;"))
        assert emu.read_memory(0x10) == 2
