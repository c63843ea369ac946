"""
Micro-C toolchain for the toy CPU
=================================
A two-pass assembler and a Micro-C compiler that both produce program
images for the toyemu execution engine.

Architecture:
    ┌───────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
    │ Micro-C   │───>│  Lexer   │───>│  Parser  │───>│ CodeGen  │──┐
    │ (.mc)     │    │ (tokens) │    │ (stmts)  │    │ (bytes)  │  │
    └───────────┘    └──────────┘    └──────────┘    └──────────┘  │
    ┌───────────┐    ┌─────────────────────────┐                   ├──> bytes
    │ Assembly  │───>│ Assembler (two-pass)    │───────────────────┘
    │ (.asm)    │    └─────────────────────────┘
    └───────────┘

    - opcodes.py:   the opcode table shared by both front ends and toyemu
    - assembler.py: label resolution + byte emission, hex program loader
    - lexer.py / parser.py / ast_nodes.py / codegen.py: the Micro-C pipeline

The Micro-C pipeline is a single forward pass: each statement is emitted
as soon as it is parsed.

compile_source() and assemble() never raise on bad input: they log the
diagnostic and return b"". compile_program() and Assembler.assemble()
raise instead.
"""

import logging

__version__ = "0.1.0"

from .opcodes import (Opcode, OpcodeInfo, Syscall, OPCODES, BY_CODE, instruction_size,
                      MEMORY_SIZE, STACK_SIZE, USER_PROGRAM_START_ADDRESS,
                      KERNEL_START_ADDRESS, VARIABLE_BASE_ADDRESS)
from .lexer import Lexer, Token, TokenType, CompileError, LexerError
from .ast_nodes import *
from .parser import Parser, ParseError
from .codegen import CodeGenerator, CodeGenError
from .assembler import Assembler, AssemblerError, assemble, parse_hex_program

log = logging.getLogger(__name__)


def compile_program(source: str) -> bytes:
    """Compile Micro-C source to a program image.

    Full pipeline: Lexer -> Parser -> CodeGenerator, statement by statement.
    Raises a CompileError subclass on the first error.
    """
    tokens = Lexer(source).tokenize()
    parser = Parser(tokens)
    gen = CodeGenerator()
    return gen.generate(parser.iter_statements())


def compile_source(source: str) -> bytes:
    """Compile Micro-C source. Returns b"" if compilation fails."""
    try:
        return compile_program(source)
    except CompileError as e:
        log.error("Compilation failed: %s", e)
        return b""
