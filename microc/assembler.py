"""
Two-Pass Assembler for the toy CPU.

Assembles toy-CPU assembly text into a flat byte image.

Input:  Assembly text, one instruction or label per line
Output: Raw bytes (the program image loaded by toyemu)

Syntax:
  label:                  - binds `label` to the current address
  label: MNEMONIC [op]    - label and instruction on the same line
  MNEMONIC [op]           - op is a decimal integer or a label name
  ; comment               - everything after ';' is ignored

How the two-pass algorithm works:
  Pass 1: Walk every line with an address counter. Labels get the current
          counter value; each known mnemonic advances the counter by its
          encoded size from the opcode table.
  Pass 2: Walk the same lines again and emit bytes. All labels are known
          now, so forward references resolve.

  Both passes take the instruction size from opcodes.instruction_size(),
  so the address accounting and the emitted bytes cannot drift apart.
  Tokens that are not mnemonics are ignored by both passes.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .opcodes import OPCODES, USER_PROGRAM_START_ADDRESS, instruction_size, lookup_mnemonic

__all__ = ['Assembler', 'AssemblerError', 'assemble', 'parse_hex_program']

log = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


_LABEL_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
_DECIMAL_RE = re.compile(r'^[+-]?[0-9]+$')


# ──────────────────────────────────────────────
# Line parsing
# ──────────────────────────────────────────────

@dataclass
class AsmLine:
    """One parsed source line."""
    line_num: int
    raw: str
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operand: Optional[str] = None


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Split a source line into label / mnemonic / operand tokens."""
    result = AsmLine(line_num=line_num, raw=line)

    code = line.split(';', 1)[0]
    tokens = code.split()
    if not tokens:
        return result

    if tokens[0].endswith(':'):
        label = tokens[0][:-1]
        if not _LABEL_RE.match(label):
            raise AssemblerError(f"Invalid label name: {label!r}", line_num, line)
        result.label = label
        tokens = tokens[1:]

    if tokens:
        result.mnemonic = tokens[0]
    if len(tokens) > 1:
        result.operand = tokens[1]
    return result


# ──────────────────────────────────────────────
# Operand evaluation
# ──────────────────────────────────────────────

def _parse_value(text: Optional[str], symbols: Dict[str, int], line_num: int) -> int:
    """Resolve an operand token: label lookup first, then decimal integer."""
    if text is None:
        raise AssemblerError("Missing operand", line_num)
    if text in symbols:
        return symbols[text]
    if _DECIMAL_RE.match(text):
        return int(text, 10)
    raise AssemblerError(f"Invalid operand '{text}'", line_num)


def _to_byte(value: int, text: str, line_num: int) -> int:
    """Truncate an operand to its one-byte encoding."""
    if not 0 <= value <= 0xFF:
        log.warning("Line %d: operand '%s' (%d) truncated to one byte ($%02X)",
                    line_num, text, value, value & 0xFF)
    return value & 0xFF


# ──────────────────────────────────────────────
# Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass toy-CPU assembler.

    Usage:
        asm = Assembler()
        image = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self, origin: int = USER_PROGRAM_START_ADDRESS):
        self.origin: int = origin
        self.symbols: Dict[str, int] = {}      # Label table: name -> address
        self.pc: int = origin
        self.binary: bytearray = bytearray()
        self.errors: List[str] = []
        self._lines: List[AsmLine] = []
        self._sizes: Dict[int, int] = {}       # line_num -> pass-1 size
        self._records: List[Tuple[int, bytes, AsmLine]] = []  # (addr, bytes, line) for listings

    def assemble(self, source: str) -> bytes:
        """Assemble source text into a program image.

        Raises AssemblerError if either pass reports an error.
        """
        self.symbols = {}
        self.errors = []
        self._lines = []
        self._sizes = {}
        self._records = []

        for i, line in enumerate(source.splitlines(), 1):
            try:
                self._lines.append(_parse_line(line, i))
            except AssemblerError as e:
                self.errors.append(str(e))

        if self.errors:
            raise AssemblerError("Parse errors:\n" + "\n".join(self.errors))

        self._pass1()
        if self.errors:
            raise AssemblerError("Pass 1 errors:\n" + "\n".join(self.errors))

        self._pass2()
        if self.errors:
            raise AssemblerError("Pass 2 errors:\n" + "\n".join(self.errors))

        log.debug("Assembled %d bytes, %d labels", len(self.binary), len(self.symbols))
        return bytes(self.binary)

    def _pass1(self):
        """Pass 1: bind labels to addresses by tracking the address counter."""
        self.pc = self.origin
        for line in self._lines:
            try:
                self._pass1_line(line)
            except AssemblerError as e:
                self.errors.append(str(e))

    def _pass1_line(self, line: AsmLine):
        if line.label:
            if line.label in self.symbols:
                raise AssemblerError(f"Duplicate label: {line.label}", line.line_num, line.raw)
            self.symbols[line.label] = self.pc

        mnem = line.mnemonic
        if mnem is None:
            return
        if mnem not in OPCODES:
            log.warning("Line %d: ignoring unknown token '%s'", line.line_num, mnem)
            return

        size = instruction_size(mnem)
        self._sizes[line.line_num] = size
        self.pc += size

    def _pass2(self):
        """Pass 2: emit bytes using the complete label table."""
        self.pc = self.origin
        self.binary = bytearray()
        for line in self._lines:
            try:
                self._pass2_line(line)
            except AssemblerError as e:
                self.errors.append(str(e))

    def _pass2_line(self, line: AsmLine):
        info = lookup_mnemonic(line.mnemonic) if line.mnemonic else None
        if info is None:
            return
        mnem = info.mnemonic
        data = bytearray([info.code])
        if info.operand_width:
            value = _parse_value(line.operand, self.symbols, line.line_num)
            data.append(_to_byte(value, line.operand, line.line_num))

        expected = self._sizes.get(line.line_num)
        if len(data) != expected:
            raise AssemblerError(
                f"{mnem}: pass 1 sized {expected} bytes, pass 2 emitted {len(data)}",
                line.line_num, line.raw)

        self._emit(bytes(data), line)

    def _emit(self, data: bytes, line: AsmLine):
        """Emit bytes at the current address and advance."""
        self._records.append((self.pc, data, line))
        self.binary.extend(data)
        self.pc += len(data)

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, bytes, and source."""
        lines = [f"{'ADDR':>6}  {'BYTES':<8}  SOURCE", "-" * 48]
        by_line = {rec[2].line_num: rec for rec in self._records}
        for asmline in self._lines:
            raw = asmline.raw.strip()
            rec = by_line.get(asmline.line_num)
            if rec is not None:
                addr, data, _ = rec
                hex_str = ' '.join(f'{b:02X}' for b in data)
                lines.append(f"${addr:04X}  {hex_str:<8}  {raw}")
            elif raw:
                lines.append(f"       {'':8}  {raw}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str, origin: int = USER_PROGRAM_START_ADDRESS) -> bytes:
    """Assemble source text. Returns b"" if assembly fails."""
    try:
        return Assembler(origin).assemble(source)
    except AssemblerError as e:
        log.error("Assembly failed: %s", e)
        return b""


def parse_hex_program(text: str) -> bytes:
    """Convert whitespace-separated hex bytes ("03 05 FF") to a program image.

    Any token that is not a hex value in $00-$FF aborts the conversion and
    returns b"".
    """
    program = bytearray()
    for token in text.split():
        try:
            value = int(token, 16)
        except ValueError:
            log.error("Invalid hex byte: %s", token)
            return b""
        if not 0 <= value <= 0xFF:
            log.error("Hex value out of byte range: %s", token)
            return b""
        program.append(value)
    return bytes(program)
