"""
Syscall and Console Tests

PRINT_CHAR / READ_CHAR through the SYSCALL opcode, the console RX
injection queue, and the privilege flag.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import logging

import pytest
from toyemu import ToyEmulator, StopReason, ConsolePort


def _emu(program: bytes, console: ConsolePort) -> ToyEmulator:
    emu = ToyEmulator(console=console)
    assert emu.load_program(program)
    return emu


class TestPrintChar:
    def test_print_two_characters(self):
        out = io.StringIO()
        console = ConsolePort(output=out)
        program = bytes([
            0x03, 1,            # LOAD_A PRINT_CHAR
            0x04, ord('H'), 0x30,
            0x04, ord('i'), 0x30,
            0xFF,
        ])
        emu = _emu(program, console)
        assert emu.run() == StopReason.HALT
        assert out.getvalue() == "Hi"
        assert console.console_output == b"Hi"

    def test_registers_unchanged(self):
        console = ConsolePort(output=io.StringIO())
        emu = _emu(bytes([0x03, 1, 0x04, 0x41, 0x30, 0xFF]), console)
        emu.run()
        assert (emu.regs.A, emu.regs.B) == (1, 0x41)

    def test_echo_disabled(self):
        out = io.StringIO()
        console = ConsolePort(output=out, echo=False)
        emu = _emu(bytes([0x03, 1, 0x04, 0x41, 0x30, 0xFF]), console)
        emu.run()
        assert out.getvalue() == ""
        assert console.console_output == b"A"

    def test_trace_shows_syscall_number(self):
        emu = _emu(bytes([0x03, 1, 0x30, 0xFF]), ConsolePort(output=io.StringIO()))
        emu.run()
        assert "[PC: 0x0002] SYSCALL 1" in emu.trace


class TestReadChar:
    def test_read_from_stream(self):
        console = ConsolePort(input=io.StringIO("Z"))
        emu = _emu(bytes([0x03, 2, 0x30, 0xFF]), console)
        emu.run()
        assert emu.regs.B == ord('Z')

    def test_injected_input_read_first(self):
        console = ConsolePort(input=io.StringIO("b"))
        console.inject_rx("a")
        emu = _emu(bytes([0x03, 2, 0x30, 0x30, 0xFF]), console)
        emu.step()
        emu.step()
        assert emu.regs.B == ord('a')
        emu.step()
        assert emu.regs.B == ord('b')

    def test_end_of_input_leaves_b(self, caplog):
        console = ConsolePort(input=io.StringIO(""))
        emu = _emu(bytes([0x04, 9, 0x03, 2, 0x30, 0xFF]), console)
        with caplog.at_level(logging.WARNING):
            assert emu.run() == StopReason.HALT
        assert emu.regs.B == 9
        assert "end of input" in caplog.text

    def test_echo_program(self):
        """READ_CHAR then PRINT_CHAR copies one character through."""
        out = io.StringIO()
        console = ConsolePort(output=out, input=io.StringIO(""))
        console.inject_rx(b"Q")
        program = bytes([0x03, 2, 0x30, 0x03, 1, 0x30, 0xFF])
        _emu(program, console).run()
        assert out.getvalue() == "Q"


class TestDispatch:
    def test_unknown_syscall_continues(self, caplog):
        console = ConsolePort(output=io.StringIO())
        emu = _emu(bytes([0x03, 9, 0x04, 4, 0x30, 0xFF]), console)
        with caplog.at_level(logging.ERROR):
            assert emu.run() == StopReason.HALT
        assert "Unknown syscall number: 9" in caplog.text
        assert (emu.regs.A, emu.regs.B) == (9, 4)
        assert console.console_output == b""


class TestPrivilege:
    def test_privileged_only_during_call(self):
        seen = []

        class Recorder(io.StringIO):
            def write(self, s):
                seen.append(emu.regs.privileged)
                return super().write(s)

        emu = _emu(bytes([0x03, 1, 0x04, 0x21, 0x30, 0xFF]),
                   ConsolePort(output=Recorder()))
        assert emu.regs.privileged is False
        emu.run()
        assert seen == [True]
        assert emu.regs.privileged is False
        assert emu.dump_state().privileged is False

    def test_syscall_traced_before_dispatch(self):
        """The SYSCALL line is in the trace by the time the console writes."""
        last_trace = []

        class Recorder(io.StringIO):
            def write(self, s):
                last_trace.append(emu.trace[-1])
                return super().write(s)

        emu = _emu(bytes([0x03, 1, 0x04, 0x21, 0x30, 0xFF]),
                   ConsolePort(output=Recorder()))
        emu.run()
        assert last_trace == ["[PC: 0x0004] SYSCALL 1"]

    def test_privilege_dropped_when_console_fails(self):
        class Broken(io.StringIO):
            def write(self, s):
                raise RuntimeError("console gone")

        emu = _emu(bytes([0x03, 1, 0x30, 0xFF]), ConsolePort(output=Broken()))
        emu.step()
        with pytest.raises(RuntimeError):
            emu.step()
        assert emu.regs.privileged is False


class TestConsolePort:
    def test_inject_bytes_and_reset(self):
        console = ConsolePort(input=io.StringIO(""))
        console.inject_rx(b"\x00\xff")
        assert console.read_char() == 0
        assert console.read_char() == 0xFF
        assert console.read_char() is None

    def test_reset_clears_buffers(self):
        console = ConsolePort(output=io.StringIO(), input=io.StringIO(""))
        console.write_char(0x41)
        console.inject_rx("x")
        console.reset()
        assert console.console_output == b""
        assert console.read_char() is None
