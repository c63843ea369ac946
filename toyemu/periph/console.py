"""
Toy CPU Console - character I/O behind the PRINT_CHAR / READ_CHAR syscalls.

Simplifications:
  - Output is written straight to a text stream (stdout by default)
  - Every transmitted byte is also kept in tx_buffer for inspection
  - Input bytes injected with inject_rx() are consumed before the input
    stream is read; reading the stream blocks until a character arrives
"""

from __future__ import annotations
import sys
from collections import deque
from typing import Optional, TextIO, Union


class ConsolePort:
    """Character console used by the syscall handler."""

    def __init__(self, output: Optional[TextIO] = None, input: Optional[TextIO] = None,
                 echo: bool = True):
        self._output = output
        self._input = input
        self.echo = echo

        # TX output buffer - all transmitted bytes go here
        self.tx_buffer: bytearray = bytearray()

        # RX injection queue - consumed before the input stream
        self._rx_queue: deque = deque()

    @property
    def output(self) -> TextIO:
        return self._output if self._output is not None else sys.stdout

    @property
    def input(self) -> TextIO:
        return self._input if self._input is not None else sys.stdin

    def write_char(self, value: int):
        """Transmit one character."""
        value &= 0xFF
        self.tx_buffer.append(value)
        if self.echo:
            self.output.write(chr(value))
            self.output.flush()

    def read_char(self) -> Optional[int]:
        """Receive one character. Returns None at end of input."""
        if self._rx_queue:
            return self._rx_queue.popleft()
        ch = self.input.read(1)
        if not ch:
            return None
        return ord(ch) & 0xFF

    # --- External API (test harness / CLI) ---

    def inject_rx(self, data: Union[bytes, str]):
        """Queue characters to be returned by read_char()."""
        if isinstance(data, str):
            data = data.encode('latin-1')
        for byte in data:
            self._rx_queue.append(byte & 0xFF)

    @property
    def console_output(self) -> bytes:
        """All bytes transmitted since last reset."""
        return bytes(self.tx_buffer)

    def reset(self):
        self.tx_buffer.clear()
        self._rx_queue.clear()
