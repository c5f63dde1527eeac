"""Simulated serial console: a keyboard for input and a display for output."""

from __future__ import annotations

import io
import select
import sys
from typing import BinaryIO, Optional, Union

from mipsmachine.interrupt import CallBackObj, Interrupt, IntType
from mipsmachine.stats import CONSOLE_TIME, Statistics

PathLike = Union[str, "os.PathLike[str]"]


def _poll(stream: BinaryIO) -> bool:
    """Return True if a read from ``stream`` would not block."""
    try:
        readable, _, _ = select.select([stream], [], [], 0)
    except (OSError, ValueError, io.UnsupportedOperation, TypeError):
        # Regular files (and streams select cannot watch) are always ready.
        return True
    return bool(readable)


class ConsoleInput(CallBackObj):
    """Keyboard side of the console, fed from a file or standard input.

    ``callback`` is called whenever a character has arrived (or the input
    has reached its end); the character is then taken with ``get_char``.
    """

    def __init__(
        self,
        interrupt: Interrupt,
        stats: Statistics,
        callback: CallBackObj,
        read_file: Optional[PathLike] = None,
    ) -> None:
        self._interrupt = interrupt
        self._stats = stats
        self._callback = callback
        self._owns_file = read_file is not None
        self._file: BinaryIO = (
            open(read_file, "rb") if read_file is not None else sys.stdin.buffer
        )
        self._incoming: Optional[str] = None
        self._interrupt.schedule(self, CONSOLE_TIME, IntType.CONSOLE_READ)

    def call_back(self) -> None:
        """Poll for a character and notify the owner when one is read."""
        if self._incoming is not None:
            raise RuntimeError("previous console character has not been taken")
        if not _poll(self._file):
            self._interrupt.schedule(self, CONSOLE_TIME, IntType.CONSOLE_READ)
            return
        data = self._file.read(1)
        # An empty read means end of input: no further polls are scheduled.
        if data:
            self._incoming = data.decode("latin-1")
            self._stats.num_console_chars_read += 1
        self._callback.call_back()

    def get_char(self) -> Optional[str]:
        """Return the buffered character, or None if there is none."""
        ch = self._incoming
        if ch is not None:
            self._interrupt.schedule(self, CONSOLE_TIME, IntType.CONSOLE_READ)
        self._incoming = None
        return ch

    def close(self) -> None:
        """Close the input file, unless it is standard input."""
        if self._owns_file:
            self._file.close()

    def __enter__(self) -> "ConsoleInput":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ConsoleOutput(CallBackObj):
    """Display side of the console, written to a file or standard output.

    Only one character may be in flight: ``callback`` is called once the
    written character has gone out and the next may be put.
    """

    def __init__(
        self,
        interrupt: Interrupt,
        stats: Statistics,
        callback: CallBackObj,
        write_file: Optional[PathLike] = None,
    ) -> None:
        self._interrupt = interrupt
        self._stats = stats
        self._callback = callback
        self._owns_file = write_file is not None
        self._file: BinaryIO = (
            open(write_file, "wb") if write_file is not None else sys.stdout.buffer
        )
        self._busy = False

    @property
    def busy(self) -> bool:
        """True while a written character has not yet completed."""
        return self._busy

    def put_char(self, ch: str) -> None:
        """Write one character and schedule the completion interrupt."""
        if self._busy:
            raise RuntimeError("a console write is already in progress")
        if len(ch) != 1:
            raise ValueError("put_char takes exactly one character")
        self._file.write(ch.encode("latin-1"))
        self._file.flush()
        self._busy = True
        self._interrupt.schedule(self, CONSOLE_TIME, IntType.CONSOLE_WRITE)

    def call_back(self) -> None:
        """Mark the write complete and notify the owner."""
        self._busy = False
        self._stats.num_console_chars_written += 1
        self._callback.call_back()

    def close(self) -> None:
        """Close the output file, unless it is standard output."""
        if self._owns_file:
            self._file.close()

    def __enter__(self) -> "ConsoleOutput":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()