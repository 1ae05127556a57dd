"""
Terminal input/output boundary objects used by a prompt session.

TerminalInput wraps a readable stream (stdin by default) and adds the flow
control the line readers rely on: pause/resume framing, an encoding mode for
byte streams and a raw/cooked toggle for a backing terminal device.
TerminalOutput is the matching writable side.
"""

from __future__ import annotations

import codecs
import os
import sys
from typing import Any, Optional, TextIO

try:
    import termios  # type: ignore
    import tty  # type: ignore
except ImportError:  # pragma: no cover - Windows
    termios = None  # type: ignore
    tty = None  # type: ignore

from core.results import StreamError


class TerminalInput:
    """Readable side of a session, delivering input in chunks.

    Cooked mode delivers one line per chunk (the terminal's line discipline
    decides the boundaries); raw mode delivers one character at a time.
    Reading while paused is an error: readers resume right before reading and
    pause again before they return.
    """

    def __init__(self, stream: Optional[Any] = None, encoding: str = 'utf-8') -> None:
        self._stream = stream if stream is not None else sys.stdin
        self.paused = False
        self.raw_mode = False
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._saved_attrs = None

    @property
    def stream(self) -> Any:
        return self._stream

    @property
    def encoding(self) -> str:
        return self._encoding

    def fileno(self) -> Optional[int]:
        try:
            return self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            return None

    def isatty(self) -> bool:
        fd = self.fileno()
        if fd is None:
            return False
        try:
            return os.isatty(fd)
        except OSError:
            return False

    # Flow control -------------------------------------------------------
    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def set_encoding(self, encoding: str) -> None:
        """Decode byte input with ``encoding`` from now on.

        Text streams already yield decoded strings and are unaffected.
        """
        if not encoding or codecs.lookup(encoding).name == codecs.lookup(self._encoding).name:
            return
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)()

    def set_raw_mode(self, enabled: bool) -> None:
        """Switch the backing terminal between raw and cooked mode.

        Only applies to a POSIX tty; for pipes and in-memory streams the flag
        is recorded and characters are read one at a time all the same.
        """
        if enabled == self.raw_mode:
            return
        self.raw_mode = enabled
        if termios is None or tty is None or not self.isatty():
            return
        fd = self.fileno()
        try:
            if enabled:
                self._saved_attrs = termios.tcgetattr(fd)
                tty.setraw(fd, when=termios.TCSANOW)
            elif self._saved_attrs is not None:
                termios.tcsetattr(fd, termios.TCSANOW, self._saved_attrs)
                self._saved_attrs = None
        except termios.error as e:
            raise StreamError(f"could not switch terminal mode: {e}") from e

    # Reading ------------------------------------------------------------
    def read_chunk(self) -> str:
        """Return the next chunk of input, or '' at end of input."""
        self._check_flowing()
        try:
            data = self._stream.readline()
        except (OSError, ValueError) as e:
            raise StreamError(f"error reading input: {e}") from e
        return self._decode(data, final=not data)

    def read_char(self) -> str:
        """Return the next single character of input, or '' at end of input."""
        self._check_flowing()
        try:
            if self.raw_mode and self.isatty():
                return self._read_tty_char()
            data = self._stream.read(1)
            if isinstance(data, bytes):
                # Multi-byte sequences need more than one byte to decode
                while data:
                    text = self._decoder.decode(data)
                    if text:
                        return text
                    data = self._stream.read(1)
                return self._decoder.decode(b'', final=True)
            return data
        except (OSError, ValueError) as e:
            raise StreamError(f"error reading input: {e}") from e

    def _read_tty_char(self) -> str:
        fd = self.fileno()
        while True:
            data = os.read(fd, 1)
            if not data:
                return self._decoder.decode(b'', final=True)
            text = self._decoder.decode(data)
            if text:
                return text

    def _decode(self, data: Any, final: bool = False) -> str:
        if isinstance(data, bytes):
            try:
                return self._decoder.decode(data, final=final)
            except UnicodeDecodeError as e:
                raise StreamError(f"could not decode input as {self._encoding}: {e}") from e
        return data

    def _check_flowing(self) -> None:
        if self.paused:
            raise RuntimeError("input stream is paused")


class TerminalOutput:
    """Writable side of a session."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    @property
    def stream(self) -> TextIO:
        return self._stream

    def write(self, text: str) -> None:
        self._stream.write(text)

    def flush(self) -> None:
        flush = getattr(self._stream, 'flush', None)
        if flush is not None:
            flush()
