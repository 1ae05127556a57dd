"""
Line readers: the resumable state machines that turn chunked terminal input
into one answer line, plus the session-level drivers that pull input for them.

Both drivers follow the same framing: resume the session input immediately
before reading, pause it again before returning, so input meant for one
prompt never reaches another.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from core.results import Result, StreamError

if TYPE_CHECKING:
    from session import PromptSession

TERMINATOR = '\n'
HIDDEN_TERMINATORS = ('\n', '\r', '\x04')
CANCEL = '\x03'
NUL = '\x00'


class InputCancelled(Exception):
    """Raised by the hidden reader when the operator cancels input."""


class CookedLineReader:
    """
    Accumulator for one echoed (line-buffered) read.

    ``value`` holds input received so far that has not been terminated yet.
    ``carry`` holds what followed the terminator of the resolved line; it
    always starts with the terminator and belongs to the next read.
    """

    def __init__(self, carry: str = '') -> None:
        self.value = ''
        self.carry = ''
        self._ready: Optional[str] = None
        # The carry opens with the previous line's own terminator(s)
        pending = carry.replace('\r', '').lstrip(TERMINATOR)
        if TERMINATOR in pending:
            self._ready = self._split(pending)
        else:
            self.value = pending

    def pending_line(self) -> Optional[str]:
        """Return a line already complete in the carry, without reading."""
        line, self._ready = self._ready, None
        return line

    def feed(self, chunk: str) -> Optional[str]:
        """Add a chunk; return the trimmed line once a terminator arrives."""
        value = (self.value + chunk).replace('\r', '')
        if TERMINATOR not in value:
            self.value = value
            return None
        if value != TERMINATOR:
            value = value.lstrip(TERMINATOR)
            if TERMINATOR not in value:
                # Nothing but blank lines (plus an unterminated tail)
                self.value = ''
                self.carry = value and TERMINATOR + value
                return ''
        return self._split(value)

    def finish(self) -> Optional[str]:
        """Resolve whatever is pending at end of input, if anything."""
        value = self.value.strip()
        self.value = ''
        return value or None

    def _split(self, value: str) -> str:
        index = value.index(TERMINATOR)
        self.carry = value[index:]
        self.value = ''
        return value[:index].strip()


class HiddenLineReader:
    """Accumulator for one concealed (raw mode) read, fed a character at a time."""

    def __init__(self, nul_aborts: bool = True) -> None:
        self.value = ''
        self.terminator: Optional[str] = None
        self._aborts = (CANCEL, NUL) if nul_aborts else (CANCEL,)

    def feed(self, char: str) -> Optional[str]:
        if char in HIDDEN_TERMINATORS:
            self.terminator = char
            return self.value.strip()
        if char in self._aborts:
            raise InputCancelled(repr(char))
        if char == NUL:
            return None
        self.value += char
        return None

    def finish(self) -> Optional[str]:
        value = self.value.strip()
        return value or None


def read_line(session: 'PromptSession') -> Result:
    """Read one echoed line from the session input."""
    session.begin_read()
    reader = CookedLineReader(session.take_carry())
    try:
        line = reader.pending_line()
        if line is not None:
            return Result.success(line)
        session.resume()
        session.input.set_encoding(session.encoding)
        while True:
            chunk = session.input.read_chunk()
            if session.swallow_lf:
                session.swallow_lf = False
                if chunk.startswith(TERMINATOR):
                    chunk = chunk[1:]
                    if not chunk:
                        continue
            if not chunk:
                line = reader.finish()
                if line is None:
                    return Result.failure(StreamError("input stream closed"))
                return Result.success(line)
            line = reader.feed(chunk)
            if line is not None:
                return Result.success(line)
    except StreamError as e:
        return Result.failure(e)
    finally:
        session.pause()
        session.store_carry(reader.carry)
        session.end_read()


def read_line_hidden(session: 'PromptSession') -> Result:
    """
    Read one concealed line from the session input.

    Characters are never echoed. On a terminator exactly one newline is
    written; on a cancel character the process exits with status 1.
    """
    session.begin_read()
    reader = HiddenLineReader(nul_aborts=session.nul_aborts)
    pending = session.take_carry().replace('\r', '').lstrip(TERMINATOR)
    try:
        session.input.set_raw_mode(True)
        session.resume()
        line = None
        for index, char in enumerate(pending):
            line = reader.feed(char)
            if line is not None:
                session.store_carry(TERMINATOR + pending[index + 1:])
                break
        while line is None:
            char = session.input.read_char()
            if session.swallow_lf:
                session.swallow_lf = False
                if char == TERMINATOR:
                    continue
            if not char:
                line = reader.finish()
                if line is None:
                    return Result.failure(StreamError("input stream closed"))
                break
            line = reader.feed(char)
        session.input.set_raw_mode(False)
        # A raw tty sends a bare \r for Enter; only piped input follows it with \n
        if reader.terminator == '\r' and not session.input.isatty():
            session.swallow_lf = True
        session.output.write('\n')
        session.output.flush()
        return Result.success(line)
    except InputCancelled:
        session.abort()
    except StreamError as e:
        return Result.failure(e)
    finally:
        if session.input.raw_mode:
            session.input.set_raw_mode(False)
        session.pause()
        session.end_read()
