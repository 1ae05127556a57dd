from __future__ import annotations

import os
import sys
from io import StringIO

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config_manager import ConfigManager
from core.fields import Field
from core.readers import CookedLineReader, HiddenLineReader, InputCancelled
from core.results import StreamError
from core.session_builder import SessionBuilder
from core.streams import TerminalInput


class ChunkStream:
    """Scripted input: each readline() delivers the next chunk as-is."""

    def __init__(self, chunks):
        self._chunks = list(chunks)
        self._pending = ''
        self.reads = 0

    def readline(self):
        self.reads += 1
        if self._pending:
            chunk, self._pending = self._pending, ''
            return chunk
        return self._chunks.pop(0) if self._chunks else ''

    def read(self, size=-1):
        self.reads += 1
        if not self._pending and self._chunks:
            self._pending = self._chunks.pop(0)
        char, self._pending = self._pending[:1], self._pending[1:]
        return char


class BrokenStream:
    def readline(self):
        raise OSError("device went away")

    def read(self, size=-1):
        raise OSError("device went away")


class RecordingInput(TerminalInput):
    def __init__(self, stream):
        super().__init__(stream)
        self.modes = []

    def set_raw_mode(self, enabled):
        if enabled != self.raw_mode:
            self.modes.append(enabled)
        super().set_raw_mode(enabled)


def _make_session(inp, out=None, **overrides):
    opts = {'colors': False, 'trap_sigint': False}
    opts.update(overrides)
    session = SessionBuilder(ConfigManager()).build(**opts)
    return session.start(inp, out if out is not None else StringIO())


# Cooked accumulator --------------------------------------------------------

def test_cooked_reader_splits_line_and_keeps_carry():
    reader = CookedLineReader()
    assert reader.feed("first\nsecond\n") == "first"
    assert reader.carry == "\nsecond\n"

    follow_up = CookedLineReader(reader.carry)
    assert follow_up.pending_line() == "second"
    assert follow_up.carry == "\n"


def test_cooked_reader_waits_for_terminator_across_chunks():
    reader = CookedLineReader()
    assert reader.feed("loc") is None
    assert reader.feed("al") is None
    assert reader.feed("host\r\n") == "localhost"


def test_cooked_reader_collapses_leading_blank_lines():
    reader = CookedLineReader()
    assert reader.feed("\n\n  db01  \n") == "db01"


def test_cooked_reader_single_terminator_is_an_empty_line():
    assert CookedLineReader().feed("\n") == ""
    assert CookedLineReader("\n").feed("\n") == ""


def test_cooked_reader_partial_carry_seeds_the_value():
    reader = CookedLineReader("\npart")
    assert reader.pending_line() is None
    assert reader.feed("ial\n") == "partial"


# Cooked reads through a session --------------------------------------------

def test_read_line_reuses_carry_without_reading_stream():
    stream = ChunkStream(["first\nsecond\n"])
    session = _make_session(stream)

    first = session.read_line()
    assert first.ok and first.value == "first"
    assert stream.reads == 1

    second = session.read_line()
    assert second.ok and second.value == "second"
    assert stream.reads == 1


def test_read_line_pauses_input_between_reads():
    session = _make_session(ChunkStream(["a\n"]))
    assert session.paused is True
    session.read_line()
    assert session.paused is True
    assert session.input.paused is True


def test_read_line_stream_error_is_returned_not_raised():
    session = _make_session(BrokenStream())
    result = session.read_line()
    assert not result.ok
    assert isinstance(result.error, StreamError)
    assert "device went away" in str(result.error)
    with pytest.raises(StreamError):
        result.unwrap()
    assert session.paused is True


def test_read_line_end_of_input():
    assert _make_session(ChunkStream(["tail"])).read_line().value == "tail"

    closed = _make_session(ChunkStream([])).read_line()
    assert not closed.ok
    assert "closed" in str(closed.error)


def test_read_line_requires_started_session():
    session = SessionBuilder(ConfigManager()).build(colors=False, trap_sigint=False)
    with pytest.raises(RuntimeError):
        session.read_line()


def test_only_one_read_in_flight():
    session = _make_session(ChunkStream(["x\n"]))
    session.begin_read()
    try:
        with pytest.raises(RuntimeError):
            session.read_line()
    finally:
        session.end_read()
    assert session.read_line().value == "x"


def test_start_is_idempotent():
    first_in = StringIO("a\n")
    session = _make_session(first_in)
    bound = session.input
    assert session.start(StringIO("b\n"), StringIO()) is session
    assert session.input is bound
    assert session.read_line().value == "a"


def test_pause_and_resume_are_noops_before_start():
    session = SessionBuilder(ConfigManager()).build(colors=False, trap_sigint=False)
    assert session.pause() is session
    assert session.resume() is session
    assert session.paused is False and session.started is False


# Hidden reads ---------------------------------------------------------------

def test_hidden_reader_state_machine():
    reader = HiddenLineReader()
    for char in " s3cret":
        assert reader.feed(char) is None
    assert reader.feed("\r") == "s3cret"
    assert reader.terminator == "\r"

    with pytest.raises(InputCancelled):
        HiddenLineReader().feed("\x03")
    with pytest.raises(InputCancelled):
        HiddenLineReader().feed("\x00")
    assert HiddenLineReader(nul_aborts=False).feed("\x00") is None


def test_hidden_read_writes_only_a_newline():
    out = StringIO()
    session = _make_session(StringIO("hunter2\n"), out)
    result = session.read_line_hidden()
    assert result.ok and result.value == "hunter2"
    assert out.getvalue() == "\n"


def test_hidden_read_toggles_raw_mode():
    inp = RecordingInput(StringIO("pw\n"))
    session = _make_session(inp)
    assert session.read_line_hidden().value == "pw"
    assert inp.modes == [True, False]
    assert inp.raw_mode is False


def test_hidden_read_end_of_transmission_terminates():
    session = _make_session(ChunkStream(["abc\x04rest"]))
    assert session.read_line_hidden().value == "abc"


def test_hidden_crlf_does_not_leak_into_next_read():
    session = _make_session(StringIO("pw\r\nnext\n"))
    assert session.read_line_hidden().value == "pw"
    assert session.read_line().value == "next"


def test_hidden_read_consumes_cooked_carry_first():
    stream = ChunkStream(["user\npass\nafter\n"])
    session = _make_session(stream)
    assert session.read_line().value == "user"
    assert session.read_line_hidden().value == "pass"
    assert session.read_line().value == "after"
    assert stream.reads == 1


def test_cancel_during_hidden_read_exits_with_status_1():
    out = StringIO()
    inp = RecordingInput(StringIO("ab\x03cd\n"))
    session = _make_session(inp, out)
    with pytest.raises(SystemExit) as exc:
        session.read_line_hidden()
    assert exc.value.code == 1
    assert out.getvalue() == "\n"
    assert inp.raw_mode is False


def test_nul_can_be_configured_as_ordinary_input():
    session = _make_session(StringIO("a\x00b\n"), nul_aborts=False)
    assert session.read_line_hidden().value == "ab"


def test_hidden_read_stream_error():
    result = _make_session(BrokenStream()).read_line_hidden()
    assert not result.ok
    assert isinstance(result.error, StreamError)


class TtyInput(TerminalInput):
    """Terminal-backed input: raw reads come one character at a time, Enter is a bare \\r."""

    def isatty(self):
        return True

    def set_raw_mode(self, enabled):
        self.raw_mode = enabled

    def _read_tty_char(self):
        return self.stream.read(1)


def test_enter_on_a_raw_tty_does_not_eat_the_next_empty_line():
    session = _make_session(TtyInput(ChunkStream(["pw\r", "\n"])))
    result = session.get([Field(name="password", hidden=True), Field(name="port", default="5432")])
    assert result.ok, result.error
    assert result.value == {"password": "pw", "port": "5432"}
    assert session.swallow_lf is False
