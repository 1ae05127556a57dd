from __future__ import annotations

import signal
import sys
import threading
from typing import Any, Dict, Iterable, MutableMapping, Optional, Sequence, Union

from config_manager import SessionConfig
from core import assembly, prompting, readers
from core.fields import Field
from core.results import Result
from core.streams import TerminalInput, TerminalOutput
from utils_handler import UtilsHandler


class PromptSession:
    """
    Central session object for prompting an operator.

    Holds the bound terminal streams, the known-fields registry and the
    state shared between consecutive reads (pause flag, cooked-mode carry).
    Every reader and prompt loop receives the session explicitly.
    """

    def __init__(self, config: SessionConfig, utils: Optional[UtilsHandler] = None,
                 fields: Optional[Dict[str, Field]] = None):
        self.config = config
        self.utils = utils or UtilsHandler(config)
        self.fields: Dict[str, Field] = dict(fields or {})
        self.started = False
        self.paused = False
        self.input: Optional[TerminalInput] = None
        self.output: Optional[TerminalOutput] = None
        self.swallow_lf = False
        self._carry = ''
        self._reading = False

    # Settings ----------------------------------------------------------
    def get_option(self, section: str, option: str, fallback: Any = None):
        return self.config.get_option(section, option, fallback)

    @property
    def encoding(self) -> str:
        return (self.config.get_raw_option('PROMPT', 'encoding') or '').strip() or 'utf-8'

    @property
    def prompt_label(self) -> str:
        # Free text: 'yes' or '0' are labels, not booleans
        label = self.config.get_raw_option('PROMPT', 'label', fallback='prompt')
        return '' if label is None else label.strip()

    @property
    def echo_hidden(self) -> bool:
        return bool(self.get_option('PROMPT', 'echo_hidden', fallback=False))

    @property
    def nul_aborts(self) -> bool:
        return bool(self.get_option('PROMPT', 'nul_aborts', fallback=True))

    # Lifecycle ---------------------------------------------------------
    def start(self, in_stream: Any = None, out_stream: Any = None) -> 'PromptSession':
        """Bind the input/output streams. Calling it again is a no-op."""
        if self.started:
            return self

        encoding = self.encoding
        self.input = in_stream if isinstance(in_stream, TerminalInput) else TerminalInput(in_stream, encoding=encoding)
        self.output = out_stream if isinstance(out_stream, TerminalOutput) else TerminalOutput(out_stream)
        self.utils.output.set_stream(self.output.stream)

        if self.get_option('PROMPT', 'trap_sigint', fallback=True):
            self._trap_sigint()

        self.input.pause()
        self.paused = True
        self.started = True
        self.utils.logger.settings({
            'encoding': encoding,
            'label': self.prompt_label,
            'fields': sorted(self.fields),
            'tty': self.input.isatty(),
        })
        return self

    def _trap_sigint(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def _on_sigint(signum, frame):
            self.abort()

        signal.signal(signal.SIGINT, _on_sigint)

    def pause(self) -> 'PromptSession':
        if not self.started or self.paused:
            return self
        self.input.pause()
        self.paused = True
        return self

    def resume(self) -> 'PromptSession':
        if not self.started or not self.paused:
            return self
        self.input.resume()
        self.paused = False
        return self

    def abort(self) -> None:
        """Terminate the process after an interrupt or cancel character."""
        if self.output is not None:
            self.output.write('\n')
            self.output.flush()
        sys.exit(1)

    # Read bookkeeping --------------------------------------------------
    def ensure_started(self) -> None:
        if not self.started:
            raise RuntimeError("prompt session has not been started")

    def begin_read(self) -> None:
        self.ensure_started()
        if self._reading:
            raise RuntimeError("a line read is already in progress")
        self._reading = True

    def end_read(self) -> None:
        self._reading = False

    def take_carry(self) -> str:
        carry, self._carry = self._carry, ''
        return carry

    def store_carry(self, carry: str) -> None:
        self._carry = carry

    # Registry ----------------------------------------------------------
    def register_field(self, field: Union[Field, MutableMapping[str, Any]]) -> Field:
        field = Field.coerce(field)
        self.fields[field.name.lower()] = field
        return field

    # Operations --------------------------------------------------------
    def read_line(self) -> Result:
        return readers.read_line(self)

    def read_line_hidden(self) -> Result:
        return readers.read_line_hidden(self)

    def get_input(self, field: Any) -> Result:
        return prompting.get_input(self, field)

    def get(self, fields: Union[Any, Sequence[Any]]) -> Result:
        return prompting.get(self, fields)

    def add_properties(self, target: MutableMapping[str, Any], properties: Iterable[str]) -> Result:
        return assembly.add_properties(self, target, properties)
