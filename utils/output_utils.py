from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, TextIO


class OutputLevel(Enum):
    """
    Console message levels, in ascending order of importance.
    INPUT echoes accepted answers; HELP carries field help text.
    """
    DEBUG = 1
    INFO = 2
    INPUT = 3
    HELP = 4
    WARNING = 5
    ERROR = 6
    CRITICAL = 7


# Labels used by the CLI preset, padded to a common width
CLI_LABELS: Dict[OutputLevel, str] = {
    OutputLevel.DEBUG: 'debug',
    OutputLevel.INFO: 'info',
    OutputLevel.INPUT: 'input',
    OutputLevel.HELP: 'help',
    OutputLevel.WARNING: 'warn',
    OutputLevel.ERROR: 'error',
    OutputLevel.CRITICAL: 'crit',
}
CLI_LABEL_WIDTH = 8


@dataclass(frozen=True)
class Style:
    """Foreground color name plus the ANSI effects the console uses."""
    fg: Optional[str] = None
    bold: bool = False
    dim: bool = False
    underline: bool = False


class ColorSystem:
    """Named ANSI colors and effects."""

    COLORS: Dict[str, int] = {
        'black': 30, 'red': 31, 'green': 32, 'yellow': 33,
        'blue': 34, 'magenta': 35, 'cyan': 36, 'white': 37,
        'gray': 90, 'grey': 90,
    }

    @classmethod
    def style_text(cls, text: str, style: Style) -> str:
        """Wrap text in the escape codes for style; unknown colors are ignored."""
        codes = []
        if style.fg and style.fg.lower() in cls.COLORS:
            codes.append(str(cls.COLORS[style.fg.lower()]))
        if style.bold:
            codes.append('1')
        if style.dim:
            codes.append('2')
        if style.underline:
            codes.append('4')
        if not codes:
            return text
        return f"\033[{';'.join(codes)}m{text}\033[0m"


LEVEL_STYLES: Dict[OutputLevel, Style] = {
    OutputLevel.DEBUG: Style(fg='gray', dim=True),
    OutputLevel.INFO: Style(fg='green'),
    OutputLevel.INPUT: Style(fg='gray'),
    OutputLevel.HELP: Style(fg='cyan'),
    OutputLevel.WARNING: Style(fg='yellow'),
    OutputLevel.ERROR: Style(fg='red', bold=True),
    OutputLevel.CRITICAL: Style(fg='red', bold=True, underline=True),
}


class OutputHandler:
    """
    Prints leveled messages to the session's output stream, dropping those
    below the configured ``output_level``. With the CLI preset
    (``cli_labels``) each line starts with its colored, padded level label,
    e.g. ``help:   Leave blank for localhost``.

    Config options read from [DEFAULT]: colors, output_level, cli_labels.
    """

    def __init__(self, config: Any) -> None:
        self.config = config
        self.cli_labels = bool(config.get_option('DEFAULT', 'cli_labels', fallback=True))
        self._stream: TextIO = sys.stdout
        self._color_enabled = self._colors_for(self._stream)

        level_str = str(config.get_option('DEFAULT', 'output_level', fallback='INFO'))
        try:
            self.level = OutputLevel[level_str.strip().upper()]
        except KeyError:
            self.level = OutputLevel.INFO
            self.error(f"Invalid output level '{level_str}', using INFO")

    def _colors_for(self, stream: TextIO) -> bool:
        """Colors need the option on, no NO_COLOR, and a tty with a real TERM."""
        if not self.config.get_option('DEFAULT', 'colors', fallback=True):
            return False
        if os.environ.get('NO_COLOR'):
            return False
        if not hasattr(stream, 'isatty') or not stream.isatty():
            return False
        return os.environ.get('TERM', '').lower() not in ('dumb', 'unknown', '')

    def set_stream(self, stream: TextIO) -> None:
        """Send output to the session's stream; color support is checked again."""
        self._stream = stream
        self._color_enabled = self._colors_for(stream)

    def style_text(self, text: str, fg: Optional[str] = None, bold: bool = False,
                   dim: bool = False, underline: bool = False) -> str:
        """Style text on the fly; plain text when colors are off."""
        if not self._color_enabled:
            return text
        return ColorSystem.style_text(text, Style(fg=fg, bold=bold, dim=dim, underline=underline))

    def _label(self, level: OutputLevel) -> str:
        label = f"{CLI_LABELS[level]}:".ljust(CLI_LABEL_WIDTH)
        if self._color_enabled:
            return ColorSystem.style_text(label, LEVEL_STYLES[level])
        return label

    def write(self, message: Any = '', level: OutputLevel = OutputLevel.INFO,
              style: Optional[Style] = None, end: str = '\n', flush: bool = False) -> None:
        """
        Output a message if its level is at or above the configured level.

        Args:
            message: The message to output
            level: Output level for the message (default: OutputLevel.INFO)
            style: Optional style for the message text
            end: String to append after the message (default: '\n')
            flush: Whether to force flush the output (default: False)
        """
        if level.value < self.level.value:
            return

        msg_str = str(message)
        if self.cli_labels:
            # The label carries the level color; the message keeps its own styling
            if style is not None and self._color_enabled:
                msg_str = ColorSystem.style_text(msg_str, style)
            msg_str = self._label(level) + msg_str
        elif self._color_enabled:
            msg_str = ColorSystem.style_text(msg_str, style or LEVEL_STYLES[level])

        print(msg_str, end=end, file=self._stream, flush=flush)

    def debug(self, message: Any, **kwargs) -> None:
        self.write(message, level=OutputLevel.DEBUG, **kwargs)

    def input(self, message: Any, **kwargs) -> None:
        """Echo an accepted answer."""
        self.write(message, level=OutputLevel.INPUT, **kwargs)

    def help(self, message: Any, **kwargs) -> None:
        """Show a line of field help."""
        self.write(message, level=OutputLevel.HELP, **kwargs)

    def warning(self, message: Any, **kwargs) -> None:
        self.write(message, level=OutputLevel.WARNING, **kwargs)

    def error(self, message: Any, **kwargs) -> None:
        self.write(message, level=OutputLevel.ERROR, **kwargs)

    def success(self, message: Any, **kwargs) -> None:
        """INFO message in bold green."""
        self.write(message, style=Style(fg='green', bold=True), **kwargs)
