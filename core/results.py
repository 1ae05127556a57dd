from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class StreamError(Exception):
    """I/O failure (or premature end) on the session input stream."""


@dataclass(frozen=True)
class Result:
    """Outcome of a read, prompt, batch or assembly operation.

    Exactly one of ``value`` / ``error`` is meaningful: a failed operation
    carries the ``StreamError`` that stopped it and no value.
    """

    value: Any = None
    error: Optional[StreamError] = None

    @classmethod
    def success(cls, value: Any) -> 'Result':
        return cls(value=value)

    @classmethod
    def failure(cls, error: StreamError) -> 'Result':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, raising the stored error on failure."""
        if self.error is not None:
            raise self.error
        return self.value
