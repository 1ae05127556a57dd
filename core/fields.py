"""
Field descriptors and answer validators.

A Field describes one prompt. Callers may hand the session a bare name, a
mapping or a Field; ``Field.coerce`` normalizes all of them into a canonical
Field before anything is written to the terminal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field as dc_field, fields as dc_fields
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Pattern, Tuple, Union


class FieldError(ValueError):
    """Raised for a field descriptor that cannot be prompted for."""


class Validator:
    """Base class for answer validators."""

    def validate(self, line: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class PatternValidator(Validator):
    """Accepts a line when the pattern matches anywhere in it."""

    pattern: Pattern[str]

    def validate(self, line: str) -> bool:
        return self.pattern.search(line) is not None


@dataclass(frozen=True)
class PredicateValidator(Validator):
    """Accepts a line when the predicate returns a truthy value."""

    predicate: Callable[[str], Any]

    def validate(self, line: str) -> bool:
        return bool(self.predicate(line))


ValidatorLike = Union[Validator, Pattern[str], str, Callable[[str], Any]]


def as_validator(value: Optional[ValidatorLike]) -> Optional[Validator]:
    """Turn a pattern, regex string or callable into a Validator."""
    if value is None or isinstance(value, Validator):
        return value
    if isinstance(value, str):
        try:
            return PatternValidator(re.compile(value))
        except re.error as e:
            raise FieldError(f"Invalid validator pattern {value!r}: {e}") from e
    if isinstance(value, re.Pattern):
        return PatternValidator(value)
    # Anything exposing a regex-style search() is treated as a pattern
    if callable(getattr(value, 'search', None)):
        return PatternValidator(value)  # type: ignore[arg-type]
    if callable(value):
        return PredicateValidator(value)
    raise FieldError(f"Unsupported validator of type {type(value).__name__}")


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', 'on', '1')
    return bool(value)


def _help_lines(value: Any) -> Tuple[str, ...]:
    if value is None or value == '':
        return ()
    if isinstance(value, str):
        return tuple(line.strip() for line in value.splitlines() if line.strip())
    if isinstance(value, Iterable):
        return tuple(str(line) for line in value)
    raise FieldError(f"Help must be a string or a sequence of lines, not {type(value).__name__}")


@dataclass(frozen=True)
class Field:
    """Specification of a single prompt."""

    name: str
    message: Optional[str] = None
    default: Optional[str] = None
    hidden: bool = False
    validator: Optional[Validator] = None
    warning: Optional[str] = None
    help: Tuple[str, ...] = dc_field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise FieldError(f"Field name must be a non-empty string, got {self.name!r}")
        if self.default is not None and not isinstance(self.default, str):
            object.__setattr__(self, 'default', str(self.default))
        object.__setattr__(self, 'hidden', _as_flag(self.hidden))
        object.__setattr__(self, 'validator', as_validator(self.validator))
        object.__setattr__(self, 'help', _help_lines(self.help))

    @property
    def display_name(self) -> str:
        return self.message or self.name

    def validate(self, line: str) -> bool:
        if self.validator is None:
            return True
        return self.validator.validate(line)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Field':
        known = {f.name for f in dc_fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise FieldError(f"Unknown field attribute(s): {', '.join(unknown)}")
        if 'name' not in data:
            raise FieldError("Field descriptor is missing a name")
        return cls(**dict(data))

    @classmethod
    def coerce(cls, value: Union['Field', Mapping[str, Any], str]) -> 'Field':
        """Normalize a bare name, a mapping or a Field into a Field."""
        if isinstance(value, Field):
            return value
        if isinstance(value, str):
            return cls(name=value)
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        raise FieldError(f"Cannot build a field from {type(value).__name__}")


def fields_from_config(sections: Dict[str, Dict[str, Any]]) -> Dict[str, Field]:
    """
    Build the known-fields registry from ``FIELD.<name>`` config sections.

    :param sections: mapping of field name -> raw option values
    :return: mapping of lowercased field name -> Field
    """
    registry: Dict[str, Field] = {}
    for name, options in sections.items():
        opts = {k: v for k, v in options.items() if v not in (None, '')}
        registry[name.lower()] = Field.from_mapping({'name': name, **opts})
    return registry
