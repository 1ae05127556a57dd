"""
Prompt/validator loop and the sequential batch driver.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, TYPE_CHECKING, Union

from core.fields import Field
from core.readers import read_line, read_line_hidden
from core.results import Result

if TYPE_CHECKING:
    from session import PromptSession

FieldLike = Union[Field, Mapping[str, Any], str]


def build_prompt(field: Field) -> str:
    """Plain prompt text for a field, e.g. ``": port (5432): "``."""
    if field.default:
        return f": {field.display_name} ({field.default}): "
    return f": {field.display_name}: "


def render_prompt(session: 'PromptSession', field: Field) -> str:
    """Prompt as written to the terminal: label plus the colorized prompt."""
    out = session.utils.output
    parts = [session.prompt_label, ': ' + out.style_text(field.display_name, fg='gray')]
    if field.default:
        parts.append(f" ({field.default})")
    parts.append(out.style_text(': ', fg='gray'))
    return ''.join(parts)


def get_input(session: 'PromptSession', field: FieldLike) -> Result:
    """
    Prompt for a single field until it yields a valid answer.

    Failed validation re-issues the same prompt; only a stream failure ends
    the loop without a value.
    """
    field = Field.coerce(field)
    session.ensure_started()
    out = session.utils.output
    logger = session.utils.logger
    prompt = render_prompt(session, field)
    read = read_line_hidden if field.hidden else read_line
    attempt = 0

    while True:
        attempt += 1
        for line in field.help:
            out.help(line)

        session.output.write(prompt)
        session.output.flush()
        logger.prompt_event('prompt_shown', {'field': field.name, 'hidden': field.hidden, 'attempt': attempt})

        result = read(session)
        if not result.ok:
            logger.error('core.prompting', result.error)
            return result

        line = result.value
        if not line:
            line = field.default or line

        if not field.validate(line):
            out.error('Invalid input for ' + out.style_text(field.display_name, fg='gray'))
            if field.warning:
                out.error(field.warning)
            logger.prompt_event('validation_failed', {'field': field.name, 'attempt': attempt})
            continue

        shown = line
        if field.hidden and not session.echo_hidden:
            shown = '*' * len(line)
        out.input(out.style_text(shown, fg='yellow'))
        logger.input_accepted(field.name, line, hidden=field.hidden)
        return Result.success(line)


def normalize_fields(session: 'PromptSession', fields: Union[FieldLike, Sequence[FieldLike]]) -> List[Field]:
    """Turn one field or a list of fields into Field objects, resolving
    shorthand names through the session's registry."""
    items = list(fields) if isinstance(fields, (list, tuple)) else [fields]
    normalized: List[Field] = []
    for item in items:
        if isinstance(item, str):
            item = item.lower()
            item = session.fields.get(item, item)
        normalized.append(Field.coerce(item))
    return normalized


def get(session: 'PromptSession', fields: Union[FieldLike, Sequence[FieldLike]]) -> Result:
    """Prompt for each field strictly in order, collecting answers by name."""
    session.ensure_started()
    results: Dict[str, str] = {}
    for field in normalize_fields(session, fields):
        result = get_input(session, field)
        if not result.ok:
            return result
        results[field.name] = result.value
    return Result.success(results)
