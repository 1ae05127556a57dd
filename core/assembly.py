from __future__ import annotations

from typing import Any, Iterable, List, MutableMapping, Sequence, TYPE_CHECKING

from core.prompting import get
from core.results import Result

if TYPE_CHECKING:
    from session import PromptSession

_MISSING = object()


def is_defined(target: MutableMapping[str, Any], prop: str) -> bool:
    """
    True when ``prop`` (a dotted path) already has a value on ``target``.

    A path that runs into a non-mapping value counts as defined, since
    assigning below it would overwrite that value.
    """
    node: Any = target
    for key in prop.split('.'):
        if not isinstance(node, MutableMapping):
            return True
        node = node.get(key, _MISSING)
        if node is _MISSING or node is None:
            return False
    return True


def put_nested(target: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    """Set ``value`` at ``path``, creating intermediate dicts as needed.

    Existing values are left alone.
    """
    node = target
    for key in path[:-1]:
        child = node.get(key)
        if child is None:
            child = node[key] = {}
        elif not isinstance(child, MutableMapping):
            return
        node = child
    if node.get(path[-1]) is None:
        node[path[-1]] = value


def add_properties(session: 'PromptSession', target: MutableMapping[str, Any], properties: Iterable[str]) -> Result:
    """Prompt for every property missing from ``target`` and merge the answers in."""
    missing: List[str] = [prop for prop in properties if not is_defined(target, prop)]
    if not missing:
        return Result.success(target)

    result = get(session, missing)
    if not result.ok:
        return result

    for key, value in result.value.items():
        put_nested(target, key.split('.'), value)
    session.utils.logger.prompt_event('properties_added', {'keys': list(result.value)})
    return Result.success(target)
