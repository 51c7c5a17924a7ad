"""
Context path resolution for condition arguments.

A condition key or value that starts with the path prefix (``$.`` by
default) is read from the evaluation context instead of being taken
literally::

    $.user.id
    $.tags[0]
    $.owners['primary']
    $.members.*.name

Anything else is a literal and is returned unchanged. Only child access
(names, indexes, quoted keys and wildcards) is supported; recursive
descent (``$..name``), filters (``[?(...)]``) and slices are rejected as
malformed paths.
"""

import re
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any, List, Tuple

from .exceptions import InvalidConditionError

DEFAULT_PATH_PREFIX = "$."

_SEGMENT = re.compile(
    r"\.(?P<name>[^.\[\]]+)"
    r"|\[(?P<index>\d+)\]"
    r"|\[(?P<quote>['\"])(?P<key>.*?)(?P=quote)\]"
    r"|\[(?P<star>\*)\]"
)

KEY, INDEX, ANY = "key", "index", "any"


def is_path(value: Any, prefix: str = DEFAULT_PATH_PREFIX) -> bool:
    return isinstance(value, str) and value.startswith(prefix)


@lru_cache(maxsize=512)
def parse_path(expr: str, prefix: str = DEFAULT_PATH_PREFIX) -> Tuple[Tuple[str, Any], ...]:
    """
    Parse a path expression into ``(kind, value)`` steps.

    Raises:
        InvalidConditionError: If the expression is not a well-formed path.
    """
    body = "." + expr[len(prefix):]
    steps: List[Tuple[str, Any]] = []
    pos = 0
    while pos < len(body):
        match = _SEGMENT.match(body, pos)
        if match is None:
            raise InvalidConditionError(f"Malformed context path: {expr!r}")
        if match.group("name") is not None:
            name = match.group("name")
            steps.append((ANY, None) if name == "*" else (KEY, name))
        elif match.group("index") is not None:
            steps.append((INDEX, int(match.group("index"))))
        elif match.group("key") is not None:
            steps.append((KEY, match.group("key")))
        else:
            steps.append((ANY, None))
        pos = match.end()
    return tuple(steps)


def _is_sequence(node: Any) -> bool:
    return isinstance(node, Sequence) and not isinstance(node, (str, bytes))


def _step(nodes: List[Any], kind: str, value: Any) -> List[Any]:
    found = []
    for node in nodes:
        if kind == ANY:
            if isinstance(node, Mapping):
                found.extend(node.values())
            elif _is_sequence(node):
                found.extend(node)
        elif kind == INDEX:
            if _is_sequence(node) and value < len(node):
                found.append(node[value])
        elif isinstance(node, Mapping):
            if value in node:
                found.append(node[value])
        elif node is not None and not _is_sequence(node) and hasattr(node, value):
            found.append(getattr(node, value))
    return found


def resolve(context: Any, expr: Any, prefix: str = DEFAULT_PATH_PREFIX) -> Any:
    """
    Resolve a path expression against the context.

    Args:
        context: The evaluation context (mappings, sequences or objects).
        expr: A path expression, or any literal value.
        prefix: The path marker.

    Returns:
        The literal itself when ``expr`` is not a path. Otherwise None when
        nothing matches, the value for a single match, or a flat list of
        values when a wildcard yields several matches.

    Example:
        >>> resolve({"owner": {"id": 7}}, "$.owner.id")
        7
        >>> resolve({"owner": {"id": 7}}, "owner.id")
        'owner.id'
    """
    if not is_path(expr, prefix):
        return expr

    nodes = [context]
    for kind, value in parse_path(expr, prefix):
        nodes = _step(nodes, kind, value)
        if not nodes:
            return None

    if len(nodes) == 1:
        return nodes[0]

    flat: List[Any] = []
    for node in nodes:
        if isinstance(node, list):
            flat.extend(node)
        else:
            flat.append(node)
    return flat


def lookup(context: Any, key: str, prefix: str = DEFAULT_PATH_PREFIX) -> Any:
    """Read the value a condition key refers to."""
    if is_path(key, prefix):
        return resolve(context, key, prefix)
    if isinstance(context, Mapping):
        return context.get(key)
    return getattr(context, key, None)
