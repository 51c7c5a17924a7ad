"""
Glob matching for resources, actions and attribute paths.

Resource and action patterns are flat globs (``*``, ``?`` and ``[...]``
as understood by :mod:`fnmatch`), optionally negated with a leading
``!``. Attribute patterns are dotted field paths where every segment is
such a glob, e.g. ``account.*`` or ``!account.balance.credit``.
"""

import fnmatch
from typing import Iterable, List, Sequence, Tuple, Union

NEGATION_PREFIX = "!"
PATH_SEPARATOR = "."


def unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates while keeping first-seen order."""
    return list(dict.fromkeys(items))


def is_negated(pattern: str) -> bool:
    return pattern.startswith(NEGATION_PREFIX)


def matches(value: str, patterns: Sequence[str]) -> bool:
    """
    Check a single value against an ordered pattern list.

    Patterns are applied in order and the last one that matches decides:
    a plain pattern accepts the value, a negated one rejects it. A value
    that no pattern matches is accepted only when the list starts with a
    negation, so ``["!photo"]`` means "anything but photo".

    Args:
        value: The resource or action name to test.
        patterns: Glob patterns, possibly negated.

    Returns:
        True if the value passes the pattern list.

    Example:
        >>> matches("update", ["*", "!create"])
        True
        >>> matches("create", ["*", "!create"])
        False
    """
    if not patterns:
        return True

    matched = is_negated(patterns[0])
    for pattern in patterns:
        negated = is_negated(pattern)
        body = pattern[len(NEGATION_PREFIX):] if negated else pattern
        if fnmatch.fnmatchcase(value, body):
            matched = not negated
    return matched


def any_match(values: Union[str, Sequence[str]], patterns: Sequence[str]) -> bool:
    """Return True if any of the values passes the pattern list."""
    if isinstance(values, str):
        values = [values]
    return any(matches(value, patterns) for value in values)


# Attribute path globs


def split_glob(glob: str) -> Tuple[bool, List[str]]:
    """Split an attribute glob into its negation flag and path segments."""
    negated = is_negated(glob)
    body = glob[len(NEGATION_PREFIX):] if negated else glob
    return negated, body.split(PATH_SEPARATOR)


def covers(pattern: Sequence[str], path: Sequence[str]) -> bool:
    """
    Check whether a glob (as segments) selects a field path (as segments).

    A glob selects the field it names and everything nested below it, so
    ``account`` covers ``account.id`` while ``account.id`` does not cover
    ``account``.
    """
    if len(pattern) > len(path):
        return False
    return all(
        fnmatch.fnmatchcase(segment, glob) for glob, segment in zip(pattern, path)
    )


def glob_sort_key(glob: str) -> Tuple[int, int, int]:
    """
    Ordering key that puts broad globs before specific ones.

    Shallower globs come first, then (at the same depth) globs ending in
    a wildcard segment, then plain globs before negations.
    """
    negated, segments = split_glob(glob)
    loose = any(char in segments[-1] for char in "*?[")
    return (len(segments), 0 if loose else 1, 1 if negated else 0)


def sort_globs(globs: Iterable[str]) -> List[str]:
    return sorted(unique(globs), key=glob_sort_key)


def is_visible(path: Sequence[str], globs: Sequence[str]) -> bool:
    """Tell whether a field path survives the layered application of globs."""
    visible = False
    for glob in sort_globs(globs):
        negated, pattern = split_glob(glob)
        if covers(pattern, path):
            visible = not negated
    return visible


def _overlaps(first: Sequence[str], second: Sequence[str]) -> bool:
    return covers(first, second) or covers(second, first)


def union_globs(first: Sequence[str], second: Sequence[str]) -> List[str]:
    """
    Merge two attribute glob lists into one that shows what either shows.

    Identical globs are deduplicated. A negation survives only if the
    other list does not reveal the path it hides, and a plain glob that
    a broader one already covers is dropped unless some surviving
    negation reaches into it.

    Args:
        first: Attribute globs of one grant (or of an earlier union).
        second: Attribute globs of another grant.

    Returns:
        Plain globs followed by negations, both in first-seen order.

    Example:
        >>> union_globs(["*"], ["*", "!id"])
        ['*']
        >>> union_globs([], ["*", "!size"])
        ['*', '!size']
    """
    first, second = unique(first), unique(second)

    negations: List[str] = []
    for own, other in ((first, second), (second, first)):
        for glob in own:
            negated, segments = split_glob(glob)
            if negated and glob not in negations and not is_visible(segments, other):
                negations.append(glob)

    positives = [glob for glob in unique(first + second) if not is_negated(glob)]
    hidden = [split_glob(glob)[1] for glob in negations]

    result = []
    for glob in positives:
        segments = split_glob(glob)[1]
        redundant = False
        for other in positives:
            if other == glob:
                continue
            other_segments = split_glob(other)[1]
            if covers(other_segments, segments) and not covers(segments, other_segments):
                redundant = True
                break
        if redundant and not any(_overlaps(negation, segments) for negation in hidden):
            continue
        result.append(glob)

    return result + negations
