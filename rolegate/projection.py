"""
Attribute projection - prune data down to the fields a permission grants.
"""

import copy
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Union

from .matching import covers, sort_globs, split_glob
from .models import to_string_list


def _copy_matching(source: Mapping, target: Dict[str, Any], pattern: List[str]) -> None:
    head, rest = pattern[0], pattern[1:]
    for key, value in source.items():
        if not _segment_matches(key, head):
            continue
        if not rest:
            target[key] = copy.deepcopy(value)
        elif isinstance(value, Mapping):
            branch = target.get(key)
            if not isinstance(branch, dict):
                branch = {}
            _copy_matching(value, branch, rest)
            if branch:
                target[key] = branch


def _remove_matching(target: Dict[str, Any], pattern: List[str]) -> None:
    head, rest = pattern[0], pattern[1:]
    for key in list(target):
        if not _segment_matches(key, head):
            continue
        if not rest:
            del target[key]
        elif isinstance(target[key], dict):
            _remove_matching(target[key], rest)


def _segment_matches(key: Any, glob: str) -> bool:
    return covers([glob], [str(key)])


def _project(data: Any, globs: List[str]) -> Dict[str, Any]:
    if not globs or not isinstance(data, Mapping):
        return {}

    result: Dict[str, Any] = {}
    for glob in globs:
        negated, pattern = split_glob(glob)
        if negated:
            _remove_matching(result, pattern)
        else:
            _copy_matching(data, result, pattern)
    return result


def filter_data(
    data: Any, attributes: Optional[Union[str, Sequence[str]]] = None
) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Keep only the fields of ``data`` selected by attribute globs.

    Globs are applied broad to specific, so ``["car.model", "*", "!car.*"]``
    runs as ``*``, then ``!car.*``, then ``car.model``: everything, minus
    the car's fields, plus its model back again. The input is never
    modified.

    Args:
        data: A mapping, or a list of mappings filtered element-wise.
        attributes: Attribute globs as a list or a comma separated string.

    Returns:
        The filtered copy. An empty or missing glob list selects nothing.

    Example:
        >>> filter_data({"account": {"id": 33, "balance": 5}}, ["*", "!account.id"])
        {'account': {'balance': 5}}
    """
    globs = sort_globs(to_string_list(attributes)) if attributes else []
    if isinstance(data, list):
        return [_project(item, globs) for item in data]
    return _project(data, globs)

