"""
Grants Models - Data structures for role grants and queries.

This module defines the core data models used by the access control engine:
- Grant: resource/action patterns, visible attributes and an optional condition
- RoleEntry: a role's score, grants and conditional extensions
- AccessInfo: what an Access builder has collected before committing
- QueryInfo: a permission query (roles, resource, action, context)
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

from .conditions import Condition, parse_condition
from .exceptions import InvalidInputError
from .matching import any_match

DEFAULT_ATTRIBUTES = ("*",)

_LIST_SEPARATOR = re.compile(r"\s*[;,]\s*")


def to_string_list(value: Any) -> List[str]:
    """
    Normalize a single name, a separated string or a sequence into a list.

    Example:
        >>> to_string_list("admin, editor; viewer")
        ['admin', 'editor', 'viewer']
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.strip()
        return [part for part in _LIST_SEPARATOR.split(value) if part] if value else []
    if isinstance(value, (list, tuple)):
        return list(value)
    raise InvalidInputError(f"Expected a string or a list of strings, got {value!r}")


def _filled_strings(value: Any, label: str) -> Tuple[str, ...]:
    items = to_string_list(value)
    if not items:
        raise InvalidInputError(f"Invalid {label}: {value!r}; expected a non-empty value")
    for item in items:
        if not isinstance(item, str) or not item.strip():
            raise InvalidInputError(f"Invalid {label}: {value!r}; expected non-empty strings")
    return tuple(item.strip() for item in items)


@dataclass(frozen=True)
class Grant:
    """
    A single permission record owned by a role.

    Resource and action patterns are globs, optionally negated with ``!``.
    An empty attribute list grants nothing and can be used to model an
    explicit deny.

    Attributes:
        resource: Resource patterns (e.g. ``("article",)`` or ``("!photo",)``)
        action: Action patterns (e.g. ``("*", "!create")``)
        attributes: Attribute globs visible through this grant
        condition: Optional condition the context has to satisfy
    """

    resource: Tuple[str, ...]
    action: Tuple[str, ...]
    attributes: Tuple[str, ...] = DEFAULT_ATTRIBUTES
    condition: Optional[Condition] = None

    def __post_init__(self) -> None:
        """Validate grant data after initialization."""
        if not self.resource:
            raise InvalidInputError("Grant resource cannot be empty")
        if not self.action:
            raise InvalidInputError("Grant action cannot be empty")

    def matches(self, resource: str, action: str) -> bool:
        """Check whether this grant covers a resource/action pair."""
        return any_match(resource, self.resource) and any_match(action, self.action)

    def matches_resource(self, resource: str) -> bool:
        return any_match(resource, self.resource)


@dataclass
class RoleEntry:
    """
    A role in the grants model.

    Attributes:
        name: Unique role name
        score: Ordering key; always higher than the score of any role it extends
        grants: Grants owned directly by the role
        extends: Extended role name -> optional condition, in insertion order
    """

    name: str
    score: int = 1
    grants: List[Grant] = field(default_factory=list)
    extends: Dict[str, Optional[Condition]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidInputError("Role name cannot be empty")
        if self.score < 1:
            raise InvalidInputError(f"Role score must be at least 1, got {self.score}")


@dataclass
class AccessInfo:
    """
    Grant information gathered by an Access builder.

    Every field keeps what the caller supplied until ``normalize`` turns it
    into validated lists.
    """

    role: Any = None
    resource: Any = None
    action: Any = None
    attributes: Any = None
    condition: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping) -> "AccessInfo":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidInputError(f"Unknown grant fields: {', '.join(sorted(unknown))}")
        return cls(**dict(data))

    def is_fulfilled(self) -> bool:
        """True when role, resource and action are all present."""
        return all(
            to_string_list(value) for value in (self.role, self.resource, self.action)
        )

    def roles(self) -> Tuple[str, ...]:
        return _filled_strings(self.role, "role")

    def to_grant(self) -> Grant:
        """
        Validate the collected information and build a Grant from it.

        Raises:
            InvalidInputError: If resource, action or attributes are malformed.
            InvalidConditionError: If the condition is malformed.
        """
        if self.attributes is None:
            attributes = DEFAULT_ATTRIBUTES
        else:
            attributes = tuple(to_string_list(self.attributes))
            if not all(isinstance(item, str) and item for item in attributes):
                raise InvalidInputError(f"Invalid attributes: {self.attributes!r}")

        return Grant(
            resource=_filled_strings(self.resource, "resource"),
            action=_filled_strings(self.action, "action"),
            attributes=attributes,
            condition=parse_condition(self.condition),
        )


@dataclass
class QueryInfo:
    """
    A permission query.

    Attributes:
        role: Role name(s) to check, as a list or a separated string
        resource: Resource name
        action: Action name
        context: Evaluation context for conditions
        skip_conditions: Ignore every condition when True
    """

    role: Any = None
    resource: Optional[str] = None
    action: Optional[str] = None
    context: Any = None
    skip_conditions: Optional[bool] = None

    @classmethod
    def coerce(cls, query: Any) -> "QueryInfo":
        """Accept a QueryInfo, a mapping of its fields, or bare role name(s)."""
        if isinstance(query, QueryInfo):
            return query
        if isinstance(query, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = set(query) - known
            if unknown:
                raise InvalidInputError(
                    f"Unknown query fields: {', '.join(sorted(unknown))}"
                )
            return cls(**dict(query))
        if isinstance(query, (str, list, tuple)):
            return cls(role=query)
        raise InvalidInputError(f"Invalid query: {query!r}")

    @property
    def roles(self) -> List[str]:
        return list(_filled_strings(self.role, "role"))

    def require(self, *names: str) -> None:
        """
        Check that the named fields are non-empty strings and strip them.

        Raises:
            InvalidInputError: If a required field is missing or empty.
        """
        for name in names:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInputError(f"Invalid {name}: {value!r}; expected a non-empty string")
            setattr(self, name, value.strip())
