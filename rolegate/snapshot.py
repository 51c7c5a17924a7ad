"""
Grants snapshots - validated import and export of the grants model.

A snapshot maps role names to their score, grants and extensions::

    {
        "user": {"grants": [{"resource": "article", "action": "read"}]},
        "editor": {
            "score": 2,
            "grants": [{"resource": "article", "action": "update",
                        "attributes": ["*", "!status"],
                        "condition": {"Fn": "EQUALS", "args": {"category": "sports"}}}],
            "$extend": {"user": {"condition": None}},
        },
    }

Custom condition functions appear by their registered name only; their
code is never serialized.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional

from pydantic import (BaseModel, ConfigDict, Field, RootModel,
                      ValidationError, field_validator)

from .conditions import Condition, ConditionRegistry, parse_condition
from .exceptions import InvalidInputError
from .models import AccessInfo, RoleEntry, to_string_list


class GrantRecord(BaseModel):
    """Serialized form of a single grant."""

    model_config = ConfigDict(extra="forbid")

    resource: List[str]
    action: List[str]
    attributes: Optional[List[str]] = None
    condition: Any = None

    @field_validator("resource", "action", "attributes", mode="before")
    @classmethod
    def split_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            return to_string_list(value)
        return value


class ExtensionRecord(BaseModel):
    """Serialized form of an extension edge."""

    model_config = ConfigDict(extra="forbid")

    condition: Any = None


class RoleRecord(BaseModel):
    """Serialized form of a role."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    score: int = Field(default=1, ge=1)
    grants: List[GrantRecord] = Field(default_factory=list)
    extends: Dict[str, ExtensionRecord] = Field(default_factory=dict, alias="$extend")


class GrantsSnapshot(RootModel[Dict[str, RoleRecord]]):
    """Role name -> role record."""


def parse_snapshot(data: Mapping) -> GrantsSnapshot:
    """
    Validate a grants mapping.

    Raises:
        InvalidInputError: If the mapping does not describe valid grants.
    """
    try:
        return GrantsSnapshot.model_validate(dict(data))
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid grants: {exc}") from exc


def parse_snapshot_json(text: str) -> GrantsSnapshot:
    """Validate a JSON grants document; see parse_snapshot."""
    try:
        return GrantsSnapshot.model_validate_json(text)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid grants JSON: {exc}") from exc


def build_roles(snapshot: GrantsSnapshot) -> List[RoleEntry]:
    """
    Turn a validated snapshot into role entries.

    Raises:
        InvalidInputError: If a grant has an empty resource or action.
        InvalidConditionError: If a condition is malformed.
    """
    entries = []
    for name, record in snapshot.root.items():
        entry = RoleEntry(name=name, score=record.score)
        for grant in record.grants:
            info = AccessInfo(
                role=name,
                resource=grant.resource,
                action=grant.action,
                attributes=grant.attributes,
                condition=grant.condition,
            )
            entry.grants.append(info.to_grant())
        for target, extension in record.extends.items():
            entry.extends[target] = parse_condition(extension.condition)
        entries.append(entry)
    return entries


def _raw_condition(
    condition: Optional[Condition], registry: Optional[ConditionRegistry]
) -> Any:
    if condition is None:
        return None
    return condition.to_raw(registry)


def dump_roles(
    entries: Iterable[RoleEntry], registry: Optional[ConditionRegistry] = None
) -> GrantsSnapshot:
    """
    Build a snapshot of role entries.

    Raises:
        InvalidConditionError: If a condition function is not registered.
    """
    roles = {}
    for entry in entries:
        grants = [
            GrantRecord(
                resource=list(grant.resource),
                action=list(grant.action),
                attributes=list(grant.attributes),
                condition=_raw_condition(grant.condition, registry),
            )
            for grant in entry.grants
        ]
        extends = {
            target: ExtensionRecord(condition=_raw_condition(condition, registry))
            for target, condition in entry.extends.items()
        }
        roles[entry.name] = RoleRecord(score=entry.score, grants=grants, extends=extends)
    return GrantsSnapshot(roles)

