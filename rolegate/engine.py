"""
Access Control Engine - authorization decisions for roles and attributes.

This module ties the grants model, the condition evaluator and the query
resolver together behind the AccessControl facade. Every query exists in
two flavours sharing one implementation:

- ``permission()``, ``allowing_roles()``, ... evaluate synchronously and
  raise SyncConditionNotBooleanError if a condition function returns an
  awaitable
- ``permission_async()``, ``allowing_roles_async()``, ... await such
  condition functions
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .access import Access
from .conditions import ConditionRegistry
from .evaluator import ConditionEvaluator, run_async, run_sync
from .exceptions import InvalidInputError, is_access_control_error
from .grants import GrantsModel
from .models import AccessInfo, Grant, QueryInfo, RoleEntry
from .permission import Permission
from .projection import filter_data
from .query import Query
from .resolver import QueryResolver
from .settings import Settings
from .snapshot import (build_roles, dump_roles, parse_snapshot,
                       parse_snapshot_json)

logger = logging.getLogger(__name__)


class AccessControl:
    """
    Role and attribute based access control.

    Roles receive grants (resource and action patterns, visible attributes
    and an optional condition) and can extend other roles, optionally under
    a condition. Queries flatten the requested roles through their
    extensions and union the attributes of every matching grant whose
    condition holds for the query context.

    Features:
        - Glob resource/action patterns with ``!`` negation
        - Attribute globs with field-level filtering of results
        - Built-in and custom (sync or async) conditions
        - Conditional role extension with self-extension protection
        - Reverse "which roles are allowed" queries
        - JSON snapshots of the grants

    Example:
        Basic usage:

        >>> ac = AccessControl()
        >>> ac.grant("user").execute("read").on("article", ["*", "!draft"])
        >>> ac.grant("editor").extend("user").execute("update").on("article")
        >>>
        >>> permission = ac.can("editor").execute("read").on("article")
        >>> permission.granted
        True
        >>> permission.filter({"title": "Hello", "draft": "..."})
        {'title': 'Hello'}

    Thread Safety:
        The grants are plain in-memory state without locking. Changing them
        while queries run in other threads must be serialized by the caller.
    """

    def __init__(
        self,
        grants: Optional[Union[Mapping, Sequence[Mapping]]] = None,
        *,
        settings: Optional[Settings] = None,
        registry: Optional[ConditionRegistry] = None,
    ):
        """
        Initialize the engine.

        Args:
            grants: Optional grants mapping or flat list of grant records.
            settings: Engine settings; read from the environment when omitted.
            registry: Custom condition functions; a new registry when omitted.

        Raises:
            InvalidInputError: If the grants are malformed.
        """
        self.settings = settings if settings is not None else Settings()
        self.registry = (
            registry
            if registry is not None
            else ConditionRegistry(
                prefix=self.settings.custom_condition_prefix,
                warn_on_override=self.settings.warn_on_condition_override,
            )
        )
        self.evaluator = ConditionEvaluator(self.registry, self.settings.path_prefix)
        self._model = GrantsModel()
        self._resolver = QueryResolver(self._model, self.evaluator)

        if grants is not None:
            self.set_grants(grants)

    # Grants management
    def get_grants(self) -> Dict[str, RoleEntry]:
        """
        Get the role entries of the grants model.

        Returns:
            Role name -> role entry. Entries are the live model objects.
        """
        return dict(self._model.roles)

    def set_grants(self, grants: Union[Mapping, Sequence[Mapping]]) -> "AccessControl":
        """
        Replace all grants.

        Args:
            grants: Either a mapping of role name to role record (see
                :mod:`rolegate.snapshot`) or a flat list of grant records
                with ``role``, ``resource``, ``action`` and optional
                ``attributes`` and ``condition`` keys.

        Raises:
            InvalidInputError: If the grants are malformed. The current
                grants are kept in that case.
            RoleNotFoundError: If an extension points at a missing role.
            SelfExtensionError: If the extensions form a cycle.
        """
        staging = GrantsModel()
        if isinstance(grants, Mapping):
            for entry in build_roles(parse_snapshot(grants)):
                staging.add_role(entry)
        elif isinstance(grants, (list, tuple)):
            for record in grants:
                if not isinstance(record, Mapping):
                    raise InvalidInputError(f"Invalid grant record: {record!r}")
                staging.commit(AccessInfo.from_mapping(record))
        else:
            raise InvalidInputError(
                f"Invalid grants: expected a mapping or a list, got {type(grants).__name__}"
            )

        return self._replace(staging)

    def _replace(self, staging: GrantsModel) -> "AccessControl":
        staging.check_graph()
        self._model.reset()
        for entry in staging:
            self._model.add_role(entry)

        logger.info(
            f"Grants replaced with {len(self._model)} roles",
            extra={"role_count": len(self._model)},
        )
        return self

    def reset(self) -> "AccessControl":
        """Remove all grants and roles."""
        self._model.reset()
        logger.info("Grants reset")
        return self

    def commit(self, info: Union[AccessInfo, Mapping]) -> Grant:
        """
        Add a grant to one or more roles.

        Args:
            info: Access information with role(s), resource(s), action(s)
                and optional attributes and condition.

        Returns:
            The committed grant.

        Raises:
            InvalidInputError: If role, resource or action is missing.
            InvalidConditionError: If the condition is malformed.
        """
        if isinstance(info, Mapping):
            info = AccessInfo.from_mapping(info)
        return self._model.commit(info)

    def get_roles(self) -> List[str]:
        return self._model.names()

    def get_role(self, role: str) -> RoleEntry:
        """
        Get a role entry by name.

        Raises:
            RoleNotFoundError: If the role does not exist.
        """
        return self._model.get(role)

    def has_role(self, role: Union[str, Sequence[str]]) -> bool:
        """Check whether every given role exists."""
        roles = [role] if isinstance(role, str) else list(role)
        return bool(roles) and all(name in self._model for name in roles)

    # Builders
    def grant(self, role_or_info: Any = None) -> Access:
        """
        Start granting access.

        Args:
            role_or_info: Role name(s), or a mapping with ``role``,
                ``resource``, ``action`` and optional ``attributes`` and
                ``condition``. A complete mapping is committed right away.

        Example:
            >>> ac.grant("user").execute("create").on("article")
            >>> ac.grant({"role": "user", "resource": "photo", "action": "read"})
        """
        return Access(self, role_or_info)

    allow = grant

    def deny(self, role_or_info: Any = None) -> Access:
        """Start adding grants that convey no attributes (explicit denies)."""
        return Access(self, role_or_info, denied=True)

    def can(self, role: Any = None) -> Query:
        """
        Start a permission query.

        Example:
            >>> ac.can("user").with_context({"category": "sports"}) \\
            ...     .execute("create").on("article").granted
        """
        return Query(self, role)

    access = can

    # Role graph
    def extend_role(
        self, roles: Any, extender_roles: Any, condition: Any = None
    ) -> "AccessControl":
        """
        Make roles inherit the grants of other roles.

        Args:
            roles: Role(s) that extend; created when missing.
            extender_roles: Existing role(s) whose grants are inherited.
            condition: Optional condition for the inheritance to apply.

        Raises:
            RoleNotFoundError: If an extender role does not exist.
            SelfExtensionError: If a role would directly or transitively
                extend itself.
        """
        self._model.extend(roles, extender_roles, condition)
        return self

    def remove_roles(self, roles: Any) -> "AccessControl":
        """
        Remove roles and every extension pointing at them.

        Scores of roles that extended a removed role are not recomputed.
        """
        self._model.remove_roles(roles)
        return self

    def flatten_roles(
        self, roles: Any, context: Any = None, skip_conditions: bool = False
    ) -> List[str]:
        """
        Expand roles with every role they extend under the context.

        Raises:
            RoleNotFoundError: If a role does not exist.
        """
        query = QueryInfo(role=roles)
        return run_sync(self._resolver.flatten(query.roles, context, skip_conditions))

    async def flatten_roles_async(
        self, roles: Any, context: Any = None, skip_conditions: bool = False
    ) -> List[str]:
        query = QueryInfo(role=roles)
        return await run_async(self._resolver.flatten(query.roles, context, skip_conditions))

    # Queries
    def _decide(self, query: QueryInfo, attributes: List[str]) -> Permission:
        permission = Permission(query.roles, query.resource, query.action, attributes)
        level = logging.INFO if self.settings.log_decisions else logging.DEBUG
        outcome = "granted" if permission.granted else "denied"
        logger.log(
            level,
            f"Permission {outcome}: roles={permission.roles} action={permission.action} "
            f"resource={permission.resource} attributes={permission.attributes}",
            extra={
                "roles": permission.roles,
                "action": permission.action,
                "resource": permission.resource,
                "granted": permission.granted,
            },
        )
        return permission

    def permission(self, query_info: Any) -> Permission:
        """
        Evaluate a permission query synchronously.

        Args:
            query_info: A QueryInfo, or a mapping with ``role``, ``resource``,
                ``action`` and optional ``context`` and ``skip_conditions``.

        Returns:
            The resulting Permission.

        Raises:
            InvalidInputError: If role, resource or action is missing.
            RoleNotFoundError: If a queried role does not exist.
            SyncConditionNotBooleanError: If a condition function returned an
                awaitable.
        """
        query = QueryInfo.coerce(query_info)
        return self._decide(query, run_sync(self._resolver.attributes(query)))

    async def permission_async(self, query_info: Any) -> Permission:
        """Evaluate a permission query, awaiting async condition functions."""
        query = QueryInfo.coerce(query_info)
        return self._decide(query, await run_async(self._resolver.attributes(query)))

    def allowing_roles(self, query_info: Any) -> List[str]:
        """
        Find every role allowed the query's action on its resource.

        Raises:
            InvalidInputError: If resource or action is missing.
        """
        query = QueryInfo.coerce(query_info)
        return run_sync(self._resolver.allowing_roles(query))

    async def allowing_roles_async(self, query_info: Any) -> List[str]:
        query = QueryInfo.coerce(query_info)
        return await run_async(self._resolver.allowing_roles(query))

    def allowed_resources(self, query_info: Any) -> List[str]:
        """
        List the resource patterns granted to the query's roles.

        Conditions are ignored unless a context is given.
        """
        query = QueryInfo.coerce(query_info)
        return run_sync(self._resolver.allowed_resources(query))

    async def allowed_resources_async(self, query_info: Any) -> List[str]:
        query = QueryInfo.coerce(query_info)
        return await run_async(self._resolver.allowed_resources(query))

    def allowed_actions(self, query_info: Any) -> List[str]:
        """
        List the action patterns granted to the query's roles on its resource.

        Conditions are ignored unless a context is given.
        """
        query = QueryInfo.coerce(query_info)
        return run_sync(self._resolver.allowed_actions(query))

    async def allowed_actions_async(self, query_info: Any) -> List[str]:
        query = QueryInfo.coerce(query_info)
        return await run_async(self._resolver.allowed_actions(query))

    # Custom conditions
    def register_condition_function(
        self, name: str, function: Callable[..., Any]
    ) -> "AccessControl":
        """
        Register a custom condition function under a name.

        The function receives the query context (and the condition's
        ``args`` if any) and returns a bool or an awaitable resolving to one.
        """
        self.registry.register(name, function)
        return self

    def set_custom_condition_functions(
        self, functions: Mapping
    ) -> "AccessControl":
        """Replace all custom condition functions."""
        self.registry.register_all(functions)
        return self

    # Snapshots
    def to_dict(self) -> Dict[str, Any]:
        """
        Export the grants as plain data.

        Raises:
            InvalidConditionError: If a condition function is not registered.
        """
        return dump_roles(self._model, self.registry).model_dump(by_alias=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        """Export the grants as JSON; see to_dict."""
        return dump_roles(self._model, self.registry).model_dump_json(
            by_alias=True, indent=indent
        )

    @classmethod
    def from_json(
        cls,
        data: str,
        *,
        settings: Optional[Settings] = None,
        registry: Optional[ConditionRegistry] = None,
    ) -> "AccessControl":
        """
        Build an engine from a JSON snapshot.

        Custom conditions in the snapshot refer to functions by name; pass
        a registry that has them registered.

        Raises:
            InvalidInputError: If the document is not a valid snapshot.
            RoleNotFoundError: If an extension points at a missing role.
            SelfExtensionError: If the extensions form a cycle.
        """
        staging = GrantsModel()
        for entry in build_roles(parse_snapshot_json(data)):
            staging.add_role(entry)
        return cls(settings=settings, registry=registry)._replace(staging)

    # Helpers
    @staticmethod
    def filter(data: Any, attributes: Any) -> Any:
        """
        Filter data down to the given attribute globs.

        Example:
            >>> AccessControl.filter({"car": {"model": "T", "year": 1908}}, ["*", "!car.year"])
            {'car': {'model': 'T'}}
        """
        return filter_data(data, attributes)

    @staticmethod
    def is_access_control_error(obj: Any) -> bool:
        return is_access_control_error(obj)
