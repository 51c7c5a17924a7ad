"""
Query builder - fluent interface for permission checks.
"""

from typing import TYPE_CHECKING, Any, Optional

from .models import QueryInfo
from .permission import Permission

if TYPE_CHECKING:
    from .engine import AccessControl


class Query:
    """
    Builds a permission query and runs it against an AccessControl.

    ``on()`` evaluates synchronously; ``on_async()`` must be used when
    custom condition functions may return awaitables.

    Example:
        >>> ac.can("user").execute("create").on("article").granted
        True
        >>> permission = await ac.can("editor").with_context({"category": "sports"}) \\
        ...     .execute("update").on_async("article")
    """

    def __init__(self, control: "AccessControl", role: Any = None):
        self._control = control
        self._info = QueryInfo.coerce(role) if role is not None else QueryInfo()

    @property
    def info(self) -> QueryInfo:
        return self._info

    def role(self, value: Any) -> "Query":
        self._info.role = value
        return self

    def resource(self, value: str) -> "Query":
        self._info.resource = value
        return self

    def action(self, value: str) -> "Query":
        self._info.action = value
        return self

    execute = action

    def context(self, value: Any) -> "Query":
        self._info.context = value
        return self

    with_context = context

    def skip_conditions(self, value: bool = True) -> "Query":
        self._info.skip_conditions = value
        return self

    def _prepare(self, resource: Optional[str], skip_conditions: Optional[bool]) -> QueryInfo:
        if resource is not None:
            self._info.resource = resource
        if skip_conditions is not None:
            self._info.skip_conditions = bool(skip_conditions or self._info.skip_conditions)
        return self._info

    def on(
        self, resource: Optional[str] = None, skip_conditions: Optional[bool] = None
    ) -> Permission:
        """
        Set the resource and evaluate the query synchronously.

        Args:
            resource: Resource name; keeps the previous resource when None.
            skip_conditions: Skip conditions when true. Combined with an
                earlier ``skip_conditions()`` call, either one enables it.

        Raises:
            SyncConditionNotBooleanError: If a condition function returned an
                awaitable.
        """
        return self._control.permission(self._prepare(resource, skip_conditions))

    async def on_async(
        self, resource: Optional[str] = None, skip_conditions: Optional[bool] = None
    ) -> Permission:
        """Set the resource and evaluate the query, awaiting condition functions."""
        return await self._control.permission_async(self._prepare(resource, skip_conditions))
