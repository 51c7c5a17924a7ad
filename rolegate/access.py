"""
Access builder - fluent interface for adding grants.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from .models import AccessInfo

if TYPE_CHECKING:
    from .engine import AccessControl


class Access:
    """
    Collects grant information and commits it to an AccessControl.

    ``on()`` commits and then resets the attributes, so several grants for
    the same role can be chained. Resource, action and condition carry
    over to the next ``on()`` until changed.

    Example:
        >>> ac.grant("user").execute("create").on("article")
        >>> ac.grant("editor").when({"Fn": "EQUALS", "args": {"category": "sports"}}) \\
        ...     .execute("update").on("article", ["*", "!status"])
        >>> ac.grant("r1").execute("read").on("a").grant("r2").execute("read").on("b")

    Builders created with ``deny()`` commit grants with no attributes, which
    grant nothing and so act as an explicit deny.
    """

    def __init__(
        self, control: "AccessControl", role_or_info: Any = None, denied: bool = False
    ):
        self._control = control
        self._denied = denied
        if isinstance(role_or_info, Mapping):
            self._info = AccessInfo.from_mapping(role_or_info)
            if self._info.is_fulfilled():
                self.commit()
        else:
            self._info = AccessInfo(role=role_or_info)

    @property
    def info(self) -> AccessInfo:
        return self._info

    @property
    def denied(self) -> bool:
        return self._denied

    def role(self, value: Any) -> "Access":
        self._info.role = value
        return self

    def resource(self, value: Any) -> "Access":
        self._info.resource = value
        return self

    def action(self, value: Any) -> "Access":
        self._info.action = value
        return self

    execute = action

    def attributes(self, value: Any) -> "Access":
        self._info.attributes = value
        return self

    def condition(self, value: Any) -> "Access":
        self._info.condition = value
        return self

    when = condition

    def extend(self, roles: Any, condition: Any = None) -> "Access":
        """
        Make the current role(s) inherit the grants of ``roles``.

        Raises:
            RoleNotFoundError: If an extended role does not exist.
            SelfExtensionError: If a role would end up extending itself.
        """
        self._control.extend_role(self._info.role, roles, condition)
        return self

    def commit(self) -> "Access":
        """
        Commit the collected grant information.

        Raises:
            InvalidInputError: If role, resource or action is missing.
            InvalidConditionError: If the condition is malformed.
        """
        if self._denied:
            self._control.commit(AccessInfo(
                role=self._info.role,
                resource=self._info.resource,
                action=self._info.action,
                attributes=[],
                condition=self._info.condition,
            ))
        else:
            self._control.commit(self._info)
        return self

    def on(self, resource: Any = None, attributes: Optional[Any] = None) -> "Access":
        """
        Set the resource (and optionally the attributes) and commit.

        Args:
            resource: Resource name(s); keeps the previous resource when None.
            attributes: Attribute globs for this grant; defaults to ``["*"]``.

        Returns:
            This builder, with attributes reset for the next grant.
        """
        if resource is not None:
            self._info.resource = resource
        if attributes is not None:
            self._info.attributes = attributes
        self.commit()
        self._info.attributes = None
        return self

    def grant(self, role_or_info: Any = None) -> "Access":
        """Start a new grant builder on the same AccessControl."""
        return self._control.grant(role_or_info)

    def deny(self, role_or_info: Any = None) -> "Access":
        return self._control.deny(role_or_info)
