"""
Permission - the immutable outcome of a permission query.
"""

from typing import Any, Dict, List, Sequence, Tuple, Union

from .projection import filter_data


class Permission:
    """
    Result of a permission query.

    Attributes:
        granted: Whether any attribute is visible to the queried roles
        attributes: Attribute globs the roles may see
        roles: The queried role names
        resource: The queried resource
        action: The queried action

    Example:
        >>> permission = ac.can("user").execute("read").on("account")
        >>> if permission.granted:
        ...     visible = permission.filter(account)
    """

    __slots__ = ("_roles", "_resource", "_action", "_attributes")

    def __init__(
        self,
        roles: Sequence[str],
        resource: str,
        action: str,
        attributes: Sequence[str],
    ):
        self._roles: Tuple[str, ...] = tuple(roles)
        self._resource = resource
        self._action = action
        self._attributes: Tuple[str, ...] = tuple(attributes)

    @property
    def roles(self) -> List[str]:
        return list(self._roles)

    @property
    def resource(self) -> str:
        return self._resource

    @property
    def action(self) -> str:
        return self._action

    @property
    def attributes(self) -> List[str]:
        return list(self._attributes)

    @property
    def granted(self) -> bool:
        return len(self._attributes) > 0

    def filter(self, data: Any) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """
        Filter data down to the granted attributes.

        Args:
            data: A mapping or a list of mappings; it is not modified.

        Returns:
            A filtered copy of the data.
        """
        return filter_data(data, self.attributes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert permission to dictionary format."""
        return {
            "granted": self.granted,
            "roles": self.roles,
            "resource": self.resource,
            "action": self.action,
            "attributes": self.attributes,
        }

    def __repr__(self) -> str:
        return (
            f"Permission(granted={self.granted}, roles={self.roles!r}, "
            f"resource={self.resource!r}, action={self.action!r}, "
            f"attributes={self.attributes!r})"
        )
