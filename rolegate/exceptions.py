"""
Error types raised by the access control engine.

Every error derives from AccessControlError so callers can tell an
authorization-engine failure apart from anything else. Errors raised by
user-supplied condition functions are not wrapped.
"""

from typing import Any, Optional


class AccessControlError(Exception):
    """Access control error with optional machine-readable code."""

    default_code: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class InvalidInputError(AccessControlError):
    """Malformed role, resource, action or attribute arguments."""

    default_code = "invalid_input"


class RoleNotFoundError(AccessControlError):
    """A query or extension references a role absent from the grants."""

    default_code = "role_not_found"

    def __init__(self, role: str, code: Optional[str] = None):
        super().__init__(f"Role not found: '{role}'", code)
        self.role = role


class SelfExtensionError(AccessControlError):
    """A role would directly or transitively extend itself."""

    default_code = "self_extension"


class UnknownConditionError(AccessControlError):
    """A condition names a function that is neither built in nor registered."""

    default_code = "unknown_condition"


class InvalidConditionError(AccessControlError):
    """A condition or its arguments have the wrong shape."""

    default_code = "invalid_condition"


class SyncConditionNotBooleanError(AccessControlError):
    """A condition function returned an awaitable during synchronous evaluation."""

    default_code = "sync_condition_not_boolean"


def is_access_control_error(obj: Any) -> bool:
    """Check whether an object is an access control error."""
    return isinstance(obj, AccessControlError)
