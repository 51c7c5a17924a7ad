"""
rolegate - Role and attribute based access control for Python applications.

rolegate decides whether a set of roles may perform an action on a
resource, and which attributes of that resource they may see. Grants can
carry conditions evaluated against a request context, and roles can
extend each other, optionally under a condition.

Features:
    - Fluent grant and query builders
    - Glob resource, action and attribute patterns with negation
    - Built-in EQUALS / NOT_EQUALS / LIST_CONTAINS / STARTS_WITH / AND / OR / NOT
      conditions and custom sync or async condition functions
    - Conditional role extension
    - Field-level filtering of data with granted attributes
    - JSON snapshots of the grants

Example:
    >>> from rolegate import AccessControl
    >>> ac = AccessControl()
    >>> ac.grant("user").execute("create").on("photo", ["*", "!size"])
    >>> ac.can("user").execute("create").on("photo").attributes
    ['*', '!size']
"""

from .access import Access
from .conditions import (AndCondition, Condition, ConditionRegistry,
                         CustomCondition, EqualsCondition,
                         ListContainsCondition, NotCondition,
                         NotEqualsCondition, OrCondition, StartsWithCondition,
                         TrueCondition, parse_condition)
from .engine import AccessControl
from .evaluator import ConditionEvaluator
from .exceptions import (AccessControlError, InvalidConditionError,
                         InvalidInputError, RoleNotFoundError,
                         SelfExtensionError, SyncConditionNotBooleanError,
                         UnknownConditionError, is_access_control_error)
from .matching import any_match, union_globs
from .models import AccessInfo, Grant, QueryInfo, RoleEntry
from .permission import Permission
from .projection import filter_data
from .query import Query
from .settings import Settings, get_settings

__version__ = "0.1.0"

__all__ = [
    "AccessControl",
    "Access",
    "Query",
    "Permission",
    "AccessInfo",
    "QueryInfo",
    "Grant",
    "RoleEntry",
    "Condition",
    "TrueCondition",
    "EqualsCondition",
    "NotEqualsCondition",
    "ListContainsCondition",
    "StartsWithCondition",
    "AndCondition",
    "OrCondition",
    "NotCondition",
    "CustomCondition",
    "ConditionRegistry",
    "ConditionEvaluator",
    "parse_condition",
    "AccessControlError",
    "InvalidInputError",
    "RoleNotFoundError",
    "SelfExtensionError",
    "UnknownConditionError",
    "InvalidConditionError",
    "SyncConditionNotBooleanError",
    "is_access_control_error",
    "any_match",
    "union_globs",
    "filter_data",
    "Settings",
    "get_settings",
]
