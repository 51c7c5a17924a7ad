"""
Condition types - boolean predicates over an evaluation context.

Conditions are attached to grants and to role extensions. Each kind of
condition is its own small immutable class:

- TrueCondition: always true
- EqualsCondition / NotEqualsCondition: keyed comparisons
- ListContainsCondition: membership in a context list
- StartsWithCondition: string prefix checks
- AndCondition / OrCondition / NotCondition: combinators
- CustomCondition: a user-supplied function, by name or by value

Grants usually spell conditions in their raw form, which
``parse_condition`` turns into these classes::

    {"Fn": "EQUALS", "args": {"category": "sports"}}
    {"Fn": "OR", "args": [{"Fn": "EQUALS", "args": {...}}, ...]}
    "isOwner"                       # registered custom function
    lambda context: context["uid"] == 1
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple

from .exceptions import InvalidConditionError, UnknownConditionError

logger = logging.getLogger(__name__)

DEFAULT_CUSTOM_PREFIX = "custom:"


class Condition:
    """Base class of all condition kinds."""

    tag: ClassVar[str] = ""

    def to_raw(self, registry: Optional["ConditionRegistry"] = None) -> Any:
        """Return the plain ``{"Fn": ..., "args": ...}`` form of the condition."""
        raise NotImplementedError()


@dataclass(frozen=True)
class TrueCondition(Condition):
    tag: ClassVar[str] = "TRUE"

    def to_raw(self, registry: Optional["ConditionRegistry"] = None) -> Any:
        return {"Fn": self.tag}


@dataclass(frozen=True)
class KeyedCondition(Condition):
    """Comparison of context values (by key or path) against candidates."""

    args: Dict[str, Any] = field(default_factory=dict)

    def to_raw(self, registry: Optional["ConditionRegistry"] = None) -> Any:
        return {"Fn": self.tag, "args": dict(self.args)}


@dataclass(frozen=True)
class EqualsCondition(KeyedCondition):
    tag: ClassVar[str] = "EQUALS"


@dataclass(frozen=True)
class NotEqualsCondition(KeyedCondition):
    tag: ClassVar[str] = "NOT_EQUALS"


@dataclass(frozen=True)
class ListContainsCondition(KeyedCondition):
    tag: ClassVar[str] = "LIST_CONTAINS"


@dataclass(frozen=True)
class StartsWithCondition(KeyedCondition):
    tag: ClassVar[str] = "STARTS_WITH"


@dataclass(frozen=True)
class CombinatorCondition(Condition):
    """Boolean combination of nested conditions."""

    conditions: Tuple[Condition, ...] = ()

    def to_raw(self, registry: Optional["ConditionRegistry"] = None) -> Any:
        return {
            "Fn": self.tag,
            "args": [condition.to_raw(registry) for condition in self.conditions],
        }


@dataclass(frozen=True)
class AndCondition(CombinatorCondition):
    tag: ClassVar[str] = "AND"


@dataclass(frozen=True)
class OrCondition(CombinatorCondition):
    tag: ClassVar[str] = "OR"


@dataclass(frozen=True)
class NotCondition(CombinatorCondition):
    """
    True when none of the nested conditions is true.

    With a single nested condition this is a plain negation; with several
    it reads as "none of", not as the negation of their conjunction.
    """

    tag: ClassVar[str] = "NOT"


@dataclass(frozen=True)
class CustomCondition(Condition):
    """
    A user-supplied condition function.

    Either ``name`` refers to a function in the engine's registry, or
    ``function`` holds the callable itself. The function is called with
    the context, plus ``args`` when the condition carries them, and may
    return a bool or an awaitable resolving to one.
    """

    name: Optional[str] = None
    function: Optional[Callable[..., Any]] = None
    args: Any = None

    def __post_init__(self) -> None:
        if (self.name is None) == (self.function is None):
            raise InvalidConditionError(
                "Custom condition needs either a function name or a function"
            )
        if self.function is not None and not callable(self.function):
            raise InvalidConditionError("Custom condition function must be callable")

    def to_raw(self, registry: Optional["ConditionRegistry"] = None) -> Any:
        name = self.name
        if name is None and registry is not None:
            name = registry.name_of(self.function)
        if name is None:
            raise InvalidConditionError(
                "Inline condition functions cannot be serialized; "
                "register the function and refer to it by name"
            )
        if self.args is None:
            return name
        return {"Fn": name, "args": self.args}


def _keyed(cls: type) -> Callable[[Any], Condition]:
    def build(args: Any) -> Condition:
        if args is None:
            return TrueCondition()
        if not isinstance(args, Mapping):
            raise InvalidConditionError(
                f"{cls.tag} condition expects a mapping of arguments, "
                f"got {type(args).__name__}"
            )
        return cls(dict(args))

    return build


def _combinator(cls: type) -> Callable[[Any], Condition]:
    def build(args: Any) -> Condition:
        if args is None:
            return TrueCondition()
        if isinstance(args, (list, tuple)):
            items = list(args)
        elif isinstance(args, (Mapping, str, Condition)) or callable(args):
            items = [args]
        else:
            raise InvalidConditionError(
                f"{cls.tag} condition expects a condition or a list of conditions, "
                f"got {type(args).__name__}"
            )
        children = []
        for item in items:
            child = parse_condition(item)
            if child is None:
                raise InvalidConditionError(f"{cls.tag} condition has an empty operand")
            children.append(child)
        return cls(tuple(children))

    return build


_BUILDERS: Dict[str, Callable[[Any], Condition]] = {
    TrueCondition.tag: lambda args: TrueCondition(),
    EqualsCondition.tag: _keyed(EqualsCondition),
    NotEqualsCondition.tag: _keyed(NotEqualsCondition),
    ListContainsCondition.tag: _keyed(ListContainsCondition),
    StartsWithCondition.tag: _keyed(StartsWithCondition),
    AndCondition.tag: _combinator(AndCondition),
    OrCondition.tag: _combinator(OrCondition),
    NotCondition.tag: _combinator(NotCondition),
}

BUILTIN_TAGS = tuple(_BUILDERS)


def parse_condition(raw: Any) -> Optional[Condition]:
    """
    Turn a raw condition into a Condition instance.

    Args:
        raw: None, a Condition, a ``{"Fn": ..., "args": ...}`` mapping, the
            name of a registered custom function, or a callable.

    Returns:
        The parsed condition, or None when ``raw`` is None.

    Raises:
        InvalidConditionError: If the condition or its arguments are malformed.

    Example:
        >>> parse_condition({"Fn": "EQUALS", "args": {"category": "sports"}})
        EqualsCondition(args={'category': 'sports'})
    """
    if raw is None:
        return None
    if isinstance(raw, Condition):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            raise InvalidConditionError("Condition function name cannot be empty")
        return CustomCondition(name=raw.strip())
    if isinstance(raw, Mapping):
        tag = raw.get("Fn")
        if not isinstance(tag, str) or not tag.strip():
            raise InvalidConditionError(f"Condition is missing its 'Fn' tag: {raw!r}")
        builder = _BUILDERS.get(tag)
        if builder is None:
            return CustomCondition(name=tag, args=raw.get("args"))
        return builder(raw.get("args"))
    if callable(raw):
        return CustomCondition(function=raw)
    raise InvalidConditionError(f"Invalid condition: {raw!r}")


class ConditionRegistry:
    """
    Named custom condition functions available to one engine.

    Names are namespaced with a prefix (``custom:`` by default), so
    ``"isOwner"`` and ``"custom:isOwner"`` refer to the same function.
    """

    def __init__(
        self, prefix: str = DEFAULT_CUSTOM_PREFIX, warn_on_override: bool = True
    ):
        self._prefix = prefix
        self._warn_on_override = warn_on_override
        self._functions: Dict[str, Callable[..., Any]] = {}

    def normalize(self, name: str) -> str:
        if name.startswith(self._prefix):
            return name
        return f"{self._prefix}{name}"

    def register(self, name: str, function: Callable[..., Any]) -> str:
        """
        Register a custom condition function.

        Args:
            name: Function name, with or without the namespace prefix.
            function: Callable taking the context (and optional args).

        Returns:
            The namespaced name the function is stored under.

        Raises:
            InvalidConditionError: If the name is empty or function is not callable.
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidConditionError("Condition function name cannot be empty")
        if not callable(function):
            raise InvalidConditionError(f"Condition function '{name}' is not callable")

        key = self.normalize(name.strip())
        if key in self._functions and self._warn_on_override:
            logger.warning(f"Overriding custom condition function '{key}'", extra={"condition": key})
        self._functions[key] = function
        logger.debug(f"Registered custom condition function '{key}'", extra={"condition": key})
        return key

    def register_all(self, functions: Mapping) -> None:
        """Replace every registered function with the given name -> function map."""
        self._functions.clear()
        for name, function in functions.items():
            self.register(name, function)

    def unregister(self, name: str) -> bool:
        return self._functions.pop(self.normalize(name), None) is not None

    def get(self, name: str) -> Callable[..., Any]:
        try:
            return self._functions[self.normalize(name)]
        except KeyError:
            raise UnknownConditionError(
                f"Unknown condition function: '{name}'"
            ) from None

    def name_of(self, function: Callable[..., Any]) -> Optional[str]:
        for name, registered in self._functions.items():
            if registered is function:
                return name
        return None

    def names(self) -> List[str]:
        return list(self._functions)

    def __contains__(self, name: str) -> bool:
        return self.normalize(name) in self._functions

    def __len__(self) -> int:
        return len(self._functions)
