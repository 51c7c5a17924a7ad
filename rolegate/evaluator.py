"""
Condition evaluation with a shared synchronous / asynchronous core.

Evaluation is written once, as generators. Whenever a custom condition
function returns an awaitable, the generator yields it and expects the
awaited value back. Two small drivers run such generators:

- ``run_sync`` runs them to completion and refuses awaitables
- ``run_async`` awaits every yielded awaitable

Every traversal built on top (role flattening, grant matching, the
allowing-roles query) composes with ``yield from``, so the synchronous
and asynchronous APIs share one code path and make identical decisions.
"""

import inspect
from typing import Any, Awaitable, Generator, List, Optional, TypeVar

from .conditions import (AndCondition, ConditionRegistry, CustomCondition,
                         EqualsCondition, ListContainsCondition, NotCondition,
                         NotEqualsCondition, OrCondition, StartsWithCondition,
                         TrueCondition, parse_condition)
from .exceptions import SyncConditionNotBooleanError, UnknownConditionError
from .paths import DEFAULT_PATH_PREFIX, lookup, resolve

T = TypeVar("T")

# A resumable computation: yields awaitables, receives their results, returns T.
Steps = Generator[Awaitable[Any], Any, T]


def run_sync(steps: Steps[T]) -> T:
    """
    Run a computation that must not suspend.

    Raises:
        SyncConditionNotBooleanError: If a condition function returned an
            awaitable instead of a boolean.
    """
    try:
        pending = next(steps)
    except StopIteration as stop:
        return stop.value

    if inspect.iscoroutine(pending):
        pending.close()
    steps.close()
    raise SyncConditionNotBooleanError(
        "Condition function returned an awaitable during synchronous evaluation; "
        "use the async API instead"
    )


async def run_async(steps: Steps[T]) -> T:
    """Run a computation, awaiting whatever it suspends on."""
    value: Any = None
    try:
        while True:
            try:
                pending = steps.send(value)
            except StopIteration as stop:
                return stop.value
            value = await pending
    finally:
        steps.close()


def _candidates(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class ConditionEvaluator:
    """
    Evaluates conditions against a context.

    Args:
        registry: Custom condition functions available by name.
        path_prefix: Marker that turns keys and candidate values into
            context paths.

    Example:
        >>> evaluator = ConditionEvaluator()
        >>> evaluator.evaluate_sync(
        ...     {"Fn": "EQUALS", "args": {"category": "sports"}},
        ...     {"category": "sports"},
        ... )
        True
    """

    def __init__(
        self,
        registry: Optional[ConditionRegistry] = None,
        path_prefix: str = DEFAULT_PATH_PREFIX,
    ):
        self.registry = registry if registry is not None else ConditionRegistry()
        self.path_prefix = path_prefix

    def evaluate(self, condition: Any, context: Any) -> Steps[bool]:
        """
        Evaluate a condition, suspending on awaitable custom results.

        A missing condition passes. Any condition other than the always-true
        one fails when there is no context. Nested conditions run in order
        and stop as soon as the outcome is known.

        Raises:
            UnknownConditionError: If a custom function name is not registered.
            InvalidConditionError: If the condition is malformed.
        """
        condition = parse_condition(condition)
        if condition is None or isinstance(condition, TrueCondition):
            return True
        if context is None:
            return False

        if isinstance(condition, EqualsCondition):
            return self._equals(condition.args, context)
        if isinstance(condition, NotEqualsCondition):
            return self._not_equals(condition.args, context)
        if isinstance(condition, ListContainsCondition):
            return self._list_contains(condition.args, context)
        if isinstance(condition, StartsWithCondition):
            return self._starts_with(condition.args, context)

        if isinstance(condition, AndCondition):
            for child in condition.conditions:
                if not (yield from self.evaluate(child, context)):
                    return False
            return True
        if isinstance(condition, OrCondition):
            for child in condition.conditions:
                if (yield from self.evaluate(child, context)):
                    return True
            return False
        if isinstance(condition, NotCondition):
            for child in condition.conditions:
                if (yield from self.evaluate(child, context)):
                    return False
            return True

        if isinstance(condition, CustomCondition):
            outcome = self._call(condition, context)
            if inspect.isawaitable(outcome):
                outcome = yield outcome
            return bool(outcome)

        raise UnknownConditionError(f"Unknown condition: {condition!r}")

    def evaluate_sync(self, condition: Any, context: Any) -> bool:
        return run_sync(self.evaluate(condition, context))

    async def evaluate_async(self, condition: Any, context: Any) -> bool:
        return await run_async(self.evaluate(condition, context))

    def _call(self, condition: CustomCondition, context: Any) -> Any:
        function = condition.function
        if function is None:
            function = self.registry.get(condition.name)
        if condition.args is None:
            return function(context)
        return function(context, condition.args)

    def _value(self, context: Any, candidate: Any) -> Any:
        return resolve(context, candidate, self.path_prefix)

    def _equals(self, args: dict, context: Any) -> bool:
        for key, expected in args.items():
            actual = lookup(context, key, self.path_prefix)
            if not any(
                self._value(context, candidate) == actual
                for candidate in _candidates(expected)
            ):
                return False
        return True

    def _not_equals(self, args: dict, context: Any) -> bool:
        for key, expected in args.items():
            actual = lookup(context, key, self.path_prefix)
            if any(
                self._value(context, candidate) == actual
                for candidate in _candidates(expected)
            ):
                return False
        return True

    def _list_contains(self, args: dict, context: Any) -> bool:
        for key, expected in args.items():
            actual = lookup(context, key, self.path_prefix)
            if not isinstance(actual, (list, tuple, set, frozenset)):
                return False
            values = [self._value(context, candidate) for candidate in _candidates(expected)]
            if not any(value == item for value in values for item in actual):
                return False
        return True

    def _starts_with(self, args: dict, context: Any) -> bool:
        for key, expected in args.items():
            actual = lookup(context, key, self.path_prefix)
            if not isinstance(actual, str) or not actual:
                return False
            prefixes = [self._value(context, candidate) for candidate in _candidates(expected)]
            if not any(isinstance(prefix, str) and actual.startswith(prefix) for prefix in prefixes):
                return False
        return True
