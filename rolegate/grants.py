"""
Grants Model - roles, their grants and the role extension graph.

The model is plain in-memory state owned by the caller. It does no
locking: mutations must not run concurrently with each other or with
queries in flight.
"""

import logging
from collections import deque
from typing import Any, Dict, Iterator, List

from .conditions import parse_condition
from .exceptions import InvalidInputError, RoleNotFoundError, SelfExtensionError
from .matching import unique
from .models import AccessInfo, Grant, RoleEntry, to_string_list

logger = logging.getLogger(__name__)


class GrantsModel:
    """
    Role table holding grants and conditional extension edges.

    When role A extends role B, A inherits B's grants (subject to the edge
    condition). Scores keep the graph ordered: extending always raises the
    extending role's score above everything it extends.

    Example:
        >>> model = GrantsModel()
        >>> _ = model.commit(AccessInfo(role="user", resource="article", action="read"))
        >>> model.extend("editor", "user")
        >>> model.get("editor").score
        2
    """

    def __init__(self):
        self._roles: Dict[str, RoleEntry] = {}

    def __contains__(self, role: str) -> bool:
        return role in self._roles

    def __iter__(self) -> Iterator[RoleEntry]:
        return iter(list(self._roles.values()))

    def __len__(self) -> int:
        return len(self._roles)

    @property
    def roles(self) -> Dict[str, RoleEntry]:
        return self._roles

    def names(self) -> List[str]:
        return list(self._roles)

    def get(self, role: str) -> RoleEntry:
        """
        Get a role by name.

        Raises:
            RoleNotFoundError: If the role does not exist.
        """
        entry = self._roles.get(role)
        if entry is None:
            raise RoleNotFoundError(role)
        return entry

    def reset(self) -> None:
        self._roles.clear()

    def add_role(self, entry: RoleEntry) -> None:
        """Insert or replace a role entry as-is."""
        self._roles[entry.name] = entry

    def _ensure(self, role: str) -> RoleEntry:
        entry = self._roles.get(role)
        if entry is None:
            entry = self._roles[role] = RoleEntry(name=role)
        return entry

    def commit(self, info: AccessInfo) -> Grant:
        """
        Validate the collected access information and add its grant.

        The same grant is appended to every role named in ``info``; roles
        that do not exist yet are created.

        Args:
            info: Roles, resources, actions, attributes and condition.

        Returns:
            The committed grant.

        Raises:
            InvalidInputError: If role, resource or action is empty or malformed.
            InvalidConditionError: If the condition is malformed.
        """
        roles = info.roles()
        grant = self.append(roles, info.to_grant())
        logger.debug(
            f"Granted {','.join(grant.action)} on {','.join(grant.resource)} "
            f"to {','.join(roles)}",
            extra={"roles": list(roles), "resources": list(grant.resource)},
        )
        return grant

    def append(self, roles: Any, grant: Grant) -> Grant:
        for role in roles:
            self._ensure(role).grants.append(grant)
        return grant

    def closure(self, roles: Any) -> List[str]:
        """
        Every role reachable from ``roles`` through extension edges,
        ignoring conditions. The given roles come first.

        Raises:
            RoleNotFoundError: If a visited role does not exist.
        """
        ordered: List[str] = []
        seen = set()
        pending = deque(unique(to_string_list(roles)))
        while pending:
            name = pending.popleft()
            if name in seen:
                continue
            seen.add(name)
            ordered.append(name)
            pending.extend(self.get(name).extends)
        return ordered

    def check_graph(self) -> None:
        """
        Validate extension edges of roles added as-is and repair their scores.

        Roles loaded with ``add_role`` bypass ``extend``, so their edges are
        walked here depth first with an explicit stack. Every role ends up
        with a score above each role it extends; scores that already are
        higher are kept.

        Raises:
            RoleNotFoundError: If an edge points at a missing role.
            SelfExtensionError: If a role reaches itself through its edges.
        """
        visiting, done = 1, 2
        state: Dict[str, int] = {}
        order: List[str] = []

        for root in self._roles:
            if root in state:
                continue
            state[root] = visiting
            stack = [(root, iter(list(self._roles[root].extends)))]
            while stack:
                name, targets = stack[-1]
                target = next(targets, None)
                if target is None:
                    stack.pop()
                    state[name] = done
                    order.append(name)
                    continue
                if target not in self._roles:
                    raise RoleNotFoundError(target)
                if state.get(target) == visiting:
                    raise SelfExtensionError(
                        f"Role '{target}' cannot extend itself (through '{name}')"
                    )
                if target not in state:
                    state[target] = visiting
                    stack.append((target, iter(list(self._roles[target].extends))))

        # Post-order: every role comes after the roles it extends
        for name in order:
            entry = self._roles[name]
            floor = max((self._roles[t].score for t in entry.extends), default=0) + 1
            if entry.score < floor:
                logger.debug(
                    f"Raised score of role '{name}' from {entry.score} to {floor}",
                    extra={"role": name, "score": floor},
                )
                entry.score = floor

    def extend(self, roles: Any, extenders: Any, condition: Any = None) -> None:
        """
        Make ``roles`` inherit the grants of ``extenders``.

        Args:
            roles: Role(s) that will extend; created when missing.
            extenders: Existing role(s) to inherit from.
            condition: Optional condition the context must satisfy for the
                inheritance to apply.

        Raises:
            InvalidInputError: If either role list is empty.
            RoleNotFoundError: If an extender does not exist.
            SelfExtensionError: If a role would end up extending itself.
        """
        targets = unique(to_string_list(roles))
        sources = unique(to_string_list(extenders))
        if not targets:
            raise InvalidInputError(f"Invalid role(s) to extend: {roles!r}")
        if not sources:
            raise InvalidInputError(f"Invalid extender role(s): {extenders!r}")

        for target in targets:
            if target in sources:
                raise SelfExtensionError(f"Role '{target}' cannot extend itself")
        for source in sources:
            self.get(source)

        reachable = self.closure(sources)
        for target in targets:
            if target in reachable:
                raise SelfExtensionError(
                    f"Role '{target}' cannot extend itself "
                    f"(directly or through {', '.join(sources)})"
                )

        parsed = parse_condition(condition)
        score = sum(self._roles[name].score for name in reachable)
        for target in targets:
            entry = self._ensure(target)
            entry.score += score
            for source in sources:
                entry.extends[source] = parsed

        logger.info(
            f"Role(s) '{', '.join(targets)}' now extend '{', '.join(sources)}'",
            extra={"roles": targets, "extenders": sources},
        )

    def remove_roles(self, roles: Any) -> List[str]:
        """
        Remove roles and every extension edge pointing at them.

        Unknown role names are ignored. Scores of roles that extended a
        removed role are left as they are.

        Returns:
            The names that were actually removed.
        """
        names = unique(to_string_list(roles))
        removed = [name for name in names if self._roles.pop(name, None) is not None]
        for entry in self._roles.values():
            for name in names:
                entry.extends.pop(name, None)

        if removed:
            logger.info(
                f"Removed role(s) '{', '.join(removed)}'",
                extra={"roles": removed},
            )
        return removed
