"""
Query Resolver - turns a query and the grants model into decisions.

Every operation here is a generator in the sense of
:mod:`rolegate.evaluator`: it may suspend on asynchronous condition
functions and is driven by ``run_sync`` or ``run_async``.
"""

from typing import Any, List, Set

from .evaluator import ConditionEvaluator, Steps
from .grants import GrantsModel
from .matching import union_globs, unique
from .models import Grant, QueryInfo


class QueryResolver:
    """
    Resolves permission queries against a grants model.

    Args:
        model: The grants model to read.
        evaluator: Evaluator used for grant and extension conditions.
    """

    def __init__(self, model: GrantsModel, evaluator: ConditionEvaluator):
        self.model = model
        self.evaluator = evaluator

    def flatten(
        self, roles: List[str], context: Any = None, skip_conditions: bool = False
    ) -> Steps[List[str]]:
        """
        Expand roles with every role they extend.

        The given roles come first, in order and without duplicates. Each
        role is followed by the roles it extends through edges whose
        condition holds (or through all edges with ``skip_conditions``),
        recursively. A role is expanded at most once.

        Raises:
            RoleNotFoundError: If a role does not exist.
        """
        ordered = unique(roles)
        seen = set(ordered)
        expanded: Set[str] = set()
        yield from self._expand(ordered, ordered, seen, expanded, context, skip_conditions)
        return ordered

    def _expand(
        self,
        level: List[str],
        ordered: List[str],
        seen: Set[str],
        expanded: Set[str],
        context: Any,
        skip_conditions: bool,
    ) -> Steps[None]:
        for name in level:
            if name in expanded:
                continue
            expanded.add(name)

            targets = []
            for target, condition in list(self.model.get(name).extends.items()):
                if skip_conditions or (yield from self.evaluator.evaluate(condition, context)):
                    targets.append(target)

            for target in targets:
                if target not in seen:
                    seen.add(target)
                    ordered.append(target)
            yield from self._expand(targets, ordered, seen, expanded, context, skip_conditions)

    def _passes(self, grant: Grant, context: Any, skip_conditions: bool) -> Steps[bool]:
        if skip_conditions or grant.condition is None:
            return True
        return (yield from self.evaluator.evaluate(grant.condition, context))

    def _grants_of(self, roles: List[str]) -> List[Grant]:
        grants = []
        for name in roles:
            grants.extend(self.model.get(name).grants)
        return grants

    def attributes(self, query: QueryInfo) -> Steps[List[str]]:
        """
        Union of the attributes granted to the query's roles.

        Only grants matching the resource and action and passing their
        condition contribute. Conditions are skipped only when the query
        asks for it.

        Raises:
            InvalidInputError: If role, resource or action is missing.
            RoleNotFoundError: If a role does not exist.
        """
        query.require("resource", "action")
        skip = bool(query.skip_conditions)
        roles = yield from self.flatten(query.roles, query.context, skip)

        attributes: List[str] = []
        for grant in self._grants_of(roles):
            if not grant.matches(query.resource, query.action):
                continue
            if (yield from self._passes(grant, query.context, skip)):
                attributes = union_globs(attributes, grant.attributes)
        return attributes

    def allowing_roles(self, query: QueryInfo) -> Steps[List[str]]:
        """
        Every role that would be allowed the query's resource and action.

        Roles are visited by ascending score, so the roles a role extends
        are decided before the role itself.

        Raises:
            InvalidInputError: If resource or action is missing.
        """
        query.require("resource", "action")
        skip = bool(query.skip_conditions)

        allowed = {}
        for entry in sorted(self.model, key=lambda role: role.score):
            granted = False
            for grant in entry.grants:
                if grant.matches(query.resource, query.action) and (
                    yield from self._passes(grant, query.context, skip)
                ):
                    granted = True
                    break

            if not granted:
                for target, condition in list(entry.extends.items()):
                    if allowed.get(target) and (
                        skip or (yield from self.evaluator.evaluate(condition, query.context))
                    ):
                        granted = True
                        break

            allowed[entry.name] = granted

        return [name for name, granted in allowed.items() if granted]

    def allowed_resources(self, query: QueryInfo) -> Steps[List[str]]:
        """
        Union of the resource patterns granted to the query's roles.

        Conditions are skipped when the query has no context.
        """
        skip = bool(query.skip_conditions) or query.context is None
        roles = yield from self.flatten(query.roles, query.context, skip)

        resources: List[str] = []
        for grant in self._grants_of(roles):
            if (yield from self._passes(grant, query.context, skip)):
                resources = union_globs(resources, grant.resource)
        return resources

    def allowed_actions(self, query: QueryInfo) -> Steps[List[str]]:
        """
        Union of the action patterns granted to the query's roles on its
        resource.

        Conditions are skipped when the query has no context.

        Raises:
            InvalidInputError: If resource is missing.
        """
        query.require("resource")
        skip = bool(query.skip_conditions) or query.context is None
        roles = yield from self.flatten(query.roles, query.context, skip)

        actions: List[str] = []
        for grant in self._grants_of(roles):
            if not grant.matches_resource(query.resource):
                continue
            if (yield from self._passes(grant, query.context, skip)):
                actions = union_globs(actions, grant.action)
        return actions
