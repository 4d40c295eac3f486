"""
Row-level security resolver.

Decides which named row-visibility policy applies to a role on a resource.
Turning a policy name into a predicate is the persistence adapter's job
(see entity_access.persistence.rls_filter); this module only makes the
authorization decision and verifies afterwards that it was honoured.

Usage:
    resolver = RLSResolver.from_registry(registry)
    context = resolver.build_context(role, "work_orders", user_id)
    ...
    validate_applied(context, result)
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from shared.config.logging import get_logger
from shared.utils.exceptions import ConfigurationError, ForbiddenError, RLSViolationError

from entity_access.models.registry import EntityRegistry

from .roles import Role, is_missing_role

logger = get_logger(__name__)


@dataclass(frozen=True)
class RLSContext:
    """
    Row-level security decision for one call.

    ``policy`` None means rows are not restricted.
    """

    resource: str
    policy: str | None
    user_id: int | str | None
    role: Role


class RLSResolver:
    """Maps (role, resource) to a policy name."""

    def __init__(self, policies: Mapping[str, Mapping[str, str]]):
        self._policies: Mapping[str, Mapping[str, str]] = MappingProxyType(
            {resource: MappingProxyType(dict(by_role)) for resource, by_role in policies.items()}
        )

    @classmethod
    def from_registry(cls, registry: EntityRegistry) -> "RLSResolver":
        return cls({metadata.rls_resource: metadata.rls_policy for metadata in registry.values()})

    @property
    def resources(self) -> frozenset[str]:
        return frozenset(self._policies)

    def resolve(self, role: Any, resource: str) -> str | None:
        """
        Policy name for ``role`` on ``resource``, or None for no restriction.

        Raises:
            ForbiddenError: role is missing or blank.
            ConfigurationError: resource is not declared by any entity.
        """
        if is_missing_role(role):
            raise ForbiddenError(f"access {resource}", reason="missing role")

        policies = self._policies.get(resource)
        if policies is None:
            raise ConfigurationError("Unknown RLS resource", resource=resource)

        return policies.get(Role.parse(role).name)

    def build_context(self, role: Any, resource: str, user_id: int | str | None) -> RLSContext:
        policy = self.resolve(role, resource)
        context = RLSContext(resource=resource, policy=policy, user_id=user_id, role=Role.parse(role))
        logger.debug("RLS context resolved", resource=resource, role=context.role.name, policy=policy)
        return context


def _applied_policy(result: Any) -> str | None:
    if result is None:
        return None
    if isinstance(result, Mapping):
        return result.get("rls_policy")
    return getattr(result, "rls_policy", None)


def validate_applied(context: RLSContext, result: Any) -> None:
    """
    Fail closed when a declared policy did not reach the executed query.

    ``result`` must carry ``rls_policy`` equal to the context's policy,
    set by the code that spliced the predicate into the statement.
    Never raises when the context declares no policy.

    Raises:
        RLSViolationError: the proof is absent or names another policy.
    """
    if context.policy is None:
        return

    applied = _applied_policy(result)
    if applied != context.policy:
        raise RLSViolationError(
            context.resource,
            context.policy,
            applied_policy=applied,
            role=context.role.name,
            user_id=context.user_id,
        )
