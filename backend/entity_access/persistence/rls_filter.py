"""
Row-level security predicates.

Translates a resolved policy name into a parameterized predicate for one
entity. Column names come from the entity's ``rls_filter_config``. Unknown
policies, and ownership policies without a user id, deny every row.
"""

from dataclasses import dataclass
from typing import Any, Callable

from shared.config.constants import RLSPolicies
from shared.config.logging import get_logger

from entity_access.models.base import EntityMetadata, RLSFilterConfig
from entity_access.services.permissions.rls import RLSContext

logger = get_logger(__name__)

DENY_ALL_CLAUSE = "1=0"


@dataclass(frozen=True)
class RLSFilter:
    """
    Predicate for one policy.

    ``policy`` is set whenever a policy was translated, including the ones
    that add no predicate, so executors can report what they applied.
    """

    clause: str = ""
    params: tuple[Any, ...] = ()
    policy: str | None = None
    param_offset: int = 0

    @property
    def restricts(self) -> bool:
        return bool(self.clause)


@dataclass(frozen=True)
class ScopedResult:
    """Rows from a statement that went through build_rls_filter."""

    rows: list[dict[str, Any]]
    row_count: int
    rls_policy: str | None = None
    rls_restricted: bool = False


_Handler = Callable[[RLSContext, RLSFilterConfig, int, str | None], tuple[str, tuple[Any, ...]]]


def _column(name: str, table_prefix: str | None) -> str:
    return f"{table_prefix}.{name}" if table_prefix else name


def _no_filter(context, config, offset, table_prefix):
    return "", ()


def _deny_all(context, config, offset, table_prefix):
    return DENY_ALL_CLAUSE, ()


def _match_user(attribute: str) -> _Handler:
    def handler(context, config, offset, table_prefix):
        if context.user_id is None:
            logger.warning(
                "Ownership policy without user id, denying all rows",
                resource=context.resource,
                policy=context.policy,
            )
            return DENY_ALL_CLAUSE, ()
        column = _column(getattr(config, attribute), table_prefix)
        return f"{column} = ${offset + 1}", (context.user_id,)

    return handler


_POLICY_HANDLERS: dict[str, _Handler] = {
    RLSPolicies.ALL_RECORDS: _no_filter,
    RLSPolicies.PUBLIC_RESOURCE: _no_filter,
    RLSPolicies.OWN_RECORD_ONLY: _match_user("own_record_field"),
    RLSPolicies.OWN_WORK_ORDERS_ONLY: _match_user("customer_field"),
    RLSPolicies.OWN_INVOICES_ONLY: _match_user("customer_field"),
    RLSPolicies.OWN_CONTRACTS_ONLY: _match_user("customer_field"),
    RLSPolicies.ASSIGNED_WORK_ORDERS_ONLY: _match_user("assigned_field"),
    RLSPolicies.DENY_ALL: _deny_all,
}


def build_rls_filter(
    context: RLSContext | None,
    metadata: EntityMetadata,
    param_offset: int = 0,
    table_prefix: str | None = None,
) -> RLSFilter:
    """Predicate for ``context.policy`` on ``metadata``'s table."""
    if context is None or context.policy is None:
        return RLSFilter(param_offset=param_offset)

    handler = _POLICY_HANDLERS.get(context.policy)
    if handler is None:
        logger.warning("Unknown RLS policy, denying all rows", resource=context.resource, policy=context.policy)
        return RLSFilter(DENY_ALL_CLAUSE, (), context.policy, param_offset)

    clause, params = handler(context, metadata.rls_filter_config, param_offset, table_prefix)
    return RLSFilter(clause, params, context.policy, param_offset + len(params))
