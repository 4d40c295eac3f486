"""
Centralized constants for the entity access layer.
Avoid magic strings for roles, operations and row-level security policies.

Usage:
    from shared.config.constants import Roles, Operations, RLSPolicies

    if role == Roles.ADMIN:
        ...

    if policy == RLSPolicies.DENY_ALL:
        ...
"""

from types import MappingProxyType
from typing import Final, Mapping

from shared.config.settings import settings


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants, lowest privilege first."""

    CUSTOMER: Final[str] = "customer"
    TECHNICIAN: Final[str] = "technician"
    DISPATCHER: Final[str] = "dispatcher"
    MANAGER: Final[str] = "manager"
    ADMIN: Final[str] = "admin"

    ALL: Final[tuple[str, ...]] = (CUSTOMER, TECHNICIAN, DISPATCHER, MANAGER, ADMIN)

    # Unknown or absent roles resolve to this one
    DEFAULT: Final[str] = CUSTOMER


# Ordered hierarchy, lowest to highest privilege
ROLE_HIERARCHY: Final[tuple[str, ...]] = Roles.ALL

# Legacy numeric priorities (1 = lowest). Still accepted at the boundary.
ROLE_PRIORITIES: Final[Mapping[str, int]] = MappingProxyType(
    {name: index + 1 for index, name in enumerate(ROLE_HIERARCHY)}
)


# =============================================================================
# Operations and Field Access
# =============================================================================


class Operations:
    """CRUD operation names used in field access declarations."""

    CREATE: Final[str] = "create"
    READ: Final[str] = "read"
    UPDATE: Final[str] = "update"
    DELETE: Final[str] = "delete"

    ALL: Final[tuple[str, ...]] = (CREATE, READ, UPDATE, DELETE)
    WRITE: Final[tuple[str, ...]] = (CREATE, UPDATE)


class FieldAccessLevels:
    """Access level values. Any role name is also a valid level."""

    NONE: Final[str] = "none"

    ALL: Final[tuple[str, ...]] = (NONE, *Roles.ALL)


def _access(create: str, read: str, update: str, delete: str = FieldAccessLevels.NONE) -> Mapping[str, str]:
    return MappingProxyType(
        {
            Operations.CREATE: create,
            Operations.READ: read,
            Operations.UPDATE: update,
            Operations.DELETE: delete,
        }
    )


# Fields every entity carries. Entity declarations are merged on top of these.
UNIVERSAL_FIELD_ACCESS: Final[Mapping[str, Mapping[str, str]]] = MappingProxyType(
    {
        "id": _access(FieldAccessLevels.NONE, Roles.CUSTOMER, FieldAccessLevels.NONE),
        "is_active": _access(Roles.MANAGER, Roles.CUSTOMER, Roles.MANAGER),
        "created_at": _access(FieldAccessLevels.NONE, Roles.CUSTOMER, FieldAccessLevels.NONE),
        "updated_at": _access(FieldAccessLevels.NONE, Roles.CUSTOMER, FieldAccessLevels.NONE),
        "status": _access(Roles.DISPATCHER, Roles.CUSTOMER, Roles.DISPATCHER),
    }
)

# Never writable regardless of declarations
UNIVERSAL_IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset({"id", "created_at"})


# =============================================================================
# Row-Level Security Policies
# =============================================================================


class RLSPolicies:
    """Row-level security policy names understood by the persistence adapter."""

    ALL_RECORDS: Final[str] = "all_records"
    PUBLIC_RESOURCE: Final[str] = "public_resource"
    OWN_RECORD_ONLY: Final[str] = "own_record_only"
    OWN_WORK_ORDERS_ONLY: Final[str] = "own_work_orders_only"
    ASSIGNED_WORK_ORDERS_ONLY: Final[str] = "assigned_work_orders_only"
    OWN_INVOICES_ONLY: Final[str] = "own_invoices_only"
    OWN_CONTRACTS_ONLY: Final[str] = "own_contracts_only"
    DENY_ALL: Final[str] = "deny_all"

    ALL: Final[tuple[str, ...]] = (
        ALL_RECORDS,
        PUBLIC_RESOURCE,
        OWN_RECORD_ONLY,
        OWN_WORK_ORDERS_ONLY,
        ASSIGNED_WORK_ORDERS_ONLY,
        OWN_INVOICES_ONLY,
        OWN_CONTRACTS_ONLY,
        DENY_ALL,
    )

    # Policies that add no predicate
    UNRESTRICTED: Final[frozenset[str]] = frozenset({ALL_RECORDS, PUBLIC_RESOURCE})


# =============================================================================
# Sorting
# =============================================================================


class SortOrder:
    """Sort direction constants."""

    ASC: Final[str] = "ASC"
    DESC: Final[str] = "DESC"

    ALL: Final[tuple[str, ...]] = (ASC, DESC)


# =============================================================================
# Audit Actions
# =============================================================================


class AuditActions:
    """Action names recorded in audit entries."""

    CREATE: Final[str] = "CREATE"
    UPDATE: Final[str] = "UPDATE"
    DELETE: Final[str] = "DELETE"


# =============================================================================
# Validation Limits
# =============================================================================


class Limits:
    """Validation limits and pagination ceilings."""

    # Pagination
    DEFAULT_PAGE: Final[int] = 1
    DEFAULT_PAGE_SIZE: Final[int] = settings.default_page_size
    MAX_PAGE_SIZE: Final[int] = settings.max_page_size
    # OFFSET is bound as a signed 64-bit integer
    MAX_OFFSET: Final[int] = 2**63 - 1

    # Search
    MAX_SEARCH_TERM_LENGTH: Final[int] = settings.max_search_term_length

    # Batch operations
    MAX_BATCH_SIZE: Final[int] = settings.max_batch_size

    # SQL identifiers (PostgreSQL NAMEDATALEN - 1)
    MAX_IDENTIFIER_LENGTH: Final[int] = 63
