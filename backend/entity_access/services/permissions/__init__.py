"""
Authorization for the entity access layer.

Two independent dimensions:
- rows: RLSResolver decides which policy applies, validate_applied checks it ran
- fields: field_access decides which fields a role may read or write

Usage:
    from entity_access.services.permissions import RLSResolver, Role, field_access

    context = RLSResolver.from_registry(registry).build_context("technician", "work_orders", 7)
    visible = field_access.filter_by_role(record, metadata, context.role)
"""

from . import field_access
from .roles import Role, ALL_ROLES, is_missing_role
from .field_access import (
    has_permission,
    fields_for_operation,
    can_access_field,
    filter_by_role,
    filter_writable,
    validate_access,
)
from .rls import RLSContext, RLSResolver, validate_applied

__all__ = [
    "field_access",
    # Roles
    "Role",
    "ALL_ROLES",
    "is_missing_role",
    # Field access
    "has_permission",
    "fields_for_operation",
    "can_access_field",
    "filter_by_role",
    "filter_writable",
    "validate_access",
    # Row-level security
    "RLSContext",
    "RLSResolver",
    "validate_applied",
]
