"""
Field-level access control.

Each field declares, per operation, either "none" or the lowest role that
may act on it. These helpers answer which fields a role may read or write
and strip or reject everything else.

Usage:
    from entity_access.services.permissions import field_access

    visible = field_access.filter_by_role(rows, metadata, role)
    data = field_access.filter_writable(body, metadata, role, Operations.CREATE)
"""

from typing import Any, Mapping, Sequence

from shared.config.constants import FieldAccessLevels, Operations
from shared.config.logging import get_logger
from shared.utils.exceptions import FieldAccessError

from entity_access.models.base import EntityMetadata

from .roles import Role

logger = get_logger(__name__)


def has_permission(caller_role: Any, required_level: str | None) -> bool:
    """
    True when ``caller_role`` reaches ``required_level``.

    "none" never passes. An unknown level also never passes.
    """
    if not required_level or required_level == FieldAccessLevels.NONE:
        return False
    required = Role.from_name(required_level)
    if required is None:
        return False
    return Role.parse(caller_role).at_least(required)


def fields_for_operation(metadata: EntityMetadata, role: Any, operation: str) -> frozenset[str]:
    """Field names ``role`` may act on for ``operation``."""
    if operation not in Operations.ALL:
        return frozenset()
    caller = Role.parse(role)
    return frozenset(
        name
        for name in metadata.field_access
        if has_permission(caller, metadata.access_level(name, operation))
    )


def can_access_field(metadata: EntityMetadata, role: Any, field_name: str, operation: str) -> bool:
    """Undeclared fields are never accessible."""
    if field_name not in metadata.field_access:
        return False
    return has_permission(role, metadata.access_level(field_name, operation))


def _filter_one(record: Mapping[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    return {key: value for key, value in record.items() if key in allowed}


def filter_by_role(
    data: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None,
    metadata: EntityMetadata,
    role: Any,
    operation: str = Operations.READ,
) -> dict[str, Any] | list[dict[str, Any]] | None:
    """
    Shallow copy of ``data`` keeping only fields ``role`` may see.

    Works on a single record or a sequence of records; order and length
    are preserved. Re-filtering the output with the same role is a no-op.
    """
    if data is None:
        return None
    allowed = fields_for_operation(metadata, role, operation)
    if isinstance(data, Mapping):
        return _filter_one(data, allowed)
    return [_filter_one(record, allowed) for record in data]


def filter_writable(
    data: Mapping[str, Any] | None,
    metadata: EntityMetadata,
    role: Any,
    operation: str,
) -> dict[str, Any]:
    """
    Keep only the keys ``role`` may write for ``operation``.

    Anything else is dropped silently; a low-privilege caller cannot raise
    its privileges by adding fields to the body.
    """
    if not data:
        return {}
    allowed = fields_for_operation(metadata, role, operation)
    kept = _filter_one(data, allowed)
    stripped = [key for key in data if key not in allowed]
    if stripped:
        logger.info(
            "Stripped fields outside write permission",
            entity=metadata.name,
            operation=operation,
            role=str(Role.parse(role)),
            fields=stripped,
        )
    return kept


def validate_access(
    data: Mapping[str, Any] | None,
    metadata: EntityMetadata,
    role: Any,
    operation: str,
) -> None:
    """
    Strict counterpart of filter_writable.

    Raises:
        FieldAccessError: naming every field ``role`` may not act on.
    """
    if not data:
        return
    allowed = fields_for_operation(metadata, role, operation)
    denied = [key for key in data if key not in allowed]
    if denied:
        raise FieldAccessError(
            denied,
            operation=operation,
            role=str(Role.parse(role)),
            entity=metadata.name,
        )
