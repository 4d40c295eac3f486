"""
Immutable entity metadata values.

Entity declarations (plain mappings, see the sibling modules) are validated
and frozen into these types by ``build_registry``. Nothing here is mutated
after startup, so every value can be shared between concurrent calls.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final, Mapping

from shared.config.constants import FieldAccessLevels, Operations, SortOrder


class ErrorKinds:
    """Domain classifications a backend error code can be mapped to."""

    CONFLICT: Final[str] = "conflict"
    INVALID_REFERENCE: Final[str] = "invalid_reference"
    BAD_REQUEST: Final[str] = "bad_request"
    DEPENDENT: Final[str] = "dependent"

    ALL: Final[tuple[str, ...]] = (CONFLICT, INVALID_REFERENCE, BAD_REQUEST, DEPENDENT)


@dataclass(frozen=True)
class SortSpec:
    """Default ordering for list queries."""

    field: str
    order: str = SortOrder.ASC


@dataclass(frozen=True)
class DependentSpec:
    """
    A table whose rows reference this entity.

    Any referencing row blocks deletion. ``polymorphic_column`` and
    ``polymorphic_value`` narrow the check for tables that reference
    several entity types through one column pair.
    """

    table: str
    foreign_key: str
    label: str | None = None
    polymorphic_column: str | None = None
    polymorphic_value: str | None = None

    @property
    def name(self) -> str:
        return self.label or self.table


@dataclass(frozen=True)
class RLSFilterConfig:
    """Column names the row-level security policies filter on."""

    own_record_field: str = "id"
    customer_field: str = "customer_id"
    assigned_field: str = "assigned_technician_id"


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class EntityMetadata:
    """
    Everything the generic engine needs to serve one entity.

    Attributes:
        name: Registry key (e.g. "work_order")
        table_name: Backing table
        rls_resource: Resource name used for row-level security lookups
        field_access: field -> {operation -> required level}
        rls_policy: role name -> policy name
        dependents: Tables that block deletion while they reference a row
        error_map: Backend error code -> ErrorKinds value (overrides defaults)
    """

    name: str
    table_name: str
    rls_resource: str
    field_access: Mapping[str, Mapping[str, str]]
    primary_key: str = "id"
    identity_field: str | None = None
    display_name: str | None = None
    rls_policy: Mapping[str, str] = field(default_factory=_empty_mapping)
    rls_filter_config: RLSFilterConfig = field(default_factory=RLSFilterConfig)
    required_fields: frozenset[str] = frozenset()
    immutable_fields: frozenset[str] = frozenset()
    searchable_fields: tuple[str, ...] = ()
    filterable_fields: tuple[str, ...] = ()
    sortable_fields: tuple[str, ...] = ()
    default_sort: SortSpec | None = None
    dependents: tuple[DependentSpec, ...] = ()
    error_map: Mapping[str, str] = field(default_factory=_empty_mapping)
    audited: bool = True

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def fields(self) -> frozenset[str]:
        """All declared field names."""
        return frozenset(self.field_access)

    @property
    def has_active_flag(self) -> bool:
        return "is_active" in self.field_access

    def access_level(self, field_name: str, operation: str) -> str:
        """Required level for ``operation`` on ``field_name``; undeclared means none."""
        rules = self.field_access.get(field_name)
        if rules is None:
            return FieldAccessLevels.NONE
        return rules.get(operation, FieldAccessLevels.NONE)

    def _fields_open_for(self, operation: str) -> frozenset[str]:
        return frozenset(
            name
            for name, rules in self.field_access.items()
            if rules.get(operation, FieldAccessLevels.NONE) != FieldAccessLevels.NONE
        )

    @property
    def createable_fields(self) -> frozenset[str]:
        """Fields some role may set on create."""
        return self._fields_open_for(Operations.CREATE)

    @property
    def updateable_fields(self) -> frozenset[str]:
        """Fields some role may change on update, minus immutables."""
        return self._fields_open_for(Operations.UPDATE) - self.immutable_fields


def access(
    create: str = FieldAccessLevels.NONE,
    read: str = FieldAccessLevels.NONE,
    update: str = FieldAccessLevels.NONE,
    delete: str = FieldAccessLevels.NONE,
) -> dict[str, str]:
    """Shorthand for one field_access entry in an entity declaration."""
    return {
        Operations.CREATE: create,
        Operations.READ: read,
        Operations.UPDATE: update,
        Operations.DELETE: delete,
    }
