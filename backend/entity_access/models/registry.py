"""
Entity metadata registry.

Validates entity declarations once at startup and freezes them into
``EntityMetadata`` values. Any defect aborts loading with a
ConfigurationError listing every problem found, so a broken declaration
never reaches a request.

Usage:
    from entity_access.models import get_registry

    registry = get_registry()
    metadata = registry.get_metadata("work_order")
"""

from types import MappingProxyType
from typing import Any, Iterator, Mapping

from shared.config.constants import (
    FieldAccessLevels,
    Operations,
    RLSPolicies,
    Roles,
    SortOrder,
    UNIVERSAL_FIELD_ACCESS,
)
from shared.config.logging import get_logger
from shared.utils.exceptions import ConfigurationError, NotFoundError
from shared.utils.validators import is_safe_identifier

from .base import DependentSpec, EntityMetadata, ErrorKinds, RLSFilterConfig, SortSpec

logger = get_logger(__name__)


_ALLOWED_KEYS = frozenset(
    {
        "table_name",
        "primary_key",
        "identity_field",
        "display_name",
        "rls_resource",
        "rls_policy",
        "rls_filter_config",
        "field_access",
        "required_fields",
        "immutable_fields",
        "searchable_fields",
        "filterable_fields",
        "sortable_fields",
        "default_sort",
        "dependents",
        "error_map",
        "audited",
    }
)

_REQUIRED_KEYS = ("table_name", "rls_resource", "field_access")


class EntityRegistry(Mapping[str, EntityMetadata]):
    """
    Read-only mapping of entity name to metadata.

    Also indexes entities by RLS resource name for the resolver.
    """

    def __init__(self, entities: Mapping[str, EntityMetadata]):
        self._entities: Mapping[str, EntityMetadata] = MappingProxyType(dict(entities))
        self._by_resource: Mapping[str, EntityMetadata] = MappingProxyType(
            {metadata.rls_resource: metadata for metadata in self._entities.values()}
        )

    def __getitem__(self, entity_name: str) -> EntityMetadata:
        return self._entities[entity_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def get_metadata(self, entity_name: str) -> EntityMetadata:
        """Return metadata for ``entity_name`` or raise NotFoundError."""
        metadata = self._entities.get(entity_name)
        if metadata is None:
            raise NotFoundError(f"Entity type '{entity_name}'")
        return metadata

    def for_resource(self, resource: str) -> EntityMetadata | None:
        return self._by_resource.get(resource)

    @property
    def resources(self) -> frozenset[str]:
        return frozenset(self._by_resource)


# =============================================================================
# Declaration validation
# =============================================================================


def _string_list(value: Any) -> list[str] | None:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return list(value)


class _DeclarationChecker:
    """Collects problems for one declaration instead of stopping at the first."""

    def __init__(self, entity_name: str, declaration: Mapping[str, Any]):
        self.entity_name = entity_name
        self.declaration = declaration
        self.errors: list[str] = []

    def fail(self, message: str) -> None:
        self.errors.append(f"{self.entity_name}: {message}")

    def identifier(self, key: str, value: Any) -> str | None:
        if not is_safe_identifier(value):
            self.fail(f"{key} must be a lowercase SQL identifier, got {value!r}")
            return None
        return value

    def field_access(self) -> dict[str, Mapping[str, str]]:
        declared = self.declaration.get("field_access")
        if not isinstance(declared, Mapping):
            self.fail("field_access must be a mapping")
            return {}

        merged: dict[str, Mapping[str, str]] = dict(UNIVERSAL_FIELD_ACCESS)
        for field_name, rules in declared.items():
            if not is_safe_identifier(field_name):
                self.fail(f"field name {field_name!r} is not a valid identifier")
                continue
            if not isinstance(rules, Mapping):
                self.fail(f"field_access[{field_name}] must be a mapping")
                continue

            frozen: dict[str, str] = {}
            for operation in Operations.ALL:
                level = rules.get(operation, FieldAccessLevels.NONE)
                if level not in FieldAccessLevels.ALL:
                    self.fail(f"field_access[{field_name}].{operation} has unknown level {level!r}")
                    level = FieldAccessLevels.NONE
                frozen[operation] = level

            unknown_ops = set(rules) - set(Operations.ALL)
            if unknown_ops:
                self.fail(f"field_access[{field_name}] has unknown operations {sorted(unknown_ops)}")

            merged[field_name] = MappingProxyType(frozen)
        return merged

    def field_list(self, key: str, declared_fields: set[str]) -> list[str]:
        values = _string_list(self.declaration.get(key))
        if values is None:
            self.fail(f"{key} must be a list of field names")
            return []
        undeclared = [name for name in values if name not in declared_fields]
        if undeclared:
            self.fail(f"{key} references undeclared fields {undeclared}")
        return [name for name in values if name in declared_fields]

    def rls_policy(self) -> dict[str, str]:
        declared = self.declaration.get("rls_policy")
        if not isinstance(declared, Mapping):
            self.fail("rls_policy must map every role to a policy")
            return {}

        policies: dict[str, str] = {}
        for role, policy in declared.items():
            if role not in Roles.ALL:
                self.fail(f"rls_policy has unknown role {role!r}")
            elif policy not in RLSPolicies.ALL:
                self.fail(f"rls_policy[{role}] has unknown policy {policy!r}")
            else:
                policies[role] = policy

        missing = [role for role in Roles.ALL if role not in declared]
        if missing:
            self.fail(f"rls_policy is missing roles {missing}")
        return policies

    def rls_filter_config(self) -> RLSFilterConfig:
        declared = self.declaration.get("rls_filter_config") or {}
        if not isinstance(declared, Mapping):
            self.fail("rls_filter_config must be a mapping")
            return RLSFilterConfig()
        known = {"own_record_field", "customer_field", "assigned_field"}
        for key, value in declared.items():
            if key not in known:
                self.fail(f"rls_filter_config has unknown key {key!r}")
            else:
                self.identifier(f"rls_filter_config.{key}", value)
        return RLSFilterConfig(**{k: v for k, v in declared.items() if k in known and is_safe_identifier(v)})

    def default_sort(self, declared_fields: set[str]) -> SortSpec | None:
        declared = self.declaration.get("default_sort")
        if declared is None:
            return None
        if not isinstance(declared, Mapping) or "field" not in declared:
            self.fail("default_sort must be a mapping with a 'field' key")
            return None

        field_name = declared["field"]
        order = str(declared.get("order", SortOrder.ASC)).upper()
        if field_name not in declared_fields:
            self.fail(f"default_sort.field {field_name!r} is not a declared field")
            return None
        if order not in SortOrder.ALL:
            self.fail(f"default_sort.order {declared.get('order')!r} must be ASC or DESC")
            order = SortOrder.ASC
        return SortSpec(field=field_name, order=order)

    def dependents(self) -> tuple[DependentSpec, ...]:
        declared = self.declaration.get("dependents") or []
        if not isinstance(declared, (list, tuple)):
            self.fail("dependents must be a list")
            return ()

        specs: list[DependentSpec] = []
        for index, item in enumerate(declared):
            if not isinstance(item, Mapping):
                self.fail(f"dependents[{index}] must be a mapping")
                continue
            table = self.identifier(f"dependents[{index}].table", item.get("table"))
            foreign_key = self.identifier(f"dependents[{index}].foreign_key", item.get("foreign_key"))
            column = item.get("polymorphic_column")
            value = item.get("polymorphic_value")
            if (column is None) != (value is None):
                self.fail(f"dependents[{index}] needs both polymorphic_column and polymorphic_value")
                continue
            if column is not None and self.identifier(f"dependents[{index}].polymorphic_column", column) is None:
                continue
            if table and foreign_key:
                specs.append(
                    DependentSpec(
                        table=table,
                        foreign_key=foreign_key,
                        label=item.get("label"),
                        polymorphic_column=column,
                        polymorphic_value=value,
                    )
                )
        return tuple(specs)

    def error_map(self) -> dict[str, str]:
        declared = self.declaration.get("error_map") or {}
        if not isinstance(declared, Mapping):
            self.fail("error_map must be a mapping")
            return {}
        error_map: dict[str, str] = {}
        for code, kind in declared.items():
            if kind not in ErrorKinds.ALL:
                self.fail(f"error_map[{code}] has unknown classification {kind!r}")
            else:
                error_map[str(code)] = kind
        return error_map


def _build_metadata(entity_name: str, declaration: Mapping[str, Any]) -> tuple[EntityMetadata | None, list[str]]:
    checker = _DeclarationChecker(entity_name, declaration)

    if not is_safe_identifier(entity_name):
        checker.fail("entity name must be a lowercase identifier")

    unknown_keys = set(declaration) - _ALLOWED_KEYS
    if unknown_keys:
        checker.fail(f"unknown keys {sorted(unknown_keys)}")
    for key in _REQUIRED_KEYS:
        if key not in declaration:
            checker.fail(f"missing required key '{key}'")

    table_name = checker.identifier("table_name", declaration.get("table_name"))
    primary_key = checker.identifier("primary_key", declaration.get("primary_key", "id"))

    rls_resource = declaration.get("rls_resource")
    if not isinstance(rls_resource, str) or not rls_resource:
        checker.fail("rls_resource must be a non-empty string")

    field_access = checker.field_access()
    declared_fields = set(field_access)

    identity_field = declaration.get("identity_field")
    if identity_field is not None and identity_field not in declared_fields:
        checker.fail(f"identity_field {identity_field!r} is not a declared field")

    metadata_kwargs = dict(
        required_fields=frozenset(checker.field_list("required_fields", declared_fields)),
        immutable_fields=frozenset(checker.field_list("immutable_fields", declared_fields)),
        searchable_fields=tuple(checker.field_list("searchable_fields", declared_fields)),
        filterable_fields=tuple(checker.field_list("filterable_fields", declared_fields)),
        sortable_fields=tuple(checker.field_list("sortable_fields", declared_fields)),
        default_sort=checker.default_sort(declared_fields),
        rls_policy=MappingProxyType(checker.rls_policy()),
        rls_filter_config=checker.rls_filter_config(),
        dependents=checker.dependents(),
        error_map=MappingProxyType(checker.error_map()),
    )

    if checker.errors:
        return None, checker.errors

    metadata = EntityMetadata(
        name=entity_name,
        table_name=table_name,
        rls_resource=rls_resource,
        field_access=MappingProxyType(field_access),
        primary_key=primary_key,
        identity_field=identity_field,
        display_name=declaration.get("display_name"),
        audited=bool(declaration.get("audited", True)),
        **metadata_kwargs,
    )
    return metadata, []


def build_registry(declarations: Mapping[str, Mapping[str, Any]]) -> EntityRegistry:
    """
    Validate and freeze entity declarations.

    Raises:
        ConfigurationError: listing every problem across all declarations.
    """
    entities: dict[str, EntityMetadata] = {}
    errors: list[str] = []

    for entity_name, declaration in declarations.items():
        if not isinstance(declaration, Mapping):
            errors.append(f"{entity_name}: declaration must be a mapping")
            continue
        metadata, entity_errors = _build_metadata(entity_name, declaration)
        errors.extend(entity_errors)
        if metadata is not None:
            entities[entity_name] = metadata

    seen_resources: dict[str, str] = {}
    for metadata in entities.values():
        owner = seen_resources.setdefault(metadata.rls_resource, metadata.name)
        if owner != metadata.name:
            errors.append(f"{metadata.name}: rls_resource '{metadata.rls_resource}' already used by {owner}")

    if errors:
        raise ConfigurationError("Invalid entity metadata", errors=errors)

    logger.info("Entity registry loaded", entities=sorted(entities))
    return EntityRegistry(entities)
