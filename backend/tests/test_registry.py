"""
Tests for the entity metadata registry.

Tests cover:
- Loading the application declarations
- Immutability of loaded metadata
- Rejection of malformed declarations, all problems reported at once
"""

import copy
from dataclasses import FrozenInstanceError

import pytest

from shared.config.constants import RLSPolicies, Roles
from shared.utils.exceptions import ConfigurationError, NotFoundError
from entity_access.models import ENTITY_DECLARATIONS, build_registry
from entity_access.models.base import DependentSpec, SortSpec, access


def _declaration(**overrides):
    declaration = {
        "table_name": "widgets",
        "rls_resource": "widgets",
        "rls_policy": {role: RLSPolicies.ALL_RECORDS for role in Roles.ALL},
        "field_access": {
            "name": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
            "code": access(create=Roles.MANAGER, read=Roles.CUSTOMER),
        },
        "required_fields": ["name"],
        "immutable_fields": ["code"],
        "filterable_fields": ["name", "code"],
        "sortable_fields": ["name"],
        "default_sort": {"field": "name", "order": "asc"},
    }
    declaration.update(overrides)
    return declaration


def _errors(declarations):
    with pytest.raises(ConfigurationError) as exc_info:
        build_registry(declarations)
    return exc_info.value.context["errors"]


class TestApplicationRegistry:
    """The shipped declarations."""

    def test_all_entities_load(self, registry):
        assert set(registry) == set(ENTITY_DECLARATIONS)

    def test_unknown_entity_is_not_found(self, registry):
        with pytest.raises(NotFoundError) as exc_info:
            registry.get_metadata("widget")

        assert exc_info.value.status_code == 404
        assert "widget" in exc_info.value.detail

    def test_lookup_by_resource(self, registry):
        assert registry.for_resource("inventory").name == "inventory_item"
        assert registry.for_resource("nothing") is None
        assert "work_orders" in registry.resources

    def test_universal_fields_present_everywhere(self, registry):
        for metadata in registry.values():
            assert {"id", "is_active", "created_at", "updated_at", "status"} <= metadata.fields

    def test_metadata_is_frozen(self, registry):
        metadata = registry.get_metadata("customer")

        with pytest.raises(FrozenInstanceError):
            metadata.table_name = "users"
        with pytest.raises(TypeError):
            metadata.field_access["email"] = {}
        with pytest.raises(TypeError):
            metadata.rls_policy["customer"] = RLSPolicies.ALL_RECORDS

    def test_derived_field_sets(self, registry):
        metadata = registry.get_metadata("work_order")

        assert "work_order_number" not in metadata.createable_fields
        assert "customer_id" in metadata.createable_fields
        assert "customer_id" not in metadata.updateable_fields
        assert metadata.has_active_flag

    def test_dependents_and_sort(self, registry):
        metadata = registry.get_metadata("customer")

        assert metadata.dependents[0] == DependentSpec("work_orders", "customer_id", label="work_order")
        assert metadata.default_sort == SortSpec("created_at", "DESC")

    def test_declarations_are_not_mutated(self):
        before = copy.deepcopy(ENTITY_DECLARATIONS)
        build_registry(ENTITY_DECLARATIONS)
        assert ENTITY_DECLARATIONS == before


class TestDeclarationValidation:
    """Malformed declarations abort loading."""

    def test_valid_declaration(self):
        registry = build_registry({"widget": _declaration()})
        metadata = registry.get_metadata("widget")

        assert metadata.default_sort == SortSpec("name", "ASC")
        assert metadata.required_fields == frozenset({"name"})
        assert metadata.label == "widget"

    def test_unsafe_table_name(self):
        errors = _errors({"widget": _declaration(table_name="widgets; DROP TABLE x")})
        assert any("table_name" in error for error in errors)

    def test_field_list_must_reference_declared_fields(self):
        errors = _errors({"widget": _declaration(sortable_fields=["name", "password"])})
        assert any("sortable_fields" in error and "password" in error for error in errors)

    def test_unknown_access_level(self):
        field_access = {"name": {"read": "superuser"}}
        errors = _errors({"widget": _declaration(field_access=field_access, required_fields=[],
                                                 immutable_fields=[], filterable_fields=[],
                                                 sortable_fields=[], default_sort=None)})
        assert any("unknown level" in error for error in errors)

    def test_policy_must_cover_every_role(self):
        errors = _errors({"widget": _declaration(rls_policy={Roles.ADMIN: RLSPolicies.ALL_RECORDS})})
        assert any("missing roles" in error for error in errors)

    def test_unknown_policy(self):
        policies = {role: "friends_only" for role in Roles.ALL}
        errors = _errors({"widget": _declaration(rls_policy=policies)})
        assert any("unknown policy" in error for error in errors)

    def test_polymorphic_dependent_needs_both_parts(self):
        dependents = [{"table": "notes", "foreign_key": "owner_id", "polymorphic_column": "owner_type"}]
        errors = _errors({"widget": _declaration(dependents=dependents)})
        assert any("polymorphic" in error for error in errors)

    def test_error_map_kinds(self):
        errors = _errors({"widget": _declaration(error_map={"23505": "explode"})})
        assert any("error_map" in error for error in errors)

    def test_unknown_keys(self):
        errors = _errors({"widget": _declaration(cache_ttl=60)})
        assert any("unknown keys" in error for error in errors)

    def test_duplicate_resource(self):
        errors = _errors({"widget": _declaration(), "gadget": _declaration(table_name="gadgets")})
        assert any("already used" in error for error in errors)

    def test_reports_every_problem(self):
        errors = _errors(
            {
                "widget": _declaration(table_name="Widgets", sortable_fields=["ghost"]),
                "gadget": _declaration(rls_resource="gadgets", rls_policy={}),
            }
        )
        assert len(errors) >= 3

    def test_generic_message_hides_internals(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_registry({"widget": _declaration(table_name="1bad")})

        assert exc_info.value.detail == "Internal server error"
        assert exc_info.value.reason == "Invalid entity metadata"
