"""
Tests for field-level access control.

Tests cover:
- Permission checks against the role hierarchy
- Read filtering of single records and record lists
- Lenient write filtering (privilege escalation through extra fields)
- Strict write validation
"""

import pytest

from shared.config.constants import Operations, Roles
from shared.utils.exceptions import FieldAccessError, ValidationError
from entity_access.services.permissions import (
    can_access_field,
    fields_for_operation,
    filter_by_role,
    filter_writable,
    has_permission,
    validate_access,
)


@pytest.fixture
def work_order(registry):
    return registry.get_metadata("work_order")


@pytest.fixture
def invoice(registry):
    return registry.get_metadata("invoice")


class TestHasPermission:
    """Tests for has_permission()"""

    def test_none_level_never_passes(self):
        assert not has_permission("admin", "none")

    def test_unknown_or_empty_level_never_passes(self):
        assert not has_permission("admin", "root")
        assert not has_permission("admin", None)

    def test_higher_role_passes(self):
        assert has_permission("manager", "dispatcher")
        assert has_permission("dispatcher", "dispatcher")

    def test_lower_role_fails(self):
        assert not has_permission("technician", "dispatcher")

    def test_unknown_caller_is_treated_as_lowest(self):
        assert has_permission("ghost", "customer")
        assert not has_permission("ghost", "technician")


class TestFieldsForOperation:
    """Tests for fields_for_operation()"""

    def test_customer_reads_public_fields_only(self, invoice):
        fields = fields_for_operation(invoice, Roles.CUSTOMER, Operations.READ)

        assert "total" in fields
        assert "id" in fields
        assert "internal_notes" not in fields

    def test_universal_fields_are_merged(self, work_order):
        fields = fields_for_operation(work_order, Roles.MANAGER, Operations.UPDATE)

        assert "is_active" in fields
        assert "status" in fields
        assert "id" not in fields
        assert "created_at" not in fields

    def test_unknown_operation_is_empty(self, work_order):
        assert fields_for_operation(work_order, Roles.ADMIN, "truncate") == frozenset()

    def test_monotonic_in_role(self, registry):
        for metadata in registry.values():
            for operation in Operations.ALL:
                previous = frozenset()
                for role in Roles.ALL:
                    current = fields_for_operation(metadata, role, operation)
                    assert previous <= current, (metadata.name, operation, role)
                    previous = current

    def test_can_access_field(self, work_order):
        assert can_access_field(work_order, Roles.DISPATCHER, "assigned_technician_id", Operations.UPDATE)
        assert not can_access_field(work_order, Roles.CUSTOMER, "assigned_technician_id", Operations.UPDATE)
        assert not can_access_field(work_order, Roles.ADMIN, "undeclared", Operations.READ)


class TestFilterByRole:
    """Tests for filter_by_role()"""

    def test_single_record_is_a_shallow_copy(self, invoice):
        record = {"id": 1, "total": 121, "internal_notes": "net 30", "password_hash": "x"}

        result = filter_by_role(record, invoice, Roles.CUSTOMER)

        assert result == {"id": 1, "total": 121}
        assert result is not record
        assert "internal_notes" in record

    def test_list_keeps_order_and_length(self, invoice):
        records = [{"id": 3, "internal_notes": "a"}, {"id": 1}, {}]

        result = filter_by_role(records, invoice, Roles.CUSTOMER)

        assert result == [{"id": 3}, {"id": 1}, {}]

    def test_none_passes_through(self, invoice):
        assert filter_by_role(None, invoice, Roles.ADMIN) is None

    def test_idempotent(self, invoice):
        record = {"id": 1, "total": 5, "internal_notes": "x"}
        once = filter_by_role(record, invoice, Roles.CUSTOMER)

        assert filter_by_role(once, invoice, Roles.CUSTOMER) == once

    def test_undeclared_columns_are_never_returned(self, invoice):
        result = filter_by_role({"id": 1, "secret_column": "x"}, invoice, Roles.ADMIN)
        assert result == {"id": 1}


class TestFilterWritable:
    """Tests for filter_writable()"""

    def test_low_privilege_extra_field_is_stripped(self, work_order):
        data = {"summary": "x", "assigned_technician_id": 5}

        result = filter_writable(data, work_order, Roles.CUSTOMER, Operations.UPDATE)

        assert result == {"summary": "x"}

    def test_privileged_role_keeps_field(self, work_order):
        data = {"summary": "x", "assigned_technician_id": 5}

        result = filter_writable(data, work_order, Roles.DISPATCHER, Operations.UPDATE)

        assert result == data

    def test_read_only_fields_are_stripped(self, work_order):
        result = filter_writable({"id": 9, "created_at": "now", "name": "n"}, work_order, Roles.ADMIN, Operations.CREATE)
        assert result == {"name": "n"}

    def test_empty_input(self, work_order):
        assert filter_writable(None, work_order, Roles.ADMIN, Operations.CREATE) == {}
        assert filter_writable({}, work_order, Roles.ADMIN, Operations.CREATE) == {}


class TestValidateAccess:
    """Tests for validate_access()"""

    def test_allowed_fields_pass(self, work_order):
        validate_access({"summary": "x"}, work_order, Roles.CUSTOMER, Operations.UPDATE)

    def test_names_every_disallowed_field(self, work_order):
        data = {"summary": "x", "assigned_technician_id": 5, "priority": "high"}

        with pytest.raises(FieldAccessError) as exc_info:
            validate_access(data, work_order, Roles.CUSTOMER, Operations.UPDATE)

        assert exc_info.value.fields == ["assigned_technician_id", "priority"]
        assert exc_info.value.status_code == 400
        assert "assigned_technician_id" in exc_info.value.detail

    def test_is_a_validation_error(self, work_order):
        with pytest.raises(ValidationError):
            validate_access({"id": 1}, work_order, Roles.ADMIN, Operations.UPDATE)
