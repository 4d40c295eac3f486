"""
Tests for backend error normalization and translation into the domain
error taxonomy.
"""

import pytest

from shared.utils.exceptions import (
    ConflictError,
    DatabaseError,
    DependentRecordError,
    InvalidReferenceError,
    ValidationError,
)
from entity_access.persistence import BackendError, SQLState, extract_field, translate_backend_error


class TestExtractField:
    """Tests for extract_field()"""

    def test_postgres_key_detail(self):
        assert extract_field("Key (email)=(a@b.c) already exists.", None) == "email"

    def test_postgres_composite_key_uses_first_column(self):
        assert extract_field("Key (customer_id, number)=(1, 2) already exists.", None) == "customer_id"

    def test_postgres_column_message(self):
        message = 'null value in column "total" of relation "invoices" violates not-null constraint'
        assert extract_field(None, message) == "total"

    def test_sqlite_message(self):
        assert extract_field(None, "UNIQUE constraint failed: customers.email") == "email"

    def test_constraint_name(self):
        assert extract_field(None, "boom", "invoices_total_check", "invoices") == "total"
        assert extract_field(None, "boom", "customers_email_key") == "customers_email"

    def test_nothing_found(self):
        assert extract_field(None, "connection reset") is None


class TestTranslateBackendError:
    """Tests for translate_backend_error()"""

    @pytest.fixture
    def customer(self, registry):
        return registry.get_metadata("customer")

    @pytest.fixture
    def invoice(self, registry):
        return registry.get_metadata("invoice")

    def test_unique_violation_is_conflict(self, customer):
        error = BackendError(SQLState.UNIQUE_VIOLATION, "duplicate key", field="email")

        exc = translate_backend_error(error, customer, "create")

        assert isinstance(exc, ConflictError)
        assert exc.status_code == 409
        assert exc.detail == "Customer with this email already exists"

    def test_foreign_key_on_write_is_invalid_reference(self, invoice):
        error = BackendError(SQLState.FOREIGN_KEY_VIOLATION, "fk", field="work_order_id")

        exc = translate_backend_error(error, invoice, "create")

        assert isinstance(exc, InvalidReferenceError)
        assert exc.status_code == 400
        assert "work_order_id" in exc.detail

    def test_foreign_key_on_delete_is_dependent(self, customer):
        error = BackendError(
            SQLState.FOREIGN_KEY_VIOLATION,
            "update or delete violates foreign key constraint",
            detail='Key (id)=(1) is still referenced from table "work_orders".',
        )

        exc = translate_backend_error(error, customer, "delete", record_id=1)

        assert isinstance(exc, DependentRecordError)
        assert exc.dependent == "work_orders"
        assert exc.status_code == 409

    def test_entity_override_wins(self, invoice):
        error = BackendError(SQLState.CHECK_VIOLATION, "check", field="total")

        exc = translate_backend_error(error, invoice, "update")

        assert isinstance(exc, ValidationError)
        assert exc.detail == "Invalid value for 'total'"

    def test_not_null_names_field(self, customer):
        error = BackendError(SQLState.NOT_NULL_VIOLATION, "nn", field="last_name")

        exc = translate_backend_error(error, customer, "create")

        assert exc.detail == "Missing required value for 'last_name'"

    def test_unmapped_code_is_generic_database_error(self, customer):
        error = BackendError("40001", "could not serialize access due to concurrent update")

        exc = translate_backend_error(error, customer, "update")

        assert isinstance(exc, DatabaseError)
        assert exc.status_code == 500
        # Driver text never reaches the caller
        assert "serialize" not in exc.detail

    def test_unknown_code(self, customer):
        exc = translate_backend_error(BackendError(None, "boom"), customer, "read")
        assert isinstance(exc, DatabaseError)


class TestSQLiteErrors:
    """Driver errors raised through SessionExecutor."""

    def test_unique_violation_from_sqlite(self, executor, seed_data):
        with pytest.raises(BackendError) as exc_info:
            executor.execute(
                "INSERT INTO customers (first_name, last_name, email) VALUES ($1, $2, $3)",
                ["Ada", "Again", "ada@example.com"],
            )

        assert exc_info.value.code == SQLState.UNIQUE_VIOLATION
        assert exc_info.value.field == "email"

    def test_foreign_key_from_sqlite(self, executor, seed_data):
        with pytest.raises(BackendError) as exc_info:
            executor.execute(
                "INSERT INTO work_orders (customer_id, name) VALUES ($1, $2)",
                [999, "Orphan"],
            )

        assert exc_info.value.code == SQLState.FOREIGN_KEY_VIOLATION

    def test_failed_statement_leaves_session_usable(self, executor, seed_data):
        with pytest.raises(BackendError):
            executor.execute("INSERT INTO customers (first_name) VALUES ($1)", ["Nobody"])

        result = executor.execute("SELECT COUNT(*) AS total FROM customers")
        assert result.rows[0]["total"] == 3
