"""
Pytest configuration and fixtures for backend tests.
"""

from datetime import date

import pytest
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    CheckConstraint,
    create_engine,
    event,
    func,
    text,
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from entity_access.models import get_registry
from entity_access.persistence import SessionExecutor
from entity_access.services.crud import AuditContext, GenericEntityService


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# =============================================================================
# Schema matching the entity declarations
# =============================================================================

metadata = MetaData()


def _common_columns():
    return [
        Column("id", Integer, primary_key=True),
        Column("is_active", Boolean, nullable=False, server_default=text("1")),
        Column("status", String(30), nullable=False, server_default=text("'active'")),
        Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
        Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    ]


customers = Table(
    "customers",
    metadata,
    *_common_columns(),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(30)),
    Column("organization_name", String(200)),
    Column("billing_address", String(500)),
    Column("notes", String(1000)),
)

technicians = Table(
    "technicians",
    metadata,
    *_common_columns(),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(30)),
    Column("license_number", String(50)),
    Column("hourly_rate", Numeric(10, 2)),
    Column("certifications", String(500)),
)

work_orders = Table(
    "work_orders",
    metadata,
    *_common_columns(),
    Column("work_order_number", String(30), unique=True),
    Column("name", String(200)),
    Column("summary", String(1000)),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("assigned_technician_id", Integer, ForeignKey("technicians.id")),
    Column("priority", String(20)),
    Column("scheduled_start", DateTime),
    Column("scheduled_end", DateTime),
    Column("completed_at", DateTime),
)

invoices = Table(
    "invoices",
    metadata,
    *_common_columns(),
    Column("invoice_number", String(30), nullable=False, unique=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("work_order_id", Integer, ForeignKey("work_orders.id")),
    Column("amount", Numeric(12, 2)),
    Column("tax", Numeric(12, 2)),
    Column("total", Numeric(12, 2), nullable=False),
    Column("due_date", Date),
    Column("paid_at", DateTime),
    Column("internal_notes", String(1000)),
    CheckConstraint("total >= 0", name="invoices_total_check"),
)

contracts = Table(
    "contracts",
    metadata,
    *_common_columns(),
    Column("contract_number", String(30), nullable=False, unique=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("name", String(200)),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date),
    Column("value", Numeric(12, 2)),
    Column("billing_cycle", String(20)),
    Column("terms", String(2000)),
)

inventory_items = Table(
    "inventory_items",
    metadata,
    *_common_columns(),
    Column("sku", String(50), nullable=False, unique=True),
    Column("name", String(200), nullable=False),
    Column("description", String(1000)),
    Column("quantity", Integer, nullable=False, server_default=text("0")),
    Column("reorder_level", Integer),
    Column("unit_cost", Numeric(10, 2)),
    Column("location", String(100)),
)


# =============================================================================
# Fixtures
# =============================================================================


class RecordingAuditSink:
    """Audit sink that keeps entries in memory."""

    def __init__(self):
        self.entries = []

    def record(self, entry):
        self.entries.append(entry)


class FailingAuditSink:
    """Audit sink that always fails."""

    def record(self, entry):
        raise RuntimeError("audit store unavailable")


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        metadata.drop_all(bind=engine)


@pytest.fixture
def executor(db_session):
    return SessionExecutor(db_session)


@pytest.fixture
def registry():
    return get_registry()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def service(registry, executor, audit_sink):
    return GenericEntityService(registry, executor, audit_sink=audit_sink)


@pytest.fixture
def audit_context():
    return AuditContext(actor_id=99, actor_email="dispatch@example.com", ip_address="10.0.0.5")


@pytest.fixture
def seed_data(db_session):
    """
    Customers, technicians and their work orders.

    Customer 1 owns work orders 1-3 (two assigned to technician 1, one to
    technician 2), one invoice and one contract. Customer 2 owns work
    order 4 and nothing else. Customer 3 is inactive; technician 3 has
    no assignments.
    """
    db_session.execute(
        customers.insert(),
        [
            {"id": 1, "first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com",
             "phone": "555-0101", "organization_name": "Analytical Engines", "notes": "VIP", "is_active": True},
            {"id": 2, "first_name": "Grace", "last_name": "Hopper", "email": "grace@example.com",
             "phone": "555-0102", "organization_name": "Compilers Inc", "notes": None, "is_active": True},
            {"id": 3, "first_name": "Alan", "last_name": "Turing", "email": "alan@example.com",
             "phone": None, "organization_name": None, "notes": None, "is_active": False},
        ],
    )
    db_session.execute(
        technicians.insert(),
        [
            {"id": 1, "first_name": "Tom", "last_name": "Wrench", "email": "tom@example.com",
             "license_number": "LIC-1", "hourly_rate": 45},
            {"id": 2, "first_name": "Tina", "last_name": "Volt", "email": "tina@example.com",
             "license_number": "LIC-2", "hourly_rate": 55},
            {"id": 3, "first_name": "Idle", "last_name": "Hands", "email": "idle@example.com",
             "license_number": "LIC-3", "hourly_rate": 30},
        ],
    )
    db_session.execute(
        work_orders.insert(),
        [
            {"id": 1, "work_order_number": "WO-1", "name": "Boiler repair", "summary": "No hot water",
             "customer_id": 1, "assigned_technician_id": 1, "priority": "high"},
            {"id": 2, "work_order_number": "WO-2", "name": "Annual service", "summary": "Inspection",
             "customer_id": 1, "assigned_technician_id": 1, "priority": "low"},
            {"id": 3, "work_order_number": "WO-3", "name": "Thermostat", "summary": "Replace unit",
             "customer_id": 1, "assigned_technician_id": 2, "priority": "medium"},
            {"id": 4, "work_order_number": "WO-4", "name": "Leak", "summary": "Kitchen sink leak",
             "customer_id": 2, "assigned_technician_id": 2, "priority": "high"},
        ],
    )
    db_session.execute(
        invoices.insert(),
        [
            {"id": 1, "invoice_number": "INV-1", "customer_id": 1, "work_order_id": 1,
             "amount": 100, "tax": 21, "total": 121, "internal_notes": "net 30"},
        ],
    )
    db_session.execute(
        contracts.insert(),
        [
            {"id": 1, "contract_number": "CT-1", "customer_id": 1, "name": "Maintenance plan",
             "start_date": date(2026, 1, 1), "billing_cycle": "monthly", "value": 1200},
        ],
    )
    db_session.execute(
        inventory_items.insert(),
        [
            {"id": 1, "sku": "VALVE-01", "name": "Valve", "quantity": 12, "unit_cost": 4.5, "location": "A1"},
        ],
    )
    db_session.commit()
    return {"customers": [1, 2, 3], "technicians": [1, 2, 3], "work_orders": [1, 2, 3, 4]}
