"""
Work order entity declaration.

Customers see the orders they requested, technicians the ones assigned
to them. Dispatchers and above see everything.
"""

from shared.config.constants import RLSPolicies, Roles

from .base import access

WORK_ORDER = {
    "table_name": "work_orders",
    "primary_key": "id",
    "identity_field": "work_order_number",
    "display_name": "Work Order",
    "rls_resource": "work_orders",
    "rls_policy": {
        Roles.CUSTOMER: RLSPolicies.OWN_WORK_ORDERS_ONLY,
        Roles.TECHNICIAN: RLSPolicies.ASSIGNED_WORK_ORDERS_ONLY,
        Roles.DISPATCHER: RLSPolicies.ALL_RECORDS,
        Roles.MANAGER: RLSPolicies.ALL_RECORDS,
        Roles.ADMIN: RLSPolicies.ALL_RECORDS,
    },
    "rls_filter_config": {
        "customer_field": "customer_id",
        "assigned_field": "assigned_technician_id",
    },
    "required_fields": ["customer_id"],
    "immutable_fields": ["work_order_number", "customer_id"],
    "field_access": {
        # Generated by the backend
        "work_order_number": access(read=Roles.CUSTOMER),
        "name": access(create=Roles.CUSTOMER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "summary": access(create=Roles.CUSTOMER, read=Roles.CUSTOMER, update=Roles.CUSTOMER),
        "customer_id": access(create=Roles.CUSTOMER, read=Roles.TECHNICIAN),
        "assigned_technician_id": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "priority": access(create=Roles.CUSTOMER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "scheduled_start": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "scheduled_end": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "completed_at": access(read=Roles.CUSTOMER, update=Roles.TECHNICIAN),
    },
    "dependents": [
        {"table": "invoices", "foreign_key": "work_order_id", "label": "invoice"},
    ],
    "searchable_fields": ["work_order_number", "name", "summary"],
    "filterable_fields": [
        "id",
        "work_order_number",
        "customer_id",
        "assigned_technician_id",
        "priority",
        "scheduled_start",
        "completed_at",
        "is_active",
        "status",
        "created_at",
    ],
    "sortable_fields": [
        "id",
        "work_order_number",
        "name",
        "priority",
        "scheduled_start",
        "status",
        "created_at",
        "updated_at",
    ],
    "default_sort": {"field": "created_at", "order": "DESC"},
}
