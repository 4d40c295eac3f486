"""Technician entity declaration."""

from shared.config.constants import RLSPolicies, Roles

from .base import access

TECHNICIAN = {
    "table_name": "technicians",
    "primary_key": "id",
    "identity_field": "email",
    "display_name": "Technician",
    "rls_resource": "technicians",
    # Visible to every role; customers need to see who is assigned
    "rls_policy": {role: RLSPolicies.ALL_RECORDS for role in Roles.ALL},
    "required_fields": ["email", "first_name", "last_name"],
    "immutable_fields": ["email"],
    "field_access": {
        "first_name": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.TECHNICIAN),
        "last_name": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.TECHNICIAN),
        "email": access(create=Roles.MANAGER, read=Roles.TECHNICIAN),
        "phone": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.TECHNICIAN),
        "license_number": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.MANAGER),
        "hourly_rate": access(create=Roles.MANAGER, read=Roles.DISPATCHER, update=Roles.MANAGER),
        "certifications": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.DISPATCHER),
    },
    "dependents": [
        {"table": "work_orders", "foreign_key": "assigned_technician_id", "label": "work_order"},
    ],
    "searchable_fields": ["first_name", "last_name", "email", "license_number"],
    "filterable_fields": ["id", "email", "license_number", "is_active", "status", "created_at"],
    "sortable_fields": ["id", "first_name", "last_name", "email", "hourly_rate", "status", "created_at"],
    "default_sort": {"field": "last_name", "order": "ASC"},
}
