"""Customer entity declaration."""

from shared.config.constants import RLSPolicies, Roles

from .base import access

CUSTOMER = {
    "table_name": "customers",
    "primary_key": "id",
    "identity_field": "email",
    "display_name": "Customer",
    "rls_resource": "customers",
    # Customers see their own record only
    "rls_policy": {
        Roles.CUSTOMER: RLSPolicies.OWN_RECORD_ONLY,
        Roles.TECHNICIAN: RLSPolicies.ALL_RECORDS,
        Roles.DISPATCHER: RLSPolicies.ALL_RECORDS,
        Roles.MANAGER: RLSPolicies.ALL_RECORDS,
        Roles.ADMIN: RLSPolicies.ALL_RECORDS,
    },
    "rls_filter_config": {"own_record_field": "id"},
    "required_fields": ["email", "first_name", "last_name"],
    "immutable_fields": ["email"],
    "field_access": {
        "first_name": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.CUSTOMER),
        "last_name": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.CUSTOMER),
        "email": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER),
        "phone": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.CUSTOMER),
        "organization_name": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.CUSTOMER),
        "billing_address": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.CUSTOMER),
        "notes": access(create=Roles.DISPATCHER, read=Roles.TECHNICIAN, update=Roles.DISPATCHER),
    },
    "dependents": [
        {"table": "work_orders", "foreign_key": "customer_id", "label": "work_order"},
        {"table": "invoices", "foreign_key": "customer_id", "label": "invoice"},
        {"table": "contracts", "foreign_key": "customer_id", "label": "contract"},
    ],
    "searchable_fields": ["first_name", "last_name", "email", "phone", "organization_name"],
    "filterable_fields": [
        "id",
        "email",
        "first_name",
        "last_name",
        "phone",
        "organization_name",
        "is_active",
        "status",
        "created_at",
        "updated_at",
    ],
    "sortable_fields": [
        "id",
        "email",
        "first_name",
        "last_name",
        "organization_name",
        "is_active",
        "status",
        "created_at",
        "updated_at",
    ],
    "default_sort": {"field": "created_at", "order": "DESC"},
}
