"""Invoice entity declaration."""

from shared.config.constants import RLSPolicies, Roles

from .base import ErrorKinds, access

INVOICE = {
    "table_name": "invoices",
    "primary_key": "id",
    "identity_field": "invoice_number",
    "display_name": "Invoice",
    "rls_resource": "invoices",
    # Technicians have no business with billing
    "rls_policy": {
        Roles.CUSTOMER: RLSPolicies.OWN_INVOICES_ONLY,
        Roles.TECHNICIAN: RLSPolicies.DENY_ALL,
        Roles.DISPATCHER: RLSPolicies.ALL_RECORDS,
        Roles.MANAGER: RLSPolicies.ALL_RECORDS,
        Roles.ADMIN: RLSPolicies.ALL_RECORDS,
    },
    "rls_filter_config": {"customer_field": "customer_id"},
    "required_fields": ["invoice_number", "customer_id", "total"],
    "immutable_fields": ["invoice_number", "customer_id"],
    "field_access": {
        "invoice_number": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER),
        "customer_id": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER),
        "work_order_id": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "amount": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "tax": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "total": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "due_date": access(create=Roles.DISPATCHER, read=Roles.CUSTOMER, update=Roles.DISPATCHER),
        "paid_at": access(read=Roles.CUSTOMER, update=Roles.MANAGER),
        "internal_notes": access(create=Roles.DISPATCHER, read=Roles.DISPATCHER, update=Roles.DISPATCHER),
    },
    "searchable_fields": ["invoice_number"],
    "filterable_fields": ["id", "invoice_number", "customer_id", "work_order_id", "total", "due_date", "status", "is_active"],
    "sortable_fields": ["id", "invoice_number", "total", "due_date", "status", "created_at"],
    "default_sort": {"field": "due_date", "order": "ASC"},
    # A failing CHECK on totals is a caller mistake, not a conflict
    "error_map": {"23514": ErrorKinds.BAD_REQUEST},
}
