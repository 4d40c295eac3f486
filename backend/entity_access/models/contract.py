"""Service contract entity declaration."""

from shared.config.constants import RLSPolicies, Roles

from .base import access

CONTRACT = {
    "table_name": "contracts",
    "primary_key": "id",
    "identity_field": "contract_number",
    "display_name": "Contract",
    "rls_resource": "contracts",
    "rls_policy": {
        Roles.CUSTOMER: RLSPolicies.OWN_CONTRACTS_ONLY,
        Roles.TECHNICIAN: RLSPolicies.DENY_ALL,
        Roles.DISPATCHER: RLSPolicies.ALL_RECORDS,
        Roles.MANAGER: RLSPolicies.ALL_RECORDS,
        Roles.ADMIN: RLSPolicies.ALL_RECORDS,
    },
    "rls_filter_config": {"customer_field": "customer_id"},
    "required_fields": ["contract_number", "customer_id", "start_date"],
    "immutable_fields": ["contract_number", "customer_id"],
    "field_access": {
        "contract_number": access(create=Roles.MANAGER, read=Roles.CUSTOMER),
        "customer_id": access(create=Roles.MANAGER, read=Roles.CUSTOMER),
        "name": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "start_date": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "end_date": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "value": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "billing_cycle": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.MANAGER),
        "terms": access(create=Roles.MANAGER, read=Roles.CUSTOMER, update=Roles.MANAGER),
    },
    "searchable_fields": ["contract_number", "name"],
    "filterable_fields": ["id", "contract_number", "customer_id", "start_date", "end_date", "billing_cycle", "status", "is_active"],
    "sortable_fields": ["id", "contract_number", "name", "start_date", "end_date", "value", "created_at"],
    "default_sort": {"field": "start_date", "order": "DESC"},
}
