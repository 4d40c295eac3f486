"""Inventory item entity declaration."""

from shared.config.constants import RLSPolicies, Roles

from .base import access

INVENTORY_ITEM = {
    "table_name": "inventory_items",
    "primary_key": "id",
    "identity_field": "sku",
    "display_name": "Inventory Item",
    "rls_resource": "inventory",
    "rls_policy": {
        Roles.CUSTOMER: RLSPolicies.DENY_ALL,
        Roles.TECHNICIAN: RLSPolicies.PUBLIC_RESOURCE,
        Roles.DISPATCHER: RLSPolicies.ALL_RECORDS,
        Roles.MANAGER: RLSPolicies.ALL_RECORDS,
        Roles.ADMIN: RLSPolicies.ALL_RECORDS,
    },
    "required_fields": ["sku", "name"],
    "immutable_fields": ["sku"],
    "field_access": {
        "sku": access(create=Roles.MANAGER, read=Roles.TECHNICIAN),
        "name": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.MANAGER),
        "description": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.MANAGER),
        "quantity": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.DISPATCHER),
        "reorder_level": access(create=Roles.MANAGER, read=Roles.DISPATCHER, update=Roles.MANAGER),
        "unit_cost": access(create=Roles.MANAGER, read=Roles.MANAGER, update=Roles.MANAGER),
        "location": access(create=Roles.MANAGER, read=Roles.TECHNICIAN, update=Roles.DISPATCHER),
    },
    "searchable_fields": ["sku", "name", "description"],
    "filterable_fields": ["id", "sku", "quantity", "location", "status", "is_active"],
    "sortable_fields": ["id", "sku", "name", "quantity", "location", "created_at"],
    "default_sort": {"field": "name", "order": "ASC"},
}
