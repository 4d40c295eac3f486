"""
Entity metadata: declarations, immutable value types and the registry.

Adding an entity means adding a declaration module and listing it in
ENTITY_DECLARATIONS. No service code changes.
"""

from functools import lru_cache

from .base import (
    DependentSpec,
    EntityMetadata,
    ErrorKinds,
    RLSFilterConfig,
    SortSpec,
    access,
)
from .registry import EntityRegistry, build_registry
from .customer import CUSTOMER
from .technician import TECHNICIAN
from .work_order import WORK_ORDER
from .invoice import INVOICE
from .contract import CONTRACT
from .inventory_item import INVENTORY_ITEM

ENTITY_DECLARATIONS = {
    "customer": CUSTOMER,
    "technician": TECHNICIAN,
    "work_order": WORK_ORDER,
    "invoice": INVOICE,
    "contract": CONTRACT,
    "inventory_item": INVENTORY_ITEM,
}


@lru_cache
def get_registry() -> EntityRegistry:
    """Build the application registry once."""
    return build_registry(ENTITY_DECLARATIONS)


__all__ = [
    "DependentSpec",
    "EntityMetadata",
    "ErrorKinds",
    "RLSFilterConfig",
    "SortSpec",
    "access",
    "EntityRegistry",
    "build_registry",
    "get_registry",
    "ENTITY_DECLARATIONS",
]
