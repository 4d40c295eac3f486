"""
Services for the entity access layer.

- query/: clause builder, pagination calculator, list options
- permissions/: role hierarchy, row-level security, field access
- crud/: GenericEntityService and the audit trail

Usage:
    from entity_access.services.crud import GenericEntityService
    service = GenericEntityService(get_registry(), SessionExecutor(db))
"""
