"""
Metadata-driven entity access layer.

Every entity is served by one generic engine configured through declared
metadata: parameterized search/filter/sort, pagination, row-level security,
field-level access control, dependent-record checks and auditing.

Usage:
    from entity_access.models import get_registry
    from entity_access.persistence import SessionExecutor
    from entity_access.services.crud import GenericEntityService

    with get_db_context() as db:
        service = GenericEntityService(get_registry(), SessionExecutor(db))
        ctx = service.resolve_context("invoice", role, user_id)
        page = service.find_all("invoice", {"limit": 20}, ctx)
"""
