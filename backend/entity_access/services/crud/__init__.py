"""
CRUD Services - one metadata-driven code path for every entity.

Provides:
- GenericEntityService: find/create/update/delete/batch with RLS and field access
- Audit trail: AuditContext, AuditEntry, pluggable AuditSink
"""

from .audit import (
    AuditContext,
    AuditEntry,
    AuditSink,
    AuditDispatcher,
    LoggingAuditSink,
    build_entry,
    compute_changes,
)
from .generic_service import GenericEntityService

__all__ = [
    "GenericEntityService",
    # Audit
    "AuditContext",
    "AuditEntry",
    "AuditSink",
    "AuditDispatcher",
    "LoggingAuditSink",
    "build_entry",
    "compute_changes",
]
