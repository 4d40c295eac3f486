"""
Audit trail for entity changes.

The entity service hands every committed mutation to an ``AuditSink``.
Persisting the trail is the sink's business; the dispatcher makes sure a
failing sink never fails the primary operation while still leaving a
trace in the logs and a failure count.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from shared.config.logging import get_logger, mask_email, security_audit_logger
from shared.infrastructure.correlation import get_request_id

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditContext:
    """Who did it and from where. Passed through to the sink untouched."""

    actor_id: int | str | None = None
    actor_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: str = field(default_factory=get_request_id)
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class AuditEntry:
    actor: int | str | None
    action: str
    resource_type: str
    resource_id: Any
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    changes: Optional[dict] = None
    context: Optional[AuditContext] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor": self.actor,
            "action": self.action,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "oldValues": self.old_values,
            "newValues": self.new_values,
            "changes": self.changes,
        }


def compute_changes(old_values: Optional[dict], new_values: Optional[dict]) -> Optional[dict]:
    """Field-by-field diff of two snapshots; None when either side is missing."""
    if not old_values or not new_values:
        return None
    changes = {}
    for key in set(old_values.keys()) | set(new_values.keys()):
        old_val = old_values.get(key)
        new_val = new_values.get(key)
        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}
    return changes or None


def build_entry(
    *,
    action: str,
    resource_type: str,
    resource_id: Any,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
    context: Optional[AuditContext] = None,
) -> AuditEntry:
    """
    Build an audit entry for one change.

    Args:
        action: CREATE, UPDATE or DELETE
        resource_type: Table of the changed entity
        resource_id: Primary key of the changed row
        old_values: Row before the change (UPDATE/DELETE)
        new_values: Row after the change (CREATE/UPDATE)
        context: Actor and origin metadata
    """
    return AuditEntry(
        actor=context.actor_id if context else None,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
        changes=compute_changes(old_values, new_values),
        context=context,
    )


class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None:
        ...


class LoggingAuditSink:
    """Writes entries to the security audit logger."""

    def record(self, entry: AuditEntry) -> None:
        context = entry.context
        security_audit_logger.info(
            f"ENTITY_AUDIT: {entry.action}",
            actor=entry.actor,
            actor_email=mask_email(context.actor_email) if context and context.actor_email else None,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            changed_fields=sorted(entry.changes) if entry.changes else None,
            ip_address=context.ip_address if context else None,
            request_id=context.request_id if context else None,
        )


class AuditDispatcher:
    """Delivers entries to a sink, absorbing and counting sink failures."""

    def __init__(self, sink: AuditSink):
        self.sink = sink
        self._failures = 0
        self._lock = threading.Lock()

    @property
    def failures(self) -> int:
        return self._failures

    def emit(self, entry: AuditEntry) -> bool:
        try:
            self.sink.record(entry)
        except Exception:
            with self._lock:
                self._failures += 1
            logger.error(
                "Audit sink failed, change was committed without an audit record",
                action=entry.action,
                resource_type=entry.resource_type,
                resource_id=entry.resource_id,
                exc_info=True,
            )
            return False
        return True
