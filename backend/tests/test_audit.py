"""
Tests for the audit trail helpers.
"""

import logging

from shared.infrastructure.correlation import correlation_scope
from entity_access.services.crud import (
    AuditContext,
    AuditDispatcher,
    LoggingAuditSink,
    build_entry,
    compute_changes,
)
from tests.conftest import FailingAuditSink, RecordingAuditSink


class TestComputeChanges:
    """Tests for compute_changes()"""

    def test_only_changed_fields(self):
        changes = compute_changes({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4})
        assert changes == {"b": {"old": 2, "new": 3}, "c": {"old": None, "new": 4}}

    def test_no_difference_is_none(self):
        assert compute_changes({"a": 1}, {"a": 1}) is None

    def test_missing_side_is_none(self):
        assert compute_changes(None, {"a": 1}) is None
        assert compute_changes({"a": 1}, None) is None


class TestBuildEntry:
    """Tests for build_entry()"""

    def test_update_entry(self):
        context = AuditContext(actor_id=5)
        entry = build_entry(
            action="UPDATE",
            resource_type="work_orders",
            resource_id=1,
            old_values={"summary": "a"},
            new_values={"summary": "b"},
            context=context,
        )

        assert entry.actor == 5
        assert entry.changes == {"summary": {"old": "a", "new": "b"}}
        assert entry.to_dict()["resourceType"] == "work_orders"

    def test_without_context(self):
        entry = build_entry(action="CREATE", resource_type="customers", resource_id=3, new_values={"id": 3})

        assert entry.actor is None
        assert entry.changes is None

    def test_context_picks_up_request_id(self):
        with correlation_scope("req-123"):
            context = AuditContext(actor_id=1)

        assert context.request_id == "req-123"


class TestAuditDispatcher:
    """Tests for AuditDispatcher.emit()"""

    def _entry(self):
        return build_entry(action="DELETE", resource_type="customers", resource_id=2, old_values={"id": 2})

    def test_delivers_to_sink(self):
        sink = RecordingAuditSink()
        dispatcher = AuditDispatcher(sink)

        assert dispatcher.emit(self._entry()) is True
        assert len(sink.entries) == 1
        assert dispatcher.failures == 0

    def test_sink_failure_is_absorbed_and_counted(self, caplog):
        dispatcher = AuditDispatcher(FailingAuditSink())

        with caplog.at_level(logging.ERROR):
            assert dispatcher.emit(self._entry()) is False
            assert dispatcher.emit(self._entry()) is False

        assert dispatcher.failures == 2
        assert any(record.exc_info for record in caplog.records)

    def test_logging_sink(self, caplog):
        context = AuditContext(actor_id=4, actor_email="someone@example.com")
        entry = build_entry(action="CREATE", resource_type="customers", resource_id=9,
                            new_values={"id": 9}, context=context)

        with caplog.at_level(logging.INFO, logger="security.audit"):
            LoggingAuditSink().record(entry)

        record = caplog.records[-1]
        assert record.getMessage() == "ENTITY_AUDIT: CREATE"
        assert record.extra_data["actor_email"] == "so***@example.com"
