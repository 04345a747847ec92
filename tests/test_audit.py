"""Tests for change-set diffs and the best-effort audit recorder."""

from __future__ import annotations

import logging

from confroom.domain.errors import AuditWriteFailure
from confroom.domain.models import AuditAction, AuditEntry, FieldChange, RequestContext
from confroom.repos.memory import AuditRepository
from confroom.services.audit import AuditTrailRecorder, diff


class _FailingAuditRepository(AuditRepository):
    def append(self, entry: AuditEntry) -> None:
        raise AuditWriteFailure("audit store unavailable")


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


def test_diff_of_equal_snapshots_is_empty():
    snapshot = {"status": "confirmed", "line_items": [{"rate": "10.00"}], "notes": None}
    assert diff(snapshot, dict(snapshot)) == {}


def test_diff_reports_only_changed_keys():
    before = {"status": "tentative", "event_name": "AGM", "notes": None}
    after = {"status": "confirmed", "event_name": "AGM", "notes": "VIP"}
    changes = diff(before, after)
    assert changes == {
        "status": FieldChange(before="tentative", after="confirmed"),
        "notes": FieldChange(before=None, after="VIP"),
    }


def test_diff_ignores_keys_missing_from_after():
    assert diff({"status": "tentative", "gone": 1}, {"status": "tentative"}) == {}


def test_diff_treats_new_keys_as_changes():
    changes = diff({}, {"status": "tentative"})
    assert changes["status"] == FieldChange(before=None, after="tentative")


def test_diff_keeps_new_keys_whose_value_is_none():
    changes = diff({"status": "tentative"}, {"status": "tentative", "cancelled_at": None})
    assert changes == {"cancelled_at": FieldChange(before=None, after=None)}


def test_diff_compares_nested_values_by_content():
    before = {"line_items": [{"description": "Hall", "rate": "10"}]}
    same = {"line_items": [{"rate": "10", "description": "Hall"}]}
    changed = {"line_items": [{"description": "Hall", "rate": "12"}]}
    assert diff(before, same) == {}
    assert set(diff(before, changed)) == {"line_items"}


def test_diff_without_before_lists_every_field():
    changes = diff(None, {"a": 1, "b": 2})
    assert set(changes) == {"a", "b"}


# ---------------------------------------------------------------------------
# AuditTrailRecorder
# ---------------------------------------------------------------------------


def test_record_appends_entry_with_context():
    repo = AuditRepository()
    recorder = AuditTrailRecorder(repo)
    context = RequestContext(
        actor="user-7", ip_address="10.0.0.5", user_agent="pytest", method="PUT", path="/bookings/b1"
    )

    entry = recorder.record(
        AuditAction.UPDATE,
        "booking",
        "b1",
        before={"status": "tentative", "event_name": "AGM"},
        after={"status": "confirmed", "event_name": "AGM"},
        context=context,
        resource_name="BK-2025-00001",
    )

    assert entry is not None
    assert repo.list_entries() == [entry]
    assert entry.actor == "user-7"
    assert entry.ip_address == "10.0.0.5"
    assert entry.request_method == "PUT"
    assert entry.request_path == "/bookings/b1"
    assert entry.resource_name == "BK-2025-00001"
    assert set(entry.changes) == {"status"}


def test_record_defaults_to_system_actor():
    repo = AuditRepository()
    entry = AuditTrailRecorder(repo).record(AuditAction.DELETE, "booking", "b1", before={"a": 1})
    assert entry.actor == "system"
    assert entry.changes == {}


def test_failed_write_is_logged_and_swallowed(caplog):
    recorder = AuditTrailRecorder(_FailingAuditRepository())

    with caplog.at_level(logging.ERROR, logger="confroom.services.audit"):
        entry = recorder.record(AuditAction.CREATE, "booking", "b1", after={"a": 1})

    assert entry is None
    assert "Failed to write audit entry" in caplog.text


def test_entries_listed_newest_first_and_filtered():
    repo = AuditRepository()
    recorder = AuditTrailRecorder(repo)
    first = recorder.record(AuditAction.CREATE, "booking", "b1", after={"a": 1})
    second = recorder.record(AuditAction.UPDATE, "booking", "b1", before={"a": 1}, after={"a": 2})
    recorder.record(AuditAction.CREATE, "room", "r1", after={"a": 1})

    assert repo.list_entries(resource_type="booking") == [second, first]
    assert repo.list_entries(action=AuditAction.CREATE, resource_id="b1") == [first]
    assert len(repo.list_entries(limit=1)) == 1
