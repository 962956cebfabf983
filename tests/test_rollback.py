"""Tests for the rollback preview / confirm protocol."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from models.audit import AuditAction, AuditLogEntry, PreviewType, RollbackPreview
from models.building import Block, Campus, FloorCapacity
from models.company import Company, ContractTemplate
from models.allocation import AllocationRequest
from data.http_api import RequestsLeasingApi
from data.memory_api import InMemoryLeasingApi
from engine.errors import (
    ConflictError,
    PreviewUnavailable,
    RollbackCommitFailed,
    RollbackIneligible,
    RollbackNotAuthorized,
)
from engine.notifier import ChangeNotifier
from engine.rollback import RollbackCoordinator, RollbackState

START = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now += delta


def make_world():
    """Collaborator with one removed unit; returns (api, clock, delete_entry, unit_id, block)."""
    clock = FakeClock()
    api = InMemoryLeasingApi(clock=clock)
    campus = api.add_campus(Campus("", "Teknopark"))
    block = api.add_block(Block("", campus.campus_id, "A Blok", floor_capacities=[FloorCapacity("1", 500)]))
    company = api.register_company(Company("", "Acme", contract_template=ContractTemplate(100.0)))
    unit = api.assign_company_to_floor(AllocationRequest(company.company_id, block.block_id, "1", 300))
    api.remove_allocation(unit.unit_id)
    entry = api.get_logs()[0]
    return api, clock, entry, unit.unit_id, block


def make_entry(entry_id="42", age=timedelta(hours=1), rollback_data=None):
    return AuditLogEntry(
        entry_id=entry_id,
        timestamp=START - age,
        action=AuditAction.DELETE,
        entity_type="UNIT",
        details="Tahsis silindi",
        rollback_data=rollback_data if rollback_data is not None else {"unit": {"id": "u1"}},
    )


def make_coordinator(api, clock=None):
    notifier = ChangeNotifier()
    events = []
    notifier.subscribe("*", events.append)
    refreshes = []
    coordinator = RollbackCoordinator(
        api, notifier=notifier, on_refresh=lambda: refreshes.append(True), clock=clock or FakeClock(),
    )
    return coordinator, events, refreshes


class TestAuthorization:
    def test_confirm_without_preview(self):
        api = MagicMock()
        coordinator, _, _ = make_coordinator(api)
        with pytest.raises(RollbackNotAuthorized):
            coordinator.confirm("42")
        api.rollback_transaction.assert_not_called()

    def test_preview_of_one_entry_does_not_authorize_another(self):
        api = MagicMock()
        api.get_rollback_preview.return_value = RollbackPreview(PreviewType.SAFE, ("ok",), "SAFE")
        coordinator, _, _ = make_coordinator(api)

        coordinator.preview(make_entry("A"))
        with pytest.raises(RollbackNotAuthorized):
            coordinator.confirm("B")
        api.rollback_transaction.assert_not_called()
        assert coordinator.state == RollbackState.AWAITING_CONFIRMATION

    def test_second_preview_while_pending(self):
        api = MagicMock()
        api.get_rollback_preview.return_value = RollbackPreview(PreviewType.SAFE)
        coordinator, _, _ = make_coordinator(api)

        coordinator.preview(make_entry("A"))
        with pytest.raises(RollbackNotAuthorized):
            coordinator.preview(make_entry("B"))

    def test_old_entry_is_rejected_before_preview(self):
        api = MagicMock()
        coordinator, _, _ = make_coordinator(api)
        with pytest.raises(RollbackIneligible):
            coordinator.preview(make_entry(age=timedelta(days=8)))
        api.get_rollback_preview.assert_not_called()
        assert coordinator.state == RollbackState.IDLE

    def test_entry_without_rollback_data(self):
        api = MagicMock()
        coordinator, _, _ = make_coordinator(api)
        with pytest.raises(RollbackIneligible):
            coordinator.preview(make_entry(rollback_data={}))


class TestHappyPath:
    def test_unit_restored(self):
        api, clock, entry, unit_id, _ = make_world()
        coordinator, events, refreshes = make_coordinator(api, clock)

        preview = coordinator.preview(entry)
        assert preview.is_safe
        assert coordinator.pending.entry is entry

        restored = coordinator.confirm(entry.entry_id)

        assert restored is entry
        assert unit_id in api.units
        assert coordinator.state == RollbackState.IDLE
        assert coordinator.pending is None
        assert coordinator.transitions == [
            RollbackState.PREVIEWING,
            RollbackState.AWAITING_CONFIRMATION,
            RollbackState.COMMITTING,
            RollbackState.DONE,
            RollbackState.IDLE,
        ]
        assert [(e.data_type, e.action) for e in events] == [("unit", "create")]
        assert refreshes == [True]

    def test_restore_entry_appended(self):
        api, clock, entry, _, _ = make_world()
        coordinator, _, _ = make_coordinator(api, clock)

        coordinator.preview(entry)
        coordinator.confirm(entry.entry_id)

        latest = api.get_logs()[0]
        assert latest.action == AuditAction.RESTORE
        assert latest.details == f"Rollback performed for audit #{entry.entry_id}"

    def test_lease_reattached(self):
        api, clock, entry, unit_id, _ = make_world()
        coordinator, _, _ = make_coordinator(api, clock)

        coordinator.preview(entry)
        coordinator.confirm(entry.entry_id)

        lease = next(iter(api.leases.values()))
        assert lease.unit_id == unit_id
        assert lease.monthly_rent == pytest.approx(30000)

    def test_campus_rollback(self):
        clock = FakeClock()
        api = InMemoryLeasingApi(clock=clock)
        campus = api.add_campus(Campus("", "Teknopark"))
        api.add_block(Block("", campus.campus_id, "A Blok", floor_capacities=[FloorCapacity("1", 500)]))
        api.delete_campus(campus.campus_id)
        entry = api.get_logs()[0]
        coordinator, events, _ = make_coordinator(api, clock)

        coordinator.preview(entry)
        coordinator.confirm(entry.entry_id)

        assert campus.campus_id in api.campuses
        assert len(api.blocks) == 1
        assert [(e.data_type, e.action) for e in events] == [("campus", "create")]


class TestFailures:
    def test_preview_failure_returns_to_idle(self):
        api = MagicMock()
        api.get_rollback_preview.side_effect = ConflictError("Audit log not found")
        coordinator, _, _ = make_coordinator(api)

        with pytest.raises(PreviewUnavailable):
            coordinator.preview(make_entry())
        assert coordinator.state == RollbackState.IDLE
        assert coordinator.pending is None

    def test_missing_preview(self):
        api = MagicMock()
        api.get_rollback_preview.return_value = None
        coordinator, _, _ = make_coordinator(api)

        with pytest.raises(PreviewUnavailable):
            coordinator.preview(make_entry())
        assert coordinator.state == RollbackState.IDLE

    def test_commit_failure(self):
        api, clock, entry, _, block = make_world()
        coordinator, events, refreshes = make_coordinator(api, clock)
        coordinator.preview(entry)

        # someone takes the space back before the commit
        other = api.register_company(Company("", "Other"))
        api.assign_company_to_floor(AllocationRequest(other.company_id, block.block_id, "1", 400))

        with pytest.raises(RollbackCommitFailed):
            coordinator.confirm(entry.entry_id)
        assert coordinator.transitions[-2:] == [RollbackState.FAILED, RollbackState.IDLE]
        assert events == []
        assert refreshes == []

    def test_already_restored(self):
        api, clock, entry, _, _ = make_world()
        api.rollback_transaction(entry.entry_id)
        coordinator, _, _ = make_coordinator(api, clock)

        coordinator.preview(entry)
        with pytest.raises(RollbackCommitFailed):
            coordinator.confirm(entry.entry_id)

    def test_entry_expires_while_awaiting(self):
        api, clock, entry, unit_id, _ = make_world()
        coordinator, _, _ = make_coordinator(api, clock)
        coordinator.preview(entry)

        clock.advance(timedelta(days=7, minutes=1))
        with pytest.raises(RollbackIneligible):
            coordinator.confirm(entry.entry_id)
        assert coordinator.state == RollbackState.IDLE
        assert unit_id not in api.units


    def test_unexpected_preview_error_returns_to_idle(self):
        api = MagicMock()
        api.get_rollback_preview.side_effect = [KeyError("type"), RollbackPreview(PreviewType.SAFE)]
        coordinator, _, _ = make_coordinator(api)

        with pytest.raises(PreviewUnavailable):
            coordinator.preview(make_entry("A"))
        assert coordinator.state == RollbackState.IDLE
        assert coordinator.preview(make_entry("A")).is_safe

    def test_unexpected_commit_error_allows_retry(self):
        api = MagicMock()
        api.get_rollback_preview.return_value = RollbackPreview(PreviewType.SAFE)
        api.rollback_transaction.side_effect = [TypeError("bad payload"), None]
        coordinator, events, _ = make_coordinator(api)

        coordinator.preview(make_entry("A"))
        with pytest.raises(RollbackCommitFailed) as exc:
            coordinator.confirm("A")
        assert "bad payload" in exc.value.message
        assert coordinator.state == RollbackState.IDLE
        assert coordinator.transitions[-2:] == [RollbackState.FAILED, RollbackState.IDLE]

        coordinator.preview(make_entry("A"))
        assert coordinator.confirm("A") is not None
        assert len(events) == 1

    def test_non_json_commit_response_over_http(self):
        preview = requests.Response()
        preview.status_code = 200
        preview._content = json.dumps({"type": "SAFE", "messages": []}).encode()
        commit = requests.Response()
        commit.status_code = 200
        commit._content = b"<html>"
        session = MagicMock()
        session.headers = {}
        session.request.side_effect = [preview, commit]
        coordinator, _, _ = make_coordinator(RequestsLeasingApi("http://backend/api", session=session))

        coordinator.preview(make_entry("A"))
        with pytest.raises(RollbackCommitFailed):
            coordinator.confirm("A")
        assert coordinator.state == RollbackState.IDLE
        assert coordinator.pending is None


class TestMemoryPreview:
    def test_overflow_is_a_warning(self):
        api, clock, entry, _, block = make_world()
        other = api.register_company(Company("", "Other"))
        api.assign_company_to_floor(AllocationRequest(other.company_id, block.block_id, "1", 400))

        preview = api.get_rollback_preview(entry.entry_id)
        assert preview.preview_type == PreviewType.WARN
        assert preview.raw_type == "CONFLICT"

    def test_old_entry_is_unsafe(self):
        api, clock, entry, _, _ = make_world()
        clock.advance(timedelta(days=7, hours=1))

        preview = api.get_rollback_preview(entry.entry_id)
        assert preview.preview_type == PreviewType.WARN
        assert preview.raw_type == "UNSAFE"


class TestCancelAndDispose:
    def test_cancel(self):
        api = MagicMock()
        api.get_rollback_preview.return_value = RollbackPreview(PreviewType.SAFE)
        coordinator, _, _ = make_coordinator(api)

        coordinator.preview(make_entry("A"))
        coordinator.cancel()

        assert coordinator.state == RollbackState.IDLE
        assert coordinator.pending is None
        with pytest.raises(RollbackNotAuthorized):
            coordinator.confirm("A")

    def test_cancel_when_idle_is_noop(self):
        coordinator, _, _ = make_coordinator(MagicMock())
        coordinator.cancel()
        assert coordinator.transitions == []

    def test_disposed_coordinator_ignores_calls(self):
        api = MagicMock()
        coordinator, events, refreshes = make_coordinator(api)
        coordinator.dispose()

        assert coordinator.preview(make_entry()) is None
        assert coordinator.confirm("42") is None
        assert coordinator.cancel() is None
        api.get_rollback_preview.assert_not_called()
        api.rollback_transaction.assert_not_called()
        assert events == []

    def test_dispose_during_commit(self):
        api = MagicMock()
        api.get_rollback_preview.return_value = RollbackPreview(PreviewType.SAFE)
        coordinator, events, refreshes = make_coordinator(api)
        api.rollback_transaction.side_effect = lambda entry_id: coordinator.dispose()

        coordinator.preview(make_entry("A"))
        assert coordinator.confirm("A") is None
        assert events == []
        assert refreshes == []
        assert RollbackState.DONE not in coordinator.transitions

    def test_dispose_during_preview(self):
        api = MagicMock()
        coordinator, _, _ = make_coordinator(api)

        def preview(entry_id):
            coordinator.dispose()
            return RollbackPreview(PreviewType.SAFE)

        api.get_rollback_preview.side_effect = preview
        assert coordinator.preview(make_entry("A")) is None
        assert coordinator.pending is None
