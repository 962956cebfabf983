"""Tests for audit log filtering, pagination and rollback eligibility."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

import pytest

from models.audit import AuditAction, AuditLogEntry
from data.memory_api import InMemoryLeasingApi
from engine.audit_trail import (
    AuditFilter,
    AuditLogView,
    AuditTrail,
    available_actions,
    filter_entries,
    is_rollback_eligible,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_entry(entry_id, age, action=AuditAction.UPDATE, entity_type="LEASE",
               details="", user="admin", rollback_data=None):
    return AuditLogEntry(
        entry_id=str(entry_id),
        timestamp=NOW - age,
        action=action,
        entity_type=entity_type,
        details=details,
        user=user,
        rollback_data=rollback_data,
    )


def make_entries():
    """10 entries: 3 inside the last 24 hours, 2 of them AUTH logins."""
    return [
        make_entry(1, timedelta(minutes=30), details="Kira güncellendi"),
        make_entry(2, timedelta(hours=5), AuditAction.DELETE, "UNIT",
                   details="Tahsis silindi", rollback_data={"unit": {"id": "u1"}}),
        make_entry(3, timedelta(hours=23), AuditAction.LOGIN, "AUTH", details="Giriş yapıldı"),
        make_entry(4, timedelta(days=2), AuditAction.CREATE, "COMPANY", details="Yeni firma kaydı", user="ayse"),
        make_entry(5, timedelta(days=2, hours=1), AuditAction.LOGIN, "AUTH", details="Giriş yapıldı"),
        make_entry(6, timedelta(days=4), AuditAction.DELETE, "CAMPUS",
                   details="Kampüs silindi", rollback_data={"campus": {"id": "c1"}}),
        make_entry(7, timedelta(days=6), AuditAction.UPDATE, "BLOCK", details="Blok güncellendi"),
        make_entry(8, timedelta(days=8), AuditAction.DELETE, "UNIT",
                   details="Tahsis silindi", rollback_data={"unit": {"id": "u2"}}),
        make_entry(9, timedelta(days=10), AuditAction.DELETE, "UNIT", details="Eski silme"),
        make_entry(10, timedelta(days=30), AuditAction.CREATE, "CAMPUS", details="Yeni kampüs eklendi"),
    ]


def ids(entries):
    return [e.entry_id for e in entries]


class TestFilterEntries:
    def test_auth_hidden_by_default(self):
        result = filter_entries(make_entries(), AuditFilter(), NOW)
        assert "3" not in ids(result)
        assert "5" not in ids(result)
        assert len(result) == 8

    def test_auth_shown_when_requested(self):
        result = filter_entries(make_entries(), AuditFilter(include_auth=True), NOW)
        assert len(result) == 10

    def test_last_24_hours(self):
        result = filter_entries(make_entries(), AuditFilter(time_window="24H", include_auth=True), NOW)
        assert ids(result) == ["1", "2", "3"]

    def test_window_boundary_is_inclusive(self):
        entry = make_entry(1, timedelta(hours=1))
        assert filter_entries([entry], AuditFilter(time_window="1H"), NOW) == [entry]

    def test_action_exact_match(self):
        result = filter_entries(make_entries(), AuditFilter(action="DELETE"), NOW)
        assert ids(result) == ["2", "6", "8", "9"]

    def test_text_is_case_insensitive_across_fields(self):
        entries = make_entries()
        assert ids(filter_entries(entries, AuditFilter(text="KAMPÜS"), NOW)) == ["6", "10"]
        assert ids(filter_entries(entries, AuditFilter(text="block"), NOW)) == ["7"]
        assert ids(filter_entries(entries, AuditFilter(text="AYSE"), NOW)) == ["4"]

    def test_filters_are_combined(self):
        audit_filter = AuditFilter(time_window="7D", action="DELETE", text="silindi")
        assert ids(filter_entries(make_entries(), audit_filter, NOW)) == ["2", "6"]

    def test_unknown_window(self):
        with pytest.raises(ValueError):
            filter_entries(make_entries(), AuditFilter(time_window="2W"), NOW)


class TestRollbackEligibility:
    def test_recent_delete_with_data(self):
        entries = {e.entry_id: e for e in make_entries()}
        assert is_rollback_eligible(entries["2"], NOW)
        assert available_actions(entries["2"], NOW) == ["view", "rollback"]

    def test_older_than_seven_days(self):
        entries = {e.entry_id: e for e in make_entries()}
        assert not is_rollback_eligible(entries["8"], NOW)
        assert available_actions(entries["8"], NOW) == ["view"]

    def test_exactly_seven_days_is_eligible(self):
        entry = make_entry(1, timedelta(days=7), AuditAction.DELETE, "UNIT", rollback_data={"unit": {}})
        assert is_rollback_eligible(entry, NOW)

    def test_delete_without_data(self):
        entries = {e.entry_id: e for e in make_entries()}
        assert not is_rollback_eligible(entries["9"], NOW)

    def test_non_delete(self):
        entry = make_entry(1, timedelta(hours=1), AuditAction.UPDATE, rollback_data={"x": 1})
        assert not is_rollback_eligible(entry, NOW)


class TestAuditLogView:
    def _many(self, count):
        return [make_entry(i, timedelta(minutes=10 * i)) for i in range(1, count + 1)]

    def test_pagination(self):
        view = AuditLogView(self._many(45), clock=lambda: NOW)
        assert view.total_pages == 3
        assert len(view.page_entries) == 20
        view.go_to(3)
        assert len(view.page_entries) == 5
        view.next_page()
        assert view.page == 3
        view.previous_page()
        assert view.page == 2

    def test_empty_view_has_one_page(self):
        view = AuditLogView([], clock=lambda: NOW)
        assert view.total_pages == 1
        assert view.page_entries == []

    def test_page_resets_when_count_changes(self):
        view = AuditLogView(self._many(45), clock=lambda: NOW)
        view.go_to(3)
        view.set_filter(time_window="1H")
        assert view.page == 1
        assert len(view.filtered) == 6

    def test_page_kept_when_count_unchanged(self):
        view = AuditLogView(self._many(45), clock=lambda: NOW)
        view.go_to(2)
        view.set_filter(text="")
        assert view.page == 2

    def test_filter_narrows_and_resets(self):
        entries = self._many(45)
        view = AuditLogView(entries, clock=lambda: NOW)
        view.go_to(3)
        view.set_filter(time_window="12H", text="nothing-matches")
        assert view.page == 1
        assert view.filtered == []

    def test_reset_filters(self):
        view = AuditLogView(make_entries(), clock=lambda: NOW)
        view.set_filter(action="DELETE", include_auth=True)
        assert len(view.filtered) == 4
        view.reset_filters()
        assert view.filter == AuditFilter()
        assert len(view.filtered) == 8


class TestAuditTrail:
    def test_fetch_from_collaborator(self):
        api = InMemoryLeasingApi(clock=lambda: NOW)
        for entry in make_entries():
            api.append_log(entry)
        trail = AuditTrail(api, clock=lambda: NOW)

        view = trail.view()
        assert len(view.filtered) == 8
        assert ids(trail.eligible_entries(trail.fetch())) == ["6", "2"]

    def test_to_frame(self):
        trail = AuditTrail(InMemoryLeasingApi(), clock=lambda: NOW)
        df = trail.to_frame(make_entries())
        assert list(df.columns) == [
            "ID", "Timestamp", "User", "Role", "Action", "Entity", "Details", "Impact", "Rollback Eligible",
        ]
        assert len(df) == 10
        assert df["Rollback Eligible"].sum() == 2
        assert df.loc[df["ID"] == "4", "User"].iloc[0] == "ayse"
