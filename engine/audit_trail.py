"""Read side of the audit log: fetch, filter, paginate, rollback eligibility."""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

import pandas as pd

from data.api_port import LeasingApi
from models.audit import AuditAction, AuditLogEntry
from config.defaults import (
    ALL, AUDIT_PAGE_SIZE, AUTH_ENTITY_TYPE, ROLLBACK_WINDOW, TIME_WINDOWS,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditFilter:
    time_window: str = ALL          # key of TIME_WINDOWS
    action: str = ALL               # AuditAction value or ALL
    text: str = ""
    include_auth: bool = False


def _matches_time(entry: AuditLogEntry, window: str, now: datetime) -> bool:
    if window not in TIME_WINDOWS:
        raise ValueError(f"Unknown time window: {window}")
    span = TIME_WINDOWS[window]
    if span is None:
        return True
    return now - entry.timestamp <= span


def _matches_text(entry: AuditLogEntry, text: str) -> bool:
    if not text:
        return True
    needle = text.lower()
    return (
        needle in (entry.details or "").lower()
        or needle in (entry.entity_type or "").lower()
        or needle in (entry.user or "").lower()
    )


def filter_entries(
    entries: List[AuditLogEntry],
    audit_filter: AuditFilter,
    now: Optional[datetime] = None,
) -> List[AuditLogEntry]:
    """All filters ANDed. Input order is preserved."""
    now = now or utc_now()
    result = []
    for entry in entries:
        if not audit_filter.include_auth and entry.entity_type == AUTH_ENTITY_TYPE:
            continue
        if audit_filter.action != ALL and entry.action.value != audit_filter.action:
            continue
        if not _matches_time(entry, audit_filter.time_window, now):
            continue
        if not _matches_text(entry, audit_filter.text):
            continue
        result.append(entry)
    return result


def is_rollback_eligible(entry: AuditLogEntry, now: Optional[datetime] = None) -> bool:
    now = now or utc_now()
    return (
        entry.action == AuditAction.DELETE
        and bool(entry.rollback_data)
        and now - entry.timestamp <= ROLLBACK_WINDOW
    )


def available_actions(entry: AuditLogEntry, now: Optional[datetime] = None) -> List[str]:
    actions = ["view"]
    if is_rollback_eligible(entry, now):
        actions.append("rollback")
    return actions


class AuditLogView:
    """Filtered, paginated view over a list of audit entries.

    The page index goes back to 1 whenever the number of filtered entries
    changes.
    """

    def __init__(
        self,
        entries: Optional[List[AuditLogEntry]] = None,
        page_size: int = AUDIT_PAGE_SIZE,
        clock: Clock = utc_now,
    ):
        self.page_size = page_size
        self.clock = clock
        self.filter = AuditFilter()
        self.page = 1
        self._entries: List[AuditLogEntry] = list(entries or [])
        self._filtered: List[AuditLogEntry] = []
        self._apply()

    def _apply(self):
        previous = len(self._filtered)
        self._filtered = filter_entries(self._entries, self.filter, self.clock())
        if len(self._filtered) != previous:
            self.page = 1

    def set_entries(self, entries: List[AuditLogEntry]) -> None:
        self._entries = list(entries)
        self._apply()

    def set_filter(self, **changes) -> None:
        self.filter = replace(self.filter, **changes)
        self._apply()

    def reset_filters(self) -> None:
        self.filter = AuditFilter()
        self._apply()

    @property
    def filtered(self) -> List[AuditLogEntry]:
        return list(self._filtered)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self._filtered) / self.page_size))

    @property
    def page_entries(self) -> List[AuditLogEntry]:
        start = (self.page - 1) * self.page_size
        return self._filtered[start:start + self.page_size]

    def go_to(self, page: int) -> None:
        self.page = min(max(page, 1), self.total_pages)

    def next_page(self) -> None:
        self.go_to(self.page + 1)

    def previous_page(self) -> None:
        self.go_to(self.page - 1)


class AuditTrail:
    def __init__(self, api: LeasingApi, clock: Clock = utc_now):
        self.api = api
        self.clock = clock

    def fetch(self) -> List[AuditLogEntry]:
        entries = self.api.get_logs()
        logger.debug("Fetched %d audit entries", len(entries))
        return entries

    def view(self) -> AuditLogView:
        return AuditLogView(self.fetch(), clock=self.clock)

    def eligible_entries(self, entries: List[AuditLogEntry]) -> List[AuditLogEntry]:
        now = self.clock()
        return [e for e in entries if is_rollback_eligible(e, now)]

    def to_frame(self, entries: List[AuditLogEntry]) -> pd.DataFrame:
        """Tabular export of audit entries (one row per entry, input order)."""
        now = self.clock()
        rows = [
            {
                "ID": e.entry_id,
                "Timestamp": e.timestamp,
                "User": e.user,
                "Role": e.user_role,
                "Action": e.action.value,
                "Entity": e.entity_type,
                "Details": e.details,
                "Impact": e.impact or "",
                "Rollback Eligible": is_rollback_eligible(e, now),
            }
            for e in entries
        ]
        columns = ["ID", "Timestamp", "User", "Role", "Action", "Entity",
                   "Details", "Impact", "Rollback Eligible"]
        return pd.DataFrame(rows, columns=columns)
