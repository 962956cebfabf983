"""Preview / confirm / cancel protocol for reversing an audited DELETE."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from data.api_port import LeasingApi
from models.audit import AuditLogEntry, RollbackPreview
from engine.audit_trail import Clock, is_rollback_eligible, utc_now
from engine.errors import (
    LeasingError, PreviewUnavailable, RollbackCommitFailed,
    RollbackIneligible, RollbackNotAuthorized,
)
from engine.notifier import ChangeNotifier
from config.defaults import ENTITY_DATA_TYPES

logger = logging.getLogger(__name__)


def _error_text(exc: Exception) -> str:
    if isinstance(exc, LeasingError):
        return exc.message
    return str(exc) or type(exc).__name__


class RollbackState(str, Enum):
    IDLE = "IDLE"
    PREVIEWING = "PREVIEWING"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    COMMITTING = "COMMITTING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class PendingRollback:
    entry: AuditLogEntry
    preview: RollbackPreview


class RollbackCoordinator:
    """Drives one rollback at a time.

    A commit is only possible for the entry whose preview is currently held.
    DONE and FAILED are recorded in ``transitions`` and the coordinator goes
    straight back to IDLE. After :meth:`dispose` every call returns ``None``
    without touching the collaborator, the notifier or the refresh callback.
    """

    def __init__(
        self,
        api: LeasingApi,
        notifier: Optional[ChangeNotifier] = None,
        on_refresh: Optional[Callable[[], None]] = None,
        clock: Clock = utc_now,
    ):
        self.api = api
        self.notifier = notifier or ChangeNotifier()
        self.on_refresh = on_refresh
        self.clock = clock
        self.state = RollbackState.IDLE
        self.transitions: List[RollbackState] = []
        self.pending: Optional[PendingRollback] = None
        self.disposed = False

    def _move(self, state: RollbackState):
        self.state = state
        self.transitions.append(state)
        logger.debug("Rollback state -> %s", state.value, extra={"rollback_state": state.value})

    def preview(self, entry: AuditLogEntry) -> Optional[RollbackPreview]:
        if self.disposed:
            return None
        if self.state != RollbackState.IDLE:
            raise RollbackNotAuthorized("Another rollback is already in progress.")
        if not is_rollback_eligible(entry, self.clock()):
            raise RollbackIneligible(f"Audit entry {entry.entry_id} cannot be rolled back.")

        self._move(RollbackState.PREVIEWING)
        try:
            preview = self.api.get_rollback_preview(entry.entry_id)
        except Exception as exc:
            if self.disposed:
                return None
            self._move(RollbackState.IDLE)
            message = _error_text(exc)
            logger.warning("Rollback preview failed: %s", message, extra={"entry_id": entry.entry_id})
            raise PreviewUnavailable(f"Geri alma önizlemesi alınamadı: {message}") from exc

        if self.disposed:
            return None
        if preview is None:
            self._move(RollbackState.IDLE)
            raise PreviewUnavailable("Geri alma önizlemesi alınamadı.")

        self.pending = PendingRollback(entry, preview)
        self._move(RollbackState.AWAITING_CONFIRMATION)
        return preview

    def confirm(self, entry_id: str) -> Optional[AuditLogEntry]:
        """Commit the previewed rollback. ``entry_id`` must be the previewed entry."""
        if self.disposed:
            return None
        if (
            self.state != RollbackState.AWAITING_CONFIRMATION
            or self.pending is None
            or self.pending.entry.entry_id != entry_id
        ):
            raise RollbackNotAuthorized(f"No confirmed preview for audit entry {entry_id}.")

        entry = self.pending.entry
        if not is_rollback_eligible(entry, self.clock()):
            self.pending = None
            self._move(RollbackState.IDLE)
            raise RollbackIneligible(f"Audit entry {entry_id} is no longer eligible for rollback.")

        self._move(RollbackState.COMMITTING)
        try:
            self.api.rollback_transaction(entry_id)
        except Exception as exc:
            if self.disposed:
                return None
            self.pending = None
            self._move(RollbackState.FAILED)
            self._move(RollbackState.IDLE)
            message = _error_text(exc)
            logger.error(
                "Rollback failed: %s", message,
                extra={"entry_id": entry_id, "error_code": getattr(exc, "code", type(exc).__name__)},
            )
            raise RollbackCommitFailed(message) from exc

        if self.disposed:
            return None
        self.pending = None
        self._move(RollbackState.DONE)
        self._move(RollbackState.IDLE)
        logger.info("Rolled back audit entry %s", entry_id, extra={"entry_id": entry_id})

        data_type = ENTITY_DATA_TYPES.get(entry.entity_type)
        if data_type:
            self.notifier.trigger_data_change(data_type, "create")
        if self.on_refresh is not None:
            self.on_refresh()
        return entry

    def cancel(self) -> None:
        if self.disposed:
            return None
        if self.state in (RollbackState.PREVIEWING, RollbackState.AWAITING_CONFIRMATION):
            self.pending = None
            self._move(RollbackState.IDLE)
        return None

    def dispose(self) -> None:
        self.disposed = True
        self.pending = None
