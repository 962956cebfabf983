from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    RESTORE = "RESTORE"     # written by the collaborator when a rollback is applied
    OTHER = "OTHER"         # any label this client does not know yet


@dataclass(frozen=True)
class AuditLogEntry:
    """One immutable audit record. Never edited once written."""
    entry_id: str
    timestamp: datetime
    action: AuditAction
    entity_type: str         # "LEASE", "UNIT", "BLOCK", "CAMPUS", "COMPANY", "AUTH"
    details: str
    user: str = ""
    user_role: str = ""
    trace_id: str = ""
    impact: Optional[str] = None
    rollback_data: Optional[dict] = field(default=None, hash=False, compare=False)


class PreviewType(str, Enum):
    SAFE = "SAFE"
    WARN = "WARN"


@dataclass(frozen=True)
class RollbackPreview:
    preview_type: PreviewType
    messages: Tuple[str, ...] = ()
    raw_type: str = ""       # classification label exactly as the collaborator sent it

    @property
    def is_safe(self) -> bool:
        return self.preview_type == PreviewType.SAFE
