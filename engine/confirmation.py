"""Typed-phrase confirmation for destructive operations."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict

from engine.errors import ConfirmationMismatch, ConfirmationRequired
from config.defaults import CONFIRMATION_PHRASE

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationToken:
    token_id: str
    action: str            # e.g. "remove_unit", "delete_campus"
    target_id: str
    summary: str = ""
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    consumed: bool = False


class ConfirmationGate:
    """Issues tokens and only consumes them when the exact phrase is typed.

    The phrase is compared as-is: no trimming, no case folding.
    """

    def __init__(self, phrase: str = CONFIRMATION_PHRASE):
        self.phrase = phrase
        self._pending: Dict[str, ConfirmationToken] = {}

    def issue(self, action: str, target_id: str, summary: str = "") -> ConfirmationToken:
        token = ConfirmationToken(
            token_id=uuid.uuid4().hex,
            action=action,
            target_id=target_id,
            summary=summary,
        )
        stale = [
            t.token_id for t in self._pending.values()
            if t.action == action and t.target_id == target_id
        ]
        for token_id in stale:
            del self._pending[token_id]
        self._pending[token.token_id] = token
        logger.debug("Confirmation requested for %s %s", action, target_id)
        return token

    def is_satisfied(self, user_input: str) -> bool:
        return user_input == self.phrase

    def confirm(self, token: ConfirmationToken, user_input: str) -> ConfirmationToken:
        pending = self._pending.get(token.token_id)
        if pending is None or pending.consumed:
            raise ConfirmationRequired("No pending confirmation for this operation.")
        if not self.is_satisfied(user_input):
            raise ConfirmationMismatch(f"Onay için '{self.phrase}' yazmanız gerekiyor.")
        pending.consumed = True
        del self._pending[token.token_id]
        return pending

    def cancel(self, token: ConfirmationToken) -> None:
        self._pending.pop(token.token_id, None)

    def is_pending(self, token: ConfirmationToken) -> bool:
        return token.token_id in self._pending
