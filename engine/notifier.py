"""In-process change notification between views.

Events are signals only: listeners re-fetch authoritative state.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List

from config.defaults import ALL_TOPICS, CHANGE_ACTIONS, DATA_TYPES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataChangeEvent:
    data_type: str
    action: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[DataChangeEvent], None]


class ChangeNotifier:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for a data type (or ``"*"``); returns an unsubscribe callable."""
        if topic != ALL_TOPICS and topic not in DATA_TYPES:
            raise ValueError(f"Unknown data type: {topic}")
        self._subscribers.setdefault(topic, []).append(handler)

        def unsubscribe():
            handlers = self._subscribers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: DataChangeEvent) -> None:
        handlers = list(self._subscribers.get(event.data_type, []))
        handlers += self._subscribers.get(ALL_TOPICS, [])
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Change handler failed for %s/%s", event.data_type, event.action)

    def trigger_data_change(self, data_type: str, action: str) -> DataChangeEvent:
        if data_type not in DATA_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        if action not in CHANGE_ACTIONS:
            raise ValueError(f"Unknown change action: {action}")
        event = DataChangeEvent(data_type, action)
        logger.debug("Data change: %s/%s", data_type, action)
        self.publish(event)
        return event
