"""Event bus that carries engine output to display and notification layers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

LOGGER = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events the engine publishes."""
    ATTRIBUTES_DECAYED = "attributes_decayed"
    ALERT_RAISED = "alert_raised"
    PROACTIVE_REQUEST = "proactive_request"
    INTERACTION_RECORDED = "interaction_recorded"
    WORK_STARTED = "work_started"
    WORK_COMPLETED = "work_completed"
    WORK_CANCELLED = "work_cancelled"
    WORK_FAILED = "work_failed"
    PERSISTENCE_FAILED = "persistence_failed"


class EventBus:
    """Simple pub/sub bus; a failing handler never breaks the publisher."""

    def __init__(self) -> None:
        self._subscribers: Dict[EventType, List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: EventType, handler: Callable[[Any], None]) -> None:
        """Subscribe to an event type.

        Args:
            event_type: The type of event to subscribe to
            handler: Callback that receives the event payload
        """
        self._subscribers.setdefault(event_type, []).append(handler)
        LOGGER.debug("Subscribed handler to event type: %s", event_type.value)

    def subscribe_all(self, handler: Callable[[EventType, Any], None]) -> None:
        """Subscribe one handler to every event type; it also receives the type."""
        for event_type in EventType:
            self.subscribe(event_type, lambda data, _type=event_type: handler(_type, data))

    def unsubscribe(self, event_type: EventType, handler: Callable[[Any], None]) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            LOGGER.debug("Unsubscribed handler from event type: %s", event_type.value)

    def publish(self, event_type: EventType, data: Any = None) -> int:
        """Publish an event to all subscribers.

        Returns:
            Number of handlers that ran without raising.
        """
        delivered = 0
        for handler in list(self._subscribers.get(event_type, [])):
            try:
                handler(data)
            except Exception as exc:
                LOGGER.error("Event handler failed for %s: %s", event_type.value, exc)
            else:
                delivered += 1
        return delivered

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers.get(event_type, []))

    def clear(self) -> None:
        self._subscribers.clear()
        LOGGER.debug("Event bus cleared")
