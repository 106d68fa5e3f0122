"""
hotelpms/engine/event_bus.py

In-process event bus - publish/subscribe of domain events.
Handlers run synchronously; a failing handler never affects the others
or the publisher.
"""
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
import logging
import threading
import uuid

from hotelpms.domain.room import utcnow

logger = logging.getLogger(__name__)


def _generate_event_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


@dataclass
class Event:
    """
    Domain event

    Attributes:
        event_type: event type such as "room.cleaning_changed"
        data: event payload
        source: publishing service
        timestamp: publish time (UTC)
        event_id: unique id
    """

    event_type: str
    data: Dict[str, Any]
    source: str = ""
    timestamp: datetime = field(default_factory=utcnow)
    event_id: str = field(default_factory=_generate_event_id)


EventPublisher = Callable[[Event], None]


def discard_event(event: Event) -> None:
    """Publisher used when no bus is wired in"""


class EventBus:
    """
    Thread-safe event bus.

    One instance is created by the composition root and handed to the
    services as their ``event_publisher``.

    Usage:
        bus.subscribe("room.cleaning_changed", handler)
        bus.publish(Event(...))
        bus.unsubscribe("room.cleaning_changed", handler)
    """

    def __init__(self, history_size: int = 100):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._event_history: deque = deque(maxlen=history_size)
        self._subscriber_lock = threading.Lock()

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """
        Subscribe a handler

        Args:
            event_type: event type, "*" receives every event
            handler: callable receiving the Event
        """
        with self._subscriber_lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.debug(f"Handler {_name(handler)} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        with self._subscriber_lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.debug(f"Handler {_name(handler)} unsubscribed from {event_type}")

    def publish(self, event: Event) -> None:
        """
        Publish an event to its subscribers (and to "*" subscribers)

        Handler exceptions are logged and isolated.
        """
        self._event_history.append(event)

        with self._subscriber_lock:
            handlers = self._subscribers.get(event.event_type, []) + self._subscribers.get("*", [])

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler {_name(handler)} error for {event.event_type}: {e}",
                    exc_info=True
                )

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """
        Recent events, newest first

        Args:
            event_type: optional type filter
            limit: maximum number returned
        """
        history = list(self._event_history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return list(reversed(history))[:limit]

    def clear(self) -> None:
        with self._subscriber_lock:
            self._subscribers.clear()
        self._event_history.clear()


def _name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


__all__ = ["Event", "EventBus", "EventPublisher", "discard_event"]
