"""
In-process event bus for scraper observability.

Handlers run synchronously in emit order. A failing handler is logged and
skipped; it never interrupts the pipeline.
"""

import enum
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
import logging

logger = logging.getLogger(__name__)


class EventType(str, enum.Enum):
    RETRY = "retry"
    FETCH_SUCCESS = "fetch_success"
    BATCH_PROGRESS = "batch_progress"
    COLLECTION_ERROR = "collection_error"
    COLLECTION_COMPLETED = "collection_completed"
    RUN_COMPLETED = "run_completed"


@dataclass
class Event:
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Publish/subscribe for pipeline events.

    Example:
        bus = EventBus()
        bus.subscribe(EventType.RETRY, lambda e: print(e.data["attempt"]))
        bus.subscribe_all(record_event)
    """

    def __init__(self, keep_history: bool = False):
        self._handlers: Dict[EventType, List[EventHandler]] = defaultdict(list)
        self._global_handlers: List[EventHandler] = []
        self.keep_history = keep_history
        self.history: List[Event] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers.append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def emit(self, event_type: EventType, **data: Any) -> Event:
        event = Event(type=event_type, data=data)
        logger.debug(f"Event {event_type.value}: {data}")
        if self.keep_history:
            self.history.append(event)

        for handler in [*self._handlers[event_type], *self._global_handlers]:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event_type.value}")
        return event

    def events_of(self, event_type: EventType) -> List[Event]:
        return [e for e in self.history if e.type is event_type]
