"""Shared append-only feedback event log."""

import logging
import threading
from typing import Callable, Iterator, List, Optional

from timeline_feedback.models.feedback import FeedbackEvent

logger = logging.getLogger(__name__)


class EventLog:
    """Append-only log of FeedbackEvents with id allocation.

    Ids start at 1, increase monotonically and are never reused. Events
    built through ``record`` are appended in id order.
    """

    def __init__(self) -> None:
        self._events: List[FeedbackEvent] = []
        self._next_id = 1
        self._lock = threading.RLock()

    def allocate_id(self) -> int:
        """Reserve a fresh event id."""
        with self._lock:
            event_id = self._next_id
            self._next_id += 1
            return event_id

    def record(self, build: Callable[[int], FeedbackEvent]) -> FeedbackEvent:
        """Allocate an id, build the event with it and append it atomically."""
        with self._lock:
            event = build(self._next_id)
            self._next_id = max(self._next_id, event.id) + 1
            self._events.append(event)
            return event

    def append(self, event: FeedbackEvent) -> FeedbackEvent:
        """Append an event built elsewhere with an id from ``allocate_id``."""
        with self._lock:
            self._next_id = max(self._next_id, event.id + 1)
            self._events.append(event)
            return event

    def events(self, target_id: Optional[str] = None) -> List[FeedbackEvent]:
        """Snapshot of the log, optionally restricted to one target."""
        with self._lock:
            if target_id is None:
                return list(self._events)
            return [event for event in self._events if event.target_id == target_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[FeedbackEvent]:
        return iter(self.events())
