"""Timeline-ordered index of feedback events with windowed grouping queries.

Events are kept per target in a list sorted by ``(timestamp, id)`` so a
window is two binary searches away. Nothing is ever evicted; removals are
tombstone events that the query side filters out:

- a reaction event is live only while it is the latest event for its
  (target, author, kind) key and that event turned the reaction on;
- a comment is hidden once it, or any comment it replies to, has been
  retracted.
"""

import logging
import math
import threading
import time
from bisect import bisect_left, bisect_right, insort
from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Set, Tuple

from timeline_feedback.core.config import get_settings
from timeline_feedback.core.exceptions import (
    DuplicateEventError,
    FeedbackEngineError,
    InvalidTimestampError,
    InvalidWindowError,
)
from timeline_feedback.engine.results import GroupResult, IngestResult, failure
from timeline_feedback.metrics.engine_metrics import (
    events_ingested_total,
    query_duration_seconds,
    record_rejection,
)
from timeline_feedback.models.feedback import FeedbackEvent, ReactionKey
from timeline_feedback.models.timeline import FeedbackGroup
from timeline_feedback.utils.timeline import is_valid_position, is_valid_radius

logger = logging.getLogger(__name__)


class FeedbackWindowIndex:
    """Answers "what feedback is near timeline position P" for each target."""

    def __init__(self, default_window: Optional[float] = None):
        if default_window is None:
            default_window = get_settings().FEEDBACK_WINDOW_SECONDS
        if not is_valid_radius(default_window):
            raise InvalidWindowError(default_window)
        self.default_window = float(default_window)

        self._keys: Dict[str, List[Tuple[float, int]]] = defaultdict(list)
        self._events: Dict[int, FeedbackEvent] = {}
        self._latest_reaction: Dict[ReactionKey, int] = {}
        self._retracted: Dict[str, Set[int]] = defaultdict(set)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, event: FeedbackEvent) -> IngestResult:
        """Insert an event. Re-ingesting a known id is rejected."""
        with self._lock:
            if event.id in self._events:
                error = DuplicateEventError(event.id)
                record_rejection("ingest", error.error_code.value)
                logger.debug("Rejected ingest: %s", error.detail)
                return failure(IngestResult, error)

            insort(self._keys[event.target_id], event.sort_key)
            self._events[event.id] = event

            key = event.reaction_key
            if key is not None:
                previous = self._latest_reaction.get(key)
                if previous is None or event.id > previous:
                    self._latest_reaction[key] = event.id
            elif event.is_retraction:
                self._retracted[event.target_id].add(event.payload.comment_id)

        events_ingested_total.labels(kind=event.kind).inc()
        return IngestResult(success=True, event=event)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __contains__(self, event_id: object) -> bool:
        with self._lock:
            return event_id in self._events

    def get(self, event_id: int) -> Optional[FeedbackEvent]:
        with self._lock:
            return self._events.get(event_id)

    def event_count(self, target_id: Optional[str] = None) -> int:
        """Number of raw events held, tombstones included."""
        with self._lock:
            if target_id is None:
                return len(self._events)
            return len(self._keys.get(target_id, ()))

    def targets(self) -> List[str]:
        with self._lock:
            return sorted(target for target, keys in self._keys.items() if keys)

    def events(self, target_id: str) -> List[FeedbackEvent]:
        """All raw events for a target in timeline order."""
        with self._lock:
            return [self._events[event_id] for _, event_id in self._keys.get(target_id, ())]

    def visible_events(self, target_id: str) -> List[FeedbackEvent]:
        """Display view of a target: visible comments and live reactions."""
        with self._lock:
            return [event for event in self.events(target_id) if self._is_visible_locked(event)]

    def is_visible(self, event_id: int) -> bool:
        with self._lock:
            event = self._events.get(event_id)
            return event is not None and self._is_visible_locked(event)

    def _is_visible_locked(self, event: FeedbackEvent) -> bool:
        if event.is_reaction:
            return (
                event.payload.active
                and self._latest_reaction.get(event.reaction_key) == event.id
            )
        if event.is_comment:
            retracted = self._retracted.get(event.target_id)
            if not retracted:
                return True
            current: Optional[FeedbackEvent] = event
            seen: Set[int] = set()
            while current is not None and current.id not in seen:
                if current.id in retracted:
                    return False
                seen.add(current.id)
                parent_id = current.payload.parent_id
                current = self._events.get(parent_id) if parent_id is not None else None
            return True
        return False

    def _range_locked(self, target_id: str, low: float, high: float) -> List[FeedbackEvent]:
        keys = self._keys.get(target_id)
        if not keys:
            return []
        lo = bisect_left(keys, (low, 0))
        hi = bisect_right(keys, (high, math.inf))
        return [self._events[event_id] for _, event_id in keys[lo:hi]]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _resolve_window(self, window: Optional[float]) -> Optional[FeedbackEngineError]:
        if window is not None and not is_valid_radius(window):
            return InvalidWindowError(window)
        return None

    def group_around(
        self, target_id: str, position: float, window: Optional[float] = None
    ) -> GroupResult:
        """Feedback within ``window`` seconds of ``position``, both bounds inclusive."""
        error: Optional[FeedbackEngineError] = None
        if not is_valid_position(position):
            error = InvalidTimestampError(position)
        else:
            error = self._resolve_window(window)
        if error is not None:
            record_rejection("group_around", error.error_code.value)
            logger.debug("Rejected group_around on %s: %s", target_id, error.detail)
            return failure(GroupResult, error)

        radius = float(window) if window is not None else self.default_window
        center = float(position)
        started = time.perf_counter()
        with self._lock:
            history = self._range_locked(target_id, center - radius, center + radius)
            visible = [event for event in history if self._is_visible_locked(event)]
        query_duration_seconds.labels(query="group_around").observe(
            time.perf_counter() - started
        )

        return GroupResult(
            success=True,
            group=FeedbackGroup(
                target_id=target_id,
                center=center,
                radius=radius,
                start=center - radius,
                end=center + radius,
                events=tuple(visible),
                history=tuple(history),
            ),
        )

    def groups_for_all_peaks(
        self, target_id: str, window: Optional[float] = None
    ) -> "PeakScan":
        """Greedy left-to-right clusters covering every visible event."""
        error = self._resolve_window(window)
        if error is not None:
            record_rejection("groups_for_all_peaks", error.error_code.value)
            logger.debug("Rejected groups_for_all_peaks on %s: %s", target_id, error.detail)
            return PeakScan(self, target_id, self.default_window, error=error)
        radius = float(window) if window is not None else self.default_window
        return PeakScan(self, target_id, radius)

    def _snapshot(self, target_id: str) -> Tuple[List[FeedbackEvent], List[FeedbackEvent]]:
        with self._lock:
            history = self.events(target_id)
            visible = [event for event in history if self._is_visible_locked(event)]
        return visible, history


class PeakScan:
    """Restartable lazy sequence of peak clusters for one target.

    Each iteration snapshots the target's events and clusters them greedily:
    the earliest ungrouped event seeds a group as its center, every
    following event within ``radius`` of the current center is absorbed and
    becomes the new center, and the group closes at the first event more
    than ``radius`` past it. Groups are disjoint and ordered by time.

    A scan built from invalid arguments is falsy, carries the error and
    iterates as empty.
    """

    def __init__(
        self,
        index: FeedbackWindowIndex,
        target_id: str,
        radius: float,
        error: Optional[FeedbackEngineError] = None,
    ):
        self._index = index
        self.target_id = target_id
        self.radius = radius
        self.error = error

    @property
    def success(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.success

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def __iter__(self) -> Iterator[FeedbackGroup]:
        if self.error is not None:
            return iter(())
        return self._scan()

    def _scan(self) -> Iterator[FeedbackGroup]:
        started = time.perf_counter()
        visible, history = self._index._snapshot(self.target_id)
        query_duration_seconds.labels(query="groups_for_all_peaks").observe(
            time.perf_counter() - started
        )
        history_keys = [event.sort_key for event in history]

        i = 0
        while i < len(visible):
            seed = visible[i]
            center = seed.timestamp
            j = i + 1
            while j < len(visible) and visible[j].timestamp - center <= self.radius:
                center = visible[j].timestamp
                j += 1

            members = visible[i:j]
            first, last = members[0].timestamp, members[-1].timestamp
            lo = bisect_left(history_keys, (first, 0))
            hi = bisect_right(history_keys, (last, math.inf))
            yield FeedbackGroup(
                target_id=self.target_id,
                center=seed.timestamp,
                radius=self.radius,
                start=first - self.radius,
                end=last + self.radius,
                events=tuple(members),
                history=tuple(history[lo:hi]),
            )
            i = j

    def to_list(self) -> List[FeedbackGroup]:
        return list(self)
