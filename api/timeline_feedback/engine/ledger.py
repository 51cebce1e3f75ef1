"""Reaction toggle ledger.

Owns the on/off state of every (target, author, reaction kind) key. The
current state is a projection over the append-only event log: each toggle
appends one reaction event tagged with the state it produced, and the
projection keeps the latest event per key.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple, Union

from timeline_feedback.core.exceptions import (
    FeedbackEngineError,
    InvalidIdentifierError,
    InvalidReactionKindError,
    InvalidTimestampError,
)
from timeline_feedback.engine.event_log import EventLog
from timeline_feedback.engine.results import ToggleResult, failure
from timeline_feedback.metrics.engine_metrics import (
    reaction_toggles_total,
    record_rejection,
)
from timeline_feedback.models.feedback import (
    REACTION_ORDER,
    FeedbackEvent,
    ReactionKey,
    ReactionKind,
)
from timeline_feedback.models.timeline import ActiveReaction
from timeline_feedback.utils.timeline import is_valid_identifier, is_valid_position

logger = logging.getLogger(__name__)


class ReactionLedger:
    """Idempotent toggle state for reactions.

    Toggles on the same key serialize on a per-key lock so no flip is lost.
    Toggles on different keys only share a short lock around the projection
    dicts and never wait on each other's flip.
    """

    def __init__(
        self,
        event_log: Optional[EventLog] = None,
        enabled_kinds: Optional[Iterable[Union[ReactionKind, str]]] = None,
    ):
        self.event_log = event_log if event_log is not None else EventLog()
        if enabled_kinds is None:
            self.enabled_kinds: Tuple[ReactionKind, ...] = REACTION_ORDER
        else:
            requested = {
                kind if isinstance(kind, ReactionKind) else ReactionKind(kind.lower())
                for kind in enabled_kinds
            }
            self.enabled_kinds = tuple(k for k in REACTION_ORDER if k in requested)

        # target_id -> key -> latest reaction event for that key
        self._latest: Dict[str, Dict[ReactionKey, FeedbackEvent]] = defaultdict(dict)
        self._state_lock = threading.Lock()
        self._key_locks: Dict[ReactionKey, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    @classmethod
    def from_event_log(
        cls,
        event_log: EventLog,
        enabled_kinds: Optional[Iterable[Union[ReactionKind, str]]] = None,
    ) -> "ReactionLedger":
        """Build a ledger whose projection reflects an existing log."""
        ledger = cls(event_log=event_log, enabled_kinds=enabled_kinds)
        ledger.replay(event_log.events())
        return ledger

    def _lock_for(self, key: ReactionKey) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def coerce_reaction_kind(self, value: object) -> Optional[ReactionKind]:
        """Map ``value`` to an enabled ReactionKind, or None."""
        if isinstance(value, ReactionKind):
            kind = value
        elif isinstance(value, str):
            try:
                kind = ReactionKind(value.strip().lower())
            except ValueError:
                return None
        else:
            return None
        return kind if kind in self.enabled_kinds else None

    def _reject(self, target_id: object, error: FeedbackEngineError) -> ToggleResult:
        record_rejection("toggle", error.error_code.value)
        logger.debug("Rejected toggle on %r: %s", target_id, error.detail)
        return failure(ToggleResult, error)

    def toggle(
        self,
        target_id: str,
        author_id: str,
        reaction_type: Union[ReactionKind, str],
        at_timestamp: float,
    ) -> ToggleResult:
        """Flip the author's reaction of ``reaction_type`` on the target.

        Appends exactly one event on success and nothing on rejection.
        """
        if not is_valid_identifier(target_id):
            return self._reject(target_id, InvalidIdentifierError("target_id", target_id))
        if not is_valid_identifier(author_id):
            return self._reject(target_id, InvalidIdentifierError("author_id", author_id))

        kind = self.coerce_reaction_kind(reaction_type)
        if kind is None:
            return self._reject(target_id, InvalidReactionKindError(reaction_type))

        if not is_valid_position(at_timestamp):
            return self._reject(target_id, InvalidTimestampError(at_timestamp))

        key = ReactionKey(target_id, author_id, kind)
        with self._lock_for(key):
            with self._state_lock:
                latest = self._latest[target_id].get(key)
            new_state = not (latest is not None and latest.payload.active)

            event = self.event_log.record(
                lambda event_id: FeedbackEvent.reaction(
                    event_id=event_id,
                    target_id=target_id,
                    timestamp=float(at_timestamp),
                    author_id=author_id,
                    reaction_type=kind,
                    active=new_state,
                )
            )

            with self._state_lock:
                self._latest[target_id][key] = event
                active_reactions = self._active_reactions_locked(target_id)

        reaction_toggles_total.labels(
            reaction_type=kind.value, state="on" if new_state else "off"
        ).inc()
        logger.debug(
            "Toggled %s for author=%s target=%s at %.3fs -> %s (event=%d)",
            kind.value,
            author_id,
            target_id,
            event.timestamp,
            "on" if new_state else "off",
            event.id,
        )
        return ToggleResult(
            success=True,
            active=new_state,
            event=event,
            active_reactions=active_reactions,
        )

    def is_active(
        self, target_id: str, author_id: str, reaction_type: Union[ReactionKind, str]
    ) -> bool:
        kind = self.coerce_reaction_kind(reaction_type)
        if kind is None:
            return False
        with self._state_lock:
            latest = self._latest.get(target_id, {}).get(
                ReactionKey(target_id, author_id, kind)
            )
        return latest is not None and latest.payload.active

    def active_reactions(self, target_id: str) -> List[ActiveReaction]:
        """Current active set for a target, in kind order then author id."""
        with self._state_lock:
            return list(self._active_reactions_locked(target_id))

    def _active_reactions_locked(self, target_id: str) -> Tuple[ActiveReaction, ...]:
        active = [
            ActiveReaction(
                author_id=key.author_id,
                reaction_type=key.reaction_type,
                timestamp=event.timestamp,
                event_id=event.id,
            )
            for key, event in self._latest.get(target_id, {}).items()
            if event.payload.active
        ]
        active.sort(key=lambda r: (r.reaction_type.priority, r.author_id))
        return tuple(active)

    def history(
        self, target_id: str, author_id: str, reaction_type: Union[ReactionKind, str]
    ) -> List[FeedbackEvent]:
        """Every toggle event for one key, oldest first."""
        kind = self.coerce_reaction_kind(reaction_type)
        if kind is None:
            return []
        key = ReactionKey(target_id, author_id, kind)
        return [
            event
            for event in self.event_log.events(target_id)
            if event.reaction_key == key
        ]

    def replay(self, events: Iterable[FeedbackEvent]) -> int:
        """Rebuild the projection from reaction events already in the log.

        Non-reaction events are skipped. Returns the number of reaction
        events applied.
        """
        applied = 0
        with self._state_lock:
            for event in sorted(events, key=lambda e: e.id):
                key = event.reaction_key
                if key is None:
                    continue
                self._latest[event.target_id][key] = event
                applied += 1
        logger.info("Replayed %d reaction events into ledger projection", applied)
        return applied
