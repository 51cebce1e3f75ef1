"""
Timeline feedback service.

Single entry point for the transport layer. Wires one event log, reaction
ledger and window index together so that every accepted toggle or comment
is visible to grouping queries by the time the call returns.
"""

import logging
import threading
from functools import lru_cache
from typing import List, Optional, Union

from timeline_feedback.core.config import Settings, get_settings
from timeline_feedback.core.exceptions import (
    CommentTooLongError,
    EmptyCommentError,
    FeedbackEngineError,
    InvalidIdentifierError,
    InvalidTimestampError,
    NotCommentAuthorError,
    UnknownCommentError,
)
from timeline_feedback.engine.event_log import EventLog
from timeline_feedback.engine.ledger import ReactionLedger
from timeline_feedback.engine.results import CommentResult, GroupResult, ToggleResult, failure
from timeline_feedback.engine.views import comment_threads, reaction_tallies, segment_highlights
from timeline_feedback.engine.window_index import FeedbackWindowIndex, PeakScan
from timeline_feedback.metrics.engine_metrics import record_rejection
from timeline_feedback.models.feedback import MAX_COMMENT_LENGTH, FeedbackEvent, ReactionKind
from timeline_feedback.models.timeline import CommentThread, ReactionTally, SegmentHighlight
from timeline_feedback.utils.timeline import is_valid_identifier, is_valid_position

logger = logging.getLogger(__name__)


class TimelineFeedbackService:
    """Reactions, comments and grouping queries for slide decks and videos."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.event_log = EventLog()
        self.ledger = ReactionLedger(
            self.event_log, enabled_kinds=self.settings.REACTION_KINDS
        )
        self._comment_lock = threading.Lock()
        self.index = FeedbackWindowIndex(
            default_window=self.settings.FEEDBACK_WINDOW_SECONDS
        )
        logger.info(
            "TimelineFeedbackService initialized: window=%.2fs, kinds=%s",
            self.index.default_window,
            ",".join(kind.value for kind in self.ledger.enabled_kinds),
        )

    def _ingest(self, event: FeedbackEvent) -> None:
        result = self.index.ingest(event)
        if not result:
            # Log ids are unique, so this only happens if the index was fed elsewhere.
            logger.error(
                "Event %d from the log was rejected by the index: %s",
                event.id,
                result.error.detail,
            )

    def _reject(self, operation: str, error: FeedbackEngineError) -> CommentResult:
        record_rejection(operation, error.error_code.value)
        logger.debug("Rejected %s: %s", operation, error.detail)
        return failure(CommentResult, error)

    # Reactions

    def toggle_reaction(
        self,
        target_id: str,
        author_id: str,
        reaction_type: Union[ReactionKind, str],
        at_timestamp: float,
    ) -> ToggleResult:
        """Toggle a reaction and make the resulting event queryable."""
        result = self.ledger.toggle(target_id, author_id, reaction_type, at_timestamp)
        if result:
            self._ingest(result.event)
        return result

    # Comments

    def _visible_comment(self, target_id: str, comment_id: int) -> Optional[FeedbackEvent]:
        event = self.index.get(comment_id)
        if (
            event is None
            or not event.is_comment
            or event.target_id != target_id
            or not self.index.is_visible(comment_id)
        ):
            return None
        return event

    @staticmethod
    def _check_ids(target_id: str, author_id: str) -> Optional[FeedbackEngineError]:
        if not is_valid_identifier(target_id):
            return InvalidIdentifierError("target_id", target_id)
        if not is_valid_identifier(author_id):
            return InvalidIdentifierError("author_id", author_id)
        return None

    @staticmethod
    def _check_body(body: str) -> Optional[FeedbackEngineError]:
        if not isinstance(body, str) or not body.replace("\x00", "").strip():
            return EmptyCommentError()
        if len(body) > MAX_COMMENT_LENGTH:
            return CommentTooLongError(len(body), MAX_COMMENT_LENGTH)
        return None

    def post_comment(
        self, target_id: str, author_id: str, body: str, at_timestamp: float
    ) -> CommentResult:
        """Attach a comment to a timeline position."""
        error = self._check_ids(target_id, author_id)
        if error is None and not is_valid_position(at_timestamp):
            error = InvalidTimestampError(at_timestamp)
        if error is None:
            error = self._check_body(body)
        if error is not None:
            return self._reject("post_comment", error)

        event = self.event_log.record(
            lambda event_id: FeedbackEvent.comment(
                event_id=event_id,
                target_id=target_id,
                timestamp=float(at_timestamp),
                author_id=author_id,
                body=body,
            )
        )
        self._ingest(event)
        logger.debug("Comment %d posted on %s at %.3fs", event.id, target_id, event.timestamp)
        return CommentResult(success=True, event=event)

    def reply_to_comment(
        self, target_id: str, author_id: str, parent_id: int, body: str
    ) -> CommentResult:
        """Reply to a visible comment. The reply shares its parent's position."""
        error = self._check_ids(target_id, author_id) or self._check_body(body)
        if error is not None:
            return self._reject("reply_to_comment", error)

        # Held until the reply is indexed so a concurrent retraction cannot
        # hide the parent in between.
        with self._comment_lock:
            parent = self._visible_comment(target_id, parent_id)
            if parent is None:
                return self._reject(
                    "reply_to_comment", UnknownCommentError(target_id, parent_id)
                )

            event = self.event_log.record(
                lambda event_id: FeedbackEvent.comment(
                    event_id=event_id,
                    target_id=target_id,
                    timestamp=parent.timestamp,
                    author_id=author_id,
                    body=body,
                    parent_id=parent.id,
                )
            )
            self._ingest(event)
        return CommentResult(success=True, event=event)

    def retract_comment(
        self, target_id: str, author_id: str, comment_id: int
    ) -> CommentResult:
        """Hide a comment and its replies. Only the author may retract."""
        error = self._check_ids(target_id, author_id)
        if error is not None:
            return self._reject("retract_comment", error)

        with self._comment_lock:
            comment = self._visible_comment(target_id, comment_id)
            if comment is None:
                return self._reject(
                    "retract_comment", UnknownCommentError(target_id, comment_id)
                )
            if comment.author_id != author_id:
                return self._reject(
                    "retract_comment", NotCommentAuthorError(comment_id, author_id)
                )

            event = self.event_log.record(
                lambda event_id: FeedbackEvent.retraction(
                    event_id=event_id,
                    target_id=target_id,
                    timestamp=comment.timestamp,
                    author_id=author_id,
                    comment_id=comment.id,
                )
            )
            self._ingest(event)
        logger.debug("Comment %d retracted on %s", comment_id, target_id)
        return CommentResult(success=True, event=event)

    # Queries

    def group_around(
        self, target_id: str, position: float, window: Optional[float] = None
    ) -> GroupResult:
        return self.index.group_around(target_id, position, window)

    def groups_for_all_peaks(
        self, target_id: str, window: Optional[float] = None
    ) -> PeakScan:
        return self.index.groups_for_all_peaks(target_id, window)

    def reaction_tallies(
        self,
        target_id: str,
        position: Optional[float] = None,
        viewer_id: Optional[str] = None,
    ) -> List[ReactionTally]:
        """Per-kind counts for the whole target, or for the window around ``position``."""
        if position is None:
            return reaction_tallies(self.index.visible_events(target_id), viewer_id)
        result = self.group_around(target_id, position)
        result.raise_for_error()
        return reaction_tallies(result.group, viewer_id)

    def comment_threads(self, target_id: str) -> List[CommentThread]:
        """Visible comments of a target as reply trees, in timeline order."""
        return comment_threads(self.index.visible_events(target_id))

    def segment_highlights(self, target_id: str) -> List[SegmentHighlight]:
        """Playback bar highlights using the configured bucket width and limit."""
        return segment_highlights(
            self.index.visible_events(target_id),
            bucket_seconds=self.settings.SEGMENT_BUCKET_SECONDS,
            limit=self.settings.SEGMENT_HIGHLIGHT_LIMIT,
        )


@lru_cache(maxsize=1)
def get_timeline_feedback_service() -> TimelineFeedbackService:
    """Process-wide service built from the cached settings."""
    return TimelineFeedbackService(get_settings())
