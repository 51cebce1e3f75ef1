"""Timestamped viewer feedback for shared slide decks and videos.

This package provides:
- FeedbackEvent: immutable reaction / comment records on a media timeline
- ReactionLedger: idempotent reaction toggles backed by an append-only log
- FeedbackWindowIndex: "feedback near this moment" grouping queries
- TimelineFeedbackService: facade wiring the pieces together

Example usage:
    from timeline_feedback import TimelineFeedbackService

    service = TimelineFeedbackService()
    service.toggle_reaction("video-1", "viewer-7", "fire", at_timestamp=12.5)
    service.post_comment("video-1", "viewer-7", "Great transition", at_timestamp=14)

    result = service.group_around("video-1", position=13)
    if result:
        for event in result.group.events:
            ...
"""

from timeline_feedback.core.exceptions import FeedbackEngineError, FeedbackErrorCode
from timeline_feedback.engine import (
    EventLog,
    FeedbackWindowIndex,
    ReactionLedger,
    ToggleResult,
)
from timeline_feedback.models.feedback import FeedbackEvent, ReactionKind
from timeline_feedback.models.timeline import FeedbackGroup
from timeline_feedback.services.timeline_feedback_service import (
    TimelineFeedbackService,
    get_timeline_feedback_service,
)

__all__ = [
    "EventLog",
    "FeedbackEngineError",
    "FeedbackErrorCode",
    "FeedbackEvent",
    "FeedbackGroup",
    "FeedbackWindowIndex",
    "ReactionKind",
    "ReactionLedger",
    "TimelineFeedbackService",
    "ToggleResult",
    "get_timeline_feedback_service",
]
