"""Feedback aggregation and reaction-toggle engine.

Provides:
- EventLog: shared append-only event log with id allocation
- ReactionLedger: idempotent per-(target, author, kind) toggle state
- FeedbackWindowIndex: timeline-ordered index with windowed grouping queries
- views: reaction tallies, comment threads and playback bar highlights
"""

from timeline_feedback.engine.event_log import EventLog
from timeline_feedback.engine.ledger import ReactionLedger
from timeline_feedback.engine.results import (
    CommentResult,
    GroupResult,
    IngestResult,
    OperationResult,
    ToggleResult,
)
from timeline_feedback.engine.views import (
    comment_threads,
    reaction_tallies,
    segment_highlights,
)
from timeline_feedback.engine.window_index import FeedbackWindowIndex, PeakScan

__all__ = [
    "EventLog",
    "ReactionLedger",
    "FeedbackWindowIndex",
    "PeakScan",
    "OperationResult",
    "ToggleResult",
    "IngestResult",
    "CommentResult",
    "GroupResult",
    "reaction_tallies",
    "comment_threads",
    "segment_highlights",
]
