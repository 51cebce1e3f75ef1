"""Query-time views over feedback events.

None of these are persisted. Each is built per query and owned by the
caller; the index keeps no reference to returned objects.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from timeline_feedback.models.feedback import FeedbackEvent, ReactionKind


@dataclass(frozen=True)
class FeedbackGroup:
    """Feedback clustered around a timeline position.

    ``events`` is the display view: comments that have not been retracted
    plus reactions that are still live. ``history`` holds every raw event in
    ``[start, end]``, tombstones and superseded reactions included. Both are
    ordered by timestamp, ties by event id.
    """

    target_id: str
    center: float
    radius: float
    start: float
    end: float
    events: Tuple[FeedbackEvent, ...] = ()
    history: Tuple[FeedbackEvent, ...] = ()

    @property
    def comments(self) -> Tuple[FeedbackEvent, ...]:
        return tuple(event for event in self.events if event.is_comment)

    @property
    def reactions(self) -> Tuple[FeedbackEvent, ...]:
        return tuple(event for event in self.events if event.is_reaction)

    @property
    def timestamps(self) -> List[float]:
        return [event.timestamp for event in self.events]

    def is_empty(self) -> bool:
        return not self.events

    def __len__(self) -> int:
        return len(self.events)


@dataclass(frozen=True)
class ActiveReaction:
    """One currently active (target, author, kind) reaction."""

    author_id: str
    reaction_type: ReactionKind
    timestamp: float
    event_id: int


@dataclass(frozen=True)
class ReactionTally:
    """Per-kind reaction count, and whether the viewer holds one."""

    reaction_type: ReactionKind
    count: int = 0
    active: bool = False

    @property
    def emoji(self) -> str:
        return self.reaction_type.emoji


@dataclass(frozen=True)
class SegmentHighlight:
    """Representative reaction for one fixed-width playback bar segment."""

    start_time: float
    end_time: float
    top_reaction_type: ReactionKind
    count: int
    total_count: int


@dataclass
class CommentThread:
    """A comment with its replies nested beneath it."""

    comment: FeedbackEvent
    replies: List["CommentThread"] = field(default_factory=list)

    @property
    def comment_id(self) -> int:
        return self.comment.id

    @property
    def parent_id(self) -> Optional[int]:
        return self.comment.payload.parent_id

    def flatten(self) -> List[FeedbackEvent]:
        """Comment followed by its replies, depth first."""
        flat = [self.comment]
        for reply in self.replies:
            flat.extend(reply.flatten())
        return flat
