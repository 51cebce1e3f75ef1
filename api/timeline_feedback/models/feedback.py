"""Feedback event models.

A FeedbackEvent is an immutable record anchored to a timeline position
(seconds into the target's media), not to wall-clock time. Events are
append-only: turning a reaction off or deleting a comment produces a new
event instead of mutating an old one.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReactionKind(str, Enum):
    """Supported reaction kinds, declared in display and priority order."""

    FIRE = "fire"
    SLEEPY = "sleepy"
    GOOD = "good"
    BAD = "bad"
    CONFUSED = "confused"

    @property
    def emoji(self) -> str:
        return REACTION_CONFIG[self]["emoji"]

    @property
    def label(self) -> str:
        return REACTION_CONFIG[self]["label"]

    @property
    def priority(self) -> int:
        """Position in declaration order; lower wins ties."""
        return REACTION_ORDER.index(self)


REACTION_CONFIG = {
    ReactionKind.FIRE: {"emoji": "\U0001f525", "label": "Impressive"},
    ReactionKind.SLEEPY: {"emoji": "\U0001f4a4", "label": "Boring"},
    ReactionKind.GOOD: {"emoji": "\U0001f44d", "label": "Well done"},
    ReactionKind.BAD: {"emoji": "\U0001f44e", "label": "Not great"},
    ReactionKind.CONFUSED: {"emoji": "\U0001f937", "label": "Didn't get it"},
}

REACTION_ORDER = tuple(ReactionKind)

MAX_COMMENT_LENGTH = 10000


class ReactionKey(NamedTuple):
    """Composite key identifying one reaction's toggle state."""

    target_id: str
    author_id: str
    reaction_type: ReactionKind


class ReactionPayload(BaseModel):
    """A reaction toggle. ``active=False`` marks a tombstone."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["reaction"] = "reaction"
    reaction_type: ReactionKind
    author_id: str = Field(min_length=1)
    active: bool = True


class CommentPayload(BaseModel):
    """A viewer comment, optionally replying to another comment."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["comment"] = "comment"
    author_id: str = Field(min_length=1)
    body: str = Field(
        max_length=MAX_COMMENT_LENGTH, description="Comment text (max 10KB)"
    )
    parent_id: Optional[int] = Field(
        None, description="Event id of the comment this one replies to"
    )

    @field_validator("body")
    @classmethod
    def sanitize_body(cls, v: str) -> str:
        """Remove null bytes and trim surrounding whitespace."""
        v = v.replace("\x00", "")
        return v.strip()


class CommentRetractionPayload(BaseModel):
    """Tombstone hiding a comment (and its replies) from query views."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["comment_retraction"] = "comment_retraction"
    author_id: str = Field(min_length=1)
    comment_id: int


FeedbackPayload = Annotated[
    Union[ReactionPayload, CommentPayload, CommentRetractionPayload],
    Field(discriminator="kind"),
]


class FeedbackEvent(BaseModel):
    """Immutable record of a single piece of viewer feedback."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1, description="Unique, never reused; orders ties")
    target_id: str = Field(min_length=1, description="Slide deck or video id")
    timestamp: float = Field(
        ge=0, allow_inf_nan=False, description="Timeline position in seconds"
    )
    payload: FeedbackPayload
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def reaction(
        cls,
        event_id: int,
        target_id: str,
        timestamp: float,
        author_id: str,
        reaction_type: ReactionKind,
        active: bool,
    ) -> "FeedbackEvent":
        return cls(
            id=event_id,
            target_id=target_id,
            timestamp=timestamp,
            payload=ReactionPayload(
                reaction_type=reaction_type, author_id=author_id, active=active
            ),
        )

    @classmethod
    def comment(
        cls,
        event_id: int,
        target_id: str,
        timestamp: float,
        author_id: str,
        body: str,
        parent_id: Optional[int] = None,
    ) -> "FeedbackEvent":
        return cls(
            id=event_id,
            target_id=target_id,
            timestamp=timestamp,
            payload=CommentPayload(author_id=author_id, body=body, parent_id=parent_id),
        )

    @classmethod
    def retraction(
        cls,
        event_id: int,
        target_id: str,
        timestamp: float,
        author_id: str,
        comment_id: int,
    ) -> "FeedbackEvent":
        return cls(
            id=event_id,
            target_id=target_id,
            timestamp=timestamp,
            payload=CommentRetractionPayload(author_id=author_id, comment_id=comment_id),
        )

    @property
    def kind(self) -> str:
        return self.payload.kind

    @property
    def author_id(self) -> str:
        return self.payload.author_id

    @property
    def is_reaction(self) -> bool:
        return isinstance(self.payload, ReactionPayload)

    @property
    def is_comment(self) -> bool:
        return isinstance(self.payload, CommentPayload)

    @property
    def is_retraction(self) -> bool:
        return isinstance(self.payload, CommentRetractionPayload)

    @property
    def sort_key(self) -> tuple[float, int]:
        """Timeline order: timestamp ascending, then id ascending."""
        return (self.timestamp, self.id)

    @property
    def reaction_key(self) -> Optional[ReactionKey]:
        if not isinstance(self.payload, ReactionPayload):
            return None
        return ReactionKey(
            self.target_id, self.payload.author_id, self.payload.reaction_type
        )

    def __repr__(self) -> str:
        return f"<FeedbackEvent #{self.id} {self.target_id}@{self.timestamp:g}s {self.kind}>"
