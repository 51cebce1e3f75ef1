"""Result objects returned by engine operations.

Every operation reports validation failures through its result instead of
raising. A failed result guarantees the operation had no side effect.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from timeline_feedback.core.exceptions import FeedbackEngineError, FeedbackErrorCode
from timeline_feedback.models.feedback import FeedbackEvent, ReactionKind
from timeline_feedback.models.timeline import ActiveReaction, FeedbackGroup


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an engine operation."""

    success: bool
    error: Optional[FeedbackEngineError] = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def error_code(self) -> Optional[FeedbackErrorCode]:
        return self.error.error_code if self.error is not None else None

    def raise_for_error(self) -> None:
        """Raise the carried error, if any."""
        if self.error is not None:
            raise self.error


@dataclass(frozen=True)
class ToggleResult(OperationResult):
    """Outcome of a reaction toggle.

    ``active_reactions`` is the complete active set for the target after
    the toggle, so callers can reconcile without a second read.
    """

    active: bool = False
    event: Optional[FeedbackEvent] = None
    active_reactions: Tuple[ActiveReaction, ...] = ()

    @property
    def reaction_counts(self) -> Dict[ReactionKind, int]:
        counts = Counter(reaction.reaction_type for reaction in self.active_reactions)
        return {kind: counts.get(kind, 0) for kind in ReactionKind}


@dataclass(frozen=True)
class IngestResult(OperationResult):
    event: Optional[FeedbackEvent] = None


@dataclass(frozen=True)
class CommentResult(OperationResult):
    event: Optional[FeedbackEvent] = None


@dataclass(frozen=True)
class GroupResult(OperationResult):
    group: Optional[FeedbackGroup] = None

    @property
    def events(self) -> Tuple[FeedbackEvent, ...]:
        return self.group.events if self.group is not None else ()


def failure(result_cls, error: FeedbackEngineError):
    """Build a failed result of ``result_cls`` carrying ``error``."""
    return result_cls(success=False, error=error)
