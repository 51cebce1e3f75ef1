"""
Error hierarchy for the timeline feedback engine.

Engine operations never raise these across component boundaries. Each
failure is returned inside a result object; callers that prefer exceptions
call ``result.raise_for_error()``, which raises the carried error.
"""

from enum import Enum
from typing import Optional


class FeedbackErrorCode(str, Enum):
    """Caller-correctable validation failures."""

    INVALID_REACTION_KIND = "INVALID_REACTION_KIND"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_WINDOW = "INVALID_WINDOW"
    DUPLICATE_EVENT = "DUPLICATE_EVENT"
    EMPTY_COMMENT = "EMPTY_COMMENT"
    UNKNOWN_COMMENT = "UNKNOWN_COMMENT"
    NOT_COMMENT_AUTHOR = "NOT_COMMENT_AUTHOR"
    COMMENT_TOO_LONG = "COMMENT_TOO_LONG"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"


class FeedbackEngineError(Exception):
    """Base exception for all engine errors."""

    error_code: FeedbackErrorCode

    def __init__(self, detail: str, error_code: Optional[FeedbackErrorCode] = None):
        super().__init__(detail)
        self.detail = detail
        if error_code is not None:
            self.error_code = error_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code.value}: {self.detail})"


# Reaction Exceptions


class InvalidReactionKindError(FeedbackEngineError):
    """Raised when a reaction kind is not in the enabled set."""

    error_code = FeedbackErrorCode.INVALID_REACTION_KIND

    def __init__(self, reaction_type: object):
        super().__init__(f"Unsupported reaction kind '{reaction_type}'")
        self.reaction_type = reaction_type


class InvalidIdentifierError(FeedbackEngineError):
    """Raised when a target or author id is missing or empty."""

    error_code = FeedbackErrorCode.INVALID_IDENTIFIER

    def __init__(self, field: str, value: object):
        super().__init__(f"{field} must be a non-empty string, got {value!r}")
        self.field = field
        self.value = value


# Timeline Exceptions


class InvalidTimestampError(FeedbackEngineError):
    """Raised when a timeline position is negative or not a finite number."""

    error_code = FeedbackErrorCode.INVALID_TIMESTAMP

    def __init__(self, value: object):
        super().__init__(
            f"Timeline position must be a finite number >= 0, got {value!r}"
        )
        self.value = value


class InvalidWindowError(FeedbackEngineError):
    """Raised when a grouping window radius is not strictly positive."""

    error_code = FeedbackErrorCode.INVALID_WINDOW

    def __init__(self, value: object):
        super().__init__(f"Window radius must be a finite number > 0, got {value!r}")
        self.value = value


# Index Exceptions


class DuplicateEventError(FeedbackEngineError):
    """Raised when an event id has already been ingested."""

    error_code = FeedbackErrorCode.DUPLICATE_EVENT

    def __init__(self, event_id: int):
        super().__init__(f"Event with id '{event_id}' was already ingested")
        self.event_id = event_id


# Comment Exceptions


class EmptyCommentError(FeedbackEngineError):
    """Raised when a comment body is empty after trimming."""

    error_code = FeedbackErrorCode.EMPTY_COMMENT

    def __init__(self):
        super().__init__("Comment body must not be empty")


class CommentTooLongError(FeedbackEngineError):
    """Raised when a comment body exceeds the maximum length."""

    error_code = FeedbackErrorCode.COMMENT_TOO_LONG

    def __init__(self, length: int, limit: int):
        super().__init__(
            f"Comment body has {length} characters, maximum is {limit}"
        )
        self.length = length
        self.limit = limit


class UnknownCommentError(FeedbackEngineError):
    """Raised when a comment id does not refer to a visible comment."""

    error_code = FeedbackErrorCode.UNKNOWN_COMMENT

    def __init__(self, target_id: str, comment_id: int):
        super().__init__(
            f"Comment with id '{comment_id}' not found on target '{target_id}'"
        )
        self.target_id = target_id
        self.comment_id = comment_id


class NotCommentAuthorError(FeedbackEngineError):
    """Raised when someone other than the author retracts a comment."""

    error_code = FeedbackErrorCode.NOT_COMMENT_AUTHOR

    def __init__(self, comment_id: int, author_id: str):
        super().__init__(
            f"Author '{author_id}' did not write comment '{comment_id}'"
        )
        self.comment_id = comment_id
        self.author_id = author_id
