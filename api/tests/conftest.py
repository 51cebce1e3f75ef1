"""
Pytest configuration and fixtures for the timeline feedback engine.

This module provides:
- Test settings isolated from any local .env file
- Fresh engine components (log, ledger, index) per test
- A service fixture wired from the test settings
- Helpers for building feedback events directly
"""

from typing import Callable

import pytest
from timeline_feedback.core.config import Settings
from timeline_feedback.engine.event_log import EventLog
from timeline_feedback.engine.ledger import ReactionLedger
from timeline_feedback.engine.window_index import FeedbackWindowIndex
from timeline_feedback.models.feedback import FeedbackEvent, ReactionKind
from timeline_feedback.services.timeline_feedback_service import TimelineFeedbackService


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings that ignore the environment's .env file.

    Returns:
        Settings: Settings with the default five second feedback window
    """
    return Settings(
        _env_file=None,
        DEBUG=True,
        ENVIRONMENT="testing",
        FEEDBACK_WINDOW_SECONDS=5.0,
        SEGMENT_BUCKET_SECONDS=5.0,
        SEGMENT_HIGHLIGHT_LIMIT=10,
    )


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def ledger(event_log: EventLog) -> ReactionLedger:
    return ReactionLedger(event_log)


@pytest.fixture
def index() -> FeedbackWindowIndex:
    return FeedbackWindowIndex(default_window=5.0)


@pytest.fixture
def service(test_settings: Settings) -> TimelineFeedbackService:
    return TimelineFeedbackService(test_settings)


@pytest.fixture
def make_comment() -> Callable[..., FeedbackEvent]:
    """Factory for comment events with explicit ids."""

    def _make(
        event_id: int,
        timestamp: float,
        target_id: str = "video-1",
        author_id: str = "viewer-1",
        body: str = "Nice point",
        parent_id: int | None = None,
    ) -> FeedbackEvent:
        return FeedbackEvent.comment(
            event_id=event_id,
            target_id=target_id,
            timestamp=timestamp,
            author_id=author_id,
            body=body,
            parent_id=parent_id,
        )

    return _make


@pytest.fixture
def make_reaction() -> Callable[..., FeedbackEvent]:
    """Factory for reaction events with explicit ids."""

    def _make(
        event_id: int,
        timestamp: float,
        target_id: str = "video-1",
        author_id: str = "viewer-1",
        reaction_type: ReactionKind = ReactionKind.FIRE,
        active: bool = True,
    ) -> FeedbackEvent:
        return FeedbackEvent.reaction(
            event_id=event_id,
            target_id=target_id,
            timestamp=timestamp,
            author_id=author_id,
            reaction_type=reaction_type,
            active=active,
        )

    return _make
