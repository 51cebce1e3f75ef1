"""Tests for FeedbackWindowIndex: ingestion, group_around windows and tombstones."""

import pytest
from timeline_feedback.core.exceptions import (
    DuplicateEventError,
    FeedbackErrorCode,
    InvalidWindowError,
)
from timeline_feedback.engine.window_index import FeedbackWindowIndex
from timeline_feedback.models.feedback import FeedbackEvent, ReactionKind


@pytest.fixture()
def scenario_index(index, make_comment):
    """Target video-1 with comments at 2, 4, 9 and 20 seconds."""
    for event_id, timestamp in enumerate([2.0, 4.0, 9.0, 20.0], start=1):
        assert index.ingest(make_comment(event_id, timestamp)).success
    return index


class TestIngest:
    """Test event ingestion."""

    def test_ingest_accepts_new_event(self, index, make_comment):
        result = index.ingest(make_comment(1, 3.0))
        assert result.success
        assert 1 in index
        assert index.event_count() == 1
        assert index.event_count("video-1") == 1
        assert index.event_count("video-2") == 0

    def test_duplicate_id_rejected(self, index, make_comment):
        index.ingest(make_comment(1, 3.0))
        result = index.ingest(make_comment(1, 8.0, body="different"))
        assert not result
        assert result.error_code == FeedbackErrorCode.DUPLICATE_EVENT
        assert isinstance(result.error, DuplicateEventError)
        assert index.event_count() == 1

    def test_duplicate_does_not_alter_groups(self, index, make_comment):
        index.ingest(make_comment(1, 3.0))
        before = index.group_around("video-1", 3.0).group.events
        index.ingest(make_comment(1, 3.0))
        after = index.group_around("video-1", 3.0).group.events
        assert before == after

    def test_events_in_timeline_order(self, index, make_comment):
        index.ingest(make_comment(3, 9.0))
        index.ingest(make_comment(1, 2.0))
        index.ingest(make_comment(2, 2.0))
        assert [e.id for e in index.events("video-1")] == [1, 2, 3]

    def test_targets(self, index, make_comment):
        index.ingest(make_comment(1, 1.0, target_id="b"))
        index.ingest(make_comment(2, 1.0, target_id="a"))
        assert index.targets() == ["a", "b"]

    def test_invalid_default_window(self):
        with pytest.raises(InvalidWindowError):
            FeedbackWindowIndex(default_window=0)


class TestGroupAround:
    """Test windowed grouping around a position."""

    def test_scenario(self, scenario_index):
        result = scenario_index.group_around("video-1", 4.0, 5.0)
        assert result.success
        assert result.group.timestamps == [2.0, 4.0, 9.0]
        assert result.group.start == -1.0
        assert result.group.end == 9.0

    def test_default_window(self, scenario_index):
        group = scenario_index.group_around("video-1", 4.0).group
        assert group.radius == 5.0
        assert group.timestamps == [2.0, 4.0, 9.0]

    def test_both_bounds_inclusive(self, index, make_comment):
        index.ingest(make_comment(1, 7.0))
        index.ingest(make_comment(2, 17.0))
        index.ingest(make_comment(3, 17.25))
        group = index.group_around("video-1", 12.0, 5.0).group
        assert [e.id for e in group.events] == [1, 2]

    @pytest.mark.parametrize(
        "position,window", [(10.0, 5.0), (0.5, 0.25), (100.0, 2.5), (7.0, 1.0)]
    )
    def test_window_symmetry(self, index, make_comment, position, window):
        index.ingest(make_comment(1, position - window))
        index.ingest(make_comment(2, position + window))
        index.ingest(make_comment(3, position + window + 1e-6))
        group = index.group_around("video-1", position, window).group
        assert [e.id for e in group.events] == [1, 2]

    def test_ties_broken_by_id(self, index, make_comment):
        for event_id in (5, 2, 9, 1):
            index.ingest(make_comment(event_id, 4.0))
        index.ingest(make_comment(3, 3.0))
        group = index.group_around("video-1", 4.0, 1.0).group
        assert [e.id for e in group.events] == [3, 1, 2, 5, 9]

    def test_deterministic(self, scenario_index):
        first = scenario_index.group_around("video-1", 6.0, 5.0).group
        second = scenario_index.group_around("video-1", 6.0, 5.0).group
        assert first == second

    def test_empty_range_returns_empty_group(self, scenario_index):
        result = scenario_index.group_around("video-1", 50.0, 5.0)
        assert result.success
        assert result.group.is_empty()
        assert len(result.group) == 0

    def test_unknown_target_returns_empty_group(self, index):
        result = index.group_around("nope", 1.0)
        assert result.success
        assert result.events == ()

    def test_targets_are_isolated(self, index, make_comment):
        index.ingest(make_comment(1, 4.0, target_id="video-1"))
        index.ingest(make_comment(2, 4.0, target_id="video-2"))
        group = index.group_around("video-2", 4.0).group
        assert [e.id for e in group.events] == [2]

    def test_negative_position_rejected(self, index):
        result = index.group_around("video-1", -1.0)
        assert not result
        assert result.error_code == FeedbackErrorCode.INVALID_TIMESTAMP
        assert result.group is None

    @pytest.mark.parametrize("window", [0, -5.0, float("nan")])
    def test_non_positive_window_rejected(self, index, window):
        result = index.group_around("video-1", 1.0, window)
        assert result.error_code == FeedbackErrorCode.INVALID_WINDOW


class TestTombstones:
    """Inactive and superseded reactions are filtered at query time."""

    def test_toggled_off_reaction_hidden(self, index, make_reaction):
        index.ingest(make_reaction(1, 3.0, active=True))
        index.ingest(make_reaction(2, 3.5, active=False))
        group = index.group_around("video-1", 3.0).group
        assert group.reactions == ()
        assert [e.id for e in group.history] == [1, 2]
        assert index.event_count("video-1") == 2

    def test_superseded_on_event_hidden_even_when_off_is_far_away(self, index, make_reaction):
        index.ingest(make_reaction(1, 3.0, active=True))
        index.ingest(make_reaction(2, 60.0, active=False))
        group = index.group_around("video-1", 3.0).group
        assert group.events == ()
        assert [e.id for e in group.history] == [1]

    def test_reactivated_reaction_visible_once(self, index, make_reaction):
        index.ingest(make_reaction(1, 3.0, active=True))
        index.ingest(make_reaction(2, 4.0, active=False))
        index.ingest(make_reaction(3, 5.0, active=True))
        group = index.group_around("video-1", 4.0).group
        assert [e.id for e in group.reactions] == [3]

    def test_out_of_order_ingest_uses_latest_id(self, index, make_reaction):
        index.ingest(make_reaction(2, 4.0, active=False))
        index.ingest(make_reaction(1, 3.0, active=True))
        group = index.group_around("video-1", 3.0).group
        assert group.reactions == ()

    def test_other_keys_unaffected(self, index, make_reaction):
        index.ingest(make_reaction(1, 3.0, reaction_type=ReactionKind.FIRE))
        index.ingest(make_reaction(2, 3.0, reaction_type=ReactionKind.GOOD))
        index.ingest(make_reaction(3, 3.0, reaction_type=ReactionKind.FIRE, active=False))
        group = index.group_around("video-1", 3.0).group
        assert [e.payload.reaction_type for e in group.reactions] == [ReactionKind.GOOD]

    def test_comments_never_filtered_by_reactions(self, index, make_comment, make_reaction):
        index.ingest(make_comment(1, 3.0))
        index.ingest(make_reaction(2, 3.0, active=False))
        group = index.group_around("video-1", 3.0).group
        assert [e.id for e in group.comments] == [1]

    def test_retracted_comment_and_replies_hidden(self, index, make_comment):
        index.ingest(make_comment(1, 3.0))
        index.ingest(make_comment(2, 3.0, parent_id=1))
        index.ingest(make_comment(3, 3.0, parent_id=2))
        index.ingest(make_comment(4, 3.0))
        index.ingest(
            FeedbackEvent.retraction(
                event_id=5, target_id="video-1", timestamp=3.0, author_id="viewer-1", comment_id=1
            )
        )
        group = index.group_around("video-1", 3.0).group
        assert [e.id for e in group.events] == [4]
        assert len(group.history) == 5
        assert not index.is_visible(3)
        assert index.is_visible(4)
