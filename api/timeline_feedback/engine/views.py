"""Display views computed from feedback events.

These take display-view events (as found in ``FeedbackGroup.events``) and
never look at tombstones.
"""

from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Set, Union

from timeline_feedback.models.feedback import REACTION_ORDER, FeedbackEvent, ReactionKind
from timeline_feedback.models.timeline import (
    CommentThread,
    FeedbackGroup,
    ReactionTally,
    SegmentHighlight,
)
from timeline_feedback.utils.timeline import bucket_start

EventSource = Union[FeedbackGroup, Iterable[FeedbackEvent]]


def _events_of(source: EventSource) -> List[FeedbackEvent]:
    if isinstance(source, FeedbackGroup):
        return list(source.events)
    return list(source)


def reaction_tallies(
    source: EventSource, viewer_id: Optional[str] = None
) -> List[ReactionTally]:
    """Count live reactions per kind, one tally per kind in kind order.

    ``active`` is set for kinds the viewer has a live reaction of anywhere
    in ``source``, not only at the event nearest the playhead.
    """
    counts: Counter = Counter()
    mine: Set[ReactionKind] = set()
    for event in _events_of(source):
        if not event.is_reaction:
            continue
        kind = event.payload.reaction_type
        counts[kind] += 1
        if viewer_id is not None and event.author_id == viewer_id:
            mine.add(kind)

    return [
        ReactionTally(reaction_type=kind, count=counts.get(kind, 0), active=kind in mine)
        for kind in REACTION_ORDER
    ]


def comment_threads(source: EventSource) -> List[CommentThread]:
    """Nest replies under their parents, preserving input order.

    Replies whose parent is not among the comments are dropped, matching how
    a retracted parent takes its replies with it.
    """
    comments = [event for event in _events_of(source) if event.is_comment]
    nodes: Dict[int, CommentThread] = {event.id: CommentThread(comment=event) for event in comments}
    roots: List[CommentThread] = []

    for event in comments:
        node = nodes[event.id]
        parent_id = event.payload.parent_id
        if parent_id is None:
            roots.append(node)
            continue
        parent = nodes.get(parent_id)
        if parent is not None:
            parent.replies.append(node)

    return roots


def segment_highlights(
    source: EventSource,
    bucket_seconds: float = 5.0,
    limit: int = 10,
) -> List[SegmentHighlight]:
    """Pick a representative reaction for the busiest playback bar segments.

    Live reactions are bucketed by ``floor(t / bucket_seconds)``. Each bucket
    shows its most frequent kind, ties going to the earlier kind in
    ReactionKind order. Only the ``limit`` buckets with the most reactions
    are kept (earlier bucket wins ties) and are returned in time order.
    """
    if bucket_seconds <= 0:
        raise ValueError("bucket_seconds must be greater than 0")
    if limit < 1:
        return []

    buckets: Dict[float, Counter] = defaultdict(Counter)
    for event in _events_of(source):
        if event.is_reaction:
            buckets[bucket_start(event.timestamp, bucket_seconds)][
                event.payload.reaction_type
            ] += 1

    highlights = []
    for start, counts in buckets.items():
        top_kind = min(counts, key=lambda kind: (-counts[kind], kind.priority))
        highlights.append(
            SegmentHighlight(
                start_time=start,
                end_time=start + bucket_seconds,
                top_reaction_type=top_kind,
                count=counts[top_kind],
                total_count=sum(counts.values()),
            )
        )

    highlights.sort(key=lambda h: (-h.total_count, h.start_time))
    return sorted(highlights[:limit], key=lambda h: h.start_time)
