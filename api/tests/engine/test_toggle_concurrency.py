"""Concurrency tests: racing toggles and comment operations lose or duplicate nothing."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from timeline_feedback.core.exceptions import FeedbackErrorCode
from timeline_feedback.models.feedback import ReactionKind


def _toggle_many(service, author_id, kind, count, barrier=None):
    if barrier is not None:
        barrier.wait()
    for i in range(count):
        result = service.toggle_reaction("video-1", author_id, kind, float(i % 30))
        assert result.success


class TestThreadedToggles:
    """Toggles from many threads."""

    def test_same_key_serializes(self, service):
        workers, per_worker = 8, 125
        barrier = threading.Barrier(workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(_toggle_many, service, "viewer-1", ReactionKind.FIRE, per_worker, barrier)
                for _ in range(workers)
            ]
            for future in futures:
                future.result()

        total = workers * per_worker
        history = service.ledger.history("video-1", "viewer-1", ReactionKind.FIRE)
        assert len(history) == total
        assert service.ledger.is_active("video-1", "viewer-1", "fire") is (total % 2 == 1)
        # Each event flips the previous one: states strictly alternate in id order.
        states = [event.payload.active for event in history]
        assert states == [i % 2 == 0 for i in range(total)]

    def test_distinct_keys_independent(self, service):
        authors = [f"viewer-{i}" for i in range(6)]
        with ThreadPoolExecutor(max_workers=len(authors)) as pool:
            futures = [
                pool.submit(_toggle_many, service, author, ReactionKind.GOOD, 3)
                for author in authors
            ]
            for future in futures:
                future.result()

        active = service.ledger.active_reactions("video-1")
        assert sorted(r.author_id for r in active) == authors
        assert service.index.event_count("video-1") == 18

    def test_index_agrees_with_ledger(self, service):
        workers = 3
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(_toggle_many, service, "viewer-1", ReactionKind.BAD, 51)
                for _ in range(workers)
            ]
            for future in futures:
                future.result()

        live = [
            event
            for event in service.index.visible_events("video-1")
            if event.is_reaction
        ]
        expected = service.ledger.active_reactions("video-1")
        assert [event.id for event in live] == [r.event_id for r in expected]


class TestAsyncCallers:
    """The engine is callable from an event loop without special handling."""

    @pytest.mark.asyncio
    async def test_toggles_via_to_thread(self, service):
        await asyncio.gather(
            *[
                asyncio.to_thread(
                    service.toggle_reaction, "video-1", "viewer-1", "sleepy", float(i)
                )
                for i in range(40)
            ]
        )
        assert not service.ledger.is_active("video-1", "viewer-1", "sleepy")
        assert service.index.event_count("video-1") == 40

    @pytest.mark.asyncio
    async def test_direct_calls_in_loop(self, service):
        result = service.toggle_reaction("video-1", "viewer-1", "fire", 2.0)
        await asyncio.sleep(0)
        group = service.group_around("video-1", 2.0).group
        assert [event.id for event in group.events] == [result.event.id]


class TestConcurrentComments:
    """Comment checks and appends are atomic with respect to each other."""

    def test_racing_retractions_append_one_tombstone(self, service):
        workers = 8
        for round_number in range(20):
            comment = service.post_comment(
                "video-1", "viewer-1", f"comment {round_number}", float(round_number)
            ).event
            barrier = threading.Barrier(workers)

            def retract():
                barrier.wait()
                return service.retract_comment("video-1", "viewer-1", comment.id)

            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(retract) for _ in range(workers)]
                results = [future.result() for future in futures]

            assert sum(1 for result in results if result.success) == 1
            tombstones = [
                event
                for event in service.event_log.events("video-1")
                if event.is_retraction and event.payload.comment_id == comment.id
            ]
            assert len(tombstones) == 1

    def test_reply_never_lands_after_retraction(self, service):
        for round_number in range(30):
            comment = service.post_comment(
                "video-1", "viewer-1", "Question?", float(round_number)
            ).event
            barrier = threading.Barrier(2)

            def reply():
                barrier.wait()
                return service.reply_to_comment("video-1", "viewer-2", comment.id, "Answer")

            def retract():
                barrier.wait()
                return service.retract_comment("video-1", "viewer-1", comment.id)

            with ThreadPoolExecutor(max_workers=2) as pool:
                reply_future = pool.submit(reply)
                retract_future = pool.submit(retract)
                reply_result = reply_future.result()
                retract_result = retract_future.result()

            assert retract_result.success
            if reply_result.success:
                assert reply_result.event.id < retract_result.event.id
            else:
                assert reply_result.error_code == FeedbackErrorCode.UNKNOWN_COMMENT
