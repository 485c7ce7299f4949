from datetime import timedelta

import pytest

from hsk_trainer.application.sequencer import SessionSequencer, prioritize, progress
from hsk_trainer.domain.models import (
    EmptySession,
    ExhaustionPolicy,
    Ordering,
    ReviewState,
    SessionComplete,
    SessionMode,
    SessionQueue,
)
from hsk_trainer.infrastructure.storage import InMemoryReviewStateStore


@pytest.fixture
def sequencer(review_store, rng):
    return SessionSequencer(review_store=review_store, rng=rng)


def future_states(pool, now):
    return {
        w.id: ReviewState(interval_days=3, repetitions=1, due_at=now + timedelta(days=3))
        for w in pool
    }


class TestBuildSession:
    def test_level_filter_keeps_only_matching_words(self, sequencer, pool, now):
        queue = sequencer.build_session(pool, filter_level=1, now=now)
        assert isinstance(queue, SessionQueue)
        assert {w.character for w in queue.items} == {"A", "B"}
        assert queue.cursor == 0

    def test_no_filter_keeps_everything(self, sequencer, pool, now):
        queue = sequencer.build_session(pool, now=now)
        assert len(queue) == 3

    def test_due_only_with_everything_scheduled_in_future_is_empty(self, pool, now, rng):
        store = InMemoryReviewStateStore(future_states(pool, now))
        sequencer = SessionSequencer(review_store=store, rng=rng)
        result = sequencer.build_session(pool, mode=SessionMode.DUE_ONLY, now=now)
        assert result == EmptySession(mode=SessionMode.DUE_ONLY, filter_level=None)

    def test_due_only_keeps_new_and_overdue(self, pool, now, rng):
        states = future_states(pool[:1], now)
        states[pool[1].id] = ReviewState(due_at=now - timedelta(hours=1))
        sequencer = SessionSequencer(review_store=InMemoryReviewStateStore(states), rng=rng)
        queue = sequencer.build_session(pool, mode=SessionMode.DUE_ONLY, now=now)
        assert {w.character for w in queue.items} == {"B", "C"}

    def test_unknown_level_is_empty(self, sequencer, pool, now):
        result = sequencer.build_session(pool, filter_level=5, now=now)
        assert isinstance(result, EmptySession)
        assert result.filter_level == 5

    def test_empty_pool_is_empty(self, sequencer, now):
        assert isinstance(sequencer.build_session([], now=now), EmptySession)

    def test_shuffle_does_not_touch_pool(self, sequencer, big_pool, now):
        original = list(big_pool)
        sequencer.build_session(big_pool, now=now)
        assert big_pool == original

    def test_priority_ordering(self, pool, now, rng):
        states = {
            pool[0].id: ReviewState(ease_factor=2.5, due_at=now - timedelta(days=1)),
            pool[1].id: ReviewState(ease_factor=2.5, due_at=now - timedelta(days=5)),
        }
        sequencer = SessionSequencer(
            review_store=InMemoryReviewStateStore(states), ordering=Ordering.PRIORITY, rng=rng
        )
        queue = sequencer.build_session(pool, now=now)
        # C is new, B is most overdue
        assert [w.character for w in queue.items] == ["C", "B", "A"]

    def test_store_failure_treats_words_as_new(self, pool, now, rng):
        class BrokenStore(InMemoryReviewStateStore):
            def all(self):
                raise OSError("disk gone")

        sequencer = SessionSequencer(review_store=BrokenStore(), rng=rng)
        queue = sequencer.build_session(pool, mode=SessionMode.DUE_ONLY, now=now)
        assert len(queue) == 3


class TestAdvance:
    def test_finish_policy_completes_after_every_word(self, sequencer, pool, now):
        queue = sequencer.build_session(
            pool, filter_level=1, exhaustion=ExhaustionPolicy.FINISH, now=now
        )
        seen = {sequencer.advance(queue).character, sequencer.advance(queue).character}
        assert seen == {"A", "B"}
        assert sequencer.advance(queue) == SessionComplete(reviewed=2)
        # Stays complete
        assert isinstance(sequencer.advance(queue), SessionComplete)

    def test_wrap_policy_restarts_from_first_word(self, sequencer, pool, now):
        queue = sequencer.build_session(pool, filter_level=1, now=now)
        first = sequencer.advance(queue)
        sequencer.advance(queue)
        assert queue.exhausted
        assert sequencer.advance(queue) == first
        assert queue.cursor == 1

    def test_every_word_once_per_pass(self, sequencer, big_pool, now):
        queue = sequencer.build_session(big_pool, now=now)
        presented = [sequencer.advance(queue) for _ in range(len(big_pool))]
        assert sorted(w.id for w in presented) == sorted(w.id for w in big_pool)

    def test_restart(self, sequencer, pool, now):
        queue = sequencer.build_session(pool, now=now)
        sequencer.advance(queue)
        sequencer.restart(queue)
        assert queue.cursor == 0

    def test_progress(self, sequencer, pool, now):
        queue = sequencer.build_session(pool, filter_level=1, now=now)
        assert progress(queue) == 0.0
        sequencer.advance(queue)
        assert progress(queue) == 0.5


def test_due_items(pool, now):
    states = future_states(pool[:2], now)
    sequencer = SessionSequencer(review_store=InMemoryReviewStateStore(states))
    assert [w.character for w in sequencer.due_items(pool, now)] == ["C"]


def test_prioritize_breaks_ties_by_lowest_ease(pool, now):
    states = {
        pool[0].id: ReviewState(ease_factor=2.5, due_at=now),
        pool[1].id: ReviewState(ease_factor=1.8, due_at=now),
        pool[2].id: ReviewState(ease_factor=2.1, due_at=now),
    }
    assert [w.character for w in prioritize(pool, states, now)] == ["B", "C", "A"]
