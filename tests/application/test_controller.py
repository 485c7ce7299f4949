import threading
from datetime import timedelta

import pytest

from hsk_trainer.application.controller import (
    CARD_LOADED,
    ERROR,
    GRADED,
    REVEALED,
    SESSION_COMPLETE,
    SESSION_EMPTY,
    WARNING,
    PracticeController,
)
from hsk_trainer.application.scheduler import ReviewScheduler
from hsk_trainer.application.sequencer import SessionSequencer
from hsk_trainer.domain.errors import InvalidTransition, PersistenceFailure
from hsk_trainer.domain.models import (
    CardPhase,
    EmptySession,
    ExhaustionPolicy,
    Grade,
    SessionComplete,
)
from hsk_trainer.infrastructure.storage import InMemoryReviewStateStore


@pytest.fixture
def controller(review_store, stats_store, history_store, rng, clock):
    return PracticeController(
        sequencer=SessionSequencer(review_store=review_store, rng=rng),
        scheduler=ReviewScheduler(),
        review_store=review_store,
        stats_store=stats_store,
        history_store=history_store,
        clock=clock,
    )


@pytest.fixture
def events(controller):
    received = []
    controller.subscribe(received.append)
    return received


def kinds(events):
    return [e.kind for e in events]


class TestTransitions:
    def test_reveal_grade_advance_cycle(self, controller, events, pool, review_store, now):
        controller.start(pool, filter_level=1)
        item = controller.current_item
        assert controller.phase is CardPhase.HIDDEN

        assert controller.reveal() is True
        assert controller.phase is CardPhase.REVEALED
        assert controller.grade(Grade.GOOD) is True
        assert controller.phase is CardPhase.GRADED
        assert controller.advance_to_next() is True
        assert controller.phase is CardPhase.HIDDEN
        assert controller.current_item != item

        assert kinds(events) == [CARD_LOADED, REVEALED, GRADED, CARD_LOADED]
        assert controller.wait_for_writes(timeout=5)
        state = review_store.get(item.id)
        assert state.repetitions == 1
        assert state.interval_days == 1
        assert state.due_at == now + timedelta(days=1)

    def test_graded_event_carries_new_state(self, controller, events, pool):
        controller.start(pool)
        controller.reveal()
        controller.grade(Grade.EASY)
        graded = events[-1]
        assert graded.kind == GRADED
        assert graded.review_state.last_grade is Grade.EASY
        assert graded.card.grade is Grade.EASY

    def test_second_grade_is_rejected(self, controller, events, pool, stats_store):
        controller.start(pool)
        controller.reveal()
        assert controller.grade(Grade.GOOD) is True
        assert controller.grade(Grade.AGAIN) is False

        assert controller.stats.total_studied == 1
        assert controller.stats.correct_answers == 1
        assert controller.wait_for_writes(timeout=5)
        assert stats_store.snapshot.total_studied == 1
        assert events[-1].kind == ERROR
        assert isinstance(events[-1].error, InvalidTransition)

    def test_grade_without_reveal_is_rejected(
        self, controller, events, pool, review_store, stats_store, history_store
    ):
        controller.start(pool)
        assert controller.grade(Grade.GOOD) is False

        assert review_store.all() == {}
        assert stats_store.snapshot is None
        assert history_store.entries == []
        assert controller.stats.total_studied == 0
        assert controller.phase is CardPhase.HIDDEN
        assert events[-1].kind == ERROR
        assert events[-1].error.action == "grade"

    def test_reveal_twice_is_rejected(self, controller, pool):
        controller.start(pool)
        assert controller.reveal() is True
        assert controller.reveal() is False
        assert controller.phase is CardPhase.REVEALED

    def test_advance_before_grading_is_rejected(self, controller, pool):
        controller.start(pool)
        item = controller.current_item
        assert controller.advance_to_next() is False
        controller.reveal()
        assert controller.advance_to_next() is False
        assert controller.current_item == item

    def test_actions_before_start_are_rejected(self, controller, events):
        assert controller.reveal() is False
        assert "not loaded" in str(events[-1].error)
        assert not controller.can_reveal
        assert not controller.can_grade
        assert not controller.can_advance


class TestSessionLifecycle:
    def test_empty_session(self, controller, events, pool):
        result = controller.start(pool, filter_level=4)
        assert isinstance(result, EmptySession)
        assert controller.outcome == result
        assert controller.current_item is None
        assert kinds(events) == [SESSION_EMPTY]

    def test_finish_policy_completes(self, controller, events, pool):
        controller.start(pool, filter_level=1, exhaustion=ExhaustionPolicy.FINISH)
        for _ in range(2):
            controller.reveal()
            controller.grade(Grade.GOOD)
            controller.advance_to_next()

        assert controller.outcome == SessionComplete(reviewed=2)
        assert controller.current_item is None
        assert events[-1].kind == SESSION_COMPLETE
        assert controller.reveal() is False

    def test_wrap_policy_keeps_going(self, controller, pool):
        controller.start(pool, filter_level=1)
        for _ in range(5):
            controller.reveal()
            controller.grade(Grade.GOOD)
            assert controller.advance_to_next() is True
        assert controller.current_item is not None
        assert controller.outcome is None

    def test_change_filter_discards_card(self, controller, pool):
        controller.start(pool, filter_level=1)
        controller.reveal()
        controller.change_filter(filter_level=2)
        assert controller.phase is CardPhase.HIDDEN
        assert controller.current_item.character == "C"
        assert len(controller.queue) == 1

    def test_restart_resets_session_stats(self, controller, pool):
        controller.start(pool)
        controller.reveal()
        controller.grade(Grade.GOOD)
        first_session = controller.session_id

        controller.start(pool)
        assert controller.session_stats.total_studied == 0
        assert controller.stats.total_studied == 1
        assert controller.session_id != first_session


class TestRecording:
    def test_mark_known_false_is_again(self, controller, pool):
        controller.start(pool)
        controller.reveal()
        controller.mark_known(False)
        assert controller.card.grade is Grade.AGAIN
        assert controller.stats.wrong_answers == 1

    def test_history_recorded(self, controller, pool, history_store):
        controller.start(pool)
        item = controller.current_item
        controller.reveal()
        controller.grade(Grade.HARD)
        controller.wait_for_writes(timeout=5)

        [entry] = history_store.entries
        assert entry.item_id == item.id
        assert entry.known is False
        assert entry.grade is Grade.HARD
        assert entry.session_id == controller.session_id

    def test_write_failure_becomes_warning(self, stats_store, pool, rng, clock):
        class FailingStore(InMemoryReviewStateStore):
            async def put(self, item_id, state):
                raise PersistenceFailure("read-only filesystem")

        store = FailingStore()
        controller = PracticeController(
            sequencer=SessionSequencer(review_store=store, rng=rng),
            scheduler=ReviewScheduler(),
            review_store=store,
            stats_store=stats_store,
            clock=clock,
        )
        received = []
        controller.subscribe(received.append)
        controller.start(pool)
        controller.reveal()

        assert controller.grade(Grade.GOOD) is True
        controller.wait_for_writes(timeout=5)
        warnings = [e for e in received if e.kind == WARNING]
        assert len(warnings) == 1
        assert isinstance(warnings[0].error, PersistenceFailure)
        assert controller.phase is CardPhase.GRADED
        assert controller.stats.total_studied == 1
        assert controller.advance_to_next() is True

    def test_failing_listener_does_not_break_controller(self, controller, pool):
        def broken(event):
            raise RuntimeError("render failed")

        controller.subscribe(broken)
        controller.start(pool)
        assert controller.reveal() is True

    def test_unsubscribe(self, controller, pool):
        received = []
        unsubscribe = controller.subscribe(received.append)
        unsubscribe()
        controller.start(pool)
        assert received == []


class TestInsideEventLoop:
    @pytest.mark.asyncio
    async def test_writes_are_scheduled_then_flushed(self, controller, pool, review_store):
        controller.start(pool)
        item = controller.current_item
        controller.reveal()
        controller.grade(Grade.GOOD)

        assert controller.pending_writes > 0
        await controller.flush()
        assert controller.pending_writes == 0
        assert review_store.get(item.id).repetitions == 1

    @pytest.mark.asyncio
    async def test_regrade_before_write_lands_uses_latest_state(
        self, controller, pool, review_store
    ):
        word = pool[2]
        controller.start([word])
        for _ in range(2):
            controller.reveal()
            controller.grade(Grade.GOOD)
            controller.advance_to_next()

        await controller.flush()
        state = review_store.get(word.id)
        assert state.repetitions == 2
        assert state.interval_days == 6


class TestWithoutEventLoop:
    def test_grade_does_not_wait_for_slow_store(self, stats_store, pool, rng, clock):
        release = threading.Event()

        class HungStore(InMemoryReviewStateStore):
            async def put(self, item_id, state):
                release.wait(timeout=5)
                await super().put(item_id, state)

        store = HungStore()
        controller = PracticeController(
            sequencer=SessionSequencer(review_store=store, rng=rng),
            scheduler=ReviewScheduler(),
            review_store=store,
            stats_store=stats_store,
            clock=clock,
        )
        controller.start(pool, filter_level=1)
        item = controller.current_item
        controller.reveal()

        assert controller.grade(Grade.GOOD) is True
        assert controller.phase is CardPhase.GRADED
        assert controller.pending_writes > 0
        assert store.get(item.id) is None
        assert controller.advance_to_next() is True

        release.set()
        assert controller.wait_for_writes(timeout=5) is True
        assert controller.pending_writes == 0
        assert store.get(item.id).repetitions == 1
