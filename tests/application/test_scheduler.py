from datetime import timedelta

import pytest

from hsk_trainer.application.scheduler import ReviewScheduler, SchedulerParams, review_status
from hsk_trainer.domain.models import Grade, ReviewState


@pytest.fixture
def scheduler():
    return ReviewScheduler()


def review_many(scheduler, grades, now, state=None):
    states = []
    for i, grade in enumerate(grades):
        state = scheduler.calculate_next_review(state, grade, now + timedelta(days=i))
        states.append(state)
    return states


class TestAgain:
    @pytest.mark.parametrize(
        "prior",
        [
            None,
            ReviewState(ease_factor=2.5, interval_days=15, repetitions=3),
            ReviewState(ease_factor=1.3, interval_days=400, repetitions=12),
            ReviewState(ease_factor=3.0, interval_days=1, repetitions=1),
        ],
    )
    def test_again_resets_repetitions_and_interval(self, scheduler, now, prior):
        result = scheduler.calculate_next_review(prior, Grade.AGAIN, now)
        assert result.repetitions == 0
        assert result.interval_days == 1
        assert result.due_at == now + timedelta(days=1)

    def test_again_lowers_ease_but_not_below_floor(self, scheduler, now):
        result = scheduler.calculate_next_review(
            ReviewState(ease_factor=1.35, interval_days=6, repetitions=2), Grade.AGAIN, now
        )
        assert result.ease_factor == 1.3

        result = scheduler.calculate_next_review(None, Grade.AGAIN, now)
        assert result.ease_factor == pytest.approx(2.3)


class TestSuccessfulReviews:
    def test_new_item_graded_good(self, scheduler, now):
        result = scheduler.calculate_next_review(None, Grade.GOOD, now)
        assert result.repetitions == 1
        assert result.interval_days == 1
        assert result.due_at == now + timedelta(days=1)
        assert result.last_reviewed_at == now
        assert result.last_grade is Grade.GOOD

    def test_good_progression(self, scheduler, now):
        states = review_many(scheduler, [Grade.GOOD] * 3, now)
        assert [s.interval_days for s in states] == [1, 6, 15]
        assert [s.repetitions for s in states] == [1, 2, 3]

    def test_easy_grows_faster_than_good(self, scheduler, now):
        good = review_many(scheduler, [Grade.GOOD, Grade.GOOD], now)[-1]
        easy = review_many(scheduler, [Grade.EASY, Grade.EASY], now)[-1]
        assert easy.interval_days > good.interval_days
        assert easy.ease_factor > good.ease_factor

    def test_hard_lowers_ease(self, scheduler, now):
        result = scheduler.calculate_next_review(None, Grade.HARD, now)
        assert result.ease_factor == pytest.approx(2.35)
        assert result.interval_days == 1

    @pytest.mark.parametrize(
        "grades",
        [
            [Grade.GOOD] * 8,
            [Grade.HARD] * 8,
            [Grade.EASY] * 8,
            [Grade.GOOD, Grade.HARD, Grade.EASY, Grade.HARD, Grade.GOOD, Grade.HARD],
            [Grade.HARD, Grade.HARD, Grade.EASY, Grade.EASY, Grade.HARD, Grade.GOOD],
        ],
    )
    def test_interval_never_shrinks_and_ease_stays_bounded(self, scheduler, now, grades):
        params = scheduler.params
        states = review_many(scheduler, grades, now)
        intervals = [s.interval_days for s in states]
        assert intervals == sorted(intervals)
        for s in states:
            assert params.min_ease <= s.ease_factor <= params.max_ease

    def test_ease_capped_at_ceiling(self, now):
        scheduler = ReviewScheduler(SchedulerParams(max_ease=2.6))
        states = review_many(scheduler, [Grade.EASY] * 4, now)
        assert states[-1].ease_factor == 2.6

    def test_interval_capped(self, now):
        scheduler = ReviewScheduler(SchedulerParams(max_interval_days=30))
        states = review_many(scheduler, [Grade.EASY] * 6, now)
        assert states[-1].interval_days == 30

    def test_input_state_is_not_modified(self, scheduler, now):
        state = ReviewState(ease_factor=2.5, interval_days=6, repetitions=2, due_at=now)
        scheduler.calculate_next_review(state, Grade.GOOD, now)
        assert state.interval_days == 6
        assert state.repetitions == 2


class TestParams:
    def test_min_ease_below_floor_rejected(self):
        with pytest.raises(ValueError):
            SchedulerParams(min_ease=1.0)

    def test_max_below_min_rejected(self):
        with pytest.raises(ValueError):
            SchedulerParams(min_ease=2.0, max_ease=1.5)

    def test_custom_graduating_interval(self, now):
        scheduler = ReviewScheduler(SchedulerParams(graduating_interval=4))
        states = review_many(scheduler, [Grade.GOOD, Grade.GOOD], now)
        assert states[-1].interval_days == 4


def test_review_status_for_new_word(now):
    status = review_status(None, now)
    assert status.is_new is True
    assert status.is_due is True
    assert status.days_until_due == 0


def test_review_status_for_scheduled_word(scheduler, now):
    state = review_many(scheduler, [Grade.GOOD, Grade.GOOD], now)[-1]
    status = review_status(state, now)
    assert status.is_new is False
    assert status.is_due is False
    assert status.days_until_due == 7
    assert status.repetitions == 2
