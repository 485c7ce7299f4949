"""
Spaced-repetition scheduler.

An SM-2 style calculation: every grade yields a new ReviewState with an
interval, an ease factor and a due date. This is a pure computation module;
persisting the result is the caller's job.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from hsk_trainer.domain import constants
from hsk_trainer.domain.models import Grade, ReviewState, WordStatus


@dataclass(frozen=True)
class SchedulerParams:
    """
    Tunable scheduling parameters.

    The ease deltas and interval multipliers have no authoritative values;
    the defaults follow the classic SM-2 numbers.
    """

    initial_ease: float = constants.DEFAULT_EASE
    min_ease: float = constants.MIN_EASE
    max_ease: float = constants.MAX_EASE
    again_ease_delta: float = constants.AGAIN_EASE_DELTA
    hard_ease_delta: float = constants.HARD_EASE_DELTA
    good_ease_delta: float = constants.GOOD_EASE_DELTA
    easy_ease_delta: float = constants.EASY_EASE_DELTA
    graduating_interval: int = constants.GRADUATING_INTERVAL
    hard_interval_factor: float = constants.HARD_INTERVAL_FACTOR
    easy_bonus: float = constants.EASY_BONUS
    max_interval_days: int = constants.MAX_INTERVAL_DAYS

    def __post_init__(self):
        if self.min_ease < constants.MIN_EASE:
            raise ValueError(f"min_ease must be >= {constants.MIN_EASE}")
        if self.max_ease < self.min_ease:
            raise ValueError("max_ease must be >= min_ease")
        if self.max_interval_days < 1:
            raise ValueError("max_interval_days must be >= 1")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ReviewScheduler:
    """
    Computes the next ReviewState from the current one and a grade.

    Stateless and side-effect free.
    """

    def __init__(self, params: SchedulerParams | None = None):
        self.params = params or SchedulerParams()

    def initial_state(self, now: datetime | None = None) -> ReviewState:
        now = now or datetime.now(timezone.utc)
        return ReviewState(
            ease_factor=self._clamp_ease(self.params.initial_ease),
            interval_days=0,
            repetitions=0,
            due_at=now,
        )

    def calculate_next_review(
        self,
        state: ReviewState | None,
        grade: Grade,
        now: datetime | None = None,
    ) -> ReviewState:
        """
        Apply one review.

        Args:
            state: Current state, or None for a word never reviewed.
            grade: Recall quality.
            now: Review time; defaults to the current UTC time.

        Returns:
            A new ReviewState. The input is never modified.
        """
        now = now or datetime.now(timezone.utc)
        grade = Grade(grade)
        if state is None:
            state = self.initial_state(now)

        p = self.params
        ease = self._clamp_ease(state.ease_factor)
        previous = max(0, state.interval_days)

        if grade is Grade.AGAIN:
            repetitions = 0
            interval = 1
            ease = self._clamp_ease(ease + p.again_ease_delta)
        else:
            interval = self._next_interval(previous, state.repetitions, ease, grade)
            repetitions = state.repetitions + 1
            ease = self._clamp_ease(ease + self._ease_delta(grade))

        interval = min(interval, p.max_interval_days)

        return ReviewState(
            ease_factor=ease,
            interval_days=interval,
            repetitions=repetitions,
            due_at=now + timedelta(days=interval),
            last_reviewed_at=now,
            last_grade=grade,
        )

    def _next_interval(self, previous: int, repetitions: int, ease: float, grade: Grade) -> int:
        # A single data point never earns more than one day.
        if repetitions <= 0:
            return 1

        p = self.params
        if repetitions == 1:
            base = float(p.graduating_interval)
        else:
            base = previous * ease

        if grade is Grade.HARD:
            candidate = previous * p.hard_interval_factor
        elif grade is Grade.EASY:
            candidate = base * p.easy_bonus
        else:
            candidate = base

        return max(previous, 1, _round_half_up(candidate))

    def _ease_delta(self, grade: Grade) -> float:
        p = self.params
        return {
            Grade.AGAIN: p.again_ease_delta,
            Grade.HARD: p.hard_ease_delta,
            Grade.GOOD: p.good_ease_delta,
            Grade.EASY: p.easy_ease_delta,
        }[grade]

    def _clamp_ease(self, ease: float) -> float:
        return round(min(self.params.max_ease, max(self.params.min_ease, ease)), 4)


def review_status(state: ReviewState | None, now: datetime | None = None) -> WordStatus:
    """Summarise a word's review state for display."""
    now = now or datetime.now(timezone.utc)
    if state is None:
        return WordStatus(
            is_new=True,
            is_due=True,
            days_until_due=0,
            repetitions=0,
            ease_factor=constants.DEFAULT_EASE,
            last_grade=None,
        )

    seconds = (state.due_at - now).total_seconds()
    return WordStatus(
        is_new=state.last_reviewed_at is None,
        is_due=state.is_due(now),
        days_until_due=max(0, math.ceil(seconds / constants.SECONDS_PER_DAY)),
        repetitions=state.repetitions,
        ease_factor=state.ease_factor,
        last_grade=state.last_grade,
    )
