"""Running counters of correct/wrong answers and streaks."""

import logging
import time

from hsk_trainer.domain.models import Grade, StatsSnapshot

logger = logging.getLogger(__name__)


class StatsAggregator:
    """
    Accumulates grading events.

    Every counter only grows except ``current_streak``, which drops to 0
    on a wrong answer.
    """

    def __init__(self):
        self._reset_counters()

    @classmethod
    def from_snapshot(cls, snapshot: StatsSnapshot | None) -> "StatsAggregator":
        """Restore from persisted stats, repairing inconsistent counters."""
        agg = cls()
        if snapshot is None:
            return agg

        total = max(0, int(snapshot.total_studied))
        correct = min(total, max(0, int(snapshot.correct_answers)))
        wrong = min(total - correct, max(0, int(snapshot.wrong_answers)))
        streak = min(correct, max(0, int(snapshot.current_streak)))

        agg.total_studied = total
        agg.correct_answers = correct
        agg.wrong_answers = wrong
        agg.current_streak = streak
        agg.best_streak = max(streak, min(correct, max(0, int(snapshot.best_streak))))
        agg.quizzes_completed = max(0, int(snapshot.quizzes_completed))
        agg.last_updated = snapshot.last_updated
        return agg

    def record(self, grade: Grade) -> None:
        self.record_known(Grade(grade).is_success)

    def record_known(self, correct: bool) -> None:
        self.total_studied += 1
        if correct:
            self.correct_answers += 1
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.wrong_answers += 1
            self.current_streak = 0
        self._touch()

    def record_quiz_completed(self) -> None:
        self.quizzes_completed += 1
        self._touch()

    def reset(self) -> None:
        logger.info("Statistics reset")
        self._reset_counters()
        self._touch()

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            total_studied=self.total_studied,
            correct_answers=self.correct_answers,
            wrong_answers=self.wrong_answers,
            current_streak=self.current_streak,
            best_streak=self.best_streak,
            quizzes_completed=self.quizzes_completed,
            last_updated=self.last_updated,
        )

    @property
    def accuracy(self) -> float:
        return self.snapshot().accuracy

    def _reset_counters(self) -> None:
        self.total_studied = 0
        self.correct_answers = 0
        self.wrong_answers = 0
        self.current_streak = 0
        self.best_streak = 0
        self.quizzes_completed = 0
        self.last_updated: int | None = None

    def _touch(self) -> None:
        self.last_updated = int(time.time() * 1000)
