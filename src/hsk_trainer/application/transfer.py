"""Export and import of learner progress as a single JSON document."""

from datetime import datetime, timezone
from typing import Any

from hsk_trainer.application.stats.aggregator import StatsAggregator
from hsk_trainer.application.stats.progress import PracticeHistory
from hsk_trainer.consts import EXPORT_FORMAT_VERSION
from hsk_trainer.domain.constants import HISTORY_LIMIT
from hsk_trainer.domain.errors import DataUnavailable
from hsk_trainer.domain.models import StatsSnapshot


def export_progress(stats: StatsAggregator, history: PracticeHistory) -> dict[str, Any]:
    return {
        "stats": stats.snapshot().to_dict(),
        "practiceHistory": history.to_dicts(),
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "version": EXPORT_FORMAT_VERSION,
    }


def snapshot_from_dict(data: dict[str, Any]) -> StatsSnapshot:
    def count(key: str) -> int:
        try:
            return max(0, int(data.get(key) or 0))
        except (TypeError, ValueError):
            return 0

    last = data.get("lastUpdated")
    return StatsSnapshot(
        total_studied=count("totalStudied"),
        correct_answers=count("correctAnswers"),
        wrong_answers=count("wrongAnswers"),
        current_streak=count("currentStreak"),
        best_streak=count("bestStreak"),
        quizzes_completed=count("quizzesCompleted"),
        last_updated=last if isinstance(last, int) else None,
    )


def import_progress(
    payload: Any, history_limit: int = HISTORY_LIMIT
) -> tuple[StatsAggregator, PracticeHistory]:
    """
    Validate an exported document.

    Raises:
        DataUnavailable: If the document lacks stats or history.
    """
    if not isinstance(payload, dict):
        raise DataUnavailable("Import file is not a JSON object")
    stats = payload.get("stats")
    history = payload.get("practiceHistory")
    if not isinstance(stats, dict) or history is None:
        raise DataUnavailable("Invalid import file format: expected stats and practiceHistory")

    aggregator = StatsAggregator.from_snapshot(snapshot_from_dict(stats))
    return aggregator, PracticeHistory.from_raw(history, limit=history_limit)
