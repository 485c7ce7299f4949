"""
Practice history and derived progress metrics.

The history is a bounded log of graded cards and quiz answers; the
calculator derives per-level progress and summary figures from it.
This is a pure computation module with no I/O.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from hsk_trainer.domain.constants import (
    HISTORY_LIMIT,
    HSK_LEVELS,
    SECONDS_PER_HISTORY_ENTRY,
)
from hsk_trainer.domain.models import Grade, HistoryEntry, StatsSnapshot, VocabularyItem

logger = logging.getLogger(__name__)


class PracticeHistory:
    """Newest-last log of practice events, trimmed to ``limit`` entries."""

    def __init__(self, entries: list[HistoryEntry] | None = None, limit: int = HISTORY_LIMIT):
        self.limit = limit
        self._entries: list[HistoryEntry] = list(entries or [])[-limit:]

    @classmethod
    def from_raw(cls, raw: Any, limit: int = HISTORY_LIMIT) -> "PracticeHistory":
        """Build from stored dicts, dropping entries that fail validation."""
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("Practice history is not a list, resetting")
            return cls(limit=limit)

        entries = [e for e in (_parse_entry(r) for r in raw) if e is not None]
        dropped = len(raw) - len(entries)
        if dropped:
            logger.warning(f"Dropped {dropped} malformed history entries")
        entries.sort(key=lambda e: e.timestamp)
        return cls(entries, limit=limit)

    def record(
        self,
        item: VocabularyItem,
        known: bool,
        session_id: str,
        mode: str = "practice",
        grade: Grade | None = None,
        timestamp: int | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            item_id=item.id,
            character=item.character,
            pinyin=item.pinyin,
            translation=item.translation,
            hsk_level=item.hsk_level,
            known=known,
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
            session_id=session_id,
            mode=mode,
            grade=grade,
        )
        self._entries.append(entry)
        if len(self._entries) > self.limit:
            self._entries = self._entries[-self.limit :]
        return entry

    def clear(self) -> None:
        self._entries = []

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self._entries]


def _parse_entry(raw: Any) -> HistoryEntry | None:
    if not isinstance(raw, dict):
        return None
    word = raw.get("word")
    known = raw.get("known")
    timestamp = raw.get("timestamp")
    if not isinstance(word, dict) or not word.get("character"):
        return None
    if not isinstance(known, bool):
        return None
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        return None

    grade = raw.get("grade")
    try:
        grade = Grade(grade) if grade else None
    except ValueError:
        grade = None

    character = str(word["character"])
    pinyin = str(word.get("pinyin") or "")
    return HistoryEntry(
        item_id=str(word.get("id") or f"{character}_{pinyin}"),
        character=character,
        pinyin=pinyin,
        translation=str(word.get("translation") or word.get("english") or ""),
        hsk_level=int(word.get("level") or 1),
        known=known,
        timestamp=timestamp,
        session_id=str(raw.get("sessionId") or timestamp),
        mode=str(raw.get("mode") or "practice"),
        grade=grade,
    )


@dataclass(frozen=True)
class LevelProgress:
    level: int
    known_words: int
    total_words: int

    @property
    def percent(self) -> float:
        if self.total_words == 0:
            return 0.0
        return self.known_words / self.total_words * 100


@dataclass(frozen=True)
class ProgressReport:
    stats: StatsSnapshot
    unique_words: int
    history_best_streak: int
    study_time: str
    levels: list[LevelProgress]


class ProgressCalculator:
    """
    Derives progress figures from history and vocabulary.

    Stateless and side-effect free.
    """

    def unique_studied_words(self, history: PracticeHistory) -> list[str]:
        return list(dict.fromkeys(e.character for e in history.entries))

    def best_streak(self, history: PracticeHistory) -> int:
        best = current = 0
        for entry in history.entries:
            if entry.known:
                current += 1
                best = max(best, current)
            else:
                current = 0
        return best

    def estimated_study_time(self, history: PracticeHistory) -> str:
        total_minutes = int(len(history) * SECONDS_PER_HISTORY_ENTRY / 60 + 0.5)
        if total_minutes < 60:
            return f"{total_minutes}m"
        return f"{total_minutes // 60}h {total_minutes % 60}m"

    def level_progress(
        self, vocabulary: list[VocabularyItem], history: PracticeHistory
    ) -> list[LevelProgress]:
        """
        Share of each level's words answered correctly at least once.

        Levels with no words are skipped.
        """
        result = []
        for level in HSK_LEVELS:
            characters = {w.character for w in vocabulary if w.hsk_level == level}
            if not characters:
                continue
            known = {
                e.character
                for e in history.entries
                if e.known and e.hsk_level == level and e.character in characters
            }
            result.append(
                LevelProgress(level=level, known_words=len(known), total_words=len(characters))
            )
        return result

    def report(
        self,
        stats: StatsSnapshot,
        history: PracticeHistory,
        vocabulary: list[VocabularyItem],
    ) -> ProgressReport:
        return ProgressReport(
            stats=stats,
            unique_words=len(self.unique_studied_words(history)),
            history_best_streak=self.best_streak(history),
            study_time=self.estimated_study_time(history),
            levels=self.level_progress(vocabulary, history),
        )
