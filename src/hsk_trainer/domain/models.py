"""
Domain models for vocabulary practice.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .constants import DEFAULT_EASE


def to_epoch_ms(moment: datetime | None) -> int | None:
    if moment is None:
        return None
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class Grade(str, Enum):
    """Recall quality reported for a card."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def from_known(cls, known: bool) -> "Grade":
        """Map the binary know / don't-know buttons onto the grade scale."""
        return cls.GOOD if known else cls.AGAIN

    @property
    def is_success(self) -> bool:
        return self in (Grade.GOOD, Grade.EASY)


class SessionMode(str, Enum):
    ALL = "all"
    DUE_ONLY = "due_only"


class ExhaustionPolicy(str, Enum):
    """What happens when the cursor reaches the end of the queue."""

    WRAP = "wrap"  # practise indefinitely
    FINISH = "finish"  # fixed session


class Ordering(str, Enum):
    SHUFFLE = "shuffle"
    PRIORITY = "priority"


class CardPhase(str, Enum):
    HIDDEN = "hidden"
    REVEALED = "revealed"
    GRADED = "graded"


@dataclass(frozen=True)
class VocabularyItem:
    """
    A single HSK word.

    Attributes:
        id: Stable key, ``"<character>_<pinyin>"`` unless the source provides one.
        character: Hanzi form.
        pinyin: Tone-marked romanisation.
        translations: One or more meanings.
        hsk_level: HSK level 1-6.
    """

    id: str
    character: str
    pinyin: str
    translations: tuple[str, ...]
    hsk_level: int

    @property
    def translation(self) -> str:
        return ", ".join(self.translations)


@dataclass(frozen=True)
class ReviewState:
    """
    Spaced-repetition state of one word for one learner.

    Attributes:
        ease_factor: Interval growth multiplier, never below 1.3.
        interval_days: Days between the last review and the next one.
        repetitions: Consecutive successful reviews.
        due_at: When the word should be reviewed next.
        last_reviewed_at: When it was last graded (None if never).
        last_grade: The grade of the last review.
    """

    ease_factor: float = DEFAULT_EASE
    interval_days: int = 0
    repetitions: int = 0
    due_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_reviewed_at: datetime | None = None
    last_grade: Grade | None = None

    def is_due(self, now: datetime) -> bool:
        return self.due_at <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "easeFactor": self.ease_factor,
            "interval": self.interval_days,
            "repetitions": self.repetitions,
            "nextReview": to_epoch_ms(self.due_at),
            "lastReviewed": to_epoch_ms(self.last_reviewed_at),
            "performance": self.last_grade.value if self.last_grade else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewState":
        grade = data.get("performance")
        due_at = from_epoch_ms(data.get("nextReview"))
        return cls(
            ease_factor=float(data.get("easeFactor", DEFAULT_EASE)),
            interval_days=int(data.get("interval", 0)),
            repetitions=int(data.get("repetitions", 0)),
            due_at=due_at or datetime.now(timezone.utc),
            last_reviewed_at=from_epoch_ms(data.get("lastReviewed")),
            last_grade=Grade(grade) if grade else None,
        )


@dataclass(frozen=True)
class WordStatus:
    """Review status of a word, as shown next to it in listings."""

    is_new: bool
    is_due: bool
    days_until_due: int
    repetitions: int
    ease_factor: float
    last_grade: Grade | None


@dataclass
class SessionQueue:
    """
    Ordered words for one practice run plus a cursor.

    Invariant: ``0 <= cursor <= len(items)``; ``cursor == len(items)``
    means the queue is exhausted.
    """

    items: list[VocabularyItem]
    mode: SessionMode = SessionMode.ALL
    filter_level: int | None = None
    exhaustion: ExhaustionPolicy = ExhaustionPolicy.WRAP
    cursor: int = 0

    def __len__(self) -> int:
        return len(self.items)

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.items)


@dataclass(frozen=True)
class EmptySession:
    """The filter matched no words, so no session could be built."""

    mode: SessionMode
    filter_level: int | None


@dataclass(frozen=True)
class SessionComplete:
    """A fixed session ran out of words."""

    reviewed: int


@dataclass
class PracticeCardState:
    current_item: VocabularyItem | None = None
    revealed: bool = False
    grade: Grade | None = None

    @property
    def phase(self) -> CardPhase:
        if self.grade is not None:
            return CardPhase.GRADED
        if self.revealed:
            return CardPhase.REVEALED
        return CardPhase.HIDDEN


@dataclass(frozen=True)
class StatsSnapshot:
    total_studied: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    current_streak: int = 0
    best_streak: int = 0
    quizzes_completed: int = 0
    last_updated: int | None = None  # epoch ms

    @property
    def accuracy(self) -> float:
        if self.total_studied == 0:
            return 0.0
        return self.correct_answers / self.total_studied

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalStudied": self.total_studied,
            "correctAnswers": self.correct_answers,
            "wrongAnswers": self.wrong_answers,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "quizzesCompleted": self.quizzes_completed,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """One graded card or answered quiz question."""

    item_id: str
    character: str
    pinyin: str
    translation: str
    hsk_level: int
    known: bool
    timestamp: int  # epoch ms
    session_id: str
    mode: str = "practice"
    grade: Grade | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": {
                "id": self.item_id,
                "character": self.character,
                "pinyin": self.pinyin,
                "translation": self.translation,
                "level": self.hsk_level,
            },
            "known": self.known,
            "grade": self.grade.value if self.grade else None,
            "mode": self.mode,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class ScoreRecord:
    """One finished matrix-game round."""

    id: int
    user_id: str
    user_name: str
    score: int
    hsk_level: int
    difficulty: str
    correct_answers: int = 0
    wrong_answers: int = 0
    accuracy: float = 0
    max_streak: int = 0
    avg_response_time: float = 0
    total_time: float = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "userName": self.user_name,
            "score": self.score,
            "hskLevel": self.hsk_level,
            "difficulty": self.difficulty,
            "correctAnswers": self.correct_answers,
            "wrongAnswers": self.wrong_answers,
            "accuracy": self.accuracy,
            "maxStreak": self.max_streak,
            "avgResponseTime": self.avg_response_time,
            "totalTime": self.total_time,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreRecord":
        return cls(
            id=int(data["id"]),
            user_id=str(data["userId"]),
            user_name=str(data["userName"]),
            score=int(data["score"]),
            hsk_level=int(data["hskLevel"]),
            difficulty=str(data["difficulty"]),
            correct_answers=int(data.get("correctAnswers", 0)),
            wrong_answers=int(data.get("wrongAnswers", 0)),
            accuracy=float(data.get("accuracy", 0)),
            max_streak=int(data.get("maxStreak", 0)),
            avg_response_time=float(data.get("avgResponseTime", 0)),
            total_time=float(data.get("totalTime", 0)),
            created_at=datetime.fromisoformat(data["createdAt"]),
        )
