# Domain Package
from .errors import (
    DataUnavailable,
    EmptySessionPool,
    InsufficientVocabulary,
    InvalidTransition,
    PersistenceFailure,
    TrainerError,
)
from .models import (
    CardPhase,
    EmptySession,
    ExhaustionPolicy,
    Grade,
    HistoryEntry,
    Ordering,
    PracticeCardState,
    ReviewState,
    ScoreRecord,
    SessionComplete,
    SessionMode,
    SessionQueue,
    StatsSnapshot,
    VocabularyItem,
    WordStatus,
)

__all__ = [
    "CardPhase",
    "DataUnavailable",
    "EmptySession",
    "EmptySessionPool",
    "ExhaustionPolicy",
    "Grade",
    "HistoryEntry",
    "InsufficientVocabulary",
    "InvalidTransition",
    "Ordering",
    "PersistenceFailure",
    "PracticeCardState",
    "ReviewState",
    "ScoreRecord",
    "SessionComplete",
    "SessionMode",
    "SessionQueue",
    "StatsSnapshot",
    "TrainerError",
    "VocabularyItem",
    "WordStatus",
]
