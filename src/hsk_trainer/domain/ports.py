"""
Ports (interfaces) for vocabulary, progress and score storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
Reads are synchronous snapshots; writes are coroutines so callers can fire
them without waiting.
"""

from abc import ABC, abstractmethod

from .models import HistoryEntry, ReviewState, ScoreRecord, StatsSnapshot, VocabularyItem


class VocabularyStore(ABC):
    """
    Port for the word list.

    Implementations:
        - FileVocabularyStore: JSON or YAML word list on disk.
        - InMemoryVocabularyStore: A fixed list, mostly for tests.
    """

    @abstractmethod
    def load(self) -> list[VocabularyItem]:
        """
        Return the full word list.

        Must not raise: on failure return an empty or fallback list.
        """
        pass


class ReviewStateStore(ABC):
    """Port for per-word spaced-repetition state."""

    @abstractmethod
    def get(self, item_id: str) -> ReviewState | None:
        pass

    @abstractmethod
    def all(self) -> dict[str, ReviewState]:
        pass

    @abstractmethod
    async def put(self, item_id: str, state: ReviewState) -> None:
        """Persist one word's state. Raises PersistenceFailure on error."""
        pass


class StatsStore(ABC):
    """Port for lifetime statistics."""

    @abstractmethod
    def load(self) -> StatsSnapshot | None:
        pass

    @abstractmethod
    async def save(self, snapshot: StatsSnapshot) -> None:
        pass


class HistoryStore(ABC):
    """Port for the practice history log."""

    @abstractmethod
    def load(self) -> list[dict]:
        """Return raw entries; validation happens in the application layer."""
        pass

    @abstractmethod
    async def save(self, entries: list[HistoryEntry]) -> None:
        pass


class ScoreRepository(ABC):
    """Port for matrix-game score records."""

    @abstractmethod
    def next_id(self) -> int:
        pass

    @abstractmethod
    def add(self, record: ScoreRecord) -> None:
        pass

    @abstractmethod
    def list(self) -> list[ScoreRecord]:
        """All records in insertion order."""
        pass
