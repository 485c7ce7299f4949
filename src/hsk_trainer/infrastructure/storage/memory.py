"""In-memory stores, used for ``storage = "memory"``, the score board and tests."""

import itertools
import threading

from hsk_trainer.domain.models import HistoryEntry, ReviewState, ScoreRecord, StatsSnapshot
from hsk_trainer.domain.ports import HistoryStore, ReviewStateStore, ScoreRepository, StatsStore


class InMemoryReviewStateStore(ReviewStateStore):
    def __init__(self, states: dict[str, ReviewState] | None = None):
        self._states = dict(states or {})

    def get(self, item_id: str) -> ReviewState | None:
        return self._states.get(item_id)

    def all(self) -> dict[str, ReviewState]:
        return dict(self._states)

    async def put(self, item_id: str, state: ReviewState) -> None:
        self._states[item_id] = state


class InMemoryStatsStore(StatsStore):
    def __init__(self, snapshot: StatsSnapshot | None = None):
        self.snapshot = snapshot

    def load(self) -> StatsSnapshot | None:
        return self.snapshot

    async def save(self, snapshot: StatsSnapshot) -> None:
        self.snapshot = snapshot


class InMemoryHistoryStore(HistoryStore):
    def __init__(self):
        self.entries: list[HistoryEntry] = []

    def load(self) -> list[dict]:
        return [e.to_dict() for e in self.entries]

    async def save(self, entries: list[HistoryEntry]) -> None:
        self.entries = list(entries)


class InMemoryScoreRepository(ScoreRepository):
    """Score records for the lifetime of the process."""

    def __init__(self):
        self._records: list[ScoreRecord] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._ids)

    def add(self, record: ScoreRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self) -> list[ScoreRecord]:
        with self._lock:
            return list(self._records)
