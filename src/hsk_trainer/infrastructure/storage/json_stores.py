"""
JSON file stores for review state, statistics and practice history.

Each store owns one file under the data directory. Reads are served from
an in-memory copy loaded on first use; writes update that copy first and
then rewrite the file atomically, so a failed write never loses progress
for the running process.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from hsk_trainer.application.transfer import snapshot_from_dict
from hsk_trainer.domain.constants import (
    HISTORY_FILE,
    REVIEW_STATE_FILE,
    SCORES_FILE,
    STATS_FILE,
)
from hsk_trainer.domain.errors import PersistenceFailure
from hsk_trainer.domain.models import HistoryEntry, ReviewState, ScoreRecord, StatsSnapshot
from hsk_trainer.domain.ports import HistoryStore, ReviewStateStore, ScoreRepository, StatsStore

logger = logging.getLogger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """Return the parsed file, or ``default`` when it is missing or corrupt."""
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read {path}, starting empty: {e}")
        return default


def write_json(path: Path, data: Any) -> None:
    """
    Atomically replace ``path`` with ``data``.

    Raises:
        PersistenceFailure: On any filesystem error.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PersistenceFailure(f"Could not write {path}: {e}") from e


class JsonReviewStateStore(ReviewStateStore):
    def __init__(self, data_dir: Path):
        self.path = data_dir / REVIEW_STATE_FILE
        self._states: dict[str, ReviewState] | None = None

    def get(self, item_id: str) -> ReviewState | None:
        return self._load().get(item_id)

    def all(self) -> dict[str, ReviewState]:
        return dict(self._load())

    async def put(self, item_id: str, state: ReviewState) -> None:
        states = self._load()
        states[item_id] = state
        write_json(self.path, {k: v.to_dict() for k, v in states.items()})

    def _load(self) -> dict[str, ReviewState]:
        if self._states is None:
            raw = read_json(self.path, {})
            self._states = {}
            if isinstance(raw, dict):
                for key, value in raw.items():
                    try:
                        self._states[key] = ReviewState.from_dict(value)
                    except (TypeError, ValueError, AttributeError) as e:
                        logger.warning(f"Skipping corrupt review state for {key}: {e}")
        return self._states


class JsonStatsStore(StatsStore):
    def __init__(self, data_dir: Path):
        self.path = data_dir / STATS_FILE

    def load(self) -> StatsSnapshot | None:
        raw = read_json(self.path, None)
        if not isinstance(raw, dict):
            return None
        return snapshot_from_dict(raw)

    async def save(self, snapshot: StatsSnapshot) -> None:
        write_json(self.path, snapshot.to_dict())


class JsonHistoryStore(HistoryStore):
    def __init__(self, data_dir: Path):
        self.path = data_dir / HISTORY_FILE

    def load(self) -> list[dict]:
        raw = read_json(self.path, [])
        return raw if isinstance(raw, list) else []

    async def save(self, entries: list[HistoryEntry]) -> None:
        write_json(self.path, [e.to_dict() for e in entries])


class JsonScoreRepository(ScoreRepository):
    """Matrix-game scores in one file, rewritten on every add."""

    def __init__(self, data_dir: Path):
        self.path = data_dir / SCORES_FILE
        self._records: list[ScoreRecord] | None = None
        self._last_id = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            self._load()
            self._last_id += 1
            return self._last_id

    def add(self, record: ScoreRecord) -> None:
        with self._lock:
            records = self._load()
            records.append(record)
            self._last_id = max(self._last_id, record.id)
            write_json(self.path, [r.to_dict() for r in records])

    def list(self) -> list[ScoreRecord]:
        with self._lock:
            return list(self._load())

    def _load(self) -> "list[ScoreRecord]":
        if self._records is None:
            raw = read_json(self.path, [])
            self._records = []
            for value in raw if isinstance(raw, list) else []:
                try:
                    self._records.append(ScoreRecord.from_dict(value))
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.warning(f"Skipping corrupt score record: {e}")
            self._last_id = max((r.id for r in self._records), default=0)
        return self._records
