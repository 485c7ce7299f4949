import json
from datetime import timedelta

import pytest

from hsk_trainer.application.stats import PracticeHistory
from hsk_trainer.domain.errors import PersistenceFailure
from hsk_trainer.domain.models import Grade, ReviewState, ScoreRecord, StatsSnapshot
from hsk_trainer.infrastructure.storage import (
    JsonHistoryStore,
    JsonReviewStateStore,
    JsonScoreRepository,
    JsonStatsStore,
)
from hsk_trainer.infrastructure.storage.json_stores import read_json, write_json


class TestReviewStateStore:
    @pytest.mark.asyncio
    async def test_put_then_reload(self, tmp_path, now):
        state = ReviewState(
            ease_factor=2.36,
            interval_days=6,
            repetitions=2,
            due_at=now + timedelta(days=6),
            last_reviewed_at=now,
            last_grade=Grade.GOOD,
        )
        await JsonReviewStateStore(tmp_path).put("你_nǐ", state)

        fresh = JsonReviewStateStore(tmp_path)
        assert fresh.get("你_nǐ") == state
        assert fresh.get("missing") is None
        assert list(fresh.all()) == ["你_nǐ"]

    @pytest.mark.asyncio
    async def test_file_uses_camel_case_keys(self, tmp_path, now):
        await JsonReviewStateStore(tmp_path).put("a", ReviewState(due_at=now))
        raw = json.loads((tmp_path / "srs_data.json").read_text())
        assert set(raw["a"]) == {
            "easeFactor",
            "interval",
            "repetitions",
            "nextReview",
            "lastReviewed",
            "performance",
        }
        assert raw["a"]["nextReview"] == int(now.timestamp() * 1000)

    def test_corrupt_entries_skipped(self, tmp_path):
        (tmp_path / "srs_data.json").write_text(
            json.dumps({"good": {"easeFactor": 2.1, "interval": 3}, "bad": {"easeFactor": "x"}})
        )
        store = JsonReviewStateStore(tmp_path)
        assert store.get("good").ease_factor == 2.1
        assert store.get("bad") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        (tmp_path / "srs_data.json").write_text("{{{")
        assert JsonReviewStateStore(tmp_path).all() == {}

    @pytest.mark.asyncio
    async def test_failed_write_keeps_memory_copy(self, tmp_path, now):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = JsonReviewStateStore(blocker / "data")

        with pytest.raises(PersistenceFailure):
            await store.put("a", ReviewState(due_at=now))
        assert store.get("a") is not None


class TestStatsStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        snap = StatsSnapshot(5, 4, 1, 2, 3, 1, 1700000000000)
        await JsonStatsStore(tmp_path).save(snap)
        assert JsonStatsStore(tmp_path).load() == snap

    def test_missing_file(self, tmp_path):
        assert JsonStatsStore(tmp_path).load() is None


class TestHistoryStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path, pool):
        history = PracticeHistory()
        history.record(pool[0], True, "s1", timestamp=1)
        await JsonHistoryStore(tmp_path).save(history.entries)

        raw = JsonHistoryStore(tmp_path).load()
        assert PracticeHistory.from_raw(raw).entries == history.entries

    def test_non_list_file(self, tmp_path):
        (tmp_path / "practice_history.json").write_text('{"a": 1}')
        assert JsonHistoryStore(tmp_path).load() == []


class TestScoreRepository:
    def record(self, repo, score, user="u1"):
        return ScoreRecord(
            id=repo.next_id(),
            user_id=user,
            user_name=user.upper(),
            score=score,
            hsk_level=1,
            difficulty="easy",
            max_streak=3,
        )

    def test_scores_survive_reload(self, tmp_path):
        repo = JsonScoreRepository(tmp_path)
        first = self.record(repo, 120)
        repo.add(first)
        repo.add(self.record(repo, 80, user="u2"))

        fresh = JsonScoreRepository(tmp_path)
        assert [r.score for r in fresh.list()] == [120, 80]
        assert fresh.list()[0] == first
        assert fresh.next_id() == 3

    def test_file_uses_camel_case_keys(self, tmp_path):
        repo = JsonScoreRepository(tmp_path)
        repo.add(self.record(repo, 50))
        [raw] = json.loads((tmp_path / "matrix_scores.json").read_text())
        assert raw["userName"] == "U1"
        assert raw["hskLevel"] == 1
        assert raw["maxStreak"] == 3

    def test_corrupt_records_skipped(self, tmp_path):
        (tmp_path / "matrix_scores.json").write_text('[{"id": 1}, "junk"]')
        repo = JsonScoreRepository(tmp_path)
        assert repo.list() == []
        assert repo.next_id() == 1


def test_write_json_is_atomic(tmp_path):
    path = tmp_path / "nested" / "out.json"
    write_json(path, {"汉字": 1})
    assert read_json(path, None) == {"汉字": 1}
    assert [p.name for p in path.parent.iterdir()] == ["out.json"]
