"""
Score leaderboard for the matrix game.

A thin CRUD service over a ScoreRepository: store round results, rank
them, and summarise a player's games.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from hsk_trainer.domain.constants import (
    ANONYMOUS_USER_ID,
    ANONYMOUS_USER_NAME,
    DEFAULT_LEADERBOARD_LIMIT,
)
from hsk_trainer.domain.errors import TrainerError
from hsk_trainer.domain.models import ScoreRecord
from hsk_trainer.domain.ports import ScoreRepository

logger = logging.getLogger(__name__)


class MissingScoreFields(TrainerError):
    """score, hsk_level and difficulty are all required."""


@dataclass(frozen=True)
class ScoreSubmission:
    score: int | None
    hsk_level: int | None
    difficulty: str | None
    user_id: str | None = None
    user_name: str | None = None
    correct_answers: int | None = None
    wrong_answers: int | None = None
    accuracy: float | None = None
    max_streak: int | None = None
    avg_response_time: float | None = None
    total_time: float | None = None


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_name: str
    score: int
    hsk_level: int
    difficulty: str
    accuracy: float
    date: datetime


@dataclass(frozen=True)
class UserStats:
    total_games: int = 0
    best_score: int = 0
    avg_score: int = 0
    avg_accuracy: int = 0
    best_streak: int = 0
    total_correct: int = 0
    total_wrong: int = 0
    first_game: datetime | None = None
    last_game: datetime | None = None


@dataclass(frozen=True)
class UserRank:
    rank: int
    total_players: int
    percentile: int
    best_score: int


def _round(value: float) -> int:
    return int(value + 0.5)


class ScoreBoard:
    """Application service for score submission and ranking."""

    def __init__(self, repo: ScoreRepository):
        self._repo = repo

    def submit(self, sub: ScoreSubmission) -> ScoreRecord:
        """
        Store a finished round.

        Raises:
            MissingScoreFields: If score, level or difficulty is missing or zero.
        """
        if not sub.score or not sub.hsk_level or not sub.difficulty:
            raise MissingScoreFields("Missing required fields")

        record = ScoreRecord(
            id=self._repo.next_id(),
            user_id=sub.user_id or ANONYMOUS_USER_ID,
            user_name=sub.user_name or ANONYMOUS_USER_NAME,
            score=sub.score,
            hsk_level=sub.hsk_level,
            difficulty=sub.difficulty,
            correct_answers=sub.correct_answers or 0,
            wrong_answers=sub.wrong_answers or 0,
            accuracy=sub.accuracy or 0,
            max_streak=sub.max_streak or 0,
            avg_response_time=sub.avg_response_time or 0,
            total_time=sub.total_time or 0,
        )
        self._repo.add(record)
        logger.info(f"Score {record.score} saved for {record.user_id} (id={record.id})")
        return record

    def leaderboard(
        self,
        level: int | None = None,
        difficulty: str | None = None,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> list[LeaderboardEntry]:
        scores = sorted(self._filtered(level, difficulty), key=lambda s: s.score, reverse=True)
        return [
            LeaderboardEntry(
                rank=i + 1,
                user_name=s.user_name,
                score=s.score,
                hsk_level=s.hsk_level,
                difficulty=s.difficulty,
                accuracy=s.accuracy,
                date=s.created_at,
            )
            for i, s in enumerate(scores[: max(0, limit)])
        ]

    def user_stats(self, user_id: str) -> UserStats:
        scores = [s for s in self._repo.list() if s.user_id == user_id]
        if not scores:
            return UserStats()

        n = len(scores)
        return UserStats(
            total_games=n,
            best_score=max(s.score for s in scores),
            avg_score=_round(sum(s.score for s in scores) / n),
            avg_accuracy=_round(sum(s.accuracy for s in scores) / n),
            best_streak=max(s.max_streak for s in scores),
            total_correct=sum(s.correct_answers for s in scores),
            total_wrong=sum(s.wrong_answers for s in scores),
            first_game=scores[0].created_at,
            last_game=scores[-1].created_at,
        )

    def user_rank(
        self,
        user_id: str,
        level: int | None = None,
        difficulty: str | None = None,
    ) -> UserRank:
        """Rank players by their best score; rank 0 means the user has no score."""
        best: dict[str, int] = {}
        for s in self._filtered(level, difficulty):
            if s.user_id not in best or best[s.user_id] < s.score:
                best[s.user_id] = s.score

        ordered = sorted(best.items(), key=lambda kv: kv[1], reverse=True)
        total = len(ordered)
        rank = next((i + 1 for i, (uid, _) in enumerate(ordered) if uid == user_id), 0)
        percentile = _round((total - rank + 1) / total * 100) if rank > 0 else 0
        return UserRank(
            rank=rank,
            total_players=total,
            percentile=percentile,
            best_score=best.get(user_id, 0),
        )

    def _filtered(self, level: int | None, difficulty: str | None) -> list[ScoreRecord]:
        scores = self._repo.list()
        if level:
            scores = [s for s in scores if s.hsk_level == level]
        if difficulty:
            scores = [s for s in scores if s.difficulty == difficulty]
        return scores
