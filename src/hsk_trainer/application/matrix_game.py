"""
Matrix game: find the character for the pinyin and meaning shown.

Each round hides the target character in a square grid of other
characters. A correct pick scores base points plus speed and streak
bonuses, scaled by difficulty; a wrong pick costs a fixed penalty and
breaks the streak. The game ends when the difficulty's time limit runs out
or the player stops, and the finished game becomes a ScoreSubmission for
the leaderboard.
"""

import logging
import math
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from hsk_trainer.application.leaderboard import ScoreSubmission
from hsk_trainer.domain.constants import (
    MATRIX_BACKUP_CHARACTERS,
    MATRIX_BASE_POINTS,
    MATRIX_MIN_LEVEL_WORDS,
    MATRIX_SPEED_POINTS,
    MATRIX_SPEED_WINDOW,
    MATRIX_STREAK_POINTS,
    MATRIX_WRONG_PENALTY,
)
from hsk_trainer.domain.errors import InsufficientVocabulary, TrainerError
from hsk_trainer.domain.models import VocabularyItem

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


@dataclass(frozen=True)
class DifficultySettings:
    grid_size: int
    time_limit: int  # seconds
    score_multiplier: float

    @property
    def cells(self) -> int:
        return self.grid_size * self.grid_size


DIFFICULTIES = {
    Difficulty.EASY: DifficultySettings(grid_size=4, time_limit=90, score_multiplier=1),
    Difficulty.NORMAL: DifficultySettings(grid_size=6, time_limit=60, score_multiplier=1.5),
    Difficulty.HARD: DifficultySettings(grid_size=6, time_limit=45, score_multiplier=2),
}


class GameNotRunning(TrainerError):
    """An answer was given before the game started or after it ended."""


@dataclass(frozen=True)
class MatrixRound:
    number: int
    word: VocabularyItem
    cells: tuple[str, ...]
    correct_position: int
    started_at: float


@dataclass(frozen=True)
class MatrixAnswer:
    correct: bool
    points: int
    response_time: float
    correct_position: int


@dataclass(frozen=True)
class MatrixResult:
    score: int
    hsk_level: int
    difficulty: Difficulty
    correct_answers: int
    wrong_answers: int
    max_streak: int
    avg_response_time: float
    best_time: float | None
    total_time: float

    @property
    def accuracy(self) -> int:
        if self.correct_answers == 0:
            return 0
        answered = self.correct_answers + self.wrong_answers
        return int(self.correct_answers / answered * 100 + 0.5)

    def to_submission(
        self, user_id: str | None = None, user_name: str | None = None
    ) -> ScoreSubmission:
        return ScoreSubmission(
            score=self.score,
            hsk_level=self.hsk_level,
            difficulty=self.difficulty.value,
            user_id=user_id,
            user_name=user_name,
            correct_answers=self.correct_answers,
            wrong_answers=self.wrong_answers,
            accuracy=self.accuracy,
            max_streak=self.max_streak,
            avg_response_time=round(self.avg_response_time, 2),
            total_time=round(self.total_time, 2),
        )


def filter_vocabulary_by_level(words: list[VocabularyItem], level: int) -> list[VocabularyItem]:
    """
    Words of ``level``. When fewer than MATRIX_MIN_LEVEL_WORDS match, every
    level up to ``level`` is used instead, and the whole list if that is empty.
    """
    level_words = [w for w in words if w.hsk_level == level]
    if len(level_words) >= MATRIX_MIN_LEVEL_WORDS:
        return level_words
    up_to_level = [w for w in words if w.hsk_level <= level]
    return up_to_level or list(words)


def generate_matrix(
    target: VocabularyItem,
    pool: list[VocabularyItem],
    cells: int,
    rng: random.Random,
) -> tuple[tuple[str, ...], int]:
    """
    Lay out ``cells`` characters with the target at a random position.

    Distractors are distinct pool characters other than the target. When the
    pool runs short the remaining cells take common characters from
    MATRIX_BACKUP_CHARACTERS.
    """
    position = rng.randrange(cells)
    others = list(dict.fromkeys(w.character for w in pool if w.character != target.character))
    rng.shuffle(others)
    others = others[: cells - 1]

    backup = [c for c in MATRIX_BACKUP_CHARACTERS if c != target.character and c not in others]
    if not backup:
        backup = [c for c in MATRIX_BACKUP_CHARACTERS if c != target.character]

    grid = []
    for i in range(cells):
        if i == position:
            grid.append(target.character)
        elif others:
            grid.append(others.pop())
        else:
            grid.append(rng.choice(backup))
    return tuple(grid), position


def round_points(response_time: float, streak: int, multiplier: float) -> int:
    """Points for a correct pick; ``streak`` already includes this answer."""
    speed_bonus = max(0, math.floor((MATRIX_SPEED_WINDOW - response_time) * MATRIX_SPEED_POINTS))
    streak_bonus = streak * MATRIX_STREAK_POINTS
    return math.floor((MATRIX_BASE_POINTS + speed_bonus + streak_bonus) * multiplier)


class MatrixGame:
    """
    One timed game.

    ``clock`` returns seconds and defaults to ``time.monotonic``; tests pass
    a fake one to control response times and the time limit.
    """

    def __init__(
        self,
        vocabulary: list[VocabularyItem],
        level: int = 1,
        difficulty: Difficulty | str = Difficulty.NORMAL,
        rng: random.Random | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.level = level
        self.difficulty = Difficulty(difficulty)
        self.settings = DIFFICULTIES[self.difficulty]
        self.pool = filter_vocabulary_by_level(vocabulary, level)
        if not self.pool:
            raise InsufficientVocabulary(0, 1)

        self._rng = rng or random.Random()
        self._clock = clock or time.monotonic
        self._started_at: float | None = None
        self._ended_at: float | None = None
        self._response_times: list[float] = []
        self.round: MatrixRound | None = None
        self.score = 0
        self.correct_answers = 0
        self.wrong_answers = 0
        self.streak = 0
        self.max_streak = 0
        self.best_time: float | None = None

    def start(self) -> MatrixRound:
        self._started_at = self._clock()
        self._ended_at = None
        self._response_times = []
        self.round = None
        self.score = 0
        self.correct_answers = 0
        self.wrong_answers = 0
        self.streak = 0
        self.max_streak = 0
        self.best_time = None
        logger.info(
            f"Matrix game started: HSK {self.level}, {self.difficulty.value}, "
            f"{len(self.pool)} words"
        )
        return self._next_round()

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._ended_at if self._ended_at is not None else self._clock()
        return min(end - self._started_at, float(self.settings.time_limit))

    @property
    def time_remaining(self) -> float:
        return max(0.0, self.settings.time_limit - self.elapsed)

    @property
    def is_playing(self) -> bool:
        return (
            self._started_at is not None
            and self._ended_at is None
            and self.time_remaining > 0
        )

    def answer(self, position: int) -> MatrixAnswer:
        """
        Pick a cell of the current grid and move on to the next round.

        Raises:
            GameNotRunning: If the game has not started, was finished or
                ran out of time.
            IndexError: If ``position`` is outside the grid.
        """
        current = self.round
        if current is None or not self.is_playing:
            raise GameNotRunning("The game is not running")
        if not 0 <= position < len(current.cells):
            raise IndexError(f"Cell {position} out of range")

        response_time = max(0.0, self._clock() - current.started_at)
        self._response_times.append(response_time)

        correct = position == current.correct_position
        if correct:
            self.correct_answers += 1
            self.streak += 1
            self.max_streak = max(self.max_streak, self.streak)
            if self.best_time is None or response_time < self.best_time:
                self.best_time = response_time
            points = round_points(response_time, self.streak, self.settings.score_multiplier)
            self.score += points
        else:
            self.wrong_answers += 1
            self.streak = 0
            points = -MATRIX_WRONG_PENALTY
            self.score = max(0, self.score - MATRIX_WRONG_PENALTY)

        self._next_round()
        return MatrixAnswer(
            correct=correct,
            points=points,
            response_time=response_time,
            correct_position=current.correct_position,
        )

    def finish(self) -> MatrixResult:
        if self._started_at is None:
            raise GameNotRunning("The game was never started")
        if self._ended_at is None:
            self._ended_at = min(self._clock(), self._started_at + self.settings.time_limit)
            logger.info(
                f"Matrix game over: {self.score} points, "
                f"{self.correct_answers} correct, {self.wrong_answers} wrong"
            )
        self.round = None

        times = self._response_times
        return MatrixResult(
            score=self.score,
            hsk_level=self.level,
            difficulty=self.difficulty,
            correct_answers=self.correct_answers,
            wrong_answers=self.wrong_answers,
            max_streak=self.max_streak,
            avg_response_time=sum(times) / len(times) if times else 0.0,
            best_time=self.best_time,
            total_time=self.elapsed,
        )

    def _next_round(self) -> MatrixRound:
        word = self._rng.choice(self.pool)
        cells, position = generate_matrix(word, self.pool, self.settings.cells, self._rng)
        number = self.round.number + 1 if self.round is not None else 1
        self.round = MatrixRound(
            number=number,
            word=word,
            cells=cells,
            correct_position=position,
            started_at=self._clock(),
        )
        return self.round
