import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from hsk_trainer.application.config import AppConfig, resolve_config
from hsk_trainer.application.factory import (
    Stores,
    get_score_repository,
    get_stores,
    get_vocabulary_store,
    load_progress,
)
from hsk_trainer.application.leaderboard import MissingScoreFields, ScoreBoard, ScoreSubmission
from hsk_trainer.application.stats import ProgressCalculator
from hsk_trainer.consts import VERSION
from hsk_trainer.domain.constants import DEFAULT_LEADERBOARD_LIMIT
from hsk_trainer.domain.ports import VocabularyStore
from hsk_trainer.infrastructure.vocabulary import search

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("hsk_trainer.server")


class Services:
    """Everything the endpoints need, built once per process."""

    def __init__(
        self,
        config: AppConfig,
        vocabulary: VocabularyStore | None = None,
        stores: Stores | None = None,
        scores: ScoreBoard | None = None,
    ):
        self.config = config
        self.vocabulary = vocabulary or get_vocabulary_store(config)
        self.stores = stores or get_stores(config)
        self.scores = scores or ScoreBoard(get_score_repository(config))


@lru_cache(maxsize=1)
def get_services() -> Services:
    return Services(resolve_config())


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"HSK Trainer Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("HSK Trainer Server shutting down...")


app = FastAPI(
    title="HSK Trainer Server",
    description="Vocabulary, progress and matrix-game score API for the HSK trainer.",
    version=VERSION,
    lifespan=lifespan,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Vocabulary and progress
# ---------------------------------------------------------------------------


class WordOut(CamelModel):
    id: str
    character: str
    pinyin: str
    translation: str
    level: int


class VocabularyResponse(CamelModel):
    success: bool
    count: int
    words: list[WordOut]


class LevelOut(CamelModel):
    level: int
    known_words: int
    total_words: int
    percent: float


class StatsOut(CamelModel):
    total_studied: int
    correct_answers: int
    wrong_answers: int
    current_streak: int
    best_streak: int
    quizzes_completed: int
    accuracy: float
    unique_words: int
    study_time: str
    levels: list[LevelOut]


class StatsResponse(CamelModel):
    success: bool
    stats: StatsOut


@app.get("/api/vocabulary", response_model=VocabularyResponse)
async def get_vocabulary(
    level: int | None = Query(default=None, ge=1, le=6),
    search_term: str | None = Query(default=None, alias="search"),
    services: Services = Depends(get_services),
):
    words = services.vocabulary.load()
    if level is not None:
        words = [w for w in words if w.hsk_level == level]
    if search_term:
        words = search(words, search_term)
    return VocabularyResponse(
        success=True,
        count=len(words),
        words=[
            WordOut(
                id=w.id,
                character=w.character,
                pinyin=w.pinyin,
                translation=w.translation,
                level=w.hsk_level,
            )
            for w in words
        ],
    )


@app.get("/api/stats", response_model=StatsResponse)
async def get_stats(services: Services = Depends(get_services)):
    try:
        stats, history = load_progress(services.config, services.stores)
        report = ProgressCalculator().report(
            stats.snapshot(), history, services.vocabulary.load()
        )
    except Exception as e:
        logger.error(f"Stats unavailable: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    s = report.stats
    return StatsResponse(
        success=True,
        stats=StatsOut(
            total_studied=s.total_studied,
            correct_answers=s.correct_answers,
            wrong_answers=s.wrong_answers,
            current_streak=s.current_streak,
            best_streak=s.best_streak,
            quizzes_completed=s.quizzes_completed,
            accuracy=s.accuracy,
            unique_words=report.unique_words,
            study_time=report.study_time,
            levels=[LevelOut(**asdict(lp), percent=lp.percent) for lp in report.levels],
        ),
    )


# ---------------------------------------------------------------------------
# Matrix game scores
# ---------------------------------------------------------------------------


class ScoreRequest(CamelModel):
    user_id: str | None = None
    user_name: str | None = None
    score: int | None = None
    hsk_level: int | None = None
    difficulty: str | None = None
    correct_answers: int | None = None
    wrong_answers: int | None = None
    accuracy: float | None = None
    max_streak: int | None = None
    avg_response_time: float | None = None
    total_time: float | None = None


class ScoreResponse(CamelModel):
    success: bool
    score_id: int
    message: str


class LeaderboardRow(CamelModel):
    rank: int
    user_name: str
    score: int
    hsk_level: int
    difficulty: str
    accuracy: float
    date: datetime


class LeaderboardResponse(CamelModel):
    success: bool
    leaderboard: list[LeaderboardRow]


class UserStatsOut(CamelModel):
    total_games: int
    best_score: int
    avg_score: int
    avg_accuracy: int
    best_streak: int
    total_correct: int
    total_wrong: int
    first_game: datetime | None = None
    last_game: datetime | None = None


class UserStatsResponse(CamelModel):
    success: bool
    stats: UserStatsOut


class RankingOut(CamelModel):
    rank: int
    total_players: int
    percentile: int
    best_score: int


class UserRankResponse(CamelModel):
    success: bool
    ranking: RankingOut


@app.post("/api/matrix-game/score", response_model=ScoreResponse)
async def submit_score(req: ScoreRequest, services: Services = Depends(get_services)):
    """
    Store the result of a finished matrix-game round.
    """
    try:
        record = services.scores.submit(ScoreSubmission(**req.model_dump()))
    except MissingScoreFields as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Error saving score: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return ScoreResponse(success=True, score_id=record.id, message="Score saved successfully")


@app.get("/api/matrix-game/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    level: int | None = None,
    difficulty: str | None = None,
    limit: int = Query(default=DEFAULT_LEADERBOARD_LIMIT, ge=1),
    services: Services = Depends(get_services),
):
    entries = services.scores.leaderboard(level=level, difficulty=difficulty, limit=limit)
    return LeaderboardResponse(
        success=True, leaderboard=[LeaderboardRow(**asdict(e)) for e in entries]
    )


@app.get("/api/matrix-game/user-stats/{user_id}", response_model=UserStatsResponse)
async def get_user_stats(user_id: str, services: Services = Depends(get_services)):
    stats = services.scores.user_stats(user_id)
    return UserStatsResponse(success=True, stats=UserStatsOut(**asdict(stats)))


@app.get("/api/matrix-game/user-rank/{user_id}", response_model=UserRankResponse)
async def get_user_rank(
    user_id: str,
    level: int | None = None,
    difficulty: str | None = None,
    services: Services = Depends(get_services),
):
    ranking = services.scores.user_rank(user_id, level=level, difficulty=difficulty)
    return UserRankResponse(success=True, ranking=RankingOut(**asdict(ranking)))
