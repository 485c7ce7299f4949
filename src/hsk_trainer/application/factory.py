"""
Store and service factory.
Centralizes the logic for selecting storage adapters from config.
"""

import random
from dataclasses import dataclass
from pathlib import Path

from hsk_trainer.application.config import AppConfig
from hsk_trainer.application.controller import PracticeController
from hsk_trainer.application.scheduler import ReviewScheduler
from hsk_trainer.application.sequencer import SessionSequencer
from hsk_trainer.application.stats.aggregator import StatsAggregator
from hsk_trainer.application.stats.progress import PracticeHistory
from hsk_trainer.domain.ports import (
    HistoryStore,
    ReviewStateStore,
    ScoreRepository,
    StatsStore,
    VocabularyStore,
)
from hsk_trainer.infrastructure.storage import (
    InMemoryHistoryStore,
    InMemoryReviewStateStore,
    InMemoryScoreRepository,
    InMemoryStatsStore,
    JsonHistoryStore,
    JsonReviewStateStore,
    JsonScoreRepository,
    JsonStatsStore,
)
from hsk_trainer.infrastructure.vocabulary import FileVocabularyStore

BUNDLED_VOCABULARY = Path(__file__).resolve().parent.parent / "data" / "hsk_vocabulary.json"


@dataclass
class Stores:
    reviews: ReviewStateStore
    stats: StatsStore
    history: HistoryStore


def get_vocabulary_store(config: AppConfig) -> VocabularyStore:
    return FileVocabularyStore(config.vocabulary_path or BUNDLED_VOCABULARY)


def get_stores(config: AppConfig) -> Stores:
    """
    Returns the progress stores selected by ``config.storage``.
    """
    if config.storage == "memory":
        return Stores(
            reviews=InMemoryReviewStateStore(),
            stats=InMemoryStatsStore(),
            history=InMemoryHistoryStore(),
        )

    return Stores(
        reviews=JsonReviewStateStore(config.data_dir),
        stats=JsonStatsStore(config.data_dir),
        history=JsonHistoryStore(config.data_dir),
    )


def get_score_repository(config: AppConfig) -> ScoreRepository:
    """Matrix-game scores: a file under the data directory, or memory only."""
    if config.storage == "memory":
        return InMemoryScoreRepository()
    return JsonScoreRepository(config.data_dir)


def load_progress(config: AppConfig, stores: Stores) -> tuple[StatsAggregator, PracticeHistory]:
    stats = StatsAggregator.from_snapshot(stores.stats.load())
    history = PracticeHistory.from_raw(stores.history.load(), limit=config.history_limit)
    return stats, history


def build_controller(
    config: AppConfig,
    stores: Stores | None = None,
    rng: random.Random | None = None,
) -> PracticeController:
    """Wire one PracticeController from config."""
    stores = stores or get_stores(config)
    stats, history = load_progress(config, stores)
    sequencer = SessionSequencer(
        review_store=stores.reviews,
        exhaustion=config.exhaustion,
        ordering=config.ordering,
        rng=rng,
    )
    return PracticeController(
        sequencer=sequencer,
        scheduler=ReviewScheduler(config.scheduler_params()),
        review_store=stores.reviews,
        stats=stats,
        stats_store=stores.stats,
        history=history,
        history_store=stores.history,
    )
