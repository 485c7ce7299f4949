# Infrastructure Storage Adapters Package
from .json_stores import (
    JsonHistoryStore,
    JsonReviewStateStore,
    JsonScoreRepository,
    JsonStatsStore,
)
from .memory import (
    InMemoryHistoryStore,
    InMemoryReviewStateStore,
    InMemoryScoreRepository,
    InMemoryStatsStore,
)

__all__ = [
    "JsonReviewStateStore",
    "JsonStatsStore",
    "JsonHistoryStore",
    "JsonScoreRepository",
    "InMemoryReviewStateStore",
    "InMemoryStatsStore",
    "InMemoryHistoryStore",
    "InMemoryScoreRepository",
]
