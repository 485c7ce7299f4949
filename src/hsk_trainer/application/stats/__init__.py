# Application Stats Package
from .aggregator import StatsAggregator
from .progress import LevelProgress, PracticeHistory, ProgressCalculator, ProgressReport

__all__ = [
    "StatsAggregator",
    "PracticeHistory",
    "ProgressCalculator",
    "ProgressReport",
    "LevelProgress",
]
