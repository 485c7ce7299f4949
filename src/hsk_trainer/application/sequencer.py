"""
Session sequencer for practice runs.

Builds ordered study queues by:
1. Filtering the word pool by HSK level
2. Optionally keeping only words that are due for review
3. Shuffling (or prioritising) once at build time
"""

import logging
import random
from datetime import datetime, timezone

from hsk_trainer.domain.models import (
    EmptySession,
    ExhaustionPolicy,
    Ordering,
    ReviewState,
    SessionComplete,
    SessionMode,
    SessionQueue,
    VocabularyItem,
)
from hsk_trainer.domain.ports import ReviewStateStore

logger = logging.getLogger(__name__)


class SessionSequencer:
    """
    Owns session queues: builds them, advances them, restarts them.

    Review state is only read, as a snapshot, while building.
    """

    def __init__(
        self,
        review_store: ReviewStateStore | None = None,
        exhaustion: ExhaustionPolicy = ExhaustionPolicy.WRAP,
        ordering: Ordering = Ordering.SHUFFLE,
        rng: random.Random | None = None,
    ):
        self._reviews = review_store
        self.exhaustion = ExhaustionPolicy(exhaustion)
        self.ordering = Ordering(ordering)
        self._rng = rng or random.Random()

    def build_session(
        self,
        pool: list[VocabularyItem],
        mode: SessionMode = SessionMode.ALL,
        filter_level: int | None = None,
        exhaustion: ExhaustionPolicy | None = None,
        ordering: Ordering | None = None,
        now: datetime | None = None,
    ) -> SessionQueue | EmptySession:
        """
        Build a queue from the pool.

        Args:
            pool: All available words.
            mode: ``all`` or ``due_only``.
            filter_level: HSK level to keep, or None for every level.
            exhaustion: End-of-queue policy; defaults to the sequencer's.
            ordering: ``shuffle`` or ``priority``; defaults to the sequencer's.
            now: Reference time for due checks.

        Returns:
            A SessionQueue, or EmptySession when nothing matched.
        """
        mode = SessionMode(mode)
        now = now or datetime.now(timezone.utc)
        states = self._snapshot()

        items = [w for w in pool if filter_level is None or w.hsk_level == filter_level]
        if mode is SessionMode.DUE_ONLY:
            items = [w for w in items if _is_due(states.get(w.id), now)]

        if not items:
            logger.info(f"No words for mode={mode.value} level={filter_level or 'all'}")
            return EmptySession(mode=mode, filter_level=filter_level)

        if Ordering(ordering or self.ordering) is Ordering.PRIORITY:
            items = prioritize(items, states, now)
        else:
            items = list(items)
            self._rng.shuffle(items)

        logger.debug(f"Session built with {len(items)} words (level={filter_level or 'all'})")
        return SessionQueue(
            items=items,
            mode=mode,
            filter_level=filter_level,
            exhaustion=ExhaustionPolicy(exhaustion or self.exhaustion),
        )

    def advance(self, queue: SessionQueue) -> VocabularyItem | SessionComplete:
        """Return the word under the cursor and move past it."""
        if queue.exhausted:
            if queue.exhaustion is ExhaustionPolicy.FINISH or not queue.items:
                return SessionComplete(reviewed=len(queue.items))
            logger.debug("End of session, restarting from beginning")
            queue.cursor = 0

        item = queue.items[queue.cursor]
        queue.cursor += 1
        return item

    def restart(self, queue: SessionQueue) -> None:
        queue.cursor = 0

    def due_items(
        self, pool: list[VocabularyItem], now: datetime | None = None
    ) -> list[VocabularyItem]:
        now = now or datetime.now(timezone.utc)
        states = self._snapshot()
        return [w for w in pool if _is_due(states.get(w.id), now)]

    def _snapshot(self) -> dict[str, ReviewState]:
        if self._reviews is None:
            return {}
        try:
            return self._reviews.all()
        except Exception as e:
            logger.error(f"Review state unavailable, treating all words as new: {e}")
            return {}


def progress(queue: SessionQueue) -> float:
    """Fraction of the queue already presented (0.0-1.0)."""
    if not queue.items:
        return 0.0
    return queue.cursor / len(queue.items)


def prioritize(
    items: list[VocabularyItem],
    states: dict[str, ReviewState],
    now: datetime,
) -> list[VocabularyItem]:
    """
    Order words for review: new words first, then most overdue,
    then hardest (lowest ease factor).
    """

    def key(item: VocabularyItem):
        state = states.get(item.id)
        if state is None:
            return (0, 0.0, 0.0)
        overdue = (now - state.due_at).total_seconds()
        return (1, -overdue, state.ease_factor)

    return sorted(items, key=key)


def _is_due(state: ReviewState | None, now: datetime) -> bool:
    return state is None or state.is_due(now)
