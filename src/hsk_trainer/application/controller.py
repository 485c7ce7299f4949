"""
Practice controller: the flashcard state machine.

Per card: Hidden -> Revealed -> Graded -> (next card) Hidden.

Only one action is legal in each phase: reveal in Hidden, grade in
Revealed, advance in Graded. Anything else is rejected as a no-op and
reported through an ``error`` event. The presentation layer subscribes
to events and never mutates controller state directly.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from ulid import ULID

from hsk_trainer.application.persistence import BackgroundWriter
from hsk_trainer.application.scheduler import ReviewScheduler
from hsk_trainer.application.sequencer import SessionSequencer
from hsk_trainer.application.stats.aggregator import StatsAggregator
from hsk_trainer.application.stats.progress import PracticeHistory
from hsk_trainer.domain.errors import InvalidTransition, PersistenceFailure
from hsk_trainer.domain.models import (
    CardPhase,
    EmptySession,
    ExhaustionPolicy,
    Grade,
    PracticeCardState,
    ReviewState,
    SessionComplete,
    SessionMode,
    SessionQueue,
    VocabularyItem,
)
from hsk_trainer.domain.ports import HistoryStore, ReviewStateStore, StatsStore

logger = logging.getLogger(__name__)

CARD_LOADED = "card_loaded"
REVEALED = "revealed"
GRADED = "graded"
SESSION_COMPLETE = "session_complete"
SESSION_EMPTY = "session_empty"
ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class PracticeEvent:
    kind: str
    card: PracticeCardState
    review_state: ReviewState | None = None
    error: Exception | None = None


Listener = Callable[[PracticeEvent], None]


class PracticeController:
    """
    Orchestrates one practice session.

    Construct once and hand the instance to whatever drives the UI.
    """

    def __init__(
        self,
        sequencer: SessionSequencer,
        scheduler: ReviewScheduler,
        review_store: ReviewStateStore,
        stats: StatsAggregator | None = None,
        stats_store: StatsStore | None = None,
        history: PracticeHistory | None = None,
        history_store: HistoryStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.sequencer = sequencer
        self.scheduler = scheduler
        self.review_store = review_store
        self.stats = stats or StatsAggregator()
        self.stats_store = stats_store
        self.history = history or PracticeHistory()
        self.history_store = history_store
        self.session_stats = StatsAggregator()
        self.session_id = str(ULID())

        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._writer = BackgroundWriter(on_failure=self._on_write_failure)
        self._listeners: list[Listener] = []
        self._card = PracticeCardState()
        self._queue: SessionQueue | None = None
        self._outcome: EmptySession | SessionComplete | None = None
        self._pool: list[VocabularyItem] = []
        self._mode = SessionMode.ALL
        self._level: int | None = None
        self._exhaustion: ExhaustionPolicy | None = None
        # States written this session; reads prefer them over the store so a
        # pending write never yields a stale state.
        self._written: dict[str, ReviewState] = {}

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(
        self,
        kind: str,
        review_state: ReviewState | None = None,
        error: Exception | None = None,
    ) -> None:
        event = PracticeEvent(
            kind=kind, card=replace(self._card), review_state=review_state, error=error
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener failed on {kind}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        pool: list[VocabularyItem],
        mode: SessionMode = SessionMode.ALL,
        filter_level: int | None = None,
        exhaustion: ExhaustionPolicy | None = None,
    ) -> SessionQueue | EmptySession:
        """
        Build a new session and load its first card.

        Any card in progress and the previous queue are discarded.
        """
        self._pool = list(pool)
        self._mode = SessionMode(mode)
        self._level = filter_level
        self._exhaustion = exhaustion
        self._card = PracticeCardState()
        self._queue = None
        self._outcome = None
        self.session_stats = StatsAggregator()
        self.session_id = str(ULID())

        built = self.sequencer.build_session(
            self._pool,
            mode=self._mode,
            filter_level=filter_level,
            exhaustion=exhaustion,
            now=self._clock(),
        )
        if isinstance(built, EmptySession):
            self._outcome = built
            self._emit(SESSION_EMPTY)
            return built

        self._queue = built
        self._load_next()
        return built

    def change_filter(
        self,
        filter_level: int | None = None,
        mode: SessionMode | None = None,
    ) -> SessionQueue | EmptySession:
        """Switch HSK level or mode; rebuilds the session from scratch."""
        return self.start(
            self._pool,
            mode=mode or self._mode,
            filter_level=filter_level,
            exhaustion=self._exhaustion,
        )

    # ------------------------------------------------------------------
    # Card actions
    # ------------------------------------------------------------------

    def reveal(self) -> bool:
        if not self.can_reveal:
            return self._reject("reveal")
        self._card.revealed = True
        self._emit(REVEALED)
        return True

    def grade(self, grade: Grade) -> bool:
        """
        Grade the revealed card.

        Order: schedule, persist (without waiting), record stats, mark Graded.
        """
        if not self.can_grade:
            return self._reject("grade")

        grade = Grade(grade)
        item = self._card.current_item
        now = self._clock()

        new_state = self.scheduler.calculate_next_review(self._current_state(item.id), grade, now)
        self._written[item.id] = new_state
        self._writer.submit(f"review state for {item.id}", self.review_store.put(item.id, new_state))

        self.stats.record(grade)
        self.session_stats.record(grade)
        self.history.record(item, grade.is_success, self.session_id, grade=grade)
        if self.stats_store is not None:
            self._writer.submit("stats", self.stats_store.save(self.stats.snapshot()))
        if self.history_store is not None:
            self._writer.submit("practice history", self.history_store.save(self.history.entries))

        self._card.grade = grade
        logger.debug(
            f"Graded {item.character} as {grade.value}: "
            f"interval={new_state.interval_days}d ease={new_state.ease_factor}"
        )
        self._emit(GRADED, review_state=new_state)
        return True

    def mark_known(self, known: bool) -> bool:
        return self.grade(Grade.from_known(known))

    def advance_to_next(self) -> bool:
        if not self.can_advance:
            return self._reject("advance")
        self._load_next()
        return True

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def card(self) -> PracticeCardState:
        return replace(self._card)

    @property
    def phase(self) -> CardPhase:
        return self._card.phase

    @property
    def current_item(self) -> VocabularyItem | None:
        return self._card.current_item

    @property
    def queue(self) -> SessionQueue | None:
        return self._queue

    @property
    def outcome(self) -> EmptySession | SessionComplete | None:
        """Terminal marker once the session is empty or complete."""
        return self._outcome

    @property
    def can_reveal(self) -> bool:
        return self._card.current_item is not None and self.phase is CardPhase.HIDDEN

    @property
    def can_grade(self) -> bool:
        return self._card.current_item is not None and self.phase is CardPhase.REVEALED

    @property
    def can_advance(self) -> bool:
        if self._queue is None:
            return False
        if self._card.current_item is None:
            return self._outcome is None
        return self.phase is CardPhase.GRADED

    @property
    def pending_writes(self) -> int:
        return self._writer.pending

    async def flush(self) -> None:
        await self._writer.flush()

    def wait_for_writes(self, timeout: float | None = None) -> bool:
        """Block until background writes finish; False on timeout."""
        return self._writer.wait(timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_next(self) -> None:
        outcome = self.sequencer.advance(self._queue)
        if isinstance(outcome, SessionComplete):
            self._card = PracticeCardState()
            self._outcome = outcome
            self._emit(SESSION_COMPLETE)
            return
        self._card = PracticeCardState(current_item=outcome)
        self._emit(CARD_LOADED)

    def _current_state(self, item_id: str) -> ReviewState | None:
        if item_id in self._written:
            return self._written[item_id]
        try:
            return self.review_store.get(item_id)
        except Exception as e:
            logger.warning(f"Could not read review state for {item_id}: {e}")
            return None

    def _reject(self, action: str) -> bool:
        state = self.phase.value if self._card.current_item else "not loaded"
        error = InvalidTransition(action, state)
        logger.warning(str(error))
        self._emit(ERROR, error=error)
        return False

    def _on_write_failure(self, label: str, exc: BaseException) -> None:
        self._emit(WARNING, error=PersistenceFailure(f"Could not save {label}: {exc}"))
