"""Error taxonomy for the trainer core.

None of these are fatal: the core reports them as events, warnings or
marker values, and the outer layers turn them into user-facing messages.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hsk_trainer.domain.models import EmptySession


class TrainerError(Exception):
    """Base class for all trainer errors."""


class DataUnavailable(TrainerError):
    """Vocabulary, review state or an import payload could not be loaded."""


class InvalidTransition(TrainerError):
    """A practice action was attempted in a phase that does not allow it."""

    def __init__(self, action: str, phase: str):
        super().__init__(f"Cannot {action} while card is {phase}")
        self.action = action
        self.phase = phase


class PersistenceFailure(TrainerError):
    """Writing review state, stats or history failed."""


class EmptySessionPool(TrainerError):
    """The session filter matched no vocabulary."""

    def __init__(self, empty: "EmptySession"):
        level = empty.filter_level or "all"
        super().__init__(
            f"No words available (level={level}, mode={empty.mode.value}). "
            "Try another level or mode."
        )
        self.empty = empty


class InsufficientVocabulary(TrainerError):
    """Not enough words are available to build the requested quiz."""

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Only {available} words available, {requested} questions requested"
        )
        self.available = available
        self.requested = requested
