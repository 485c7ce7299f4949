"""Multiple-choice quiz over a vocabulary pool."""

import logging
import random
from dataclasses import dataclass
from enum import Enum

from ulid import ULID

from hsk_trainer.application.stats.aggregator import StatsAggregator
from hsk_trainer.application.stats.progress import PracticeHistory
from hsk_trainer.domain.constants import QUIZ_OPTION_COUNT
from hsk_trainer.domain.errors import InsufficientVocabulary, InvalidTransition
from hsk_trainer.domain.models import VocabularyItem

logger = logging.getLogger(__name__)


class QuestionKind(str, Enum):
    CHAR_TO_MEANING = "char_to_meaning"
    MEANING_TO_CHAR = "meaning_to_char"


@dataclass(frozen=True)
class QuizQuestion:
    word: VocabularyItem
    options: tuple[VocabularyItem, ...]
    kind: QuestionKind

    @property
    def correct_index(self) -> int:
        return self.options.index(self.word)

    @property
    def prompt(self) -> str:
        if self.kind is QuestionKind.CHAR_TO_MEANING:
            return self.word.character
        return f"{self.word.translation} ({self.word.pinyin})"

    def option_label(self, index: int) -> str:
        option = self.options[index]
        if self.kind is QuestionKind.CHAR_TO_MEANING:
            return f"{option.translation} ({option.pinyin})"
        return option.character


@dataclass(frozen=True)
class QuizResult:
    score: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return int(self.score / self.total * 100 + 0.5)


def generate_quiz_questions(
    pool: list[VocabularyItem],
    count: int,
    rng: random.Random | None = None,
) -> list[QuizQuestion]:
    """
    Pick ``count`` distinct words and build a four-option question for each.

    Raises:
        InsufficientVocabulary: If the pool holds fewer than ``count`` words.
    """
    if count < 1 or len(pool) < count:
        raise InsufficientVocabulary(len(pool), count)

    rng = rng or random.Random()
    chosen = rng.sample(pool, count)
    questions = []
    for word in chosen:
        others = _distractor_candidates(word, pool)
        distractors = rng.sample(others, min(QUIZ_OPTION_COUNT - 1, len(others)))
        options = [word, *distractors]
        rng.shuffle(options)
        kind = rng.choice(list(QuestionKind))
        questions.append(QuizQuestion(word=word, options=tuple(options), kind=kind))
    return questions


def _distractor_candidates(
    word: VocabularyItem, pool: list[VocabularyItem]
) -> list[VocabularyItem]:
    """Words whose character and meaning both differ from the answer and from each other."""
    characters = {word.character}
    translations = {word.translation}
    candidates = []
    for other in pool:
        if other.character in characters or other.translation in translations:
            continue
        characters.add(other.character)
        translations.add(other.translation)
        candidates.append(other)
    return candidates


class QuizSession:
    """
    Walks through a list of questions: select, submit, next, finish.

    Each submitted answer is recorded in the shared stats and history.
    """

    def __init__(
        self,
        questions: list[QuizQuestion],
        stats: StatsAggregator | None = None,
        history: PracticeHistory | None = None,
    ):
        self.questions = questions
        self.stats = stats or StatsAggregator()
        self.history = history
        self.session_id = str(ULID())
        self.index = 0
        self.score = 0
        self.selected: int | None = None
        self.submitted = False
        self.finished = False

    @property
    def current(self) -> QuizQuestion | None:
        if self.finished or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    def select(self, option_index: int) -> None:
        question = self.current
        if question is None or self.submitted:
            raise InvalidTransition("select", "submitted" if self.submitted else "finished")
        if not 0 <= option_index < len(question.options):
            raise IndexError(f"Option {option_index} out of range")
        self.selected = option_index

    def submit(self) -> bool:
        """Check the selected option; each question can be submitted once."""
        question = self.current
        if question is None or self.selected is None or self.submitted:
            raise InvalidTransition("submit", "unselected" if self.selected is None else "submitted")

        correct = self.selected == question.correct_index
        self.submitted = True
        if correct:
            self.score += 1
        self.stats.record_known(correct)
        if self.history is not None:
            self.history.record(question.word, correct, self.session_id, mode="quiz")
        return correct

    def next_question(self) -> QuizQuestion | None:
        if not self.submitted:
            raise InvalidTransition("advance", "unanswered")
        self.index += 1
        self.selected = None
        self.submitted = False
        if self.index >= len(self.questions):
            return None
        return self.current

    def finish(self) -> QuizResult:
        if not self.finished:
            self.finished = True
            self.stats.record_quiz_completed()
            logger.info(f"Quiz finished: {self.score}/{len(self.questions)}")
        return QuizResult(score=self.score, total=len(self.questions))
