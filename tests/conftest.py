import random
from datetime import datetime, timezone

import pytest

from hsk_trainer.domain.models import VocabularyItem
from hsk_trainer.infrastructure.storage import (
    InMemoryHistoryStore,
    InMemoryReviewStateStore,
    InMemoryStatsStore,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_word(character: str, level: int = 1, pinyin: str | None = None) -> VocabularyItem:
    pinyin = pinyin or character.lower()
    return VocabularyItem(
        id=f"{character}_{pinyin}",
        character=character,
        pinyin=pinyin,
        translations=(f"meaning of {character}",),
        hsk_level=level,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def pool():
    """A and B at level 1, C at level 2."""
    return [make_word("A", 1), make_word("B", 1), make_word("C", 2)]


@pytest.fixture
def big_pool():
    return [make_word(f"W{i}", 1 + i % 3) for i in range(12)]


@pytest.fixture
def review_store():
    return InMemoryReviewStateStore()


@pytest.fixture
def stats_store():
    return InMemoryStatsStore()


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def vocab_file(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(
        '[{"character": "你", "pinyin": "nǐ", "translation": "you", "level": 1},'
        ' {"character": "好", "pinyin": "hǎo", "translation": "good; well", "level": 1},'
        ' {"character": "我", "pinyin": "wǒ", "translation": "I, me", "level": 1},'
        ' {"character": "是", "pinyin": "shì", "translation": "to be", "level": 1},'
        ' {"character": "学习", "pinyin": "xuéxí", "translation": "to study", "level": 2}]',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def word_factory():
    return make_word
