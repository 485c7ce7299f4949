"""
File vocabulary store: loads the HSK word list from JSON or YAML.

Accepts either a top-level list of words or ``{"words": [...]}``. Each word
needs ``character`` and ``pinyin``; meanings come from ``translations``,
``translation`` or ``english``; the level from ``level`` or ``hsk_level``.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from hsk_trainer.domain.errors import DataUnavailable
from hsk_trainer.domain.models import VocabularyItem
from hsk_trainer.domain.ports import VocabularyStore

logger = logging.getLogger(__name__)

FALLBACK_VOCABULARY = [
    VocabularyItem("你_nǐ", "你", "nǐ", ("you",), 1),
    VocabularyItem("好_hǎo", "好", "hǎo", ("good",), 1),
    VocabularyItem("我_wǒ", "我", "wǒ", ("I",), 1),
]

_SPLIT = re.compile(r"\s*[;,]\s*")


class FileVocabularyStore(VocabularyStore):
    """
    Reads vocabulary from a file on every ``load()``.

    Falls back to a three-word list when the file is missing or unreadable.
    """

    def __init__(self, path: Path | None, fallback: list[VocabularyItem] | None = None):
        self.path = path
        self.fallback = FALLBACK_VOCABULARY if fallback is None else fallback

    def load(self) -> list[VocabularyItem]:
        try:
            items = self.read()
        except DataUnavailable as e:
            logger.error(f"Error loading vocabulary: {e}")
            return list(self.fallback)

        logger.info(f"Loaded {len(items)} vocabulary items from {self.path}")
        return items

    def read(self) -> list[VocabularyItem]:
        """
        Parse the file strictly.

        Raises:
            DataUnavailable: If the file is missing, unparsable or has no words.
        """
        if self.path is None:
            raise DataUnavailable("No vocabulary file configured")
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DataUnavailable(f"Cannot read {self.path}: {e}") from e

        try:
            if self.path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise DataUnavailable(f"Cannot parse {self.path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("words")
        if not isinstance(data, list):
            raise DataUnavailable(f"{self.path} does not contain a word list")

        items = []
        seen: set[str] = set()
        for index, raw in enumerate(data):
            item = parse_word(raw)
            if item is None:
                logger.debug(f"Skipping malformed word #{index} in {self.path}")
                continue
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)

        if not items:
            raise DataUnavailable(f"{self.path} contains no usable words")
        return items


class InMemoryVocabularyStore(VocabularyStore):
    def __init__(self, items: list[VocabularyItem]):
        self._items = list(items)

    def load(self) -> list[VocabularyItem]:
        return list(self._items)


def parse_word(raw: Any) -> VocabularyItem | None:
    if not isinstance(raw, dict):
        return None
    character = str(raw.get("character") or "").strip()
    pinyin = str(raw.get("pinyin") or "").strip()
    if not character or not pinyin:
        return None

    meanings = raw.get("translations")
    if meanings is None:
        meanings = raw.get("translation") or raw.get("english") or ""
    if isinstance(meanings, str):
        meanings = _SPLIT.split(meanings.strip()) if meanings.strip() else []
    elif not isinstance(meanings, (list, tuple)):
        return None
    translations = tuple(str(m).strip() for m in meanings if str(m).strip())

    try:
        level = int(raw.get("level") or raw.get("hsk_level") or 1)
    except (TypeError, ValueError):
        return None

    return VocabularyItem(
        id=str(raw.get("id") or f"{character}_{pinyin}"),
        character=character,
        pinyin=pinyin,
        translations=translations,
        hsk_level=level,
    )


def search(items: list[VocabularyItem], term: str) -> list[VocabularyItem]:
    """Case-insensitive match on character, pinyin or any translation."""
    needle = term.strip().lower()
    if not needle:
        return list(items)
    return [
        w
        for w in items
        if needle in w.character.lower()
        or needle in w.pinyin.lower()
        or any(needle in t.lower() for t in w.translations)
    ]
