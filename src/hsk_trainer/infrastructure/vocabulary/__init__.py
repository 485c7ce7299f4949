# Infrastructure Vocabulary Adapters Package
from .file_store import FALLBACK_VOCABULARY, FileVocabularyStore, InMemoryVocabularyStore, search

__all__ = ["FileVocabularyStore", "InMemoryVocabularyStore", "FALLBACK_VOCABULARY", "search"]
