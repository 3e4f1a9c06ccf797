"""
Language Configuration for the Statute Retrieval Core

Selects the marker words, labels, stopwords and term lexicon used by the
segmenter and reranker. English and Spanish are supported; the reference
corpus (LAU, LPH, Civil Code) is Spanish.
"""

from dataclasses import dataclass


SUPPORTED_LANGUAGES = {
    "en": {
        "name": "English",
        "embedding_model": "text-embedding-3-small",
    },
    "es": {
        "name": "Spanish",
        "embedding_model": "text-embedding-3-small",
    },
}


@dataclass
class LanguageConfig:
    """Per-corpus language and model configuration."""
    language: str = "en"
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"

    @classmethod
    def for_language(cls, language: str) -> "LanguageConfig":
        """
        Factory method returning defaults for a given language.

        Args:
            language: ISO 639-1 code ("en" or "es"). Unknown codes fall back to "en".

        Returns:
            LanguageConfig with appropriate defaults
        """
        if language not in SUPPORTED_LANGUAGES:
            language = "en"

        return cls(
            language=language,
            embedding_provider="openai",
            embedding_model=SUPPORTED_LANGUAGES[language]["embedding_model"],
        )

    @property
    def name(self) -> str:
        return SUPPORTED_LANGUAGES.get(self.language, SUPPORTED_LANGUAGES["en"])["name"]
