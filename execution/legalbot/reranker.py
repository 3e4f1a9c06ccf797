"""
Keyword Reranker and Result Filters

Deterministic second pass over vector search candidates:
- rerank(): lexical boosts for query terms found in the body or heading,
  plus curated per-article boosts from the term lexicon
- deduplicate_results(): drops near-identical texts (overlap context makes
  neighbouring provisions look alike)
- filter_by_threshold(): similarity cutoff
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from .language_config import LanguageConfig
from .language_patterns import QUERY_PUNCTUATION, STOPWORDS, TERM_BOOSTS
from .models import SearchResult

logger = logging.getLogger(__name__)


@dataclass
class RerankConfig:
    """Boost constants for keyword reranking."""
    # Added once per query term found in the provision body
    term_boost: float = 0.10
    # Added once per query term found in the provision heading
    heading_boost: float = 0.15
    max_score: float = 1.0
    min_term_length: int = 3


def extract_key_terms(query: str, language: str = "en", min_term_length: int = 3) -> list[str]:
    """
    Tokenize a query into lowercase key terms.

    Punctuation is replaced by spaces, stopwords and short terms are dropped,
    and repeated terms are kept once in first-seen order.
    """
    stopwords = STOPWORDS.get(language, STOPWORDS["en"])
    cleaned = QUERY_PUNCTUATION.sub(" ", (query or "").lower())

    terms = []
    for term in cleaned.split():
        if len(term) < min_term_length or term in stopwords or term in terms:
            continue
        terms.append(term)
    return terms


class KeywordReranker:
    """Lexical reranker over vector search candidates."""

    def __init__(
        self,
        config: Optional[RerankConfig] = None,
        language_config: Optional[LanguageConfig] = None,
    ):
        self.config = config or RerankConfig()
        self._language_config = language_config or LanguageConfig.for_language("en")
        self._lang = self._language_config.language
        self._lexicon = TERM_BOOSTS.get(self._lang, TERM_BOOSTS["en"])

    def boost_for(self, result: SearchResult, terms: list[str]) -> float:
        """Total boost a result earns for the given query terms."""
        text = result.text.lower()
        heading = result.metadata.heading.lower()
        group = result.metadata.group
        label = result.metadata.label

        boost = 0.0
        for term in terms:
            if term in text:
                boost += self.config.term_boost
            if term in heading:
                boost += self.config.heading_boost
            for target_group, target_label, term_boost in self._lexicon.get(term, []):
                if target_group == group and target_label == label:
                    boost += term_boost
        return boost

    def rerank(self, results: list[SearchResult], query: str) -> list[SearchResult]:
        """
        Re-score and re-sort candidates.

        Args:
            results: Candidates from vector search
            query: The user query

        Returns:
            New results with adjusted scores, sorted descending; ties keep input order
        """
        if not results:
            return []

        terms = extract_key_terms(query, self._lang, self.config.min_term_length)
        logger.debug(f"Rerank terms: {terms}")

        rescored = [
            replace(result, score=min(self.config.max_score, result.score + self.boost_for(result, terms)))
            for result in results
        ]
        rescored.sort(key=lambda r: r.score, reverse=True)
        return rescored


def filter_by_threshold(results: list[SearchResult], threshold: float) -> list[SearchResult]:
    """Keep results with score >= threshold, order preserved."""
    return [r for r in results if r.score >= threshold]


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Word-set Jaccard similarity. Two empty texts count as identical."""
    words_a = set(text_a.lower().split())
    words_b = set(text_b.lower().split())
    union = words_a | words_b
    if not union:
        return 1.0
    return len(words_a & words_b) / len(union)


def deduplicate_results(results: list[SearchResult], max_overlap: float = 0.8) -> list[SearchResult]:
    """
    Drop near-duplicate results.

    A result is kept only if its Jaccard similarity to every result already
    kept is strictly below max_overlap. Input order decides which copy survives.
    """
    unique: list[SearchResult] = []
    for result in results:
        if all(jaccard_similarity(kept.text, result.text) < max_overlap for kept in unique):
            unique.append(result)

    if len(unique) < len(results):
        logger.debug(f"Removed {len(results) - len(unique)} near-duplicate results")
    return unique
