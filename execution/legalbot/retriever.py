"""
Statute Retriever

Runs the query side of the pipeline:
    query -> embed -> vector search (over-fetch) -> rerank -> deduplicate
          -> threshold -> top results

Over-fetching gives the reranker and the deduplicator room to work before
the final cut.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from .embeddings import BaseEmbeddingService
from .models import SearchResult
from .reranker import KeywordReranker, deduplicate_results, filter_by_threshold
from .vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


@dataclass
class RetrievalConfig:
    """Configuration for statute retrieval."""
    # Final number of provisions handed to the caller
    max_results: int = 5
    # Vector search fetches max_results * candidate_multiplier candidates
    candidate_multiplier: int = 2
    similarity_threshold: float = 0.7
    # Jaccard ceiling for deduplication
    max_overlap: float = 0.8
    use_reranking: bool = True
    use_deduplication: bool = True

    @classmethod
    def from_env(cls) -> "RetrievalConfig":
        """Build a config from MAX_CHUNKS and SIMILARITY_THRESHOLD."""
        return cls(
            max_results=int(os.getenv("MAX_CHUNKS", "5")),
            similarity_threshold=float(os.getenv("SIMILARITY_THRESHOLD", "0.7")),
        )


class LegalRetriever:
    """
    Query-time retrieval over a vector store.

    The store and embedding service are injected; the retriever owns neither.
    Embedding and search errors propagate unchanged.
    """

    def __init__(
        self,
        store: BaseVectorStore,
        embedding_service: BaseEmbeddingService,
        config: Optional[RetrievalConfig] = None,
        reranker: Optional[KeywordReranker] = None,
    ):
        self.store = store
        self.embedding_service = embedding_service
        self.config = config or RetrievalConfig()
        self.reranker = reranker or KeywordReranker()

    def retrieve(
        self,
        query: str,
        metadata_filter: Optional[dict] = None,
    ) -> list[SearchResult]:
        """
        Retrieve the provisions most relevant to a query.

        Args:
            query: Natural-language question
            metadata_filter: Exact-match conditions, e.g. {"group": "LAU"}

        Returns:
            At most config.max_results results, best first
        """
        if not query or not query.strip():
            return []

        candidate_count = self.config.max_results * self.config.candidate_multiplier
        query_vector = self.embedding_service.embed_one(query)
        results = self.store.search(query_vector, top_k=candidate_count, metadata_filter=metadata_filter)
        logger.info(f"Vector search returned {len(results)} candidates ({self.store.backend})")

        if self.config.use_reranking:
            results = self.reranker.rerank(results, query)

        if self.config.use_deduplication:
            results = deduplicate_results(results, self.config.max_overlap)

        results = filter_by_threshold(results, self.config.similarity_threshold)
        results = results[:self.config.max_results]

        logger.info(
            f"Retrieved {len(results)} provisions: "
            f"{', '.join(f'{r.metadata.group} {r.metadata.label} ({r.score:.3f})' for r in results)}"
        )
        return results


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    from .embeddings import get_embedding_service
    from .language_config import LanguageConfig
    from .vector_store import VectorStoreConfig, init_vector_store

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) < 2:
        print("Usage: python -m execution.legalbot.retriever <query> [language]")
        sys.exit(1)

    language_config = LanguageConfig.for_language(sys.argv[2] if len(sys.argv) > 2 else "es")
    embedding_service = get_embedding_service(language_config=language_config)
    selection = init_vector_store(VectorStoreConfig(embedding_dimensions=embedding_service.dimensions))
    retriever = LegalRetriever(
        store=selection.store,
        embedding_service=embedding_service,
        config=RetrievalConfig.from_env(),
        reranker=KeywordReranker(language_config=language_config),
    )

    try:
        for result in retriever.retrieve(sys.argv[1]):
            print(f"\n[{result.score:.3f}] {result.metadata.group} {result.metadata.label} {result.metadata.heading}")
            print(result.text[:300])
    finally:
        selection.store.close()
