"""
LegalBot - Statute Retrieval Core

Retrieves the statute articles most relevant to a legal question so that a
language model can answer with citations:
- Statute-aware segmentation into provisions (one per article)
- Batched embeddings through OpenAI, Voyage AI or Cohere
- Vector search on PostgreSQL + pgvector, with a local JSON fallback
- Deterministic keyword reranking, deduplication and threshold filtering
"""

from .models import Provision, ProvisionMetadata, EmbeddedProvision, SearchResult, SourceDescriptor
from .segmenter import ProvisionSegmenter
from .embeddings import get_embedding_service
from .vector_store import PgVectorStore, init_vector_store
from .local_vector_store import LocalVectorStore
from .reranker import KeywordReranker
from .retriever import LegalRetriever

__all__ = [
    "Provision",
    "ProvisionMetadata",
    "EmbeddedProvision",
    "SearchResult",
    "SourceDescriptor",
    "ProvisionSegmenter",
    "get_embedding_service",
    "PgVectorStore",
    "LocalVectorStore",
    "init_vector_store",
    "KeywordReranker",
    "LegalRetriever",
]

__version__ = "0.1.0"
