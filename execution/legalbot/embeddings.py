"""
Embedding Gateway for Statute Retrieval

Maps provisions and queries to fixed-length vectors through an external
embedding API. OpenAI text-embedding-3-small is the default; Voyage AI and
Cohere are available as alternative providers.

Architecture:
    BaseEmbeddingService  -- shared batching, query caching, embed_one, embed_many
        OpenAIEmbeddingService  -- OpenAI embeddings endpoint
        VoyageEmbeddingService  -- Voyage AI (voyage-law-2 / voyage-multilingual-2)
        CohereEmbeddingService  -- Cohere embed-v3

Batches are sent sequentially with a short pause between them to stay under
provider rate limits. A failed batch aborts the whole call and no partial
result is returned; callers retry the call as a whole.
"""

import os
import time
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .exceptions import DimensionMismatch, EmbeddingError
from .language_config import LanguageConfig
from .models import EmbeddedProvision, Provision

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for embedding service."""
    provider: str = "openai"  # "openai", "voyage" or "cohere"
    model: str = "text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 100
    batch_delay_seconds: float = 0.1
    use_cache: bool = True
    max_cache_size: int = 1000


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatch: if the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))

    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)
    # One sqrt over the product of squared norms keeps cos(v, v) exactly 1.0
    denom = np.sqrt(np.dot(a_arr, a_arr) * np.dot(b_arr, b_arr))
    if denom == 0:
        return 0.0
    return float(np.clip(np.dot(a_arr, b_arr) / denom, -1.0, 1.0))


class BaseEmbeddingService:
    """
    Base class for API-based embedding services.

    Subclasses implement:
    - _init_client(): create the provider client (or leave it None without credentials)
    - _request_embeddings(texts, input_type): one API call, one vector per text

    And set these class attributes:
    - _provider_name: Human-readable provider name for error messages
    - _env_var_name: Environment variable holding the API key
    - _doc_input_type / _query_input_type: provider input types
    """

    _provider_name: str = "Base"
    _env_var_name: str = ""
    _doc_input_type: str = "document"
    _query_input_type: str = "query"

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        """
        Initialize embedding service.

        Args:
            config: Optional configuration. Uses defaults if not provided.
        """
        self.config = config or EmbeddingConfig()
        self._client = None
        self._cache = OrderedDict()
        self._init_client()

    def _init_client(self):
        """Initialize the provider-specific API client. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _init_client()")

    def _request_embeddings(self, texts: list[str], input_type: str) -> list[list[float]]:
        """Issue one embedding request. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _request_embeddings()")

    def _require_client(self) -> None:
        if not self._client:
            raise EmbeddingError(
                f"{self._provider_name} client not initialized. "
                f"Check {self._env_var_name}."
            )

    def embed_one(self, text: str) -> list[float]:
        """
        Generate the embedding for a single query string.

        Raises:
            EmbeddingError: if the service returns no vector
        """
        self._require_client()

        cache_key = (self.config.model, text)
        if self.config.use_cache and cache_key in self._cache:
            self._cache.move_to_end(cache_key)
            return list(self._cache[cache_key])

        vectors = self._embed_batch([text], input_type=self._query_input_type)
        vector = vectors[0]

        if self.config.use_cache:
            self._cache[cache_key] = list(vector)
            while len(self._cache) > self.config.max_cache_size:
                self._cache.popitem(last=False)

        return vector

    def embed_texts(self, texts: list[str], batch_size: Optional[int] = None) -> list[list[float]]:
        """
        Embed document texts in sequential batches.

        Args:
            texts: Texts to embed
            batch_size: Items per request, defaults to config.batch_size

        Returns:
            One vector per text, in input order
        """
        if not texts:
            return []

        self._require_client()

        size = batch_size or self.config.batch_size
        if size < 1:
            raise ValueError(f"batch_size must be positive, got {size}")

        batches = [texts[i:i + size] for i in range(0, len(texts), size)]
        logger.info(
            f"Embedding {len(texts)} texts in {len(batches)} batches"
            f" with {self._provider_name}"
        )

        vectors = []
        for batch_idx, batch in enumerate(batches):
            logger.debug(f"Embedding batch {batch_idx + 1}/{len(batches)}")
            vectors.extend(self._embed_batch(batch, input_type=self._doc_input_type))

            if batch_idx < len(batches) - 1 and self.config.batch_delay_seconds > 0:
                time.sleep(self.config.batch_delay_seconds)

        return vectors

    def embed_many(
        self,
        provisions: list[Provision],
        batch_size: Optional[int] = None,
    ) -> list[EmbeddedProvision]:
        """
        Embed provisions, pairing each with its vector.

        The whole call fails if any batch fails; nothing partial is returned.
        """
        vectors = self.embed_texts([p.text for p in provisions], batch_size=batch_size)
        return [
            EmbeddedProvision(provision=provision, vector=vector)
            for provision, vector in zip(provisions, vectors)
        ]

    def _embed_batch(self, texts: list[str], input_type: str) -> list[list[float]]:
        """Embed one batch and check that every text got a vector."""
        try:
            vectors = self._request_embeddings(texts, input_type)
        except Exception as e:
            logger.error(f"{self._provider_name} embedding failed: {e}")
            raise

        vectors = list(vectors or [])
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"{self._provider_name} returned {len(vectors)} vectors for {len(texts)} texts"
            )
        if any(not vector for vector in vectors):
            raise EmbeddingError(f"{self._provider_name} returned an empty vector")

        return [list(vector) for vector in vectors]

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self.config.dimensions


class OpenAIEmbeddingService(BaseEmbeddingService):
    """
    Embedding service using OpenAI's embeddings endpoint.

    text-embedding-3-small gives 1536-dimensional vectors; upgrade to
    text-embedding-3-large for higher quality.
    """

    _provider_name = "OpenAI"
    _env_var_name = "OPENAI_API_KEY"

    def _init_client(self):
        """Initialize the OpenAI client."""
        api_key = os.getenv("OPENAI_API_KEY")

        if not api_key:
            logger.warning("OPENAI_API_KEY not found. Embeddings will fail.")
            return

        try:
            from openai import OpenAI
            self._client = OpenAI(api_key=api_key)
            logger.info(f"OpenAI client initialized with model {self.config.model}")
        except ImportError:
            logger.error("openai package not installed. Run: pip install openai")
            raise

    def _request_embeddings(self, texts: list[str], input_type: str) -> list[list[float]]:
        response = self._client.embeddings.create(model=self.config.model, input=texts)
        data = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in data]


class VoyageEmbeddingService(BaseEmbeddingService):
    """
    Embedding service using Voyage AI.

    voyage-law-2 is tuned for legal text; voyage-multilingual-2 suits the
    Spanish corpus. Distinguishes document and query input types.
    """

    _provider_name = "Voyage AI"
    _env_var_name = "VOYAGE_API_KEY"
    _doc_input_type = "document"
    _query_input_type = "query"

    def _init_client(self):
        """Initialize the Voyage AI client."""
        api_key = os.getenv("VOYAGE_API_KEY")

        if not api_key:
            logger.warning("VOYAGE_API_KEY not found. Embeddings will fail.")
            return

        try:
            import voyageai
            self._client = voyageai.Client(api_key=api_key)
            logger.info(f"Voyage AI client initialized with model {self.config.model}")
        except ImportError:
            logger.error("voyageai package not installed. Run: pip install voyageai")
            raise

    def _request_embeddings(self, texts: list[str], input_type: str) -> list[list[float]]:
        response = self._client.embed(texts=texts, model=self.config.model, input_type=input_type)
        return response.embeddings


class CohereEmbeddingService(BaseEmbeddingService):
    """Embedding service using Cohere's embed-v3 models."""

    _provider_name = "Cohere"
    _env_var_name = "COHERE_API_KEY"
    _doc_input_type = "search_document"
    _query_input_type = "search_query"

    def _init_client(self):
        """Initialize the Cohere client."""
        api_key = os.getenv("COHERE_API_KEY")

        if not api_key:
            logger.warning("COHERE_API_KEY not found. Embeddings will fail.")
            return

        try:
            import cohere
            self._client = cohere.Client(api_key)
            logger.info(f"Cohere client initialized with model {self.config.model}")
        except ImportError:
            logger.error("cohere package not installed. Run: pip install cohere")
            raise

    def _request_embeddings(self, texts: list[str], input_type: str) -> list[list[float]]:
        response = self._client.embed(texts=texts, model=self.config.model, input_type=input_type)
        return response.embeddings


PROVIDERS = {
    "openai": (OpenAIEmbeddingService, "text-embedding-3-small", 1536),
    "voyage": (VoyageEmbeddingService, "voyage-multilingual-2", 1024),
    "cohere": (CohereEmbeddingService, "embed-multilingual-v3.0", 1024),
}


def get_embedding_service(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    language_config: Optional[LanguageConfig] = None,
) -> BaseEmbeddingService:
    """
    Factory function to get the configured embedding service.

    Provider: argument, EMBEDDING_PROVIDER, language config, "openai".
    Model: argument, EMBEDDING_MODEL, language config (same provider only),
    provider default.

    Args:
        provider: "openai" (default), "voyage" or "cohere"
        model: Model name override
        language_config: Optional LanguageConfig supplying provider and model

    Returns:
        Configured embedding service
    """
    prov = (
        provider
        or os.getenv("EMBEDDING_PROVIDER")
        or (language_config.embedding_provider if language_config else None)
        or "openai"
    ).lower()
    if prov not in PROVIDERS:
        raise ValueError(f"Unknown embedding provider: {prov}. Use one of {sorted(PROVIDERS)}")

    service_cls, default_model, dimensions = PROVIDERS[prov]
    if language_config and prov == language_config.embedding_provider:
        default_model = language_config.embedding_model

    config = EmbeddingConfig(
        provider=prov,
        model=model or os.getenv("EMBEDDING_MODEL") or default_model,
        dimensions=dimensions,
    )
    return service_cls(config)


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    service = get_embedding_service()
    query = " ".join(sys.argv[1:]) or "¿Puedo subarrendar mi piso?"

    print(f"Query: {query}")
    embedding = service.embed_one(query)
    print(f"Embedding dimensions: {len(embedding)}")
    print(f"First 10 values: {embedding[:10]}")
