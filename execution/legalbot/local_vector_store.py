"""
Local Vector Store - file-backed storage for development without PostgreSQL

Keeps every embedded provision in memory, answers queries with a linear
cosine scan, and writes the whole store to a JSON file on every mutation.
This is the reference implementation the pgvector backend is checked against.
"""

import os
import json
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional

from .embeddings import cosine_similarity
from .exceptions import EmbeddingError
from .models import EmbeddedProvision, SearchResult
from .vector_store import LOCAL, BaseVectorStore, clip_score, metadata_matches

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = "./data/vector_store.json"

# Informational only; files are read back by the same version that wrote them
STORE_VERSION = 1


class LocalVectorStore(BaseVectorStore):
    """
    JSON-persisted, in-process vector store.

    Mutations build a new entry list, flush it to disk (temp file, fsync,
    atomic rename) and only then swap it in. Searches work on whichever list
    is current, so a reader never sees a half-applied upsert.
    """

    backend = LOCAL

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the store, loading any existing file.

        Args:
            path: JSON file location. Falls back to LOCAL_STORE_PATH, then ./data/vector_store.json
        """
        self._path = Path(path or os.getenv("LOCAL_STORE_PATH") or DEFAULT_STORE_PATH)
        self._lock = threading.Lock()
        self._entries: list[EmbeddedProvision] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dimensions(self) -> Optional[int]:
        """Vector length of stored entries, None while empty."""
        entries = self._entries
        return len(entries[0].vector) if entries else None

    def _load(self) -> list[EmbeddedProvision]:
        if not self._path.exists():
            logger.info(f"Creating new local vector store at {self._path}")
            return []

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            entries = [EmbeddedProvision.from_dict(item) for item in data.get("entries", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not read local vector store {self._path} ({e}), starting empty")
            return []

        if data.get("version") != STORE_VERSION:
            logger.info(f"Local store version {data.get('version')} differs from {STORE_VERSION}")

        logger.info(f"Local vector store loaded: {len(entries)} provisions")
        return entries

    def _save(self, entries: list[EmbeddedProvision]) -> None:
        """Write entries to disk and fsync before returning."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": STORE_VERSION,
            "entries": [entry.to_dict() for entry in entries],
        }

        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _check_dimensions(self, embedded: list[EmbeddedProvision]) -> None:
        expected = self.dimensions
        for item in embedded:
            if not item.vector:
                raise EmbeddingError(f"Provision {item.id} has no vector")
            if expected is None:
                expected = len(item.vector)
            elif len(item.vector) != expected:
                raise EmbeddingError(
                    f"Provision {item.id} has {len(item.vector)} dimensions, store holds {expected}"
                )

    def upsert(self, embedded: list[EmbeddedProvision]) -> None:
        """Replace entries sharing an id in place, append the rest, then persist."""
        if not embedded:
            return

        with self._lock:
            self._check_dimensions(embedded)
            entries = list(self._entries)
            positions = {entry.id: i for i, entry in enumerate(entries)}
            for item in embedded:
                if item.id in positions:
                    entries[positions[item.id]] = item
                else:
                    positions[item.id] = len(entries)
                    entries.append(item)

            self._save(entries)
            self._entries = entries

        logger.info(f"Upserted {len(embedded)} provisions into local vector store")

    def _search(
        self,
        query_vector: list[float],
        top_k: int,
        metadata_filter: Optional[dict],
    ) -> list[SearchResult]:
        entries = self._entries

        scored = [
            (cosine_similarity(query_vector, entry.vector), entry)
            for entry in entries
            if metadata_matches(entry.provision.metadata, metadata_filter)
        ]
        # Stable sort: equal scores keep insertion order
        scored.sort(key=lambda pair: pair[0], reverse=True)

        results = [
            SearchResult(provision=entry.provision, score=clip_score(similarity))
            for similarity, entry in scored[:top_k]
        ]

        if results:
            logger.debug(
                f"Local search over {len(entries)} provisions, top scores: "
                f"{', '.join(f'{r.score:.3f}' for r in results)}"
            )
        return results

    def delete_by_group(self, group_code: str) -> int:
        with self._lock:
            entries = [e for e in self._entries if e.provision.metadata.group != group_code]
            deleted = len(self._entries) - len(entries)
            self._save(entries)
            self._entries = entries

        logger.info(f"Deleted {deleted} provisions for group: {group_code}")
        return deleted

    def clear(self) -> None:
        with self._lock:
            self._save([])
            self._entries = []
        logger.info("Local vector store cleared")

    def stats(self) -> dict:
        return {"count": len(self._entries)}
