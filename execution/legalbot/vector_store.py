"""
Vector Index: one contract, two storage realizations

- PgVectorStore: PostgreSQL + pgvector, cosine-distance HNSW index (remote)
- LocalVectorStore: JSON file + in-memory linear scan (local_vector_store.py)

init_vector_store() probes PostgreSQL once and falls back to the local store
when it is unreachable. The chosen store is returned to the caller and kept
for the life of the process; there is no re-probing.
"""

import os
import re
import json
import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import EmbeddingError, IndexUnavailableError
from .models import EmbeddedProvision, Provision, ProvisionMetadata, SearchResult

try:
    import psycopg2
    import psycopg2.extras
except ImportError:
    psycopg2 = None  # Will be caught at connect() time

logger = logging.getLogger(__name__)

PGVECTOR = "pgvector"
LOCAL = "local"

# Table names are interpolated into SQL, so only plain identifiers are accepted
VALID_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


@dataclass
class VectorStoreConfig:
    """Configuration for vector store."""
    connection_string: Optional[str] = None
    table_name: Optional[str] = None
    embedding_dimensions: int = 1536
    # HNSW index parameters
    hnsw_m: int = 16
    hnsw_ef_construction: int = 64
    connect_timeout: int = 5
    # Local fallback
    local_path: Optional[str] = None
    # "auto" probes PostgreSQL first, "local" skips the probe
    backend: Optional[str] = None


def clip_score(score: float) -> float:
    """Map a cosine similarity into the [0, 1] score range."""
    return min(1.0, max(0.0, float(score)))


def metadata_matches(metadata: ProvisionMetadata, metadata_filter: Optional[dict]) -> bool:
    """Exact-match conjunction over metadata fields; unknown fields never match."""
    if not metadata_filter:
        return True
    values = metadata.to_dict()
    return all(
        key in values and values[key] == expected
        for key, expected in metadata_filter.items()
    )


class BaseVectorStore:
    """
    Storage contract shared by both realizations.

    Subclasses implement upsert, _search, delete_by_group, clear and stats.
    """

    backend: str = ""

    def upsert(self, embedded: list[EmbeddedProvision]) -> None:
        """Insert or replace provisions keyed by id."""
        raise NotImplementedError("Subclasses must implement upsert()")

    def search(
        self,
        query_vector: list[float],
        top_k: int = 5,
        metadata_filter: Optional[dict] = None,
    ) -> list[SearchResult]:
        """
        Top-K similarity search.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of results
            metadata_filter: Exact-match conditions on metadata fields, e.g. {"group": "LAU"}

        Returns:
            At most top_k results, sorted by descending score
        """
        if top_k <= 0:
            return []
        return self._search(query_vector, top_k, metadata_filter)

    def _search(
        self,
        query_vector: list[float],
        top_k: int,
        metadata_filter: Optional[dict],
    ) -> list[SearchResult]:
        raise NotImplementedError("Subclasses must implement _search()")

    def delete_by_group(self, group_code: str) -> int:
        """Delete every provision of one statute. Returns the number removed."""
        raise NotImplementedError("Subclasses must implement delete_by_group()")

    def clear(self) -> None:
        """Remove all provisions."""
        raise NotImplementedError("Subclasses must implement clear()")

    def stats(self) -> dict:
        """Return {"count": number of stored provisions}."""
        raise NotImplementedError("Subclasses must implement stats()")

    def close(self) -> None:
        """Release resources held by the store."""


class PgVectorStore(BaseVectorStore):
    """
    PostgreSQL vector store with pgvector.

    Features:
    - Cosine-distance search (score = 1 - distance)
    - JSONB metadata filtering
    - Single-transaction upserts, so readers never see half a batch
    """

    backend = PGVECTOR

    def __init__(self, config: Optional[VectorStoreConfig] = None):
        """
        Initialize vector store.

        Args:
            config: Optional configuration. Uses env vars if not provided.
        """
        self.config = config or VectorStoreConfig()
        self._conn = None
        self._connection_string = (
            self.config.connection_string or
            os.getenv("POSTGRES_URL") or
            os.getenv("DATABASE_URL") or
            "postgresql://localhost:5432/legalbot"
        )
        self._table = self.config.table_name or os.getenv("VECTOR_TABLE") or "provisions"
        if not VALID_TABLE_NAME.match(self._table):
            raise ValueError(f"Invalid table name: {self._table!r}")

    def connect(self) -> None:
        """
        Connect and make sure pgvector and the schema exist.

        This is the liveness probe used by init_vector_store().

        Raises:
            IndexUnavailableError: if psycopg2 is missing or PostgreSQL is unreachable
        """
        if psycopg2 is None:
            raise IndexUnavailableError(
                "psycopg2 not installed. Run: pip install psycopg2-binary"
            )

        try:
            self._conn = psycopg2.connect(
                self._connection_string,
                connect_timeout=self.config.connect_timeout,
                cursor_factory=psycopg2.extras.RealDictCursor,
            )
            self._conn.autocommit = False
            self.initialize_schema()
        except psycopg2.Error as e:
            self.close()
            raise IndexUnavailableError(f"PostgreSQL unavailable: {e}") from e

        logger.info(f"Connected to PostgreSQL with pgvector (table: {self._table})")

    def initialize_schema(self) -> None:
        """Create the extension, table and indexes if they don't exist."""
        schema_sql = f"""
        CREATE EXTENSION IF NOT EXISTS vector;

        CREATE TABLE IF NOT EXISTS {self._table} (
            id TEXT PRIMARY KEY,
            group_code TEXT NOT NULL,
            content TEXT NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{{}}',
            embedding VECTOR({self.config.embedding_dimensions}),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_{self._table}_group
            ON {self._table}(group_code);

        CREATE INDEX IF NOT EXISTS idx_{self._table}_embedding
            ON {self._table}
            USING hnsw (embedding vector_cosine_ops)
            WITH (m = {self.config.hnsw_m}, ef_construction = {self.config.hnsw_ef_construction});
        """

        def _op(cur):
            cur.execute(schema_sql)

        self._execute(_op, "initialize_schema")
        logger.info("Schema initialized successfully")

    def _execute(self, operation, label="db_operation"):
        """
        Run operation(cursor) in one transaction.

        Commits on success, rolls back and re-raises on failure. No retries:
        callers own retry policy.
        """
        if self._conn is None:
            raise IndexUnavailableError("PgVectorStore is not connected. Call connect() first.")

        try:
            with self._conn.cursor() as cur:
                result = operation(cur)
            self._conn.commit()
            return result
        except Exception as e:
            self._safe_rollback()
            logger.error(f"{label} failed: {e}")
            raise

    def _safe_rollback(self) -> None:
        """Rollback, ignoring errors if the connection is dead."""
        try:
            self._conn.rollback()
        except (psycopg2.InterfaceError, psycopg2.OperationalError):
            pass

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def upsert(self, embedded: list[EmbeddedProvision]) -> None:
        """Batch upsert with execute_values inside a single transaction."""
        if not embedded:
            return

        for item in embedded:
            if len(item.vector) != self.config.embedding_dimensions:
                raise EmbeddingError(
                    f"Provision {item.id} has {len(item.vector)} dimensions, "
                    f"index expects {self.config.embedding_dimensions}"
                )

        sql = f"""
        INSERT INTO {self._table} (id, group_code, content, metadata, embedding)
        VALUES %s
        ON CONFLICT (id) DO UPDATE SET
            group_code = EXCLUDED.group_code,
            content = EXCLUDED.content,
            metadata = EXCLUDED.metadata,
            embedding = EXCLUDED.embedding,
            updated_at = NOW()
        """

        # Last occurrence wins when a batch repeats an id
        latest = {item.id: item for item in embedded}
        values = [
            (
                item.id,
                item.provision.metadata.group,
                item.provision.text,
                json.dumps(item.provision.metadata.to_dict()),
                list(item.vector),
            )
            for item in latest.values()
        ]

        def _op(cur):
            psycopg2.extras.execute_values(
                cur,
                sql,
                values,
                template="(%s, %s, %s, %s::jsonb, %s::vector)",
                page_size=500,
            )

        self._execute(_op, "upsert")
        logger.info(f"Upserted {len(values)} provisions into {self._table}")

    def _search(
        self,
        query_vector: list[float],
        top_k: int,
        metadata_filter: Optional[dict],
    ) -> list[SearchResult]:
        where_clause = ""
        filter_params = []
        if metadata_filter:
            where_clause = "WHERE metadata @> %s::jsonb"
            filter_params.append(json.dumps(metadata_filter))

        sql = f"""
        SELECT
            id,
            content,
            metadata,
            embedding <=> %s::vector AS distance
        FROM {self._table}
        {where_clause}
        ORDER BY distance
        LIMIT %s
        """
        params = [list(query_vector)] + filter_params + [top_k]

        def _op(cur):
            cur.execute(sql, params)
            return cur.fetchall()

        rows = self._execute(_op, "search")

        results = []
        for row in rows:
            metadata = row["metadata"]
            if isinstance(metadata, str):
                metadata = json.loads(metadata)
            results.append(SearchResult(
                provision=Provision(
                    id=row["id"],
                    text=row["content"],
                    metadata=ProvisionMetadata.from_dict(metadata),
                ),
                # Cosine distance lies in [0, 2]
                score=clip_score(1 - float(row["distance"])),
            ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def delete_by_group(self, group_code: str) -> int:
        def _op(cur):
            cur.execute(f"DELETE FROM {self._table} WHERE group_code = %s", (group_code,))
            return cur.rowcount

        deleted = self._execute(_op, "delete_by_group")
        logger.info(f"Deleted {deleted} provisions for group: {group_code}")
        return deleted

    def clear(self) -> None:
        def _op(cur):
            cur.execute(f"TRUNCATE TABLE {self._table}")

        self._execute(_op, "clear")
        logger.info(f"Cleared table {self._table}")

    def stats(self) -> dict:
        def _op(cur):
            cur.execute(f"SELECT COUNT(*) AS count FROM {self._table}")
            return cur.fetchone()["count"]

        return {"count": int(self._execute(_op, "stats"))}


@dataclass
class IndexSelection:
    """Outcome of backend selection: the store plus why it was chosen."""
    store: BaseVectorStore
    backend: str
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None


def init_vector_store(config: Optional[VectorStoreConfig] = None) -> IndexSelection:
    """
    Choose the storage realization for this process.

    Tries PostgreSQL + pgvector first; if the probe fails, logs once and
    returns the local JSON store instead. VECTOR_BACKEND=local (or
    config.backend="local") skips the probe.

    Returns:
        IndexSelection naming the chosen backend
    """
    from .local_vector_store import LocalVectorStore

    config = config or VectorStoreConfig()
    backend = (config.backend or os.getenv("VECTOR_BACKEND") or "auto").lower()

    if backend == LOCAL:
        store = LocalVectorStore(config.local_path)
        logger.info("Vector store initialized (local JSON store, probe skipped)")
        return IndexSelection(store=store, backend=LOCAL)

    remote = PgVectorStore(config)
    try:
        remote.connect()
    except IndexUnavailableError as e:
        logger.warning(f"pgvector backend unavailable ({e}), using local JSON store")
        store = LocalVectorStore(config.local_path)
        return IndexSelection(store=store, backend=LOCAL, fallback_reason=str(e))

    logger.info("Vector store initialized (pgvector)")
    return IndexSelection(store=remote, backend=PGVECTOR)
