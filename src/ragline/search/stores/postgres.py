"""PostgresVectorStore — pgvector column with an HNSW cosine index."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from ragline.exceptions import ConfigurationError, DimensionMismatchError, RaglineError, StorageError
from ragline.models.embeddings import TABLE_NAME
from ragline.search.types import ScoredChunk, UpsertResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

    from ragline.models.embeddings import EmbeddingRecordBase

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def to_vector_literal(vector: list[float]) -> str:
    """Render *vector* in pgvector's text input format (``[1,2,3]``)."""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


class PostgresVectorStore:
    """Vector store using PostgreSQL with the pgvector extension.

    The ``embedding`` column is ``vector(D)``; similarity search orders by
    the cosine distance operator ``<=>`` and is served by an HNSW index
    built with ``vector_cosine_ops``.  All vector SQL lives here.

    Requires an async PostgreSQL engine (``postgresql+asyncpg://...``)::

        pip install ragline[postgres]
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        dimension: int,
        table_name: str = TABLE_NAME,
        hnsw_m: int = 16,
        hnsw_ef_construction: int = 64,
        dispose_engine: bool = False,
    ) -> None:
        if not _IDENTIFIER_RE.match(table_name):
            msg = f"Invalid table name: {table_name!r}"
            raise ConfigurationError(msg)
        self._engine = engine
        self._dimension = dimension
        self._table = table_name
        self._hnsw_m = hnsw_m
        self._hnsw_ef_construction = hnsw_ef_construction
        self._dispose_engine = dispose_engine

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the extension, table and indexes if they are missing."""
        t = self._table
        statements = [
            "CREATE EXTENSION IF NOT EXISTS vector",
            f"""
            CREATE TABLE IF NOT EXISTS {t} (
                id BIGSERIAL PRIMARY KEY,
                file_path TEXT NOT NULL,
                file_name TEXT NOT NULL,
                chunk_index INTEGER NOT NULL,
                chunk_text TEXT NOT NULL,
                token_count INTEGER NOT NULL DEFAULT 0,
                embedding vector({self._dimension}) NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                CONSTRAINT uq_{t}_path_chunk UNIQUE (file_path, chunk_index)
            )
            """,
            f"CREATE INDEX IF NOT EXISTS ix_{t}_file_path ON {t} (file_path)",
            f"""
            CREATE INDEX IF NOT EXISTS ix_{t}_embedding_hnsw ON {t}
            USING hnsw (embedding vector_cosine_ops)
            WITH (m = {self._hnsw_m}, ef_construction = {self._hnsw_ef_construction})
            """,
        ]
        async with self._connection() as conn:
            for stmt in statements:
                await conn.execute(text(stmt))
        logger.info("pgvector table %s ready (dimension=%d)", t, self._dimension)

    async def close(self) -> None:
        if self._dispose_engine:
            await self._engine.dispose()

    @property
    def dimension(self) -> int:
        return self._dimension

    # ------------------------------------------------------------------
    # VectorStore protocol
    # ------------------------------------------------------------------

    async def upsert(self, record: EmbeddingRecordBase) -> None:
        """Insert or replace the record for ``(file_path, chunk_index)``."""
        vector = record.vector
        self._check_dimension(len(vector))
        stmt = text(
            f"""
            INSERT INTO {self._table}
                (file_path, file_name, chunk_index, chunk_text, token_count, embedding, created_at)
            VALUES
                (:file_path, :file_name, :chunk_index, :chunk_text, :token_count,
                 CAST(:embedding AS vector), :created_at)
            ON CONFLICT (file_path, chunk_index) DO UPDATE SET
                file_name = EXCLUDED.file_name,
                chunk_text = EXCLUDED.chunk_text,
                token_count = EXCLUDED.token_count,
                embedding = EXCLUDED.embedding,
                created_at = EXCLUDED.created_at
            """
        )
        params = {
            "file_path": record.file_path,
            "file_name": record.file_name,
            "chunk_index": record.chunk_index,
            "chunk_text": record.chunk_text,
            "token_count": record.token_count,
            "embedding": to_vector_literal(vector),
            "created_at": record.created_at,
        }
        async with self._connection() as conn:
            await conn.execute(stmt, params)

    async def upsert_many(self, records: list[EmbeddingRecordBase]) -> UpsertResult:
        """Upsert records one by one, collecting failures instead of raising."""
        count = 0
        errors: list[str] = []
        for record in records:
            try:
                await self.upsert(record)
            except RaglineError as e:
                errors.append(f"{record.file_path}#{record.chunk_index}: {e}")
                continue
            count += 1
        return UpsertResult(upserted_count=count, errors=errors)

    async def search(self, vector: list[float], limit: int) -> list[ScoredChunk]:
        """Return up to *limit* chunks ordered by ``embedding <=> query``, ties by id."""
        self._check_dimension(len(vector))
        if limit <= 0:
            return []
        stmt = text(
            f"""
            SELECT chunk_text, file_path, chunk_index,
                   embedding <=> CAST(:query AS vector) AS distance
            FROM {self._table}
            ORDER BY distance ASC, id ASC
            LIMIT :limit
            """
        )
        async with self._connection() as conn:
            result = await conn.execute(
                stmt, {"query": to_vector_literal(vector), "limit": limit}
            )
            rows = result.mappings().all()
        return [
            ScoredChunk(
                text=row["chunk_text"],
                distance=float(row["distance"]),
                file_path=row["file_path"],
                chunk_index=int(row["chunk_index"]),
            )
            for row in rows
        ]

    async def count(self) -> int:
        async with self._connection() as conn:
            result = await conn.execute(text(f"SELECT COUNT(*) FROM {self._table}"))
            return int(result.scalar_one())

    async def truncate_source(self, file_path: str, keep: int) -> int:
        """Delete records of *file_path* whose ``chunk_index >= keep``."""
        stmt = text(
            f"DELETE FROM {self._table} WHERE file_path = :file_path AND chunk_index >= :keep"
        )
        async with self._connection() as conn:
            result = await conn.execute(stmt, {"file_path": file_path, "keep": keep})
        removed = result.rowcount or 0
        if removed:
            logger.debug("Removed %d stale chunk(s) of %s", removed, file_path)
        return removed

    async def delete_chunks(self, file_path: str, chunk_indices: list[int]) -> int:
        """Delete the records of *file_path* at the given chunk indices."""
        if not chunk_indices:
            return 0
        stmt = text(
            f"DELETE FROM {self._table} "
            "WHERE file_path = :file_path AND chunk_index IN :indices"
        ).bindparams(bindparam("indices", expanding=True))
        async with self._connection() as conn:
            result = await conn.execute(
                stmt, {"file_path": file_path, "indices": list(chunk_indices)}
            )
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        try:
            async with self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            msg = f"Vector store operation failed: {e}"
            raise StorageError(msg) from e

    def _check_dimension(self, actual: int) -> None:
        if actual != self._dimension:
            raise DimensionMismatchError(self._dimension, actual)
