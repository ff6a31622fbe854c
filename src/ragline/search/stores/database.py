"""DatabaseVectorStore — SQL-backed embeddings with an in-process usearch HNSW index."""

from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import numpy as np
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from usearch.index import Index

from ragline.exceptions import DimensionMismatchError, RaglineError, StorageError
from ragline.models.embeddings import EmbeddingRecord
from ragline.search.stores._dialect import get_dialect, upsert_row
from ragline.search.types import ScoredChunk, UpsertResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from ragline.models.embeddings import EmbeddingRecordBase

logger = logging.getLogger(__name__)

_CONFLICT_KEYS = ["file_path", "chunk_index"]


class DatabaseVectorStore:
    """Vector store over any SQLAlchemy async database.

    Records live in the ``ragline_embeddings`` table (or *record_model*),
    keyed by ``(file_path, chunk_index)``.  A usearch HNSW index (metric
    ``cos``) keyed by record id mirrors the table: it is rebuilt on
    :meth:`connect` and updated on every write.  Stores holding at most
    *exact_search_threshold* records answer queries by exact search.

    Thread-safe via :class:`threading.Lock` around index access.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        dimension: int,
        record_model: type[EmbeddingRecordBase] = EmbeddingRecord,
        exact_search_threshold: int = 1_000,
        dispose_engine: bool = False,
    ) -> None:
        self._engine = engine
        self._dimension = dimension
        self._model = record_model
        self._exact_search_threshold = exact_search_threshold
        self._dispose_engine = dispose_engine
        self._dialect = get_dialect(engine)
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

        self._lock = threading.Lock()
        self._index = self._new_index()
        # record id → float32 vector, mirrors the HNSW index for exact search
        self._vectors: dict[int, np.ndarray] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the table if missing and rebuild the index from stored rows."""
        table = self._model.__table__  # type: ignore[attr-defined]
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(lambda c: table.create(c, checkfirst=True))
        except SQLAlchemyError as e:
            msg = f"Failed to create embeddings table: {e}"
            raise StorageError(msg) from e

        async with self._session() as session:
            rows = (await session.execute(select(self._model.id, self._model.embedding))).all()  # type: ignore[attr-defined]

        index = self._new_index()
        vectors: dict[int, np.ndarray] = {}
        for row_id, blob in rows:
            vec = np.frombuffer(blob, dtype="<f4").astype(np.float32)
            self._check_dimension(len(vec))
            vectors[int(row_id)] = vec
        if vectors:
            index.add(
                np.fromiter(vectors.keys(), dtype=np.uint64, count=len(vectors)),
                np.stack(list(vectors.values())),
            )

        with self._lock:
            self._index = index
            self._vectors = vectors
        logger.info("Loaded %d embedding(s) into the vector index", len(vectors))

    async def close(self) -> None:
        """Drop the in-memory index; dispose the engine if this store owns it."""
        with self._lock:
            self._index = self._new_index()
            self._vectors = {}
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
        self._check_dimension(record.dimension)
        values = {
            "file_path": record.file_path,
            "file_name": record.file_name,
            "chunk_index": record.chunk_index,
            "chunk_text": record.chunk_text,
            "token_count": record.token_count,
            "embedding": record.embedding,
            "created_at": record.created_at,
        }
        model = self._model
        async with self._session() as session:
            await upsert_row(session, self._dialect, model, values, _CONFLICT_KEYS)
            row_id = (
                await session.execute(
                    select(model.id).where(  # type: ignore[attr-defined]
                        model.file_path == record.file_path,  # type: ignore[attr-defined]
                        model.chunk_index == record.chunk_index,  # type: ignore[attr-defined]
                    )
                )
            ).scalar_one()
            await session.commit()

        self._index_put(int(row_id), np.asarray(record.vector, dtype=np.float32))
        logger.debug(
            "Upserted %s#%d (id=%d)", record.file_path, record.chunk_index, row_id
        )

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
        """Return up to *limit* chunks by ascending cosine distance, ties by id."""
        self._check_dimension(len(vector))
        if limit <= 0:
            return []

        query = np.asarray(vector, dtype=np.float32)
        with self._lock:
            size = len(self._vectors)
            if size == 0:
                return []
            if size <= self._exact_search_threshold:
                hits = _exact_search(self._vectors, query, limit)
            else:
                matches = self._index.search(query, min(limit, size))
                hits = sorted(
                    zip(
                        (int(k) for k in matches.keys.tolist()),
                        (float(d) for d in matches.distances.tolist()),
                        strict=True,
                    ),
                    key=lambda h: (h[1], h[0]),
                )

        if not hits:
            return []

        model = self._model
        ids = [h[0] for h in hits]
        async with self._session() as session:
            rows = (
                await session.execute(select(model).where(model.id.in_(ids)))  # type: ignore[attr-defined]
            ).scalars().all()
        by_id = {row.id: row for row in rows}

        results: list[ScoredChunk] = []
        for row_id, distance in hits:
            row = by_id.get(row_id)
            if row is None:
                continue
            results.append(
                ScoredChunk(
                    text=row.chunk_text,
                    distance=distance,
                    file_path=row.file_path,
                    chunk_index=row.chunk_index,
                )
            )
        return results

    async def count(self) -> int:
        """Return the number of stored records."""
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(self._model))
            return int(result.scalar_one())

    async def truncate_source(self, file_path: str, keep: int) -> int:
        """Delete records of *file_path* whose ``chunk_index >= keep``."""
        removed = await self._delete_where(
            file_path,
            self._model.chunk_index >= keep,  # type: ignore[attr-defined]
        )
        if removed:
            logger.debug("Removed %d stale chunk(s) of %s", removed, file_path)
        return removed

    async def delete_chunks(self, file_path: str, chunk_indices: list[int]) -> int:
        """Delete the records of *file_path* at the given chunk indices."""
        if not chunk_indices:
            return 0
        return await self._delete_where(
            file_path,
            self._model.chunk_index.in_(chunk_indices),  # type: ignore[attr-defined]
        )

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    async def get(self, file_path: str, chunk_index: int) -> EmbeddingRecordBase | None:
        """Fetch the record stored for ``(file_path, chunk_index)``."""
        model = self._model
        async with self._session() as session:
            result = await session.execute(
                select(model).where(
                    model.file_path == file_path,  # type: ignore[attr-defined]
                    model.chunk_index == chunk_index,  # type: ignore[attr-defined]
                )
            )
            return result.scalar_one_or_none()

    def __len__(self) -> int:
        """Return the number of indexed vectors."""
        return len(self._vectors)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            msg = f"Vector store operation failed: {e}"
            raise StorageError(msg) from e

    async def _delete_where(self, file_path: str, condition: Any) -> int:
        model = self._model
        where = (model.file_path == file_path, condition)  # type: ignore[attr-defined]
        async with self._session() as session:
            ids = (await session.execute(select(model.id).where(*where))).scalars().all()  # type: ignore[attr-defined]
            if not ids:
                return 0
            await session.execute(delete(model).where(*where))
            await session.commit()

        for row_id in ids:
            self._index_remove(int(row_id))
        return len(ids)

    def _new_index(self) -> Index:
        return Index(ndim=self._dimension, metric="cos", dtype="f32")

    def _check_dimension(self, actual: int) -> None:
        if actual != self._dimension:
            raise DimensionMismatchError(self._dimension, actual)

    def _index_put(self, key: int, vector: np.ndarray) -> None:
        with self._lock:
            if key in self._vectors:
                self._index.remove(key)
            self._index.add(key, vector)
            self._vectors[key] = vector

    def _index_remove(self, key: int) -> None:
        with self._lock:
            if self._vectors.pop(key, None) is not None:
                self._index.remove(key)


def _exact_search(
    vectors: dict[int, np.ndarray], query: np.ndarray, limit: int
) -> list[tuple[int, float]]:
    """Brute-force cosine distance over all vectors, ordered by (distance, id)."""
    ids = np.fromiter(vectors.keys(), dtype=np.int64, count=len(vectors))
    matrix = np.stack(list(vectors.values()))
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    # Zero vectors have no direction; treat them as orthogonal.
    similarity = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
    distances = np.clip(1.0 - similarity, 0.0, 2.0)
    order = np.lexsort((ids, distances))[:limit]
    return [(int(ids[i]), float(distances[i])) for i in order]
