"""Search layer protocols — async-first interfaces for embedding and vector storage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ragline.models.embeddings import EmbeddingRecordBase
    from ragline.search.types import ScoredChunk, UpsertResult


# ------------------------------------------------------------------
# Core protocols
# ------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Async-first protocol for text-to-vector embedding.

    ``embed`` raises an :class:`~ragline.exceptions.EmbeddingError`
    subclass on failure.  ``embed_batch`` never raises for a single item:
    failed items come back as ``None`` in their input position.
    """

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        """Embed a single text string into a vector."""
        ...

    async def embed_batch(
        self, texts: list[str], *, model: str | None = None
    ) -> list[list[float] | None]:
        """Embed multiple texts, one call per item."""
        ...

    @property
    def dimensions(self) -> int:
        """Number of dimensions in the embedding vectors."""
        ...

    @property
    def model_name(self) -> str:
        """Name of the default embedding model."""
        ...


@runtime_checkable
class VectorStore(Protocol):
    """Async-first protocol for embedded-chunk storage and search.

    Records are keyed by ``(file_path, chunk_index)``; writing an existing
    key replaces it.  Wrong-dimension vectors raise
    :class:`~ragline.exceptions.DimensionMismatchError`, database failures
    raise :class:`~ragline.exceptions.StorageError`.
    """

    async def upsert(self, record: EmbeddingRecordBase) -> None:
        """Insert or replace one record."""
        ...

    async def upsert_many(self, records: list[EmbeddingRecordBase]) -> UpsertResult:
        """Insert or replace records, collecting per-record failures."""
        ...

    async def search(self, vector: list[float], limit: int) -> list[ScoredChunk]:
        """Return up to *limit* chunks ordered by ascending cosine distance."""
        ...

    async def count(self) -> int:
        """Number of stored records."""
        ...

    async def truncate_source(self, file_path: str, keep: int) -> int:
        """Delete records of *file_path* with ``chunk_index >= keep``. Returns rows removed."""
        ...

    async def delete_chunks(self, file_path: str, chunk_indices: list[int]) -> int:
        """Delete records of *file_path* at *chunk_indices*. Returns rows removed."""
        ...

    async def connect(self) -> None:
        """Create tables/indexes and load state. Idempotent."""
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        ...

    @property
    def dimension(self) -> int:
        """Vector length accepted by the store."""
        ...
