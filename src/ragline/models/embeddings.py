"""EmbeddingRecord model — one embedded chunk per (file_path, chunk_index).

Provides ``EmbeddingRecordBase`` (non-table base) and ``EmbeddingRecord``
(concrete table).  Vectors are stored as packed little-endian float32
bytes so the table works on any SQL backend; the ANN index lives beside
it (see :mod:`ragline.search.stores`).
"""

from __future__ import annotations

import posixpath
from datetime import UTC, datetime

import numpy as np
from sqlalchemy import DateTime, LargeBinary, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

TABLE_NAME = "ragline_embeddings"


def pack_vector(vector: list[float]) -> bytes:
    """Encode *vector* as little-endian float32 bytes."""
    return np.asarray(vector, dtype="<f4").tobytes()


def unpack_vector(data: bytes) -> list[float]:
    """Decode bytes produced by :func:`pack_vector`."""
    return np.frombuffer(data, dtype="<f4").astype(np.float32).tolist()


class EmbeddingRecordBase(SQLModel):
    """Base fields for an embedded chunk. Subclass with ``table=True`` for a concrete table."""

    id: int | None = Field(default=None, primary_key=True)
    file_path: str = Field(index=True)
    file_name: str = Field(default="", index=True)
    chunk_index: int = Field(default=0)
    chunk_text: str = Field(default="", sa_type=Text)  # type: ignore[invalid-argument-type]
    token_count: int = Field(default=0)
    embedding: bytes = Field(default=b"", sa_type=LargeBinary)  # type: ignore[invalid-argument-type]
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    @property
    def vector(self) -> list[float]:
        """The embedding as a list of floats."""
        return unpack_vector(self.embedding)

    @property
    def dimension(self) -> int:
        return len(self.embedding) // 4

    @classmethod
    def create(
        cls,
        *,
        file_path: str,
        chunk_index: int,
        chunk_text: str,
        vector: list[float],
        token_count: int = 0,
        file_name: str | None = None,
    ) -> EmbeddingRecordBase:
        """Build a record from a plain float vector."""
        return cls(
            file_path=file_path,
            file_name=file_name if file_name is not None else posixpath.basename(file_path),
            chunk_index=chunk_index,
            chunk_text=chunk_text,
            token_count=token_count,
            embedding=pack_vector(vector),
        )


class EmbeddingRecord(EmbeddingRecordBase, table=True):
    """Default embeddings table — ``ragline_embeddings``."""

    __tablename__ = TABLE_NAME
    __table_args__ = (
        UniqueConstraint("file_path", "chunk_index", name="uq_ragline_embeddings_path_chunk"),
    )
