"""SQLModel database models for ragline."""

from ragline.models.embeddings import (
    TABLE_NAME,
    EmbeddingRecord,
    EmbeddingRecordBase,
    pack_vector,
    unpack_vector,
)

__all__ = [
    "TABLE_NAME",
    "EmbeddingRecord",
    "EmbeddingRecordBase",
    "pack_vector",
    "unpack_vector",
]
