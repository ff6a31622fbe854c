"""Vector search layer — planner, stores, embedding providers."""

from ragline.search.planner import QueryPlanner
from ragline.search.protocols import EmbeddingProvider, VectorStore
from ragline.search.providers.ollama import OllamaEmbedding
from ragline.search.stores.database import DatabaseVectorStore
from ragline.search.stores.postgres import PostgresVectorStore
from ragline.search.types import ScoredChunk, UpsertResult

__all__ = [
    "DatabaseVectorStore",
    "EmbeddingProvider",
    "OllamaEmbedding",
    "PostgresVectorStore",
    "QueryPlanner",
    "ScoredChunk",
    "UpsertResult",
    "VectorStore",
]
