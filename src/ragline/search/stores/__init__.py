"""Vector stores — VectorStore protocol implementations."""

from ragline.search.stores.database import DatabaseVectorStore
from ragline.search.stores.postgres import PostgresVectorStore

__all__ = [
    "DatabaseVectorStore",
    "PostgresVectorStore",
]
