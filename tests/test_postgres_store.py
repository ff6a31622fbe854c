"""Tests for PostgresVectorStore — pgvector SQL generation against a fake engine."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from ragline.exceptions import ConfigurationError, DimensionMismatchError, StorageError
from ragline.models.embeddings import EmbeddingRecord
from ragline.search.protocols import VectorStore
from ragline.search.stores.postgres import PostgresVectorStore, to_vector_literal

# ------------------------------------------------------------------
# Fake engine
# ------------------------------------------------------------------


class FakeConnection:
    def __init__(self) -> None:
        self.executed: list[tuple[str, dict[str, Any] | None]] = []
        self.result = MagicMock()
        self.error: Exception | None = None

    async def execute(self, stmt, params=None):
        if self.error is not None:
            raise self.error
        self.executed.append((" ".join(str(stmt).split()), params))
        return self.result


class FakeEngine:
    def __init__(self) -> None:
        self.conn = FakeConnection()
        self.disposed = False

    @asynccontextmanager
    async def begin(self):
        yield self.conn

    async def dispose(self) -> None:
        self.disposed = True


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def store(engine: FakeEngine) -> PostgresVectorStore:
    return PostgresVectorStore(engine, dimension=3)  # type: ignore[arg-type]


# ==================================================================
# Schema
# ==================================================================


class TestConnect:
    def test_satisfies_protocol(self, store: PostgresVectorStore):
        assert isinstance(store, VectorStore)

    @pytest.mark.asyncio
    async def test_creates_extension_table_and_hnsw_index(
        self, store: PostgresVectorStore, engine: FakeEngine
    ):
        await store.connect()
        sql = [s for s, _ in engine.conn.executed]
        assert sql[0] == "CREATE EXTENSION IF NOT EXISTS vector"
        assert "embedding vector(3) NOT NULL" in sql[1]
        assert "UNIQUE (file_path, chunk_index)" in sql[1]
        assert any("USING hnsw (embedding vector_cosine_ops)" in s for s in sql)

    def test_rejects_unsafe_table_name(self, engine: FakeEngine):
        with pytest.raises(ConfigurationError):
            PostgresVectorStore(engine, dimension=3, table_name="x; DROP TABLE y")  # type: ignore[arg-type]


# ==================================================================
# Writes
# ==================================================================


class TestUpsert:
    @pytest.mark.asyncio
    async def test_upsert_on_conflict(self, store: PostgresVectorStore, engine: FakeEngine):
        record = EmbeddingRecord.create(
            file_path="/a.py", chunk_index=2, chunk_text="hello", vector=[1.0, 0.5, 0.0]
        )
        await store.upsert(record)

        sql, params = engine.conn.executed[0]
        assert "ON CONFLICT (file_path, chunk_index) DO UPDATE" in sql
        assert "CAST(:embedding AS vector)" in sql
        assert params is not None
        assert params["embedding"] == "[1.0,0.5,0.0]"
        assert params["chunk_index"] == 2
        assert params["file_name"] == "a.py"

    @pytest.mark.asyncio
    async def test_dimension_checked(self, store: PostgresVectorStore, engine: FakeEngine):
        record = EmbeddingRecord.create(
            file_path="/a.py", chunk_index=0, chunk_text="x", vector=[1.0]
        )
        with pytest.raises(DimensionMismatchError):
            await store.upsert(record)
        assert engine.conn.executed == []

    @pytest.mark.asyncio
    async def test_upsert_many_collects_storage_errors(
        self, store: PostgresVectorStore, engine: FakeEngine
    ):
        engine.conn.error = OperationalError("INSERT", {}, Exception("connection lost"))
        record = EmbeddingRecord.create(
            file_path="/a.py", chunk_index=0, chunk_text="x", vector=[1.0, 0.0, 0.0]
        )
        result = await store.upsert_many([record])
        assert result.upserted_count == 0
        assert "connection lost" in result.errors[0]

    @pytest.mark.asyncio
    async def test_truncate_source(self, store: PostgresVectorStore, engine: FakeEngine):
        engine.conn.result.rowcount = 4
        removed = await store.truncate_source("/a.py", 3)
        sql, params = engine.conn.executed[0]
        assert removed == 4
        assert "chunk_index >= :keep" in sql
        assert params == {"file_path": "/a.py", "keep": 3}

    @pytest.mark.asyncio
    async def test_delete_chunks(self, store: PostgresVectorStore, engine: FakeEngine):
        engine.conn.result.rowcount = 2
        removed = await store.delete_chunks("/a.py", [1, 4])
        sql, params = engine.conn.executed[0]
        assert removed == 2
        assert sql.startswith("DELETE FROM")
        assert "chunk_index IN" in sql
        assert params == {"file_path": "/a.py", "indices": [1, 4]}

    @pytest.mark.asyncio
    async def test_delete_no_chunks(self, store: PostgresVectorStore, engine: FakeEngine):
        assert await store.delete_chunks("/a.py", []) == 0
        assert engine.conn.executed == []


# ==================================================================
# Reads
# ==================================================================


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_uses_cosine_operator(
        self, store: PostgresVectorStore, engine: FakeEngine
    ):
        engine.conn.result.mappings.return_value.all.return_value = [
            {"chunk_text": "near", "file_path": "/a", "chunk_index": 0, "distance": 0.1},
            {"chunk_text": "far", "file_path": "/b", "chunk_index": 1, "distance": 0.9},
        ]
        hits = await store.search([0.0, 1.0, 0.0], 2)

        sql, params = engine.conn.executed[0]
        assert "embedding <=> CAST(:query AS vector)" in sql
        assert "ORDER BY distance ASC, id ASC" in sql
        assert params == {"query": "[0.0,1.0,0.0]", "limit": 2}
        assert [h.text for h in hits] == ["near", "far"]
        assert hits[1].chunk_index == 1

    @pytest.mark.asyncio
    async def test_count(self, store: PostgresVectorStore, engine: FakeEngine):
        engine.conn.result.scalar_one.return_value = 7
        assert await store.count() == 7

    @pytest.mark.asyncio
    async def test_errors_wrapped(self, store: PostgresVectorStore, engine: FakeEngine):
        engine.conn.error = OperationalError("SELECT", {}, Exception("timeout"))
        with pytest.raises(StorageError, match="timeout"):
            await store.count()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_disposes_owned_engine(self, engine: FakeEngine):
        store = PostgresVectorStore(engine, dimension=3, dispose_engine=True)  # type: ignore[arg-type]
        await store.close()
        assert engine.disposed

    @pytest.mark.asyncio
    async def test_close_leaves_shared_engine(self, store: PostgresVectorStore, engine: FakeEngine):
        await store.close()
        assert not engine.disposed


def test_vector_literal():
    assert to_vector_literal([1, 2.5, -0.25]) == "[1.0,2.5,-0.25]"
