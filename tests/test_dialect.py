"""Tests for search/stores/_dialect.py — dialect detection and keyed upsert."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import select

from ragline.models.embeddings import EmbeddingRecord, pack_vector
from ragline.search.stores._dialect import get_dialect, upsert_row

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


def _values(text: str, index: int = 0) -> dict:
    return {
        "file_path": "/hello.txt",
        "file_name": "hello.txt",
        "chunk_index": index,
        "chunk_text": text,
        "token_count": len(text.split()),
        "embedding": pack_vector([1.0, 0.0]),
    }


async def _rows(engine: AsyncEngine) -> list[EmbeddingRecord]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        result = await session.execute(select(EmbeddingRecord).order_by(EmbeddingRecord.chunk_index))
        return list(result.scalars().all())


class TestGetDialect:
    async def test_sqlite_async(self):
        engine = create_async_engine("sqlite+aiosqlite://", echo=False)
        assert get_dialect(engine) == "sqlite"
        await engine.dispose()

    def test_sqlite_sync(self):
        from sqlmodel import create_engine

        engine = create_engine("sqlite://", echo=False)
        assert get_dialect(engine) == "sqlite"


class TestUpsertRow:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("dialect", ["sqlite", "mssql"])
    async def test_insert_then_update(self, async_engine: AsyncEngine, dialect: str):
        factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
        keys = ["file_path", "chunk_index"]
        async with factory() as session:
            await upsert_row(session, dialect, EmbeddingRecord, _values("first"), keys)
            await session.commit()
        async with factory() as session:
            await upsert_row(session, dialect, EmbeddingRecord, _values("second"), keys)
            await upsert_row(session, dialect, EmbeddingRecord, _values("other", 1), keys)
            await session.commit()

        rows = await _rows(async_engine)
        assert [(r.chunk_index, r.chunk_text) for r in rows] == [(0, "second"), (1, "other")]
        assert rows[0].token_count == 1
