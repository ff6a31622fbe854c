"""Shared fixtures for ragline tests."""

from __future__ import annotations

import hashlib
import math
import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from ragline.exceptions import ProviderUnavailableError
from ragline.search.providers._batch import embed_each
from ragline.search.stores.database import DatabaseVectorStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

FAKE_DIM = 32


def hash_vector(text: str) -> list[float]:
    """Deterministic unit vector from text hash."""
    h = hashlib.sha256(text.encode()).digest()
    raw = [float(b) for b in h]
    norm = math.sqrt(sum(x * x for x in raw))
    return [x / norm for x in raw]


class FakeProvider:
    """Deterministic async embedding provider for testing.

    ``vectors`` pins specific texts to chosen vectors; everything else gets
    a hash vector.  Texts in ``fail_on`` raise ``ProviderUnavailableError``.
    """

    def __init__(self, dim: int = FAKE_DIM) -> None:
        self.dim = dim
        self.vectors: dict[str, list[float]] = {}
        self.fail_on: set[str] = set()
        self.calls: list[str] = []
        self.models: list[str | None] = []

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        self.calls.append(text)
        self.models.append(model)
        if text in self.fail_on:
            msg = "HTTP 500 from fake provider"
            raise ProviderUnavailableError(msg)
        if text in self.vectors:
            return self.vectors[text]
        vec = hash_vector(text)
        return (vec * (self.dim // len(vec) + 1))[: self.dim]

    async def embed_batch(
        self, texts: list[str], *, model: str | None = None
    ) -> list[list[float] | None]:
        return await embed_each(lambda t: self.embed(t, model=model), texts)

    @property
    def dimensions(self) -> int:
        return self.dim

    @property
    def model_name(self) -> str:
        return "fake"


@pytest.fixture(autouse=True)
def _clean_ragline_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ``RAGLINE_*`` variables from the outer shell out of every test."""
    for name in list(os.environ):
        if name.upper().startswith("RAGLINE_"):
            monkeypatch.delenv(name)


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
async def store(async_engine: AsyncEngine) -> AsyncIterator[DatabaseVectorStore]:
    """Connected DatabaseVectorStore over the in-memory engine."""
    s = DatabaseVectorStore(async_engine, dimension=FAKE_DIM)
    await s.connect()
    yield s
    await s.close()
