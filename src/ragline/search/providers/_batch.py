"""Per-item batch embedding with failure isolation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ragline.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], Awaitable[list[float]]]


async def embed_each(
    embed: EmbedFn,
    texts: list[str],
    *,
    concurrency: int = 1,
) -> list[list[float] | None]:
    """Call *embed* once per text, returning ``None`` for every failed item.

    Runs sequentially when *concurrency* is 1, otherwise at most
    *concurrency* calls are in flight.  Output order matches *texts*.
    """
    if not texts:
        return []

    async def one(i: int, text: str) -> list[float] | None:
        try:
            return await embed(text)
        except EmbeddingError as e:
            logger.warning("Embedding failed for batch item %d: %s", i, e)
            return None

    if concurrency <= 1:
        return [await one(i, t) for i, t in enumerate(texts)]

    sem = asyncio.Semaphore(concurrency)

    async def bounded(i: int, text: str) -> list[float] | None:
        async with sem:
            return await one(i, text)

    return list(await asyncio.gather(*(bounded(i, t) for i, t in enumerate(texts))))
