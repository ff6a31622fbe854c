"""QueryPlanner — validate, embed, and search in one call."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ragline.exceptions import InvalidInputError

if TYPE_CHECKING:
    from ragline.search.protocols import EmbeddingProvider, VectorStore
    from ragline.search.types import ScoredChunk

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


class QueryPlanner:
    """Answers similarity queries against a vector store.

    Input is validated before any I/O.  Embedding and storage failures
    propagate as typed :class:`~ragline.exceptions.RaglineError`
    subclasses; there are no partial results.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: VectorStore,
        *,
        model: str | None = None,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        self._provider = provider
        self._store = store
        self._model = model
        self._max_limit = max_limit

    @property
    def max_limit(self) -> int:
        return self._max_limit

    async def search_similar(self, query: str, limit: int = 5) -> list[str]:
        """Return the texts of the *limit* chunks nearest to *query*."""
        return [hit.text for hit in await self.search_similar_scored(query, limit)]

    async def search_similar_scored(self, query: str, limit: int = 5) -> list[ScoredChunk]:
        """Like :meth:`search_similar` but keeps distances and provenance."""
        self.validate(query, limit)
        vector = await self._provider.embed(query, model=self._model)
        hits = await self._store.search(vector, limit)
        logger.debug("Query %r matched %d chunk(s)", query[:80], len(hits))
        return hits

    def validate(self, query: str, limit: int) -> None:
        """Raise :class:`InvalidInputError` for a blank query or out-of-range limit."""
        if not query or not query.strip():
            msg = "Search query cannot be empty"
            raise InvalidInputError(msg)
        if isinstance(limit, bool) or not isinstance(limit, int):
            msg = f"Limit must be an integer, got {type(limit).__name__}"
            raise InvalidInputError(msg)
        if limit < 1 or limit > self._max_limit:
            msg = f"Limit must be between 1 and {self._max_limit}"
            raise InvalidInputError(msg)
