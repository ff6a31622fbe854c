"""RaglineRetriever — LangChain retriever backed by the Query Planner."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import ConfigDict

from ragline.exceptions import RaglineError
from ragline.search.planner import QueryPlanner

if TYPE_CHECKING:
    from ragline._ragline import Ragline
    from ragline.search.types import ScoredChunk

logger = logging.getLogger(__name__)


class RaglineRetriever(BaseRetriever):
    """LangChain retriever over ragline's similarity search.

    Each :class:`~ragline.search.types.ScoredChunk` becomes a LangChain
    :class:`~langchain_core.documents.Document` whose metadata carries the
    source path, chunk index, and cosine distance.

    Usage::

        rag = await RaglineAsync.from_config()
        retriever = RaglineRetriever(planner=rag.planner, k=5)
        docs = await retriever.ainvoke("authentication flow")

        with Ragline() as rag:
            retriever = RaglineRetriever.from_ragline(rag, k=5)
            docs = retriever.invoke("authentication flow")

    The planner's engine and HTTP client belong to the event loop they were
    created on.  When ``loop`` is set, every search is submitted to that
    loop, so both ``invoke`` and ``ainvoke`` work from any thread.  Without
    ``loop``, use ``ainvoke`` on the planner's own loop; the sync ``invoke``
    then raises ``RuntimeError`` inside a running loop.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    planner: QueryPlanner
    """The query planner to search with."""

    k: int = 5
    """Maximum number of chunks to return."""

    loop: asyncio.AbstractEventLoop | None = None
    """Event loop that owns the planner's resources, if it runs elsewhere."""

    @classmethod
    def from_ragline(cls, rag: Ragline, k: int = 5) -> RaglineRetriever:
        """Build a retriever over a sync :class:`~ragline.Ragline` facade."""
        return cls(planner=rag.async_client.planner, k=k, loop=rag.loop)

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: Any = None,
    ) -> list[Document]:
        """Sync variant — blocks until the search finishes."""
        if self.loop is not None:
            future = asyncio.run_coroutine_threadsafe(self._search(query), self.loop)
            return future.result()
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._search(query))
        msg = "RaglineRetriever.invoke cannot run inside an event loop without `loop`; use ainvoke"
        raise RuntimeError(msg)

    async def _aget_relevant_documents(
        self,
        query: str,
        *,
        run_manager: Any = None,
    ) -> list[Document]:
        """Search the vector store and return matching documents.

        Returns an empty list when the query is rejected or the search fails.
        """
        if self.loop is not None and self.loop is not asyncio.get_running_loop():
            future = asyncio.run_coroutine_threadsafe(self._search(query), self.loop)
            return await asyncio.wrap_future(future)
        return await self._search(query)

    async def _search(self, query: str) -> list[Document]:
        try:
            hits = await self.planner.search_similar_scored(query, self.k)
        except RaglineError as e:
            logger.warning("Retrieval failed for %r: %s", query, e)
            return []
        return [self._hit_to_document(hit) for hit in hits]

    @staticmethod
    def _hit_to_document(hit: ScoredChunk) -> Document:
        """Convert a ScoredChunk to a LangChain Document."""
        return Document(
            page_content=hit.text,
            metadata={
                "file_path": hit.file_path,
                "chunk_index": hit.chunk_index,
                "distance": hit.distance,
                "score": hit.score,
            },
            id=f"{hit.file_path}#{hit.chunk_index}",
        )
