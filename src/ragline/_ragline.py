"""Main Ragline class — synchronous wrapper over RaglineAsync."""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any

from ragline._ragline_async import RaglineAsync

if TYPE_CHECKING:
    from ragline.config import RaglineConfig
    from ragline.ingest.schemas import IngestResponse, RepositoryIngestRequest
    from ragline.ingest.types import IngestReport
    from ragline.search.protocols import EmbeddingProvider
    from ragline.search.types import ScoredChunk
    from ragline.tools.search import ToolResult


class Ragline:
    """Synchronous facade for scripts, notebooks and the CLI.

    Runs a :class:`RaglineAsync` on a private event loop in a daemon
    thread, so it also works inside code that already has a running loop.

    Usage::

        with Ragline(RaglineConfig.from_env()) as rag:
            rag.ingest_repository("/src/project")
            print(rag.search("how are retries configured?"))
    """

    def __init__(
        self,
        config: RaglineConfig | None = None,
        *,
        provider: EmbeddingProvider | None = None,
    ) -> None:
        self._closed = False

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        try:
            self._async: RaglineAsync = self._run(
                RaglineAsync.from_config(config, provider=provider)
            )
        except BaseException:
            self._stop_loop()
            raise

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_text(
        self, text: str, source: str = "text-input", *, model: str | None = None
    ) -> IngestReport:
        return self._run(self._async.ingest_text(text, source, model=model))

    def ingest_folder(self, path: str, *, model: str | None = None) -> IngestReport:
        return self._run(self._async.ingest_folder(path, model=model))

    def ingest_repository(
        self, request: RepositoryIngestRequest | str, **options: Any
    ) -> IngestResponse:
        return self._run(self._async.ingest_repository(request, **options))

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def search(self, query: str, limit: int = 5) -> list[str]:
        return self._run(self._async.search(query, limit))

    def search_scored(self, query: str, limit: int = 5) -> list[ScoredChunk]:
        return self._run(self._async.search_scored(query, limit))

    def call_search_tool(self, arguments: dict[str, Any]) -> ToolResult:
        """Invoke ``search_similar_chunks`` as an agent would."""
        return self._run(self._async.search_tool.call(arguments))

    def embed_text(self, text: str, model: str | None = None) -> dict[str, Any]:
        return self._run(self._async.embed_text(text, model))

    def count(self) -> int:
        return self._run(self._async.count())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the async facade, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._async.close())
        finally:
            self._stop_loop()

    def _stop_loop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)

    def __enter__(self) -> Ragline:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    @property
    def async_client(self) -> RaglineAsync:
        """The wrapped :class:`RaglineAsync`."""
        return self._async

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The private event loop the wrapped :class:`RaglineAsync` runs on."""
        return self._loop
