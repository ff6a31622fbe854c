"""RaglineAsync — primary async facade over the ingestion and query paths."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import create_async_engine

from ragline.config import RaglineConfig
from ragline.exceptions import InvalidInputError
from ragline.ingest.pipeline import IngestionPipeline
from ragline.ingest.schemas import RepositoryIngestRequest
from ragline.search.planner import QueryPlanner
from ragline.search.providers.ollama import OllamaEmbedding
from ragline.search.stores._dialect import get_dialect
from ragline.search.stores.database import DatabaseVectorStore
from ragline.search.stores.postgres import PostgresVectorStore
from ragline.tools.search import SearchTool

if TYPE_CHECKING:
    import asyncio

    from sqlalchemy.ext.asyncio import AsyncEngine

    from ragline.ingest.chunker import Chunker
    from ragline.ingest.schemas import IngestResponse
    from ragline.ingest.secrets import SecretScanner
    from ragline.ingest.types import IngestReport
    from ragline.search.protocols import EmbeddingProvider, VectorStore
    from ragline.search.types import ScoredChunk

logger = logging.getLogger(__name__)


class RaglineAsync:
    """Async facade wiring provider, store, ingestion pipeline and query planner.

    Build from settings (owns the engine and HTTP client it creates)::

        rag = await RaglineAsync.from_config(RaglineConfig.from_env())
        await rag.ingest_folder("/srv/docs")
        chunks = await rag.search("refund policy", limit=5)
        await rag.close()

    Or inject pre-built components (the caller keeps ownership)::

        rag = RaglineAsync(provider=provider, store=store)
    """

    def __init__(
        self,
        *,
        provider: EmbeddingProvider,
        store: VectorStore,
        config: RaglineConfig | None = None,
        chunker: Chunker | None = None,
        secret_scanner: SecretScanner | None = None,
        owns_provider: bool = False,
    ) -> None:
        self._config = config or RaglineConfig()
        self._provider = provider
        self._store = store
        self._owns_provider = owns_provider
        self._closed = False

        self._pipeline = IngestionPipeline(
            provider,
            store,
            config=self._config,
            chunker=chunker,
            secret_scanner=secret_scanner,
        )
        self._planner = QueryPlanner(provider, store)
        self._search_tool = SearchTool(self._planner)

    @classmethod
    async def from_config(
        cls,
        config: RaglineConfig | None = None,
        *,
        engine: AsyncEngine | None = None,
        provider: EmbeddingProvider | None = None,
    ) -> RaglineAsync:
        """Create engine, provider and store from *config* and connect the store.

        PostgreSQL engines get a :class:`PostgresVectorStore` (pgvector);
        any other database gets a :class:`DatabaseVectorStore`.
        """
        config = config or RaglineConfig.from_env()
        owns_engine = engine is None
        if engine is None:
            engine = create_async_engine(config.database_url)

        owns_provider = provider is None
        if provider is None:
            provider = OllamaEmbedding(
                base_url=config.embedding_base_url,
                model=config.embedding_model,
                dimensions=config.embedding_dimension,
                timeout=config.request_timeout,
                concurrency=config.embed_concurrency,
            )

        store: VectorStore
        if get_dialect(engine) == "postgresql":
            store = PostgresVectorStore(
                engine,
                dimension=config.embedding_dimension,
                dispose_engine=owns_engine,
            )
        else:
            store = DatabaseVectorStore(
                engine,
                dimension=config.embedding_dimension,
                exact_search_threshold=config.exact_search_threshold,
                dispose_engine=owns_engine,
            )
        await store.connect()
        logger.info(
            "ragline ready: %s store, model %s (dimension %d)",
            type(store).__name__,
            provider.model_name,
            config.embedding_dimension,
        )
        return cls(
            provider=provider,
            store=store,
            config=config,
            owns_provider=owns_provider,
        )

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest_text(
        self,
        text: str,
        source: str = "text-input",
        *,
        model: str | None = None,
    ) -> IngestReport:
        """Chunk, embed and store *text* under *source*."""
        return await self._pipeline.ingest_text(text, source, model=model)

    async def ingest_folder(
        self,
        path: str,
        *,
        model: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestReport:
        """Ingest every recognized text file under *path*."""
        return await self._pipeline.ingest_folder(path, model=model, cancel_event=cancel_event)

    async def ingest_repository(
        self,
        request: RepositoryIngestRequest | str,
        *,
        cancel_event: asyncio.Event | None = None,
        **options: Any,
    ) -> IngestResponse:
        """Ingest a git working tree.

        *request* is either a :class:`RepositoryIngestRequest` or a path,
        in which case *options* are its remaining fields (snake_case or
        camelCase).
        """
        if isinstance(request, str):
            request = RepositoryIngestRequest.model_validate(
                {"repository_path": request, **options}
            )
        return await self._pipeline.ingest_repository(request, cancel_event=cancel_event)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def search(self, query: str, limit: int = 5) -> list[str]:
        """Return the texts of the chunks nearest to *query*."""
        return await self._planner.search_similar(query, limit)

    async def search_scored(self, query: str, limit: int = 5) -> list[ScoredChunk]:
        """Like :meth:`search` but with distances and provenance."""
        return await self._planner.search_similar_scored(query, limit)

    async def embed_text(self, text: str, model: str | None = None) -> dict[str, Any]:
        """Embed *text* and return ``{embedding, dimension, model}``."""
        if not text or not text.strip():
            msg = "Text cannot be empty"
            raise InvalidInputError(msg)
        vector = await self._provider.embed(text, model=model)
        return {
            "embedding": vector,
            "dimension": len(vector),
            "model": model or self._provider.model_name,
        }

    async def count(self) -> int:
        """Number of stored chunks."""
        return await self._store.count()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        await self._store.close()
        if self._owns_provider:
            close = getattr(self._provider, "close", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> RaglineAsync:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> RaglineConfig:
        return self._config

    @property
    def provider(self) -> EmbeddingProvider:
        return self._provider

    @property
    def store(self) -> VectorStore:
        return self._store

    @property
    def pipeline(self) -> IngestionPipeline:
        return self._pipeline

    @property
    def planner(self) -> QueryPlanner:
        return self._planner

    @property
    def search_tool(self) -> SearchTool:
        return self._search_tool
