"""OllamaEmbedding — async embedding provider for Ollama-compatible servers."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ValidationError

from ragline.exceptions import ProviderRequestError, ProviderUnavailableError
from ragline.search.providers._batch import embed_each

logger = logging.getLogger(__name__)

# Default dimensions per model when the user does not specify.
_MODEL_DEFAULTS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "bge-m3": 1024,
    "snowflake-arctic-embed": 1024,
}


class EmbedRequest(BaseModel):
    model: str
    input: str


class EmbedResponse(BaseModel):
    embeddings: list[list[float]]


class OllamaEmbedding:
    """Async embedding provider calling ``POST {base_url}/api/embed``.

    The request body is ``{"model": ..., "input": ...}`` and the first
    vector of the ``embeddings`` array in the response is returned.

    Pass *client* to share one ``httpx.AsyncClient`` across components;
    a client created here is owned and closed by :meth:`close`.
    """

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        dimensions: int | None = None,
        timeout: float = 60.0,
        concurrency: int = 1,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._dimensions = dimensions
        self._concurrency = concurrency
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    # ------------------------------------------------------------------
    # EmbeddingProvider protocol
    # ------------------------------------------------------------------

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        """Embed a single text string."""
        response = await self._post(EmbedRequest(model=model or self._model, input=text))
        if not response.embeddings:
            msg = "Embedding response contained no vectors"
            raise ProviderRequestError(msg)
        return response.embeddings[0]

    async def embed_batch(
        self, texts: list[str], *, model: str | None = None
    ) -> list[list[float] | None]:
        """Embed each text with its own request; failed items are ``None``."""
        return await embed_each(
            lambda t: self.embed(t, model=model),
            texts,
            concurrency=self._concurrency,
        )

    @property
    def dimensions(self) -> int:
        """Return the embedding dimensionality."""
        if self._dimensions is not None:
            return self._dimensions
        default = _MODEL_DEFAULTS.get(self._model.split(":", 1)[0])
        if default is not None:
            return default
        msg = f"Unknown default dimensions for model {self._model!r}. Pass dimensions= explicitly."
        raise ValueError(msg)

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self._model

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _post(self, request: EmbedRequest) -> EmbedResponse:
        url = f"{self._base_url}/api/embed"
        try:
            resp = await self._client.post(url, json=request.model_dump())
        except httpx.TimeoutException as e:
            msg = f"Embedding request to {url} timed out"
            raise ProviderUnavailableError(msg) from e
        except httpx.RequestError as e:
            msg = f"Embedding provider unreachable at {url}: {e}"
            raise ProviderUnavailableError(msg) from e

        if resp.status_code >= 500 or resp.status_code == 429:
            msg = f"Embedding provider returned HTTP {resp.status_code}: {resp.text[:200]}"
            raise ProviderUnavailableError(msg)
        if resp.status_code >= 400:
            msg = f"Embedding request rejected with HTTP {resp.status_code}: {resp.text[:200]}"
            raise ProviderRequestError(msg)

        try:
            return EmbedResponse.model_validate_json(resp.content)
        except ValidationError as e:
            msg = f"Malformed embedding response: {e.error_count()} validation error(s)"
            raise ProviderRequestError(msg) from e
