"""OpenAIEmbedding — async embedding provider backed by OpenAI's API."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

try:
    import openai
    from openai import AsyncOpenAI

    _HAS_OPENAI = True
except ImportError:  # pragma: no cover
    _HAS_OPENAI = False

from ragline.exceptions import ProviderRequestError, ProviderUnavailableError
from ragline.search.providers._batch import embed_each

if TYPE_CHECKING:
    from openai import AsyncOpenAI as AsyncOpenAIType

# Default dimensions per model when the user does not specify.
_MODEL_DEFAULTS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedding:
    """Async embedding provider backed by the OpenAI Embeddings API.

    Uses ``AsyncOpenAI`` for native async I/O.  Each text is sent as its
    own request so a single failure only loses that item.

    Requires the ``openai`` package::

        pip install ragline[openai]
    """

    def __init__(
        self,
        *,
        model: str = "text-embedding-3-small",
        dimensions: int | None = None,
        api_key: str | None = None,
        max_retries: int = 2,
        timeout: float = 60.0,
        concurrency: int = 1,
    ) -> None:
        if not _HAS_OPENAI:
            msg = (
                "openai is required for OpenAIEmbedding. "
                "Install it with: pip install ragline[openai]"
            )
            raise ImportError(msg)

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not resolved_key:
            msg = (
                "No OpenAI API key provided. Pass api_key= or set the "
                "OPENAI_API_KEY environment variable."
            )
            raise ValueError(msg)

        self._model = model
        self._dimensions = dimensions
        self._concurrency = concurrency
        self._client: AsyncOpenAIType = AsyncOpenAI(
            api_key=resolved_key,
            max_retries=max_retries,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # EmbeddingProvider protocol
    # ------------------------------------------------------------------

    async def embed(self, text: str, *, model: str | None = None) -> list[float]:
        """Embed a single text string via the OpenAI API."""
        kwargs: dict[str, Any] = {
            "input": [text],
            "model": model or self._model,
        }
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions

        try:
            response = await self._client.embeddings.create(**kwargs)
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            msg = f"OpenAI embeddings API unreachable: {e}"
            raise ProviderUnavailableError(msg) from e
        except openai.RateLimitError as e:
            msg = f"OpenAI embeddings API rate limited: {e}"
            raise ProviderUnavailableError(msg) from e
        except openai.APIStatusError as e:
            if e.status_code >= 500:
                msg = f"OpenAI embeddings API returned HTTP {e.status_code}"
                raise ProviderUnavailableError(msg) from e
            msg = f"OpenAI embeddings request rejected with HTTP {e.status_code}: {e.message}"
            raise ProviderRequestError(msg) from e

        if not response.data:
            msg = "OpenAI embeddings response contained no vectors"
            raise ProviderRequestError(msg)
        return list(response.data[0].embedding)

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
        default = _MODEL_DEFAULTS.get(self._model)
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
        """Close the underlying httpx client."""
        await self._client.close()
