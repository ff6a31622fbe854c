"""Tests for embedding providers and batch failure isolation."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ragline.exceptions import (
    EmbeddingError,
    ProviderRequestError,
    ProviderUnavailableError,
)
from ragline.search.protocols import EmbeddingProvider
from ragline.search.providers._batch import embed_each
from ragline.search.providers.ollama import OllamaEmbedding

# ==================================================================
# Ollama provider
# ==================================================================


def _ollama(handler, **kwargs) -> OllamaEmbedding:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaEmbedding(client=client, **kwargs)


class TestOllamaEmbedding:
    def test_satisfies_protocol(self):
        assert isinstance(OllamaEmbedding(), EmbeddingProvider)

    @pytest.mark.asyncio
    async def test_embed_posts_model_and_input(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})

        provider = _ollama(handler, base_url="http://ollama:11434/")
        result = await provider.embed("hello")

        assert result == [0.1, 0.2, 0.3]
        assert str(seen[0].url) == "http://ollama:11434/api/embed"
        assert json.loads(seen[0].content) == {"model": "nomic-embed-text", "input": "hello"}

    @pytest.mark.asyncio
    async def test_model_override(self):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"embeddings": [[1.0]]})

        await _ollama(handler).embed("x", model="mxbai-embed-large")
        assert bodies[0]["model"] == "mxbai-embed-large"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503, 429])
    async def test_server_errors_are_retryable(self, status: int):
        provider = _ollama(lambda r: httpx.Response(status, text="overloaded"))
        with pytest.raises(ProviderUnavailableError) as exc_info:
            await provider.embed("x")
        assert exc_info.value.retryable
        assert str(status) in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 404, 422])
    async def test_client_errors_are_not_retryable(self, status: int):
        provider = _ollama(lambda r: httpx.Response(status, text="bad model"))
        with pytest.raises(ProviderRequestError) as exc_info:
            await provider.embed("x")
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        provider = _ollama(lambda r: httpx.Response(200, json={"embedding": [1.0]}))
        with pytest.raises(ProviderRequestError, match="Malformed"):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_empty_embeddings(self):
        provider = _ollama(lambda r: httpx.Response(200, json={"embeddings": []}))
        with pytest.raises(ProviderRequestError):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderUnavailableError, match="unreachable"):
            await _ollama(handler).embed("x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.DecodingError, httpx.TooManyRedirects])
    async def test_other_request_errors(self, error: type[httpx.RequestError]):
        def handler(request: httpx.Request) -> httpx.Response:
            raise error("broken response", request=request)

        provider = _ollama(handler)
        with pytest.raises(ProviderUnavailableError, match="unreachable"):
            await provider.embed("x")
        assert await provider.embed_batch(["x", "y"]) == [None, None]

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderUnavailableError, match="timed out"):
            await _ollama(handler).embed("x")

    @pytest.mark.asyncio
    async def test_embed_batch_isolates_failures(self):
        def handler(request: httpx.Request) -> httpx.Response:
            text = json.loads(request.content)["input"]
            if text == "bad":
                return httpx.Response(500)
            return httpx.Response(200, json={"embeddings": [[float(len(text))]]})

        result = await _ollama(handler).embed_batch(["a", "bad", "ccc"])
        assert result == [[1.0], None, [3.0]]

    @pytest.mark.asyncio
    async def test_embed_batch_empty(self):
        provider = _ollama(lambda r: httpx.Response(500))
        assert await provider.embed_batch([]) == []

    def test_dimensions(self):
        assert OllamaEmbedding().dimensions == 768
        assert OllamaEmbedding(model="mxbai-embed-large:latest").dimensions == 1024
        assert OllamaEmbedding(model="custom", dimensions=12).dimensions == 12
        with pytest.raises(ValueError, match="Unknown default dimensions"):
            _ = OllamaEmbedding(model="custom").dimensions

    def test_model_name(self):
        assert OllamaEmbedding(model="all-minilm").model_name == "all-minilm"

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        provider = OllamaEmbedding(client=client)
        await provider.close()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        provider = OllamaEmbedding()
        await provider.close()
        assert provider._client.is_closed


# ==================================================================
# OpenAI provider
# ==================================================================


class TestOpenAIEmbedding:
    def _make_provider(self, **kwargs):
        from ragline.search.providers.openai import OpenAIEmbedding

        return OpenAIEmbedding(api_key="sk-test-key", **kwargs)

    def _mock_response(self, vectors: list[list[float]]):
        """Build a mock CreateEmbeddingResponse."""
        mock_resp = MagicMock()
        mock_data = []
        for i, vec in enumerate(vectors):
            item = MagicMock()
            item.embedding = vec
            item.index = i
            mock_data.append(item)
        mock_resp.data = mock_data
        return mock_resp

    @pytest.mark.asyncio
    async def test_embed_single_text(self):
        provider = self._make_provider()
        expected = [0.1, 0.2, 0.3]
        provider._client.embeddings.create = AsyncMock(
            return_value=self._mock_response([expected])
        )

        result = await provider.embed("hello")

        assert result == expected
        call_kwargs = provider._client.embeddings.create.call_args[1]
        assert call_kwargs["input"] == ["hello"]
        assert call_kwargs["model"] == "text-embedding-3-small"
        assert "dimensions" not in call_kwargs

    @pytest.mark.asyncio
    async def test_dimensions_forwarded(self):
        provider = self._make_provider(dimensions=256)
        provider._client.embeddings.create = AsyncMock(
            return_value=self._mock_response([[0.0] * 256])
        )
        await provider.embed("hello")
        assert provider._client.embeddings.create.call_args[1]["dimensions"] == 256

    @pytest.mark.asyncio
    async def test_embed_batch_one_call_per_item(self):
        provider = self._make_provider()
        provider._client.embeddings.create = AsyncMock(
            side_effect=[self._mock_response([[1.0]]), self._mock_response([[2.0]])]
        )
        result = await provider.embed_batch(["a", "b"])
        assert result == [[1.0], [2.0]]
        assert provider._client.embeddings.create.call_count == 2

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_unavailable(self):
        import openai

        provider = self._make_provider()
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        provider._client.embeddings.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=request)
        )
        with pytest.raises(ProviderUnavailableError):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_bad_request_maps_to_request_error(self):
        import openai

        provider = self._make_provider()
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        response = httpx.Response(400, request=request, json={"error": {"message": "bad"}})
        provider._client.embeddings.create = AsyncMock(
            side_effect=openai.BadRequestError("bad input", response=response, body=None)
        )
        with pytest.raises(ProviderRequestError, match="400"):
            await provider.embed("x")

    def test_missing_api_key(self, monkeypatch: pytest.MonkeyPatch):
        from ragline.search.providers.openai import OpenAIEmbedding

        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="No OpenAI API key"):
            OpenAIEmbedding()

    def test_dimensions_defaults(self):
        assert self._make_provider().dimensions == 1536
        assert self._make_provider(model="text-embedding-3-large").dimensions == 3072


# ==================================================================
# Batch helper
# ==================================================================


class TestEmbedEach:
    @pytest.mark.asyncio
    async def test_sequential_preserves_order(self):
        order: list[str] = []

        async def embed(text: str) -> list[float]:
            order.append(text)
            return [float(len(text))]

        result = await embed_each(embed, ["a", "bb", "ccc"])
        assert result == [[1.0], [2.0], [3.0]]
        assert order == ["a", "bb", "ccc"]

    @pytest.mark.asyncio
    async def test_failures_become_none(self):
        async def embed(text: str) -> list[float]:
            if text == "x":
                raise ProviderRequestError("rejected")
            return [1.0]

        assert await embed_each(embed, ["a", "x", "b"]) == [[1.0], None, [1.0]]

    @pytest.mark.asyncio
    async def test_non_embedding_errors_propagate(self):
        async def embed(text: str) -> list[float]:
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await embed_each(embed, ["a"])

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        in_flight = 0
        peak = 0

        async def embed(text: str) -> list[float]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            if text == "bad":
                raise EmbeddingError("nope")
            return [float(len(text))]

        texts = ["a", "bad", "ccc", "dddd", "ee", "f"]
        result = await embed_each(embed, texts, concurrency=2)
        assert result == [[1.0], None, [3.0], [4.0], [2.0], [1.0]]
        assert peak == 2
