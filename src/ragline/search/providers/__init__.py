"""Embedding providers — protocol and implementations."""

from ragline.search.protocols import EmbeddingProvider
from ragline.search.providers.ollama import OllamaEmbedding

__all__ = [
    "EmbeddingProvider",
    "OllamaEmbedding",
]

# Optional providers — import-guarded, available only when deps are installed.
try:
    from ragline.search.providers.openai import OpenAIEmbedding

    __all__.append("OpenAIEmbedding")
except ImportError:  # pragma: no cover
    pass
