"""Chunker — split document text into token-bounded, sequentially indexed chunks."""

from __future__ import annotations

import math
import re
from typing import Protocol, runtime_checkable

from ragline.ingest.types import Chunk

DEFAULT_CHUNK_SIZE = 500

# A token is a run of non-whitespace plus the whitespace that follows it.
_TOKEN_RE = re.compile(r"\S+\s*")


@runtime_checkable
class Tokenizer(Protocol):
    """Splits text into tokens whose concatenation is the original text.

    Implementations must be deterministic: the same input always yields
    the same tokens, so chunk indices stay stable across re-ingestion.
    """

    def tokenize(self, text: str) -> list[str]: ...


class WhitespaceTokenizer:
    """Whitespace-delimited word tokenizer.

    Each token keeps its trailing whitespace; leading whitespace of the
    document is dropped.  Roughly tracks sub-word tokenizers for prose at
    a fraction of the cost and with no model files.
    """

    def tokenize(self, text: str) -> list[str]:
        return _TOKEN_RE.findall(text)

    def count(self, text: str) -> int:
        return len(self.tokenize(text))


class Chunker:
    """Cuts documents into consecutive, non-overlapping token windows.

    A document of ``L`` tokens yields ``ceil(L / chunk_size)`` chunks with
    indices ``0..n-1``.  Empty and whitespace-only documents yield none.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self._chunk_size = chunk_size
        self._tokenizer: Tokenizer = tokenizer or WhitespaceTokenizer()

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def chunk(self, text: str, source_path: str) -> list[Chunk]:
        """Return the chunks of *text*, attributed to *source_path*."""
        tokens = self._tokenizer.tokenize(text)
        if not tokens:
            return []

        size = self._chunk_size
        return [
            Chunk(
                source_path=source_path,
                chunk_index=i,
                text="".join(window),
                token_count=len(window),
            )
            for i, window in enumerate(
                tokens[start : start + size] for start in range(0, len(tokens), size)
            )
        ]

    def expected_chunks(self, token_count: int) -> int:
        """Number of chunks a document of *token_count* tokens produces."""
        return math.ceil(token_count / self._chunk_size)
