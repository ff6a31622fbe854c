"""Search layer data types — ranked chunks and write results."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ScoredChunk:
    """A stored chunk returned by a similarity search.

    Attributes:
        text: The chunk text.
        distance: Cosine distance to the query (``1 - cos``, range [0, 2]).
            Lower is more similar.
        file_path: Source the chunk was ingested from.
        chunk_index: 0-based position of the chunk within its source.
    """

    text: str
    distance: float
    file_path: str = ""
    chunk_index: int = 0

    @property
    def score(self) -> float:
        """Cosine similarity (``1 - distance``)."""
        return 1.0 - self.distance


@dataclass(frozen=True, slots=True)
class UpsertResult:
    """Result of a batch write.

    Attributes:
        upserted_count: Records written (inserted or updated).
        errors: One message per record that failed.
    """

    upserted_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors
