"""Ingestion data types — documents, chunks, skip reports, run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SkipReason(str, Enum):
    """Why a file was excluded from ingestion."""

    IGNORE_RULE = "ignore-rule"
    SECRET_DETECTED = "secret-detected"
    TOO_LARGE = "too-large"
    BINARY = "binary"
    UNREADABLE = "unreadable"


@dataclass(frozen=True, slots=True)
class Document:
    """A decoded text file produced by the corpus scanner.

    Attributes:
        path: Absolute path of the source file (unique within a scan).
        name: File name without directories.
        text: Decoded UTF-8 content.
        extension: Lower-cased extension without the dot (``""`` if none).
        size_bytes: Size on disk.
    """

    path: str
    name: str
    text: str
    extension: str = ""
    size_bytes: int = 0


@dataclass(frozen=True, slots=True)
class Chunk:
    """A contiguous slice of a document's text.

    Attributes:
        source_path: Path of the document this chunk came from.
        chunk_index: 0-based position within the source.
        text: Chunk text.
        token_count: Number of tokens in *text* under the chunker's tokenizer.
    """

    source_path: str
    chunk_index: int
    text: str
    token_count: int


@dataclass(frozen=True, slots=True)
class SkippedFile:
    """A file excluded during a scan or ingestion run."""

    path: str
    reason: SkipReason
    details: str | None = None


@dataclass
class IngestReport:
    """Outcome of an ingestion run.

    ``errors`` holds provider and storage failures (non-fatal during
    ingestion); ``warnings`` holds files that were ingested despite a
    secret match because the policy only flags them.
    """

    files_processed: int = 0
    chunks_created: int = 0
    files_scanned: int = 0
    total_size_bytes: int = 0
    skipped: list[SkippedFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False
    truncated: bool = False

    @property
    def success(self) -> bool:
        return not self.errors and not self.cancelled

    @property
    def message(self) -> str:
        if self.cancelled:
            return (
                f"Ingestion cancelled after {self.files_processed} files "
                f"({self.chunks_created} chunks)"
            )
        if self.errors:
            return f"Ingestion completed with {len(self.errors)} error(s)"
        return (
            f"Successfully vectorized {self.files_processed} files "
            f"({self.chunks_created} chunks)"
        )
