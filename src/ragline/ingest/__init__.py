"""Ingestion layer — scanning, secret gating, chunking, and the pipeline."""

from ragline.ingest.chunker import Chunker, Tokenizer, WhitespaceTokenizer
from ragline.ingest.ignore import IgnoreRules
from ragline.ingest.pipeline import IngestionPipeline
from ragline.ingest.scanner import CorpusScan, CorpusScanner, ScanConfig
from ragline.ingest.schemas import (
    IngestResponse,
    RepositoryIngestRequest,
)
from ragline.ingest.secrets import (
    DEFAULT_RULES,
    STRICT_RULES,
    SecretRule,
    SecretScanner,
    SecretScanResult,
    is_sensitive_filename,
)
from ragline.ingest.types import Chunk, Document, IngestReport, SkippedFile, SkipReason

__all__ = [
    "DEFAULT_RULES",
    "STRICT_RULES",
    "Chunk",
    "Chunker",
    "CorpusScan",
    "CorpusScanner",
    "Document",
    "IgnoreRules",
    "IngestReport",
    "IngestResponse",
    "IngestionPipeline",
    "RepositoryIngestRequest",
    "ScanConfig",
    "SecretRule",
    "SecretScanResult",
    "SecretScanner",
    "SkipReason",
    "SkippedFile",
    "Tokenizer",
    "WhitespaceTokenizer",
    "is_sensitive_filename",
]
