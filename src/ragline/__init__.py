"""ragline: semantic retrieval for agents.

Ingest text, folders and git repositories into a vector store, then answer
similarity queries through a single agent-callable search tool.
"""

__version__ = "0.1.0"

from ragline._ragline import Ragline
from ragline._ragline_async import RaglineAsync
from ragline.config import RaglineConfig
from ragline.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    InvalidInputError,
    ProviderRequestError,
    ProviderUnavailableError,
    RaglineError,
    StorageError,
)
from ragline.ingest import (
    Chunker,
    CorpusScanner,
    IngestionPipeline,
    IngestReport,
    IngestResponse,
    RepositoryIngestRequest,
    ScanConfig,
    SecretScanner,
    SkipReason,
)
from ragline.models import EmbeddingRecord
from ragline.search import (
    DatabaseVectorStore,
    EmbeddingProvider,
    OllamaEmbedding,
    PostgresVectorStore,
    QueryPlanner,
    ScoredChunk,
    UpsertResult,
    VectorStore,
)
from ragline.tools import SearchTool, ToolResult

__all__ = [
    "Chunker",
    "ConfigurationError",
    "CorpusScanner",
    "DatabaseVectorStore",
    "DimensionMismatchError",
    "EmbeddingError",
    "EmbeddingProvider",
    "EmbeddingRecord",
    "IngestReport",
    "IngestResponse",
    "IngestionPipeline",
    "InvalidInputError",
    "OllamaEmbedding",
    "PostgresVectorStore",
    "ProviderRequestError",
    "ProviderUnavailableError",
    "QueryPlanner",
    "Ragline",
    "RaglineAsync",
    "RaglineConfig",
    "RaglineError",
    "RepositoryIngestRequest",
    "ScanConfig",
    "ScoredChunk",
    "SearchTool",
    "SecretScanner",
    "SkipReason",
    "StorageError",
    "ToolResult",
    "UpsertResult",
    "VectorStore",
    "__version__",
]
