"""Custom exception hierarchy for ragline."""


class RaglineError(Exception):
    """Base exception for all ragline errors."""


class InvalidInputError(RaglineError):
    """Raised when caller input is rejected before any I/O (blank query, bad limit, bad path)."""


class ConfigurationError(RaglineError):
    """Raised when components are wired with incompatible settings."""


class DimensionMismatchError(ConfigurationError):
    """Raised when a vector's length differs from the store's configured dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch: store expects {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class StorageError(RaglineError):
    """Raised on vector store failures (DB connection, constraint, index I/O)."""


class EmbeddingError(RaglineError):
    """Base class for embedding provider failures."""

    retryable: bool = False


class ProviderUnavailableError(EmbeddingError):
    """Provider unreachable, timed out, or answered 5xx/429. Safe to retry."""

    retryable = True


class ProviderRequestError(EmbeddingError):
    """Provider rejected the request or returned a malformed body. Do not retry."""

    retryable = False
