"""RaglineConfig — deployment settings with environment overrides."""

from __future__ import annotations

import os
from typing import Annotated, Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ragline.exceptions import ConfigurationError

_ENV_PREFIX = "RAGLINE_"

DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB


class RaglineConfig(BaseSettings):
    """Settings shared by the ingestion and query paths.

    Every field can be overridden by an environment variable named
    ``RAGLINE_<FIELD>`` (upper case). Keyword arguments win over the
    environment, and empty variables are ignored.
    ``allowed_base_paths`` is read as an ``os.pathsep``-separated list.

    Invalid values raise :class:`~ragline.exceptions.ConfigurationError`.
    """

    model_config = SettingsConfigDict(
        env_prefix=_ENV_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    database_url: str = "sqlite+aiosqlite:///ragline.db"
    embedding_base_url: str = "http://localhost:11434"
    embedding_model: str = "nomic-embed-text"
    embedding_dimension: int = Field(default=768, gt=0)
    chunk_size: int = Field(default=500, gt=0)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_files: int = 10_000
    request_timeout: float = 60.0
    embed_concurrency: int = Field(default=1, ge=1)
    exact_search_threshold: int = 1_000
    allowed_base_paths: Annotated[tuple[str, ...], NoDecode] = ()

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as e:
            raise ConfigurationError(_describe(e)) from e

    @field_validator("allowed_base_paths", mode="before")
    @classmethod
    def _split_paths(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(p for p in value.split(os.pathsep) if p)
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> RaglineConfig:
        """Build a config from ``RAGLINE_*`` variables, then apply *overrides*."""
        return cls(**overrides)

    def with_overrides(self, **overrides: Any) -> RaglineConfig:
        """Return a validated copy with *overrides* applied."""
        return type(self)(**{**self.model_dump(), **overrides})


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        name = ".".join(str(part) for part in item["loc"])
        problems.append(f"{_ENV_PREFIX}{name.upper()} ({name}): {item['msg']}")
    return "Invalid configuration: " + "; ".join(problems)
