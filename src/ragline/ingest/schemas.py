"""Request/response schemas for the ingestion boundary.

Wire names are camelCase (``repositoryPath``, ``filesProcessed`` ...);
Python attributes stay snake_case.  Both spellings are accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ragline.ingest.types import IngestReport, SkippedFile, SkipReason


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RepositoryIngestRequest(_CamelModel):
    repository_path: str
    model: str | None = None
    respect_git_ignore: bool = True
    scan_for_secrets: bool = True
    skip_files_with_secrets: bool = True
    max_files: int | None = Field(default=None, ge=1)
    max_file_size_mb: int | None = Field(default=None, ge=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SkippedFileModel(_CamelModel):
    path: str
    reason: SkipReason
    details: str | None = None

    @classmethod
    def from_skipped(cls, skipped: SkippedFile) -> SkippedFileModel:
        return cls(path=skipped.path, reason=skipped.reason, details=skipped.details)


class IngestMetrics(_CamelModel):
    duration_ms: int
    total_size_bytes: int
    files_scanned: int


class RepositoryInfo(_CamelModel):
    branch: str | None = None
    commit_hash: str | None = None
    remote_url: str | None = None


class IngestResponse(_CamelModel):
    success: bool
    files_processed: int
    chunks_created: int
    files_skipped: list[SkippedFileModel] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    message: str
    cancelled: bool = False
    metrics: IngestMetrics | None = None
    repository_info: RepositoryInfo | None = None

    @classmethod
    def from_report(
        cls,
        report: IngestReport,
        *,
        duration_ms: int | None = None,
        repository_info: RepositoryInfo | None = None,
    ) -> IngestResponse:
        metrics = None
        if duration_ms is not None:
            metrics = IngestMetrics(
                duration_ms=duration_ms,
                total_size_bytes=report.total_size_bytes,
                files_scanned=report.files_scanned,
            )
        return cls(
            success=report.success,
            files_processed=report.files_processed,
            chunks_created=report.chunks_created,
            files_skipped=[SkippedFileModel.from_skipped(s) for s in report.skipped],
            errors=list(report.errors),
            warnings=list(report.warnings),
            message=report.message,
            cancelled=report.cancelled,
            metrics=metrics,
            repository_info=repository_info,
        )
