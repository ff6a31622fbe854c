"""Tests for ingestion request/response schemas and their camelCase wire names."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ragline.ingest.schemas import (
    IngestResponse,
    RepositoryIngestRequest,
    RepositoryInfo,
)
from ragline.ingest.types import IngestReport, SkippedFile, SkipReason


class TestRepositoryIngestRequest:
    def test_accepts_camel_case(self):
        request = RepositoryIngestRequest.model_validate(
            {
                "repositoryPath": "/srv/app",
                "respectGitIgnore": False,
                "skipFilesWithSecrets": False,
                "maxFileSizeMb": 2,
            }
        )
        assert request.repository_path == "/srv/app"
        assert request.respect_git_ignore is False
        assert request.scan_for_secrets is True
        assert request.skip_files_with_secrets is False
        assert request.max_file_size_mb == 2

    def test_accepts_snake_case(self):
        request = RepositoryIngestRequest(repository_path="/srv/app", max_files=10)
        assert request.max_files == 10

    @pytest.mark.parametrize("field", ["maxFiles", "maxFileSizeMb"])
    def test_limits_must_be_positive(self, field: str):
        with pytest.raises(ValidationError):
            RepositoryIngestRequest.model_validate({"repositoryPath": "/x", field: 0})

    def test_path_required(self):
        with pytest.raises(ValidationError):
            RepositoryIngestRequest.model_validate({})


class TestIngestResponse:
    def test_from_report(self):
        report = IngestReport(
            files_processed=2,
            chunks_created=5,
            files_scanned=4,
            total_size_bytes=1234,
            skipped=[
                SkippedFile("/r/.env", SkipReason.SECRET_DETECTED, "sensitive file name"),
                SkippedFile("/r/a.png", SkipReason.BINARY),
            ],
        )
        response = IngestResponse.from_report(
            report,
            duration_ms=42,
            repository_info=RepositoryInfo(branch="main", commit_hash="abc123"),
        )
        wire = response.to_wire()

        assert wire["success"] is True
        assert wire["filesProcessed"] == 2
        assert wire["chunksCreated"] == 5
        assert wire["message"] == "Successfully vectorized 2 files (5 chunks)"
        assert wire["filesSkipped"] == [
            {"path": "/r/.env", "reason": "secret-detected", "details": "sensitive file name"},
            {"path": "/r/a.png", "reason": "binary"},
        ]
        assert wire["metrics"] == {"durationMs": 42, "totalSizeBytes": 1234, "filesScanned": 4}
        assert wire["repositoryInfo"] == {"branch": "main", "commitHash": "abc123"}

    def test_errors_make_run_unsuccessful(self):
        report = IngestReport(files_processed=1, errors=["Failed to embed chunk 0 of /a"])
        response = IngestResponse.from_report(report)
        assert not response.success
        assert response.message == "Ingestion completed with 1 error(s)"
        assert response.metrics is None
        assert "metrics" not in response.to_wire()
