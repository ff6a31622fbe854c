"""IngestionPipeline — scan, gate, chunk, embed and store text corpora."""

from __future__ import annotations

import configparser
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from ragline.config import RaglineConfig
from ragline.exceptions import InvalidInputError, RaglineError
from ragline.ingest.chunker import Chunker
from ragline.ingest.scanner import CorpusScanner, ScanConfig
from ragline.ingest.schemas import IngestResponse, RepositoryInfo
from ragline.ingest.secrets import SecretScanner
from ragline.ingest.types import Document, IngestReport, SkippedFile, SkipReason
from ragline.models.embeddings import EmbeddingRecord

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Iterable

    from ragline.ingest.scanner import CorpusScan
    from ragline.ingest.schemas import RepositoryIngestRequest
    from ragline.search.protocols import EmbeddingProvider, VectorStore

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class IngestionPipeline:
    """Drives documents through the ingestion path into a vector store.

    Ingestion is best-effort: a failed chunk is recorded in the report's
    ``errors`` and the run continues.  Within a document, chunks are
    embedded and stored in ``chunk_index`` order.

    Args:
        provider: Embedding provider used for every chunk.
        store: Destination vector store (must already be connected).
        config: Deployment settings; defaults to :class:`RaglineConfig()`.
        chunker: Overrides the chunker built from ``config.chunk_size``.
        secret_scanner: Overrides the default credential rule set.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: VectorStore,
        *,
        config: RaglineConfig | None = None,
        chunker: Chunker | None = None,
        secret_scanner: SecretScanner | None = None,
    ) -> None:
        self._provider = provider
        self._store = store
        self._config = config or RaglineConfig()
        self._chunker = chunker or Chunker(self._config.chunk_size)
        self._secrets = secret_scanner or SecretScanner()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def ingest_text(
        self,
        text: str,
        source: str = "text-input",
        *,
        model: str | None = None,
        scan_for_secrets: bool = False,
    ) -> IngestReport:
        """Chunk and store *text* under the caller-chosen *source* path."""
        if not text or not text.strip():
            msg = "Text cannot be empty"
            raise InvalidInputError(msg)
        if not source or not source.strip():
            msg = "Source cannot be empty"
            raise InvalidInputError(msg)

        doc = Document(
            path=source,
            name=Path(source).name or source,
            text=text,
            size_bytes=len(text.encode("utf-8")),
        )
        report = IngestReport(files_scanned=1, total_size_bytes=doc.size_bytes)
        await self.ingest_documents(
            [doc],
            report,
            model=model,
            scan_for_secrets=scan_for_secrets,
            skip_files_with_secrets=True,
        )
        logger.info("Text ingestion of %s: %s", source, report.message)
        return report

    async def ingest_folder(
        self,
        path: str,
        *,
        model: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestReport:
        """Ingest every recognized text file under *path*.

        Folder ingestion applies no ignore rules and no secret scanning;
        use :meth:`ingest_repository` for source trees.
        """
        root = _require_directory(path)
        scanner = CorpusScanner(
            ScanConfig(
                respect_ignore_rules=False,
                max_files=self._config.max_files,
                max_file_size=self._config.max_file_size,
            )
        )
        scan = scanner.scan(root)
        report = IngestReport()
        await self.ingest_documents(
            scan,
            report,
            model=model,
            scan_for_secrets=False,
            skip_files_with_secrets=False,
            cancel_event=cancel_event,
        )
        _merge_scan(report, scan)
        logger.info("Folder ingestion of %s: %s", root, report.message)
        return report

    async def ingest_repository(
        self,
        request: RepositoryIngestRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestResponse:
        """Ingest a git working tree with ignore rules and the secret gate.

        Raises :class:`InvalidInputError` if the path fails validation.
        """
        started = time.perf_counter()
        root = self.validate_repository_path(request.repository_path)

        max_file_size = (
            request.max_file_size_mb * _MB
            if request.max_file_size_mb is not None
            else self._config.max_file_size
        )
        scanner = CorpusScanner(
            ScanConfig(
                respect_ignore_rules=request.respect_git_ignore,
                max_files=request.max_files or self._config.max_files,
                max_file_size=max_file_size,
                skip_sensitive_names=request.scan_for_secrets,
            )
        )
        scan = scanner.scan(root)
        report = IngestReport()
        logger.info("Starting repository ingestion of %s", root)
        await self.ingest_documents(
            scan,
            report,
            model=request.model,
            scan_for_secrets=request.scan_for_secrets,
            skip_files_with_secrets=request.skip_files_with_secrets,
            cancel_event=cancel_event,
        )
        _merge_scan(report, scan)

        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Repository ingestion of %s finished in %d ms: %s",
            root,
            duration_ms,
            report.message,
        )
        return IngestResponse.from_report(
            report,
            duration_ms=duration_ms,
            repository_info=read_repository_info(root),
        )

    # ------------------------------------------------------------------
    # Core loop
    # ------------------------------------------------------------------

    async def ingest_documents(
        self,
        documents: Iterable[Document],
        report: IngestReport,
        *,
        model: str | None = None,
        scan_for_secrets: bool = True,
        skip_files_with_secrets: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestReport:
        """Gate, chunk, embed and store *documents*, accumulating into *report*."""
        for doc in documents:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.info("Ingestion cancelled before %s", doc.path)
                break

            if scan_for_secrets:
                result = self._secrets.scan(doc.text, doc.path)
                if result.detected:
                    if skip_files_with_secrets:
                        report.skipped.append(
                            SkippedFile(
                                path=doc.path,
                                reason=SkipReason.SECRET_DETECTED,
                                details=result.describe(),
                            )
                        )
                        continue
                    report.warnings.append(f"{doc.path}: {result.describe()}")

            try:
                stored = await self._ingest_document(doc, report, model)
            except Exception as e:
                logger.error("Failed to process %s", doc.path, exc_info=True)
                report.errors.append(f"Failed to process {doc.path}: {e}")
                continue

            if stored is not None:
                report.files_processed += 1
                report.chunks_created += stored
        return report

    async def _ingest_document(
        self, doc: Document, report: IngestReport, model: str | None
    ) -> int | None:
        """Store one document's chunks. Returns chunks stored, or None if any failed."""
        chunks = self._chunker.chunk(doc.text, doc.path)
        vectors = await self._provider.embed_batch([c.text for c in chunks], model=model)

        stored = 0
        failed: list[int] = []
        for chunk, vector in zip(chunks, vectors, strict=True):
            if vector is None:
                report.errors.append(
                    f"Failed to embed chunk {chunk.chunk_index} of {doc.path}"
                )
                failed.append(chunk.chunk_index)
                continue
            record = EmbeddingRecord.create(
                file_path=doc.path,
                file_name=doc.name,
                chunk_index=chunk.chunk_index,
                chunk_text=chunk.text,
                token_count=chunk.token_count,
                vector=vector,
            )
            try:
                await self._store.upsert(record)
            except RaglineError as e:
                logger.warning(
                    "Failed to store chunk %d of %s: %s", chunk.chunk_index, doc.path, e
                )
                report.errors.append(
                    f"Failed to store chunk {chunk.chunk_index} of {doc.path}: {e}"
                )
                failed.append(chunk.chunk_index)
                continue
            stored += 1

        removed = 0
        try:
            # A failed index must not keep the previous version's text.
            if failed:
                removed += await self._store.delete_chunks(doc.path, failed)
            removed += await self._store.truncate_source(doc.path, len(chunks))
        except RaglineError as e:
            logger.warning("Failed to prune stale chunks of %s: %s", doc.path, e)
            report.errors.append(f"Failed to prune stale chunks of {doc.path}: {e}")
        logger.debug(
            "Ingested %s: %d chunk(s) stored, %d stale removed", doc.path, stored, removed
        )
        return None if failed and stored == 0 else stored

    # ------------------------------------------------------------------
    # Repository helpers
    # ------------------------------------------------------------------

    def validate_repository_path(self, path: str) -> Path:
        """Resolve and check a repository path, raising :class:`InvalidInputError`."""
        if not path or not path.strip():
            msg = "Repository path cannot be empty"
            raise InvalidInputError(msg)
        if ".." in Path(path).parts:
            msg = "Repository path must not contain '..' segments"
            raise InvalidInputError(msg)

        root = _require_directory(path)
        if not (root / ".git").exists():
            msg = f"Not a git repository (no .git directory): {root}"
            raise InvalidInputError(msg)

        allowed = self._config.allowed_base_paths
        if allowed and not any(
            root.is_relative_to(Path(base).expanduser().resolve()) for base in allowed
        ):
            msg = f"Repository path is outside the allowed base paths: {root}"
            raise InvalidInputError(msg)
        return root


def _require_directory(path: str) -> Path:
    if not path or not path.strip():
        msg = "Path cannot be empty"
        raise InvalidInputError(msg)
    root = Path(path).expanduser().resolve()
    if not root.exists():
        msg = f"Path does not exist: {root}"
        raise InvalidInputError(msg)
    if not root.is_dir():
        msg = f"Path is not a directory: {root}"
        raise InvalidInputError(msg)
    return root


def _merge_scan(report: IngestReport, scan: CorpusScan) -> None:
    report.skipped = [*scan.skipped, *report.skipped]
    report.files_scanned = scan.files_scanned
    report.total_size_bytes = scan.total_size_bytes
    report.truncated = scan.truncated
    if scan.truncated:
        report.warnings.append(
            f"Stopped after {scan.config.max_files} files; remaining files were not scanned"
        )


def read_repository_info(root: Path) -> RepositoryInfo:
    """Read branch, HEAD commit and origin URL from ``.git``, best effort."""
    git_dir = root / ".git"
    branch: str | None = None
    commit: str | None = None
    remote: str | None = None

    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8").strip()
    except OSError:
        logger.debug("No readable HEAD in %s", git_dir)
        return RepositoryInfo()

    if head.startswith("ref:"):
        ref = head.removeprefix("ref:").strip()
        branch = ref.removeprefix("refs/heads/")
        commit = _resolve_ref(git_dir, ref)
    else:
        commit = head or None

    parser = configparser.ConfigParser(strict=False)
    try:
        parser.read(git_dir / "config", encoding="utf-8")
        remote = parser.get('remote "origin"', "url", fallback=None)
    except configparser.Error:
        logger.debug("Unparseable git config in %s", git_dir, exc_info=True)

    return RepositoryInfo(branch=branch, commit_hash=commit, remote_url=remote)


def _resolve_ref(git_dir: Path, ref: str) -> str | None:
    try:
        return (git_dir / ref).read_text(encoding="utf-8").strip() or None
    except OSError:
        pass
    try:
        packed = (git_dir / "packed-refs").read_text(encoding="utf-8")
    except OSError:
        return None
    for line in packed.splitlines():
        if line.startswith(("#", "^")):
            continue
        sha, _, name = line.partition(" ")
        if name.strip() == ref:
            return sha
    return None
