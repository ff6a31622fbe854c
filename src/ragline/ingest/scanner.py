"""CorpusScanner — walk a filesystem root and yield decodable text documents."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from ragline.ingest.filetypes import TEXT_EXTENSIONS, extension_of, is_text_file, looks_binary
from ragline.ingest.ignore import IgnoreRules
from ragline.ingest.secrets import is_sensitive_filename
from ragline.ingest.types import Document, SkippedFile, SkipReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanConfig:
    """Inclusion/exclusion policy for one scan.

    Attributes:
        respect_ignore_rules: Apply ``.gitignore``, ``.git/info/exclude``
            and the built-in dependency/cache directory list.
        max_files: Stop after this many documents (``None`` for no limit).
        max_file_size: Skip files larger than this many bytes.
        extensions: Allowlist of lower-case extensions without the dot.
        skip_sensitive_names: Report key material and credential files
            (see :func:`~ragline.ingest.secrets.is_sensitive_filename`) as
            ``secret-detected`` without reading them.
    """

    respect_ignore_rules: bool = True
    max_files: int | None = None
    max_file_size: int | None = None
    extensions: frozenset[str] = field(default=TEXT_EXTENSIONS)
    skip_sensitive_names: bool = False


class CorpusScan:
    """Lazy, restartable sequence of documents under one root.

    Each iteration re-walks the tree and resets :attr:`skipped` and
    :attr:`truncated`.
    """

    def __init__(self, root: Path, config: ScanConfig, ignore: IgnoreRules) -> None:
        self.root = root
        self.config = config
        self._ignore = ignore
        self.skipped: list[SkippedFile] = []
        self.truncated = False
        self.files_scanned = 0
        self.total_size_bytes = 0

    def __iter__(self) -> Iterator[Document]:
        self.skipped = []
        self.truncated = False
        self.files_scanned = 0
        self.total_size_bytes = 0
        produced = 0
        for path in self._walk(self.root):
            self.files_scanned += 1
            doc = self._load(path)
            if doc is None:
                continue
            if self.config.max_files is not None and produced >= self.config.max_files:
                self.truncated = True
                logger.info("Reached max_files=%d under %s", self.config.max_files, self.root)
                return
            produced += 1
            self.total_size_bytes += doc.size_bytes
            yield doc

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _walk(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            self._skip(directory, SkipReason.UNREADABLE, str(e))
            return

        for entry in entries:
            path = Path(entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file()
            except OSError as e:
                self._skip(path, SkipReason.UNREADABLE, str(e))
                continue

            if is_dir:
                if entry.name == ".git":
                    continue
                if self.config.respect_ignore_rules and self._ignore.is_ignored(
                    self._rel(path), is_dir=True
                ):
                    self._skip(path, SkipReason.IGNORE_RULE, "directory excluded by ignore rules")
                    continue
                yield from self._walk(path)
            elif is_file:
                yield path

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    # ------------------------------------------------------------------
    # Per-file gates
    # ------------------------------------------------------------------

    def _load(self, path: Path) -> Document | None:
        cfg = self.config

        if cfg.respect_ignore_rules and self._ignore.is_ignored(self._rel(path)):
            self._skip(path, SkipReason.IGNORE_RULE)
            return None

        if cfg.skip_sensitive_names and is_sensitive_filename(path):
            self._skip(path, SkipReason.SECRET_DETECTED, "sensitive file name")
            return None

        if not is_text_file(path, cfg.extensions):
            self._skip(path, SkipReason.BINARY, "not a recognized text file type")
            return None

        try:
            size = path.stat().st_size
        except OSError as e:
            self._skip(path, SkipReason.UNREADABLE, str(e))
            return None

        if cfg.max_file_size is not None and size > cfg.max_file_size:
            self._skip(
                path,
                SkipReason.TOO_LARGE,
                f"File size {size} bytes exceeds limit of {cfg.max_file_size} bytes",
            )
            return None

        try:
            data = path.read_bytes()
        except OSError as e:
            self._skip(path, SkipReason.UNREADABLE, str(e))
            return None

        if looks_binary(data):
            self._skip(path, SkipReason.BINARY, "binary content detected")
            return None

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            self._skip(path, SkipReason.UNREADABLE, f"not valid UTF-8: {e.reason}")
            return None

        return Document(
            path=str(path),
            name=path.name,
            text=text,
            extension=extension_of(path),
            size_bytes=size,
        )

    def _skip(self, path: Path, reason: SkipReason, details: str | None = None) -> None:
        logger.debug("Skipping %s (%s)", path, reason.value)
        self.skipped.append(SkippedFile(path=str(path), reason=reason, details=details))


class CorpusScanner:
    """Builds :class:`CorpusScan` sequences for filesystem roots.

    The scanner only reads; it never writes to, moves, or deletes files.
    """

    def __init__(self, config: ScanConfig | None = None) -> None:
        self.config = config or ScanConfig()

    def scan(self, root: str | Path) -> CorpusScan:
        root_path = Path(root).resolve()
        ignore = (
            IgnoreRules.load(root_path)
            if self.config.respect_ignore_rules
            else IgnoreRules.empty()
        )
        return CorpusScan(root_path, self.config, ignore)
