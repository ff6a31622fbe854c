"""IgnoreRules — gitignore-style exclusion for corpus scans."""

from __future__ import annotations

import logging
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

# Dependency and cache directories excluded whenever ignore rules apply.
DEFAULT_IGNORED_DIRS = (
    "node_modules/",
    "__pycache__/",
    ".venv/",
    "venv/",
    ".tox/",
    ".mypy_cache/",
    ".pytest_cache/",
    ".ruff_cache/",
    ".gradle/",
    ".idea/",
    "build/",
    "dist/",
    "target/",
)

_IGNORE_SOURCES = (".gitignore", ".git/info/exclude")


class IgnoreRules:
    """Compiled ignore patterns for one scan root.

    Paths are matched relative to the root with forward slashes;
    directories must be passed with ``is_dir=True`` so directory-only
    patterns (``build/``) apply.
    """

    def __init__(self, patterns: list[str] | None = None) -> None:
        self._patterns = list(patterns or [])
        self._spec = pathspec.GitIgnoreSpec.from_lines(self._patterns)

    @classmethod
    def empty(cls) -> IgnoreRules:
        return cls([])

    @classmethod
    def load(cls, root: str | Path, *, include_defaults: bool = True) -> IgnoreRules:
        """Collect patterns from the root ``.gitignore`` and ``.git/info/exclude``.

        Unreadable ignore files are logged and skipped.
        """
        root_path = Path(root)
        lines: list[str] = list(DEFAULT_IGNORED_DIRS) if include_defaults else []
        for rel in _IGNORE_SOURCES:
            source = root_path / rel
            if not source.is_file():
                continue
            try:
                lines.extend(source.read_text(encoding="utf-8", errors="replace").splitlines())
            except OSError:
                logger.warning("Failed to read ignore file %s", source, exc_info=True)
                continue
            logger.debug("Loaded ignore patterns from %s", source)
        return cls(lines)

    @property
    def patterns(self) -> list[str]:
        return list(self._patterns)

    def is_ignored(self, rel_path: str, *, is_dir: bool = False) -> bool:
        """Return True if *rel_path* (relative to the root) is excluded."""
        rel = rel_path.replace("\\", "/").strip("/")
        if not rel:
            return False
        if rel == ".git" or rel.startswith(".git/"):
            return True
        if is_dir:
            rel += "/"
        return self._spec.match_file(rel)

    def __bool__(self) -> bool:
        return bool(self._patterns)
