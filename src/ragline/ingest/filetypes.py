"""Text/binary file classification for corpus scanning."""

from __future__ import annotations

from pathlib import Path

# =============================================================================
# Recognized text/source extensions (lower-case, without the dot)
# =============================================================================

TEXT_EXTENSIONS = frozenset({
    # Programming languages
    "py", "js", "ts", "jsx", "tsx", "java", "kt", "kts", "scala", "groovy",
    "c", "cpp", "cc", "h", "hpp", "cs", "go", "rs", "rb", "php", "swift",
    "m", "mm", "r", "jl", "pl", "pm", "lua", "vb", "dart", "ex", "exs",
    "sh", "bash", "zsh", "fish", "ps1", "psm1", "bat", "cmd",
    # Web
    "html", "htm", "css", "scss", "sass", "less", "vue", "svelte",
    # Data/Config
    "json", "yaml", "yml", "toml", "ini", "cfg", "conf", "properties",
    "xml", "csv", "tsv", "gradle", "tf", "tfvars", "hcl",
    "graphql", "gql", "proto",
    # Documentation
    "md", "markdown", "rst", "txt", "text", "asciidoc", "adoc",
    # SQL
    "sql", "ddl", "dml",
})

# Files without a recognized extension that are text
TEXT_FILENAMES = frozenset({
    "Makefile", "Dockerfile", "Jenkinsfile", "Vagrantfile", "Procfile",
    "Gemfile", "Rakefile", "Brewfile", "Podfile",
    "LICENSE", "README", "CHANGELOG", "CONTRIBUTING", "AUTHORS",
})

_SNIFF_BYTES = 4096
_CONTROL_RATIO = 0.3


def extension_of(path: str | Path) -> str:
    """Return the lower-cased extension of *path* without the dot."""
    return Path(path).suffix.lower().lstrip(".")


def is_text_file(path: str | Path, extensions: frozenset[str] = TEXT_EXTENSIONS) -> bool:
    """Check whether *path* has a recognized text extension or well-known name."""
    p = Path(path)
    if p.name in TEXT_FILENAMES:
        return True
    ext = extension_of(p)
    return bool(ext) and ext in extensions


def looks_binary(data: bytes) -> bool:
    """Sniff the leading bytes of a file for binary content.

    Null bytes, or more than 30% control characters other than common
    whitespace, mark the content as binary.
    """
    head = data[:_SNIFF_BYTES]
    if not head:
        return False
    if b"\x00" in head:
        return True
    control = sum(1 for byte in head if byte < 9 or (13 < byte < 32))
    return (control / len(head)) > _CONTROL_RATIO
