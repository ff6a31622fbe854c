"""Command-line entry point.

Usage:
    python -m ragline ingest-repo /src/project --max-files 500
    python -m ragline ingest-folder ./docs
    python -m ragline search "refund policy" --limit 5
    python -m ragline count

Settings come from ``RAGLINE_*`` environment variables; ``--database-url``
and ``--model`` override them.  Results are printed as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any

from ragline._ragline_async import RaglineAsync
from ragline.config import RaglineConfig
from ragline.exceptions import RaglineError
from ragline.ingest.schemas import IngestResponse, RepositoryIngestRequest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ragline", description="Semantic retrieval pipeline")
    parser.add_argument("--database-url", help="SQLAlchemy async database URL")
    parser.add_argument("--model", help="Embedding model name")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    repo = sub.add_parser("ingest-repo", help="Ingest a git working tree")
    repo.add_argument("path")
    repo.add_argument("--no-gitignore", action="store_true", help="Ignore .gitignore rules")
    repo.add_argument("--no-secret-scan", action="store_true", help="Disable the secret gate")
    repo.add_argument(
        "--flag-secrets",
        action="store_true",
        help="Ingest files with secrets and report a warning instead of skipping them",
    )
    repo.add_argument("--max-files", type=int)
    repo.add_argument("--max-file-size-mb", type=int)

    folder = sub.add_parser("ingest-folder", help="Ingest every text file in a folder")
    folder.add_argument("path")

    search = sub.add_parser("search", help="Find chunks similar to a query")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=5)

    sub.add_parser("count", help="Number of stored chunks")
    return parser


async def run(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.model:
        overrides["embedding_model"] = args.model
    config = RaglineConfig.from_env(**overrides)

    async with await RaglineAsync.from_config(config) as rag:
        if args.command == "ingest-repo":
            request = RepositoryIngestRequest(
                repository_path=args.path,
                respect_git_ignore=not args.no_gitignore,
                scan_for_secrets=not args.no_secret_scan,
                skip_files_with_secrets=not args.flag_secrets,
                max_files=args.max_files,
                max_file_size_mb=args.max_file_size_mb,
            )
            return (await rag.ingest_repository(request)).to_wire()
        if args.command == "ingest-folder":
            report = await rag.ingest_folder(args.path)
            return IngestResponse.from_report(report).to_wire()
        if args.command == "search":
            hits = await rag.search_scored(args.query, args.limit)
            return {"query": args.query, "results": [asdict(h) for h in hits]}
        return {"count": await rag.count()}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        result = asyncio.run(run(args))
    except RaglineError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
