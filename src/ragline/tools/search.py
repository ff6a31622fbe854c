"""SearchTool — the Query Planner as a single agent-callable operation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ragline.exceptions import InvalidInputError, RaglineError

if TYPE_CHECKING:
    from ragline.search.planner import QueryPlanner

logger = logging.getLogger(__name__)

TOOL_NAME = "search_similar_chunks"

TOOL_DESCRIPTION = (
    "Search the knowledge base for text chunks semantically similar to a query. "
    "Returns the most relevant chunks, closest first. Use this to ground answers "
    "in ingested documents and source code."
)

DEFAULT_LIMIT = 5


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Result envelope returned to the calling agent."""

    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


class SearchTool:
    """Agent-facing wrapper around :class:`~ragline.search.planner.QueryPlanner`.

    :meth:`call` never raises: validation failures and downstream errors
    come back as ``ToolResult(is_error=True)``.
    """

    name = TOOL_NAME
    description = TOOL_DESCRIPTION

    def __init__(self, planner: QueryPlanner) -> None:
        self._planner = planner

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Natural-language search query.",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of chunks to return.",
                    "default": DEFAULT_LIMIT,
                    "minimum": 1,
                    "maximum": self._planner.max_limit,
                },
            },
            "required": ["query"],
            "additionalProperties": False,
        }

    def definition(self) -> dict[str, Any]:
        """Tool declaration as advertised to agents."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    async def call(self, arguments: dict[str, Any] | None) -> ToolResult:
        """Run a search with agent-supplied *arguments*."""
        args = arguments or {}

        unknown = sorted(set(args) - {"query", "limit"})
        if unknown:
            return _error(f"Unexpected argument(s): {', '.join(unknown)}")

        query = args.get("query")
        if not isinstance(query, str) or not query.strip():
            return _error("Search query cannot be empty")

        limit = args.get("limit", DEFAULT_LIMIT)
        if limit is None:
            limit = DEFAULT_LIMIT
        if isinstance(limit, bool) or not isinstance(limit, int):
            return _error(f"Limit must be between 1 and {self._planner.max_limit}")

        try:
            chunks = await self._planner.search_similar(query, limit)
        except InvalidInputError as e:
            return _error(str(e))
        except RaglineError as e:
            logger.warning("search_similar_chunks failed for %r: %s", query, e)
            return _error(f"Failed to search similar chunks: {e}")
        except Exception:
            logger.error("Unexpected failure in search_similar_chunks", exc_info=True)
            return _error("Failed to search similar chunks due to an internal error")

        if not chunks:
            return ToolResult(f"No similar chunks found for query: '{query}'")
        return ToolResult(format_chunks(query, chunks))


def format_chunks(query: str, chunks: list[str]) -> str:
    """Render ranked chunks as the tool's success text."""
    lines = [f"Found {len(chunks)} similar chunks for query: '{query}'", ""]
    for i, chunk in enumerate(chunks, start=1):
        lines.append(f"--- Chunk {i} ---")
        lines.append(chunk)
        lines.append("")
    return "\n".join(lines)


def _error(message: str) -> ToolResult:
    return ToolResult(f"Error: {message}", is_error=True)
