"""Agent-facing tools."""

from ragline.tools.search import TOOL_NAME, SearchTool, ToolResult, format_chunks

__all__ = [
    "TOOL_NAME",
    "SearchTool",
    "ToolResult",
    "format_chunks",
]
