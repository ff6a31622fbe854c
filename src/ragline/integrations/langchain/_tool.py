"""LangChain tool wrapper for ``search_similar_chunks``."""

from typing import Annotated

from langchain_core.tools import BaseTool, StructuredTool

from ragline.tools.search import DEFAULT_LIMIT, SearchTool


def create_search_tool(search_tool: SearchTool) -> BaseTool:
    """Expose *search_tool* as an async LangChain ``StructuredTool``.

    Errors come back as ``"Error: ..."`` strings so the agent can read
    them and retry with different arguments.
    """

    async def search_similar_chunks(
        query: Annotated[str, "Natural-language search query"],
        limit: Annotated[int, "Maximum number of chunks to return (1-100)"] = DEFAULT_LIMIT,
    ) -> str:
        result = await search_tool.call({"query": query, "limit": limit})
        return result.text

    return StructuredTool.from_function(
        coroutine=search_similar_chunks,
        name=search_tool.name,
        description=search_tool.description,
    )
