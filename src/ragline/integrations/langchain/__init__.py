"""ragline integration with LangChain.

Provides ``RaglineRetriever`` (LangChain retriever backed by similarity
search) and ``create_search_tool`` (the ``search_similar_chunks`` tool as
a ``StructuredTool`` for agents).

Usage::

    from ragline import RaglineAsync
    from ragline.integrations.langchain import RaglineRetriever, create_search_tool

    rag = await RaglineAsync.from_config()
    retriever = RaglineRetriever(planner=rag.planner, k=5)
    tool = create_search_tool(rag.search_tool)
"""

try:
    from langchain_core.retrievers import BaseRetriever as _BaseRetriever
except ImportError as _exc:
    raise ImportError(
        "langchain-core is required for the ragline LangChain integration. "
        "Install it with: pip install 'ragline[langchain]'"
    ) from _exc

from ragline.integrations.langchain._retriever import RaglineRetriever
from ragline.integrations.langchain._tool import create_search_tool

__all__ = ["RaglineRetriever", "create_search_tool"]
