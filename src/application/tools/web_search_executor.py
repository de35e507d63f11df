"""Executor for the ``web_search`` tool."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from application.tools.base import ToolExecutor
from domain.models import ToolResult
from infrastructure.clients.tavily_client import TavilyApiError, TavilyClient, WebSearchResponse

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Web search is not configured. Please add TAVILY_API_KEY to environment variables."


def format_web_search_results(query: str, response: WebSearchResponse) -> str:
    """Render search results as text for the model."""
    if not response.answer and not response.results:
        return f'No web results found for: "{query}"'

    lines = [f'WEB SEARCH RESULTS for "{query}"', ""]
    if response.answer:
        lines.extend([f"Summary: {response.answer}", ""])
    for item in response.results:
        lines.append(f"[{item.rank}] {item.title}")
        lines.append(item.url)
        if item.snippet:
            lines.append(item.snippet)
        lines.append("")
    return "\n".join(lines).rstrip()


class WebSearchExecutor(ToolExecutor):
    """Searches the web through Tavily."""

    TOOL_NAME = "web_search"
    ARGUMENT_NAME = "query"

    def __init__(self, tavily_client: TavilyClient, max_results: int = 5) -> None:
        self._tavily = tavily_client
        self._max_results = max_results

    def failure_message(self, error: Exception) -> str:
        return "Web search failed. Please try again."

    async def _execute(
        self,
        query: str,
        arguments: dict[str, Any],
        access_token: Optional[str],
        cancellation: Optional[asyncio.Event],
    ) -> ToolResult:
        if not query:
            return ToolResult.failure(self.TOOL_NAME, query, "Web search failed: no query was provided.")

        if not self._tavily.is_configured:
            logger.warning("TAVILY_API_KEY not configured, web search unavailable")
            return ToolResult.failure(self.TOOL_NAME, query, NOT_CONFIGURED_MESSAGE)

        try:
            response = await self._tavily.search(query, max_results=self._max_results)
        except TavilyApiError as e:
            logger.error(f"Web search failed for '{query}': {e.message}")
            return ToolResult.failure(self.TOOL_NAME, query, f"Web search failed: {e.message}")

        logger.info(f"🔍 Web search '{query}': {len(response.results)} results")
        return ToolResult(name=self.TOOL_NAME, query=query, result_text=format_web_search_results(query, response), success=True)

    @staticmethod
    def configure(builder: "ApplicationBuilderBase", tavily_client: TavilyClient) -> "WebSearchExecutor":
        from application.settings import get_settings

        settings = get_settings(builder)
        executor = WebSearchExecutor(tavily_client, max_results=settings.web_search_max_results)
        builder.services.add_singleton(WebSearchExecutor, singleton=executor)
        return executor
