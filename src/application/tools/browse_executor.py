"""Executor for the ``browse_url`` tool."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urlparse

from application.tools.base import ToolExecutor
from domain.models import ToolResult
from infrastructure.clients.page_fetcher import PageFetcher, truncate_content

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)


def is_https_url(url: str) -> bool:
    """Check that a URL is absolute, HTTPS and has a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme == "https" and bool(parsed.netloc)


class BrowseExecutor(ToolExecutor):
    """Reads a web page and returns its title and text.

    Only HTTPS URLs are fetched; anything else fails before any I/O.
    """

    TOOL_NAME = "browse_url"
    ARGUMENT_NAME = "url"

    def __init__(self, page_fetcher: PageFetcher, max_content_length: int = 5000) -> None:
        self._fetcher = page_fetcher
        self._max_content_length = max_content_length

    def failure_message(self, error: Exception) -> str:
        return "Failed to fetch URL. Please try again."

    async def _execute(
        self,
        query: str,
        arguments: dict[str, Any],
        access_token: Optional[str],
        cancellation: Optional[asyncio.Event],
    ) -> ToolResult:
        if not is_https_url(query):
            logger.warning(f"Refusing to browse non-HTTPS URL: {query!r}")
            return ToolResult.failure(self.TOOL_NAME, query, f"Only HTTPS URLs can be browsed: {query or '(empty)'}")

        page = await self._fetcher.fetch(query, cancellation=cancellation)
        if not page.success:
            return ToolResult.failure(self.TOOL_NAME, query, f"Failed to fetch {query}: {page.error or 'unknown error'}")

        content = truncate_content(page.content, self._max_content_length)
        result_text = f"PAGE: {page.title or query}\nURL: {query}\n\n{content or 'No content found.'}"
        logger.info(f"🌐 Browsed {query}: {len(content)} characters")
        return ToolResult(name=self.TOOL_NAME, query=query, result_text=result_text, success=True)

    @staticmethod
    def configure(builder: "ApplicationBuilderBase", page_fetcher: PageFetcher) -> "BrowseExecutor":
        from application.settings import get_settings

        settings = get_settings(builder)
        executor = BrowseExecutor(page_fetcher, max_content_length=settings.browse_tool_max_content_length)
        builder.services.add_singleton(BrowseExecutor, singleton=executor)
        return executor
