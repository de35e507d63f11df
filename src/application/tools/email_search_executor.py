"""Executor for the ``search_emails`` tool."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from application.services.email_content import format_email_search_results
from application.tools.base import ToolExecutor
from domain.models import ToolResult
from infrastructure.clients.gmail_client import GmailApiError, GmailClient

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Not authenticated. Please sign in again to search emails."


def clamp_max_results(value: Any, default: int = 5, upper: int = 10) -> int:
    """Coerce a model-supplied max_results into 1..upper."""
    try:
        requested = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(requested, upper))


class EmailSearchExecutor(ToolExecutor):
    """Searches the user's mailbox with Gmail query syntax."""

    TOOL_NAME = "search_emails"
    ARGUMENT_NAME = "query"

    def __init__(
        self,
        gmail_client: GmailClient,
        default_results: int = 5,
        max_results: int = 10,
        max_body_length: int = 2000,
    ) -> None:
        self._gmail = gmail_client
        self._default_results = default_results
        self._max_results = max_results
        self._max_body_length = max_body_length

    def failure_message(self, error: Exception) -> str:
        return "Email search failed. Please try again."

    async def _execute(
        self,
        query: str,
        arguments: dict[str, Any],
        access_token: Optional[str],
        cancellation: Optional[asyncio.Event],
    ) -> ToolResult:
        if not access_token:
            return ToolResult.failure(self.TOOL_NAME, query, NOT_AUTHENTICATED_MESSAGE)
        if not query:
            return ToolResult.failure(self.TOOL_NAME, query, "Email search failed: no query was provided.")

        max_results = clamp_max_results(arguments.get("max_results", self._default_results), self._default_results, self._max_results)
        try:
            result = await self._gmail.search_threads(query, access_token, max_results=max_results, cancellation=cancellation)
        except GmailApiError as e:
            logger.error(f"Email search failed for '{query}': {e.message}")
            if e.status_code == 401:
                return ToolResult.failure(self.TOOL_NAME, query, NOT_AUTHENTICATED_MESSAGE)
            return ToolResult.failure(self.TOOL_NAME, query, f"Email search failed: {e.message}")

        logger.info(f"📧 Email search '{query}': {len(result.threads)} threads")
        return ToolResult(
            name=self.TOOL_NAME,
            query=query,
            result_text=format_email_search_results(result, self._max_body_length),
            success=True,
        )

    @staticmethod
    def configure(builder: "ApplicationBuilderBase", gmail_client: GmailClient) -> "EmailSearchExecutor":
        from application.settings import get_settings

        settings = get_settings(builder)
        executor = EmailSearchExecutor(
            gmail_client,
            default_results=settings.email_search_default_results,
            max_results=settings.email_search_max_results,
            max_body_length=settings.email_search_max_body_length,
        )
        builder.services.add_singleton(EmailSearchExecutor, singleton=executor)
        return executor
