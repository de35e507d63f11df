"""Web search query and handler."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler
from neuroglia.observability.tracing import add_span_attributes

from application.settings import Settings
from application.tools.web_search_executor import NOT_CONFIGURED_MESSAGE
from infrastructure.clients.tavily_client import TavilyApiError, TavilyClient

log = logging.getLogger(__name__)


@dataclass
class SearchWebQuery(Query[OperationResult[Dict[str, Any]]]):
    """Query to search the web."""

    query: str
    """Free-text search query."""

    max_results: Optional[int] = None
    """Maximum number of ranked results (defaults to the configured limit)."""


class SearchWebQueryHandler(QueryHandler[SearchWebQuery, OperationResult[Dict[str, Any]]]):
    """Handler for SearchWebQuery."""

    def __init__(self, tavily_client: TavilyClient, settings: Settings):
        super().__init__()
        self.tavily_client = tavily_client
        self.settings = settings

    async def handle_async(self, request: SearchWebQuery) -> OperationResult[Dict[str, Any]]:
        """Handle web search query."""
        query = request
        search_text = (query.query or "").strip()
        if not search_text:
            return self.bad_request("Query is required")

        max_results = query.max_results or self.settings.web_search_max_results
        add_span_attributes({"search.query_length": len(search_text), "search.max_results": max_results})

        if not self.tavily_client.is_configured:
            log.warning("TAVILY_API_KEY not configured")
            return self.ok({"answer": NOT_CONFIGURED_MESSAGE, "results": []})

        try:
            response = await self.tavily_client.search(search_text, max_results=max_results)
            return self.ok(response.to_dict())
        except TavilyApiError as e:
            log.error(f"Web search failed: {e.message}")
            return self.internal_server_error(f"Search failed: {e.message}")
