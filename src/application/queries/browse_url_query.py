"""Browse URL query and handler."""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler
from neuroglia.observability.tracing import add_span_attributes

from application.tools.browse_executor import is_https_url
from infrastructure.clients.page_fetcher import PageFetcher

log = logging.getLogger(__name__)


@dataclass
class BrowseUrlQuery(Query[OperationResult[Dict[str, Any]]]):
    """Query to fetch a web page as text."""

    url: str
    """Absolute HTTPS URL of the page."""


class BrowseUrlQueryHandler(QueryHandler[BrowseUrlQuery, OperationResult[Dict[str, Any]]]):
    """Handler for BrowseUrlQuery.

    Fetch failures are reported in the payload (``success: false``), not as an
    error status; only invalid input is rejected.
    """

    def __init__(self, page_fetcher: PageFetcher):
        super().__init__()
        self.page_fetcher = page_fetcher

    async def handle_async(self, request: BrowseUrlQuery) -> OperationResult[Dict[str, Any]]:
        """Handle browse URL query."""
        query = request
        url = (query.url or "").strip()
        if not url:
            return self.bad_request("URL is required")
        if not is_https_url(url):
            return self.bad_request("Only HTTPS URLs are allowed")

        add_span_attributes({"browse.url": url})

        result = await self.page_fetcher.fetch(url)
        if not result.success:
            log.warning(f"Browse failed for {url}: {result.error}")
        return self.ok(result.to_dict())
