"""Tavily client for web search and page extraction."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

import httpx
from opentelemetry import trace

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TavilyApiError(Exception):
    """Raised when the Tavily API cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class WebSearchItem:
    rank: int
    title: str
    url: str
    snippet: str

    def to_dict(self) -> dict[str, Any]:
        return {"rank": self.rank, "title": self.title, "url": self.url, "snippet": self.snippet}


@dataclass
class WebSearchResponse:
    """Search results as returned to the agent.

    Attributes:
        answer: Synthesized answer, when the API produced one
        results: Ranked results with bounded snippets
    """

    answer: Optional[str] = None
    results: list[WebSearchItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"answer": self.answer, "results": [r.to_dict() for r in self.results]}


class TavilyClient:
    """HTTP client for the Tavily search API.

    Handles:
    - Web search with an optional synthesized answer
    - Raw content extraction for a single URL
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tavily.com",
        timeout: float = 30.0,
        snippet_length: int = 500,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the Tavily client.

        Args:
            api_key: Tavily API key (empty disables the client)
            base_url: Tavily API base URL
            timeout: HTTP timeout in seconds
            snippet_length: Maximum characters kept per result snippet
            transport: Optional httpx transport (used by tests)
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._snippet_length = snippet_length
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(path, json={"api_key": self._api_key, **body})
        except httpx.TimeoutException as e:
            raise TavilyApiError(f"Tavily request timed out: {e}")
        except httpx.RequestError as e:
            raise TavilyApiError(f"Failed to reach Tavily: {e}")

        if response.status_code != 200:
            logger.error(f"Tavily HTTP error: {response.status_code} - {response.text[:200]}")
            raise TavilyApiError(f"Tavily API error: {response.status_code}", status_code=response.status_code)
        return response.json()

    async def search(self, query: str, max_results: int = 5) -> WebSearchResponse:
        """
        Search the web.

        Args:
            query: Search query
            max_results: Maximum number of results

        Returns:
            Answer and ranked results

        Raises:
            TavilyApiError: If the request fails
        """
        with tracer.start_as_current_span("tavily.search") as span:
            span.set_attribute("search.max_results", max_results)
            data = await self._post(
                "/search",
                {
                    "query": query,
                    "search_depth": "basic",
                    "include_answer": True,
                    "max_results": max_results,
                },
            )

            results = [
                WebSearchItem(
                    rank=i,
                    title=item.get("title", ""),
                    url=item.get("url", ""),
                    snippet=(item.get("content") or "")[: self._snippet_length],
                )
                for i, item in enumerate((data.get("results") or [])[:max_results], start=1)
            ]
            span.set_attribute("search.result_count", len(results))
            logger.info(f"Web search returned {len(results)} results")
            return WebSearchResponse(answer=data.get("answer") or None, results=results)

    async def extract(self, url: str) -> Optional[str]:
        """
        Extract the raw text content of a page.

        Returns:
            The page content, or None when Tavily returned nothing for the URL

        Raises:
            TavilyApiError: If the request fails
        """
        with tracer.start_as_current_span("tavily.extract"):
            data = await self._post("/extract", {"urls": [url]})
            results = data.get("results") or []
            if not results:
                return None
            return results[0].get("raw_content") or None

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "TavilyClient":
        """Configure TavilyClient in the service collection."""
        from application.settings import get_settings

        settings = get_settings(builder)
        client = TavilyClient(
            api_key=settings.tavily_api_key,
            base_url=settings.tavily_api_url,
            timeout=settings.tavily_timeout,
            snippet_length=settings.web_search_snippet_length,
        )
        builder.services.add_singleton(TavilyClient, singleton=client)

        if not client.is_configured:
            logger.warning("Tavily API key not configured; web search will report it is unavailable")
        return client
