"""Web page fetching for the browse tool.

Tavily's extract endpoint is used when an API key is configured; otherwise, or
when Tavily returns nothing, the page is fetched directly and its text is
extracted from the HTML.
"""

import asyncio
import html
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx
from opentelemetry import trace

from infrastructure.clients.tavily_client import TavilyApiError, TavilyClient

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; MailAgent/1.0)"
CONTENT_TRUNCATED_MARKER = "\n\n[Content truncated...]"


@dataclass
class BrowseResult:
    """Outcome of fetching a page.

    Attributes:
        url: Requested URL
        success: Whether content was retrieved
        title: Page title, when known
        content: Extracted text
        error: Failure description
    """

    url: str
    success: bool
    title: Optional[str] = None
    content: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"url": self.url, "success": self.success, "content": self.content}
        if self.title:
            result["title"] = self.title
        if self.error:
            result["error"] = self.error
        return result


def extract_title_from_html(html_content: str) -> Optional[str]:
    match = re.search(r"<title[^>]*>([^<]+)</title>", html_content, flags=re.IGNORECASE)
    return match.group(1).strip() if match else None


def extract_text_from_html(html_content: str) -> str:
    """Extract readable text from a page, keeping block structure as lines."""
    text = html_content
    for tag in ("script", "style", "nav", "header", "footer"):
        text = re.sub(rf"<{tag}[^>]*>.*?</{tag}>", "", text, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"</?(p|div|br|h[1-6]|li|tr)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)

    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(line for line in lines if line)
    return text.strip()


def truncate_content(content: str, max_length: int) -> str:
    if len(content) <= max_length:
        return content
    return content[:max_length] + CONTENT_TRUNCATED_MARKER


class PageFetcher:
    """Fetches a URL and returns its readable text."""

    def __init__(
        self,
        tavily_client: Optional[TavilyClient] = None,
        timeout: float = 20.0,
        max_content_length: int = 10000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._tavily = tavily_client
        self._timeout = timeout
        self._max_content_length = max_content_length
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                max_redirects=5,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, cancellation: Optional[asyncio.Event] = None) -> BrowseResult:
        """
        Fetch a page.

        Args:
            url: Absolute URL of the page
            cancellation: Request cancellation signal; the direct fetch is skipped once it is set

        Returns:
            BrowseResult (failures are reported in the result, not raised)
        """
        with tracer.start_as_current_span("page_fetcher.fetch") as span:
            span.set_attribute("browse.url", url)

            if self._tavily is not None and self._tavily.is_configured:
                try:
                    raw_content = await self._tavily.extract(url)
                except TavilyApiError as e:
                    logger.warning(f"Tavily extract failed for {url}, falling back to direct fetch: {e.message}")
                    raw_content = None

                if raw_content:
                    first_line = next((line for line in raw_content.split("\n") if line.strip()), "")
                    return BrowseResult(
                        url=url,
                        success=True,
                        title=first_line[:100] or url,
                        content=truncate_content(raw_content, self._max_content_length),
                    )
                logger.info(f"No content from Tavily for {url}, using direct fetch")

            if cancellation is not None and cancellation.is_set():
                return BrowseResult(url=url, success=False, error="Request cancelled")
            return await self._direct_fetch(url)

    async def _direct_fetch(self, url: str) -> BrowseResult:
        client = await self._get_client()
        try:
            response = await client.get(
                url,
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                },
            )
        except httpx.TimeoutException:
            return BrowseResult(url=url, success=False, error=f"Request timed out after {self._timeout} seconds")
        except httpx.RequestError as e:
            return BrowseResult(url=url, success=False, error=f"Failed to fetch URL: {e}")

        if response.status_code >= 400:
            return BrowseResult(url=url, success=False, error=f"Failed to fetch: {response.status_code} {response.reason_phrase}")

        content_type = response.headers.get("content-type", "").lower()
        if "text/html" not in content_type and "text/plain" not in content_type:
            return BrowseResult(url=url, success=False, error=f"This URL points to a {content_type or 'non-text'} file, not a webpage.")

        page = response.text
        if "text/html" in content_type:
            title = extract_title_from_html(page) or url
            content = extract_text_from_html(page)
        else:
            title = url
            content = page.strip()

        logger.info(f"Fetched {url}: {len(content)} characters")
        return BrowseResult(url=url, success=True, title=title, content=truncate_content(content, self._max_content_length))

    @staticmethod
    def configure(builder: "ApplicationBuilderBase", tavily_client: Optional[TavilyClient] = None) -> "PageFetcher":
        """Configure PageFetcher in the service collection."""
        from application.settings import get_settings

        settings = get_settings(builder)
        fetcher = PageFetcher(
            tavily_client=tavily_client,
            timeout=settings.browse_timeout,
            max_content_length=settings.browse_max_content_length,
        )
        builder.services.add_singleton(PageFetcher, singleton=fetcher)
        return fetcher
