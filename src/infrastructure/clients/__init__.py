"""HTTP clients for external collaborators."""

from infrastructure.clients.elevenlabs_client import ElevenLabsApiError, ElevenLabsClient
from infrastructure.clients.gmail_client import EmailSearchResult, GmailApiError, GmailClient, MessageDetail, ThreadDetail
from infrastructure.clients.page_fetcher import BrowseResult, PageFetcher
from infrastructure.clients.tavily_client import TavilyApiError, TavilyClient, WebSearchItem, WebSearchResponse

__all__ = [
    "ElevenLabsApiError",
    "ElevenLabsClient",
    "EmailSearchResult",
    "GmailApiError",
    "GmailClient",
    "MessageDetail",
    "ThreadDetail",
    "BrowseResult",
    "PageFetcher",
    "TavilyApiError",
    "TavilyClient",
    "WebSearchItem",
    "WebSearchResponse",
]
