"""Gmail REST client for mailbox search."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

import httpx
from opentelemetry import trace

from application.services.email_content import extract_email_body, get_header

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class GmailApiError(Exception):
    """Raised when a Gmail request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class MessageDetail:
    sender: str
    date: str
    subject: str
    body: str

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.sender, "date": self.date, "subject": self.subject, "body": self.body}


@dataclass
class ThreadDetail:
    subject: str
    participants: list[str] = field(default_factory=list)
    messages: list[MessageDetail] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "participants": self.participants,
            "messageCount": self.message_count,
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass
class EmailSearchResult:
    """Threads matching a mailbox search.

    Attributes:
        query: The Gmail search query
        total_found: Gmail's estimate of matching threads
        threads: Threads fetched with full content (bodies untruncated)
    """

    query: str
    total_found: int = 0
    threads: list[ThreadDetail] = field(default_factory=list)


class GmailClient:
    """
    HTTP client for the Gmail API (users/me).

    Search lists matching thread ids, then fetches each thread in full in small
    batches with a pause between batches to stay under per-user rate limits.
    """

    def __init__(
        self,
        base_url: str = "https://gmail.googleapis.com/gmail/v1/users/me",
        timeout: float = 30.0,
        batch_size: int = 3,
        batch_delay_seconds: float = 0.15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._batch_size = max(1, batch_size)
        self._batch_delay = batch_delay_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

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

    async def search_threads(
        self,
        query: str,
        access_token: str,
        max_results: int = 5,
        cancellation: Optional[asyncio.Event] = None,
    ) -> EmailSearchResult:
        """
        Search the mailbox and fetch full content of the matching threads.

        Args:
            query: Gmail search query
            access_token: OAuth bearer token of the user
            max_results: Maximum number of threads to fetch
            cancellation: Request cancellation signal; no further batch is fetched once it is set

        Returns:
            EmailSearchResult with untruncated message bodies

        Raises:
            GmailApiError: If the search request itself fails
        """
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {access_token}"}

        with tracer.start_as_current_span("gmail.search_threads") as span:
            span.set_attribute("gmail.max_results", max_results)
            try:
                response = await client.get("/threads", params={"maxResults": str(max_results), "q": query}, headers=headers)
            except httpx.RequestError as e:
                span.set_attribute("error", True)
                raise GmailApiError(f"Failed to reach Gmail: {e}")

            if response.status_code != 200:
                span.set_attribute("error", True)
                logger.error(f"Gmail search failed: {response.status_code} - {response.text[:200]}")
                raise GmailApiError(f"Gmail search failed: {response.status_code}", status_code=response.status_code)

            data = response.json()
            thread_refs = (data.get("threads") or [])[:max_results]
            if not thread_refs:
                return EmailSearchResult(query=query, total_found=0)

            total_found = data.get("resultSizeEstimate") or len(thread_refs)
            threads: list[ThreadDetail] = []

            for batch_start in range(0, len(thread_refs), self._batch_size):
                if cancellation is not None and cancellation.is_set():
                    logger.info(f"Gmail search for '{query}' cancelled after {len(threads)} threads")
                    span.set_attribute("gmail.cancelled", True)
                    break
                batch = thread_refs[batch_start : batch_start + self._batch_size]
                details = await asyncio.gather(*(self._fetch_thread(client, ref["id"], headers) for ref in batch))
                threads.extend(self._parse_thread(d) for d in details if d and d.get("messages"))

                if batch_start + self._batch_size < len(thread_refs) and not (cancellation is not None and cancellation.is_set()):
                    await asyncio.sleep(self._batch_delay)

            span.set_attribute("gmail.thread_count", len(threads))
            return EmailSearchResult(query=query, total_found=total_found, threads=threads)

    async def _fetch_thread(self, client: httpx.AsyncClient, thread_id: str, headers: dict[str, str]) -> Optional[dict[str, Any]]:
        try:
            response = await client.get(f"/threads/{thread_id}", params={"format": "full"}, headers=headers)
        except httpx.RequestError as e:
            logger.warning(f"Failed to fetch thread {thread_id}: {e}")
            return None
        if response.status_code != 200:
            logger.warning(f"Failed to fetch thread {thread_id}: {response.status_code}")
            return None
        return response.json()

    @staticmethod
    def _parse_thread(detail: dict[str, Any]) -> ThreadDetail:
        messages: list[MessageDetail] = []
        participants: list[str] = []
        thread_subject = ""

        for message in detail.get("messages", []):
            payload = message.get("payload") or {}
            headers = payload.get("headers") or []
            subject = get_header(headers, "Subject") or "(no subject)"
            sender = get_header(headers, "From") or "Unknown"
            date = get_header(headers, "Date")

            if not thread_subject:
                thread_subject = subject
            if sender not in participants:
                participants.append(sender)
            messages.append(MessageDetail(sender=sender, date=date, subject=subject, body=extract_email_body(payload)))

        return ThreadDetail(subject=thread_subject, participants=participants, messages=messages)

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "GmailClient":
        """Configure GmailClient in the service collection."""
        from application.settings import get_settings

        settings = get_settings(builder)
        client = GmailClient(
            base_url=settings.gmail_api_url,
            timeout=settings.gmail_timeout,
            batch_size=settings.gmail_batch_size,
            batch_delay_seconds=settings.gmail_batch_delay_seconds,
        )
        builder.services.add_singleton(GmailClient, singleton=client)
        return client
