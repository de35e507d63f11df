"""Tests for GmailClient and the Gmail body helpers.

Tests cover:
- Thread search with batched detail fetches
- Header and body extraction from message payloads
- Failure of the search request versus individual threads
- Body truncation bounds
"""

import asyncio
import base64

import httpx
import pytest

from application.services.email_content import TRUNCATION_SUFFIX, decode_base64url, extract_email_body, format_email_search_results, truncate_body
from infrastructure.clients import GmailApiError, GmailClient
from infrastructure.clients.gmail_client import EmailSearchResult, MessageDetail, ThreadDetail


def encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def gmail_message(sender: str, subject: str, body: str) -> dict:
    return {
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [{"name": "From", "value": sender}, {"name": "Subject", "value": subject}, {"name": "Date", "value": "Tue, 2 Jan 2024"}],
            "parts": [
                {"mimeType": "text/plain", "body": {"data": encode(body)}},
                {"mimeType": "text/html", "body": {"data": encode(f"<p>{body}</p>")}},
            ],
        }
    }


class GmailHandler:
    def __init__(self, threads: dict[str, dict], list_status: int = 200) -> None:
        self.threads = threads
        self.list_status = list_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/threads"):
            if self.list_status != 200:
                return httpx.Response(self.list_status, json={"error": {"message": "Invalid Credentials"}})
            return httpx.Response(200, json={"threads": [{"id": tid} for tid in self.threads], "resultSizeEstimate": 42})
        thread_id = path.rsplit("/", 1)[-1]
        detail = self.threads.get(thread_id)
        if detail is None:
            return httpx.Response(404)
        return httpx.Response(200, json=detail)


def make_client(handler: GmailHandler, batch_size: int = 3) -> GmailClient:
    return GmailClient(base_url="https://gmail.test/gmail/v1/users/me", batch_size=batch_size, batch_delay_seconds=0, transport=httpx.MockTransport(handler))


class TestSearchThreads:
    @pytest.mark.asyncio
    async def test_search_fetches_thread_details(self) -> None:
        handler = GmailHandler(
            {
                "t1": {"messages": [gmail_message("Alice <alice@example.com>", "Lunch", "Noon?"), gmail_message("Bob <bob@example.com>", "Re: Lunch", "Sure")]},
                "t2": {"messages": [gmail_message("Carol <carol@example.com>", "Report", "Attached")]},
            }
        )

        result = await make_client(handler).search_threads("lunch", "token-1", max_results=5)

        list_request = handler.requests[0]
        assert list_request.url.params["q"] == "lunch"
        assert list_request.url.params["maxResults"] == "5"
        assert list_request.headers["Authorization"] == "Bearer token-1"
        assert result.total_found == 42
        assert [t.subject for t in result.threads] == ["Lunch", "Report"]
        assert result.threads[0].participants == ["Alice <alice@example.com>", "Bob <bob@example.com>"]
        assert result.threads[0].messages[1].body == "Sure"

    @pytest.mark.asyncio
    async def test_failed_thread_fetch_is_skipped(self) -> None:
        handler = GmailHandler({"t1": {"messages": [gmail_message("a@example.com", "One", "1")]}})
        handler.threads["gone"] = None

        result = await make_client(handler, batch_size=1).search_threads("x", "tok")

        assert [t.subject for t in result.threads] == ["One"]

    @pytest.mark.asyncio
    async def test_no_matches(self) -> None:
        result = await make_client(GmailHandler({})).search_threads("nothing", "tok")

        assert result.threads == []
        assert result.total_found == 0

    @pytest.mark.asyncio
    async def test_search_failure_raises(self) -> None:
        with pytest.raises(GmailApiError) as exc_info:
            await make_client(GmailHandler({}, list_status=401)).search_threads("x", "expired")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_cancelled_search_fetches_no_thread_details(self) -> None:
        handler = GmailHandler({f"t{i}": {"messages": [gmail_message("a@example.com", f"S{i}", "b")]} for i in range(10)})
        cancellation = asyncio.Event()
        cancellation.set()

        result = await make_client(handler).search_threads("x", "tok", max_results=10, cancellation=cancellation)

        assert len(handler.requests) == 1
        assert result.threads == []

    @pytest.mark.asyncio
    async def test_cancellation_stops_before_next_batch(self) -> None:
        cancellation = asyncio.Event()

        class CancellingHandler(GmailHandler):
            def __call__(self, request: httpx.Request) -> httpx.Response:
                if not request.url.path.endswith("/threads"):
                    cancellation.set()
                return super().__call__(request)

        handler = CancellingHandler({f"t{i}": {"messages": [gmail_message("a@example.com", f"S{i}", "b")]} for i in range(6)})

        result = await make_client(handler, batch_size=2).search_threads("x", "tok", max_results=10, cancellation=cancellation)

        assert len(handler.requests) == 3
        assert [t.subject for t in result.threads] == ["S0", "S1"]


class TestEmailBody:
    def test_plain_text_wins(self) -> None:
        assert extract_email_body(gmail_message("a", "s", "Hello")["payload"]) == "Hello"

    def test_html_only(self) -> None:
        payload = {"mimeType": "text/html", "body": {"data": encode("<div>Hi&nbsp;<b>there</b></div><style>p{}</style>")}}

        assert extract_email_body(payload) == "Hi there"

    def test_nested_parts(self) -> None:
        payload = {"mimeType": "multipart/mixed", "parts": [{"mimeType": "multipart/alternative", "parts": [{"mimeType": "text/plain", "body": {"data": encode("Nested")}}]}]}

        assert extract_email_body(payload) == "Nested"

    def test_no_body(self) -> None:
        assert extract_email_body({"mimeType": "multipart/mixed"}) == ""

    def test_decode_non_utf8(self) -> None:
        data = base64.urlsafe_b64encode("café".encode("latin-1")).decode("ascii")

        assert decode_base64url(data) == "café"


class TestTruncation:
    def test_body_at_cap_is_unchanged(self) -> None:
        body = "a" * 100

        assert truncate_body(body, 100) == body

    def test_body_one_over_cap_is_truncated_within_cap(self) -> None:
        truncated = truncate_body("a" * 101, 100)

        assert len(truncated) == 100
        assert truncated.endswith(TRUNCATION_SUFFIX)

    def test_each_body_is_truncated_independently(self) -> None:
        result = EmailSearchResult(
            query="q",
            total_found=2,
            threads=[
                ThreadDetail(subject="S", participants=["a"], messages=[MessageDetail("a", "d", "S", "x" * 300), MessageDetail("b", "d", "S", "short")]),
            ],
        )

        text = format_email_search_results(result, max_body_length=50)

        assert "x" * 35 + TRUNCATION_SUFFIX in text
        assert "short" in text
        assert 'Found: 2 total threads, showing 1 with content' in text

    def test_no_results(self) -> None:
        assert format_email_search_results(EmailSearchResult(query="zzz"), 100) == 'No emails found matching: "zzz"'
