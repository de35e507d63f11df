"""Tests for TavilyClient against a mocked transport."""

import json

import httpx
import pytest

from infrastructure.clients import TavilyApiError, TavilyClient


def make_client(handler, snippet_length: int = 500) -> TavilyClient:
    return TavilyClient(api_key="tvly-test", base_url="https://tavily.test", snippet_length=snippet_length, transport=httpx.MockTransport(handler))


class TestTavilySearch:
    @pytest.mark.asyncio
    async def test_search_ranks_and_bounds_results(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "answer": "It is sunny.",
                    "results": [
                        {"title": "A", "url": "https://a.example", "content": "x" * 50},
                        {"title": "B", "url": "https://b.example", "content": "short"},
                        {"title": "C", "url": "https://c.example", "content": "extra"},
                    ],
                },
            )

        response = await make_client(handler, snippet_length=10).search("weather", max_results=2)

        assert seen[0]["query"] == "weather"
        assert seen[0]["api_key"] == "tvly-test"
        assert seen[0]["include_answer"] is True
        assert response.answer == "It is sunny."
        assert [(r.rank, r.title) for r in response.results] == [(1, "A"), (2, "B")]
        assert response.results[0].snippet == "x" * 10

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        client = make_client(lambda request: httpx.Response(401, text="unauthorized"))

        with pytest.raises(TavilyApiError) as exc_info:
            await client.search("q")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TavilyApiError):
            await make_client(handler).search("q")

    def test_is_configured(self) -> None:
        assert TavilyClient(api_key="k").is_configured
        assert not TavilyClient(api_key="").is_configured


class TestTavilyExtract:
    @pytest.mark.asyncio
    async def test_extract(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={"results": [{"url": "https://a.example", "raw_content": "Page text"}]}))

        assert await client.extract("https://a.example") == "Page text"

    @pytest.mark.asyncio
    async def test_extract_without_results(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={"results": []}))

        assert await client.extract("https://a.example") is None
