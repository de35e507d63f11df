"""Tests for the LlmProvider base class.

Tests cover:
- Model resolution against the allow-list
- Error mapping from HTTP status codes
- chat_stream error conversion and message filtering
- Malformed frame guard
"""

import pytest

from application.agents.llm_provider import CLAUDE_MODELS, LlmProviderError, MalformedFrameGuard
from application.agents.stream_events import StreamEventType
from domain.models import ConversationMessage
from tests.fixtures.fakes import ScriptedProvider, collect, text_events


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider(text_events("Hi"))


class TestModelResolution:
    def test_known_model_is_kept(self, provider: ScriptedProvider) -> None:
        assert provider.resolve_model("claude-opus-4-20250514") == "claude-opus-4-20250514"

    @pytest.mark.parametrize("model_id", [None, "", "gpt-4.1", "claude-unknown"])
    def test_unknown_model_uses_default(self, provider: ScriptedProvider, model_id: str) -> None:
        assert provider.resolve_model(model_id) == "claude-sonnet-4-20250514"

    def test_exactly_one_default_per_allow_list(self) -> None:
        assert sum(1 for m in CLAUDE_MODELS if m.is_default) == 1


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status_code,error_code,retryable",
        [
            (401, "anthropic_auth_error", False),
            (403, "anthropic_forbidden", False),
            (404, "anthropic_model_not_found", False),
            (429, "anthropic_rate_limit", True),
            (500, "anthropic_server_error", True),
            (529, "anthropic_server_error", True),
            (400, "anthropic_api_error", False),
        ],
    )
    def test_status_codes(self, provider: ScriptedProvider, status_code: int, error_code: str, retryable: bool) -> None:
        error = provider._error_from_status(status_code, "detail", "claude-sonnet-4-20250514")

        assert error.error_code == error_code
        assert error.is_retryable is retryable


class TestChatStream:
    @pytest.mark.asyncio
    async def test_provider_error_becomes_terminal_event(self) -> None:
        error = LlmProviderError("Anthropic server error: boom", "anthropic_server_error", "anthropic", True)
        provider = ScriptedProvider([*text_events("Par"), error, *text_events("never")])

        events = await collect(provider.chat_stream([ConversationMessage.user("hi")]))

        assert [e.type for e in events] == [StreamEventType.TEXT, StreamEventType.ERROR]
        assert events[-1].data["detail"] == "Anthropic server error: boom"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_terminal_event(self) -> None:
        provider = ScriptedProvider([*text_events("Par"), AttributeError("'int' object has no attribute 'get'")])

        events = await collect(provider.chat_stream([ConversationMessage.user("hi")]))

        assert [e.type for e in events] == [StreamEventType.TEXT, StreamEventType.ERROR]
        assert events[-1].data["errorCode"] == "anthropic_stream_error"
        assert events[-1].data["isRetryable"] is True

    @pytest.mark.asyncio
    async def test_chat_raises_provider_error_on_unexpected_exception(self) -> None:
        provider = ScriptedProvider([TypeError("bad frame")])

        with pytest.raises(LlmProviderError) as exc_info:
            await provider.chat([ConversationMessage.user("hi")])

        assert exc_info.value.error_code == "anthropic_stream_error"

    @pytest.mark.asyncio
    async def test_empty_turns_are_filtered(self) -> None:
        provider = ScriptedProvider([])
        history = [ConversationMessage.user("hi"), ConversationMessage.assistant("  "), ConversationMessage.user("again")]

        await collect(provider.chat_stream(history))

        assert [m.content for m in provider.calls[0]] == ["hi", "again"]

    @pytest.mark.asyncio
    async def test_all_empty_conversation_is_an_error(self) -> None:
        provider = ScriptedProvider(text_events("Hi"))

        events = await collect(provider.chat_stream([]))

        assert events[0].data["errorCode"] == "anthropic_empty_conversation"
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_chat_raises_on_error(self) -> None:
        provider = ScriptedProvider([LlmProviderError("Anthropic request timed out", "anthropic_timeout", "anthropic", True)])

        with pytest.raises(LlmProviderError) as exc_info:
            await provider.chat([ConversationMessage.user("hi")])

        assert exc_info.value.error_code == "anthropic_timeout"
        assert exc_info.value.is_retryable is True


class TestMalformedFrameGuard:
    def test_escalates_after_limit(self) -> None:
        guard = MalformedFrameGuard("openai", limit=2)
        guard.record_failure("x")
        guard.record_failure("x")

        with pytest.raises(LlmProviderError) as exc_info:
            guard.record_failure("x")

        assert exc_info.value.error_code == "openai_malformed_stream"

    def test_reset_clears_run(self) -> None:
        guard = MalformedFrameGuard("openai", limit=1)
        guard.record_failure("x")
        guard.reset()
        guard.record_failure("x")

        assert guard.consecutive == 1
