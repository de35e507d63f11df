"""Tests for ChatOrchestrator.

Tests cover:
- Turns without executable tools end after one pass
- Tool execution order, status and search_result events
- Follow-up conversation shape
- Second pass text rebasing and tool event suppression
- Error handling in either pass
- Cancellation
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from application.agents.llm_provider import LlmProviderError
from application.agents.stream_events import StreamEvent, StreamEventType
from application.orchestrator import ChatOrchestrator, ChatTurn, OrchestratorState, ToolDispatcher
from application.orchestrator.chat_orchestrator import tool_status_message
from application.tools import EmailSearchExecutor
from domain.models import ConversationMessage, MessageRole, ToolCall
from tests.fixtures.fakes import RecordingExecutor, ScriptedProvider, collect, text_events, tool_call_events

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def turn() -> ChatTurn:
    return ChatTurn(messages=[ConversationMessage.user("What's the weather in Paris?")], access_token="token-123")


def types_of(events: list[StreamEvent]) -> list[str]:
    return [e.type.value for e in events]


# =============================================================================
# Single pass
# =============================================================================


class TestSinglePass:
    """Turns where the model calls no executable tool."""

    @pytest.mark.asyncio
    async def test_text_only_turn_ends_with_done(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        provider = ScriptedProvider(text_events("Hello", " there"))
        orchestrator = ChatOrchestrator(provider, dispatcher)

        events = await collect(orchestrator.run(turn))

        assert types_of(events) == ["text", "text", "done"]
        assert events[1].data["fullText"] == "Hello there"
        assert provider.call_count == 1
        assert orchestrator.state is OrchestratorState.DONE

    @pytest.mark.asyncio
    async def test_client_action_tools_are_forwarded_but_not_executed(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        provider = ScriptedProvider([*text_events("Archiving."), *tool_call_events("call_1", "archive_email", {})])
        orchestrator = ChatOrchestrator(provider, dispatcher)

        events = await collect(orchestrator.run(turn))

        assert types_of(events) == ["text", "tool_start", "tool_args", "tool_done", "done"]
        assert events[3].data["name"] == "archive_email"
        assert provider.call_count == 1
        assert orchestrator.followup_messages is None

    @pytest.mark.asyncio
    async def test_first_pass_error_is_terminal(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        error = LlmProviderError("Anthropic rate limit exceeded", "anthropic_rate_limit", "anthropic", True)
        provider = ScriptedProvider([*text_events("Partial"), error])
        orchestrator = ChatOrchestrator(provider, dispatcher)

        events = await collect(orchestrator.run(turn))

        assert types_of(events) == ["text", "error"]
        assert events[-1].data["errorCode"] == "anthropic_rate_limit"
        assert events[-1].data["isRetryable"] is True


# =============================================================================
# Tool execution
# =============================================================================


class TestToolExecution:
    """Turns where the model requests server-side tools."""

    @pytest.mark.asyncio
    async def test_web_search_turn_event_sequence(self, dispatcher: ToolDispatcher, web_search: RecordingExecutor, turn: ChatTurn) -> None:
        provider = ScriptedProvider(
            [*text_events("Let me check."), *tool_call_events("call_1", "web_search", {"query": "Paris weather"})],
            text_events("It is sunny."),
        )
        orchestrator = ChatOrchestrator(provider, dispatcher)

        events = await collect(orchestrator.run(turn))

        assert types_of(events) == ["text", "tool_start", "tool_args", "tool_done", "status", "search_result", "text", "done"]
        status = events[4].data
        assert status["message"] == 'Searching the web for "Paris weather"...'
        assert status["tool"] == "web_search"
        assert status["index"] == 1
        assert status["total"] == 1
        assert events[5].data == {"type": "web_search", "query": "Paris weather", "success": True, "preview": "web results: Paris weather"}
        assert events[6].data["fullText"] == "Let me check.\n\nIt is sunny."
        assert web_search.calls == [({"query": "Paris weather"}, "token-123")]

    @pytest.mark.asyncio
    async def test_tools_run_in_arrival_order(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        order: list[str] = []
        for name in ("web_search", "search_emails"):
            executor = dispatcher._executors[name]
            executor.on_execute = lambda n=name: order.append(n)

        provider = ScriptedProvider(
            [
                *tool_call_events("call_1", "search_emails", {"query": "invoice"}),
                *tool_call_events("call_2", "web_search", {"query": "exchange rate"}),
            ],
            text_events("Done."),
        )
        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn))

        assert order == ["search_emails", "web_search"]
        statuses = [e.data for e in events if e.type is StreamEventType.STATUS]
        assert [(s["tool"], s["index"], s["total"]) for s in statuses] == [("search_emails", 1, 2), ("web_search", 2, 2)]

    @pytest.mark.asyncio
    async def test_each_status_precedes_its_search_result(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        provider = ScriptedProvider(
            [
                *tool_call_events("call_1", "web_search", {"query": "a"}),
                *tool_call_events("call_2", "browse_url", {"url": "https://b.example"}),
                *tool_call_events("call_3", "search_emails", {"query": "c"}),
            ],
            [],
        )
        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn))

        tool_phase = [e for e in events if e.type in (StreamEventType.STATUS, StreamEventType.SEARCH_RESULT)]
        assert types_of(tool_phase) == ["status", "search_result"] * 3
        assert [e.data["query"] for e in tool_phase] == ["a", "a", "https://b.example", "https://b.example", "c", "c"]
        assert events[-1].type is StreamEventType.DONE

    @pytest.mark.asyncio
    async def test_failed_tool_still_reaches_followup(self, turn: ChatTurn) -> None:
        failing = RecordingExecutor("web_search", result_text="Web search failed", success=False)
        provider = ScriptedProvider(tool_call_events("call_1", "web_search", {"query": "x"}), text_events("Sorry."))
        orchestrator = ChatOrchestrator(provider, ToolDispatcher([failing]))

        events = await collect(orchestrator.run(turn))

        result = next(e for e in events if e.type is StreamEventType.SEARCH_RESULT)
        assert result.data["success"] is False
        assert "Web search failed: x" in orchestrator.followup_messages[-1].content
        assert events[-1].type is StreamEventType.DONE

    @pytest.mark.asyncio
    async def test_email_search_without_token_reaches_followup(self) -> None:
        gmail = MagicMock()
        gmail.search_threads = AsyncMock()
        provider = ScriptedProvider(tool_call_events("call_1", "search_emails", {"query": "from:bob"}), text_events("Please sign in."))
        orchestrator = ChatOrchestrator(provider, ToolDispatcher([EmailSearchExecutor(gmail)]))
        turn = ChatTurn(messages=[ConversationMessage.user("Find Bob's emails")], access_token=None)

        events = await collect(orchestrator.run(turn))

        result = next(e for e in events if e.type is StreamEventType.SEARCH_RESULT)
        assert result.data["success"] is False
        assert "Not authenticated" in orchestrator.followup_messages[-1].content
        assert events[-1].type is StreamEventType.DONE
        gmail.search_threads.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search_result_preview_is_bounded(self, turn: ChatTurn) -> None:
        executor = RecordingExecutor("web_search", result_text="x" * 500)
        provider = ScriptedProvider(tool_call_events("call_1", "web_search", {"query": "q"}), [])

        events = await collect(ChatOrchestrator(provider, ToolDispatcher([executor]), preview_length=50).run(turn))

        preview = next(e for e in events if e.type is StreamEventType.SEARCH_RESULT).data["preview"]
        assert preview == "x" * 50 + "..."


# =============================================================================
# Follow-up pass
# =============================================================================


class TestFollowupPass:
    """Behavior of the second model pass."""

    @pytest.mark.asyncio
    async def test_followup_conversation_adds_exactly_two_turns(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        provider = ScriptedProvider(
            [*text_events("Searching."), *tool_call_events("call_1", "search_emails", {"query": "flight"})],
            text_events("Found it."),
        )
        orchestrator = ChatOrchestrator(provider, dispatcher)

        await collect(orchestrator.run(turn))

        followup = provider.calls[1]
        assert len(followup) == len(turn.messages) + 2
        assert followup[: len(turn.messages)] == turn.messages
        assert followup[-2].role is MessageRole.ASSISTANT
        assert followup[-2].content == "Searching."
        assert followup[-1].role is MessageRole.USER
        assert "[search_emails: flight]" in followup[-1].content
        assert "email results: flight" in followup[-1].content

    @pytest.mark.asyncio
    async def test_followup_uses_placeholder_without_first_pass_text(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        provider = ScriptedProvider(tool_call_events("call_1", "web_search", {"query": "q"}), text_events("Answer"))

        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn))

        assert provider.calls[1][-2].content == "Let me look that up."
        text = [e for e in events if e.type is StreamEventType.TEXT]
        assert text[-1].data["fullText"] == "Answer"

    @pytest.mark.asyncio
    async def test_followup_tool_calls_are_suppressed(self, dispatcher: ToolDispatcher, web_search: RecordingExecutor, turn: ChatTurn) -> None:
        provider = ScriptedProvider(
            tool_call_events("call_1", "web_search", {"query": "first"}),
            [*text_events("Answer"), *tool_call_events("call_2", "web_search", {"query": "second"})],
        )

        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn))

        assert len(web_search.calls) == 1
        assert provider.call_count == 2
        tool_done = [e for e in events if e.type is StreamEventType.TOOL_DONE]
        assert len(tool_done) == 1
        assert events[-1].type is StreamEventType.DONE

    @pytest.mark.asyncio
    async def test_followup_error_is_terminal(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        error = LlmProviderError("OpenAI server error", "openai_server_error", "openai", True)
        provider = ScriptedProvider(tool_call_events("call_1", "web_search", {"query": "q"}), [error])

        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn))

        assert events[-1].type is StreamEventType.ERROR
        assert sum(1 for e in events if e.is_terminal) == 1

    @pytest.mark.asyncio
    async def test_same_model_is_used_for_both_passes(self, dispatcher: ToolDispatcher) -> None:
        turn = ChatTurn(messages=[ConversationMessage.user("hi")], model_id="claude-opus-4-20250514")
        provider = ScriptedProvider(tool_call_events("call_1", "web_search", {"query": "q"}), [])

        await collect(ChatOrchestrator(provider, dispatcher).run(turn))

        assert provider.models == ["claude-opus-4-20250514", "claude-opus-4-20250514"]


# =============================================================================
# Cancellation
# =============================================================================


class TestCancellation:
    """Cancellation stops the turn without a terminal event."""

    @pytest.mark.asyncio
    async def test_cancelled_before_start_emits_nothing(self, dispatcher: ToolDispatcher, turn: ChatTurn) -> None:
        cancellation = asyncio.Event()
        cancellation.set()
        provider = ScriptedProvider(text_events("Hello"))

        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn, cancellation))

        assert events == []

    @pytest.mark.asyncio
    async def test_cancel_during_tool_execution_skips_followup(self, dispatcher: ToolDispatcher, web_search: RecordingExecutor, turn: ChatTurn) -> None:
        cancellation = asyncio.Event()
        web_search.on_execute = cancellation.set
        provider = ScriptedProvider(tool_call_events("call_1", "web_search", {"query": "q"}), text_events("never"))

        events = await collect(ChatOrchestrator(provider, dispatcher).run(turn, cancellation))

        assert provider.call_count == 1
        assert types_of(events) == ["tool_start", "tool_args", "tool_done", "status"]
        assert not any(e.is_terminal for e in events)


class TestToolStatusMessage:
    def test_known_tools(self) -> None:
        assert tool_status_message(ToolCall("browse_url", {"url": "https://example.com"})) == "Reading https://example.com..."
        assert tool_status_message(ToolCall("search_emails", {"query": "receipts"})) == 'Searching emails for "receipts"...'

    def test_unknown_tool(self) -> None:
        assert tool_status_message(ToolCall("lookup", {})) == "Running lookup..."
