"""Tests for CompleteChatCommand.

Tests cover:
- Required messages
- Provider selection
- Fallback content when the model only called tools
- Provider failures
"""

from typing import Any
from unittest.mock import MagicMock

import pytest
from neuroglia.core import OperationResult

from application.agents.llm_provider import ChatCompletion, LlmProviderError, LlmProviderType
from application.commands import CompleteChatCommand, CompleteChatCommandHandler
from application.commands.complete_chat_command import GREETING_CONTENT, fallback_content
from domain.models import ToolCall
from infrastructure.llm_provider_factory import LlmProviderFactory
from tests.fixtures.fakes import ScriptedProvider, text_events, tool_call_events


def make_handler(*passes) -> tuple[CompleteChatCommandHandler, ScriptedProvider]:
    provider = ScriptedProvider(*passes)
    factory = LlmProviderFactory()
    factory.register_provider(LlmProviderType.ANTHROPIC, provider)
    return CompleteChatCommandHandler(mediator=MagicMock(), mapper=MagicMock(), provider_factory=factory), provider


class TestCompleteChatCommand:
    @pytest.mark.asyncio
    async def test_missing_messages(self) -> None:
        handler, provider = make_handler()

        result: OperationResult[Any] = await handler.handle_async(CompleteChatCommand())

        assert not result.is_success
        assert result.status == 400
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_text_reply(self) -> None:
        handler, provider = make_handler(text_events("Sure, ", "here is a summary. "))

        result = await handler.handle_async(CompleteChatCommand(messages=[{"role": "user", "content": "Summarize"}], thread={"id": "t1", "subject": "Hi"}))

        assert result.is_success
        assert result.data == {"content": "Sure, here is a summary.", "toolCalls": []}
        assert provider.calls[0][0].content == "Summarize"

    @pytest.mark.asyncio
    async def test_tool_only_reply_gets_fallback_content(self) -> None:
        handler, _ = make_handler(tool_call_events("call_1", "archive_email", {}))

        result = await handler.handle_async(CompleteChatCommand(messages=[{"role": "user", "content": "Archive it"}]))

        assert result.data["content"] == "Archived!"
        assert result.data["toolCalls"] == [{"id": "call_1", "name": "archive_email", "arguments": {}}]

    @pytest.mark.asyncio
    async def test_provider_error(self) -> None:
        handler, _ = make_handler([LlmProviderError("Anthropic authentication failed. Check your API key.", "anthropic_auth_error", "anthropic")])

        result = await handler.handle_async(CompleteChatCommand(messages=[{"role": "user", "content": "Hi"}]))

        assert result.status == 500
        assert "authentication failed" in result.detail

    @pytest.mark.asyncio
    async def test_no_providers(self) -> None:
        handler = CompleteChatCommandHandler(mediator=MagicMock(), mapper=MagicMock(), provider_factory=LlmProviderFactory())

        result = await handler.handle_async(CompleteChatCommand(messages=[{"role": "user", "content": "Hi"}]))

        assert result.status == 500


class TestFallbackContent:
    def test_text_wins(self) -> None:
        assert fallback_content(ChatCompletion(content="Hello", tool_calls=[ToolCall("archive_email")])) == "Hello"

    def test_greeting_when_empty(self) -> None:
        assert fallback_content(ChatCompletion(content="")) == GREETING_CONTENT

    def test_priority_order(self) -> None:
        completion = ChatCompletion(content="", tool_calls=[ToolCall("send_email"), ToolCall("prepare_draft")])

        assert fallback_content(completion) == "Here's a draft for you:"

    def test_other_tools(self) -> None:
        assert fallback_content(ChatCompletion(content="", tool_calls=[ToolCall("star_email")])) == ""
