"""Test doubles shared across the test suite.

Provides:
- ScriptedProvider: an LlmProvider replaying scripted passes
- RecordingExecutor: a ToolExecutor returning canned results
- FakeClock: a manually advanced clock
- SSE body builders for httpx.MockTransport responses
"""

import asyncio
import json
from typing import Any, AsyncIterator, Optional, Union

from application.agents.llm_provider import CLAUDE_MODELS, LlmConfig, LlmProvider, LlmProviderType
from application.agents.stream_events import StreamEvent
from application.tools.base import ToolExecutor
from domain.models import ConversationMessage, ThreadContext, ToolCall, ToolResult

PassScript = list[Union[StreamEvent, Exception]]


class ScriptedProvider(LlmProvider):
    """Provider whose passes replay scripted events.

    Each call to ``chat_stream`` consumes the next script. An LlmProviderError
    in a script is raised at that point, like a real adapter would. Other
    exceptions stand in for adapter bugs.
    """

    PROVIDER_NAME = "anthropic"
    DISPLAY_NAME = "Scripted"
    MODELS = CLAUDE_MODELS

    def __init__(self, *passes: PassScript) -> None:
        super().__init__(LlmConfig(api_key="test-key"))
        self._passes = list(passes)
        self.calls: list[list[ConversationMessage]] = []
        self.models: list[str] = []
        self.closed = False

    @property
    def provider_type(self) -> LlmProviderType:
        return LlmProviderType.ANTHROPIC

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def _stream_events(
        self,
        messages: list[ConversationMessage],
        context: ThreadContext,
        model: str,
        cancellation: Optional[asyncio.Event],
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append(list(messages))
        self.models.append(model)
        script = self._passes.pop(0) if self._passes else []
        for item in script:
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True


class RecordingExecutor(ToolExecutor):
    """Executor returning canned results and recording its calls."""

    def __init__(self, tool_name: str, argument_name: str = "query", result_text: str = "result", success: bool = True) -> None:
        self.TOOL_NAME = tool_name
        self.ARGUMENT_NAME = argument_name
        self.result_text = result_text
        self.success = success
        self.calls: list[tuple[dict[str, Any], Optional[str]]] = []
        self.on_execute = None

    async def _execute(
        self,
        query: str,
        arguments: dict[str, Any],
        access_token: Optional[str],
        cancellation: Optional[asyncio.Event],
    ) -> ToolResult:
        self.calls.append((arguments, access_token))
        if self.on_execute is not None:
            self.on_execute()
        return ToolResult(name=self.TOOL_NAME, query=query, result_text=f"{self.result_text}: {query}", success=self.success)


class FakeClock:
    """Clock advanced by hand."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def tool_call_events(call_id: str, name: str, arguments: dict[str, Any]) -> list[StreamEvent]:
    """Events an adapter emits for one complete tool call."""
    raw = json.dumps(arguments)
    return [
        StreamEvent.tool_start(call_id, name),
        StreamEvent.tool_args(call_id, name, raw),
        StreamEvent.tool_done(ToolCall(id=call_id, name=name, arguments=arguments)),
    ]


def text_events(*tokens: str) -> list[StreamEvent]:
    """Text events with a growing cumulative text."""
    events = []
    full_text = ""
    for token in tokens:
        full_text += token
        events.append(StreamEvent.text(token, full_text))
    return events


async def collect(events: AsyncIterator[Any]) -> list[Any]:
    return [event async for event in events]


def openai_sse(*chunks: Union[dict[str, Any], str], done: bool = True) -> bytes:
    """Build an OpenAI streaming body. String chunks are written raw."""
    lines = [f"data: {c if isinstance(c, str) else json.dumps(c)}\n\n" for c in chunks]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def anthropic_sse(*events: Union[dict[str, Any], str]) -> bytes:
    """Build an Anthropic streaming body. String events are written raw."""
    lines = []
    for event in events:
        if isinstance(event, str):
            lines.append(f"data: {event}\n\n")
        else:
            lines.append(f"event: {event.get('type', 'message')}\ndata: {json.dumps(event)}\n\n")
    return "".join(lines).encode("utf-8")
