"""Chat orchestrator: drives one streamed chat turn.

A turn is at most two model passes. The first pass streams straight to the
client while executable tool calls are collected. Those tools then run one
after the other, and a second pass answers from their outputs. Only the
second pass's text reaches the client.

States::

    AWAITING_FIRST_PASS -> EXECUTING_TOOLS -> AWAITING_FOLLOWUP_PASS -> DONE
    AWAITING_FIRST_PASS -> DONE   (no executable tool calls)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Optional

from application.agents.llm_provider import LlmProvider
from application.agents.stream_events import StreamEvent, StreamEventType
from application.orchestrator.followup import DEFAULT_FOLLOWUP_TEMPLATE, FollowupTemplate, build_followup_messages
from application.orchestrator.tool_dispatcher import ToolDispatcher
from domain.models import ConversationMessage, ThreadContext, ToolCall, ToolResult

logger = logging.getLogger(__name__)

# Events of the first pass that are forwarded to the client unchanged
PASSTHROUGH_EVENT_TYPES = frozenset(
    {
        StreamEventType.TEXT,
        StreamEventType.STATUS,
        StreamEventType.TOOL_START,
        StreamEventType.TOOL_ARGS,
        StreamEventType.TOOL_DONE,
    }
)

TOOL_STATUS_MESSAGES = {
    "web_search": 'Searching the web for "{query}"...',
    "browse_url": "Reading {query}...",
    "search_emails": 'Searching emails for "{query}"...',
}


class OrchestratorState(str, Enum):
    """Lifecycle of a chat turn."""

    AWAITING_FIRST_PASS = "awaiting_first_pass"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_FOLLOWUP_PASS = "awaiting_followup_pass"
    DONE = "done"


@dataclass
class ChatTurn:
    """Input of one chat turn.

    Attributes:
        messages: Conversation so far, ending with the user's message
        context: Open thread and folder
        model_id: Requested model (unknown ids fall back to the provider default)
        access_token: Mailbox credential for email search
    """

    messages: list[ConversationMessage]
    context: ThreadContext = field(default_factory=ThreadContext)
    model_id: Optional[str] = None
    access_token: Optional[str] = None


def tool_status_message(call: ToolCall) -> str:
    template = TOOL_STATUS_MESSAGES.get(call.name, "Running {name}...")
    return template.format(query=call.primary_argument, name=call.name)


class ChatOrchestrator:
    """Runs a chat turn against one provider and yields the client-visible events.

    Each request gets its own orchestrator. The event sequence always ends with
    exactly one ``done`` or ``error`` event, except when cancelled, in which
    case nothing further is emitted.
    """

    def __init__(
        self,
        provider: LlmProvider,
        dispatcher: ToolDispatcher,
        followup_template: FollowupTemplate = DEFAULT_FOLLOWUP_TEMPLATE,
        preview_length: int = 200,
    ) -> None:
        self._provider = provider
        self._dispatcher = dispatcher
        self._followup_template = followup_template
        self._preview_length = preview_length
        self._state = OrchestratorState.AWAITING_FIRST_PASS
        self._followup_messages: Optional[list[ConversationMessage]] = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def followup_messages(self) -> Optional[list[ConversationMessage]]:
        """The conversation sent to the follow-up pass, once built."""
        return self._followup_messages

    async def run(self, turn: ChatTurn, cancellation: Optional[asyncio.Event] = None) -> AsyncIterator[StreamEvent]:
        """Run the turn.

        Args:
            turn: Chat turn input
            cancellation: Request cancellation signal

        Yields:
            Client-visible stream events
        """

        def cancelled() -> bool:
            return cancellation is not None and cancellation.is_set()

        # Pass 1: forward everything, collect executable tool calls
        self._state = OrchestratorState.AWAITING_FIRST_PASS
        first_pass_text = ""
        pending: list[ToolCall] = []

        events = self._provider.chat_stream(turn.messages, turn.context, turn.model_id, cancellation)
        try:
            async for event in events:
                if cancelled():
                    logger.info("Chat turn cancelled during first pass")
                    return
                if event.type is StreamEventType.ERROR:
                    self._state = OrchestratorState.DONE
                    yield event
                    return
                if event.type not in PASSTHROUGH_EVENT_TYPES:
                    continue
                if event.type is StreamEventType.TEXT:
                    first_pass_text = event.data["fullText"]
                elif event.type is StreamEventType.TOOL_DONE:
                    call = event.as_tool_call()
                    if self._dispatcher.is_executable(call.name):
                        pending.append(call)
                yield event
                if cancelled():
                    return
        finally:
            await events.aclose()

        if cancelled():
            return

        if not pending:
            self._state = OrchestratorState.DONE
            yield StreamEvent.done()
            return

        # Tools run strictly in arrival order
        self._state = OrchestratorState.EXECUTING_TOOLS
        logger.info(f"Executing {len(pending)} tool call(s): {[c.name for c in pending]}")
        results: list[ToolResult] = []
        total = len(pending)
        for index, call in enumerate(pending, start=1):
            if cancelled():
                return
            yield StreamEvent.status(
                tool_status_message(call),
                tool=call.name,
                index=index,
                total=total,
                query=call.primary_argument,
            )
            result = await self._dispatcher.dispatch(call, access_token=turn.access_token, cancellation=cancellation)
            if cancelled():
                return
            results.append(result)
            yield StreamEvent.search_result(result, self._preview_length)

        # Pass 2: text only, rebased onto the first pass text
        self._state = OrchestratorState.AWAITING_FOLLOWUP_PASS
        self._followup_messages = build_followup_messages(turn.messages, first_pass_text, results, self._followup_template)
        prefix = f"{first_pass_text}\n\n" if first_pass_text else ""

        events = self._provider.chat_stream(self._followup_messages, turn.context, turn.model_id, cancellation)
        try:
            async for event in events:
                if cancelled():
                    logger.info("Chat turn cancelled during follow-up pass")
                    return
                if event.type is StreamEventType.ERROR:
                    self._state = OrchestratorState.DONE
                    yield event
                    return
                if event.type is StreamEventType.TEXT:
                    yield StreamEvent.text(event.data["token"], prefix + event.data["fullText"])
                    if cancelled():
                        return
        finally:
            await events.aclose()

        if cancelled():
            return

        self._state = OrchestratorState.DONE
        yield StreamEvent.done()
