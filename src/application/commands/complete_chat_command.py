"""Non-streaming chat command with handler.

Runs a single model pass and returns its text and tool calls. Client-action
tools are returned for the client to perform; nothing is executed here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from neuroglia.core import OperationResult
from neuroglia.mapping import Mapper
from neuroglia.mediation import Command, CommandHandler, Mediator
from neuroglia.observability.tracing import add_span_attributes
from opentelemetry import trace

from application.agents.llm_provider import ChatCompletion, LlmProviderError
from application.commands.command_handler_base import CommandHandlerBase
from domain.models import ConversationMessage, EmailThread, ThreadContext
from infrastructure.llm_provider_factory import LlmProviderFactory
from observability import chat_requests

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Reply shown when the model only called a tool, by priority
TOOL_FALLBACK_CONTENT = [
    ("prepare_draft", "Here's a draft for you:"),
    ("archive_email", "Archived!"),
    ("go_to_next_email", "Moving to next..."),
    ("go_to_inbox", "Back to inbox..."),
    ("send_email", "Sending..."),
]

GREETING_CONTENT = "I'm here to help! You can ask me to summarize this email, draft a reply, archive it, or move to the next email."


def fallback_content(completion: ChatCompletion) -> str:
    """Get the text to show for a completion.

    Returns the model's text when present, a per-tool acknowledgement when the
    model only called tools, and a greeting when it produced nothing at all.
    """
    if completion.content:
        return completion.content
    if not completion.tool_calls:
        return GREETING_CONTENT
    names = {call.name for call in completion.tool_calls}
    for tool_name, content in TOOL_FALLBACK_CONTENT:
        if tool_name in names:
            return content
    return ""


def parse_messages(raw_messages: List[Dict[str, Any]]) -> List[ConversationMessage]:
    return [ConversationMessage.from_dict(m) for m in raw_messages if isinstance(m, dict)]


def parse_context(thread: Optional[Dict[str, Any]], folder: Optional[str]) -> ThreadContext:
    return ThreadContext(thread=EmailThread.from_dict(thread) if thread else None, folder=folder or "inbox")


@dataclass
class CompleteChatCommand(Command[OperationResult[Dict[str, Any]]]):
    """Command to run one non-streaming chat pass."""

    messages: Optional[List[Dict[str, Any]]] = None
    """Conversation turns as ``{role, content}``."""

    thread: Optional[Dict[str, Any]] = None
    """Open email thread, if any."""

    folder: str = "inbox"
    """Mailbox folder the user is viewing."""

    provider: Optional[str] = None
    """Requested provider (``anthropic`` or ``openai``)."""

    model: Optional[str] = None
    """Requested model id."""


class CompleteChatCommandHandler(
    CommandHandlerBase,
    CommandHandler[CompleteChatCommand, OperationResult[Dict[str, Any]]],
):
    """Handler for CompleteChatCommand."""

    def __init__(self, mediator: Mediator, mapper: Mapper, provider_factory: LlmProviderFactory):
        super().__init__(mediator, mapper)
        self._provider_factory = provider_factory

    async def handle_async(self, request: CompleteChatCommand) -> OperationResult[Dict[str, Any]]:
        """Handle the complete chat command."""
        command = request
        if command.messages is None:
            return self.bad_request("Messages array is required")

        try:
            provider = self._provider_factory.get_provider_for_name(command.provider)
        except LlmProviderError as e:
            return self.internal_server_error(e.message)

        add_span_attributes(
            {
                "chat.provider": provider.PROVIDER_NAME,
                "chat.model": command.model or "default",
                "chat.message_count": len(command.messages),
                "chat.has_thread": command.thread is not None,
            }
        )
        chat_requests.add(1, {"provider": provider.PROVIDER_NAME, "streaming": "false"})

        with tracer.start_as_current_span("complete_chat_command"):
            try:
                completion = await provider.chat(
                    parse_messages(command.messages),
                    parse_context(command.thread, command.folder),
                    command.model,
                )
            except LlmProviderError as e:
                log.error(f"Chat completion failed: {e!r}")
                return self.internal_server_error(e.message)

        log.info(f"Chat response: {len(completion.content)} chars, tool calls={[c.name for c in completion.tool_calls]}")
        return self.ok(ChatCompletion(content=fallback_content(completion), tool_calls=completion.tool_calls).to_dict())
