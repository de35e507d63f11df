"""Domain models for Mail Agent."""

from domain.models.conversation_models import (
    ConversationMessage,
    EmailAddress,
    EmailMessage,
    EmailThread,
    MessageRole,
    ThreadContext,
)
from domain.models.tool_models import PRIMARY_ARGUMENTS, ToolCall, ToolResult

__all__ = [
    "ConversationMessage",
    "EmailAddress",
    "EmailMessage",
    "EmailThread",
    "MessageRole",
    "ThreadContext",
    "PRIMARY_ARGUMENTS",
    "ToolCall",
    "ToolResult",
]
