"""Domain layer for Mail Agent.

Contains:
- models/: Conversation, email thread and tool value objects
"""

from domain.models import ConversationMessage, EmailThread, MessageRole, ThreadContext, ToolCall, ToolResult

__all__ = [
    "ConversationMessage",
    "EmailThread",
    "MessageRole",
    "ThreadContext",
    "ToolCall",
    "ToolResult",
]
