"""Application commands package."""

from .command_handler_base import CommandHandlerBase
from .complete_chat_command import CompleteChatCommand, CompleteChatCommandHandler, fallback_content, parse_context, parse_messages
from .get_voice_agent_command import GetVoiceAgentCommand, GetVoiceAgentCommandHandler

__all__ = [
    "CommandHandlerBase",
    "CompleteChatCommand",
    "CompleteChatCommandHandler",
    "fallback_content",
    "parse_context",
    "parse_messages",
    "GetVoiceAgentCommand",
    "GetVoiceAgentCommandHandler",
]
