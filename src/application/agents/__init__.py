"""Agent abstractions: provider interface, stream events, tools and prompts."""

from application.agents.agent_tools import AGENT_TOOLS, EXECUTABLE_TOOLS, get_anthropic_tools, get_openai_tools
from application.agents.llm_provider import (
    CLAUDE_MODELS,
    OPENAI_MODELS,
    ChatCompletion,
    LlmConfig,
    LlmProvider,
    LlmProviderError,
    LlmProviderType,
    LlmToolDefinition,
    MalformedFrameGuard,
    ModelDefinition,
)
from application.agents.prompts import build_email_context, build_system_prompt
from application.agents.stream_events import GENERIC_ERROR_MESSAGE, StreamEvent, StreamEventType

__all__ = [
    "AGENT_TOOLS",
    "EXECUTABLE_TOOLS",
    "get_anthropic_tools",
    "get_openai_tools",
    "CLAUDE_MODELS",
    "OPENAI_MODELS",
    "ChatCompletion",
    "LlmConfig",
    "LlmProvider",
    "LlmProviderError",
    "LlmProviderType",
    "LlmToolDefinition",
    "MalformedFrameGuard",
    "ModelDefinition",
    "build_email_context",
    "build_system_prompt",
    "GENERIC_ERROR_MESSAGE",
    "StreamEvent",
    "StreamEventType",
]
