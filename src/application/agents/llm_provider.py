"""LLM Provider abstraction for Mail Agent.

This module defines the interface both model backends implement. Each backend
turns its own streaming wire format into the same sequence of StreamEvents,
which keeps the orchestrator provider-agnostic.

Design Principles:
- One stream contract for every backend (text, tool_start, tool_args, tool_done)
- Failures end the stream with a single error event instead of raising
- Unknown model identifiers fall back to the provider default
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Optional

from application.agents.stream_events import StreamEvent, StreamEventType
from domain.models import ConversationMessage, ThreadContext, ToolCall

logger = logging.getLogger(__name__)


# =============================================================================
# Provider Enumeration
# =============================================================================


class LlmProviderType(str, Enum):
    """Supported LLM provider types."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


# =============================================================================
# Unified Error Handling
# =============================================================================


class LlmProviderError(Exception):
    """Base error class for all LLM provider errors.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code for programmatic handling
        provider: The provider that raised the error (openai, anthropic)
        is_retryable: Whether the operation might succeed on retry
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        provider: str,
        is_retryable: bool = False,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.is_retryable = is_retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "provider": self.provider,
            "is_retryable": self.is_retryable,
            "details": self.details,
        }

    def to_event(self) -> StreamEvent:
        """Convert to the terminal error event of a stream."""
        return StreamEvent.error(detail=self.message, error_code=self.error_code, is_retryable=self.is_retryable)

    def __repr__(self) -> str:
        return f"LlmProviderError({self.provider}:{self.error_code}: {self.message})"


# =============================================================================
# Model Definition
# =============================================================================


@dataclass
class ModelDefinition:
    """Definition of a selectable model.

    Attributes:
        provider: The provider type
        id: Model identifier sent to the provider
        name: User-friendly display name
        is_default: Whether this is the default model for its provider
    """

    provider: LlmProviderType
    id: str
    name: str
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "provider": self.provider.value,
            "id": self.id,
            "name": self.name,
            "is_default": self.is_default,
        }


OPENAI_MODELS: list[ModelDefinition] = [
    ModelDefinition(LlmProviderType.OPENAI, "gpt-4.1", "GPT-4.1 (Recommended)", is_default=True),
    ModelDefinition(LlmProviderType.OPENAI, "gpt-4.1-mini", "GPT-4.1 Mini (Fast)"),
    ModelDefinition(LlmProviderType.OPENAI, "gpt-4.1-nano", "GPT-4.1 Nano (Fastest)"),
    ModelDefinition(LlmProviderType.OPENAI, "gpt-4o", "GPT-4o"),
    ModelDefinition(LlmProviderType.OPENAI, "gpt-4o-mini", "GPT-4o Mini"),
]

CLAUDE_MODELS: list[ModelDefinition] = [
    ModelDefinition(LlmProviderType.ANTHROPIC, "claude-sonnet-4-20250514", "Claude Sonnet 4 (Recommended)", is_default=True),
    ModelDefinition(LlmProviderType.ANTHROPIC, "claude-opus-4-20250514", "Claude Opus 4 (Most Capable)"),
    ModelDefinition(LlmProviderType.ANTHROPIC, "claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet (Fallback)"),
    ModelDefinition(LlmProviderType.ANTHROPIC, "claude-3-5-haiku-20241022", "Claude 3.5 Haiku (Fast)"),
]


@dataclass
class LlmToolDefinition:
    """Definition of a tool that can be called by the LLM.

    Attributes:
        name: Unique name of the tool
        description: Human-readable description of what the tool does
        parameters: JSON Schema defining the tool's parameters
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic_format(self) -> dict[str, Any]:
        """Convert to Anthropic tool use format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


@dataclass
class LlmConfig:
    """Configuration for an LLM provider.

    Attributes:
        api_key: API key (if applicable)
        base_url: Base URL for the API
        max_tokens: Maximum tokens to generate per pass
        timeout: Request timeout in seconds
        max_consecutive_malformed_frames: Unparsable frames tolerated in a row
        extra: Provider-specific extra configuration
    """

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 2000
    timeout: float = 120.0
    max_consecutive_malformed_frames: int = 5
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatCompletion:
    """Aggregated result of a single, non-streamed pass."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "toolCalls": [tc.to_dict() for tc in self.tool_calls]}


class MalformedFrameGuard:
    """Tracks consecutive unparsable stream frames.

    Isolated bad frames are skipped. A run longer than the configured limit
    means the upstream stream is broken and raises an LlmProviderError.
    """

    def __init__(self, provider: str, limit: int) -> None:
        self._provider = provider
        self._limit = limit
        self._consecutive = 0

    @property
    def consecutive(self) -> int:
        return self._consecutive

    def record_failure(self, raw: str) -> None:
        self._consecutive += 1
        logger.warning(f"Skipping malformed {self._provider} frame ({self._consecutive}/{self._limit}): {raw[:200]}")
        if self._consecutive > self._limit:
            raise LlmProviderError(
                message=f"Received {self._consecutive} consecutive malformed frames",
                error_code=f"{self._provider}_malformed_stream",
                provider=self._provider,
                is_retryable=True,
            )

    def reset(self) -> None:
        self._consecutive = 0


class LlmProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations:
    - OpenAiLlmProvider: OpenAI Chat Completions streaming
    - AnthropicLlmProvider: Anthropic Messages streaming

    Subclasses implement `_stream_events`, which may raise LlmProviderError.
    `chat_stream` wraps it so that callers only ever see events: any failure
    becomes one terminal error event and the iteration ends.
    """

    PROVIDER_NAME = "base"
    DISPLAY_NAME = "LLM"
    MODELS: list[ModelDefinition] = []

    def __init__(self, config: LlmConfig) -> None:
        """Initialize the LLM provider.

        Args:
            config: Provider configuration
        """
        self._config = config

    @property
    @abstractmethod
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        pass

    @property
    def config(self) -> LlmConfig:
        """Get the provider configuration."""
        return self._config

    @property
    def default_model(self) -> str:
        for model in self.MODELS:
            if model.is_default:
                return model.id
        return self.MODELS[0].id

    def resolve_model(self, model_id: Optional[str]) -> str:
        """Resolve a requested model against the allow-list.

        Args:
            model_id: Requested model identifier (may be None or unknown)

        Returns:
            The requested model if allowed, otherwise the provider default
        """
        if model_id and any(m.id == model_id for m in self.MODELS):
            return model_id
        if model_id:
            logger.info(f"Unknown {self.PROVIDER_NAME} model '{model_id}', using default '{self.default_model}'")
        return self.default_model

    @staticmethod
    def filter_messages(messages: list[ConversationMessage]) -> list[ConversationMessage]:
        """Drop turns with empty content, which both backends reject."""
        return [m for m in messages if not m.is_empty]

    async def chat_stream(
        self,
        messages: list[ConversationMessage],
        context: Optional[ThreadContext] = None,
        model_id: Optional[str] = None,
        cancellation: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one model pass as StreamEvents.

        Args:
            messages: Conversation messages
            context: Open thread and folder, if any
            model_id: Requested model (falls back to the default when unknown)
            cancellation: Signal that stops the stream when set

        Yields:
            text / tool_start / tool_args / tool_done events, ending with at
            most one error event. This method never raises.
        """
        filtered = self.filter_messages(messages)
        if not filtered:
            yield StreamEvent.error(
                detail="At least one message with content is required",
                error_code=f"{self.PROVIDER_NAME}_empty_conversation",
                is_retryable=False,
            )
            return

        model = self.resolve_model(model_id)
        events = self._stream_events(filtered, context or ThreadContext(), model, cancellation)
        try:
            async for event in events:
                if cancellation is not None and cancellation.is_set():
                    logger.info(f"{self.DISPLAY_NAME} stream cancelled")
                    return
                yield event
        except LlmProviderError as e:
            logger.error(f"{self.DISPLAY_NAME} stream failed: {e!r}")
            yield e.to_event()
        except Exception as e:
            logger.exception(f"Unexpected {self.DISPLAY_NAME} stream failure: {e}")
            yield StreamEvent.error(
                detail=f"{self.DISPLAY_NAME} stream error: {e}",
                error_code=f"{self.PROVIDER_NAME}_stream_error",
                is_retryable=True,
            )
        finally:
            await events.aclose()

    async def chat(
        self,
        messages: list[ConversationMessage],
        context: Optional[ThreadContext] = None,
        model_id: Optional[str] = None,
    ) -> ChatCompletion:
        """Run one pass and aggregate it.

        Raises:
            LlmProviderError: If the pass ends with an error
        """
        content = ""
        tool_calls: list[ToolCall] = []
        async for event in self.chat_stream(messages, context, model_id):
            if event.type is StreamEventType.TEXT:
                content = event.data["fullText"]
            elif event.type is StreamEventType.TOOL_DONE:
                tool_calls.append(event.as_tool_call())
            elif event.type is StreamEventType.ERROR:
                raise LlmProviderError(
                    message=event.data.get("detail", event.data["message"]),
                    error_code=event.data.get("errorCode", f"{self.PROVIDER_NAME}_error"),
                    provider=self.PROVIDER_NAME,
                    is_retryable=event.data.get("isRetryable", False),
                )
        return ChatCompletion(content=content.strip(), tool_calls=tool_calls)

    @abstractmethod
    def _stream_events(
        self,
        messages: list[ConversationMessage],
        context: ThreadContext,
        model: str,
        cancellation: Optional[asyncio.Event],
    ) -> AsyncIterator[StreamEvent]:
        """Provider-specific streaming.

        This method is an async generator. It may raise LlmProviderError.
        """
        raise NotImplementedError

    def _error_from_status(self, status_code: int, error_detail: str, model: str) -> LlmProviderError:
        """Map an HTTP status code to an LlmProviderError.

        Args:
            status_code: HTTP status code
            error_detail: Error message extracted from the response
            model: Model name for error details

        Returns:
            Appropriate LlmProviderError
        """
        name = self.DISPLAY_NAME
        code = self.PROVIDER_NAME
        if status_code == 401:
            return LlmProviderError(f"{name} authentication failed. Check your API key.", f"{code}_auth_error", code, False)
        elif status_code == 403:
            return LlmProviderError(f"Access denied to {name} API. Check your permissions.", f"{code}_forbidden", code, False)
        elif status_code == 404:
            return LlmProviderError(f"Model '{model}' not found or endpoint not available", f"{code}_model_not_found", code, False, {"model": model})
        elif status_code == 429:
            return LlmProviderError(f"{name} rate limit exceeded. Please try again later.", f"{code}_rate_limit", code, True)
        elif status_code >= 500:
            return LlmProviderError(f"{name} server error: {error_detail}", f"{code}_server_error", code, True)
        else:
            return LlmProviderError(f"{name} API error: {error_detail}", f"{code}_api_error", code, False, {"status_code": status_code})

    @abstractmethod
    async def close(self) -> None:
        """Close any resources held by the provider."""
        pass

    async def __aenter__(self) -> "LlmProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
