"""Anthropic LLM Provider implementation.

Streams the Messages API and adapts its content-block events to StreamEvents:

- ``content_block_start`` with a ``tool_use`` block -> tool_start
- ``content_block_delta`` ``text_delta`` -> text
- ``content_block_delta`` ``input_json_delta`` -> tool_args
- ``content_block_stop`` of a tool block -> tool_done
- ``message_stop`` ends the pass, ``error`` fails it
"""

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

import httpx
from opentelemetry import trace

from application.agents.agent_tools import get_anthropic_tools
from application.agents.llm_provider import CLAUDE_MODELS, LlmConfig, LlmProvider, LlmProviderError, LlmProviderType, MalformedFrameGuard
from application.agents.prompts import build_system_prompt
from application.agents.stream_events import StreamEvent
from domain.models import ConversationMessage, ThreadContext, ToolCall
from observability import llm_request_count, llm_request_time, llm_tool_calls

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicLlmProvider(LlmProvider):
    """Anthropic (Claude) implementation of the LLM provider interface."""

    PROVIDER_NAME = "anthropic"
    DISPLAY_NAME = "Anthropic"
    MODELS = CLAUDE_MODELS

    def __init__(
        self,
        config: LlmConfig,
        api_version: str = ANTHROPIC_API_VERSION,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(config)
        self._base_url = (config.base_url or "https://api.anthropic.com/v1").rstrip("/")
        self._api_version = api_version
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        return LlmProviderType.ANTHROPIC

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._config.timeout, transport=self._transport)
        return self._client

    def _get_headers(self) -> dict[str, str]:
        if not self._config.api_key:
            raise LlmProviderError(
                message="Anthropic API key is not configured",
                error_code="anthropic_auth_config_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        return {
            "x-api-key": self._config.api_key,
            "anthropic-version": self._api_version,
            "Accept": "text/event-stream",
        }

    def _build_request_body(self, messages: list[ConversationMessage], context: ThreadContext, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "max_tokens": self._config.max_tokens,
            "system": build_system_prompt(context),
            "messages": [m.to_dict() for m in messages],
            "tools": get_anthropic_tools(),
            "stream": True,
        }

    async def _stream_events(
        self,
        messages: list[ConversationMessage],
        context: ThreadContext,
        model: str,
        cancellation: Optional[asyncio.Event],
    ) -> AsyncIterator[StreamEvent]:
        client = await self._get_client()
        start_time = time.time()
        llm_request_count.add(1, {"model": model, "provider": self.PROVIDER_NAME})

        with tracer.start_as_current_span("anthropic.chat_stream") as span:
            span.set_attribute("llm.model", model)
            span.set_attribute("llm.message_count", len(messages))
            span.set_attribute("llm.provider", self.PROVIDER_NAME)

            try:
                headers = self._get_headers()
                body = self._build_request_body(messages, context, model)

                logger.info(f"🔧 Anthropic stream request: model={model}, messages={len(messages)}")

                async with client.stream("POST", "/messages", json=body, headers=headers) as response:
                    if response.status_code != 200:
                        error_content = await response.aread()
                        error_text = error_content.decode("utf-8", errors="replace")
                        logger.error(f"Anthropic HTTP error: {response.status_code} - {error_text[:500]}")
                        raise self._error_from_status(response.status_code, self._extract_error_detail(error_text), model)

                    guard = MalformedFrameGuard(self.PROVIDER_NAME, self._config.max_consecutive_malformed_frames)
                    # Open tool_use blocks keyed by content block index
                    tool_blocks: dict[int, dict[str, str]] = {}
                    full_text = ""
                    tool_call_count = 0

                    async for line in response.aiter_lines():
                        if cancellation is not None and cancellation.is_set():
                            return
                        if not line or not line.startswith("data:"):
                            continue

                        data_str = line[5:].strip()
                        try:
                            event = json.loads(data_str)
                        except json.JSONDecodeError:
                            guard.record_failure(data_str)
                            continue
                        if not isinstance(event, dict):
                            guard.record_failure(data_str)
                            continue

                        event_type = event.get("type")
                        payload = event.get("content_block" if event_type == "content_block_start" else "delta") or {}
                        if event_type in ("content_block_start", "content_block_delta") and not isinstance(payload, dict):
                            guard.record_failure(data_str)
                            continue
                        guard.reset()

                        if event_type == "content_block_start":
                            block = payload
                            if block.get("type") == "tool_use":
                                index = event.get("index", 0)
                                tool_blocks[index] = {"id": block.get("id", ""), "name": block.get("name", ""), "input": ""}
                                yield StreamEvent.tool_start(block.get("id") or None, block.get("name", ""))

                        elif event_type == "content_block_delta":
                            delta = payload
                            delta_type = delta.get("type")
                            if delta_type == "text_delta":
                                token = delta.get("text", "")
                                if token:
                                    full_text += token
                                    yield StreamEvent.text(token, full_text)
                            elif delta_type == "input_json_delta":
                                block = tool_blocks.get(event.get("index", 0))
                                if block is not None:
                                    block["input"] += delta.get("partial_json", "")
                                    yield StreamEvent.tool_args(block["id"] or None, block["name"], block["input"])

                        elif event_type == "content_block_stop":
                            block = tool_blocks.pop(event.get("index", 0), None)
                            if block is not None:
                                tool_call_count += 1
                                llm_tool_calls.add(1, {"model": model, "tool_name": block["name"], "provider": self.PROVIDER_NAME})
                                yield StreamEvent.tool_done(self._to_tool_call(block))

                        elif event_type == "message_stop":
                            break

                        elif event_type == "error":
                            error = event.get("error") or {}
                            if isinstance(error, dict):
                                error_type = error.get("type", "")
                                message = error.get("message", "Unknown error")
                            else:
                                error_type = str(error)
                                message = str(error)
                            raise LlmProviderError(
                                message=f"Anthropic stream error: {message}",
                                error_code="anthropic_stream_error",
                                provider=self.PROVIDER_NAME,
                                is_retryable=error_type in ("overloaded_error", "api_error", "rate_limit_error"),
                                details={"type": error_type},
                            )

                    duration_ms = (time.time() - start_time) * 1000
                    llm_request_time.record(duration_ms, {"model": model, "provider": self.PROVIDER_NAME})
                    span.set_attribute("llm.duration_ms", duration_ms)
                    span.set_attribute("llm.tool_call_count", tool_call_count)
                    logger.info(f"🏁 Anthropic stream completed: text={len(full_text)} chars, tool_calls={tool_call_count}")

            except LlmProviderError:
                span.set_attribute("error", True)
                raise
            except httpx.ConnectError as e:
                span.set_attribute("error", True)
                logger.error(f"Cannot connect to Anthropic at {self._base_url}: {e}")
                raise LlmProviderError(
                    message="Cannot connect to Anthropic service",
                    error_code="anthropic_unavailable",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                    details={"url": self._base_url},
                )
            except httpx.TimeoutException as e:
                span.set_attribute("error", True)
                logger.error(f"Anthropic request timed out: {e}")
                raise LlmProviderError(
                    message="Anthropic request timed out",
                    error_code="anthropic_timeout",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                logger.error(f"Anthropic stream error: {e}")
                raise LlmProviderError(
                    message=f"Anthropic stream error: {e}",
                    error_code="anthropic_stream_error",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )

    @staticmethod
    def _to_tool_call(block: dict[str, str]) -> ToolCall:
        raw = block["input"]
        try:
            arguments = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            logger.warning(f"Could not parse arguments of tool call {block['name']}: {raw[:200]}")
            arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        return ToolCall(id=block["id"] or None, name=block["name"], arguments=arguments)

    @staticmethod
    def _extract_error_detail(error_text: str) -> str:
        try:
            error_json = json.loads(error_text)
            error = error_json.get("error", {})
            if isinstance(error, dict):
                return error.get("message", error_text[:200])
            return str(error)
        except (json.JSONDecodeError, AttributeError):
            return error_text[:200]

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> Optional["AnthropicLlmProvider"]:
        """Configure AnthropicLlmProvider in the service collection.

        Returns:
            Configured provider or None if not enabled
        """
        from application.settings import get_settings

        settings = get_settings(builder)
        if not settings.anthropic_enabled:
            logger.info("Anthropic provider is disabled (anthropic_enabled=False)")
            return None

        if not settings.anthropic_api_key:
            logger.warning("Anthropic provider enabled but no API key configured; requests will fail")

        config = LlmConfig(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_api_endpoint,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.anthropic_timeout,
            max_consecutive_malformed_frames=settings.stream_max_consecutive_malformed_frames,
        )
        provider = AnthropicLlmProvider(config, api_version=settings.anthropic_api_version)
        builder.services.add_singleton(AnthropicLlmProvider, singleton=provider)

        logger.info(f"✅ Configured AnthropicLlmProvider: endpoint={settings.anthropic_api_endpoint}")
        return provider
