"""OpenAI LLM Provider implementation.

Streams Chat Completions and adapts them to StreamEvents.

OpenAI streams a tool call as deltas keyed by ``index``: the first delta for an
index carries the id and name, and later ones append argument fragments. A
call is complete once a later index starts, once a ``finish_reason`` arrives,
or at ``[DONE]``.
"""

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

import httpx
from opentelemetry import trace

from application.agents.agent_tools import get_openai_tools
from application.agents.llm_provider import OPENAI_MODELS, LlmConfig, LlmProvider, LlmProviderError, LlmProviderType, MalformedFrameGuard
from application.agents.prompts import build_system_prompt
from application.agents.stream_events import StreamEvent
from domain.models import ConversationMessage, ThreadContext, ToolCall
from observability import llm_request_count, llm_request_time, llm_tool_calls

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class _PendingToolCall:
    """A tool call whose arguments are still streaming."""

    def __init__(self, call_id: str) -> None:
        self.id = call_id
        self.name = ""
        self.arguments = ""
        self.started = False
        self.completed = False

    def to_tool_call(self) -> ToolCall:
        try:
            arguments = json.loads(self.arguments) if self.arguments else {}
        except json.JSONDecodeError:
            logger.warning(f"Could not parse arguments of tool call {self.name}: {self.arguments[:200]}")
            arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        return ToolCall(id=self.id or None, name=self.name, arguments=arguments)


class OpenAiLlmProvider(LlmProvider):
    """OpenAI implementation of the LLM provider interface.

    Configuration:
        - base_url: API endpoint (default "https://api.openai.com/v1")
        - api_key: OpenAI API key
        - max_tokens: Completion token cap per pass
    """

    PROVIDER_NAME = "openai"
    DISPLAY_NAME = "OpenAI"
    MODELS = OPENAI_MODELS

    def __init__(self, config: LlmConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Initialize the OpenAI provider.

        Args:
            config: LLM configuration
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(config)
        self._base_url = (config.base_url or "https://api.openai.com/v1").rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        return LlmProviderType.OPENAI

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._config.timeout, transport=self._transport)
        return self._client

    def _get_auth_headers(self) -> dict[str, str]:
        if not self._config.api_key:
            raise LlmProviderError(
                message="OpenAI API key is not configured",
                error_code="openai_auth_config_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def _build_request_body(self, messages: list[ConversationMessage], context: ThreadContext, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "system", "content": build_system_prompt(context)}] + [m.to_dict() for m in messages],
            "tools": get_openai_tools(),
            "tool_choice": "auto",
            "max_tokens": self._config.max_tokens,
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

        with tracer.start_as_current_span("openai.chat_stream") as span:
            span.set_attribute("llm.model", model)
            span.set_attribute("llm.message_count", len(messages))
            span.set_attribute("llm.provider", self.PROVIDER_NAME)

            try:
                headers = self._get_auth_headers()
                headers["Accept"] = "text/event-stream"
                body = self._build_request_body(messages, context, model)

                logger.info(f"🔧 OpenAI stream request: model={model}, messages={len(messages)}")

                async with client.stream("POST", "/chat/completions", json=body, headers=headers) as response:
                    if response.status_code != 200:
                        error_content = await response.aread()
                        error_text = error_content.decode("utf-8", errors="replace")
                        logger.error(f"OpenAI HTTP error: {response.status_code} - {error_text[:500]}")
                        raise self._error_from_status(response.status_code, self._extract_error_detail(error_text), model)

                    guard = MalformedFrameGuard(self.PROVIDER_NAME, self._config.max_consecutive_malformed_frames)
                    pending: dict[int, _PendingToolCall] = {}
                    full_text = ""

                    async for line in response.aiter_lines():
                        if cancellation is not None and cancellation.is_set():
                            return
                        if not line or not line.startswith("data:"):
                            continue

                        data_str = line[5:].strip()
                        if data_str == "[DONE]":
                            break

                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            guard.record_failure(data_str)
                            continue
                        if not isinstance(chunk, dict):
                            guard.record_failure(data_str)
                            continue

                        if chunk.get("error"):
                            error = chunk["error"]
                            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
                            raise LlmProviderError(f"OpenAI stream error: {message}", "openai_stream_error", self.PROVIDER_NAME, True)

                        choices = chunk.get("choices") or []
                        if not isinstance(choices, list):
                            guard.record_failure(data_str)
                            continue
                        if not choices:
                            guard.reset()
                            continue
                        choice = choices[0]
                        if not isinstance(choice, dict) or not isinstance(choice.get("delta") or {}, dict):
                            guard.record_failure(data_str)
                            continue
                        guard.reset()
                        delta = choice.get("delta") or {}

                        content = delta.get("content")
                        if isinstance(content, str) and content:
                            full_text += content
                            yield StreamEvent.text(content, full_text)

                        for tc_delta in delta.get("tool_calls") or []:
                            if not isinstance(tc_delta, dict):
                                continue
                            for event in self._apply_tool_call_delta(pending, tc_delta):
                                yield event

                        if choice.get("finish_reason"):
                            for event in self._complete_all(pending, model):
                                yield event

                    for event in self._complete_all(pending, model):
                        yield event

                    duration_ms = (time.time() - start_time) * 1000
                    llm_request_time.record(duration_ms, {"model": model, "provider": self.PROVIDER_NAME})
                    span.set_attribute("llm.duration_ms", duration_ms)
                    span.set_attribute("llm.tool_call_count", len(pending))
                    logger.info(f"🏁 OpenAI stream completed: text={len(full_text)} chars, tool_calls={len(pending)}")

            except LlmProviderError:
                span.set_attribute("error", True)
                raise
            except httpx.ConnectError as e:
                span.set_attribute("error", True)
                logger.error(f"Cannot connect to OpenAI at {self._base_url}: {e}")
                raise LlmProviderError(
                    message="Cannot connect to OpenAI service",
                    error_code="openai_unavailable",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                    details={"url": self._base_url},
                )
            except httpx.TimeoutException as e:
                span.set_attribute("error", True)
                logger.error(f"OpenAI request timed out: {e}")
                raise LlmProviderError(
                    message="OpenAI request timed out",
                    error_code="openai_timeout",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                logger.error(f"OpenAI stream error: {e}")
                raise LlmProviderError(
                    message=f"OpenAI stream error: {e}",
                    error_code="openai_stream_error",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )

    def _apply_tool_call_delta(self, pending: dict[int, _PendingToolCall], tc_delta: dict[str, Any]) -> list[StreamEvent]:
        """Fold one tool call delta into the pending calls.

        Returns:
            Events produced by the delta, in order
        """
        events: list[StreamEvent] = []
        idx = tc_delta.get("index", 0)

        if idx not in pending:
            # A new index means every earlier call has received all its arguments
            for earlier_idx in sorted(i for i in pending if i < idx):
                events.extend(self._complete(pending[earlier_idx]))
            pending[idx] = _PendingToolCall(tc_delta.get("id") or "")

        call = pending[idx]
        if call.completed:
            return events
        if tc_delta.get("id"):
            call.id = tc_delta["id"]

        func_delta = tc_delta.get("function") or {}
        if not isinstance(func_delta, dict):
            return events
        if func_delta.get("name"):
            call.name += func_delta["name"]
        if call.name and not call.started:
            call.started = True
            events.append(StreamEvent.tool_start(call.id or None, call.name))

        fragment = func_delta.get("arguments")
        if fragment:
            call.arguments += fragment
            if call.started:
                events.append(StreamEvent.tool_args(call.id or None, call.name, call.arguments))
        return events

    def _complete(self, call: _PendingToolCall) -> list[StreamEvent]:
        if call.completed or not call.name:
            return []
        call.completed = True
        return [StreamEvent.tool_done(call.to_tool_call())]

    def _complete_all(self, pending: dict[int, _PendingToolCall], model: str) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for idx in sorted(pending):
            completed = self._complete(pending[idx])
            if completed:
                llm_tool_calls.add(1, {"model": model, "tool_name": pending[idx].name, "provider": self.PROVIDER_NAME})
            events.extend(completed)
        return events

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
    def configure(builder: "ApplicationBuilderBase") -> Optional["OpenAiLlmProvider"]:
        """Configure OpenAiLlmProvider in the service collection.

        Args:
            builder: The application builder

        Returns:
            Configured provider or None if not enabled
        """
        from application.settings import get_settings

        settings = get_settings(builder)
        if not settings.openai_enabled:
            logger.info("OpenAI provider is disabled (openai_enabled=False)")
            return None

        if not settings.openai_api_key:
            logger.warning("OpenAI provider enabled but no API key configured; requests will fail")

        config = LlmConfig(
            api_key=settings.openai_api_key,
            base_url=settings.openai_api_endpoint,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.openai_timeout,
            max_consecutive_malformed_frames=settings.stream_max_consecutive_malformed_frames,
        )
        provider = OpenAiLlmProvider(config)
        builder.services.add_singleton(OpenAiLlmProvider, singleton=provider)

        logger.info(f"✅ Configured OpenAiLlmProvider: endpoint={settings.openai_api_endpoint}")
        return provider
