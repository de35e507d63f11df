"""Chat API controller.

Provides endpoints for:
- Streaming a chat turn over Server-Sent Events
- A single non-streamed chat pass
- Listing the selectable providers and models
- Cancelling an in-flight stream
"""

import logging
from typing import Any, Literal, Optional

from classy_fastapi.decorators import get, post
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from opentelemetry import trace
from pydantic import BaseModel, Field

from application.agents.llm_provider import LlmProviderError
from application.commands import CompleteChatCommand, parse_context, parse_messages
from application.orchestrator import ChatOrchestrator, ChatTurn, ToolDispatcher
from application.services import SSE_HEADERS, DuplicateRequestError, EventTransport, RequestRegistry
from application.settings import Settings
from infrastructure.llm_provider_factory import LlmProviderFactory
from observability import chat_requests

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MESSAGES_REQUIRED = "Messages array is required"


class ChatMessageModel(BaseModel):
    """One conversation turn."""

    role: Literal["user", "assistant"]
    content: str = ""


class ChatRequest(BaseModel):
    """Request body for the chat endpoints."""

    model_config = {"populate_by_name": True, "protected_namespaces": ()}

    messages: Optional[list[ChatMessageModel]] = Field(default=None, description="Conversation so far, oldest first")
    thread: Optional[dict[str, Any]] = Field(default=None, description="The email thread open in the client")
    folder: str = Field(default="inbox", description="Mailbox folder the user is viewing")
    provider: Optional[str] = Field(default=None, description="'anthropic' (default) or 'openai'")
    model: Optional[str] = Field(default=None, description="Model id; unknown ids use the provider default")
    access_token: Optional[str] = Field(default=None, alias="accessToken", description="Gmail access token for email search")
    request_id: Optional[str] = Field(default=None, alias="requestId", description="Client id used to cancel the stream")


class ChatController(ControllerBase):
    """Controller for chat endpoints."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)
        self._provider_factory: Optional[LlmProviderFactory] = None
        self._tool_dispatcher: Optional[ToolDispatcher] = None
        self._request_registry: Optional[RequestRegistry] = None
        self._settings: Optional[Settings] = None

    @property
    def provider_factory(self) -> LlmProviderFactory:
        """Lazy-load LlmProviderFactory from DI container."""
        if self._provider_factory is None:
            self._provider_factory = self.service_provider.get_required_service(LlmProviderFactory)
        return self._provider_factory

    @property
    def tool_dispatcher(self) -> ToolDispatcher:
        """Lazy-load ToolDispatcher from DI container."""
        if self._tool_dispatcher is None:
            self._tool_dispatcher = self.service_provider.get_required_service(ToolDispatcher)
        return self._tool_dispatcher

    @property
    def request_registry(self) -> RequestRegistry:
        """Lazy-load RequestRegistry from DI container."""
        if self._request_registry is None:
            self._request_registry = self.service_provider.get_required_service(RequestRegistry)
        return self._request_registry

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = self.service_provider.get_required_service(Settings)
        return self._settings

    @post("/stream")
    async def stream_chat(self, body: ChatRequest, request: Request) -> Any:
        """Stream a chat turn via Server-Sent Events (SSE).

        Every frame is ``data: {"type": ..., "data": {...}}``. Event types:
        - `text`: a token and the cumulative reply so far
        - `tool_start` / `tool_args` / `tool_done`: tool calls as the model emits them
        - `status`: progress while a server-side tool runs
        - `search_result`: outcome of a server-side tool
        - `done` or `error`: exactly one of them ends the stream

        The stream id is returned in the `X-Request-Id` header and can be passed
        to `POST /chat/cancel/{request_id}`.
        """
        if body.messages is None:
            return JSONResponse({"error": MESSAGES_REQUIRED}, status_code=status.HTTP_400_BAD_REQUEST)

        try:
            provider = self.provider_factory.get_provider_for_name(body.provider)
        except LlmProviderError as e:
            return JSONResponse({"error": e.message}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

        registry = self.request_registry
        try:
            request_id, cancellation = registry.register(body.request_id)
        except DuplicateRequestError as e:
            return JSONResponse({"error": str(e)}, status_code=status.HTTP_409_CONFLICT)

        turn = ChatTurn(
            messages=parse_messages([m.model_dump() for m in body.messages]),
            context=parse_context(body.thread, body.folder),
            model_id=body.model,
            access_token=body.access_token,
        )
        orchestrator = ChatOrchestrator(
            provider,
            self.tool_dispatcher,
            preview_length=self.settings.tool_result_preview_length,
        )
        transport = EventTransport(
            orchestrator.run(turn, cancellation),
            cancellation=cancellation,
            is_disconnected=request.is_disconnected,
            on_close=lambda: registry.unregister(request_id, cancellation),
            request_id=request_id,
        )

        chat_requests.add(1, {"provider": provider.PROVIDER_NAME, "streaming": "true"})
        logger.info(f"💬 Chat stream {request_id}: provider={provider.PROVIDER_NAME}, model={body.model or 'default'}, messages={len(turn.messages)}")

        return StreamingResponse(
            transport.frames(),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, "X-Request-Id": request_id},
        )

    @post("/")
    async def complete_chat(self, body: ChatRequest) -> Any:
        """Run one chat pass without streaming.

        Returns `{content, toolCalls}`. Tool calls are returned for the client
        to perform and are not executed.
        """
        if body.messages is None:
            return JSONResponse({"error": MESSAGES_REQUIRED}, status_code=status.HTTP_400_BAD_REQUEST)

        command = CompleteChatCommand(
            messages=[m.model_dump() for m in body.messages],
            thread=body.thread,
            folder=body.folder,
            provider=body.provider,
            model=body.model,
        )
        result = await self.mediator.execute_async(command)
        if result.status != 200:
            return JSONResponse(
                {"error": getattr(result, "detail", None) or "Failed to process request"},
                status_code=result.status,
            )
        return result.data

    @get("/models")
    async def get_models(self) -> Any:
        """List the registered providers with their models and defaults."""
        return self.provider_factory.describe_models()

    @post("/cancel/{request_id}")
    async def cancel_chat(self, request_id: str) -> Any:
        """Cancel an in-flight chat stream."""
        if not self.request_registry.cancel(request_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Request {request_id} not found")
        return {"cancelled": True, "request_id": request_id}
