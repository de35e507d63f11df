"""Stream events shared by the model adapters, the orchestrator and the transport.

Every event is serialized as ``{"type": <event type>, "data": {...}}``. The
``done`` and ``error`` events are terminal: a channel carries exactly one of
them, as its final event.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from domain.models import ToolCall, ToolResult

GENERIC_ERROR_MESSAGE = "Sorry, I couldn't complete that. Please try again."


class StreamEventType(str, Enum):
    """Types of events streamed to the client."""

    STATUS = "status"
    TEXT = "text"
    TOOL_START = "tool_start"
    TOOL_ARGS = "tool_args"
    TOOL_DONE = "tool_done"
    SEARCH_RESULT = "search_result"
    DONE = "done"
    ERROR = "error"


TERMINAL_EVENT_TYPES = frozenset({StreamEventType.DONE, StreamEventType.ERROR})


@dataclass(frozen=True)
class StreamEvent:
    """An event in the chat stream.

    Attributes:
        type: The event variant
        data: Variant-specific payload
    """

    type: StreamEventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation."""
        return {"type": self.type.value, "data": self.data}

    @classmethod
    def status(cls, message: str, **fields: Any) -> "StreamEvent":
        return cls(StreamEventType.STATUS, {"message": message, **fields})

    @classmethod
    def text(cls, token: str, full_text: str) -> "StreamEvent":
        return cls(StreamEventType.TEXT, {"token": token, "fullText": full_text})

    @classmethod
    def tool_start(cls, call_id: Optional[str], name: str) -> "StreamEvent":
        return cls(StreamEventType.TOOL_START, {"id": call_id, "name": name})

    @classmethod
    def tool_args(cls, call_id: Optional[str], name: str, partial_arguments: str) -> "StreamEvent":
        return cls(StreamEventType.TOOL_ARGS, {"id": call_id, "name": name, "partialArguments": partial_arguments})

    @classmethod
    def tool_done(cls, call: ToolCall) -> "StreamEvent":
        return cls(StreamEventType.TOOL_DONE, call.to_dict())

    @classmethod
    def search_result(cls, result: ToolResult, preview_length: int = 200) -> "StreamEvent":
        return cls(
            StreamEventType.SEARCH_RESULT,
            {
                "type": result.name,
                "query": result.query,
                "success": result.success,
                "preview": result.preview(preview_length),
            },
        )

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(StreamEventType.DONE, {})

    @classmethod
    def error(
        cls,
        message: str = GENERIC_ERROR_MESSAGE,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        is_retryable: Optional[bool] = None,
    ) -> "StreamEvent":
        data: dict[str, Any] = {"message": message}
        if detail:
            data["detail"] = detail
        if error_code:
            data["errorCode"] = error_code
        if is_retryable is not None:
            data["isRetryable"] = is_retryable
        return cls(StreamEventType.ERROR, data)

    def as_tool_call(self) -> ToolCall:
        """Rebuild the completed ToolCall carried by a ``tool_done`` event."""
        if self.type is not StreamEventType.TOOL_DONE:
            raise ValueError(f"Event {self.type.value} does not carry a tool call")
        return ToolCall(
            id=self.data.get("id"),
            name=self.data.get("name", ""),
            arguments=dict(self.data.get("arguments") or {}),
        )
