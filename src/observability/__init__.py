"""Observability utilities and metrics for Mail Agent."""

from .metrics import (
    chat_requests,
    chat_requests_cancelled,
    chat_stream_duration,
    llm_request_count,
    llm_request_time,
    llm_tool_calls,
    tool_execution_count,
    tool_execution_errors,
    tool_execution_time,
    voice_agents_created,
)

__all__ = [
    # Chat metrics
    "chat_requests",
    "chat_requests_cancelled",
    "chat_stream_duration",
    # LLM metrics
    "llm_request_count",
    "llm_request_time",
    "llm_tool_calls",
    # Tool metrics
    "tool_execution_count",
    "tool_execution_time",
    "tool_execution_errors",
    # Voice metrics
    "voice_agents_created",
]
