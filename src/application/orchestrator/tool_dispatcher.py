"""Dispatch of executable tool calls to their executors."""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Optional

from opentelemetry import trace

from application.tools.base import ToolExecutor
from domain.models import ToolCall, ToolResult
from observability import tool_execution_count, tool_execution_errors, tool_execution_time

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ToolDispatcher:
    """Maps tool names onto executors.

    Tools without an executor are client actions (navigation, drafting, ...)
    and are never run server-side.
    """

    def __init__(self, executors: Optional[list[ToolExecutor]] = None) -> None:
        self._executors: dict[str, ToolExecutor] = {}
        for executor in executors or []:
            self.register(executor)

    def register(self, executor: ToolExecutor) -> None:
        self._executors[executor.TOOL_NAME] = executor
        logger.debug(f"Registered tool executor: {executor.TOOL_NAME}")

    @property
    def executable_tools(self) -> frozenset[str]:
        return frozenset(self._executors)

    def is_executable(self, tool_name: str) -> bool:
        return tool_name in self._executors

    async def dispatch(
        self,
        call: ToolCall,
        access_token: Optional[str] = None,
        cancellation: Optional[asyncio.Event] = None,
    ) -> ToolResult:
        """Execute a tool call.

        Args:
            call: Completed tool call
            access_token: Mailbox credential forwarded to the executor
            cancellation: Request cancellation signal

        Returns:
            The executor's result, or a failure result for unknown tools
        """
        executor = self._executors.get(call.name)
        if executor is None:
            logger.warning(f"No executor for tool '{call.name}'")
            return ToolResult.failure(call.name, call.primary_argument, f"Unknown tool: {call.name}")

        start_time = time.time()
        with tracer.start_as_current_span(f"tool.{call.name}") as span:
            span.set_attribute("tool.name", call.name)
            span.set_attribute("tool.query", call.primary_argument)

            result = await executor.execute(call.arguments, access_token=access_token, cancellation=cancellation)

            duration_ms = (time.time() - start_time) * 1000
            span.set_attribute("tool.success", result.success)
            span.set_attribute("tool.duration_ms", duration_ms)

        tool_execution_count.add(1, {"tool_name": call.name})
        tool_execution_time.record(duration_ms, {"tool_name": call.name})
        if not result.success:
            tool_execution_errors.add(1, {"tool_name": call.name})

        logger.info(f"🔧 Tool {call.name} finished in {duration_ms:.0f}ms (success={result.success})")
        return result

    @staticmethod
    def configure(builder: "ApplicationBuilderBase", executors: list[ToolExecutor]) -> "ToolDispatcher":
        dispatcher = ToolDispatcher(executors)
        builder.services.add_singleton(ToolDispatcher, singleton=dispatcher)
        logger.info(f"✅ Configured ToolDispatcher: tools={sorted(dispatcher.executable_tools)}")
        return dispatcher
