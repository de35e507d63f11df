"""Base class for the executors behind the model's external tools."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from domain.models import ToolResult

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "The request was cancelled before the tool finished."


class ToolExecutor(ABC):
    """Runs one external tool and normalizes its outcome into a ToolResult.

    ``execute`` never raises: every failure, including an unexpected one,
    comes back as ``success=False`` with a text the model can read. When the
    request's cancellation signal is set, the running tool is abandoned and a
    cancelled result is returned right away.
    """

    TOOL_NAME = ""
    ARGUMENT_NAME = "query"

    def primary_argument(self, arguments: dict[str, Any]) -> str:
        value = arguments.get(self.ARGUMENT_NAME, "")
        return value.strip() if isinstance(value, str) else str(value)

    async def execute(
        self,
        arguments: dict[str, Any],
        access_token: Optional[str] = None,
        cancellation: Optional[asyncio.Event] = None,
    ) -> ToolResult:
        """Execute the tool.

        Args:
            arguments: Parsed tool call arguments
            access_token: Credential for tools acting on the user's mailbox
            cancellation: Request cancellation signal

        Returns:
            The tool outcome
        """
        query = self.primary_argument(arguments)
        if cancellation is None:
            return await self._run(query, arguments, access_token, cancellation)
        if cancellation.is_set():
            logger.info(f"Skipping {self.TOOL_NAME} for '{query}': request cancelled")
            return ToolResult.failure(self.TOOL_NAME, query, CANCELLED_MESSAGE)

        task = asyncio.ensure_future(self._run(query, arguments, access_token, cancellation))
        waiter = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()

        await asyncio.gather(task, return_exceptions=True)
        logger.info(f"Abandoned {self.TOOL_NAME} for '{query}': request cancelled")
        return ToolResult.failure(self.TOOL_NAME, query, CANCELLED_MESSAGE)

    async def _run(
        self,
        query: str,
        arguments: dict[str, Any],
        access_token: Optional[str],
        cancellation: Optional[asyncio.Event],
    ) -> ToolResult:
        try:
            return await self._execute(query, arguments, access_token, cancellation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"{self.TOOL_NAME} failed for '{query}': {e}")
            return ToolResult.failure(self.TOOL_NAME, query, self.failure_message(e))

    def failure_message(self, error: Exception) -> str:
        return f"{self.TOOL_NAME} failed. Please try again."

    @abstractmethod
    async def _execute(
        self,
        query: str,
        arguments: dict[str, Any],
        access_token: Optional[str],
        cancellation: Optional[asyncio.Event],
    ) -> ToolResult:
        raise NotImplementedError
