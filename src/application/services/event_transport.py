"""Server-Sent Events transport for chat streams.

Frames every StreamEvent as ``data: <json>\\n\\n`` and guarantees that the
channel ends with exactly one terminal frame (``done`` or ``error``), unless
the client went away, in which case nothing more is written.
"""

import asyncio
import json
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Optional

from application.agents.stream_events import StreamEvent
from observability import chat_requests_cancelled, chat_stream_duration

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Something went wrong. Please try again."
CANCELLED_MESSAGE = "Request cancelled"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_frame(event: StreamEvent) -> str:
    """Serialize an event as one SSE data frame."""
    return f"data: {json.dumps(event.to_dict())}\n\n"


class EventTransport:
    """Writes one request's event stream to the client.

    Args:
        source: The events to write, typically ``ChatOrchestrator.run(...)``
        cancellation: Request cancellation signal
        is_disconnected: Coroutine function telling whether the client went away
        on_close: Hook run once when the channel closes
        request_id: Identifier used in logs
    """

    def __init__(
        self,
        source: AsyncIterator[StreamEvent],
        cancellation: Optional[asyncio.Event] = None,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
        on_close: Optional[Callable[[], None]] = None,
        request_id: Optional[str] = None,
    ) -> None:
        self._source = source
        self._cancellation = cancellation
        self._is_disconnected = is_disconnected
        self._on_close = on_close
        self._request_id = request_id or "-"
        self._terminated = False
        self._closed = False
        self._frames_written = 0

    @property
    def terminated(self) -> bool:
        """Whether a terminal frame has been written."""
        return self._terminated

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def frames_written(self) -> int:
        return self._frames_written

    def _cancelled(self) -> bool:
        return self._cancellation is not None and self._cancellation.is_set()

    async def _client_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        return await self._is_disconnected()

    def _frame(self, event: StreamEvent) -> str:
        self._frames_written += 1
        if event.is_terminal:
            self._terminated = True
        return format_sse_frame(event)

    async def frames(self) -> AsyncIterator[str]:
        """Yield the SSE frames of the channel.

        The channel is closed when this generator finishes or is closed.
        """
        start_time = time.time()
        try:
            async for event in self._source:
                if await self._client_gone():
                    logger.info(f"Client disconnected, stopping stream {self._request_id}")
                    return
                if self._cancelled():
                    break
                yield self._frame(event)
                if event.is_terminal:
                    return

            if self._terminated or await self._client_gone():
                return
            if self._cancelled():
                logger.info(f"Stream {self._request_id} cancelled")
                chat_requests_cancelled.add(1)
                yield self._frame(StreamEvent.error(message=CANCELLED_MESSAGE, error_code="cancelled"))
                return
            yield self._frame(StreamEvent.done())

        except Exception as e:
            logger.exception(f"Unexpected error in stream {self._request_id}: {e}")
            if not self._terminated and not self._closed:
                yield self._frame(StreamEvent.error(message=UNEXPECTED_ERROR_MESSAGE))
        finally:
            await self.close()
            chat_stream_duration.record((time.time() - start_time) * 1000)

    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"Error closing event source of stream {self._request_id}: {e}")

        if self._on_close is not None:
            self._on_close()
        logger.debug(f"Stream {self._request_id} closed after {self._frames_written} frames")
