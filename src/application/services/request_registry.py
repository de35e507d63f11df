"""Registry of in-flight chat requests and their cancellation signals."""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)


class DuplicateRequestError(Exception):
    """Raised when a client reuses the id of a request that is still in flight."""

    def __init__(self, request_id: str) -> None:
        super().__init__(f"Request {request_id} is already in progress")
        self.request_id = request_id


class RequestRegistry:
    """Maps request ids to the asyncio.Event that cancels them.

    The same event is handed to the adapter, the executors and the transport.
    An id identifies one live request: registering an id that is still active
    is refused, and a request only ever removes its own entry.
    """

    def __init__(self) -> None:
        self._requests: dict[str, asyncio.Event] = {}

    @property
    def active_count(self) -> int:
        return len(self._requests)

    def register(self, request_id: Optional[str] = None) -> tuple[str, asyncio.Event]:
        """Register a request.

        Args:
            request_id: Client-supplied id; one is generated when omitted

        Returns:
            The request id and its cancellation event

        Raises:
            DuplicateRequestError: If the id belongs to a request still in flight
        """
        request_id = request_id or uuid.uuid4().hex
        if request_id in self._requests:
            raise DuplicateRequestError(request_id)
        cancellation = asyncio.Event()
        self._requests[request_id] = cancellation
        return request_id, cancellation

    def cancel(self, request_id: str) -> bool:
        """Signal cancellation. Returns False for unknown ids."""
        cancellation = self._requests.get(request_id)
        if cancellation is None:
            return False
        cancellation.set()
        logger.info(f"🛑 Cancelled request {request_id}")
        return True

    def is_cancelled(self, request_id: str) -> bool:
        cancellation = self._requests.get(request_id)
        return cancellation is not None and cancellation.is_set()

    def unregister(self, request_id: str, cancellation: Optional[asyncio.Event] = None) -> None:
        """Remove a finished request.

        Args:
            request_id: Id of the finished request
            cancellation: The request's own event; when given, the entry is only
                removed if it still belongs to that request
        """
        if cancellation is not None and self._requests.get(request_id) is not cancellation:
            return
        self._requests.pop(request_id, None)

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "RequestRegistry":
        registry = RequestRegistry()
        builder.services.add_singleton(RequestRegistry, singleton=registry)
        return registry
