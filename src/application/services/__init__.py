"""Application services package."""

from .email_content import extract_email_body, format_email_search_results, truncate_body
from .event_transport import SSE_HEADERS, EventTransport, format_sse_frame
from .request_registry import DuplicateRequestError, RequestRegistry

__all__ = [
    "extract_email_body",
    "format_email_search_results",
    "truncate_body",
    "SSE_HEADERS",
    "EventTransport",
    "format_sse_frame",
    "DuplicateRequestError",
    "RequestRegistry",
]
