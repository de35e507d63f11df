"""Executors for the tools the server runs on the model's behalf."""

from application.tools.base import CANCELLED_MESSAGE, ToolExecutor
from application.tools.browse_executor import BrowseExecutor, is_https_url
from application.tools.email_search_executor import NOT_AUTHENTICATED_MESSAGE, EmailSearchExecutor, clamp_max_results
from application.tools.web_search_executor import NOT_CONFIGURED_MESSAGE, WebSearchExecutor, format_web_search_results

__all__ = [
    "ToolExecutor",
    "CANCELLED_MESSAGE",
    "BrowseExecutor",
    "is_https_url",
    "EmailSearchExecutor",
    "NOT_AUTHENTICATED_MESSAGE",
    "clamp_max_results",
    "WebSearchExecutor",
    "NOT_CONFIGURED_MESSAGE",
    "format_web_search_results",
]
