"""Mailbox search query and handler."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler
from neuroglia.observability.tracing import add_span_attributes

from application.services.email_content import format_email_search_results, truncate_body
from application.settings import Settings
from application.tools.email_search_executor import clamp_max_results
from infrastructure.clients.gmail_client import GmailApiError, GmailClient

log = logging.getLogger(__name__)


@dataclass
class SearchEmailsQuery(Query[OperationResult[Dict[str, Any]]]):
    """Query to search the user's mailbox."""

    query: str
    """Gmail search query (e.g. ``from:alice subject:invoice``)."""

    access_token: str
    """Gmail OAuth access token of the user."""

    max_results: Optional[int] = None
    """Number of threads to return (1-10, default 5)."""


class SearchEmailsQueryHandler(QueryHandler[SearchEmailsQuery, OperationResult[Dict[str, Any]]]):
    """Handler for SearchEmailsQuery."""

    def __init__(self, gmail_client: GmailClient, settings: Settings):
        super().__init__()
        self.gmail_client = gmail_client
        self.settings = settings

    async def handle_async(self, request: SearchEmailsQuery) -> OperationResult[Dict[str, Any]]:
        """Handle mailbox search query."""
        query = request
        if not (query.query or "").strip():
            return self.bad_request("Query is required")
        if not query.access_token:
            return self.bad_request("Access token is required")

        max_results = clamp_max_results(
            query.max_results if query.max_results is not None else self.settings.email_search_default_results,
            self.settings.email_search_default_results,
            self.settings.email_search_max_results,
        )
        add_span_attributes({"gmail.max_results": max_results})

        try:
            result = await self.gmail_client.search_threads(query.query.strip(), query.access_token, max_results=max_results)
        except GmailApiError as e:
            log.error(f"Email search failed: {e.message}")
            if e.status_code == 401:
                return self.bad_request("Gmail rejected the access token")
            return self.internal_server_error(f"Email search failed: {e.message}")

        max_body_length = self.settings.gmail_search_max_body_length
        threads = []
        for thread in result.threads:
            data = thread.to_dict()
            for message in data["messages"]:
                message["body"] = truncate_body(message["body"], max_body_length)
            threads.append(data)

        return self.ok(
            {
                "query": result.query,
                "totalFound": result.total_found,
                "threads": threads,
                "formatted": format_email_search_results(result, max_body_length),
            }
        )
