"""Application queries package."""

from .browse_url_query import BrowseUrlQuery, BrowseUrlQueryHandler
from .search_emails_query import SearchEmailsQuery, SearchEmailsQueryHandler
from .search_web_query import SearchWebQuery, SearchWebQueryHandler

__all__ = [
    "BrowseUrlQuery",
    "BrowseUrlQueryHandler",
    "SearchEmailsQuery",
    "SearchEmailsQueryHandler",
    "SearchWebQuery",
    "SearchWebQueryHandler",
]
