"""API controllers package."""

from .browse_controller import BrowseController
from .chat_controller import ChatController
from .gmail_controller import GmailController
from .search_controller import SearchController
from .voice_controller import VoiceController

__all__ = [
    "ChatController",
    "SearchController",
    "BrowseController",
    "GmailController",
    "VoiceController",
]
