"""Conversation and email-thread models used to build model requests."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class MessageRole(str, Enum):
    """Role of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """A single turn of the conversation.

    Attributes:
        role: Who authored the turn
        content: Plain text content
    """

    role: MessageRole
    content: str

    @property
    def is_empty(self) -> bool:
        return not self.content or not self.content.strip()

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def user(cls, content: str) -> "ConversationMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationMessage":
        return cls(role=MessageRole.ASSISTANT, content=content)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationMessage":
        return cls(role=MessageRole(data.get("role", "user")), content=data.get("content") or "")


@dataclass
class EmailAddress:
    email: str
    name: Optional[str] = None

    @property
    def display(self) -> str:
        return self.name or self.email

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmailAddress":
        return cls(email=data.get("email", ""), name=data.get("name"))


@dataclass
class EmailMessage:
    """One message of an email thread, as provided by the client."""

    sender: EmailAddress
    to: list[EmailAddress] = field(default_factory=list)
    date: str = ""
    subject: str = ""
    body: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmailMessage":
        return cls(
            sender=EmailAddress.from_dict(data.get("from") or {}),
            to=[EmailAddress.from_dict(t) for t in data.get("to") or []],
            date=data.get("date", ""),
            subject=data.get("subject", ""),
            body=data.get("body", ""),
        )


@dataclass
class EmailThread:
    """The email thread currently open in the client.

    Only the fields needed to describe the thread to the model are kept.
    """

    id: str
    subject: str = ""
    snippet: str = ""
    labels: list[str] = field(default_factory=list)
    participants: list[EmailAddress] = field(default_factory=list)
    messages: list[EmailMessage] = field(default_factory=list)

    def has_label(self, label: str) -> bool:
        return label in self.labels

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmailThread":
        return cls(
            id=data.get("id", ""),
            subject=data.get("subject", ""),
            snippet=data.get("snippet", ""),
            labels=list(data.get("labels") or []),
            participants=[EmailAddress.from_dict(p) for p in data.get("participants") or []],
            messages=[EmailMessage.from_dict(m) for m in data.get("messages") or []],
        )


@dataclass
class ThreadContext:
    """Thread context passed alongside the conversation to the model.

    Attributes:
        thread: The open thread, if any
        folder: Folder the thread was opened from (inbox, sent, archive, ...)
    """

    thread: Optional[EmailThread] = None
    folder: str = "inbox"
