"""Tests for conversation and tool models."""

import pytest

from domain.models import ConversationMessage, EmailThread, MessageRole, ToolCall, ToolResult


class TestConversationMessage:
    def test_from_dict(self) -> None:
        message = ConversationMessage.from_dict({"role": "assistant", "content": "Hi"})

        assert message.role is MessageRole.ASSISTANT
        assert message.to_dict() == {"role": "assistant", "content": "Hi"}

    def test_invalid_role(self) -> None:
        with pytest.raises(ValueError):
            ConversationMessage.from_dict({"role": "system", "content": "x"})

    def test_is_empty(self) -> None:
        assert ConversationMessage.user(" \n").is_empty
        assert not ConversationMessage.user("ok").is_empty


class TestEmailThread:
    def test_from_client_payload(self) -> None:
        thread = EmailThread.from_dict(
            {
                "id": "t1",
                "subject": "Lunch",
                "labels": ["INBOX"],
                "participants": [{"email": "alice@example.com", "name": "Alice"}],
                "messages": [{"from": {"email": "alice@example.com"}, "to": [{"email": "me@example.com"}], "body": "Noon?"}],
            }
        )

        assert thread.has_label("INBOX")
        assert thread.participants[0].display == "Alice"
        assert thread.messages[0].sender.display == "alice@example.com"
        assert thread.messages[0].to[0].email == "me@example.com"


class TestToolModels:
    @pytest.mark.parametrize(
        "call,expected",
        [
            (ToolCall("web_search", {"query": "news"}), "news"),
            (ToolCall("browse_url", {"url": "https://a.example"}), "https://a.example"),
            (ToolCall("search_emails", {"query": "from:bob"}), "from:bob"),
            (ToolCall("archive_email", {"query": "x"}), ""),
        ],
    )
    def test_primary_argument(self, call: ToolCall, expected: str) -> None:
        assert call.primary_argument == expected

    def test_preview(self) -> None:
        result = ToolResult("web_search", "q", "abcdef", True)

        assert result.preview(6) == "abcdef"
        assert result.preview(3) == "abc..."

    def test_failure(self) -> None:
        result = ToolResult.failure("browse_url", "https://a.example", "Failed")

        assert result.success is False
        assert result.result_text == "Failed"
