"""Tests for system prompt construction and tool schemas."""

from application.agents.agent_tools import EXECUTABLE_TOOLS, get_anthropic_tools, get_openai_tools
from application.agents.prompts import AGENT_SYSTEM_PROMPT, build_system_prompt
from domain.models import EmailAddress, EmailMessage, EmailThread, ThreadContext


def make_thread(labels: list[str]) -> EmailThread:
    alice = EmailAddress(email="alice@example.com", name="Alice")
    return EmailThread(
        id="t1",
        subject="Quarterly report",
        labels=labels,
        participants=[alice],
        messages=[EmailMessage(sender=alice, to=[EmailAddress(email="me@example.com")], date="Mon", subject="Quarterly report", body="Numbers attached.")],
    )


class TestBuildSystemPrompt:
    def test_without_thread(self) -> None:
        assert build_system_prompt() == AGENT_SYSTEM_PROMPT
        assert build_system_prompt(ThreadContext()) == AGENT_SYSTEM_PROMPT

    def test_with_thread(self) -> None:
        prompt = build_system_prompt(ThreadContext(thread=make_thread(["INBOX"]), folder="inbox"))

        assert prompt.startswith(AGENT_SYSTEM_PROMPT)
        assert "<current_email_thread>" in prompt
        assert "Subject: Quarterly report" in prompt
        assert "[1] From: Alice <alice@example.com>" in prompt
        assert "Numbers attached." in prompt
        assert "Has INBOX label - can be archived." in prompt

    def test_label_notes(self) -> None:
        prompt = build_system_prompt(ThreadContext(thread=make_thread(["STARRED"]), folder="sent"))

        assert "No INBOX label" in prompt
        assert "Is STARRED" in prompt
        assert "This is a SENT email." in prompt


class TestToolSchemas:
    def test_both_formats_expose_the_same_tools(self) -> None:
        openai_names = [t["function"]["name"] for t in get_openai_tools()]
        anthropic_names = [t["name"] for t in get_anthropic_tools()]

        assert openai_names == anthropic_names
        assert EXECUTABLE_TOOLS <= set(openai_names)

    def test_anthropic_format_uses_input_schema(self) -> None:
        for tool in get_anthropic_tools():
            assert tool["input_schema"]["type"] == "object"
