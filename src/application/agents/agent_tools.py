"""Tool catalogue offered to the model.

Most tools are client-side actions (drafting, archiving, navigation) that the
UI performs when it sees the matching ``tool_done`` event. The tools listed in
EXECUTABLE_TOOLS run on the server and feed their results back to the model.
"""

from application.agents.llm_provider import LlmToolDefinition

WEB_SEARCH_TOOL = "web_search"
BROWSE_URL_TOOL = "browse_url"
SEARCH_EMAILS_TOOL = "search_emails"

EXECUTABLE_TOOLS = frozenset({WEB_SEARCH_TOOL, BROWSE_URL_TOOL, SEARCH_EMAILS_TOOL})

# Tools that involve a network round trip get a longer response timeout in voice mode
NETWORK_TOOLS = EXECUTABLE_TOOLS


def _schema(properties: dict | None = None, required: list[str] | None = None) -> dict:
    return {"type": "object", "properties": properties or {}, "required": required or []}


AGENT_TOOLS: list[LlmToolDefinition] = [
    LlmToolDefinition(
        name="prepare_draft",
        description=(
            "Prepare an email draft for the user to review before sending. Call this when the user wants to draft, "
            "compose, write, reply, or forward an email. This will show the draft in a UI card with recipient, "
            "subject, and body for user confirmation."
        ),
        parameters=_schema(
            {
                "type": {
                    "type": "string",
                    "description": 'Type of email: "reply" (responding to current thread), "forward" (forwarding current thread), or "new" (composing a new email)',
                    "enum": ["reply", "forward", "new"],
                },
                "to": {"type": "string", "description": "Comma-separated email addresses of recipients"},
                "cc": {"type": "string", "description": "Comma-separated email addresses for CC (optional)"},
                "bcc": {"type": "string", "description": "Comma-separated email addresses for BCC (optional)"},
                "subject": {
                    "type": "string",
                    "description": 'Email subject line. For replies, prefix with "Re: " if not already. For forwards, prefix with "Fwd: "',
                },
                "body": {"type": "string", "description": "The full email body text"},
            },
            ["type", "to", "subject", "body"],
        ),
    ),
    LlmToolDefinition(
        name="send_email",
        description="Send the prepared email draft. Only call this after user has confirmed they want to send.",
        parameters=_schema(
            {"confirm": {"type": "string", "description": 'Must be "confirmed" to actually send', "enum": ["confirmed"]}},
            ["confirm"],
        ),
    ),
    LlmToolDefinition(
        name="archive_email",
        description="Archive the current email thread, removing it from the inbox. Call when user wants to archive, done with, or move on from current email.",
        parameters=_schema({"reason": {"type": "string", "description": "Brief reason for archiving (for logging)"}}),
    ),
    LlmToolDefinition(
        name="move_to_inbox",
        description="Move the current archived email thread back to the inbox. Only use when viewing an archived email.",
        parameters=_schema(),
    ),
    LlmToolDefinition(
        name="star_email",
        description="Star the current email thread to flag it as important.",
        parameters=_schema(),
    ),
    LlmToolDefinition(
        name="unstar_email",
        description="Remove the star from the current email thread.",
        parameters=_schema(),
    ),
    LlmToolDefinition(
        name="snooze_email",
        description="Snooze the current email thread so it leaves the inbox and returns later.",
        parameters=_schema(
            {
                "snooze_until": {
                    "type": "string",
                    "description": "When the email should come back",
                    "enum": ["later_today", "tomorrow", "this_weekend", "next_week", "custom"],
                },
                "custom_date": {
                    "type": "string",
                    "description": 'ISO 8601 date/time, only when snooze_until is "custom"',
                },
            },
            ["snooze_until"],
        ),
    ),
    LlmToolDefinition(
        name="go_to_next_email",
        description='Navigate to the next unread email in the inbox. Call when user says "next", "next email", "move on", or similar.',
        parameters=_schema(),
    ),
    LlmToolDefinition(
        name="go_to_previous_email",
        description='Navigate to the previous email. Call when user says "previous", "go back one", or similar.',
        parameters=_schema(),
    ),
    LlmToolDefinition(
        name="go_to_inbox",
        description="Return to the inbox view. Call when user wants to see their inbox, go back, or browse emails.",
        parameters=_schema(),
    ),
    LlmToolDefinition(
        name=WEB_SEARCH_TOOL,
        description=(
            "Search the web for current information. Use when the user asks about news, facts, companies, people, "
            "or anything not contained in their email."
        ),
        parameters=_schema({"query": {"type": "string", "description": "The search query"}}, ["query"]),
    ),
    LlmToolDefinition(
        name=BROWSE_URL_TOOL,
        description="Fetch and read the content of a web page. Use when the user wants to know what a specific link contains. Only https URLs are supported.",
        parameters=_schema({"url": {"type": "string", "description": "The full https URL to read"}}, ["url"]),
    ),
    LlmToolDefinition(
        name=SEARCH_EMAILS_TOOL,
        description=(
            "Search the user's mailbox using Gmail search syntax (e.g. from:alice subject:invoice). "
            "Returns matching threads with their message contents."
        ),
        parameters=_schema(
            {
                "query": {"type": "string", "description": "Gmail search query"},
                "max_results": {"type": "number", "description": "Maximum number of threads to return (1-10, default 5)"},
            },
            ["query"],
        ),
    ),
]


def get_openai_tools() -> list[dict]:
    return [tool.to_openai_format() for tool in AGENT_TOOLS]


def get_anthropic_tools() -> list[dict]:
    return [tool.to_anthropic_format() for tool in AGENT_TOOLS]
