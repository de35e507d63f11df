"""System prompt and email context for the chat agent."""

from typing import Optional

from domain.models import EmailThread, ThreadContext

AGENT_SYSTEM_PROMPT = """You are a voice-first email assistant agent. You help users manage their email through natural conversation.

## TOOLS (use for ACTIONS only):
- prepare_draft: Call when user wants to draft/write/reply/forward. ALWAYS include:
  * type: "reply" (responding to current email), "forward" (forwarding to someone), or "new" (new email)
  * to: recipient email(s)
  * subject: Use "Re: [subject]" for replies, "Fwd: [subject]" for forwards
  * body: The email content
- send_email: Call when user confirms they want to send.
- archive_email: Remove from inbox. ONLY works if email is currently in inbox.
- move_to_inbox: Move archived email back to inbox. ONLY use when viewing archived email.
- star_email / unstar_email: Flag or unflag the email.
- snooze_email: Hide the email until later.
- go_to_next_email / go_to_previous_email / go_to_inbox: Navigation.

## RESEARCH TOOLS (results come back to you):
- web_search: Look up current information on the web.
- browse_url: Read a specific https web page.
- search_emails: Search the user's mailbox with Gmail search syntax.
After these run you will receive their results and should answer the user using them.

## DRAFT TYPE - CRITICAL:
**DEFAULT IS REPLY.** When viewing an email thread, assume user wants to reply unless they explicitly say otherwise.
- Use type="forward" ONLY when user explicitly says "forward".
- Use type="new" ONLY when user explicitly asks for a new email.

## FOLDER AWARENESS:
The email context tells you which folder the email is from.
- If from Archive: Cannot archive again, but can move_to_inbox
- If from Inbox: Can archive
- If starred: Can unstar. If not starred: Can star.

## DIRECT RESPONSES (NO tools - just respond with text):
- Summaries, questions about the email, clarifications and suggestions.

## IMPORTANT RULES:
1. For drafts: ALWAYS call prepare_draft with a complete email (to, subject, body)
2. For summaries/questions: Just respond with the answer - DO NOT use tools
3. After drafting: Ask "Ready to send, or would you like changes?"
4. Be concise but complete. Don't stop mid-sentence.

Match the conversation's tone. Be helpful and efficient."""

FOLDER_NAMES: dict[str, str] = {
    "inbox": "Inbox",
    "sent": "Sent",
    "starred": "Starred",
    "all": "All Mail",
    "archive": "Archive",
    "snoozed": "Snoozed",
    "drafts": "Drafts",
}


def folder_display_name(folder: str) -> str:
    return FOLDER_NAMES.get(folder, folder)


def build_email_context(thread: EmailThread, folder: str = "inbox") -> str:
    """Describe the open thread to the model.

    Args:
        thread: The thread open in the client
        folder: Folder the thread was opened from

    Returns:
        A ``<current_email_thread>`` block followed by folder/label notes
    """
    rendered_messages = []
    for i, msg in enumerate(thread.messages, start=1):
        rendered_messages.append(
            f"[{i}] From: {msg.sender.display} <{msg.sender.email}>\n"
            f"To: {', '.join(t.email for t in msg.to)}\n"
            f"Date: {msg.date}\n"
            f"Subject: {msg.subject}\n\n"
            f"{msg.body}"
        )

    folder_name = folder_display_name(folder)
    participants = ", ".join(f"{p.name or 'Unknown'} <{p.email}>" for p in thread.participants)

    notes = [f'Note: This email is currently in the "{folder_name}" folder.']
    if thread.has_label("INBOX"):
        notes.append("• Has INBOX label - can be archived.")
    else:
        notes.append("• No INBOX label - archive will have no effect, but move_to_inbox will work.")
    if thread.has_label("STARRED"):
        notes.append("• Is STARRED - star_email will have no effect, but unstar_email will work.")
    else:
        notes.append("• Not starred - can be starred.")
    if folder == "sent":
        notes.append('• This is a SENT email. If user wants to "reply", they mean follow-up to the original recipients, not themselves.')

    separator = "\n\n---\n\n"
    return (
        "<current_email_thread>\n"
        f"Folder: {folder_name}\n"
        f"Labels: {', '.join(thread.labels) or 'None'}\n"
        f"Subject: {thread.subject}\n"
        f"Participants: {participants}\n\n"
        f"{separator.join(rendered_messages)}\n"
        "</current_email_thread>\n\n" + "\n".join(notes)
    )


def build_system_prompt(context: Optional[ThreadContext] = None, base_prompt: str = AGENT_SYSTEM_PROMPT) -> str:
    if context is None or context.thread is None:
        return base_prompt
    return f"{base_prompt}\n\n{build_email_context(context.thread, context.folder)}"
