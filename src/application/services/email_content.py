"""Helpers for turning Gmail message payloads into bounded plain text."""

import base64
import binascii
import html
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from infrastructure.clients.gmail_client import EmailSearchResult

TRUNCATION_SUFFIX = "... [truncated]"


def decode_base64url(data: str) -> str:
    """Decode a Gmail base64url body.

    Falls back to latin-1 for bodies that are not valid UTF-8, and returns the
    input unchanged when it is not base64 at all.
    """
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError):
        return data
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def html_to_text(html_content: str) -> str:
    """Strip an HTML email down to whitespace-normalized text."""
    text = re.sub(r"<style[^>]*>.*?</style>", "", html_content, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<script[^>]*>.*?</script>", "", text, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def _collect_parts(payload: dict[str, Any]) -> tuple[str, str]:
    text = ""
    html_body = ""

    body_data = (payload.get("body") or {}).get("data")
    if body_data:
        decoded = decode_base64url(body_data)
        if payload.get("mimeType") == "text/html":
            html_body = decoded
        else:
            text = decoded

    for part in payload.get("parts") or []:
        mime_type = part.get("mimeType")
        part_data = (part.get("body") or {}).get("data")
        if mime_type == "text/plain" and part_data:
            text = decode_base64url(part_data)
        elif mime_type == "text/html" and part_data:
            html_body = decode_base64url(part_data)
        elif part.get("parts"):
            nested_text, nested_html = _collect_parts(part)
            if not text and nested_text:
                text = nested_text
            if not html_body and nested_html:
                html_body = nested_html

    return text, html_body


def extract_email_body(payload: dict[str, Any]) -> str:
    """Extract the readable body of a Gmail message payload.

    The plain-text part wins; otherwise the HTML part is converted to text.

    Args:
        payload: The ``payload`` object of a Gmail message (format=full)

    Returns:
        Body text, or an empty string when the message has no text content
    """
    text, html_body = _collect_parts(payload)
    if text:
        return text
    if html_body:
        return html_to_text(html_body)
    return ""


def truncate_body(body: str, max_length: int, suffix: str = TRUNCATION_SUFFIX) -> str:
    """Truncate a body so the result, suffix included, never exceeds max_length."""
    if len(body) <= max_length:
        return body
    if max_length <= len(suffix):
        return body[:max_length]
    return body[: max_length - len(suffix)] + suffix


def get_header(headers: list[dict[str, Any]], name: str, default: str = "") -> str:
    for header in headers:
        if header.get("name") == name:
            return header.get("value", default)
    return default


def format_email_search_results(result: "EmailSearchResult", max_body_length: int) -> str:
    """Render search results as text for the model, truncating each body independently."""
    if not result.threads:
        return f'No emails found matching: "{result.query}"'

    lines = [
        "EMAIL SEARCH RESULTS",
        f'Query: "{result.query}"',
        f"Found: {result.total_found} total threads, showing {len(result.threads)} with content",
        "",
    ]
    for i, thread in enumerate(result.threads, start=1):
        lines.append(f'--- Thread {i}: "{thread.subject}" ---')
        lines.append(f"Participants: {', '.join(thread.participants)}")
        for message in thread.messages:
            lines.append("")
            lines.append(f"From: {message.sender}")
            lines.append(f"Date: {message.date}")
            lines.append(truncate_body(message.body, max_body_length))
        lines.append("")
    return "\n".join(lines)
