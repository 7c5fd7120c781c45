"""
Parsing module for Graph payloads.
Provides HTML to text conversion and message/event formatting.
"""

import re
import html
from typing import Optional


# =============================================================================
# HTML PARSING
# =============================================================================

def html_to_text(html_content: Optional[str]) -> str:
    """
    Convert HTML to plain text.

    Args:
        html_content: HTML string to convert

    Returns:
        Plain text string with whitespace cleaned up
    """
    if not html_content:
        return ""

    text = html_content

    # Drop style and script blocks with their content
    text = re.sub(r'<(style|script)[^>]*>.*?</\1>', '', text, flags=re.DOTALL | re.IGNORECASE)

    # Block elements become line breaks
    text = re.sub(r'<(br|p|div|tr|li)[^>]*>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'<[^>]+>', '', text)
    text = html.unescape(text)

    text = re.sub(r'\n\s*\n', '\n\n', text)
    text = re.sub(r'[ \t]+', ' ', text)

    return text.strip()


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _address(entry: Optional[dict]) -> dict:
    email = (entry or {}).get("emailAddress") or {}
    return {"address": email.get("address", ""), "name": email.get("name", "")}


def _addresses(entries: Optional[list]) -> list[str]:
    return [_address(e)["address"] for e in entries or []]


# =============================================================================
# EMAIL FORMATTING
# =============================================================================

def format_email_summary(email: dict) -> dict:
    """
    Format a Graph message for list and search output.

    Args:
        email: Message resource (live or synthetic)

    Returns:
        Flat dict with sender, recipients, dates and flags
    """
    sender = _address(email.get("from"))
    received = email.get("receivedDateTime") or ""
    return {
        "id": email.get("id"),
        "subject": email.get("subject") or "",
        "from": sender["address"],
        "from_name": sender["name"],
        "to": _addresses(email.get("toRecipients")),
        "date": received[:10],
        "datetime": received,
        "preview": (email.get("bodyPreview") or "")[:200],
        "is_read": bool(email.get("isRead")),
        "has_attachments": bool(email.get("hasAttachments")),
        "importance": email.get("importance", "normal"),
        "conversation_id": email.get("conversationId", ""),
    }


def format_email_body(data: dict, format_type: str = "text") -> dict:
    """
    Format a message with its full body.

    Args:
        data: Message resource including body
        format_type: "text" converts HTML bodies, "html" keeps them

    Returns:
        Message dict with body content
    """
    body = data.get("body") or {}
    body_content = body.get("content", "")

    if format_type == "text" and (body.get("contentType") or "").lower() == "html":
        body_content = html_to_text(body_content)

    return {
        "id": data.get("id"),
        "subject": data.get("subject", ""),
        "from": _address(data.get("from")),
        "to": [_address(r) for r in data.get("toRecipients") or []],
        "cc": [_address(r) for r in data.get("ccRecipients") or []],
        "date": data.get("receivedDateTime", ""),
        "is_read": bool(data.get("isRead")),
        "importance": data.get("importance", "normal"),
        "body": body_content,
        "has_attachments": bool(data.get("hasAttachments")),
        "conversation_id": data.get("conversationId", ""),
    }


# =============================================================================
# CALENDAR / FOLDER FORMATTING
# =============================================================================

def format_event(event: dict) -> dict:
    """Format a Graph event resource."""
    organizer = _address(event.get("organizer"))
    return {
        "id": event.get("id"),
        "subject": event.get("subject", ""),
        "organizer": organizer["address"],
        "organizer_name": organizer["name"],
        "start": (event.get("start") or {}).get("dateTime", ""),
        "end": (event.get("end") or {}).get("dateTime", ""),
        "time_zone": (event.get("start") or {}).get("timeZone", "UTC"),
        "location": (event.get("location") or {}).get("displayName", ""),
        "attendees": _addresses(event.get("attendees")),
        "response": (event.get("responseStatus") or {}).get("response", "none"),
        "is_cancelled": bool(event.get("isCancelled")),
        "preview": (event.get("bodyPreview") or "")[:200],
    }


def format_folder(folder: dict) -> dict:
    return {
        "id": folder.get("id"),
        "name": folder.get("displayName", ""),
        "parent_folder_id": folder.get("parentFolderId"),
        "child_folder_count": folder.get("childFolderCount", 0),
        "unread_count": folder.get("unreadItemCount", 0),
        "total_count": folder.get("totalItemCount", 0),
    }
