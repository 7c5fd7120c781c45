"""
Calendar operations module.
Lists and creates events and sends meeting responses.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .config import MAX_SEARCH_RESULTS
from .emails import require_valid_id, build_recipients
from .gateway import GraphGateway
from .parsing import format_event

logger = logging.getLogger(__name__)

EVENT_SELECT_FIELDS = (
    "id,subject,organizer,attendees,start,end,location,"
    "bodyPreview,responseStatus,isCancelled"
)


def _parse_datetime(value: str, name: str) -> datetime:
    """Parse an ISO datetime; values without an offset are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid {name} datetime: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# LIST / CREATE
# =============================================================================

async def list_events(
    gateway: GraphGateway,
    count: int = 10,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> dict:
    """
    List calendar events ordered by start time.

    Args:
        gateway: Graph gateway
        count: Number of events (max 50)
        start: Only events starting at or after this ISO datetime
        end: Only events ending at or before this ISO datetime

    Returns:
        Dict with count and formatted events
    """
    count = max(1, min(count, MAX_SEARCH_RESULTS))

    conditions = []
    if start:
        _parse_datetime(start, "start")
        conditions.append(f"start/dateTime ge '{start}'")
    if end:
        _parse_datetime(end, "end")
        conditions.append(f"end/dateTime le '{end}'")

    params = {
        "$top": count,
        "$select": EVENT_SELECT_FIELDS,
        "$orderby": "start/dateTime",
        "$filter": " and ".join(conditions) or None,
    }

    data = await gateway.get("/me/events", params)
    events = [format_event(e) for e in data.get("value") or []]
    return {"count": len(events), "events": events}


async def create_event(
    gateway: GraphGateway,
    subject: str,
    start: str,
    end: str,
    attendees: Optional[list[str]] = None,
    body: str = "",
    location: Optional[str] = None,
    time_zone: str = "UTC",
) -> dict:
    """
    Create a calendar event; attendees receive an invitation.

    Raises:
        ValueError: Missing subject, bad datetimes or end before start
        InvalidIdentifierError: Malformed attendee address
    """
    if not subject:
        raise ValueError("Event subject is required")
    if _parse_datetime(end, "end") <= _parse_datetime(start, "start"):
        raise ValueError("Event end must be after its start")

    event = {
        "subject": subject,
        "start": {"dateTime": start, "timeZone": time_zone},
        "end": {"dateTime": end, "timeZone": time_zone},
        "body": {"contentType": "HTML", "content": body},
        "attendees": [{**r, "type": "required"} for r in build_recipients(attendees)],
    }
    if location:
        event["location"] = {"displayName": location}

    created = await gateway.post("/me/events", event)
    logger.info(f"Created event '{subject}'")
    return {"success": True, "event": format_event(created)}


# =============================================================================
# RESPONSES
# =============================================================================

async def _respond(gateway: GraphGateway, event_id: str, action: str, payload: dict) -> dict:
    require_valid_id(event_id, "event")
    await gateway.post(f"/me/events/{event_id}/{action}", payload)
    logger.info(f"Event {event_id}: {action}")
    return {"success": True, "event_id": event_id, "action": action}


async def accept_event(gateway: GraphGateway, event_id: str, comment: str = "", send_response: bool = True) -> dict:
    return await _respond(gateway, event_id, "accept", {"comment": comment, "sendResponse": send_response})


async def decline_event(gateway: GraphGateway, event_id: str, comment: str = "", send_response: bool = True) -> dict:
    return await _respond(gateway, event_id, "decline", {"comment": comment, "sendResponse": send_response})


async def cancel_event(gateway: GraphGateway, event_id: str, comment: str = "") -> dict:
    """Cancel an event you organize; attendees get the comment."""
    return await _respond(gateway, event_id, "cancel", {"comment": comment})


async def delete_event(gateway: GraphGateway, event_id: str) -> dict:
    require_valid_id(event_id, "event")
    await gateway.delete(f"/me/events/{event_id}")
    logger.info(f"Deleted event {event_id}")
    return {"success": True, "event_id": event_id, "action": "delete"}
