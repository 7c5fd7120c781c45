"""
Email operations module.
Provides list, search, read, send, reply, mark and move for emails.
"""

import re
import logging
from typing import Awaitable, Callable, Optional, Union

from .config import CACHE_TTL_EMAIL_BODY, MAX_SEARCH_RESULTS
from .cache import default_cache
from .errors import InvalidIdentifierError, TransportError, UpstreamError
from .folders import resolve_folder_endpoint, resolve_folder_id
from .gateway import GraphGateway
from .parsing import format_email_summary, format_email_body
from .search import EMAIL_SELECT_FIELDS, ProgressiveSearch, SearchCriteria

logger = logging.getLogger(__name__)

_GRAPH_ID = re.compile(r'^[A-Za-z0-9+=_-]+$')
_EMAIL_ADDRESS = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


# =============================================================================
# VALIDATION
# =============================================================================

def is_valid_graph_id(item_id: Optional[str]) -> bool:
    """
    Validate a message, event or folder id before it goes into a URL.

    Graph ids are URL-safe base64 strings; anything else (quotes, slashes,
    spaces) would change the request path or an OData expression.
    """
    if not item_id or not isinstance(item_id, str) or len(item_id) > 500:
        return False
    return bool(_GRAPH_ID.match(item_id))


def require_valid_id(item_id: Optional[str], kind: str = "email") -> str:
    """
    Raises:
        InvalidIdentifierError: Malformed id, rejected before any request
    """
    if not is_valid_graph_id(item_id):
        logger.warning(f"Invalid {kind} id format: {str(item_id)[:50]}")
        raise InvalidIdentifierError(f"Invalid {kind} id: {str(item_id)[:50]}")
    return item_id


def build_recipients(addresses: Optional[list[str]]) -> list[dict]:
    recipients = []
    for address in addresses or []:
        if not _EMAIL_ADDRESS.match(address or ""):
            raise InvalidIdentifierError(f"Invalid email address: {address}")
        recipients.append({"emailAddress": {"address": address}})
    return recipients


# =============================================================================
# LIST / SEARCH
# =============================================================================

async def list_emails(
    gateway: GraphGateway,
    folder: str = "inbox",
    count: int = 10,
    unread_only: bool = False,
) -> dict:
    """
    List the newest emails of a folder.

    Args:
        gateway: Graph gateway
        folder: Folder display name or well-known name
        count: Number of emails (max 50)
        unread_only: Only unread emails

    Returns:
        Dict with folder, count and email summaries
    """
    count = max(1, min(count, MAX_SEARCH_RESULTS))
    endpoint = await resolve_folder_endpoint(gateway, folder)

    params = {
        "$top": count,
        "$select": EMAIL_SELECT_FIELDS,
        "$orderby": "receivedDateTime desc",
    }
    if unread_only:
        params["$filter"] = "isRead eq false"

    logger.info(f"Listing {count} emails from: {endpoint}")
    data = await gateway.get(endpoint, params)
    emails = [format_email_summary(m) for m in data.get("value") or []]

    return {"folder": folder, "count": len(emails), "emails": emails}


async def search_emails(
    gateway: GraphGateway,
    criteria: SearchCriteria,
    folder: Optional[str] = "inbox",
    count: int = 10,
) -> dict:
    """
    Search a folder with the progressive strategy cascade.

    Args:
        gateway: Graph gateway
        criteria: Predicates every result must satisfy
        folder: Folder to search, None for the whole mailbox
        count: Maximum results

    Returns:
        Dict with email summaries and the strategies that were tried.
        Finding nothing is a normal result with count 0.
    """
    endpoint = "/me/messages"
    if folder:
        endpoint = await resolve_folder_endpoint(gateway, folder)
    logger.info(f"Searching in folder: {folder or 'all'} ({endpoint})")

    result = await ProgressiveSearch(gateway).search(criteria, count, endpoint)
    emails = [format_email_summary(m) for m in result.items]

    response = {
        "folder": folder,
        "count": len(emails),
        "emails": emails,
        "strategy": result.strategy,
        "attempted_strategies": result.attempted_strategies,
    }
    if not emails:
        response["message"] = "No emails found matching your search criteria."
    return response


# =============================================================================
# READ
# =============================================================================

async def read_email(gateway: GraphGateway, email_id: str, format: str = "text") -> dict:
    """
    Get one email with its full body.

    Args:
        gateway: Graph gateway
        email_id: ID of the email
        format: "text" or "html"

    Returns:
        Email with full body (cached for 1 hour)
    """
    require_valid_id(email_id, "email")

    cache_key = f"email_body:{email_id}:{format}"
    cached = default_cache.get(cache_key)
    if cached is not None:
        return cached

    data = await gateway.get(f"/me/messages/{email_id}", {
        "$select": "id,subject,from,toRecipients,ccRecipients,receivedDateTime,"
                   "body,isRead,importance,hasAttachments,conversationId"
    })

    result = format_email_body(data, format)
    default_cache.set(cache_key, result, CACHE_TTL_EMAIL_BODY)
    return result


# =============================================================================
# WRITES
# =============================================================================

async def send_email(
    gateway: GraphGateway,
    to: list[str],
    subject: str,
    body: str,
    cc: Optional[list[str]] = None,
    bcc: Optional[list[str]] = None,
    importance: str = "normal",
) -> dict:
    """
    Send an email. One attempt; errors surface to the caller.

    Raises:
        ValueError: Missing recipients, subject or body
        InvalidIdentifierError: Malformed recipient address
    """
    if not to or not subject or not body:
        raise ValueError("To, subject, and body are required fields")

    message = {
        "subject": subject,
        "body": {"contentType": "HTML", "content": body},
        "toRecipients": build_recipients(to),
        "importance": importance,
    }
    if cc:
        message["ccRecipients"] = build_recipients(cc)
    if bcc:
        message["bccRecipients"] = build_recipients(bcc)

    result = await gateway.post("/me/sendMail", {"message": message, "saveToSentItems": True})
    logger.info(f"Email sent to {', '.join(to)}")

    return {
        "success": True,
        "message": "Email sent successfully",
        "to": to,
        "message_id": result.get("id"),
    }


async def reply_email(gateway: GraphGateway, email_id: str, comment: str, reply_all: bool = False) -> dict:
    require_valid_id(email_id, "email")
    if not comment:
        raise ValueError("Reply text is required")

    action = "replyAll" if reply_all else "reply"
    await gateway.post(f"/me/messages/{email_id}/{action}", {"comment": comment})
    logger.info(f"Replied to {email_id} ({action})")

    return {"success": True, "message": "Reply sent successfully", "email_id": email_id, "reply_all": reply_all}


async def mark_as_read(gateway: GraphGateway, email_id: str, is_read: bool = True) -> dict:
    require_valid_id(email_id, "email")

    await gateway.patch(f"/me/messages/{email_id}", {"isRead": is_read})
    default_cache.invalidate_prefix(f"email_body:{email_id}:")

    return {
        "success": True,
        "message": f"Email marked as {'read' if is_read else 'unread'}",
        "email_id": email_id,
    }


def _unique_ids(email_ids: Union[str, list[str], None]) -> list[str]:
    if isinstance(email_ids, str):
        email_ids = [email_ids]
    # Remove duplicates while preserving order
    return list(dict.fromkeys(email_ids or []))


def _batch_stats(results: list[dict]) -> dict:
    successful = sum(1 for r in results if r["success"])
    return {
        "total": len(results),
        "successful": successful,
        "failed": len(results) - successful,
    }


async def _apply_to_each(email_ids: list[str], action: Callable[[str], Awaitable[dict]], verb: str) -> list[dict]:
    """Run action once per email id, collecting a result entry for each."""
    results = []
    for email_id in email_ids:
        if not is_valid_graph_id(email_id):
            results.append({"id": email_id, "success": False, "error": "Invalid email id"})
            continue

        try:
            extra = await action(email_id)
        except (UpstreamError, TransportError) as e:
            logger.error(f"Failed to {verb} {email_id}: {e}")
            results.append({"id": email_id, "success": False, "error": str(e)})
            continue

        default_cache.invalidate_prefix(f"email_body:{email_id}:")
        results.append({"id": email_id, "success": True, **extra})

    return results


async def mark_emails_as_read(
    gateway: GraphGateway,
    email_ids: Union[str, list[str]],
    is_read: bool = True,
) -> dict:
    """Mark several emails read or unread, reporting each one separately."""
    unique_ids = _unique_ids(email_ids)

    async def _mark(email_id: str) -> dict:
        await gateway.patch(f"/me/messages/{email_id}", {"isRead": is_read})
        return {}

    results = await _apply_to_each(unique_ids, _mark, "mark")
    stats = _batch_stats(results)
    logger.info(f"Marked {stats['successful']}/{stats['total']} emails as {'read' if is_read else 'unread'}")

    return {"is_read": is_read, "results": results, "stats": stats}


async def move_emails(
    gateway: GraphGateway,
    email_ids: Union[str, list[str]],
    destination_folder: str,
) -> dict:
    """
    Move emails to a folder, one request per email.

    A failing email does not stop the batch; each one gets its own result
    entry and the stats give the aggregate.

    Returns:
        Dict with per-email results and success/failure counts
    """
    unique_ids = _unique_ids(email_ids)
    if not unique_ids:
        return {"results": [], "stats": _batch_stats([])}

    destination_id = await resolve_folder_id(gateway, destination_folder)

    async def _move(email_id: str) -> dict:
        moved = await gateway.post(f"/me/messages/{email_id}/move", {"destinationId": destination_id})
        return {"new_id": moved.get("id")}

    results = await _apply_to_each(unique_ids, _move, "move")
    stats = _batch_stats(results)
    logger.info(f"Moved {stats['successful']}/{stats['total']} emails to {destination_folder}")

    return {"destination": destination_folder, "results": results, "stats": stats}
