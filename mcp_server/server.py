#!/usr/bin/env python3
"""
Outlook Gateway MCP Server

MCP server that exposes Outlook mail, folders, calendar and inbox rules
through Microsoft Graph. With USE_TEST_MODE=true every tool answers from
synthetic fixture data without network access.

Usage:
    python mcp_server/server.py
    outlook-gateway-mcp

Configure in .mcp.json to use from an MCP client.
"""

import sys
import json
import logging
import asyncio
from pathlib import Path
from typing import Optional

# Add project root to path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from mcp.server import Server
from mcp.types import Tool, TextContent
import mcp.server.stdio

from outlook_gateway.errors import (
    AuthenticationRequired,
    FolderNotFoundError,
    GraphError,
)
from outlook_gateway.search import SearchCriteria
from outlook_gateway.service import OutlookService
from outlook_gateway.emails import (
    list_emails,
    search_emails,
    read_email,
    send_email,
    reply_email,
    mark_as_read,
    mark_emails_as_read,
    move_emails,
)
from outlook_gateway.folders import list_folders, create_folder, move_folder
from outlook_gateway.calendar import (
    list_events,
    create_event,
    accept_event,
    decline_event,
    cancel_event,
    delete_event,
)
from outlook_gateway.rules import list_rules, create_rule

# =============================================================================
# LOGGING
# =============================================================================

# stdout carries the MCP protocol, logs go to stderr
logging.basicConfig(
    level=logging.INFO,
    stream=sys.stderr,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("outlook-gateway-mcp")

# =============================================================================
# SERVICE
# =============================================================================

_service: Optional[OutlookService] = None


def get_service() -> OutlookService:
    """Process-wide service, built on first use."""
    global _service
    if _service is None:
        _service = OutlookService()
    return _service


# =============================================================================
# MCP SERVER
# =============================================================================

server = Server("outlook-gateway")

_EMAIL_ID = {"type": "string", "description": "Email ID (from list or search results)"}
_EVENT_ID = {"type": "string", "description": "Event ID (from outlook_list_events)"}
_COMMENT = {"type": "string", "description": "Optional message to include"}
_COUNT = {"type": "integer", "default": 10, "minimum": 1, "maximum": 50, "description": "Maximum number of results"}
_ADDRESS_LIST = {"type": "array", "items": {"type": "string"}}


def _tool(name: str, description: str, properties: Optional[dict] = None, required: Optional[list] = None) -> Tool:
    return Tool(
        name=name,
        description=description,
        inputSchema={
            "type": "object",
            "properties": properties or {},
            "required": required or [],
        },
    )


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Return available tools."""
    return [
        # Authentication
        _tool(
            "outlook_authenticate",
            """Authenticate with Microsoft Graph.

Without a code, returns the consent URL to open in a browser. After consenting,
call again with the code from the redirect to store the tokens.""",
            {"code": {"type": "string", "description": "Authorization code from the redirect (optional)"}},
        ),
        _tool("outlook_token_status", "Show whether a valid access token is stored and when it expires."),
        _tool("outlook_refresh_tokens", "Force a token refresh using the stored refresh token."),
        # Emails
        _tool(
            "outlook_list_emails",
            "List the most recent emails of a folder.",
            {
                "folder": {"type": "string", "default": "inbox", "description": "Folder name (inbox, sent, drafts, or a custom folder)"},
                "count": _COUNT,
                "unread_only": {"type": "boolean", "default": False, "description": "Only unread emails"},
            },
        ),
        _tool(
            "outlook_search_emails",
            """Search emails with progressive fallback strategies.

Every result satisfies all given criteria. If Graph rejects or cannot answer
the combined filter, simpler strategies are tried, ending with client-side
filtering of recent emails. Returns the emails and the strategies tried.""",
            {
                "query": {"type": "string", "description": "Text to find in subject or body"},
                "subject": {"type": "string", "description": "Subject must contain this"},
                "from": {"type": "string", "description": "Sender address or name contains this"},
                "to": {"type": "string", "description": "A recipient address or name contains this"},
                "has_attachments": {"type": "boolean", "description": "Require (true) or exclude (false) attachments"},
                "unread_only": {"type": "boolean", "description": "Require unread (true) or read (false) emails"},
                "folder": {"type": "string", "default": "inbox", "description": "Folder to search"},
                "count": _COUNT,
            },
        ),
        _tool(
            "outlook_read_email",
            "Get the full content of a specific email.",
            {
                "email_id": _EMAIL_ID,
                "format": {"type": "string", "enum": ["text", "html"], "default": "text", "description": "Output format"},
            },
            ["email_id"],
        ),
        _tool(
            "outlook_send_email",
            "Send an email.",
            {
                "to": {**_ADDRESS_LIST, "description": "Recipient addresses"},
                "subject": {"type": "string", "description": "Email subject"},
                "body": {"type": "string", "description": "Email body (HTML allowed)"},
                "cc": {**_ADDRESS_LIST, "description": "CC addresses (optional)"},
                "bcc": {**_ADDRESS_LIST, "description": "BCC addresses (optional)"},
                "importance": {"type": "string", "enum": ["low", "normal", "high"], "default": "normal"},
            },
            ["to", "subject", "body"],
        ),
        _tool(
            "outlook_reply_email",
            "Reply to an email.",
            {
                "email_id": _EMAIL_ID,
                "comment": {"type": "string", "description": "Reply text"},
                "reply_all": {"type": "boolean", "default": False, "description": "Reply to all recipients"},
            },
            ["email_id", "comment"],
        ),
        _tool(
            "outlook_mark_as_read",
            "Mark one email, or several with email_ids, as read or unread.",
            {
                "email_id": _EMAIL_ID,
                "email_ids": {**_ADDRESS_LIST, "description": "Email IDs to update in one batch"},
                "is_read": {"type": "boolean", "default": True, "description": "false marks the email unread"},
            },
        ),
        _tool(
            "outlook_move_emails",
            "Move one or more emails to a folder. Reports success per email.",
            {
                "email_ids": {**_ADDRESS_LIST, "description": "Email IDs to move"},
                "destination_folder": {"type": "string", "description": "Target folder name"},
            },
            ["email_ids", "destination_folder"],
        ),
        # Folders
        _tool(
            "outlook_list_folders",
            "List mail folders including subfolders.",
            {"include_children": {"type": "boolean", "default": True, "description": "Include subfolders"}},
        ),
        _tool(
            "outlook_create_folder",
            "Create a mail folder.",
            {
                "name": {"type": "string", "description": "Folder name"},
                "parent_folder": {"type": "string", "description": "Parent folder name (optional, top level if omitted)"},
            },
            ["name"],
        ),
        _tool(
            "outlook_move_folder",
            "Move a folder under another folder.",
            {
                "source_folder": {"type": "string", "description": "Folder to move"},
                "target_folder": {"type": "string", "description": "New parent folder"},
            },
            ["source_folder", "target_folder"],
        ),
        # Calendar
        _tool(
            "outlook_list_events",
            "List calendar events ordered by start time.",
            {
                "count": _COUNT,
                "start": {"type": "string", "description": "Only events starting at or after this ISO datetime"},
                "end": {"type": "string", "description": "Only events ending at or before this ISO datetime"},
            },
        ),
        _tool(
            "outlook_create_event",
            "Create a calendar event and invite attendees.",
            {
                "subject": {"type": "string", "description": "Event subject"},
                "start": {"type": "string", "description": "Start (ISO datetime)"},
                "end": {"type": "string", "description": "End (ISO datetime)"},
                "attendees": {**_ADDRESS_LIST, "description": "Attendee addresses (optional)"},
                "body": {"type": "string", "description": "Event description (optional)"},
                "location": {"type": "string", "description": "Location (optional)"},
                "time_zone": {"type": "string", "default": "UTC"},
            },
            ["subject", "start", "end"],
        ),
        _tool("outlook_accept_event", "Accept a meeting invitation.", {"event_id": _EVENT_ID, "comment": _COMMENT}, ["event_id"]),
        _tool("outlook_decline_event", "Decline a meeting invitation.", {"event_id": _EVENT_ID, "comment": _COMMENT}, ["event_id"]),
        _tool("outlook_cancel_event", "Cancel a meeting you organize.", {"event_id": _EVENT_ID, "comment": _COMMENT}, ["event_id"]),
        _tool("outlook_delete_event", "Delete a calendar event.", {"event_id": _EVENT_ID}, ["event_id"]),
        # Rules
        _tool("outlook_list_rules", "List inbox rules in execution order."),
        _tool(
            "outlook_create_rule",
            "Create an inbox rule. Needs at least one condition and one action.",
            {
                "name": {"type": "string", "description": "Rule name"},
                "from_addresses": {**_ADDRESS_LIST, "description": "Sender addresses (condition)"},
                "contains_subject": {"type": "string", "description": "Subject text (condition)"},
                "move_to_folder": {"type": "string", "description": "Folder to move matching mail to (action)"},
                "mark_as_read": {"type": "boolean", "default": False, "description": "Mark matching mail read (action)"},
                "sequence": {"type": "integer", "minimum": 1, "description": "Execution order (optional)"},
            },
            ["name"],
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Execute a tool."""
    logger.info(f"Tool call: {name} with {arguments}")

    handler = HANDLERS.get(name)
    if handler is None:
        return _text({"error": f"Unknown tool: {name}"})

    try:
        result = await handler(arguments or {})

    except AuthenticationRequired as e:
        logger.warning(f"Authentication required for {name}: {e}")
        return _text({
            "error": "Authentication required",
            "message": f"{e}. Please re-authenticate with outlook_authenticate.",
        })

    except FolderNotFoundError as e:
        return _text({
            "error": "FolderNotFoundError",
            "message": str(e),
            "available_folders": e.available,
        })

    except (GraphError, ValueError) as e:
        logger.warning(f"Tool {name} failed: {e}")
        return _text({"error": type(e).__name__, "message": str(e)})

    except Exception as e:
        logger.error(f"Tool error: {e}", exc_info=True)
        return _text({"error": type(e).__name__, "message": str(e)})

    return _text(result)


def _text(payload: dict) -> list[TextContent]:
    return [TextContent(
        type="text",
        text=json.dumps(payload, ensure_ascii=False, indent=2, default=str)
    )]


# =============================================================================
# TOOL HANDLERS
# =============================================================================

async def handle_authenticate(args: dict) -> dict:
    """Handle outlook_authenticate tool."""
    tokens = get_service().token_manager

    if args.get("code"):
        await tokens.exchange_code(args["code"])
        return {"success": True, "message": "Authentication successful, tokens stored"}

    if not tokens.live:
        tokens.bootstrap_synthetic()
        return {"success": True, "message": "Test mode: synthetic tokens created"}

    if tokens.has_valid_credential():
        return {"success": True, "message": "Already authenticated"}

    return {
        "success": False,
        "auth_url": tokens.authorization_url(),
        "message": "Open auth_url in a browser, then call outlook_authenticate with the code from the redirect",
    }


async def handle_token_status(args: dict) -> dict:
    return get_service().token_manager.token_status()


async def handle_refresh_tokens(args: dict) -> dict:
    tokens = get_service().token_manager
    await tokens.refresh()
    return {"success": True, **tokens.token_status()}


async def handle_list_emails(args: dict) -> dict:
    return await list_emails(
        get_service().gateway,
        folder=args.get("folder", "inbox"),
        count=args.get("count", 10),
        unread_only=args.get("unread_only", False),
    )


async def handle_search_emails(args: dict) -> dict:
    """Handle outlook_search_emails tool."""
    criteria = SearchCriteria(
        subject=args.get("subject"),
        sender=args.get("from"),
        recipient=args.get("to"),
        text=args.get("query"),
        has_attachments=args.get("has_attachments"),
        unread_only=args.get("unread_only"),
    )
    return await search_emails(
        get_service().gateway,
        criteria,
        folder=args.get("folder", "inbox"),
        count=args.get("count", 10),
    )


async def handle_read_email(args: dict) -> dict:
    email_id = args.get("email_id")
    if not email_id:
        return {"error": "email_id is required"}
    return await read_email(get_service().gateway, email_id, args.get("format", "text"))


async def handle_send_email(args: dict) -> dict:
    return await send_email(
        get_service().gateway,
        to=args.get("to") or [],
        subject=args.get("subject", ""),
        body=args.get("body", ""),
        cc=args.get("cc"),
        bcc=args.get("bcc"),
        importance=args.get("importance", "normal"),
    )


async def handle_reply_email(args: dict) -> dict:
    return await reply_email(
        get_service().gateway,
        args.get("email_id"),
        args.get("comment", ""),
        reply_all=args.get("reply_all", False),
    )


async def handle_mark_as_read(args: dict) -> dict:
    gateway = get_service().gateway
    is_read = args.get("is_read", True)
    if args.get("email_ids"):
        return await mark_emails_as_read(gateway, args["email_ids"], is_read)
    if not args.get("email_id"):
        return {"error": "email_id or email_ids is required"}
    return await mark_as_read(gateway, args["email_id"], is_read)


async def handle_move_emails(args: dict) -> dict:
    destination = args.get("destination_folder")
    if not destination:
        return {"error": "destination_folder is required"}
    return await move_emails(get_service().gateway, args.get("email_ids") or [], destination)


async def handle_list_folders(args: dict) -> dict:
    return await list_folders(get_service().gateway, args.get("include_children", True))


async def handle_create_folder(args: dict) -> dict:
    return await create_folder(get_service().gateway, args.get("name", ""), args.get("parent_folder"))


async def handle_move_folder(args: dict) -> dict:
    return await move_folder(get_service().gateway, args.get("source_folder", ""), args.get("target_folder", ""))


async def handle_list_events(args: dict) -> dict:
    return await list_events(
        get_service().gateway,
        count=args.get("count", 10),
        start=args.get("start"),
        end=args.get("end"),
    )


async def handle_create_event(args: dict) -> dict:
    return await create_event(
        get_service().gateway,
        subject=args.get("subject", ""),
        start=args.get("start", ""),
        end=args.get("end", ""),
        attendees=args.get("attendees"),
        body=args.get("body", ""),
        location=args.get("location"),
        time_zone=args.get("time_zone", "UTC"),
    )


async def handle_accept_event(args: dict) -> dict:
    return await accept_event(get_service().gateway, args.get("event_id"), args.get("comment", ""))


async def handle_decline_event(args: dict) -> dict:
    return await decline_event(get_service().gateway, args.get("event_id"), args.get("comment", ""))


async def handle_cancel_event(args: dict) -> dict:
    return await cancel_event(get_service().gateway, args.get("event_id"), args.get("comment", ""))


async def handle_delete_event(args: dict) -> dict:
    return await delete_event(get_service().gateway, args.get("event_id"))


async def handle_list_rules(args: dict) -> dict:
    return await list_rules(get_service().gateway)


async def handle_create_rule(args: dict) -> dict:
    return await create_rule(
        get_service().gateway,
        name=args.get("name", ""),
        from_addresses=args.get("from_addresses"),
        contains_subject=args.get("contains_subject"),
        move_to_folder=args.get("move_to_folder"),
        mark_as_read=args.get("mark_as_read", False),
        sequence=args.get("sequence"),
    )


HANDLERS = {
    "outlook_authenticate": handle_authenticate,
    "outlook_token_status": handle_token_status,
    "outlook_refresh_tokens": handle_refresh_tokens,
    "outlook_list_emails": handle_list_emails,
    "outlook_search_emails": handle_search_emails,
    "outlook_read_email": handle_read_email,
    "outlook_send_email": handle_send_email,
    "outlook_reply_email": handle_reply_email,
    "outlook_mark_as_read": handle_mark_as_read,
    "outlook_move_emails": handle_move_emails,
    "outlook_list_folders": handle_list_folders,
    "outlook_create_folder": handle_create_folder,
    "outlook_move_folder": handle_move_folder,
    "outlook_list_events": handle_list_events,
    "outlook_create_event": handle_create_event,
    "outlook_accept_event": handle_accept_event,
    "outlook_decline_event": handle_decline_event,
    "outlook_cancel_event": handle_cancel_event,
    "outlook_delete_event": handle_delete_event,
    "outlook_list_rules": handle_list_rules,
    "outlook_create_rule": handle_create_rule,
}


# =============================================================================
# MAIN
# =============================================================================

async def main():
    """Start the MCP server."""
    logger.info("Starting Outlook Gateway MCP Server...")

    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
