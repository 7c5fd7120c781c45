"""
Inbox rule operations.
"""

import logging
from typing import Optional

from .folders import resolve_folder_id
from .gateway import GraphGateway

logger = logging.getLogger(__name__)

RULES_ENDPOINT = "/me/mailFolders/inbox/messageRules"


def format_rule(rule: dict) -> dict:
    conditions = rule.get("conditions") or {}
    actions = rule.get("actions") or {}
    senders = [
        (s.get("emailAddress") or {}).get("address", "")
        for s in conditions.get("fromAddresses") or []
    ]
    return {
        "id": rule.get("id"),
        "name": rule.get("displayName", ""),
        "sequence": rule.get("sequence"),
        "is_enabled": bool(rule.get("isEnabled", True)),
        "from_addresses": senders,
        "subject_contains": conditions.get("subjectContains") or [],
        "move_to_folder": actions.get("moveToFolder"),
        "mark_as_read": bool(actions.get("markAsRead")),
        "stop_processing": bool(actions.get("stopProcessingRules")),
    }


async def list_rules(gateway: GraphGateway) -> dict:
    data = await gateway.get(RULES_ENDPOINT)
    rules = sorted((format_rule(r) for r in data.get("value") or []), key=lambda r: r["sequence"] or 0)
    return {"count": len(rules), "rules": rules}


async def create_rule(
    gateway: GraphGateway,
    name: str,
    from_addresses: Optional[list[str]] = None,
    contains_subject: Optional[str] = None,
    move_to_folder: Optional[str] = None,
    mark_as_read: bool = False,
    sequence: Optional[int] = None,
    stop_processing: bool = False,
) -> dict:
    """
    Create an inbox rule.

    Args:
        gateway: Graph gateway
        name: Rule display name
        from_addresses: Sender addresses that trigger the rule
        contains_subject: Subject substring that triggers the rule
        move_to_folder: Folder name to move matching mail to
        mark_as_read: Mark matching mail as read
        sequence: Execution order (default: after the existing rules)
        stop_processing: Skip later rules for matching mail

    Raises:
        ValueError: No name, no condition or no action
        FolderNotFoundError: move_to_folder does not exist
    """
    if not (name or "").strip():
        raise ValueError("Rule name is required")

    conditions = {}
    if from_addresses:
        conditions["fromAddresses"] = [{"emailAddress": {"address": a}} for a in from_addresses]
    if contains_subject:
        conditions["subjectContains"] = [contains_subject]
    if not conditions:
        raise ValueError("At least one condition is required (from_addresses or contains_subject)")

    actions = {}
    if move_to_folder:
        actions["moveToFolder"] = await resolve_folder_id(gateway, move_to_folder)
    if mark_as_read:
        actions["markAsRead"] = True
    if not actions:
        raise ValueError("At least one action is required (move_to_folder or mark_as_read)")
    if stop_processing:
        actions["stopProcessingRules"] = True

    if sequence is None:
        existing = await list_rules(gateway)
        sequence = max((r["sequence"] or 0 for r in existing["rules"]), default=0) + 1

    created = await gateway.post(RULES_ENDPOINT, {
        "displayName": name.strip(),
        "sequence": sequence,
        "isEnabled": True,
        "conditions": conditions,
        "actions": actions,
    })
    logger.info(f"Created rule '{name}' with sequence {sequence}")
    return {"success": True, "rule": format_rule(created)}
