"""
Mail folder operations.
Resolves folder display names to ids and lists, creates and moves folders.
"""

import logging
from typing import Optional

from .config import CACHE_TTL_FOLDERS
from .cache import default_cache
from .errors import FolderNotFoundError
from .gateway import GraphGateway
from .parsing import format_folder

logger = logging.getLogger(__name__)

# Graph accepts these names in place of a folder id
WELL_KNOWN_FOLDERS = {
    "inbox": "inbox",
    "sent": "sentitems",
    "sent items": "sentitems",
    "sentitems": "sentitems",
    "drafts": "drafts",
    "deleted": "deleteditems",
    "deleted items": "deleteditems",
    "deleteditems": "deleteditems",
    "archive": "archive",
    "junk": "junkemail",
    "junk email": "junkemail",
    "junkemail": "junkemail",
}

MAX_FOLDER_DEPTH = 3


# =============================================================================
# LISTING
# =============================================================================

async def walk_folders(gateway: GraphGateway, max_depth: int = MAX_FOLDER_DEPTH) -> list[dict]:
    """
    Collect top-level folders and their children, breadth first.

    Args:
        gateway: Graph gateway
        max_depth: Folder levels to descend (1 = top level only)

    Returns:
        Raw Graph folder resources
    """
    data = await gateway.get("/me/mailFolders", {"$top": 100})
    folders = list(data.get("value") or [])

    frontier = [f for f in folders if f.get("childFolderCount")]
    depth = 1
    while frontier and depth < max_depth:
        next_frontier = []
        for parent in frontier:
            children = await gateway.get(f"/me/mailFolders/{parent['id']}/childFolders", {"$top": 100})
            children = children.get("value") or []
            folders.extend(children)
            next_frontier.extend(c for c in children if c.get("childFolderCount"))
        frontier = next_frontier
        depth += 1

    return folders


async def list_folders(gateway: GraphGateway, include_children: bool = True) -> dict:
    folders = await walk_folders(gateway, MAX_FOLDER_DEPTH if include_children else 1)
    return {
        "count": len(folders),
        "folders": [format_folder(f) for f in folders],
    }


# =============================================================================
# RESOLUTION
# =============================================================================

async def resolve_folder_id(gateway: GraphGateway, folder: Optional[str]) -> str:
    """
    Resolve a folder display name to its id.

    Well-known names resolve without a request; other names are looked up
    by displayName, then among child folders. Results are cached.

    Raises:
        FolderNotFoundError: No folder with that name (carries the
            available names)
    """
    name = (folder or "inbox").strip()
    well_known = WELL_KNOWN_FOLDERS.get(name.lower())
    if well_known:
        return well_known

    cache_key = f"folder_id:{name.lower()}"
    cached = default_cache.get(cache_key)
    if cached is not None:
        return cached

    escaped = name.replace("'", "''")
    data = await gateway.get("/me/mailFolders", {
        "$filter": f"displayName eq '{escaped}'",
        "$select": "id,displayName",
    })
    matches = data.get("value") or []

    if not matches:
        # $filter on /me/mailFolders only sees top-level folders
        all_folders = await walk_folders(gateway)
        matches = [f for f in all_folders if (f.get("displayName") or "").lower() == name.lower()]
        if not matches:
            logger.warning(f"Folder not found: {name}")
            raise FolderNotFoundError(name, [f.get("displayName", "") for f in all_folders])

    folder_id = matches[0]["id"]
    logger.info(f"Resolved '{name}' to folder ID: {folder_id}")
    default_cache.set(cache_key, folder_id, CACHE_TTL_FOLDERS)
    return folder_id


async def resolve_folder_endpoint(gateway: GraphGateway, folder: Optional[str]) -> str:
    """Message collection endpoint for a folder name."""
    folder_id = await resolve_folder_id(gateway, folder)
    return f"/me/mailFolders/{folder_id}/messages"


# =============================================================================
# WRITES
# =============================================================================

async def create_folder(gateway: GraphGateway, name: str, parent_folder: Optional[str] = None) -> dict:
    """
    Create a mail folder, top level or under parent_folder.

    Raises:
        ValueError: Empty folder name
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Folder name is required and must be a non-empty string")

    endpoint = "/me/mailFolders"
    if parent_folder:
        parent_id = await resolve_folder_id(gateway, parent_folder)
        endpoint = f"/me/mailFolders/{parent_id}/childFolders"

    created = await gateway.post(endpoint, {"displayName": name})
    default_cache.invalidate_prefix("folder_id:")
    logger.info(f"Created folder '{name}'")

    return {"success": True, "folder": format_folder(created)}


async def move_folder(gateway: GraphGateway, source_folder: str, target_folder: str) -> dict:
    """
    Move source_folder (and its contents) under target_folder.

    Raises:
        ValueError: Missing names, or a folder moved into itself
    """
    if not (source_folder or "").strip():
        raise ValueError("Source folder name is required and must be a non-empty string")
    if not (target_folder or "").strip():
        raise ValueError("Target folder name is required and must be a non-empty string")

    source_id = await resolve_folder_id(gateway, source_folder)
    target_id = await resolve_folder_id(gateway, target_folder)
    if source_id == target_id:
        raise ValueError("Cannot move a folder into itself")

    moved = await gateway.post(f"/me/mailFolders/{source_id}/move", {"destinationId": target_id})
    default_cache.invalidate_prefix("folder_id:")
    logger.info(f"Moved folder '{source_folder}' into '{target_folder}'")

    return {
        "success": True,
        "source": source_folder,
        "target": target_folder,
        "folder": format_folder(moved),
    }
