"""
Synthetic Graph backend.

Answers gateway requests from the fixture dataset instead of the network.
Requests are matched against ROUTES, an ordered table of
(path pattern, method) -> builder rows; the first full match wins. GET
builders are pure functions of the endpoint and the dataset, create-style
POSTs mint a fresh id and timestamp on every call.
"""

import re
import copy
import json
import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlsplit, parse_qs

from . import mock_data
from .errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


# =============================================================================
# DATASET
# =============================================================================

class SyntheticDataset:
    """Snapshot of the fixture data one backend answers from."""

    def __init__(
        self,
        emails: Optional[list[dict]] = None,
        events: Optional[list[dict]] = None,
        folders: Optional[list[dict]] = None,
        rules: Optional[list[dict]] = None,
        users: Optional[dict] = None,
        profile: Optional[dict] = None,
    ):
        self.emails = copy.deepcopy(mock_data.EMAILS if emails is None else emails)
        self.events = copy.deepcopy(mock_data.EVENTS if events is None else events)
        self.folders = copy.deepcopy(mock_data.FOLDERS if folders is None else folders)
        self.rules = copy.deepcopy(mock_data.RULES if rules is None else rules)
        self.users = dict(mock_data.USERS if users is None else users)
        self.profile = dict(mock_data.PROFILE if profile is None else profile)

    def find(self, collection: str, item_id: str) -> Optional[dict]:
        return next((item for item in getattr(self, collection) if item["id"] == item_id), None)


# =============================================================================
# RESHAPING
# =============================================================================

def mint_id(prefix: str) -> str:
    return f"synthetic-{prefix}-{uuid.uuid4().hex[:12]}"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _address(dataset: SyntheticDataset, address: str) -> dict:
    return {"emailAddress": {"address": address, "name": dataset.users.get(address, address)}}


def reshape_email(dataset: SyntheticDataset, entry: dict) -> dict:
    """Fixture email -> Graph message resource."""
    return {
        "id": entry["id"],
        "subject": entry["subject"],
        "from": _address(dataset, entry["from"]),
        "sender": _address(dataset, entry["from"]),
        "toRecipients": [_address(dataset, a) for a in entry.get("to", [])],
        "ccRecipients": [_address(dataset, a) for a in entry.get("cc", [])],
        "receivedDateTime": entry["timestamp"],
        "sentDateTime": entry["timestamp"],
        "bodyPreview": entry["body"][:255],
        "body": {"contentType": "text", "content": entry["body"]},
        "isRead": entry.get("isRead", False),
        "importance": entry.get("importance", "normal"),
        "hasAttachments": entry.get("hasAttachments", False),
        "parentFolderId": entry.get("folder", "inbox"),
        "conversationId": f"conv-{entry['id']}",
    }


def reshape_event(dataset: SyntheticDataset, entry: dict) -> dict:
    """Fixture event -> Graph event resource."""
    return {
        "id": entry["id"],
        "subject": entry["subject"],
        "organizer": _address(dataset, entry["organizer"]),
        "attendees": [
            {**_address(dataset, a), "type": "required", "status": {"response": "none"}}
            for a in entry.get("attendees", [])
        ],
        "start": {"dateTime": entry["start"], "timeZone": "UTC"},
        "end": {"dateTime": entry["end"], "timeZone": "UTC"},
        "location": {"displayName": entry.get("location", "")},
        "bodyPreview": entry.get("body", "")[:255],
        "body": {"contentType": "text", "content": entry.get("body", "")},
        "responseStatus": {"response": entry.get("responseStatus", "none")},
        "isCancelled": False,
    }


# =============================================================================
# QUERY MARKERS
# =============================================================================

_CONTAINS = re.compile(r"contains\(\s*([\w/]+)\s*,\s*'((?:[^']|'')*)'\s*\)", re.IGNORECASE)
_BOOLEAN = re.compile(r"\b(isRead|hasAttachments)\s+eq\s+(true|false)\b", re.IGNORECASE)
_DISPLAY_NAME = re.compile(r"displayName\s+eq\s+'((?:[^']|'')*)'", re.IGNORECASE)
_EVENT_RANGE = re.compile(r"\b(start|end)/dateTime\s+(ge|gt|le|lt)\s+'([^']+)'", re.IGNORECASE)


def _query(endpoint: str) -> tuple[str, dict]:
    """Split an endpoint into its path and first-value query dict."""
    parts = urlsplit(endpoint)
    params = {key: values[0] for key, values in parse_qs(parts.query).items()}
    path = parts.path.rstrip("/") or "/"
    return path, params


def _field_values(item: dict, path: str) -> list[str]:
    """Resolve a Graph property path such as toRecipients/emailAddress/address."""
    values: list[Any] = [item]
    for part in path.split("/"):
        resolved = []
        for value in values:
            if isinstance(value, list):
                resolved.extend(v.get(part) for v in value if isinstance(v, dict))
            elif isinstance(value, dict):
                resolved.append(value.get(part))
        values = resolved
    return [str(v) for v in values if v is not None]


def _matches_filter(message: dict, filter_expr: str) -> bool:
    """
    Apply the contains()/eq markers of a $filter to one message.

    contains() terms with the same value are OR'ed (subject or bodyPreview
    free text), different values are AND'ed.
    """
    terms: dict[str, list[str]] = {}
    for field, value in _CONTAINS.findall(filter_expr):
        terms.setdefault(value.replace("''", "'").lower(), []).append(field)

    for value, fields in terms.items():
        if not any(value in v.lower() for f in fields for v in _field_values(message, f)):
            return False

    for name, flag in _BOOLEAN.findall(filter_expr):
        key = "isRead" if name.lower() == "isread" else "hasAttachments"
        if bool(message.get(key)) != (flag.lower() == "true"):
            return False

    return True


def _matches_search(message: dict, search: str) -> bool:
    term = search.strip().strip('"').lower()
    if ":" in term:
        field, _, term = term.partition(":")
        fields = {
            "from": ["from/emailAddress/address", "from/emailAddress/name"],
            "to": ["toRecipients/emailAddress/address", "toRecipients/emailAddress/name"],
            "subject": ["subject"],
            "body": ["bodyPreview"],
        }.get(field, ["subject", "bodyPreview"])
    else:
        fields = ["subject", "bodyPreview", "from/emailAddress/address"]
    return any(term in v.lower() for f in fields for v in _field_values(message, f))


def _page_size(params: dict, default: int = DEFAULT_PAGE_SIZE) -> int:
    try:
        return max(int(params.get("$top", default)), 0)
    except ValueError:
        return default


def _not_found(kind: str, item_id: str, path: str) -> UpstreamError:
    body = json.dumps({
        "error": {"code": "ErrorItemNotFound", "message": f"The specified {kind} '{item_id}' was not found."}
    })
    return UpstreamError(404, body, path)


# =============================================================================
# BUILDERS
# =============================================================================

# Every builder takes (dataset, match, params, body) and returns a payload.

def _get_profile(dataset, match, params, body):
    return dict(dataset.profile)


def _list_folders(dataset, match, params, body):
    folders = [dict(f) for f in dataset.folders]
    parent = match.groupdict().get("folder_id")
    if parent:
        folders = [f for f in folders if f.get("parentFolderId") == parent]
    elif "$filter" not in params:
        folders = [f for f in folders if not f.get("parentFolderId")]

    name = _DISPLAY_NAME.search(params.get("$filter", ""))
    if name:
        wanted = name.group(1).replace("''", "'").lower()
        folders = [f for f in folders if f["displayName"].lower() == wanted]

    return {"value": folders[:_page_size(params, default=100)]}


def _get_folder(dataset, match, params, body):
    folder_id = match.group("folder_id")
    folder = dataset.find("folders", folder_id)
    if not folder:
        raise _not_found("folder", folder_id, match.string)
    return dict(folder)


def _create_folder(dataset, match, params, body):
    body = body or {}
    return {
        "id": mint_id("folder"),
        "displayName": body.get("displayName", ""),
        "parentFolderId": match.groupdict().get("folder_id"),
        "childFolderCount": 0,
        "createdDateTime": _now(),
    }


def _move_folder(dataset, match, params, body):
    folder = _get_folder(dataset, match, params, body)
    folder["parentFolderId"] = (body or {}).get("destinationId")
    return folder


def _list_messages(dataset, match, params, body):
    folder_id = match.groupdict().get("folder_id")
    messages = [
        reshape_email(dataset, e) for e in dataset.emails
        if folder_id is None or e.get("folder") == folder_id
    ]

    if params.get("$filter"):
        messages = [m for m in messages if _matches_filter(m, params["$filter"])]
    if params.get("$search"):
        messages = [m for m in messages if _matches_search(m, params["$search"])]

    messages.sort(key=lambda m: m["receivedDateTime"], reverse=True)
    return {"value": messages[:_page_size(params)]}


def _get_message(dataset, match, params, body):
    message_id = match.group("message_id")
    entry = dataset.find("emails", message_id)
    if not entry:
        raise _not_found("message", message_id, match.string)
    return reshape_email(dataset, entry)


def _update_message(dataset, match, params, body):
    return {**_get_message(dataset, match, params, body), **(body or {})}


def _move_message(dataset, match, params, body):
    message = _get_message(dataset, match, params, body)
    # Graph hands back the moved copy under a new id
    message["id"] = mint_id("message")
    message["parentFolderId"] = (body or {}).get("destinationId")
    message["lastModifiedDateTime"] = _now()
    return message


def _message_action(dataset, match, params, body):
    _get_message(dataset, match, params, body)
    return {}


def _list_attachments(dataset, match, params, body):
    message = _get_message(dataset, match, params, body)
    if not message["hasAttachments"]:
        return {"value": []}
    return {"value": [{
        "id": f"att-{message['id']}",
        "name": f"{message['id']}.pdf",
        "size": 24576,
        "contentType": "application/pdf",
        "@odata.type": "#microsoft.graph.fileAttachment",
    }]}


def _create_message(dataset, match, params, body):
    return {**(body or {}), "id": mint_id("message"), "createdDateTime": _now(), "isDraft": True}


def _send_mail(dataset, match, params, body):
    return {"id": mint_id("sent"), "sentDateTime": _now()}


def _list_events(dataset, match, params, body):
    events = [reshape_event(dataset, e) for e in dataset.events]

    for field, op, bound in _EVENT_RANGE.findall(params.get("$filter", "")):
        key = field.lower()
        compare = {
            "ge": lambda v: v >= bound,
            "gt": lambda v: v > bound,
            "le": lambda v: v <= bound,
            "lt": lambda v: v < bound,
        }[op.lower()]
        events = [e for e in events if compare(e[key]["dateTime"])]

    events.sort(key=lambda e: e["start"]["dateTime"])
    return {"value": events[:_page_size(params)]}


def _get_event(dataset, match, params, body):
    event_id = match.group("event_id")
    entry = dataset.find("events", event_id)
    if not entry:
        raise _not_found("event", event_id, match.string)
    return reshape_event(dataset, entry)


def _update_event(dataset, match, params, body):
    return {**_get_event(dataset, match, params, body), **(body or {})}


def _event_action(dataset, match, params, body):
    _get_event(dataset, match, params, body)
    return {}


def _create_event(dataset, match, params, body):
    return {**(body or {}), "id": mint_id("event"), "createdDateTime": _now()}


def _list_rules(dataset, match, params, body):
    return {"value": sorted((dict(r) for r in dataset.rules), key=lambda r: r.get("sequence", 0))}


def _create_rule(dataset, match, params, body):
    return {**(body or {}), "id": mint_id("rule"), "createdDateTime": _now()}


_FOLDER = r"/me/mailFolders/(?P<folder_id>[^/]+)"
_MESSAGE = r"/me/messages/(?P<message_id>[^/]+)"
_EVENT = r"/me/events/(?P<event_id>[^/]+)"

ROUTES: list[tuple[str, str, Callable]] = [
    (r"/me", "GET", _get_profile),
    # folders and rules
    (r"/me/mailFolders", "GET", _list_folders),
    (r"/me/mailFolders", "POST", _create_folder),
    (_FOLDER + r"/childFolders", "GET", _list_folders),
    (_FOLDER + r"/childFolders", "POST", _create_folder),
    (_FOLDER + r"/move", "POST", _move_folder),
    (_FOLDER + r"/messageRules", "GET", _list_rules),
    (_FOLDER + r"/messageRules", "POST", _create_rule),
    (_FOLDER + r"/messages", "GET", _list_messages),
    (_FOLDER, "GET", _get_folder),
    # messages
    (r"/me/messages", "GET", _list_messages),
    (r"/me/messages", "POST", _create_message),
    (r"/me/sendMail", "POST", _send_mail),
    (_MESSAGE + r"/move", "POST", _move_message),
    (_MESSAGE + r"/(?:reply|replyAll|forward|send)", "POST", _message_action),
    (_MESSAGE + r"/attachments", "GET", _list_attachments),
    (_MESSAGE, "GET", _get_message),
    (_MESSAGE, "PATCH", _update_message),
    (_MESSAGE, "DELETE", _message_action),
    # calendar
    (r"/me/events", "GET", _list_events),
    (r"/me/events", "POST", _create_event),
    (_EVENT + r"/(?:accept|decline|tentativelyAccept|cancel)", "POST", _event_action),
    (_EVENT, "GET", _get_event),
    (_EVENT, "PATCH", _update_event),
    (_EVENT, "DELETE", _event_action),
]


# =============================================================================
# BACKEND
# =============================================================================

class SyntheticBackend:
    """Gateway backend that never touches the network or the token manager."""

    live = False

    def __init__(self, dataset: Optional[SyntheticDataset] = None):
        self.dataset = dataset or SyntheticDataset()
        self.routes = [(re.compile(pattern), method, builder) for pattern, method, builder in ROUTES]

    async def send(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        path, params = _query(endpoint)
        method = method.upper()

        for pattern, route_method, builder in self.routes:
            if route_method != method:
                continue
            match = pattern.fullmatch(path)
            if match:
                logger.debug(f"Synthetic {method} {path} -> {builder.__name__}")
                return builder(self.dataset, match, params, body)

        logger.debug(f"Synthetic {method} {path} -> default response")
        response = {"success": True, "message": f"Synthetic response for {method} {path}"}
        if method != "GET":
            response.update({"id": mint_id("item"), "createdDateTime": _now()})
        return response
