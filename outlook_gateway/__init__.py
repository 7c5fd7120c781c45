"""
Outlook Graph Gateway

Public API exports for credentials, the gateway, search and mailbox operations.
"""

from .config import (
    GRAPH_ENDPOINT,
    REQUEST_TIMEOUT,
    USE_TEST_MODE,
    TOKEN_EXPIRY_MARGIN,
    MAX_SEARCH_RESULTS,
)

from .errors import (
    GraphError,
    AuthenticationRequired,
    RefreshFailed,
    UpstreamError,
    TransportError,
    InvalidIdentifierError,
    FolderNotFoundError,
)

from .cache import TTLCache, default_cache

from .auth import Credential, TokenManager

from .gateway import (
    GraphGateway,
    LiveBackend,
    create_gateway,
    with_query,
)

from .synthetic import SyntheticBackend, SyntheticDataset

from .search import (
    SearchCriteria,
    SearchResult,
    ProgressiveSearch,
)

from .parsing import (
    html_to_text,
    format_email_summary,
    format_email_body,
    format_event,
    format_folder,
)

from .emails import (
    is_valid_graph_id,
    list_emails,
    search_emails,
    read_email,
    send_email,
    reply_email,
    mark_as_read,
    mark_emails_as_read,
    move_emails,
)

from .folders import (
    list_folders,
    create_folder,
    move_folder,
    resolve_folder_id,
)

from .calendar import (
    list_events,
    create_event,
    accept_event,
    decline_event,
    cancel_event,
    delete_event,
)

from .rules import list_rules, create_rule

from .service import OutlookService

__all__ = [
    # Config
    "GRAPH_ENDPOINT",
    "REQUEST_TIMEOUT",
    "USE_TEST_MODE",
    "TOKEN_EXPIRY_MARGIN",
    "MAX_SEARCH_RESULTS",
    # Errors
    "GraphError",
    "AuthenticationRequired",
    "RefreshFailed",
    "UpstreamError",
    "TransportError",
    "InvalidIdentifierError",
    "FolderNotFoundError",
    # Cache
    "TTLCache",
    "default_cache",
    # Auth
    "Credential",
    "TokenManager",
    # Gateway
    "GraphGateway",
    "LiveBackend",
    "SyntheticBackend",
    "SyntheticDataset",
    "create_gateway",
    "with_query",
    # Search
    "SearchCriteria",
    "SearchResult",
    "ProgressiveSearch",
    # Parsing
    "html_to_text",
    "format_email_summary",
    "format_email_body",
    "format_event",
    "format_folder",
    # Emails
    "is_valid_graph_id",
    "list_emails",
    "search_emails",
    "read_email",
    "send_email",
    "reply_email",
    "mark_as_read",
    "mark_emails_as_read",
    "move_emails",
    # Folders
    "list_folders",
    "create_folder",
    "move_folder",
    "resolve_folder_id",
    # Calendar
    "list_events",
    "create_event",
    "accept_event",
    "decline_event",
    "cancel_event",
    "delete_event",
    # Rules
    "list_rules",
    "create_rule",
    # Service
    "OutlookService",
]
