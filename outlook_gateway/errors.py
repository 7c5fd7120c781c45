"""
Exception types raised by the gateway.
"""

from typing import Optional


class GraphError(Exception):
    """Base class for all gateway errors."""


class AuthenticationRequired(GraphError):
    """No usable credential and no way to get one without the user."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class RefreshFailed(AuthenticationRequired):
    """The token endpoint rejected the refresh, or could not be reached."""


class UpstreamError(GraphError):
    """Non-2xx response from the Graph API."""

    def __init__(self, status_code: int, body: str = "", endpoint: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint
        super().__init__(f"Graph API error {status_code}: {body[:200]}")


class TransportError(GraphError):
    """Timeout or connection failure talking to the Graph API."""


class InvalidIdentifierError(GraphError, ValueError):
    """Caller passed a malformed message, event or folder id."""


class FolderNotFoundError(GraphError):
    """A mail folder display name could not be resolved."""

    def __init__(self, folder: str, available: Optional[list[str]] = None):
        self.folder = folder
        self.available = sorted(available or [])
        super().__init__(f"Folder '{folder}' not found")
