"""
Authentication module for Microsoft Graph API.
Persists bearer credentials on disk and refreshes them through MSAL.

A credential is in one of four states: absent, valid, stale (inside the
expiry margin) or refresh-failed. Stale credentials are refreshed on demand
by ensure_valid(); nothing in this module retries.
"""

import os
import json
import time
import asyncio
import logging
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import msal
import requests

from .config import (
    CLIENT_ID,
    CLIENT_SECRET,
    AUTHORITY,
    SCOPES,
    REDIRECT_URI,
    TOKEN_FILE,
    TOKEN_EXPIRY_MARGIN,
    SYNTHETIC_TOKEN_LIFETIME,
    USE_TEST_MODE,
)
from .errors import AuthenticationRequired, RefreshFailed

logger = logging.getLogger(__name__)


# =============================================================================
# CREDENTIAL
# =============================================================================

@dataclass
class Credential:
    """Bearer credential as stored in the token file."""

    access_token: str
    refresh_token: Optional[str] = None
    expiry: int = 0  # epoch milliseconds
    scope: frozenset = field(default_factory=frozenset)
    token_type: str = "Bearer"

    def is_valid(self, now: Optional[float] = None) -> bool:
        """True while now is more than the safety margin before expiry."""
        now_ms = (time.time() if now is None else now) * 1000
        return bool(self.access_token) and now_ms < self.expiry - TOKEN_EXPIRY_MARGIN * 1000

    def to_record(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry,
            "token_type": self.token_type,
            "scope": " ".join(sorted(self.scope)),
        }

    @classmethod
    def from_record(cls, data: dict) -> Optional["Credential"]:
        """Build a credential from a token file record, None if unusable."""
        if not isinstance(data, dict) or not data.get("access_token"):
            return None

        # Tokens written by the auth callback server use expires_at
        expiry = data.get("expiry") or data.get("expires_at") or 0
        scope = data.get("scope") or []
        if isinstance(scope, str):
            scope = scope.split()

        try:
            expiry = int(expiry)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed token expiry: {expiry!r}")
            expiry = 0

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expiry=expiry,
            scope=frozenset(scope),
        )


# =============================================================================
# TOKEN MANAGER
# =============================================================================

class TokenManager:
    """
    Owns the single credential of this process.

    Args:
        token_file: Where the credential is persisted (default: TOKEN_FILE)
        live: False for synthetic mode (default: not USE_TEST_MODE)
    """

    def __init__(self, token_file: Optional[Path] = None, live: Optional[bool] = None):
        self.token_file = Path(token_file) if token_file else TOKEN_FILE
        self.live = (not USE_TEST_MODE) if live is None else live
        self.credential: Optional[Credential] = None
        self._refresh_lock = asyncio.Lock()
        self.load_or_initialize()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load_or_initialize(self) -> Optional[Credential]:
        """
        Load the persisted credential.

        A missing or unreadable token file leaves the manager empty;
        this never raises so start-up cannot fail on it.
        """
        self.credential = None
        if not self.token_file.exists():
            return None

        try:
            data = json.loads(self.token_file.read_text())
        except (OSError, ValueError) as e:
            logger.error(f"Error loading tokens from {self.token_file}: {e}")
            return None

        self.credential = Credential.from_record(data)
        if self.credential:
            logger.info("Tokens loaded from disk")
        return self.credential

    def _save(self, credential: Credential) -> None:
        """Replace the token file with the full record in one step."""
        self.token_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.token_file.parent, prefix=".tokens-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(credential.to_record(), f, indent=2)
            os.replace(tmp_path, self.token_file)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        self.credential = credential
        logger.info("Tokens saved successfully")

    def clear(self) -> None:
        """Forget the credential and delete the token file (logout)."""
        self.credential = None
        if self.token_file.exists():
            self.token_file.unlink()
        logger.info("Tokens cleared")

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def has_valid_credential(self) -> bool:
        return self.credential is not None and self.credential.is_valid()

    def current_access_token(self) -> str:
        """
        Return the access token without refreshing.

        Raises:
            AuthenticationRequired: No valid credential (live mode)
        """
        if self.has_valid_credential():
            return self.credential.access_token

        if not self.live:
            return self.bootstrap_synthetic().access_token

        raise AuthenticationRequired("No valid access token available. Please authenticate first.")

    async def ensure_valid(self) -> str:
        """
        Return a valid access token, refreshing a stale one first.

        Concurrent callers with a stale credential share one refresh: the
        lock holder refreshes, the others re-check validity once they get in.

        Raises:
            AuthenticationRequired: No credential and no refresh token
            RefreshFailed: The refresh was rejected or could not be sent
        """
        if self.has_valid_credential():
            return self.credential.access_token

        if not self.live:
            return self.bootstrap_synthetic().access_token

        async with self._refresh_lock:
            if self.has_valid_credential():
                return self.credential.access_token

            if not self.credential or not self.credential.refresh_token:
                raise AuthenticationRequired(
                    "Authentication required. Please call outlook_authenticate first."
                )

            credential = await self.refresh()

        if not credential.is_valid():
            logger.error("Refreshed token already expires inside the safety margin")
            raise RefreshFailed(
                f"Refreshed token expires within {TOKEN_EXPIRY_MARGIN}s. Please re-authenticate."
            )
        return credential.access_token

    def token_status(self) -> dict:
        credential = self.credential
        expiry = None
        if credential and credential.expiry:
            expiry = datetime.fromtimestamp(credential.expiry / 1000, tz=timezone.utc).isoformat()

        return {
            "has_access_token": bool(credential and credential.access_token),
            "has_refresh_token": bool(credential and credential.refresh_token),
            "expiry": expiry,
            "is_valid": self.has_valid_credential(),
            "test_mode": not self.live,
        }

    # -------------------------------------------------------------------------
    # Token endpoint
    # -------------------------------------------------------------------------

    def _build_app(self) -> msal.ClientApplication:
        if CLIENT_SECRET:
            return msal.ConfidentialClientApplication(
                CLIENT_ID,
                authority=AUTHORITY,
                client_credential=CLIENT_SECRET,
            )
        return msal.PublicClientApplication(client_id=CLIENT_ID, authority=AUTHORITY)

    async def _token_request(
        self,
        grant: str,
        call: Callable[[msal.ClientApplication], dict],
        error_cls: type = RefreshFailed,
    ) -> dict:
        """Run one MSAL token call off the event loop and check the result."""
        if not CLIENT_ID:
            logger.error("Azure client id not configured in .env")
            raise error_cls("Azure client id not configured")

        try:
            app = self._build_app()
            result = await asyncio.to_thread(call, app)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Token {grant} error: {e}")
            raise error_cls(f"Failed to {grant} tokens: {e}") from e

        if not result or "access_token" not in result:
            result = result or {}
            description = result.get("error_description") or result.get("error") or "Unknown"
            logger.error(f"Token {grant} rejected: {description}")
            raise error_cls(f"Failed to {grant} tokens: {description}")

        return result

    @staticmethod
    def _credential_from_response(result: dict, fallback_refresh_token: Optional[str] = None) -> Credential:
        expires_in = int(result.get("expires_in", 3600))
        scope = result.get("scope") or SCOPES
        if isinstance(scope, str):
            scope = scope.split()

        return Credential(
            access_token=result["access_token"],
            # Some providers rotate refresh tokens, some don't
            refresh_token=result.get("refresh_token") or fallback_refresh_token,
            expiry=int((time.time() + expires_in) * 1000),
            scope=frozenset(scope),
        )

    async def refresh(self) -> Credential:
        """
        Exchange the refresh token for a new credential.

        Raises:
            AuthenticationRequired: There is no refresh token
            RefreshFailed: Transport or protocol error at the token endpoint
        """
        if not self.live:
            return self.bootstrap_synthetic()

        if not self.credential or not self.credential.refresh_token:
            raise AuthenticationRequired("No refresh token available. Please re-authenticate.")

        refresh_token = self.credential.refresh_token
        result = await self._token_request(
            "refresh",
            lambda app: app.acquire_token_by_refresh_token(refresh_token, scopes=SCOPES),
        )

        credential = self._credential_from_response(result, fallback_refresh_token=refresh_token)
        self._save(credential)
        logger.info("Tokens refreshed successfully")
        return credential

    async def exchange_code(self, code: str) -> Credential:
        """Exchange an authorization code from the consent redirect."""
        if not self.live:
            return self.bootstrap_synthetic()

        result = await self._token_request(
            "exchange",
            lambda app: app.acquire_token_by_authorization_code(
                code, scopes=SCOPES, redirect_uri=REDIRECT_URI
            ),
            error_cls=AuthenticationRequired,
        )

        credential = self._credential_from_response(result)
        self._save(credential)
        return credential

    def authorization_url(self, state: Optional[str] = None) -> Optional[str]:
        """Consent URL for the user, None in synthetic mode."""
        if not self.live:
            return None
        return self._build_app().get_authorization_request_url(
            SCOPES, redirect_uri=REDIRECT_URI, state=state
        )

    # -------------------------------------------------------------------------
    # Synthetic mode
    # -------------------------------------------------------------------------

    def bootstrap_synthetic(self) -> Credential:
        """Manufacture a short-lived credential without any network call."""
        stamp = int(time.time() * 1000)
        credential = Credential(
            access_token=f"test-access-token-{stamp}",
            refresh_token=f"test-refresh-token-{stamp}",
            expiry=stamp + SYNTHETIC_TOKEN_LIFETIME * 1000,
            scope=frozenset(SCOPES),
        )
        self._save(credential)
        logger.info("Test tokens created")
        return credential
