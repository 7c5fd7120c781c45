"""
Gateway module for Microsoft Graph API requests.

GraphGateway.request() is the single chokepoint for upstream calls. The
backend decides what a request means: LiveBackend sends it over HTTP with
a bearer token, SyntheticBackend answers it from fixture data.
"""

import asyncio
import logging
from typing import Optional, Protocol
from urllib.parse import urlencode, quote

import requests

from .config import GRAPH_ENDPOINT, REQUEST_TIMEOUT, USE_TEST_MODE
from .auth import TokenManager
from .errors import TransportError, UpstreamError
from .synthetic import SyntheticBackend, SyntheticDataset

logger = logging.getLogger(__name__)


# =============================================================================
# QUERY HELPERS
# =============================================================================

def with_query(endpoint: str, params: Optional[dict] = None) -> str:
    """
    Append URL-encoded query parameters to an endpoint.

    Args:
        endpoint: API endpoint, may already carry a query string
        params: Collection-query keys ($top, $filter, ...); None values skipped

    Returns:
        Endpoint with the encoded query appended
    """
    params = {key: value for key, value in (params or {}).items() if value is not None}
    if not params:
        return endpoint

    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode(params, quote_via=quote, safe='$,/')}"


# =============================================================================
# BACKENDS
# =============================================================================

class GraphBackend(Protocol):
    live: bool

    async def send(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        ...


class LiveBackend:
    """
    Sends requests to the Graph API.

    Args:
        token_manager: Source of bearer tokens (refreshes stale ones)
        base_url: Graph API root (default: GRAPH_ENDPOINT)
        timeout: Per-request timeout in seconds
    """

    live = True

    def __init__(
        self,
        token_manager: TokenManager,
        base_url: str = GRAPH_ENDPOINT,
        timeout: int = REQUEST_TIMEOUT,
    ):
        self.token_manager = token_manager
        self.base_url = base_url
        self.timeout = timeout

    async def send(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        token = await self.token_manager.ensure_valid()

        request_headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        # Caller headers win on conflict
        request_headers.update(headers or {})

        # @odata.nextLink values are absolute
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"

        try:
            response = await asyncio.to_thread(
                requests.request,
                method,
                url,
                headers=request_headers,
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timeout after {self.timeout}s: {endpoint}")
            raise TransportError(f"Request timeout after {self.timeout}s: {endpoint}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise TransportError(f"Request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"API error {response.status_code}: {response.text[:200]}")
            raise UpstreamError(response.status_code, response.text, endpoint)

        # sendMail, reply, accept, ... answer 202/204 without a body
        if response.status_code in (202, 204) or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Undecodable response from {endpoint}: {response.text[:200]}")
            raise UpstreamError(response.status_code, response.text, endpoint) from e


# =============================================================================
# GATEWAY
# =============================================================================

class GraphGateway:
    """Single entry point for every Graph request, live or synthetic."""

    def __init__(self, backend: GraphBackend):
        self.backend = backend

    @property
    def live(self) -> bool:
        return self.backend.live

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """
        Issue one request.

        Raises:
            AuthenticationRequired: No usable credential (live mode)
            UpstreamError: Non-2xx response, status and body preserved
            TransportError: Timeout or connection failure
        """
        method = method.upper()
        logger.debug(f"{method} {endpoint}")
        return await self.backend.send(endpoint, method, body, headers)

    async def get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        return await self.request(with_query(endpoint, params))

    async def post(self, endpoint: str, body: Optional[dict] = None) -> dict:
        return await self.request(endpoint, "POST", body)

    async def patch(self, endpoint: str, body: dict) -> dict:
        return await self.request(endpoint, "PATCH", body)

    async def delete(self, endpoint: str) -> dict:
        return await self.request(endpoint, "DELETE")


def create_gateway(
    live: Optional[bool] = None,
    token_manager: Optional[TokenManager] = None,
    dataset: Optional[SyntheticDataset] = None,
) -> GraphGateway:
    """
    Build a gateway for the configured mode.

    The mode is read once here (default: not USE_TEST_MODE) and never
    re-evaluated per call.
    """
    live = (not USE_TEST_MODE) if live is None else live
    if live:
        return GraphGateway(LiveBackend(token_manager or TokenManager(live=True)))

    logger.info("Gateway running in synthetic mode")
    return GraphGateway(SyntheticBackend(dataset))
