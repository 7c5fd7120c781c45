"""
Service facade.

Wires the token manager, the gateway and progressive search together for
one process. The mode (live or synthetic) is fixed when the service is
built.
"""

import logging
from typing import Optional

from .config import USE_TEST_MODE
from .auth import TokenManager
from .gateway import GraphGateway, create_gateway
from .search import ProgressiveSearch, SearchCriteria, SearchResult
from .synthetic import SyntheticDataset

logger = logging.getLogger(__name__)


class OutlookService:
    """
    Args:
        live: Live Graph mode, False for synthetic (default: not USE_TEST_MODE)
        token_manager: Credential owner (default: a new TokenManager)
        gateway: Pre-built gateway, e.g. a scripted one in tests
        dataset: Fixture data for synthetic mode
    """

    def __init__(
        self,
        live: Optional[bool] = None,
        token_manager: Optional[TokenManager] = None,
        gateway: Optional[GraphGateway] = None,
        dataset: Optional[SyntheticDataset] = None,
    ):
        self.live = (not USE_TEST_MODE) if live is None else live
        self.token_manager = token_manager or TokenManager(live=self.live)
        self.gateway = gateway or create_gateway(self.live, self.token_manager, dataset)
        self.searcher = ProgressiveSearch(self.gateway)
        logger.info(f"Outlook service ready ({'live' if self.live else 'synthetic'} mode)")

    async def ensure_authenticated(self) -> str:
        """
        Return a valid access token.

        Raises:
            AuthenticationRequired: Live mode without a usable credential
        """
        return await self.token_manager.ensure_valid()

    async def graph_request(self, endpoint: str, options: Optional[dict] = None) -> dict:
        """
        Issue one Graph request.

        Args:
            endpoint: Path relative to the Graph root, query string included
            options: Optional "method", "body" and "headers"
        """
        options = options or {}
        return await self.gateway.request(
            endpoint,
            options.get("method", "GET"),
            options.get("body"),
            options.get("headers"),
        )

    async def progressive_search(
        self,
        criteria: SearchCriteria,
        count: int = 10,
        endpoint: str = "/me/messages",
    ) -> SearchResult:
        return await self.searcher.search(criteria, count, endpoint)
