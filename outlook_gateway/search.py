"""
Progressive email search.

Graph's $filter support is uneven: some predicate combinations are rejected,
others silently return no rows. Searching therefore runs a cascade of
strategies, most specific first, and stops at the first one that yields
matching messages:

    1. combined-search          every predicate in one $filter
    2. single-term-<predicate>  subject, sender, recipient, text in turn
    3. boolean-filters-only     attachment / read-state flags only
    4. client-side-filtering    recent batch, no server filter

Whatever a strategy returns goes through the same strict post-filter, so
strategies 1-3 only make the search cheaper; strategy 4 plus the
post-filter is what makes it correct.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Optional

from .config import (
    MAX_SEARCH_RESULTS,
    FALLBACK_MIN_BATCH,
    FALLBACK_MAX_BATCH,
    FALLBACK_MULTIPLIER,
)
from .errors import TransportError, UpstreamError
from .gateway import GraphGateway

logger = logging.getLogger(__name__)

# Fields retrieved for search results
EMAIL_SELECT_FIELDS = ",".join([
    "id",
    "subject",
    "receivedDateTime",
    "from",
    "toRecipients",
    "ccRecipients",
    "bodyPreview",
    "hasAttachments",
    "isRead",
    "importance",
    "conversationId",
])

# Most selective first
TEXT_PREDICATES = ("subject", "sender", "recipient", "text")


# =============================================================================
# TYPES
# =============================================================================

@dataclass
class SearchCriteria:
    """
    Conjunction of optional predicates. Blank strings count as absent.

    has_attachments and unread_only are tri-state: None places no
    constraint, True/False require the flag to be set/unset.
    """

    subject: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    text: Optional[str] = None
    has_attachments: Optional[bool] = None
    unread_only: Optional[bool] = None

    def __post_init__(self):
        for name in TEXT_PREDICATES:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, str(value).strip() or None)

    def text_predicates(self) -> list[tuple[str, str]]:
        """Present text predicates in priority order."""
        return [(name, getattr(self, name)) for name in TEXT_PREDICATES if getattr(self, name)]

    def has_flags(self) -> bool:
        return self.has_attachments is not None or self.unread_only is not None

    def is_empty(self) -> bool:
        return not self.text_predicates() and not self.has_flags()


@dataclass
class SearchAttempt:
    """Diagnostic record of one strategy run."""

    strategy: str
    params: dict
    outcome: str = "pending"  # matched | empty | filtered-out | error
    count: int = 0
    error: Optional[str] = None


@dataclass
class SearchResult:
    items: list[dict]
    attempts: list[SearchAttempt] = field(default_factory=list)

    @property
    def attempted_strategies(self) -> list[str]:
        return [attempt.strategy for attempt in self.attempts]

    @property
    def strategy(self) -> Optional[str]:
        """Strategy that produced the items (the last one attempted)."""
        return self.attempts[-1].strategy if self.attempts else None

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "attempted_strategies": self.attempted_strategies,
            "attempts": [asdict(attempt) for attempt in self.attempts],
        }


# =============================================================================
# FILTER BUILDING
# =============================================================================

def _odata_quote(value: str) -> str:
    return value.replace("'", "''")


def predicate_filter(name: str, value: str) -> str:
    """OData condition for one text predicate."""
    value = _odata_quote(value)
    if name == "subject":
        return f"contains(subject, '{value}')"
    if name == "sender":
        return f"contains(from/emailAddress/address, '{value}')"
    if name == "recipient":
        return f"contains(toRecipients/emailAddress/address, '{value}')"
    if name == "text":
        return f"(contains(subject, '{value}') or contains(bodyPreview, '{value}'))"
    raise ValueError(f"Unknown search predicate: {name}")


def boolean_filter(criteria: SearchCriteria) -> Optional[str]:
    conditions = []
    if criteria.has_attachments is not None:
        conditions.append(f"hasAttachments eq {str(criteria.has_attachments).lower()}")
    if criteria.unread_only is not None:
        conditions.append(f"isRead eq {str(not criteria.unread_only).lower()}")
    return " and ".join(conditions) or None


def _combine(conditions: list[str], flags: Optional[str]) -> Optional[str]:
    search_filter = " and ".join(conditions)
    if search_filter and flags:
        return f"({search_filter}) and ({flags})"
    return search_filter or flags


def build_combined_filter(criteria: SearchCriteria) -> Optional[str]:
    """Every predicate and flag in one expression, None for empty criteria."""
    conditions = [predicate_filter(name, value) for name, value in criteria.text_predicates()]
    return _combine(conditions, boolean_filter(criteria))


def build_single_filter(criteria: SearchCriteria, name: str) -> Optional[str]:
    """One text predicate plus the boolean flags."""
    return _combine([predicate_filter(name, getattr(criteria, name))], boolean_filter(criteria))


# =============================================================================
# POST-FILTER
# =============================================================================

def _contains(needle: str, *haystacks: Optional[str]) -> bool:
    needle = needle.lower()
    return any(needle in (h or "").lower() for h in haystacks)


def matches_criteria(message: dict, criteria: SearchCriteria) -> bool:
    """True if the message satisfies every supplied predicate."""
    if criteria.subject and not _contains(criteria.subject, message.get("subject")):
        return False

    if criteria.sender:
        sender = (message.get("from") or {}).get("emailAddress") or {}
        if not _contains(criteria.sender, sender.get("address"), sender.get("name")):
            return False

    if criteria.recipient:
        recipients = [(r or {}).get("emailAddress") or {} for r in message.get("toRecipients") or []]
        if not any(_contains(criteria.recipient, r.get("address"), r.get("name")) for r in recipients):
            return False

    if criteria.text:
        body = (message.get("body") or {}).get("content")
        if not _contains(criteria.text, message.get("subject"), message.get("bodyPreview"), body):
            return False

    if criteria.has_attachments is not None:
        if bool(message.get("hasAttachments")) != criteria.has_attachments:
            return False

    if criteria.unread_only is not None:
        if bool(message.get("isRead")) == criteria.unread_only:
            return False

    return True


def post_filter(messages: list[dict], criteria: SearchCriteria) -> list[dict]:
    return [m for m in messages if matches_criteria(m, criteria)]


def sort_by_recency(messages: list[dict]) -> list[dict]:
    """Most recent first; equal timestamps keep their batch order."""
    return sorted(messages, key=lambda m: m.get("receivedDateTime") or "", reverse=True)


# =============================================================================
# SEARCH ENGINE
# =============================================================================

class ProgressiveSearch:
    """
    Runs the strategy cascade against a message collection.

    Args:
        gateway: Gateway every strategy request goes through
        max_results: Upper bound for the requested result count
    """

    def __init__(self, gateway: GraphGateway, max_results: int = MAX_SEARCH_RESULTS):
        self.gateway = gateway
        self.max_results = max_results

    @staticmethod
    def fallback_batch_size(count: int) -> int:
        """At least 50 and at most 200 recent messages, 5x count in between."""
        return min(FALLBACK_MAX_BATCH, max(count * FALLBACK_MULTIPLIER, FALLBACK_MIN_BATCH))

    @staticmethod
    def _params(top: int, filter_expr: Optional[str] = None) -> dict:
        params = {
            "$top": top,
            "$select": EMAIL_SELECT_FIELDS,
            "$orderby": "receivedDateTime desc",
        }
        if filter_expr:
            params["$filter"] = filter_expr
        return params

    async def _attempt(
        self,
        attempts: list[SearchAttempt],
        strategy: str,
        endpoint: str,
        params: dict,
        criteria: SearchCriteria,
        raise_errors: bool = False,
    ) -> list[dict]:
        """
        Run one strategy and post-filter its candidates.

        Upstream and transport errors count as an empty outcome unless
        raise_errors is set. AuthenticationRequired always propagates.
        """
        attempt = SearchAttempt(strategy=strategy, params=params)
        attempts.append(attempt)
        logger.info(f"Attempting {strategy} with params: {params}")

        try:
            response = await self.gateway.get(endpoint, params)
        except (UpstreamError, TransportError) as e:
            attempt.outcome = "error"
            attempt.error = str(e)
            if raise_errors:
                raise
            logger.warning(f"Search with {strategy} failed: {e}")
            return []

        candidates = response.get("value") or []
        matched = post_filter(candidates, criteria)
        attempt.count = len(matched)

        if matched:
            attempt.outcome = "matched"
        elif candidates:
            attempt.outcome = "filtered-out"
            logger.info(f"{strategy} returned {len(candidates)} results, none matched after strict filtering")
        else:
            attempt.outcome = "empty"

        return matched

    def _finish(self, items: list[dict], attempts: list[SearchAttempt], count: int) -> SearchResult:
        result = SearchResult(items=sort_by_recency(items)[:count], attempts=attempts)
        logger.info(f"Search complete: {len(result.items)} results via {result.strategy}")
        return result

    async def search(
        self,
        criteria: SearchCriteria,
        count: int = 10,
        endpoint: str = "/me/messages",
    ) -> SearchResult:
        """
        Search a message collection.

        Args:
            criteria: Predicates every result must satisfy
            count: Maximum number of results (capped at max_results)
            endpoint: Message collection, e.g. /me/mailFolders/{id}/messages

        Returns:
            SearchResult with the matching messages, most recent first,
            and the attempted strategies. An empty result is not an error.

        Raises:
            AuthenticationRequired: From any strategy
            UpstreamError, TransportError: From the final strategy only
        """
        count = max(1, min(count, self.max_results))
        attempts: list[SearchAttempt] = []

        # Empty criteria: tier 1 is a plain fetch and its answer is final
        if criteria.is_empty():
            items = await self._attempt(
                attempts, "combined-search", endpoint, self._params(count), criteria, raise_errors=True
            )
            return self._finish(items, attempts, count)

        items = await self._attempt(
            attempts, "combined-search", endpoint,
            self._params(count, build_combined_filter(criteria)), criteria,
        )
        if items:
            return self._finish(items, attempts, count)

        for name, _ in criteria.text_predicates():
            items = await self._attempt(
                attempts, f"single-term-{name}", endpoint,
                self._params(count, build_single_filter(criteria, name)), criteria,
            )
            if items:
                return self._finish(items, attempts, count)

        if criteria.has_flags():
            items = await self._attempt(
                attempts, "boolean-filters-only", endpoint,
                self._params(count, boolean_filter(criteria)), criteria,
            )
            if items:
                return self._finish(items, attempts, count)

        logger.info("All search strategies failed, falling back to client-side filtering of recent emails")
        items = await self._attempt(
            attempts, "client-side-filtering", endpoint,
            self._params(self.fallback_batch_size(count)), criteria, raise_errors=True,
        )
        return self._finish(items, attempts, count)
