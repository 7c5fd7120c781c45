"""
Tests for the emails module.
"""

import pytest

from outlook_gateway.cache import default_cache
from outlook_gateway.errors import FolderNotFoundError, InvalidIdentifierError, UpstreamError
from outlook_gateway.emails import (
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
from outlook_gateway.search import SearchCriteria


def email_ids(result):
    return [email["id"] for email in result["emails"]]


class TestIsValidGraphId:
    """Tests for id validation."""

    def test_valid_ids(self):
        """Test valid Graph and fixture ids."""
        assert is_valid_graph_id("AAMkAGI2TG93AAA=") is True
        assert is_valid_graph_id("AAMk-AGI2_TG93+AAA=") is True
        assert is_valid_graph_id("email-001") is True

    def test_invalid_empty(self):
        """Test empty and missing ids."""
        assert is_valid_graph_id("") is False
        assert is_valid_graph_id(None) is False

    def test_invalid_too_long(self):
        """Test overly long ids."""
        assert is_valid_graph_id("A" * 501) is False

    def test_invalid_path_and_odata_characters(self):
        """Test ids that would alter the request path or a filter."""
        assert is_valid_graph_id("../me/mailFolders") is False
        assert is_valid_graph_id("abc' or 1 eq 1") is False
        assert is_valid_graph_id("id with spaces") is False


class TestListEmails:
    """Tests for folder listings (synthetic data)."""

    @pytest.mark.asyncio
    async def test_list_inbox(self, synthetic_gateway):
        """Test newest inbox emails first."""
        result = await list_emails(synthetic_gateway, "inbox", count=3)

        assert result["count"] == 3
        assert email_ids(result) == ["email-012", "email-010", "email-009"]

    @pytest.mark.asyncio
    async def test_list_unread_only(self, synthetic_gateway):
        """Test that unread_only filters read emails out."""
        result = await list_emails(synthetic_gateway, "inbox", count=10, unread_only=True)

        assert email_ids(result) == ["email-012", "email-009", "email-004", "email-002"]
        assert all(not email["is_read"] for email in result["emails"])

    @pytest.mark.asyncio
    async def test_list_custom_folder(self, synthetic_gateway):
        """Test listing a nested custom folder by display name."""
        result = await list_emails(synthetic_gateway, "PORTAEH")
        assert email_ids(result) == ["email-011", "email-003"]

    @pytest.mark.asyncio
    async def test_list_unknown_folder(self, synthetic_gateway):
        """Test that an unknown folder reports the available ones."""
        with pytest.raises(FolderNotFoundError) as exc_info:
            await list_emails(synthetic_gateway, "Nonexistent")

        assert "PORTAEH" in exc_info.value.available
        assert "Inbox" in exc_info.value.available


class TestSearchEmails:
    """Tests for search through the gateway (synthetic data)."""

    @pytest.mark.asyncio
    async def test_search_subject(self, synthetic_gateway):
        """Test subject search in the inbox."""
        result = await search_emails(synthetic_gateway, SearchCriteria(subject="budget"), "inbox")

        assert email_ids(result) == ["email-009", "email-004"]
        assert result["strategy"] == "combined-search"
        assert result["attempted_strategies"] == ["combined-search"]

    @pytest.mark.asyncio
    async def test_search_sender_name(self, synthetic_gateway):
        """Test sender search."""
        result = await search_emails(synthetic_gateway, SearchCriteria(sender="lisa"), "inbox")
        assert email_ids(result) == ["email-004"]

    @pytest.mark.asyncio
    async def test_search_whole_mailbox(self, synthetic_gateway):
        """Test free-text search across all folders."""
        result = await search_emails(synthetic_gateway, SearchCriteria(text="budget"), folder=None)
        assert email_ids(result) == ["email-009", "email-004", "email-003"]

    @pytest.mark.asyncio
    async def test_search_with_flags(self, synthetic_gateway):
        """Test that flags narrow the results."""
        criteria = SearchCriteria(subject="budget", has_attachments=True)
        result = await search_emails(synthetic_gateway, criteria, "inbox")
        assert email_ids(result) == ["email-004"]

    @pytest.mark.asyncio
    async def test_search_no_results(self, synthetic_gateway):
        """Test that finding nothing is a normal, empty result."""
        result = await search_emails(synthetic_gateway, SearchCriteria(subject="quarterly pizza"), "inbox")

        assert result["count"] == 0
        assert result["emails"] == []
        assert "No emails found" in result["message"]
        assert result["attempted_strategies"][-1] == "client-side-filtering"


class TestReadEmail:
    """Tests for reading a single email."""

    @pytest.mark.asyncio
    async def test_read_email(self, synthetic_gateway):
        """Test full body retrieval."""
        result = await read_email(synthetic_gateway, "email-004")

        assert result["subject"] == "Budget Review FY2026"
        assert result["from"]["name"] == "Lisa Chen"
        assert "first draft" in result["body"]

    @pytest.mark.asyncio
    async def test_read_email_cached(self, scripted_gateway, sample_email_with_body):
        """Test that a second read is served from the cache."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: sample_email_with_body)

        first = await read_email(gateway, "AAMkAGI2TG93AAA=")
        second = await read_email(gateway, "AAMkAGI2TG93AAA=")

        assert first == second
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_read_email_html(self, scripted_gateway, sample_email_with_body):
        """Test that html format keeps the markup."""
        gateway, _ = scripted_gateway(lambda endpoint, method, body: sample_email_with_body)

        result = await read_email(gateway, "AAMkAGI2TG93AAA=", format="html")
        assert "<p>" in result["body"]

    @pytest.mark.asyncio
    async def test_read_email_invalid_id(self, scripted_gateway):
        """Test that a malformed id is rejected before any request."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        with pytest.raises(InvalidIdentifierError):
            await read_email(gateway, "../messages")

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_read_email_not_found(self, synthetic_gateway):
        """Test that an unknown id surfaces the upstream 404."""
        with pytest.raises(UpstreamError) as exc_info:
            await read_email(synthetic_gateway, "email-999")
        assert exc_info.value.status_code == 404


class TestSendAndReply:
    """Tests for sending and replying."""

    @pytest.mark.asyncio
    async def test_send_email(self, scripted_gateway):
        """Test the sendMail payload."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        result = await send_email(
            gateway,
            to=["jane@example.com"],
            subject="Hello",
            body="<p>Hi</p>",
            cc=["bob@example.com"],
            importance="high",
        )

        assert result["success"] is True
        call = backend.calls[0]
        assert call["endpoint"] == "/me/sendMail"
        assert call["method"] == "POST"
        message = call["body"]["message"]
        assert message["toRecipients"] == [{"emailAddress": {"address": "jane@example.com"}}]
        assert message["ccRecipients"] == [{"emailAddress": {"address": "bob@example.com"}}]
        assert "bccRecipients" not in message
        assert message["importance"] == "high"
        assert call["body"]["saveToSentItems"] is True

    @pytest.mark.asyncio
    async def test_send_email_synthetic(self, synthetic_gateway):
        """Test sending in synthetic mode."""
        result = await send_email(synthetic_gateway, ["jane@example.com"], "Hello", "Body")
        assert result["message_id"].startswith("synthetic-sent-")

    @pytest.mark.asyncio
    async def test_send_email_missing_fields(self, synthetic_gateway):
        """Test that recipients, subject and body are required."""
        with pytest.raises(ValueError):
            await send_email(synthetic_gateway, [], "Hello", "Body")
        with pytest.raises(ValueError):
            await send_email(synthetic_gateway, ["jane@example.com"], "", "Body")

    @pytest.mark.asyncio
    async def test_send_email_bad_address(self, scripted_gateway):
        """Test that malformed addresses are rejected before sending."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        with pytest.raises(InvalidIdentifierError):
            await send_email(gateway, ["not-an-address"], "Hello", "Body")

        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_reply_all(self, scripted_gateway):
        """Test that reply_all uses the replyAll action."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        await reply_email(gateway, "email-004", "Thanks!", reply_all=True)

        assert backend.calls[0]["endpoint"] == "/me/messages/email-004/replyAll"
        assert backend.calls[0]["body"] == {"comment": "Thanks!"}

    @pytest.mark.asyncio
    async def test_reply_synthetic(self, synthetic_gateway):
        result = await reply_email(synthetic_gateway, "email-004", "Thanks!")
        assert result["success"] is True


class TestMarkAsRead:
    """Tests for read-state updates."""

    @pytest.mark.asyncio
    async def test_mark_as_read(self, scripted_gateway):
        """Test the PATCH payload."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        await mark_as_read(gateway, "email-004", is_read=False)

        assert backend.calls[0]["method"] == "PATCH"
        assert backend.calls[0]["body"] == {"isRead": False}

    @pytest.mark.asyncio
    async def test_mark_as_read_invalidates_cache(self, scripted_gateway, sample_email_with_body):
        """Test that a cached body is dropped after the update."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: sample_email_with_body)

        await read_email(gateway, "AAMkAGI2TG93AAA=")
        await mark_as_read(gateway, "AAMkAGI2TG93AAA=")

        assert default_cache.get("email_body:AAMkAGI2TG93AAA=:text") is None

    @pytest.mark.asyncio
    async def test_mark_several(self, synthetic_gateway):
        """Test that a batch reports each email and the totals."""
        result = await mark_emails_as_read(synthetic_gateway, ["email-004", "email-999", "email-004"])

        assert result["is_read"] is True
        assert result["stats"] == {"total": 2, "successful": 1, "failed": 1}
        assert [r["id"] for r in result["results"]] == ["email-004", "email-999"]

    @pytest.mark.asyncio
    async def test_mark_several_skips_invalid_ids(self, scripted_gateway):
        """Test that malformed ids are reported without a request."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        result = await mark_emails_as_read(gateway, ["bad id", "email-001"], is_read=False)

        assert result["stats"]["failed"] == 1
        assert [c["endpoint"] for c in backend.calls] == ["/me/messages/email-001"]


class TestMoveEmails:
    """Tests for batch moves."""

    @pytest.mark.asyncio
    async def test_move_emails(self, synthetic_gateway):
        """Test that duplicates are moved once and each gets a result."""
        result = await move_emails(synthetic_gateway, ["email-004", "email-009", "email-004"], "Archive")

        assert result["stats"] == {"total": 2, "successful": 2, "failed": 0}
        assert all(r["new_id"].startswith("synthetic-message-") for r in result["results"])

    @pytest.mark.asyncio
    async def test_move_emails_partial_failure(self, synthetic_gateway):
        """Test that one failure does not stop the batch."""
        result = await move_emails(synthetic_gateway, ["email-999", "bad id", "email-004"], "PORTAEH")

        assert result["stats"] == {"total": 3, "successful": 1, "failed": 2}
        outcomes = {r["id"]: r["success"] for r in result["results"]}
        assert outcomes == {"email-999": False, "bad id": False, "email-004": True}

    @pytest.mark.asyncio
    async def test_move_single_id_string(self, synthetic_gateway):
        """Test that a single id string is accepted."""
        result = await move_emails(synthetic_gateway, "email-004", "inbox")
        assert result["stats"]["successful"] == 1

    @pytest.mark.asyncio
    async def test_move_empty(self, scripted_gateway):
        """Test that an empty batch sends nothing."""
        gateway, backend = scripted_gateway(lambda endpoint, method, body: {})

        result = await move_emails(gateway, [], "Archive")

        assert result["stats"]["total"] == 0
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_move_unknown_destination(self, synthetic_gateway):
        """Test that an unknown destination folder fails the whole batch."""
        with pytest.raises(FolderNotFoundError):
            await move_emails(synthetic_gateway, ["email-004"], "Nowhere")
