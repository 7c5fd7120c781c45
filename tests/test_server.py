"""
Tests for the MCP server module.
"""

import json
import pytest
from unittest.mock import patch, AsyncMock

# Import handlers (these are async)
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mcp_server.server import (
    HANDLERS,
    call_tool,
    list_tools,
    handle_authenticate,
    handle_search_emails,
    handle_read_email,
    handle_move_emails,
)
from outlook_gateway.auth import TokenManager
from outlook_gateway.errors import AuthenticationRequired, FolderNotFoundError
from outlook_gateway.service import OutlookService


@pytest.fixture
def synthetic_service(isolated_token_file):
    """Server-wide service in synthetic mode."""
    service = OutlookService(live=False, token_manager=TokenManager(token_file=isolated_token_file, live=False))
    with patch("mcp_server.server._service", service):
        yield service


@pytest.fixture
def live_service(isolated_token_file):
    """Server-wide service in live mode without any credential."""
    service = OutlookService(live=True, token_manager=TokenManager(token_file=isolated_token_file, live=True))
    with patch("mcp_server.server._service", service):
        yield service


def payload(result):
    assert len(result) == 1
    return json.loads(result[0].text)


class TestListTools:
    """Tests for the tool catalogue."""

    @pytest.mark.asyncio
    async def test_every_tool_has_a_handler(self):
        """Test that listed tools and handlers match one to one."""
        tools = await list_tools()
        names = {tool.name for tool in tools}

        assert names == set(HANDLERS)
        assert "outlook_search_emails" in names
        assert all(tool.inputSchema["type"] == "object" for tool in tools)


class TestHandleSearchEmails:
    """Tests for the search handler."""

    @pytest.mark.asyncio
    async def test_arguments_become_criteria(self, synthetic_service):
        """Test that tool arguments map onto search criteria."""
        with patch("mcp_server.server.search_emails", new=AsyncMock(return_value={"count": 0})) as mock_search:
            await handle_search_emails({
                "query": "budget",
                "from": "lisa",
                "to": "dev",
                "unread_only": False,
                "folder": "PORTAEH",
                "count": 5,
            })

        args, kwargs = mock_search.call_args
        criteria = args[1]
        assert criteria.text == "budget"
        assert criteria.sender == "lisa"
        assert criteria.recipient == "dev"
        assert criteria.subject is None
        assert criteria.unread_only is False
        assert criteria.has_attachments is None
        assert kwargs == {"folder": "PORTAEH", "count": 5}

    @pytest.mark.asyncio
    async def test_search_synthetic(self, synthetic_service):
        """Test a search end to end in synthetic mode."""
        result = await handle_search_emails({"subject": "budget"})

        assert result["count"] == 2
        assert result["strategy"] == "combined-search"


class TestOtherHandlers:
    """Tests for argument checks in handlers."""

    @pytest.mark.asyncio
    async def test_read_email_missing_id(self, synthetic_service):
        """Test handler with missing email_id."""
        result = await handle_read_email({})
        assert "error" in result

    @pytest.mark.asyncio
    async def test_move_emails_missing_destination(self, synthetic_service):
        result = await handle_move_emails({"email_ids": ["email-004"]})
        assert "error" in result

    @pytest.mark.asyncio
    async def test_authenticate_synthetic(self, synthetic_service):
        """Test that synthetic mode authenticates without a browser."""
        result = await handle_authenticate({})

        assert result["success"] is True
        assert synthetic_service.token_manager.has_valid_credential()

    @pytest.mark.asyncio
    async def test_authenticate_live_returns_consent_url(self, live_service):
        """Test that live mode without a credential hands out the consent URL."""
        with patch.object(live_service.token_manager, "authorization_url", return_value="https://login/authorize"):
            result = await handle_authenticate({})

        assert result["success"] is False
        assert result["auth_url"] == "https://login/authorize"

    @pytest.mark.asyncio
    async def test_authenticate_with_code(self, live_service):
        """Test that a code is exchanged for tokens."""
        with patch.object(live_service.token_manager, "exchange_code", new=AsyncMock()) as mock_exchange:
            result = await handle_authenticate({"code": "abc"})

        mock_exchange.assert_awaited_once_with("abc")
        assert result["success"] is True


class TestCallTool:
    """Tests for the main call_tool function."""

    @pytest.mark.asyncio
    async def test_call_tool_unknown_tool(self, synthetic_service):
        """Test call with unknown tool name."""
        content = payload(await call_tool("nonexistent_tool", {}))
        assert content["error"] == "Unknown tool: nonexistent_tool"

    @pytest.mark.asyncio
    async def test_call_tool_list_emails(self, synthetic_service):
        """Test calling a tool in synthetic mode."""
        content = payload(await call_tool("outlook_list_emails", {"folder": "PORTAEH"}))

        assert content["count"] == 2
        assert content["emails"][0]["id"] == "email-011"

    @pytest.mark.asyncio
    async def test_call_tool_authentication_required(self, live_service):
        """Test that a missing credential yields the re-authenticate message."""
        content = payload(await call_tool("outlook_list_emails", {}))

        assert content["error"] == "Authentication required"
        assert "outlook_authenticate" in content["message"]

    @pytest.mark.asyncio
    async def test_call_tool_refresh_failure_maps_to_authentication(self, synthetic_service):
        """Test that refresh failures are reported as authentication errors."""
        failing = AsyncMock(side_effect=AuthenticationRequired("Failed to refresh tokens: invalid_grant"))

        with patch.dict("mcp_server.server.HANDLERS", {"outlook_list_rules": failing}):
            content = payload(await call_tool("outlook_list_rules", {}))

        assert content["error"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_call_tool_folder_not_found(self, synthetic_service):
        """Test that folder errors list the available folders."""
        content = payload(await call_tool("outlook_list_emails", {"folder": "Nowhere"}))

        assert content["error"] == "FolderNotFoundError"
        assert "PORTAEH" in content["available_folders"]

    @pytest.mark.asyncio
    async def test_call_tool_invalid_id(self, synthetic_service):
        """Test that malformed ids are reported, not raised."""
        content = payload(await call_tool("outlook_read_email", {"email_id": "bad id"}))
        assert content["error"] == "InvalidIdentifierError"

    @pytest.mark.asyncio
    async def test_call_tool_exception_handling(self, synthetic_service):
        """Test that exceptions are properly caught and returned."""
        failing = AsyncMock(side_effect=RuntimeError("Test error"))

        with patch.dict("mcp_server.server.HANDLERS", {"outlook_search_emails": failing}):
            content = payload(await call_tool("outlook_search_emails", {"query": "test"}))

        assert content == {"error": "RuntimeError", "message": "Test error"}

    @pytest.mark.asyncio
    async def test_call_tool_token_status(self, synthetic_service):
        """Test the token status tool."""
        content = payload(await call_tool("outlook_token_status", {}))

        assert content["test_mode"] is True

    @pytest.mark.asyncio
    async def test_call_tool_mark_several(self, synthetic_service):
        """Test that email_ids switches mark_as_read to a batch."""
        content = payload(await call_tool("outlook_mark_as_read", {"email_ids": ["email-004", "bad id"]}))

        assert content["stats"] == {"total": 2, "successful": 1, "failed": 1}

    @pytest.mark.asyncio
    async def test_call_tool_mark_without_ids(self, synthetic_service):
        content = payload(await call_tool("outlook_mark_as_read", {}))
        assert "error" in content
