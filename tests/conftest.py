"""
Pytest fixtures and configuration for tests.
"""

import copy
import time
import pytest
from unittest.mock import MagicMock, patch

from outlook_gateway.auth import Credential, TokenManager
from outlook_gateway.gateway import GraphGateway, create_gateway
from outlook_gateway.synthetic import SyntheticDataset


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

def make_message(
    message_id,
    subject,
    sender="john@example.com",
    sender_name="John Doe",
    to=("jane@example.com",),
    received="2024-01-15T10:30:00Z",
    preview="",
    is_read=False,
    has_attachments=False,
):
    """Graph message resource with the fields search selects."""
    return {
        "id": message_id,
        "subject": subject,
        "from": {"emailAddress": {"name": sender_name, "address": sender}},
        "toRecipients": [{"emailAddress": {"name": "", "address": a}} for a in to],
        "receivedDateTime": received,
        "bodyPreview": preview,
        "isRead": is_read,
        "hasAttachments": has_attachments,
        "importance": "normal",
        "conversationId": f"conv-{message_id}",
    }


@pytest.fixture
def message_factory():
    """Build Graph message resources: message_factory(id, subject, **fields)."""
    return make_message


@pytest.fixture
def sample_email():
    """Sample email data from Graph API."""
    return {
        "id": "AAMkAGI2TG93AAA=",
        "subject": "Test Subject",
        "from": {
            "emailAddress": {
                "name": "John Doe",
                "address": "john@example.com"
            }
        },
        "toRecipients": [
            {
                "emailAddress": {
                    "name": "Jane Smith",
                    "address": "jane@example.com"
                }
            }
        ],
        "ccRecipients": [
            {
                "emailAddress": {
                    "name": "Bob Wilson",
                    "address": "bob@example.com"
                }
            }
        ],
        "receivedDateTime": "2024-01-15T10:30:00Z",
        "bodyPreview": "This is a preview of the email content...",
        "isRead": False,
        "hasAttachments": True,
        "conversationId": "AAQkAGI2TG93AAA=",
        "importance": "high"
    }


@pytest.fixture
def sample_email_with_body():
    """Sample email with full body from Graph API."""
    return {
        "id": "AAMkAGI2TG93AAA=",
        "subject": "Test Subject",
        "from": {
            "emailAddress": {
                "name": "John Doe",
                "address": "john@example.com"
            }
        },
        "toRecipients": [
            {
                "emailAddress": {
                    "name": "Jane Smith",
                    "address": "jane@example.com"
                }
            }
        ],
        "receivedDateTime": "2024-01-15T10:30:00Z",
        "body": {
            "contentType": "html",
            "content": "<html><body><p>Hello World</p></body></html>"
        },
        "isRead": True,
        "hasAttachments": False,
        "conversationId": "AAQkAGI2TG93AAA="
    }


@pytest.fixture
def budget_messages():
    """Inbox batch where only some messages mention the budget."""
    return [
        make_message("m1", "Q3 Budget Review", sender="cfo@company.com", received="2024-01-15T09:00:00Z"),
        make_message("m2", "Lunch plans", received="2024-01-16T12:00:00Z"),
        make_message("m3", "budget follow-up", sender="cfo@company.com", received="2024-01-17T08:00:00Z"),
        make_message("m4", "Team offsite", preview="Travel budget attached", received="2024-01-14T15:00:00Z",
                     has_attachments=True),
    ]


@pytest.fixture
def sample_html_email_body():
    """Sample HTML email body for parsing tests."""
    return """
    <html>
    <head>
        <style>
            .header { color: blue; }
        </style>
    </head>
    <body>
        <div class="header">
            <p>Hello World!</p>
        </div>
        <br>
        <p>This is a <strong>test</strong> email.</p>
        <script>alert('test');</script>
        <ul>
            <li>Item 1</li>
            <li>Item 2</li>
        </ul>
        <p>Special chars: &amp; &lt; &gt; &quot;</p>
    </body>
    </html>
    """


# =============================================================================
# TOKEN FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_token_file(tmp_path):
    """Keep every TokenManager away from the real token file."""
    token_file = tmp_path / "tokens.json"
    with patch("outlook_gateway.auth.TOKEN_FILE", token_file):
        yield token_file


@pytest.fixture
def valid_credential():
    """Credential expiring in one hour."""
    return Credential(
        access_token="valid-access-token",
        refresh_token="valid-refresh-token",
        expiry=int((time.time() + 3600) * 1000),
    )


@pytest.fixture
def stale_credential():
    """Credential expiring in two minutes, inside the refresh margin."""
    return Credential(
        access_token="stale-access-token",
        refresh_token="stale-refresh-token",
        expiry=int((time.time() + 120) * 1000),
    )


@pytest.fixture
def live_token_manager(isolated_token_file):
    """Live-mode token manager with no credential."""
    return TokenManager(token_file=isolated_token_file, live=True)


@pytest.fixture
def mock_msal_app():
    """Mock MSAL client application."""
    mock_app = MagicMock()
    mock_app.acquire_token_by_refresh_token.return_value = {
        "access_token": "refreshed-access-token",
        "refresh_token": "rotated-refresh-token",
        "expires_in": 3600,
        "token_type": "Bearer",
    }
    mock_app.acquire_token_by_authorization_code.return_value = {
        "access_token": "code-access-token",
        "refresh_token": "code-refresh-token",
        "expires_in": 3600,
    }
    mock_app.get_authorization_request_url.return_value = "https://login.microsoftonline.com/authorize?x=1"
    return mock_app


@pytest.fixture
def mock_graph_response():
    """Mock successful Graph API response."""
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.content = b'{"value": []}'
    mock_response.json.return_value = {"value": []}
    return mock_response


@pytest.fixture
def mock_graph_error_response():
    """Mock failed Graph API response."""
    mock_response = MagicMock()
    mock_response.status_code = 400
    mock_response.text = '{"error": {"code": "BadRequest", "message": "Invalid filter clause"}}'
    return mock_response


# =============================================================================
# GATEWAY FIXTURES
# =============================================================================

class ScriptedBackend:
    """
    Backend whose answers come from a responder function.

    The responder receives (endpoint, method, body) and returns a payload
    or raises. Every request is recorded in calls.
    """

    live = True

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    async def send(self, endpoint, method="GET", body=None, headers=None):
        self.calls.append({"endpoint": endpoint, "method": method, "body": copy.deepcopy(body)})
        return self.responder(endpoint, method, body)


@pytest.fixture
def scripted_gateway():
    """Factory: scripted_gateway(responder) -> (gateway, backend)."""
    def factory(responder):
        backend = ScriptedBackend(responder)
        return GraphGateway(backend), backend
    return factory


@pytest.fixture
def synthetic_dataset():
    return SyntheticDataset()


@pytest.fixture
def synthetic_gateway(synthetic_dataset):
    """Gateway answering from the fixture dataset."""
    return create_gateway(live=False, dataset=synthetic_dataset)


# =============================================================================
# CACHE FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def clear_caches():
    """Clear all caches before each test."""
    # Import here to avoid circular imports
    from outlook_gateway.cache import default_cache

    default_cache.clear()
    yield
    default_cache.clear()
