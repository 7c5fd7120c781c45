"""
Configuration module for the Outlook Graph gateway.
Handles environment variables and constants.
"""

import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# =============================================================================
# LOGGING
# =============================================================================

logger = logging.getLogger(__name__)

# =============================================================================
# ENVIRONMENT
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
load_dotenv(ENV_FILE)

CLIENT_ID = os.getenv("AZURE_CLIENT_ID")
CLIENT_SECRET = os.getenv("AZURE_CLIENT_SECRET")
TENANT_ID = os.getenv("AZURE_TENANT_ID", "common")
REDIRECT_URI = os.getenv("AZURE_REDIRECT_URI", "http://localhost:3000/auth/callback")

# Synthetic mode: no network, fixture data reshaped into Graph payloads
USE_TEST_MODE = os.getenv("USE_TEST_MODE", "false").lower() == "true"

# =============================================================================
# API CONFIGURATION
# =============================================================================

AUTHORITY = f"https://login.microsoftonline.com/{TENANT_ID}"
SCOPES = [
    "https://graph.microsoft.com/Mail.Read",
    "https://graph.microsoft.com/Mail.Send",
    "https://graph.microsoft.com/Mail.ReadWrite",
    "https://graph.microsoft.com/Calendars.Read",
    "https://graph.microsoft.com/Calendars.ReadWrite",
    "https://graph.microsoft.com/MailboxSettings.Read",
    "https://graph.microsoft.com/User.Read",
]

# Persisted credential record
TOKEN_FILE = Path(os.getenv("OUTLOOK_TOKEN_FILE", str(PROJECT_ROOT / ".outlook-tokens.json")))
GRAPH_ENDPOINT = "https://graph.microsoft.com/v1.0"

# Request timeout in seconds
REQUEST_TIMEOUT = 30

# =============================================================================
# TOKEN LIFECYCLE
# =============================================================================

# A credential is stale this many seconds before its real expiry
TOKEN_EXPIRY_MARGIN = 300
SYNTHETIC_TOKEN_LIFETIME = 3600

# =============================================================================
# CACHE SETTINGS
# =============================================================================

# Cache TTL settings (in seconds)
CACHE_TTL_EMAIL_BODY = 3600      # 1 hour - email bodies never change
CACHE_TTL_FOLDERS = 600          # 10 min - folders are rarely renamed

# =============================================================================
# SEARCH SETTINGS
# =============================================================================

MAX_SEARCH_RESULTS = 50
FALLBACK_MIN_BATCH = 50
FALLBACK_MAX_BATCH = 200
FALLBACK_MULTIPLIER = 5
