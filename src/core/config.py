"""
Configuration constants and environment setup.
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "calendar-split.db"
CALENDAR_COLUMNS_FILE = Path(
    os.environ.get("CALENDAR_COLUMNS_FILE", PROJECT_ROOT / "data" / "calendars.json")
)

# =============================================================================
# GOOGLE OAUTH (implicit grant, read-only)
# =============================================================================

GOOGLE_CLIENT_ID = os.environ.get(
    "GOOGLE_CLIENT_ID", "YOUR_GOOGLE_CLIENT_ID.apps.googleusercontent.com"
)
OAUTH_REDIRECT_URI = os.environ.get("OAUTH_REDIRECT_URI", "http://localhost:8000/")
AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.readonly"

# Local expiry is advisory unless strict mode is switched on
STRICT_TOKEN_EXPIRY = os.environ.get("STRICT_TOKEN_EXPIRY", "false").lower() == "true"
TOKEN_EXPIRY_BUFFER_SECONDS = int(os.environ.get("TOKEN_EXPIRY_BUFFER_SECONDS", "60"))

# =============================================================================
# CALENDAR API
# =============================================================================

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
MAX_RESULTS = int(os.environ.get("CALENDAR_MAX_RESULTS", "250"))
MAX_PAGES = 10
HTTP_TIMEOUT_SECONDS = 30.0

# =============================================================================
# DISPLAY CONFIGURATION
# =============================================================================

START_HOUR = int(os.environ.get("DISPLAY_START_HOUR", "0"))
END_HOUR = int(os.environ.get("DISPLAY_END_HOUR", "24"))
DEFAULT_VIEW = os.environ.get("DEFAULT_VIEW", "day")
DISPLAY_TIMEZONE = os.environ.get("DISPLAY_TIMEZONE", "UTC")
SHOW_TENTATIVE = os.environ.get("SHOW_TENTATIVE", "true").lower() == "true"
REFRESH_INTERVAL_SECONDS = int(os.environ.get("REFRESH_INTERVAL_SECONDS", "300"))

# Assigned in order to calendars without an explicit colour
DEFAULT_COLORS = [
    "#4285f4",  # Blue
    "#34a853",  # Green
    "#fbbc04",  # Yellow
    "#ea4335",  # Red
    "#9c27b0",  # Purple
    "#ff9800",  # Orange
    "#009688",  # Teal
    "#e91e63",  # Pink
    "#3f51b5",  # Indigo
    "#00bcd4",  # Cyan
]

# Shown when neither CALENDAR_COLUMNS nor the columns file is present
EXAMPLE_COLUMNS = [
    {
        "name": "Person 1",
        "calendars": [{"id": "example@gmail.com", "name": "Personal", "color": "#4285f4"}],
    },
    {
        "name": "Person 2",
        "calendars": [{"id": "example2@gmail.com", "name": "Personal", "color": "#9c27b0"}],
    },
]

CALENDAR_COLUMNS_JSON = os.environ.get("CALENDAR_COLUMNS", "")

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"


def load_columns():
    """
    Resolve the configured columns.

    Order: CALENDAR_COLUMNS env JSON, then the columns file, then the
    example columns. The result is validated before it is returned.
    """
    from core.validation import parse_columns

    if CALENDAR_COLUMNS_JSON:
        raw = json.loads(CALENDAR_COLUMNS_JSON)
    elif CALENDAR_COLUMNS_FILE.exists():
        raw = json.loads(CALENDAR_COLUMNS_FILE.read_text())
    else:
        raw = EXAMPLE_COLUMNS
    return parse_columns(raw)


def load_display_settings():
    """Validated display settings as a DisplaySettings instance."""
    from core.validation import validate_display_settings

    return validate_display_settings(
        start_hour=START_HOUR,
        end_hour=END_HOUR,
        default_view=DEFAULT_VIEW,
        timezone=DISPLAY_TIMEZONE,
        show_tentative=SHOW_TENTATIVE,
    )
