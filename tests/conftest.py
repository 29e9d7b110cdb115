"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import date, datetime, timezone
from pathlib import Path
from urllib.parse import unquote
from zoneinfo import ZoneInfo

import httpx
import pytest

# Add src and tests to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from models.events import CalendarSource, ColumnConfig, NormalizedEvent  # noqa: E402
from services.auth import AuthFlowController  # noqa: E402
from services.token_store import TokenStore  # noqa: E402

UTC = ZoneInfo("UTC")
FIXED_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def make_event(
    start: datetime,
    end: datetime,
    event_id: str = "evt",
    title: str = "Meeting",
    is_all_day: bool = False,
    is_tentative: bool = False,
    source_id: str = "cal@example.com",
) -> NormalizedEvent:
    """NormalizedEvent with sensible defaults for layout tests."""
    return NormalizedEvent(
        id=event_id,
        title=title,
        start=start,
        end=end,
        is_all_day=is_all_day,
        is_tentative=is_tentative,
        source_id=source_id,
        color="#4285f4",
    )


def at(hour: int, minute: int = 0, day: date = date(2026, 3, 2)) -> datetime:
    """UTC datetime on the default test day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


class CalendarAPI:
    """
    Fake events.list endpoint keyed by calendar id.

    Each entry is either a list of raw events (200), an int status code, a
    ready-made httpx.Response, or an exception instance to raise.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = responses or {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # /calendar/v3/calendars/{id}/events
        calendar_id = unquote(request.url.path.split("/")[-2])
        outcome = self.responses.get(calendar_id, [])
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, httpx.Response):
            return outcome
        if isinstance(outcome, int):
            return httpx.Response(outcome, json={"error": {"code": outcome}})
        return httpx.Response(200, json={"items": outcome})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def calendar_api():
    return CalendarAPI()


@pytest.fixture
def two_columns():
    """Two people, the first with two calendars."""
    return [
        ColumnConfig(
            name="Tom",
            sources=(
                CalendarSource(id="tom@example.com", name="Personal", color="#4285f4"),
                CalendarSource(id="tom.work@example.com", name="Work"),
            ),
        ),
        ColumnConfig(
            name="Sam",
            sources=(CalendarSource(id="sam@example.com", name="Personal"),),
        ),
    ]


@pytest.fixture
def token_store(tmp_path):
    return TokenStore(tmp_path / "db" / "test.db")


@pytest.fixture
def auth(token_store):
    return AuthFlowController(
        token_store,
        client_id="client-123.apps.googleusercontent.com",
        redirect_uri="http://localhost:8000/",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def signed_in_auth(auth, token_store):
    token_store.save_token("tok-1", 3600, FIXED_NOW)
    auth.resume()
    return auth
