"""
Event fetching from the Google Calendar API and conversion to NormalizedEvent.
"""

import logging
from datetime import date, datetime, timezone, tzinfo
from urllib.parse import quote

import httpx

from core.config import CALENDAR_API_BASE, MAX_PAGES, MAX_RESULTS
from core.errors import (
    AccessDenied,
    AuthenticationFailure,
    CalendarFetchError,
    NotFound,
    RateLimited,
    TransportFailure,
)
from models.events import CalendarSource, NormalizedEvent
from services.dates import UTC, start_of_day

logger = logging.getLogger(__name__)

TENTATIVE_KEYWORDS = ("maybe", "tentative", "possibly", "perhaps", "?")
NO_TITLE = "(No title)"


def format_rfc3339(moment: datetime) -> str:
    """UTC RFC 3339 timestamp as the API expects for timeMin/timeMax."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def raise_for_status(response: httpx.Response, calendar_id: str):
    """Map a non-2xx calendar API response onto the fetch error taxonomy."""
    status = response.status_code
    if 200 <= status < 300:
        return
    if status == 401:
        raise AuthenticationFailure(
            "Authentication expired. Please sign in again.", calendar_id, status
        )
    if status == 403:
        raise AccessDenied(f"Access denied to calendar: {calendar_id}", calendar_id, status)
    if status == 404:
        raise NotFound(f"Calendar not found: {calendar_id}", calendar_id, status)
    if status == 429:
        raise RateLimited(
            "Too many requests. Please wait a moment and try again.", calendar_id, status
        )
    if status >= 500:
        raise TransportFailure(
            f"Failed to fetch calendar: {response.reason_phrase}", calendar_id, status
        )
    raise CalendarFetchError(
        f"Failed to fetch calendar: {response.reason_phrase}", calendar_id, status
    )


async def fetch_calendar_events(
    client: httpx.AsyncClient,
    calendar_id: str,
    token: str,
    time_min: datetime,
    time_max: datetime,
    max_results: int = MAX_RESULTS,
) -> list[dict]:
    """
    Fetch raw events from one calendar within a time window.

    The server expands recurring events (singleEvents) and orders by start.
    Follows nextPageToken for at most MAX_PAGES pages.

    Raises:
        CalendarFetchError (or a subclass) when the read fails.
    """
    url = f"{CALENDAR_API_BASE}/calendars/{quote(calendar_id, safe='')}/events"
    params = {
        "timeMin": format_rfc3339(time_min),
        "timeMax": format_rfc3339(time_max),
        "singleEvents": "true",
        "orderBy": "startTime",
        "maxResults": str(max_results),
    }
    headers = {"Authorization": f"Bearer {token}"}

    items: list[dict] = []
    for _ in range(MAX_PAGES):
        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransportFailure(f"Failed to fetch calendar: {e}", calendar_id) from e

        raise_for_status(response, calendar_id)

        try:
            payload = response.json()
        except ValueError as e:
            raise CalendarFetchError(
                "Failed to fetch calendar: invalid response", calendar_id, response.status_code
            ) from e

        # Expect {"items": [{...}, ...], "nextPageToken": "..."}
        page_items = (payload.get("items") or []) if isinstance(payload, dict) else None
        if not isinstance(page_items, list) or not all(isinstance(i, dict) for i in page_items):
            raise CalendarFetchError(
                "Failed to fetch calendar: invalid response", calendar_id, response.status_code
            )

        items.extend(page_items)

        page_token = payload.get("nextPageToken")
        if not page_token:
            break
        params = {**params, "pageToken": page_token}
    else:
        logger.warning("Calendar %s has more than %d pages; truncating", calendar_id, MAX_PAGES)

    return items


def parse_boundary(boundary: dict | None, tz: tzinfo) -> tuple[datetime | None, bool]:
    """
    Parse a start/end object into (datetime, is_date_only).

    Date-only values become civil midnight in tz; they are never shifted
    from another zone.
    """
    if not boundary:
        return None, False

    date_time = boundary.get("dateTime")
    if date_time:
        parsed = datetime.fromisoformat(date_time.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz)
        return parsed, False

    date_only = boundary.get("date")
    if date_only:
        return start_of_day(date.fromisoformat(date_only), tz), True

    return None, False


def is_tentative_event(event: dict) -> bool:
    """
    Check if an event is tentative.

    Priority: explicit status, then the viewer's own response, then a
    keyword match on the title. The keyword check is a heuristic for
    sources that don't model tentativeness and can give false positives.
    """
    if event.get("status") == "tentative":
        return True

    for attendee in event.get("attendees") or []:
        if isinstance(attendee, dict) and attendee.get("self"):
            if attendee.get("responseStatus") == "tentative":
                return True
            break

    title = str(event.get("summary") or "").lower()
    return any(keyword in title for keyword in TENTATIVE_KEYWORDS)


def classify_event(
    event: dict,
    source: CalendarSource,
    fallback_color: str,
    tz: tzinfo = UTC,
) -> NormalizedEvent | None:
    """
    Convert a raw API event into a NormalizedEvent.

    Cancelled events give None, as do records whose times are missing or
    malformed (logged and skipped).
    """
    if event.get("status") == "cancelled":
        return None

    try:
        start, is_all_day = parse_boundary(event.get("start"), tz)
        end, _ = parse_boundary(event.get("end"), tz)
        is_tentative = is_tentative_event(event)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning("Skipping malformed event %s from %s: %s", event.get("id"), source.id, e)
        return None

    if start is None:
        logger.warning("Skipping event %s from %s without a start", event.get("id"), source.id)
        return None
    if end is None or end < start:
        end = start

    return NormalizedEvent(
        id=str(event.get("id", "")),
        title=str(event.get("summary") or NO_TITLE),
        description=event.get("description"),
        location=event.get("location"),
        start=start,
        end=end,
        is_all_day=is_all_day,
        is_tentative=is_tentative,
        source_id=source.id,
        source_name=source.name,
        color=source.color or fallback_color,
        original_payload=event,
    )


def classify_events(
    events: list[dict],
    source: CalendarSource,
    fallback_color: str,
    tz: tzinfo = UTC,
) -> list[NormalizedEvent]:
    """Classify a source's raw events, dropping cancelled and malformed ones."""
    parsed = (classify_event(event, source, fallback_color, tz) for event in events)
    return [event for event in parsed if event is not None]
