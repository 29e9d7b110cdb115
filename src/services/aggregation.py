"""
Fan-out fetch and merge of every configured column's calendars.

One pass issues every (column, source) read concurrently and waits for all
of them to settle before deciding anything. A failing source degrades to no
events; an authentication failure anywhere rejects the whole pass.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo

import httpx

from core.config import DEFAULT_COLORS, MAX_RESULTS
from core.errors import (
    AccessDenied,
    AuthenticationFailure,
    CalendarFetchError,
    NotFound,
    RateLimited,
    SessionInvalidated,
)
from models.events import CalendarSource, Column, ColumnConfig, DateRange, NormalizedEvent
from services.calendar import classify_events, fetch_calendar_events
from services.dates import UTC, start_of_day

logger = logging.getLogger(__name__)

# Failures worth telling the user about even when sibling sources succeeded
SURFACED_ERRORS = (AccessDenied, NotFound, RateLimited)


@dataclass
class ColumnOutcome:
    """Settled result of one column's fetches."""

    column: Column
    auth_failed: bool = False


def pick_color(source: CalendarSource, index: int, palette: list[str]) -> str:
    """Source colour, else a stable palette pick by the source's position in its column."""
    if source.color:
        return source.color
    return palette[index % len(palette)]


def sort_events(events: list[NormalizedEvent]) -> tuple[NormalizedEvent, ...]:
    """Ascending by start; ties keep their merge order."""
    return tuple(sorted(events, key=lambda event: event.start))


async def _fetch_source(
    client: httpx.AsyncClient,
    source: CalendarSource,
    token: str,
    window: DateRange,
    max_results: int,
) -> list[dict]:
    return await fetch_calendar_events(
        client, source.id, token, window.start, window.end, max_results
    )


async def fetch_column(
    config: ColumnConfig,
    token: str,
    window: DateRange,
    previous: Column | None,
    *,
    client: httpx.AsyncClient,
    palette: list[str],
    tz: tzinfo,
    max_results: int,
) -> ColumnOutcome:
    """Fetch, classify and merge one column's sources. Never raises fetch errors."""
    results = await asyncio.gather(
        *(_fetch_source(client, source, token, window, max_results) for source in config.sources),
        return_exceptions=True,
    )

    previous_events = previous.events if previous is not None else ()
    events: list[NormalizedEvent] = []
    failures: list[CalendarFetchError] = []
    succeeded = 0

    for index, (source, result) in enumerate(zip(config.sources, results)):
        if isinstance(result, CalendarFetchError):
            logger.warning("Error fetching calendar %s: %s", source.id, result)
            failures.append(result)
            continue
        if isinstance(result, Exception):
            logger.error(
                "Unexpected error fetching calendar %s", source.id, exc_info=result
            )
            failures.append(CalendarFetchError("Failed to fetch calendar", source.id))
            continue
        if isinstance(result, BaseException):
            raise result
        succeeded += 1
        events.extend(classify_events(result, source, pick_color(source, index, palette), tz))

    auth_failure = next((f for f in failures if isinstance(f, AuthenticationFailure)), None)
    if auth_failure is not None:
        column = Column(
            name=config.name,
            events=previous_events,
            is_loading=False,
            error=auth_failure.message,
        )
        return ColumnOutcome(column=column, auth_failed=True)

    if failures and succeeded == 0:
        # Keep the last published events
        column = Column(
            name=config.name,
            events=previous_events,
            is_loading=False,
            error=failures[0].message,
        )
        return ColumnOutcome(column=column)

    surfaced = [f.message for f in failures if isinstance(f, SURFACED_ERRORS)]
    column = Column(
        name=config.name,
        events=sort_events(events),
        is_loading=False,
        error="; ".join(dict.fromkeys(surfaced)) or None,
    )
    return ColumnOutcome(column=column)


def _previous_for(index: int, config: ColumnConfig, previous: list[Column] | None) -> Column | None:
    if not previous or index >= len(previous):
        return None
    candidate = previous[index]
    return candidate if candidate.name == config.name else None


async def aggregate(
    columns_config: list[ColumnConfig],
    token: str,
    date_range: DateRange,
    previous: list[Column] | None = None,
    *,
    client: httpx.AsyncClient,
    palette: list[str] | None = None,
    tz: tzinfo = UTC,
    max_results: int = MAX_RESULTS,
) -> list[Column]:
    """
    Run one aggregation pass across all columns.

    Args:
        columns_config: Configured columns, in display order.
        token: Bearer token for the calendar API.
        date_range: Display range; the fetch window is padded by a day each side.
        previous: Columns published by the last successful pass, used as the
            fallback event list for columns whose sources all fail.

    Returns:
        Fresh columns in configuration order.

    Raises:
        SessionInvalidated: any column hit an authentication failure. The
            caller must force re-authentication and keep the prior columns.
    """
    palette = palette or DEFAULT_COLORS
    window = date_range.padded(days=1)

    outcomes = await asyncio.gather(
        *(
            fetch_column(
                config,
                token,
                window,
                _previous_for(index, config, previous),
                client=client,
                palette=palette,
                tz=tz,
                max_results=max_results,
            )
            for index, config in enumerate(columns_config)
        )
    )

    if any(outcome.auth_failed for outcome in outcomes):
        failed = [outcome.column.name for outcome in outcomes if outcome.auth_failed]
        logger.warning("Authentication rejected while fetching columns: %s", ", ".join(failed))
        raise SessionInvalidated()

    return [outcome.column for outcome in outcomes]


def filter_tentative(columns: list[Column], show_tentative: bool) -> list[Column]:
    """Columns with tentative events removed unless show_tentative is set."""
    if show_tentative:
        return list(columns)
    return [
        column.with_changes(events=tuple(e for e in column.events if not e.is_tentative))
        for column in columns
    ]


def events_for_day(
    events: list[NormalizedEvent] | tuple[NormalizedEvent, ...],
    day: date,
    tz: tzinfo = UTC,
) -> list[NormalizedEvent]:
    """Events overlapping the civil day, including zero-length events inside it."""
    day_start = start_of_day(day, tz)
    day_end = start_of_day(day + timedelta(days=1), tz)
    return [
        event
        for event in events
        if event.start < day_end and (event.end > day_start or event.start >= day_start)
    ]
