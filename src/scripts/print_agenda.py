#!/usr/bin/env python3
"""
Print every configured column's events for a day, week or month.

Uses the token stored by the last browser sign-in; it does not sign in by
itself. With --layout, also prints the time-grid geometry for each day.

Usage:
    uv run python src/scripts/print_agenda.py --date 2026-03-02 --view week
"""

import argparse
import asyncio
import sys
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import (
    DB_PATH,
    DEFAULT_COLORS,
    GOOGLE_CLIENT_ID,
    MAX_RESULTS,
    OAUTH_REDIRECT_URI,
    STRICT_TOKEN_EXPIRY,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    load_columns,
    load_display_settings,
)
from core.errors import SessionInvalidated
from core.http_client import close_http_client, get_http_client
from models.events import Column, ViewMode
from services.aggregation import aggregate, events_for_day, filter_tentative
from services.auth import AuthFlowController
from services.dates import days_in_range, header_label, range_for
from services.layout import layout_day
from services.token_store import open_store


def format_event_time(event, tz) -> str:
    if event.is_all_day:
        return "all day"
    start = event.start.astimezone(tz).strftime("%H:%M")
    end = event.end.astimezone(tz).strftime("%H:%M")
    return f"{start}-{end}"


def print_column(column: Column, days: list[date], tz, start_hour: int, end_hour: int, layout: bool):
    print(f"\n{column.name}")
    if column.error:
        print(f"  ! {column.error}")

    for day in days:
        day_events = events_for_day(column.events, day, tz)
        if not day_events:
            continue
        print(f"  {day.strftime('%a %b')} {day.day}")
        for event in day_events:
            marker = "?" if event.is_tentative else " "
            print(f"   {marker} {format_event_time(event, tz):<12} {event.title}")

        if layout:
            for placement in layout_day(column.events, day, start_hour, end_hour, tz).placements:
                print(
                    f"       [{placement.column_index + 1}/{placement.column_count}] "
                    f"left={placement.left_pct:.1f}% width={placement.width_pct:.1f}% "
                    f"top={placement.top_pct:.1f}% height={placement.height_pct:.1f}% "
                    f"{placement.event.title}"
                )


async def main(date_str: str | None, view: str | None, hide_tentative: bool, layout: bool):
    """Main entry point."""
    display = load_display_settings()
    columns_config = load_columns()
    tz = ZoneInfo(display.timezone)

    anchor = datetime.strptime(date_str, "%Y-%m-%d").date() if date_str else datetime.now(tz).date()
    view_mode = ViewMode(view) if view else display.default_view
    date_range = range_for(anchor, view_mode, tz)

    auth = AuthFlowController(
        open_store(DB_PATH),
        GOOGLE_CLIENT_ID,
        OAUTH_REDIRECT_URI,
        strict_expiry=STRICT_TOKEN_EXPIRY,
        expiry_buffer_seconds=TOKEN_EXPIRY_BUFFER_SECONDS,
    )
    auth.resume()
    token = auth.token
    if token is None:
        print("Not signed in. Sign in through the web app first.")
        return 1

    print(f"{header_label(anchor, view_mode, tz)} ({len(columns_config)} column(s))")

    try:
        columns = await aggregate(
            columns_config,
            token,
            date_range,
            client=get_http_client(),
            palette=DEFAULT_COLORS,
            tz=tz,
            max_results=MAX_RESULTS,
        )
    except SessionInvalidated as e:
        auth.invalidate()
        print(f"\n{e.message}")
        return 1
    finally:
        await close_http_client()

    show_tentative = display.show_tentative and not hide_tentative
    days = days_in_range(date_range)
    for column in filter_tentative(columns, show_tentative):
        print_column(column, days, tz, display.start_hour, display.end_hour, layout)

    print("\nDone!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print aggregated calendar columns")
    parser.add_argument("--date", help="Anchor date (YYYY-MM-DD). Defaults to today.")
    parser.add_argument("--view", choices=[m.value for m in ViewMode], help="day, week or month")
    parser.add_argument("--hide-tentative", action="store_true", help="Leave out tentative events")
    parser.add_argument("--layout", action="store_true", help="Print time-grid geometry")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.date, args.view, args.hide_tentative, args.layout)))
