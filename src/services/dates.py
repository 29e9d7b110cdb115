"""
Date range and view navigation arithmetic.

Weeks start on Sunday. Nothing here reads the wall clock; callers pass
today's date explicitly when they want "today".
"""

import calendar
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from models.events import DateRange, ViewMode

UTC = ZoneInfo("UTC")


def to_civil_date(anchor: date | datetime, tz: tzinfo = UTC) -> date:
    """Reduce a date or datetime to the civil date it falls on in tz."""
    if isinstance(anchor, datetime):
        if anchor.tzinfo is not None:
            anchor = anchor.astimezone(tz)
        return anchor.date()
    return anchor


def start_of_day(d: date, tz: tzinfo = UTC) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz)


def end_of_day(d: date, tz: tzinfo = UTC) -> datetime:
    return datetime.combine(d, time.max, tzinfo=tz)


def start_of_week(d: date) -> date:
    """Sunday on or before d."""
    # weekday(): Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def end_of_week(d: date) -> date:
    """Saturday on or after d."""
    return start_of_week(d) + timedelta(days=6)


def range_for(anchor: date | datetime, mode: ViewMode | str, tz: tzinfo = UTC) -> DateRange:
    """
    Get the display range for a view.

    day: the anchor's civil day.
    week: Sunday through Saturday containing the anchor.
    month: the anchor's month widened to whole Sunday-Saturday weeks.
    """
    mode = ViewMode(mode)
    day = to_civil_date(anchor, tz)

    if mode is ViewMode.DAY:
        first, last = day, day
    elif mode is ViewMode.WEEK:
        first, last = start_of_week(day), end_of_week(day)
    else:
        month_start = day.replace(day=1)
        month_end = day.replace(day=calendar.monthrange(day.year, day.month)[1])
        first, last = start_of_week(month_start), end_of_week(month_end)

    return DateRange(start=start_of_day(first, tz), end=end_of_day(last, tz))


def add_months(d: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def step(
    anchor: date | datetime, mode: ViewMode | str, direction: int, tz: tzinfo = UTC
) -> date:
    """
    Next (+1) or previous (-1) anchor for a view.

    Month steps keep the day-of-month where it exists and otherwise clamp to
    the last day, so Jan 31 -> Feb 28 -> Jan 28.
    """
    if direction not in (1, -1):
        raise ValueError(f"direction must be 1 or -1, got {direction}")

    mode = ViewMode(mode)
    day = to_civil_date(anchor, tz)

    if mode is ViewMode.DAY:
        return day + timedelta(days=direction)
    if mode is ViewMode.WEEK:
        return day + timedelta(weeks=direction)
    return add_months(day, direction)


def days_in_range(date_range: DateRange) -> list[date]:
    """Every civil day from range start to range end, inclusive."""
    first = date_range.start.date()
    last = date_range.end.date()
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def weeks_in_range(date_range: DateRange) -> list[list[date]]:
    """Split the range's days into rows of seven for a month grid."""
    days = days_in_range(date_range)
    return [days[i : i + 7] for i in range(0, len(days), 7)]


def header_label(anchor: date | datetime, mode: ViewMode | str, tz: tzinfo = UTC) -> str:
    """Title for the current view, e.g. 'Mar 1 - 7, 2026' for a week."""
    mode = ViewMode(mode)
    day = to_civil_date(anchor, tz)

    if mode is ViewMode.DAY:
        return f"{day.strftime('%A, %B')} {day.day}, {day.year}"
    if mode is ViewMode.WEEK:
        first, last = start_of_week(day), end_of_week(day)
        start_month = first.strftime("%b")
        end_month = last.strftime("%b")
        if start_month == end_month:
            return f"{start_month} {first.day} - {last.day}, {last.year}"
        return f"{start_month} {first.day} - {end_month} {last.day}, {last.year}"
    return day.strftime("%B %Y")


def format_hour(hour: int) -> str:
    """12-hour label for an hour of the day (24 wraps to midnight)."""
    hour = hour % 24
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour > 12:
        return f"{hour - 12} PM"
    return f"{hour} AM"


def hour_labels(start_hour: int, end_hour: int) -> list[str]:
    """Grid line labels from start_hour to end_hour inclusive."""
    return [format_hour(hour) for hour in range(start_hour, end_hour + 1)]


def current_time_position(now: datetime, start_hour: int, end_hour: int) -> float | None:
    """Percentage of the visible window elapsed at `now`, None outside it."""
    if now.hour < start_hour or now.hour >= end_hour:
        return None
    total_minutes = (end_hour - start_hour) * 60
    current_minutes = (now.hour - start_hour) * 60 + now.minute
    return current_minutes / total_minutes * 100
