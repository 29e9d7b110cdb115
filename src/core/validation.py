"""
Column and display configuration validation.
"""

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.errors import ConfigurationError
from models.events import CalendarSource, ColumnConfig, DisplaySettings, ViewMode

COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def validate_columns(raw_columns) -> list[str]:
    """
    Check raw column dicts and return a list of problems (empty if valid).

    Checks:
    1. Top level is a list of objects with a non-empty name
    2. Every column has a list of calendars, each with a non-empty id
    3. Colours, when given, are hex colours
    4. Column names are unique
    """
    errors = []
    if not isinstance(raw_columns, list):
        return ["Columns must be a list"]

    seen_names: set[str] = set()
    for col_idx, column in enumerate(raw_columns):
        label = f"Column {col_idx + 1}"
        if not isinstance(column, dict):
            errors.append(f"{label}: must be an object")
            continue

        name = column.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{label}: missing name")
        else:
            label = f"Column '{name}'"
            if name in seen_names:
                errors.append(f"{label}: duplicate column name")
            seen_names.add(name)

        calendars = column.get("calendars", column.get("sources"))
        if not isinstance(calendars, list):
            errors.append(f"{label}: calendars must be a list")
            continue

        for cal_idx, calendar in enumerate(calendars):
            if not isinstance(calendar, dict):
                errors.append(f"{label}: calendar {cal_idx + 1} must be an object")
                continue
            calendar_id = calendar.get("id")
            if not isinstance(calendar_id, str) or not calendar_id.strip():
                errors.append(f"{label}: calendar {cal_idx + 1} is missing an id")
            color = calendar.get("color")
            if color is not None and not (isinstance(color, str) and COLOR_PATTERN.match(color)):
                errors.append(f"{label}: invalid colour '{color}' for calendar {calendar_id}")

    return errors


def parse_columns(raw_columns) -> list[ColumnConfig]:
    """Validate raw column dicts and build ColumnConfig objects."""
    errors = validate_columns(raw_columns)
    if errors:
        raise ConfigurationError("\n".join(errors))

    columns = []
    for column in raw_columns:
        calendars = column.get("calendars", column.get("sources"))
        sources = tuple(
            CalendarSource(id=cal["id"].strip(), name=cal.get("name"), color=cal.get("color"))
            for cal in calendars
        )
        columns.append(ColumnConfig(name=column["name"].strip(), sources=sources))
    return columns


def validate_display_settings(
    start_hour: int,
    end_hour: int,
    default_view: str,
    timezone: str,
    show_tentative: bool = True,
) -> DisplaySettings:
    """Build DisplaySettings, raising ConfigurationError with every problem found."""
    errors = []

    if not 0 <= start_hour <= 23:
        errors.append(f"Start hour must be between 0 and 23, got {start_hour}")
    if not 1 <= end_hour <= 24:
        errors.append(f"End hour must be between 1 and 24, got {end_hour}")
    if start_hour >= end_hour:
        errors.append(f"Start hour ({start_hour}) must be before end hour ({end_hour})")

    try:
        view = ViewMode(default_view)
    except ValueError:
        errors.append(f"Invalid default view '{default_view}'")
        view = ViewMode.DAY

    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"Unknown timezone '{timezone}'")

    if errors:
        raise ConfigurationError("\n".join(errors))

    return DisplaySettings(
        start_hour=start_hour,
        end_hour=end_hour,
        default_view=view,
        timezone=timezone,
        show_tentative=show_tentative,
    )
