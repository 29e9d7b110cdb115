"""
Data models for calendar sources, events, columns and layout.

Domain objects are frozen dataclasses; columns and events are replaced
wholesale on every aggregation pass, never patched in place.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any


class ViewMode(str, Enum):
    """Selects the date-range formula."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class CalendarSource:
    """One remote calendar feed contributing events to a column."""

    id: str
    name: str | None = None
    color: str | None = None


@dataclass(frozen=True)
class ColumnConfig:
    """A configured column (e.g. one person) and its calendar sources."""

    name: str
    sources: tuple[CalendarSource, ...] = ()


@dataclass(frozen=True)
class DisplaySettings:
    """Visible-hour window and view defaults."""

    start_hour: int = 0
    end_hour: int = 24
    default_view: ViewMode = ViewMode.DAY
    timezone: str = "UTC"
    show_tentative: bool = True


@dataclass(frozen=True)
class DateRange:
    """Inclusive display window with timezone-aware bounds."""

    start: datetime
    end: datetime

    def padded(self, days: int = 1) -> "DateRange":
        """Widen both ends, used to catch events spanning the boundaries."""
        return DateRange(self.start - timedelta(days=days), self.end + timedelta(days=days))


@dataclass(frozen=True)
class NormalizedEvent:
    """Parsed calendar event."""

    id: str
    title: str
    start: datetime
    end: datetime
    is_all_day: bool
    is_tentative: bool
    source_id: str
    color: str
    description: str | None = None
    location: str | None = None
    source_name: str | None = None
    original_payload: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def html_link(self) -> str | None:
        return self.original_payload.get("htmlLink")

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


@dataclass(frozen=True)
class Column:
    """Aggregated events of one configured column for the current range."""

    name: str
    events: tuple[NormalizedEvent, ...] = ()
    is_loading: bool = False
    error: str | None = None

    def with_changes(self, **changes) -> "Column":
        return replace(self, **changes)


@dataclass(frozen=True)
class Placement:
    """Geometry for one timed event inside a day's time grid (percentages)."""

    event: NormalizedEvent
    column_index: int
    column_count: int
    left_pct: float
    width_pct: float
    top_pct: float
    height_pct: float
    starts_before_view: bool = False
    ends_after_view: bool = False


@dataclass(frozen=True)
class DayLayout:
    """All-day events plus placed timed events for one civil day."""

    day: date
    all_day: tuple[NormalizedEvent, ...] = ()
    placements: tuple[Placement, ...] = ()


@dataclass(frozen=True)
class AuthSession:
    """Persisted credential, its absolute expiry, and any in-flight anti-forgery state."""

    token: str | None = None
    expiry: datetime | None = None
    csrf_state: str | None = None
