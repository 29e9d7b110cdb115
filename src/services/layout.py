"""
Overlap grouping and time-grid geometry for one day's events.

Clustering is a single greedy left-to-right pass: events are grouped while
they keep overlapping the cluster's running end, and every event in a
cluster gets an equal-width slot in start order. This yields connectivity
clusters (A-B and B-C overlapping puts A, B and C together even if A and C
don't overlap), which keeps the ordering stable and predictable.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from models.events import DayLayout, NormalizedEvent, Placement
from services.aggregation import events_for_day
from services.dates import UTC, start_of_day

GUTTER_PCT = 1.0
MIN_HEIGHT_PCT = 2.0


@dataclass(frozen=True)
class VerticalPosition:
    top: float
    height: float
    starts_before_view: bool
    ends_after_view: bool


def group_overlapping_events(events: list[NormalizedEvent]) -> list[list[NormalizedEvent]]:
    """Partition start-ordered events into overlap clusters."""
    clusters: list[list[NormalizedEvent]] = []
    current: list[NormalizedEvent] = []
    current_end: datetime | None = None

    for event in sorted(events, key=lambda e: e.start):
        if current_end is None or event.start >= current_end:
            if current:
                clusters.append(current)
            current = [event]
            current_end = event.end
        else:
            current.append(event)
            current_end = max(current_end, event.end)

    if current:
        clusters.append(current)
    return clusters


def calculate_event_position(
    event: NormalizedEvent,
    day: date,
    start_hour: int,
    end_hour: int,
    tz: tzinfo = UTC,
) -> VerticalPosition:
    """
    Top and height as percentages of the visible window [start_hour, end_hour).

    The event is clamped to the window. Events entirely outside it are pinned
    to the nearest edge instead of being dropped, and every event keeps at
    least MIN_HEIGHT_PCT so it stays clickable.
    """
    midnight = start_of_day(day, tz)
    view_start = midnight + timedelta(hours=start_hour)
    view_end = midnight + timedelta(hours=end_hour)
    total_minutes = (end_hour - start_hour) * 60

    start = event.start.astimezone(tz)
    end = event.end.astimezone(tz)

    effective_start = max(start, view_start)
    effective_end = min(end, view_end)

    start_minutes = (effective_start - view_start).total_seconds() / 60
    end_minutes = (effective_end - view_start).total_seconds() / 60

    top = min(max(start_minutes / total_minutes * 100, 0.0), 100.0 - MIN_HEIGHT_PCT)
    height = max((end_minutes - start_minutes) / total_minutes * 100, MIN_HEIGHT_PCT)
    height = min(height, 100.0 - top)

    return VerticalPosition(
        top=top,
        height=height,
        starts_before_view=start < view_start,
        ends_after_view=end > view_end,
    )


def place_cluster(
    cluster: list[NormalizedEvent],
    day: date,
    start_hour: int,
    end_hour: int,
    tz: tzinfo = UTC,
) -> list[Placement]:
    """Equal-width side-by-side slots for one cluster, in start order."""
    count = len(cluster)
    slot = 100.0 / count
    placements = []
    for index, event in enumerate(cluster):
        position = calculate_event_position(event, day, start_hour, end_hour, tz)
        placements.append(
            Placement(
                event=event,
                column_index=index,
                column_count=count,
                left_pct=index * slot,
                width_pct=max(slot - GUTTER_PCT, slot / 2),
                top_pct=position.top,
                height_pct=position.height,
                starts_before_view=position.starts_before_view,
                ends_after_view=position.ends_after_view,
            )
        )
    return placements


def layout_events(
    events: list[NormalizedEvent],
    day: date,
    start_hour: int,
    end_hour: int,
    tz: tzinfo = UTC,
) -> list[Placement]:
    """Cluster and place a day's timed events."""
    placements: list[Placement] = []
    for cluster in group_overlapping_events(events):
        placements.extend(place_cluster(cluster, day, start_hour, end_hour, tz))
    return placements


def layout_day(
    events: list[NormalizedEvent] | tuple[NormalizedEvent, ...],
    day: date,
    start_hour: int = 0,
    end_hour: int = 24,
    tz: tzinfo = UTC,
) -> DayLayout:
    """Select the day's events, split out all-day ones and place the rest."""
    day_events = events_for_day(events, day, tz)
    all_day = tuple(event for event in day_events if event.is_all_day)
    timed = [event for event in day_events if not event.is_all_day]
    return DayLayout(
        day=day,
        all_day=all_day,
        placements=tuple(layout_events(timed, day, start_hour, end_hour, tz)),
    )
