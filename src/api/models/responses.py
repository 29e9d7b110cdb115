"""Pydantic request/response models for API endpoints."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel

from models.events import Column, DayLayout, NormalizedEvent, Placement


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    auth_state: str
    columns_configured: int
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_CALLBACK = "INVALID_CALLBACK"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class CallbackRequest(BaseModel):
    """Redirect callback as captured by the browser (URL, #fragment or query)."""

    fragment: str


class NavigateRequest(BaseModel):
    action: Literal["previous", "next", "today", "stay"] = "stay"
    view: Literal["day", "week", "month"] | None = None
    anchor: date | None = None


class SessionResponse(BaseModel):
    state: str
    signed_in: bool
    expiry: datetime | None = None
    error: str | None = None


class EventResponse(BaseModel):
    id: str
    title: str
    description: str | None = None
    location: str | None = None
    start: datetime
    end: datetime
    is_all_day: bool
    is_tentative: bool
    source_id: str
    source_name: str | None = None
    color: str
    html_link: str | None = None

    @classmethod
    def from_event(cls, event: NormalizedEvent) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            location=event.location,
            start=event.start,
            end=event.end,
            is_all_day=event.is_all_day,
            is_tentative=event.is_tentative,
            source_id=event.source_id,
            source_name=event.source_name,
            color=event.color,
            html_link=event.html_link,
        )


class ColumnResponse(BaseModel):
    name: str
    events: list[EventResponse]
    is_loading: bool
    error: str | None = None

    @classmethod
    def from_column(cls, column: Column) -> "ColumnResponse":
        return cls(
            name=column.name,
            events=[EventResponse.from_event(e) for e in column.events],
            is_loading=column.is_loading,
            error=column.error,
        )


class RangeResponse(BaseModel):
    anchor: date
    view: str
    start: datetime
    end: datetime
    label: str
    days: list[date]
    show_tentative: bool


class ColumnsResponse(BaseModel):
    range: RangeResponse
    is_refreshing: bool
    columns: list[ColumnResponse]


class PlacementResponse(BaseModel):
    event: EventResponse
    column_index: int
    column_count: int
    left_pct: float
    width_pct: float
    top_pct: float
    height_pct: float
    starts_before_view: bool
    ends_after_view: bool

    @classmethod
    def from_placement(cls, placement: Placement) -> "PlacementResponse":
        return cls(
            event=EventResponse.from_event(placement.event),
            column_index=placement.column_index,
            column_count=placement.column_count,
            left_pct=placement.left_pct,
            width_pct=placement.width_pct,
            top_pct=placement.top_pct,
            height_pct=placement.height_pct,
            starts_before_view=placement.starts_before_view,
            ends_after_view=placement.ends_after_view,
        )


class ColumnLayoutResponse(BaseModel):
    name: str
    error: str | None = None
    all_day: list[EventResponse]
    placements: list[PlacementResponse]

    @classmethod
    def from_layout(cls, column: Column, layout: DayLayout) -> "ColumnLayoutResponse":
        return cls(
            name=column.name,
            error=column.error,
            all_day=[EventResponse.from_event(e) for e in layout.all_day],
            placements=[PlacementResponse.from_placement(p) for p in layout.placements],
        )


class LayoutResponse(BaseModel):
    day: date
    start_hour: int
    end_hour: int
    hour_labels: list[str]
    current_time_pct: float | None = None
    columns: list[ColumnLayoutResponse]
