"""API Pydantic models."""

from .responses import (
    CallbackRequest,
    ColumnLayoutResponse,
    ColumnResponse,
    ColumnsResponse,
    ErrorCodes,
    ErrorResponse,
    EventResponse,
    HealthResponse,
    LayoutResponse,
    NavigateRequest,
    PlacementResponse,
    RangeResponse,
    SessionResponse,
)

__all__ = [
    "CallbackRequest",
    "ColumnLayoutResponse",
    "ColumnResponse",
    "ColumnsResponse",
    "ErrorCodes",
    "ErrorResponse",
    "EventResponse",
    "HealthResponse",
    "LayoutResponse",
    "NavigateRequest",
    "PlacementResponse",
    "RangeResponse",
    "SessionResponse",
]
