"""Aggregated columns, navigation and day layout endpoints."""

import time
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from api.dependencies import get_scheduler, require_signed_in
from api.logging import RequestLog, log_request
from api.models.responses import (
    ColumnLayoutResponse,
    ColumnResponse,
    ColumnsResponse,
    ErrorCodes,
    LayoutResponse,
    NavigateRequest,
    RangeResponse,
)
from services.auth import AuthFlowController
from services.dates import current_time_position, days_in_range, header_label, hour_labels
from services.layout import layout_day
from services.refresh import RefreshScheduler

router = APIRouter(prefix="/v1")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def range_response(scheduler: RefreshScheduler) -> RangeResponse:
    date_range = scheduler.date_range
    return RangeResponse(
        anchor=scheduler.anchor,
        view=scheduler.view_mode.value,
        start=date_range.start,
        end=date_range.end,
        label=header_label(scheduler.anchor, scheduler.view_mode, scheduler.tz),
        days=days_in_range(date_range),
        show_tentative=scheduler.show_tentative,
    )


def columns_response(scheduler: RefreshScheduler) -> ColumnsResponse:
    return ColumnsResponse(
        range=range_response(scheduler),
        is_refreshing=scheduler.is_refreshing,
        columns=[ColumnResponse.from_column(c) for c in scheduler.visible_columns()],
    )


@router.get("/columns", response_model=ColumnsResponse)
async def get_columns(
    _auth: AuthFlowController = Depends(require_signed_in),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """Columns published by the last successful pass."""
    return columns_response(scheduler)


@router.post("/refresh", response_model=ColumnsResponse)
async def refresh(
    request: Request,
    _auth: AuthFlowController = Depends(require_signed_in),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """
    Run an aggregation pass now and return the result.

    If the calendar API rejects the token, the session is signed out and a
    401 is returned; the previously published columns are left untouched.
    """
    start_time = time.time()
    request_log = RequestLog(
        endpoint="/v1/refresh",
        method="POST",
        client_ip=get_client_ip(request),
    )

    try:
        await scheduler.run_pass(silent=True)

        if not scheduler.auth.is_signed_in:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={
                    "error": scheduler.auth.error or "Not signed in",
                    "code": ErrorCodes.SESSION_EXPIRED,
                    "details": [],
                },
            )

        response = columns_response(scheduler)
        request_log.status_code = 200
        request_log.columns_returned = len(response.columns)
        request_log.events_returned = sum(len(c.events) for c in response.columns)
        for column in response.columns:
            if column.error:
                request_log.details.append(("column_error", f"{column.name}: {column.error}"))
        return response

    except HTTPException as e:
        request_log.status_code = e.status_code
        if isinstance(e.detail, dict):
            request_log.error_code = e.detail.get("code")
            request_log.error_message = e.detail.get("error")
        else:
            request_log.error_message = str(e.detail)
        raise

    except Exception as e:
        request_log.status_code = 500
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal server error",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    finally:
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        log_request(request_log)


@router.post("/navigate", response_model=RangeResponse)
async def navigate(
    body: NavigateRequest,
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """Change view and/or move the anchor date. A range change starts a pass."""
    if body.view is not None:
        scheduler.set_view_mode(body.view)
    if body.anchor is not None:
        scheduler.set_anchor(body.anchor)

    if body.action == "previous":
        scheduler.go_previous()
    elif body.action == "next":
        scheduler.go_next()
    elif body.action == "today":
        scheduler.go_today(datetime.now(scheduler.tz).date())

    return range_response(scheduler)


@router.post("/tentative", response_model=RangeResponse)
async def toggle_tentative(scheduler: RefreshScheduler = Depends(get_scheduler)):
    """Show or hide tentative events."""
    scheduler.toggle_tentative()
    return range_response(scheduler)


@router.get("/layout", response_model=LayoutResponse)
async def get_layout(
    day: date | None = Query(None, alias="date", description="Day to lay out (YYYY-MM-DD)"),
    _auth: AuthFlowController = Depends(require_signed_in),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """Time-grid geometry for each column on one day (defaults to the anchor)."""
    day = day or scheduler.anchor
    if not scheduler.date_range.start.date() <= day <= scheduler.date_range.end.date():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Date is outside the current view",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [f"View covers {days_in_range(scheduler.date_range)[0]} to "
                            f"{days_in_range(scheduler.date_range)[-1]}"],
            },
        )

    start_hour = scheduler.display.start_hour
    end_hour = scheduler.display.end_hour
    now = datetime.now(scheduler.tz)

    columns = []
    for column in scheduler.visible_columns():
        layout = layout_day(column.events, day, start_hour, end_hour, scheduler.tz)
        columns.append(ColumnLayoutResponse.from_layout(column, layout))

    return LayoutResponse(
        day=day,
        start_hour=start_hour,
        end_hour=end_hour,
        hour_labels=hour_labels(start_hour, end_hour),
        current_time_pct=(
            current_time_position(now, start_hour, end_hour) if now.date() == day else None
        ),
        columns=columns,
    )
