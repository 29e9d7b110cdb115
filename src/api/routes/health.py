"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_auth, get_scheduler
from api.models.responses import HealthResponse
from core.config import API_VERSION
from services.auth import AuthFlowController
from services.refresh import RefreshScheduler

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    auth: AuthFlowController = Depends(get_auth),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if no columns are configured.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    columns_configured = len(scheduler.columns_config)

    if columns_configured:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            auth_state=auth.state.value,
            columns_configured=columns_configured,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                auth_state=auth.state.value,
                columns_configured=0,
                timestamp=timestamp,
                error="No calendar columns configured",
            ).model_dump(),
        )
