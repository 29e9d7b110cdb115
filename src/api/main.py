"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import auth_router, calendar_router, health_router
from core.config import (
    API_DEBUG,
    API_VERSION,
    DB_PATH,
    DEFAULT_COLORS,
    GOOGLE_CLIENT_ID,
    MAX_RESULTS,
    OAUTH_REDIRECT_URI,
    REFRESH_INTERVAL_SECONDS,
    STRICT_TOKEN_EXPIRY,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    load_columns,
    load_display_settings,
)
from core.errors import ConfigurationError
from core.http_client import close_http_client, get_http_client
from services.auth import AuthFlowController
from services.refresh import RefreshScheduler
from services.token_store import open_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: load configuration, resume any stored session, start refreshing
    display = load_display_settings()
    columns = load_columns()
    tz = ZoneInfo(display.timezone)

    def on_session_invalidated(message: str):
        logger.warning("Signed out after token rejection: %s", message)

    auth = AuthFlowController(
        open_store(DB_PATH),
        GOOGLE_CLIENT_ID,
        OAUTH_REDIRECT_URI,
        on_session_invalidated=on_session_invalidated,
        strict_expiry=STRICT_TOKEN_EXPIRY,
        expiry_buffer_seconds=TOKEN_EXPIRY_BUFFER_SECONDS,
    )
    auth.resume()

    scheduler = RefreshScheduler(
        columns,
        auth,
        client=get_http_client(),
        display=display,
        tz=tz,
        palette=DEFAULT_COLORS,
        interval=REFRESH_INTERVAL_SECONDS,
        max_results=MAX_RESULTS,
    )
    app.state.auth = auth
    app.state.scheduler = scheduler

    scheduler.start()
    if auth.is_signed_in:
        scheduler.request_pass()

    yield

    # Shutdown: stop the timer, let in-flight passes settle, close the client
    await scheduler.stop()
    await close_http_client()


app = FastAPI(
    title="Calendar Split API",
    description="Aggregated multi-calendar columns and time-grid layout for day/week/month views",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)

# CORS middleware (for development)
if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    """Configuration problems are reported with every message found."""
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Invalid calendar configuration",
            code=ErrorCodes.CONFIGURATION_ERROR,
            details=str(exc).split("\n"),
        ).model_dump(),
    )


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with standard error format."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(calendar_router)


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
