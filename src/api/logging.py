"""Request logging for the API."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger("api.requests")


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    columns_returned: int | None = None
    events_returned: int | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)


def log_request(log: RequestLog) -> None:
    """Emit a request log line; errors and their details at warning level."""
    level = logging.WARNING if log.status_code >= 400 else logging.INFO
    logger.log(
        level,
        "%s %s -> %d in %dms request_id=%s client=%s columns=%s events=%s error=%s",
        log.method,
        log.endpoint,
        log.status_code,
        log.processing_time_ms,
        log.request_id,
        log.client_ip,
        log.columns_returned,
        log.events_returned,
        log.error_code,
    )
    for detail_type, message in log.details:
        logger.log(level, "  %s [%s]: %s", log.request_id, detail_type, message)
