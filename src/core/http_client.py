"""
Shared httpx client for the calendar API with lazy initialization.
"""

import httpx

from core.config import HTTP_TIMEOUT_SECONDS

_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    """Get or create the calendar API client (lazy initialization)."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=HTTP_TIMEOUT_SECONDS,
            headers={"Accept": "application/json"},
        )
    return _http_client


async def close_http_client():
    """Close the shared client, if one was created."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
