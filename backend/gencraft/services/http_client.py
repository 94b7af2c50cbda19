"""
Async HTTP Client Configuration

Provides a shared httpx.AsyncClient with connection pooling, used for
every call to the hosted generation API.
"""

from typing import Optional

import httpx

from ..config import get_settings


# Connect timeout is fixed; read timeout comes from GEMINI_REQUEST_TIMEOUT
CONNECT_TIMEOUT = 5.0

# Shared client instance (lazily initialized)
_client: Optional[httpx.AsyncClient] = None


def get_timeout() -> httpx.Timeout:
    """Timeout for a single generation request."""
    return httpx.Timeout(get_settings().request_timeout, connect=CONNECT_TIMEOUT)


async def get_client() -> httpx.AsyncClient:
    """Get the shared async HTTP client."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=get_timeout(),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )
    return _client


async def close_client():
    """Close the shared client (call on app shutdown)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
