"""HTTP client construction for the transports.

Clients are created with the configured timeouts and connection pool limits.
A transport either receives a shared client from the caller (and never closes
it) or builds its own with :func:`create_http_client` and owns its lifecycle.
"""

import httpx

from keyauth.core.config import settings

DEFAULT_HEADERS = {
    "User-Agent": "KeyAuthPy",
    "Accept": "application/json",
}


def create_http_client(**kwargs) -> httpx.AsyncClient:
    """Create a new HTTP client with default settings.

    Note: The returned client should be closed when done:
        async with create_http_client() as client:
            # use client
            pass

    Args:
        **kwargs: Override default settings. Can include:
            - timeout: Single timeout value for all operations
            - max_connections: Maximum connections
            - max_keepalive_connections: Maximum keepalive connections
            - keepalive_expiry: Keepalive expiration time
            - headers: Extra headers merged over the defaults

    Returns:
        A new httpx.AsyncClient instance.
    """
    headers = dict(DEFAULT_HEADERS)
    headers.update(kwargs.get("headers") or {})

    return httpx.AsyncClient(
        timeout=httpx.Timeout(kwargs.get("timeout", settings.http_timeout)),
        limits=httpx.Limits(
            max_connections=kwargs.get("max_connections", settings.http_max_connections),
            max_keepalive_connections=kwargs.get(
                "max_keepalive_connections", settings.http_max_keepalive_connections
            ),
            keepalive_expiry=kwargs.get("keepalive_expiry", settings.http_keepalive_expiry),
        ),
        headers=headers,
        # 302 is a deliverable status for the API, never follow it
        follow_redirects=False,
    )
