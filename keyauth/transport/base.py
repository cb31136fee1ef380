from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from keyauth.core.http_client import create_http_client

# Status codes the API uses for answers that still carry a structured body
DELIVERABLE_STATUS_CODES = frozenset({200, 302, 403, 404, 406})


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of one HTTP call.

    Attributes:
        status_code: HTTP status (always one of DELIVERABLE_STATUS_CODES)
        body: Decoded JSON body, expected to hold ``success`` and ``message``
    """
    status_code: int
    body: Mapping[str, Any] = field(default_factory=dict)


class BaseTransport(ABC):
    """Base class for transports.

    Subclasses can accept an external httpx.AsyncClient for connection pooling,
    or create their own if not provided. A client passed in is never closed by
    the transport.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        """Initialize the transport.

        Args:
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds
        """
        self._http_client = http_client
        self._owns_client = http_client is None
        self.timeout = timeout

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating an owned one on first use."""
        if self._http_client is None:
            self._http_client = create_http_client(timeout=self.timeout)
        return self._http_client

    @abstractmethod
    async def call(self, url: str, params: Mapping[str, str]) -> TransportResponse:
        """Perform one API call.

        Args:
            url: API base URL
            params: Query parameters, credentials included

        Returns:
            The status and decoded body

        Raises:
            TransportError: If no deliverable answer could be obtained
        """
        pass

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "BaseTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
