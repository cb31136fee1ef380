"""Transports package for the keyauth client.

This package provides:
- Base transport interface (BaseTransport, TransportResponse)
- The httpx implementation (HttpxTransport)
- A scripted transport for tests and offline work (MockTransport)
- Backoff for transient HTTP failures (RetryPolicy, retry_call)
"""

from keyauth.transport.base import (
    DELIVERABLE_STATUS_CODES,
    BaseTransport,
    TransportResponse,
)
from keyauth.transport.httpx_transport import HttpxTransport
from keyauth.transport.mock import MockTransport, RecordedCall
from keyauth.transport.retry import RetryPolicy, retry_call

__all__ = [
    # Base
    "DELIVERABLE_STATUS_CODES",
    "BaseTransport",
    "TransportResponse",
    # Transports
    "HttpxTransport",
    "MockTransport",
    "RecordedCall",
    # Retry
    "RetryPolicy",
    "retry_call",
]
