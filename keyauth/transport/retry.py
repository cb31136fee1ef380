"""Exponential backoff for the HTTP transport.

Only :class:`~keyauth.transport.httpx_transport.HttpxTransport` retries, and
only on failures that never reached the KeyAuth application: connection
errors, timeouts and 5xx answers. A ``success: false`` body is an answer and
is never retried; neither the dispatcher nor the API wrappers retry anything.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type

import httpx

from keyauth.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryPolicy:
    """How many times and how long apart a GET is repeated.

    Attributes:
        max_retries: Extra attempts after the first one; 0 disables retrying
        base_delay: Wait before the first retry, in seconds
        max_delay: Ceiling for any single wait, in seconds
        exponential_base: Growth factor between consecutive waits
        retryable_exceptions: Transient httpx failures worth another attempt
    """

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 5.0
    exponential_base: float = 2.0
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        httpx.HTTPStatusError,
        httpx.NetworkError,
        httpx.TimeoutException,
    )

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-indexed)."""
        return min(self.base_delay * self.exponential_base**attempt, self.max_delay)

    def is_retryable(self, exception: Exception) -> bool:
        # Only 5xx status errors are transient
        if isinstance(exception, httpx.HTTPStatusError):
            return exception.response.status_code >= 500
        return isinstance(exception, self.retryable_exceptions)


async def retry_call(
    policy: RetryPolicy, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any
) -> Any:
    """Await ``func(*args, **kwargs)``, repeating transient failures per ``policy``.

    The policy is passed per call because each API instance carries its own
    ``max_retries`` option.

    Raises:
        Exception: The last failure, once it is not retryable or attempts run out
    """
    name = getattr(func, "__name__", repr(func))
    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not policy.is_retryable(e):
                logger.debug(f"{name} failed with {type(e).__name__}, not retrying: {e}")
                raise
            if attempt >= policy.max_retries:
                logger.warning(f"{name} gave up after {attempt + 1} attempts: {type(e).__name__}: {e}")
                raise

            delay = policy.calculate_delay(attempt)
            attempt += 1
            logger.warning(
                f"Retry {attempt}/{policy.max_retries} for {name} in {delay:.2f}s "
                f"after {type(e).__name__}: {e}"
            )
            await asyncio.sleep(delay)
