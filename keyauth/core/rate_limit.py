"""Client-side rate limiting for outbound API calls.

A single token bucket gates every request a client instance sends. Tokens are
added in whole units, always computed from the last refill timestamp, so the
bucket never drifts no matter how often it is inspected.
"""

import asyncio
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from keyauth.core.logging import get_logger
from keyauth.exceptions import RateLimitError

logger = get_logger(__name__)


@dataclass
class TokenBucket:
    """Token bucket state.

    Attributes:
        capacity: Maximum number of tokens
        tokens: Tokens currently available (0 <= tokens <= capacity)
        refill_interval: Seconds needed to add one token
        last_refill_at: Clock reading the last whole token was credited at
    """
    capacity: int
    tokens: int
    refill_interval: float
    last_refill_at: float = field(default_factory=time.monotonic)


def format_duration(seconds: float) -> str:
    """Render a wait duration for humans ("250ms", "1.5s", "2m 5s")."""
    if seconds < 1:
        return f"{max(0, math.ceil(seconds * 1000))}ms"
    if seconds < 60:
        return f"{round(seconds, 1):g}s"
    minutes, rest = divmod(math.ceil(seconds), 60)
    return f"{minutes}m {rest}s"


class RateLimiter:
    """Token bucket admission controller shared by all calls of one client.

    The check-then-consume step (:meth:`try_acquire`) runs under a lock so it
    stays atomic even if several threads share a limiter; under asyncio it is
    also free of suspension points.
    """

    def __init__(
        self,
        max_tokens: int = 10,
        refill_rate: int = 5000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the rate limiter with a full bucket.

        Args:
            max_tokens: Bucket capacity
            refill_rate: Milliseconds needed to add one token
            clock: Monotonic time source returning seconds
            sleep: Coroutine used to suspend while waiting for a token

        Raises:
            ValueError: If max_tokens or refill_rate are invalid.
        """
        if max_tokens < 1:
            raise ValueError("max_tokens must be >= 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be > 0")

        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._bucket = TokenBucket(
            capacity=max_tokens,
            tokens=max_tokens,
            refill_interval=refill_rate / 1000,
            last_refill_at=clock(),
        )

    @property
    def capacity(self) -> int:
        return self._bucket.capacity

    @property
    def refill_interval(self) -> float:
        return self._bucket.refill_interval

    @property
    def tokens(self) -> int:
        """Tokens available right now (owed refills applied)."""
        with self._lock:
            self._refill()
            return self._bucket.tokens

    def _refill(self) -> None:
        """Credit the whole tokens owed since the last refill.

        Must be called with the lock held.
        """
        bucket = self._bucket
        now = self._clock()
        owed = math.floor((now - bucket.last_refill_at) / bucket.refill_interval)
        if owed <= 0:
            return
        bucket.tokens = min(bucket.capacity, bucket.tokens + owed)
        bucket.last_refill_at += owed * bucket.refill_interval

    def admitted(self) -> bool:
        """Return True if a token is available, after applying owed refills."""
        with self._lock:
            self._refill()
            return self._bucket.tokens >= 1

    def consume(self) -> None:
        """Take one token out of the bucket.

        Raises:
            RateLimitError: If the bucket is empty.
        """
        with self._lock:
            self._refill()
            if self._bucket.tokens < 1:
                raise RateLimitError()
            self._bucket.tokens -= 1

    def try_acquire(self) -> bool:
        """Check admission and consume in one critical section.

        Returns:
            True if a token was taken, False if the bucket is empty
        """
        with self._lock:
            self._refill()
            if self._bucket.tokens < 1:
                return False
            self._bucket.tokens -= 1
            return True

    def time_until_next_token(self) -> float:
        """Seconds until the next token is credited, floored at 0."""
        with self._lock:
            self._refill()
            bucket = self._bucket
            if bucket.tokens >= 1:
                return 0.0
            return max(0.0, bucket.refill_interval - (self._clock() - bucket.last_refill_at))

    def time_until_next_token_string(self) -> str:
        return format_duration(self.time_until_next_token())

    async def wait_until_admitted(self) -> None:
        """Suspend until a token can be taken, then take it.

        Each retry sleeps exactly as long as the bucket needs to mint the next
        token. Several waiters may wake together; those that lose the race
        sleep again for the newly computed interval.
        """
        while not self.try_acquire():
            delay = self.time_until_next_token()
            logger.debug(f"Rate limit hit, sleeping {format_duration(delay)}")
            await self._sleep(delay)
