"""Tests for the token bucket rate limiter."""

import asyncio
import time

import pytest

from keyauth.core.rate_limit import RateLimiter, TokenBucket, format_duration
from keyauth.exceptions import RateLimitError


class TestRateLimiterConstruction:
    """Test limiter construction and validation."""

    def test_bucket_starts_full(self, clock):
        """A new limiter has every token available."""
        limiter = RateLimiter(max_tokens=10, refill_rate=5000, clock=clock)

        assert limiter.capacity == 10
        assert limiter.tokens == 10
        assert limiter.refill_interval == 5.0

    def test_defaults(self):
        """Defaults are 10 tokens refilled every 5 seconds."""
        limiter = RateLimiter()

        assert limiter.capacity == 10
        assert limiter.refill_interval == 5.0

    @pytest.mark.parametrize("max_tokens,refill_rate", [(0, 1000), (-1, 1000), (1, 0), (1, -5)])
    def test_invalid_arguments_rejected(self, max_tokens, refill_rate):
        """Non-positive capacity or refill rate raise ValueError."""
        with pytest.raises(ValueError):
            RateLimiter(max_tokens=max_tokens, refill_rate=refill_rate)

    def test_token_bucket_dataclass(self):
        """TokenBucket holds the raw bucket state."""
        bucket = TokenBucket(capacity=3, tokens=1, refill_interval=0.5, last_refill_at=2.0)

        assert bucket.capacity == 3
        assert bucket.tokens == 1
        assert bucket.last_refill_at == 2.0


class TestAdmission:
    """Test admission, consumption and bucket bounds."""

    def test_try_acquire_until_empty(self, limiter):
        """try_acquire takes tokens until the bucket is empty."""
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is True
        assert limiter.try_acquire() is False
        assert limiter.tokens == 0

    def test_admitted_does_not_consume(self, limiter):
        """admitted only inspects the bucket."""
        assert limiter.admitted() is True
        assert limiter.admitted() is True
        assert limiter.tokens == 2

    def test_consume_on_empty_bucket_raises(self, limiter):
        """Consuming from an empty bucket raises and keeps tokens at zero."""
        limiter.consume()
        limiter.consume()

        with pytest.raises(RateLimitError):
            limiter.consume()
        assert limiter.tokens == 0
        assert limiter.admitted() is False

    def test_refill_adds_whole_tokens(self, limiter, clock):
        """Only whole elapsed intervals add tokens."""
        limiter.consume()
        limiter.consume()

        clock.advance(0.5)
        assert limiter.tokens == 0

        clock.advance(0.5)
        assert limiter.tokens == 1

    def test_refill_keeps_partial_progress(self, limiter, clock):
        """A partial interval still counts towards the next token."""
        limiter.consume()
        limiter.consume()

        clock.advance(1.5)
        assert limiter.tokens == 1
        clock.advance(0.5)
        assert limiter.tokens == 2

    def test_refill_capped_at_capacity(self, limiter, clock):
        """Tokens never exceed capacity however long the bucket idles."""
        limiter.consume()
        clock.advance(3600)

        assert limiter.tokens == limiter.capacity

    def test_idle_full_bucket_does_not_bank_time(self, limiter, clock):
        """Time spent full is not credited once tokens are taken later."""
        clock.advance(10)
        limiter.consume()
        limiter.consume()

        assert limiter.admitted() is False
        assert limiter.time_until_next_token() == pytest.approx(1.0)


class TestTimeUntilNextToken:
    """Test wait time computation."""

    def test_zero_when_tokens_available(self, limiter):
        """No wait while a token is available."""
        assert limiter.time_until_next_token() == 0.0

    def test_remaining_interval_when_empty(self, limiter, clock):
        """The wait is the rest of the current refill interval."""
        limiter.consume()
        limiter.consume()
        clock.advance(0.25)

        assert limiter.time_until_next_token() == pytest.approx(0.75)

    def test_string_form(self, limiter, clock):
        """The string form is human readable."""
        limiter.consume()
        limiter.consume()
        clock.advance(0.75)

        assert limiter.time_until_next_token_string() == "250ms"

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0.25, "250ms"), (0.0, "0ms"), (1.0, "1s"), (1.5, "1.5s"), (125, "2m 5s")],
    )
    def test_format_duration(self, seconds, expected):
        """Durations render as ms, seconds or minutes."""
        assert format_duration(seconds) == expected


class TestWaitUntilAdmitted:
    """Test suspension until a token is available."""

    @pytest.mark.asyncio
    async def test_returns_immediately_when_tokens_available(self, limiter, clock):
        """No sleep when the bucket has a token."""
        await limiter.wait_until_admitted()

        assert clock.sleeps == []
        assert limiter.tokens == 1

    @pytest.mark.asyncio
    async def test_sleeps_for_next_token(self, limiter, clock):
        """An empty bucket sleeps exactly until the next token, then takes it."""
        limiter.consume()
        limiter.consume()

        await limiter.wait_until_admitted()

        assert clock.sleeps == [1.0]
        assert limiter.tokens == 0

    @pytest.mark.asyncio
    async def test_admission_blocking_terminates(self):
        """Capacity 1 with a 100ms refill admits three calls in about 200ms."""
        limiter = RateLimiter(max_tokens=1, refill_rate=100)

        start = time.monotonic()
        await asyncio.gather(*(limiter.wait_until_admitted() for _ in range(3)))
        elapsed = time.monotonic() - start

        assert elapsed >= 0.18
        assert elapsed < 1.0
        assert limiter.tokens == 0
