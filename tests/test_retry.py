"""Tests for retry mechanism with exponential backoff."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from keyauth.transport.retry import RetryPolicy, retry_call


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://keyauth.test/api/1.2/")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"status {code}", request=request, response=response)


class TestRetryPolicy:
    """Test RetryPolicy configuration."""

    def test_default_values(self):
        """Test default retry policy values."""
        policy = RetryPolicy()

        assert policy.max_retries == 2
        assert policy.base_delay == 0.5
        assert policy.max_delay == 5.0
        assert policy.exponential_base == 2.0
        assert policy.retryable_exceptions == (
            httpx.HTTPStatusError,
            httpx.NetworkError,
            httpx.TimeoutException,
        )

    def test_calculate_delay(self):
        """Test exponential delay calculation."""
        policy = RetryPolicy(base_delay=0.5, max_delay=10.0, exponential_base=2.0)

        assert policy.calculate_delay(0) == 0.5
        assert policy.calculate_delay(1) == 1.0
        assert policy.calculate_delay(2) == 2.0

    def test_calculate_delay_capped_at_max(self):
        """Test delay is capped at max_delay."""
        policy = RetryPolicy(base_delay=1.0, max_delay=3.0, exponential_base=2.0)

        assert policy.calculate_delay(1) == 2.0
        assert policy.calculate_delay(2) == 3.0

    def test_server_errors_retryable(self):
        """Only 5xx status errors are retried."""
        policy = RetryPolicy()

        assert policy.is_retryable(status_error(500)) is True
        assert policy.is_retryable(status_error(503)) is True
        assert policy.is_retryable(status_error(400)) is False
        assert policy.is_retryable(status_error(401)) is False

    def test_network_and_timeout_retryable(self):
        """Network errors and timeouts are retried."""
        policy = RetryPolicy()

        assert policy.is_retryable(httpx.ConnectError("refused")) is True
        assert policy.is_retryable(httpx.ReadTimeout("slow")) is True
        assert policy.is_retryable(ValueError("bad")) is False


class TestRetryCall:
    """Test retry_call."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        """No retry when the first attempt succeeds."""
        mock_func = AsyncMock(return_value="ok")

        assert await retry_call(RetryPolicy(base_delay=0.0), mock_func) == "ok"
        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        """Transient failures are retried with increasing delays."""
        sleep_calls = []

        async def mock_sleep(duration):
            sleep_calls.append(duration)

        mock_func = AsyncMock(
            side_effect=[httpx.NetworkError("Error 1"), httpx.NetworkError("Error 2"), "success"]
        )

        with patch("asyncio.sleep", mock_sleep):
            policy = RetryPolicy(max_retries=2, base_delay=0.5, exponential_base=2.0)
            assert await retry_call(policy, mock_func) == "success"

        assert mock_func.call_count == 3
        assert sleep_calls == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        """The last exception propagates once retries are exhausted."""
        mock_func = AsyncMock(side_effect=httpx.NetworkError("down"))

        with pytest.raises(httpx.NetworkError):
            await retry_call(RetryPolicy(max_retries=2, base_delay=0.0), mock_func)
        assert mock_func.call_count == 3

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self):
        """max_retries=0 makes exactly one attempt."""
        mock_func = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(httpx.ReadTimeout):
            await retry_call(RetryPolicy(max_retries=0), mock_func)
        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_non_retryable_raised_immediately(self):
        """Non-retryable exceptions are not retried."""
        mock_func = AsyncMock(side_effect=status_error(404))

        with pytest.raises(httpx.HTTPStatusError):
            await retry_call(RetryPolicy(base_delay=0.0), mock_func)
        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_retry_call_passes_arguments(self):
        """retry_call forwards positional and keyword arguments."""
        mock_func = AsyncMock(return_value="ok")

        await retry_call(RetryPolicy(), mock_func, "url", params={"type": "init"})

        mock_func.assert_awaited_once_with("url", params={"type": "init"})

    @pytest.mark.asyncio
    async def test_logs_retry_attempts(self):
        """Each retry is logged as a warning."""
        mock_func = AsyncMock(side_effect=[httpx.NetworkError("blip"), "ok"])

        with patch("keyauth.transport.retry.logger") as mock_logger:
            await retry_call(RetryPolicy(base_delay=0.0), mock_func)

        assert mock_logger.warning.call_count == 1
        assert "Retry 1/2" in mock_logger.warning.call_args[0][0]
