"""
Unit tests for retry helpers.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from shared.retry import RetryConfig, RetryError, _calculate_delay, retry_async


class TestRetryConfig:
    """Test cases for RetryConfig."""

    def test_from_connect_config_counts_retries_after_first_try(self):
        config = RetryConfig.from_connect_config(SimpleNamespace(retry_attempts=3, retry_delay_seconds=0.5))

        assert config.max_attempts == 4
        assert config.base_delay == 0.5

    def test_max_attempts_is_at_least_one(self):
        assert RetryConfig(max_attempts=0).max_attempts == 1

    @pytest.mark.parametrize("attempt, expected", [
        (1, 1.0),
        (2, 2.0),
        (3, 4.0),
        (10, 10.0),
    ])
    def test_exponential_delay_is_capped(self, attempt, expected):
        config = RetryConfig(base_delay=1.0, max_delay=10.0, jitter=False)
        assert _calculate_delay(attempt, config) == expected

    def test_jitter_stays_within_ten_percent(self):
        config = RetryConfig(base_delay=2.0, jitter=True)
        for _ in range(20):
            assert 1.8 <= _calculate_delay(1, config) <= 2.2


class TestRetryAsync:
    """Test cases for retry_async."""

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        func = AsyncMock(return_value="ok")

        assert await retry_async(func, RetryConfig(max_attempts=3)) == "ok"
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        func = AsyncMock(side_effect=[ConnectionError("reset"), ConnectionError("reset"), "ok"])

        with patch("shared.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await retry_async(func, RetryConfig(max_attempts=3, jitter=False))

        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_retry_error(self):
        error = ConnectionError("reset")
        func = AsyncMock(side_effect=error)

        with patch("shared.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RetryError) as exc_info:
                await retry_async(func, RetryConfig(max_attempts=2), name="dispatch")

        assert exc_info.value.last_exception is error
        assert exc_info.value.attempts == 2
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_unlisted_exception_propagates_immediately(self):
        func = AsyncMock(side_effect=KeyError("missing"))

        with pytest.raises(KeyError):
            await retry_async(func, RetryConfig(max_attempts=5), exceptions=(ConnectionError,))

        assert func.await_count == 1
