"""Tests for cascade job retry strategies."""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import InvalidStateError, NotFoundError
from playbook.retry_strategies import (
    RetryPolicy,
    RetryStrategy,
    execute_with_retry,
)


# ─── RetryStrategy creation ───

@pytest.mark.unit
class TestRetryStrategyCreation:
    def test_none_strategy(self):
        s = RetryStrategy.none()
        assert s.policy == RetryPolicy.NONE
        assert s.max_retries == 0

    def test_fixed_strategy(self):
        s = RetryStrategy.fixed(max_retries=3, delay=5.0)
        assert s.policy == RetryPolicy.FIXED
        assert s.base_delay == 5.0
        assert s.jitter is False

    def test_exponential_strategy(self):
        s = RetryStrategy.exponential(max_retries=5, base_delay=1.0, max_delay=60.0)
        assert s.policy == RetryPolicy.EXPONENTIAL
        assert s.max_retries == 5
        assert s.jitter is True

    def test_from_settings(self):
        settings = SimpleNamespace(
            CASCADE_RETRY_POLICY="exponential",
            CASCADE_MAX_RETRIES=4,
            CASCADE_RETRY_BASE_DELAY=0.5,
            CASCADE_RETRY_MAX_DELAY=10.0,
        )
        s = RetryStrategy.from_settings(settings)
        assert s.policy == RetryPolicy.EXPONENTIAL
        assert s.max_retries == 4
        assert s.base_delay == 0.5
        assert s.max_delay == 10.0

    def test_from_settings_zero_retries_disables(self):
        settings = SimpleNamespace(
            CASCADE_RETRY_POLICY="exponential",
            CASCADE_MAX_RETRIES=0,
            CASCADE_RETRY_BASE_DELAY=1.0,
            CASCADE_RETRY_MAX_DELAY=30.0,
        )
        assert RetryStrategy.from_settings(settings).policy == RetryPolicy.NONE

    @pytest.mark.parametrize("name,policy", [
        ("linear", RetryPolicy.LINEAR),
        ("FIXED", RetryPolicy.FIXED),
        ("none", RetryPolicy.NONE),
    ])
    def test_from_settings_selects_policy(self, name, policy):
        settings = SimpleNamespace(
            CASCADE_RETRY_POLICY=name,
            CASCADE_MAX_RETRIES=3,
            CASCADE_RETRY_BASE_DELAY=2.0,
            CASCADE_RETRY_MAX_DELAY=30.0,
        )
        s = RetryStrategy.from_settings(settings)
        assert s.policy == policy
        if policy == RetryPolicy.LINEAR:
            assert s.compute_delay(3) == 6.0

    def test_from_settings_unknown_policy(self):
        settings = SimpleNamespace(
            CASCADE_RETRY_POLICY="fibonacci",
            CASCADE_MAX_RETRIES=3,
            CASCADE_RETRY_BASE_DELAY=1.0,
            CASCADE_RETRY_MAX_DELAY=30.0,
        )
        with pytest.raises(ValueError):
            RetryStrategy.from_settings(settings)


# ─── Delay computation ───

@pytest.mark.unit
class TestDelayComputation:
    def test_none_delay(self):
        assert RetryStrategy.none().compute_delay(1) == 0.0

    def test_fixed_delay(self):
        s = RetryStrategy.fixed(delay=5.0)
        assert s.compute_delay(1) == 5.0
        assert s.compute_delay(3) == 5.0

    def test_exponential_delay_no_jitter(self):
        s = RetryStrategy.exponential(base_delay=1.0, jitter=False)
        assert [s.compute_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_linear_delay(self):
        s = RetryStrategy.linear(base_delay=2.0)
        assert s.compute_delay(3) == 6.0

    def test_max_delay_cap(self):
        s = RetryStrategy.exponential(base_delay=10.0, max_delay=30.0, jitter=False)
        assert s.compute_delay(5) == 30.0

    def test_exponential_with_jitter_in_range(self):
        s = RetryStrategy.exponential(base_delay=10.0, jitter=True, max_delay=100.0)
        for _ in range(50):
            assert 5.0 <= s.compute_delay(1) <= 15.0


# ─── Should retry ───

@pytest.mark.unit
class TestShouldRetry:
    def test_none_never_retries(self):
        assert RetryStrategy.none().should_retry(1) is False

    def test_exceeds_max_retries(self):
        s = RetryStrategy.fixed(max_retries=3)
        assert s.should_retry(2) is True
        assert s.should_retry(3) is False

    def test_engine_errors_never_retried(self):
        s = RetryStrategy.exponential()
        assert s.should_retry(1, NotFoundError("template step gone")) is False
        assert s.should_retry(1, InvalidStateError("execution failed")) is False

    def test_database_errors_retried(self):
        s = RetryStrategy.exponential()
        error = OperationalError("UPDATE ...", {}, Exception("database is locked"))
        assert s.should_retry(1, error) is True

    def test_connection_and_timeout_retried(self):
        s = RetryStrategy.exponential()
        assert s.should_retry(1, ConnectionError("refused")) is True
        assert s.should_retry(1, TimeoutError("timeout")) is True

    def test_transient_indicator_in_message(self):
        s = RetryStrategy.exponential()
        assert s.should_retry(1, RuntimeError("deadlock detected")) is True
        assert s.should_retry(1, RuntimeError("bad data")) is False


# ─── Execute with retry ───

@pytest.mark.unit
class TestExecuteWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        calls = []

        async def func(x):
            calls.append(x)
            return x * 2

        result = await execute_with_retry(func, RetryStrategy.fixed(max_retries=3, delay=0.01), 21)
        assert result == 42
        assert calls == [21]

    @pytest.mark.asyncio
    async def test_retries_transient_failure(self):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionError("refused")
            return "ok"

        result = await execute_with_retry(func, RetryStrategy.fixed(max_retries=5, delay=0.01))
        assert result == "ok"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_exhaustion_records_attempts(self):
        async def func():
            raise TimeoutError("always timeout")

        with pytest.raises(TimeoutError) as exc_info:
            await execute_with_retry(func, RetryStrategy.fixed(max_retries=2, delay=0.01))
        assert exc_info.value.retry_attempts == 2

    @pytest.mark.asyncio
    async def test_engine_error_fails_on_first_attempt(self):
        call_count = 0

        async def func():
            nonlocal call_count
            call_count += 1
            raise NotFoundError("gone")

        with pytest.raises(NotFoundError) as exc_info:
            await execute_with_retry(func, RetryStrategy.fixed(max_retries=5, delay=0.01))
        assert call_count == 1
        assert exc_info.value.retry_attempts == 1

    @pytest.mark.asyncio
    async def test_on_retry_callback(self):
        retries = []

        async def func():
            if len(retries) < 2:
                raise ConnectionError("fail")
            return "done"

        def on_retry(attempt, error, delay):
            retries.append(attempt)

        result = await execute_with_retry(
            func,
            RetryStrategy.fixed(max_retries=5, delay=0.01),
            on_retry=on_retry,
        )
        assert result == "done"
        assert retries == [1, 2]
