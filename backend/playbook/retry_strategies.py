"""Retry strategies for cascade jobs.

A cascade job resolves and dispatches the successor of a completed step.
Transient failures (database locks, lost connections, timeouts) are
retried with backoff; engine errors such as NotFoundError or
InvalidStateError are deterministic and fail on the first attempt.

Usage:
    strategy = RetryStrategy.from_settings(get_settings())
    await execute_with_retry(orchestrator.trigger_next_step, strategy, tenant_id, ...)
"""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from core.exceptions import PlaybookEngineError


class RetryPolicy(str, Enum):
    """Available retry policies."""
    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    NONE = "none"


TIMEOUT_ERRORS = {"TimeoutError", "ConnectionTimeout", "ReadTimeout"}
CONNECTION_ERRORS = {"ConnectionError", "ConnectionRefusedError", "ConnectionResetError", "OSError"}
DATABASE_ERRORS = {"OperationalError", "IntegrityError", "DisconnectionError"}
TRANSIENT_INDICATORS = ("timeout", "connection", "temporary", "database is locked", "deadlock")


@dataclass
class RetryStrategy:
    """Configurable retry strategy for cascade jobs."""
    policy: RetryPolicy
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True
    jitter_range: float = 0.5
    retryable_errors: list[str] = field(default_factory=list)

    @classmethod
    def none(cls) -> 'RetryStrategy':
        """No retries, fail immediately."""
        return cls(policy=RetryPolicy.NONE, max_retries=0)

    @classmethod
    def fixed(cls, max_retries: int = 3, delay: float = 1.0) -> 'RetryStrategy':
        """Fixed delay between retries."""
        return cls(
            policy=RetryPolicy.FIXED,
            max_retries=max_retries,
            base_delay=delay,
            jitter=False,
        )

    @classmethod
    def exponential(
        cls,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        jitter: bool = True,
    ) -> 'RetryStrategy':
        """Exponential backoff with optional jitter."""
        return cls(
            policy=RetryPolicy.EXPONENTIAL,
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            jitter=jitter,
        )

    @classmethod
    def linear(
        cls,
        max_retries: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
    ) -> 'RetryStrategy':
        """Linear backoff: delay = base_delay * attempt_number."""
        return cls(
            policy=RetryPolicy.LINEAR,
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            jitter=False,
        )

    @classmethod
    def from_settings(cls, settings) -> 'RetryStrategy':
        """Build the cascade strategy from CASCADE_RETRY_* settings.

        Raises:
            ValueError: If CASCADE_RETRY_POLICY is not a known policy
        """
        policy = RetryPolicy(settings.CASCADE_RETRY_POLICY.lower())
        if policy == RetryPolicy.NONE or settings.CASCADE_MAX_RETRIES <= 0:
            return cls.none()
        if policy == RetryPolicy.FIXED:
            return cls.fixed(
                max_retries=settings.CASCADE_MAX_RETRIES,
                delay=settings.CASCADE_RETRY_BASE_DELAY,
            )
        if policy == RetryPolicy.LINEAR:
            return cls.linear(
                max_retries=settings.CASCADE_MAX_RETRIES,
                base_delay=settings.CASCADE_RETRY_BASE_DELAY,
                max_delay=settings.CASCADE_RETRY_MAX_DELAY,
            )
        return cls.exponential(
            max_retries=settings.CASCADE_MAX_RETRIES,
            base_delay=settings.CASCADE_RETRY_BASE_DELAY,
            max_delay=settings.CASCADE_RETRY_MAX_DELAY,
        )

    def compute_delay(self, attempt: int) -> float:
        """Compute the delay for a given attempt number (1-based)."""
        if self.policy == RetryPolicy.NONE:
            return 0.0

        if self.policy == RetryPolicy.FIXED:
            delay = self.base_delay
        elif self.policy == RetryPolicy.EXPONENTIAL:
            delay = self.base_delay * (2 ** (attempt - 1))
        elif self.policy == RetryPolicy.LINEAR:
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay

        delay = min(delay, self.max_delay)

        if self.jitter and delay > 0:
            jitter_amount = delay * self.jitter_range
            delay = max(0.0, delay + random.uniform(-jitter_amount, jitter_amount))

        return round(delay, 3)

    def should_retry(self, attempt: int, error: Optional[Exception] = None) -> bool:
        """Determine if we should retry based on attempt number and error type."""
        if self.policy == RetryPolicy.NONE:
            return False

        if attempt >= self.max_retries:
            return False

        if error is None:
            return True

        # Engine errors describe the data, not the environment
        if isinstance(error, PlaybookEngineError):
            return False

        error_name = type(error).__name__

        if self.retryable_errors:
            return error_name in self.retryable_errors

        if error_name in TIMEOUT_ERRORS | CONNECTION_ERRORS | DATABASE_ERRORS:
            return True

        error_str = str(error).lower()
        return any(ind in error_str for ind in TRANSIENT_INDICATORS)


async def execute_with_retry(
    func: Callable,
    strategy: RetryStrategy,
    *args,
    on_retry: Optional[Callable] = None,
    **kwargs,
):
    """Execute a coroutine function with the given retry strategy.

    Args:
        func: Async callable to execute.
        strategy: RetryStrategy instance.
        on_retry: Optional callback(attempt, error, delay) called before each retry.

    Returns:
        The result of func(*args, **kwargs).

    Raises:
        The last exception once the strategy gives up. The number of
        attempts made is attached to it as `retry_attempts`.
    """
    attempt = 0

    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            attempt += 1

            if not strategy.should_retry(attempt, e):
                e.retry_attempts = attempt
                raise

            delay = strategy.compute_delay(attempt)

            if on_retry:
                on_retry(attempt, e, delay)

            await asyncio.sleep(delay)
