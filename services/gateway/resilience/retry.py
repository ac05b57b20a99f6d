import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from shared.core import CallResult, get_logger, is_retryable

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Delay between attempts.

    The n-th retry waits ``initial_delay * multiplier ** (n - 1)`` seconds,
    capped at ``max_delay``. A multiplier of 1 or less gives a fixed delay.
    """
    initial_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 5.0

    @classmethod
    def fixed(cls, delay: float) -> "BackoffPolicy":
        return cls(initial_delay=delay, multiplier=1.0, max_delay=delay)

    @classmethod
    def exponential(cls, initial_delay: float, multiplier: float = 2.0,
                    max_delay: float = 5.0) -> "BackoffPolicy":
        return cls(initial_delay=initial_delay, multiplier=multiplier, max_delay=max_delay)

    def as_wait(self):
        if self.multiplier <= 1:
            return wait_fixed(self.initial_delay)
        return wait_exponential(multiplier=self.initial_delay, exp_base=self.multiplier,
                                max=self.max_delay)


class RetryExecutor:
    """
    Bounded retries around an operation that reports failure as a CallResult.

    Only retryable errors (TransientCallError) are retried. CircuitOpenError,
    StructuralError, NotFoundError and unexpected errors end the loop at once.
    When attempts run out the last error is returned.
    """

    def __init__(self, max_attempts: int = 3, backoff: Optional[BackoffPolicy] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff = backoff or BackoffPolicy()
        self._sleep = sleep

    async def execute(self, operation: Callable[[], Awaitable[CallResult[T]]],
                      max_attempts: Optional[int] = None,
                      backoff: Optional[BackoffPolicy] = None) -> CallResult[T]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts or self.max_attempts),
            wait=(backoff or self.backoff).as_wait(),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    result = await operation()
                    result.unwrap()
        except Exception as e:
            return CallResult.failure(e, attempts=attempts)
        return result.with_attempts(attempts)
