from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from shared.core import CallResult, get_logger

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .retry import BackoffPolicy, RetryExecutor

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResilienceConfig:
    """Breaker, retry and timeout settings for one downstream service"""
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    max_attempts: int = 3
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    call_timeout: Optional[float] = 5.0


class ResilientCaller:
    """
    Calls one downstream service through retry, then breaker, then timeout.

    Each retry attempt passes through the breaker, so an attempt made after
    the breaker trips fails fast with CircuitOpenError and ends the retries.
    """

    def __init__(self, service: str, breaker: CircuitBreaker, retry: RetryExecutor,
                 timeout: Optional[float] = None):
        self.service = service
        self.breaker = breaker
        self.retry = retry
        self.timeout = timeout

    @classmethod
    def from_config(cls, service: str, breaker: CircuitBreaker, config: ResilienceConfig,
                    **retry_kwargs) -> "ResilientCaller":
        retry = RetryExecutor(config.max_attempts, config.backoff, **retry_kwargs)
        return cls(service, breaker, retry, timeout=config.call_timeout)

    async def call(self, operation: Callable[[], Awaitable[T]],
                   description: str = "call") -> CallResult[T]:
        result = await self.retry.execute(
            lambda: self.breaker.guard(operation, timeout=self.timeout)
        )
        if not result.ok:
            logger.warning(
                f"{self.service} {description} failed after {result.attempts} attempt(s): {result.error}",
                extra={'extra_fields': {
                    'service': self.service,
                    'operation': description,
                    'attempts': result.attempts,
                    'error_type': type(result.error).__name__,
                }}
            )
        return result
