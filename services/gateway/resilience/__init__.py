"""Circuit breaking, retries and their composition for downstream calls."""

from .caller import ResilienceConfig, ResilientCaller
from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitBreakerState,
    CircuitState,
)
from .retry import BackoffPolicy, RetryExecutor

__all__ = [
    "BackoffPolicy",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitBreakerState",
    "CircuitState",
    "ResilienceConfig",
    "ResilientCaller",
    "RetryExecutor",
]
