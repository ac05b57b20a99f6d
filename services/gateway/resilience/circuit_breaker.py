"""
Per-service circuit breaker.

CLOSED   calls pass; consecutive failures are counted and a success resets
         the count. Reaching ``failure_threshold`` trips to OPEN.
OPEN     calls are rejected with CircuitOpenError without touching the
         downstream until ``recovery_timeout`` has passed, then the next call
         moves the breaker to HALF_OPEN.
HALF_OPEN at most ``half_open_max_calls`` trial calls run at once.
         ``success_threshold`` trial successes close the breaker; any trial
         failure reopens it and restarts the recovery timer. An ignored error
         such as NotFoundError only frees its trial slot.

Every state change happens under the breaker's lock. Each transition bumps a
generation number, and outcomes of calls admitted under an older generation
are not counted.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from shared.core import CallResult, CircuitOpenError, NotFoundError, TransientCallError, get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 1
    success_threshold: int = 2
    # Errors that are valid answers rather than signs of an outage
    ignored_errors: Tuple[Type[BaseException], ...] = (NotFoundError,)

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout must not be negative")


@dataclass(frozen=True)
class CircuitBreakerState:
    """Point-in-time view of a breaker"""
    service: str
    state: CircuitState
    failure_count: int
    half_open_successes: int
    last_transition_at: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "service": self.service,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "half_open_successes": self.half_open_successes,
            "last_transition_at": self.last_transition_at,
        }


@dataclass(frozen=True)
class _Permit:
    generation: int
    trial: bool


class CircuitBreaker:

    def __init__(self, service: str, config: Optional[CircuitBreakerConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.service = service
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._generation = 0
        self._failure_count = 0
        self._half_open_successes = 0
        self._half_open_in_flight = 0
        self._last_transition_at = clock()

    @property
    def state(self) -> CircuitState:
        return self.snapshot().state

    def snapshot(self) -> CircuitBreakerState:
        with self._lock:
            return CircuitBreakerState(
                service=self.service,
                state=self._state,
                failure_count=self._failure_count,
                half_open_successes=self._half_open_successes,
                last_transition_at=self._last_transition_at,
            )

    async def guard(self, call: Callable[[], Awaitable[T]],
                    timeout: Optional[float] = None) -> CallResult[T]:
        """
        Run ``call`` if the breaker admits it.

        Returns a failed CallResult with CircuitOpenError when rejected. A
        call exceeding ``timeout`` seconds fails with TransientCallError.
        """
        permit, retry_after = self._acquire()
        if permit is None:
            logger.info(f"Circuit for {self.service} is open, rejecting call")
            return CallResult.failure(CircuitOpenError(self.service, retry_after=retry_after))

        try:
            if timeout is not None:
                value = await asyncio.wait_for(call(), timeout)
            else:
                value = await call()
        except asyncio.TimeoutError:
            error = TransientCallError(
                f"{self.service} call timed out after {timeout}s", service=self.service
            )
            self._on_failure(permit)
            return CallResult.failure(error)
        except asyncio.CancelledError:
            self._release(permit)
            raise
        except Exception as e:
            if isinstance(e, self.config.ignored_errors):
                self._on_ignored(permit)
            else:
                self._on_failure(permit)
            return CallResult.failure(e)

        self._on_success(permit)
        return CallResult.success(value)

    def _acquire(self) -> Tuple[Optional[_Permit], float]:
        with self._lock:
            if self._state is CircuitState.OPEN:
                elapsed = self._clock() - self._last_transition_at
                if elapsed < self.config.recovery_timeout:
                    return None, self.config.recovery_timeout - elapsed
                self._transition(CircuitState.HALF_OPEN)

            if self._state is CircuitState.HALF_OPEN:
                if self._half_open_in_flight >= self.config.half_open_max_calls:
                    return None, 0.0
                self._half_open_in_flight += 1
                return _Permit(self._generation, trial=True), 0.0

            return _Permit(self._generation, trial=False), 0.0

    def _release(self, permit: _Permit) -> None:
        """Give back a trial slot without recording an outcome"""
        with self._lock:
            if permit.trial and permit.generation == self._generation:
                self._half_open_in_flight -= 1

    def _on_ignored(self, permit: _Permit) -> None:
        """Ignored errors clear the failure count but never count as trial successes"""
        if permit.trial:
            self._release(permit)
        else:
            self._on_success(permit)

    def _on_success(self, permit: _Permit) -> None:
        with self._lock:
            if permit.generation != self._generation:
                return
            if permit.trial:
                self._half_open_in_flight -= 1
                self._half_open_successes += 1
                if self._half_open_successes >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED)
            else:
                self._failure_count = 0

    def _on_failure(self, permit: _Permit) -> None:
        with self._lock:
            if permit.generation != self._generation:
                return
            if permit.trial:
                self._half_open_in_flight -= 1
                self._transition(CircuitState.OPEN)
                return
            self._failure_count += 1
            if self._failure_count >= self.config.failure_threshold:
                self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        # Caller holds self._lock
        old_state = self._state
        self._state = new_state
        self._generation += 1
        self._last_transition_at = self._clock()
        self._failure_count = 0
        self._half_open_successes = 0
        self._half_open_in_flight = 0
        logger.warning(
            f"Circuit breaker {self.service}: {old_state.value} -> {new_state.value}",
            extra={'extra_fields': {
                'service': self.service,
                'from_state': old_state.value,
                'to_state': new_state.value,
            }}
        )


class CircuitBreakerRegistry:
    """One breaker per downstream service name"""

    def __init__(self, configs: Optional[Dict[str, CircuitBreakerConfig]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._configs = dict(configs or {})
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()
        for service in self._configs:
            self.get(service)

    def get(self, service: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(service)
            if breaker is None:
                breaker = CircuitBreaker(service, self._configs.get(service), clock=self._clock)
                self._breakers[service] = breaker
            return breaker

    async def guard(self, service: str, call: Callable[[], Awaitable[T]],
                    timeout: Optional[float] = None) -> CallResult[T]:
        return await self.get(service).guard(call, timeout=timeout)

    def snapshots(self) -> Dict[str, CircuitBreakerState]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {b.service: b.snapshot() for b in breakers}
