import pytest

from shared.core import (
    CallResult,
    CircuitOpenError,
    NotFoundError,
    StructuralError,
    TransientCallError,
)
from services.gateway.resilience import (
    BackoffPolicy,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    ResilienceConfig,
    ResilientCaller,
    RetryExecutor,
)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def scripted(*outcomes):
    """Operation returning one CallResult per attempt, last one repeating"""
    calls = []

    async def operation():
        outcome = outcomes[min(len(calls), len(outcomes) - 1)]
        calls.append(outcome)
        if isinstance(outcome, Exception):
            return CallResult.failure(outcome)
        return CallResult.success(outcome)

    operation.calls = calls
    return operation


@pytest.mark.asyncio
async def test_exponential_backoff_is_capped():
    sleep = RecordingSleep()
    policy = BackoffPolicy.exponential(0.5, multiplier=2.0, max_delay=1.5)
    executor = RetryExecutor(max_attempts=5, backoff=policy, sleep=sleep)

    await executor.execute(scripted(TransientCallError("boom")))

    assert sleep.delays == pytest.approx([0.5, 1.0, 1.5, 1.5])


@pytest.mark.asyncio
async def test_retries_transient_errors_until_success():
    sleep = RecordingSleep()
    executor = RetryExecutor(max_attempts=3, backoff=BackoffPolicy.exponential(0.1), sleep=sleep)
    operation = scripted(TransientCallError("boom"), TransientCallError("boom"), "done")

    result = await executor.execute(operation)

    assert result.ok
    assert result.value == "done"
    assert result.attempts == 3
    assert sleep.delays == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_returns_last_error_when_attempts_run_out():
    sleep = RecordingSleep()
    executor = RetryExecutor(max_attempts=3, backoff=BackoffPolicy.fixed(0.5), sleep=sleep)
    last = TransientCallError("third")
    operation = scripted(TransientCallError("first"), TransientCallError("second"), last)

    result = await executor.execute(operation)

    assert result.error is last
    assert result.attempts == 3
    assert sleep.delays == [0.5, 0.5]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    CircuitOpenError("order-service", retry_after=10.0),
    StructuralError("bad request"),
    NotFoundError("missing"),
    RuntimeError("unexpected"),
])
async def test_non_retryable_errors_stop_immediately(error):
    sleep = RecordingSleep()
    executor = RetryExecutor(max_attempts=5, sleep=sleep)
    operation = scripted(error, "never reached")

    result = await executor.execute(operation)

    assert result.error is error
    assert result.attempts == 1
    assert len(operation.calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_per_call_attempt_override():
    executor = RetryExecutor(max_attempts=5, sleep=RecordingSleep())
    operation = scripted(TransientCallError("boom"))

    result = await executor.execute(operation, max_attempts=2)

    assert result.attempts == 2
    assert len(operation.calls) == 2


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryExecutor(max_attempts=0)


@pytest.mark.asyncio
async def test_caller_stops_retrying_once_breaker_opens():
    breaker = CircuitBreaker("inventory-service", CircuitBreakerConfig(failure_threshold=2))
    config = ResilienceConfig(max_attempts=5, backoff=BackoffPolicy.fixed(0.0), call_timeout=None)
    caller = ResilientCaller.from_config("inventory-service", breaker, config, sleep=RecordingSleep())
    calls = []

    async def failing():
        calls.append(1)
        raise TransientCallError("connection refused", service="inventory-service")

    result = await caller.call(failing, description="reserve_inventory")

    assert isinstance(result.error, CircuitOpenError)
    assert result.attempts == 3
    assert len(calls) == 2
    assert breaker.state is CircuitState.OPEN
