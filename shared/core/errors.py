"""
Error taxonomy for calls between the gateway and its backend services.

Every failure that crosses a service boundary is one of these types so the
resilience layer can decide what to retry, what counts against a circuit
breaker, and which category the REST adapter reports.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Transport-neutral failure categories surfaced to callers"""
    UNAVAILABLE = "UNAVAILABLE"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


class CallError(Exception):
    """Base class for failures of a downstream call"""

    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False

    def __init__(self, message: str, service: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.service = service


class TransientCallError(CallError):
    """Timeout, refused connection or 5xx from a backend. Safe to retry."""

    category = ErrorCategory.UNAVAILABLE
    retryable = True


class CircuitOpenError(CallError):
    """Rejected by an open circuit breaker; the downstream was not called."""

    category = ErrorCategory.UNAVAILABLE

    def __init__(self, service: str, retry_after: float = 0.0):
        super().__init__(
            f"{service} is currently unavailable (circuit open). Please try again later.",
            service=service,
        )
        self.retry_after = retry_after


class StructuralError(CallError):
    """Malformed response or business-rule rejection from a backend"""

    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.VALIDATION,
    ):
        super().__init__(message, service=service)
        self.category = category


class NotFoundError(CallError):
    """The requested entity does not exist"""

    category = ErrorCategory.NOT_FOUND


def categorize(exc: BaseException) -> ErrorCategory:
    """Map any exception to the category the REST adapter reports"""
    if isinstance(exc, CallError):
        return exc.category
    return ErrorCategory.INTERNAL


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, CallError) and exc.retryable
