"""Shared core utilities for the gateway and backend services.

Provides health checks, structured logging, the call error taxonomy and
typed call results.
"""

from .errors import (
    CallError,
    CircuitOpenError,
    ErrorCategory,
    NotFoundError,
    StructuralError,
    TransientCallError,
    categorize,
    is_retryable,
)
from .health import HealthStatus, ServiceHealth, check_result
from .logging_config import (
    LoggerAdapter,
    RequestLoggingMiddleware,
    generate_request_id,
    get_logger,
    set_request_context,
    setup_logging,
)
from .result import CallResult

__all__ = [
    # Health checks
    "ServiceHealth",
    "HealthStatus",
    "check_result",
    # Logging
    "setup_logging",
    "get_logger",
    "RequestLoggingMiddleware",
    "set_request_context",
    "generate_request_id",
    "LoggerAdapter",
    # Errors
    "CallError",
    "CircuitOpenError",
    "ErrorCategory",
    "NotFoundError",
    "StructuralError",
    "TransientCallError",
    "categorize",
    "is_retryable",
    # Results
    "CallResult",
]
