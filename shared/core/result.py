"""Typed success/error values returned by guarded downstream calls."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import ErrorCategory, categorize

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None
    attempts: int = 1

    @classmethod
    def success(cls, value: T, attempts: int = 1) -> "CallResult[T]":
        return cls(value=value, attempts=attempts)

    @classmethod
    def failure(cls, error: Exception, attempts: int = 1) -> "CallResult[T]":
        return cls(error=error, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def category(self) -> Optional[ErrorCategory]:
        return categorize(self.error) if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, raising the stored error on failure"""
        if self.error is not None:
            raise self.error
        return self.value

    def with_attempts(self, attempts: int) -> "CallResult[T]":
        return CallResult(value=self.value, error=self.error, attempts=attempts)
