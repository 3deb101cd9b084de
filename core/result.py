"""
core/result.py -- Success/failure values returned by every provider operation.

Provider calls never raise for backend outcomes: they return a Result and the
caller branches on result.ok. unwrap() is there for callers that prefer the
exception style.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[T]:
        """Return the success value, or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value
