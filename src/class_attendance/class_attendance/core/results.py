from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from .exceptions import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorInfo:
    code: str
    message: str
    details: Any = None


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Typed outcome returned to collaborators instead of raising."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, data: T) -> "OperationResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, exc: DomainError) -> "OperationResult[T]":
        return cls(ok=False, error=ErrorInfo(code=exc.code, message=exc.message, details=exc.details))

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None


def capture(fn: Callable[[], T]) -> OperationResult[T]:
    """Run ``fn`` and fold business errors into a failed result.

    Infrastructure errors are not caught.
    """

    try:
        return OperationResult.success(fn())
    except DomainError as exc:
        return OperationResult.failure(exc)
