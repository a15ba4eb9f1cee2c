from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a stable ``code`` so callers can render a specific
    message without matching on text.
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, *, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AlreadyExists(DomainError):
    code = "ATTENDANCE_ALREADY_EXISTS"


class NotFound(DomainError):
    code = "NOT_FOUND"


class HolidayConflict(DomainError):
    """Attendance and holiday status are mutually exclusive per class-day."""

    code = "HOLIDAY_CONFLICT"


class AttendanceExists(HolidayConflict):
    code = "ATTENDANCE_EXISTS"


class ImmutableHistory(DomainError):
    code = "IMMUTABLE_HISTORY"


class InvalidRoster(DomainError):
    code = "INVALID_ROSTER"


class HolidayExists(DomainError):
    code = "HOLIDAY_EXISTS"


class ApprovalReplay(DomainError):
    code = "APPROVAL_REPLAY"


class ConcurrentUpdate(DomainError):
    code = "CONCURRENT_UPDATE"


class TotalsMismatch(DomainError):
    code = "TOTALS_MISMATCH"


class OperationCancelled(Exception):
    """Raised when a long-running read is cancelled by its caller."""


class StorageError(Exception):
    """Infrastructure failure talking to the persistent store.

    Not part of the business taxonomy: callers may retry.
    """
