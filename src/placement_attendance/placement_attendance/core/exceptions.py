from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when an actor's role is not allowed to perform an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class ConflictError(DomainError):
    """Raised when the write collides with data that already exists."""


class StateError(DomainError):
    """Raised when the current state of a record forbids the operation.

    ``current`` holds the state that blocked it so callers can explain why.
    """

    def __init__(self, message: str, *, current: Optional[Any] = None):
        super().__init__(message)
        self.current = current


class MissingCommentError(ValidationError):
    """Reject and reclassify need a reviewer comment."""


class DateInPastBeyondWindowError(ValidationError):
    """Absence request dated further back than the configured window."""


class InvalidDateRangeError(ValidationError):
    """Start date after end date."""


class DuplicateCheckInError(ConflictError):
    """The day was already closed with a check-out."""


class RecordAlreadyExistsError(ConflictError):
    """A record for the student and day already exists and cannot be reused."""


class DuplicateRecordError(ConflictError):
    """Store-level compare-and-create lost: the natural key is taken."""

    def __init__(self, student_id: str, work_date: Any):
        super().__init__(f"Attendance record already exists for student {student_id} on {work_date}")
        self.student_id = student_id
        self.work_date = work_date


class NoOpenCheckInError(StateError):
    """Check-out attempted without an open check-in for the day."""


class InvalidTransitionError(StateError):
    """Approval status change not allowed from the current status."""


class RecordNotFoundError(NotFoundError):
    pass
