# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exception hierarchy shared by the enrollment domains.

- EnrollmentServiceError: Base exception for all enrollment errors
- NotFoundError: Unknown class or student id
- AlreadyEnrolledError, ClassFullError, ClassInactiveError
- NotEnrolledInSourceClassError, InvalidTransferError
- NoActiveEnrollmentError, HasActiveStudentsError
- InvalidCapacityError, OccupancyUnderflowError
- ConflictError: Lost concurrency race, retried before it surfaces

Each class carries a short ``kind`` used in bulk assignment results.
"""


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    kind = "EnrollmentError"

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize enrollment error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(EnrollmentServiceError):
    """Raised when a class or student id is unknown."""

    kind = "NotFound"


class ClassNotFoundError(NotFoundError):
    """Raised when class is not found."""

    pass


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    pass


class AlreadyEnrolledError(EnrollmentServiceError):
    """Raised when the student already has an active enrollment."""

    kind = "AlreadyEnrolled"


class ClassFullError(EnrollmentServiceError):
    """Raised when an occupancy change would exceed class capacity."""

    kind = "ClassFull"


class ClassInactiveError(EnrollmentServiceError):
    """Raised when assigning or transferring into an inactive class."""

    kind = "ClassInactive"


class NotEnrolledInSourceClassError(EnrollmentServiceError):
    """Raised when a transfer names a class the student is not active in."""

    kind = "NotEnrolledInSourceClass"


class InvalidTransferError(EnrollmentServiceError):
    """Raised when source and destination of a transfer are the same class."""

    kind = "InvalidTransfer"


class NoActiveEnrollmentError(EnrollmentServiceError):
    """Raised when exiting a student that has no active enrollment."""

    kind = "NoActiveEnrollment"


class HasActiveStudentsError(EnrollmentServiceError):
    """Raised when deleting a class that still has students."""

    kind = "HasActiveStudents"


class InvalidCapacityError(EnrollmentServiceError):
    """Raised when capacity would drop below the current occupancy."""

    kind = "InvalidCapacity"


class OccupancyUnderflowError(EnrollmentServiceError):
    """Raised when an occupancy release would take the counter below zero."""

    kind = "OccupancyUnderflow"


class ConflictError(EnrollmentServiceError):
    """Raised when a concurrent writer won the race for the same rows."""

    kind = "Conflict"
