# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment, transfer, exit, and bulk assignment models."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from student_lifecycle.models.common import (
    AssignmentType,
    EnrollmentStatus,
    ExitType,
    RecordModel,
)


class EnrollmentResponse(RecordModel):
    """One enrollment record."""

    id: int
    student_id: int
    class_id: int
    academic_year: str
    assignment_type: AssignmentType
    assigned_date: date
    status: EnrollmentStatus
    notes: str
    created_at: datetime
    updated_at: datetime


class TransferResponse(RecordModel):
    """One transfer audit entry."""

    id: int
    student_id: int
    from_class_id: int
    to_class_id: int
    academic_year: str
    transfer_date: date
    reason: str
    approved_by: str
    approved_date: date
    notes: str
    created_at: datetime


class ExitResponse(RecordModel):
    """One exit audit entry."""

    id: int
    student_id: int
    exit_date: date
    exit_type: ExitType
    destination: str | None
    reason: str
    approved_by: str
    approved_date: date
    notes: str
    last_class_id: int
    academic_year: str
    created_at: datetime


class BulkAssignError(BaseModel):
    """Why one student in a batch was not assigned.

    Attributes:
        student_id: The rejected student.
        reason: Error kind, e.g. "ClassFull" or "AlreadyEnrolled".
        message: Human-readable description.
    """

    student_id: int
    reason: str
    message: str = ""


class BulkAssignOutcome(BaseModel):
    """Result of one item while a batch is being processed."""

    student_id: int
    enrollment: EnrollmentResponse | None = None
    error: BulkAssignError | None = None

    @property
    def ok(self) -> bool:
        """Check if this student was assigned."""
        return self.error is None


class BulkAssignResult(BaseModel):
    """Outcome of a bulk assignment. Partial completion is a normal result."""

    class_id: int
    success_count: int = 0
    failure_count: int = 0
    assignments: list[EnrollmentResponse] = Field(default_factory=list)
    errors: list[BulkAssignError] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        """Check if some but not all students were assigned."""
        return self.success_count > 0 and self.failure_count > 0
