# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models exchanged with the presentation layer."""

from student_lifecycle.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassUpdateRequest,
)
from student_lifecycle.models.common import (
    AssignmentType,
    ClassStatus,
    EnrollmentStatus,
    ExitType,
    StudentStatus,
)
from student_lifecycle.models.enrollment import (
    BulkAssignError,
    BulkAssignOutcome,
    BulkAssignResult,
    EnrollmentResponse,
    ExitResponse,
    TransferResponse,
)
from student_lifecycle.models.history import (
    ClassStatsResponse,
    HistoryEntry,
    HistoryEntryKind,
    OccupancyMismatch,
)
from student_lifecycle.models.student import StudentCreateRequest, StudentResponse

__all__ = [
    # Enums
    "AssignmentType",
    "ClassStatus",
    "EnrollmentStatus",
    "ExitType",
    "StudentStatus",
    # Class directory
    "ClassCreateRequest",
    "ClassUpdateRequest",
    "ClassResponse",
    # Student directory
    "StudentCreateRequest",
    "StudentResponse",
    # Enrollment
    "EnrollmentResponse",
    "TransferResponse",
    "ExitResponse",
    "BulkAssignError",
    "BulkAssignOutcome",
    "BulkAssignResult",
    # History
    "HistoryEntry",
    "HistoryEntryKind",
    "ClassStatsResponse",
    "OccupancyMismatch",
]
