# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only projections: student timelines, class statistics, audits."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from student_lifecycle.models.enrollment import (
    EnrollmentResponse,
    ExitResponse,
    TransferResponse,
)


class HistoryEntryKind(str, Enum):
    """Kind of event in a student's timeline."""

    ENROLLMENT = "enrollment"
    TRANSFER = "transfer"
    EXIT = "exit"


class HistoryEntry(BaseModel):
    """One event in a student's enrollment timeline."""

    kind: HistoryEntryKind
    occurred_at: datetime
    record: EnrollmentResponse | TransferResponse | ExitResponse


class ClassStatsResponse(BaseModel):
    """Enrollment statistics of one class for one academic year."""

    class_id: int
    academic_year: str
    capacity: int
    current_occupancy: int
    fill_percentage: int
    total_enrollments: int = 0
    active: int = 0
    transferred: int = 0
    exited: int = 0
    by_assignment_type: dict[str, int] = Field(default_factory=dict)
    transfers_in: int = 0
    transfers_out: int = 0
    exits_by_type: dict[str, int] = Field(default_factory=dict)


class OccupancyMismatch(BaseModel):
    """A class whose occupancy counter disagrees with its active enrollments."""

    class_id: int
    recorded_occupancy: int
    active_enrollments: int
