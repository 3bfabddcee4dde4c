# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student directory request and response models."""

from datetime import datetime

from pydantic import BaseModel, Field

from student_lifecycle.models.common import RecordModel, StudentStatus


class StudentCreateRequest(BaseModel):
    """Data for registering a student."""

    full_name: str = Field(min_length=1, max_length=150)
    student_number: str | None = Field(default=None, max_length=30)


class StudentResponse(RecordModel):
    """Student details."""

    id: int
    full_name: str
    student_number: str | None
    status: StudentStatus
    created_at: datetime
