# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class directory request and response models."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, computed_field, field_validator

from student_lifecycle.models.common import ClassStatus, RecordModel

_ACADEMIC_YEAR = re.compile(r"^(\d{4})/(\d{4})$")


def validate_academic_year(value: str) -> str:
    """Check an academic year token of the form "2024/2025"."""
    match = _ACADEMIC_YEAR.match(value)
    if not match or int(match.group(2)) != int(match.group(1)) + 1:
        raise ValueError("academic year must look like '2024/2025'")
    return value


class ClassCreateRequest(BaseModel):
    """Data for creating a class."""

    name: str = Field(min_length=1, max_length=100)
    grade: int = Field(ge=1, le=13)
    academic_year: str
    capacity: int = Field(ge=0)
    track: str | None = Field(default=None, max_length=100)
    homeroom_teacher: str | None = Field(default=None, max_length=150)

    @field_validator("academic_year")
    @classmethod
    def check_academic_year(cls, value: str) -> str:
        return validate_academic_year(value)


class ClassUpdateRequest(BaseModel):
    """Partial update of a class. Occupancy is not patchable."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    grade: int | None = Field(default=None, ge=1, le=13)
    academic_year: str | None = None
    capacity: int | None = Field(default=None, ge=0)
    track: str | None = Field(default=None, max_length=100)
    homeroom_teacher: str | None = Field(default=None, max_length=150)
    status: ClassStatus | None = None

    @field_validator("academic_year")
    @classmethod
    def check_academic_year(cls, value: str | None) -> str | None:
        return None if value is None else validate_academic_year(value)


class ClassResponse(RecordModel):
    """Class details including occupancy."""

    id: int
    name: str
    grade: int
    track: str | None
    academic_year: str
    homeroom_teacher: str | None
    capacity: int
    current_occupancy: int
    status: ClassStatus
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def available_seats(self) -> int:
        """Seats left before the class is full."""
        return self.capacity - self.current_occupancy

    @computed_field
    @property
    def fill_percentage(self) -> int:
        """Occupancy as a rounded percentage of capacity (0 for zero capacity)."""
        if self.capacity == 0:
            return 0
        return round(self.current_occupancy / self.capacity * 100)
