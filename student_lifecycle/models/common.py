# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and the base class for record DTOs."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from student_lifecycle.utils.datetime import ensure_utc


class ClassStatus(str, Enum):
    """Class availability status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class StudentStatus(str, Enum):
    """Student record status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class AssignmentType(str, Enum):
    """How an enrollment came to exist.

    - INITIAL: First placement of a new student (PPDB intake)
    - TRANSFER_IN: Receiving half of a transfer between classes
    - PROMOTION: Placement after grade promotion
    """

    INITIAL = "initial"
    TRANSFER_IN = "transfer_in"
    PROMOTION = "promotion"


class EnrollmentStatus(str, Enum):
    """Lifecycle stage of an enrollment record."""

    ACTIVE = "active"
    TRANSFERRED = "transferred"
    EXITED = "exited"


class ExitType(str, Enum):
    """Why a student left the school."""

    GRADUATED = "graduated"
    MOVED_OUT = "moved_out"
    DROPPED_OUT = "dropped_out"
    OTHER = "other"


class RecordModel(BaseModel):
    """Base for DTOs built from ORM rows.

    Datetimes read back from stores that drop tzinfo are normalised to UTC.
    """

    model_config = ConfigDict(from_attributes=True)

    @field_validator("*", mode="after")
    @classmethod
    def normalise_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value
