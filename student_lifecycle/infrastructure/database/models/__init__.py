# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the enrollment store."""

from student_lifecycle.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
)
from student_lifecycle.infrastructure.database.models.school import (
    ClassRecord,
    EnrollmentRecord,
    ExitRecord,
    StudentRecord,
    TransferRecord,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "ClassRecord",
    "StudentRecord",
    "EnrollmentRecord",
    "TransferRecord",
    "ExitRecord",
]
