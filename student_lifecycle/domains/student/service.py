# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student directory used for existence checks by the enrollment commands."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from student_lifecycle.domains.exceptions import EnrollmentServiceError, StudentNotFoundError
from student_lifecycle.infrastructure.database import Database, DatabaseError
from student_lifecycle.infrastructure.database.models import StudentRecord
from student_lifecycle.models.common import StudentStatus
from student_lifecycle.models.student import StudentCreateRequest, StudentResponse

logger = logging.getLogger(__name__)


class StudentNumberExistsError(EnrollmentServiceError):
    """Raised when a student number is already registered."""

    kind = "StudentNumberExists"


class StudentDirectory:
    """Registry of students.

    Attributes:
        db: Enrollment store.
    """

    def __init__(self, db: Database) -> None:
        """Initialize student directory.

        Args:
            db: Enrollment store.
        """
        self.db = db

    async def register(self, request: StudentCreateRequest) -> StudentResponse:
        """Register a student.

        Args:
            request: Student data.

        Returns:
            Registered student.

        Raises:
            StudentNumberExistsError: If the student number is taken.
        """
        try:
            async with self.db.session() as session:
                student = StudentRecord(
                    full_name=request.full_name,
                    student_number=request.student_number,
                    status=StudentStatus.ACTIVE.value,
                )
                session.add(student)
                await session.flush()
        except DatabaseError as e:
            if isinstance(e.original_error, IntegrityError):
                raise StudentNumberExistsError(
                    f"Student number '{request.student_number}' is already registered"
                ) from e
            raise

        logger.info("Registered student: %s (%s)", student.full_name, student.id)

        return StudentResponse.model_validate(student)

    async def get(self, student_id: int) -> StudentResponse:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If not found.
        """
        async with self.db.session() as session:
            student = await self.get_record(session, student_id)
            return StudentResponse.model_validate(student)

    async def get_record(self, session: AsyncSession, student_id: int) -> StudentRecord:
        """Load a student row inside an open session.

        Args:
            session: Open session.
            student_id: Student identifier.

        Returns:
            StudentRecord model instance.

        Raises:
            StudentNotFoundError: If not found.
        """
        result = await session.execute(
            select(StudentRecord).where(StudentRecord.id == student_id)
        )
        student = result.scalar_one_or_none()

        if not student:
            raise StudentNotFoundError(
                f"Student {student_id} not found",
                details={"student_id": student_id},
            )

        return student
