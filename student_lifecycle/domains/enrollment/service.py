# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment ledger for managing student class assignments.

This module provides the EnrollmentLedger class for:
- Assigning a student to a class
- Looking up a student's active enrollment
- Reading a student's enrollment records

A student has at most one active enrollment at any time. Creating the
record and taking the seat commit in one transaction under the class and
student locks, and the store refuses a second active row for a student
even when the competing writer runs in another process.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from student_lifecycle.core.config.settings import EnrollmentSettings
from student_lifecycle.domains.class_.service import ClassDirectory
from student_lifecycle.domains.exceptions import (
    AlreadyEnrolledError,
    ClassInactiveError,
    ConflictError,
)
from student_lifecycle.domains.student.service import StudentDirectory
from student_lifecycle.infrastructure.database import Database
from student_lifecycle.infrastructure.database.models import ClassRecord, EnrollmentRecord
from student_lifecycle.infrastructure.locking import EnrollmentLockManager, retry_on_conflict
from student_lifecycle.models.class_ import validate_academic_year
from student_lifecycle.models.common import AssignmentType, ClassStatus, EnrollmentStatus
from student_lifecycle.models.enrollment import EnrollmentResponse
from student_lifecycle.utils.datetime import academic_year_for, utc_now, utc_today

logger = logging.getLogger(__name__)


class EnrollmentLedger:
    """Ledger of student-to-class assignments.

    Attributes:
        db: Enrollment store.
        classes: Class directory, owner of occupancy.
        students: Student directory for existence checks.
        locks: Shared class/student lock manager.
        settings: Enrollment command settings.
    """

    def __init__(
        self,
        db: Database,
        classes: ClassDirectory,
        students: StudentDirectory,
        locks: EnrollmentLockManager,
        settings: EnrollmentSettings | None = None,
    ) -> None:
        """Initialize enrollment ledger.

        Args:
            db: Enrollment store.
            classes: Class directory.
            students: Student directory.
            locks: Shared lock manager.
            settings: Enrollment command settings.
        """
        self.db = db
        self.classes = classes
        self.students = students
        self.locks = locks
        self.settings = settings or EnrollmentSettings()

    def current_academic_year(self) -> str:
        """Academic year that contains today."""
        return academic_year_for(utc_today(), self.settings.academic_year_start_month)

    async def assign(
        self,
        student_id: int,
        class_id: int,
        assignment_type: AssignmentType | str | None = None,
        notes: str = "",
        academic_year: str | None = None,
    ) -> EnrollmentResponse:
        """Assign a student to a class.

        Args:
            student_id: Student identifier.
            class_id: Class identifier.
            assignment_type: initial, transfer_in, or promotion.
            notes: Free-form notes.
            academic_year: Academic year of the enrollment. Defaults to
                the year containing today, so administrative corrections
                can be backdated by passing it explicitly.

        Returns:
            The new active enrollment.

        Raises:
            StudentNotFoundError: If student not found.
            ClassNotFoundError: If class not found.
            ClassInactiveError: If the class is inactive.
            AlreadyEnrolledError: If the student already has an active enrollment.
            ClassFullError: If the class is at capacity.
            ConflictError: If the assignment keeps losing to concurrent writers.
        """
        assignment_type = AssignmentType(assignment_type or self.settings.default_assignment_type)
        if academic_year is not None:
            validate_academic_year(academic_year)

        return await retry_on_conflict(
            lambda: self._assign_once(student_id, class_id, assignment_type, notes, academic_year),
            self.settings.conflict_retry_attempts,
        )

    async def _assign_once(
        self,
        student_id: int,
        class_id: int,
        assignment_type: AssignmentType,
        notes: str,
        academic_year: str | None,
    ) -> EnrollmentResponse:
        async with self.locks.hold(classes=[class_id], students=[student_id]):
            async with self.db.session() as session:
                await self.students.get_record(session, student_id)
                class_ = await self.classes.get_record(session, class_id)
                self.ensure_accepting(class_)

                existing = await self.find_active(session, student_id)
                if existing:
                    raise AlreadyEnrolledError(
                        f"Student {student_id} is already enrolled in class {existing.class_id}. "
                        "Use a transfer to move the student.",
                        details={"student_id": student_id, "class_id": existing.class_id},
                    )

                await self.classes.apply_occupancy_delta(session, class_id, 1)
                enrollment = await self.open_enrollment(
                    session,
                    student_id=student_id,
                    class_id=class_id,
                    academic_year=academic_year or self.current_academic_year(),
                    assignment_type=assignment_type,
                    notes=notes,
                )

        logger.info(
            "Assigned student: student=%s, class=%s, type=%s, year=%s",
            student_id,
            class_id,
            assignment_type.value,
            enrollment.academic_year,
        )

        return EnrollmentResponse.model_validate(enrollment)

    async def get_active_enrollment(self, student_id: int) -> EnrollmentResponse | None:
        """Get the student's active enrollment.

        Args:
            student_id: Student identifier.

        Returns:
            The active enrollment, or None if the student is not enrolled.

        Raises:
            StudentNotFoundError: If student not found.
        """
        async with self.db.session(snapshot=True) as session:
            await self.students.get_record(session, student_id)
            enrollment = await self.find_active(session, student_id)
            return EnrollmentResponse.model_validate(enrollment) if enrollment else None

    async def get_history(self, student_id: int) -> list[EnrollmentResponse]:
        """Get every enrollment record of a student in creation order.

        Args:
            student_id: Student identifier.

        Returns:
            Enrollment records, oldest first.

        Raises:
            StudentNotFoundError: If student not found.
        """
        async with self.db.session(snapshot=True) as session:
            await self.students.get_record(session, student_id)
            query = (
                select(EnrollmentRecord)
                .where(EnrollmentRecord.student_id == student_id)
                .order_by(EnrollmentRecord.id)
            )
            result = await session.execute(query)
            return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    async def find_active(
        self,
        session: AsyncSession,
        student_id: int,
    ) -> EnrollmentRecord | None:
        """Get the active enrollment row of a student inside an open session.

        Args:
            session: Open session.
            student_id: Student identifier.

        Returns:
            EnrollmentRecord if the student is enrolled, None otherwise.
        """
        query = select(EnrollmentRecord).where(
            EnrollmentRecord.student_id == student_id,
            EnrollmentRecord.status == EnrollmentStatus.ACTIVE.value,
        )
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def open_enrollment(
        self,
        session: AsyncSession,
        student_id: int,
        class_id: int,
        academic_year: str,
        assignment_type: AssignmentType,
        notes: str = "",
        created_at: datetime | None = None,
    ) -> EnrollmentRecord:
        """Insert an active enrollment row inside an open session.

        The caller must hold the class and student locks and must already
        have taken the seat with ClassDirectory.apply_occupancy_delta.

        Args:
            session: Open session.
            student_id: Student identifier.
            class_id: Class identifier.
            academic_year: Academic year token.
            assignment_type: How the enrollment came to exist.
            notes: Free-form notes.
            created_at: Timestamp shared with other rows of the same command.

        Returns:
            The flushed EnrollmentRecord.

        Raises:
            ConflictError: If another writer committed an active enrollment
                for the student first.
        """
        now = created_at or utc_now()
        enrollment = EnrollmentRecord(
            student_id=student_id,
            class_id=class_id,
            academic_year=academic_year,
            assignment_type=AssignmentType(assignment_type).value,
            assigned_date=now.date(),
            status=EnrollmentStatus.ACTIVE.value,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        session.add(enrollment)
        try:
            await session.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"Student {student_id} gained an active enrollment concurrently",
                details={"student_id": student_id, "class_id": class_id},
            ) from e
        return enrollment

    @staticmethod
    def ensure_accepting(class_: ClassRecord) -> None:
        """Reject classes that do not take new students.

        Raises:
            ClassInactiveError: If the class is inactive.
        """
        if class_.status != ClassStatus.ACTIVE.value:
            raise ClassInactiveError(
                f"Class {class_.id} is inactive",
                details={"class_id": class_.id},
            )
