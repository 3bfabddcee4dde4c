# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exit workflow for students leaving the school.

An exit closes the student's active enrollment, releases the seat in its
class, and writes the exit audit entry in one transaction. The class to
lock is only known after reading the active enrollment, so the student
lock is taken first and the class lock second; the enrollment is then
re-read under both.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from student_lifecycle.domains.class_.service import ClassDirectory
from student_lifecycle.domains.enrollment.service import EnrollmentLedger
from student_lifecycle.domains.exceptions import ConflictError, NoActiveEnrollmentError
from student_lifecycle.domains.student.service import StudentDirectory
from student_lifecycle.infrastructure.database import Database
from student_lifecycle.infrastructure.database.models import ExitRecord
from student_lifecycle.infrastructure.locking import EnrollmentLockManager, retry_on_conflict
from student_lifecycle.models.common import EnrollmentStatus, ExitType
from student_lifecycle.models.enrollment import ExitResponse
from student_lifecycle.utils.datetime import utc_now
from student_lifecycle.utils.logging import log_context

logger = logging.getLogger(__name__)


class ExitWorkflow:
    """Records students leaving the school.

    Attributes:
        db: Enrollment store.
        classes: Class directory, owner of occupancy.
        students: Student directory.
        ledger: Enrollment ledger.
        locks: Shared class/student lock manager.
        retry_attempts: Attempts for exits that hit a ConflictError.
    """

    def __init__(
        self,
        db: Database,
        classes: ClassDirectory,
        students: StudentDirectory,
        ledger: EnrollmentLedger,
        locks: EnrollmentLockManager,
        retry_attempts: int = 3,
    ) -> None:
        self.db = db
        self.classes = classes
        self.students = students
        self.ledger = ledger
        self.locks = locks
        self.retry_attempts = retry_attempts

    async def exit(
        self,
        student_id: int,
        exit_type: ExitType | str,
        destination: str | None = None,
        reason: str = "",
        approved_by: str = "",
        notes: str = "",
    ) -> ExitResponse:
        """Record that a student leaves the school.

        Args:
            student_id: Student identifier.
            exit_type: graduated, moved_out, dropped_out, or other.
            destination: Where the student goes, if known.
            reason: Why the student leaves.
            approved_by: Who approved the exit.
            notes: Free-form notes.

        Returns:
            The exit audit entry.

        Raises:
            ValueError: If exit_type is not a known exit type.
            StudentNotFoundError: If student not found.
            NoActiveEnrollmentError: If the student has no active enrollment.
            ConflictError: If the exit keeps losing to concurrent writers.
        """
        exit_type = ExitType(exit_type)

        with log_context(command="exit", student_id=student_id, approved_by=approved_by):
            return await retry_on_conflict(
                lambda: self._exit_once(
                    student_id, exit_type, destination, reason, approved_by, notes
                ),
                self.retry_attempts,
            )

    async def _exit_once(
        self,
        student_id: int,
        exit_type: ExitType,
        destination: str | None,
        reason: str,
        approved_by: str,
        notes: str,
    ) -> ExitResponse:
        async with self.locks.hold(students=[student_id]):
            class_id = await self._active_class_id(student_id)

            async with self.locks.hold(classes=[class_id]):
                async with self.db.session() as session:
                    current = await self.ledger.find_active(session, student_id)
                    if current is None or current.class_id != class_id:
                        raise ConflictError(
                            f"Active enrollment of student {student_id} changed during exit",
                            details={"student_id": student_id, "class_id": class_id},
                        )

                    now = utc_now()
                    current.status = EnrollmentStatus.EXITED.value
                    current.updated_at = now
                    await self.classes.apply_occupancy_delta(session, class_id, -1)

                    record = ExitRecord(
                        student_id=student_id,
                        exit_date=now.date(),
                        exit_type=exit_type.value,
                        destination=destination,
                        reason=reason,
                        approved_by=approved_by,
                        approved_date=now.date(),
                        notes=notes,
                        last_class_id=class_id,
                        academic_year=current.academic_year,
                        created_at=now,
                    )
                    session.add(record)
                    await session.flush()

        logger.info(
            "Student exited: student=%s, class=%s, type=%s",
            student_id,
            class_id,
            exit_type.value,
        )

        return ExitResponse.model_validate(record)

    async def _active_class_id(self, student_id: int) -> int:
        async with self.db.session() as session:
            await self.students.get_record(session, student_id)
            current = await self.ledger.find_active(session, student_id)

            if current is None:
                raise NoActiveEnrollmentError(
                    f"Student {student_id} has no active enrollment",
                    details={"student_id": student_id},
                )

            return current.class_id

    async def list_exits(
        self,
        exit_type: ExitType | str | None = None,
        student_id: int | None = None,
    ) -> list[ExitResponse]:
        """List exit audit entries, oldest first.

        Args:
            exit_type: Filter by exit type.
            student_id: Filter by student.

        Returns:
            Matching exit entries.
        """
        conditions = []

        if exit_type is not None:
            conditions.append(ExitRecord.exit_type == ExitType(exit_type).value)

        if student_id is not None:
            conditions.append(ExitRecord.student_id == student_id)

        query = select(ExitRecord).where(*conditions).order_by(ExitRecord.id)

        async with self.db.session(snapshot=True) as session:
            result = await session.execute(query)
            return [ExitResponse.model_validate(e) for e in result.scalars().all()]
