# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transfer workflow for moving a student between classes.

A transfer closes the student's active enrollment in the source class,
opens a transfer_in enrollment in the destination class, moves one seat
across, and writes the transfer audit entry. All of it commits in one
transaction while both class locks and the student lock are held.

The destination seat is reserved before the source seat is released, so
a full destination leaves the source untouched.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from student_lifecycle.domains.class_.service import ClassDirectory
from student_lifecycle.domains.enrollment.service import EnrollmentLedger
from student_lifecycle.domains.exceptions import (
    InvalidTransferError,
    NotEnrolledInSourceClassError,
)
from student_lifecycle.domains.student.service import StudentDirectory
from student_lifecycle.infrastructure.database import Database
from student_lifecycle.infrastructure.database.models import TransferRecord
from student_lifecycle.infrastructure.locking import EnrollmentLockManager, retry_on_conflict
from student_lifecycle.models.common import AssignmentType, EnrollmentStatus
from student_lifecycle.models.enrollment import TransferResponse
from student_lifecycle.utils.datetime import utc_now
from student_lifecycle.utils.logging import log_context

logger = logging.getLogger(__name__)


class TransferWorkflow:
    """Moves students between classes.

    Attributes:
        db: Enrollment store.
        classes: Class directory, owner of occupancy.
        students: Student directory.
        ledger: Enrollment ledger.
        locks: Shared class/student lock manager.
        retry_attempts: Attempts for transfers that hit a ConflictError.
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

    async def transfer(
        self,
        student_id: int,
        from_class_id: int,
        to_class_id: int,
        reason: str = "",
        approved_by: str = "",
        notes: str = "",
    ) -> TransferResponse:
        """Transfer a student from one class to another.

        Args:
            student_id: Student identifier.
            from_class_id: Class the student is currently active in.
            to_class_id: Destination class.
            reason: Why the student moves.
            approved_by: Who approved the transfer.
            notes: Free-form notes.

        Returns:
            The transfer audit entry.

        Raises:
            InvalidTransferError: If source and destination are the same class.
            StudentNotFoundError: If student not found.
            NotEnrolledInSourceClassError: If the student is not active in the source class.
            ClassNotFoundError: If the destination class is not found.
            ClassInactiveError: If the destination class is inactive.
            ClassFullError: If the destination class is full.
            ConflictError: If the transfer keeps losing to concurrent writers.
        """
        if from_class_id == to_class_id:
            raise InvalidTransferError(
                f"Cannot transfer student {student_id} to the class they are already in",
                details={"student_id": student_id, "class_id": from_class_id},
            )

        with log_context(command="transfer", student_id=student_id, approved_by=approved_by):
            return await retry_on_conflict(
                lambda: self._transfer_once(
                    student_id, from_class_id, to_class_id, reason, approved_by, notes
                ),
                self.retry_attempts,
            )

    async def _transfer_once(
        self,
        student_id: int,
        from_class_id: int,
        to_class_id: int,
        reason: str,
        approved_by: str,
        notes: str,
    ) -> TransferResponse:
        async with self.locks.hold(classes=[from_class_id, to_class_id], students=[student_id]):
            async with self.db.session() as session:
                await self.students.get_record(session, student_id)

                current = await self.ledger.find_active(session, student_id)
                if current is None or current.class_id != from_class_id:
                    raise NotEnrolledInSourceClassError(
                        f"Student {student_id} is not active in class {from_class_id}",
                        details={
                            "student_id": student_id,
                            "from_class_id": from_class_id,
                            "active_class_id": current.class_id if current else None,
                        },
                    )

                destination = await self.classes.get_record(session, to_class_id)
                self.ledger.ensure_accepting(destination)

                await self.classes.apply_occupancy_delta(session, to_class_id, 1)

                now = utc_now()
                current.status = EnrollmentStatus.TRANSFERRED.value
                current.updated_at = now
                await self.classes.apply_occupancy_delta(session, from_class_id, -1)

                transfer = TransferRecord(
                    student_id=student_id,
                    from_class_id=from_class_id,
                    to_class_id=to_class_id,
                    academic_year=current.academic_year,
                    transfer_date=now.date(),
                    reason=reason,
                    approved_by=approved_by,
                    approved_date=now.date(),
                    notes=notes,
                    created_at=now,
                )
                session.add(transfer)

                await self.ledger.open_enrollment(
                    session,
                    student_id=student_id,
                    class_id=to_class_id,
                    academic_year=current.academic_year,
                    assignment_type=AssignmentType.TRANSFER_IN,
                    notes=f"Transferred from class {from_class_id}",
                    created_at=now,
                )

        logger.info(
            "Transferred student: student=%s, from=%s, to=%s, by=%s",
            student_id,
            from_class_id,
            to_class_id,
            approved_by or "-",
        )

        return TransferResponse.model_validate(transfer)

    async def list_transfers(
        self,
        student_id: int | None = None,
        from_class_id: int | None = None,
        to_class_id: int | None = None,
    ) -> list[TransferResponse]:
        """List transfer audit entries, oldest first.

        Args:
            student_id: Filter by student.
            from_class_id: Filter by source class.
            to_class_id: Filter by destination class.

        Returns:
            Matching transfer entries.
        """
        conditions = []

        if student_id is not None:
            conditions.append(TransferRecord.student_id == student_id)

        if from_class_id is not None:
            conditions.append(TransferRecord.from_class_id == from_class_id)

        if to_class_id is not None:
            conditions.append(TransferRecord.to_class_id == to_class_id)

        query = select(TransferRecord).where(*conditions).order_by(TransferRecord.id)

        async with self.db.session(snapshot=True) as session:
            result = await session.execute(query)
            return [TransferResponse.model_validate(t) for t in result.scalars().all()]
