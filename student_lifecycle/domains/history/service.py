# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only views over the enrollment ledger.

This module provides the HistoryService class for:
- Class rosters and full class enrollment history
- A student's timeline of enrollments, transfers, and exits
- Per-class, per-year statistics
- Auditing occupancy counters against active enrollments

Every read runs in one snapshot session and never takes a class lock.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select

from student_lifecycle.domains.class_.service import ClassDirectory
from student_lifecycle.domains.student.service import StudentDirectory
from student_lifecycle.infrastructure.database import Database
from student_lifecycle.infrastructure.database.models import (
    ClassRecord,
    EnrollmentRecord,
    ExitRecord,
    TransferRecord,
)
from student_lifecycle.models.class_ import ClassResponse
from student_lifecycle.models.common import EnrollmentStatus
from student_lifecycle.models.enrollment import (
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

logger = logging.getLogger(__name__)

# Events of one command share a timestamp; the transfer entry sorts before
# the enrollment it opens.
_KIND_ORDER = {
    HistoryEntryKind.TRANSFER: 0,
    HistoryEntryKind.ENROLLMENT: 1,
    HistoryEntryKind.EXIT: 2,
}


class HistoryService:
    """Query service for rosters, timelines, and statistics.

    Attributes:
        db: Enrollment store.
        classes: Class directory.
        students: Student directory.
    """

    def __init__(
        self,
        db: Database,
        classes: ClassDirectory,
        students: StudentDirectory,
    ) -> None:
        self.db = db
        self.classes = classes
        self.students = students

    async def class_roster(self, class_id: int) -> list[EnrollmentResponse]:
        """List the active enrollments of a class.

        Args:
            class_id: Class identifier.

        Returns:
            Active enrollments, oldest first. Its length always equals
            the class's current occupancy.

        Raises:
            ClassNotFoundError: If class not found.
        """
        async with self.db.session(snapshot=True) as session:
            await self.classes.get_record(session, class_id)
            query = (
                select(EnrollmentRecord)
                .where(
                    EnrollmentRecord.class_id == class_id,
                    EnrollmentRecord.status == EnrollmentStatus.ACTIVE.value,
                )
                .order_by(EnrollmentRecord.id)
            )
            result = await session.execute(query)
            return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    async def class_history(self, class_id: int) -> list[EnrollmentResponse]:
        """List every enrollment record that ever referenced a class.

        Deleted classes keep their history.

        Raises:
            ClassNotFoundError: If class not found.
        """
        async with self.db.session(snapshot=True) as session:
            await self.classes.get_record(session, class_id, include_deleted=True)
            query = (
                select(EnrollmentRecord)
                .where(EnrollmentRecord.class_id == class_id)
                .order_by(EnrollmentRecord.id)
            )
            result = await session.execute(query)
            return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    async def student_history(self, student_id: int) -> list[HistoryEntry]:
        """Build a student's timeline.

        Args:
            student_id: Student identifier.

        Returns:
            Enrollments, transfers, and exits in chronological order.

        Raises:
            StudentNotFoundError: If student not found.
        """
        async with self.db.session(snapshot=True) as session:
            await self.students.get_record(session, student_id)

            enrollments = await session.execute(
                select(EnrollmentRecord).where(EnrollmentRecord.student_id == student_id)
            )
            transfers = await session.execute(
                select(TransferRecord).where(TransferRecord.student_id == student_id)
            )
            exits = await session.execute(
                select(ExitRecord).where(ExitRecord.student_id == student_id)
            )

            entries = [
                self._entry(HistoryEntryKind.ENROLLMENT, EnrollmentResponse.model_validate(e))
                for e in enrollments.scalars().all()
            ]
            entries.extend(
                self._entry(HistoryEntryKind.TRANSFER, TransferResponse.model_validate(t))
                for t in transfers.scalars().all()
            )
            entries.extend(
                self._entry(HistoryEntryKind.EXIT, ExitResponse.model_validate(x))
                for x in exits.scalars().all()
            )

        entries.sort(key=lambda e: (e.occurred_at, _KIND_ORDER[e.kind], e.record.id))
        return entries

    @staticmethod
    def _entry(
        kind: HistoryEntryKind,
        record: EnrollmentResponse | TransferResponse | ExitResponse,
    ) -> HistoryEntry:
        return HistoryEntry(kind=kind, occurred_at=record.created_at, record=record)

    async def class_stats_by_year(self, class_id: int, academic_year: str) -> ClassStatsResponse:
        """Summarize a class's enrollment activity in one academic year.

        Args:
            class_id: Class identifier.
            academic_year: Academic year token, e.g. "2024/2025".

        Returns:
            Counts by enrollment status and assignment type, transfers in
            and out, and exits by type. Deleted classes are still reported.

        Raises:
            ClassNotFoundError: If class not found.
        """
        async with self.db.session(snapshot=True) as session:
            class_ = ClassResponse.model_validate(
                await self.classes.get_record(session, class_id, include_deleted=True)
            )

            rows = await session.execute(
                select(
                    EnrollmentRecord.status,
                    EnrollmentRecord.assignment_type,
                    func.count(EnrollmentRecord.id),
                )
                .where(
                    EnrollmentRecord.class_id == class_id,
                    EnrollmentRecord.academic_year == academic_year,
                )
                .group_by(EnrollmentRecord.status, EnrollmentRecord.assignment_type)
            )
            by_status: dict[str, int] = {}
            by_type: dict[str, int] = {}
            for status, assignment_type, count in rows.all():
                by_status[status] = by_status.get(status, 0) + count
                by_type[assignment_type] = by_type.get(assignment_type, 0) + count

            transfers_in = await session.scalar(
                select(func.count(TransferRecord.id)).where(
                    TransferRecord.to_class_id == class_id,
                    TransferRecord.academic_year == academic_year,
                )
            )
            transfers_out = await session.scalar(
                select(func.count(TransferRecord.id)).where(
                    TransferRecord.from_class_id == class_id,
                    TransferRecord.academic_year == academic_year,
                )
            )

            exit_rows = await session.execute(
                select(ExitRecord.exit_type, func.count(ExitRecord.id))
                .where(
                    ExitRecord.last_class_id == class_id,
                    ExitRecord.academic_year == academic_year,
                )
                .group_by(ExitRecord.exit_type)
            )
            exits_by_type = {exit_type: count for exit_type, count in exit_rows.all()}

        return ClassStatsResponse(
            class_id=class_id,
            academic_year=academic_year,
            capacity=class_.capacity,
            current_occupancy=class_.current_occupancy,
            fill_percentage=class_.fill_percentage,
            total_enrollments=sum(by_status.values()),
            active=by_status.get(EnrollmentStatus.ACTIVE.value, 0),
            transferred=by_status.get(EnrollmentStatus.TRANSFERRED.value, 0),
            exited=by_status.get(EnrollmentStatus.EXITED.value, 0),
            by_assignment_type=by_type,
            transfers_in=transfers_in or 0,
            transfers_out=transfers_out or 0,
            exits_by_type=exits_by_type,
        )

    async def audit_occupancy(self) -> list[OccupancyMismatch]:
        """Compare every class's occupancy counter with its active enrollments.

        Returns:
            Classes whose counter disagrees; empty when the ledger is consistent.
        """
        active_counts = (
            select(
                EnrollmentRecord.class_id.label("class_id"),
                func.count(EnrollmentRecord.id).label("active"),
            )
            .where(EnrollmentRecord.status == EnrollmentStatus.ACTIVE.value)
            .group_by(EnrollmentRecord.class_id)
            .subquery()
        )
        query = (
            select(
                ClassRecord.id,
                ClassRecord.current_occupancy,
                func.coalesce(active_counts.c.active, 0),
            )
            .outerjoin(active_counts, active_counts.c.class_id == ClassRecord.id)
            .order_by(ClassRecord.id)
        )

        async with self.db.session(snapshot=True) as session:
            result = await session.execute(query)
            mismatches = [
                OccupancyMismatch(
                    class_id=class_id,
                    recorded_occupancy=occupancy,
                    active_enrollments=active,
                )
                for class_id, occupancy, active in result.all()
                if occupancy != active
            ]

        if mismatches:
            logger.warning("Occupancy audit found %d mismatched classes", len(mismatches))

        return mismatches
