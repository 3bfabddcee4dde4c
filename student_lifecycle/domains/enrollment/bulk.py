# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk assignment of many students to one class.

Each student is assigned through EnrollmentLedger.assign in its own
transaction, in input order. A rejected student becomes an error entry
in the result; it never aborts the batch or undoes earlier successes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import AsyncIterator

from student_lifecycle.domains.enrollment.service import EnrollmentLedger
from student_lifecycle.domains.exceptions import EnrollmentServiceError
from student_lifecycle.models.common import AssignmentType
from student_lifecycle.models.enrollment import (
    BulkAssignError,
    BulkAssignOutcome,
    BulkAssignResult,
)
from student_lifecycle.utils.logging import log_context

logger = logging.getLogger(__name__)


class BulkAssignmentOrchestrator:
    """Runs single assignments for a list of students.

    Attributes:
        ledger: Enrollment ledger that performs each assignment.
    """

    def __init__(self, ledger: EnrollmentLedger) -> None:
        """Initialize bulk orchestrator.

        Args:
            ledger: Enrollment ledger.
        """
        self.ledger = ledger

    async def iter_bulk_assign(
        self,
        student_ids: Iterable[int],
        class_id: int,
        notes: str = "",
        assignment_type: AssignmentType | str | None = None,
        academic_year: str | None = None,
    ) -> AsyncIterator[BulkAssignOutcome]:
        """Assign students one by one, yielding each outcome as it completes.

        Args:
            student_ids: Students to assign, processed in order.
            class_id: Target class.
            notes: Notes stored on every created enrollment.
            assignment_type: Assignment type of every created enrollment.
            academic_year: Academic year of every created enrollment.

        Yields:
            One BulkAssignOutcome per input student.

        Raises:
            ClassNotFoundError: If the target class does not exist.
        """
        await self.ledger.classes.get(class_id)

        for student_id in student_ids:
            try:
                enrollment = await self.ledger.assign(
                    student_id,
                    class_id,
                    assignment_type=assignment_type,
                    notes=notes,
                    academic_year=academic_year,
                )
            except EnrollmentServiceError as e:
                logger.debug(
                    "Bulk item rejected: student=%s, class=%s, reason=%s",
                    student_id,
                    class_id,
                    e.kind,
                )
                yield BulkAssignOutcome(
                    student_id=student_id,
                    error=BulkAssignError(student_id=student_id, reason=e.kind, message=e.message),
                )
                continue

            yield BulkAssignOutcome(student_id=student_id, enrollment=enrollment)

    async def bulk_assign(
        self,
        student_ids: Iterable[int],
        class_id: int,
        notes: str = "",
        assignment_type: AssignmentType | str | None = None,
        academic_year: str | None = None,
    ) -> BulkAssignResult:
        """Assign a list of students to one class.

        Args:
            student_ids: Students to assign, processed in order.
            class_id: Target class.
            notes: Notes stored on every created enrollment.
            assignment_type: Assignment type of every created enrollment.
            academic_year: Academic year of every created enrollment.

        Returns:
            Counts plus the created enrollments and the per-student errors.

        Raises:
            ClassNotFoundError: If the target class does not exist.
        """
        result = BulkAssignResult(class_id=class_id)

        with log_context(command="bulk_assign", class_id=class_id):
            async for outcome in self.iter_bulk_assign(
                student_ids,
                class_id,
                notes=notes,
                assignment_type=assignment_type,
                academic_year=academic_year,
            ):
                if outcome.ok:
                    result.assignments.append(outcome.enrollment)
                    result.success_count += 1
                else:
                    result.errors.append(outcome.error)
                    result.failure_count += 1

            if result.is_partial:
                logger.warning(
                    "Bulk assignment partially applied: class=%s, assigned=%d, failed=%d, reasons=%s",
                    class_id,
                    result.success_count,
                    result.failure_count,
                    sorted({e.reason for e in result.errors}),
                )
            else:
                logger.info(
                    "Bulk assignment: class=%s, assigned=%d, failed=%d",
                    class_id,
                    result.success_count,
                    result.failure_count,
                )

        return result
