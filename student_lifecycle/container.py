# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle container wiring the store, the locks, and every domain component.

EnrollmentSystem is constructed once per process. It owns the Database
and the lock manager and injects them into the directories and
workflows, so two systems never share state.

Example:
    >>> async with EnrollmentSystem(get_settings()) as system:
    ...     class_ = await system.classes.create(request)
    ...     await system.assign(student_id, class_.id)
"""

from collections.abc import Iterable
from typing import Optional

from student_lifecycle.core.config import Settings, get_settings
from student_lifecycle.domains.class_ import ClassDirectory
from student_lifecycle.domains.enrollment import BulkAssignmentOrchestrator, EnrollmentLedger
from student_lifecycle.domains.history import HistoryService
from student_lifecycle.domains.student import StudentDirectory
from student_lifecycle.domains.student_exit import ExitWorkflow
from student_lifecycle.domains.transfer import TransferWorkflow
from student_lifecycle.infrastructure.database import Database
from student_lifecycle.infrastructure.locking import EnrollmentLockManager
from student_lifecycle.models.common import AssignmentType, ExitType
from student_lifecycle.models.enrollment import (
    BulkAssignResult,
    EnrollmentResponse,
    ExitResponse,
    TransferResponse,
)
from student_lifecycle.models.history import ClassStatsResponse, HistoryEntry
from student_lifecycle.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


class EnrollmentSystem:
    """Process-wide owner of the enrollment components.

    Attributes:
        settings: Settings the system was built from.
        db: Enrollment store.
        locks: Class and student lock manager.
        classes: Class directory.
        students: Student directory.
        ledger: Enrollment ledger.
        bulk: Bulk assignment orchestrator.
        transfers: Transfer workflow.
        exits: Exit workflow.
        history: Read-only history service.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        configure_logging: bool = False,
    ) -> None:
        """Build every component without connecting.

        Args:
            settings: Settings to use. Defaults to get_settings().
            configure_logging: Run setup_logging() on start().
        """
        self.settings = settings or get_settings()
        self.configure_logging = configure_logging

        attempts = self.settings.enrollment.conflict_retry_attempts

        self.db = Database(self.settings.database)
        self.locks = EnrollmentLockManager(timeout=self.settings.enrollment.lock_timeout_seconds)
        self.classes = ClassDirectory(self.db, self.locks, retry_attempts=attempts)
        self.students = StudentDirectory(self.db)
        self.ledger = EnrollmentLedger(
            self.db,
            self.classes,
            self.students,
            self.locks,
            settings=self.settings.enrollment,
        )
        self.bulk = BulkAssignmentOrchestrator(self.ledger)
        self.transfers = TransferWorkflow(
            self.db, self.classes, self.students, self.ledger, self.locks, retry_attempts=attempts
        )
        self.exits = ExitWorkflow(
            self.db, self.classes, self.students, self.ledger, self.locks, retry_attempts=attempts
        )
        self.history = HistoryService(self.db, self.classes, self.students)

    async def start(self) -> None:
        """Create the engine and the schema.

        Raises:
            DatabaseError: If the store cannot be initialized.
        """
        if self.configure_logging:
            setup_logging(self.settings)

        await self.db.init()
        await self.db.create_schema()

        logger.info(
            "Enrollment system started",
            environment=self.settings.environment,
            sqlite=self.settings.database.is_sqlite,
        )

    async def close(self) -> None:
        """Dispose of the engine."""
        await self.db.close()
        logger.info("Enrollment system closed")

    async def __aenter__(self) -> "EnrollmentSystem":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Caller-facing operations

    async def assign(
        self,
        student_id: int,
        class_id: int,
        assignment_type: AssignmentType | str | None = None,
        notes: str = "",
        academic_year: str | None = None,
    ) -> EnrollmentResponse:
        """Assign a student to a class. See EnrollmentLedger.assign."""
        return await self.ledger.assign(
            student_id,
            class_id,
            assignment_type=assignment_type,
            notes=notes,
            academic_year=academic_year,
        )

    async def bulk_assign(
        self,
        student_ids: Iterable[int],
        class_id: int,
        notes: str = "",
    ) -> BulkAssignResult:
        """Assign many students to one class. See BulkAssignmentOrchestrator."""
        return await self.bulk.bulk_assign(student_ids, class_id, notes=notes)

    async def transfer(
        self,
        student_id: int,
        from_class_id: int,
        to_class_id: int,
        reason: str = "",
        approved_by: str = "",
        notes: str = "",
    ) -> TransferResponse:
        """Move a student between classes. See TransferWorkflow.transfer."""
        return await self.transfers.transfer(
            student_id,
            from_class_id,
            to_class_id,
            reason=reason,
            approved_by=approved_by,
            notes=notes,
        )

    async def exit(
        self,
        student_id: int,
        exit_type: ExitType | str,
        destination: str | None = None,
        reason: str = "",
        approved_by: str = "",
        notes: str = "",
    ) -> ExitResponse:
        """Record a student leaving. See ExitWorkflow.exit."""
        return await self.exits.exit(
            student_id,
            exit_type,
            destination=destination,
            reason=reason,
            approved_by=approved_by,
            notes=notes,
        )

    async def class_roster(self, class_id: int) -> list[EnrollmentResponse]:
        return await self.history.class_roster(class_id)

    async def student_history(self, student_id: int) -> list[HistoryEntry]:
        return await self.history.student_history(student_id)

    async def class_history(self, class_id: int) -> list[EnrollmentResponse]:
        return await self.history.class_history(class_id)

    async def class_stats_by_year(self, class_id: int, academic_year: str) -> ClassStatsResponse:
        return await self.history.class_stats_by_year(class_id, academic_year)
