# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class directory for managing classes and their occupancy.

This module provides the ClassDirectory class for:
- Class CRUD operations (delete is a soft delete)
- Class listing and seat availability
- Occupancy changes under the class lock with a version check
"""

from __future__ import annotations

import logging

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from student_lifecycle.domains.exceptions import (
    ClassFullError,
    ClassNotFoundError,
    ConflictError,
    HasActiveStudentsError,
    InvalidCapacityError,
    OccupancyUnderflowError,
)
from student_lifecycle.infrastructure.database import Database
from student_lifecycle.infrastructure.database.models import ClassRecord
from student_lifecycle.infrastructure.locking import EnrollmentLockManager, retry_on_conflict
from student_lifecycle.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassUpdateRequest,
)
from student_lifecycle.models.common import ClassStatus
from student_lifecycle.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ClassDirectory:
    """Directory of classes, the owner of every occupancy counter.

    Occupancy only changes through adjust_occupancy or, inside a command
    that already holds the class lock, apply_occupancy_delta.

    Attributes:
        db: Enrollment store.
        locks: Shared class/student lock manager.
        retry_attempts: Attempts for commands that hit a ConflictError.
    """

    def __init__(
        self,
        db: Database,
        locks: EnrollmentLockManager,
        retry_attempts: int = 3,
    ) -> None:
        """Initialize class directory.

        Args:
            db: Enrollment store.
            locks: Shared lock manager.
            retry_attempts: Attempts for commands that hit a ConflictError.
        """
        self.db = db
        self.locks = locks
        self.retry_attempts = retry_attempts

    async def create(self, request: ClassCreateRequest) -> ClassResponse:
        """Create a new, empty, active class.

        Args:
            request: Class creation data.

        Returns:
            Created class.
        """
        async with self.db.session() as session:
            class_ = ClassRecord(
                name=request.name,
                grade=request.grade,
                track=request.track,
                academic_year=request.academic_year,
                homeroom_teacher=request.homeroom_teacher,
                capacity=request.capacity,
                current_occupancy=0,
                status=ClassStatus.ACTIVE.value,
            )
            session.add(class_)
            await session.flush()

        logger.info("Created class: %s (%s) capacity=%d", class_.name, class_.id, class_.capacity)

        return ClassResponse.model_validate(class_)

    async def get(self, class_id: int) -> ClassResponse:
        """Get class by ID.

        Args:
            class_id: Class identifier.

        Returns:
            Class details.

        Raises:
            ClassNotFoundError: If class not found or deleted.
        """
        async with self.db.session() as session:
            class_ = await self.get_record(session, class_id)
            return ClassResponse.model_validate(class_)

    async def list_classes(
        self,
        grade: int | None = None,
        academic_year: str | None = None,
        track: str | None = None,
        status: ClassStatus | None = None,
        search: str | None = None,
    ) -> list[ClassResponse]:
        """List classes with filtering.

        Args:
            grade: Filter by grade.
            academic_year: Filter by academic year.
            track: Filter by track (jurusan).
            status: Filter by status.
            search: Search in name, track, or homeroom teacher.

        Returns:
            Matching classes ordered by grade and name.
        """
        conditions = [ClassRecord.deleted_at.is_(None)]

        if grade is not None:
            conditions.append(ClassRecord.grade == grade)

        if academic_year:
            conditions.append(ClassRecord.academic_year == academic_year)

        if track:
            conditions.append(ClassRecord.track == track)

        if status is not None:
            conditions.append(ClassRecord.status == ClassStatus(status).value)

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                (ClassRecord.name.ilike(search_pattern)) |
                (ClassRecord.track.ilike(search_pattern)) |
                (ClassRecord.homeroom_teacher.ilike(search_pattern))
            )

        query = (
            select(ClassRecord)
            .where(and_(*conditions))
            .order_by(ClassRecord.grade, ClassRecord.name, ClassRecord.id)
        )

        async with self.db.session() as session:
            result = await session.execute(query)
            return [ClassResponse.model_validate(c) for c in result.scalars().all()]

    async def available_classes(self, min_capacity: int = 1) -> list[ClassResponse]:
        """List active classes with at least min_capacity free seats.

        Args:
            min_capacity: Minimum number of free seats.

        Returns:
            Classes that can take min_capacity more students.
        """
        query = (
            select(ClassRecord)
            .where(
                ClassRecord.deleted_at.is_(None),
                ClassRecord.status == ClassStatus.ACTIVE.value,
                ClassRecord.capacity - ClassRecord.current_occupancy >= min_capacity,
            )
            .order_by(ClassRecord.grade, ClassRecord.name, ClassRecord.id)
        )

        async with self.db.session() as session:
            result = await session.execute(query)
            return [ClassResponse.model_validate(c) for c in result.scalars().all()]

    async def list_tracks(self) -> list[str]:
        """List the distinct tracks (jurusan) used by current classes."""
        query = (
            select(ClassRecord.track)
            .where(ClassRecord.deleted_at.is_(None), ClassRecord.track.is_not(None))
            .group_by(ClassRecord.track)
            .order_by(ClassRecord.track)
        )

        async with self.db.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def update(self, class_id: int, request: ClassUpdateRequest) -> ClassResponse:
        """Update a class.

        Args:
            class_id: Class identifier.
            request: Fields to change.

        Returns:
            Updated class.

        Raises:
            ClassNotFoundError: If class not found.
            InvalidCapacityError: If capacity would drop below occupancy.
            ConflictError: If the update keeps losing to concurrent writers.
        """
        return await retry_on_conflict(
            lambda: self._update_once(class_id, request),
            self.retry_attempts,
        )

    async def _update_once(self, class_id: int, request: ClassUpdateRequest) -> ClassResponse:
        changes = request.model_dump(exclude_unset=True)

        async with self.locks.hold(classes=[class_id]):
            async with self.db.session() as session:
                class_ = await self.get_record(session, class_id)

                capacity = changes.get("capacity")
                if capacity is not None and capacity < class_.current_occupancy:
                    raise InvalidCapacityError(
                        f"Capacity {capacity} is below the current occupancy "
                        f"{class_.current_occupancy} of class {class_id}",
                        details={"class_id": class_id, "capacity": capacity},
                    )

                for field, value in changes.items():
                    if value is None and field in ("name", "grade", "academic_year", "capacity", "status"):
                        continue
                    if isinstance(value, ClassStatus):
                        value = value.value
                    setattr(class_, field, value)

                await self._flush(session, class_id)

        logger.info("Updated class: %s fields=%s", class_id, sorted(changes))

        return ClassResponse.model_validate(class_)

    async def delete(self, class_id: int) -> None:
        """Delete a class that has no students.

        The row is soft deleted so enrollment history that references
        it stays intact.

        Args:
            class_id: Class identifier.

        Raises:
            ClassNotFoundError: If class not found.
            HasActiveStudentsError: If the class still has students.
        """
        await retry_on_conflict(lambda: self._delete_once(class_id), self.retry_attempts)

    async def _delete_once(self, class_id: int) -> None:
        async with self.locks.hold(classes=[class_id]):
            async with self.db.session() as session:
                class_ = await self.get_record(session, class_id)

                if class_.current_occupancy > 0:
                    raise HasActiveStudentsError(
                        f"Class {class_id} still has {class_.current_occupancy} students. "
                        "Move them to another class first.",
                        details={"class_id": class_id, "occupancy": class_.current_occupancy},
                    )

                class_.deleted_at = utc_now()
                class_.status = ClassStatus.INACTIVE.value
                await self._flush(session, class_id)

        logger.info("Deleted class: %s", class_id)

    async def adjust_occupancy(self, class_id: int, delta: int) -> ClassResponse:
        """Change a class's occupancy counter by delta.

        Args:
            class_id: Class identifier.
            delta: Seats to take (positive) or release (negative).

        Returns:
            Class after the change.

        Raises:
            ClassNotFoundError: If class not found.
            ClassFullError: If occupancy would exceed capacity.
            OccupancyUnderflowError: If occupancy would drop below zero.
            ConflictError: If the change keeps losing to concurrent writers.
        """
        return await retry_on_conflict(
            lambda: self._adjust_once(class_id, delta),
            self.retry_attempts,
        )

    async def _adjust_once(self, class_id: int, delta: int) -> ClassResponse:
        async with self.locks.hold(classes=[class_id]):
            async with self.db.session() as session:
                class_ = await self.apply_occupancy_delta(session, class_id, delta)
                return ClassResponse.model_validate(class_)

    async def get_record(
        self,
        session: AsyncSession,
        class_id: int,
        include_deleted: bool = False,
    ) -> ClassRecord:
        """Load a class row inside an open session.

        Args:
            session: Open session.
            class_id: Class identifier.
            include_deleted: Also return soft-deleted classes, for reads
                over the enrollment history.

        Returns:
            ClassRecord model instance.

        Raises:
            ClassNotFoundError: If not found or deleted.
        """
        query = select(ClassRecord).where(ClassRecord.id == class_id)
        if not include_deleted:
            query = query.where(ClassRecord.deleted_at.is_(None))
        result = await session.execute(query)
        class_ = result.scalar_one_or_none()

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found", details={"class_id": class_id})

        return class_

    async def apply_occupancy_delta(
        self,
        session: AsyncSession,
        class_id: int,
        delta: int,
    ) -> ClassRecord:
        """Check capacity and write the new occupancy inside an open session.

        The caller must hold the class lock and commits the session
        together with its own ledger changes. The write is guarded by the
        row version, so a writer outside this process that changed the
        row first turns this into a ConflictError.

        Args:
            session: Open session.
            class_id: Class identifier.
            delta: Seats to take (positive) or release (negative).

        Returns:
            ClassRecord after the change.

        Raises:
            ClassNotFoundError: If class not found.
            ClassFullError: If occupancy would exceed capacity.
            OccupancyUnderflowError: If occupancy would drop below zero.
            ConflictError: If the row version changed underneath.
        """
        class_ = await self.get_record(session, class_id)
        new_occupancy = class_.current_occupancy + delta

        if new_occupancy > class_.capacity:
            raise ClassFullError(
                f"Class {class_id} is full ({class_.current_occupancy}/{class_.capacity})",
                details={
                    "class_id": class_id,
                    "capacity": class_.capacity,
                    "occupancy": class_.current_occupancy,
                },
            )

        if new_occupancy < 0:
            raise OccupancyUnderflowError(
                f"Occupancy of class {class_id} cannot drop below zero",
                details={"class_id": class_id, "occupancy": class_.current_occupancy, "delta": delta},
            )

        class_.current_occupancy = new_occupancy
        await self._flush(session, class_id)

        logger.debug(
            "Occupancy of class %s: %d/%d (delta %+d)",
            class_id,
            new_occupancy,
            class_.capacity,
            delta,
        )

        return class_

    async def _flush(self, session: AsyncSession, class_id: int) -> None:
        try:
            await session.flush()
        except StaleDataError as e:
            raise ConflictError(
                f"Class {class_id} was modified concurrently",
                details={"class_id": class_id},
            ) from e
