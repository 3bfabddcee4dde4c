# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the enrollment ledger."""

import asyncio
from datetime import date
from unittest.mock import patch

import pytest

from student_lifecycle.container import EnrollmentSystem
from student_lifecycle.core.config.settings import DatabaseSettings, Settings
from student_lifecycle.domains.exceptions import (
    AlreadyEnrolledError,
    ClassFullError,
    ClassInactiveError,
    ClassNotFoundError,
    ConflictError,
    StudentNotFoundError,
)
from student_lifecycle.models.class_ import ClassCreateRequest, ClassUpdateRequest
from student_lifecycle.models.common import AssignmentType, ClassStatus, EnrollmentStatus
from student_lifecycle.models.enrollment import EnrollmentResponse
from student_lifecycle.models.student import StudentCreateRequest


class TestAssign:
    """Tests for EnrollmentLedger.assign."""

    @pytest.mark.asyncio
    async def test_assign_success(self, system, make_class, make_student):
        """Test assignment creates an active record and takes a seat."""
        class_ = await make_class(capacity=2)
        student = await make_student()

        enrollment = await system.assign(
            student.id, class_.id, notes="PPDB jalur zonasi", academic_year="2024/2025"
        )

        assert enrollment.student_id == student.id
        assert enrollment.class_id == class_.id
        assert enrollment.status == EnrollmentStatus.ACTIVE
        assert enrollment.assignment_type == AssignmentType.INITIAL
        assert enrollment.academic_year == "2024/2025"
        assert enrollment.notes == "PPDB jalur zonasi"
        assert (await system.classes.get(class_.id)).current_occupancy == 1

    @pytest.mark.asyncio
    async def test_assignment_type(self, system, make_class, make_student):
        """Test the assignment type is recorded."""
        class_ = await make_class()
        student = await make_student()

        enrollment = await system.assign(student.id, class_.id, assignment_type="promotion")

        assert enrollment.assignment_type == AssignmentType.PROMOTION

    @pytest.mark.asyncio
    async def test_academic_year_defaults_to_clock(self, system, make_class, make_student):
        """Test the academic year is derived from today when omitted."""
        class_ = await make_class()
        student = await make_student()

        with patch(
            "student_lifecycle.domains.enrollment.service.utc_today",
            return_value=date(2025, 8, 17),
        ):
            enrollment = await system.assign(student.id, class_.id)

        assert enrollment.academic_year == "2025/2026"

    @pytest.mark.asyncio
    async def test_invalid_academic_year(self, system, make_class, make_student):
        """Test malformed academic years are rejected before any write."""
        class_ = await make_class()
        student = await make_student()

        with pytest.raises(ValueError):
            await system.assign(student.id, class_.id, academic_year="2025")

        assert await system.ledger.get_active_enrollment(student.id) is None

    @pytest.mark.asyncio
    async def test_class_full_scenario(self, system, make_class, make_student):
        """Test the second student of a one-seat class is rejected."""
        class_ = await make_class(capacity=1)
        first = await make_student()
        second = await make_student()

        await system.assign(first.id, class_.id)

        with pytest.raises(ClassFullError):
            await system.assign(second.id, class_.id)

        assert (await system.classes.get(class_.id)).current_occupancy == 1
        assert await system.ledger.get_active_enrollment(second.id) is None

    @pytest.mark.asyncio
    async def test_already_enrolled(self, system, make_class, make_student):
        """Test a student cannot hold two active enrollments."""
        first_class = await make_class()
        second_class = await make_class()
        student = await make_student()
        await system.assign(student.id, first_class.id)

        with pytest.raises(AlreadyEnrolledError) as exc_info:
            await system.assign(student.id, second_class.id)

        assert exc_info.value.details["class_id"] == first_class.id
        assert (await system.classes.get(second_class.id)).current_occupancy == 0

    @pytest.mark.asyncio
    async def test_already_enrolled_checked_before_capacity(self, system, make_class, make_student):
        """Test a re-assignment into a full class reports AlreadyEnrolled."""
        class_ = await make_class(capacity=1)
        student = await make_student()
        await system.assign(student.id, class_.id)

        with pytest.raises(AlreadyEnrolledError):
            await system.assign(student.id, class_.id)

    @pytest.mark.asyncio
    async def test_unknown_student(self, system, make_class):
        """Test unknown students raise StudentNotFoundError."""
        class_ = await make_class()

        with pytest.raises(StudentNotFoundError):
            await system.assign(999, class_.id)

        assert (await system.classes.get(class_.id)).current_occupancy == 0

    @pytest.mark.asyncio
    async def test_unknown_class(self, system, make_student):
        """Test unknown classes raise ClassNotFoundError."""
        student = await make_student()

        with pytest.raises(ClassNotFoundError):
            await system.assign(student.id, 999)

    @pytest.mark.asyncio
    async def test_inactive_class(self, system, make_class, make_student):
        """Test inactive classes take no new students."""
        class_ = await make_class()
        await system.classes.update(class_.id, ClassUpdateRequest(status=ClassStatus.INACTIVE))
        student = await make_student()

        with pytest.raises(ClassInactiveError):
            await system.assign(student.id, class_.id)

        assert (await system.classes.get(class_.id)).current_occupancy == 0


class TestLedgerReads:
    """Tests for active enrollment and history reads."""

    @pytest.mark.asyncio
    async def test_get_active_enrollment(self, system, make_class, make_student):
        """Test reading the active enrollment."""
        class_ = await make_class()
        student = await make_student()
        assert await system.ledger.get_active_enrollment(student.id) is None

        await system.assign(student.id, class_.id)
        active = await system.ledger.get_active_enrollment(student.id)

        assert active is not None
        assert active.class_id == class_.id

    @pytest.mark.asyncio
    async def test_get_history(self, system, make_class, make_student):
        """Test enrollment history lists closed and open records in order."""
        class_a = await make_class(capacity=2)
        class_b = await make_class(capacity=2)
        student = await make_student()
        await system.assign(student.id, class_a.id)
        await system.transfer(student.id, class_a.id, class_b.id)

        history = await system.ledger.get_history(student.id)

        assert [(e.class_id, e.status) for e in history] == [
            (class_a.id, EnrollmentStatus.TRANSFERRED),
            (class_b.id, EnrollmentStatus.ACTIVE),
        ]

    @pytest.mark.asyncio
    async def test_reads_unknown_student(self, system):
        """Test reads for unknown students raise StudentNotFoundError."""
        with pytest.raises(StudentNotFoundError):
            await system.ledger.get_active_enrollment(999)

        with pytest.raises(StudentNotFoundError):
            await system.ledger.get_history(999)


@pytest.mark.concurrency
class TestConcurrentAssign:
    """Tests for assignments racing for the same seats."""

    @pytest.mark.asyncio
    async def test_no_overbooking(self, system, make_class, make_student):
        """Test N concurrent assignments into a class with fewer seats."""
        class_ = await make_class(capacity=3)
        students = [await make_student() for _ in range(10)]

        results = await asyncio.gather(
            *(system.assign(s.id, class_.id) for s in students),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]
        assert len(succeeded) == 3
        assert len(rejected) == 7
        assert all(isinstance(r, ClassFullError) for r in rejected)

        roster = await system.class_roster(class_.id)
        assert (await system.classes.get(class_.id)).current_occupancy == 3
        assert len(roster) == 3
        assert await system.history.audit_occupancy() == []

    @pytest.mark.asyncio
    async def test_same_student_two_classes(self, system, make_class, make_student):
        """Test one student raced into two classes ends up in exactly one."""
        class_a = await make_class()
        class_b = await make_class()
        student = await make_student()

        results = await asyncio.gather(
            system.assign(student.id, class_a.id),
            system.assign(student.id, class_b.id),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, AlreadyEnrolledError)) == 1
        history = await system.ledger.get_history(student.id)
        assert len(history) == 1
        assert await system.history.audit_occupancy() == []


class TestSingleActiveInStore:
    """Tests for the store-level one-active-enrollment rule."""

    @pytest.mark.asyncio
    async def test_second_active_row_refused(self, system, make_class, make_student):
        """Test the store rejects a second active row even without locks."""
        class_a = await make_class()
        class_b = await make_class()
        student = await make_student()

        with pytest.raises(ConflictError):
            async with system.db.session() as session:
                await system.ledger.open_enrollment(
                    session, student.id, class_a.id, "2024/2025", AssignmentType.INITIAL
                )
                await system.ledger.open_enrollment(
                    session, student.id, class_b.id, "2024/2025", AssignmentType.INITIAL
                )

        assert await system.ledger.get_history(student.id) == []

    @pytest.mark.asyncio
    async def test_closed_rows_do_not_count(self, system, make_class, make_student):
        """Test a transferred row does not block the student's next active row."""
        class_a = await make_class()
        class_b = await make_class()
        student = await make_student()
        await system.assign(student.id, class_a.id)

        await system.transfer(student.id, class_a.id, class_b.id)
        await system.transfer(student.id, class_b.id, class_a.id)

        history = await system.ledger.get_history(student.id)
        assert [e.status for e in history] == [
            EnrollmentStatus.TRANSFERRED,
            EnrollmentStatus.TRANSFERRED,
            EnrollmentStatus.ACTIVE,
        ]

    @pytest.mark.asyncio
    async def test_stale_check_retried_into_already_enrolled(
        self, system, make_class, make_student
    ):
        """Test a write that raced past the check is retried and then rejected."""
        class_a = await make_class()
        class_b = await make_class()
        student = await make_student()
        await system.assign(student.id, class_a.id)

        real_find_active = system.ledger.find_active
        calls = []

        async def find_active(session, student_id):
            calls.append(student_id)
            if len(calls) == 1:
                return None
            return await real_find_active(session, student_id)

        with patch.object(system.ledger, "find_active", new=find_active):
            with pytest.raises(AlreadyEnrolledError):
                await system.assign(student.id, class_b.id)

        assert len(calls) == 2
        assert (await system.classes.get(class_b.id)).current_occupancy == 0
        assert await system.history.audit_occupancy() == []

    @pytest.mark.asyncio
    @pytest.mark.concurrency
    async def test_two_systems_sharing_a_file_store(self, tmp_path):
        """Test two systems on one database cannot both enroll a student."""
        settings = Settings(
            _env_file=None,
            database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'school.db'}"),
        )

        async with EnrollmentSystem(settings) as first, EnrollmentSystem(settings) as second:
            class_a = await first.classes.create(
                ClassCreateRequest(name="X-1", grade=10, academic_year="2024/2025", capacity=5)
            )
            class_b = await first.classes.create(
                ClassCreateRequest(name="X-2", grade=10, academic_year="2024/2025", capacity=5)
            )
            student = await first.students.register(
                StudentCreateRequest(full_name="Citra", student_number="NIS-0001")
            )

            results = await asyncio.gather(
                first.assign(student.id, class_a.id),
                second.assign(student.id, class_b.id),
                return_exceptions=True,
            )

            assert sum(1 for r in results if isinstance(r, EnrollmentResponse)) == 1
            assert sum(1 for r in results if isinstance(r, AlreadyEnrolledError)) == 1

            history = await second.ledger.get_history(student.id)
            assert [e.status for e in history] == [EnrollmentStatus.ACTIVE]
            assert await first.history.audit_occupancy() == []
