# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the lifecycle container."""

import pytest

from student_lifecycle.container import EnrollmentSystem
from student_lifecycle.core.config.settings import (
    DatabaseSettings,
    EnrollmentSettings,
    Settings,
)
from student_lifecycle.models.class_ import ClassCreateRequest
from student_lifecycle.models.common import ExitType
from student_lifecycle.models.student import StudentCreateRequest


@pytest.fixture
def settings():
    """Provide settings with non-default enrollment values."""
    return Settings(
        _env_file=None,
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        enrollment=EnrollmentSettings(lock_timeout_seconds=1.5, conflict_retry_attempts=5),
    )


class TestEnrollmentSystem:
    """Tests for EnrollmentSystem wiring and lifecycle."""

    def test_components_share_store_and_locks(self, settings):
        """Test every component receives the same Database and lock manager."""
        system = EnrollmentSystem(settings)

        assert system.classes.db is system.db
        assert system.ledger.db is system.db
        assert system.transfers.db is system.db
        assert system.exits.db is system.db
        assert system.history.db is system.db
        assert system.classes.locks is system.locks
        assert system.transfers.locks is system.locks
        assert system.bulk.ledger is system.ledger

    def test_settings_applied(self, settings):
        """Test enrollment settings reach the components."""
        system = EnrollmentSystem(settings)

        assert system.locks.timeout == 1.5
        assert system.classes.retry_attempts == 5
        assert system.transfers.retry_attempts == 5
        assert system.ledger.settings.conflict_retry_attempts == 5

    def test_systems_do_not_share_state(self, settings):
        """Test two systems own separate stores and locks."""
        first = EnrollmentSystem(settings)
        second = EnrollmentSystem(settings)

        assert first.db is not second.db
        assert first.locks is not second.locks

    @pytest.mark.asyncio
    async def test_start_and_close(self, settings):
        """Test start creates the schema and close disposes the engine."""
        system = EnrollmentSystem(settings)

        await system.start()
        class_ = await system.classes.create(
            ClassCreateRequest(name="X-1", grade=10, academic_year="2024/2025", capacity=1)
        )
        assert class_.id == 1
        assert await system.db.check_connection() is True

        await system.close()

        assert system.db.is_initialized is False

    @pytest.mark.asyncio
    async def test_async_context_manager(self, settings):
        """Test the system starts on enter and closes on exit."""
        async with EnrollmentSystem(settings, configure_logging=True) as system:
            assert system.db.is_initialized is True

        assert system.db.is_initialized is False

    @pytest.mark.asyncio
    async def test_facades_pass_notes(self, settings):
        """Test transfer and exit notes reach the stored audit entries."""
        async with EnrollmentSystem(settings) as system:
            class_a = await system.classes.create(
                ClassCreateRequest(name="X-1", grade=10, academic_year="2024/2025", capacity=2)
            )
            class_b = await system.classes.create(
                ClassCreateRequest(name="X-2", grade=10, academic_year="2024/2025", capacity=2)
            )
            student = await system.students.register(StudentCreateRequest(full_name="Eka"))
            await system.assign(student.id, class_a.id)

            transfer = await system.transfer(
                student.id, class_a.id, class_b.id, notes="Pindah peminatan"
            )
            exit_ = await system.exit(
                student.id,
                ExitType.MOVED_OUT,
                destination="SMA Negeri 3",
                notes="Surat pindah diterima",
            )

            assert transfer.notes == "Pindah peminatan"
            assert exit_.notes == "Surat pindah diterima"
            assert (await system.exits.list_exits())[0].notes == "Surat pindah diterima"
