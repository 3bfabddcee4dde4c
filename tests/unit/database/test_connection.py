# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the enrollment store connection."""

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

from student_lifecycle.core.config.settings import DatabaseSettings
from student_lifecycle.domains.exceptions import ClassFullError, ConflictError
from student_lifecycle.infrastructure.database import Database, DatabaseError
from student_lifecycle.infrastructure.database.models import ClassRecord, StudentRecord


@pytest.fixture
def memory_settings():
    """Provide in-memory SQLite settings."""
    return DatabaseSettings(url="sqlite+aiosqlite:///:memory:")


class TestDatabaseError:
    """Tests for DatabaseError."""

    def test_message_only(self):
        """Test string form without an original error."""
        error = DatabaseError("Something failed")

        assert str(error) == "Something failed"
        assert error.original_error is None

    def test_with_original_error(self):
        """Test string form includes the original error."""
        original = ValueError("bad value")
        error = DatabaseError("Something failed", original)

        assert str(error) == "Something failed: bad value"
        assert error.original_error is original


class TestDatabaseLifecycle:
    """Tests for init, close, and connection checks."""

    @pytest.mark.asyncio
    async def test_not_initialized(self, memory_settings):
        """Test engine access before init raises DatabaseError."""
        database = Database(memory_settings)

        assert database.is_initialized is False
        assert await database.check_connection() is False
        with pytest.raises(DatabaseError):
            _ = database.engine
        with pytest.raises(DatabaseError):
            async with database.session():
                pass

    @pytest.mark.asyncio
    async def test_init_and_close(self, memory_settings):
        """Test the engine is created once and disposed on close."""
        database = Database(memory_settings)

        await database.init()
        engine = database.engine
        await database.init()

        assert database.engine is engine
        assert await database.check_connection() is True

        await database.close()

        assert database.is_initialized is False

    @pytest.mark.asyncio
    async def test_create_schema(self, memory_settings):
        """Test all tables are created."""
        database = Database(memory_settings)
        await database.init()
        await database.create_schema()

        async with database.session() as session:
            result = await session.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            )
            tables = set(result.scalars().all())

        await database.close()

        assert {"classes", "students", "enrollments", "class_transfers", "student_exits"} <= tables


class TestSession:
    """Tests for Database.session transactions."""

    @pytest.mark.asyncio
    async def test_commit_on_success(self, system):
        """Test changes are committed when the block succeeds."""
        async with system.db.session() as session:
            session.add(StudentRecord(full_name="Citra", status="active"))

        async with system.db.session() as session:
            result = await session.execute(select(StudentRecord.full_name))
            assert result.scalars().all() == ["Citra"]

    @pytest.mark.asyncio
    async def test_rollback_on_domain_error(self, system):
        """Test changes are discarded when the block raises."""
        with pytest.raises(ClassFullError):
            async with system.db.session() as session:
                session.add(StudentRecord(full_name="Dewi", status="active"))
                await session.flush()
                raise ClassFullError("full")

        async with system.db.session() as session:
            result = await session.execute(select(StudentRecord))
            assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_sqlalchemy_errors_wrapped(self, system):
        """Test SQLAlchemy errors surface as DatabaseError."""
        with pytest.raises(DatabaseError) as exc_info:
            async with system.db.session() as session:
                await session.execute(text("SELECT * FROM no_such_table"))

        assert isinstance(exc_info.value.original_error, OperationalError)

    @pytest.mark.asyncio
    async def test_snapshot_session(self, system, make_class):
        """Test snapshot sessions read normally."""
        class_ = await make_class()

        async with system.db.session(snapshot=True) as session:
            result = await session.execute(select(ClassRecord.id))
            assert result.scalars().all() == [class_.id]


class TestOptimisticVersion:
    """Tests for the class row version check."""

    @pytest.mark.asyncio
    async def test_version_increments(self, system, make_class):
        """Test every occupancy change bumps the row version."""
        class_ = await make_class(capacity=3)

        async with system.db.session() as session:
            before = (await system.classes.get_record(session, class_.id)).version

        await system.classes.adjust_occupancy(class_.id, 1)

        async with system.db.session() as session:
            after = (await system.classes.get_record(session, class_.id)).version

        assert after == before + 1

    @pytest.mark.asyncio
    async def test_stale_version_raises_conflict(self, system, make_class):
        """Test a row changed underneath a loaded object turns into ConflictError."""
        class_ = await make_class(capacity=3)

        with pytest.raises(ConflictError):
            async with system.db.session() as session:
                await system.classes.get_record(session, class_.id)
                await session.execute(
                    text("UPDATE classes SET version = version + 1 WHERE id = :id"),
                    {"id": class_.id},
                )
                await system.classes.apply_occupancy_delta(session, class_.id, 1)

        assert (await system.classes.get(class_.id)).current_occupancy == 0
