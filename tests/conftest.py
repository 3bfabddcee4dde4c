# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Every test that touches the store gets its own EnrollmentSystem on a
fresh in-memory SQLite database.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from itertools import count

import pytest
import pytest_asyncio

from student_lifecycle.container import EnrollmentSystem
from student_lifecycle.core.config.settings import (
    DatabaseSettings,
    EnrollmentSettings,
    Settings,
)
from student_lifecycle.models.class_ import ClassCreateRequest, ClassResponse
from student_lifecycle.models.student import StudentCreateRequest, StudentResponse

ACADEMIC_YEAR = "2024/2025"


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide settings for an isolated in-memory store."""
    return Settings(
        environment="development",
        debug=True,
        log_level="DEBUG",
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        enrollment=EnrollmentSettings(lock_timeout_seconds=5.0, conflict_retry_attempts=3),
    )


# =============================================================================
# System Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def system(test_settings: Settings) -> AsyncGenerator[EnrollmentSystem, None]:
    """Provide a started EnrollmentSystem, closed after the test."""
    async with EnrollmentSystem(test_settings) as enrollment_system:
        yield enrollment_system


@pytest.fixture
def make_class(system: EnrollmentSystem) -> Callable[..., Awaitable[ClassResponse]]:
    """Provide a factory creating classes in the test system."""
    counter = count(1)

    async def _make_class(
        capacity: int = 30,
        grade: int = 10,
        name: str | None = None,
        track: str | None = None,
        academic_year: str = ACADEMIC_YEAR,
    ) -> ClassResponse:
        return await system.classes.create(
            ClassCreateRequest(
                name=name or f"X-{next(counter)}",
                grade=grade,
                track=track,
                academic_year=academic_year,
                capacity=capacity,
            )
        )

    return _make_class


@pytest.fixture
def make_student(system: EnrollmentSystem) -> Callable[..., Awaitable[StudentResponse]]:
    """Provide a factory registering students in the test system."""
    counter = count(1)

    async def _make_student(full_name: str | None = None) -> StudentResponse:
        number = next(counter)
        return await system.students.register(
            StudentCreateRequest(
                full_name=full_name or f"Student {number}",
                student_number=f"NIS-{number:04d}",
            )
        )

    return _make_student


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising concurrent commands"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
