# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the enrollment store.

Example:
    from student_lifecycle.infrastructure.database import Database

    database = Database(settings.database)
    await database.init()
    async with database.session() as session:
        result = await session.execute(select(EnrollmentRecord))
"""

from student_lifecycle.infrastructure.database.connection import (
    Database,
    DatabaseError,
)

__all__ = [
    "Database",
    "DatabaseError",
]
