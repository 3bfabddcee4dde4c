# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student directory package."""

from student_lifecycle.domains.student.service import (
    StudentDirectory,
    StudentNumberExistsError,
)

__all__ = [
    "StudentDirectory",
    "StudentNumberExistsError",
]
