# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class directory package.

This package provides class management functionality including:
- Class CRUD and listing
- Seat availability
- Occupancy counter changes
"""

from student_lifecycle.domains.class_.service import ClassDirectory

__all__ = [
    "ClassDirectory",
]
