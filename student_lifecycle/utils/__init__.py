# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations and academic years
"""

from student_lifecycle.utils.datetime import (
    academic_year_for,
    ensure_utc,
    utc_now,
    utc_today,
)
from student_lifecycle.utils.logging import get_logger, log_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "log_context",
    # Datetime
    "utc_now",
    "utc_today",
    "ensure_utc",
    "academic_year_for",
]
