# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the student lifecycle core.

Settings are Pydantic-based and loaded from environment variables.

Example:
    >>> from student_lifecycle.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.enrollment.conflict_retry_attempts)
    3
"""

from student_lifecycle.core.config.settings import (
    DatabaseSettings,
    EnrollmentSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "DatabaseSettings",
    "EnrollmentSettings",
]
