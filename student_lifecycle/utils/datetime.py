# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the student lifecycle core.

Design Decisions:
-----------------
1. All timestamps are stored in UTC
2. All Python datetimes are timezone-aware (with timezone.utc)
3. Stores that drop tzinfo (SQLite) are normalised back with ensure_utc

Usage:
------
    from student_lifecycle.utils.datetime import utc_now, academic_year_for

    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
    year = academic_year_for(utc_today(), start_month=7)  # "2025/2026"
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Get the current UTC calendar date."""
    return utc_now().date()


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def academic_year_for(day: date, start_month: int = 7) -> str:
    """Derive the academic year token that contains a given day.

    Args:
        day: Calendar date to classify.
        start_month: Month (1-12) in which the academic year begins.

    Returns:
        Token of the form "YYYY/YYYY", e.g. "2024/2025".

    Example:
        >>> academic_year_for(date(2025, 3, 1))
        '2024/2025'
        >>> academic_year_for(date(2025, 7, 14))
        '2025/2026'
    """
    first = day.year if day.month >= start_month else day.year - 1
    return f"{first}/{first + 1}"
