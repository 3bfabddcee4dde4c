# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer.

This package contains:
- Database connection management and ORM models (SQLAlchemy async)
- Per-class and per-student locking with conflict retry
"""
