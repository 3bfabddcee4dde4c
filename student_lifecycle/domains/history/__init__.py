# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""History domain: rosters, timelines, statistics, and audits."""

from student_lifecycle.domains.history.service import HistoryService

__all__ = ["HistoryService"]
