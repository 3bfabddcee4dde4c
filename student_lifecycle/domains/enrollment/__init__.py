# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain: single and bulk class assignment."""

from student_lifecycle.domains.enrollment.bulk import BulkAssignmentOrchestrator
from student_lifecycle.domains.enrollment.service import EnrollmentLedger

__all__ = [
    "BulkAssignmentOrchestrator",
    "EnrollmentLedger",
]
