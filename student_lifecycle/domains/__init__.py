# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Domains:
    class_: Class directory, owner of the occupancy counters.
    student: Student directory for existence checks.
    enrollment: Enrollment ledger and bulk assignment.
    transfer: Moving a student between two classes.
    student_exit: Ending a student's enrollment.
    history: Read-only rosters, timelines, statistics, and audits.
"""
