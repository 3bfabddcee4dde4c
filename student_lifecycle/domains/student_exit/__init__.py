# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student exit domain."""

from student_lifecycle.domains.student_exit.service import ExitWorkflow

__all__ = ["ExitWorkflow"]
