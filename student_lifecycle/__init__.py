"""Student Lifecycle Core.

Enrollment lifecycle management for school administration: class
assignment, transfers between classes, exits, and the audit trail that
keeps class occupancy consistent with active enrollments.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
