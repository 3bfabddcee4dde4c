# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transfer domain: moving students between classes."""

from student_lifecycle.domains.transfer.service import TransferWorkflow

__all__ = ["TransferWorkflow"]
