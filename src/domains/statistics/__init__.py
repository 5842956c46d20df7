# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Statistics domain package.

Read-only dashboard projections over classes, students, teachers and
notification history.
"""

from src.domains.statistics.service import StatisticsService

__all__ = ["StatisticsService"]
