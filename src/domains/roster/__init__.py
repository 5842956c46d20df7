# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roster domain package.

This package provides bulk maintenance of the directory:
- Excel imports of classes and students
- Rebuilding class rosters from the students' class of record
"""

from src.domains.roster.service import ImportTeacherNotFoundError, RosterService
from src.domains.roster.spreadsheet import (
    DEFAULT_STUDENT_COLUMNS,
    StudentColumns,
    read_class_rows,
    read_student_rows,
)

__all__ = [
    "RosterService",
    "ImportTeacherNotFoundError",
    "StudentColumns",
    "DEFAULT_STUDENT_COLUMNS",
    "read_class_rows",
    "read_student_rows",
]
