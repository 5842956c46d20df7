# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain package.

This package provides class management functionality including:
- Class CRUD operations with soft delete
- Roster management under the capacity limit
- Teacher assignment
"""

from src.domains.class_.service import (
    ClassCapacityError,
    ClassNotFoundError,
    ClassService,
    ClassStudentNotFoundError,
    InvalidTeacherError,
    StudentAlreadyInClassError,
    StudentNotInClassError,
    TeacherUnassignDeniedError,
    ensure_capacity,
)

__all__ = [
    "ClassService",
    "ClassNotFoundError",
    "ClassStudentNotFoundError",
    "InvalidTeacherError",
    "ClassCapacityError",
    "StudentAlreadyInClassError",
    "StudentNotInClassError",
    "TeacherUnassignDeniedError",
    "ensure_capacity",
]
