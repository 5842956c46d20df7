# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student domain package.

This package provides student record management including class moves
and soft delete.
"""

from src.domains.student.service import (
    InactiveClassError,
    InvalidStudentCodeError,
    StudentCodeExistsError,
    StudentNotFoundError,
    StudentService,
    normalize_student_code,
)

__all__ = [
    "StudentService",
    "StudentNotFoundError",
    "StudentCodeExistsError",
    "InvalidStudentCodeError",
    "InactiveClassError",
    "normalize_student_code",
]
