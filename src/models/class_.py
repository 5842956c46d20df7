# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class request/response models."""

from datetime import datetime

from pydantic import Field

from src.infrastructure.database.models.school import DEFAULT_CLASS_CAPACITY, MAX_CLASS_CAPACITY
from src.models.common import CamelModel
from src.models.student import StudentSummary
from src.models.user import UserSummary


class ClassCreateRequest(CamelModel):
    """Create a class owned by a teacher."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    teacher_id: str
    capacity: int = Field(default=DEFAULT_CLASS_CAPACITY, ge=1, le=MAX_CLASS_CAPACITY)


class ClassUpdateRequest(CamelModel):
    """Partial class update."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    teacher_id: str | None = None
    capacity: int | None = Field(default=None, ge=1, le=MAX_CLASS_CAPACITY)


class AddStudentRequest(CamelModel):
    """Enroll an existing student in a class."""

    student_id: str


class AssignTeacherRequest(CamelModel):
    """Assign a teacher to a class."""

    teacher_id: str


class ClassSummary(CamelModel):
    """Class list entry."""

    id: str
    name: str
    description: str | None = None
    teacher: UserSummary | None = None
    capacity: int
    student_count: int
    is_active: bool


class ClassResponse(ClassSummary):
    """Class details including the active roster."""

    students: list[StudentSummary] = []
    created_at: datetime
    updated_at: datetime
