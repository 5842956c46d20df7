# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student request/response models."""

from datetime import datetime

from pydantic import Field

from src.models.common import CamelModel


class ClassRef(CamelModel):
    """Minimal class reference."""

    id: str
    name: str


class StudentSummary(CamelModel):
    """Roster entry."""

    id: str
    student_code: str
    name: str
    name_english: str | None = None
    name_arabic: str | None = None
    is_active: bool


class StudentResponse(StudentSummary):
    """Full student representation."""

    school_class: ClassRef | None = Field(default=None, alias="class")
    created_at: datetime
    updated_at: datetime


class StudentCreateRequest(CamelModel):
    """Create a student directly into a class."""

    student_code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=150)
    name_english: str | None = Field(default=None, max_length=150)
    name_arabic: str | None = Field(default=None, max_length=150)
    class_id: str


class StudentUpdateRequest(CamelModel):
    """Partial student update.

    Setting class_id moves the student; setting is_active to true
    reactivates an inactive student into its class roster.
    """

    student_code: str | None = Field(default=None, min_length=1, max_length=50)
    name: str | None = Field(default=None, min_length=1, max_length=150)
    name_english: str | None = Field(default=None, max_length=150)
    name_arabic: str | None = Field(default=None, max_length=150)
    class_id: str | None = None
    is_active: bool | None = None
