# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk roster import and reconciliation models."""

from pydantic import EmailStr, Field

from src.infrastructure.database.models.school import MAX_CLASS_CAPACITY
from src.models.common import CamelModel


class ClassImportRow(CamelModel):
    """One spreadsheet row describing a class.

    Attributes:
        row: 1-based sheet row the values came from.
        name: Class name, the upsert key.
        capacity: Roster limit.
        teacher_email: Optional owner, looked up by email.
    """

    row: int
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., ge=1, le=MAX_CLASS_CAPACITY)
    teacher_email: EmailStr | None = None


class StudentImportRow(CamelModel):
    """One spreadsheet row describing a student."""

    row: int
    student_code: str
    name_english: str | None = None
    name_arabic: str | None = None
    class_name: str

    @property
    def name(self) -> str:
        """Display name: the English name, else the Arabic one."""
        return self.name_english or self.name_arabic or ""


class RowIssue(CamelModel):
    """A row that was skipped or failed, with the reason."""

    row: int
    message: str


class ImportReport(CamelModel):
    """Outcome of a bulk import."""

    created: int = 0
    updated: int = 0
    skipped: list[RowIssue] = []
    errors: list[RowIssue] = []

    @property
    def imported(self) -> int:
        """Rows that created or updated a record."""
        return self.created + self.updated


class RosterSyncReport(CamelModel):
    """Outcome of rebuilding class rosters from student records.

    Attributes:
        enrolled: Roster size per class name after the rebuild.
        overflow: Codes of active students left off a full roster.
        orphaned: Codes of active students whose class is inactive.
    """

    enrolled: dict[str, int] = {}
    overflow: list[str] = []
    orphaned: list[str] = []
