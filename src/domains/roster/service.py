# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roster service for bulk imports and roster reconciliation.

Imports go through ClassService and StudentService, so code
normalization, code uniqueness and capacity limits hold exactly as they
do for the API. A failing row is rolled back and reported; the rest of
the batch carries on.

Usage:
    from src.domains.roster import RosterService, read_student_rows

    rows, skipped = read_student_rows("students.xlsx")
    report = await RosterService(db).import_students(rows)
"""

import logging
from collections.abc import Iterable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.class_.service import ClassService
from src.domains.errors import DomainError, NotFoundError
from src.domains.student.service import StudentService, normalize_student_code
from src.domains.user.service import UserService
from src.infrastructure.database.models.school import SchoolClass, Student
from src.models.class_ import ClassCreateRequest, ClassUpdateRequest
from src.models.roster import (
    ClassImportRow,
    ImportReport,
    RosterSyncReport,
    RowIssue,
    StudentImportRow,
)
from src.models.student import StudentCreateRequest, StudentUpdateRequest

logger = logging.getLogger(__name__)

# Recorded as the creator of imported classes
IMPORT_ACTOR = "roster-import"


class ImportTeacherNotFoundError(NotFoundError):
    """Raised when a class row names a teacher email nobody uses."""

    default_code = "import_teacher_not_found"


class RosterService:
    """Bulk class and student import plus roster reconciliation.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize roster service.

        Args:
            db: Async database session.
        """
        self.db = db
        self._classes = ClassService(db)
        self._students = StudentService(db)
        self._users = UserService(db)

    async def import_classes(self, rows: Iterable[ClassImportRow]) -> ImportReport:
        """Upsert classes by name.

        An existing class gets the new capacity (never below its current
        roster) and is reactivated. A new class is created with the
        teacher if one is named, otherwise unassigned.

        Args:
            rows: Parsed class rows.

        Returns:
            Counts of created and updated classes and per-row errors.
        """
        report = ImportReport()

        for row in rows:
            try:
                teacher_id = await self._teacher_id(row.teacher_email)
                existing = await self.find_class(row.name)

                if existing is not None:
                    existing.is_active = True
                    await self._classes.update_class(
                        existing.id,
                        ClassUpdateRequest(capacity=row.capacity, teacher_id=teacher_id),
                    )
                    report.updated += 1
                    logger.info("Row %d: updated class %s (capacity %d)", row.row, row.name, row.capacity)
                    continue

                if teacher_id is not None:
                    await self._classes.create_class(
                        ClassCreateRequest(name=row.name, teacher_id=teacher_id, capacity=row.capacity),
                        created_by=IMPORT_ACTOR,
                    )
                else:
                    class_ = SchoolClass(name=row.name.strip(), capacity=row.capacity, is_active=True)
                    class_.students = []
                    self.db.add(class_)
                    await self.db.commit()
                report.created += 1
                logger.info("Row %d: created class %s (capacity %d)", row.row, row.name, row.capacity)
            except (DomainError, PydanticValidationError) as e:
                await self.db.rollback()
                report.errors.append(_issue(row.row, e))

        logger.info(
            "Class import finished: %d created, %d updated, %d errors",
            report.created,
            report.updated,
            len(report.errors),
        )
        return report

    async def import_students(self, rows: Iterable[StudentImportRow]) -> ImportReport:
        """Upsert students by code into their named classes.

        An existing student is renamed, moved if the class differs, and
        reactivated. The class must already exist.

        Args:
            rows: Parsed student rows.

        Returns:
            Counts of created and updated students and per-row errors.
        """
        report = ImportReport()

        for row in rows:
            class_ = await self.find_class(row.class_name)
            if class_ is None:
                report.errors.append(
                    RowIssue(row=row.row, message=f'Class "{row.class_name}" not found')
                )
                continue

            try:
                code = normalize_student_code(row.student_code)
                existing = await self._find_student(code)

                if existing is not None:
                    await self._students.update_student(
                        existing.id,
                        StudentUpdateRequest(
                            name=row.name,
                            name_english=row.name_english,
                            name_arabic=row.name_arabic,
                            class_id=class_.id,
                            is_active=True,
                        ),
                    )
                    report.updated += 1
                else:
                    await self._students.create_student(
                        StudentCreateRequest(
                            student_code=code,
                            name=row.name,
                            name_english=row.name_english,
                            name_arabic=row.name_arabic,
                            class_id=class_.id,
                        )
                    )
                    report.created += 1
                logger.debug("Row %d: %s -> %s", row.row, code, row.class_name)
            except (DomainError, PydanticValidationError) as e:
                await self.db.rollback()
                report.errors.append(_issue(row.row, e))

        logger.info(
            "Student import finished: %d created, %d updated, %d errors",
            report.created,
            report.updated,
            len(report.errors),
        )
        return report

    async def sync_rosters(self) -> RosterSyncReport:
        """Rebuild every roster from the students' class of record.

        Active students are enrolled in their class, oldest first, up to
        capacity. Students that do not fit, or whose class is inactive,
        stay off every roster and are reported.

        Returns:
            Roster sizes per class and the students left out.
        """
        classes = {
            c.id: c
            for c in (
                await self.db.execute(select(SchoolClass).execution_options(populate_existing=True))
            ).scalars().all()
        }
        students = (
            await self.db.execute(
                select(Student)
                .where(Student.is_active.is_(True))
                .order_by(Student.created_at, Student.student_code)
            )
        ).scalars().all()

        wanted: dict[str, list[Student]] = {class_id: [] for class_id in classes}
        report = RosterSyncReport()

        for student in students:
            class_ = classes.get(student.class_id)
            if class_ is None or not class_.is_active:
                report.orphaned.append(student.student_code)
                continue
            if len(wanted[class_.id]) >= class_.capacity:
                report.overflow.append(student.student_code)
                continue
            wanted[class_.id].append(student)

        for class_id, class_ in classes.items():
            class_.students = wanted[class_id]
            if class_.is_active:
                report.enrolled[class_.name] = len(wanted[class_id])

        await self.db.commit()

        if report.overflow:
            logger.warning("Left %d students off full rosters: %s", len(report.overflow), report.overflow)
        logger.info("Rebuilt rosters for %d classes", len(report.enrolled))
        return report

    async def find_class(self, name: str) -> SchoolClass | None:
        """Find a class by exact name, preferring an active one."""
        query = (
            select(SchoolClass)
            .where(SchoolClass.name == name.strip())
            .order_by(SchoolClass.is_active.desc(), SchoolClass.created_at)
            .limit(1)
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def _find_student(self, code: str) -> Student | None:
        query = select(Student).where(Student.student_code == code)
        return (await self.db.execute(query)).scalar_one_or_none()

    async def _teacher_id(self, email: str | None) -> str | None:
        if not email:
            return None
        user = await self._users.get_by_email(email)
        if user is None:
            raise ImportTeacherNotFoundError(f"No user with email {email}")
        return user.id


def _issue(row: int, error: Exception) -> RowIssue:
    if isinstance(error, DomainError):
        return RowIssue(row=row, message=error.message)
    first = error.errors()[0]
    return RowIssue(row=row, message=f"{first['loc'][0]}: {first['msg']}")
