# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student service for managing student records.

This module provides the StudentService class for:
- Student CRUD with soft delete
- Unique, normalized student codes
- Moving students between classes under the capacity limit
- Reactivating deactivated students into their class roster
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.class_.service import (
    ClassNotFoundError,
    ensure_capacity,
)
from src.domains.errors import NotFoundError, ValidationError
from src.infrastructure.database.connection import is_unique_violation
from src.infrastructure.database.models.school import SchoolClass, Student
from src.models.student import (
    ClassRef,
    StudentCreateRequest,
    StudentResponse,
    StudentUpdateRequest,
)

logger = logging.getLogger(__name__)

STUDENT_CODE_PATTERN = re.compile(r"^[A-Z0-9]+$")


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    default_code = "student_not_found"


class StudentCodeExistsError(ValidationError):
    """Raised when a student code is already used by any student."""

    default_code = "student_code_exists"


class InvalidStudentCodeError(ValidationError):
    """Raised when a student code is not uppercase alphanumeric."""

    default_code = "invalid_student_code"


class InactiveClassError(ValidationError):
    """Raised when placing a student into a deactivated class."""

    default_code = "class_inactive"


def normalize_student_code(code: str) -> str:
    """Normalize a student code and check its format.

    Args:
        code: Raw student code.

    Returns:
        Trimmed, uppercased code.

    Raises:
        InvalidStudentCodeError: If the result is not uppercase alphanumeric.
    """
    normalized = code.strip().upper()
    if not STUDENT_CODE_PATTERN.match(normalized):
        raise InvalidStudentCodeError(
            "Student code can only contain uppercase letters and numbers"
        )
    return normalized


class StudentService:
    """Service for managing students.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize student service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_student(self, request: StudentCreateRequest) -> StudentResponse:
        """Create a student into a class with spare capacity.

        Raises:
            InvalidStudentCodeError: If the code is malformed.
            StudentCodeExistsError: If the code is taken.
            ClassNotFoundError: If the class does not exist.
            InactiveClassError: If the class is deactivated.
            ClassCapacityError: If the class is full.
        """
        code = normalize_student_code(request.student_code)
        await self._ensure_code_free(code)

        class_ = await self._get_open_class(request.class_id)
        ensure_capacity(class_)

        student = Student(
            student_code=code,
            name=request.name.strip(),
            name_english=request.name_english,
            name_arabic=request.name_arabic,
            class_id=class_.id,
            is_active=True,
        )
        student.school_class = class_
        self.db.add(student)
        class_.students.append(student)

        await self._commit_unique_code(code)
        await self.db.refresh(student)

        logger.info("Created student: %s (%s) in class %s", code, student.id, class_.id)

        return self._to_response(student)

    async def list_students(
        self,
        class_id: str | None = None,
        search: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[StudentResponse], int]:
        """List active students, newest first.

        Args:
            class_id: Filter by class.
            search: Search in names and student code.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of students, total count).
        """
        conditions = [Student.is_active.is_(True)]

        if class_id:
            conditions.append(Student.class_id == class_id)

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(
                    Student.name.ilike(search_pattern),
                    Student.name_english.ilike(search_pattern),
                    Student.name_arabic.ilike(search_pattern),
                    Student.student_code.ilike(search_pattern),
                )
            )

        query = select(Student).where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Student.created_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self._to_response(s) for s in result.scalars().all()], total

    async def list_students_by_class(self, class_id: str) -> list[StudentResponse]:
        """List active students of a class ordered by name."""
        query = (
            select(Student)
            .where(Student.class_id == class_id, Student.is_active.is_(True))
            .order_by(Student.name)
        )
        result = await self.db.execute(query)
        return [self._to_response(s) for s in result.scalars().all()]

    async def get_student(self, student_id: str) -> StudentResponse:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student not found.
        """
        return self._to_response(await self.get_by_id(student_id))

    async def update_student(
        self,
        student_id: str,
        request: StudentUpdateRequest,
    ) -> StudentResponse:
        """Update a student.

        Changing class_id pulls the student from the old roster and pushes
        it onto the new one after a capacity check. Setting is_active to
        true on an inactive student puts it back on its class roster, also
        capacity-checked; setting it to false deactivates the student.

        Raises:
            StudentNotFoundError: If student not found.
            InvalidStudentCodeError: If the new code is malformed.
            StudentCodeExistsError: If the new code is taken.
            ClassNotFoundError: If the destination class does not exist.
            InactiveClassError: If the destination class is deactivated.
            ClassCapacityError: If the destination class is full.
        """
        student = await self.get_by_id(student_id)

        if request.student_code is not None:
            code = normalize_student_code(request.student_code)
            if code != student.student_code:
                await self._ensure_code_free(code)
                student.student_code = code

        current_class = await self.db.get(SchoolClass, student.class_id)
        on_roster = current_class is not None and student in current_class.students
        becomes_active = student.is_active if request.is_active is None else request.is_active
        target_class_id = request.class_id or student.class_id

        if target_class_id != student.class_id or (becomes_active and not on_roster):
            target = await self._get_open_class(target_class_id)
            if becomes_active:
                ensure_capacity(target)
            if on_roster:
                current_class.students.remove(student)
                on_roster = False
            if becomes_active:
                target.students.append(student)
                on_roster = True
            student.class_id = target.id
            student.school_class = target

        if not becomes_active and on_roster:
            current_class.students.remove(student)

        student.is_active = becomes_active

        if request.name is not None:
            student.name = request.name.strip()
        if request.name_english is not None:
            student.name_english = request.name_english
        if request.name_arabic is not None:
            student.name_arabic = request.name_arabic

        await self._commit_unique_code(student.student_code)
        await self.db.refresh(student)

        logger.info("Updated student: %s", student_id)

        return self._to_response(student)

    async def deactivate_student(self, student_id: str) -> None:
        """Deactivate a student and pull it from its class roster.

        Raises:
            StudentNotFoundError: If student not found.
        """
        student = await self.get_by_id(student_id)
        student.is_active = False

        class_ = await self.db.get(SchoolClass, student.class_id)
        if class_ is not None and student in class_.students:
            class_.students.remove(student)

        await self.db.commit()

        logger.info("Deactivated student: %s", student_id)

    async def get_by_id(self, student_id: str) -> Student:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If not found.
        """
        student = await self.db.get(Student, student_id)
        if not student:
            raise StudentNotFoundError(f"No student found with ID {student_id}")
        return student

    async def _ensure_code_free(self, code: str) -> None:
        """Check no student, active or not, uses the code.

        Raises:
            StudentCodeExistsError: If the code is taken.
        """
        query = select(Student.id).where(Student.student_code == code)
        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise StudentCodeExistsError(f"Student code {code} already exists")

    async def _commit_unique_code(self, code: str) -> None:
        """Commit, reporting a concurrent insert of the same code as a clash.

        Raises:
            StudentCodeExistsError: If the unique index rejected the code.
        """
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e, "student_code"):
                raise StudentCodeExistsError(f"Student code {code} already exists") from e
            raise

    async def _get_open_class(self, class_id: str) -> SchoolClass:
        """Get an active class.

        Raises:
            ClassNotFoundError: If class not found.
            InactiveClassError: If class is deactivated.
        """
        class_ = await self.db.get(SchoolClass, class_id)
        if not class_:
            raise ClassNotFoundError(f"No class found with ID {class_id}")
        if not class_.is_active:
            raise InactiveClassError(f"Class {class_.name} is not active")
        return class_

    def _to_response(self, student: Student) -> StudentResponse:
        """Convert student model to response."""
        class_ref = None
        if student.school_class is not None:
            class_ref = ClassRef(id=student.school_class.id, name=student.school_class.name)

        return StudentResponse(
            id=student.id,
            student_code=student.student_code,
            name=student.name,
            name_english=student.name_english,
            name_arabic=student.name_arabic,
            is_active=student.is_active,
            school_class=class_ref,
            created_at=student.created_at,
            updated_at=student.updated_at,
        )
