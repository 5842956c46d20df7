# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for managing classes and their rosters.

This module provides the ClassService class for:
- Class CRUD operations with soft delete
- Roster management under the capacity limit
- Teacher assignment and unassignment

A class roster never holds more students than the class capacity. Every
operation that adds a student or lowers the capacity checks this before
writing.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import AuthorizationError, NotFoundError, ValidationError
from src.domains.principal import Principal
from src.domains.user.service import to_user_summary
from src.infrastructure.database.models.school import SchoolClass, Student
from src.infrastructure.database.models.user import User
from src.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassSummary,
    ClassUpdateRequest,
)
from src.models.student import StudentSummary

logger = logging.getLogger(__name__)


class ClassNotFoundError(NotFoundError):
    """Raised when class is not found."""

    default_code = "class_not_found"


class ClassStudentNotFoundError(NotFoundError):
    """Raised when the student to enroll or remove is not found."""

    default_code = "student_not_found"


class InvalidTeacherError(ValidationError):
    """Raised when a user is missing, inactive or not a teacher."""

    default_code = "invalid_teacher"


class ClassCapacityError(ValidationError):
    """Raised when a change would put more students in a class than it holds."""

    default_code = "class_capacity_exceeded"


class StudentAlreadyInClassError(ValidationError):
    """Raised when enrolling a student already on the roster."""

    default_code = "student_already_in_class"


class StudentNotInClassError(ValidationError):
    """Raised when removing a student that is not on the roster."""

    default_code = "student_not_in_class"


class TeacherUnassignDeniedError(AuthorizationError):
    """Raised when a teacher tries to unassign someone else."""

    pass


def ensure_capacity(school_class: SchoolClass, incoming: int = 1) -> None:
    """Check a class can take more students.

    Args:
        school_class: Class with its roster loaded.
        incoming: Number of students about to be added.

    Raises:
        ClassCapacityError: If the roster would exceed capacity.
    """
    if len(school_class.students) + incoming > school_class.capacity:
        raise ClassCapacityError(
            f"Class {school_class.name} is at full capacity ({school_class.capacity})"
        )


def to_student_summary(student: Student) -> StudentSummary:
    """Convert a Student model to a roster entry."""
    return StudentSummary(
        id=student.id,
        student_code=student.student_code,
        name=student.name,
        name_english=student.name_english,
        name_arabic=student.name_arabic,
        is_active=student.is_active,
    )


class ClassService:
    """Service for managing classes.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize class service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create_class(
        self,
        request: ClassCreateRequest,
        created_by: str,
    ) -> ClassResponse:
        """Create a new class.

        Args:
            request: Class creation data.
            created_by: ID of user creating the class.

        Returns:
            Created class response.

        Raises:
            InvalidTeacherError: If the teacher is not an active teacher.
        """
        teacher = await self._get_teacher(request.teacher_id)

        class_ = SchoolClass(
            name=request.name.strip(),
            description=request.description,
            teacher_id=teacher.id,
            capacity=request.capacity,
            is_active=True,
        )

        self.db.add(class_)
        await self.db.commit()
        await self.db.refresh(class_)

        logger.info("Created class: %s (%s) by %s", class_.name, class_.id, created_by)

        return self._to_response(class_)

    async def list_classes(
        self,
        teacher_id: str | None = None,
        search: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[ClassSummary], int]:
        """List active classes.

        Args:
            teacher_id: Filter by teacher.
            search: Search in class name.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of classes, total count).
        """
        conditions = [SchoolClass.is_active.is_(True)]

        if teacher_id:
            conditions.append(SchoolClass.teacher_id == teacher_id)

        if search:
            conditions.append(SchoolClass.name.ilike(f"%{search}%"))

        query = select(SchoolClass).where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(SchoolClass.name).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [self._to_summary(c) for c in result.scalars().all()], total

    async def list_classes_by_teacher(self, teacher_id: str) -> list[ClassResponse]:
        """List active classes taught by a teacher, with rosters."""
        query = (
            select(SchoolClass)
            .where(SchoolClass.teacher_id == teacher_id, SchoolClass.is_active.is_(True))
            .order_by(SchoolClass.name)
        )
        result = await self.db.execute(query)
        return [self._to_response(c) for c in result.scalars().all()]

    async def get_class(self, class_id: str) -> ClassResponse:
        """Get class by ID.

        Raises:
            ClassNotFoundError: If class not found.
        """
        return self._to_response(await self.get_by_id(class_id))

    async def update_class(
        self,
        class_id: str,
        request: ClassUpdateRequest,
    ) -> ClassResponse:
        """Update a class.

        Args:
            class_id: Class identifier.
            request: Update data.

        Returns:
            Updated class.

        Raises:
            ClassNotFoundError: If class not found.
            InvalidTeacherError: If the new teacher is not an active teacher.
            ClassCapacityError: If the new capacity is below the roster size.
        """
        class_ = await self.get_by_id(class_id)

        if request.teacher_id is not None and request.teacher_id != class_.teacher_id:
            teacher = await self._get_teacher(request.teacher_id)
            class_.teacher_id = teacher.id
            class_.teacher = teacher

        if request.capacity is not None and request.capacity != class_.capacity:
            if request.capacity < len(class_.students):
                raise ClassCapacityError(
                    f"Capacity {request.capacity} is below the current roster size "
                    f"({len(class_.students)})"
                )
            class_.capacity = request.capacity

        if request.name is not None:
            class_.name = request.name.strip()
        if request.description is not None:
            class_.description = request.description

        await self.db.commit()
        await self.db.refresh(class_)

        logger.info("Updated class: %s", class_id)

        return self._to_response(class_)

    async def deactivate_class(self, class_id: str) -> int:
        """Deactivate a class and every student on its roster.

        Students keep their class reference for historical lookup but
        leave the roster, the same as an individual student deactivation.

        Returns:
            Number of students deactivated.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_ = await self.get_by_id(class_id)
        class_.is_active = False

        roster = list(class_.students)
        for student in roster:
            student.is_active = False
        class_.students.clear()

        await self.db.commit()

        logger.info("Deactivated class: %s (%d students deactivated)", class_id, len(roster))

        return len(roster)

    async def add_student(self, class_id: str, student_id: str) -> ClassResponse:
        """Enroll an existing student in a class.

        The student's class reference moves to this class. If the student
        was on another roster it is pulled from there first.

        Raises:
            ClassNotFoundError: If class not found.
            ClassStudentNotFoundError: If student not found.
            ClassCapacityError: If the class is full.
            StudentAlreadyInClassError: If the student is already enrolled.
        """
        class_ = await self.get_by_id(class_id)
        student = await self.db.get(Student, student_id)
        if not student:
            raise ClassStudentNotFoundError(f"Student {student_id} not found")

        if any(s.id == student.id for s in class_.students):
            raise StudentAlreadyInClassError("Student is already in this class")

        ensure_capacity(class_)

        if student.class_id != class_.id:
            previous = await self.db.get(SchoolClass, student.class_id)
            if previous is not None and student in previous.students:
                previous.students.remove(student)

        class_.students.append(student)
        student.class_id = class_.id
        student.school_class = class_
        student.is_active = True

        await self.db.commit()
        await self.db.refresh(class_)

        logger.info("Added student %s to class %s", student_id, class_id)

        return self._to_response(class_)

    async def remove_student(self, class_id: str, student_id: str) -> ClassResponse:
        """Remove a student from a class roster and deactivate the student.

        Raises:
            ClassNotFoundError: If class not found.
            StudentNotInClassError: If the student is not on the roster.
        """
        class_ = await self.get_by_id(class_id)

        student = next((s for s in class_.students if s.id == student_id), None)
        if student is None:
            raise StudentNotInClassError("Student is not in this class")

        class_.students.remove(student)
        student.is_active = False

        await self.db.commit()
        await self.db.refresh(class_)

        logger.info("Removed student %s from class %s", student_id, class_id)

        return self._to_response(class_)

    async def assign_teacher(self, class_id: str, teacher_id: str) -> ClassResponse:
        """Make a teacher the owner of a class.

        Raises:
            ClassNotFoundError: If class not found.
            InvalidTeacherError: If the user is not an active teacher.
        """
        class_ = await self.get_by_id(class_id)
        teacher = await self._get_teacher(teacher_id)

        class_.teacher_id = teacher.id
        class_.teacher = teacher

        await self.db.commit()
        await self.db.refresh(class_)

        logger.info("Assigned teacher %s to class %s", teacher_id, class_id)

        return self._to_response(class_)

    async def unassign_teacher(self, class_id: str, requester: Principal) -> ClassResponse:
        """Remove the teacher of a class.

        Managers may unassign any teacher. Teachers may only unassign
        themselves.

        Raises:
            ClassNotFoundError: If class not found.
            TeacherUnassignDeniedError: If a teacher is not the class teacher.
        """
        class_ = await self.get_by_id(class_id)

        if not requester.is_manager and class_.teacher_id != requester.id:
            raise TeacherUnassignDeniedError(
                "You can only unassign yourself from classes you are currently teaching"
            )

        class_.teacher_id = None
        class_.teacher = None

        await self.db.commit()
        await self.db.refresh(class_)

        logger.info("Unassigned teacher from class %s by %s", class_id, requester.id)

        return self._to_response(class_)

    async def get_by_id(self, class_id: str) -> SchoolClass:
        """Get class by ID.

        Raises:
            ClassNotFoundError: If not found.
        """
        class_ = await self.db.get(SchoolClass, class_id)
        if not class_:
            raise ClassNotFoundError(f"No class found with ID {class_id}")
        return class_

    async def _get_teacher(self, teacher_id: str) -> User:
        """Get an active user with the teacher role.

        Raises:
            InvalidTeacherError: If missing, inactive or not a teacher.
        """
        teacher = await self.db.get(User, teacher_id)
        if not teacher or not teacher.is_active:
            raise InvalidTeacherError(f"Teacher {teacher_id} not found")
        if not teacher.is_teacher:
            raise InvalidTeacherError("Assigned user must have the teacher role")
        return teacher

    def _to_summary(self, class_: SchoolClass) -> ClassSummary:
        """Convert class model to summary."""
        return ClassSummary(
            id=class_.id,
            name=class_.name,
            description=class_.description,
            teacher=to_user_summary(class_.teacher) if class_.teacher else None,
            capacity=class_.capacity,
            student_count=class_.student_count,
            is_active=class_.is_active,
        )

    def _to_response(self, class_: SchoolClass) -> ClassResponse:
        """Convert class model to response."""
        return ClassResponse(
            id=class_.id,
            name=class_.name,
            description=class_.description,
            teacher=to_user_summary(class_.teacher) if class_.teacher else None,
            capacity=class_.capacity,
            student_count=class_.student_count,
            is_active=class_.is_active,
            students=[to_student_summary(s) for s in class_.students],
            created_at=class_.created_at,
            updated_at=class_.updated_at,
        )
