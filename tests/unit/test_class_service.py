# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Class service."""

import pytest

from src.domains.class_.service import (
    ClassCapacityError,
    ClassNotFoundError,
    ClassService,
    InvalidTeacherError,
    StudentAlreadyInClassError,
    StudentNotInClassError,
    TeacherUnassignDeniedError,
)
from src.domains.principal import Principal
from src.infrastructure.database.models import Student, UserRole
from src.models.class_ import ClassCreateRequest, ClassUpdateRequest


@pytest.fixture
def class_service(db) -> ClassService:
    """Class service on the test database."""
    return ClassService(db=db)


class TestClassServiceCreate:
    """Tests for class creation."""

    async def test_create_class_success(self, class_service, factory) -> None:
        """Test successful class creation with the default capacity."""
        teacher = await factory.user(UserRole.TEACHER)
        manager = await factory.user(UserRole.MANAGER)

        result = await class_service.create_class(
            ClassCreateRequest(name=" Grade 5A ", teacher_id=teacher.id),
            created_by=manager.id,
        )

        assert result.name == "Grade 5A"
        assert result.capacity == 30
        assert result.teacher.id == teacher.id
        assert result.student_count == 0
        assert result.students == []

    async def test_create_class_requires_teacher_role(self, class_service, factory) -> None:
        """Test the owner must hold the teacher role."""
        receptionist = await factory.user(UserRole.RECEPTIONIST)

        with pytest.raises(InvalidTeacherError):
            await class_service.create_class(
                ClassCreateRequest(name="Grade 5A", teacher_id=receptionist.id),
                created_by="manager",
            )

    async def test_create_class_unknown_teacher(self, class_service) -> None:
        """Test an unknown teacher id is rejected."""
        with pytest.raises(InvalidTeacherError):
            await class_service.create_class(
                ClassCreateRequest(name="Grade 5A", teacher_id="missing"),
                created_by="manager",
            )


class TestClassServiceRoster:
    """Tests for roster management under the capacity limit."""

    async def test_add_student_to_full_class_fails(self, class_service, factory) -> None:
        """Test the roster never exceeds capacity."""
        teacher = await factory.user(UserRole.TEACHER)
        full = await factory.school_class(teacher, capacity=1)
        other = await factory.school_class(teacher)
        await factory.student(full)
        newcomer = await factory.student(other)

        with pytest.raises(ClassCapacityError):
            await class_service.add_student(full.id, newcomer.id)

        result = await class_service.get_class(full.id)
        assert result.student_count == 1

    async def test_add_student_moves_between_rosters(self, class_service, factory) -> None:
        """Test enrolling elsewhere pulls the student from the old roster."""
        teacher = await factory.user(UserRole.TEACHER)
        source = await factory.school_class(teacher, name="Grade 4A")
        target = await factory.school_class(teacher, name="Grade 4B")
        student = await factory.student(source)

        result = await class_service.add_student(target.id, student.id)

        assert [s.id for s in result.students] == [student.id]
        assert (await class_service.get_class(source.id)).student_count == 0
        assert student.class_id == target.id

    async def test_add_student_twice_fails(self, class_service, factory) -> None:
        """Test duplicate enrollment is rejected."""
        teacher = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(teacher)
        student = await factory.student(school_class)

        with pytest.raises(StudentAlreadyInClassError):
            await class_service.add_student(school_class.id, student.id)

    async def test_remove_student_deactivates(self, class_service, factory, db) -> None:
        """Test removal takes the student off the roster and deactivates it."""
        teacher = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(teacher)
        student = await factory.student(school_class)

        result = await class_service.remove_student(school_class.id, student.id)

        assert result.student_count == 0
        refreshed = await db.get(Student, student.id)
        assert refreshed.is_active is False
        assert refreshed.class_id == school_class.id

    async def test_remove_student_not_on_roster(self, class_service, factory) -> None:
        """Test removing a stranger fails."""
        teacher = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(teacher)

        with pytest.raises(StudentNotInClassError):
            await class_service.remove_student(school_class.id, "missing")


class TestClassServiceUpdate:
    """Tests for class updates."""

    async def test_capacity_below_roster_fails(self, class_service, factory) -> None:
        """Test capacity may not drop below the roster size."""
        teacher = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(teacher, capacity=5)
        await factory.student(school_class)
        await factory.student(school_class)

        with pytest.raises(ClassCapacityError):
            await class_service.update_class(school_class.id, ClassUpdateRequest(capacity=1))

        result = await class_service.update_class(school_class.id, ClassUpdateRequest(capacity=2))
        assert result.capacity == 2

    async def test_change_teacher_revalidates_role(self, class_service, factory) -> None:
        """Test a new owner must be a teacher."""
        teacher = await factory.user(UserRole.TEACHER)
        manager = await factory.user(UserRole.MANAGER)
        school_class = await factory.school_class(teacher)

        with pytest.raises(InvalidTeacherError):
            await class_service.update_class(
                school_class.id, ClassUpdateRequest(teacher_id=manager.id)
            )

    async def test_update_missing_class(self, class_service) -> None:
        """Test updating an unknown class."""
        with pytest.raises(ClassNotFoundError):
            await class_service.update_class("missing", ClassUpdateRequest(name="X"))


class TestClassServiceDeactivate:
    """Tests for class soft delete."""

    async def test_deactivate_cascades_to_students(self, class_service, factory, db) -> None:
        """Test deactivating a class deactivates its roster."""
        teacher = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(teacher)
        students = [await factory.student(school_class) for _ in range(3)]

        count = await class_service.deactivate_class(school_class.id)

        assert count == 3
        for student in students:
            assert (await db.get(Student, student.id)).is_active is False

        classes, total = await class_service.list_classes()
        assert total == 0
        assert classes == []


class TestClassServiceTeacherAssignment:
    """Tests for assigning and unassigning teachers."""

    async def test_assign_teacher(self, class_service, factory) -> None:
        """Test a manager can hand a class to another teacher."""
        first = await factory.user(UserRole.TEACHER)
        second = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(first)

        result = await class_service.assign_teacher(school_class.id, second.id)

        assert result.teacher.id == second.id
        assert [c.id for c in await class_service.list_classes_by_teacher(second.id)] == [
            school_class.id
        ]

    async def test_teacher_may_unassign_self(self, class_service, factory) -> None:
        """Test a teacher leaves their own class."""
        teacher = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(teacher)

        result = await class_service.unassign_teacher(
            school_class.id, Principal(id=teacher.id, role=UserRole.TEACHER.value)
        )

        assert result.teacher is None

    async def test_teacher_may_not_unassign_others(self, class_service, factory) -> None:
        """Test a teacher cannot remove a colleague."""
        owner = await factory.user(UserRole.TEACHER)
        other = await factory.user(UserRole.TEACHER)
        school_class = await factory.school_class(owner)

        with pytest.raises(TeacherUnassignDeniedError):
            await class_service.unassign_teacher(
                school_class.id, Principal(id=other.id, role=UserRole.TEACHER.value)
            )

    async def test_manager_may_unassign_anyone(self, class_service, factory) -> None:
        """Test a manager can unassign any teacher."""
        owner = await factory.user(UserRole.TEACHER)
        manager = await factory.user(UserRole.MANAGER)
        school_class = await factory.school_class(owner)

        result = await class_service.unassign_teacher(
            school_class.id, Principal(id=manager.id, role=UserRole.MANAGER.value)
        )

        assert result.teacher is None


class TestClassServiceList:
    """Tests for listing classes."""

    async def test_list_paginates_and_filters(self, class_service, factory) -> None:
        """Test pagination totals and the teacher filter."""
        teacher = await factory.user(UserRole.TEACHER)
        other = await factory.user(UserRole.TEACHER)
        for name in ("Grade 1A", "Grade 2A", "Grade 3A"):
            await factory.school_class(teacher, name=name)
        await factory.school_class(other, name="Grade 9Z")

        page, total = await class_service.list_classes(limit=2, offset=0)
        assert total == 4
        assert [c.name for c in page] == ["Grade 1A", "Grade 2A"]

        mine, mine_total = await class_service.list_classes(teacher_id=other.id)
        assert mine_total == 1
        assert mine[0].name == "Grade 9Z"

        found, _ = await class_service.list_classes(search="3a")
        assert [c.name for c in found] == ["Grade 3A"]
