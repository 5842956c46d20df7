# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Roster service."""

import pytest
from sqlalchemy import select

from src.domains.roster import RosterService
from src.infrastructure.database.models import SchoolClass, Student, UserRole
from src.models.roster import ClassImportRow, StudentImportRow


@pytest.fixture
def roster_service(db) -> RosterService:
    """Roster service on the test database."""
    return RosterService(db=db)


@pytest.fixture
async def teacher(factory):
    """Active teacher."""
    return await factory.user(UserRole.TEACHER, email="rana@school.example.com")


async def load_class(session_factory, name: str) -> SchoolClass:
    """Read a class and its roster through a fresh session."""
    async with session_factory() as session:
        result = await session.execute(select(SchoolClass).where(SchoolClass.name == name))
        return result.scalar_one()


async def load_student(session_factory, code: str) -> Student:
    """Read a student through a fresh session."""
    async with session_factory() as session:
        result = await session.execute(select(Student).where(Student.student_code == code))
        return result.scalar_one()


class TestImportClasses:
    """Tests for class import."""

    async def test_creates_classes(self, roster_service, session_factory, teacher) -> None:
        """Test new classes are created with and without a teacher."""
        report = await roster_service.import_classes(
            [
                ClassImportRow(row=2, name="Grade 1A", capacity=25, teacher_email="rana@school.example.com"),
                ClassImportRow(row=3, name="Grade 1B", capacity=20),
            ]
        )

        assert report.created == 2
        assert report.updated == 0
        assert report.errors == []

        assigned = await load_class(session_factory, "Grade 1A")
        assert assigned.teacher_id == teacher.id
        assert assigned.capacity == 25
        unassigned = await load_class(session_factory, "Grade 1B")
        assert unassigned.teacher_id is None
        assert unassigned.is_active is True

    async def test_teacher_email_is_case_insensitive(self, roster_service, session_factory, teacher) -> None:
        """Test the teacher is found whatever the email casing."""
        report = await roster_service.import_classes(
            [ClassImportRow(row=2, name="Grade 2A", capacity=25, teacher_email="Rana@School.Example.com")]
        )

        assert report.created == 1
        assert (await load_class(session_factory, "Grade 2A")).teacher_id == teacher.id

    async def test_updates_and_reactivates_existing(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test an existing class gets the new capacity and is reactivated."""
        await factory.school_class(teacher, name="Grade 3A", capacity=10, is_active=False)

        report = await roster_service.import_classes(
            [ClassImportRow(row=2, name="Grade 3A", capacity=35)]
        )

        assert report.created == 0
        assert report.updated == 1
        class_ = await load_class(session_factory, "Grade 3A")
        assert class_.capacity == 35
        assert class_.is_active is True
        assert class_.teacher_id == teacher.id

    async def test_capacity_below_roster_is_reported(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test a row shrinking a class below its roster fails alone."""
        class_ = await factory.school_class(teacher, name="Grade 4A", capacity=5)
        for _ in range(3):
            await factory.student(class_)

        report = await roster_service.import_classes(
            [
                ClassImportRow(row=2, name="Grade 4A", capacity=2),
                ClassImportRow(row=3, name="Grade 4B", capacity=15),
            ]
        )

        assert report.created == 1
        assert report.updated == 0
        assert [issue.row for issue in report.errors] == [2]
        assert "below the current roster size" in report.errors[0].message
        assert (await load_class(session_factory, "Grade 4A")).capacity == 5

    async def test_unknown_teacher_is_reported(self, roster_service) -> None:
        """Test a row naming an unknown teacher is not imported."""
        report = await roster_service.import_classes(
            [ClassImportRow(row=7, name="Grade 5A", capacity=20, teacher_email="ghost@school.example.com")]
        )

        assert report.created == 0
        assert report.errors[0].row == 7
        assert "ghost@school.example.com" in report.errors[0].message

    async def test_non_teacher_is_reported(self, roster_service, factory) -> None:
        """Test a class cannot be handed to a receptionist."""
        await factory.user(UserRole.RECEPTIONIST, email="desk@school.example.com")

        report = await roster_service.import_classes(
            [ClassImportRow(row=2, name="Grade 6A", capacity=20, teacher_email="desk@school.example.com")]
        )

        assert report.created == 0
        assert len(report.errors) == 1


class TestImportStudents:
    """Tests for student import."""

    async def test_creates_student_on_roster(self, roster_service, session_factory, factory, teacher) -> None:
        """Test a new student is normalized and enrolled."""
        await factory.school_class(teacher, name="Grade 1A")

        report = await roster_service.import_students(
            [
                StudentImportRow(
                    row=2,
                    student_code=" st100 ",
                    name_english="Sara Ali",
                    name_arabic="سارة علي",
                    class_name="Grade 1A",
                )
            ]
        )

        assert report.created == 1
        assert report.errors == []
        student = await load_student(session_factory, "ST100")
        assert student.name == "Sara Ali"
        assert student.name_arabic == "سارة علي"
        class_ = await load_class(session_factory, "Grade 1A")
        assert [s.student_code for s in class_.students] == ["ST100"]

    async def test_existing_code_is_updated_and_moved(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test a known code renames the student and moves it to the named class."""
        old = await factory.school_class(teacher, name="Grade 1A")
        await factory.school_class(teacher, name="Grade 1B")
        await factory.student(old, name="Old Name", code="ST200")

        report = await roster_service.import_students(
            [StudentImportRow(row=2, student_code="ST200", name_english="New Name", class_name="Grade 1B")]
        )

        assert report.updated == 1
        assert report.created == 0
        student = await load_student(session_factory, "ST200")
        assert student.name == "New Name"
        assert [s.student_code for s in (await load_class(session_factory, "Grade 1A")).students] == []
        assert [s.student_code for s in (await load_class(session_factory, "Grade 1B")).students] == ["ST200"]

    async def test_inactive_student_is_reactivated(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test importing an inactive student puts it back on the roster."""
        class_ = await factory.school_class(teacher, name="Grade 1A")
        await factory.student(class_, code="ST300", is_active=False)

        report = await roster_service.import_students(
            [StudentImportRow(row=2, student_code="ST300", name_english="Back Again", class_name="Grade 1A")]
        )

        assert report.updated == 1
        assert (await load_student(session_factory, "ST300")).is_active is True
        assert [s.student_code for s in (await load_class(session_factory, "Grade 1A")).students] == ["ST300"]

    async def test_row_errors_do_not_stop_the_batch(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test missing classes and bad codes are reported per row."""
        await factory.school_class(teacher, name="Grade 1A")

        report = await roster_service.import_students(
            [
                StudentImportRow(row=2, student_code="ST401", name_english="Nowhere", class_name="Grade 9Z"),
                StudentImportRow(row=3, student_code="ST-402", name_english="Dashed", class_name="Grade 1A"),
                StudentImportRow(row=4, student_code="ST403", name_english="Fine", class_name="Grade 1A"),
            ]
        )

        assert report.created == 1
        assert [(issue.row, issue.message) for issue in report.errors] == [
            (2, 'Class "Grade 9Z" not found'),
            (3, "Student code can only contain uppercase letters and numbers"),
        ]
        assert (await load_student(session_factory, "ST403")).name == "Fine"

    async def test_full_class_is_reported(self, roster_service, factory, teacher) -> None:
        """Test capacity holds for imported students."""
        class_ = await factory.school_class(teacher, name="Grade 1A", capacity=1)
        await factory.student(class_)

        report = await roster_service.import_students(
            [StudentImportRow(row=2, student_code="ST500", name_english="Late", class_name="Grade 1A")]
        )

        assert report.created == 0
        assert "full capacity" in report.errors[0].message

    async def test_arabic_name_used_when_english_missing(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test the display name falls back to the Arabic name."""
        await factory.school_class(teacher, name="Grade 1A")

        await roster_service.import_students(
            [StudentImportRow(row=2, student_code="ST600", name_arabic="ليلى", class_name="Grade 1A")]
        )

        assert (await load_student(session_factory, "ST600")).name == "ليلى"


class TestSyncRosters:
    """Tests for roster reconciliation."""

    async def test_rebuilds_missing_roster(
        self, roster_service, session_factory, factory, db, teacher
    ) -> None:
        """Test active students are put back on their class roster."""
        class_ = await factory.school_class(teacher, name="Grade 1A")
        await factory.student(class_, code="ST001")
        await factory.student(class_, code="ST002")
        class_.students.clear()
        await db.commit()

        report = await roster_service.sync_rosters()

        assert report.enrolled == {"Grade 1A": 2}
        assert report.overflow == []
        roster = (await load_class(session_factory, "Grade 1A")).students
        assert sorted(s.student_code for s in roster) == ["ST001", "ST002"]

    async def test_inactive_students_are_dropped(
        self, roster_service, session_factory, factory, db, teacher
    ) -> None:
        """Test a deactivated student left on a roster is removed."""
        class_ = await factory.school_class(teacher, name="Grade 1A")
        await factory.student(class_, code="ST001")
        gone = await factory.student(class_, code="ST002")
        gone.is_active = False
        await db.commit()

        report = await roster_service.sync_rosters()

        assert report.enrolled == {"Grade 1A": 1}
        roster = (await load_class(session_factory, "Grade 1A")).students
        assert [s.student_code for s in roster] == ["ST001"]

    async def test_overflow_is_reported(self, roster_service, session_factory, factory, teacher) -> None:
        """Test students beyond capacity stay off the roster, newest first out."""
        class_ = await factory.school_class(teacher, name="Grade 1A", capacity=2)
        for code in ("ST001", "ST002", "ST003"):
            await factory.student(class_, code=code)

        report = await roster_service.sync_rosters()

        assert report.enrolled == {"Grade 1A": 2}
        assert report.overflow == ["ST003"]
        roster = (await load_class(session_factory, "Grade 1A")).students
        assert sorted(s.student_code for s in roster) == ["ST001", "ST002"]

    async def test_students_of_inactive_class_are_orphaned(
        self, roster_service, session_factory, factory, teacher
    ) -> None:
        """Test an inactive class ends with an empty roster."""
        closed = await factory.school_class(teacher, name="Grade 1A", is_active=False)
        await factory.student(closed, code="ST001")

        report = await roster_service.sync_rosters()

        assert report.orphaned == ["ST001"]
        assert "Grade 1A" not in report.enrolled
        assert (await load_class(session_factory, "Grade 1A")).students == []
