# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School directory models: classes, students and class rosters.

A student always references exactly one class through class_id. The roster
(class_students) is the set of students currently enrolled, which is what
capacity is checked against. Deactivating a student removes it from the
roster but keeps class_id for historical lookup.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.infrastructure.database.models.user import User

DEFAULT_CLASS_CAPACITY = 30
MAX_CLASS_CAPACITY = 100

class_students = Table(
    "class_students",
    Base.metadata,
    Column("class_id", ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
)


class SchoolClass(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A class taught by one teacher with a bounded roster."""

    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint(
            f"capacity >= 1 AND capacity <= {MAX_CLASS_CAPACITY}",
            name="valid_class_capacity",
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    teacher_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_CLASS_CAPACITY)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    teacher: Mapped[User | None] = relationship(lazy="selectin")
    students: Mapped[list["Student"]] = relationship(
        secondary=class_students,
        lazy="selectin",
        order_by="Student.name",
    )

    @property
    def student_count(self) -> int:
        """Number of students currently on the roster."""
        return len(self.students)

    @property
    def is_full(self) -> bool:
        """Check if the roster has reached capacity."""
        return len(self.students) >= self.capacity

    def __repr__(self) -> str:
        return f"<SchoolClass {self.name} ({len(self.students)}/{self.capacity})>"


class Student(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student enrolled in exactly one class."""

    __tablename__ = "students"

    student_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    name_english: Mapped[str | None] = mapped_column(String(150), nullable=True)
    name_arabic: Mapped[str | None] = mapped_column(String(150), nullable=True)
    class_id: Mapped[str] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    school_class: Mapped[SchoolClass] = relationship(foreign_keys=[class_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Student {self.student_code} {self.name}>"
