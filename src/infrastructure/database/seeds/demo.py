# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Demo database seed data.

This module fills an empty database with a small working school:
- Users: one manager, two teachers, one receptionist
- Classes: three classes with their rosters
- Students: ten students
- Notifications: one pending request and one answered request
"""

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.models.notification import (
    Notification,
    NotificationStatus,
    NotificationType,
)
from src.infrastructure.database.models.school import SchoolClass, Student, class_students
from src.infrastructure.database.models.user import User, UserRole
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "Password123"

USERS_DATA = [
    {"name": "Admin Manager", "email": "manager@school.com", "role": UserRole.MANAGER},
    {"name": "John Smith", "email": "teacher1@school.com", "role": UserRole.TEACHER},
    {"name": "Sarah Johnson", "email": "teacher2@school.com", "role": UserRole.TEACHER},
    {"name": "Mary Brown", "email": "receptionist@school.com", "role": UserRole.RECEPTIONIST},
]

# (name, description, teacher email, capacity)
CLASSES_DATA = [
    ("Mathematics 101", "Basic mathematics for beginners", "teacher1@school.com", 30),
    ("Physics 101", "Introduction to Physics", "teacher1@school.com", 25),
    ("English Literature", "Classic and modern literature", "teacher2@school.com", 20),
]

# (code, name, class name)
STUDENTS_DATA = [
    ("STU001", "Ahmed Ali", "Mathematics 101"),
    ("STU002", "Fatima Hassan", "Mathematics 101"),
    ("STU003", "Mohammed Salem", "Mathematics 101"),
    ("STU004", "Aisha Ibrahim", "Physics 101"),
    ("STU005", "Omar Khalil", "Physics 101"),
    ("STU006", "Layla Mahmoud", "Physics 101"),
    ("STU007", "Yousef Ahmed", "English Literature"),
    ("STU008", "Nour Adel", "English Literature"),
    ("STU009", "Karim Fathy", "English Literature"),
    ("STU010", "Maryam Said", "Mathematics 101"),
]


async def clear_database(session: AsyncSession) -> None:
    """Delete every notification, roster entry, student, class and user."""
    for statement in (
        delete(Notification),
        delete(class_students),
        delete(Student),
        delete(SchoolClass),
        delete(User),
    ):
        await session.execute(statement)
    await session.flush()
    logger.info("Cleared existing data")


async def seed_users(
    session: AsyncSession,
    password: str = DEFAULT_PASSWORD,
    hasher: PasswordHasher | None = None,
) -> dict[str, User]:
    """Seed staff accounts.

    Args:
        session: Database session.
        password: Password shared by every demo account.
        hasher: Password hasher; bcrypt with default rounds if None.

    Returns:
        Users keyed by email.
    """
    password_hash = (hasher or PasswordHasher()).hash(password)

    users = {}
    for data in USERS_DATA:
        user = User(
            name=data["name"],
            email=data["email"],
            password_hash=password_hash,
            role=data["role"].value,
            is_active=True,
        )
        session.add(user)
        users[user.email] = user

    await session.flush()
    logger.info("Seeded %d users", len(users))
    return users


async def seed_classes(session: AsyncSession, users: dict[str, User]) -> dict[str, SchoolClass]:
    """Seed classes owned by the demo teachers."""
    classes = {}
    for name, description, teacher_email, capacity in CLASSES_DATA:
        teacher = users[teacher_email]
        class_ = SchoolClass(
            name=name,
            description=description,
            teacher_id=teacher.id,
            capacity=capacity,
            is_active=True,
        )
        class_.teacher = teacher
        class_.students = []
        session.add(class_)
        classes[name] = class_

    await session.flush()
    logger.info("Seeded %d classes", len(classes))
    return classes


async def seed_students(
    session: AsyncSession,
    classes: dict[str, SchoolClass],
) -> dict[str, Student]:
    """Seed students and put each on its class roster."""
    students = {}
    for code, name, class_name in STUDENTS_DATA:
        class_ = classes[class_name]
        student = Student(
            student_code=code,
            name=name,
            name_english=name,
            class_id=class_.id,
            is_active=True,
        )
        student.school_class = class_
        session.add(student)
        class_.students.append(student)
        students[code] = student

    await session.flush()
    logger.info("Seeded %d students", len(students))
    return students


async def seed_notifications(
    session: AsyncSession,
    users: dict[str, User],
    students: dict[str, Student],
) -> list[Notification]:
    """Seed one pending request and one answered request."""
    receptionist = users["receptionist@school.com"]
    pending_student = students["STU001"]
    answered_student = students["STU007"]

    notifications = [
        Notification(
            from_user_id=receptionist.id,
            to_user_id=pending_student.school_class.teacher_id,
            student_id=pending_student.id,
            class_id=pending_student.class_id,
            type=NotificationType.REQUEST.value,
            status=NotificationStatus.PENDING.value,
            message=f"Is {pending_student.name} present in class today?",
            is_read=False,
        ),
        Notification(
            from_user_id=receptionist.id,
            to_user_id=answered_student.school_class.teacher_id,
            student_id=answered_student.id,
            class_id=answered_student.class_id,
            type=NotificationType.RESPONSE.value,
            status=NotificationStatus.APPROVED.value,
            message=f"Can {answered_student.name} leave early today?",
            response_message="Yes, he can leave at 2 PM",
            is_read=True,
            response_date=utc_now(),
        ),
    ]
    session.add_all(notifications)

    await session.flush()
    logger.info("Seeded %d notifications", len(notifications))
    return notifications


async def seed_demo_database(
    session: AsyncSession,
    password: str = DEFAULT_PASSWORD,
    reset: bool = True,
    hasher: PasswordHasher | None = None,
) -> dict[str, Any]:
    """Seed the database with the demo school.

    Args:
        session: Database session.
        password: Password for every demo account.
        reset: Delete all existing data first.
        hasher: Password hasher for the demo accounts.

    Returns:
        Dictionary with seeded entities.
    """
    logger.info("Seeding demo database...")

    if reset:
        await clear_database(session)

    users = await seed_users(session, password, hasher)
    classes = await seed_classes(session, users)
    students = await seed_students(session, classes)
    notifications = await seed_notifications(session, users, students)

    await session.commit()

    logger.info("Demo database seeding complete")

    return {
        "users": users,
        "classes": classes,
        "students": students,
        "notifications": notifications,
    }


async def count_rows(session: AsyncSession) -> dict[str, int]:
    """Count rows per seeded table."""
    counts = {}
    for label, model in (
        ("users", User),
        ("students", Student),
        ("classes", SchoolClass),
        ("notifications", Notification),
    ):
        counts[label] = (await session.execute(select(func.count(model.id)))).scalar() or 0
    return counts

