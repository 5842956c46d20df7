# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Importing this package registers every table on Base.metadata.
"""

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    generate_uuid,
)
from src.infrastructure.database.models.notification import (
    Notification,
    NotificationStatus,
    NotificationType,
)
from src.infrastructure.database.models.school import (
    DEFAULT_CLASS_CAPACITY,
    MAX_CLASS_CAPACITY,
    SchoolClass,
    Student,
    class_students,
)
from src.infrastructure.database.models.user import DevicePlatform, User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "generate_uuid",
    "User",
    "UserRole",
    "DevicePlatform",
    "SchoolClass",
    "Student",
    "class_students",
    "DEFAULT_CLASS_CAPACITY",
    "MAX_CLASS_CAPACITY",
    "Notification",
    "NotificationStatus",
    "NotificationType",
]
