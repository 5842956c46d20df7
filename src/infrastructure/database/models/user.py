# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User model.

Users are teachers, managers, receptionists and administrators. They are
never hard-deleted; is_active is flipped instead. The device token used by
the push channel is stored alongside the user and cleared independently.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserRole(str, Enum):
    """Roles a user can hold."""

    TEACHER = "teacher"
    MANAGER = "manager"
    RECEPTIONIST = "receptionist"
    ADMIN = "admin"


class DevicePlatform(str, Enum):
    """Platforms a push device token can belong to."""

    ANDROID = "android"
    IOS = "ios"
    WEB = "web"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Back-office user account."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('teacher', 'manager', 'receptionist', 'admin')",
            name="valid_user_role",
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.TEACHER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    device_token: Mapped[str | None] = mapped_column(String(512), nullable=True)
    device_platform: Mapped[str | None] = mapped_column(String(20), nullable=True)
    device_token_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_teacher(self) -> bool:
        """Check if the user holds the teacher role."""
        return self.role == UserRole.TEACHER.value

    @property
    def is_receptionist(self) -> bool:
        """Check if the user holds the receptionist role."""
        return self.role == UserRole.RECEPTIONIST.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
