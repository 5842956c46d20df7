# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification model for the student request/response workflow.

A notification starts pending and moves to exactly one terminal status.
A request is rewritten to type "response" in the same update that sets the
terminal status, so the request and its answer are one record.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin
from src.infrastructure.database.models.school import SchoolClass, Student
from src.infrastructure.database.models.user import User
from src.utils.datetime import utc_now


class NotificationType(str, Enum):
    """Kind of notification."""

    REQUEST = "request"
    MESSAGE = "message"
    RESPONSE = "response"


class NotificationStatus(str, Enum):
    """Workflow status of a notification."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ABSENT = "absent"
    PRESENT = "present"

    @classmethod
    def terminal_values(cls) -> frozenset[str]:
        """Statuses a pending notification may move to."""
        return frozenset(s.value for s in cls if s is not cls.PENDING)


class Notification(UUIDPrimaryKeyMixin, Base):
    """A request, message or answered response about a student."""

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "type IN ('request', 'message', 'response')",
            name="valid_notification_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'absent', 'present')",
            name="valid_notification_status",
        ),
        Index("ix_notifications_to_read", "to_user_id", "is_read"),
    )

    from_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    to_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    class_id: Mapped[str] = mapped_column(ForeignKey("classes.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=NotificationType.REQUEST.value)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=NotificationStatus.PENDING.value
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )
    response_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    from_user: Mapped[User] = relationship(foreign_keys=[from_user_id], lazy="selectin")
    to_user: Mapped[User] = relationship(foreign_keys=[to_user_id], lazy="selectin")
    student: Mapped[Student] = relationship(lazy="selectin")
    school_class: Mapped[SchoolClass] = relationship(lazy="selectin")

    @property
    def is_pending(self) -> bool:
        """Check if the notification still awaits an answer."""
        return self.status == NotificationStatus.PENDING.value

    def involves(self, user_id: str) -> bool:
        """Check if the user is the sender or the recipient."""
        return user_id in (self.from_user_id, self.to_user_id)

    def __repr__(self) -> str:
        return f"<Notification {self.id} {self.type}/{self.status}>"
