# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification workflow request/response models."""

from datetime import datetime
from typing import Any, Literal, Self

from pydantic import Field, model_validator

from src.infrastructure.database.models.notification import NotificationStatus, NotificationType
from src.models.common import CamelModel

TerminalStatus = Literal["approved", "rejected", "absent", "present"]


class SendRequestRequest(CamelModel):
    """Receptionist asks the class teacher about a student."""

    student_id: str
    message: str | None = Field(default=None, max_length=500)


class TeacherMessageRequest(CamelModel):
    """Teacher sends an informational note to a receptionist."""

    receptionist_id: str
    student_id: str
    message: str | None = Field(default=None, max_length=500)


class RespondRequest(CamelModel):
    """Answer to a pending request.

    Either an explicit terminal status or the approved shorthand must be
    given. approved=true marks the student absent (allowed to leave),
    approved=false marks the student present.
    """

    status: TerminalStatus | None = None
    approved: bool | None = None
    response_message: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_status_given(self) -> Self:
        """Require one of status or approved."""
        if self.status is None and self.approved is None:
            raise ValueError("Either status or approved must be provided")
        return self

    @property
    def resolved_status(self) -> str:
        """Terminal status this answer resolves to."""
        if self.status is not None:
            return self.status
        return NotificationStatus.ABSENT.value if self.approved else NotificationStatus.PRESENT.value


class NotificationParty(CamelModel):
    """Sender or recipient reference."""

    id: str
    name: str
    role: str


class NotificationStudent(CamelModel):
    """Student reference."""

    id: str
    student_code: str
    name: str


class NotificationClass(CamelModel):
    """Class reference."""

    id: str
    name: str


class NotificationResponse(CamelModel):
    """Fully populated notification."""

    id: str
    type: NotificationType
    status: NotificationStatus
    message: str
    response_message: str | None = None
    is_read: bool
    request_date: datetime
    response_date: datetime | None = None
    from_user: NotificationParty | None = Field(default=None, alias="from")
    to_user: NotificationParty | None = Field(default=None, alias="to")
    student: NotificationStudent | None = None
    school_class: NotificationClass | None = Field(default=None, alias="class")


class UnreadCountResponse(CamelModel):
    """Unread notification count for the caller."""

    status: str = "success"
    unread_count: int


class CleanupResponse(CamelModel):
    """Result of a retention purge."""

    status: str = "success"
    deleted_count: int


class PushTestRequest(CamelModel):
    """Optional overrides for a diagnostic push."""

    title: str | None = Field(default=None, max_length=200)
    body: str | None = Field(default=None, max_length=1000)


class PushOutcomeResponse(CamelModel):
    """Outcome of a push attempt."""

    success: bool
    outcome: str
    message_id: str | None = None
    error: str | None = None


class PushStatusResponse(CamelModel):
    """Push channel diagnostics."""

    status: str = "success"
    configured: bool
    project_id: str | None = None
    credential_source: str | None = None
    users_with_tokens: int
    current_user_has_token: bool
    current_user_token: str | None = None
    dispatcher: dict[str, Any] = {}
