# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification workflow service.

This module provides the NotificationService class for:
- Receptionist requests to a class teacher about a student
- Teacher messages to a receptionist about a student
- Answering a pending request exactly once
- Read tracking, listing and unread counts

Delivery (real-time events and push) is handed to the dispatcher only
after the state change is committed, and never waited on.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.domains.student.service import InactiveClassError, StudentNotFoundError
from src.infrastructure.database.models.notification import (
    Notification,
    NotificationStatus,
    NotificationType,
)
from src.infrastructure.database.models.school import Student
from src.infrastructure.database.models.user import User, UserRole
from src.infrastructure.notifications.channels.base import DeliveryRequest, PushMessage
from src.infrastructure.notifications.dispatcher import NotificationDispatcher
from src.models.notification import (
    NotificationClass,
    NotificationParty,
    NotificationResponse,
    NotificationStudent,
)
from src.utils.datetime import ensure_utc, format_iso, utc_now

logger = logging.getLogger(__name__)

EVENT_NEW = "notification:new"
EVENT_UPDATED = "notification:updated"
EVENT_READ = "notification:read"

PUSH_TITLE_REQUEST = "New student request"
PUSH_TITLE_MESSAGE = "New message from teacher"
PUSH_TITLE_ANSWERED = "Request answered"


class NotificationNotFoundError(NotFoundError):
    """Raised when notification is not found."""

    default_code = "notification_not_found"


class NotificationAccessDeniedError(AuthorizationError):
    """Raised when the caller is not a party the operation allows."""

    pass


class InactiveStudentError(ValidationError):
    """Raised when requesting about a deactivated student."""

    default_code = "student_inactive"


class ClassTeacherNotFoundError(NotFoundError):
    """Raised when the student's class has no active teacher."""

    default_code = "class_teacher_not_found"


class SenderNotTeacherError(AuthorizationError):
    """Raised when a message sender is not a teacher."""

    default_code = "sender_not_teacher"


class NotClassTeacherError(AuthorizationError):
    """Raised when a teacher writes about a student outside their class."""

    default_code = "not_class_teacher"


class InvalidRecipientError(ValidationError):
    """Raised when a message recipient is not a receptionist."""

    default_code = "invalid_recipient"


class InvalidResponseStatusError(ValidationError):
    """Raised when an answer is not a terminal status."""

    default_code = "invalid_response_status"


class NotificationNotAnswerableError(ValidationError):
    """Raised when answering a notification that is not a request."""

    default_code = "notification_not_answerable"


class NotificationAlreadyRespondedError(ConflictError):
    """Raised when a notification has already left pending."""

    default_code = "notification_already_responded"


def to_notification_response(notification: Notification) -> NotificationResponse:
    """Convert a Notification model with its references to a response."""
    return NotificationResponse(
        id=notification.id,
        type=NotificationType(notification.type),
        status=NotificationStatus(notification.status),
        message=notification.message,
        response_message=notification.response_message,
        is_read=notification.is_read,
        request_date=ensure_utc(notification.request_date),
        response_date=ensure_utc(notification.response_date),
        from_user=_party(notification.from_user),
        to_user=_party(notification.to_user),
        student=(
            NotificationStudent(
                id=notification.student.id,
                student_code=notification.student.student_code,
                name=notification.student.name,
            )
            if notification.student
            else None
        ),
        school_class=(
            NotificationClass(id=notification.school_class.id, name=notification.school_class.name)
            if notification.school_class
            else None
        ),
    )


def _party(user: User | None) -> NotificationParty | None:
    if user is None:
        return None
    return NotificationParty(id=user.id, name=user.name, role=user.role)


def new_notification_payload(notification: Notification) -> dict[str, Any]:
    """Event payload announcing a created notification."""
    student = notification.student
    school_class = notification.school_class
    return {
        "id": notification.id,
        "type": notification.type,
        "status": notification.status,
        "student": {
            "id": student.id,
            "studentCode": student.student_code,
            "name": student.name,
        },
        "class": {"id": school_class.id, "name": school_class.name},
        "from": {"id": notification.from_user.id, "name": notification.from_user.name},
        "message": notification.message,
        "createdAt": format_iso(notification.request_date),
    }


def updated_notification_payload(notification: Notification) -> dict[str, Any]:
    """Event payload announcing an answered request."""
    return {
        "id": notification.id,
        "status": notification.status,
        "type": notification.type,
        "responseMessage": notification.response_message,
        "responseDate": format_iso(notification.response_date),
    }


def read_notification_payload(notification: Notification, reader_id: str) -> dict[str, Any]:
    """Event payload announcing that the recipient read a notification."""
    return {
        "id": notification.id,
        "readBy": reader_id,
        "readAt": format_iso(utc_now()),
    }


class NotificationService:
    """Service for the notification request/response workflow.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """Initialize notification service.

        Args:
            db: Async database session.
            dispatcher: Delivery dispatcher. Without one no events are sent.
        """
        self.db = db
        self._dispatcher = dispatcher

    async def send_request(
        self,
        from_user_id: str,
        student_id: str,
        message: str | None = None,
    ) -> NotificationResponse:
        """Ask the teacher of a student's class about the student.

        Args:
            from_user_id: Requesting user (receptionist).
            student_id: Student the request is about.
            message: Optional free text; a default is generated.

        Returns:
            The created pending request.

        Raises:
            StudentNotFoundError: If the student does not exist.
            InactiveStudentError: If the student is deactivated.
            InactiveClassError: If the student's class is deactivated.
            ClassTeacherNotFoundError: If the class has no active teacher.
        """
        student = await self.db.get(Student, student_id)
        if not student:
            raise StudentNotFoundError(f"Student {student_id} not found")
        if not student.is_active:
            raise InactiveStudentError("Student is not active")

        school_class = student.school_class
        if school_class is None or not school_class.is_active:
            raise InactiveClassError("Student's class is not active")

        teacher = school_class.teacher
        if teacher is None or not teacher.is_active or not teacher.is_teacher:
            raise ClassTeacherNotFoundError("Class teacher not found")

        notification = Notification(
            from_user_id=from_user_id,
            to_user_id=teacher.id,
            student_id=student.id,
            class_id=school_class.id,
            type=NotificationType.REQUEST.value,
            status=NotificationStatus.PENDING.value,
            message=message or f"Request for student {student.name} ({student.student_code})",
            is_read=False,
            request_date=utc_now(),
        )
        self.db.add(notification)
        await self.db.commit()

        notification = await self._load(notification.id)

        logger.info(
            "Request %s sent from %s to teacher %s for student %s",
            notification.id,
            from_user_id,
            teacher.id,
            student.id,
        )

        self._dispatch_new(notification, PUSH_TITLE_REQUEST)
        return to_notification_response(notification)

    async def send_message_from_teacher(
        self,
        from_teacher_id: str,
        to_receptionist_id: str,
        student_id: str,
        message: str | None = None,
    ) -> NotificationResponse:
        """Send an informational note from a teacher to a receptionist.

        Only the teacher of record for the student's class may write
        about the student. The note is never answered.

        Raises:
            SenderNotTeacherError: If the sender is not a teacher.
            InvalidRecipientError: If the recipient is not a receptionist.
            StudentNotFoundError: If the student does not exist.
            InactiveClassError: If the student has no class.
            NotClassTeacherError: If the sender does not teach the class.
        """
        teacher = await self.db.get(User, from_teacher_id)
        if not teacher or teacher.role != UserRole.TEACHER.value:
            raise SenderNotTeacherError("Sender is not a teacher")

        receptionist = await self.db.get(User, to_receptionist_id)
        if not receptionist or receptionist.role != UserRole.RECEPTIONIST.value:
            raise InvalidRecipientError("Recipient is not a receptionist")

        student = await self.db.get(Student, student_id)
        if not student:
            raise StudentNotFoundError(f"Student {student_id} not found")

        school_class = student.school_class
        if school_class is None:
            raise InactiveClassError("Student has no class")

        if school_class.teacher_id != teacher.id:
            raise NotClassTeacherError("Teacher does not manage the student's class")

        notification = Notification(
            from_user_id=teacher.id,
            to_user_id=receptionist.id,
            student_id=student.id,
            class_id=school_class.id,
            type=NotificationType.MESSAGE.value,
            status=NotificationStatus.PENDING.value,
            message=message or f"Message from teacher regarding {student.name}",
            is_read=False,
            request_date=utc_now(),
        )
        self.db.add(notification)
        await self.db.commit()

        notification = await self._load(notification.id)

        logger.info(
            "Message %s sent from teacher %s to receptionist %s about student %s",
            notification.id,
            teacher.id,
            receptionist.id,
            student.id,
        )

        self._dispatch_new(notification, PUSH_TITLE_MESSAGE)
        return to_notification_response(notification)

    async def respond(
        self,
        notification_id: str,
        responder_id: str,
        status: str,
        response_message: str | None = None,
    ) -> NotificationResponse:
        """Answer a pending request.

        The transition is written with a single conditional update keyed
        on the pending status, so of two concurrent answers exactly one
        wins and the other gets a conflict.

        Args:
            notification_id: Request to answer.
            responder_id: Answering user; must be the recipient.
            status: Terminal status.
            response_message: Optional free text.

        Returns:
            The answered notification, now of type response.

        Raises:
            InvalidResponseStatusError: If status is not terminal.
            NotificationNotFoundError: If the notification does not exist.
            NotificationAccessDeniedError: If the responder is not the recipient.
            NotificationNotAnswerableError: If the notification is a message.
            NotificationAlreadyRespondedError: If it was already answered.
        """
        if status not in NotificationStatus.terminal_values():
            raise InvalidResponseStatusError("Invalid response status")

        notification = await self.get_by_id(notification_id)

        if notification.to_user_id != responder_id:
            raise NotificationAccessDeniedError(
                "You can only respond to notifications sent to you"
            )
        if notification.type == NotificationType.MESSAGE.value:
            raise NotificationNotAnswerableError("Messages cannot be responded to")
        if not notification.is_pending:
            raise NotificationAlreadyRespondedError("Notification has already been responded to")

        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.to_user_id == responder_id,
                Notification.type == NotificationType.REQUEST.value,
                Notification.status == NotificationStatus.PENDING.value,
            )
            .values(
                status=status,
                type=NotificationType.RESPONSE.value,
                response_message=response_message,
                response_date=utc_now(),
                is_read=True,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise NotificationAlreadyRespondedError("Notification has already been responded to")

        await self.db.commit()

        notification = await self._load(notification_id)

        logger.info(
            "Notification %s answered by %s with status %s",
            notification_id,
            responder_id,
            status,
        )

        self._dispatch(
            DeliveryRequest(
                user_id=notification.from_user_id,
                event=EVENT_UPDATED,
                payload=updated_notification_payload(notification),
                push=PushMessage(
                    title=PUSH_TITLE_ANSWERED,
                    body=f"{notification.student.name}: {status}",
                    data={
                        "type": EVENT_UPDATED,
                        "notificationId": notification.id,
                        "status": status,
                        "studentId": notification.student_id,
                    },
                ),
            )
        )
        return to_notification_response(notification)

    async def mark_as_read(self, notification_id: str, user_id: str) -> None:
        """Mark a notification read by its recipient.

        Marking an already read notification does nothing and sends no
        event.

        Raises:
            NotificationNotFoundError: If the notification does not exist.
            NotificationAccessDeniedError: If the caller is not the recipient.
        """
        notification = await self.get_by_id(notification_id)
        if notification.to_user_id != user_id:
            raise NotificationAccessDeniedError(
                "You can only mark your own notifications as read"
            )

        if notification.is_read:
            return

        await self._set_read(notification, user_id)

    async def get_notification(self, notification_id: str, user_id: str) -> NotificationResponse:
        """Get a notification the caller is a party to.

        When the recipient views an unread notification it is marked read
        and the sender is told.

        Raises:
            NotificationNotFoundError: If the notification does not exist.
            NotificationAccessDeniedError: If the caller is neither party.
        """
        notification = await self.get_by_id(notification_id)
        if not notification.involves(user_id):
            raise NotificationAccessDeniedError(
                "You can only view notifications you're involved in"
            )

        if notification.to_user_id == user_id and not notification.is_read:
            await self._set_read(notification, user_id)

        return to_notification_response(notification)

    async def list_for_user(
        self,
        user_id: str,
        status: str | None = None,
        type_: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[NotificationResponse], int]:
        """List notifications the user sent or received, newest first.

        Args:
            user_id: Sender or recipient.
            status: Filter by status.
            type_: Filter by type.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of notifications, total count).
        """
        conditions = [
            or_(Notification.from_user_id == user_id, Notification.to_user_id == user_id)
        ]
        if status:
            conditions.append(Notification.status == status)
        if type_:
            conditions.append(Notification.type == type_)

        query = select(Notification).where(*conditions)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(Notification.request_date.desc(), Notification.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)

        return [to_notification_response(n) for n in result.scalars().all()], total

    async def unread_count(self, user_id: str) -> int:
        """Count unread notifications addressed to the user."""
        query = select(func.count(Notification.id)).where(
            Notification.to_user_id == user_id,
            Notification.is_read.is_(False),
        )
        return (await self.db.execute(query)).scalar() or 0

    async def list_by_student(self, student_id: str) -> list[NotificationResponse]:
        """All notifications about a student, newest first."""
        query = (
            select(Notification)
            .where(Notification.student_id == student_id)
            .order_by(Notification.request_date.desc(), Notification.id)
        )
        result = await self.db.execute(query)
        return [to_notification_response(n) for n in result.scalars().all()]

    async def get_by_id(self, notification_id: str) -> Notification:
        """Get notification by ID.

        Raises:
            NotificationNotFoundError: If not found.
        """
        notification = await self.db.get(Notification, notification_id)
        if not notification:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        return notification

    async def _load(self, notification_id: str) -> Notification:
        """Reload a notification and its references from the database."""
        query = (
            select(Notification)
            .where(Notification.id == notification_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one()

    async def _set_read(self, notification: Notification, reader_id: str) -> None:
        notification.is_read = True
        await self.db.commit()

        logger.debug("Notification %s read by %s", notification.id, reader_id)

        self._dispatch(
            DeliveryRequest(
                user_id=notification.from_user_id,
                event=EVENT_READ,
                payload=read_notification_payload(notification, reader_id),
            )
        )

    def _dispatch_new(self, notification: Notification, title: str) -> None:
        self._dispatch(
            DeliveryRequest(
                user_id=notification.to_user_id,
                event=EVENT_NEW,
                payload=new_notification_payload(notification),
                push=PushMessage(
                    title=title,
                    body=notification.message,
                    data={
                        "type": EVENT_NEW,
                        "notificationId": notification.id,
                        "notificationType": notification.type,
                        "studentId": notification.student_id,
                        "classId": notification.class_id,
                    },
                ),
            )
        )

    def _dispatch(self, request: DeliveryRequest) -> None:
        if self._dispatcher is None:
            return
        self._dispatcher.dispatch(request)
