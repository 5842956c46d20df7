# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the notification workflow service."""

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest
from sqlalchemy import func, select

from src.core.config.settings import PushSettings
from src.domains.notification.service import (
    EVENT_NEW,
    EVENT_READ,
    EVENT_UPDATED,
    ClassTeacherNotFoundError,
    InactiveStudentError,
    InvalidRecipientError,
    InvalidResponseStatusError,
    NotClassTeacherError,
    NotificationAccessDeniedError,
    NotificationAlreadyRespondedError,
    NotificationNotAnswerableError,
    NotificationNotFoundError,
    NotificationService,
    SenderNotTeacherError,
)
from src.domains.student.service import InactiveClassError, StudentNotFoundError
from src.infrastructure.database.models import (
    Notification,
    NotificationStatus,
    NotificationType,
    SchoolClass,
    Student,
    User,
    UserRole,
)
from src.infrastructure.notifications.channels import PushChannel, RealtimeChannel
from src.infrastructure.notifications.dispatcher import NotificationDispatcher
from src.infrastructure.realtime import SessionRegistry


@dataclass
class School:
    """A class with its teacher, a receptionist and one student."""

    teacher: User
    receptionist: User
    school_class: SchoolClass
    student: Student


@pytest.fixture
async def school(factory) -> School:
    """Minimal school directory."""
    teacher = await factory.user(UserRole.TEACHER, name="Mona Teacher")
    receptionist = await factory.user(UserRole.RECEPTIONIST, name="Rami Reception")
    school_class = await factory.school_class(teacher, name="Grade 5A")
    student = await factory.student(school_class, name="Sara Ahmed", code="ST001")
    return School(teacher, receptionist, school_class, student)


@pytest.fixture
def service(db, recording_dispatcher) -> NotificationService:
    """Notification service recording its deliveries."""
    return NotificationService(db, recording_dispatcher)


class RecordingSession:
    """Live session stand-in for the session registry."""

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self.events: list[tuple[str, dict[str, Any]]] = []

    @property
    def session_id(self) -> str:
        return self._session_id

    async def send_event(self, event: str, data: dict[str, Any]) -> None:
        self.events.append((event, data))


class TestSendRequest:
    """Tests for receptionist requests."""

    async def test_request_goes_to_class_teacher(
        self, db, session_factory, school: School
    ) -> None:
        """Test a request is addressed to the teacher and fanned out."""
        registry = SessionRegistry()
        teacher_session = RecordingSession("t-1")
        registry.register(school.teacher.id, teacher_session)
        dispatcher = NotificationDispatcher(
            realtime=RealtimeChannel(registry),
            push=PushChannel(PushSettings(), session_factory=session_factory),
        )
        service = NotificationService(db, dispatcher)

        result = await service.send_request(school.receptionist.id, school.student.id)
        await dispatcher.drain(timeout=2)

        assert result.to_user.id == school.teacher.id
        assert result.from_user.id == school.receptionist.id
        assert result.status == NotificationStatus.PENDING
        assert result.type == NotificationType.REQUEST
        assert result.message == "Request for student Sara Ahmed (ST001)"
        assert result.is_read is False
        assert result.school_class.id == school.school_class.id

        assert len(teacher_session.events) == 1
        event, payload = teacher_session.events[0]
        assert event == EVENT_NEW
        assert payload["id"] == result.id
        assert payload["student"] == {
            "id": school.student.id,
            "studentCode": "ST001",
            "name": "Sara Ahmed",
        }
        assert payload["from"]["id"] == school.receptionist.id
        assert dispatcher.get_stats()["outcomes"]["push:firebase-not-configured"] == 1

    async def test_request_carries_push_content(
        self, service, recording_dispatcher, school: School
    ) -> None:
        """Test the push part of the delivery."""
        result = await service.send_request(school.receptionist.id, school.student.id, "Pick-up at 12")

        request = recording_dispatcher.requests[0]
        assert request.user_id == school.teacher.id
        assert request.push.title == "New student request"
        assert request.push.body == "Pick-up at 12"
        assert request.push.data["notificationId"] == result.id

    async def test_unknown_student(self, service, school: School) -> None:
        """Test a request about a missing student."""
        with pytest.raises(StudentNotFoundError):
            await service.send_request(school.receptionist.id, "missing")

    async def test_inactive_student(self, service, factory, school: School) -> None:
        """Test requests about deactivated students are refused."""
        dormant = await factory.student(school.school_class, is_active=False)

        with pytest.raises(InactiveStudentError):
            await service.send_request(school.receptionist.id, dormant.id)

    async def test_inactive_class(self, service, factory, school: School) -> None:
        """Test students of a deactivated class cannot be asked about."""
        closed_class = await factory.school_class(school.teacher, is_active=False)
        student = await factory.student(closed_class)

        with pytest.raises(InactiveClassError):
            await service.send_request(school.receptionist.id, student.id)

    async def test_class_without_teacher(self, service, factory, school: School) -> None:
        """Test a class with no teacher has no one to ask."""
        orphan_class = await factory.school_class(None)
        student = await factory.student(orphan_class)

        with pytest.raises(ClassTeacherNotFoundError):
            await service.send_request(school.receptionist.id, student.id)


class TestSendMessageFromTeacher:
    """Tests for teacher messages."""

    async def test_message_to_receptionist(self, service, recording_dispatcher, school: School) -> None:
        """Test a teacher can write to a receptionist about their student."""
        result = await service.send_message_from_teacher(
            school.teacher.id, school.receptionist.id, school.student.id
        )

        assert result.type == NotificationType.MESSAGE
        assert result.to_user.id == school.receptionist.id
        assert result.message == "Message from teacher regarding Sara Ahmed"
        assert recording_dispatcher.events_for(school.receptionist.id) == [EVENT_NEW]
        assert recording_dispatcher.requests[0].push.title == "New message from teacher"

    async def test_other_teacher_is_refused(self, service, db, factory, school: School) -> None:
        """Test a teacher may not write about another class's student."""
        outsider = await factory.user(UserRole.TEACHER)

        with pytest.raises(NotClassTeacherError):
            await service.send_message_from_teacher(
                outsider.id, school.receptionist.id, school.student.id
            )

        count = await db.execute(select(func.count(Notification.id)))
        assert count.scalar() == 0

    async def test_sender_must_be_teacher(self, service, school: School) -> None:
        """Test receptionists cannot send teacher messages."""
        with pytest.raises(SenderNotTeacherError):
            await service.send_message_from_teacher(
                school.receptionist.id, school.receptionist.id, school.student.id
            )

    async def test_recipient_must_be_receptionist(self, service, factory, school: School) -> None:
        """Test messages only go to receptionists."""
        manager = await factory.user(UserRole.MANAGER)

        with pytest.raises(InvalidRecipientError):
            await service.send_message_from_teacher(
                school.teacher.id, manager.id, school.student.id
            )


class TestRespond:
    """Tests for answering requests."""

    async def test_respond_round_trip(self, service, recording_dispatcher, school: School) -> None:
        """Test the full request, answer and notify cycle."""
        request = await service.send_request(school.receptionist.id, school.student.id)

        answered = await service.respond(request.id, school.teacher.id, "absent", "Sick today")

        assert answered.status == NotificationStatus.ABSENT
        assert answered.type == NotificationType.RESPONSE
        assert answered.response_message == "Sick today"
        assert answered.response_date is not None
        assert answered.is_read is True

        update = recording_dispatcher.requests[-1]
        assert update.user_id == school.receptionist.id
        assert update.event == EVENT_UPDATED
        assert update.payload["status"] == "absent"
        assert update.push.title == "Request answered"

    async def test_only_recipient_may_respond(self, service, factory, school: School) -> None:
        """Test another teacher cannot answer."""
        request = await service.send_request(school.receptionist.id, school.student.id)
        other = await factory.user(UserRole.TEACHER)

        with pytest.raises(NotificationAccessDeniedError):
            await service.respond(request.id, other.id, "approved")

    async def test_status_must_be_terminal(self, service, school: School) -> None:
        """Test pending is not an answer."""
        request = await service.send_request(school.receptionist.id, school.student.id)

        with pytest.raises(InvalidResponseStatusError):
            await service.respond(request.id, school.teacher.id, "pending")

    async def test_messages_cannot_be_answered(self, service, school: School) -> None:
        """Test teacher messages are informational only."""
        message = await service.send_message_from_teacher(
            school.teacher.id, school.receptionist.id, school.student.id
        )

        with pytest.raises(NotificationNotAnswerableError):
            await service.respond(message.id, school.receptionist.id, "approved")

    async def test_second_answer_conflicts(self, service, school: School) -> None:
        """Test a request is answered exactly once."""
        request = await service.send_request(school.receptionist.id, school.student.id)
        await service.respond(request.id, school.teacher.id, "approved")

        with pytest.raises(NotificationAlreadyRespondedError):
            await service.respond(request.id, school.teacher.id, "rejected")

        current = await service.get_notification(request.id, school.teacher.id)
        assert current.status == NotificationStatus.APPROVED

    async def test_stale_read_loses_to_committed_answer(
        self, session_factory, school: School
    ) -> None:
        """Test a session holding a pending copy cannot overwrite an answer."""
        async with session_factory() as setup:
            request = await NotificationService(setup).send_request(
                school.receptionist.id, school.student.id
            )

        async with session_factory() as session_a, session_factory() as session_b:
            service_a = NotificationService(session_a)
            service_b = NotificationService(session_b)

            stale = await service_b.get_by_id(request.id)
            assert stale.is_pending

            await service_a.respond(request.id, school.teacher.id, "approved")

            with pytest.raises(NotificationAlreadyRespondedError):
                await service_b.respond(request.id, school.teacher.id, "rejected")

        async with session_factory() as check:
            stored = await check.get(Notification, request.id)
            assert stored.status == NotificationStatus.APPROVED.value

    async def test_concurrent_answers_exactly_one_wins(
        self, session_factory, school: School
    ) -> None:
        """Test two simultaneous answers produce one success and one conflict."""
        async with session_factory() as setup:
            request = await NotificationService(setup).send_request(
                school.receptionist.id, school.student.id
            )

        async def answer(status: str):
            async with session_factory() as session:
                return await NotificationService(session).respond(
                    request.id, school.teacher.id, status
                )

        outcomes = await asyncio.gather(
            answer("approved"), answer("rejected"), return_exceptions=True
        )

        successes = [o for o in outcomes if not isinstance(o, BaseException)]
        conflicts = [o for o in outcomes if isinstance(o, NotificationAlreadyRespondedError)]
        assert len(successes) == 1
        assert len(conflicts) == 1

        async with session_factory() as check:
            stored = await check.get(Notification, request.id)
            assert stored.status == successes[0].status.value


class TestReadTracking:
    """Tests for read state."""

    async def test_mark_as_read_notifies_sender_once(
        self, service, recording_dispatcher, school: School
    ) -> None:
        """Test marking read is idempotent and only the first time emits."""
        request = await service.send_request(school.receptionist.id, school.student.id)

        await service.mark_as_read(request.id, school.teacher.id)
        await service.mark_as_read(request.id, school.teacher.id)

        read_events = [r for r in recording_dispatcher.requests if r.event == EVENT_READ]
        assert len(read_events) == 1
        assert read_events[0].user_id == school.receptionist.id
        assert read_events[0].payload["readBy"] == school.teacher.id
        assert read_events[0].push is None
        assert await service.unread_count(school.teacher.id) == 0

    async def test_only_recipient_marks_read(self, service, school: School) -> None:
        """Test the sender cannot mark their own request read."""
        request = await service.send_request(school.receptionist.id, school.student.id)

        with pytest.raises(NotificationAccessDeniedError):
            await service.mark_as_read(request.id, school.receptionist.id)

    async def test_recipient_view_marks_read(self, service, recording_dispatcher, school: School) -> None:
        """Test the recipient opening a notification marks it read."""
        request = await service.send_request(school.receptionist.id, school.student.id)

        viewed = await service.get_notification(request.id, school.teacher.id)

        assert viewed.is_read is True
        assert recording_dispatcher.events_for(school.receptionist.id) == [EVENT_READ]

    async def test_sender_view_leaves_unread(self, service, school: School) -> None:
        """Test the sender viewing does not change read state."""
        request = await service.send_request(school.receptionist.id, school.student.id)

        viewed = await service.get_notification(request.id, school.receptionist.id)

        assert viewed.is_read is False

    async def test_outsider_cannot_view(self, service, factory, school: School) -> None:
        """Test only the two parties can read a notification."""
        request = await service.send_request(school.receptionist.id, school.student.id)
        stranger = await factory.user(UserRole.RECEPTIONIST)

        with pytest.raises(NotificationAccessDeniedError):
            await service.get_notification(request.id, stranger.id)

    async def test_missing_notification(self, service, school: School) -> None:
        """Test unknown ids."""
        with pytest.raises(NotificationNotFoundError):
            await service.mark_as_read("missing", school.teacher.id)


class TestListing:
    """Tests for listing and counts."""

    async def test_list_for_user_filters_and_paginates(self, service, school: School) -> None:
        """Test both parties see the notification and filters apply."""
        first = await service.send_request(school.receptionist.id, school.student.id)
        await service.send_request(school.receptionist.id, school.student.id)
        await service.send_message_from_teacher(
            school.teacher.id, school.receptionist.id, school.student.id
        )
        await service.respond(first.id, school.teacher.id, "present")

        items, total = await service.list_for_user(school.teacher.id)
        assert total == 3

        page, page_total = await service.list_for_user(school.teacher.id, limit=2, offset=2)
        assert page_total == 3
        assert len(page) == 1

        pending, _ = await service.list_for_user(school.receptionist.id, status="pending")
        assert {n.type for n in pending} == {NotificationType.REQUEST, NotificationType.MESSAGE}

        messages, _ = await service.list_for_user(school.teacher.id, type_="message")
        assert len(messages) == 1

    async def test_unread_count_and_by_student(self, service, school: School) -> None:
        """Test unread counts only addressed notifications."""
        await service.send_request(school.receptionist.id, school.student.id)
        await service.send_request(school.receptionist.id, school.student.id)

        assert await service.unread_count(school.teacher.id) == 2
        assert await service.unread_count(school.receptionist.id) == 0
        assert len(await service.list_by_student(school.student.id)) == 2

    async def test_service_without_dispatcher(self, db, school: School) -> None:
        """Test workflow operations work with delivery disabled."""
        service = NotificationService(db)

        result = await service.send_request(school.receptionist.id, school.student.id)

        assert result.status == NotificationStatus.PENDING
