# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification workflow API endpoints.

This module provides endpoints for the request/response workflow:
- GET / - List the caller's notifications
- GET /unread/count - Count unread notifications
- GET /student/{student_id} - Notifications about a student
- GET /{notification_id} - Get a notification (marks it read for the recipient)
- POST /request - Receptionist asks the class teacher about a student
- POST /message - Teacher sends a note to a receptionist
- POST|PUT /{notification_id}/respond - Teacher answers a request
- PUT /{notification_id}/read - Mark as read

Manager-only operations:
- DELETE /cleanup - Run the retention purge now
- GET /push-status - Push configuration diagnostics
- POST /test-push/{user_id} - Send a diagnostic push

Example:
    POST /api/v1/notifications/request
    Body:
        {"studentId": "...", "message": "Can Sara leave early?"}
"""

import logging
import time

from fastapi import APIRouter, Body, Depends, Query, status

from src.api.dependencies import (
    DB,
    AuthenticatedUser,
    Dispatcher,
    ManagerUser,
    ReceptionistUser,
    TeacherUser,
    get_notification_service,
)
from src.core.config import get_settings
from src.domains.notification.retention import NotificationRetentionService
from src.domains.notification.service import NotificationService
from src.domains.user.service import UserService
from src.infrastructure.database.models.notification import NotificationStatus, NotificationType
from src.infrastructure.notifications.channels.base import DeliveryStatus, PushMessage
from src.models.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AckResponse, PaginatedResponse
from src.models.notification import (
    CleanupResponse,
    NotificationResponse,
    PushOutcomeResponse,
    PushStatusResponse,
    PushTestRequest,
    RespondRequest,
    SendRequestRequest,
    TeacherMessageRequest,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

TOKEN_PREVIEW_LENGTH = 30


# =========================================================================
# Manager-only operations (declared before /{notification_id})
# =========================================================================


@router.delete(
    "/cleanup",
    response_model=CleanupResponse,
    summary="Run notification cleanup",
    description="Run the retention purge immediately.",
)
async def trigger_cleanup(db: DB, current_user: ManagerUser) -> CleanupResponse:
    """Purge notifications on demand."""
    logger.info("Manual notification cleanup triggered by %s", current_user.id)
    service = NotificationRetentionService(db, get_settings().retention)
    deleted = await service.purge()
    return CleanupResponse(deleted_count=deleted)


@router.get(
    "/push-status",
    response_model=PushStatusResponse,
    summary="Push diagnostics",
)
async def push_status(
    db: DB,
    current_user: ManagerUser,
    dispatcher: Dispatcher,
) -> PushStatusResponse:
    """Report push configuration and device token coverage."""
    users = UserService(db)
    users_with_tokens = await users.count_device_tokens()
    me = await users.get_by_id(current_user.id)

    token_preview = None
    if me.device_token:
        token_preview = f"{me.device_token[:TOKEN_PREVIEW_LENGTH]}..."

    channel_status = dispatcher.push.get_status()
    return PushStatusResponse(
        configured=channel_status["configured"],
        project_id=channel_status["project_id"],
        credential_source=channel_status["credential_source"],
        users_with_tokens=users_with_tokens,
        current_user_has_token=bool(me.device_token),
        current_user_token=token_preview,
        dispatcher=dispatcher.get_stats(),
    )


@router.post(
    "/test-push/{user_id}",
    response_model=PushOutcomeResponse,
    summary="Send test push",
)
async def test_push(
    user_id: str,
    current_user: ManagerUser,
    dispatcher: Dispatcher,
    data: PushTestRequest | None = Body(default=None),
) -> PushOutcomeResponse:
    """Send a diagnostic push to a user's device and report the outcome."""
    data = data or PushTestRequest()
    push = PushMessage(
        title=data.title or "Test Notification",
        body=data.body or "This is a test notification from backend",
        data={"type": "test", "timestamp": int(time.time() * 1000)},
    )
    result = await dispatcher.push.send_to_user(user_id, push)
    return PushOutcomeResponse(
        success=result.status == DeliveryStatus.SENT,
        outcome=result.outcome,
        message_id=result.message_id,
        error=result.error,
    )


# =========================================================================
# Workflow
# =========================================================================


@router.get(
    "",
    response_model=PaginatedResponse[NotificationResponse],
    summary="List notifications",
    description="Notifications the caller sent or received, newest first.",
)
async def list_notifications(
    current_user: AuthenticatedUser,
    service: NotificationService = Depends(get_notification_service),
    status_filter: NotificationStatus | None = Query(None, alias="status"),
    type_filter: NotificationType | None = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> PaginatedResponse[NotificationResponse]:
    """List notifications."""
    items, total = await service.list_for_user(
        current_user.id,
        status=status_filter.value if status_filter else None,
        type_=type_filter.value if type_filter else None,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return PaginatedResponse.build(items, total, page, limit)


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    summary="Unread count",
)
async def unread_count(
    current_user: AuthenticatedUser,
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    """Count unread notifications addressed to the caller."""
    return UnreadCountResponse(unread_count=await service.unread_count(current_user.id))


@router.get(
    "/student/{student_id}",
    response_model=list[NotificationResponse],
    summary="Notifications by student",
)
async def list_by_student(
    student_id: str,
    current_user: AuthenticatedUser,
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationResponse]:
    """All notifications about a student."""
    return await service.list_by_student(student_id)


@router.post(
    "/request",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send request",
    description="Ask the teacher of the student's class about the student.",
)
async def send_request(
    data: SendRequestRequest,
    current_user: ReceptionistUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    """Create a pending request."""
    return await service.send_request(current_user.id, data.student_id, data.message)


@router.post(
    "/message",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send teacher message",
)
async def send_message(
    data: TeacherMessageRequest,
    current_user: TeacherUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    """Send an informational note to a receptionist."""
    return await service.send_message_from_teacher(
        current_user.id,
        data.receptionist_id,
        data.student_id,
        data.message,
    )


@router.get(
    "/{notification_id}",
    response_model=NotificationResponse,
    summary="Get notification",
)
async def get_notification(
    notification_id: str,
    current_user: AuthenticatedUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    """Get a notification the caller is party to."""
    return await service.get_notification(notification_id, current_user.id)


@router.api_route(
    "/{notification_id}/respond",
    methods=["POST", "PUT"],
    response_model=NotificationResponse,
    summary="Respond to request",
    description="Answer a pending request. Exactly one answer is accepted.",
)
async def respond(
    notification_id: str,
    data: RespondRequest,
    current_user: TeacherUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    """Answer a pending request."""
    return await service.respond(
        notification_id,
        current_user.id,
        data.resolved_status,
        data.response_message,
    )


@router.put(
    "/{notification_id}/read",
    response_model=AckResponse,
    summary="Mark as read",
)
async def mark_as_read(
    notification_id: str,
    current_user: AuthenticatedUser,
    service: NotificationService = Depends(get_notification_service),
) -> AckResponse:
    """Mark a notification as read."""
    await service.mark_as_read(notification_id, current_user.id)
    return AckResponse(message="Notification marked as read")
