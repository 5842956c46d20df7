# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification domain package.

This package provides the request/response workflow between receptionists
and teachers, read tracking, and notification retention.
"""

from src.domains.notification.retention import (
    NotificationRetentionService,
    run_retention_job,
)
from src.domains.notification.service import (
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

__all__ = [
    "NotificationService",
    "NotificationRetentionService",
    "run_retention_job",
    "NotificationNotFoundError",
    "NotificationAccessDeniedError",
    "NotificationAlreadyRespondedError",
    "NotificationNotAnswerableError",
    "InvalidResponseStatusError",
    "InactiveStudentError",
    "ClassTeacherNotFoundError",
    "SenderNotTeacherError",
    "NotClassTeacherError",
    "InvalidRecipientError",
]
