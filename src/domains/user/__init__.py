# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User domain package.

This package provides account administration, self-service profile
management and push device registration.
"""

from src.domains.user.service import (
    EmailExistsError,
    UserAccessDeniedError,
    UserNotFoundError,
    UserService,
    normalize_email,
    to_user_response,
    to_user_summary,
)

__all__ = [
    "UserService",
    "UserNotFoundError",
    "EmailExistsError",
    "UserAccessDeniedError",
    "normalize_email",
    "to_user_response",
    "to_user_summary",
]
