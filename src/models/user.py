# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User request/response models."""

from datetime import datetime

from pydantic import EmailStr, Field

from src.infrastructure.database.models.user import DevicePlatform, UserRole
from src.models.common import CamelModel

NAME_PATTERN = r"^[A-Za-z\s]+$"


class UserSummary(CamelModel):
    """Compact user reference embedded in other resources."""

    id: str
    name: str
    email: str
    role: UserRole


class UserResponse(CamelModel):
    """Full user representation. The password hash is never included."""

    id: str
    name: str
    email: str
    role: UserRole
    is_active: bool
    has_device_token: bool = False
    device_platform: DevicePlatform | None = None
    last_login: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UserUpdateRequest(CamelModel):
    """Fields an administrator (or the user themself) may change.

    Role and active flag are only honoured for administrators.
    """

    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None
    role: UserRole | None = None
    is_active: bool | None = None


class ProfileUpdateRequest(CamelModel):
    """Self-service profile update."""

    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = None


class DeviceTokenRequest(CamelModel):
    """Push device registration."""

    device_token: str = Field(..., min_length=1, max_length=512)
    platform: DevicePlatform | None = None
