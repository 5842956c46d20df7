# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication request/response models."""

from typing import Self

from pydantic import EmailStr, Field, model_validator

from src.infrastructure.database.models.user import UserRole
from src.models.common import CamelModel
from src.models.user import NAME_PATTERN, UserResponse


class RegisterRequest(CamelModel):
    """Self-service account registration.

    Attributes:
        name: Display name, letters and spaces only.
        email: Login email, unique.
        password: Plain text password, checked against the password policy.
        confirm_password: Must equal password.
        role: Requested role. Administrators cannot self-register.
    """

    name: str = Field(..., min_length=2, max_length=50, pattern=NAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str
    role: UserRole = UserRole.TEACHER

    @model_validator(mode="after")
    def check_passwords_match(self) -> Self:
        """Ensure the confirmation matches the password."""
        if self.password != self.confirm_password:
            raise ValueError("Password confirmation does not match password")
        return self


class LoginRequest(CamelModel):
    """Email and password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UpdatePasswordRequest(CamelModel):
    """Change the caller's password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=128)


class AuthResponse(CamelModel):
    """Issued token plus the authenticated user."""

    status: str = "success"
    token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserResponse
