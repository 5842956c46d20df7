# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for user authentication:
- POST /register - Create an account and receive a token
- POST /login - Exchange email and password for a token
- GET /me - Get current user info
- PUT /update-password - Change password and receive a fresh token

Example:
    POST /api/v1/auth/login
    Body:
        {"email": "teacher@school.com", "password": "Secret123"}
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from slowapi.util import get_remote_address

from src.api.dependencies import AuthenticatedUser, get_auth_service
from src.api.middleware.rate_limit import AUTH_LIMIT, limiter
from src.domains.auth.service import AuthResult, AuthService
from src.domains.user.service import to_user_response
from src.models.auth import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UpdatePasswordRequest,
)
from src.models.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        token=result.token.access_token,
        token_type=result.token.token_type,
        expires_in=result.token.expires_in,
        user=to_user_response(result.user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register account",
    description="Create a teacher, manager or receptionist account and receive a token.",
)
@limiter.limit(AUTH_LIMIT, key_func=get_remote_address)
async def register(
    request: Request,
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Register a new account."""
    result = await auth_service.register(
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role,
    )
    return _to_auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="User login",
    description="Authenticate with email and password.",
)
@limiter.limit(AUTH_LIMIT, key_func=get_remote_address)
async def login(
    request: Request,
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Log in and receive a token."""
    result = await auth_service.login(data.email, data.password)
    return _to_auth_response(result)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Get information about the currently authenticated user.",
)
async def get_current_user_info(
    current_user: AuthenticatedUser,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Get current user information."""
    user = await auth_service.me(current_user.id)
    return to_user_response(user)


@router.put(
    "/update-password",
    response_model=AuthResponse,
    summary="Update password",
    description="Change the current user's password. Returns a fresh token.",
)
async def update_password(
    data: UpdatePasswordRequest,
    current_user: AuthenticatedUser,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Change password after verifying the current one."""
    result = await auth_service.update_password(
        current_user.id,
        data.current_password,
        data.new_password,
    )
    return _to_auth_response(result)
