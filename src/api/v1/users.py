# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User management API endpoints.

This module provides endpoints for user accounts:
- GET / - List users (admin)
- GET /profile/me - Get own profile
- PUT /profile/me - Update own name or email
- PUT /me/device-token - Register push device token
- DELETE /me/device-token - Clear push device token
- GET /teachers - List active teachers
- GET /receptionists - List active receptionists
- GET /{user_id} - Get user details
- PUT /{user_id} - Update user
- DELETE /{user_id} - Deactivate user (admin)
"""

import logging

from fastapi import APIRouter, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import DB, AdminUser, AuthenticatedUser
from src.domains.user.service import UserService
from src.infrastructure.database.models.user import UserRole
from src.models.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AckResponse, PaginatedResponse
from src.models.user import (
    DeviceTokenRequest,
    ProfileUpdateRequest,
    UserResponse,
    UserSummary,
    UserUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> UserService:
    """Get user service instance."""
    return UserService(db=db)


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
    description="List users with optional role, status and search filters. Admin only.",
)
async def list_users(
    db: DB,
    current_user: AdminUser,
    role: UserRole | None = Query(None, description="Filter by role"),
    is_active: bool | None = Query(True, alias="isActive", description="Filter by active flag"),
    search: str | None = Query(None, description="Search in name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> PaginatedResponse[UserResponse]:
    """List users."""
    service = _get_service(db)
    users, total = await service.list_users(
        role=role,
        is_active=is_active,
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return PaginatedResponse.build(users, total, page, limit)


@router.get(
    "/profile/me",
    response_model=UserResponse,
    summary="Get own profile",
)
async def get_profile(db: DB, current_user: AuthenticatedUser) -> UserResponse:
    """Get the caller's profile."""
    return await _get_service(db).get_profile(current_user.id)


@router.put(
    "/profile/me",
    response_model=UserResponse,
    summary="Update own profile",
)
async def update_profile(
    data: ProfileUpdateRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> UserResponse:
    """Update the caller's name or email."""
    return await _get_service(db).update_profile(current_user.id, data)


@router.put(
    "/me/device-token",
    response_model=UserResponse,
    summary="Register device token",
    description="Store the push registration token of the caller's device, replacing any previous one.",
)
async def register_device_token(
    data: DeviceTokenRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> UserResponse:
    """Register the caller's push device token."""
    platform = data.platform.value if data.platform else None
    return await _get_service(db).register_device_token(
        current_user.id,
        data.device_token,
        platform,
    )


@router.delete(
    "/me/device-token",
    response_model=AckResponse,
    summary="Clear device token",
)
async def clear_device_token(db: DB, current_user: AuthenticatedUser) -> AckResponse:
    """Stop push delivery to the caller's device."""
    await _get_service(db).clear_device_token(current_user.id)
    return AckResponse(message="Device token removed")


@router.get(
    "/teachers",
    response_model=list[UserSummary],
    summary="List teachers",
)
async def list_teachers(db: DB, current_user: AuthenticatedUser) -> list[UserSummary]:
    """List active teachers."""
    return await _get_service(db).list_by_role(UserRole.TEACHER)


@router.get(
    "/receptionists",
    response_model=list[UserSummary],
    summary="List receptionists",
)
async def list_receptionists(db: DB, current_user: AuthenticatedUser) -> list[UserSummary]:
    """List active receptionists."""
    return await _get_service(db).list_by_role(UserRole.RECEPTIONIST)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
    description="Users may read their own account; managers and admins may read any.",
)
async def get_user(user_id: str, db: DB, current_user: AuthenticatedUser) -> UserResponse:
    """Get user details."""
    return await _get_service(db).get_user(user_id, current_user)


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    description="Users may update themselves; only admins may change role or status.",
)
async def update_user(
    user_id: str,
    data: UserUpdateRequest,
    db: DB,
    current_user: AuthenticatedUser,
) -> UserResponse:
    """Update a user."""
    return await _get_service(db).update_user(user_id, data, current_user)


@router.delete(
    "/{user_id}",
    response_model=AckResponse,
    status_code=status.HTTP_200_OK,
    summary="Deactivate user",
)
async def deactivate_user(user_id: str, db: DB, current_user: AdminUser) -> AckResponse:
    """Soft-delete a user. Admin only."""
    await _get_service(db).deactivate_user(user_id, current_user)
    return AckResponse(message="User deactivated")
