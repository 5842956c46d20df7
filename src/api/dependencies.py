# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users and enforce roles
- Get service instances

Example:
    @router.get("/students")
    async def list_students(
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(require_auth),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.service import AuthService
from src.domains.notification.service import NotificationService
from src.infrastructure.database.connection import get_session
from src.infrastructure.database.models.user import UserRole
from src.infrastructure.notifications.dispatcher import (
    NotificationDispatcher,
    get_dispatcher as get_notification_dispatcher,
)

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession committed on success and rolled back on error.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        detail = getattr(request.state, "auth_error", None) or "Access denied. No token provided."
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


class RequireRole:
    """Dependency for requiring specific roles.

    Example:
        @router.post("/classes")
        async def create_class(
            user: CurrentUser = Depends(RequireRole("manager")),
        ):
            ...
    """

    def __init__(self, *roles: str) -> None:
        """Initialize role requirement.

        Args:
            roles: Required role codes (any of these).
        """
        self.roles = roles

    def __call__(self, request: Request) -> CurrentUser:
        """Check roles and return user.

        Args:
            request: HTTP request.

        Returns:
            CurrentUser.

        Raises:
            HTTPException: If missing required roles.
        """
        user = require_auth(request)

        if not user.has_any_role(*self.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions.",
            )

        return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_jwt_manager() -> JWTManager:
    """Get JWT manager instance."""
    return JWTManager(get_settings().jwt)


def get_dispatcher() -> NotificationDispatcher:
    """Get the process-wide delivery dispatcher."""
    return get_notification_dispatcher()


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> AuthService:
    """Get AuthService instance.

    Args:
        db: Database session.
        jwt_manager: JWT manager.

    Returns:
        AuthService.
    """
    return AuthService(db, jwt_manager)


async def get_notification_service(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationService:
    """Get NotificationService wired to the dispatcher."""
    return NotificationService(db, dispatcher)


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

DB = Annotated[AsyncSession, Depends(get_db)]
AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]
AdminUser = Annotated[CurrentUser, Depends(RequireRole(UserRole.ADMIN.value))]
ManagerUser = Annotated[CurrentUser, Depends(RequireRole(UserRole.MANAGER.value))]
TeacherUser = Annotated[CurrentUser, Depends(RequireRole(UserRole.TEACHER.value))]
ReceptionistUser = Annotated[CurrentUser, Depends(RequireRole(UserRole.RECEPTIONIST.value))]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
