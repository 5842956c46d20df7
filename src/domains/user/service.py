# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User service for account administration and device registration.

This module provides the UserService class for:
- Listing, reading and updating user accounts
- Soft-deleting (deactivating) accounts
- Self-service profile updates
- Registering and clearing push device tokens
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.principal import Principal
from src.domains.errors import AuthorizationError, NotFoundError, ValidationError
from src.infrastructure.database.connection import is_unique_violation
from src.infrastructure.database.models.user import User, UserRole
from src.models.user import (
    ProfileUpdateRequest,
    UserResponse,
    UserSummary,
    UserUpdateRequest,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class UserNotFoundError(NotFoundError):
    """Raised when user is not found."""

    default_code = "user_not_found"


class EmailExistsError(ValidationError):
    """Raised when an email is already taken by another account."""

    default_code = "email_taken"


class UserAccessDeniedError(AuthorizationError):
    """Raised when the caller may not read or change the account."""

    pass


def normalize_email(email: str) -> str:
    """Normalize an email for storage and lookup."""
    return email.strip().lower()


def to_user_response(user: User) -> UserResponse:
    """Convert a User model to its API representation."""
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=UserRole(user.role),
        is_active=user.is_active,
        has_device_token=bool(user.device_token),
        device_platform=user.device_platform,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def to_user_summary(user: User) -> UserSummary:
    """Convert a User model to a compact reference."""
    return UserSummary(
        id=user.id,
        name=user.name,
        email=user.email,
        role=UserRole(user.role),
    )


class UserService:
    """Service for managing user accounts.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize user service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def list_users(
        self,
        role: UserRole | None = None,
        is_active: bool | None = True,
        search: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[UserResponse], int]:
        """List users with filtering, newest first.

        Args:
            role: Filter by role.
            is_active: Filter by active flag. None lists everyone.
            search: Search in name or email.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (list of users, total count).
        """
        query = select(User)
        conditions = []

        if role is not None:
            conditions.append(User.role == role.value)

        if is_active is not None:
            conditions.append(User.is_active == is_active)

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(User.name.ilike(search_pattern), User.email.ilike(search_pattern))
            )

        if conditions:
            query = query.where(and_(*conditions))

        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(User.created_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)

        return [to_user_response(u) for u in result.scalars().all()], total

    async def list_by_role(self, role: UserRole) -> list[UserSummary]:
        """List active users holding a role, ordered by name.

        Args:
            role: Role to list.

        Returns:
            Compact user references.
        """
        query = (
            select(User)
            .where(User.role == role.value, User.is_active.is_(True))
            .order_by(User.name)
        )
        result = await self.db.execute(query)
        return [to_user_summary(u) for u in result.scalars().all()]

    async def get_user(self, user_id: str, requester: Principal) -> UserResponse:
        """Get a user by ID.

        Users may read themselves; managers and admins may read anyone.

        Raises:
            UserNotFoundError: If user not found.
            UserAccessDeniedError: If the requester may not read the account.
        """
        if user_id != requester.id and not (requester.is_admin or requester.is_manager):
            raise UserAccessDeniedError("You can only view your own account")

        return to_user_response(await self.get_by_id(user_id))

    async def update_user(
        self,
        user_id: str,
        request: UserUpdateRequest,
        requester: Principal,
    ) -> UserResponse:
        """Update a user account.

        Args:
            user_id: User to update.
            request: Fields to change.
            requester: Caller. Non-admins may only update themselves and
                cannot change role or active flag.

        Returns:
            Updated user.

        Raises:
            UserAccessDeniedError: If the requester may not update the account.
            UserNotFoundError: If user not found.
            EmailExistsError: If the new email is taken.
        """
        if user_id != requester.id and not requester.is_admin:
            raise UserAccessDeniedError("You can only update your own profile")

        user = await self.get_by_id(user_id)

        if request.name is not None:
            user.name = request.name.strip()
        if request.email is not None:
            await self._set_email(user, request.email)

        if requester.is_admin:
            if request.role is not None:
                user.role = request.role.value
            if request.is_active is not None:
                user.is_active = request.is_active
        elif request.role is not None or request.is_active is not None:
            raise UserAccessDeniedError("Only administrators can change role or status")

        await self._commit_unique_email()
        await self.db.refresh(user)

        logger.info("Updated user: %s by %s", user.id, requester.id)

        return to_user_response(user)

    async def deactivate_user(self, user_id: str, requester: Principal) -> None:
        """Soft-delete a user account.

        Raises:
            UserNotFoundError: If user not found.
            ValidationError: If an administrator tries to deactivate themselves.
        """
        if user_id == requester.id:
            raise ValidationError("You cannot deactivate your own account")

        user = await self.get_by_id(user_id)
        user.is_active = False

        await self.db.commit()

        logger.info("Deactivated user: %s by %s", user.email, requester.id)

    async def get_profile(self, user_id: str) -> UserResponse:
        """Get the caller's own account."""
        return to_user_response(await self.get_by_id(user_id))

    async def update_profile(self, user_id: str, request: ProfileUpdateRequest) -> UserResponse:
        """Update the caller's own name or email.

        Raises:
            UserNotFoundError: If user not found.
            EmailExistsError: If the new email is taken.
        """
        user = await self.get_by_id(user_id)

        if request.name is not None:
            user.name = request.name.strip()
        if request.email is not None:
            await self._set_email(user, request.email)

        await self._commit_unique_email()
        await self.db.refresh(user)

        logger.info("Profile updated: %s", user.id)

        return to_user_response(user)

    async def register_device_token(
        self,
        user_id: str,
        device_token: str,
        platform: str | None = None,
    ) -> UserResponse:
        """Store the push device token for a user.

        Args:
            user_id: User registering the device.
            device_token: Provider registration token.
            platform: Device platform, if known.

        Returns:
            Updated user.
        """
        user = await self.get_by_id(user_id)
        user.device_token = device_token.strip()
        user.device_platform = platform
        user.device_token_updated_at = utc_now()

        await self.db.commit()
        await self.db.refresh(user)

        logger.info("Device token registered for user %s (%s)", user_id, platform or "unknown")

        return to_user_response(user)

    async def clear_device_token(self, user_id: str) -> None:
        """Remove the push device token, platform and timestamp together."""
        user = await self.get_by_id(user_id)
        user.device_token = None
        user.device_platform = None
        user.device_token_updated_at = None

        await self.db.commit()

        logger.info("Device token cleared for user %s", user_id)

    async def get_by_id(self, user_id: str) -> User:
        """Get user by ID.

        Raises:
            UserNotFoundError: If not found.
        """
        user = await self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError(f"No user found with ID {user_id}")
        return user

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email, case-insensitively."""
        query = select(User).where(User.email == normalize_email(email))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _set_email(self, user: User, email: str) -> None:
        """Change a user's email after checking it is free."""
        normalized = normalize_email(email)
        if normalized == user.email:
            return

        existing = await self.get_by_email(normalized)
        if existing and existing.id != user.id:
            raise EmailExistsError("Email is already taken")

        user.email = normalized

    async def _commit_unique_email(self) -> None:
        """Commit, turning a unique-email collision into EmailExistsError."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e, "email"):
                raise EmailExistsError("Email is already taken") from e
            raise

    async def count_device_tokens(self) -> int:
        """Count users with a registered push device token."""
        query = select(func.count(User.id)).where(User.device_token.is_not(None))
        return (await self.db.execute(query)).scalar() or 0
