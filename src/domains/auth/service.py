# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service for registration, login and password changes.

Example:
    >>> auth_service = AuthService(db_session, jwt_manager, PasswordHasher())
    >>> result = await auth_service.login("teacher@school.example.com", "Secret123")
    >>> result.token.access_token
"""

import logging
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.jwt import AccessToken, JWTManager
from src.domains.auth.password import PasswordHasher, password_policy_violation
from src.domains.errors import AuthenticationError, ValidationError
from src.domains.user.service import UserService, normalize_email
from src.infrastructure.database.connection import is_unique_violation
from src.infrastructure.database.models.user import User, UserRole
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class InvalidCredentialsError(AuthenticationError):
    """Raised when email or password is wrong."""

    default_code = "invalid_credentials"


class AccountInactiveError(AuthenticationError):
    """Raised when account is not active."""

    default_code = "account_inactive"


class UserExistsError(ValidationError):
    """Raised when registering an email that is already taken."""

    default_code = "user_exists"


class WeakPasswordError(ValidationError):
    """Raised when a password violates the password policy."""

    default_code = "weak_password"


class AuthResult(NamedTuple):
    """Authenticated user and the token issued for them."""

    user: User
    token: AccessToken


class AuthService:
    """Authentication service for local email/password accounts.

    Attributes:
        db: Async database session.
        jwt_manager: Token issuer.
        password_hasher: bcrypt hasher.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        password_hasher: PasswordHasher | None = None,
    ) -> None:
        """Initialize the auth service.

        Args:
            db: Async database session.
            jwt_manager: JWT manager used to issue tokens.
            password_hasher: Password hasher. A default one is created if omitted.
        """
        self.db = db
        self.jwt_manager = jwt_manager
        self.password_hasher = password_hasher or PasswordHasher()
        self._users = UserService(db)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.TEACHER,
    ) -> AuthResult:
        """Register a new account and issue a token.

        Args:
            name: Display name.
            email: Login email.
            password: Plain text password.
            role: Requested role.

        Returns:
            AuthResult for the new user.

        Raises:
            ValidationError: If the role is admin.
            WeakPasswordError: If the password violates the policy.
            UserExistsError: If the email is taken.
        """
        if role == UserRole.ADMIN:
            raise ValidationError("Administrator accounts cannot be self-registered")

        violation = password_policy_violation(password)
        if violation:
            raise WeakPasswordError(violation)

        if await self._users.get_by_email(email):
            raise UserExistsError("User already exists with this email")

        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=self.password_hasher.hash(password),
            role=role.value,
            is_active=True,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e, "email"):
                raise UserExistsError("User already exists with this email") from e
            raise
        await self.db.refresh(user)

        logger.info("New user registered: %s (%s)", user.email, user.role)

        return AuthResult(user=user, token=self._issue(user))

    async def login(self, email: str, password: str) -> AuthResult:
        """Authenticate with email and password.

        Raises:
            InvalidCredentialsError: If email or password is wrong.
            AccountInactiveError: If the account is deactivated.
        """
        user = await self._users.get_by_email(email)
        if not user or not self.password_hasher.verify(password, user.password_hash):
            logger.info("Failed login attempt for %s", normalize_email(email))
            raise InvalidCredentialsError("Incorrect email or password")

        if not user.is_active:
            raise AccountInactiveError("Your account has been deactivated")

        user.last_login = utc_now()
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User logged in: %s", user.email)

        return AuthResult(user=user, token=self._issue(user))

    async def me(self, user_id: str) -> User:
        """Get the authenticated user's account.

        Raises:
            UserNotFoundError: If the account no longer exists.
            AccountInactiveError: If the account is deactivated.
        """
        user = await self._users.get_by_id(user_id)
        if not user.is_active:
            raise AccountInactiveError("Your account has been deactivated")
        return user

    async def update_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> AuthResult:
        """Change a password after verifying the current one.

        Returns:
            AuthResult with a fresh token.

        Raises:
            InvalidCredentialsError: If the current password is wrong.
            WeakPasswordError: If the new password violates the policy.
        """
        user = await self.me(user_id)

        if not self.password_hasher.verify(current_password, user.password_hash):
            raise InvalidCredentialsError("Your current password is wrong")

        violation = password_policy_violation(new_password)
        if violation:
            raise WeakPasswordError(violation)

        user.password_hash = self.password_hasher.hash(new_password)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("Password updated for user: %s", user.email)

        return AuthResult(user=user, token=self._issue(user))

    def _issue(self, user: User) -> AccessToken:
        """Issue an access token for a user."""
        return self.jwt_manager.create_access_token(user_id=user.id, role=user.role)
