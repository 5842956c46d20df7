# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

import time
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from jose import jwt
from pydantic import SecretStr

from src.domains.auth.jwt import (
    AccessToken,
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_create_access_token_returns_bearer_token(self, jwt_manager: JWTManager) -> None:
        """Test that create_access_token returns a usable token."""
        result = jwt_manager.create_access_token(user_id=str(uuid4()), role="teacher")

        assert isinstance(result, AccessToken)
        assert result.token_type == "Bearer"
        assert result.access_token.count(".") == 2
        assert result.expires_in > 0

    def test_decode_token_returns_claims(self, jwt_manager: JWTManager) -> None:
        """Test that decoding returns the subject and role claim."""
        user_id = str(uuid4())
        token = jwt_manager.create_access_token(user_id=user_id, role="receptionist")

        payload = jwt_manager.decode_token(token.access_token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == user_id
        assert payload.role == "receptionist"
        assert payload.type == "access"
        assert payload.exp > payload.iat

    def test_each_token_has_unique_jti(self, jwt_manager: JWTManager) -> None:
        """Test that tokens for the same user are distinguishable."""
        first = jwt_manager.decode_token(jwt_manager.create_access_token("u1", "teacher").access_token)
        second = jwt_manager.decode_token(jwt_manager.create_access_token("u1", "teacher").access_token)

        assert first.jti != second.jti

    def test_decode_expired_token_raises(self) -> None:
        """Test that an expired token raises TokenExpiredError."""
        settings = MagicMock()
        settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
        settings.algorithm = "HS256"
        settings.access_token_expire_minutes = -1
        manager = JWTManager(settings)

        token = manager.create_access_token(user_id="user-1", role="teacher")

        with pytest.raises(TokenExpiredError):
            manager.decode_token(token.access_token)

    def test_decode_token_with_wrong_secret_raises(self, jwt_manager: JWTManager) -> None:
        """Test that a token signed with another key is rejected."""
        now = int(time.time())
        forged = jwt.encode(
            {"sub": "user-1", "role": "admin", "type": "access", "exp": now + 60, "iat": now, "jti": "x"},
            "some-other-secret",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(forged)

    def test_decode_token_missing_role_raises(self, jwt_settings) -> None:
        """Test that a token without the role claim is rejected."""
        now = int(time.time())
        token = jwt.encode(
            {"sub": "user-1", "type": "access", "exp": now + 60, "iat": now, "jti": "x"},
            jwt_settings.secret_key.get_secret_value(),
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            JWTManager(jwt_settings).decode_token(token)

    def test_decode_garbage_raises(self, jwt_manager: JWTManager) -> None:
        """Test that a malformed token is rejected."""
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("not-a-token")

    def test_verify_token(self, jwt_manager: JWTManager) -> None:
        """Test verify_token true for valid and false for invalid tokens."""
        token = jwt_manager.create_access_token(user_id="user-1", role="manager")

        assert jwt_manager.verify_token(token.access_token) is True
        assert jwt_manager.verify_token("invalid") is False
