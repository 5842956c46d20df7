# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests against an aiosqlite database built from ORM metadata
- Integration tests through the FastAPI TestClient
"""

import os

# Settings are read at import time by the rate limiter
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("RETENTION_ENABLED", "false")
os.environ.setdefault("DATABASE_CREATE_TABLES", "false")

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.core.config.settings import JWTSettings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.models import Base, SchoolClass, Student, User, UserRole
from src.infrastructure.notifications.channels.base import DeliveryRequest
from src.utils.datetime import utc_now

TEST_PASSWORD = "Secret123"


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created.

    A file rather than :memory: so separate sessions share one database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Database session for one test."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Model Factories
# =============================================================================


class ModelFactory:
    """Creates committed model rows for tests."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.hasher = PasswordHasher(rounds=4)
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def user(
        self,
        role: UserRole = UserRole.TEACHER,
        name: str | None = None,
        email: str | None = None,
        password: str = TEST_PASSWORD,
        is_active: bool = True,
        device_token: str | None = None,
    ) -> User:
        n = self._next()
        user = User(
            name=name or f"{role.value.title()} {n}",
            email=email or f"{role.value}{n}@school.example.com",
            password_hash=self.hasher.hash(password),
            role=role.value,
            is_active=is_active,
            device_token=device_token,
            device_platform="android" if device_token else None,
            device_token_updated_at=utc_now() if device_token else None,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def school_class(
        self,
        teacher: User | None,
        name: str | None = None,
        capacity: int = 30,
        is_active: bool = True,
    ) -> SchoolClass:
        school_class = SchoolClass(
            name=name or f"Grade {self._next()}A",
            teacher_id=teacher.id if teacher else None,
            capacity=capacity,
            is_active=is_active,
        )
        school_class.teacher = teacher
        school_class.students = []
        self.db.add(school_class)
        await self.db.commit()
        return school_class

    async def student(
        self,
        school_class: SchoolClass,
        name: str | None = None,
        code: str | None = None,
        is_active: bool = True,
    ) -> Student:
        n = self._next()
        student = Student(
            student_code=code or f"ST{n:04d}",
            name=name or f"Student {n}",
            class_id=school_class.id,
            is_active=is_active,
        )
        student.school_class = school_class
        self.db.add(student)
        if is_active:
            school_class.students.append(student)
        await self.db.commit()
        return student


@pytest.fixture
def factory(db: AsyncSession) -> ModelFactory:
    """Model factory bound to the test session."""
    return ModelFactory(db)


# =============================================================================
# Delivery Fixtures
# =============================================================================


class RecordingDispatcher:
    """Dispatcher stand-in that records requests instead of delivering."""

    def __init__(self) -> None:
        self.requests: list[DeliveryRequest] = []

    def dispatch(self, request: DeliveryRequest) -> None:
        self.requests.append(request)

    def events_for(self, user_id: str) -> list[str]:
        return [r.event for r in self.requests if r.user_id == user_id]


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    """Dispatcher that captures delivery requests."""
    return RecordingDispatcher()


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """JWT settings with a fixed test secret."""
    return JWTSettings(
        secret_key=SecretStr("test-secret-key-for-jwt-testing"),
        algorithm="HS256",
    )


@pytest.fixture
def jwt_manager(jwt_settings: JWTSettings) -> JWTManager:
    """JWT manager with test settings."""
    return JWTManager(jwt_settings)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_fcm_error() -> dict[str, Any]:
    """FCM error body for an unregistered registration token."""
    return {
        "error": {
            "code": 404,
            "message": "Requested entity was not found.",
            "status": "NOT_FOUND",
            "details": [
                {
                    "@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError",
                    "errorCode": "UNREGISTERED",
                }
            ],
        }
    }
