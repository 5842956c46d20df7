# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    auth: Authentication endpoints (register, login, me, password).
    users: User management and device token endpoints.
    classes: Class, roster and teacher assignment endpoints.
    students: Student management endpoints.
    notifications: Request/response workflow and push diagnostics.
    realtime: Notification event WebSocket.
    statistics: Manager dashboard statistics.
"""

from fastapi import APIRouter

from src.api.v1 import auth, classes, notifications, realtime, statistics, students, users

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(classes.router, prefix="/classes", tags=["Classes"])
router.include_router(students.router, prefix="/students", tags=["Students"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(statistics.router, prefix="/statistics", tags=["Statistics"])
router.include_router(realtime.router, tags=["Realtime"])

__all__ = ["router"]
