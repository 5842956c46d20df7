# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Manager dashboard statistics endpoints.

This module provides read-only endpoints:
- GET /overview - Directory and notification overview
- GET /classes - Fill level of active classes
- GET /teachers - Class load per teacher
- GET /daily-attendance - Attendance for one day

All endpoints require the manager role.
"""

import logging
from datetime import date

from fastapi import APIRouter, Query

from src.api.dependencies import DB, ManagerUser
from src.domains.statistics.service import StatisticsService
from src.models.statistics import (
    ClassStatistics,
    DailyAttendance,
    OverviewStatistics,
    TeacherStatistics,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/overview",
    response_model=OverviewStatistics,
    summary="Dashboard overview",
)
async def get_overview(db: DB, current_user: ManagerUser) -> OverviewStatistics:
    """Get the dashboard overview."""
    return await StatisticsService(db).get_overview()


@router.get(
    "/classes",
    response_model=list[ClassStatistics],
    summary="Class utilization",
)
async def get_class_statistics(db: DB, current_user: ManagerUser) -> list[ClassStatistics]:
    """Get per-class utilization, fullest first."""
    return await StatisticsService(db).get_class_statistics()


@router.get(
    "/teachers",
    response_model=list[TeacherStatistics],
    summary="Teacher load",
)
async def get_teacher_statistics(db: DB, current_user: ManagerUser) -> list[TeacherStatistics]:
    """Get per-teacher class load."""
    return await StatisticsService(db).get_teacher_statistics()


@router.get(
    "/daily-attendance",
    response_model=DailyAttendance,
    summary="Daily attendance",
    description="Students answered absent on the given UTC day, grouped by class.",
)
async def get_daily_attendance(
    db: DB,
    current_user: ManagerUser,
    day: date | None = Query(None, alias="date", description="Day to report, defaults to today"),
) -> DailyAttendance:
    """Get attendance for one day."""
    return await StatisticsService(db).get_daily_attendance(day)
