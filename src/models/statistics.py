# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Manager dashboard statistics models."""

from datetime import date, datetime

from pydantic import Field

from src.models.common import CamelModel
from src.models.notification import NotificationStudent
from src.models.user import UserSummary


class StudentActivity(CamelModel):
    """Active versus inactive students."""

    active: int
    inactive: int
    rate: float


class ClassUtilization(CamelModel):
    """Enrolled seats against total capacity."""

    filled: int
    available: int
    percentage: float


class TeacherCoverage(CamelModel):
    """Teachers with and without a class."""

    total: int
    assigned: int
    unassigned: int


class ClassCoverage(CamelModel):
    """Class counts by staffing and fill level."""

    active: int
    with_teachers: int
    without_teachers: int
    full: int
    near_capacity: int


class RecentActivity(CamelModel):
    """Directory and notification activity over recent windows."""

    new_students_this_week: int
    new_classes_this_month: int
    pending_notifications: int
    notifications_this_week: int


class OverviewStatistics(CamelModel):
    """Manager dashboard overview."""

    total_classes: int
    total_students: int
    total_teachers: int
    total_capacity: int
    active_students: int
    inactive_students: int
    student_activity: StudentActivity
    class_utilization: ClassUtilization
    teacher_stats: TeacherCoverage
    class_stats: ClassCoverage
    recent_activity: RecentActivity
    timestamp: datetime


class ClassStatistics(CamelModel):
    """Fill level of one active class."""

    id: str
    name: str
    description: str | None = None
    capacity: int
    student_count: int
    available_spots: int
    utilization_rate: float
    has_teacher: bool
    teacher: UserSummary | None = None
    created_at: datetime


class TeacherStatistics(CamelModel):
    """Class load of one teacher."""

    id: str
    name: str
    email: str
    class_count: int
    total_students: int
    last_login: datetime | None = None
    created_at: datetime


class ClassAttendance(CamelModel):
    """Students of a class who were answered absent on a day."""

    class_id: str
    class_name: str
    teacher: UserSummary | None = None
    total: int
    present: int
    gone: int
    percentage: float
    gone_students: list[NotificationStudent] = []


class AttendanceTotals(CamelModel):
    """Attendance summed over every active class."""

    total_classes: int
    total: int
    present: int
    gone: int
    percentage: float


class DailyAttendance(CamelModel):
    """Per-class attendance for one day."""

    day: date = Field(alias="date")
    overall: AttendanceTotals
    classes: list[ClassAttendance]
