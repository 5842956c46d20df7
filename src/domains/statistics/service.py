# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Statistics service for the manager dashboard.

This module provides read-only projections over the directory and the
notification history:
- Overview counts and fill levels
- Per-class utilization
- Per-teacher class load
- Daily attendance derived from answered requests

Usage:
    from src.domains.statistics import StatisticsService

    service = StatisticsService(db)
    overview = await service.get_overview()
    attendance = await service.get_daily_attendance(date(2025, 3, 2))
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.user.service import to_user_summary
from src.infrastructure.database.models.notification import (
    Notification,
    NotificationStatus,
    NotificationType,
)
from src.infrastructure.database.models.school import SchoolClass, Student
from src.infrastructure.database.models.user import User, UserRole
from src.models.notification import NotificationStudent
from src.models.statistics import (
    AttendanceTotals,
    ClassAttendance,
    ClassCoverage,
    ClassStatistics,
    ClassUtilization,
    DailyAttendance,
    OverviewStatistics,
    RecentActivity,
    StudentActivity,
    TeacherCoverage,
    TeacherStatistics,
)
from src.utils.datetime import days_ago, utc_now

logger = logging.getLogger(__name__)

# Classes at or above this fill percentage count as near capacity
NEAR_CAPACITY_PERCENT = 90.0


def percentage(part: int, whole: int) -> float:
    """Share of part in whole as a percentage rounded to two places."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


class StatisticsService:
    """Service for dashboard statistics.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize statistics service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def get_overview(self) -> OverviewStatistics:
        """Build the dashboard overview.

        Class totals include inactive classes; utilization is measured
        over current rosters.

        Returns:
            Overview statistics.
        """
        classes = list((await self.db.execute(select(SchoolClass))).scalars().all())

        total_capacity = sum(c.capacity for c in classes)
        enrolled = sum(c.student_count for c in classes)
        with_teacher = sum(1 for c in classes if c.teacher_id is not None)
        full = sum(1 for c in classes if c.is_full)
        near_capacity = sum(
            1 for c in classes if percentage(c.student_count, c.capacity) >= NEAR_CAPACITY_PERCENT
        )

        total_students = await self._count(Student.id)
        active_students = await self._count(Student.id, Student.is_active.is_(True))
        inactive_students = total_students - active_students

        total_teachers = await self._count(User.id, User.role == UserRole.TEACHER.value)
        assigned_teachers = (
            await self.db.execute(
                select(func.count(func.distinct(SchoolClass.teacher_id))).where(
                    SchoolClass.teacher_id.is_not(None)
                )
            )
        ).scalar() or 0

        week_ago = days_ago(7)
        now = utc_now()
        month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)

        recent = RecentActivity(
            new_students_this_week=await self._count(Student.id, Student.created_at >= week_ago),
            new_classes_this_month=await self._count(
                SchoolClass.id, SchoolClass.created_at >= month_start
            ),
            pending_notifications=await self._count(
                Notification.id,
                Notification.status == NotificationStatus.PENDING.value,
                Notification.type == NotificationType.REQUEST.value,
            ),
            notifications_this_week=await self._count(
                Notification.id, Notification.request_date >= week_ago
            ),
        )

        return OverviewStatistics(
            total_classes=len(classes),
            total_students=total_students,
            total_teachers=total_teachers,
            total_capacity=total_capacity,
            active_students=active_students,
            inactive_students=inactive_students,
            student_activity=StudentActivity(
                active=active_students,
                inactive=inactive_students,
                rate=percentage(active_students, total_students),
            ),
            class_utilization=ClassUtilization(
                filled=enrolled,
                available=total_capacity - enrolled,
                percentage=percentage(enrolled, total_capacity),
            ),
            teacher_stats=TeacherCoverage(
                total=total_teachers,
                assigned=assigned_teachers,
                unassigned=max(total_teachers - assigned_teachers, 0),
            ),
            class_stats=ClassCoverage(
                active=sum(1 for c in classes if c.is_active),
                with_teachers=with_teacher,
                without_teachers=len(classes) - with_teacher,
                full=full,
                near_capacity=near_capacity,
            ),
            recent_activity=recent,
            timestamp=now,
        )

    async def get_class_statistics(self) -> list[ClassStatistics]:
        """Fill level of every active class, fullest first."""
        result = await self.db.execute(
            select(SchoolClass).where(SchoolClass.is_active.is_(True))
        )

        stats = [
            ClassStatistics(
                id=c.id,
                name=c.name,
                description=c.description,
                capacity=c.capacity,
                student_count=c.student_count,
                available_spots=c.capacity - c.student_count,
                utilization_rate=percentage(c.student_count, c.capacity),
                has_teacher=c.teacher is not None,
                teacher=to_user_summary(c.teacher) if c.teacher else None,
                created_at=c.created_at,
            )
            for c in result.scalars().all()
        ]
        stats.sort(key=lambda s: (-s.utilization_rate, s.name))
        return stats

    async def get_teacher_statistics(self) -> list[TeacherStatistics]:
        """Active class count and enrolled students per teacher, busiest first."""
        teachers = (
            await self.db.execute(select(User).where(User.role == UserRole.TEACHER.value))
        ).scalars().all()
        classes = (
            await self.db.execute(
                select(SchoolClass).where(
                    SchoolClass.is_active.is_(True),
                    SchoolClass.teacher_id.is_not(None),
                )
            )
        ).scalars().all()

        load: dict[str, list[SchoolClass]] = {}
        for c in classes:
            load.setdefault(c.teacher_id, []).append(c)

        stats = [
            TeacherStatistics(
                id=t.id,
                name=t.name,
                email=t.email,
                class_count=len(load.get(t.id, [])),
                total_students=sum(c.student_count for c in load.get(t.id, [])),
                last_login=t.last_login,
                created_at=t.created_at,
            )
            for t in teachers
        ]
        stats.sort(key=lambda s: (-s.class_count, -s.total_students, s.name))
        return stats

    async def get_daily_attendance(self, day: date | None = None) -> DailyAttendance:
        """Attendance per active class for one UTC day.

        A student counts as gone when a request about them was answered
        absent on that day. Several answers for the same student count
        once.

        Args:
            day: Day to report; today if omitted.

        Returns:
            Per-class and overall attendance.
        """
        day = day or utc_now().date()
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)

        classes = (
            await self.db.execute(
                select(SchoolClass)
                .where(SchoolClass.is_active.is_(True))
                .order_by(SchoolClass.name)
            )
        ).scalars().all()

        answered = (
            await self.db.execute(
                select(Notification).where(
                    and_(
                        Notification.request_date >= start,
                        Notification.request_date < end,
                        Notification.status == NotificationStatus.ABSENT.value,
                        Notification.type == NotificationType.RESPONSE.value,
                    )
                )
            )
        ).scalars().all()

        gone_by_class: dict[str, dict[str, Student]] = {}
        for notification in answered:
            gone_by_class.setdefault(notification.class_id, {}).setdefault(
                notification.student_id, notification.student
            )

        rows: list[ClassAttendance] = []
        for c in classes:
            gone = gone_by_class.get(c.id, {})
            total = c.student_count
            present = max(total - len(gone), 0)
            rows.append(
                ClassAttendance(
                    class_id=c.id,
                    class_name=c.name,
                    teacher=to_user_summary(c.teacher) if c.teacher else None,
                    total=total,
                    present=present,
                    gone=len(gone),
                    percentage=percentage(present, total),
                    gone_students=[
                        NotificationStudent(id=s.id, student_code=s.student_code, name=s.name)
                        for s in gone.values()
                    ],
                )
            )

        total = sum(r.total for r in rows)
        present = sum(r.present for r in rows)

        logger.debug("Daily attendance for %s: %d/%d present", day.isoformat(), present, total)

        return DailyAttendance(
            day=day,
            overall=AttendanceTotals(
                total_classes=len(rows),
                total=total,
                present=present,
                gone=sum(r.gone for r in rows),
                percentage=percentage(present, total),
            ),
            classes=rows,
        )

    async def _count(self, column, *conditions) -> int:
        query = select(func.count(column))
        if conditions:
            query = query.where(*conditions)
        return (await self.db.execute(query)).scalar() or 0
