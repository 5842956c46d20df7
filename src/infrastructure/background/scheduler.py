# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic in-process jobs.

Uses APScheduler's AsyncIOScheduler for cron-style scheduling of
coroutine functions on the application's event loop.

Example:
    from src.infrastructure.background.scheduler import get_scheduler

    scheduler = get_scheduler()

    # Add cron job (runs daily at midnight)
    scheduler.add_cron_task(
        name="Notification Cleanup",
        func=run_retention_job,
        cron_expression="0 0 * * *",
    )

    # Start scheduler
    await scheduler.start()
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[Any]]


def parse_cron(cron_expression: str, tz: str = "UTC") -> CronTrigger:
    """Build a trigger from a five-field cron expression.

    Args:
        cron_expression: minute hour day month weekday.
        tz: Timezone the expression is evaluated in.

    Raises:
        ValueError: If the expression does not have five fields.
    """
    parts = cron_expression.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {cron_expression}")

    return CronTrigger(
        minute=parts[0],
        hour=parts[1],
        day=parts[2],
        month=parts[3],
        day_of_week=parts[4],
        timezone=tz,
    )


@dataclass
class ScheduledTask:
    """Configuration for a scheduled job.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        func: Coroutine function to run.
        cron_expression: Five-field cron expression.
        timezone: Timezone of the cron expression.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        run_count: Total number of successful runs.
        error_count: Number of failed runs.
    """

    name: str
    func: JobFunc
    cron_expression: str
    timezone: str = "UTC"
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "cron_expression": self.cron_expression,
            "timezone": self.timezone,
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class JobScheduler:
    """Cron scheduler for coroutine jobs.

    Tasks may be added before or after start(); tasks added earlier are
    handed to APScheduler when it starts.

    Attributes:
        _scheduler: APScheduler instance.
        _tasks: Dictionary of scheduled tasks.
        _running: Whether scheduler is running.
    """

    def __init__(self) -> None:
        """Initialize the scheduler."""
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def add_cron_task(
        self,
        name: str,
        func: JobFunc,
        cron_expression: str,
        tz: str = "UTC",
        enabled: bool = True,
    ) -> ScheduledTask:
        """Add a cron-scheduled task.

        Args:
            name: Task name.
            func: Coroutine function to run.
            cron_expression: Cron expression (minute hour day month weekday).
            tz: Timezone of the expression.
            enabled: Whether task is enabled.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the cron expression is invalid.
        """
        # Validate eagerly so bad configuration fails at registration
        parse_cron(cron_expression, tz)

        task = ScheduledTask(
            name=name,
            func=func,
            cron_expression=cron_expression,
            timezone=tz,
            enabled=enabled,
        )
        self._tasks[task.id] = task

        if self._scheduler and enabled:
            self._add_job(task)

        logger.info("Added cron task: %s (%s %s)", name, cron_expression, tz)
        return task

    def _add_job(self, task: ScheduledTask) -> None:
        self._scheduler.add_job(
            self._execute_task,
            trigger=parse_cron(task.cron_expression, task.timezone),
            args=[task.id],
            id=task.id,
            name=task.name,
            replace_existing=True,
        )

    async def _execute_task(self, task_id: str) -> None:
        """Execute a scheduled task.

        Failures are counted and logged; the next run is the retry.

        Args:
            task_id: ID of the task to execute.
        """
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        try:
            await task.func()
        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e), exc_info=True)
            return

        task.last_run = datetime.now(timezone.utc)
        task.run_count += 1

    async def run_task(self, task_id: str) -> bool:
        """Run a task immediately, outside its schedule.

        Returns:
            True if the task exists.
        """
        if task_id not in self._tasks:
            return False
        await self._execute_task(task_id)
        return True

    def remove_task(self, task_id: str) -> bool:
        """Remove a scheduled task.

        Args:
            task_id: Task ID to remove.

        Returns:
            True if removed.
        """
        if task_id not in self._tasks:
            return False

        if self._scheduler:
            try:
                self._scheduler.remove_job(task_id)
            except JobLookupError:
                logger.debug("Task %s had no scheduled job", task_id)

        del self._tasks[task_id]
        logger.info("Removed scheduled task: %s", task_id)
        return True

    def get_task(self, task_id: str) -> ScheduledTask | None:
        """Get a scheduled task by ID."""
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler()
        for task in self._tasks.values():
            if task.enabled:
                self._add_job(task)
        self._scheduler.start()
        self._running = True

        logger.info("Job scheduler started with %d tasks", len(self._tasks))

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Job scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics.

        Returns:
            Statistics dictionary.
        """
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "enabled_count": sum(1 for t in self._tasks.values() if t.enabled),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


# Singleton instance
_scheduler: JobScheduler | None = None


def get_scheduler() -> JobScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = JobScheduler()
    return _scheduler


async def start_scheduler(settings: Settings) -> JobScheduler:
    """Start the scheduler and register the default jobs.

    Args:
        settings: Application settings.

    Returns:
        Started scheduler instance.
    """
    from src.domains.notification.retention import run_retention_job

    scheduler = get_scheduler()

    if settings.retention.enabled:
        scheduler.add_cron_task(
            name="Notification Cleanup",
            func=run_retention_job,
            cron_expression=settings.retention.cron,
            tz=settings.retention.timezone,
        )
    else:
        logger.info("Notification cleanup job disabled")

    await scheduler.start()
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
