# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the job scheduler."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from src.core.config.settings import RetentionSettings
from src.infrastructure.background.scheduler import (
    JobScheduler,
    get_scheduler,
    parse_cron,
    start_scheduler,
    stop_scheduler,
)


@pytest.fixture(autouse=True)
async def reset_scheduler():
    """Stop the singleton scheduler between tests."""
    yield
    await stop_scheduler()


class TestParseCron:
    """Tests for parse_cron."""

    def test_daily_midnight(self) -> None:
        """Test the default retention expression."""
        trigger = parse_cron("0 0 * * *")

        assert isinstance(trigger, CronTrigger)
        fields = {f.name: str(f) for f in trigger.fields}
        assert fields["minute"] == "0"
        assert fields["hour"] == "0"
        assert str(trigger.timezone) == "UTC"

    def test_timezone(self) -> None:
        """Test the expression is bound to the given timezone."""
        trigger = parse_cron("30 2 * * 1-5", tz="Asia/Riyadh")

        assert str(trigger.timezone) == "Asia/Riyadh"

    @pytest.mark.parametrize("expression", ["", "0 0 * *", "0 0 * * * *"])
    def test_wrong_field_count(self, expression: str) -> None:
        """Test only five-field expressions are accepted."""
        with pytest.raises(ValueError):
            parse_cron(expression)

    def test_bad_field_value(self) -> None:
        """Test APScheduler rejects out-of-range values."""
        with pytest.raises(ValueError):
            parse_cron("99 0 * * *")


class TestJobScheduler:
    """Tests for JobScheduler."""

    def test_add_and_list(self) -> None:
        """Test registering a task before start."""
        scheduler = JobScheduler()

        task = scheduler.add_cron_task("Cleanup", AsyncMock(), "0 0 * * *")

        assert scheduler.get_task(task.id) is task
        assert scheduler.list_tasks() == [task]
        assert task.to_dict()["cron_expression"] == "0 0 * * *"

    def test_invalid_expression_rejected_at_registration(self) -> None:
        """Test bad configuration fails when added."""
        scheduler = JobScheduler()

        with pytest.raises(ValueError):
            scheduler.add_cron_task("Broken", AsyncMock(), "daily")

        assert scheduler.list_tasks() == []

    async def test_run_task_counts_runs(self) -> None:
        """Test manual runs update counters."""
        scheduler = JobScheduler()
        job = AsyncMock(return_value=3)
        task = scheduler.add_cron_task("Cleanup", job, "0 0 * * *")

        assert await scheduler.run_task(task.id) is True

        job.assert_awaited_once()
        assert task.run_count == 1
        assert task.last_run is not None

    async def test_failures_are_counted_not_raised(self) -> None:
        """Test a raising job only bumps the error counter."""
        scheduler = JobScheduler()
        task = scheduler.add_cron_task(
            "Cleanup", AsyncMock(side_effect=RuntimeError("db down")), "0 0 * * *"
        )

        await scheduler.run_task(task.id)

        assert task.error_count == 1
        assert task.run_count == 0
        assert scheduler.get_stats()["total_errors"] == 1

    async def test_disabled_task_does_not_run(self) -> None:
        """Test disabled tasks are skipped."""
        scheduler = JobScheduler()
        job = AsyncMock()
        task = scheduler.add_cron_task("Cleanup", job, "0 0 * * *", enabled=False)

        await scheduler.run_task(task.id)

        job.assert_not_awaited()

    async def test_unknown_task(self) -> None:
        """Test running or removing a missing task."""
        scheduler = JobScheduler()

        assert await scheduler.run_task("missing") is False
        assert scheduler.remove_task("missing") is False

    async def test_start_and_stop(self) -> None:
        """Test tasks added before start are scheduled."""
        scheduler = JobScheduler()
        task = scheduler.add_cron_task("Cleanup", AsyncMock(), "0 0 * * *")

        await scheduler.start()
        try:
            assert scheduler.is_running
            assert scheduler.remove_task(task.id) is True
        finally:
            await scheduler.stop()

        assert not scheduler.is_running


class TestStartScheduler:
    """Tests for start_scheduler."""

    async def test_registers_retention_job(self) -> None:
        """Test the daily cleanup job is registered when enabled."""
        settings = MagicMock()
        settings.retention = RetentionSettings(enabled=True, cron="0 0 * * *", timezone="UTC")

        scheduler = await start_scheduler(settings)

        assert scheduler is get_scheduler()
        assert scheduler.is_running
        assert [t.name for t in scheduler.list_tasks()] == ["Notification Cleanup"]

    async def test_retention_disabled(self) -> None:
        """Test no job is registered when retention is off."""
        settings = MagicMock()
        settings.retention = RetentionSettings(enabled=False)

        scheduler = await start_scheduler(settings)

        assert scheduler.list_tasks() == []
