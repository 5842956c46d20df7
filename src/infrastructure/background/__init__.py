# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background job infrastructure.

Scheduler:
    from src.infrastructure.background import start_scheduler, stop_scheduler

    # Start scheduler with default jobs
    await start_scheduler(settings)

    # Stop at shutdown
    await stop_scheduler()
"""

from src.infrastructure.background.scheduler import (
    JobScheduler,
    ScheduledTask,
    get_scheduler,
    parse_cron,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "JobScheduler",
    "ScheduledTask",
    "get_scheduler",
    "parse_cron",
    "start_scheduler",
    "stop_scheduler",
]
