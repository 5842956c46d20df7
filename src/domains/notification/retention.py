# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification retention.

The retention job erases notification history once a day. By default
every notification is deleted regardless of age or status; with
RETENTION_MAX_AGE_DAYS set only notifications requested before that
window are removed.
"""

import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import RetentionSettings
from src.infrastructure.database.connection import DatabaseError, get_session
from src.infrastructure.database.models.notification import Notification
from src.utils.datetime import days_ago

logger = logging.getLogger(__name__)


class NotificationRetentionService:
    """Deletes notification history.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, settings: RetentionSettings | None = None) -> None:
        """Initialize retention service.

        Args:
            db: Async database session.
            settings: Retention configuration; defaults to a full wipe.
        """
        self.db = db
        self._settings = settings or RetentionSettings()

    async def purge(self) -> int:
        """Delete notifications covered by the retention policy.

        Returns:
            Number of notifications deleted.
        """
        statement = delete(Notification)

        max_age_days = self._settings.max_age_days
        if max_age_days is not None:
            statement = statement.where(Notification.request_date < days_ago(max_age_days))

        result = await self.db.execute(statement)
        await self.db.commit()

        deleted = result.rowcount or 0
        if max_age_days is None:
            logger.info("Notification cleanup completed: deleted %d notifications", deleted)
        else:
            logger.info(
                "Notification cleanup completed: deleted %d notifications older than %d days",
                deleted,
                max_age_days,
            )
        return deleted


async def run_retention_job() -> int | None:
    """Scheduled entry point for the retention purge.

    Failures are logged and not raised; the next scheduled run retries.

    Returns:
        Number of notifications deleted, or None if the run failed.
    """
    from src.core.config import get_settings

    logger.info("Starting scheduled notification cleanup")

    try:
        async with get_session() as session:
            return await NotificationRetentionService(session, get_settings().retention).purge()
    except DatabaseError as e:
        logger.error("Error during notification cleanup: %s", str(e))
        return None
