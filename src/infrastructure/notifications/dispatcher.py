# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fire-and-forget delivery dispatcher.

Workflow operations hand a DeliveryRequest to the dispatcher after their
state change is committed. The dispatcher runs the request through every
channel in a detached task and returns immediately; channel outcomes are
logged and counted, never raised to the caller.

Example:
    >>> dispatcher = get_dispatcher()
    >>> dispatcher.dispatch(
    ...     DeliveryRequest(
    ...         user_id=teacher_id,
    ...         event="notification:new",
    ...         payload={"id": notification_id},
    ...     )
    ... )
"""

import asyncio
import logging
from collections import Counter
from typing import Any

from src.core.config.settings import Settings
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryRequest,
    DeliveryStatus,
)
from src.infrastructure.notifications.channels.push import PushChannel
from src.infrastructure.notifications.channels.realtime import RealtimeChannel
from src.infrastructure.realtime.registry import get_session_registry

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Runs delivery requests through all channels in the background.

    Attributes:
        channels: Channels keyed by type.
    """

    def __init__(self, realtime: BaseChannel, push: BaseChannel) -> None:
        """Initialize the dispatcher.

        Args:
            realtime: Real-time channel.
            push: Push channel.
        """
        self.channels: dict[ChannelType, BaseChannel] = {
            ChannelType.REALTIME: realtime,
            ChannelType.PUSH: push,
        }
        self._tasks: set[asyncio.Task[list[ChannelResult]]] = set()
        self._dispatched = 0
        self._outcomes: Counter[str] = Counter()
        self._statuses: Counter[DeliveryStatus] = Counter()

    @property
    def realtime(self) -> BaseChannel:
        """The real-time channel."""
        return self.channels[ChannelType.REALTIME]

    @property
    def push(self) -> BaseChannel:
        """The push channel."""
        return self.channels[ChannelType.PUSH]

    @property
    def in_flight(self) -> int:
        """Number of deliveries still running."""
        return len(self._tasks)

    def dispatch(self, request: DeliveryRequest) -> asyncio.Task[list[ChannelResult]] | None:
        """Schedule a delivery and return without waiting for it.

        Must be called from inside a running event loop. Without one the
        request is dropped and logged.

        Args:
            request: What to deliver and to whom.

        Returns:
            The background task, or None if nothing was scheduled.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop, dropping %s delivery for user %s",
                request.event,
                request.user_id,
            )
            return None

        task = loop.create_task(self.deliver(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._dispatched += 1
        return task

    async def deliver(self, request: DeliveryRequest) -> list[ChannelResult]:
        """Run a request through every channel concurrently.

        Never raises: a channel that raises is recorded as a failure.

        Args:
            request: What to deliver and to whom.

        Returns:
            One result per channel.
        """
        channels = list(self.channels.values())
        raw = await asyncio.gather(
            *(channel.send(request) for channel in channels),
            return_exceptions=True,
        )

        results: list[ChannelResult] = []
        for channel, outcome in zip(channels, raw):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(
                    "%s channel raised delivering %s to user %s: %s",
                    channel.channel_type.value,
                    request.event,
                    request.user_id,
                    str(outcome),
                    exc_info=outcome,
                )
                outcome = channel.create_failure_result(str(outcome), outcome="error")
            results.append(outcome)
            self._outcomes[f"{outcome.channel.value}:{outcome.outcome}"] += 1
            self._statuses[outcome.status] += 1

        logger.info(
            "Delivered %s to user %s: %s",
            request.event,
            request.user_id,
            ", ".join(f"{r.channel.value}={r.outcome}" for r in results),
        )

        return results

    async def drain(self, timeout: float | None = 10.0) -> int:
        """Wait for in-flight deliveries to finish.

        Args:
            timeout: Seconds to wait before giving up.

        Returns:
            Number of deliveries still running afterwards.
        """
        if not self._tasks:
            return 0

        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d deliveries still running after drain", len(pending))
        return len(pending)

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher counters.

        Returns:
            Dictionary with dispatched, in-flight and per-outcome counts.
        """
        return {
            "dispatched": self._dispatched,
            "in_flight": self.in_flight,
            "sent": self._statuses[DeliveryStatus.SENT],
            "failed": self._statuses[DeliveryStatus.FAILED],
            "skipped": self._statuses[DeliveryStatus.SKIPPED],
            "outcomes": dict(self._outcomes),
        }


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    """Build a dispatcher wired to the process-wide session registry."""
    return NotificationDispatcher(
        realtime=RealtimeChannel(get_session_registry()),
        push=PushChannel(settings.push),
    )


# Singleton dispatcher instance
_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    """Get the process-wide dispatcher, creating it on first use."""
    global _dispatcher
    if _dispatcher is None:
        from src.core.config import get_settings

        _dispatcher = build_dispatcher(get_settings())
    return _dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher | None) -> None:
    """Replace the process-wide dispatcher."""
    global _dispatcher
    _dispatcher = dispatcher


def reset_dispatcher() -> None:
    """Discard the process-wide dispatcher (for tests)."""
    set_dispatcher(None)
