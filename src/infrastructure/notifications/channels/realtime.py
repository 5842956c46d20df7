# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time channel emitting events to a user's live sessions."""

from typing import Any

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryRequest,
)
from src.infrastructure.realtime.registry import SessionRegistry


class RealtimeChannel(BaseChannel):
    """Emits an event to every session the recipient has open.

    A failing session does not stop delivery to the user's other
    sessions. A user with no sessions is skipped; nothing is queued.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        """Initialize the channel.

        Args:
            registry: Registry of live sessions.
        """
        super().__init__()
        self._registry = registry

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.REALTIME

    async def send(self, request: DeliveryRequest) -> ChannelResult:
        """Emit the event carried by a delivery request."""
        return await self.emit(request.user_id, request.event, request.payload)

    async def emit(self, user_id: str, event: str, payload: dict[str, Any]) -> ChannelResult:
        """Emit an event to every session of a user.

        Args:
            user_id: Recipient user id.
            event: Event name.
            payload: JSON-serializable event data.

        Returns:
            ChannelResult; SKIPPED when the user has no open session.
        """
        sessions = self._registry.sessions_for(user_id)
        if not sessions:
            return self.create_skipped_result("no-active-session")

        delivered = 0
        errors: list[str] = []
        for session in sessions:
            try:
                await session.send_event(event, payload)
                delivered += 1
            except Exception as e:
                self.logger.warning(
                    "Realtime emit failed: user=%s session=%s event=%s: %s",
                    user_id,
                    session.session_id,
                    event,
                    str(e),
                )
                errors.append(str(e))

        if delivered == 0:
            return self.create_failure_result(
                f"All {len(errors)} sessions failed",
                outcome="emit-failed",
                metadata={"errors": errors},
            )

        return self.create_success_result(
            outcome="emitted",
            metadata={"sessions": delivered, "failed_sessions": len(errors)},
        )
