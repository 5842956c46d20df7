# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""WebSocket connection state for the real-time channel.

Each accepted WebSocket gets a ConnectionState. Events are queued on a
bounded queue and written to the socket by a dedicated sender task, so
fan-out never waits on a slow client.
"""

import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket

from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ConnectionState:
    """Manages one WebSocket connection.

    Attributes:
        websocket: The WebSocket connection.
        user_id: Authenticated user owning the connection.
        role: Role claim of the user.
        message_queue: Bounded queue of outgoing messages.
        dropped: Number of messages dropped because the queue was full.
    """

    def __init__(
        self,
        websocket: WebSocket,
        user_id: str,
        role: str,
        queue_size: int = 100,
    ) -> None:
        """Initialize connection state.

        Args:
            websocket: WebSocket connection.
            user_id: Authenticated user.
            role: Role claim of the user.
            queue_size: Maximum buffered outgoing messages.
        """
        self.websocket = websocket
        self.user_id = user_id
        self.role = role
        self.message_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0
        self.connected_at = utc_now()
        self._session_id = uuid.uuid4().hex
        self._closed = False

    @property
    def session_id(self) -> str:
        """Unique identifier of this connection."""
        return self._session_id

    @property
    def is_closed(self) -> bool:
        """Check if the connection has been closed."""
        return self._closed

    async def send_event(self, event: str, data: dict[str, Any]) -> None:
        """Queue an event for the client.

        Args:
            event: Event name, e.g. "notification:new".
            data: JSON-serializable payload.
        """
        await self.send_message({"type": "event", "event": event, "data": data})

    async def send_message(self, message: dict[str, Any]) -> None:
        """Queue a raw message for sending.

        Messages for a closed connection are ignored. When the queue is
        full the message is dropped and counted.

        Args:
            message: Message dict to send.
        """
        if self._closed:
            return
        try:
            self.message_queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Realtime queue full, dropping message: user=%s session=%s",
                self.user_id,
                self._session_id,
            )

    async def run_sender(self) -> None:
        """Write queued messages to the socket until closed or cancelled."""
        while True:
            message = await self.message_queue.get()
            try:
                await self.websocket.send_json(message)
            except (RuntimeError, ConnectionError) as e:
                logger.debug("Failed to send realtime message: %s", str(e))
                self._closed = True
                return

    async def close(self) -> None:
        """Mark connection as closed."""
        self._closed = True
