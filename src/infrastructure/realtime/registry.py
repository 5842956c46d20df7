# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Session registry for the real-time channel.

Maps a user id to the live sessions that user currently has open. The
registry is rebuilt from nothing on every process start and never used
as a delivery guarantee: an event for a user without sessions is dropped.

Example:
    >>> registry = get_session_registry()
    >>> registry.register("user-1", session)
    >>> registry.sessions_for("user-1")
    [session]
"""

import logging
import threading
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class RealtimeSession(Protocol):
    """A live, server-to-client event stream for one connected client."""

    @property
    def session_id(self) -> str:
        """Unique identifier of this session."""
        ...

    async def send_event(self, event: str, data: dict[str, Any]) -> None:
        """Deliver an event to the client."""
        ...


class SessionRegistry:
    """Thread-safe user id to session set mapping.

    All mutation and snapshot reads happen under one lock, so connects,
    disconnects and fan-out lookups may interleave freely.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._sessions: dict[str, set[RealtimeSession]] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, session: RealtimeSession) -> int:
        """Add a session to a user's room.

        Args:
            user_id: Owner of the session.
            session: Session handle.

        Returns:
            Number of sessions the user now has.
        """
        with self._lock:
            sessions = self._sessions.setdefault(user_id, set())
            sessions.add(session)
            count = len(sessions)

        logger.info("Realtime session registered: user=%s session=%s (%d open)", user_id, session.session_id, count)
        return count

    def unregister(self, user_id: str, session: RealtimeSession) -> bool:
        """Remove a session from a user's room.

        Args:
            user_id: Owner of the session.
            session: Session handle.

        Returns:
            True if the session was registered.
        """
        with self._lock:
            sessions = self._sessions.get(user_id)
            if not sessions or session not in sessions:
                return False
            sessions.discard(session)
            if not sessions:
                del self._sessions[user_id]

        logger.info("Realtime session unregistered: user=%s session=%s", user_id, session.session_id)
        return True

    def sessions_for(self, user_id: str) -> list[RealtimeSession]:
        """Snapshot of a user's sessions.

        The returned list is a copy; later registrations do not change it.
        """
        with self._lock:
            return list(self._sessions.get(user_id, ()))

    def connection_count(self) -> int:
        """Total number of open sessions."""
        with self._lock:
            return sum(len(s) for s in self._sessions.values())

    def user_count(self) -> int:
        """Number of users with at least one open session."""
        with self._lock:
            return len(self._sessions)

    def is_online(self, user_id: str) -> bool:
        """Check if a user has any open session."""
        with self._lock:
            return bool(self._sessions.get(user_id))

    def clear(self) -> None:
        """Drop every session."""
        with self._lock:
            self._sessions.clear()


# Singleton registry instance
_session_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Get the process-wide session registry."""
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry()
    return _session_registry


def reset_session_registry() -> None:
    """Discard the process-wide session registry (for tests)."""
    global _session_registry
    _session_registry = None
