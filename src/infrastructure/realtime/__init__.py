# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time session tracking for server-to-client events."""

from src.infrastructure.realtime.connection import ConnectionState
from src.infrastructure.realtime.registry import (
    RealtimeSession,
    SessionRegistry,
    get_session_registry,
    reset_session_registry,
)

__all__ = [
    "ConnectionState",
    "RealtimeSession",
    "SessionRegistry",
    "get_session_registry",
    "reset_session_registry",
]
