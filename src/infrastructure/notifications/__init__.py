# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification delivery.

Workflow operations commit their state change first, then hand a
DeliveryRequest to the NotificationDispatcher, which fans it out to:
- the real-time channel (live WebSocket sessions of the recipient)
- the push channel (Firebase Cloud Messaging to the recipient's device)

Both are best-effort. Failures are logged and never reach the caller.
"""

from src.infrastructure.notifications.channels import (
    ChannelResult,
    ChannelType,
    DeliveryRequest,
    DeliveryStatus,
    PushChannel,
    PushMessage,
    RealtimeChannel,
)
from src.infrastructure.notifications.dispatcher import (
    NotificationDispatcher,
    build_dispatcher,
    get_dispatcher,
    reset_dispatcher,
    set_dispatcher,
)

__all__ = [
    "ChannelResult",
    "ChannelType",
    "DeliveryRequest",
    "DeliveryStatus",
    "NotificationDispatcher",
    "PushChannel",
    "PushMessage",
    "RealtimeChannel",
    "build_dispatcher",
    "get_dispatcher",
    "reset_dispatcher",
    "set_dispatcher",
]
