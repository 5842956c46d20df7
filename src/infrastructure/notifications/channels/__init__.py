# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery channels.

- RealtimeChannel: Emits events to a user's live WebSocket sessions
- PushChannel: Sends push notifications via Firebase Cloud Messaging

Usage:
    from src.infrastructure.notifications.channels import (
        DeliveryRequest,
        PushMessage,
        RealtimeChannel,
    )

    result = await realtime.send(
        DeliveryRequest(user_id=user_id, event="notification:read", payload={...})
    )
"""

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryRequest,
    DeliveryStatus,
    PushMessage,
)
from src.infrastructure.notifications.channels.push import PushChannel, stringify_data
from src.infrastructure.notifications.channels.realtime import RealtimeChannel

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryRequest",
    "DeliveryStatus",
    "PushMessage",
    # Channels
    "PushChannel",
    "RealtimeChannel",
    "stringify_data",
]
