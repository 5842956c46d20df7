# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes and types for delivery channels.

A delivery carries one event for one user. The real-time channel emits
the event name and payload to the user's live sessions; the push channel
turns the optional PushMessage into a device notification. Channels
never raise for delivery problems: every attempt yields a ChannelResult.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ChannelType(str, Enum):
    """Supported delivery channels."""

    REALTIME = "realtime"
    PUSH = "push"


class DeliveryStatus(str, Enum):
    """Status of a delivery attempt."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PushMessage:
    """Device notification content.

    Attributes:
        title: Notification title.
        body: Notification body.
        data: Extra key/value data; values are coerced to strings on send.
    """

    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeliveryRequest:
    """One event addressed to one user.

    Attributes:
        user_id: Recipient user id.
        event: Real-time event name, e.g. "notification:new".
        payload: Real-time event payload.
        push: Push content, or None for real-time only delivery.
    """

    user_id: str
    event: str
    payload: dict[str, Any]
    push: PushMessage | None = None


@dataclass
class ChannelResult:
    """Result of a delivery attempt through one channel.

    Attributes:
        channel: The channel that was used.
        status: Delivery status.
        outcome: Short machine-readable outcome, e.g. "no-device-token".
        message_id: Provider message id if available.
        error: Error message if delivery failed.
        delivered_at: When the attempt finished.
        metadata: Additional channel-specific data.
    """

    channel: ChannelType
    status: DeliveryStatus
    outcome: str
    message_id: str | None = None
    error: str | None = None
    delivered_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Check if the attempt delivered anything."""
        return self.status == DeliveryStatus.SENT

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "channel": self.channel.value,
            "status": self.status.value,
            "outcome": self.outcome,
            "message_id": self.message_id,
            "error": self.error,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "metadata": self.metadata,
        }


class BaseChannel(ABC):
    """Abstract base class for delivery channels."""

    def __init__(self) -> None:
        """Initialize the channel."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, request: DeliveryRequest) -> ChannelResult:
        """Deliver a request through this channel.

        Args:
            request: The delivery request.

        Returns:
            ChannelResult describing the attempt.
        """
        ...

    def create_success_result(
        self,
        outcome: str = "sent",
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a successful delivery result."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            outcome=outcome,
            message_id=message_id,
            delivered_at=datetime.now(timezone.utc),
            metadata=metadata or {},
        )

    def create_failure_result(
        self,
        error: str,
        outcome: str = "failed",
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a failed delivery result."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.FAILED,
            outcome=outcome,
            error=error,
            delivered_at=datetime.now(timezone.utc),
            metadata=metadata or {},
        )

    def create_skipped_result(self, outcome: str) -> ChannelResult:
        """Create a skipped delivery result.

        Args:
            outcome: Why delivery was skipped.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SKIPPED,
            outcome=outcome,
        )
