# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Push notification channel using Firebase Cloud Messaging.

This channel sends push notifications to the single device a user has
registered, using the FCM HTTP v1 API. Credentials come from a service
account JSON file or from the inline project id / client email / private
key triple.

Configuration (via environment variables):
- FIREBASE_CREDENTIALS_PATH: Path to service account JSON file
- FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL, FIREBASE_PRIVATE_KEY:
  Inline service account credentials
- FIREBASE_ANDROID_CHANNEL_ID: Android notification channel

Without credentials the channel is a no-op that reports
"firebase-not-configured".
"""

import asyncio
import json
from typing import Any, AsyncContextManager, Callable

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import PushSettings
from src.infrastructure.database.connection import DatabaseError, get_session
from src.infrastructure.database.models.user import User
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryRequest,
    PushMessage,
)

# FCM HTTP v1 API endpoint template
FCM_API_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
FCM_SCOPES = ["https://www.googleapis.com/auth/firebase.messaging"]
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# FCM error codes meaning the stored registration token is dead
STALE_TOKEN_CODES = frozenset({"UNREGISTERED"})

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def stringify_data(data: dict[str, Any] | None) -> dict[str, str]:
    """Coerce every data value to a string.

    FCM only accepts string values in the data block. None becomes an
    empty string, booleans become "true"/"false", containers are
    JSON-encoded and everything else goes through str().

    Args:
        data: Arbitrary key/value data.

    Returns:
        Dictionary with string values.
    """
    out: dict[str, str] = {}
    for key, value in (data or {}).items():
        if isinstance(value, str):
            out[key] = value
        elif value is None:
            out[key] = ""
        elif isinstance(value, bool):
            out[key] = "true" if value else "false"
        elif isinstance(value, (dict, list, tuple)):
            out[key] = json.dumps(value, default=str)
        else:
            out[key] = str(value)
    return out


def _is_stale_token_error(body: dict[str, Any]) -> bool:
    """Check if an FCM error body reports an invalid registration token."""
    error = body.get("error") or {}
    for detail in error.get("details") or []:
        if detail.get("errorCode") in STALE_TOKEN_CODES:
            return True
    message = str(error.get("message", "")).lower()
    return error.get("status") == "INVALID_ARGUMENT" and "registration token" in message


class PushChannel(BaseChannel):
    """Push notification channel using Firebase Cloud Messaging.

    Looks up the recipient's device token, sends one FCM message, and
    clears the stored token when FCM reports it as unregistered or
    invalid. Every failure ends up in the returned ChannelResult.
    """

    def __init__(
        self,
        settings: PushSettings,
        session_factory: SessionFactory = get_session,
        http_client: httpx.AsyncClient | None = None,
        credentials: Any = None,
    ) -> None:
        """Initialize the push channel.

        Args:
            settings: Firebase configuration.
            session_factory: Opens a database session for token lookups.
            http_client: Shared HTTP client; one is created per send if None.
            credentials: Preloaded google-auth credentials.
        """
        super().__init__()
        self._settings = settings
        self._session_factory = session_factory
        self._http_client = http_client
        self._credentials = credentials
        self._project_id: str | None = settings.project_id
        self._initialized = credentials is not None and bool(settings.project_id)
        self._init_error: str | None = None

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.PUSH

    @property
    def is_configured(self) -> bool:
        """Check if credentials were supplied."""
        return self._credentials is not None or self._settings.is_configured

    @property
    def credential_source(self) -> str | None:
        """Which credential source is in use: "file", "inline" or None."""
        if self._settings.credentials_path:
            return "file"
        if self._settings.has_inline_credentials:
            return "inline"
        return None

    @property
    def project_id(self) -> str | None:
        """Firebase project the channel sends through."""
        return self._project_id

    def _ensure_initialized(self) -> bool:
        """Ensure Firebase credentials are loaded.

        Returns:
            True if initialization succeeded.
        """
        if self._initialized:
            return True

        if self._init_error:
            return False

        if not self._settings.is_configured:
            self._init_error = "firebase-not-configured"
            self.logger.warning(
                "Push notifications disabled: FIREBASE_CREDENTIALS_PATH or "
                "FIREBASE_PROJECT_ID/CLIENT_EMAIL/PRIVATE_KEY not set"
            )
            return False

        try:
            if self._settings.credentials_path:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=FCM_SCOPES,
                )
            else:
                private_key = self._settings.private_key.get_secret_value()
                self._credentials = service_account.Credentials.from_service_account_info(
                    {
                        "type": "service_account",
                        "project_id": self._settings.project_id,
                        "client_email": self._settings.client_email,
                        # Stored with escaped newlines in env files
                        "private_key": private_key.replace("\\n", "\n"),
                        "token_uri": GOOGLE_TOKEN_URI,
                    },
                    scopes=FCM_SCOPES,
                )
        except (OSError, ValueError, GoogleAuthError) as e:
            self._init_error = "firebase-init-failed"
            self.logger.error("Failed to initialize FCM credentials: %s", str(e))
            return False

        self._project_id = self._settings.project_id or self._credentials.project_id
        self._initialized = True

        self.logger.info("FCM push channel initialized for project %s", self._project_id)
        return True

    async def _get_access_token(self) -> str | None:
        """Get OAuth2 access token for FCM API.

        Returns:
            Access token string or None if failed.
        """
        if not self._credentials:
            return None

        if getattr(self._credentials, "valid", False) and self._credentials.token:
            return self._credentials.token

        try:
            # Refresh is blocking, run it in the thread pool
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._credentials.refresh, Request())
            return self._credentials.token
        except GoogleAuthError as e:
            self.logger.error("Failed to get FCM access token: %s", str(e))
            return None

    async def send(self, request: DeliveryRequest) -> ChannelResult:
        """Send the push part of a delivery request.

        Args:
            request: Delivery request; requests without push content are skipped.

        Returns:
            ChannelResult with delivery status.
        """
        if request.push is None:
            return self.create_skipped_result("no-push-content")
        return await self.send_to_user(request.user_id, request.push)

    async def send_to_user(self, user_id: str, push: PushMessage) -> ChannelResult:
        """Send a push notification to a user's registered device.

        Args:
            user_id: Recipient user id.
            push: Title, body and data.

        Returns:
            ChannelResult; SKIPPED with "firebase-not-configured",
            "user-not-found" or "no-device-token" when nothing was sent.
        """
        if not self._ensure_initialized():
            return self.create_skipped_result(self._init_error or "firebase-not-configured")

        token = await self._lookup_token(user_id)
        if isinstance(token, ChannelResult):
            return token

        access_token = await self._get_access_token()
        if not access_token:
            return self.create_failure_result("Failed to obtain access token", outcome="auth-failed")

        message = self._build_fcm_message(token, push)
        url = FCM_API_URL.format(project_id=self._project_id)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._post(url, headers, {"message": message})
        except httpx.HTTPError as e:
            self.logger.error("Failed to send push to user %s: %s", user_id, str(e))
            return self.create_failure_result(str(e), outcome="failed")

        if response.status_code == 200:
            message_id = response.json().get("name", "").split("/")[-1]
            self.logger.info("Push sent to user %s (token %s...): %s", user_id, token[:20], message_id)
            return self.create_success_result(outcome="sent", message_id=message_id)

        error_text = response.text
        self.logger.warning(
            "FCM request failed for user %s (%d): %s",
            user_id,
            response.status_code,
            error_text,
        )

        try:
            body = response.json()
        except ValueError:
            body = {}

        if isinstance(body, dict) and _is_stale_token_error(body):
            await self._clear_token(user_id, token)
            return self.create_failure_result(
                error_text,
                outcome="token-cleared",
                metadata={"status_code": response.status_code},
            )

        return self.create_failure_result(
            error_text,
            outcome="failed",
            metadata={"status_code": response.status_code},
        )

    async def _post(
        self,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
    ) -> httpx.Response:
        """POST to FCM using the shared client or a short-lived one."""
        if self._http_client is not None:
            return await self._http_client.post(url, headers=headers, json=body)

        async with httpx.AsyncClient(timeout=self._settings.timeout) as client:
            return await client.post(url, headers=headers, json=body)

    async def _lookup_token(self, user_id: str) -> str | ChannelResult:
        """Load a user's device token or a SKIPPED result explaining its absence."""
        try:
            async with self._session_factory() as db:
                user = await db.get(User, user_id)
                token = user.device_token if user else None
                found = user is not None
        except (DatabaseError, SQLAlchemyError) as e:
            self.logger.error("Device token lookup failed for user %s: %s", user_id, str(e))
            return self.create_failure_result(str(e), outcome="lookup-failed")

        if not found:
            self.logger.warning("User not found, skipping push: %s", user_id)
            return self.create_skipped_result("user-not-found")
        if not token:
            self.logger.info("No device token for user, skipping push: %s", user_id)
            return self.create_skipped_result("no-device-token")
        return token

    async def _clear_token(self, user_id: str, token: str) -> None:
        """Clear a stale device token unless the user registered a new one."""
        try:
            async with self._session_factory() as db:
                await db.execute(
                    update(User)
                    .where(User.id == user_id, User.device_token == token)
                    .values(
                        device_token=None,
                        device_platform=None,
                        device_token_updated_at=None,
                    )
                )
                await db.commit()
        except (DatabaseError, SQLAlchemyError) as e:
            self.logger.warning("Failed to remove invalid device token for user %s: %s", user_id, str(e))
            return

        self.logger.warning("Removed invalid device token for user: %s", user_id)

    def _build_fcm_message(self, token: str, push: PushMessage) -> dict[str, Any]:
        """Build FCM message structure.

        Args:
            token: Device token.
            push: Notification content.

        Returns:
            FCM message dictionary.
        """
        return {
            "token": token,
            "notification": {
                "title": push.title,
                "body": push.body,
            },
            "data": stringify_data(push.data),
            "android": {
                "priority": "high",
                "notification": {
                    "channel_id": self._settings.android_channel_id,
                    "sound": "default",
                    "click_action": "FLUTTER_NOTIFICATION_CLICK",
                },
            },
            "apns": {
                "headers": {
                    "apns-priority": "10",
                },
                "payload": {
                    "aps": {
                        "alert": {"title": push.title, "body": push.body},
                        "sound": "default",
                        "badge": 1,
                    },
                },
            },
        }

    def get_status(self) -> dict[str, Any]:
        """Describe the channel configuration for diagnostics."""
        return {
            "configured": self.is_configured,
            "project_id": self._project_id,
            "credential_source": self.credential_source,
            "init_error": self._init_error,
        }
