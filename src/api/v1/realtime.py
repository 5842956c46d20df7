# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time notification WebSocket endpoint.

- WebSocket /ws - Receive notification events for the authenticated user

Clients authenticate with a JWT, either as the ``token`` query parameter
or as a first message ``{"type": "auth", "token": "..."}``. Once
connected the server pushes events as::

    {"type": "event", "event": "notification:new", "data": {...}}

Example:
    const ws = new WebSocket(`wss://api.example.com/api/v1/ws?token=${token}`);
    ws.onmessage = (e) => console.log(JSON.parse(e.data));
    ws.send(JSON.stringify({type: "ping"}));
"""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from src.api.middleware.auth import CurrentUser
from src.core.config import get_settings
from src.domains.auth.jwt import InvalidTokenError, JWTManager, TokenExpiredError
from src.infrastructure.realtime import ConnectionState, get_session_registry
from src.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


def _authenticate(token: str | None) -> CurrentUser | None:
    """Resolve a JWT to the connecting user.

    Args:
        token: JWT from the query string or the auth message.

    Returns:
        CurrentUser if the token is valid, None otherwise.
    """
    if not token:
        return None

    try:
        payload = JWTManager(get_settings().jwt).decode_token(token)
    except (TokenExpiredError, InvalidTokenError) as e:
        logger.debug("WebSocket auth failed: %s", str(e))
        return None
    return CurrentUser.from_payload(payload)


async def _wait_for_auth(websocket: WebSocket, timeout: float) -> CurrentUser | None:
    """Ask for an auth message and authenticate it.

    Returns:
        CurrentUser, or None on timeout or a bad token.
    """
    await websocket.send_json({
        "type": "auth_required",
        "message": "Send auth message with token: {\"type\": \"auth\", \"token\": \"...\"}",
    })

    try:
        auth_data = await asyncio.wait_for(websocket.receive_json(), timeout=timeout)
    except asyncio.TimeoutError:
        await websocket.send_json({
            "type": "error",
            "code": "AUTH_TIMEOUT",
            "message": "Authentication timeout",
        })
        return None

    if isinstance(auth_data, dict) and auth_data.get("type") == "auth":
        return _authenticate(auth_data.get("token"))
    return None


@router.websocket("/ws")
async def notification_websocket(websocket: WebSocket) -> None:
    """Stream notification events to the authenticated user.

    Args:
        websocket: WebSocket connection.
    """
    await websocket.accept()

    settings = get_settings().realtime
    registry = get_session_registry()
    state: ConnectionState | None = None
    sender_task: asyncio.Task | None = None

    try:
        user = _authenticate(websocket.query_params.get("token"))
        if user is None:
            user = await _wait_for_auth(websocket, settings.auth_timeout)

        if user is None:
            await websocket.send_json({
                "type": "error",
                "code": "AUTH_FAILED",
                "message": "Invalid or expired token",
            })
            return

        state = ConnectionState(
            websocket=websocket,
            user_id=user.id,
            role=user.role,
            queue_size=settings.send_queue_size,
        )
        connections = registry.register(user.id, state)

        await websocket.send_json({
            "type": "connected",
            "userId": user.id,
            "sessionId": state.session_id,
            "connections": connections,
        })

        sender_task = asyncio.create_task(state.run_sender())

        while True:
            data = await websocket.receive_json()
            msg_type = data.get("type") if isinstance(data, dict) else None

            if msg_type == "ping":
                await state.send_message({"type": "pong", "timestamp": format_iso(utc_now())})
            else:
                await state.send_message({
                    "type": "error",
                    "code": "UNKNOWN_MESSAGE_TYPE",
                    "message": f"Unknown message type: {msg_type}",
                })

    except WebSocketDisconnect:
        logger.debug("WebSocket disconnected: user=%s", state.user_id if state else None)

    except ValueError as e:
        logger.debug("Malformed WebSocket message, closing: %s", str(e))

    finally:
        if sender_task is not None:
            sender_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender_task
        if state is not None:
            await state.close()
            registry.unregister(state.user_id, state)
        with contextlib.suppress(RuntimeError):
            await websocket.close()
