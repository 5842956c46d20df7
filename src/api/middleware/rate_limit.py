# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting using slowapi.

This module provides rate limiting functionality to protect API endpoints
from abuse. Rate limits are applied per client (user ID or IP address)
and kept in process memory.

Routes without a decorator fall under the general per-minute limit,
enforced by SlowAPIMiddleware.

Example:
    # Limit login attempts
    @limiter.limit(AUTH_LIMIT)
    async def login(request: Request, ...):
        ...
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """Get a unique identifier for the client.

    Uses user ID if authenticated, otherwise uses IP address.

    Args:
        request: HTTP request.

    Returns:
        Client identifier string.
    """
    user = getattr(request.state, "user", None)
    if user:
        return f"user:{user.id}"
    return f"ip:{get_remote_address(request)}"


def general_limit() -> str:
    """Per-client limit applied to every route without its own limit."""
    return f"{get_settings().rate_limit.requests_per_minute}/minute"


# Create the limiter instance
settings = get_settings()
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[general_limit],
    storage_uri="memory://",
    enabled=settings.rate_limit.enabled,
)

# Login and registration attempts
AUTH_LIMIT = f"{settings.rate_limit.auth_requests_per_minute}/minute"


def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Handle rate limit exceeded errors.

    Returns a 429 Too Many Requests response with retry information.

    Args:
        request: HTTP request.
        exc: Rate limit exceeded exception.

    Returns:
        JSON response with error details.
    """
    logger.warning(
        "Rate limit exceeded: %s for %s",
        exc.detail,
        get_client_identifier(request),
    )

    return JSONResponse(
        status_code=429,
        content={
            "status": "fail",
            "code": "rate_limited",
            "message": "Too many requests. Please try again later.",
        },
        headers={"Retry-After": "60"},
    )
