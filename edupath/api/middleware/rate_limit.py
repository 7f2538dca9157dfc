# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting using slowapi.

Rate limits are applied per client: the user ID when authenticated,
otherwise the IP address. Login attempts are limited per IP.

Example:
    @router.post("/login")
    @limiter.limit(login_limit)
    async def login(request: Request, ...):
        ...
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from edupath.core.config import get_settings
from edupath.models.common import ErrorResponse

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """Get a unique identifier for the client.

    Uses user ID if authenticated, otherwise uses IP address.
    """
    user = getattr(request.state, "user", None)
    if user:
        return f"user:{user.id}"
    return f"ip:{get_remote_address(request)}"


def get_ip_only(request: Request) -> str:
    """Get client IP address only.

    Used for login endpoints where user is not yet authenticated.
    """
    return get_remote_address(request)


def login_limit() -> str:
    """Limit string for login attempts."""
    return f"{get_settings().rate_limit.login_per_minute}/minute"


# Create the limiter instance
settings = get_settings()
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit.requests_per_minute}/minute"],
    enabled=settings.rate_limit.enabled,
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Handle rate limit exceeded errors.

    Returns a 429 Too Many Requests response in the common error shape.
    """
    logger.warning(
        "Rate limit exceeded: %s for %s",
        exc.detail,
        get_client_identifier(request),
    )

    body = ErrorResponse(message="Too many requests, please try again later")
    return JSONResponse(
        status_code=429,
        content=body.model_dump(exclude_none=True),
        headers={"Retry-After": "60"},
    )
