# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Global exception handlers.

Every error response has the shape::

    {"success": false, "message": "...", "errors": [...]}

``errors`` is present only for validation failures.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from edupath.api.middleware.rate_limit import rate_limit_exceeded_handler
from edupath.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """HTTPException that also carries field-level error details."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.errors = [ErrorDetail(**error) for error in errors or []]


def error_response(
    status_code: int,
    message: str,
    errors: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a JSON error response in the common shape."""
    body = ErrorResponse(message=message, errors=errors)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def validation_error_details(errors: list[dict[str, Any]]) -> list[ErrorDetail]:
    """Flatten pydantic errors into field/message pairs.

    The leading location segment (body, query or path) is dropped.
    """
    details = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in ("body", "query", "path", "header"):
            location = location[1:]
        details.append(
            ErrorDetail(
                field=".".join(location) or None,
                message=error.get("msg", "Invalid value"),
                code=error.get("type"),
            )
        )
    return details


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException with its detail as the message."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(
        exc.status_code,
        message,
        errors=getattr(exc, "errors", None) or None,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as 400 with per-field errors."""
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        errors=validation_error_details(list(exc.errors())),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide their details from the client."""
    logger.exception(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the global exception handlers on an application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
