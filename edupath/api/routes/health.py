# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides the health endpoint for the API.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from edupath import __version__
from edupath.core.config import get_settings
from edupath.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    get_database_stats,
    get_session,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class DatabaseStats(BaseModel):
    """Row counts reported by the health check."""
    users: int = 0
    students: int = 0
    teachers: int = 0
    active_sessions: int = 0


class DatabaseHealth(BaseModel):
    """Database health status."""
    status: str = Field(description="Database status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    stats: DatabaseStats | None = None
    message: str | None = Field(None, description="Additional status message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    database: DatabaseHealth


async def check_database() -> DatabaseHealth:
    """Check the database connection and collect row counts."""
    start = time.time()
    if not await check_database_connection():
        return DatabaseHealth(status="unhealthy", message="Database unreachable")

    try:
        async with get_session() as session:
            stats = await get_database_stats(session)
    except (DatabaseError, SQLAlchemyError) as e:
        logger.error("Database health check failed: %s", str(e))
        return DatabaseHealth(status="unhealthy", message=str(e))

    latency = (time.time() - start) * 1000
    return DatabaseHealth(
        status="healthy",
        latency_ms=round(latency, 2),
        stats=DatabaseStats(**stats),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> JSONResponse:
    """Check if the API and its database are healthy.

    Returns:
        HealthResponse, with status 503 when the database is unhealthy.
    """
    settings = get_settings()
    db_health = await check_database()
    overall_status = "healthy" if db_health.status == "healthy" else "unhealthy"

    body = HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        database=db_health,
    )
    return JSONResponse(
        status_code=200 if overall_status == "healthy" else 503,
        content=body.model_dump(mode="json"),
    )
