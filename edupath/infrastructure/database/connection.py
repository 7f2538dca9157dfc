# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in deployments and
aiosqlite in tests.

Example:
    from edupath.infrastructure.database.connection import (
        init_database,
        get_session,
    )

    # Initialize at application startup
    await init_database(settings)

    # Use in background jobs and scripts
    async with get_session() as session:
        result = await session.execute(select(User))
        users = result.scalars().all()
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from edupath.infrastructure.database.models import (
    Base,
    StudentProfile,
    TeacherProfile,
    User,
    UserSession,
)
from edupath.utils.datetime import utc_now

if TYPE_CHECKING:
    from edupath.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state for the database connection
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_database(settings: "Settings") -> None:
    """Initialize the database connection pool.

    Called once at application startup. SQLite URLs get the driver's
    default pool since they do not accept sizing arguments.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If engine creation fails.
    """
    global _engine, _sessionmaker

    engine_kwargs: dict[str, Any] = {"echo": settings.debug and not settings.db.is_sqlite}
    if not settings.db.is_sqlite:
        engine_kwargs.update(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
        )

    try:
        _engine = create_async_engine(settings.db.url, **engine_kwargs)
        _sessionmaker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e

    logger.info("Database engine initialized")


async def close_database() -> None:
    """Dispose of the engine and its pooled connections."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None
        logger.info("Database engine disposed")


def get_engine() -> AsyncEngine:
    """Get the async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the async sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session.

    The session is committed on success and rolled back on any exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    sessionmaker = get_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Check if the database is reachable with a trivial query."""
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


async def create_all() -> None:
    """Create missing tables. Development bootstrap only; use Alembic otherwise."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def get_database_stats(session: AsyncSession) -> dict[str, int]:
    """Count users, students, teachers and active sessions.

    Args:
        session: Database session.

    Returns:
        Dictionary of counts for the health endpoint.
    """
    now = utc_now()

    users = await session.scalar(select(func.count()).select_from(User))
    students = await session.scalar(select(func.count()).select_from(StudentProfile))
    teachers = await session.scalar(select(func.count()).select_from(TeacherProfile))
    active_sessions = await session.scalar(
        select(func.count()).select_from(UserSession).where(UserSession.expires_at > now)
    )

    return {
        "users": users or 0,
        "students": students or 0,
        "teachers": teachers or 0,
        "active_sessions": active_sessions or 0,
    }


async def cleanup_expired_sessions(session: AsyncSession) -> int:
    """Delete login sessions whose expiry has passed.

    Args:
        session: Database session. The caller commits.

    Returns:
        Number of deleted sessions.
    """
    result = await session.execute(
        delete(UserSession).where(UserSession.expires_at < utc_now())
    )
    deleted = result.rowcount or 0
    if deleted:
        logger.info("Cleaned up %d expired sessions", deleted)
    return deleted
