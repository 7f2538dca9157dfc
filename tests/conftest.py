# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (pure functions and mocked sessions)
- Integration tests (services and the HTTP API against in-memory SQLite)

The test environment is configured before any edupath module is
imported so that the cached settings and the rate limiter pick it up.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret-key-for-testing-only")
os.environ.setdefault("SECURITY_BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from edupath.domains.auth.password import PasswordHasher
from edupath.infrastructure.database.models import (
    Base,
    StudentProfile,
    Subject,
    TeacherProfile,
    User,
)

TEST_PASSWORD = "Str0ng!Pass"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (in-memory database)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database with every table.

    StaticPool keeps the single SQLite connection alive for the whole
    test so that every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_sessionmaker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    db_sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session on the test database."""
    async with db_sessionmaker() as session:
        yield session


# =============================================================================
# Data Fixtures
# =============================================================================


UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Factory creating a user with the profile matching its role."""
    hasher = PasswordHasher(rounds=4)
    counter = {"n": 0}

    async def _make_user(
        role: str = "student",
        first_name: str = "Test",
        last_name: str | None = None,
        total_points: int = 0,
        grade_level: int = 5,
        class_section: str | None = "A",
        is_active: bool = True,
        school_id: str | None = None,
        password: str = TEST_PASSWORD,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"{role}{n}@edupath.org",
            password_hash=hasher.hash(password),
            first_name=first_name,
            last_name=last_name or f"User{n}",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.flush()

        if role == "student":
            db_session.add(
                StudentProfile(
                    user_id=user.id,
                    grade_level=grade_level,
                    class_section=class_section,
                    total_points=total_points,
                    current_level=1,
                )
            )
        elif role == "teacher":
            db_session.add(
                TeacherProfile(
                    user_id=user.id,
                    school_id=school_id,
                    academic_year="2025",
                    specialization="Mathematics",
                )
            )
        await db_session.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def student(make_user: UserFactory) -> User:
    """A student with a profile and no points."""
    return await make_user("student", first_name="Sara")


@pytest_asyncio.fixture
async def teacher(make_user: UserFactory) -> User:
    """A teacher without a school."""
    return await make_user("teacher", first_name="Omar")


@pytest_asyncio.fixture
async def admin(make_user: UserFactory) -> User:
    """An administrator."""
    return await make_user("admin", first_name="Admin")


@pytest_asyncio.fixture
async def subject(db_session: AsyncSession) -> Subject:
    """A mathematics subject for grades 1 to 12."""
    subject = Subject(
        name="Mathematics",
        name_ar="الرياضيات",
        grade_levels=list(range(1, 13)),
        is_active=True,
    )
    db_session.add(subject)
    await db_session.commit()
    return subject


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_user_data() -> dict[str, Any]:
    """Provide sample registration data for testing."""
    return {
        "email": "new.student@edupath.org",
        "password": TEST_PASSWORD,
        "first_name": "Layla",
        "last_name": "Hassan",
        "role": "student",
        "grade_level": 7,
        "class_section": "B",
    }


@pytest.fixture
def user_password() -> str:
    """Password of every user built by make_user."""
    return TEST_PASSWORD
