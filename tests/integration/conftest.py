# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for API integration tests.

The application is served in-process through httpx's ASGI transport, with
the request database dependency pointed at the in-memory test database.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edupath.api.app import create_app
from edupath.api.dependencies import get_db
from edupath.infrastructure.database.models import User

API = "/api/v1"


@pytest.fixture
def app(db_sessionmaker: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Application whose requests use the test database."""
    application = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with db_sessionmaker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client talking to the application in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


AuthHeaders = Callable[[User], Awaitable[dict[str, str]]]


@pytest.fixture
def auth_headers(client: httpx.AsyncClient, user_password: str) -> AuthHeaders:
    """Log a user in and return the Authorization header."""

    async def _auth_headers(user: User) -> dict[str, str]:
        response = await client.post(
            f"{API}/auth/login",
            json={"email": user.email, "password": user_password},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _auth_headers
