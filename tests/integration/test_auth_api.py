# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the authentication endpoints."""

import pytest

pytestmark = pytest.mark.integration

AUTH = "/api/v1/auth"


async def _login(client, email, password):
    return await client.post(f"{AUTH}/login", json={"email": email, "password": password})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestRegister:
    """Tests for POST /auth/register."""

    @pytest.mark.asyncio
    async def test_register_student(self, client, sample_user_data):
        response = await client.post(f"{AUTH}/register", json=sample_user_data)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["user"]["email"] == "new.student@edupath.org"
        assert body["user"]["full_name"] == "Layla Hassan"
        assert body["user"]["student_profile"]["grade_level"] == 7
        assert body["user"]["student_profile"]["total_points"] == 0
        assert "password_hash" not in body["user"]

    @pytest.mark.asyncio
    async def test_email_is_normalized_and_unique(self, client, sample_user_data):
        await client.post(f"{AUTH}/register", json=sample_user_data)

        duplicate = {**sample_user_data, "email": "  New.Student@EduPath.org "}
        response = await client.post(f"{AUTH}/register", json=duplicate)

        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists"

    @pytest.mark.asyncio
    async def test_padded_email_is_accepted(self, client, sample_user_data):
        data = {**sample_user_data, "email": "  Padded@EduPath.org "}

        response = await client.post(f"{AUTH}/register", json=data)

        assert response.status_code == 201
        assert response.json()["user"]["email"] == "padded@edupath.org"

    @pytest.mark.asyncio
    async def test_collects_every_field_error(self, client, sample_user_data):
        data = {
            **sample_user_data,
            "email": "not-an-email",
            "password": "short",
            "first_name": "L",
            "grade_level": 13,
        }

        response = await client.post(f"{AUTH}/register", json=data)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        fields = {error["field"] for error in body["errors"]}
        assert fields == {"email", "password", "first_name", "grade_level"}

    @pytest.mark.asyncio
    async def test_teacher_needs_academic_year(self, client, sample_user_data):
        data = {**sample_user_data, "role": "teacher", "grade_level": None}

        response = await client.post(f"{AUTH}/register", json=data)

        assert response.status_code == 400
        assert [e["code"] for e in response.json()["errors"]] == ["MISSING_ACADEMIC_YEAR"]


class TestLogin:
    """Tests for POST /auth/login."""

    @pytest.mark.asyncio
    async def test_login_returns_token_pair(self, client, student, user_password):
        response = await _login(client, student.email, user_password)

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 15 * 60
        assert body["access_token"] != body["refresh_token"]
        assert body["user"]["id"] == student.id
        assert body["user"]["last_login"] is not None
        assert body["user"]["student_profile"]["current_streak"] == 1

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, student):
        response = await _login(client, student.email, "Wr0ng!Pass")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email_looks_the_same(self, client, user_password):
        response = await _login(client, "nobody@edupath.org", user_password)

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_deactivated_account(self, client, make_user, user_password):
        user = await make_user("student", is_active=False)

        response = await _login(client, user.email, user_password)

        assert response.status_code == 403


class TestSession:
    """Tests for /me, logout, refresh and password change."""

    @pytest.mark.asyncio
    async def test_me(self, client, teacher, auth_headers):
        response = await client.get(f"{AUTH}/me", headers=await auth_headers(teacher))

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "teacher"
        assert body["teacher_profile"]["specialization"] == "Mathematics"
        assert body["student_profile"] is None

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client):
        response = await client.get(f"{AUTH}/me")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authenticated"}

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(f"{AUTH}/me", headers=_bearer("not.a.token"))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_revokes_session(self, client, student, auth_headers):
        headers = await auth_headers(student)

        response = await client.post(f"{AUTH}/logout", headers=headers)
        assert response.status_code == 200

        response = await client.get(f"{AUTH}/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == "Session expired or revoked"

    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, client, student, user_password):
        tokens = (await _login(client, student.email, user_password)).json()

        response = await client.post(
            f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]}
        )

        assert response.status_code == 200
        rotated = response.json()
        assert rotated["access_token"] != tokens["access_token"]

        old = await client.get(f"{AUTH}/me", headers=_bearer(tokens["access_token"]))
        new = await client.get(f"{AUTH}/me", headers=_bearer(rotated["access_token"]))
        assert old.status_code == 401
        assert new.status_code == 200

        reused = await client.post(
            f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert reused.status_code == 401

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, client, student, user_password):
        tokens = (await _login(client, student.email, user_password)).json()

        response = await client.post(
            f"{AUTH}/refresh", json={"refresh_token": tokens["access_token"]}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_change_password_revokes_sessions(
        self, client, student, auth_headers, user_password
    ):
        headers = await auth_headers(student)

        response = await client.put(
            f"{AUTH}/change-password",
            headers=headers,
            json={"current_password": user_password, "new_password": "N3w!Passw0rd"},
        )
        assert response.status_code == 200

        assert (await client.get(f"{AUTH}/me", headers=headers)).status_code == 401
        assert (await _login(client, student.email, user_password)).status_code == 401
        assert (await _login(client, student.email, "N3w!Passw0rd")).status_code == 200

    @pytest.mark.asyncio
    async def test_change_password_checks_current(self, client, student, auth_headers):
        response = await client.put(
            f"{AUTH}/change-password",
            headers=await auth_headers(student),
            json={"current_password": "Wr0ng!Pass", "new_password": "N3w!Passw0rd"},
        )

        assert response.status_code == 400
