# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for role checks and cross-cutting API behavior."""

import pytest

pytestmark = pytest.mark.integration

API = "/api/v1"


class TestPublicEndpoints:
    """Tests for endpoints reachable without a token."""

    @pytest.mark.asyncio
    async def test_api_info(self, client):
        response = await client.get(API)

        assert response.status_code == 200
        resources = response.json()["resources"]
        assert resources["auth"] == "/api/v1/auth"
        assert resources["diagnostic_tests"] == "/api/v1/diagnostic-tests"

    @pytest.mark.asyncio
    async def test_health_without_database(self, client):
        """Test health reports 503 while the database is not initialized."""
        response = await client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["database"]["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get(API, headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, client):
        response = await client.get(API)

        assert response.headers["X-Request-ID"]


class TestRoleChecks:
    """Tests for role-restricted endpoints."""

    @pytest.mark.asyncio
    async def test_protected_route_needs_token(self, client):
        response = await client.get(f"{API}/content")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_student_cannot_create_assessment(
        self, client, student, subject, auth_headers
    ):
        response = await client.post(
            f"{API}/assessments",
            headers=await auth_headers(student),
            json={"title": "Quiz", "subject_id": subject.id, "grade_level": 5},
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Teacher or admin access required"

    @pytest.mark.asyncio
    async def test_teacher_creates_assessment(self, client, teacher, subject, auth_headers):
        response = await client.post(
            f"{API}/assessments",
            headers=await auth_headers(teacher),
            json={"title": "Quiz", "subject_id": subject.id, "grade_level": 5},
        )

        assert response.status_code == 201
        assert response.json()["created_by"] == teacher.id

    @pytest.mark.asyncio
    async def test_only_admin_creates_schools(self, client, teacher, admin, auth_headers):
        data = {"name": "Al Noor School", "academic_year": "2025"}

        as_teacher = await client.post(
            f"{API}/schools", headers=await auth_headers(teacher), json=data
        )
        as_admin = await client.post(
            f"{API}/schools", headers=await auth_headers(admin), json=data
        )

        assert as_teacher.status_code == 403
        assert as_admin.status_code == 201
        assert as_admin.json()["name"] == "Al Noor School"

    @pytest.mark.asyncio
    async def test_request_validation_error_shape(self, client, admin, auth_headers):
        response = await client.post(
            f"{API}/schools",
            headers=await auth_headers(admin),
            json={"name": "X"},
        )

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert fields == {"name", "academic_year"}


class TestStudentScope:
    """Tests that students only see their own records."""

    @pytest.mark.asyncio
    async def test_student_reads_own_points(self, client, student, auth_headers):
        response = await client.get(
            f"{API}/gamification/students/{student.id}/points",
            headers=await auth_headers(student),
        )

        assert response.status_code == 200
        assert response.json()["total_points"] == 0
        assert response.json()["rank"] == 1

    @pytest.mark.asyncio
    async def test_student_cannot_read_others(self, client, student, make_user, auth_headers):
        other = await make_user("student")

        response = await client.get(
            f"{API}/gamification/students/{other.id}/points",
            headers=await auth_headers(student),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_teacher_awards_points(self, client, teacher, student, auth_headers):
        response = await client.post(
            f"{API}/gamification/points/award",
            headers=await auth_headers(teacher),
            json={
                "student_id": student.id,
                "points": 120,
                "transaction_type": "manual_adjustment",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["new_total_points"] == 120
        assert body["level_up"]["new_level"] == 2


class TestEnrollmentApi:
    """Tests for the class enrollment endpoints."""

    @pytest.mark.asyncio
    async def test_enroll_until_full(
        self, client, admin, teacher, make_user, auth_headers
    ):
        admin_headers = await auth_headers(admin)
        school = (
            await client.post(
                f"{API}/schools",
                headers=admin_headers,
                json={"name": "Al Noor School", "academic_year": "2025"},
            )
        ).json()
        created = await client.post(
            f"{API}/classes",
            headers=admin_headers,
            json={
                "name": "5A",
                "grade_level": 5,
                "section": "A",
                "school_id": school["id"],
                "teacher_id": teacher.id,
                "academic_year": "2025",
                "capacity": 1,
            },
        )
        assert created.status_code == 201
        class_id = created.json()["id"]

        teacher_headers = await auth_headers(teacher)
        first = await make_user("student")
        second = await make_user("student")

        enrolled = await client.post(
            f"{API}/classes/{class_id}/enroll",
            headers=teacher_headers,
            json={"student_id": first.id},
        )
        full = await client.post(
            f"{API}/classes/{class_id}/enroll",
            headers=teacher_headers,
            json={"student_id": second.id},
        )
        again = await client.post(
            f"{API}/classes/{class_id}/enroll",
            headers=teacher_headers,
            json={"student_id": first.id},
        )

        assert enrolled.status_code == 201
        assert full.status_code == 400
        assert full.json()["message"] == "Class is at full capacity"
        assert again.status_code == 409


class TestContentApi:
    """Tests for content error mapping."""

    @pytest.mark.asyncio
    async def test_subject_in_use_and_foreign_update(
        self, client, teacher, admin, subject, make_user, auth_headers
    ):
        created = await client.post(
            f"{API}/content",
            headers=await auth_headers(teacher),
            json={
                "title": "Adding Fractions",
                "content_type": "lesson",
                "subject_id": subject.id,
                "grade_level": 5,
            },
        )
        other = await make_user("teacher")

        in_use = await client.delete(
            f"{API}/content/subjects/{subject.id}", headers=await auth_headers(admin)
        )
        foreign = await client.put(
            f"{API}/content/{created.json()['id']}",
            headers=await auth_headers(other),
            json={"title": "Hijacked"},
        )

        assert created.status_code == 201
        assert in_use.status_code == 409
        assert in_use.json()["message"] == "Cannot delete subject with existing content"
        assert foreign.status_code == 403
