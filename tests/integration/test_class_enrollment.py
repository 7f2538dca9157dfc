# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for schools, classes and enrollment."""

import pytest
import pytest_asyncio

from edupath.domains.class_.service import (
    AlreadyEnrolledError,
    ClassFullError,
    ClassNotFoundError,
    ClassService,
    EnrollmentNotFoundError,
    InvalidClassReferenceError,
    StudentNotFoundError,
)
from edupath.domains.school.service import SchoolService
from edupath.models.school import ClassCreateRequest, SchoolCreateRequest

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return ClassService(db_session)


@pytest_asyncio.fixture
async def school(db_session):
    """An active school for the 2025 academic year."""
    return await SchoolService(db_session).create_school(
        SchoolCreateRequest(name="Al Noor School", academic_year="2025")
    )


@pytest.fixture
def class_request(school, teacher):
    def _request(name: str = "5A", capacity: int = 30) -> ClassCreateRequest:
        return ClassCreateRequest(
            name=name,
            grade_level=5,
            section=name[-1],
            school_id=school.id,
            teacher_id=teacher.id,
            academic_year="2025",
            capacity=capacity,
        )

    return _request


class TestClassManagement:
    """Tests for class creation and school counts."""

    @pytest.mark.asyncio
    async def test_create_class(self, service, class_request, db_session, school):
        created = await service.create_class(class_request())

        assert created.school_name == "Al Noor School"
        assert created.teacher_name.startswith("Omar")
        assert created.enrolled_count == 0

        refreshed = await SchoolService(db_session).get_school(school.id)
        assert refreshed.class_count == 1

    @pytest.mark.asyncio
    async def test_unknown_school(self, service, teacher):
        with pytest.raises(InvalidClassReferenceError):
            await service.create_class(
                ClassCreateRequest(
                    name="5A",
                    grade_level=5,
                    section="A",
                    school_id="missing-school",
                    teacher_id=teacher.id,
                    academic_year="2025",
                )
            )

    @pytest.mark.asyncio
    async def test_student_is_not_a_teacher(self, service, school, student):
        with pytest.raises(InvalidClassReferenceError):
            await service.create_class(
                ClassCreateRequest(
                    name="5A",
                    grade_level=5,
                    section="A",
                    school_id=school.id,
                    teacher_id=student.id,
                    academic_year="2025",
                )
            )

    @pytest.mark.asyncio
    async def test_deleted_class_rejects_enrollment(self, service, class_request, student):
        created = await service.create_class(class_request())
        await service.delete_class(created.id)

        with pytest.raises(ClassNotFoundError):
            await service.enroll_student(created.id, student.id)


class TestEnrollment:
    """Tests for enroll, withdraw and capacity."""

    @pytest.mark.asyncio
    async def test_enroll_defaults_to_class_year(self, service, class_request, student):
        created = await service.create_class(class_request())

        enrollment = await service.enroll_student(created.id, student.id)

        assert enrollment.academic_year == "2025"
        assert enrollment.class_name == "5A"
        assert enrollment.is_active is True
        assert (await service.get_class(created.id)).enrolled_count == 1

    @pytest.mark.asyncio
    async def test_one_active_class_per_year(self, service, class_request, student):
        first = await service.create_class(class_request("5A"))
        second = await service.create_class(class_request("5B"))
        await service.enroll_student(first.id, student.id)

        with pytest.raises(AlreadyEnrolledError):
            await service.enroll_student(second.id, student.id)

    @pytest.mark.asyncio
    async def test_capacity_is_enforced(self, service, class_request, make_user):
        created = await service.create_class(class_request(capacity=1))
        first = await make_user("student")
        second = await make_user("student")
        await service.enroll_student(created.id, first.id)

        with pytest.raises(ClassFullError):
            await service.enroll_student(created.id, second.id)

    @pytest.mark.asyncio
    async def test_only_students_can_enroll(self, service, class_request, teacher):
        created = await service.create_class(class_request())

        with pytest.raises(StudentNotFoundError):
            await service.enroll_student(created.id, teacher.id)

    @pytest.mark.asyncio
    async def test_withdraw_frees_the_seat(self, service, class_request, make_user):
        created = await service.create_class(class_request(capacity=1))
        first = await make_user("student")
        second = await make_user("student")
        await service.enroll_student(created.id, first.id)

        withdrawn = await service.withdraw_student(created.id, first.id)
        enrollment = await service.enroll_student(created.id, second.id)

        assert withdrawn.is_active is False
        assert withdrawn.withdrawn_at is not None
        assert enrollment.student_id == second.id

    @pytest.mark.asyncio
    async def test_withdraw_without_enrollment(self, service, class_request, student):
        created = await service.create_class(class_request())

        with pytest.raises(EnrollmentNotFoundError):
            await service.withdraw_student(created.id, student.id)


class TestTransfer:
    """Tests for moving students between classes."""

    @pytest.mark.asyncio
    async def test_transfer(self, service, class_request, student):
        source = await service.create_class(class_request("5A"))
        target = await service.create_class(class_request("5B"))
        await service.enroll_student(source.id, student.id)

        result = await service.transfer_student(student.id, source.id, target.id)

        assert result.old_enrollment.is_active is False
        assert result.new_enrollment.class_id == target.id
        assert result.new_enrollment.academic_year == "2025"

        history = await service.get_student_enrollment_history(student.id)
        assert {e.class_id for e in history} == {source.id, target.id}

    @pytest.mark.asyncio
    async def test_failed_transfer_keeps_original_enrollment(
        self, service, class_request, student, make_user
    ):
        """Test a full target class rolls back the withdrawal too."""
        source = await service.create_class(class_request("5A"))
        target = await service.create_class(class_request("5B", capacity=1))
        await service.enroll_student(target.id, (await make_user("student")).id)
        student_id = student.id
        await service.enroll_student(source.id, student.id)

        with pytest.raises(ClassFullError):
            await service.transfer_student(student.id, source.id, target.id)

        students, total = await service.get_class_students(source.id)
        assert total == 1
        assert students[0].student_id == student_id


class TestClassStatistics:
    """Tests for get_class_statistics."""

    @pytest.mark.asyncio
    async def test_statistics(self, service, class_request, make_user):
        created = await service.create_class(class_request(capacity=4))
        for _ in range(3):
            await service.enroll_student(created.id, (await make_user("student")).id)
        leaver = await make_user("student")
        await service.enroll_student(created.id, leaver.id)
        await service.withdraw_student(created.id, leaver.id)

        stats = await service.get_class_statistics(created.id)

        assert stats.enrolled_students == 3
        assert stats.withdrawn_students == 1
        assert stats.available_spots == 1
        assert stats.utilization_rate == 75.0
