# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for School service."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from edupath.domains.school.service import (
    SchoolNotFoundError,
    SchoolService,
    TeacherNotAssignedError,
    TeacherNotFoundError,
)
from edupath.models.school import SchoolUpdateRequest


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.execute = AsyncMock()
    db.scalar = AsyncMock(return_value=0)
    return db


@pytest.fixture
def school_service(mock_db):
    """Create school service with mock database."""
    return SchoolService(db=mock_db)


@pytest.fixture
def sample_school():
    """Create a sample school model."""
    school = MagicMock()
    school.id = str(uuid4())
    school.name = "Al Noor School"
    school.address = "12 Garden Street"
    school.phone = None
    school.email = "info@alnoor.edu"
    school.principal_name = "Mona Said"
    school.academic_year = "2025"
    school.is_active = True
    school.created_at = datetime.now(timezone.utc)
    school.updated_at = datetime.now(timezone.utc)
    return school


def _result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


class TestSchoolServiceGet:
    """Tests for school retrieval."""

    @pytest.mark.asyncio
    async def test_get_school_success(self, school_service, mock_db, sample_school):
        """Test the response carries teacher and class counts."""
        mock_db.execute.return_value = _result(sample_school)
        mock_db.scalar.side_effect = [4, 9]

        result = await school_service.get_school(sample_school.id)

        assert result.id == sample_school.id
        assert result.name == "Al Noor School"
        assert result.teacher_count == 4
        assert result.class_count == 9

    @pytest.mark.asyncio
    async def test_get_school_not_found(self, school_service, mock_db):
        mock_db.execute.return_value = _result(None)

        with pytest.raises(SchoolNotFoundError):
            await school_service.get_school(str(uuid4()))


class TestSchoolServiceUpdate:
    """Tests for school update and soft deletion."""

    @pytest.mark.asyncio
    async def test_update_only_sets_provided_fields(self, school_service, mock_db, sample_school):
        mock_db.execute.return_value = _result(sample_school)

        result = await school_service.update_school(
            sample_school.id,
            SchoolUpdateRequest(principal_name="Karim Adel"),
        )

        assert sample_school.principal_name == "Karim Adel"
        assert sample_school.name == "Al Noor School"
        assert result.principal_name == "Karim Adel"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, school_service, mock_db, sample_school):
        """Test deleting deactivates instead of removing the row."""
        mock_db.execute.return_value = _result(sample_school)

        result = await school_service.delete_school(sample_school.id)

        assert sample_school.is_active is False
        assert result.is_active is False
        mock_db.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_not_found(self, school_service, mock_db):
        mock_db.execute.return_value = _result(None)

        with pytest.raises(SchoolNotFoundError):
            await school_service.update_school(str(uuid4()), SchoolUpdateRequest(name="New name"))
        mock_db.commit.assert_not_awaited()


class TestSchoolServiceTeachers:
    """Tests for teacher assignment."""

    @pytest.mark.asyncio
    async def test_assign_unknown_teacher(self, school_service, mock_db, sample_school):
        mock_db.execute.side_effect = [_result(sample_school), _result(None)]

        with pytest.raises(TeacherNotFoundError):
            await school_service.assign_teacher(sample_school.id, str(uuid4()), "2025")

    @pytest.mark.asyncio
    async def test_unassign_teacher_from_other_school(self, school_service, mock_db):
        profile = MagicMock()
        profile.school_id = str(uuid4())
        mock_db.execute.return_value = _result(profile)

        with pytest.raises(TeacherNotAssignedError):
            await school_service.unassign_teacher(str(uuid4()), str(uuid4()))

    @pytest.mark.asyncio
    async def test_unassign_teacher_clears_school(self, school_service, mock_db):
        school_id = str(uuid4())
        profile = MagicMock()
        profile.school_id = school_id
        profile.academic_year = "2025"
        mock_db.execute.return_value = _result(profile)

        await school_service.unassign_teacher(school_id, str(uuid4()))

        assert profile.school_id is None
        assert profile.academic_year == "2025"
        mock_db.commit.assert_awaited_once()
