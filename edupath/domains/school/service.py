# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School service for school management.

This module provides the SchoolService that handles:
- School CRUD operations (soft delete)
- Teacher assignment to schools
- School statistics, teachers and classes

Example:
    >>> school_service = SchoolService(db_session)
    >>> school = await school_service.create_school(request)
    >>> schools, total = await school_service.list_schools(limit=20)
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.auth.permissions import UserRole
from edupath.infrastructure.database.models import (
    Class,
    School,
    StudentClassEnrollment,
    TeacherProfile,
    User,
)
from edupath.models.school import (
    ClassResponse,
    GradeDistributionEntry,
    SchoolCreateRequest,
    SchoolResponse,
    SchoolStatistics,
    SchoolTeacherResponse,
    SchoolUpdateRequest,
)

logger = logging.getLogger(__name__)


class SchoolServiceError(Exception):
    """Base exception for school service errors."""

    pass


class SchoolNotFoundError(SchoolServiceError):
    """Raised when a school is not found."""

    pass


class TeacherNotFoundError(SchoolServiceError):
    """Raised when the user is not a teacher with a profile."""

    pass


class TeacherNotAssignedError(SchoolServiceError):
    """Raised when removing a teacher who does not work at the school."""

    pass


class SchoolService:
    """Service for managing schools.

    Handles school CRUD, teacher assignment, and statistics.

    Attributes:
        _db: Async database session.

    Example:
        >>> service = SchoolService(db)
        >>> school = await service.create_school(create_request)
        >>> await service.assign_teacher(school.id, teacher_id, "2025")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the school service.

        Args:
            db: Async database session.
        """
        self._db = db

    async def create_school(self, request: SchoolCreateRequest) -> SchoolResponse:
        """Create a new school.

        Args:
            request: School creation request.

        Returns:
            Created school response.
        """
        school = School(
            name=request.name,
            address=request.address,
            phone=request.phone,
            email=str(request.email) if request.email else None,
            principal_name=request.principal_name,
            academic_year=request.academic_year,
            is_active=True,
        )

        self._db.add(school)
        await self._db.commit()

        logger.info("School created: %s (%s)", school.id, school.name)
        return await self._to_response(school)

    async def get_school(self, school_id: str) -> SchoolResponse:
        """Get school by ID.

        Args:
            school_id: School identifier.

        Returns:
            School response.

        Raises:
            SchoolNotFoundError: If school not found.
        """
        school = await self._get_school(school_id)
        if not school:
            raise SchoolNotFoundError(f"School {school_id} not found")
        return await self._to_response(school)

    async def list_schools(
        self,
        academic_year: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[SchoolResponse], int]:
        """List schools with filtering.

        Args:
            academic_year: Filter by academic year.
            is_active: Filter by active status.
            search: Search in name, address and principal name.
            limit: Maximum results.
            offset: Pagination offset.

        Returns:
            Tuple of (schools list, total count).
        """
        query = select(School)

        if academic_year:
            query = query.where(School.academic_year == academic_year)

        if is_active is not None:
            query = query.where(School.is_active.is_(is_active))

        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    School.name.ilike(search_term),
                    School.address.ilike(search_term),
                    School.principal_name.ilike(search_term),
                )
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self._db.execute(count_query)).scalar() or 0

        query = query.order_by(School.name).limit(limit).offset(offset)
        result = await self._db.execute(query)
        schools = result.scalars().all()

        responses = [await self._to_response(s) for s in schools]
        return responses, total

    async def update_school(
        self,
        school_id: str,
        request: SchoolUpdateRequest,
    ) -> SchoolResponse:
        """Update a school.

        Args:
            school_id: School identifier.
            request: Update request.

        Returns:
            Updated school response.

        Raises:
            SchoolNotFoundError: If school not found.
        """
        school = await self._get_school(school_id)
        if not school:
            raise SchoolNotFoundError(f"School {school_id} not found")

        update_data = request.model_dump(exclude_unset=True)
        if update_data.get("email") is not None:
            update_data["email"] = str(update_data["email"])
        for field, value in update_data.items():
            setattr(school, field, value)

        await self._db.commit()

        logger.info("School updated: %s", school_id)
        return await self._to_response(school)

    async def delete_school(self, school_id: str) -> SchoolResponse:
        """Soft delete a school by deactivating it.

        Raises:
            SchoolNotFoundError: If school not found.
        """
        school = await self._get_school(school_id)
        if not school:
            raise SchoolNotFoundError(f"School {school_id} not found")

        school.is_active = False
        await self._db.commit()

        logger.info("School deactivated: %s", school_id)
        return await self._to_response(school)

    async def assign_teacher(
        self,
        school_id: str,
        teacher_id: str,
        academic_year: str,
    ) -> SchoolTeacherResponse:
        """Assign a teacher to a school for an academic year.

        Raises:
            SchoolNotFoundError: If school not found.
            TeacherNotFoundError: If the user is not a teacher.
        """
        if not await self._get_school(school_id):
            raise SchoolNotFoundError(f"School {school_id} not found")

        profile = await self._get_teacher_profile(teacher_id)
        if not profile:
            raise TeacherNotFoundError(f"Teacher {teacher_id} not found")

        profile.school_id = school_id
        profile.academic_year = academic_year
        await self._db.commit()

        logger.info("Teacher %s assigned to school %s", teacher_id, school_id)
        user = await self._db.get(User, teacher_id)
        return self._to_teacher_response(user, profile, 0)

    async def unassign_teacher(self, school_id: str, teacher_id: str) -> None:
        """Remove a teacher from a school.

        Raises:
            TeacherNotFoundError: If the user is not a teacher.
            TeacherNotAssignedError: If the teacher is not at this school.
        """
        profile = await self._get_teacher_profile(teacher_id)
        if not profile:
            raise TeacherNotFoundError(f"Teacher {teacher_id} not found")
        if profile.school_id != school_id:
            raise TeacherNotAssignedError("Teacher is not assigned to this school")

        profile.school_id = None
        await self._db.commit()

        logger.info("Teacher %s removed from school %s", teacher_id, school_id)

    async def get_school_statistics(
        self,
        school_id: str,
        academic_year: str | None = None,
    ) -> SchoolStatistics:
        """Compute student, teacher and class statistics for a school.

        Raises:
            SchoolNotFoundError: If school not found.
        """
        if not await self._get_school(school_id):
            raise SchoolNotFoundError(f"School {school_id} not found")

        enrolled = (
            select(
                StudentClassEnrollment.class_id,
                func.count(StudentClassEnrollment.id).label("enrolled"),
            )
            .where(StudentClassEnrollment.is_active.is_(True))
            .group_by(StudentClassEnrollment.class_id)
            .subquery()
        )
        query = (
            select(Class.grade_level, func.coalesce(enrolled.c.enrolled, 0))
            .outerjoin(enrolled, enrolled.c.class_id == Class.id)
            .where(Class.school_id == school_id)
        )
        if academic_year:
            query = query.where(Class.academic_year == academic_year)

        rows = (await self._db.execute(query)).all()

        distribution: dict[int, GradeDistributionEntry] = {}
        total_students = 0
        for grade_level, count in rows:
            total_students += count
            entry = distribution.setdefault(
                grade_level,
                GradeDistributionEntry(grade_level=grade_level, student_count=0, class_count=0),
            )
            entry.student_count += count
            entry.class_count += 1

        total_teachers = await self._db.scalar(
            select(func.count())
            .select_from(TeacherProfile)
            .where(TeacherProfile.school_id == school_id)
        )

        total_classes = len(rows)
        average = total_students / total_classes if total_classes else 0.0

        return SchoolStatistics(
            total_students=total_students,
            total_teachers=total_teachers or 0,
            total_classes=total_classes,
            average_class_size=round(average, 2),
            grade_distribution=[distribution[g] for g in sorted(distribution)],
        )

    async def get_school_teachers(
        self,
        school_id: str,
        academic_year: str | None = None,
    ) -> list[SchoolTeacherResponse]:
        """List teachers assigned to a school.

        Raises:
            SchoolNotFoundError: If school not found.
        """
        if not await self._get_school(school_id):
            raise SchoolNotFoundError(f"School {school_id} not found")

        query = (
            select(User, TeacherProfile)
            .join(TeacherProfile, TeacherProfile.user_id == User.id)
            .where(TeacherProfile.school_id == school_id)
            .order_by(User.last_name, User.first_name)
        )
        if academic_year:
            query = query.where(TeacherProfile.academic_year == academic_year)

        rows = (await self._db.execute(query)).all()

        class_counts_result = await self._db.execute(
            select(Class.teacher_id, func.count(Class.id))
            .where(Class.school_id == school_id, Class.is_active.is_(True))
            .group_by(Class.teacher_id)
        )
        class_counts = dict(class_counts_result.all())

        return [
            self._to_teacher_response(user, profile, class_counts.get(user.id, 0))
            for user, profile in rows
        ]

    async def get_school_classes(
        self,
        school_id: str,
        academic_year: str | None = None,
    ) -> list[ClassResponse]:
        """List active classes of a school by grade and section.

        Raises:
            SchoolNotFoundError: If school not found.
        """
        if not await self._get_school(school_id):
            raise SchoolNotFoundError(f"School {school_id} not found")

        query = select(Class).where(Class.school_id == school_id, Class.is_active.is_(True))
        if academic_year:
            query = query.where(Class.academic_year == academic_year)
        query = query.order_by(Class.grade_level, Class.section)

        classes = (await self._db.execute(query)).scalars().all()
        counts = await self._get_enrolled_counts([c.id for c in classes])

        responses = []
        for cls in classes:
            response = ClassResponse.model_validate(cls)
            response.school_name = cls.school.name if cls.school else None
            response.teacher_name = cls.teacher.full_name if cls.teacher else None
            response.enrolled_count = counts.get(cls.id, 0)
            responses.append(response)
        return responses

    async def _get_school(self, school_id: str) -> School | None:
        result = await self._db.execute(select(School).where(School.id == school_id))
        return result.scalar_one_or_none()

    async def _get_teacher_profile(self, teacher_id: str) -> TeacherProfile | None:
        result = await self._db.execute(
            select(TeacherProfile)
            .join(User, User.id == TeacherProfile.user_id)
            .where(
                TeacherProfile.user_id == teacher_id,
                User.role == UserRole.TEACHER.value,
            )
        )
        return result.scalar_one_or_none()

    async def _get_enrolled_counts(self, class_ids: list[str]) -> dict[str, int]:
        if not class_ids:
            return {}
        result = await self._db.execute(
            select(StudentClassEnrollment.class_id, func.count(StudentClassEnrollment.id))
            .where(
                StudentClassEnrollment.class_id.in_(class_ids),
                StudentClassEnrollment.is_active.is_(True),
            )
            .group_by(StudentClassEnrollment.class_id)
        )
        return dict(result.all())

    async def _to_response(self, school: School) -> SchoolResponse:
        """Convert school model to response with counts."""
        teacher_count = await self._db.scalar(
            select(func.count())
            .select_from(TeacherProfile)
            .where(TeacherProfile.school_id == school.id)
        )
        class_count = await self._db.scalar(
            select(func.count())
            .select_from(Class)
            .where(Class.school_id == school.id, Class.is_active.is_(True))
        )

        response = SchoolResponse.model_validate(school)
        response.teacher_count = teacher_count or 0
        response.class_count = class_count or 0
        return response

    @staticmethod
    def _to_teacher_response(
        user: User,
        profile: TeacherProfile,
        class_count: int,
    ) -> SchoolTeacherResponse:
        return SchoolTeacherResponse(
            teacher_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            specialization=profile.specialization,
            academic_year=profile.academic_year,
            class_count=class_count,
        )
