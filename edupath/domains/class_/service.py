# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for class sections and student enrollment.

This module provides the ClassService that handles:
- Class CRUD operations (soft delete)
- Student enrollment, withdrawal and transfer
- Class rosters, statistics and enrollment history

A student holds at most one active enrollment per academic year, and
a class never holds more active enrollments than its capacity.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.auth.permissions import UserRole
from edupath.infrastructure.database.models import (
    Class,
    School,
    StudentClassEnrollment,
    User,
)
from edupath.models.school import (
    ClassCreateRequest,
    ClassFilters,
    ClassResponse,
    ClassStatistics,
    ClassUpdateRequest,
    EnrollmentResponse,
    TransferResult,
)
from edupath.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 30


class ClassServiceError(Exception):
    """Base exception for class service errors."""

    pass


class ClassNotFoundError(ClassServiceError):
    """Raised when a class is not found."""

    pass


class StudentNotFoundError(ClassServiceError):
    """Raised when the user is not an existing student."""

    pass


class AlreadyEnrolledError(ClassServiceError):
    """Raised when the student already has an enrollment for the academic year."""

    pass


class ClassFullError(ClassServiceError):
    """Raised when the class has reached its capacity."""

    pass


class EnrollmentNotFoundError(ClassServiceError):
    """Raised when no active enrollment matches."""

    pass


class InvalidClassReferenceError(ClassServiceError):
    """Raised when the school or teacher of a class does not exist."""

    pass


class ClassService:
    """Service for classes and enrollments.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the class service.

        Args:
            db: Async database session.
        """
        self._db = db

    # =========================================================================
    # Classes
    # =========================================================================

    async def create_class(self, request: ClassCreateRequest) -> ClassResponse:
        """Create a class.

        Raises:
            InvalidClassReferenceError: If the school or teacher is unknown.
        """
        await self._validate_references(request.school_id, request.teacher_id)

        cls = Class(
            name=request.name,
            grade_level=request.grade_level,
            section=request.section,
            school_id=request.school_id,
            teacher_id=request.teacher_id,
            academic_year=request.academic_year,
            capacity=request.capacity,
            description=request.description,
            is_active=True,
        )
        self._db.add(cls)
        await self._db.commit()

        logger.info("Class created: %s (%s %s)", cls.id, cls.name, cls.section)
        return await self.get_class(cls.id)

    async def update_class(self, class_id: str, request: ClassUpdateRequest) -> ClassResponse:
        """Update a class.

        Raises:
            ClassNotFoundError: If the class does not exist.
            InvalidClassReferenceError: If the new teacher is unknown.
        """
        cls = await self._get_class(class_id)
        if not cls:
            raise ClassNotFoundError(f"Class {class_id} not found")

        updates = request.model_dump(exclude_unset=True)
        if updates.get("teacher_id"):
            await self._validate_references(None, updates["teacher_id"])

        for field, value in updates.items():
            setattr(cls, field, value)

        await self._db.commit()
        logger.info("Class updated: %s", class_id)
        return await self.get_class(class_id)

    async def delete_class(self, class_id: str) -> ClassResponse:
        """Soft delete a class.

        Raises:
            ClassNotFoundError: If the class does not exist.
        """
        cls = await self._get_class(class_id)
        if not cls:
            raise ClassNotFoundError(f"Class {class_id} not found")

        cls.is_active = False
        await self._db.commit()
        logger.info("Class deactivated: %s", class_id)
        return await self.get_class(class_id)

    async def get_class(self, class_id: str) -> ClassResponse:
        """Get a class with school, teacher and enrollment count.

        Raises:
            ClassNotFoundError: If the class does not exist.
        """
        result = await self._db.execute(
            select(Class).where(Class.id == class_id).execution_options(populate_existing=True)
        )
        cls = result.scalar_one_or_none()
        if not cls:
            raise ClassNotFoundError(f"Class {class_id} not found")
        counts = await self._get_enrolled_counts([cls.id])
        return self._to_response(cls, counts.get(cls.id, 0))

    async def list_classes(
        self,
        filters: ClassFilters,
        limit: int = 20,
        offset: int = 0,
        current_user_id: str | None = None,
        current_role: str | None = None,
    ) -> tuple[list[ClassResponse], int]:
        """List classes ordered by grade level and section.

        Teachers only see the classes they teach.

        Returns:
            Tuple of (classes, total count).
        """
        stmt = select(Class)

        if current_role == UserRole.TEACHER.value and current_user_id:
            stmt = stmt.where(Class.teacher_id == current_user_id)
        elif filters.teacher_id:
            stmt = stmt.where(Class.teacher_id == filters.teacher_id)

        if filters.school_id:
            stmt = stmt.where(Class.school_id == filters.school_id)
        if filters.grade_level is not None:
            stmt = stmt.where(Class.grade_level == filters.grade_level)
        if filters.academic_year:
            stmt = stmt.where(Class.academic_year == filters.academic_year)
        if filters.is_active is not None:
            stmt = stmt.where(Class.is_active.is_(filters.is_active))
        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Class.name.ilike(search_term),
                    Class.section.ilike(search_term),
                    Class.description.ilike(search_term),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Class.grade_level, Class.section).limit(limit).offset(offset)
        classes = (await self._db.execute(stmt)).scalars().all()
        counts = await self._get_enrolled_counts([c.id for c in classes])

        return [self._to_response(c, counts.get(c.id, 0)) for c in classes], total

    # =========================================================================
    # Enrollment
    # =========================================================================

    async def enroll_student(
        self,
        class_id: str,
        student_id: str,
        academic_year: str | None = None,
        commit: bool = True,
    ) -> EnrollmentResponse:
        """Enroll a student into a class.

        Args:
            class_id: Target class.
            student_id: Student user ID.
            academic_year: Defaults to the class academic year.
            commit: Commit the transaction. Transfers pass False.

        Raises:
            ClassNotFoundError: If the class does not exist.
            StudentNotFoundError: If the user is not a student.
            AlreadyEnrolledError: If an active enrollment exists for the year.
            ClassFullError: If the class is at capacity.
        """
        cls = await self._get_class(class_id)
        if not cls or not cls.is_active:
            raise ClassNotFoundError(f"Class {class_id} not found")

        student = await self._db.get(User, student_id)
        if not student or student.role != UserRole.STUDENT.value:
            raise StudentNotFoundError(f"Student {student_id} not found")

        year = academic_year or cls.academic_year

        existing = await self._db.scalar(
            select(func.count())
            .select_from(StudentClassEnrollment)
            .where(
                StudentClassEnrollment.student_id == student_id,
                StudentClassEnrollment.academic_year == year,
                StudentClassEnrollment.is_active.is_(True),
            )
        )
        if existing:
            raise AlreadyEnrolledError(
                "Student is already enrolled in a class for this academic year"
            )

        enrolled = (await self._get_enrolled_counts([class_id])).get(class_id, 0)
        if enrolled >= (cls.capacity or DEFAULT_CAPACITY):
            raise ClassFullError("Class is at full capacity")

        enrollment = StudentClassEnrollment(
            student_id=student_id,
            class_id=class_id,
            academic_year=year,
            enrolled_at=utc_now(),
            is_active=True,
        )
        enrollment.student = student
        enrollment.class_ = cls
        self._db.add(enrollment)

        if commit:
            await self._db.commit()
        else:
            await self._db.flush()

        logger.info("Student %s enrolled in class %s (%s)", student_id, class_id, year)
        return self._to_enrollment(enrollment)

    async def withdraw_student(
        self,
        class_id: str,
        student_id: str,
        commit: bool = True,
    ) -> EnrollmentResponse:
        """Withdraw a student from a class.

        Raises:
            EnrollmentNotFoundError: If no active enrollment exists.
        """
        result = await self._db.execute(
            select(StudentClassEnrollment).where(
                StudentClassEnrollment.class_id == class_id,
                StudentClassEnrollment.student_id == student_id,
                StudentClassEnrollment.is_active.is_(True),
            )
        )
        enrollment = result.scalars().first()
        if not enrollment:
            raise EnrollmentNotFoundError("Student is not enrolled in this class")

        enrollment.is_active = False
        enrollment.withdrawn_at = utc_now()

        if commit:
            await self._db.commit()
        else:
            await self._db.flush()

        logger.info("Student %s withdrawn from class %s", student_id, class_id)
        return self._to_enrollment(enrollment)

    async def transfer_student(
        self,
        student_id: str,
        from_class_id: str,
        to_class_id: str,
        academic_year: str | None = None,
    ) -> TransferResult:
        """Move a student between classes in one transaction.

        Any failure rolls back both the withdrawal and the enrollment.
        """
        try:
            old = await self.withdraw_student(from_class_id, student_id, commit=False)
            new = await self.enroll_student(
                to_class_id,
                student_id,
                academic_year=academic_year or old.academic_year,
                commit=False,
            )
            await self._db.commit()
        except ClassServiceError:
            await self._db.rollback()
            raise

        logger.info(
            "Student %s transferred from %s to %s",
            student_id,
            from_class_id,
            to_class_id,
        )
        return TransferResult(old_enrollment=old, new_enrollment=new)

    async def get_class_students(
        self,
        class_id: str,
        is_active: bool | None = True,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[EnrollmentResponse], int]:
        """List a class roster.

        Raises:
            ClassNotFoundError: If the class does not exist.
        """
        if not await self._get_class(class_id):
            raise ClassNotFoundError(f"Class {class_id} not found")

        stmt = select(StudentClassEnrollment).where(StudentClassEnrollment.class_id == class_id)
        if is_active is not None:
            stmt = stmt.where(StudentClassEnrollment.is_active.is_(is_active))

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(StudentClassEnrollment.enrolled_at.asc()).limit(limit).offset(offset)
        enrollments = (await self._db.execute(stmt)).scalars().all()
        return [self._to_enrollment(e) for e in enrollments], total

    async def get_class_statistics(
        self,
        class_id: str,
        academic_year: str | None = None,
    ) -> ClassStatistics:
        """Compute enrollment statistics for a class.

        Raises:
            ClassNotFoundError: If the class does not exist.
        """
        cls = await self._get_class(class_id)
        if not cls:
            raise ClassNotFoundError(f"Class {class_id} not found")

        base = select(func.count()).select_from(StudentClassEnrollment).where(
            StudentClassEnrollment.class_id == class_id
        )
        if academic_year:
            base = base.where(StudentClassEnrollment.academic_year == academic_year)

        enrolled = await self._db.scalar(
            base.where(StudentClassEnrollment.is_active.is_(True))
        ) or 0
        withdrawn = await self._db.scalar(
            base.where(StudentClassEnrollment.is_active.is_(False))
        ) or 0

        capacity = cls.capacity or DEFAULT_CAPACITY
        return ClassStatistics(
            class_id=class_id,
            capacity=capacity,
            enrolled_students=enrolled,
            available_spots=max(0, capacity - enrolled),
            utilization_rate=round(enrolled / capacity * 100, 2),
            withdrawn_students=withdrawn,
        )

    async def get_student_enrollment_history(self, student_id: str) -> list[EnrollmentResponse]:
        """List every enrollment of a student, newest first."""
        result = await self._db.execute(
            select(StudentClassEnrollment)
            .where(StudentClassEnrollment.student_id == student_id)
            .order_by(StudentClassEnrollment.enrolled_at.desc())
        )
        return [self._to_enrollment(e) for e in result.scalars().all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_class(self, class_id: str) -> Class | None:
        result = await self._db.execute(select(Class).where(Class.id == class_id))
        return result.scalar_one_or_none()

    async def _validate_references(self, school_id: str | None, teacher_id: str | None) -> None:
        if school_id and not await self._db.get(School, school_id):
            raise InvalidClassReferenceError(f"School {school_id} not found")
        if teacher_id:
            teacher = await self._db.get(User, teacher_id)
            if not teacher or teacher.role != UserRole.TEACHER.value:
                raise InvalidClassReferenceError(f"Teacher {teacher_id} not found")

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

    @staticmethod
    def _to_response(cls: Class, enrolled_count: int) -> ClassResponse:
        response = ClassResponse.model_validate(cls)
        response.school_name = cls.school.name if cls.school else None
        response.teacher_name = cls.teacher.full_name if cls.teacher else None
        response.enrolled_count = enrolled_count
        return response

    @staticmethod
    def _to_enrollment(enrollment: StudentClassEnrollment) -> EnrollmentResponse:
        student = enrollment.student
        cls = enrollment.class_
        return EnrollmentResponse(
            id=enrollment.id,
            student_id=enrollment.student_id,
            student_name=student.full_name if student else "",
            student_email=student.email if student else "",
            class_id=enrollment.class_id,
            class_name=cls.name if cls else "",
            grade_level=cls.grade_level if cls else 0,
            section=cls.section if cls else "",
            academic_year=enrollment.academic_year,
            enrolled_at=enrollment.enrolled_at,
            withdrawn_at=enrollment.withdrawn_at,
            is_active=enrollment.is_active,
        )
