# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School, class and enrollment request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from edupath.models.common import ListResponse

# =============================================================================
# Schools
# =============================================================================


class SchoolCreateRequest(BaseModel):
    """Create a school."""

    name: str = Field(min_length=2, max_length=255)
    address: str | None = None
    phone: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    principal_name: str | None = Field(default=None, max_length=255)
    academic_year: str = Field(min_length=4, max_length=20)


class SchoolUpdateRequest(BaseModel):
    """Update a school. Only provided fields change."""

    name: str | None = Field(default=None, min_length=2, max_length=255)
    address: str | None = None
    phone: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    principal_name: str | None = Field(default=None, max_length=255)
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)
    is_active: bool | None = None


class SchoolResponse(BaseModel):
    """A school with teacher and class counts."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    principal_name: str | None = None
    academic_year: str
    is_active: bool
    teacher_count: int = 0
    class_count: int = 0
    created_at: datetime
    updated_at: datetime


class SchoolListResponse(ListResponse[SchoolResponse]):
    """Paginated schools."""

    pass


class SchoolTeacherAssignRequest(BaseModel):
    """Assign a teacher to a school."""

    teacher_id: str
    academic_year: str = Field(min_length=4, max_length=20)


class SchoolTeacherResponse(BaseModel):
    """A teacher working at a school."""

    teacher_id: str
    first_name: str
    last_name: str
    email: str
    specialization: str | None = None
    academic_year: str | None = None
    class_count: int = 0


class GradeDistributionEntry(BaseModel):
    """Students and classes at one grade level."""

    grade_level: int
    student_count: int
    class_count: int


class SchoolStatistics(BaseModel):
    """Aggregate statistics for a school."""

    total_students: int
    total_teachers: int
    total_classes: int
    average_class_size: float
    grade_distribution: list[GradeDistributionEntry]


# =============================================================================
# Classes
# =============================================================================


class ClassCreateRequest(BaseModel):
    """Create a class."""

    name: str = Field(min_length=1, max_length=100)
    grade_level: int = Field(ge=1, le=12)
    section: str = Field(min_length=1, max_length=20)
    school_id: str
    teacher_id: str | None = None
    academic_year: str = Field(min_length=4, max_length=20)
    capacity: int = Field(default=30, ge=1, le=200)
    description: str | None = None


class ClassUpdateRequest(BaseModel):
    """Update a class. Only provided fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    grade_level: int | None = Field(default=None, ge=1, le=12)
    section: str | None = Field(default=None, min_length=1, max_length=20)
    teacher_id: str | None = None
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)
    capacity: int | None = Field(default=None, ge=1, le=200)
    description: str | None = None
    is_active: bool | None = None


class ClassResponse(BaseModel):
    """A class with its enrollment count."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    grade_level: int
    section: str
    school_id: str
    school_name: str | None = None
    teacher_id: str | None = None
    teacher_name: str | None = None
    academic_year: str
    capacity: int
    description: str | None = None
    is_active: bool
    enrolled_count: int = 0
    created_at: datetime
    updated_at: datetime


class ClassListResponse(ListResponse[ClassResponse]):
    """Paginated classes."""

    pass


class ClassFilters(BaseModel):
    """Filters for the class listing."""

    school_id: str | None = None
    grade_level: int | None = None
    academic_year: str | None = None
    teacher_id: str | None = None
    is_active: bool | None = None
    search: str | None = None


class EnrollStudentRequest(BaseModel):
    """Enroll a student into a class."""

    student_id: str
    academic_year: str | None = Field(
        default=None,
        description="Defaults to the class academic year",
    )


class WithdrawStudentRequest(BaseModel):
    """Withdraw a student from a class."""

    student_id: str


class TransferStudentRequest(BaseModel):
    """Move a student between classes."""

    from_class_id: str
    to_class_id: str
    academic_year: str | None = None


class EnrollmentResponse(BaseModel):
    """A student's enrollment in a class."""

    id: str
    student_id: str
    student_name: str
    student_email: str
    class_id: str
    class_name: str
    grade_level: int
    section: str
    academic_year: str
    enrolled_at: datetime
    withdrawn_at: datetime | None = None
    is_active: bool


class EnrollmentListResponse(ListResponse[EnrollmentResponse]):
    """Paginated enrollments."""

    pass


class TransferResult(BaseModel):
    """Both sides of a transfer."""

    old_enrollment: EnrollmentResponse
    new_enrollment: EnrollmentResponse


class ClassStatistics(BaseModel):
    """Enrollment statistics for a class."""

    class_id: str
    capacity: int
    enrolled_students: int
    available_spots: int
    utilization_rate: float
    withdrawn_students: int
