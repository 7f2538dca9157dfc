# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication request and response models.

Registration fields are validated by the auth service rather than by
pydantic so that all failures are reported together under the
VALIDATION_ERROR code.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """New account registration."""

    email: str
    password: str
    first_name: str
    last_name: str
    role: str = "student"
    phone: str | None = None
    grade_level: int | None = None
    class_section: str | None = None
    academic_year: str | None = None
    school_id: str | None = None
    specialization: str | None = None


class LoginRequest(BaseModel):
    """Email and password credentials."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token exchange."""

    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    """Password change for the current user."""

    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


class VerifyTokenRequest(BaseModel):
    """Access token to verify."""

    token: str = Field(min_length=1)


class StudentProfileInfo(BaseModel):
    """Student profile fields exposed on the user profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    grade_level: int
    class_section: str | None = None
    total_points: int
    current_level: int
    current_streak: int
    longest_streak: int


class TeacherProfileInfo(BaseModel):
    """Teacher profile fields exposed on the user profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str | None = None
    academic_year: str
    specialization: str | None = None


class UserProfile(BaseModel):
    """Public view of a user with the role-specific profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    phone: str | None = None
    avatar_url: str | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime
    student_profile: StudentProfileInfo | None = None
    teacher_profile: TeacherProfileInfo | None = None


class TokenResponse(BaseModel):
    """Issued token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    """Successful login with the user's profile."""

    user: UserProfile


class RegisterResponse(BaseModel):
    """Successful registration."""

    success: bool = True
    message: str = "User registered successfully"
    user: UserProfile
