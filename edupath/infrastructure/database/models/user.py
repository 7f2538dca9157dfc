# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User, profile, session and activity log models."""

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edupath.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    generate_uuid,
)
from edupath.utils.datetime import ensure_utc, utc_now


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Platform user. The role decides which profile row exists."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), index=True)
    phone: Mapped[str | None] = mapped_column(String(30))
    avatar_url: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    student_profile: Mapped["StudentProfile"] = relationship(
        back_populates="user",
        uselist=False,
        lazy="selectin",
    )
    teacher_profile: Mapped["TeacherProfile"] = relationship(
        back_populates="user",
        uselist=False,
        lazy="selectin",
    )

    @property
    def full_name(self) -> str:
        """Return first and last name joined by a space."""
        return f"{self.first_name} {self.last_name}"


class StudentProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Student-specific data including gamification counters."""

    __tablename__ = "student_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True
    )
    grade_level: Mapped[int] = mapped_column(Integer, default=1, index=True)
    class_section: Mapped[str | None] = mapped_column(String(20))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    parent_contact: Mapped[str | None] = mapped_column(String(255))
    total_points: Mapped[int] = mapped_column(Integer, default=0, index=True)
    current_level: Mapped[int] = mapped_column(Integer, default=1)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date)

    user: Mapped[User] = relationship(back_populates="student_profile", lazy="selectin")


class TeacherProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Teacher-specific data and school assignment."""

    __tablename__ = "teacher_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True
    )
    school_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="SET NULL"), index=True
    )
    academic_year: Mapped[str] = mapped_column(String(20))
    specialization: Mapped[str | None] = mapped_column(String(255))
    qualifications: Mapped[str | None] = mapped_column(Text)

    user: Mapped[User] = relationship(back_populates="teacher_profile", lazy="selectin")


class UserSession(Base):
    """Login session. Tokens are stored as SHA-256 hashes only."""

    __tablename__ = "user_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    access_token_hash: Mapped[str] = mapped_column(String(64), index=True)
    refresh_token_hash: Mapped[str] = mapped_column(String(64), index=True)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(500))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    @property
    def is_expired(self) -> bool:
        """Check whether the session has passed its expiry."""
        return utc_now() > ensure_utc(self.expires_at)

    def update_activity(self) -> None:
        """Touch the last activity timestamp."""
        self.last_activity = utc_now()


class ActivityLog(Base):
    """Audit trail of user actions."""

    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    action: Mapped[str] = mapped_column(String(100))
    resource_type: Mapped[str | None] = mapped_column(String(50))
    resource_id: Mapped[str | None] = mapped_column(String(36))
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
