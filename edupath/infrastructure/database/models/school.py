# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School, class and enrollment models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edupath.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from edupath.infrastructure.database.models.user import User
from edupath.utils.datetime import utc_now


class School(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A school. Deletion is soft via is_active."""

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(String(255), index=True)
    address: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(String(30))
    email: Mapped[str | None] = mapped_column(String(255))
    principal_name: Mapped[str | None] = mapped_column(String(255))
    academic_year: Mapped[str] = mapped_column(String(20), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class Class(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A class section within a school."""

    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(100))
    grade_level: Mapped[int] = mapped_column(Integer, index=True)
    section: Mapped[str] = mapped_column(String(20))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), index=True
    )
    teacher_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    academic_year: Mapped[str] = mapped_column(String(20), index=True)
    capacity: Mapped[int] = mapped_column(Integer, default=30)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    school: Mapped[School] = relationship(lazy="selectin")
    teacher: Mapped[User | None] = relationship(lazy="selectin")


class StudentClassEnrollment(UUIDPrimaryKeyMixin, Base):
    """Enrollment of a student user into a class for an academic year."""

    __tablename__ = "student_class_enrollments"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), index=True
    )
    academic_year: Mapped[str] = mapped_column(String(20), index=True)
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    student: Mapped[User] = relationship(lazy="selectin")
    class_: Mapped[Class] = relationship(lazy="selectin")
