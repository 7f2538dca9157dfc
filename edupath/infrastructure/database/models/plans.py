# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recovery and enhancement plan models with per-student progress.

Both plan kinds share their column layout through PlanColumnsMixin and
ProgressColumnsMixin. Foreign keys are declared on each concrete table.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edupath.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from edupath.utils.datetime import utc_now


class PlanColumnsMixin:
    """Columns shared by recovery and enhancement plans."""

    title: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str | None] = mapped_column(Text)
    grade_level: Mapped[int] = mapped_column(Integer, index=True)
    difficulty: Mapped[str] = mapped_column(String(20), default="medium")
    objectives: Mapped[list[Any]] = mapped_column(JSON, default=list)
    activities: Mapped[list[Any]] = mapped_column(JSON, default=list)
    resources: Mapped[list[Any]] = mapped_column(JSON, default=list)
    estimated_hours: Mapped[float | None] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class ProgressColumnsMixin:
    """Columns shared by per-student plan progress rows."""

    academic_year: Mapped[str] = mapped_column(String(20), index=True)
    status: Mapped[str] = mapped_column(String(20), default="assigned", index=True)
    completion_rate: Mapped[float] = mapped_column(Float, default=0.0)
    time_spent: Mapped[int] = mapped_column(Integer, default=0)
    progress_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class RecoveryPlan(UUIDPrimaryKeyMixin, PlanColumnsMixin, TimestampMixin, Base):
    """Weekly remedial plan for students who fell behind."""

    __tablename__ = "recovery_plans"

    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="RESTRICT"), index=True
    )
    week_number: Mapped[int] = mapped_column(Integer, index=True)
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )


class EnhancementPlan(UUIDPrimaryKeyMixin, PlanColumnsMixin, TimestampMixin, Base):
    """Enrichment plan for students ready for more advanced work."""

    __tablename__ = "enhancement_plans"

    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="RESTRICT"), index=True
    )
    plan_type: Mapped[str] = mapped_column(String(30), index=True)
    prerequisites: Mapped[list[Any]] = mapped_column(JSON, default=list)
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )


class StudentRecoveryProgress(UUIDPrimaryKeyMixin, ProgressColumnsMixin, TimestampMixin, Base):
    """A student's progress through an assigned recovery plan."""

    __tablename__ = "student_recovery_progress"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recovery_plans.id", ondelete="CASCADE"), index=True
    )
    assigned_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )

    plan: Mapped[RecoveryPlan] = relationship(lazy="selectin")


class StudentEnhancementProgress(
    UUIDPrimaryKeyMixin, ProgressColumnsMixin, TimestampMixin, Base
):
    """A student's progress through an assigned enhancement plan."""

    __tablename__ = "student_enhancement_progress"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("enhancement_plans.id", ondelete="CASCADE"), index=True
    )
    assigned_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )

    plan: Mapped[EnhancementPlan] = relationship(lazy="selectin")
