# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment, question and attempt models."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edupath.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    generate_uuid,
)
from edupath.infrastructure.database.models.content import Subject
from edupath.utils.datetime import utc_now


class Assessment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Timed assessment made of ordered questions."""

    __tablename__ = "assessments"

    uuid: Mapped[str] = mapped_column(String(36), unique=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str | None] = mapped_column(Text)
    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="RESTRICT"), index=True
    )
    grade_level: Mapped[int] = mapped_column(Integer, index=True)
    difficulty_level: Mapped[str] = mapped_column(String(20), default="medium")
    duration_minutes: Mapped[int] = mapped_column(Integer, default=30)
    passing_score: Mapped[float] = mapped_column(Float, default=60.0)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    subject: Mapped[Subject] = relationship(lazy="selectin")


class AssessmentQuestion(UUIDPrimaryKeyMixin, Base):
    """Question belonging to an assessment."""

    __tablename__ = "assessment_questions"

    assessment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assessments.id", ondelete="CASCADE"), index=True
    )
    question_text: Mapped[str] = mapped_column(Text)
    question_type: Mapped[str] = mapped_column(String(30))
    options: Mapped[list[Any] | None] = mapped_column(JSON)
    correct_answer: Mapped[str] = mapped_column(Text)
    explanation: Mapped[str | None] = mapped_column(Text)
    points: Mapped[int] = mapped_column(Integer, default=1)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class AssessmentAttempt(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's attempt at an assessment.

    The answers map is keyed by question id. It is always reassigned as a
    new dict so that the JSON column change is tracked.
    """

    __tablename__ = "assessment_attempts"

    uuid: Mapped[str] = mapped_column(String(36), unique=True, default=generate_uuid)
    assessment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assessments.id", ondelete="CASCADE"), index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="in_progress", index=True)
    answers: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    total_score: Mapped[float] = mapped_column(Float, default=0.0)
    max_score: Mapped[float] = mapped_column(Float, default=0.0)
    percentage_score: Mapped[float] = mapped_column(Float, default=0.0)
    time_spent: Mapped[int | None] = mapped_column(Integer)

    assessment: Mapped[Assessment] = relationship(lazy="selectin")
