# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification models: badges, earned badges and the points ledger."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edupath.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin
from edupath.utils.datetime import utc_now


class Badge(UUIDPrimaryKeyMixin, Base):
    """Badge definition with machine-evaluable criteria."""

    __tablename__ = "badges"

    name: Mapped[str] = mapped_column(String(100), unique=True)
    name_ar: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text)
    description_ar: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str | None] = mapped_column(String(100))
    color: Mapped[str | None] = mapped_column(String(20))
    criteria: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    points_reward: Mapped[int] = mapped_column(Integer, default=0)
    rarity: Mapped[str] = mapped_column(String(20), default="common")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class StudentBadge(UUIDPrimaryKeyMixin, Base):
    """A badge earned by a student. Each badge can be earned once."""

    __tablename__ = "student_badges"
    __table_args__ = (UniqueConstraint("student_id", "badge_id", name="uq_student_badge"),)

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    badge_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("badges.id", ondelete="CASCADE"), index=True
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    progress_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    badge: Mapped[Badge] = relationship(lazy="selectin")


class PointsTransaction(UUIDPrimaryKeyMixin, Base):
    """Ledger entry for points awarded to or deducted from a student."""

    __tablename__ = "points_transactions"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    points: Mapped[int] = mapped_column(Integer)
    transaction_type: Mapped[str] = mapped_column(String(30), index=True)
    reference_id: Mapped[str | None] = mapped_column(String(36))
    reference_type: Mapped[str | None] = mapped_column(String(30))
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
