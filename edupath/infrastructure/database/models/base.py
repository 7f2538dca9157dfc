# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base and shared mixins for ORM models.

All models use string UUID primary keys and timezone-aware UTC
timestamps populated on the Python side, so values are available on the
instance right after flush without a refresh round-trip.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from edupath.utils.datetime import utc_now


def generate_uuid() -> str:
    """Generate a new string UUID for primary keys."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Declarative base for all EduPath models."""

    pass


class UUIDPrimaryKeyMixin:
    """Adds a string UUID primary key column."""

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )


class TimestampMixin:
    """Adds created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
