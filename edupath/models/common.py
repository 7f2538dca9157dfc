# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared API models: pagination envelopes, error bodies and enums."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

ItemT = TypeVar("ItemT")


class SortOrder(str, Enum):
    """Sort direction for list endpoints."""

    ASC = "asc"
    DESC = "desc"


class Difficulty(str, Enum):
    """Difficulty scale shared by content, assessments and plans."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ListResponse(BaseModel, Generic[ItemT]):
    """Paginated list envelope.

    Attributes:
        items: Page of results.
        total: Total matching rows before pagination.
        limit: Requested page size.
        offset: Requested offset.
    """

    items: list[ItemT]
    total: int
    limit: int
    offset: int


class ErrorDetail(BaseModel):
    """Single field-level error."""

    field: str | None = None
    message: str
    code: str | None = None


class ErrorResponse(BaseModel):
    """Body of every error response."""

    success: bool = False
    message: str
    errors: list[ErrorDetail] | None = None


class MessageResponse(BaseModel):
    """Simple acknowledgement body."""

    success: bool = True
    message: str


class CountResponse(BaseModel):
    """Acknowledgement carrying an affected-row count."""

    success: bool = True
    count: int = Field(ge=0)
    message: str | None = None
