# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification request and response models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TransactionType(str, Enum):
    """Reasons a points transaction is recorded."""

    LESSON_COMPLETE = "lesson_complete"
    ASSESSMENT_COMPLETE = "assessment_complete"
    ASSIGNMENT_SUBMIT = "assignment_submit"
    DAILY_LOGIN = "daily_login"
    STREAK_BONUS = "streak_bonus"
    BADGE_EARNED = "badge_earned"
    MANUAL_ADJUSTMENT = "manual_adjustment"


class BadgeRarity(str, Enum):
    """Badge rarity tiers, lowest first."""

    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class CriteriaType(str, Enum):
    """Kinds of badge criteria."""

    POINTS = "points"
    ASSESSMENTS = "assessments"
    ASSIGNMENTS = "assignments"
    STREAK = "streak"
    CONTENT = "content"
    COMPOSITE = "composite"


class LevelInfo(BaseModel):
    """One row of the level table."""

    level: int
    title: str
    title_ar: str
    min_points: int
    max_points: int | None = None
    icon: str
    color: str


class BadgeCriteria(BaseModel):
    """Machine-evaluable badge criteria.

    ``conditions`` holds the target for the criteria type, for example
    ``{"min_points": 500}``. Composite criteria combine ``sub_criteria``
    with ``operator``.
    """

    type: CriteriaType
    conditions: dict[str, int] = Field(default_factory=dict)
    sub_criteria: list[BadgeCriteria] | None = None
    operator: Literal["AND", "OR"] = "AND"


# =============================================================================
# Points
# =============================================================================


class AwardPointsRequest(BaseModel):
    """Award points to a student."""

    student_id: str
    points: int = Field(gt=0)
    transaction_type: TransactionType
    reference_id: str | None = None
    reference_type: str | None = None
    description: str | None = Field(default=None, max_length=500)


class DeductPointsRequest(BaseModel):
    """Remove points from a student as a manual adjustment."""

    student_id: str
    points: int = Field(gt=0)
    description: str | None = Field(default=None, max_length=500)


class PointsTransactionResponse(BaseModel):
    """A ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    points: int
    transaction_type: str
    reference_id: str | None = None
    reference_type: str | None = None
    description: str | None = None
    created_at: datetime


class LevelUp(BaseModel):
    """Level change caused by an award."""

    old_level: int
    new_level: int
    level_info: LevelInfo


class BadgeResponse(BaseModel):
    """Badge definition."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    name_ar: str | None = None
    description: str | None = None
    description_ar: str | None = None
    icon: str | None = None
    color: str | None = None
    criteria: dict[str, Any]
    points_reward: int
    rarity: str
    is_active: bool
    created_at: datetime


class AwardPointsResult(BaseModel):
    """Outcome of awarding points."""

    success: bool = True
    transaction: PointsTransactionResponse
    new_total_points: int
    level_up: LevelUp | None = None
    badges_earned: list[BadgeResponse] = []


class StudentPointsResponse(BaseModel):
    """Current points and level of a student."""

    student_id: str
    total_points: int
    current_level: int
    level_info: LevelInfo


class PointsSummary(BaseModel):
    """Points overview with recent history and rank."""

    student_id: str
    total_points: int
    current_level: int
    level_info: LevelInfo
    points_to_next_level: int
    recent_transactions: list[PointsTransactionResponse]
    rank: int


class LevelProgress(BaseModel):
    """Progress within the current level."""

    current_level: int
    current_points: int
    points_to_next_level: int
    progress_percentage: float
    level_info: LevelInfo
    next_level_info: LevelInfo | None = None


# =============================================================================
# Badges
# =============================================================================


class BadgeCreateRequest(BaseModel):
    """Create a badge."""

    name: str = Field(min_length=1, max_length=100)
    name_ar: str | None = Field(default=None, max_length=100)
    description: str | None = None
    description_ar: str | None = None
    icon: str | None = None
    color: str | None = None
    criteria: BadgeCriteria
    points_reward: int = Field(default=0, ge=0)
    rarity: BadgeRarity = BadgeRarity.COMMON


class BadgeUpdateRequest(BaseModel):
    """Update a badge. Only provided fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    name_ar: str | None = None
    description: str | None = None
    description_ar: str | None = None
    icon: str | None = None
    color: str | None = None
    criteria: BadgeCriteria | None = None
    points_reward: int | None = Field(default=None, ge=0)
    rarity: BadgeRarity | None = None
    is_active: bool | None = None


class AwardBadgeRequest(BaseModel):
    """Award a badge to a student."""

    student_id: str
    progress_data: dict[str, Any] | None = None


class StudentBadgeResponse(BaseModel):
    """A badge held by a student."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    badge_id: str
    earned_at: datetime
    progress_data: dict[str, Any] | None = None
    badge: BadgeResponse


class AwardBadgeResult(BaseModel):
    """Outcome of awarding a badge."""

    success: bool = True
    student_badge: StudentBadgeResponse
    points_awarded: int
    new_total_points: int


class BadgeProgress(BaseModel):
    """Progress toward a badge."""

    current_value: float
    target_value: float
    percentage: float
    last_updated: datetime


class BadgeEligibility(BaseModel):
    """Evaluation of one badge for a student."""

    badge_id: str
    badge: BadgeResponse
    is_eligible: bool
    progress: BadgeProgress
    missing_requirements: list[str] = []


class BadgeEligibilityResponse(BaseModel):
    """Badges grouped by eligibility."""

    eligible_badges: list[BadgeResponse]
    in_progress_badges: list[BadgeEligibility]
    completed_badges: list[BadgeResponse]


# =============================================================================
# Leaderboard and progress
# =============================================================================


class LeaderboardEntry(BaseModel):
    """One ranked student."""

    rank: int
    student_id: str
    student_name: str
    total_points: int
    current_level: int
    level_info: LevelInfo
    badge_count: int
    grade_level: int
    class_section: str | None = None


class LeaderboardResponse(BaseModel):
    """Page of the leaderboard."""

    entries: list[LeaderboardEntry]
    total_count: int
    limit: int
    offset: int


class Achievements(BaseModel):
    """Activity counters shown on the progress page."""

    assessments_completed: int
    assignments_submitted: int
    current_streak: int
    longest_streak: int


class StudentProgress(BaseModel):
    """Full gamification progress for a student."""

    points: PointsSummary
    level_progress: LevelProgress
    badges: list[StudentBadgeResponse]
    rank: int
    achievements: Achievements


class BadgeDistributionEntry(BaseModel):
    """Number of students holding a badge."""

    badge_id: str
    name: str
    rarity: str
    count: int


class GamificationStats(BaseModel):
    """Platform-wide gamification statistics."""

    total_points_awarded: int
    total_badges_earned: int
    active_students: int
    top_students: list[LeaderboardEntry]
    badge_distribution: list[BadgeDistributionEntry]
    points_by_type: dict[str, int]


BadgeCriteria.model_rebuild()
