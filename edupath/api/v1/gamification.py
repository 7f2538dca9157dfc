# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification API endpoints.

Points:
- POST /points/award - Award points (teacher/admin)
- POST /points/deduct - Deduct points (teacher/admin)
- GET /students/{student_id}/points - Points summary with rank
- GET /students/{student_id}/progress - Points, level, badges and achievements

Badges:
- GET /badges - Active badges
- POST /badges - Create badge (admin)
- PUT /badges/{badge_id} - Update badge (admin)
- POST /badges/{badge_id}/award - Award badge (teacher/admin)
- GET /students/{student_id}/badges - Earned badges
- GET /students/{student_id}/badge-eligibility - Progress towards badges

Other:
- GET /leaderboard - Ranked students
- GET /levels - Level table
- GET /stats - Platform statistics (teacher/admin)

Students may only read their own points, progress and badges.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AdminUser,
    AuthenticatedUser,
    TeacherOrAdmin,
    get_gamification_service,
)
from edupath.api.middleware.auth import CurrentUser
from edupath.domains.gamification import (
    BadgeAlreadyEarnedError,
    BadgeNameExistsError,
    BadgeNotFoundError,
    GamificationService,
    GamificationServiceError,
    StudentProfileNotFoundError,
)
from edupath.domains.gamification.levels import LEVEL_CONFIG
from edupath.models.gamification import (
    AwardBadgeRequest,
    AwardBadgeResult,
    AwardPointsRequest,
    AwardPointsResult,
    BadgeCreateRequest,
    BadgeEligibilityResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    DeductPointsRequest,
    GamificationStats,
    LeaderboardResponse,
    LevelInfo,
    PointsSummary,
    StudentBadgeResponse,
    StudentProgress,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[GamificationService, Depends(get_gamification_service)]


def _handle_error(error: GamificationServiceError) -> HTTPException:
    """Map a gamification service error to an HTTP error."""
    if isinstance(error, (BadgeNotFoundError, StudentProfileNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (BadgeAlreadyEarnedError, BadgeNameExistsError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


def _check_student_access(current_user: CurrentUser, student_id: str) -> None:
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


# =========================================================================
# Points
# =========================================================================


@router.post("/points/award", response_model=AwardPointsResult, summary="Award points")
async def award_points(
    data: AwardPointsRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AwardPointsResult:
    """Award points, apply level-ups and grant newly eligible badges."""
    logger.info(
        "Awarding %d points to %s by %s",
        data.points,
        data.student_id,
        current_user.id,
    )
    try:
        return await service.award_points(
            student_id=data.student_id,
            points=data.points,
            transaction_type=data.transaction_type,
            reference_id=data.reference_id,
            reference_type=data.reference_type,
            description=data.description,
        )
    except GamificationServiceError as e:
        raise _handle_error(e)


@router.post("/points/deduct", response_model=AwardPointsResult, summary="Deduct points")
async def deduct_points(
    data: DeductPointsRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AwardPointsResult:
    """Deduct points as a manual adjustment."""
    try:
        return await service.deduct_points(
            student_id=data.student_id,
            points=data.points,
            description=data.description,
        )
    except GamificationServiceError as e:
        raise _handle_error(e)


@router.get(
    "/students/{student_id}/points",
    response_model=PointsSummary,
    summary="Student points",
)
async def student_points(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> PointsSummary:
    """Total points, level, recent transactions and rank."""
    _check_student_access(current_user, student_id)
    try:
        return await service.get_student_points_summary(student_id)
    except GamificationServiceError as e:
        raise _handle_error(e)


@router.get(
    "/students/{student_id}/progress",
    response_model=StudentProgress,
    summary="Student progress",
)
async def student_progress(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> StudentProgress:
    """Points summary, level progress, badges, rank and achievements."""
    _check_student_access(current_user, student_id)
    try:
        return await service.get_student_progress(student_id)
    except GamificationServiceError as e:
        raise _handle_error(e)


@router.get(
    "/students/{student_id}/badges",
    response_model=list[StudentBadgeResponse],
    summary="Student badges",
)
async def student_badges(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> list[StudentBadgeResponse]:
    """Badges earned by a student, newest first."""
    _check_student_access(current_user, student_id)
    return await service.get_student_badges(student_id)


@router.get(
    "/students/{student_id}/badge-eligibility",
    response_model=BadgeEligibilityResponse,
    summary="Badge eligibility",
)
async def badge_eligibility(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    badge_ids: list[str] | None = Query(None),
) -> BadgeEligibilityResponse:
    """Evaluate badge criteria for a student."""
    _check_student_access(current_user, student_id)
    try:
        return await service.check_badge_eligibility(student_id, badge_ids=badge_ids)
    except GamificationServiceError as e:
        raise _handle_error(e)


# =========================================================================
# Badges
# =========================================================================


@router.get("/badges", response_model=list[BadgeResponse], summary="List badges")
async def list_badges(
    current_user: AuthenticatedUser,
    service: Service,
) -> list[BadgeResponse]:
    """Active badges ordered by rarity, reward and name."""
    return await service.get_badges()


@router.post(
    "/badges",
    response_model=BadgeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create badge",
)
async def create_badge(
    data: BadgeCreateRequest,
    current_user: AdminUser,
    service: Service,
) -> BadgeResponse:
    """Create a badge."""
    try:
        return await service.create_badge(data)
    except GamificationServiceError as e:
        raise _handle_error(e)


@router.put("/badges/{badge_id}", response_model=BadgeResponse, summary="Update badge")
async def update_badge(
    badge_id: str,
    data: BadgeUpdateRequest,
    current_user: AdminUser,
    service: Service,
) -> BadgeResponse:
    """Update a badge."""
    try:
        return await service.update_badge(badge_id, data)
    except GamificationServiceError as e:
        raise _handle_error(e)


@router.post(
    "/badges/{badge_id}/award",
    response_model=AwardBadgeResult,
    summary="Award badge",
)
async def award_badge(
    badge_id: str,
    data: AwardBadgeRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AwardBadgeResult:
    """Award a badge to a student. A badge can only be earned once."""
    try:
        return await service.award_badge(
            data.student_id,
            badge_id,
            progress_data=data.progress_data,
        )
    except GamificationServiceError as e:
        raise _handle_error(e)


# =========================================================================
# Leaderboard, levels and statistics
# =========================================================================


@router.get("/leaderboard", response_model=LeaderboardResponse, summary="Leaderboard")
async def leaderboard(
    current_user: AuthenticatedUser,
    service: Service,
    grade_level: int | None = Query(None, ge=1, le=12),
    class_section: str | None = Query(None, max_length=10),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> LeaderboardResponse:
    """Active students ranked by total points."""
    return await service.get_leaderboard(
        grade_level=grade_level,
        class_section=class_section,
        limit=limit,
        offset=offset,
    )


@router.get("/levels", response_model=list[LevelInfo], summary="Level table")
async def levels(current_user: AuthenticatedUser) -> list[LevelInfo]:
    """The level thresholds."""
    return list(LEVEL_CONFIG)


@router.get("/stats", response_model=GamificationStats, summary="Gamification statistics")
async def gamification_stats(
    current_user: TeacherOrAdmin,
    service: Service,
) -> GamificationStats:
    """Points, badges and top students across the platform."""
    return await service.get_gamification_stats()
