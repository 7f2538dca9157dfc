# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification service for points, levels, badges and leaderboards.

This module provides the GamificationService that handles:
- Awarding and deducting points in a single transaction
- Level-up detection
- Badge management, awarding and eligibility evaluation
- Leaderboards, ranks and progress summaries

Example:
    >>> service = GamificationService(db)
    >>> result = await service.award_points(
    ...     student_id=user_id,
    ...     points=50,
    ...     transaction_type=TransactionType.LESSON_COMPLETE,
    ... )
    >>> result.new_total_points
"""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.gamification.criteria import (
    ASSESSMENT_PASS_PERCENTAGE,
    StudentStats,
    evaluate_criteria,
    missing_requirements,
    parse_criteria,
)
from edupath.domains.gamification.levels import (
    calculate_level,
    get_level_info,
    get_next_level_info,
    level_progress_percentage,
    points_to_next_level,
)
from edupath.infrastructure.database.models import (
    AssessmentAttempt,
    AssignmentSubmission,
    Badge,
    ContentView,
    PointsTransaction,
    StudentBadge,
    StudentProfile,
    User,
)
from edupath.models.assessment import FINISHED_ATTEMPT_STATUSES
from edupath.models.assignment import COMPLETED_SUBMISSION_STATUSES
from edupath.models.gamification import (
    Achievements,
    AwardBadgeResult,
    AwardPointsResult,
    BadgeCreateRequest,
    BadgeDistributionEntry,
    BadgeEligibility,
    BadgeEligibilityResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    GamificationStats,
    LeaderboardEntry,
    LeaderboardResponse,
    LevelProgress,
    LevelUp,
    PointsSummary,
    PointsTransactionResponse,
    StudentBadgeResponse,
    StudentPointsResponse,
    StudentProgress,
    TransactionType,
)
from edupath.utils.datetime import utc_now

logger = logging.getLogger(__name__)

RARITY_ORDER = {"common": 1, "rare": 2, "epic": 3, "legendary": 4}


class GamificationServiceError(Exception):
    """Base exception for gamification service errors."""

    pass


class StudentProfileNotFoundError(GamificationServiceError):
    """Raised when a student has no profile to hold points."""

    pass


class BadgeNotFoundError(GamificationServiceError):
    """Raised when a badge is not found."""

    pass


class BadgeInactiveError(GamificationServiceError):
    """Raised when awarding a deactivated badge."""

    pass


class BadgeAlreadyEarnedError(GamificationServiceError):
    """Raised when a student already holds a badge."""

    pass


class BadgeNameExistsError(GamificationServiceError):
    """Raised when a badge name is already taken."""

    pass


class GamificationService:
    """Service for points, levels, badges and leaderboards.

    Points live on StudentProfile.total_points and every change is backed
    by a PointsTransaction row written in the same database transaction.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the gamification service.

        Args:
            db: Async database session.
        """
        self._db = db

    # =========================================================================
    # Points
    # =========================================================================

    async def award_points(
        self,
        student_id: str,
        points: int,
        transaction_type: TransactionType | str,
        reference_id: str | None = None,
        reference_type: str | None = None,
        description: str | None = None,
    ) -> AwardPointsResult:
        """Award points, detect a level-up and grant newly eligible badges.

        Everything happens in one transaction: the ledger entry, the new
        total, the level and any badges earned (with their own rewards).

        Args:
            student_id: Student user ID.
            points: Points to add. Negative values deduct.
            transaction_type: Reason for the transaction.
            reference_id: Optional ID of the related entity.
            reference_type: Optional type of the related entity.
            description: Optional human-readable description.

        Returns:
            AwardPointsResult with the transaction and resulting totals.

        Raises:
            StudentProfileNotFoundError: If the student has no profile.
        """
        profile = await self._get_profile(student_id, for_update=True)
        if not profile:
            raise StudentProfileNotFoundError(f"Student profile not found for {student_id}")

        transaction = PointsTransaction(
            student_id=student_id,
            points=points,
            transaction_type=TransactionType(transaction_type).value,
            reference_id=reference_id,
            reference_type=reference_type,
            description=description,
            created_at=utc_now(),
        )
        self._db.add(transaction)

        profile.total_points = (profile.total_points or 0) + points
        new_total = profile.total_points
        old_level = calculate_level(new_total - points)
        new_level = calculate_level(new_total)

        level_up = None
        if new_level > old_level:
            level_up = LevelUp(
                old_level=old_level,
                new_level=new_level,
                level_info=get_level_info(new_level),
            )
        profile.current_level = new_level

        await self._db.flush()
        badges_earned = await self._award_eligible_badges(profile)
        profile.current_level = calculate_level(profile.total_points)

        await self._db.commit()

        logger.info(
            "Awarded %d points to %s (%s), total=%d, badges=%d",
            points,
            student_id,
            transaction.transaction_type,
            profile.total_points,
            len(badges_earned),
        )

        return AwardPointsResult(
            transaction=PointsTransactionResponse.model_validate(transaction),
            new_total_points=profile.total_points,
            level_up=level_up,
            badges_earned=[BadgeResponse.model_validate(b) for b in badges_earned],
        )

    async def deduct_points(
        self,
        student_id: str,
        points: int,
        description: str | None = None,
    ) -> AwardPointsResult:
        """Deduct points as a manual adjustment."""
        return await self.award_points(
            student_id=student_id,
            points=-abs(points),
            transaction_type=TransactionType.MANUAL_ADJUSTMENT,
            description=description or "Manual points deduction",
        )

    async def get_student_points(self, student_id: str) -> StudentPointsResponse:
        """Get a student's total points and level.

        Raises:
            StudentProfileNotFoundError: If the student has no profile.
        """
        profile = await self._require_profile(student_id)
        level = calculate_level(profile.total_points)
        return StudentPointsResponse(
            student_id=student_id,
            total_points=profile.total_points,
            current_level=level,
            level_info=get_level_info(level),
        )

    async def get_student_points_summary(self, student_id: str) -> PointsSummary:
        """Get points, level, the last 10 transactions and rank.

        Raises:
            StudentProfileNotFoundError: If the student has no profile.
        """
        profile = await self._require_profile(student_id)
        level = calculate_level(profile.total_points)

        result = await self._db.execute(
            select(PointsTransaction)
            .where(PointsTransaction.student_id == student_id)
            .order_by(PointsTransaction.created_at.desc())
            .limit(10)
        )
        transactions = result.scalars().all()

        return PointsSummary(
            student_id=student_id,
            total_points=profile.total_points,
            current_level=level,
            level_info=get_level_info(level),
            points_to_next_level=points_to_next_level(profile.total_points),
            recent_transactions=[
                PointsTransactionResponse.model_validate(t) for t in transactions
            ],
            rank=await self.get_student_rank(student_id),
        )

    async def get_student_level_progress(self, student_id: str) -> LevelProgress:
        """Get progress through the current level band.

        Raises:
            StudentProfileNotFoundError: If the student has no profile.
        """
        profile = await self._require_profile(student_id)
        return self.build_level_progress(profile.total_points)

    @staticmethod
    def build_level_progress(points: int) -> LevelProgress:
        """Build level progress for a points total."""
        level = calculate_level(points)
        return LevelProgress(
            current_level=level,
            current_points=points,
            points_to_next_level=points_to_next_level(points),
            progress_percentage=round(level_progress_percentage(points), 2),
            level_info=get_level_info(level),
            next_level_info=get_next_level_info(level),
        )

    # =========================================================================
    # Badges
    # =========================================================================

    async def create_badge(self, request: BadgeCreateRequest) -> BadgeResponse:
        """Create a badge.

        Raises:
            BadgeNameExistsError: If the name is already taken.
        """
        if await self._get_badge_by_name(request.name):
            raise BadgeNameExistsError(f"Badge '{request.name}' already exists")

        badge = Badge(
            name=request.name,
            name_ar=request.name_ar,
            description=request.description,
            description_ar=request.description_ar,
            icon=request.icon,
            color=request.color,
            criteria=request.criteria.model_dump(mode="json", exclude_none=True),
            points_reward=request.points_reward,
            rarity=request.rarity.value,
            is_active=True,
            created_at=utc_now(),
        )
        self._db.add(badge)
        await self._db.commit()

        logger.info("Badge created: %s (%s)", badge.id, badge.name)
        return BadgeResponse.model_validate(badge)

    async def update_badge(self, badge_id: str, request: BadgeUpdateRequest) -> BadgeResponse:
        """Update a badge.

        Raises:
            BadgeNotFoundError: If the badge does not exist.
            BadgeNameExistsError: If renaming to a taken name.
        """
        badge = await self._get_badge(badge_id)
        if not badge:
            raise BadgeNotFoundError(f"Badge {badge_id} not found")

        updates = request.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] != badge.name:
            if await self._get_badge_by_name(updates["name"]):
                raise BadgeNameExistsError(f"Badge '{updates['name']}' already exists")

        if request.criteria is not None:
            updates["criteria"] = request.criteria.model_dump(mode="json", exclude_none=True)
        if request.rarity is not None:
            updates["rarity"] = request.rarity.value

        for field, value in updates.items():
            setattr(badge, field, value)

        await self._db.commit()
        logger.info("Badge updated: %s", badge.id)
        return BadgeResponse.model_validate(badge)

    async def get_badges(self) -> list[BadgeResponse]:
        """List active badges, rarest and most rewarding first."""
        rarity_rank = case(RARITY_ORDER, value=Badge.rarity, else_=0)
        result = await self._db.execute(
            select(Badge)
            .where(Badge.is_active.is_(True))
            .order_by(rarity_rank.desc(), Badge.points_reward.desc(), Badge.name.asc())
        )
        return [BadgeResponse.model_validate(b) for b in result.scalars().all()]

    async def get_badge(self, badge_id: str) -> BadgeResponse:
        """Get a badge.

        Raises:
            BadgeNotFoundError: If the badge does not exist.
        """
        badge = await self._get_badge(badge_id)
        if not badge:
            raise BadgeNotFoundError(f"Badge {badge_id} not found")
        return BadgeResponse.model_validate(badge)

    async def award_badge(
        self,
        student_id: str,
        badge_id: str,
        progress_data: dict[str, Any] | None = None,
    ) -> AwardBadgeResult:
        """Award a badge and its points reward.

        Raises:
            BadgeNotFoundError: If the badge does not exist.
            BadgeInactiveError: If the badge is deactivated.
            StudentProfileNotFoundError: If the student has no profile.
            BadgeAlreadyEarnedError: If the student already holds the badge.
        """
        badge = await self._get_badge(badge_id)
        if not badge:
            raise BadgeNotFoundError(f"Badge {badge_id} not found")
        if not badge.is_active:
            raise BadgeInactiveError(f"Badge {badge_id} is not active")

        profile = await self._get_profile(student_id, for_update=True)
        if not profile:
            raise StudentProfileNotFoundError(f"Student profile not found for {student_id}")

        if badge.id in await self._get_held_badge_ids(student_id):
            raise BadgeAlreadyEarnedError("Student already has this badge")

        student_badge = self._grant_badge(profile, badge, progress_data)
        profile.current_level = calculate_level(profile.total_points)

        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            raise BadgeAlreadyEarnedError("Student already has this badge")

        logger.info("Badge %s awarded to %s", badge.name, student_id)

        return AwardBadgeResult(
            student_badge=StudentBadgeResponse.model_validate(student_badge),
            points_awarded=badge.points_reward,
            new_total_points=profile.total_points,
        )

    async def get_student_badges(self, student_id: str) -> list[StudentBadgeResponse]:
        """List a student's badges, most recent first."""
        result = await self._db.execute(
            select(StudentBadge)
            .where(StudentBadge.student_id == student_id)
            .order_by(StudentBadge.earned_at.desc())
        )
        return [StudentBadgeResponse.model_validate(sb) for sb in result.scalars().all()]

    async def check_badge_eligibility(
        self,
        student_id: str,
        badge_ids: list[str] | None = None,
    ) -> BadgeEligibilityResponse:
        """Evaluate active badges for a student.

        Held badges are reported as completed and not re-evaluated.

        Raises:
            StudentProfileNotFoundError: If the student has no profile.
        """
        profile = await self._require_profile(student_id)
        stats = await self._collect_stats(profile)
        held = await self._get_held_badge_ids(student_id)

        stmt = select(Badge).where(Badge.is_active.is_(True))
        if badge_ids:
            stmt = stmt.where(Badge.id.in_(badge_ids))
        result = await self._db.execute(stmt.order_by(Badge.name.asc()))

        eligible: list[BadgeResponse] = []
        in_progress: list[BadgeEligibility] = []
        completed: list[BadgeResponse] = []

        for badge in result.scalars().all():
            response = BadgeResponse.model_validate(badge)
            if badge.id in held:
                completed.append(response)
                continue

            try:
                criteria = parse_criteria(badge.criteria)
            except ValidationError as e:
                logger.warning("Badge %s has invalid criteria: %s", badge.id, str(e))
                continue

            progress = evaluate_criteria(criteria, stats)
            if progress.percentage >= 100:
                eligible.append(response)
            else:
                in_progress.append(
                    BadgeEligibility(
                        badge_id=badge.id,
                        badge=response,
                        is_eligible=False,
                        progress=progress,
                        missing_requirements=missing_requirements(criteria, stats),
                    )
                )

        return BadgeEligibilityResponse(
            eligible_badges=eligible,
            in_progress_badges=in_progress,
            completed_badges=completed,
        )

    # =========================================================================
    # Leaderboard and progress
    # =========================================================================

    async def get_leaderboard(
        self,
        grade_level: int | None = None,
        class_section: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> LeaderboardResponse:
        """Rank active students by total points, highest first.

        Ties are broken by user ID so pages are stable.
        """
        stmt = (
            select(StudentProfile, User)
            .join(User, User.id == StudentProfile.user_id)
            .where(User.is_active.is_(True))
        )
        if grade_level is not None:
            stmt = stmt.where(StudentProfile.grade_level == grade_level)
        if class_section:
            stmt = stmt.where(StudentProfile.class_section == class_section)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(StudentProfile.total_points.desc(), User.id.asc())
        result = await self._db.execute(stmt.limit(limit).offset(offset))
        rows = result.all()

        badge_counts = await self._get_badge_counts([user.id for _, user in rows])

        entries = [
            self._to_leaderboard_entry(offset + index + 1, profile, user, badge_counts)
            for index, (profile, user) in enumerate(rows)
        ]
        return LeaderboardResponse(entries=entries, total_count=total, limit=limit, offset=offset)

    async def get_student_rank(self, student_id: str) -> int:
        """Return 1 + the number of active students with more points (0 without a profile)."""
        profile = await self._get_profile(student_id)
        if not profile:
            return 0

        ahead = await self._db.scalar(
            select(func.count())
            .select_from(StudentProfile)
            .join(User, User.id == StudentProfile.user_id)
            .where(
                User.is_active.is_(True),
                StudentProfile.total_points > profile.total_points,
            )
        )
        return (ahead or 0) + 1

    async def get_student_progress(self, student_id: str) -> StudentProgress:
        """Get the complete gamification picture for a student.

        Raises:
            StudentProfileNotFoundError: If the student has no profile.
        """
        profile = await self._require_profile(student_id)
        summary = await self.get_student_points_summary(student_id)

        assessments_completed = await self._db.scalar(
            select(func.count())
            .select_from(AssessmentAttempt)
            .where(
                AssessmentAttempt.student_id == student_id,
                AssessmentAttempt.status.in_(FINISHED_ATTEMPT_STATUSES),
            )
        )
        assignments_submitted = await self._db.scalar(
            select(func.count())
            .select_from(AssignmentSubmission)
            .where(
                AssignmentSubmission.student_id == student_id,
                AssignmentSubmission.status.in_(COMPLETED_SUBMISSION_STATUSES),
            )
        )

        return StudentProgress(
            points=summary,
            level_progress=self.build_level_progress(profile.total_points),
            badges=await self.get_student_badges(student_id),
            rank=summary.rank,
            achievements=Achievements(
                assessments_completed=assessments_completed or 0,
                assignments_submitted=assignments_submitted or 0,
                current_streak=profile.current_streak,
                longest_streak=profile.longest_streak,
            ),
        )

    async def get_gamification_stats(self) -> GamificationStats:
        """Aggregate platform-wide gamification statistics."""
        total_awarded = await self._db.scalar(
            select(func.coalesce(func.sum(PointsTransaction.points), 0)).where(
                PointsTransaction.points > 0
            )
        )
        total_badges = await self._db.scalar(select(func.count()).select_from(StudentBadge))
        active_students = await self._db.scalar(
            select(func.count())
            .select_from(StudentProfile)
            .join(User, User.id == StudentProfile.user_id)
            .where(User.is_active.is_(True))
        )

        distribution_result = await self._db.execute(
            select(Badge.id, Badge.name, Badge.rarity, func.count(StudentBadge.id))
            .join(StudentBadge, StudentBadge.badge_id == Badge.id)
            .group_by(Badge.id, Badge.name, Badge.rarity)
            .order_by(func.count(StudentBadge.id).desc())
        )
        distribution = [
            BadgeDistributionEntry(badge_id=bid, name=name, rarity=rarity, count=count)
            for bid, name, rarity, count in distribution_result.all()
        ]

        by_type_result = await self._db.execute(
            select(PointsTransaction.transaction_type, func.sum(PointsTransaction.points))
            .group_by(PointsTransaction.transaction_type)
        )
        points_by_type = {ttype: int(total or 0) for ttype, total in by_type_result.all()}

        leaderboard = await self.get_leaderboard(limit=10)

        return GamificationStats(
            total_points_awarded=int(total_awarded or 0),
            total_badges_earned=total_badges or 0,
            active_students=active_students or 0,
            top_students=leaderboard.entries,
            badge_distribution=distribution,
            points_by_type=points_by_type,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _award_eligible_badges(self, profile: StudentProfile) -> list[Badge]:
        """Grant every active, unheld badge whose criteria is met. Does not commit."""
        stats = await self._collect_stats(profile)
        held = await self._get_held_badge_ids(profile.user_id)

        result = await self._db.execute(select(Badge).where(Badge.is_active.is_(True)))
        earned: list[Badge] = []
        for badge in result.scalars().all():
            if badge.id in held:
                continue
            try:
                criteria = parse_criteria(badge.criteria)
            except ValidationError as e:
                logger.warning("Badge %s has invalid criteria: %s", badge.id, str(e))
                continue

            progress = evaluate_criteria(criteria, stats)
            if progress.percentage >= 100:
                self._grant_badge(
                    profile,
                    badge,
                    {"current_value": progress.current_value, "target_value": progress.target_value},
                )
                earned.append(badge)

        if earned:
            await self._db.flush()
        return earned

    def _grant_badge(
        self,
        profile: StudentProfile,
        badge: Badge,
        progress_data: dict[str, Any] | None,
    ) -> StudentBadge:
        """Add the StudentBadge and its reward transaction to the session."""
        now = utc_now()
        student_badge = StudentBadge(
            student_id=profile.user_id,
            badge=badge,
            earned_at=now,
            progress_data=progress_data,
        )
        self._db.add(student_badge)

        if badge.points_reward > 0:
            self._db.add(
                PointsTransaction(
                    student_id=profile.user_id,
                    points=badge.points_reward,
                    transaction_type=TransactionType.BADGE_EARNED.value,
                    reference_id=badge.id,
                    reference_type="badge",
                    description=f"Badge earned: {badge.name}",
                    created_at=now,
                )
            )
            profile.total_points = (profile.total_points or 0) + badge.points_reward

        return student_badge

    async def _collect_stats(self, profile: StudentProfile) -> StudentStats:
        student_id = profile.user_id

        assessments_passed = await self._db.scalar(
            select(func.count())
            .select_from(AssessmentAttempt)
            .where(
                AssessmentAttempt.student_id == student_id,
                AssessmentAttempt.status.in_(FINISHED_ATTEMPT_STATUSES),
                AssessmentAttempt.percentage_score >= ASSESSMENT_PASS_PERCENTAGE,
            )
        )
        assignments_completed = await self._db.scalar(
            select(func.count())
            .select_from(AssignmentSubmission)
            .where(
                AssignmentSubmission.student_id == student_id,
                AssignmentSubmission.status.in_(COMPLETED_SUBMISSION_STATUSES),
            )
        )
        content_viewed = await self._db.scalar(
            select(func.count(func.distinct(ContentView.content_id))).where(
                ContentView.user_id == student_id
            )
        )

        return StudentStats(
            total_points=profile.total_points or 0,
            assessments_passed=assessments_passed or 0,
            assignments_completed=assignments_completed or 0,
            current_streak=profile.current_streak or 0,
            content_viewed=content_viewed or 0,
        )

    async def _get_profile(
        self,
        student_id: str,
        for_update: bool = False,
    ) -> StudentProfile | None:
        stmt = select(StudentProfile).where(StudentProfile.user_id == student_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def _require_profile(self, student_id: str) -> StudentProfile:
        profile = await self._get_profile(student_id)
        if not profile:
            raise StudentProfileNotFoundError(f"Student profile not found for {student_id}")
        return profile

    async def _get_badge(self, badge_id: str) -> Badge | None:
        result = await self._db.execute(select(Badge).where(Badge.id == badge_id))
        return result.scalar_one_or_none()

    async def _get_badge_by_name(self, name: str) -> Badge | None:
        result = await self._db.execute(select(Badge).where(Badge.name == name))
        return result.scalar_one_or_none()

    async def _get_held_badge_ids(self, student_id: str) -> set[str]:
        result = await self._db.execute(
            select(StudentBadge.badge_id).where(StudentBadge.student_id == student_id)
        )
        return set(result.scalars().all())

    async def _get_badge_counts(self, student_ids: list[str]) -> dict[str, int]:
        if not student_ids:
            return {}
        result = await self._db.execute(
            select(StudentBadge.student_id, func.count(StudentBadge.id))
            .where(StudentBadge.student_id.in_(student_ids))
            .group_by(StudentBadge.student_id)
        )
        return {student_id: count for student_id, count in result.all()}

    @staticmethod
    def _to_leaderboard_entry(
        rank: int,
        profile: StudentProfile,
        user: User,
        badge_counts: dict[str, int],
    ) -> LeaderboardEntry:
        level = calculate_level(profile.total_points)
        return LeaderboardEntry(
            rank=rank,
            student_id=user.id,
            student_name=user.full_name,
            total_points=profile.total_points,
            current_level=level,
            level_info=get_level_info(level),
            badge_count=badge_counts.get(user.id, 0),
            grade_level=profile.grade_level,
            class_section=profile.class_section,
        )
