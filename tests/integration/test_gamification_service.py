# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the gamification service against SQLite."""

import pytest
from sqlalchemy import select

from edupath.domains.gamification.service import (
    BadgeAlreadyEarnedError,
    BadgeNameExistsError,
    GamificationService,
    StudentProfileNotFoundError,
)
from edupath.infrastructure.database.models import PointsTransaction, StudentProfile
from edupath.models.gamification import (
    BadgeCreateRequest,
    BadgeCriteria,
    CriteriaType,
    TransactionType,
)

pytestmark = pytest.mark.integration


def _points_badge(name: str, min_points: int, reward: int = 0) -> BadgeCreateRequest:
    return BadgeCreateRequest(
        name=name,
        criteria=BadgeCriteria(type=CriteriaType.POINTS, conditions={"min_points": min_points}),
        points_reward=reward,
    )


@pytest.fixture
def service(db_session):
    return GamificationService(db_session)


class TestAwardPoints:
    """Tests for awarding and deducting points."""

    @pytest.mark.asyncio
    async def test_award_writes_ledger_and_total(self, service, db_session, student):
        """Test awarding points updates the total and records a transaction."""
        result = await service.award_points(
            student.id,
            30,
            TransactionType.LESSON_COMPLETE,
            reference_id="content-1",
            reference_type="content",
        )

        assert result.new_total_points == 30
        assert result.level_up is None
        assert result.transaction.points == 30
        assert result.transaction.transaction_type == "lesson_complete"

        rows = (
            await db_session.execute(
                select(PointsTransaction).where(PointsTransaction.student_id == student.id)
            )
        ).scalars().all()
        assert [row.points for row in rows] == [30]

    @pytest.mark.asyncio
    async def test_level_up_at_band_boundary(self, service, student):
        await service.award_points(student.id, 60, TransactionType.DAILY_LOGIN)

        result = await service.award_points(student.id, 40, TransactionType.DAILY_LOGIN)

        assert result.new_total_points == 100
        assert result.level_up is not None
        assert result.level_up.old_level == 1
        assert result.level_up.new_level == 2
        assert result.level_up.level_info.title == "Explorer"

    @pytest.mark.asyncio
    async def test_deduct_points(self, service, make_user):
        student = await make_user("student", total_points=120)

        result = await service.deduct_points(student.id, 50)

        assert result.new_total_points == 70
        assert result.transaction.points == -50
        assert result.transaction.transaction_type == "manual_adjustment"

    @pytest.mark.asyncio
    async def test_award_without_profile(self, service, teacher):
        with pytest.raises(StudentProfileNotFoundError):
            await service.award_points(teacher.id, 10, TransactionType.DAILY_LOGIN)

    @pytest.mark.asyncio
    async def test_eligible_badge_is_awarded_automatically(self, service, db_session, student):
        """Test crossing a badge threshold grants the badge and its reward."""
        badge = await service.create_badge(_points_badge("Century", 100, reward=25))

        result = await service.award_points(student.id, 100, TransactionType.ASSESSMENT_COMPLETE)

        assert [b.id for b in result.badges_earned] == [badge.id]
        assert result.new_total_points == 125

        profile = (
            await db_session.execute(
                select(StudentProfile).where(StudentProfile.user_id == student.id)
            )
        ).scalar_one()
        assert profile.total_points == 125
        assert profile.current_level == 2

        badges = await service.get_student_badges(student.id)
        assert [b.badge.name for b in badges] == ["Century"]


class TestBadges:
    """Tests for badge management and awarding."""

    @pytest.mark.asyncio
    async def test_duplicate_badge_name(self, service):
        await service.create_badge(_points_badge("Starter", 10))

        with pytest.raises(BadgeNameExistsError):
            await service.create_badge(_points_badge("Starter", 20))

    @pytest.mark.asyncio
    async def test_award_badge_once(self, service, student):
        badge = await service.create_badge(_points_badge("Helper", 10_000, reward=15))

        result = await service.award_badge(student.id, badge.id)

        assert result.points_awarded == 15
        assert result.new_total_points == 15
        assert result.student_badge.badge.name == "Helper"

        with pytest.raises(BadgeAlreadyEarnedError):
            await service.award_badge(student.id, badge.id)

    @pytest.mark.asyncio
    async def test_badge_eligibility_groups(self, service, make_user):
        student = await make_user("student", total_points=300)
        held = await service.create_badge(_points_badge("Held", 10_000))
        eligible = await service.create_badge(_points_badge("Reachable", 200))
        distant = await service.create_badge(_points_badge("Distant", 500))
        await service.award_badge(student.id, held.id)

        result = await service.check_badge_eligibility(student.id)

        assert [b.id for b in result.completed_badges] == [held.id]
        assert [b.id for b in result.eligible_badges] == [eligible.id]
        assert [b.badge_id for b in result.in_progress_badges] == [distant.id]
        assert result.in_progress_badges[0].missing_requirements == ["Need 200 more points"]


class TestLeaderboard:
    """Tests for ranking."""

    @pytest.mark.asyncio
    async def test_sorted_by_points_and_skips_inactive(self, service, make_user):
        low = await make_user("student", first_name="Low", total_points=50)
        high = await make_user("student", first_name="High", total_points=900)
        await make_user("student", first_name="Gone", total_points=5000, is_active=False)

        leaderboard = await service.get_leaderboard()

        assert leaderboard.total_count == 2
        assert [e.student_id for e in leaderboard.entries] == [high.id, low.id]
        assert [e.rank for e in leaderboard.entries] == [1, 2]

    @pytest.mark.asyncio
    async def test_filter_by_grade(self, service, make_user):
        await make_user("student", total_points=50, grade_level=4)
        seventh = await make_user("student", total_points=10, grade_level=7)

        leaderboard = await service.get_leaderboard(grade_level=7)

        assert [e.student_id for e in leaderboard.entries] == [seventh.id]

    @pytest.mark.asyncio
    async def test_student_rank(self, service, make_user, teacher):
        await make_user("student", total_points=500)
        await make_user("student", total_points=400)
        third = await make_user("student", total_points=100)

        assert await service.get_student_rank(third.id) == 3
        assert await service.get_student_rank(teacher.id) == 0
