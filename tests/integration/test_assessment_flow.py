# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the assessment attempt lifecycle."""

from datetime import timedelta

import pytest

from edupath.domains.assessment.service import (
    ActiveAttemptExistsError,
    AssessmentAccessDeniedError,
    AssessmentNotPublishedError,
    AssessmentService,
    AttemptNotActiveError,
    InvalidQuestionError,
    MaxAttemptsExceededError,
)
from edupath.domains.gamification.service import GamificationService
from edupath.infrastructure.database.models import AssessmentAttempt
from edupath.models.assessment import (
    AssessmentCreateRequest,
    AttemptStatus,
    QuestionCreateRequest,
    QuestionType,
)
from edupath.utils.datetime import utc_now

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return AssessmentService(db_session)


@pytest.fixture
def assessment_request(subject):
    """A published two-question quiz worth three points."""
    return AssessmentCreateRequest(
        title="Fractions Quiz",
        subject_id=subject.id,
        grade_level=5,
        passing_score=60,
        max_attempts=1,
        is_published=True,
        questions=[
            QuestionCreateRequest(
                question_text="What is 1/2 + 1/2?",
                question_type=QuestionType.MULTIPLE_CHOICE,
                options=["1", "2", "1/4"],
                correct_answer="1",
                points=2,
            ),
            QuestionCreateRequest(
                question_text="1/3 is larger than 1/2.",
                question_type=QuestionType.TRUE_FALSE,
                correct_answer="false",
                points=1,
            ),
        ],
    )


class TestAssessmentLifecycle:
    """Tests for create, start, answer and submit."""

    @pytest.mark.asyncio
    async def test_create_with_questions(self, service, assessment_request, teacher):
        assessment = await service.create_assessment(assessment_request, teacher.id)

        assert assessment.total_questions == 2
        assert assessment.is_published is True
        assert assessment.published_at is not None
        assert [q.order_index for q in assessment.questions] == [0, 1]

    @pytest.mark.asyncio
    async def test_passing_attempt_awards_points(
        self, service, db_session, assessment_request, teacher, student
    ):
        """Test a passing submission awards the total score as points."""
        assessment = await service.create_assessment(assessment_request, teacher.id)
        first, second = assessment.questions

        attempt = await service.start_assessment(assessment.id, student.id)
        assert attempt.status == AttemptStatus.IN_PROGRESS.value

        await service.submit_answer(attempt.id, first.id, " 1 ", student.id)
        await service.submit_answer(attempt.id, second.id, "FALSE", student.id)

        result = await service.submit_assessment(attempt.id, student.id)

        assert result.total_score == 3
        assert result.max_score == 3
        assert result.percentage_score == 100.0
        assert result.passed is True
        assert result.points_awarded == 3
        assert result.student_name.startswith("Sara")
        assert all(q.is_correct for q in result.question_results)

        points = await GamificationService(db_session).get_student_points(student.id)
        assert points.total_points == 3

    @pytest.mark.asyncio
    async def test_failing_attempt_awards_nothing(
        self, service, assessment_request, teacher, student
    ):
        assessment = await service.create_assessment(assessment_request, teacher.id)
        attempt = await service.start_assessment(assessment.id, student.id)
        await service.submit_answer(attempt.id, assessment.questions[1].id, "false", student.id)

        result = await service.submit_assessment(attempt.id, student.id)

        assert result.total_score == 1
        assert result.passed is False
        assert result.points_awarded == 0

    @pytest.mark.asyncio
    async def test_student_view_hides_answer_keys(
        self, service, assessment_request, teacher, student
    ):
        assessment = await service.create_assessment(assessment_request, teacher.id)

        view = await service.get_assessment_for_student(assessment.id, student.id)

        assert view.attempt is None
        assert len(view.questions) == 2
        assert all("correct_answer" not in q.model_dump() for q in view.questions)


class TestAttemptRules:
    """Tests for attempt limits and ownership."""

    @pytest.mark.asyncio
    async def test_only_one_active_attempt(self, service, assessment_request, teacher, student):
        assessment = await service.create_assessment(assessment_request, teacher.id)
        await service.start_assessment(assessment.id, student.id)

        with pytest.raises(ActiveAttemptExistsError):
            await service.start_assessment(assessment.id, student.id)

    @pytest.mark.asyncio
    async def test_max_attempts(self, service, assessment_request, teacher, student):
        assessment = await service.create_assessment(assessment_request, teacher.id)
        attempt = await service.start_assessment(assessment.id, student.id)
        await service.submit_assessment(attempt.id, student.id)

        with pytest.raises(MaxAttemptsExceededError):
            await service.start_assessment(assessment.id, student.id)

    @pytest.mark.asyncio
    async def test_unpublished_cannot_start(self, service, assessment_request, teacher, student):
        draft = await service.create_assessment(
            assessment_request.model_copy(update={"is_published": False}),
            teacher.id,
        )

        with pytest.raises(AssessmentNotPublishedError):
            await service.start_assessment(draft.id, student.id)

    @pytest.mark.asyncio
    async def test_other_student_cannot_answer(
        self, service, assessment_request, teacher, student, make_user
    ):
        other = await make_user("student")
        assessment = await service.create_assessment(assessment_request, teacher.id)
        attempt = await service.start_assessment(assessment.id, student.id)

        with pytest.raises(AssessmentAccessDeniedError):
            await service.submit_answer(
                attempt.id, assessment.questions[0].id, "1", other.id
            )

    @pytest.mark.asyncio
    async def test_question_from_other_assessment(
        self, service, assessment_request, teacher, student
    ):
        quiz = await service.create_assessment(assessment_request, teacher.id)
        other = await service.create_assessment(
            assessment_request.model_copy(update={"title": "Decimals Quiz"}),
            teacher.id,
        )
        attempt = await service.start_assessment(quiz.id, student.id)

        with pytest.raises(InvalidQuestionError):
            await service.submit_answer(attempt.id, other.questions[0].id, "1", student.id)

    @pytest.mark.asyncio
    async def test_submitted_attempt_is_closed(
        self, service, assessment_request, teacher, student
    ):
        assessment = await service.create_assessment(assessment_request, teacher.id)
        attempt = await service.start_assessment(assessment.id, student.id)
        await service.submit_assessment(attempt.id, student.id)

        with pytest.raises(AttemptNotActiveError):
            await service.submit_assessment(attempt.id, student.id)


class TestAutoSubmit:
    """Tests for closing attempts whose time ran out."""

    @pytest.mark.asyncio
    async def test_expired_attempt_is_auto_submitted(
        self, service, db_session, assessment_request, teacher, student
    ):
        assessment = await service.create_assessment(assessment_request, teacher.id)
        attempt = await service.start_assessment(assessment.id, student.id)
        await service.submit_answer(attempt.id, assessment.questions[0].id, "1", student.id)

        row = await db_session.get(AssessmentAttempt, attempt.id)
        row.started_at = utc_now() - timedelta(minutes=assessment.duration_minutes + 5)
        await db_session.commit()

        assert await service.auto_submit_expired_attempts() == 1

        await db_session.refresh(row)
        assert row.status == AttemptStatus.AUTO_SUBMITTED.value
        assert row.total_score == 2

    @pytest.mark.asyncio
    async def test_fresh_attempt_is_left_open(
        self, service, assessment_request, teacher, student
    ):
        assessment = await service.create_assessment(assessment_request, teacher.id)
        await service.start_assessment(assessment.id, student.id)

        assert await service.auto_submit_expired_attempts() == 0
