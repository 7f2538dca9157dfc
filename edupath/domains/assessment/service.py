# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment service for quizzes, questions and attempts.

This module provides the AssessmentService that handles:
- Assessment CRUD with creator/admin ownership checks
- Question management keeping total_questions in sync
- Starting, answering and submitting attempts
- Auto-submission of attempts whose time limit elapsed
- Assessment statistics

Passed submissions award ``assessment_complete`` points through the
GamificationService.

Example:
    >>> service = AssessmentService(db)
    >>> attempt = await service.start_assessment(assessment_id, student_id)
    >>> await service.submit_answer(attempt.id, question_id, "B", student_id)
    >>> result = await service.submit_assessment(attempt.id, student_id)
"""

import logging
from datetime import timedelta

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.assessment.scoring import score_attempt
from edupath.domains.auth.permissions import UserRole
from edupath.domains.gamification.service import (
    GamificationService,
    StudentProfileNotFoundError,
)
from edupath.infrastructure.database.models import (
    Assessment,
    AssessmentAttempt,
    AssessmentQuestion,
    Subject,
    User,
)
from edupath.models.assessment import (
    FINISHED_ATTEMPT_STATUSES,
    AssessmentCreateRequest,
    AssessmentFilters,
    AssessmentResponse,
    AssessmentResult,
    AssessmentStats,
    AssessmentUpdateRequest,
    AttemptResponse,
    AttemptStatus,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionUpdateRequest,
    RecentAttempt,
    StudentAssessmentView,
    StudentQuestionResponse,
)
from edupath.models.gamification import TransactionType
from edupath.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

STATS_PASS_PERCENTAGE = 60.0


class AssessmentServiceError(Exception):
    """Base exception for assessment service errors."""

    pass


class AssessmentNotFoundError(AssessmentServiceError):
    """Raised when an assessment is not found."""

    pass


class QuestionNotFoundError(AssessmentServiceError):
    """Raised when a question is not found."""

    pass


class AttemptNotFoundError(AssessmentServiceError):
    """Raised when an attempt is not found."""

    pass


class AssessmentAccessDeniedError(AssessmentServiceError):
    """Raised when a user may not modify an assessment or attempt."""

    pass


class AssessmentNotPublishedError(AssessmentServiceError):
    """Raised when a student tries to take an unpublished assessment."""

    pass


class MaxAttemptsExceededError(AssessmentServiceError):
    """Raised when the student has used all allowed attempts."""

    pass


class ActiveAttemptExistsError(AssessmentServiceError):
    """Raised when the student already has an attempt in progress."""

    pass


class AttemptNotActiveError(AssessmentServiceError):
    """Raised when changing an attempt that is no longer in progress."""

    pass


class InvalidQuestionError(AssessmentServiceError):
    """Raised when a question does not belong to the attempt's assessment."""

    pass


class AssessmentService:
    """Service for assessments and student attempts.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the assessment service.

        Args:
            db: Async database session.
        """
        self._db = db

    # =========================================================================
    # Assessments
    # =========================================================================

    async def create_assessment(
        self,
        request: AssessmentCreateRequest,
        created_by: str,
    ) -> AssessmentResponse:
        """Create an assessment with optional initial questions.

        Args:
            request: Assessment creation request.
            created_by: ID of the teacher or admin creating it.

        Returns:
            Created assessment including its questions.
        """
        assessment = Assessment(
            title=request.title,
            description=request.description,
            subject_id=request.subject_id,
            grade_level=request.grade_level,
            difficulty_level=request.difficulty_level.value,
            duration_minutes=request.duration_minutes,
            passing_score=request.passing_score,
            max_attempts=request.max_attempts,
            total_questions=len(request.questions),
            is_published=request.is_published,
            published_at=utc_now() if request.is_published else None,
            created_by=created_by,
        )
        self._db.add(assessment)
        await self._db.flush()

        for index, question in enumerate(request.questions):
            self._db.add(self._build_question(assessment.id, question, index))

        await self._db.commit()
        logger.info("Assessment created: %s by %s", assessment.id, created_by)
        return await self.get_assessment(assessment.id, include_questions=True)

    async def update_assessment(
        self,
        assessment_id: str,
        request: AssessmentUpdateRequest,
        user_id: str,
        role: str,
    ) -> AssessmentResponse:
        """Update an assessment.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user is neither creator nor admin.
        """
        assessment = await self._get_owned_assessment(assessment_id, user_id, role)

        updates = request.model_dump(exclude_unset=True)
        if updates.get("is_published") and not assessment.is_published:
            assessment.published_at = utc_now()
        if request.difficulty_level is not None:
            updates["difficulty_level"] = request.difficulty_level.value

        for field, value in updates.items():
            setattr(assessment, field, value)

        await self._db.commit()
        logger.info("Assessment updated: %s", assessment_id)
        return await self.get_assessment(assessment_id)

    async def delete_assessment(self, assessment_id: str, user_id: str, role: str) -> None:
        """Delete an assessment with its questions and attempts.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user is neither creator nor admin.
        """
        assessment = await self._get_owned_assessment(assessment_id, user_id, role)

        await self._db.execute(
            delete(AssessmentAttempt).where(AssessmentAttempt.assessment_id == assessment_id)
        )
        await self._db.execute(
            delete(AssessmentQuestion).where(AssessmentQuestion.assessment_id == assessment_id)
        )
        await self._db.delete(assessment)
        await self._db.commit()
        logger.info("Assessment deleted: %s", assessment_id)

    async def get_assessment(
        self,
        assessment_id: str,
        include_questions: bool = False,
    ) -> AssessmentResponse:
        """Get an assessment.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
        """
        result = await self._db.execute(
            select(Assessment)
            .where(Assessment.id == assessment_id)
            .execution_options(populate_existing=True)
        )
        assessment = result.scalar_one_or_none()
        if not assessment:
            raise AssessmentNotFoundError(f"Assessment {assessment_id} not found")

        response = AssessmentResponse.model_validate(assessment)
        if include_questions:
            questions = await self._get_questions(assessment_id)
            response.questions = [QuestionResponse.model_validate(q) for q in questions]
        return response

    async def list_assessments(
        self,
        filters: AssessmentFilters,
        limit: int = 20,
        offset: int = 0,
        viewer_role: str | None = None,
    ) -> tuple[list[AssessmentResponse], int]:
        """List assessments with filtering and pagination.

        Students only see published assessments.

        Returns:
            Tuple of (assessments, total count).
        """
        stmt = select(Assessment)

        if filters.subject_id:
            stmt = stmt.where(Assessment.subject_id == filters.subject_id)
        if filters.grade_level is not None:
            stmt = stmt.where(Assessment.grade_level == filters.grade_level)
        if filters.difficulty_level:
            stmt = stmt.where(Assessment.difficulty_level == filters.difficulty_level.value)
        if filters.created_by:
            stmt = stmt.where(Assessment.created_by == filters.created_by)

        if viewer_role == UserRole.STUDENT.value:
            stmt = stmt.where(Assessment.is_published.is_(True))
        elif filters.is_published is not None:
            stmt = stmt.where(Assessment.is_published.is_(filters.is_published))

        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Assessment.title.ilike(search_term),
                    Assessment.description.ilike(search_term),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Assessment.created_at.desc()).limit(limit).offset(offset)
        result = await self._db.execute(stmt)
        return [AssessmentResponse.model_validate(a) for a in result.scalars().all()], total

    # =========================================================================
    # Questions
    # =========================================================================

    async def add_question(
        self,
        assessment_id: str,
        request: QuestionCreateRequest,
        user_id: str,
        role: str,
    ) -> QuestionResponse:
        """Add a question and bump total_questions.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user is neither creator nor admin.
        """
        assessment = await self._get_owned_assessment(assessment_id, user_id, role)

        question = self._build_question(assessment_id, request, assessment.total_questions)
        self._db.add(question)
        assessment.total_questions = (assessment.total_questions or 0) + 1

        await self._db.commit()
        return QuestionResponse.model_validate(question)

    async def bulk_create_questions(
        self,
        assessment_id: str,
        requests: list[QuestionCreateRequest],
        user_id: str,
        role: str,
    ) -> list[QuestionResponse]:
        """Add several questions in one transaction.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user is neither creator nor admin.
        """
        assessment = await self._get_owned_assessment(assessment_id, user_id, role)

        start = assessment.total_questions or 0
        questions = [
            self._build_question(assessment_id, request, start + index)
            for index, request in enumerate(requests)
        ]
        self._db.add_all(questions)
        assessment.total_questions = start + len(questions)

        await self._db.commit()
        logger.info("Added %d questions to assessment %s", len(questions), assessment_id)
        return [QuestionResponse.model_validate(q) for q in questions]

    async def update_question(
        self,
        question_id: str,
        request: QuestionUpdateRequest,
        user_id: str,
        role: str,
    ) -> QuestionResponse:
        """Update a question.

        Raises:
            QuestionNotFoundError: If the question does not exist.
            AssessmentAccessDeniedError: If the user is neither creator nor admin.
        """
        question = await self._get_question(question_id)
        if not question:
            raise QuestionNotFoundError(f"Question {question_id} not found")
        await self._get_owned_assessment(question.assessment_id, user_id, role)

        updates = request.model_dump(exclude_unset=True)
        if request.question_type is not None:
            updates["question_type"] = request.question_type.value

        for field, value in updates.items():
            setattr(question, field, value)

        await self._db.commit()
        return QuestionResponse.model_validate(question)

    async def delete_question(self, question_id: str, user_id: str, role: str) -> None:
        """Delete a question and decrement total_questions.

        Raises:
            QuestionNotFoundError: If the question does not exist.
            AssessmentAccessDeniedError: If the user is neither creator nor admin.
        """
        question = await self._get_question(question_id)
        if not question:
            raise QuestionNotFoundError(f"Question {question_id} not found")
        assessment = await self._get_owned_assessment(question.assessment_id, user_id, role)

        await self._db.delete(question)
        assessment.total_questions = max(0, (assessment.total_questions or 0) - 1)
        await self._db.commit()

    # =========================================================================
    # Attempts
    # =========================================================================

    async def start_assessment(self, assessment_id: str, student_id: str) -> AttemptResponse:
        """Open a new attempt for a student.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentNotPublishedError: If it is not published.
            MaxAttemptsExceededError: If all attempts are used.
            ActiveAttemptExistsError: If an attempt is already in progress.
        """
        assessment = await self._get_assessment(assessment_id)
        if not assessment:
            raise AssessmentNotFoundError(f"Assessment {assessment_id} not found")
        if not assessment.is_published:
            raise AssessmentNotPublishedError("Assessment is not published")

        finished = await self._db.scalar(
            select(func.count())
            .select_from(AssessmentAttempt)
            .where(
                AssessmentAttempt.assessment_id == assessment_id,
                AssessmentAttempt.student_id == student_id,
                AssessmentAttempt.status.in_(FINISHED_ATTEMPT_STATUSES),
            )
        )
        if (finished or 0) >= assessment.max_attempts:
            raise MaxAttemptsExceededError("Maximum attempts exceeded")

        if await self._get_active_attempt(assessment_id, student_id):
            raise ActiveAttemptExistsError(
                "You already have an active attempt for this assessment"
            )

        attempt = AssessmentAttempt(
            assessment_id=assessment_id,
            student_id=student_id,
            status=AttemptStatus.IN_PROGRESS.value,
            answers={},
            started_at=utc_now(),
        )
        self._db.add(attempt)
        await self._db.commit()

        logger.info("Attempt %s started on %s by %s", attempt.id, assessment_id, student_id)
        return AttemptResponse.model_validate(attempt)

    async def get_assessment_for_student(
        self,
        assessment_id: str,
        student_id: str,
    ) -> StudentAssessmentView:
        """Get a published assessment without answer keys, plus the open attempt.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentNotPublishedError: If it is not published.
        """
        assessment = await self._get_assessment(assessment_id)
        if not assessment:
            raise AssessmentNotFoundError(f"Assessment {assessment_id} not found")
        if not assessment.is_published:
            raise AssessmentNotPublishedError("Assessment is not published")

        questions = await self._get_questions(assessment_id)
        attempt = await self._get_active_attempt(assessment_id, student_id)

        return StudentAssessmentView(
            assessment=AssessmentResponse.model_validate(assessment),
            questions=[StudentQuestionResponse.model_validate(q) for q in questions],
            attempt=AttemptResponse.model_validate(attempt) if attempt else None,
        )

    async def submit_answer(
        self,
        attempt_id: str,
        question_id: str,
        answer: str,
        student_id: str,
    ) -> AttemptResponse:
        """Record an answer on an in-progress attempt.

        Raises:
            AttemptNotFoundError: If the attempt does not exist.
            AssessmentAccessDeniedError: If the attempt belongs to someone else.
            AttemptNotActiveError: If the attempt is no longer in progress.
            InvalidQuestionError: If the question is not part of the assessment.
        """
        attempt = await self._get_student_attempt(attempt_id, student_id)

        question = await self._get_question(question_id)
        if not question or question.assessment_id != attempt.assessment_id:
            raise InvalidQuestionError("Question does not belong to this assessment")

        attempt.answers = {**(attempt.answers or {}), question_id: answer}
        await self._db.commit()
        return AttemptResponse.model_validate(attempt)

    async def submit_assessment(self, attempt_id: str, student_id: str) -> AssessmentResult:
        """Score and close an attempt.

        A passing result awards the total score as assessment_complete points.

        Raises:
            AttemptNotFoundError: If the attempt does not exist.
            AssessmentAccessDeniedError: If the attempt belongs to someone else.
            AttemptNotActiveError: If the attempt is no longer in progress.
        """
        attempt = await self._get_student_attempt(attempt_id, student_id)
        assessment = attempt.assessment

        questions = await self._get_questions(assessment.id)
        score = score_attempt(questions, attempt.answers or {})

        now = utc_now()
        time_spent = int((now - ensure_utc(attempt.started_at)).total_seconds())
        percentage = score.percentage
        passed = percentage >= assessment.passing_score

        attempt.status = AttemptStatus.SUBMITTED.value
        attempt.submitted_at = now
        attempt.completed_at = now
        attempt.total_score = score.total_score
        attempt.max_score = score.max_score
        attempt.percentage_score = percentage
        attempt.time_spent = time_spent
        await self._db.commit()

        points_awarded = 0
        if passed and score.total_score > 0:
            points_awarded = await self._award_completion_points(attempt, assessment.title)

        student = await self._db.get(User, student_id)

        logger.info(
            "Attempt %s submitted: %.1f%% (%s)",
            attempt_id,
            percentage,
            "passed" if passed else "failed",
        )

        return AssessmentResult(
            attempt_id=attempt.id,
            assessment_title=assessment.title,
            student_name=student.full_name if student else "",
            total_score=score.total_score,
            max_score=score.max_score,
            percentage_score=percentage,
            passed=passed,
            time_spent=time_spent,
            completed_at=now,
            question_results=score.question_results,
            points_awarded=points_awarded,
        )

    async def auto_submit_expired_attempts(self) -> int:
        """Score and close in-progress attempts whose time limit elapsed.

        Returns:
            Number of attempts auto-submitted.
        """
        result = await self._db.execute(
            select(AssessmentAttempt).where(
                AssessmentAttempt.status == AttemptStatus.IN_PROGRESS.value
            )
        )
        now = utc_now()
        count = 0

        for attempt in result.scalars().all():
            started_at = ensure_utc(attempt.started_at)
            limit = timedelta(minutes=attempt.assessment.duration_minutes)
            if now - started_at < limit:
                continue

            questions = await self._get_questions(attempt.assessment_id)
            score = score_attempt(questions, attempt.answers or {})

            attempt.status = AttemptStatus.AUTO_SUBMITTED.value
            attempt.submitted_at = now
            attempt.completed_at = now
            attempt.total_score = score.total_score
            attempt.max_score = score.max_score
            attempt.percentage_score = score.percentage
            attempt.time_spent = int((now - started_at).total_seconds())
            count += 1

        if count:
            await self._db.commit()
            logger.info("Auto-submitted %d expired attempts", count)
        return count

    async def get_assessment_stats(self) -> AssessmentStats:
        """Aggregate assessment and attempt statistics."""
        total = await self._db.scalar(select(func.count()).select_from(Assessment)) or 0
        published = await self._db.scalar(
            select(func.count()).select_from(Assessment).where(Assessment.is_published.is_(True))
        ) or 0
        total_attempts = (
            await self._db.scalar(select(func.count()).select_from(AssessmentAttempt)) or 0
        )

        finished = AssessmentAttempt.status.in_(FINISHED_ATTEMPT_STATUSES)
        completed_attempts = await self._db.scalar(
            select(func.count()).select_from(AssessmentAttempt).where(finished)
        ) or 0
        average = await self._db.scalar(
            select(func.avg(AssessmentAttempt.percentage_score)).where(finished)
        )
        passed = await self._db.scalar(
            select(func.count())
            .select_from(AssessmentAttempt)
            .where(finished, AssessmentAttempt.percentage_score >= STATS_PASS_PERCENTAGE)
        ) or 0

        by_subject = await self._db.execute(
            select(Subject.name, func.count(Assessment.id))
            .join(Subject, Subject.id == Assessment.subject_id)
            .group_by(Subject.name)
        )
        by_grade = await self._db.execute(
            select(Assessment.grade_level, func.count(Assessment.id))
            .group_by(Assessment.grade_level)
            .order_by(Assessment.grade_level)
        )
        by_difficulty = await self._db.execute(
            select(Assessment.difficulty_level, func.count(Assessment.id)).group_by(
                Assessment.difficulty_level
            )
        )

        recent_result = await self._db.execute(
            select(AssessmentAttempt, User)
            .join(User, User.id == AssessmentAttempt.student_id)
            .where(finished)
            .order_by(AssessmentAttempt.completed_at.desc())
            .limit(10)
        )
        recent = [
            RecentAttempt(
                attempt_id=attempt.id,
                assessment_title=attempt.assessment.title,
                student_name=user.full_name,
                percentage_score=attempt.percentage_score,
                completed_at=attempt.completed_at,
            )
            for attempt, user in recent_result.all()
        ]

        return AssessmentStats(
            total=total,
            published=published,
            draft=total - published,
            total_attempts=total_attempts,
            completed_attempts=completed_attempts,
            average_score=round(float(average or 0), 2),
            pass_rate=round(passed / completed_attempts * 100, 2) if completed_attempts else 0.0,
            by_subject=dict(by_subject.all()),
            by_grade=dict(by_grade.all()),
            by_difficulty=dict(by_difficulty.all()),
            recent_attempts=recent,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _award_completion_points(self, attempt: AssessmentAttempt, title: str) -> int:
        points = int(attempt.total_score)
        gamification = GamificationService(self._db)
        try:
            await gamification.award_points(
                student_id=attempt.student_id,
                points=points,
                transaction_type=TransactionType.ASSESSMENT_COMPLETE,
                reference_id=attempt.assessment_id,
                reference_type="assessment",
                description=f"Passed assessment: {title}",
            )
        except StudentProfileNotFoundError:
            logger.warning("No student profile for %s, points not awarded", attempt.student_id)
            return 0
        return points

    @staticmethod
    def _build_question(
        assessment_id: str,
        request: QuestionCreateRequest,
        default_order: int,
    ) -> AssessmentQuestion:
        return AssessmentQuestion(
            assessment_id=assessment_id,
            question_text=request.question_text,
            question_type=request.question_type.value,
            options=request.options,
            correct_answer=request.correct_answer,
            explanation=request.explanation,
            points=request.points,
            order_index=request.order_index if request.order_index is not None else default_order,
            created_at=utc_now(),
        )

    async def _get_assessment(self, assessment_id: str) -> Assessment | None:
        result = await self._db.execute(select(Assessment).where(Assessment.id == assessment_id))
        return result.scalar_one_or_none()

    async def _get_owned_assessment(
        self,
        assessment_id: str,
        user_id: str,
        role: str,
    ) -> Assessment:
        assessment = await self._get_assessment(assessment_id)
        if not assessment:
            raise AssessmentNotFoundError(f"Assessment {assessment_id} not found")
        if assessment.created_by != user_id and role != UserRole.ADMIN.value:
            raise AssessmentAccessDeniedError("Unauthorized to modify this assessment")
        return assessment

    async def _get_questions(self, assessment_id: str) -> list[AssessmentQuestion]:
        result = await self._db.execute(
            select(AssessmentQuestion)
            .where(AssessmentQuestion.assessment_id == assessment_id)
            .order_by(AssessmentQuestion.order_index.asc(), AssessmentQuestion.created_at.asc())
        )
        return list(result.scalars().all())

    async def _get_question(self, question_id: str) -> AssessmentQuestion | None:
        result = await self._db.execute(
            select(AssessmentQuestion).where(AssessmentQuestion.id == question_id)
        )
        return result.scalar_one_or_none()

    async def _get_active_attempt(
        self,
        assessment_id: str,
        student_id: str,
    ) -> AssessmentAttempt | None:
        result = await self._db.execute(
            select(AssessmentAttempt).where(
                AssessmentAttempt.assessment_id == assessment_id,
                AssessmentAttempt.student_id == student_id,
                AssessmentAttempt.status == AttemptStatus.IN_PROGRESS.value,
            )
        )
        return result.scalars().first()

    async def _get_student_attempt(self, attempt_id: str, student_id: str) -> AssessmentAttempt:
        result = await self._db.execute(
            select(AssessmentAttempt).where(AssessmentAttempt.id == attempt_id)
        )
        attempt = result.scalar_one_or_none()
        if not attempt:
            raise AttemptNotFoundError(f"Attempt {attempt_id} not found")
        if attempt.student_id != student_id:
            raise AssessmentAccessDeniedError("Unauthorized to modify this attempt")
        if attempt.status != AttemptStatus.IN_PROGRESS.value:
            raise AttemptNotActiveError("Assessment attempt is not active")
        return attempt
