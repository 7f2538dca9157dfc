# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment service for homework, submissions and grading.

This module provides the AssignmentService that handles:
- Assignment CRUD restricted to the creating teacher
- Publishing with student notifications
- Student submissions with late detection
- Grading with per-day late penalties
- Statistics, summaries and overdue reminders

Example:
    >>> service = AssignmentService(db)
    >>> assignment = await service.create_assignment(request, created_by=teacher_id)
    >>> await service.publish_assignment(assignment.id, teacher_id)
    >>> submission = await service.submit_assignment(assignment.id, student_id, work)
"""

import logging

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.assignment.grading import final_score_for
from edupath.domains.auth.permissions import UserRole
from edupath.domains.gamification.service import (
    GamificationService,
    StudentProfileNotFoundError,
)
from edupath.domains.notification.service import NotificationService
from edupath.infrastructure.database.models import (
    Assignment,
    AssignmentSubmission,
    Notification,
    StudentProfile,
    User,
)
from edupath.models.assignment import (
    AssignmentCreateRequest,
    AssignmentFilters,
    AssignmentResponse,
    AssignmentStats,
    AssignmentUpdateRequest,
    GradeSubmissionRequest,
    StudentAssignmentSummary,
    SubmissionResponse,
    SubmissionStatus,
    SubmitAssignmentRequest,
)
from edupath.models.gamification import TransactionType
from edupath.models.notification import NotificationType
from edupath.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

ASSIGNMENT_SUBMIT_POINTS = 10


class AssignmentServiceError(Exception):
    """Base exception for assignment service errors."""

    pass


class AssignmentNotFoundError(AssignmentServiceError):
    """Raised when an assignment is not found."""

    pass


class AssignmentAccessDeniedError(AssignmentServiceError):
    """Raised when a user may not manage an assignment or submission."""

    pass


class AssignmentNotPublishedError(AssignmentServiceError):
    """Raised when submitting to an unpublished assignment."""

    pass


class AlreadySubmittedError(AssignmentServiceError):
    """Raised when the student already submitted."""

    pass


class LateSubmissionNotAllowedError(AssignmentServiceError):
    """Raised when the deadline passed and late work is not accepted."""

    pass


class SubmissionNotFoundError(AssignmentServiceError):
    """Raised when a submission is not found."""

    pass


class SubmissionAlreadyGradedError(AssignmentServiceError):
    """Raised when updating a graded submission."""

    pass


class InvalidScoreError(AssignmentServiceError):
    """Raised when a score is outside 0..max_score."""

    pass


class AssignmentService:
    """Service for assignments and their submissions.

    Attributes:
        _db: Async database session.
        _notifications: Notification service used for student messages.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifications: NotificationService | None = None,
    ) -> None:
        """Initialize the assignment service.

        Args:
            db: Async database session.
            notifications: Notification service. Built from db when omitted.
        """
        self._db = db
        self._notifications = notifications or NotificationService(db)

    # =========================================================================
    # Assignments
    # =========================================================================

    async def create_assignment(
        self,
        request: AssignmentCreateRequest,
        created_by: str,
    ) -> AssignmentResponse:
        """Create a draft assignment."""
        assignment = Assignment(
            title=request.title,
            description=request.description,
            instructions=request.instructions,
            assignment_type=request.assignment_type.value,
            subject_id=request.subject_id,
            grade_level=request.grade_level,
            due_date=request.due_date,
            max_score=request.max_score,
            allow_late_submission=request.allow_late_submission,
            late_penalty=request.late_penalty,
            attachments=list(request.attachments),
            is_published=False,
            created_by=created_by,
        )
        self._db.add(assignment)
        await self._db.commit()

        logger.info("Assignment created: %s by %s", assignment.id, created_by)
        return AssignmentResponse.model_validate(assignment)

    async def update_assignment(
        self,
        assignment_id: str,
        request: AssignmentUpdateRequest,
        user_id: str,
    ) -> AssignmentResponse:
        """Update an assignment owned by the user.

        Raises:
            AssignmentNotFoundError: If missing or owned by someone else.
        """
        assignment = await self._get_owned_assignment(assignment_id, user_id)

        updates = request.model_dump(exclude_unset=True)
        if request.assignment_type is not None:
            updates["assignment_type"] = request.assignment_type.value
        if "attachments" in updates and updates["attachments"] is not None:
            updates["attachments"] = list(updates["attachments"])

        for field, value in updates.items():
            setattr(assignment, field, value)

        await self._db.commit()
        return await self._to_response(assignment)

    async def delete_assignment(self, assignment_id: str, user_id: str) -> None:
        """Delete an assignment owned by the user, with its submissions.

        Raises:
            AssignmentNotFoundError: If missing or owned by someone else.
        """
        assignment = await self._get_owned_assignment(assignment_id, user_id)

        await self._db.execute(
            delete(AssignmentSubmission).where(AssignmentSubmission.assignment_id == assignment_id)
        )
        await self._db.delete(assignment)
        await self._db.commit()
        logger.info("Assignment deleted: %s", assignment_id)

    async def publish_assignment(self, assignment_id: str, user_id: str) -> AssignmentResponse:
        """Publish an assignment and notify students at its grade level.

        Raises:
            AssignmentNotFoundError: If missing or owned by someone else.
        """
        assignment = await self._get_owned_assignment(assignment_id, user_id)

        assignment.is_published = True
        assignment.published_at = utc_now()
        await self._db.commit()

        student_ids = await self._get_grade_student_ids(assignment.grade_level)
        for student_id in student_ids:
            await self._notifications.send_notification(
                user_id=student_id,
                title="New assignment",
                message=f"A new assignment has been published: {assignment.title}",
                notification_type=NotificationType.ASSIGNMENT,
                reference_id=assignment.id,
                reference_type="assignment",
            )

        logger.info(
            "Assignment %s published, %d students notified",
            assignment_id,
            len(student_ids),
        )
        return await self._to_response(assignment)

    async def get_assignment(self, assignment_id: str) -> AssignmentResponse:
        """Get an assignment with submission counters.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist.
        """
        assignment = await self._get_assignment(assignment_id)
        if not assignment:
            raise AssignmentNotFoundError("Assignment not found")
        return await self._to_response(assignment)

    async def list_assignments(
        self,
        filters: AssignmentFilters,
        limit: int = 10,
        offset: int = 0,
        viewer_role: str | None = None,
    ) -> tuple[list[AssignmentResponse], int]:
        """List assignments by due date.

        Students only see published assignments.

        Returns:
            Tuple of (assignments, total count).
        """
        stmt = select(Assignment)

        if filters.subject_id:
            stmt = stmt.where(Assignment.subject_id == filters.subject_id)
        if filters.grade_level is not None:
            stmt = stmt.where(Assignment.grade_level == filters.grade_level)
        if filters.assignment_type:
            stmt = stmt.where(Assignment.assignment_type == filters.assignment_type.value)
        if filters.created_by:
            stmt = stmt.where(Assignment.created_by == filters.created_by)
        if filters.due_after:
            stmt = stmt.where(Assignment.due_date >= filters.due_after)
        if filters.due_before:
            stmt = stmt.where(Assignment.due_date <= filters.due_before)

        if viewer_role == UserRole.STUDENT.value:
            stmt = stmt.where(Assignment.is_published.is_(True))
        elif filters.is_published is not None:
            stmt = stmt.where(Assignment.is_published.is_(filters.is_published))

        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    Assignment.title.ilike(search_term),
                    Assignment.description.ilike(search_term),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Assignment.due_date.asc()).limit(limit).offset(offset)
        result = await self._db.execute(stmt)
        assignments = list(result.scalars().all())

        counts = await self._get_submission_counts([a.id for a in assignments])
        items = []
        for assignment in assignments:
            response = AssignmentResponse.model_validate(assignment)
            response.submission_count, response.graded_count = counts.get(assignment.id, (0, 0))
            items.append(response)
        return items, total

    # =========================================================================
    # Submissions
    # =========================================================================

    async def submit_assignment(
        self,
        assignment_id: str,
        student_id: str,
        request: SubmitAssignmentRequest,
    ) -> SubmissionResponse:
        """Submit work. On-time submissions earn assignment_submit points.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist.
            AssignmentNotPublishedError: If it is not yet published.
            AlreadySubmittedError: If the student already submitted.
            LateSubmissionNotAllowedError: If late and late work is refused.
        """
        assignment = await self._get_assignment(assignment_id)
        if not assignment:
            raise AssignmentNotFoundError("Assignment not found")
        if not assignment.is_published:
            raise AssignmentNotPublishedError("Assignment is not published yet")

        existing = await self._db.execute(
            select(AssignmentSubmission).where(
                AssignmentSubmission.assignment_id == assignment_id,
                AssignmentSubmission.student_id == student_id,
            )
        )
        if existing.scalar_one_or_none():
            raise AlreadySubmittedError("Assignment already submitted")

        now = utc_now()
        is_late = now > ensure_utc(assignment.due_date)
        if is_late and not assignment.allow_late_submission:
            raise LateSubmissionNotAllowedError("Late submission not allowed for this assignment")

        submission = AssignmentSubmission(
            assignment_id=assignment_id,
            student_id=student_id,
            content=request.content,
            attachments=list(request.attachments),
            status=(SubmissionStatus.LATE if is_late else SubmissionStatus.SUBMITTED).value,
            is_late=is_late,
            submitted_at=now,
        )
        self._db.add(submission)
        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            raise AlreadySubmittedError("Assignment already submitted")

        logger.info(
            "Assignment %s submitted by %s%s",
            assignment_id,
            student_id,
            " (late)" if is_late else "",
        )

        if not is_late:
            await self._award_submission_points(assignment, student_id)

        return SubmissionResponse.model_validate(submission)

    async def update_submission(
        self,
        submission_id: str,
        student_id: str,
        request: SubmitAssignmentRequest,
    ) -> SubmissionResponse:
        """Replace the content of an ungraded submission.

        Raises:
            SubmissionNotFoundError: If missing or owned by someone else.
            SubmissionAlreadyGradedError: If it has been graded.
            LateSubmissionNotAllowedError: If late and late work is refused.
        """
        submission = await self._get_submission(submission_id)
        if not submission or submission.student_id != student_id:
            raise SubmissionNotFoundError("Submission not found or access denied")
        if submission.status == SubmissionStatus.GRADED.value:
            raise SubmissionAlreadyGradedError("Cannot update graded submission")

        assignment = await self._get_assignment(submission.assignment_id)
        now = utc_now()
        is_late = now > ensure_utc(assignment.due_date)
        if is_late and not assignment.allow_late_submission:
            raise LateSubmissionNotAllowedError("Late submission not allowed for this assignment")

        submission.content = request.content
        if request.attachments:
            submission.attachments = list(request.attachments)
        submission.is_late = is_late
        submission.submitted_at = now
        submission.status = (SubmissionStatus.LATE if is_late else SubmissionStatus.SUBMITTED).value

        await self._db.commit()
        return SubmissionResponse.model_validate(submission)

    async def grade_submission(
        self,
        submission_id: str,
        grader_id: str,
        request: GradeSubmissionRequest,
    ) -> SubmissionResponse:
        """Grade a submission, applying the late penalty.

        Raises:
            SubmissionNotFoundError: If the submission does not exist.
            AssignmentAccessDeniedError: If the grader did not create the assignment.
            InvalidScoreError: If the score exceeds max_score.
        """
        submission = await self._get_submission(submission_id)
        if not submission:
            raise SubmissionNotFoundError("Submission not found")

        assignment = await self._get_assignment(submission.assignment_id)
        if assignment.created_by != grader_id:
            raise AssignmentAccessDeniedError(
                "Access denied: You can only grade your own assignments"
            )
        if request.score < 0 or request.score > assignment.max_score:
            raise InvalidScoreError(f"Score must be between 0 and {assignment.max_score:g}")

        final_score = final_score_for(
            score=request.score,
            submitted_at=submission.submitted_at,
            due_date=assignment.due_date,
            late_penalty=assignment.late_penalty or 0,
            is_late=submission.is_late,
        )

        submission.score = request.score
        submission.final_score = final_score
        submission.feedback = request.feedback
        submission.graded_by = grader_id
        submission.graded_at = utc_now()
        submission.status = SubmissionStatus.GRADED.value
        await self._db.commit()

        await self._notifications.send_notification(
            user_id=submission.student_id,
            title="Assignment graded",
            message=(
                f"Your submission for '{assignment.title}' was graded: "
                f"{final_score}/{assignment.max_score:g}"
            ),
            notification_type=NotificationType.GRADE,
            reference_id=submission.id,
            reference_type="submission",
        )

        logger.info("Submission %s graded %s by %s", submission_id, final_score, grader_id)
        return SubmissionResponse.model_validate(submission)

    async def get_assignment_submissions(
        self,
        assignment_id: str,
        status: SubmissionStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[SubmissionResponse], int]:
        """List the submissions of an assignment.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist.
        """
        if not await self._get_assignment(assignment_id):
            raise AssignmentNotFoundError("Assignment not found")

        stmt = select(AssignmentSubmission).where(
            AssignmentSubmission.assignment_id == assignment_id
        )
        if status:
            stmt = stmt.where(AssignmentSubmission.status == status.value)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(AssignmentSubmission.submitted_at.desc()).limit(limit).offset(offset)
        result = await self._db.execute(stmt)
        return [SubmissionResponse.model_validate(s) for s in result.scalars().all()], total

    async def get_student_submissions(
        self,
        student_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[SubmissionResponse], int]:
        """List a student's own submissions."""
        stmt = select(AssignmentSubmission).where(AssignmentSubmission.student_id == student_id)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(AssignmentSubmission.submitted_at.desc()).limit(limit).offset(offset)
        result = await self._db.execute(stmt)
        return [SubmissionResponse.model_validate(s) for s in result.scalars().all()], total

    # =========================================================================
    # Statistics and maintenance
    # =========================================================================

    async def get_assignment_stats(self, created_by: str | None = None) -> AssignmentStats:
        """Aggregate assignment statistics, optionally for one teacher."""
        stmt = select(Assignment)
        if created_by:
            stmt = stmt.where(Assignment.created_by == created_by)
        result = await self._db.execute(stmt)
        assignments = list(result.scalars().all())

        now = utc_now()
        published = [a for a in assignments if a.is_published]
        overdue = [a for a in published if ensure_utc(a.due_date) < now]

        sub_stmt = select(AssignmentSubmission)
        if created_by:
            sub_stmt = sub_stmt.join(
                Assignment, Assignment.id == AssignmentSubmission.assignment_id
            ).where(Assignment.created_by == created_by)
        submissions = list((await self._db.execute(sub_stmt)).scalars().all())

        graded = [s for s in submissions if s.status == SubmissionStatus.GRADED.value]
        scores = [s.final_score or 0 for s in graded]
        pending = [
            s
            for s in submissions
            if s.status in (SubmissionStatus.SUBMITTED.value, SubmissionStatus.LATE.value)
        ]

        return AssignmentStats(
            total_assignments=len(assignments),
            published_assignments=len(published),
            draft_assignments=len(assignments) - len(published),
            overdue_assignments=len(overdue),
            total_submissions=len(submissions),
            graded_submissions=len(graded),
            pending_submissions=len(pending),
            late_submissions=sum(1 for s in submissions if s.is_late),
            average_score=round(sum(scores) / len(scores), 2) if scores else 0.0,
        )

    async def get_student_assignment_summary(self, student_id: str) -> StudentAssignmentSummary:
        """Summarise a student's work on assignments published for their grade."""
        profile_result = await self._db.execute(
            select(StudentProfile).where(StudentProfile.user_id == student_id)
        )
        profile = profile_result.scalar_one_or_none()

        total = 0
        if profile:
            total = await self._db.scalar(
                select(func.count())
                .select_from(Assignment)
                .where(
                    Assignment.is_published.is_(True),
                    Assignment.grade_level == profile.grade_level,
                )
            ) or 0

        result = await self._db.execute(
            select(AssignmentSubmission).where(AssignmentSubmission.student_id == student_id)
        )
        submissions = list(result.scalars().all())
        graded = [s for s in submissions if s.status == SubmissionStatus.GRADED.value]
        scores = [s.final_score or 0 for s in graded]

        return StudentAssignmentSummary(
            student_id=student_id,
            total_assignments=max(total, len(submissions)),
            submitted=len(submissions),
            graded=len(graded),
            late=sum(1 for s in submissions if s.is_late),
            pending=max(0, total - len(submissions)),
            average_score=round(sum(scores) / len(scores), 2) if scores else 0.0,
        )

    async def send_overdue_reminders(self) -> int:
        """Remind students who have not submitted past-due published assignments.

        Each student is reminded at most once per assignment.

        Returns:
            Number of reminders sent.
        """
        now = utc_now()
        result = await self._db.execute(
            select(Assignment).where(
                Assignment.is_published.is_(True),
                Assignment.due_date < now,
            )
        )
        sent = 0

        for assignment in result.scalars().all():
            submitted = await self._db.execute(
                select(AssignmentSubmission.student_id).where(
                    AssignmentSubmission.assignment_id == assignment.id
                )
            )
            reminded = await self._db.execute(
                select(Notification.user_id).where(
                    Notification.reference_id == assignment.id,
                    Notification.reference_type == "assignment_reminder",
                )
            )
            skip = set(submitted.scalars().all()) | set(reminded.scalars().all())

            for student_id in await self._get_grade_student_ids(assignment.grade_level):
                if student_id in skip:
                    continue
                await self._notifications.send_notification(
                    user_id=student_id,
                    title="Reminder: overdue assignment",
                    message=f"You have an overdue assignment: {assignment.title}",
                    notification_type=NotificationType.ASSIGNMENT,
                    reference_id=assignment.id,
                    reference_type="assignment_reminder",
                )
                sent += 1

        if sent:
            logger.info("Sent %d overdue assignment reminders", sent)
        return sent

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _award_submission_points(self, assignment: Assignment, student_id: str) -> None:
        gamification = GamificationService(self._db)
        try:
            await gamification.award_points(
                student_id=student_id,
                points=ASSIGNMENT_SUBMIT_POINTS,
                transaction_type=TransactionType.ASSIGNMENT_SUBMIT,
                reference_id=assignment.id,
                reference_type="assignment",
                description=f"Submitted assignment: {assignment.title}",
            )
        except StudentProfileNotFoundError:
            logger.warning("No student profile for %s, points not awarded", student_id)

    async def _get_assignment(self, assignment_id: str) -> Assignment | None:
        result = await self._db.execute(select(Assignment).where(Assignment.id == assignment_id))
        return result.scalar_one_or_none()

    async def _get_owned_assignment(self, assignment_id: str, user_id: str) -> Assignment:
        assignment = await self._get_assignment(assignment_id)
        if not assignment or assignment.created_by != user_id:
            raise AssignmentNotFoundError("Assignment not found or access denied")
        return assignment

    async def _get_submission(self, submission_id: str) -> AssignmentSubmission | None:
        result = await self._db.execute(
            select(AssignmentSubmission).where(AssignmentSubmission.id == submission_id)
        )
        return result.scalar_one_or_none()

    async def _get_grade_student_ids(self, grade_level: int) -> list[str]:
        result = await self._db.execute(
            select(User.id)
            .join(StudentProfile, StudentProfile.user_id == User.id)
            .where(
                User.is_active.is_(True),
                User.role == UserRole.STUDENT.value,
                StudentProfile.grade_level == grade_level,
            )
        )
        return list(result.scalars().all())

    async def _get_submission_counts(
        self,
        assignment_ids: list[str],
    ) -> dict[str, tuple[int, int]]:
        if not assignment_ids:
            return {}
        graded = func.sum(
            case((AssignmentSubmission.status == SubmissionStatus.GRADED.value, 1), else_=0)
        )
        result = await self._db.execute(
            select(AssignmentSubmission.assignment_id, func.count(AssignmentSubmission.id), graded)
            .where(AssignmentSubmission.assignment_id.in_(assignment_ids))
            .group_by(AssignmentSubmission.assignment_id)
        )
        return {aid: (count, int(graded or 0)) for aid, count, graded in result.all()}

    async def _to_response(self, assignment: Assignment) -> AssignmentResponse:
        response = AssignmentResponse.model_validate(assignment)
        counts = await self._get_submission_counts([assignment.id])
        response.submission_count, response.graded_count = counts.get(assignment.id, (0, 0))
        return response
