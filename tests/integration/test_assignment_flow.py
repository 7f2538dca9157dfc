# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for assignments, submissions and grading."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from edupath.domains.assignment.service import (
    ASSIGNMENT_SUBMIT_POINTS,
    AlreadySubmittedError,
    AssignmentAccessDeniedError,
    AssignmentNotFoundError,
    AssignmentNotPublishedError,
    AssignmentService,
    InvalidScoreError,
    LateSubmissionNotAllowedError,
    SubmissionAlreadyGradedError,
)
from edupath.domains.gamification.service import GamificationService
from edupath.infrastructure.database.models import AssignmentSubmission, Notification
from edupath.models.assignment import (
    AssignmentCreateRequest,
    GradeSubmissionRequest,
    SubmissionStatus,
    SubmitAssignmentRequest,
)
from edupath.utils.datetime import utc_now

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return AssignmentService(db_session)


@pytest.fixture
def assignment_request():
    def _request(due_in: timedelta = timedelta(days=3), **overrides) -> AssignmentCreateRequest:
        data = {
            "title": "Fractions Worksheet",
            "grade_level": 5,
            "due_date": utc_now() + due_in,
            "max_score": 20,
            "allow_late_submission": True,
            "late_penalty": 10,
        }
        data.update(overrides)
        return AssignmentCreateRequest(**data)

    return _request


async def _notifications_for(db_session, user_id, reference_type):
    result = await db_session.execute(
        select(Notification).where(
            Notification.user_id == user_id,
            Notification.reference_type == reference_type,
        )
    )
    return result.scalars().all()


class TestPublish:
    """Tests for publishing assignments."""

    @pytest.mark.asyncio
    async def test_publish_notifies_grade(
        self, service, db_session, assignment_request, teacher, make_user
    ):
        fifth = await make_user("student", grade_level=5)
        sixth = await make_user("student", grade_level=6)
        draft = await service.create_assignment(assignment_request(), teacher.id)
        assert draft.is_published is False

        published = await service.publish_assignment(draft.id, teacher.id)

        assert published.is_published is True
        assert published.published_at is not None
        assert len(await _notifications_for(db_session, fifth.id, "assignment")) == 1
        assert await _notifications_for(db_session, sixth.id, "assignment") == []

    @pytest.mark.asyncio
    async def test_only_owner_can_publish(self, service, assignment_request, teacher, make_user):
        other = await make_user("teacher")
        draft = await service.create_assignment(assignment_request(), teacher.id)

        with pytest.raises(AssignmentNotFoundError):
            await service.publish_assignment(draft.id, other.id)

    @pytest.mark.asyncio
    async def test_draft_cannot_be_submitted(self, service, assignment_request, teacher, student):
        draft = await service.create_assignment(assignment_request(), teacher.id)

        with pytest.raises(AssignmentNotPublishedError):
            await service.submit_assignment(
                draft.id, student.id, SubmitAssignmentRequest(content="My answers")
            )


class TestSubmit:
    """Tests for submissions."""

    @pytest.mark.asyncio
    async def test_on_time_submission_awards_points(
        self, service, db_session, assignment_request, teacher, student
    ):
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)

        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="My answers")
        )

        assert submission.status == SubmissionStatus.SUBMITTED.value
        assert submission.is_late is False
        points = await GamificationService(db_session).get_student_points(student.id)
        assert points.total_points == ASSIGNMENT_SUBMIT_POINTS

    @pytest.mark.asyncio
    async def test_late_submission_earns_nothing(
        self, service, db_session, assignment_request, teacher, student
    ):
        assignment = await service.create_assignment(
            assignment_request(due_in=-timedelta(days=1)), teacher.id
        )
        await service.publish_assignment(assignment.id, teacher.id)

        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="Sorry")
        )

        assert submission.status == SubmissionStatus.LATE.value
        assert submission.is_late is True
        points = await GamificationService(db_session).get_student_points(student.id)
        assert points.total_points == 0

    @pytest.mark.asyncio
    async def test_late_submission_refused(self, service, assignment_request, teacher, student):
        assignment = await service.create_assignment(
            assignment_request(due_in=-timedelta(hours=1), allow_late_submission=False),
            teacher.id,
        )
        await service.publish_assignment(assignment.id, teacher.id)

        with pytest.raises(LateSubmissionNotAllowedError):
            await service.submit_assignment(
                assignment.id, student.id, SubmitAssignmentRequest(content="Too late")
            )

    @pytest.mark.asyncio
    async def test_single_submission_per_student(
        self, service, assignment_request, teacher, student
    ):
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)
        await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="First")
        )

        with pytest.raises(AlreadySubmittedError):
            await service.submit_assignment(
                assignment.id, student.id, SubmitAssignmentRequest(content="Second")
            )


class TestGrading:
    """Tests for grading submissions."""

    @pytest.mark.asyncio
    async def test_grade_on_time_submission(
        self, service, db_session, assignment_request, teacher, student
    ):
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)
        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="My answers")
        )

        graded = await service.grade_submission(
            submission.id, teacher.id, GradeSubmissionRequest(score=17.5, feedback="Good work")
        )

        assert graded.status == SubmissionStatus.GRADED.value
        assert graded.final_score == 18
        assert graded.graded_by == teacher.id
        notifications = await _notifications_for(db_session, student.id, "submission")
        assert len(notifications) == 1
        assert notifications[0].notification_type == "grade"

    @pytest.mark.asyncio
    async def test_late_penalty_is_applied(
        self, service, db_session, assignment_request, teacher, student
    ):
        """Test two days late at 10% per day keeps 80% of the score."""
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)
        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="My answers")
        )

        row = await db_session.get(AssignmentSubmission, submission.id)
        row.is_late = True
        row.submitted_at = assignment.due_date + timedelta(days=1, hours=2)
        await db_session.commit()

        graded = await service.grade_submission(
            submission.id, teacher.id, GradeSubmissionRequest(score=20)
        )

        assert graded.score == 20
        assert graded.final_score == 16

    @pytest.mark.asyncio
    async def test_score_above_maximum(self, service, assignment_request, teacher, student):
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)
        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="My answers")
        )

        with pytest.raises(InvalidScoreError):
            await service.grade_submission(
                submission.id, teacher.id, GradeSubmissionRequest(score=21)
            )

    @pytest.mark.asyncio
    async def test_only_creator_grades(
        self, service, assignment_request, teacher, student, make_user
    ):
        other = await make_user("teacher")
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)
        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="My answers")
        )

        with pytest.raises(AssignmentAccessDeniedError):
            await service.grade_submission(
                submission.id, other.id, GradeSubmissionRequest(score=10)
            )

    @pytest.mark.asyncio
    async def test_graded_submission_is_locked(
        self, service, assignment_request, teacher, student
    ):
        assignment = await service.create_assignment(assignment_request(), teacher.id)
        await service.publish_assignment(assignment.id, teacher.id)
        submission = await service.submit_assignment(
            assignment.id, student.id, SubmitAssignmentRequest(content="My answers")
        )
        await service.grade_submission(submission.id, teacher.id, GradeSubmissionRequest(score=15))

        with pytest.raises(SubmissionAlreadyGradedError):
            await service.update_submission(
                submission.id, student.id, SubmitAssignmentRequest(content="Edited")
            )


class TestOverdueReminders:
    """Tests for the overdue reminder job."""

    @pytest.mark.asyncio
    async def test_reminds_each_student_once(
        self, service, db_session, assignment_request, teacher, make_user
    ):
        submitted = await make_user("student")
        missing = await make_user("student")
        assignment = await service.create_assignment(
            assignment_request(due_in=-timedelta(hours=2)), teacher.id
        )
        await service.publish_assignment(assignment.id, teacher.id)
        await service.submit_assignment(
            assignment.id, submitted.id, SubmitAssignmentRequest(content="Late work")
        )

        assert await service.send_overdue_reminders() == 1
        assert await service.send_overdue_reminders() == 0

        reminders = await _notifications_for(db_session, missing.id, "assignment_reminder")
        assert len(reminders) == 1
        assert await _notifications_for(db_session, submitted.id, "assignment_reminder") == []
