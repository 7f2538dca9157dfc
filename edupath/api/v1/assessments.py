# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment API endpoints.

Authoring (teacher/admin, creator or admin for changes):
- GET / - List assessments
- POST / - Create assessment
- GET /stats - Assessment statistics
- GET /{assessment_id} - Get assessment, optionally with questions
- PUT /{assessment_id} - Update assessment
- DELETE /{assessment_id} - Delete assessment
- POST /{assessment_id}/questions - Add a question
- POST /{assessment_id}/questions/bulk - Add several questions
- PUT /questions/{question_id} - Update a question
- DELETE /questions/{question_id} - Delete a question

Taking (student):
- POST /{assessment_id}/start - Start an attempt
- GET /{assessment_id}/take - Questions without answers plus the open attempt
- POST /attempts/{attempt_id}/answer - Record an answer
- POST /attempts/{attempt_id}/submit - Submit and score the attempt
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AuthenticatedUser,
    StudentUser,
    TeacherOrAdmin,
    get_assessment_service,
)
from edupath.domains.assessment import (
    ActiveAttemptExistsError,
    AssessmentAccessDeniedError,
    AssessmentNotFoundError,
    AssessmentService,
    AssessmentServiceError,
    AttemptNotFoundError,
    QuestionNotFoundError,
)
from edupath.models.assessment import (
    AssessmentCreateRequest,
    AssessmentFilters,
    AssessmentListResponse,
    AssessmentResponse,
    AssessmentResult,
    AssessmentStats,
    AssessmentUpdateRequest,
    AttemptResponse,
    BulkQuestionCreateRequest,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionUpdateRequest,
    StudentAssessmentView,
    SubmitAnswerRequest,
)
from edupath.models.common import Difficulty, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[AssessmentService, Depends(get_assessment_service)]


def _handle_error(error: AssessmentServiceError) -> HTTPException:
    """Map an assessment service error to an HTTP error."""
    if isinstance(
        error,
        (AssessmentNotFoundError, QuestionNotFoundError, AttemptNotFoundError),
    ):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, AssessmentAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, ActiveAttemptExistsError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=AssessmentListResponse, summary="List assessments")
async def list_assessments(
    current_user: AuthenticatedUser,
    service: Service,
    subject_id: str | None = Query(None),
    grade_level: int | None = Query(None, ge=1, le=12),
    difficulty_level: Difficulty | None = Query(None),
    is_published: bool | None = Query(None),
    created_by: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> AssessmentListResponse:
    """List assessments. Students only see published ones."""
    filters = AssessmentFilters(
        subject_id=subject_id,
        grade_level=grade_level,
        difficulty_level=difficulty_level,
        is_published=is_published,
        created_by=created_by,
        search=search,
    )
    items, total = await service.list_assessments(
        filters,
        limit=limit,
        offset=offset,
        viewer_role=current_user.role,
    )
    return AssessmentListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=AssessmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create assessment",
)
async def create_assessment(
    data: AssessmentCreateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssessmentResponse:
    """Create an assessment owned by the current user."""
    logger.info("Creating assessment '%s' by %s", data.title, current_user.id)
    try:
        return await service.create_assessment(data, created_by=current_user.id)
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.get("/stats", response_model=AssessmentStats, summary="Assessment statistics")
async def assessment_stats(
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssessmentStats:
    """Get totals, averages and recent attempts."""
    return await service.get_assessment_stats()


@router.put(
    "/questions/{question_id}",
    response_model=QuestionResponse,
    summary="Update question",
)
async def update_question(
    question_id: str,
    data: QuestionUpdateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> QuestionResponse:
    """Update a question of an assessment the user owns."""
    try:
        return await service.update_question(
            question_id,
            data,
            user_id=current_user.id,
            role=current_user.role,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.delete(
    "/questions/{question_id}",
    response_model=MessageResponse,
    summary="Delete question",
)
async def delete_question(
    question_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> MessageResponse:
    """Delete a question and resync the question count."""
    try:
        await service.delete_question(question_id, user_id=current_user.id, role=current_user.role)
    except AssessmentServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Question deleted successfully")


@router.post(
    "/attempts/{attempt_id}/answer",
    response_model=AttemptResponse,
    summary="Submit an answer",
)
async def submit_answer(
    attempt_id: str,
    data: SubmitAnswerRequest,
    current_user: StudentUser,
    service: Service,
) -> AttemptResponse:
    """Store one answer on an in-progress attempt."""
    try:
        return await service.submit_answer(
            attempt_id,
            data.question_id,
            data.answer,
            student_id=current_user.id,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.post(
    "/attempts/{attempt_id}/submit",
    response_model=AssessmentResult,
    summary="Submit attempt",
)
async def submit_attempt(
    attempt_id: str,
    current_user: StudentUser,
    service: Service,
) -> AssessmentResult:
    """Score the attempt and return the per-question breakdown."""
    try:
        return await service.submit_assessment(attempt_id, student_id=current_user.id)
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.get("/{assessment_id}", response_model=AssessmentResponse, summary="Get assessment")
async def get_assessment(
    assessment_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    include_questions: bool = Query(False),
) -> AssessmentResponse:
    """Get an assessment. Questions with answers are for teachers and admins."""
    try:
        return await service.get_assessment(
            assessment_id,
            include_questions=include_questions and not current_user.is_student,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.put("/{assessment_id}", response_model=AssessmentResponse, summary="Update assessment")
async def update_assessment(
    assessment_id: str,
    data: AssessmentUpdateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> AssessmentResponse:
    """Update an assessment. Only the creator or an admin may do so."""
    try:
        return await service.update_assessment(
            assessment_id,
            data,
            user_id=current_user.id,
            role=current_user.role,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.delete(
    "/{assessment_id}",
    response_model=MessageResponse,
    summary="Delete assessment",
)
async def delete_assessment(
    assessment_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> MessageResponse:
    """Delete an assessment with its questions and attempts."""
    try:
        await service.delete_assessment(
            assessment_id,
            user_id=current_user.id,
            role=current_user.role,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Assessment deleted successfully")


@router.post(
    "/{assessment_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add question",
)
async def add_question(
    assessment_id: str,
    data: QuestionCreateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> QuestionResponse:
    """Add a question to an assessment."""
    try:
        return await service.add_question(
            assessment_id,
            data,
            user_id=current_user.id,
            role=current_user.role,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.post(
    "/{assessment_id}/questions/bulk",
    response_model=list[QuestionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add questions in bulk",
)
async def bulk_add_questions(
    assessment_id: str,
    data: BulkQuestionCreateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> list[QuestionResponse]:
    """Add several questions in one transaction."""
    try:
        return await service.bulk_create_questions(
            assessment_id,
            data.questions,
            user_id=current_user.id,
            role=current_user.role,
        )
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.post(
    "/{assessment_id}/start",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start assessment",
)
async def start_assessment(
    assessment_id: str,
    current_user: StudentUser,
    service: Service,
) -> AttemptResponse:
    """Open a new attempt for the current student."""
    try:
        return await service.start_assessment(assessment_id, student_id=current_user.id)
    except AssessmentServiceError as e:
        raise _handle_error(e)


@router.get(
    "/{assessment_id}/take",
    response_model=StudentAssessmentView,
    summary="Take assessment",
)
async def take_assessment(
    assessment_id: str,
    current_user: StudentUser,
    service: Service,
) -> StudentAssessmentView:
    """Get questions without answers together with the open attempt."""
    try:
        return await service.get_assessment_for_student(assessment_id, student_id=current_user.id)
    except AssessmentServiceError as e:
        raise _handle_error(e)
