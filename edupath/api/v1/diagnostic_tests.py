# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic test API endpoints.

Tests:
- POST / - Create test with questions (teacher/admin)
- GET / - List tests, paginated by page
- GET /statistics - Platform statistics (teacher/admin)
- GET /{test_id} - Get test (answers hidden from students)
- PUT /{test_id} - Update test (teacher/admin)
- DELETE /{test_id} - Deactivate test (teacher/admin)
- POST /{test_id}/conduct - Score a student's answers
- GET /{test_id}/analysis - Class-wide result analysis (teacher/admin)

Students:
- GET /students/{student_id}/results - Test results
- GET /students/{student_id}/recommendations - Latest recommendations
- GET /students/{student_id}/weaknesses - Aggregated weaknesses and trend
- GET /students/{student_id}/report - Performance report

Students may only read their own results and recommendations.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AuthenticatedUser,
    TeacherOrAdmin,
    get_diagnostic_service,
)
from edupath.api.middleware.auth import CurrentUser
from edupath.domains.diagnostic import (
    DiagnosticService,
    DiagnosticServiceError,
    DiagnosticStudentNotFoundError,
    DiagnosticTestNotFoundError,
    NoCompletedResultsError,
)
from edupath.models.common import Difficulty, MessageResponse, SortOrder
from edupath.models.diagnostic import (
    ConductTestRequest,
    DiagnosticResultResponse,
    DiagnosticSortField,
    DiagnosticStatistics,
    DiagnosticTestCreateRequest,
    DiagnosticTestFilters,
    DiagnosticTestResponse,
    DiagnosticTestType,
    DiagnosticTestUpdateRequest,
    LearningRecommendations,
    Page,
    ResultAnalysis,
    ResultStatus,
    StudentPerformanceReport,
    WeaknessAnalysis,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[DiagnosticService, Depends(get_diagnostic_service)]


def _handle_error(error: DiagnosticServiceError) -> HTTPException:
    """Map a diagnostic service error to an HTTP error."""
    if isinstance(
        error,
        (DiagnosticTestNotFoundError, DiagnosticStudentNotFoundError, NoCompletedResultsError),
    ):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


def _check_student_access(current_user: CurrentUser, student_id: str) -> None:
    if current_user.is_student and current_user.id != student_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


@router.post(
    "",
    response_model=DiagnosticTestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create diagnostic test",
)
async def create_test(
    data: DiagnosticTestCreateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> DiagnosticTestResponse:
    """Create a diagnostic test together with its questions."""
    logger.info("Creating diagnostic test '%s' by %s", data.title, current_user.id)
    try:
        return await service.create_test(data, created_by=current_user.id)
    except DiagnosticServiceError as e:
        raise _handle_error(e)


@router.get("", response_model=Page[DiagnosticTestResponse], summary="List diagnostic tests")
async def list_tests(
    current_user: AuthenticatedUser,
    service: Service,
    subject_id: str | None = Query(None),
    grade_level: int | None = Query(None, ge=1, le=12),
    test_type: DiagnosticTestType | None = Query(None),
    difficulty: Difficulty | None = Query(None),
    is_active: bool | None = Query(None),
    created_by: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    sort_by: DiagnosticSortField = Query(DiagnosticSortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> Page[DiagnosticTestResponse]:
    """List tests with filters, sorting and page-based pagination."""
    filters = DiagnosticTestFilters(
        subject_id=subject_id,
        grade_level=grade_level,
        test_type=test_type,
        difficulty=difficulty,
        is_active=is_active,
        created_by=created_by,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await service.list_tests(filters, page=page, limit=limit)


@router.get("/statistics", response_model=DiagnosticStatistics, summary="Diagnostic statistics")
async def statistics(
    current_user: TeacherOrAdmin,
    service: Service,
) -> DiagnosticStatistics:
    """Test and result totals with grade and difficulty distributions."""
    return await service.get_statistics()


@router.get(
    "/students/{student_id}/results",
    response_model=Page[DiagnosticResultResponse],
    summary="Student results",
)
async def student_results(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
    test_id: str | None = Query(None),
    result_status: ResultStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> Page[DiagnosticResultResponse]:
    """A student's test results, newest first."""
    _check_student_access(current_user, student_id)
    return await service.get_student_test_results(
        student_id,
        test_id=test_id,
        status=result_status,
        page=page,
        limit=limit,
    )


@router.get(
    "/students/{student_id}/recommendations",
    response_model=LearningRecommendations,
    summary="Student recommendations",
)
async def student_recommendations(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> LearningRecommendations:
    """Recommendations from the student's latest completed test."""
    _check_student_access(current_user, student_id)
    try:
        return await service.get_student_recommendations(student_id)
    except DiagnosticServiceError as e:
        raise _handle_error(e)


@router.get(
    "/students/{student_id}/weaknesses",
    response_model=WeaknessAnalysis,
    summary="Student weaknesses",
)
async def student_weaknesses(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> WeaknessAnalysis:
    """Weaknesses across completed tests, per-subject averages and trend."""
    _check_student_access(current_user, student_id)
    return await service.identify_weaknesses(student_id)


@router.get(
    "/students/{student_id}/report",
    response_model=StudentPerformanceReport,
    summary="Student performance report",
)
async def student_report(
    student_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> StudentPerformanceReport:
    """Overall diagnostic performance of a student."""
    _check_student_access(current_user, student_id)
    return await service.get_student_performance_report(student_id)


@router.get("/{test_id}", response_model=DiagnosticTestResponse, summary="Get diagnostic test")
async def get_test(
    test_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> DiagnosticTestResponse:
    """Get a test with its questions. Students do not see correct answers."""
    try:
        return await service.get_test(test_id, include_answers=not current_user.is_student)
    except DiagnosticServiceError as e:
        raise _handle_error(e)


@router.put("/{test_id}", response_model=DiagnosticTestResponse, summary="Update diagnostic test")
async def update_test(
    test_id: str,
    data: DiagnosticTestUpdateRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> DiagnosticTestResponse:
    """Update a test. Mark rules are checked on the merged values."""
    try:
        return await service.update_test(test_id, data)
    except DiagnosticServiceError as e:
        raise _handle_error(e)


@router.delete("/{test_id}", response_model=MessageResponse, summary="Delete diagnostic test")
async def delete_test(
    test_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> MessageResponse:
    """Deactivate a test."""
    try:
        await service.delete_test(test_id)
    except DiagnosticServiceError as e:
        raise _handle_error(e)
    return MessageResponse(message="Diagnostic test deleted successfully")


@router.post(
    "/{test_id}/conduct",
    response_model=DiagnosticResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Conduct diagnostic test",
)
async def conduct_test(
    test_id: str,
    data: ConductTestRequest,
    current_user: AuthenticatedUser,
    service: Service,
) -> DiagnosticResultResponse:
    """Score answers and store weaknesses and recommendations.

    Students conduct tests for themselves. Teachers and admins record
    results for the student named in the request.
    """
    if current_user.is_student:
        if data.student_id and data.student_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
        student_id = current_user.id
    elif data.student_id:
        student_id = data.student_id
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="student_id is required",
        )

    try:
        return await service.conduct_test(
            test_id,
            student_id,
            data.answers,
            time_spent=data.time_spent,
        )
    except DiagnosticServiceError as e:
        raise _handle_error(e)


@router.get("/{test_id}/analysis", response_model=ResultAnalysis, summary="Analyze results")
async def analyze_results(
    test_id: str,
    current_user: TeacherOrAdmin,
    service: Service,
) -> ResultAnalysis:
    """Score distribution, common weaknesses and class recommendations."""
    try:
        return await service.analyze_test_results(test_id)
    except DiagnosticServiceError as e:
        raise _handle_error(e)
