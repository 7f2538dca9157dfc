# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic test service.

This module provides the DiagnosticService that handles:
- Diagnostic test CRUD with questions (soft delete)
- Conducting tests: scoring, weakness detection and recommendations
- Class-level analysis of a test's results
- Per-student weakness analysis, recommendations and performance reports
- Platform-wide statistics

Scoring and analysis rules live in the analysis module; this service
loads and stores the data they work on.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.auth.permissions import UserRole
from edupath.domains.diagnostic.analysis import (
    PASS_PERCENTAGE,
    TREND_WINDOW,
    analyze_weaknesses,
    class_recommendations,
    find_common_weaknesses,
    generate_recommendations,
    pass_rate,
    performance_trend,
    score_distribution,
    score_percentage,
    score_test,
)
from edupath.infrastructure.database.models import (
    DiagnosticQuestion,
    DiagnosticTest,
    DiagnosticTestResult,
    Subject,
    User,
)
from edupath.models.common import SortOrder
from edupath.models.diagnostic import (
    DiagnosticQuestionResponse,
    DiagnosticResultResponse,
    DiagnosticStatistics,
    DiagnosticTestCreateRequest,
    DiagnosticTestFilters,
    DiagnosticTestResponse,
    DiagnosticTestUpdateRequest,
    DistributionEntry,
    LearningRecommendations,
    Page,
    ResultAnalysis,
    ResultStatus,
    StudentPerformanceReport,
    SubjectPerformance,
    TrendPoint,
    WeaknessAnalysis,
    WeaknessArea,
)
from edupath.utils.datetime import utc_now

logger = logging.getLogger(__name__)

STRONG_SUBJECT_PERCENTAGE = 75


class DiagnosticServiceError(Exception):
    """Base exception for diagnostic service errors."""

    pass


class DiagnosticTestNotFoundError(DiagnosticServiceError):
    """Raised when a diagnostic test is not found."""

    pass


class DiagnosticValidationError(DiagnosticServiceError):
    """Raised when test fields break the marks or grade rules."""

    pass


class DiagnosticTestInactiveError(DiagnosticServiceError):
    """Raised when conducting a deactivated test."""

    pass


class DiagnosticStudentNotFoundError(DiagnosticServiceError):
    """Raised when the test taker is not an existing student."""

    pass


class NoCompletedResultsError(DiagnosticServiceError):
    """Raised when an analysis needs completed results and there are none."""

    pass


def validate_test_fields(
    title: str | None,
    grade_level: int | None,
    total_marks: int | None,
    passing_marks: int | None,
) -> None:
    """Check the rules every stored test must satisfy.

    Raises:
        DiagnosticValidationError: On the first broken rule.
    """
    if not title or not title.strip():
        raise DiagnosticValidationError("Test title is required")
    if len(title) > 255:
        raise DiagnosticValidationError("Test title must be at most 255 characters")
    if grade_level is None or not 1 <= grade_level <= 12:
        raise DiagnosticValidationError("Grade level must be between 1 and 12")
    if total_marks is None or total_marks < 1:
        raise DiagnosticValidationError("Total marks must be at least 1")
    if passing_marks is None or passing_marks < 1:
        raise DiagnosticValidationError("Passing marks must be at least 1")
    if passing_marks > total_marks:
        raise DiagnosticValidationError("Passing marks cannot exceed total marks")


class DiagnosticService:
    """Service for diagnostic tests and their results.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the diagnostic service.

        Args:
            db: Async database session.
        """
        self._db = db

    # =========================================================================
    # Tests
    # =========================================================================

    async def create_test(
        self,
        request: DiagnosticTestCreateRequest,
        created_by: str,
    ) -> DiagnosticTestResponse:
        """Create a test with its questions.

        Raises:
            DiagnosticValidationError: If the test fields are invalid.
        """
        validate_test_fields(
            request.title,
            request.grade_level,
            request.total_marks,
            request.passing_marks,
        )

        test = DiagnosticTest(
            title=request.title.strip(),
            description=request.description,
            subject_id=request.subject_id,
            grade_level=request.grade_level,
            test_type=request.test_type.value,
            difficulty=request.difficulty.value,
            duration_minutes=request.duration_minutes,
            total_marks=request.total_marks,
            passing_marks=request.passing_marks,
            instructions=request.instructions,
            is_active=True,
            created_by=created_by,
        )
        self._db.add(test)
        await self._db.flush()

        for question in request.questions:
            self._db.add(
                DiagnosticQuestion(
                    test_id=test.id,
                    question_text=question.question_text,
                    question_type=question.question_type.value,
                    options=question.options,
                    correct_answer=question.correct_answer,
                    marks=question.marks,
                    order_index=question.order,
                )
            )

        await self._db.commit()
        logger.info(
            "Diagnostic test created: %s (%d questions)",
            test.id,
            len(request.questions),
        )
        return await self.get_test(test.id)

    async def update_test(
        self,
        test_id: str,
        request: DiagnosticTestUpdateRequest,
    ) -> DiagnosticTestResponse:
        """Update a test. The merged values must still be valid.

        Raises:
            DiagnosticTestNotFoundError: If the test does not exist.
            DiagnosticValidationError: If the merged fields are invalid.
        """
        test = await self._get_test(test_id)
        updates = request.model_dump(mode="json", exclude_unset=True)

        validate_test_fields(
            updates.get("title", test.title),
            updates.get("grade_level", test.grade_level),
            updates.get("total_marks", test.total_marks),
            updates.get("passing_marks", test.passing_marks),
        )

        for field, value in updates.items():
            setattr(test, field, value)

        await self._db.commit()
        logger.info("Diagnostic test updated: %s", test_id)
        return await self.get_test(test_id)

    async def delete_test(self, test_id: str) -> None:
        """Deactivate a test. Results are kept.

        Raises:
            DiagnosticTestNotFoundError: If the test does not exist.
        """
        test = await self._get_test(test_id)
        test.is_active = False
        await self._db.commit()
        logger.info("Diagnostic test deactivated: %s", test_id)

    async def get_test(
        self,
        test_id: str,
        include_answers: bool = True,
    ) -> DiagnosticTestResponse:
        """Get a test with its questions.

        Args:
            test_id: Test ID.
            include_answers: Include correct answers. False for students.

        Raises:
            DiagnosticTestNotFoundError: If the test does not exist.
        """
        test = await self._get_test(test_id)
        questions = await self._get_questions(test_id)

        response = DiagnosticTestResponse.model_validate(test)
        response.result_count = (await self._get_result_counts([test.id])).get(test.id, 0)
        response.questions = [
            DiagnosticQuestionResponse(
                id=q.id,
                question_text=q.question_text,
                question_type=q.question_type,
                options=q.options,
                correct_answer=q.correct_answer if include_answers else None,
                marks=q.marks,
                order=q.order_index,
            )
            for q in questions
        ]
        return response

    async def list_tests(
        self,
        filters: DiagnosticTestFilters,
        page: int = 1,
        limit: int = 10,
    ) -> Page[DiagnosticTestResponse]:
        """List tests with filters, sorting and page-numbered pagination."""
        stmt = select(DiagnosticTest)

        if filters.subject_id:
            stmt = stmt.where(DiagnosticTest.subject_id == filters.subject_id)
        if filters.grade_level is not None:
            stmt = stmt.where(DiagnosticTest.grade_level == filters.grade_level)
        if filters.test_type:
            stmt = stmt.where(DiagnosticTest.test_type == filters.test_type.value)
        if filters.difficulty:
            stmt = stmt.where(DiagnosticTest.difficulty == filters.difficulty.value)
        if filters.is_active is not None:
            stmt = stmt.where(DiagnosticTest.is_active.is_(filters.is_active))
        if filters.created_by:
            stmt = stmt.where(DiagnosticTest.created_by == filters.created_by)
        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    DiagnosticTest.title.ilike(search_term),
                    DiagnosticTest.description.ilike(search_term),
                )
            )

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        sort_column = getattr(DiagnosticTest, filters.sort_by.value)
        if filters.sort_order == SortOrder.ASC:
            stmt = stmt.order_by(sort_column.asc())
        else:
            stmt = stmt.order_by(sort_column.desc())

        stmt = stmt.limit(limit).offset((page - 1) * limit)
        tests = (await self._db.execute(stmt)).scalars().all()
        counts = await self._get_result_counts([t.id for t in tests])

        items = []
        for test in tests:
            response = DiagnosticTestResponse.model_validate(test)
            response.result_count = counts.get(test.id, 0)
            items.append(response)

        return Page[DiagnosticTestResponse](
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    # =========================================================================
    # Results
    # =========================================================================

    async def conduct_test(
        self,
        test_id: str,
        student_id: str,
        answers: dict[str, str],
        time_spent: int | None = None,
    ) -> DiagnosticResultResponse:
        """Score a student's answers and store the completed result.

        Raises:
            DiagnosticTestNotFoundError: If the test does not exist.
            DiagnosticTestInactiveError: If the test is deactivated.
            DiagnosticStudentNotFoundError: If the taker is not a student.
        """
        test = await self._get_test(test_id)
        if not test.is_active:
            raise DiagnosticTestInactiveError("Diagnostic test is not active")

        student = await self._db.get(User, student_id)
        if not student or student.role != UserRole.STUDENT.value:
            raise DiagnosticStudentNotFoundError(f"Student {student_id} not found")

        questions = await self._get_questions(test_id)
        scored = score_test(questions, answers)
        percentage = score_percentage(scored.score, test.total_marks)
        weaknesses = analyze_weaknesses(questions, answers)
        recommendations = generate_recommendations(percentage, weaknesses)

        now = utc_now()
        result = DiagnosticTestResult(
            test_id=test_id,
            student_id=student_id,
            answers={e.question_id: e.model_dump() for e in scored.evaluations},
            score=scored.score,
            percentage=round(percentage, 2),
            time_spent=time_spent,
            status=ResultStatus.COMPLETED.value,
            weaknesses=[w.model_dump(mode="json") for w in weaknesses],
            completed_at=now,
        )
        self._db.add(result)
        await self._db.flush()

        recommendations.test_result_id = result.id
        result.recommendations = recommendations.model_dump(mode="json")
        await self._db.commit()

        logger.info(
            "Diagnostic test %s conducted for student %s: %.1f%%, %d weaknesses",
            test_id,
            student_id,
            percentage,
            len(weaknesses),
        )
        return self._to_result(result, test)

    async def get_student_test_results(
        self,
        student_id: str,
        test_id: str | None = None,
        status: ResultStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[DiagnosticResultResponse]:
        """List a student's results, newest first."""
        stmt = select(DiagnosticTestResult).where(DiagnosticTestResult.student_id == student_id)
        if test_id:
            stmt = stmt.where(DiagnosticTestResult.test_id == test_id)
        if status:
            stmt = stmt.where(DiagnosticTestResult.status == status.value)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = (
            stmt.order_by(DiagnosticTestResult.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        results = (await self._db.execute(stmt)).scalars().all()
        tests = await self._get_tests_by_id({r.test_id for r in results})

        return Page[DiagnosticResultResponse](
            items=[self._to_result(r, tests.get(r.test_id)) for r in results],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    async def analyze_test_results(self, test_id: str) -> ResultAnalysis:
        """Analyze all completed results of a test.

        Raises:
            DiagnosticTestNotFoundError: If the test does not exist.
            NoCompletedResultsError: If nobody has completed the test.
        """
        await self._get_test(test_id)

        result = await self._db.execute(
            select(DiagnosticTestResult).where(
                DiagnosticTestResult.test_id == test_id,
                DiagnosticTestResult.status == ResultStatus.COMPLETED.value,
            )
        )
        results = result.scalars().all()
        if not results:
            raise NoCompletedResultsError("No completed test results found")

        percentages = [r.percentage for r in results]
        total_students = len(results)
        average = sum(percentages) / total_students
        rate = pass_rate(percentages)
        common = find_common_weaknesses((r.weaknesses or [] for r in results), total_students)

        return ResultAnalysis(
            test_id=test_id,
            total_students=total_students,
            average_score=round(average, 2),
            pass_rate=round(rate, 2),
            score_distribution=score_distribution(percentages),
            common_weaknesses=common,
            recommendations=class_recommendations(average, rate, common),
        )

    async def get_student_recommendations(self, student_id: str) -> LearningRecommendations:
        """Recommendations from the student's latest completed result.

        Raises:
            NoCompletedResultsError: If the student has no completed result.
        """
        results = await self._get_completed_results(student_id, limit=1)
        if not results:
            raise NoCompletedResultsError("Student has no completed diagnostic tests")

        latest = results[0]
        if latest.recommendations:
            return LearningRecommendations.model_validate(latest.recommendations)

        weaknesses = [WeaknessArea.model_validate(w) for w in latest.weaknesses or []]
        recommendations = generate_recommendations(latest.percentage, weaknesses)
        recommendations.test_result_id = latest.id
        return recommendations

    async def identify_weaknesses(self, student_id: str) -> WeaknessAnalysis:
        """Aggregate a student's weaknesses across completed results."""
        results = await self._get_completed_results(student_id)
        tests = await self._get_tests_by_id({r.test_id for r in results})
        subject_names = await self._get_subject_names(
            {t.subject_id for t in tests.values() if t.subject_id}
        )

        by_subject: dict[str | None, list[DiagnosticTestResult]] = defaultdict(list)
        for r in results:
            test = tests.get(r.test_id)
            by_subject[test.subject_id if test else None].append(r)

        subject_performance = [
            SubjectPerformance(
                subject_id=subject_id,
                subject_name=subject_names.get(subject_id, "Unknown") if subject_id else "General",
                tests_taken=len(subject_results),
                average_score=round(
                    sum(r.percentage for r in subject_results) / len(subject_results), 2
                ),
                weaknesses=[
                    WeaknessArea.model_validate(w)
                    for r in subject_results
                    for w in r.weaknesses or []
                ],
            )
            for subject_id, subject_results in by_subject.items()
        ]

        recent = results[:TREND_WINDOW]
        return WeaknessAnalysis(
            student_id=student_id,
            overall_weaknesses=find_common_weaknesses(
                (r.weaknesses or [] for r in results), len(results), top=None
            ),
            subject_performance=subject_performance,
            trend=performance_trend([r.percentage for r in reversed(recent)]),
            recent_results=[self._trend_point(r, tests.get(r.test_id)) for r in recent],
        )

    async def get_student_performance_report(self, student_id: str) -> StudentPerformanceReport:
        """Overall diagnostic performance of a student."""
        results = await self._get_completed_results(student_id)
        tests = await self._get_tests_by_id({r.test_id for r in results})
        subject_names = await self._get_subject_names(
            {t.subject_id for t in tests.values() if t.subject_id}
        )

        active_tests = await self._db.scalar(
            select(func.count(DiagnosticTest.id)).where(DiagnosticTest.is_active.is_(True))
        ) or 0

        subject_scores: dict[str, list[float]] = defaultdict(list)
        for r in results:
            test = tests.get(r.test_id)
            if test and test.subject_id:
                subject_scores[subject_names.get(test.subject_id, "Unknown")].append(r.percentage)

        averages = {name: sum(s) / len(s) for name, s in subject_scores.items()}
        average = sum(r.percentage for r in results) / len(results) if results else 0.0
        weaknesses = [WeaknessArea.model_validate(w) for r in results for w in r.weaknesses or []]
        recent = results[:TREND_WINDOW]

        recommendations = None
        if results:
            recommendations = generate_recommendations(average, weaknesses[:TREND_WINDOW])

        return StudentPerformanceReport(
            student_id=student_id,
            total_tests=active_tests,
            completed_tests=len(results),
            average_score=round(average, 2),
            trend=performance_trend([r.percentage for r in reversed(recent)]),
            improvement_trend=[self._trend_point(r, tests.get(r.test_id)) for r in recent],
            weakness_areas=weaknesses,
            strong_subjects=sorted(
                name for name, avg in averages.items() if avg >= STRONG_SUBJECT_PERCENTAGE
            ),
            weak_subjects=sorted(name for name, avg in averages.items() if avg < PASS_PERCENTAGE),
            recommendations=recommendations,
        )

    async def get_statistics(self) -> DiagnosticStatistics:
        """Platform-wide diagnostic statistics."""
        total_tests = await self._db.scalar(select(func.count(DiagnosticTest.id))) or 0
        active_tests = await self._db.scalar(
            select(func.count(DiagnosticTest.id)).where(DiagnosticTest.is_active.is_(True))
        ) or 0

        total_results, avg_percentage = (
            await self._db.execute(
                select(
                    func.count(DiagnosticTestResult.id),
                    func.avg(DiagnosticTestResult.percentage),
                )
            )
        ).one()
        passed = await self._db.scalar(
            select(func.count(DiagnosticTestResult.id)).where(
                DiagnosticTestResult.percentage >= PASS_PERCENTAGE
            )
        ) or 0

        grade_rows = await self._db.execute(
            select(DiagnosticTest.grade_level, func.count(DiagnosticTest.id))
            .group_by(DiagnosticTest.grade_level)
            .order_by(DiagnosticTest.grade_level)
        )
        difficulty_rows = await self._db.execute(
            select(DiagnosticTest.difficulty, func.count(DiagnosticTest.id)).group_by(
                DiagnosticTest.difficulty
            )
        )

        return DiagnosticStatistics(
            total_tests=total_tests,
            active_tests=active_tests,
            total_results=total_results or 0,
            average_score=round(float(avg_percentage or 0), 2),
            pass_rate=round(passed / total_results * 100, 2) if total_results else 0.0,
            grade_distribution=[
                DistributionEntry(key=str(grade), test_count=count)
                for grade, count in grade_rows.all()
            ],
            difficulty_distribution=[
                DistributionEntry(key=difficulty, test_count=count)
                for difficulty, count in difficulty_rows.all()
            ],
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_test(self, test_id: str) -> DiagnosticTest:
        test = await self._db.get(DiagnosticTest, test_id)
        if not test:
            raise DiagnosticTestNotFoundError(f"Diagnostic test {test_id} not found")
        return test

    async def _get_questions(self, test_id: str) -> Sequence[DiagnosticQuestion]:
        result = await self._db.execute(
            select(DiagnosticQuestion)
            .where(DiagnosticQuestion.test_id == test_id)
            .order_by(DiagnosticQuestion.order_index)
        )
        return result.scalars().all()

    async def _get_completed_results(
        self,
        student_id: str,
        limit: int | None = None,
    ) -> Sequence[DiagnosticTestResult]:
        stmt = (
            select(DiagnosticTestResult)
            .where(
                DiagnosticTestResult.student_id == student_id,
                DiagnosticTestResult.status == ResultStatus.COMPLETED.value,
            )
            .order_by(DiagnosticTestResult.completed_at.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return (await self._db.execute(stmt)).scalars().all()

    async def _get_tests_by_id(self, test_ids: set[str]) -> dict[str, DiagnosticTest]:
        if not test_ids:
            return {}
        result = await self._db.execute(
            select(DiagnosticTest).where(DiagnosticTest.id.in_(test_ids))
        )
        return {t.id: t for t in result.scalars().all()}

    async def _get_subject_names(self, subject_ids: set[str]) -> dict[str, str]:
        if not subject_ids:
            return {}
        result = await self._db.execute(
            select(Subject.id, Subject.name).where(Subject.id.in_(subject_ids))
        )
        return dict(result.all())

    async def _get_result_counts(self, test_ids: list[str]) -> dict[str, int]:
        if not test_ids:
            return {}
        result = await self._db.execute(
            select(DiagnosticTestResult.test_id, func.count(DiagnosticTestResult.id))
            .where(DiagnosticTestResult.test_id.in_(test_ids))
            .group_by(DiagnosticTestResult.test_id)
        )
        return dict(result.all())

    @staticmethod
    def _to_result(
        result: DiagnosticTestResult,
        test: DiagnosticTest | None,
    ) -> DiagnosticResultResponse:
        return DiagnosticResultResponse(
            id=result.id,
            test_id=result.test_id,
            test_title=test.title if test else None,
            student_id=result.student_id,
            answers=result.answers or {},
            score=result.score,
            total_marks=test.total_marks if test else None,
            percentage=result.percentage,
            passed=result.score >= test.passing_marks if test else None,
            time_spent=result.time_spent,
            status=result.status,
            weaknesses=[WeaknessArea.model_validate(w) for w in result.weaknesses or []],
            recommendations=(
                LearningRecommendations.model_validate(result.recommendations)
                if result.recommendations
                else None
            ),
            completed_at=result.completed_at,
            created_at=result.created_at,
        )

    @staticmethod
    def _trend_point(result: DiagnosticTestResult, test: DiagnosticTest | None) -> TrendPoint:
        return TrendPoint(
            date=result.completed_at,
            score=result.percentage,
            weakness_count=len(result.weaknesses or []),
            test_title=test.title if test else None,
        )
