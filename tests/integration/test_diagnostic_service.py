# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for diagnostic tests and their analysis."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from edupath.domains.diagnostic.service import (
    DiagnosticService,
    DiagnosticStudentNotFoundError,
    DiagnosticTestInactiveError,
    DiagnosticValidationError,
    NoCompletedResultsError,
)
from edupath.infrastructure.database.models import DiagnosticTestResult
from edupath.models.diagnostic import (
    DiagnosticQuestionCreate,
    DiagnosticTestCreateRequest,
    DiagnosticTestUpdateRequest,
    Severity,
    WeaknessType,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return DiagnosticService(db_session)


@pytest.fixture
def diagnostic(service, subject, teacher):
    """Five questions worth two marks each, passing at six."""

    async def _create():
        request = DiagnosticTestCreateRequest(
            title="Fractions Baseline",
            subject_id=subject.id,
            grade_level=5,
            total_marks=10,
            passing_marks=6,
            questions=[
                DiagnosticQuestionCreate(
                    question_text=f"Question {i + 1}",
                    correct_answer="A",
                    marks=2,
                    order=i,
                )
                for i in range(5)
            ],
        )
        return await service.create_test(request, teacher.id)

    return _create


def _answers(test, correct: int) -> dict[str, str]:
    """Answer the first ``correct`` questions right and the rest wrong."""
    return {
        q.id: "A" if i < correct else "B"
        for i, q in enumerate(test.questions)
    }


class TestCreate:
    """Tests for creating and updating diagnostic tests."""

    @pytest.mark.asyncio
    async def test_create_with_questions(self, diagnostic, teacher):
        test = await diagnostic()

        assert test.created_by == teacher.id
        assert test.is_active is True
        assert [q.order for q in test.questions] == [0, 1, 2, 3, 4]
        assert test.questions[0].correct_answer == "A"

    @pytest.mark.asyncio
    async def test_student_view_hides_answers(self, service, diagnostic):
        test = await diagnostic()

        view = await service.get_test(test.id, include_answers=False)

        assert all(q.correct_answer is None for q in view.questions)

    @pytest.mark.asyncio
    async def test_request_rejects_passing_above_total(self, subject):
        with pytest.raises(ValidationError, match="cannot exceed"):
            DiagnosticTestCreateRequest(
                title="Broken",
                subject_id=subject.id,
                grade_level=5,
                total_marks=10,
                passing_marks=12,
            )

    @pytest.mark.asyncio
    async def test_service_rejects_passing_above_total(self, service, subject, teacher):
        request = DiagnosticTestCreateRequest.model_construct(
            title="Broken",
            subject_id=subject.id,
            grade_level=5,
            total_marks=10,
            passing_marks=12,
        )

        with pytest.raises(DiagnosticValidationError, match="cannot exceed"):
            await service.create_test(request, teacher.id)

    @pytest.mark.asyncio
    async def test_update_checks_merged_values(self, service, diagnostic):
        test = await diagnostic()

        with pytest.raises(DiagnosticValidationError):
            await service.update_test(test.id, DiagnosticTestUpdateRequest(total_marks=4))


class TestConduct:
    """Tests for scoring a student's answers."""

    @pytest.mark.asyncio
    async def test_low_score_is_conceptual_weakness(self, service, diagnostic, student):
        test = await diagnostic()

        result = await service.conduct_test(test.id, student.id, _answers(test, 1))

        assert result.score == 2
        assert result.percentage == 20
        assert result.passed is False
        assert [w.type for w in result.weaknesses] == [WeaknessType.CONCEPTUAL]
        assert result.weaknesses[0].severity == Severity.HIGH
        assert result.recommendations.priority == Severity.HIGH
        assert result.recommendations.recommended_plan_types == ["recovery"]
        assert result.recommendations.test_result_id == result.id

    @pytest.mark.asyncio
    async def test_middle_score_is_procedural_weakness(self, service, diagnostic, student):
        test = await diagnostic()

        result = await service.conduct_test(test.id, student.id, _answers(test, 2))

        assert result.percentage == 40
        assert result.passed is False
        assert [w.type for w in result.weaknesses] == [WeaknessType.PROCEDURAL]
        assert result.recommendations.priority == Severity.MEDIUM

    @pytest.mark.asyncio
    async def test_full_score(self, service, diagnostic, student):
        test = await diagnostic()

        result = await service.conduct_test(test.id, student.id, _answers(test, 5), time_spent=12)

        assert result.percentage == 100
        assert result.weaknesses == []
        assert result.recommendations.priority == Severity.LOW
        assert result.recommendations.recommended_plan_types == ["enhancement"]

    @pytest.mark.asyncio
    async def test_unanswered_questions_are_wrong(self, service, diagnostic, student):
        test = await diagnostic()
        first = test.questions[0].id

        result = await service.conduct_test(test.id, student.id, {first: "A"})

        assert result.score == 2
        assert result.answers[test.questions[1].id]["is_correct"] is False

    @pytest.mark.asyncio
    async def test_inactive_test(self, service, diagnostic, student):
        test = await diagnostic()
        await service.delete_test(test.id)

        with pytest.raises(DiagnosticTestInactiveError):
            await service.conduct_test(test.id, student.id, _answers(test, 5))

    @pytest.mark.asyncio
    async def test_only_students_take_tests(self, service, diagnostic, teacher):
        test = await diagnostic()

        with pytest.raises(DiagnosticStudentNotFoundError):
            await service.conduct_test(test.id, teacher.id, _answers(test, 5))


class TestAnalysis:
    """Tests for result analysis and student reports."""

    @pytest.mark.asyncio
    async def test_analyze_results(self, service, diagnostic, make_user):
        test = await diagnostic()
        strong = await make_user("student")
        weak = await make_user("student")
        await service.conduct_test(test.id, strong.id, _answers(test, 5))
        await service.conduct_test(test.id, weak.id, _answers(test, 1))

        analysis = await service.analyze_test_results(test.id)

        assert analysis.total_students == 2
        assert analysis.average_score == 60
        assert analysis.pass_rate == 50
        buckets = {b.range: b.count for b in analysis.score_distribution}
        assert buckets["20-39"] == 1
        assert buckets["80-100"] == 1
        assert analysis.common_weaknesses[0].type == WeaknessType.CONCEPTUAL
        assert analysis.common_weaknesses[0].count == 1

    @pytest.mark.asyncio
    async def test_analyze_without_results(self, service, diagnostic):
        test = await diagnostic()

        with pytest.raises(NoCompletedResultsError):
            await service.analyze_test_results(test.id)

    @pytest.mark.asyncio
    async def test_recommendations_use_latest_result(
        self, service, db_session, diagnostic, student
    ):
        test = await diagnostic()
        older = await service.conduct_test(test.id, student.id, _answers(test, 1))
        row = await db_session.get(DiagnosticTestResult, older.id)
        row.completed_at = older.completed_at - timedelta(days=7)
        await db_session.commit()
        latest = await service.conduct_test(test.id, student.id, _answers(test, 5))

        recommendations = await service.get_student_recommendations(student.id)

        assert recommendations.test_result_id == latest.id
        assert recommendations.recommended_plan_types == ["enhancement"]

    @pytest.mark.asyncio
    async def test_recommendations_need_a_result(self, service, student):
        with pytest.raises(NoCompletedResultsError):
            await service.get_student_recommendations(student.id)

    @pytest.mark.asyncio
    async def test_identify_weaknesses_by_subject(self, service, diagnostic, student):
        test = await diagnostic()
        await service.conduct_test(test.id, student.id, _answers(test, 1))
        await service.conduct_test(test.id, student.id, _answers(test, 0))

        analysis = await service.identify_weaknesses(student.id)

        assert analysis.overall_weaknesses[0].count == 2
        assert len(analysis.subject_performance) == 1
        performance = analysis.subject_performance[0]
        assert performance.subject_name == "Mathematics"
        assert performance.tests_taken == 2
        assert performance.average_score == 10
        assert len(analysis.recent_results) == 2

    @pytest.mark.asyncio
    async def test_performance_report(self, service, diagnostic, student):
        test = await diagnostic()
        await service.conduct_test(test.id, student.id, _answers(test, 5))

        report = await service.get_student_performance_report(student.id)

        assert report.completed_tests == 1
        assert report.average_score == 100
        assert report.strong_subjects == ["Mathematics"]
        assert report.weak_subjects == []

    @pytest.mark.asyncio
    async def test_statistics(self, service, diagnostic, student):
        test = await diagnostic()
        await service.conduct_test(test.id, student.id, _answers(test, 4))

        stats = await service.get_statistics()

        assert stats.total_tests == 1
        assert stats.active_tests == 1
        assert stats.total_results == 1
        assert stats.pass_rate == 100
        assert stats.grade_distribution[0].key == "5"
