# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recovery and enhancement plan services.

Both plan kinds behave the same way and differ only in their tables,
their extra columns and the order of their listings. PlanService holds
the shared behavior:
- Plan CRUD (soft delete) and filtered listings
- Assigning plans to students, with a notification to the student
- Progress updates with derived completion rates
- Statistics and per-student summaries

RecoveryPlanService and EnhancementPlanService bind it to their tables.
EnhancementPlanService adds the plan effectiveness report.
"""

import logging
from typing import Any, ClassVar

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.auth.permissions import UserRole
from edupath.domains.notification.service import (
    NotificationService,
    NotificationServiceError,
)
from edupath.domains.plans.progress import (
    effectiveness_recommendations,
    rate_effectiveness,
    resolve_progress_update,
)
from edupath.infrastructure.database.models import (
    EnhancementPlan,
    RecoveryPlan,
    StudentEnhancementProgress,
    StudentRecoveryProgress,
    Subject,
    User,
)
from edupath.models.notification import NotificationType
from edupath.models.plans import (
    ACTIVE_PROGRESS_STATUSES,
    AssignPlanRequest,
    EnhancementPlanResponse,
    PlanBaseRequest,
    PlanBaseUpdateRequest,
    PlanEffectivenessReport,
    PlanFilters,
    PlanGradeDistributionEntry,
    PlanKind,
    PlanProgressResponse,
    PlanProgressStatus,
    PlanResponse,
    PlanStatistics,
    ProgressFilters,
    RecoveryPlanResponse,
    StudentPlanSummary,
    UpdateProgressRequest,
)
from edupath.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class PlanServiceError(Exception):
    """Base exception for plan service errors."""

    pass


class PlanNotFoundError(PlanServiceError):
    """Raised when a plan is not found."""

    pass


class PlanInactiveError(PlanServiceError):
    """Raised when assigning a deactivated plan."""

    pass


class PlanAlreadyAssignedError(PlanServiceError):
    """Raised when the student already has an active assignment of the plan."""

    pass


class PlanStudentNotFoundError(PlanServiceError):
    """Raised when the assignee is not an existing student."""

    pass


class PlanSubjectNotFoundError(PlanServiceError):
    """Raised when the plan subject does not exist."""

    pass


class ProgressNotFoundError(PlanServiceError):
    """Raised when a progress record is not found."""

    pass


class PlanService:
    """Shared plan behavior bound to a plan table and its progress table.

    Subclasses set the class attributes below.

    Attributes:
        kind: Plan kind reported in summaries and notifications.
        plan_model: ORM class of the plan table.
        progress_model: ORM class of the student progress table.
        response_model: Pydantic response for a plan.
        _db: Async database session.
        _notifications: Notification service used to tell students.
    """

    kind: ClassVar[PlanKind]
    plan_model: ClassVar[Any]
    progress_model: ClassVar[Any]
    response_model: ClassVar[type[PlanResponse]]

    def __init__(
        self,
        db: AsyncSession,
        notifications: NotificationService | None = None,
    ) -> None:
        """Initialize the plan service.

        Args:
            db: Async database session.
            notifications: Notification service. Built from db when omitted.
        """
        self._db = db
        self._notifications = notifications or NotificationService(db)

    @property
    def _label(self) -> str:
        return f"{self.kind.value} plan"

    # =========================================================================
    # Plans
    # =========================================================================

    async def create_plan(self, request: PlanBaseRequest, created_by: str) -> PlanResponse:
        """Create a plan.

        Raises:
            PlanSubjectNotFoundError: If the subject does not exist.
        """
        await self._ensure_subject(request.subject_id)

        plan = self.plan_model(
            **request.model_dump(mode="json"),
            created_by=created_by,
            is_active=True,
        )
        self._db.add(plan)
        await self._db.commit()

        logger.info("Created %s %s: %s", self._label, plan.id, plan.title)
        return await self._to_response(plan)

    async def update_plan(self, plan_id: str, request: PlanBaseUpdateRequest) -> PlanResponse:
        """Update a plan.

        Raises:
            PlanNotFoundError: If the plan does not exist.
            PlanSubjectNotFoundError: If a new subject does not exist.
        """
        plan = await self._get_plan(plan_id)

        updates = request.model_dump(mode="json", exclude_unset=True)
        if updates.get("subject_id"):
            await self._ensure_subject(updates["subject_id"])

        for field, value in updates.items():
            setattr(plan, field, value)

        await self._db.commit()
        logger.info("Updated %s %s", self._label, plan_id)
        return await self._to_response(plan)

    async def delete_plan(self, plan_id: str) -> PlanResponse:
        """Deactivate a plan. Existing progress records are kept.

        Raises:
            PlanNotFoundError: If the plan does not exist.
        """
        plan = await self._get_plan(plan_id)
        plan.is_active = False
        await self._db.commit()
        logger.info("Deactivated %s %s", self._label, plan_id)
        return await self._to_response(plan)

    async def get_plan(self, plan_id: str) -> PlanResponse:
        """Get a plan with its assignment count.

        Raises:
            PlanNotFoundError: If the plan does not exist.
        """
        return await self._to_response(await self._get_plan(plan_id))

    async def list_plans(
        self,
        filters: PlanFilters,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[PlanResponse], int]:
        """List plans with filters.

        Returns:
            Tuple of (plans, total count).
        """
        model = self.plan_model
        stmt = select(model)

        if filters.subject_id:
            stmt = stmt.where(model.subject_id == filters.subject_id)
        if filters.grade_level is not None:
            stmt = stmt.where(model.grade_level == filters.grade_level)
        if filters.difficulty:
            stmt = stmt.where(model.difficulty == filters.difficulty.value)
        if filters.is_active is not None:
            stmt = stmt.where(model.is_active.is_(filters.is_active))
        if filters.search:
            search_term = f"%{filters.search}%"
            stmt = stmt.where(
                or_(model.title.ilike(search_term), model.description.ilike(search_term))
            )
        stmt = self._apply_kind_filters(stmt, filters)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(*self._list_ordering()).limit(limit).offset(offset)
        plans = (await self._db.execute(stmt)).scalars().all()
        counts = await self._get_assignment_counts([p.id for p in plans])

        responses = []
        for plan in plans:
            response = self.response_model.model_validate(plan)
            response.assignment_count = counts.get(plan.id, 0)
            responses.append(response)
        return responses, total

    # =========================================================================
    # Assignment and progress
    # =========================================================================

    async def assign_plan(
        self,
        plan_id: str,
        request: AssignPlanRequest,
        assigned_by: str,
    ) -> PlanProgressResponse:
        """Assign a plan to a student and notify them.

        Raises:
            PlanNotFoundError: If the plan does not exist.
            PlanInactiveError: If the plan is deactivated.
            PlanStudentNotFoundError: If the assignee is not a student.
            PlanAlreadyAssignedError: If an active assignment exists for
                the same student, plan and academic year.
        """
        plan = await self._get_plan(plan_id)
        if not plan.is_active:
            raise PlanInactiveError(f"The {self._label} is not active")

        student = await self._db.get(User, request.student_id)
        if not student or student.role != UserRole.STUDENT.value:
            raise PlanStudentNotFoundError(f"Student {request.student_id} not found")

        progress_model = self.progress_model
        existing = await self._db.scalar(
            select(func.count())
            .select_from(progress_model)
            .where(
                progress_model.student_id == request.student_id,
                progress_model.plan_id == plan_id,
                progress_model.academic_year == request.academic_year,
                progress_model.status.in_(ACTIVE_PROGRESS_STATUSES),
            )
        )
        if existing:
            raise PlanAlreadyAssignedError(
                f"Student already has an active assignment for this {self._label}"
            )

        progress = progress_model(
            student_id=request.student_id,
            plan_id=plan_id,
            assigned_by=assigned_by,
            academic_year=request.academic_year,
            notes=request.notes,
            status=PlanProgressStatus.ASSIGNED.value,
            completion_rate=0.0,
            time_spent=0,
        )
        progress.plan = plan
        self._db.add(progress)
        await self._db.commit()

        logger.info("Assigned %s %s to student %s", self._label, plan_id, request.student_id)

        try:
            await self._notifications.send_notification(
                user_id=request.student_id,
                title=f"New {self._label}",
                message=f"You have been assigned a {self._label}: {plan.title}",
                notification_type=NotificationType.ASSIGNMENT,
                reference_id=plan.id,
                reference_type=f"{self.kind.value}_plan",
            )
        except NotificationServiceError as e:
            logger.warning("Plan assignment notification failed: %s", str(e))

        return self._to_progress(progress)

    async def update_progress(
        self,
        progress_id: str,
        request: UpdateProgressRequest,
        student_id: str | None = None,
    ) -> PlanProgressResponse:
        """Update a student's progress through a plan.

        The completion rate is derived from ``progress_data`` when not given.
        Reaching 100% without an explicit status completes the plan. The
        first move to in_progress records started_at.

        Args:
            progress_id: Progress record ID.
            request: Progress changes.
            student_id: When given, the record must belong to this student.

        Raises:
            ProgressNotFoundError: If the progress record does not exist.
        """
        progress = await self._db.get(self.progress_model, progress_id)
        if not progress or (student_id is not None and progress.student_id != student_id):
            raise ProgressNotFoundError(f"Progress record {progress_id} not found")

        completion_rate, status = resolve_progress_update(
            request.completion_rate,
            request.status.value if request.status else None,
            request.progress_data,
        )

        if completion_rate is not None:
            progress.completion_rate = completion_rate
        if request.time_spent is not None:
            progress.time_spent = request.time_spent
        if request.progress_data is not None:
            progress.progress_data = dict(request.progress_data)
        if request.notes is not None:
            progress.notes = request.notes

        if status:
            now = utc_now()
            if status == PlanProgressStatus.IN_PROGRESS.value and progress.started_at is None:
                progress.started_at = now
            if status == PlanProgressStatus.COMPLETED.value and progress.completed_at is None:
                progress.completed_at = now
                if progress.started_at is None:
                    progress.started_at = now
            progress.status = status

        await self._db.commit()
        logger.info(
            "Updated %s progress %s: status=%s rate=%.1f",
            self._label,
            progress_id,
            progress.status,
            progress.completion_rate,
        )
        return self._to_progress(progress)

    async def get_progress(
        self,
        filters: ProgressFilters,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[PlanProgressResponse], int]:
        """List progress records, most recently assigned first.

        Returns:
            Tuple of (progress records, total count).
        """
        model = self.progress_model
        stmt = select(model)

        if filters.student_id:
            stmt = stmt.where(model.student_id == filters.student_id)
        if filters.plan_id:
            stmt = stmt.where(model.plan_id == filters.plan_id)
        if filters.status:
            stmt = stmt.where(model.status == filters.status.value)
        if filters.academic_year:
            stmt = stmt.where(model.academic_year == filters.academic_year)
        if filters.assigned_by:
            stmt = stmt.where(model.assigned_by == filters.assigned_by)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(model.assigned_at.desc()).limit(limit).offset(offset)
        rows = (await self._db.execute(stmt)).scalars().all()
        return [self._to_progress(p) for p in rows], total

    # =========================================================================
    # Reports
    # =========================================================================

    async def get_statistics(self, academic_year: str | None = None) -> PlanStatistics:
        """Aggregate statistics over all plans of this kind.

        Args:
            academic_year: Restrict assignment figures to one academic year.
        """
        plan_model = self.plan_model
        progress_model = self.progress_model

        total_plans = await self._db.scalar(select(func.count(plan_model.id))) or 0
        active_plans = await self._db.scalar(
            select(func.count(plan_model.id)).where(plan_model.is_active.is_(True))
        ) or 0

        progress_filter = []
        if academic_year:
            progress_filter.append(progress_model.academic_year == academic_year)

        row = (
            await self._db.execute(
                select(
                    func.count(progress_model.id),
                    func.avg(progress_model.completion_rate),
                    func.avg(progress_model.time_spent),
                ).where(*progress_filter)
            )
        ).one()
        total_assignments, avg_rate, avg_time = row

        completed = await self._db.scalar(
            select(func.count(progress_model.id)).where(
                progress_model.status == PlanProgressStatus.COMPLETED.value,
                *progress_filter,
            )
        ) or 0

        plans_by_grade = dict(
            (
                await self._db.execute(
                    select(plan_model.grade_level, func.count(plan_model.id)).group_by(
                        plan_model.grade_level
                    )
                )
            ).all()
        )
        assignments_by_grade = dict(
            (
                await self._db.execute(
                    select(plan_model.grade_level, func.count(progress_model.id))
                    .join(progress_model, progress_model.plan_id == plan_model.id)
                    .where(*progress_filter)
                    .group_by(plan_model.grade_level)
                )
            ).all()
        )

        return PlanStatistics(
            total_plans=total_plans,
            active_plans=active_plans,
            total_assignments=total_assignments or 0,
            completed_assignments=completed,
            average_completion_rate=round(float(avg_rate or 0), 2),
            average_time_spent=round(float(avg_time or 0), 2),
            grade_distribution=[
                PlanGradeDistributionEntry(
                    grade_level=grade,
                    plan_count=count,
                    assignment_count=assignments_by_grade.get(grade, 0),
                )
                for grade, count in sorted(plans_by_grade.items())
            ],
        )

    async def get_student_summary(
        self,
        student_id: str,
        academic_year: str | None = None,
    ) -> StudentPlanSummary:
        """Summarize a student's plans of this kind."""
        model = self.progress_model
        conditions = [model.student_id == student_id]
        if academic_year:
            conditions.append(model.academic_year == academic_year)

        result = await self._db.execute(
            select(model).where(*conditions).order_by(model.assigned_at.desc())
        )
        rows = result.scalars().all()

        completed = [p for p in rows if p.status == PlanProgressStatus.COMPLETED.value]
        in_progress = [p for p in rows if p.status == PlanProgressStatus.IN_PROGRESS.value]
        current = [p for p in rows if p.status in ACTIVE_PROGRESS_STATUSES]
        average = sum(p.completion_rate or 0 for p in rows) / len(rows) if rows else 0.0

        return StudentPlanSummary(
            student_id=student_id,
            plan_kind=self.kind,
            total_plans=len(rows),
            completed_plans=len(completed),
            in_progress_plans=len(in_progress),
            average_completion_rate=round(average, 2),
            total_time_spent=sum(p.time_spent or 0 for p in rows),
            current_plans=[self._to_progress(p) for p in current],
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _apply_kind_filters(self, stmt, filters: PlanFilters):
        return stmt

    def _list_ordering(self) -> tuple:
        return (self.plan_model.grade_level.asc(), self.plan_model.created_at.desc())

    async def _get_plan(self, plan_id: str):
        plan = await self._db.get(self.plan_model, plan_id)
        if not plan:
            raise PlanNotFoundError(f"{self._label.capitalize()} {plan_id} not found")
        return plan

    async def _ensure_subject(self, subject_id: str) -> None:
        if not await self._db.get(Subject, subject_id):
            raise PlanSubjectNotFoundError(f"Subject {subject_id} not found")

    async def _get_assignment_counts(self, plan_ids: list[str]) -> dict[str, int]:
        if not plan_ids:
            return {}
        model = self.progress_model
        result = await self._db.execute(
            select(model.plan_id, func.count(model.id))
            .where(model.plan_id.in_(plan_ids))
            .group_by(model.plan_id)
        )
        return dict(result.all())

    async def _to_response(self, plan) -> PlanResponse:
        response = self.response_model.model_validate(plan)
        counts = await self._get_assignment_counts([plan.id])
        response.assignment_count = counts.get(plan.id, 0)
        return response

    @staticmethod
    def _to_progress(progress) -> PlanProgressResponse:
        response = PlanProgressResponse.model_validate(progress)
        response.plan_title = progress.plan.title if progress.plan else None
        return response


class RecoveryPlanService(PlanService):
    """Weekly recovery plans for students who fell behind."""

    kind = PlanKind.RECOVERY
    plan_model = RecoveryPlan
    progress_model = StudentRecoveryProgress
    response_model = RecoveryPlanResponse

    def _apply_kind_filters(self, stmt, filters: PlanFilters):
        if filters.week_number is not None:
            stmt = stmt.where(RecoveryPlan.week_number == filters.week_number)
        return stmt

    def _list_ordering(self) -> tuple:
        return (
            RecoveryPlan.grade_level.asc(),
            RecoveryPlan.week_number.asc(),
            RecoveryPlan.created_at.desc(),
        )


class EnhancementPlanService(PlanService):
    """Enhancement plans for students ready for more advanced work."""

    kind = PlanKind.ENHANCEMENT
    plan_model = EnhancementPlan
    progress_model = StudentEnhancementProgress
    response_model = EnhancementPlanResponse

    def _apply_kind_filters(self, stmt, filters: PlanFilters):
        if filters.plan_type:
            stmt = stmt.where(EnhancementPlan.plan_type == filters.plan_type.value)
        return stmt

    def _list_ordering(self) -> tuple:
        return (
            EnhancementPlan.grade_level.asc(),
            EnhancementPlan.plan_type.asc(),
            EnhancementPlan.created_at.desc(),
        )

    async def get_plan_effectiveness_report(self, plan_id: str) -> PlanEffectivenessReport:
        """Rate a plan by how its assignments turned out.

        Effectiveness is high from 80% average completion, medium from 60%.

        Raises:
            PlanNotFoundError: If the plan does not exist.
        """
        plan = await self._get_plan(plan_id)
        model = StudentEnhancementProgress

        total, avg_rate, avg_time = (
            await self._db.execute(
                select(
                    func.count(model.id),
                    func.avg(model.completion_rate),
                    func.avg(model.time_spent),
                ).where(model.plan_id == plan_id)
            )
        ).one()
        completed = await self._db.scalar(
            select(func.count(model.id)).where(
                model.plan_id == plan_id,
                model.status == PlanProgressStatus.COMPLETED.value,
            )
        ) or 0

        average_rate = float(avg_rate or 0)
        average_time = float(avg_time or 0)

        return PlanEffectivenessReport(
            plan_id=plan.id,
            plan_title=plan.title,
            plan_kind=self.kind,
            total_assignments=total or 0,
            completed_assignments=completed,
            average_completion_rate=round(average_rate, 2),
            average_time_spent=round(average_time, 2),
            effectiveness=rate_effectiveness(average_rate),
            recommendations=effectiveness_recommendations(
                average_rate,
                average_time,
                plan.estimated_hours,
                total or 0,
            ),
        )
