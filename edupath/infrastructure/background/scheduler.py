# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic maintenance jobs.

Uses APScheduler's AsyncIOScheduler inside the API process. Each job opens
its own database session and delegates to a domain service.

Example:
    from edupath.infrastructure.background.scheduler import start_scheduler

    scheduler = await start_scheduler(settings)
    ...
    await stop_scheduler()
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from edupath.core.config import Settings
from edupath.infrastructure.database.connection import cleanup_expired_sessions, get_session
from edupath.utils.datetime import utc_now

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[int]]


# =============================================================================
# MAINTENANCE JOBS
# =============================================================================


async def cleanup_sessions_job() -> int:
    """Delete expired login sessions."""
    async with get_session() as session:
        return await cleanup_expired_sessions(session)


async def auto_submit_attempts_job() -> int:
    """Score and close assessment attempts past their time limit."""
    from edupath.domains.assessment.service import AssessmentService

    async with get_session() as session:
        return await AssessmentService(session).auto_submit_expired_attempts()


async def overdue_reminders_job() -> int:
    """Remind students about past-due assignments they have not submitted."""
    from edupath.domains.assignment.service import AssignmentService

    async with get_session() as session:
        return await AssignmentService(session).send_overdue_reminders()


def make_notification_cleanup_job(retention_days: int) -> JobFunc:
    """Build the job that purges old read notifications."""

    async def notification_cleanup_job() -> int:
        from edupath.domains.notification.service import NotificationService

        async with get_session() as session:
            return await NotificationService(session).cleanup_old_notifications(
                days_old=retention_days
            )

    return notification_cleanup_job


# =============================================================================
# SCHEDULER
# =============================================================================


@dataclass
class ScheduledTask:
    """A periodic maintenance job.

    Attributes:
        name: Human-readable task name.
        func: Coroutine function returning the number of affected rows.
        id: Unique task identifier.
        enabled: Whether the task is enabled.
        last_run: Last run timestamp.
        last_result: Rows affected by the last run.
        run_count: Total number of runs.
        error_count: Number of failed runs.
    """

    name: str
    func: JobFunc
    id: str = field(default_factory=lambda: str(uuid4()))
    enabled: bool = True
    last_run: datetime | None = None
    last_result: int | None = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": self.last_result,
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class MaintenanceScheduler:
    """Interval scheduler for maintenance jobs.

    Attributes:
        _scheduler: APScheduler instance, present while running.
        _tasks: Registered tasks by ID.
        _running: Whether the scheduler is running.
    """

    def __init__(self) -> None:
        """Initialize the scheduler."""
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def add_interval_task(
        self,
        name: str,
        func: JobFunc,
        minutes: int = 0,
        hours: int = 0,
        enabled: bool = True,
    ) -> ScheduledTask:
        """Register a job that runs at a fixed interval.

        Args:
            name: Task name.
            func: Job coroutine function.
            minutes: Interval minutes.
            hours: Interval hours.
            enabled: Whether task is enabled.

        Returns:
            Created ScheduledTask.
        """
        task = ScheduledTask(name=name, func=func, enabled=enabled)
        self._tasks[task.id] = task

        if self._scheduler and enabled:
            self._scheduler.add_job(
                self._execute_task,
                trigger=IntervalTrigger(minutes=minutes, hours=hours),
                args=[task.id],
                id=task.id,
                name=name,
                coalesce=True,
                max_instances=1,
            )

        logger.info("Added interval task: %s (every %dh %dm)", name, hours, minutes)
        return task

    async def _execute_task(self, task_id: str) -> None:
        """Run a task, recording its outcome.

        Failures are logged and counted so the schedule keeps running.
        """
        task = self._tasks.get(task_id)
        if not task or not task.enabled:
            return

        logger.debug("Executing scheduled task: %s", task.name)

        try:
            task.last_result = await task.func()
            task.run_count += 1
            logger.info("Scheduled task %s affected %d rows", task.name, task.last_result)
        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e))
        finally:
            task.last_run = utc_now()

    def get_task(self, task_id: str) -> ScheduledTask | None:
        """Get a scheduled task by ID."""
        return self._tasks.get(task_id)

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.start()
        self._running = True

        logger.info("Maintenance scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Maintenance scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "is_running": self._running,
            "task_count": len(self._tasks),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


# Singleton instance
_scheduler: MaintenanceScheduler | None = None


def get_scheduler() -> MaintenanceScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = MaintenanceScheduler()
    return _scheduler


async def start_scheduler(settings: Settings) -> MaintenanceScheduler:
    """Start the scheduler and register the maintenance jobs.

    Args:
        settings: Application settings. Intervals come from settings.scheduler.

    Returns:
        Started scheduler instance.
    """
    config = settings.scheduler
    scheduler = get_scheduler()
    await scheduler.start()

    scheduler.add_interval_task(
        name="Expired Session Cleanup",
        func=cleanup_sessions_job,
        minutes=config.session_cleanup_minutes,
    )
    scheduler.add_interval_task(
        name="Assessment Attempt Auto-Submit",
        func=auto_submit_attempts_job,
        minutes=config.attempt_auto_submit_minutes,
    )
    scheduler.add_interval_task(
        name="Overdue Assignment Reminders",
        func=overdue_reminders_job,
        hours=config.overdue_reminder_hours,
    )
    scheduler.add_interval_task(
        name="Read Notification Cleanup",
        func=make_notification_cleanup_job(config.notification_retention_days),
        hours=config.notification_cleanup_hours,
    )

    logger.info("Registered %d maintenance tasks", len(scheduler.list_tasks()))
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
