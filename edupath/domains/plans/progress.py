# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress rules shared by recovery and enhancement plans."""

from typing import Any

from edupath.models.plans import EffectivenessLevel, PlanProgressStatus


def completion_rate_from_progress(progress_data: dict[str, Any]) -> float:
    """Derive a completion percentage from recorded activity progress.

    ``progress_data`` either carries ``completed_activities`` and
    ``total_activities`` counts, or an ``activities`` list whose entries
    have a ``completed`` flag.

    Returns:
        Percentage in 0..100. Zero when no activities are recorded.

    Example:
        >>> completion_rate_from_progress({"completed_activities": 3, "total_activities": 4})
        75.0
    """
    activities = progress_data.get("activities")
    if isinstance(activities, list):
        total = len(activities)
        completed = sum(
            1 for activity in activities if isinstance(activity, dict) and activity.get("completed")
        )
    else:
        total = int(progress_data.get("total_activities") or 0)
        completed = int(progress_data.get("completed_activities") or 0)

    if total <= 0:
        return 0.0
    return min(100.0, max(0.0, completed / total * 100))


def resolve_progress_update(
    completion_rate: float | None,
    status: str | None,
    progress_data: dict[str, Any] | None,
) -> tuple[float | None, str | None]:
    """Work out the completion rate and status a progress update should store.

    An explicit completion rate wins over one derived from progress data.
    A rate of 100 without an explicit status marks the plan completed.

    Returns:
        Tuple of (completion_rate, status). Either may be None when unchanged.
    """
    if progress_data is not None and completion_rate is None:
        completion_rate = completion_rate_from_progress(progress_data)

    if completion_rate is not None and completion_rate >= 100 and not status:
        status = PlanProgressStatus.COMPLETED.value

    return completion_rate, status


def rate_effectiveness(average_completion_rate: float) -> EffectivenessLevel:
    """Rate a plan by the average completion of its assignments."""
    if average_completion_rate >= 80:
        return EffectivenessLevel.HIGH
    if average_completion_rate >= 60:
        return EffectivenessLevel.MEDIUM
    return EffectivenessLevel.LOW


def effectiveness_recommendations(
    average_completion_rate: float,
    average_time_spent: float,
    estimated_hours: float | None,
    total_assignments: int,
) -> list[str]:
    """Suggest plan improvements from its assignment outcomes.

    Args:
        average_completion_rate: Mean completion percentage.
        average_time_spent: Mean minutes spent per assignment.
        estimated_hours: Planned effort, if the plan has one.
        total_assignments: Number of students the plan was assigned to.
    """
    recommendations: list[str] = []
    if average_completion_rate < 60:
        recommendations.append("Make the plan content more interactive")
        recommendations.append("Add more practical examples and exercises")
    if estimated_hours and average_time_spent > estimated_hours * 60 * 1.5:
        recommendations.append("Review the time estimate for the plan")
        recommendations.append("Simplify the more complex activities")
    if total_assignments < 5:
        recommendations.append("Assign the plan to more students for a more accurate assessment")
    return recommendations
