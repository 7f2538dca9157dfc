# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Badge criteria evaluation.

Evaluation is pure: the service gathers a StudentStats snapshot once and
every badge is scored against it. Each simple criteria type compares one
statistic with one target condition:

    points       total_points           min_points
    assessments  assessments_passed     assessments_passed
    assignments  assignments_completed  assignments_completed
    streak       current_streak         streak_days
    content      content_viewed         content_viewed

Composite criteria combine sub-criteria with AND (all must be met) or OR
(any must be met).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from edupath.models.gamification import BadgeCriteria, BadgeProgress, CriteriaType
from edupath.utils.datetime import utc_now

# Attempts at or above this percentage count as passed for badges
ASSESSMENT_PASS_PERCENTAGE = 70.0


@dataclass(frozen=True)
class StudentStats:
    """Snapshot of the statistics badge criteria are evaluated against."""

    total_points: int = 0
    assessments_passed: int = 0
    assignments_completed: int = 0
    current_streak: int = 0
    content_viewed: int = 0


# criteria type -> (stats attribute, condition key, missing-requirement template)
_SIMPLE_CRITERIA: dict[CriteriaType, tuple[str, str, str]] = {
    CriteriaType.POINTS: ("total_points", "min_points", "Need {n} more points"),
    CriteriaType.ASSESSMENTS: (
        "assessments_passed",
        "assessments_passed",
        "Need to pass {n} more assessments",
    ),
    CriteriaType.ASSIGNMENTS: (
        "assignments_completed",
        "assignments_completed",
        "Need to complete {n} more assignments",
    ),
    CriteriaType.STREAK: ("current_streak", "streak_days", "Need {n} more consecutive days"),
    CriteriaType.CONTENT: (
        "content_viewed",
        "content_viewed",
        "Need to view {n} more content items",
    ),
}


def parse_criteria(raw: dict[str, Any] | BadgeCriteria) -> BadgeCriteria:
    """Validate stored criteria JSON into a BadgeCriteria model."""
    if isinstance(raw, BadgeCriteria):
        return raw
    return BadgeCriteria.model_validate(raw)


def _percentage(current: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return min(100.0, current / target * 100)


def evaluate_criteria(
    criteria: BadgeCriteria,
    stats: StudentStats,
    now: datetime | None = None,
) -> BadgeProgress:
    """Compute progress toward a criteria.

    Args:
        criteria: Criteria to evaluate.
        stats: Student statistics snapshot.
        now: Timestamp recorded on the progress.

    Returns:
        BadgeProgress whose percentage reaches 100 exactly when the
        criteria is met.
    """
    now = now or utc_now()

    if criteria.type == CriteriaType.COMPOSITE:
        subs = [evaluate_criteria(sub, stats, now) for sub in criteria.sub_criteria or []]
        if not subs:
            return BadgeProgress(current_value=0, target_value=0, percentage=0.0, last_updated=now)

        met = sum(1 for sub in subs if sub.percentage >= 100)
        if criteria.operator == "OR":
            required = 1
            percentage = max(sub.percentage for sub in subs)
        else:
            required = len(subs)
            percentage = min(sub.percentage for sub in subs)

        return BadgeProgress(
            current_value=met,
            target_value=required,
            percentage=percentage,
            last_updated=now,
        )

    attribute, condition_key, _ = _SIMPLE_CRITERIA[criteria.type]
    current = getattr(stats, attribute)
    target = criteria.conditions.get(condition_key, 0)

    return BadgeProgress(
        current_value=current,
        target_value=target,
        percentage=_percentage(current, target),
        last_updated=now,
    )


def is_eligible(criteria: BadgeCriteria, stats: StudentStats) -> bool:
    """Check whether a criteria is fully met."""
    return evaluate_criteria(criteria, stats).percentage >= 100


def missing_requirements(criteria: BadgeCriteria, stats: StudentStats) -> list[str]:
    """Describe what is still needed to meet a criteria.

    Composite criteria report the requirements of their unmet sub-criteria.
    """
    if criteria.type == CriteriaType.COMPOSITE:
        missing: list[str] = []
        for sub in criteria.sub_criteria or []:
            missing.extend(missing_requirements(sub, stats))
        return missing

    attribute, condition_key, template = _SIMPLE_CRITERIA[criteria.type]
    remaining = criteria.conditions.get(condition_key, 0) - getattr(stats, attribute)
    if remaining > 0:
        return [template.format(n=remaining)]
    return []
