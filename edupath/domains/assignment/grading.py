# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Late-penalty grading rules."""

import math
from datetime import datetime

from edupath.utils.datetime import days_late


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)


def apply_late_penalty(score: float, late_penalty: float, late_days: int) -> int:
    """Apply a per-day percentage penalty to a score.

    Args:
        score: Raw score awarded by the grader.
        late_penalty: Percent deducted per day late.
        late_days: Whole days late.

    Returns:
        Penalised score, never below zero, rounded to an integer.

    Example:
        >>> apply_late_penalty(80, 10, 2)
        64
    """
    if late_days <= 0 or late_penalty <= 0:
        return round_half_up(score)
    factor = 1 - (late_penalty * late_days) / 100
    return round_half_up(max(0.0, score * factor))


def final_score_for(
    score: float,
    submitted_at: datetime,
    due_date: datetime,
    late_penalty: float,
    is_late: bool,
) -> int:
    """Compute the final score of a submission from its timing."""
    if not is_late:
        return round_half_up(score)
    return apply_late_penalty(score, late_penalty, days_late(submitted_at, due_date))
