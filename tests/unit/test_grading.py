# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for late-penalty grading and date helpers."""

from datetime import datetime, timedelta, timezone

from edupath.domains.assignment.grading import (
    apply_late_penalty,
    final_score_for,
    round_half_up,
)
from edupath.utils.datetime import days_late, ensure_utc

DUE = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestDaysLate:
    """Tests for days_late."""

    def test_on_time(self) -> None:
        assert days_late(DUE - timedelta(hours=1), DUE) == 0
        assert days_late(DUE, DUE) == 0

    def test_partial_day_counts_as_full_day(self) -> None:
        assert days_late(DUE + timedelta(minutes=1), DUE) == 1
        assert days_late(DUE + timedelta(days=1, hours=2), DUE) == 2

    def test_naive_values_are_treated_as_utc(self) -> None:
        naive = datetime(2025, 3, 2, 13, 0)

        assert days_late(naive, DUE) == 2
        assert ensure_utc(naive).tzinfo == timezone.utc


class TestLatePenalty:
    """Tests for apply_late_penalty and final_score_for."""

    def test_penalty_per_day(self) -> None:
        assert apply_late_penalty(80, 10, 2) == 64

    def test_score_never_below_zero(self) -> None:
        assert apply_late_penalty(80, 30, 5) == 0

    def test_no_penalty_when_on_time_or_zero_rate(self) -> None:
        assert apply_late_penalty(77.5, 10, 0) == 78
        assert apply_late_penalty(77.4, 0, 3) == 77

    def test_round_half_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_final_score_for_late_submission(self) -> None:
        submitted = DUE + timedelta(hours=30)

        assert final_score_for(90, submitted, DUE, late_penalty=5, is_late=True) == 81

    def test_final_score_for_on_time_submission(self) -> None:
        assert final_score_for(90, DUE, DUE, late_penalty=5, is_late=False) == 90
