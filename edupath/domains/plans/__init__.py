# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plans domain: recovery and enhancement plans with student progress."""

from edupath.domains.plans.service import (
    EnhancementPlanService,
    PlanAlreadyAssignedError,
    PlanInactiveError,
    PlanNotFoundError,
    PlanService,
    PlanServiceError,
    PlanStudentNotFoundError,
    PlanSubjectNotFoundError,
    ProgressNotFoundError,
    RecoveryPlanService,
)

__all__ = [
    "EnhancementPlanService",
    "PlanAlreadyAssignedError",
    "PlanInactiveError",
    "PlanNotFoundError",
    "PlanService",
    "PlanServiceError",
    "PlanStudentNotFoundError",
    "PlanSubjectNotFoundError",
    "ProgressNotFoundError",
    "RecoveryPlanService",
]
