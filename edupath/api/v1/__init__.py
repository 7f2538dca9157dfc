# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    auth: Registration, login, tokens and password changes.
    content: Subjects and learning content.
    assessments: Assessments, questions and attempts.
    assignments: Assignments, submissions and grading.
    gamification: Points, levels, badges and leaderboard.
    notifications: Notifications and delivery preferences.
    schools: School management and teacher assignment.
    classes: Class management and student enrollment.
    plans: Recovery and enhancement plans.
    diagnostic_tests: Diagnostic tests, results and analysis.
"""

from typing import Any

from fastapi import APIRouter

from edupath import __version__
from edupath.api.v1 import (
    assessments,
    assignments,
    auth,
    classes,
    content,
    diagnostic_tests,
    gamification,
    notifications,
    plans,
    schools,
)

API_PREFIX = "/api/v1"

RESOURCES = {
    "auth": "/auth",
    "content": "/content",
    "assessments": "/assessments",
    "assignments": "/assignments",
    "gamification": "/gamification",
    "notifications": "/notifications",
    "schools": "/schools",
    "classes": "/classes",
    "recovery_plans": "/recovery-plans",
    "enhancement_plans": "/enhancement-plans",
    "diagnostic_tests": "/diagnostic-tests",
}

# Create the main v1 router
router = APIRouter(prefix=API_PREFIX)


@router.get("", tags=["Info"], summary="API information")
async def api_info() -> dict[str, Any]:
    """Name, version and the resource map of the API."""
    return {
        "name": "EduPath API",
        "version": __version__,
        "resources": {name: f"{API_PREFIX}{path}" for name, path in RESOURCES.items()},
        "documentation": "/api-docs",
    }


# Include domain routers
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(content.router, prefix="/content", tags=["Content"])
router.include_router(assessments.router, prefix="/assessments", tags=["Assessments"])
router.include_router(assignments.router, prefix="/assignments", tags=["Assignments"])
router.include_router(gamification.router, prefix="/gamification", tags=["Gamification"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(schools.router, prefix="/schools", tags=["Schools"])
router.include_router(classes.router, prefix="/classes", tags=["Classes"])
router.include_router(plans.recovery_router, prefix="/recovery-plans", tags=["Recovery Plans"])
router.include_router(
    plans.enhancement_router,
    prefix="/enhancement-plans",
    tags=["Enhancement Plans"],
)
router.include_router(
    diagnostic_tests.router,
    prefix="/diagnostic-tests",
    tags=["Diagnostic Tests"],
)

__all__ = ["router"]
