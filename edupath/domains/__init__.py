# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for EduPath.

This package contains domain services that encapsulate business logic.
Each service works on an async database session and raises its own
exception hierarchy, which the API layer maps to HTTP responses.

Domains:
    auth: Registration, login, sessions, tokens and permissions.
    content: Subjects and learning content.
    assessment: Assessments, questions, attempts and scoring.
    assignment: Assignments, submissions and grading.
    gamification: Points, levels, badges and leaderboards.
    notification: Notifications and delivery preferences.
    school: Schools and teacher assignment.
    class_: Classes and student enrollment.
    plans: Recovery and enhancement plans.
    diagnostic: Diagnostic tests and weakness analysis.
"""
