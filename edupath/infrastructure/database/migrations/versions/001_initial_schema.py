# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial EduPath schema.

Creates the tables for:
- users, profiles, sessions and activity logs
- schools, classes and enrollments
- subjects and content with views and likes
- assessments, questions and attempts
- assignments and submissions
- badges, earned badges and the points ledger
- notifications and preferences
- recovery and enhancement plans with student progress
- diagnostic tests, questions and results

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-09-01
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        sa.String(36),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
        index=True,
    )


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [_ts("created_at"), _ts("updated_at")]


def _plan_columns() -> list[sa.Column]:
    return [
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("objectives", sa.JSON(), nullable=False),
        sa.Column("activities", sa.JSON(), nullable=False),
        sa.Column("resources", sa.JSON(), nullable=False),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, index=True),
    ]


def _progress_columns(plan_table: str) -> list[sa.Column]:
    return [
        _fk("student_id", "users.id"),
        _fk("plan_id", f"{plan_table}.id"),
        sa.Column(
            "assigned_by",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("academic_year", sa.String(20), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("completion_rate", sa.Float(), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=False),
        sa.Column("progress_data", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _ts("assigned_at"),
        _ts("started_at", nullable=True),
        _ts("completed_at", nullable=True),
    ]


def upgrade() -> None:
    """Create all EduPath tables."""

    # Users and auth
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, index=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _ts("last_login", nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "schools",
        _id(),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("principal_name", sa.String(255), nullable=True),
        sa.Column("academic_year", sa.String(20), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, index=True),
        *_timestamps(),
    )

    op.create_table(
        "student_profiles",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
            index=True,
        ),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("class_section", sa.String(20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("parent_contact", sa.String(255), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=False, index=True),
        sa.Column("current_level", sa.Integer(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "teacher_profiles",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
            index=True,
        ),
        _fk("school_id", "schools.id", nullable=True, ondelete="SET NULL"),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("specialization", sa.String(255), nullable=True),
        sa.Column("qualifications", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "user_sessions",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("access_token_hash", sa.String(64), nullable=False, index=True),
        sa.Column("refresh_token_hash", sa.String(64), nullable=False, index=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
        _ts("last_activity"),
        _ts("created_at"),
    )

    op.create_table(
        "activity_logs",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.String(36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        _ts("created_at"),
    )

    # Schools and classes
    op.create_table(
        "classes",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("section", sa.String(20), nullable=False),
        _fk("school_id", "schools.id"),
        _fk("teacher_id", "users.id", nullable=True, ondelete="SET NULL"),
        sa.Column("academic_year", sa.String(20), nullable=False, index=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, index=True),
        *_timestamps(),
    )

    op.create_table(
        "student_class_enrollments",
        _id(),
        _fk("student_id", "users.id"),
        _fk("class_id", "classes.id"),
        sa.Column("academic_year", sa.String(20), nullable=False, index=True),
        _ts("enrolled_at"),
        _ts("withdrawn_at", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, index=True),
    )

    # Content
    op.create_table(
        "subjects",
        _id(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("name_ar", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(100), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("grade_levels", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "content",
        _id(),
        sa.Column("uuid", sa.String(36), nullable=False, unique=True),
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(30), nullable=False, index=True),
        _fk("subject_id", "subjects.id", ondelete="RESTRICT"),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("file_url", sa.String(500), nullable=True),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("like_count", sa.Integer(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, index=True),
        _ts("published_at", nullable=True),
        _fk("created_by", "users.id"),
        *_timestamps(),
    )

    op.create_table(
        "content_views",
        _id(),
        _fk("content_id", "content.id"),
        _fk("user_id", "users.id"),
        _ts("viewed_at"),
        sa.UniqueConstraint("content_id", "user_id", name="uq_content_view"),
    )

    op.create_table(
        "content_likes",
        _id(),
        _fk("content_id", "content.id"),
        _fk("user_id", "users.id"),
        _ts("created_at"),
        sa.UniqueConstraint("content_id", "user_id", name="uq_content_like"),
    )

    # Assessments
    op.create_table(
        "assessments",
        _id(),
        sa.Column("uuid", sa.String(36), nullable=False, unique=True),
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("subject_id", "subjects.id", ondelete="RESTRICT"),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("difficulty_level", sa.String(20), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("passing_score", sa.Float(), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, index=True),
        _ts("published_at", nullable=True),
        _fk("created_by", "users.id"),
        *_timestamps(),
    )

    op.create_table(
        "assessment_questions",
        _id(),
        _fk("assessment_id", "assessments.id"),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(30), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        _ts("created_at"),
    )

    op.create_table(
        "assessment_attempts",
        _id(),
        sa.Column("uuid", sa.String(36), nullable=False, unique=True),
        _fk("assessment_id", "assessments.id"),
        _fk("student_id", "users.id"),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        _ts("started_at"),
        _ts("submitted_at", nullable=True),
        _ts("completed_at", nullable=True),
        sa.Column("total_score", sa.Float(), nullable=False),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.Column("percentage_score", sa.Float(), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    # Assignments
    op.create_table(
        "assignments",
        _id(),
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("assignment_type", sa.String(30), nullable=False),
        _fk("subject_id", "subjects.id", nullable=True, ondelete="SET NULL"),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.Column("allow_late_submission", sa.Boolean(), nullable=False),
        sa.Column("late_penalty", sa.Float(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, index=True),
        _ts("published_at", nullable=True),
        _fk("created_by", "users.id"),
        *_timestamps(),
    )

    op.create_table(
        "assignment_submissions",
        _id(),
        _fk("assignment_id", "assignments.id"),
        _fk("student_id", "users.id"),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("is_late", sa.Boolean(), nullable=False),
        _ts("submitted_at"),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("final_score", sa.Float(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column(
            "graded_by",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _ts("graded_at", nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assignment_id", "student_id", name="uq_assignment_submission"),
    )

    # Gamification
    op.create_table(
        "badges",
        _id(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("name_ar", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("description_ar", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(100), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("criteria", sa.JSON(), nullable=False),
        sa.Column("points_reward", sa.Integer(), nullable=False),
        sa.Column("rarity", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, index=True),
        _ts("created_at"),
    )

    op.create_table(
        "student_badges",
        _id(),
        _fk("student_id", "users.id"),
        _fk("badge_id", "badges.id"),
        _ts("earned_at"),
        sa.Column("progress_data", sa.JSON(), nullable=True),
        sa.UniqueConstraint("student_id", "badge_id", name="uq_student_badge"),
    )

    op.create_table(
        "points_transactions",
        _id(),
        _fk("student_id", "users.id"),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(30), nullable=False, index=True),
        sa.Column("reference_id", sa.String(36), nullable=True),
        sa.Column("reference_type", sa.String(30), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )

    # Notifications
    op.create_table(
        "notifications",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(30), nullable=False, index=True),
        sa.Column("reference_id", sa.String(36), nullable=True),
        sa.Column("reference_type", sa.String(30), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, index=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False, index=True),
        _ts("read_at", nullable=True),
        sa.Column("delivery", sa.JSON(), nullable=True),
    )

    op.create_table(
        "notification_preferences",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("email_notifications", sa.Boolean(), nullable=False),
        sa.Column("push_notifications", sa.Boolean(), nullable=False),
        sa.Column("assignment_reminders", sa.Boolean(), nullable=False),
        sa.Column("grade_notifications", sa.Boolean(), nullable=False),
        sa.Column("achievement_notifications", sa.Boolean(), nullable=False),
        sa.Column("system_notifications", sa.Boolean(), nullable=False),
        sa.Column("push_tokens", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    # Plans
    op.create_table(
        "recovery_plans",
        _id(),
        *_plan_columns(),
        _fk("subject_id", "subjects.id", ondelete="RESTRICT"),
        sa.Column("week_number", sa.Integer(), nullable=False, index=True),
        _fk("created_by", "users.id"),
        *_timestamps(),
    )

    op.create_table(
        "enhancement_plans",
        _id(),
        *_plan_columns(),
        _fk("subject_id", "subjects.id", ondelete="RESTRICT"),
        sa.Column("plan_type", sa.String(30), nullable=False, index=True),
        sa.Column("prerequisites", sa.JSON(), nullable=False),
        _fk("created_by", "users.id"),
        *_timestamps(),
    )

    op.create_table(
        "student_recovery_progress",
        _id(),
        *_progress_columns("recovery_plans"),
        *_timestamps(),
    )

    op.create_table(
        "student_enhancement_progress",
        _id(),
        *_progress_columns("enhancement_plans"),
        *_timestamps(),
    )

    # Diagnostics
    op.create_table(
        "diagnostic_tests",
        _id(),
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("subject_id", "subjects.id", nullable=True, ondelete="SET NULL"),
        sa.Column("grade_level", sa.Integer(), nullable=False, index=True),
        sa.Column("test_type", sa.String(20), nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("total_marks", sa.Integer(), nullable=False),
        sa.Column("passing_marks", sa.Integer(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, index=True),
        _fk("created_by", "users.id"),
        *_timestamps(),
    )

    op.create_table(
        "diagnostic_questions",
        _id(),
        _fk("test_id", "diagnostic_tests.id"),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(30), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("marks", sa.Integer(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
    )

    op.create_table(
        "diagnostic_test_results",
        _id(),
        _fk("test_id", "diagnostic_tests.id"),
        _fk("student_id", "users.id"),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        sa.Column("time_spent", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("weaknesses", sa.JSON(), nullable=False),
        sa.Column("recommendations", sa.JSON(), nullable=False),
        _ts("completed_at", nullable=True),
        _ts("created_at"),
    )


def downgrade() -> None:
    """Drop all EduPath tables in reverse dependency order."""
    for table in (
        "diagnostic_test_results",
        "diagnostic_questions",
        "diagnostic_tests",
        "student_enhancement_progress",
        "student_recovery_progress",
        "enhancement_plans",
        "recovery_plans",
        "notification_preferences",
        "notifications",
        "points_transactions",
        "student_badges",
        "badges",
        "assignment_submissions",
        "assignments",
        "assessment_attempts",
        "assessment_questions",
        "assessments",
        "content_likes",
        "content_views",
        "content",
        "subjects",
        "student_class_enrollments",
        "classes",
        "activity_logs",
        "user_sessions",
        "teacher_profiles",
        "student_profiles",
        "schools",
        "users",
    ):
        op.drop_table(table)
