# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for EduPath.

Importing this package registers every table on Base.metadata, which
create_all() and the Alembic environment rely on.
"""

from edupath.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    generate_uuid,
)
from edupath.infrastructure.database.models.user import (
    ActivityLog,
    StudentProfile,
    TeacherProfile,
    User,
    UserSession,
)
from edupath.infrastructure.database.models.school import (
    Class,
    School,
    StudentClassEnrollment,
)
from edupath.infrastructure.database.models.content import (
    Content,
    ContentLike,
    ContentView,
    Subject,
)
from edupath.infrastructure.database.models.assessment import (
    Assessment,
    AssessmentAttempt,
    AssessmentQuestion,
)
from edupath.infrastructure.database.models.assignment import (
    Assignment,
    AssignmentSubmission,
)
from edupath.infrastructure.database.models.gamification import (
    Badge,
    PointsTransaction,
    StudentBadge,
)
from edupath.infrastructure.database.models.notification import (
    Notification,
    NotificationPreference,
)
from edupath.infrastructure.database.models.plans import (
    EnhancementPlan,
    RecoveryPlan,
    StudentEnhancementProgress,
    StudentRecoveryProgress,
)
from edupath.infrastructure.database.models.diagnostic import (
    DiagnosticQuestion,
    DiagnosticTest,
    DiagnosticTestResult,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "generate_uuid",
    "ActivityLog",
    "StudentProfile",
    "TeacherProfile",
    "User",
    "UserSession",
    "Class",
    "School",
    "StudentClassEnrollment",
    "Content",
    "ContentLike",
    "ContentView",
    "Subject",
    "Assessment",
    "AssessmentAttempt",
    "AssessmentQuestion",
    "Assignment",
    "AssignmentSubmission",
    "Badge",
    "PointsTransaction",
    "StudentBadge",
    "Notification",
    "NotificationPreference",
    "EnhancementPlan",
    "RecoveryPlan",
    "StudentEnhancementProgress",
    "StudentRecoveryProgress",
    "DiagnosticQuestion",
    "DiagnosticTest",
    "DiagnosticTestResult",
]
