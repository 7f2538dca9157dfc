# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get authenticated users with a live session
- Get service instances

Example:
    @router.get("/content")
    async def list_content(
        db: DB,
        current_user: AuthenticatedUser,
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.api.middleware.auth import CurrentUser, get_current_user
from edupath.core.config import get_settings
from edupath.domains.assessment import AssessmentService
from edupath.domains.assignment import AssignmentService
from edupath.domains.auth.jwt import JWTManager
from edupath.domains.auth.password import PasswordHasher
from edupath.domains.auth.permissions import UserRole
from edupath.domains.auth.service import AuthService
from edupath.domains.class_ import ClassService
from edupath.domains.content import ContentService
from edupath.domains.diagnostic import DiagnosticService
from edupath.domains.gamification import GamificationService
from edupath.domains.notification import NotificationService
from edupath.domains.plans import EnhancementPlanService, RecoveryPlanService
from edupath.domains.school import SchoolService
from edupath.infrastructure.database.connection import get_sessionmaker
from edupath.infrastructure.database.models import UserSession
from edupath.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for one request.

    Services commit their own writes; anything left uncommitted by a
    failing request is rolled back.

    Yields:
        AsyncSession.
    """
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


DB = Annotated[AsyncSession, Depends(get_db)]


# =========================================================================
# Authentication Dependencies
# =========================================================================


def _unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_optional_user(request: Request) -> CurrentUser | None:
    """Get current user if a valid token was sent, None otherwise."""
    return get_current_user(request)


async def require_auth(request: Request, db: DB) -> CurrentUser:
    """Require an authenticated user whose session is still live.

    The token itself is decoded by the middleware; this dependency
    checks that the login session behind it was not revoked by logout
    or a password change.

    Args:
        request: HTTP request.
        db: Database session.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: 401 if not authenticated or the session is gone.
    """
    user = get_current_user(request)
    if not user:
        raise _unauthorized()

    result = await db.execute(
        select(UserSession.expires_at).where(
            UserSession.access_token_hash == user.token_hash,
            UserSession.user_id == user.id,
        )
    )
    expires_at = result.scalar_one_or_none()
    if expires_at is None or ensure_utc(expires_at) <= utc_now():
        logger.debug("No live session for user %s", user.id)
        raise _unauthorized("Session expired or revoked")

    return user


AuthenticatedUser = Annotated[CurrentUser, Depends(require_auth)]


def require_admin(user: AuthenticatedUser) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: 403 if not an admin.
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_teacher_or_admin(user: AuthenticatedUser) -> CurrentUser:
    """Require teacher or admin user.

    Raises:
        HTTPException: 403 if neither teacher nor admin.
    """
    if not (user.is_teacher or user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher or admin access required",
        )
    return user


def require_student(user: AuthenticatedUser) -> CurrentUser:
    """Require student user.

    Raises:
        HTTPException: 403 if not a student.
    """
    if not user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student access required",
        )
    return user


class RequirePermission:
    """Dependency for requiring specific permissions.

    Example:
        @router.post("/content")
        async def create_content(
            user: CurrentUser = Depends(RequirePermission("content.create")),
        ):
            ...
    """

    def __init__(self, *permissions: str, require_all: bool = False) -> None:
        """Initialize permission requirement.

        Args:
            permissions: Required permission codes.
            require_all: If True, require all permissions. If False, any.
        """
        self.permissions = permissions
        self.require_all = require_all

    async def __call__(self, user: AuthenticatedUser) -> CurrentUser:
        """Check permissions and return user.

        Raises:
            HTTPException: If missing required permissions.
        """
        if self.require_all:
            if not user.has_all_permissions(*self.permissions):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Missing permissions: {', '.join(self.permissions)}",
                )
        else:
            if not user.has_any_permission(*self.permissions):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Requires one of: {', '.join(self.permissions)}",
                )

        return user


class RequireRole:
    """Dependency for requiring specific roles.

    Example:
        @router.get("/statistics")
        async def statistics(
            user: CurrentUser = Depends(RequireRole("teacher", "admin")),
        ):
            ...
    """

    def __init__(self, *roles: str | UserRole) -> None:
        """Initialize role requirement.

        Args:
            roles: Accepted role codes (any of these).
        """
        self.roles = tuple(r.value if isinstance(r, UserRole) else r for r in roles)

    async def __call__(self, user: AuthenticatedUser) -> CurrentUser:
        """Check roles and return user.

        Raises:
            HTTPException: If the user has none of the roles.
        """
        if not user.has_role(*self.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(self.roles)}",
            )

        return user


# =========================================================================
# Service Dependencies
# =========================================================================


def get_jwt_manager() -> JWTManager:
    """Get JWT manager instance."""
    return JWTManager(get_settings().jwt)


def get_password_hasher() -> PasswordHasher:
    """Get password hasher instance."""
    return PasswordHasher(rounds=get_settings().security.bcrypt_rounds)


async def get_auth_service(
    db: DB,
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    """Get AuthService instance."""
    return AuthService(
        db,
        jwt_manager,
        hasher=hasher,
        session_expire_days=get_settings().jwt.session_expire_days,
    )


def get_notification_service(db: DB) -> NotificationService:
    """Get NotificationService instance."""
    return NotificationService(db, get_settings())


def get_gamification_service(db: DB) -> GamificationService:
    """Get GamificationService instance."""
    return GamificationService(db)


def get_content_service(db: DB) -> ContentService:
    """Get ContentService instance."""
    return ContentService(db)


def get_assessment_service(db: DB) -> AssessmentService:
    """Get AssessmentService instance."""
    return AssessmentService(db)


def get_assignment_service(
    db: DB,
    notifications: NotificationService = Depends(get_notification_service),
) -> AssignmentService:
    """Get AssignmentService instance."""
    return AssignmentService(db, notifications)


def get_school_service(db: DB) -> SchoolService:
    """Get SchoolService instance."""
    return SchoolService(db)


def get_class_service(db: DB) -> ClassService:
    """Get ClassService instance."""
    return ClassService(db)


def get_recovery_plan_service(
    db: DB,
    notifications: NotificationService = Depends(get_notification_service),
) -> RecoveryPlanService:
    """Get RecoveryPlanService instance."""
    return RecoveryPlanService(db, notifications)


def get_enhancement_plan_service(
    db: DB,
    notifications: NotificationService = Depends(get_notification_service),
) -> EnhancementPlanService:
    """Get EnhancementPlanService instance."""
    return EnhancementPlanService(db, notifications)


def get_diagnostic_service(db: DB) -> DiagnosticService:
    """Get DiagnosticService instance."""
    return DiagnosticService(db)


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

OptionalUser = Annotated[CurrentUser | None, Depends(get_optional_user)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]
TeacherOrAdmin = Annotated[CurrentUser, Depends(require_teacher_or_admin)]
StudentUser = Annotated[CurrentUser, Depends(require_student)]
