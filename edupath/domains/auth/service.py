# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication service for accounts and sessions.

This module provides the AuthService that handles:
- Registration with a role-specific profile
- Password login with session tracking and daily streaks
- Token refresh with rotation
- Logout, password change and token verification

Every auth failure carries a stable ``code`` that the HTTP layer maps to
a status code.

Example:
    >>> auth_service = AuthService(db_session, jwt_manager, hasher)
    >>> result = await auth_service.login("a@b.com", "Secret#123", ip, agent)
"""

import logging
from datetime import date, timedelta
from typing import Any

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from edupath.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPair,
)
from edupath.domains.auth.password import PasswordHasher, validate_password_strength
from edupath.domains.auth.permissions import UserRole, get_role_permissions
from edupath.infrastructure.database.models import (
    ActivityLog,
    StudentProfile,
    TeacherProfile,
    User,
    UserSession,
)
from edupath.models.auth import (
    LoginResponse,
    RegisterRequest,
    TokenResponse,
    UserProfile,
)
from edupath.utils.datetime import current_academic_year, utc_now

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """Base exception for authentication errors.

    Attributes:
        message: Human-readable error description.
        code: Stable machine-readable error code.
        errors: Optional field-level error details.
    """

    code = "AUTH_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class InvalidCredentialsError(AuthServiceError):
    """Raised when the email or password is wrong."""

    code = "INVALID_CREDENTIALS"


class AccountDeactivatedError(AuthServiceError):
    """Raised when an inactive account tries to authenticate."""

    code = "ACCOUNT_DEACTIVATED"


class EmailExistsError(AuthServiceError):
    """Raised when registering an email that is already in use."""

    code = "EMAIL_EXISTS"


class RegistrationValidationError(AuthServiceError):
    """Raised when registration data fails validation."""

    code = "VALIDATION_ERROR"


class InvalidRefreshTokenError(AuthServiceError):
    """Raised when a refresh token is invalid, expired or revoked."""

    code = "INVALID_REFRESH_TOKEN"


class InvalidCurrentPasswordError(AuthServiceError):
    """Raised when the current password does not match on change."""

    code = "INVALID_CURRENT_PASSWORD"


class WeakPasswordError(AuthServiceError):
    """Raised when a new password fails the strength rules."""

    code = "WEAK_PASSWORD"


class InvalidSessionError(AuthServiceError):
    """Raised when an access token has no live session."""

    code = "INVALID_TOKEN"


class UserNotFoundError(AuthServiceError):
    """Raised when a user does not exist."""

    code = "USER_NOT_FOUND"


class AuthService:
    """Authentication service for accounts and sessions.

    Attributes:
        _db: Database session for queries.
        _jwt_manager: JWT token manager.
        _hasher: Password hasher.
        _session_days: Lifetime of a login session in days.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        hasher: PasswordHasher | None = None,
        session_expire_days: int = 30,
    ) -> None:
        """Initialize the authentication service.

        Args:
            db: Async database session.
            jwt_manager: JWT token manager.
            hasher: Password hasher. Defaults to 12 rounds.
            session_expire_days: Lifetime of a login session in days.
        """
        self._db = db
        self._jwt_manager = jwt_manager
        self._hasher = hasher or PasswordHasher()
        self._session_days = session_expire_days

    # =========================================================================
    # Registration and login
    # =========================================================================

    async def register(self, request: RegisterRequest) -> UserProfile:
        """Create a user together with its role profile.

        Args:
            request: Registration data.

        Returns:
            Profile of the created user.

        Raises:
            RegistrationValidationError: If any field is invalid.
            EmailExistsError: If the email is already registered.
        """
        errors = self.validate_registration(request)
        if errors:
            raise RegistrationValidationError("Validation failed", errors)

        email = request.email.strip().lower()
        if await self._get_user_by_email(email):
            raise EmailExistsError("Email already exists")

        user = User(
            email=email,
            password_hash=self._hasher.hash(request.password),
            first_name=request.first_name.strip(),
            last_name=request.last_name.strip(),
            role=request.role,
            phone=request.phone,
            is_active=True,
        )
        self._db.add(user)
        await self._db.flush()

        if request.role == UserRole.STUDENT.value:
            self._db.add(
                StudentProfile(
                    user_id=user.id,
                    grade_level=request.grade_level or 1,
                    class_section=request.class_section,
                )
            )
        elif request.role == UserRole.TEACHER.value:
            self._db.add(
                TeacherProfile(
                    user_id=user.id,
                    school_id=request.school_id,
                    academic_year=request.academic_year or current_academic_year(),
                    specialization=request.specialization,
                )
            )

        await self._db.commit()

        logger.info("User registered: %s (role=%s)", user.id, user.role)
        return await self.get_profile(user.id)

    @staticmethod
    def validate_registration(request: RegisterRequest) -> list[dict[str, Any]]:
        """Collect every validation failure for a registration request."""
        errors: list[dict[str, Any]] = []

        try:
            validate_email(request.email.strip().lower(), check_deliverability=False)
        except EmailNotValidError:
            errors.append(
                {"field": "email", "message": "Valid email is required", "code": "INVALID_EMAIL"}
            )

        strength = validate_password_strength(request.password)
        for message in strength.errors:
            errors.append({"field": "password", "message": message, "code": "WEAK_PASSWORD"})

        if len(request.first_name.strip()) < 2:
            errors.append({
                "field": "first_name",
                "message": "First name must be at least 2 characters",
                "code": "INVALID_FIRST_NAME",
            })
        if len(request.last_name.strip()) < 2:
            errors.append({
                "field": "last_name",
                "message": "Last name must be at least 2 characters",
                "code": "INVALID_LAST_NAME",
            })

        if request.role not in {role.value for role in UserRole}:
            errors.append(
                {"field": "role", "message": "Valid role is required", "code": "INVALID_ROLE"}
            )

        if request.role == UserRole.STUDENT.value:
            if request.grade_level is None or not 1 <= request.grade_level <= 12:
                errors.append({
                    "field": "grade_level",
                    "message": "Grade level must be between 1 and 12",
                    "code": "INVALID_GRADE_LEVEL",
                })

        if request.role == UserRole.TEACHER.value and not request.academic_year:
            errors.append({
                "field": "academic_year",
                "message": "Academic year is required for teachers",
                "code": "MISSING_ACADEMIC_YEAR",
            })

        return errors

    async def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """Authenticate with email and password and open a session.

        Raises:
            InvalidCredentialsError: If the user is unknown or the password is wrong.
            AccountDeactivatedError: If the account is inactive.
        """
        user = await self._get_user_by_email(email.strip().lower())
        if not user:
            raise InvalidCredentialsError("Invalid email or password")

        if not user.is_active:
            raise AccountDeactivatedError("Account is deactivated")

        if not self._hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        tokens = self._issue_tokens(user)
        now = utc_now()

        self._db.add(
            UserSession(
                user_id=user.id,
                access_token_hash=self._jwt_manager.hash_token(tokens.access_token),
                refresh_token_hash=self._jwt_manager.hash_token(tokens.refresh_token),
                ip_address=ip_address,
                user_agent=user_agent,
                expires_at=now + timedelta(days=self._session_days),
                last_activity=now,
            )
        )
        user.last_login = now

        if user.role == UserRole.STUDENT.value:
            profile = await self._get_student_profile(user.id)
            if profile:
                self.update_login_streak(profile, now.date())

        self._log_activity(
            user.id,
            "login",
            resource_type="user",
            resource_id=user.id,
            details={"ip_address": ip_address, "user_agent": user_agent},
            ip_address=ip_address,
        )
        await self._db.commit()

        logger.info("User logged in: %s", user.id)

        return LoginResponse(
            user=await self.get_profile(user.id),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
        )

    @staticmethod
    def update_login_streak(profile: StudentProfile, today: date) -> None:
        """Advance a student's daily login streak.

        A login on the day after the last activity extends the streak, a
        login on the same day leaves it unchanged and any longer gap
        restarts it at 1.
        """
        last = profile.last_activity_date
        if last == today:
            return

        if last is not None and last == today - timedelta(days=1):
            profile.current_streak = (profile.current_streak or 0) + 1
        else:
            profile.current_streak = 1

        profile.longest_streak = max(profile.longest_streak or 0, profile.current_streak)
        profile.last_activity_date = today

    # =========================================================================
    # Tokens and sessions
    # =========================================================================

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """Rotate both tokens of a session using its refresh token.

        Raises:
            InvalidRefreshTokenError: If the token is invalid, unknown,
                expired, or belongs to an inactive user.
        """
        try:
            payload = self._jwt_manager.decode_token(refresh_token, expected_type="refresh")
        except (TokenExpiredError, InvalidTokenError) as e:
            logger.debug("Refresh token rejected: %s", str(e))
            raise InvalidRefreshTokenError("Invalid refresh token")

        token_hash = self._jwt_manager.hash_token(refresh_token)
        result = await self._db.execute(
            select(UserSession).where(UserSession.refresh_token_hash == token_hash)
        )
        session = result.scalar_one_or_none()
        if not session or session.is_expired or session.user_id != payload.sub:
            raise InvalidRefreshTokenError("Invalid refresh token")

        user = await self._get_user(session.user_id)
        if not user or not user.is_active:
            raise InvalidRefreshTokenError("Invalid refresh token")

        tokens = self._issue_tokens(user)
        session.access_token_hash = self._jwt_manager.hash_token(tokens.access_token)
        session.refresh_token_hash = self._jwt_manager.hash_token(tokens.refresh_token)
        session.update_activity()
        await self._db.commit()

        logger.info("Tokens refreshed for user %s", user.id)

        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
        )

    async def logout(self, access_token: str) -> bool:
        """Delete the session owning an access token.

        Returns:
            True if a session was removed.
        """
        token_hash = self._jwt_manager.hash_token(access_token)
        result = await self._db.execute(
            delete(UserSession).where(UserSession.access_token_hash == token_hash)
        )
        await self._db.commit()
        removed = (result.rowcount or 0) > 0
        logger.info("Logout processed (session removed=%s)", removed)
        return removed

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change a password and revoke every session of the user.

        Raises:
            UserNotFoundError: If the user does not exist.
            InvalidCurrentPasswordError: If the current password is wrong.
            WeakPasswordError: If the new password fails the strength rules.
        """
        user = await self._get_user(user_id)
        if not user:
            raise UserNotFoundError("User not found")

        if not self._hasher.verify(current_password, user.password_hash):
            raise InvalidCurrentPasswordError("Current password is incorrect")

        strength = validate_password_strength(new_password)
        if not strength.is_valid:
            raise WeakPasswordError(
                "New password is too weak",
                [{"field": "new_password", "message": msg} for msg in strength.errors],
            )

        user.password_hash = self._hasher.hash(new_password)
        await self._db.execute(delete(UserSession).where(UserSession.user_id == user.id))
        self._log_activity(user.id, "password_change", resource_type="user", resource_id=user.id)
        await self._db.commit()

        logger.info("Password changed for user %s", user.id)

    async def verify_token(self, access_token: str) -> UserProfile:
        """Validate an access token against its live session.

        Raises:
            InvalidSessionError: If the token is invalid or its session is
                missing, expired or owned by an inactive user.
        """
        try:
            payload = self._jwt_manager.decode_token(access_token, expected_type="access")
        except (TokenExpiredError, InvalidTokenError):
            raise InvalidSessionError("Invalid or expired token")

        session = await self.get_active_session(access_token)
        if not session or session.user_id != payload.sub:
            raise InvalidSessionError("Session not found or expired")

        session.update_activity()
        await self._db.commit()

        profile = await self.get_profile(payload.sub)
        if not profile.is_active:
            raise InvalidSessionError("Account is deactivated")
        return profile

    async def get_active_session(self, access_token: str) -> UserSession | None:
        """Find the unexpired session for an access token."""
        token_hash = self._jwt_manager.hash_token(access_token)
        result = await self._db.execute(
            select(UserSession).where(UserSession.access_token_hash == token_hash)
        )
        session = result.scalar_one_or_none()
        if session is None or session.is_expired:
            return None
        return session

    async def get_profile(self, user_id: str) -> UserProfile:
        """Get a user's profile including the role profile.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        user = await self._get_user(user_id)
        if not user:
            raise UserNotFoundError("User not found")
        return UserProfile.model_validate(user)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _issue_tokens(self, user: User) -> TokenPair:
        return self._jwt_manager.create_token_pair(
            user_id=user.id,
            role=user.role,
            email=user.email,
            permissions=get_role_permissions(user.role),
        )

    def _log_activity(
        self,
        user_id: str,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> None:
        self._db.add(
            ActivityLog(
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details,
                ip_address=ip_address,
                created_at=utc_now(),
            )
        )

    async def _get_user(self, user_id: str) -> User | None:
        result = await self._db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _get_user_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def _get_student_profile(self, user_id: str) -> StudentProfile | None:
        result = await self._db.execute(
            select(StudentProfile).where(StudentProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()
