# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain: accounts, sessions, tokens and permissions."""

from edupath.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPair,
    TokenPayload,
)
from edupath.domains.auth.password import (
    PasswordHasher,
    PasswordStrength,
    validate_password_strength,
)
from edupath.domains.auth.permissions import (
    UserRole,
    get_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    has_role_level,
)
from edupath.domains.auth.service import (
    AccountDeactivatedError,
    AuthService,
    AuthServiceError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    InvalidRefreshTokenError,
    InvalidSessionError,
    RegistrationValidationError,
    UserNotFoundError,
    WeakPasswordError,
)

__all__ = [
    "AccountDeactivatedError",
    "AuthService",
    "AuthServiceError",
    "EmailExistsError",
    "InvalidCredentialsError",
    "InvalidCurrentPasswordError",
    "InvalidRefreshTokenError",
    "InvalidSessionError",
    "InvalidTokenError",
    "JWTError",
    "JWTManager",
    "PasswordHasher",
    "PasswordStrength",
    "RegistrationValidationError",
    "TokenExpiredError",
    "TokenPair",
    "TokenPayload",
    "UserNotFoundError",
    "UserRole",
    "WeakPasswordError",
    "get_role_permissions",
    "has_all_permissions",
    "has_any_permission",
    "has_permission",
    "has_role_level",
    "validate_password_strength",
]
