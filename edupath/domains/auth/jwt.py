# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

This module provides JWT token creation and validation using python-jose.
Access tokens and refresh tokens are signed with separate secrets.

Example:
    >>> from edupath.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> tokens = jwt_manager.create_token_pair(user_id="user-123", role="student", ...)
    >>> claims = jwt_manager.decode_token(tokens.access_token, expected_type="access")
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from edupath.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        type: Token type (access or refresh).
        role: User role (student, teacher or admin).
        email: User email.
        permissions: List of permission codes.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID, unique per token.
    """

    sub: str
    type: TokenType
    role: str
    email: str
    permissions: list[str] = []
    exp: int
    iat: int
    jti: str


class TokenPair(BaseModel):
    """Access and refresh token pair.

    Attributes:
        access_token: JWT access token string.
        refresh_token: JWT refresh token string.
        token_type: Token type (always "Bearer").
        expires_in: Access token expiration in seconds.
        refresh_expires_in: Refresh token expiration in seconds.
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def _secret_for(self, token_type: TokenType) -> str:
        if token_type == "refresh":
            return self._settings.refresh_secret_key.get_secret_value()
        return self._settings.secret_key.get_secret_value()

    def _encode(
        self,
        token_type: TokenType,
        user_id: str,
        role: str,
        email: str,
        permissions: list[str],
        expires_at: datetime,
        issued_at: datetime,
    ) -> str:
        payload = {
            "sub": user_id,
            "type": token_type,
            "role": role,
            "email": email,
            "permissions": permissions,
            "exp": int(expires_at.timestamp()),
            "iat": int(issued_at.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(
            payload,
            self._secret_for(token_type),
            algorithm=self._settings.algorithm,
        )

    def create_token_pair(
        self,
        user_id: str,
        role: str,
        email: str,
        permissions: list[str] | None = None,
    ) -> TokenPair:
        """Create an access and refresh token pair.

        Args:
            user_id: User identifier.
            role: User role.
            email: User email.
            permissions: List of permission codes.

        Returns:
            TokenPair with access and refresh tokens.
        """
        now = datetime.now(timezone.utc)
        access_exp = now + timedelta(minutes=self._settings.access_token_expire_minutes)
        refresh_exp = now + timedelta(days=self._settings.refresh_token_expire_days)
        perms = list(permissions or [])

        access_token = self._encode("access", str(user_id), role, email, perms, access_exp, now)
        refresh_token = self._encode("refresh", str(user_id), role, email, perms, refresh_exp, now)

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=self._settings.access_token_expire_minutes * 60,
            refresh_expires_in=self._settings.refresh_token_expire_days * 24 * 60 * 60,
        )

    def decode_token(
        self,
        token: str,
        expected_type: TokenType = "access",
    ) -> TokenPayload:
        """Decode and validate a JWT token.

        The signing secret is chosen by the expected type, so an access
        token never validates as a refresh token and vice versa.

        Args:
            token: JWT token string.
            expected_type: Expected token type (access or refresh).

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_for(expected_type),
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        if payload.get("type") != expected_type:
            raise InvalidTokenError(
                f"Expected {expected_type} token, got {payload.get('type')}"
            )

        try:
            return TokenPayload.model_validate(payload)
        except ValueError as e:
            raise InvalidTokenError(f"Invalid token claims: {str(e)}")

    def verify_token(self, token: str, expected_type: TokenType = "access") -> bool:
        """Check whether a token is valid without raising."""
        try:
            self.decode_token(token, expected_type)
            return True
        except (TokenExpiredError, InvalidTokenError):
            return False

    @staticmethod
    def hash_token(token: str) -> str:
        """Create a SHA-256 hex digest of a token for storage."""
        return hashlib.sha256(token.encode()).hexdigest()
