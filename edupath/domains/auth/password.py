# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Password hashing and strength validation.

Hashing uses the bcrypt library directly.

Example:
    >>> hasher = PasswordHasher()
    >>> hashed = hasher.hash("my_password")
    >>> hasher.verify("my_password", hashed)
    True
"""

import logging
import re

import bcrypt
from pydantic import BaseModel

logger = logging.getLogger(__name__)

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'
COMMON_PATTERNS = ("password", "123456", "qwerty", "abc123")
MIN_PASSWORD_LENGTH = 8

_SPECIAL_RE = re.compile(f"[{re.escape(SPECIAL_CHARACTERS)}]")


class PasswordStrength(BaseModel):
    """Result of a password strength check.

    Attributes:
        is_valid: True when no rule failed.
        errors: Human-readable failures.
        score: Number of satisfied rules, minus one for a common pattern.
    """

    is_valid: bool
    errors: list[str]
    score: int


def validate_password_strength(password: str) -> PasswordStrength:
    """Score a password against the length and character-class rules.

    Args:
        password: Plain text password.

    Returns:
        PasswordStrength with validity, errors and a score of at least 0.
    """
    errors: list[str] = []
    score = 0

    checks = (
        (len(password) >= MIN_PASSWORD_LENGTH,
         f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"),
        (re.search(r"[A-Z]", password) is not None,
         "Password must contain at least one uppercase letter"),
        (re.search(r"[a-z]", password) is not None,
         "Password must contain at least one lowercase letter"),
        (re.search(r"\d", password) is not None,
         "Password must contain at least one number"),
        (_SPECIAL_RE.search(password) is not None,
         "Password must contain at least one special character"),
    )
    for passed, message in checks:
        if passed:
            score += 1
        else:
            errors.append(message)

    lowered = password.lower()
    if any(pattern in lowered for pattern in COMMON_PATTERNS):
        errors.append("Password contains common patterns")
        score -= 1

    return PasswordStrength(is_valid=not errors, errors=errors, score=max(0, score))


class PasswordHasher:
    """Secure password hashing using bcrypt.

    Attributes:
        _rounds: Number of bcrypt rounds for hashing.
    """

    def __init__(self, rounds: int = 12) -> None:
        """Initialize the password hasher.

        Args:
            rounds: bcrypt cost factor. 12 takes ~250ms on modern hardware.
        """
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Raises:
            ValueError: If password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        salt = bcrypt.gensalt(rounds=self._rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Returns:
            True if password matches the hash, False otherwise.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False


_default_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password using the default hasher."""
    return _default_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password using the default hasher."""
    return _default_hasher.verify(password, password_hash)
