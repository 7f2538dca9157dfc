# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for password hashing utilities.

Tests the PasswordHasher class, convenience functions and the
strength rules applied at registration and password change.
"""

import pytest

from edupath.domains.auth.password import (
    PasswordHasher,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswordHasher:
    """Tests for PasswordHasher class."""

    def test_hash_password_returns_bcrypt_hash(self) -> None:
        """Test that hashing returns a bcrypt hash string."""
        hasher = PasswordHasher(rounds=4)

        hashed = hasher.hash("test_password_123")

        assert hashed.startswith("$2b$04$")
        assert len(hashed) == 60

    def test_hash_produces_different_hashes_for_same_password(self) -> None:
        """Test that hashing the same password produces different hashes (due to salt)."""
        hasher = PasswordHasher(rounds=4)

        assert hasher.hash("test_password_123") != hasher.hash("test_password_123")

    def test_verify_correct_password(self) -> None:
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("correct_password")

        assert hasher.verify("correct_password", hashed) is True

    def test_verify_incorrect_password(self) -> None:
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("correct_password")

        assert hasher.verify("wrong_password", hashed) is False

    def test_verify_with_malformed_hash(self) -> None:
        """Test that a malformed hash fails verification instead of raising."""
        hasher = PasswordHasher(rounds=4)

        assert hasher.verify("password", "not-a-bcrypt-hash") is False

    def test_verify_empty_inputs(self) -> None:
        hasher = PasswordHasher(rounds=4)

        assert hasher.verify("", "$2b$04$abc") is False
        assert hasher.verify("password", "") is False

    def test_hash_empty_password_raises(self) -> None:
        with pytest.raises(ValueError):
            PasswordHasher(rounds=4).hash("")


class TestConvenienceFunctions:
    """Tests for module-level hash and verify."""

    def test_round_trip(self) -> None:
        hashed = hash_password("Another!Pass9")

        assert verify_password("Another!Pass9", hashed) is True
        assert verify_password("another!pass9", hashed) is False


class TestPasswordStrength:
    """Tests for validate_password_strength."""

    def test_strong_password(self) -> None:
        result = validate_password_strength("Str0ng!Pass")

        assert result.is_valid is True
        assert result.errors == []
        assert result.score == 5

    def test_short_password(self) -> None:
        result = validate_password_strength("Ab1!")

        assert result.is_valid is False
        assert "Password must be at least 8 characters long" in result.errors

    def test_missing_character_classes(self) -> None:
        result = validate_password_strength("lowercaseonly")

        assert result.is_valid is False
        assert "Password must contain at least one uppercase letter" in result.errors
        assert "Password must contain at least one number" in result.errors
        assert "Password must contain at least one special character" in result.errors

    def test_common_pattern_lowers_score(self) -> None:
        """A common pattern is an error and costs one point."""
        result = validate_password_strength("MyPassword1!")

        assert result.is_valid is False
        assert "Password contains common patterns" in result.errors
        assert result.score == 4

    def test_score_never_negative(self) -> None:
        result = validate_password_strength("123456")

        assert result.score >= 0
