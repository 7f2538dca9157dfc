# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for role permissions."""

from edupath.domains.auth.permissions import (
    get_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    has_role_level,
)


class TestRolePermissions:
    """Tests for the role to permission mapping."""

    def test_admin_wildcard_grants_everything(self) -> None:
        assert has_permission("admin", "content:delete") is True
        assert has_permission("admin", "anything:at-all") is True

    def test_student_permissions(self) -> None:
        assert has_permission("student", "assessment:take") is True
        assert has_permission("student", "content:create") is False

    def test_teacher_permissions(self) -> None:
        assert has_permission("teacher", "assignment:grade") is True
        assert has_permission("teacher", "assessment:take") is False

    def test_unknown_role_has_nothing(self) -> None:
        assert get_role_permissions("guest") == []
        assert has_permission("guest", "content:read") is False

    def test_get_role_permissions_returns_copy(self) -> None:
        permissions = get_role_permissions("student")
        permissions.append("content:create")

        assert has_permission("student", "content:create") is False

    def test_all_and_any(self) -> None:
        assert has_all_permissions("teacher", ["content:read", "content:create"]) is True
        assert has_all_permissions("student", ["content:read", "content:create"]) is False
        assert has_any_permission("student", ["content:read", "content:create"]) is True
        assert has_any_permission("student", ["class:manage"]) is False


class TestRoleHierarchy:
    """Tests for has_role_level."""

    def test_levels(self) -> None:
        assert has_role_level("admin", "teacher") is True
        assert has_role_level("teacher", "teacher") is True
        assert has_role_level("student", "teacher") is False
