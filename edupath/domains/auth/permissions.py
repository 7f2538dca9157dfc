# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role-based permissions.

Each role maps to a fixed set of permission codes. The admin role holds
the wildcard "*" which grants everything.
"""

from enum import Enum


class UserRole(str, Enum):
    """Platform user roles."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


WILDCARD = "*"

DEFAULT_PERMISSIONS: dict[str, list[str]] = {
    UserRole.STUDENT.value: [
        "profile:read",
        "profile:update",
        "content:read",
        "assessment:take",
        "assignment:submit",
        "notification:read",
        "gamification:view",
        "progress:view",
    ],
    UserRole.TEACHER.value: [
        "profile:read",
        "profile:update",
        "content:create",
        "content:read",
        "content:update",
        "content:delete",
        "assessment:create",
        "assessment:read",
        "assessment:update",
        "assessment:delete",
        "assignment:create",
        "assignment:read",
        "assignment:update",
        "assignment:grade",
        "student:read",
        "student:track",
        "notification:send",
        "notification:read",
        "gamification:manage",
        "analytics:view",
        "class:manage",
    ],
    UserRole.ADMIN.value: [WILDCARD],
}

ROLE_HIERARCHY: dict[str, int] = {
    UserRole.STUDENT.value: 1,
    UserRole.TEACHER.value: 2,
    UserRole.ADMIN.value: 3,
}


def get_role_permissions(role: str) -> list[str]:
    """Return the permission codes granted to a role (empty if unknown)."""
    return list(DEFAULT_PERMISSIONS.get(role, []))


def has_permission(role: str, permission: str) -> bool:
    """Check whether a role grants a permission."""
    permissions = DEFAULT_PERMISSIONS.get(role, [])
    return WILDCARD in permissions or permission in permissions


def has_all_permissions(role: str, permissions: list[str]) -> bool:
    """Check whether a role grants every listed permission."""
    return all(has_permission(role, perm) for perm in permissions)


def has_any_permission(role: str, permissions: list[str]) -> bool:
    """Check whether a role grants at least one listed permission."""
    return any(has_permission(role, perm) for perm in permissions)


def has_role_level(role: str, required: str) -> bool:
    """Check whether a role is at or above another in the hierarchy."""
    return ROLE_HIERARCHY.get(role, 0) >= ROLE_HIERARCHY.get(required, 0)
