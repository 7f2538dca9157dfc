# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School domain: schools and teacher assignment."""

from edupath.domains.school.service import (
    SchoolNotFoundError,
    SchoolService,
    SchoolServiceError,
    TeacherNotAssignedError,
    TeacherNotFoundError,
)

__all__ = [
    "SchoolNotFoundError",
    "SchoolService",
    "SchoolServiceError",
    "TeacherNotAssignedError",
    "TeacherNotFoundError",
]
