# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain: class sections and student enrollment."""

from edupath.domains.class_.service import (
    AlreadyEnrolledError,
    ClassFullError,
    ClassNotFoundError,
    ClassService,
    ClassServiceError,
    EnrollmentNotFoundError,
    InvalidClassReferenceError,
    StudentNotFoundError,
)

__all__ = [
    "AlreadyEnrolledError",
    "ClassFullError",
    "ClassNotFoundError",
    "ClassService",
    "ClassServiceError",
    "EnrollmentNotFoundError",
    "InvalidClassReferenceError",
    "StudentNotFoundError",
]
