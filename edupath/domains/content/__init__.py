# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Content domain: subjects, learning content, views and likes."""

from edupath.domains.content.service import (
    ContentAccessDeniedError,
    ContentNotFoundError,
    ContentService,
    ContentServiceError,
    SubjectInUseError,
    SubjectNameExistsError,
    SubjectNotFoundError,
)

__all__ = [
    "ContentAccessDeniedError",
    "ContentNotFoundError",
    "ContentService",
    "ContentServiceError",
    "SubjectInUseError",
    "SubjectNameExistsError",
    "SubjectNotFoundError",
]
