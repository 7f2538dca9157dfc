# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Diagnostic domain: placement tests, scoring and weakness analysis."""

from edupath.domains.diagnostic.service import (
    DiagnosticService,
    DiagnosticServiceError,
    DiagnosticStudentNotFoundError,
    DiagnosticTestInactiveError,
    DiagnosticTestNotFoundError,
    DiagnosticValidationError,
    NoCompletedResultsError,
)

__all__ = [
    "DiagnosticService",
    "DiagnosticServiceError",
    "DiagnosticStudentNotFoundError",
    "DiagnosticTestInactiveError",
    "DiagnosticTestNotFoundError",
    "DiagnosticValidationError",
    "NoCompletedResultsError",
]
