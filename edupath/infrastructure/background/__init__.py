# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background maintenance scheduling."""

from edupath.infrastructure.background.scheduler import (
    MaintenanceScheduler,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "MaintenanceScheduler",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
