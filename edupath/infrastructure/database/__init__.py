# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure: engine lifecycle, sessions and ORM models."""

from edupath.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    cleanup_expired_sessions,
    close_database,
    create_all,
    get_database_stats,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "cleanup_expired_sessions",
    "close_database",
    "create_all",
    "get_database_stats",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
