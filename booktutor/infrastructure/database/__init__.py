# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure: async engine, sessions and ORM models."""

from booktutor.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_schema,
    create_sessionmaker,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)
from booktutor.infrastructure.database.models import (
    Base,
    ChapterProgressRecord,
    HistoryMessage,
    Student,
    TutorConversation,
)

__all__ = [
    # Connection
    "DatabaseError",
    "init_database",
    "close_database",
    "create_schema",
    "create_sessionmaker",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "check_database_connection",
    # Models
    "Base",
    "Student",
    "TutorConversation",
    "HistoryMessage",
    "ChapterProgressRecord",
]
