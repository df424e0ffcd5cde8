"""Database infrastructure for SQLModel + PostgreSQL.

This module provides the database engine, session management, and
table initialization for the access service.

Usage:
    from qahub.db import get_session

    with get_session() as session:
        member = session.get(WorkspaceMember, member_id)
"""

from qahub.db.engine import (
    build_engine,
    engine,
    get_session,
    get_session_dependency,
    init_db,
)

__all__ = [
    "build_engine",
    "engine",
    "get_session",
    "get_session_dependency",
    "init_db",
]
