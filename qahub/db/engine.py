"""SQLModel engine and session management.

This module provides:
- Database engine creation with connection pooling
- Session factory for dependency injection
- Database initialization utilities

PostgreSQL is the primary database. SQLite is accepted for local
development and the test suite.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from qahub.config import DATABASE_URL


def build_engine(url: str = DATABASE_URL, echo: bool = False) -> Engine:
    """Create an engine suited to the database backend.

    SQLite does not take pool sizing arguments. An in-memory SQLite URL
    gets a StaticPool so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    # pool_pre_ping ensures connections are valid before use
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a database session.

    Usage:
        with get_session() as session:
            member = session.get(WorkspaceMember, member_id)
            session.add(invite)
            session.commit()

    Yields:
        SQLModel Session instance
    """
    with Session(engine) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def get_session_dependency() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions.

    Usage in FastAPI:
        @router.get("/w/{workspace_id}/members")
        def list_members(session: Session = Depends(get_session_dependency)):
            ...
    """
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Initialize database tables.

    Creates all tables defined in SQLModel models.
    Should only be used for development/testing.
    Use Alembic migrations for production.
    """
    # Import all models to ensure they're registered with SQLModel
    from qahub.db.models import (  # noqa: F401
        User,
        Workspace,
        WorkspaceMember,
        WorkspaceInvite,
        ActivityLog,
    )

    SQLModel.metadata.create_all(engine)
