"""Unit test configuration.

Sets up environment variables required for module imports, plus an
in-memory SQLite database and a seeded workspace per test.
"""

import asyncio
import os

# Set test environment variables before any imports
os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest


NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def now():
    """Fixed evaluation time for lifecycle tests."""
    return NOW


@pytest.fixture
def engine():
    """Fresh in-memory database with all tables."""
    from sqlmodel import SQLModel

    import qahub.db.models  # noqa: F401
    from qahub.db.engine import build_engine

    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    from sqlmodel import Session

    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    """Factory for users in the local identity mirror."""
    from qahub.db.models import UserCreate
    from qahub.repository import UserRepository

    def _make(email: str, full_name: str = None):
        return UserRepository(session).create(
            UserCreate(email=email, full_name=full_name)
        )

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("alice@x.com", "Alice Admin")


@pytest.fixture
def workspace(session, admin_user, now):
    """Workspace owned by admin_user, who holds an accepted admin membership."""
    from qahub.db.models import Role, WorkspaceCreate
    from qahub.repository import MembershipRepository, WorkspaceRepository

    ws = WorkspaceRepository(session).create(
        WorkspaceCreate(name="Acme QA", slug="acme-qa", created_by=admin_user.id)
    )
    MembershipRepository(session).add_member(
        ws.id, admin_user.id, Role.admin, invited_by=admin_user.id, accepted_at=now
    )
    return ws


@pytest.fixture
def add_member(session, workspace, admin_user, now):
    """Factory that gives a new user an accepted membership in workspace."""
    from qahub.repository import MembershipRepository

    def _add(user, role, accepted=True):
        return MembershipRepository(session).add_member(
            workspace.id,
            user.id,
            role,
            invited_by=admin_user.id,
            accepted_at=now if accepted else None,
        )

    return _add


@pytest.fixture
def notifier():
    """Stand-in for the email service; delivers successfully by default."""
    notifier = MagicMock()
    notifier.send_workspace_invite.return_value = True
    return notifier


@pytest.fixture
def invitations(notifier):
    from api.services.audit_service import AuditService
    from api.services.invite_service import InvitationService

    return InvitationService(
        notifier=notifier, audit=AuditService(), ttl=timedelta(days=7)
    )


@pytest.fixture
def members(invitations):
    from api.services.audit_service import AuditService
    from api.services.member_service import MemberService

    return MemberService(invitations=invitations, audit=AuditService())


class SyncTestClient:
    """Synchronous wrapper around httpx AsyncClient for testing."""

    def __init__(self, app):
        self.app = app
        self.base_url = "http://testserver"

    def _run_async(self, coro):
        """Run async coroutine synchronously."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    async def _request(self, method: str, url: str, **kwargs):
        from httpx import ASGITransport, AsyncClient

        transport = ASGITransport(app=self.app)
        async with AsyncClient(transport=transport, base_url=self.base_url) as client:
            return await client.request(method, url, **kwargs)

    def get(self, url: str, **kwargs):
        return self._run_async(self._request("GET", url, **kwargs))

    def post(self, url: str, **kwargs):
        return self._run_async(self._request("POST", url, **kwargs))

    def patch(self, url: str, **kwargs):
        return self._run_async(self._request("PATCH", url, **kwargs))

    def delete(self, url: str, **kwargs):
        return self._run_async(self._request("DELETE", url, **kwargs))


@pytest.fixture
def api_client(engine):
    """Client for the real app, with sessions bound to the test database."""
    from sqlmodel import Session

    from api.main import app
    from qahub.db.engine import get_session_dependency

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session_dependency] = override_session
    yield SyncTestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user, as the identity provider would."""
    from api.auth.jwt import create_access_token

    def _headers(user=None, user_id=None, email=None, name=None):
        claims = {
            "sub": str(user.id if user else user_id),
            "email": user.email if user else email,
        }
        if name:
            claims["name"] = name
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return _headers


@pytest.fixture
def make_client():
    """Wrap any ASGI app in a SyncTestClient."""
    return SyncTestClient
