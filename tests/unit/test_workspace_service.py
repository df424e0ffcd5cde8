"""Tests for WorkspaceService and the activity log."""

from unittest.mock import MagicMock

import pytest

pytest.importorskip("sqlmodel")

from sqlalchemy.exc import OperationalError
from sqlmodel import select

from api.services.audit_service import AuditService
from api.services.workspace_service import WorkspaceService, _generate_slug
from qahub.db.models import ActionType, ActivityLog, Role
from qahub.exceptions import NotFoundError, PermissionDenied, ValidationError
from qahub.repository import MembershipRepository


@pytest.fixture
def workspaces():
    return WorkspaceService(audit=AuditService())


class TestGenerateSlug:
    @pytest.mark.parametrize(
        "name,slug",
        [
            ("Acme QA", "acme-qa"),
            ("  Mobile   App__Team ", "mobile-app-team"),
            ("Release 2.0!", "release-20"),
            ("!!!", "workspace"),
        ],
    )
    def test_slug(self, name, slug):
        assert _generate_slug(name) == slug


class TestWorkspaceService:
    def test_creator_becomes_accepted_admin(self, session, workspaces, make_user):
        owner = make_user("owner@x.com")

        workspace, member = workspaces.create_workspace(session, owner, "Mobile App")

        assert workspace.slug == "mobile-app"
        assert member.role == Role.admin
        assert member.accepted_at is not None
        assert MembershipRepository(session).role_of(workspace.id, owner.id) == Role.admin

    def test_slug_collision_gets_suffix(self, session, workspaces, make_user):
        owner = make_user("owner@x.com")
        first, _ = workspaces.create_workspace(session, owner, "Mobile App")
        second, _ = workspaces.create_workspace(session, owner, "Mobile App")
        assert second.slug != first.slug
        assert second.slug.startswith("mobile-app-")

    def test_blank_name_rejected(self, session, workspaces, make_user):
        with pytest.raises(ValidationError):
            workspaces.create_workspace(session, make_user("owner@x.com"), "   ")

    def test_list_user_workspaces(self, session, workspaces, workspace, admin_user):
        rows = workspaces.list_user_workspaces(session, admin_user.id)
        assert [(ws.id, m.role) for ws, m in rows] == [(workspace.id, Role.admin)]

    def test_delete_requires_admin(self, session, workspaces, workspace, admin_user):
        with pytest.raises(PermissionDenied):
            workspaces.delete_workspace(session, workspace.id, Role.manager, admin_user.id)

    def test_delete(self, session, workspaces, workspace, admin_user):
        workspaces.delete_workspace(session, workspace.id, Role.admin, admin_user.id)
        with pytest.raises(NotFoundError):
            workspaces.get_workspace(session, workspace.id)

        entry = session.exec(
            select(ActivityLog).where(ActivityLog.entity_id == workspace.id)
        ).first()
        assert entry.action_type == ActionType.delete


class TestAuditService:
    """Activity log writes are best-effort."""

    def test_log_and_list(self, session, workspace, admin_user):
        audit = AuditService()
        entry = audit.log_activity(
            session,
            actor_id=admin_user.id,
            action_type=ActionType.update,
            entity_type="member",
            workspace_id=workspace.id,
            details={"action": "role_changed"},
        )
        assert entry is not None
        assert [e.id for e in audit.list_for_workspace(session, workspace.id)] == [entry.id]

    def test_failed_write_is_swallowed(self, admin_user):
        session = MagicMock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))

        entry = AuditService().log_activity(
            session,
            actor_id=admin_user.id,
            action_type=ActionType.create,
            entity_type="invite",
        )

        assert entry is None
        session.rollback.assert_called_once()

    def test_primary_change_survives_audit_failure(
        self, session, workspace, admin_user, make_user, now
    ):
        from api.services.member_service import MemberService

        audit = MagicMock(spec=AuditService)
        audit.log_activity.return_value = None
        make_user("bob@x.com")

        result = MemberService(audit=audit).invite_or_add(
            session, workspace.id, admin_user.id, Role.admin, "bob@x.com", Role.tester, now=now
        )

        assert result.member is not None
        audit.log_activity.assert_called_once()


class TestEmailService:
    def test_invite_link_carries_token(self):
        from api.services.email_service import EmailService

        service = EmailService(app_base_url="https://qa.example.com/")
        assert (
            service.invite_url("abc")
            == "https://qa.example.com/accept-invite?token=abc"
        )

    def test_unconfigured_service_logs_and_succeeds(self):
        from api.services.email_service import EmailService

        service = EmailService(smtp_host=None)
        assert service.is_configured is False
        assert service.send_workspace_invite(
            invite_id="abc",
            email="bob@x.com",
            workspace_name="Acme QA",
            inviter_name="Alice",
            role="tester",
        ) is True

    def test_smtp_failure_returns_false(self, monkeypatch):
        import smtplib

        from api.services.email_service import EmailService

        def refuse(*args, **kwargs):
            raise ConnectionRefusedError("no smtp")

        monkeypatch.setattr(smtplib, "SMTP", refuse)
        service = EmailService(
            smtp_host="smtp.example.com", smtp_user="u", smtp_password="p"
        )
        assert service.send_email("bob@x.com", "Hi", "Body") is False
