"""Tests for InvitationService: issuing, validating, accepting and revoking."""

from datetime import timedelta
from uuid import uuid4

import pytest

pytest.importorskip("sqlmodel")

from sqlmodel import select

from api.services.invite_service import (
    EMAIL_WARNING,
    check_can_grant,
    normalize_email,
    parse_token,
)
from qahub.db.models import (
    ActivityLog,
    InviteStatus,
    Role,
    WorkspaceMember,
    invite_status,
)
from qahub.exceptions import (
    AlreadyAcceptedError,
    ConflictError,
    ExpiredError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from qahub.repository import InviteRepository, MembershipRepository


def _members_of(session, workspace_id, user_id):
    return session.exec(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    ).all()


@pytest.fixture
def invite_bob(session, invitations, workspace, admin_user, now):
    """Admin invites bob@x.com as tester."""

    def _invite(email="bob@x.com", role=Role.tester, at=now):
        return invitations.create_invite(
            session, workspace.id, email, role, Role.admin, admin_user.id, now=at
        ).invite

    return _invite


class TestHelpers:
    def test_normalize_email(self):
        assert normalize_email("  Bob@X.COM ") == "bob@x.com"

    @pytest.mark.parametrize("bad", ["", "bob", "@x.com", "bob@", "b ob@x.com", None])
    def test_normalize_email_rejects(self, bad):
        with pytest.raises(ValidationError):
            normalize_email(bad)

    def test_check_can_grant(self):
        check_can_grant(Role.admin, Role.manager)
        check_can_grant(Role.manager, Role.tester)
        for actor, role in [
            (Role.manager, Role.manager),
            (Role.tester, Role.viewer),
            (None, Role.viewer),
        ]:
            with pytest.raises(PermissionDenied):
                check_can_grant(actor, role)

    def test_parse_token(self):
        token = uuid4()
        assert parse_token(token) == token
        assert parse_token(str(token)) == token
        with pytest.raises(ValidationError):
            parse_token("not-a-token")


class TestCreateInvite:
    """Tests for issuing invites."""

    def test_invite_is_pending_with_seven_day_window(
        self, session, invitations, notifier, workspace, admin_user, now
    ):
        result = invitations.create_invite(
            session, workspace.id, " Bob@X.com", "tester", Role.admin, admin_user.id, now=now
        )

        invite = result.invite
        assert invite.email == "bob@x.com"
        assert invite.role == Role.tester
        assert invite.expires_at == now + timedelta(days=7)
        assert invite_status(invite, now) == InviteStatus.pending
        assert result.email_sent is True
        assert result.warning is None

        notifier.send_workspace_invite.assert_called_once()
        kwargs = notifier.send_workspace_invite.call_args.kwargs
        assert kwargs["invite_id"] == str(invite.id)
        assert kwargs["email"] == "bob@x.com"
        assert kwargs["workspace_name"] == "Acme QA"
        assert kwargs["inviter_name"] == "Alice Admin"
        assert kwargs["role"] == "tester"

    def test_invite_writes_activity_record(self, session, invite_bob, workspace, admin_user):
        invite = invite_bob()
        [entry] = session.exec(
            select(ActivityLog).where(ActivityLog.entity_id == invite.id)
        ).all()
        assert entry.user_id == admin_user.id
        assert entry.workspace_id == workspace.id
        assert entry.details == {"action": "invited", "role": "tester", "email": "bob@x.com"}

    def test_notifier_returning_false_keeps_invite(
        self, session, invitations, notifier, workspace, admin_user, now
    ):
        notifier.send_workspace_invite.return_value = False

        result = invitations.create_invite(
            session, workspace.id, "bob@x.com", Role.tester, Role.admin, admin_user.id, now=now
        )

        assert result.email_sent is False
        assert result.warning == EMAIL_WARNING
        assert InviteRepository(session).get(result.invite.id) is not None

    def test_notifier_raising_keeps_invite(
        self, session, invitations, notifier, workspace, admin_user, now
    ):
        notifier.send_workspace_invite.side_effect = OSError("smtp down")

        result = invitations.create_invite(
            session, workspace.id, "bob@x.com", Role.tester, Role.admin, admin_user.id, now=now
        )

        assert result.email_sent is False
        assert result.warning == EMAIL_WARNING
        stored = InviteRepository(session).get(result.invite.id)
        assert invite_status(stored, now) == InviteStatus.pending

    def test_duplicate_pending_invite_conflicts(self, invite_bob):
        invite_bob()
        with pytest.raises(ConflictError):
            invite_bob(email="BOB@x.com")

    def test_reinvite_after_expiry(self, invite_bob, now):
        first = invite_bob()
        second = invite_bob(at=now + timedelta(days=8))
        assert second.id != first.id

    @pytest.mark.parametrize("inviter_role", [Role.tester, Role.viewer, None])
    def test_inviter_without_member_invite_is_denied(
        self, session, invitations, workspace, admin_user, now, inviter_role
    ):
        with pytest.raises(PermissionDenied):
            invitations.create_invite(
                session, workspace.id, "bob@x.com", Role.viewer, inviter_role, admin_user.id, now=now
            )

    @pytest.mark.parametrize("role", [Role.manager, Role.admin])
    def test_manager_cannot_grant_own_rank_or_higher(
        self, session, invitations, workspace, admin_user, now, role
    ):
        with pytest.raises(PermissionDenied):
            invitations.create_invite(
                session, workspace.id, "bob@x.com", role, Role.manager, admin_user.id, now=now
            )

    def test_admin_cannot_invite_admin(self, session, invitations, workspace, admin_user, now):
        with pytest.raises(PermissionDenied):
            invitations.create_invite(
                session, workspace.id, "bob@x.com", Role.admin, Role.admin, admin_user.id, now=now
            )

    def test_unknown_role(self, session, invitations, workspace, admin_user, now):
        with pytest.raises(ValidationError):
            invitations.create_invite(
                session, workspace.id, "bob@x.com", "owner", Role.admin, admin_user.id, now=now
            )

    def test_registered_email_is_rejected(
        self, session, invitations, workspace, admin_user, make_user, now
    ):
        make_user("bob@x.com")
        with pytest.raises(ValidationError):
            invitations.create_invite(
                session, workspace.id, "bob@x.com", Role.tester, Role.admin, admin_user.id, now=now
            )

    def test_unknown_workspace(self, session, invitations, admin_user, now):
        with pytest.raises(NotFoundError):
            invitations.create_invite(
                session, uuid4(), "bob@x.com", Role.tester, Role.admin, admin_user.id, now=now
            )


class TestValidateInvite:
    def test_pending_invite_validates(self, session, invitations, invite_bob, now):
        invite = invite_bob()
        assert invitations.validate_invite(session, str(invite.id), now).id == invite.id

    def test_describe_includes_names(self, session, invitations, invite_bob, now):
        invite = invite_bob()
        details = invitations.describe_invite(session, invite.id, now)
        assert details.status == InviteStatus.pending
        assert details.workspace_name == "Acme QA"
        assert details.inviter_name == "Alice Admin"
        assert details.existing_user is False

    def test_describe_reports_existing_account(
        self, session, invitations, invite_bob, make_user, now
    ):
        invite = invite_bob()
        make_user("Bob@x.com")
        assert invitations.describe_invite(session, invite.id, now).existing_user is True

    def test_expired_one_second_ago(self, session, invitations, workspace, admin_user, now):
        invite = InviteRepository(session).create(
            workspace_id=workspace.id,
            email="bob@x.com",
            role=Role.tester,
            invited_by=admin_user.id,
            created_at=now - timedelta(days=7),
            expires_at=now - timedelta(seconds=1),
        )
        with pytest.raises(ExpiredError):
            invitations.validate_invite(session, invite.id, now)

    def test_accepted_invite_no_longer_validates(
        self, session, invitations, invite_bob, make_user, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        invitations.accept_invite(session, invite.id, bob, now)
        with pytest.raises(AlreadyAcceptedError):
            invitations.validate_invite(session, invite.id, now)

    def test_malformed_and_unknown_tokens(self, session, invitations, now):
        with pytest.raises(ValidationError):
            invitations.validate_invite(session, "garbage", now)
        with pytest.raises(NotFoundError):
            invitations.validate_invite(session, uuid4(), now)


class TestAcceptInvite:
    """Tests for turning invites into memberships."""

    def test_accept_creates_active_membership(
        self, session, invitations, invite_bob, make_user, workspace, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")

        result = invitations.accept_invite(session, str(invite.id), bob, now)

        assert result.already_member is False
        assert result.member.role == Role.tester
        assert result.member.accepted_at == now
        assert result.invite.accepted_at == now
        assert MembershipRepository(session).role_of(workspace.id, bob.id) == Role.tester

    def test_email_mismatch_changes_nothing_then_invitee_accepts(
        self, session, invitations, invite_bob, make_user, workspace, now
    ):
        invite = invite_bob()
        carol = make_user("carol@x.com")
        bob = make_user("bob@x.com")

        with pytest.raises(ValidationError):
            invitations.accept_invite(session, invite.id, carol, now)
        assert _members_of(session, workspace.id, carol.id) == []
        assert invite_status(InviteRepository(session).get(invite.id), now) == InviteStatus.pending

        invitations.accept_invite(session, invite.id, bob, now)
        assert MembershipRepository(session).role_of(workspace.id, bob.id) == Role.tester

    def test_email_match_ignores_case(self, session, invitations, invite_bob, make_user, now):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        bob.email = "BOB@X.com"
        assert invitations.accept_invite(session, invite.id, bob, now).member is not None

    def test_expiry_checked_before_email(
        self, session, invitations, invite_bob, make_user, now
    ):
        invite = invite_bob()
        carol = make_user("carol@x.com")
        bob = make_user("bob@x.com")
        later = now + timedelta(days=7)

        with pytest.raises(ExpiredError):
            invitations.accept_invite(session, invite.id, carol, later)
        with pytest.raises(ExpiredError):
            invitations.accept_invite(session, invite.id, bob, later)

    def test_double_accept_is_idempotent(
        self, session, invitations, invite_bob, make_user, workspace, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")

        first = invitations.accept_invite(session, invite.id, bob, now)
        second = invitations.accept_invite(
            session, invite.id, bob, now + timedelta(minutes=1)
        )

        assert second.already_member is True
        assert second.member.id == first.member.id
        assert len(_members_of(session, workspace.id, bob.id)) == 1

    def test_racing_insert_converges_on_one_membership(
        self, session, invitations, invite_bob, make_user, workspace, admin_user, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        # Another path inserted bob's membership between the checks and our insert
        MembershipRepository(session).add_member(
            workspace.id, bob.id, Role.viewer, invited_by=admin_user.id
        )

        result = invitations.accept_invite(session, invite.id, bob, now)

        assert result.already_member is True
        assert result.member.accepted_at == now
        assert result.invite.accepted_at == now
        assert len(_members_of(session, workspace.id, bob.id)) == 1

    def test_activating_pending_membership_is_audited(
        self, session, invitations, invite_bob, make_user, workspace, admin_user, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        pending = MembershipRepository(session).add_member(
            workspace.id, bob.id, Role.viewer, invited_by=admin_user.id
        )

        invitations.accept_invite(session, invite.id, bob, now)

        [entry] = session.exec(
            select(ActivityLog).where(ActivityLog.entity_id == pending.id)
        ).all()
        assert entry.user_id == bob.id
        assert entry.details == {"action": "accepted_invite", "role": "viewer"}

    def test_active_membership_is_not_audited_again(
        self, session, invitations, invite_bob, make_user, workspace, admin_user, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        active = MembershipRepository(session).add_member(
            workspace.id, bob.id, Role.viewer, invited_by=admin_user.id, accepted_at=now
        )

        result = invitations.accept_invite(session, invite.id, bob, now)

        assert result.already_member is True
        assert session.exec(
            select(ActivityLog).where(ActivityLog.entity_id == active.id)
        ).all() == []

    def test_accepted_invite_without_membership(
        self, session, invitations, invite_bob, make_user, now
    ):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        result = invitations.accept_invite(session, invite.id, bob, now)
        MembershipRepository(session).remove(result.member.id)

        with pytest.raises(AlreadyAcceptedError):
            invitations.accept_invite(session, invite.id, bob, now)

    def test_accept_audit_record(self, session, invitations, invite_bob, make_user, now):
        invite = invite_bob()
        bob = make_user("bob@x.com")
        result = invitations.accept_invite(session, invite.id, bob, now)

        [entry] = session.exec(
            select(ActivityLog).where(ActivityLog.entity_id == result.member.id)
        ).all()
        assert entry.user_id == bob.id
        assert entry.details == {"action": "accepted_invite", "role": "tester"}


class TestClaimPendingInvites:
    def test_claims_every_pending_invite(
        self, session, invitations, invite_bob, make_user, workspace, admin_user, now
    ):
        from qahub.db.models import WorkspaceCreate
        from qahub.repository import WorkspaceRepository

        other = WorkspaceRepository(session).create(
            WorkspaceCreate(name="Other", slug="other", created_by=admin_user.id)
        )
        MembershipRepository(session).add_member(
            other.id, admin_user.id, Role.admin, accepted_at=now
        )
        invite_bob()
        invitations.create_invite(
            session, other.id, "bob@x.com", Role.viewer, Role.admin, admin_user.id, now=now
        )
        bob = make_user("bob@x.com")

        results = invitations.claim_pending_invites(session, bob, now)

        assert len(results) == 2
        members = MembershipRepository(session)
        assert members.role_of(workspace.id, bob.id) == Role.tester
        assert members.role_of(other.id, bob.id) == Role.viewer
        assert invitations.claim_pending_invites(session, bob, now) == []

    def test_expired_invites_are_not_claimed(
        self, session, invitations, invite_bob, make_user, now
    ):
        invite_bob()
        bob = make_user("bob@x.com")
        assert invitations.claim_pending_invites(session, bob, now + timedelta(days=8)) == []


class TestRevokeInvite:
    def test_revoke_pending(self, session, invitations, invite_bob, workspace, admin_user, now):
        invite = invite_bob()
        invitations.revoke_invite(
            session, workspace.id, invite.id, Role.admin, admin_user.id, now=now
        )
        with pytest.raises(NotFoundError):
            invitations.validate_invite(session, invite.id, now)

    def test_revoke_requires_member_invite(
        self, session, invitations, invite_bob, workspace, admin_user, now
    ):
        invite = invite_bob()
        with pytest.raises(PermissionDenied):
            invitations.revoke_invite(
                session, workspace.id, invite.id, Role.tester, admin_user.id, now=now
            )

    def test_revoke_from_other_workspace(
        self, session, invitations, invite_bob, admin_user, now
    ):
        invite = invite_bob()
        with pytest.raises(NotFoundError):
            invitations.revoke_invite(
                session, uuid4(), invite.id, Role.admin, admin_user.id, now=now
            )

    def test_cannot_revoke_accepted(
        self, session, invitations, invite_bob, make_user, workspace, admin_user, now
    ):
        invite = invite_bob()
        invitations.accept_invite(session, invite.id, make_user("bob@x.com"), now)
        with pytest.raises(ValidationError):
            invitations.revoke_invite(
                session, workspace.id, invite.id, Role.admin, admin_user.id, now=now
            )
