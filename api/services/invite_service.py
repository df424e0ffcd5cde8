"""Service for the workspace invite lifecycle.

Handles issuing invites to emails without an account, validating and
accepting invite tokens, revoking pending invites, and claiming every
pending invite for a freshly signed-up user.

Invite status is computed (see qahub.db.models.invite.invite_status), so
every operation takes an optional `now` for deterministic evaluation.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union
from uuid import UUID

from sqlmodel import Session

from api.auth.permissions import Permission, can_manage_role, has_permission
from api.services.audit_service import AuditService, audit_service
from api.services.email_service import email_service
from qahub.config import INVITE_TTL_DAYS
from qahub.db.models import (
    ActionType,
    InviteStatus,
    Role,
    User,
    WorkspaceInvite,
    WorkspaceMember,
    invite_status,
    utcnow,
)
from qahub.exceptions import (
    AlreadyAcceptedError,
    ConflictError,
    ExpiredError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from qahub.logging import get_logger
from qahub.repository import (
    InviteRepository,
    MembershipRepository,
    UserRepository,
    WorkspaceRepository,
)

logger = get_logger(__name__)

EMAIL_WARNING = "Invite created, but the email may not have been delivered"


@dataclass
class InviteResult:
    """Outcome of issuing an invite."""

    invite: WorkspaceInvite
    email_sent: bool
    warning: Optional[str] = None


@dataclass
class AcceptResult:
    """Outcome of accepting an invite.

    already_member is True when the caller already held a membership, e.g.
    a concurrent accept won the insert. It is still a success.
    """

    member: WorkspaceMember
    invite: WorkspaceInvite
    already_member: bool = False


@dataclass
class InviteDetails:
    """What the accept page shows before the user commits."""

    invite: WorkspaceInvite
    status: InviteStatus
    workspace_name: str
    inviter_name: Optional[str] = None
    existing_user: bool = False


def normalize_email(email: str) -> str:
    """Trim and lowercase an email; reject values that are obviously not one."""
    normalized = (email or "").strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or not domain or " " in normalized:
        raise ValidationError("Invalid email address", details={"email": email})
    return normalized


def coerce_role(role: Union[Role, str]) -> Role:
    """Turn a role name into a Role, rejecting unknown names."""
    try:
        return Role(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role}", details={"role": str(role)})


def check_can_grant(actor_role: Optional[Role], role: Role) -> None:
    """Raise PermissionDenied unless actor_role may invite at role."""
    if not has_permission(actor_role, Permission.MEMBER_INVITE):
        raise PermissionDenied("You do not have permission to invite members")
    if not can_manage_role(actor_role, role):
        raise PermissionDenied(
            f"You cannot grant the {role.value} role",
            details={"role": role.value},
        )


def parse_token(token: Union[UUID, str]) -> UUID:
    """Invite tokens are invite ids; anything that is not a UUID is malformed."""
    if isinstance(token, UUID):
        return token
    try:
        return UUID(str(token).strip())
    except ValueError:
        raise ValidationError("Invalid invite token")


class InvitationService:
    """Service for the invite lifecycle.

    Collaborators are injected so tests can substitute them:
    - notifier: anything with send_workspace_invite(...) -> bool
    - audit: AuditService for the activity log
    """

    def __init__(
        self,
        notifier=None,
        audit: Optional[AuditService] = None,
        ttl: Optional[timedelta] = None,
    ):
        self.notifier = notifier or email_service
        self.audit = audit or audit_service
        self.ttl = ttl or timedelta(days=INVITE_TTL_DAYS)

    # ==========================================================================
    # Issuing
    # ==========================================================================

    def create_invite(
        self,
        session: Session,
        workspace_id: UUID,
        email: str,
        role: Union[Role, str],
        inviter_role: Optional[Role],
        inviter_id: UUID,
        now: Optional[datetime] = None,
    ) -> InviteResult:
        """Invite an email that has no account yet.

        The invite is persisted before the notifier runs. A notifier that
        returns False or raises leaves the invite in place and yields
        email_sent=False with a warning.

        Raises:
            PermissionDenied: inviter lacks member.invite or outranks nobody at role
            ValidationError: bad email or role, or the email already has an account
            NotFoundError: workspace does not exist
            ConflictError: a pending invite for this email already exists
        """
        role = coerce_role(role)
        check_can_grant(inviter_role, role)
        email = normalize_email(email)
        now = now or utcnow()

        workspace = WorkspaceRepository(session).get(workspace_id)
        if workspace is None:
            raise NotFoundError(
                "Workspace not found", details={"workspace_id": str(workspace_id)}
            )

        users = UserRepository(session)
        if users.get_by_email(email) is not None:
            raise ValidationError(
                "This email already has an account; add the user directly",
                details={"email": email},
            )

        invites = InviteRepository(session)
        if invites.find_pending(workspace_id, email, now) is not None:
            raise ConflictError(
                "A pending invite already exists for this email",
                details={"email": email},
            )

        invite = invites.create(
            workspace_id=workspace_id,
            email=email,
            role=role,
            invited_by=inviter_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        logger.info(
            "invite_created",
            invite_id=str(invite.id),
            workspace_id=str(workspace_id),
            role=role.value,
            expires_at=invite.expires_at.isoformat(),
        )

        self.audit.log_activity(
            session,
            actor_id=inviter_id,
            action_type=ActionType.create,
            entity_type="member",
            entity_id=invite.id,
            entity_name=email,
            workspace_id=workspace_id,
            details={"action": "invited", "role": role.value, "email": email},
        )

        inviter = users.get(inviter_id)
        email_sent = self._notify(
            invite,
            workspace_name=workspace.name,
            inviter_name=inviter.display_name if inviter else None,
        )
        return InviteResult(
            invite=invite,
            email_sent=email_sent,
            warning=None if email_sent else EMAIL_WARNING,
        )

    def _notify(
        self, invite: WorkspaceInvite, workspace_name: str, inviter_name: Optional[str]
    ) -> bool:
        try:
            sent = bool(
                self.notifier.send_workspace_invite(
                    invite_id=str(invite.id),
                    email=invite.email,
                    workspace_name=workspace_name,
                    inviter_name=inviter_name,
                    role=Role(invite.role).value,
                )
            )
        except Exception as e:  # notifier is external; the invite stands regardless
            logger.warning(
                "invite_email_failed",
                invite_id=str(invite.id),
                error=str(e),
                exc_info=True,
            )
            return False

        if not sent:
            logger.warning("invite_email_failed", invite_id=str(invite.id))
        return sent

    # ==========================================================================
    # Validating & accepting
    # ==========================================================================

    def get_invite(self, session: Session, token: Union[UUID, str]) -> WorkspaceInvite:
        """Look up an invite by token.

        Raises:
            ValidationError: token is malformed
            NotFoundError: no invite has this token
        """
        invite = InviteRepository(session).get(parse_token(token))
        if invite is None:
            raise NotFoundError("Invite not found")
        return invite

    def validate_invite(
        self,
        session: Session,
        token: Union[UUID, str],
        now: Optional[datetime] = None,
    ) -> WorkspaceInvite:
        """Return the invite if it can still be accepted.

        Raises:
            ValidationError, NotFoundError: see get_invite
            ExpiredError: the expiry window has passed
            AlreadyAcceptedError: the invite was already used
        """
        invite = self.get_invite(session, token)
        status = invite_status(invite, now or utcnow())
        if status == InviteStatus.expired:
            raise ExpiredError(details={"expired_at": invite.expires_at.isoformat()})
        if status == InviteStatus.accepted:
            raise AlreadyAcceptedError()
        return invite

    def describe_invite(
        self,
        session: Session,
        token: Union[UUID, str],
        now: Optional[datetime] = None,
    ) -> InviteDetails:
        """Invite plus workspace and inviter names, for the accept page.

        existing_user tells the page whether the invitee should sign in or
        sign up before accepting.
        """
        invite = self.validate_invite(session, token, now)
        workspace = WorkspaceRepository(session).get(invite.workspace_id)
        users = UserRepository(session)
        inviter = users.get(invite.invited_by)
        return InviteDetails(
            invite=invite,
            status=InviteStatus.pending,
            workspace_name=workspace.name if workspace else "",
            inviter_name=inviter.display_name if inviter else None,
            existing_user=users.get_by_email(invite.email) is not None,
        )

    def accept_invite(
        self,
        session: Session,
        token: Union[UUID, str],
        user: User,
        now: Optional[datetime] = None,
    ) -> AcceptResult:
        """Turn an invite into an active membership for user.

        Order of checks: expiry, then the email match, then the insert.
        A membership that already exists (a racing accept, or the user was
        added directly meanwhile) is reported as success with
        already_member=True, and the invite is still marked accepted.
        Re-presenting an accepted invite by the same user who holds the
        membership is a no-op success.

        Raises:
            ValidationError: malformed token, or user.email differs from the invite
            NotFoundError: no invite has this token
            ExpiredError: the expiry window has passed
            AlreadyAcceptedError: accepted earlier by a user who holds no membership
        """
        now = now or utcnow()
        invite = self.get_invite(session, token)
        status = invite_status(invite, now)

        if status == InviteStatus.expired:
            raise ExpiredError(details={"expired_at": invite.expires_at.isoformat()})

        if (user.email or "").strip().lower() != invite.email.lower():
            logger.info(
                "invite_email_mismatch",
                invite_id=str(invite.id),
                user_id=str(user.id),
            )
            raise ValidationError("This invite was sent to a different email address")

        members = MembershipRepository(session)

        if status == InviteStatus.accepted:
            existing = members.get_by_workspace_and_user(invite.workspace_id, user.id)
            if existing is None:
                raise AlreadyAcceptedError()
            logger.info(
                "invite_accept_duplicate",
                invite_id=str(invite.id),
                member_id=str(existing.id),
            )
            return AcceptResult(member=existing, invite=invite, already_member=True)

        try:
            member = members.add_member(
                invite.workspace_id,
                user.id,
                Role(invite.role),
                invited_by=invite.invited_by,
                accepted_at=now,
            )
        except ConflictError:
            member = members.get_by_workspace_and_user(invite.workspace_id, user.id)
            if member is None:
                # The conflicting row vanished between insert and read
                raise
            activated = member.accepted_at is None
            member = members.mark_accepted(member.id, now)
            invite = InviteRepository(session).mark_accepted(invite, now)
            if activated:
                self._audit_accept(session, user, member)
            logger.info(
                "invite_accept_duplicate",
                invite_id=str(invite.id),
                member_id=str(member.id),
            )
            return AcceptResult(member=member, invite=invite, already_member=True)

        invite = InviteRepository(session).mark_accepted(invite, now)
        logger.info(
            "invite_accepted",
            invite_id=str(invite.id),
            workspace_id=str(invite.workspace_id),
            member_id=str(member.id),
            role=Role(member.role).value,
        )
        self._audit_accept(session, user, member)
        return AcceptResult(member=member, invite=invite)

    def _audit_accept(
        self, session: Session, user: User, member: WorkspaceMember
    ) -> None:
        self.audit.log_activity(
            session,
            actor_id=user.id,
            action_type=ActionType.create,
            entity_type="member",
            entity_id=member.id,
            entity_name=user.email,
            workspace_id=member.workspace_id,
            details={"action": "accepted_invite", "role": Role(member.role).value},
        )

    def claim_pending_invites(
        self,
        session: Session,
        user: User,
        now: Optional[datetime] = None,
    ) -> list[AcceptResult]:
        """Accept every pending invite addressed to the user's email.

        This is the fresh-signup path. It may race with a token accept for
        the same invite; both converge on one membership.
        """
        now = now or utcnow()
        pending = InviteRepository(session).list_pending_for_email(
            (user.email or "").strip().lower(), now
        )
        results = [self.accept_invite(session, invite.id, user, now) for invite in pending]
        if results:
            logger.info("invites_claimed", user_id=str(user.id), count=len(results))
        return results

    # ==========================================================================
    # Managing
    # ==========================================================================

    def list_pending_invites(
        self, session: Session, workspace_id: UUID, now: Optional[datetime] = None
    ) -> list[WorkspaceInvite]:
        """Pending invites of a workspace, newest first."""
        return InviteRepository(session).list_pending(workspace_id, now or utcnow())

    def revoke_invite(
        self,
        session: Session,
        workspace_id: UUID,
        invite_id: Union[UUID, str],
        actor_role: Optional[Role],
        actor_id: UUID,
        now: Optional[datetime] = None,
    ) -> None:
        """Delete a pending invite so its token stops working.

        Raises:
            PermissionDenied: actor lacks member.invite
            NotFoundError: no such invite in this workspace
            ValidationError: the invite is no longer pending
        """
        if not has_permission(actor_role, Permission.MEMBER_INVITE):
            raise PermissionDenied("You do not have permission to revoke invites")

        invite = self.get_invite(session, invite_id)
        if invite.workspace_id != workspace_id:
            raise NotFoundError("Invite not found")

        status = invite_status(invite, now or utcnow())
        if status != InviteStatus.pending:
            raise ValidationError(
                "Can only revoke pending invites", details={"status": status.value}
            )

        email, revoked_id = invite.email, invite.id
        InviteRepository(session).delete(invite)
        logger.info("invite_revoked", invite_id=str(revoked_id))

        self.audit.log_activity(
            session,
            actor_id=actor_id,
            action_type=ActionType.delete,
            entity_type="invite",
            entity_id=revoked_id,
            entity_name=email,
            workspace_id=workspace_id,
            details={"action": "invite_revoked", "email": email},
        )


# Global instance
invitation_service = InvitationService()
