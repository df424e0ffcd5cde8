"""Service for managing workspace members.

Adding someone goes one of two ways depending on whether the email
already has an account:
- registered user: a membership row is inserted directly, already accepted
- unknown email: an invite is issued through InvitationService

Role changes and removals require the actor to outrank both the member's
current role and (for changes) the new role. Nobody modifies themselves.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from sqlmodel import Session

from api.auth.permissions import Permission, can_manage_role, has_permission
from api.services.audit_service import AuditService, audit_service
from api.services.invite_service import (
    InvitationService,
    check_can_grant,
    coerce_role,
    invitation_service,
    normalize_email,
)
from qahub.db.models import (
    ActionType,
    Role,
    User,
    WorkspaceInvite,
    WorkspaceMember,
    WorkspaceMemberRead,
    utcnow,
)
from qahub.exceptions import NotFoundError, PermissionDenied
from qahub.logging import get_logger
from qahub.repository import MembershipRepository, UserRepository, WorkspaceRepository

logger = get_logger(__name__)


@dataclass
class AddMemberResult:
    """Outcome of invite-or-add. Exactly one of member and invite is set."""

    member: Optional[WorkspaceMember] = None
    invite: Optional[WorkspaceInvite] = None
    email_sent: bool = False
    warning: Optional[str] = None

    @property
    def added(self) -> bool:
        return self.member is not None


class MemberService:
    """Service for workspace membership management."""

    def __init__(
        self,
        invitations: Optional[InvitationService] = None,
        audit: Optional[AuditService] = None,
    ):
        self.invitations = invitations or invitation_service
        self.audit = audit or audit_service

    def invite_or_add(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        actor_role: Optional[Role],
        email: str,
        role: Union[Role, str],
        now: Optional[datetime] = None,
    ) -> AddMemberResult:
        """Add a registered user directly, otherwise send an invite.

        Raises:
            PermissionDenied: actor lacks member.invite or cannot grant role
            NotFoundError: workspace does not exist
            ConflictError: the user is already a member, or an invite is pending
            ValidationError: bad email or role
        """
        role = coerce_role(role)
        check_can_grant(actor_role, role)
        email = normalize_email(email)
        now = now or utcnow()

        user = UserRepository(session).get_by_email(email)
        if user is None:
            result = self.invitations.create_invite(
                session, workspace_id, email, role, actor_role, actor_id, now=now
            )
            return AddMemberResult(
                invite=result.invite,
                email_sent=result.email_sent,
                warning=result.warning,
            )

        if WorkspaceRepository(session).get(workspace_id) is None:
            raise NotFoundError(
                "Workspace not found", details={"workspace_id": str(workspace_id)}
            )

        member = MembershipRepository(session).add_member(
            workspace_id, user.id, role, invited_by=actor_id, accepted_at=now
        )
        logger.info(
            "member_added",
            workspace_id=str(workspace_id),
            member_id=str(member.id),
            role=role.value,
        )
        self.audit.log_activity(
            session,
            actor_id=actor_id,
            action_type=ActionType.create,
            entity_type="member",
            entity_id=member.id,
            entity_name=email,
            workspace_id=workspace_id,
            details={"action": "added", "role": role.value, "email": email},
        )
        return AddMemberResult(member=member)

    def update_role(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        actor_role: Optional[Role],
        member_id: UUID,
        new_role: Union[Role, str],
    ) -> WorkspaceMember:
        """Change a member's role.

        Raises:
            PermissionDenied: missing member.update_role, self-modification,
                or the actor does not outrank the current or new role
            NotFoundError: no such member in this workspace
        """
        new_role = coerce_role(new_role)
        if not has_permission(actor_role, Permission.MEMBER_UPDATE_ROLE):
            raise PermissionDenied("You do not have permission to change roles")

        members = MembershipRepository(session)
        member = self._get_target(members, workspace_id, actor_id, member_id)
        old_role = Role(member.role)
        if not can_manage_role(actor_role, old_role):
            raise PermissionDenied(
                f"You cannot manage a member with the {old_role.value} role",
                details={"role": old_role.value},
            )
        if not can_manage_role(actor_role, new_role):
            raise PermissionDenied(
                f"You cannot grant the {new_role.value} role",
                details={"role": new_role.value},
            )

        member = members.update_role(member.id, new_role)
        logger.info(
            "member_role_updated",
            member_id=str(member.id),
            old_role=old_role.value,
            new_role=new_role.value,
        )

        target = UserRepository(session).get(member.user_id)
        self.audit.log_activity(
            session,
            actor_id=actor_id,
            action_type=ActionType.update,
            entity_type="member",
            entity_id=member.id,
            entity_name=target.email if target else None,
            workspace_id=workspace_id,
            details={
                "action": "role_changed",
                "old_role": old_role.value,
                "new_role": new_role.value,
            },
        )
        return member

    def remove_member(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        actor_role: Optional[Role],
        member_id: UUID,
    ) -> None:
        """Remove a member from a workspace.

        Raises:
            PermissionDenied: missing member.remove, self-removal,
                or the actor does not outrank the member
            NotFoundError: no such member in this workspace
        """
        if not has_permission(actor_role, Permission.MEMBER_REMOVE):
            raise PermissionDenied("You do not have permission to remove members")

        members = MembershipRepository(session)
        member = self._get_target(members, workspace_id, actor_id, member_id)
        role = Role(member.role)
        if not can_manage_role(actor_role, role):
            raise PermissionDenied(
                f"You cannot remove a member with the {role.value} role",
                details={"role": role.value},
            )

        target = UserRepository(session).get(member.user_id)
        email = target.email if target else None
        members.remove(member.id)
        logger.info("member_removed", member_id=str(member_id), role=role.value)

        self.audit.log_activity(
            session,
            actor_id=actor_id,
            action_type=ActionType.delete,
            entity_type="member",
            entity_id=member_id,
            entity_name=email,
            workspace_id=workspace_id,
            details={"action": "removed", "email": email, "role": role.value},
        )

    def accept_membership(
        self,
        session: Session,
        workspace_id: UUID,
        user: User,
        now: Optional[datetime] = None,
    ) -> WorkspaceMember:
        """Activate the caller's own pending direct membership.

        Accepting an already active membership is a no-op.

        Raises:
            NotFoundError: the user holds no membership in the workspace
        """
        members = MembershipRepository(session)
        member = members.get_by_workspace_and_user(workspace_id, user.id)
        if member is None:
            raise NotFoundError("No membership to accept in this workspace")
        if member.accepted_at is not None:
            return member

        member = members.mark_accepted(member.id, now or utcnow())
        logger.info("membership_accepted", member_id=str(member.id))
        self.audit.log_activity(
            session,
            actor_id=user.id,
            action_type=ActionType.update,
            entity_type="member",
            entity_id=member.id,
            entity_name=user.email,
            workspace_id=workspace_id,
            details={"action": "accepted", "role": Role(member.role).value},
        )
        return member

    def list_members(
        self, session: Session, workspace_id: UUID
    ) -> list[WorkspaceMemberRead]:
        """Members of a workspace with their email and name."""
        rows = MembershipRepository(session).list_with_users(workspace_id)
        return [
            WorkspaceMemberRead(
                id=member.id,
                workspace_id=member.workspace_id,
                user_id=member.user_id,
                role=member.role,
                invited_by=member.invited_by,
                invited_at=member.invited_at,
                accepted_at=member.accepted_at,
                email=user.email,
                full_name=user.full_name,
            )
            for member, user in rows
        ]

    @staticmethod
    def _get_target(
        members: MembershipRepository,
        workspace_id: UUID,
        actor_id: UUID,
        member_id: UUID,
    ) -> WorkspaceMember:
        member = members.get(member_id)
        if member is None or member.workspace_id != workspace_id:
            raise NotFoundError("Member not found", details={"member_id": str(member_id)})
        if member.user_id == actor_id:
            raise PermissionDenied("You cannot modify your own membership")
        return member


# Global instance
member_service = MemberService()

