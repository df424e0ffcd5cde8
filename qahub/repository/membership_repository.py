"""Membership store.

Persists (workspace, user, role) bindings. The (workspace_id, user_id)
uniqueness constraint is enforced by the database, never by a
read-then-write check here: add_member simply inserts and converts a
violation of that constraint into ConflictError. That makes concurrent
accepts of the same invite safe, since exactly one insert can win. Other
integrity errors (an unknown workspace or user) propagate unchanged.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from qahub.db.models import Role, User, WorkspaceMember
from qahub.exceptions import ConflictError, NotFoundError
from qahub.logging import get_logger

logger = get_logger(__name__)

UNIQUE_MEMBERSHIP = "uq_workspace_members_workspace_user"


def _is_duplicate_membership(error: IntegrityError) -> bool:
    """True only for a violation of the (workspace_id, user_id) constraint.

    PostgreSQL reports the constraint name; SQLite only names the columns.
    """
    diag = getattr(error.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint == UNIQUE_MEMBERSHIP
    message = str(error.orig)
    return UNIQUE_MEMBERSHIP in message or (
        "UNIQUE constraint failed" in message
        and "workspace_members.workspace_id, workspace_members.user_id" in message
    )


class MembershipRepository:
    """Repository for WorkspaceMember operations."""

    def __init__(self, session: Session):
        self.session = session

    def add_member(
        self,
        workspace_id: UUID,
        user_id: UUID,
        role: Role,
        invited_by: Optional[UUID] = None,
        accepted_at: Optional[datetime] = None,
    ) -> WorkspaceMember:
        """Insert a membership.

        Raises:
            ConflictError: the user already holds a membership in the workspace
            IntegrityError: any other constraint, e.g. a missing workspace
        """
        member = WorkspaceMember(
            workspace_id=workspace_id,
            user_id=user_id,
            role=role,
            invited_by=invited_by,
            accepted_at=accepted_at,
        )
        self.session.add(member)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if not _is_duplicate_membership(e):
                raise
            logger.info(
                "membership_insert_conflict",
                workspace_id=str(workspace_id),
                user_id=str(user_id),
            )
            raise ConflictError(
                "User is already a member of this workspace",
                details={"workspace_id": str(workspace_id), "user_id": str(user_id)},
            ) from e
        self.session.refresh(member)
        return member

    def get(self, member_id: UUID) -> Optional[WorkspaceMember]:
        """Get a membership by ID."""
        return self.session.get(WorkspaceMember, member_id)

    def get_by_workspace_and_user(
        self, workspace_id: UUID, user_id: UUID
    ) -> Optional[WorkspaceMember]:
        """Get the membership binding a user to a workspace, active or not."""
        statement = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
        return self.session.exec(statement).first()

    def role_of(self, workspace_id: UUID, user_id: UUID) -> Role:
        """Resolve the user's role in a workspace.

        Only accepted memberships count.

        Raises:
            NotFoundError: no active membership exists
        """
        member = self.get_by_workspace_and_user(workspace_id, user_id)
        if member is None or member.accepted_at is None:
            raise NotFoundError(
                "Not a member of this workspace",
                details={"workspace_id": str(workspace_id)},
            )
        return Role(member.role)

    def list_by_workspace(self, workspace_id: UUID) -> list[WorkspaceMember]:
        """List all memberships of a workspace, oldest first."""
        statement = (
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.invited_at)
        )
        return list(self.session.exec(statement).all())

    def list_with_users(
        self, workspace_id: UUID
    ) -> list[tuple[WorkspaceMember, User]]:
        """List memberships of a workspace joined with their users."""
        statement = (
            select(WorkspaceMember, User)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.invited_at)
        )
        return list(self.session.exec(statement).all())

    def update_role(self, member_id: UUID, new_role: Role) -> WorkspaceMember:
        """Change the role of a membership.

        Raises:
            NotFoundError: the membership does not exist
        """
        member = self._require(member_id)
        member.role = new_role
        self.session.add(member)
        self.session.commit()
        self.session.refresh(member)
        return member

    def mark_accepted(self, member_id: UUID, now: datetime) -> WorkspaceMember:
        """Activate a pending membership. Already-active rows are left as is."""
        member = self._require(member_id)
        if member.accepted_at is None:
            member.accepted_at = now
            self.session.add(member)
            self.session.commit()
            self.session.refresh(member)
        return member

    def remove(self, member_id: UUID) -> None:
        """Delete a membership.

        Raises:
            NotFoundError: the membership does not exist
        """
        member = self._require(member_id)
        self.session.delete(member)
        self.session.commit()

    def _require(self, member_id: UUID) -> WorkspaceMember:
        member = self.get(member_id)
        if member is None:
            raise NotFoundError(
                "Member not found", details={"member_id": str(member_id)}
            )
        return member
