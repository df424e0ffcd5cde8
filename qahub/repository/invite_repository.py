"""Repository for WorkspaceInvite rows.

Pending means "not accepted and not yet expired" at the supplied time;
the status column does not exist, so every pending query takes `now`.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Session, select

from qahub.db.models import Role, WorkspaceInvite


class InviteRepository:
    """Repository for WorkspaceInvite operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        workspace_id: UUID,
        email: str,
        role: Role,
        invited_by: UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> WorkspaceInvite:
        """Persist a new invite. The caller normalizes the email."""
        invite = WorkspaceInvite(
            workspace_id=workspace_id,
            email=email,
            role=role,
            invited_by=invited_by,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.session.add(invite)
        self.session.commit()
        self.session.refresh(invite)
        return invite

    def get(self, invite_id: UUID) -> Optional[WorkspaceInvite]:
        """Get an invite by ID (the token)."""
        return self.session.get(WorkspaceInvite, invite_id)

    def find_pending(
        self, workspace_id: UUID, email: str, now: datetime
    ) -> Optional[WorkspaceInvite]:
        """Find a pending invite for an email in a workspace."""
        statement = select(WorkspaceInvite).where(
            WorkspaceInvite.workspace_id == workspace_id,
            WorkspaceInvite.email == email,
            WorkspaceInvite.accepted_at.is_(None),
            WorkspaceInvite.expires_at > now,
        )
        return self.session.exec(statement).first()

    def list_pending(self, workspace_id: UUID, now: datetime) -> list[WorkspaceInvite]:
        """List pending invites of a workspace, newest first."""
        statement = (
            select(WorkspaceInvite)
            .where(
                WorkspaceInvite.workspace_id == workspace_id,
                WorkspaceInvite.accepted_at.is_(None),
                WorkspaceInvite.expires_at > now,
            )
            .order_by(WorkspaceInvite.created_at.desc())
        )
        return list(self.session.exec(statement).all())

    def list_pending_for_email(
        self, email: str, now: datetime
    ) -> list[WorkspaceInvite]:
        """List pending invites addressed to an email across all workspaces."""
        statement = (
            select(WorkspaceInvite)
            .where(
                WorkspaceInvite.email == email,
                WorkspaceInvite.accepted_at.is_(None),
                WorkspaceInvite.expires_at > now,
            )
            .order_by(WorkspaceInvite.created_at)
        )
        return list(self.session.exec(statement).all())

    def mark_accepted(self, invite: WorkspaceInvite, now: datetime) -> WorkspaceInvite:
        """Record acceptance. A second call keeps the first timestamp."""
        if invite.accepted_at is None:
            invite.accepted_at = now
            self.session.add(invite)
            self.session.commit()
            self.session.refresh(invite)
        return invite

    def delete(self, invite: WorkspaceInvite) -> None:
        """Delete an invite."""
        self.session.delete(invite)
        self.session.commit()
