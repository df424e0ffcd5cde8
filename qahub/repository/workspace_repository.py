"""Repository for Workspace rows."""

from typing import Optional
from uuid import UUID

from sqlmodel import Session, select

from qahub.db.models import (
    Workspace,
    WorkspaceCreate,
    WorkspaceInvite,
    WorkspaceMember,
)


class WorkspaceRepository:
    """Repository for Workspace operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: WorkspaceCreate) -> Workspace:
        """Create a new workspace."""
        workspace = Workspace.model_validate(data)
        self.session.add(workspace)
        self.session.commit()
        self.session.refresh(workspace)
        return workspace

    def get(self, workspace_id: UUID) -> Optional[Workspace]:
        """Get a workspace by ID."""
        return self.session.get(Workspace, workspace_id)

    def get_by_slug(self, slug: str) -> Optional[Workspace]:
        """Get a workspace by slug."""
        statement = select(Workspace).where(Workspace.slug == slug)
        return self.session.exec(statement).first()

    def list_by_user(self, user_id: UUID) -> list[tuple[Workspace, WorkspaceMember]]:
        """List workspaces the user actively belongs to, with the membership.

        Pending (unaccepted) memberships grant no access and are left out.
        """
        statement = (
            select(Workspace, WorkspaceMember)
            .join(WorkspaceMember, Workspace.id == WorkspaceMember.workspace_id)
            .where(
                WorkspaceMember.user_id == user_id,
                WorkspaceMember.accepted_at.is_not(None),
            )
            .order_by(Workspace.name)
        )
        return list(self.session.exec(statement).all())

    def delete(self, workspace_id: UUID) -> bool:
        """Delete a workspace with its members and invites. Returns True if deleted."""
        workspace = self.get(workspace_id)
        if workspace is None:
            return False

        for model in (WorkspaceInvite, WorkspaceMember):
            rows = self.session.exec(
                select(model).where(model.workspace_id == workspace_id)
            ).all()
            for row in rows:
                self.session.delete(row)
        self.session.delete(workspace)
        self.session.commit()
        return True
