"""Service for workspace management operations.

Wraps repository operations with permission checks, slug generation and
the creator's admin membership.
"""

import re
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Session

from api.auth.permissions import Permission, has_permission
from api.services.audit_service import AuditService, audit_service
from qahub.db.models import (
    ActionType,
    Role,
    User,
    Workspace,
    WorkspaceCreate,
    WorkspaceMember,
    utcnow,
)
from qahub.exceptions import NotFoundError, PermissionDenied, ValidationError
from qahub.logging import get_logger
from qahub.repository import MembershipRepository, WorkspaceRepository

logger = get_logger(__name__)


def _generate_slug(name: str) -> str:
    """Generate a URL-safe slug from workspace name.

    Args:
        name: Workspace name

    Returns:
        Lowercase slug with special characters replaced by hyphens
    """
    slug = name.lower().strip()
    # Remove special characters except hyphens
    slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug or "workspace"


class WorkspaceService:
    """Service for workspace management.

    Any authenticated user may create a workspace and becomes its first
    admin. Everything after that is governed by workspace roles.
    """

    def __init__(self, audit: Optional[AuditService] = None):
        self.audit = audit or audit_service

    def create_workspace(
        self,
        session: Session,
        creator: User,
        name: str,
        description: Optional[str] = None,
    ) -> tuple[Workspace, WorkspaceMember]:
        """Create a workspace with the creator as accepted admin.

        Raises:
            ValidationError: name is blank
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Workspace name is required")

        workspace_repo = WorkspaceRepository(session)
        slug = _generate_slug(name)
        if workspace_repo.get_by_slug(slug):
            # Append a random suffix to make it unique
            slug = f"{slug}-{uuid4().hex[:8]}"

        workspace = workspace_repo.create(
            WorkspaceCreate(
                name=name,
                slug=slug,
                description=description,
                created_by=creator.id,
            )
        )
        member = MembershipRepository(session).add_member(
            workspace.id,
            creator.id,
            Role.admin,
            invited_by=creator.id,
            accepted_at=utcnow(),
        )
        logger.info(
            "workspace_created",
            workspace_id=str(workspace.id),
            slug=workspace.slug,
            created_by=str(creator.id),
        )

        self.audit.log_activity(
            session,
            actor_id=creator.id,
            action_type=ActionType.create,
            entity_type="workspace",
            entity_id=workspace.id,
            entity_name=workspace.name,
            workspace_id=workspace.id,
        )
        return workspace, member

    def get_workspace(self, session: Session, workspace_id: UUID) -> Workspace:
        """Get a workspace by ID.

        Raises:
            NotFoundError: no such workspace
        """
        workspace = WorkspaceRepository(session).get(workspace_id)
        if workspace is None:
            raise NotFoundError(
                "Workspace not found", details={"workspace_id": str(workspace_id)}
            )
        return workspace

    def list_user_workspaces(
        self, session: Session, user_id: UUID
    ) -> list[tuple[Workspace, WorkspaceMember]]:
        """Workspaces where the user holds an accepted membership."""
        return WorkspaceRepository(session).list_by_user(user_id)

    def delete_workspace(
        self,
        session: Session,
        workspace_id: UUID,
        actor_role: Optional[Role],
        actor_id: UUID,
    ) -> None:
        """Delete a workspace with its members and invites.

        Raises:
            PermissionDenied: actor lacks workspace.delete
            NotFoundError: no such workspace
        """
        if not has_permission(actor_role, Permission.WORKSPACE_DELETE):
            raise PermissionDenied("Only admins can delete a workspace")

        workspace = self.get_workspace(session, workspace_id)
        name = workspace.name
        WorkspaceRepository(session).delete(workspace_id)
        logger.info(
            "workspace_deleted", workspace_id=str(workspace_id), deleted_by=str(actor_id)
        )

        # The workspace is gone, so the record is not scoped to it
        self.audit.log_activity(
            session,
            actor_id=actor_id,
            action_type=ActionType.delete,
            entity_type="workspace",
            entity_id=workspace_id,
            entity_name=name,
        )


# Global instance
workspace_service = WorkspaceService()
