"""Dependencies for workspace-scoped routes.

Provides FastAPI dependencies to:
- Extract workspace_id from URL path
- Verify the caller holds an active membership
- Resolve the caller's permissions once per request
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Path
from sqlmodel import Session

from api.auth.dependencies import CurrentUser, get_current_user
from api.auth.permissions import Permission, PermissionResolver
from qahub.db.engine import get_session_dependency
from qahub.db.models import Role, Workspace, WorkspaceMember
from qahub.exceptions import NotFoundError, PermissionDenied
from qahub.logging import bind_context
from qahub.repository import MembershipRepository, WorkspaceRepository


class WorkspaceContext:
    """Container for workspace context in route handlers.

    Holds the workspace, the caller's active membership and a
    PermissionResolver bound to the caller's role.
    """

    def __init__(
        self,
        workspace: Workspace,
        membership: WorkspaceMember,
        current_user: CurrentUser,
    ):
        self.workspace = workspace
        self.membership = membership
        self.current_user = current_user
        self.permissions = PermissionResolver(Role(membership.role))

    @property
    def workspace_id(self) -> UUID:
        return self.workspace.id

    @property
    def user_id(self) -> UUID:
        return self.current_user.user_id

    @property
    def role(self) -> Role:
        return self.permissions.role

    def require_permission(self, permission: Permission) -> None:
        """Raise PermissionDenied if the caller lacks permission."""
        if not self.permissions.has_permission(permission):
            raise PermissionDenied(
                f"Missing required permission: {permission.value}",
                details={"permission": permission.value},
            )


def get_workspace_context(
    workspace_id: Annotated[UUID, Path(description="Workspace UUID")],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session_dependency)],
) -> WorkspaceContext:
    """Get workspace context from URL path parameter.

    Raises:
        NotFoundError: Workspace not found
        PermissionDenied: Caller has no accepted membership
    """
    workspace = WorkspaceRepository(session).get(workspace_id)
    if workspace is None:
        raise NotFoundError(
            "Workspace not found", details={"workspace_id": str(workspace_id)}
        )

    membership = MembershipRepository(session).get_by_workspace_and_user(
        workspace_id, current_user.user_id
    )
    if membership is None or membership.accepted_at is None:
        raise PermissionDenied("You are not a member of this workspace")

    bind_context(workspace_id=str(workspace_id))
    return WorkspaceContext(
        workspace=workspace,
        membership=membership,
        current_user=current_user,
    )


def require_workspace_permission(permission: Permission):
    """Create a dependency that requires a permission in the workspace.

    Usage:
        @router.delete("/w/{workspace_id}")
        def delete_workspace(
            ctx: Annotated[
                WorkspaceContext,
                Depends(require_workspace_permission(Permission.WORKSPACE_DELETE)),
            ],
        ):
            ...
    """

    def permission_checker(
        ctx: Annotated[WorkspaceContext, Depends(get_workspace_context)],
    ) -> WorkspaceContext:
        ctx.require_permission(permission)
        return ctx

    return permission_checker


# Type aliases for cleaner route signatures
WorkspaceCtx = Annotated[WorkspaceContext, Depends(get_workspace_context)]
SessionDep = Annotated[Session, Depends(get_session_dependency)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
