"""Workspace management routes.

Routes for workspace CRUD, member management, and pending invites.
"""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from api.auth.permissions import Permission
from api.responses import ERROR_RESPONSES
from api.routes.v1.dependencies import (
    CurrentUserDep,
    SessionDep,
    WorkspaceContext,
    WorkspaceCtx,
    require_workspace_permission,
)
from api.services.invite_service import invitation_service
from api.services.member_service import member_service
from api.services.workspace_service import workspace_service
from qahub.db.models import (
    Role,
    WorkspaceInvite,
    WorkspaceInviteRead,
    WorkspaceMember,
    WorkspaceMemberRead,
    WorkspaceRead,
    invite_status,
)


router = APIRouter(prefix="/v1", tags=["workspaces"], responses=ERROR_RESPONSES)


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateWorkspaceRequest(BaseModel):
    """Request to create a new workspace."""

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class AddMemberRequest(BaseModel):
    """Request to add or invite a member."""

    email: EmailStr
    role: Role = Role.viewer


class UpdateMemberRoleRequest(BaseModel):
    """Request to update a member's role."""

    role: Role


class WorkspaceSummary(BaseModel):
    """Workspace with the caller's role, for listing."""

    id: UUID
    name: str
    slug: str
    description: Optional[str]
    role: Role


class WorkspaceDetail(WorkspaceRead):
    """Workspace with the caller's resolved permissions."""

    role: Role
    permissions: list[str]
    assignable_roles: list[Role]


class MemberResponse(BaseModel):
    """A single membership."""

    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: Role
    invited_by: Optional[UUID]
    invited_at: datetime
    accepted_at: Optional[datetime]


class AddMemberResponse(BaseModel):
    """Result of add-or-invite.

    status is "added" when a registered user was added directly and
    "invited" when an invite was issued.
    """

    status: str
    member: Optional[MemberResponse] = None
    invite: Optional[WorkspaceInviteRead] = None
    email_sent: bool = False
    warning: Optional[str] = None


def _member_response(member: WorkspaceMember) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        workspace_id=member.workspace_id,
        user_id=member.user_id,
        role=member.role,
        invited_by=member.invited_by,
        invited_at=member.invited_at,
        accepted_at=member.accepted_at,
    )


def invite_read(invite: WorkspaceInvite) -> WorkspaceInviteRead:
    return WorkspaceInviteRead(
        id=invite.id,
        workspace_id=invite.workspace_id,
        email=invite.email,
        role=invite.role,
        invited_by=invite.invited_by,
        created_at=invite.created_at,
        expires_at=invite.expires_at,
        accepted_at=invite.accepted_at,
        status=invite_status(invite),
    )


# =============================================================================
# User's Workspaces (no workspace_id in path)
# =============================================================================


@router.get("/workspaces", response_model=list[WorkspaceSummary])
def list_my_workspaces(current_user: CurrentUserDep, session: SessionDep):
    """List all workspaces the current user is an active member of."""
    rows = workspace_service.list_user_workspaces(session, current_user.user_id)
    return [
        WorkspaceSummary(
            id=workspace.id,
            name=workspace.name,
            slug=workspace.slug,
            description=workspace.description,
            role=member.role,
        )
        for workspace, member in rows
    ]


@router.post(
    "/workspaces", response_model=WorkspaceRead, status_code=status.HTTP_201_CREATED
)
def create_workspace(
    request: CreateWorkspaceRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
):
    """Create a new workspace. The current user becomes its admin."""
    workspace, _ = workspace_service.create_workspace(
        session,
        current_user.user,
        name=request.name,
        description=request.description,
    )
    return workspace


# =============================================================================
# Workspace-scoped routes
# =============================================================================


@router.get("/w/{workspace_id}", response_model=WorkspaceDetail)
def get_workspace(ctx: WorkspaceCtx):
    """Get workspace details with the caller's role and permissions."""
    workspace = ctx.workspace
    return WorkspaceDetail(
        id=workspace.id,
        name=workspace.name,
        slug=workspace.slug,
        description=workspace.description,
        created_by=workspace.created_by,
        created_at=workspace.created_at,
        role=ctx.role,
        permissions=sorted(p.value for p in ctx.permissions.permissions()),
        assignable_roles=ctx.permissions.assignable_roles(),
    )


@router.delete("/w/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workspace(
    ctx: Annotated[
        WorkspaceContext,
        Depends(require_workspace_permission(Permission.WORKSPACE_DELETE)),
    ],
    session: SessionDep,
):
    """Delete the workspace. Requires workspace.delete."""
    workspace_service.delete_workspace(
        session, ctx.workspace_id, ctx.role, ctx.user_id
    )


@router.get("/w/{workspace_id}/members", response_model=list[WorkspaceMemberRead])
def list_members(ctx: WorkspaceCtx, session: SessionDep):
    """List all members of the workspace."""
    return member_service.list_members(session, ctx.workspace_id)


@router.post(
    "/w/{workspace_id}/members",
    response_model=AddMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_member(request: AddMemberRequest, ctx: WorkspaceCtx, session: SessionDep):
    """Add a registered user directly, or invite an unknown email.

    A failed invite email does not fail the request; the response then
    carries email_sent=false and a warning.
    """
    result = member_service.invite_or_add(
        session,
        ctx.workspace_id,
        ctx.user_id,
        ctx.role,
        email=request.email,
        role=request.role,
    )
    if result.added:
        return AddMemberResponse(
            status="added", member=_member_response(result.member), email_sent=False
        )
    return AddMemberResponse(
        status="invited",
        invite=invite_read(result.invite),
        email_sent=result.email_sent,
        warning=result.warning,
    )


@router.patch("/w/{workspace_id}/members/{member_id}", response_model=MemberResponse)
def update_member_role(
    member_id: UUID,
    request: UpdateMemberRoleRequest,
    ctx: WorkspaceCtx,
    session: SessionDep,
):
    """Change a member's role."""
    member = member_service.update_role(
        session, ctx.workspace_id, ctx.user_id, ctx.role, member_id, request.role
    )
    return _member_response(member)


@router.delete(
    "/w/{workspace_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT
)
def remove_member(member_id: UUID, ctx: WorkspaceCtx, session: SessionDep):
    """Remove a member from the workspace."""
    member_service.remove_member(
        session, ctx.workspace_id, ctx.user_id, ctx.role, member_id
    )


@router.post("/w/{workspace_id}/membership/accept", response_model=MemberResponse)
def accept_membership(
    workspace_id: UUID, current_user: CurrentUserDep, session: SessionDep
):
    """Activate the caller's own pending membership in the workspace."""
    member = member_service.accept_membership(session, workspace_id, current_user.user)
    return _member_response(member)


@router.get("/w/{workspace_id}/invites", response_model=list[WorkspaceInviteRead])
def list_invites(
    ctx: Annotated[
        WorkspaceContext, Depends(require_workspace_permission(Permission.MEMBER_INVITE))
    ],
    session: SessionDep,
):
    """List pending invites. Requires member.invite."""
    invites = invitation_service.list_pending_invites(session, ctx.workspace_id)
    return [invite_read(invite) for invite in invites]


@router.delete(
    "/w/{workspace_id}/invites/{invite_id}", status_code=status.HTTP_204_NO_CONTENT
)
def revoke_invite(invite_id: UUID, ctx: WorkspaceCtx, session: SessionDep):
    """Revoke a pending invite."""
    invitation_service.revoke_invite(
        session, ctx.workspace_id, invite_id, ctx.role, ctx.user_id
    )

