"""Invite token routes.

These routes are not workspace-scoped: the invite token identifies the
workspace. validate is public so the accept page can render before the
visitor signs in.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.responses import INVITE_ERROR_RESPONSES
from api.routes.v1.dependencies import CurrentUserDep, SessionDep
from api.routes.v1.workspaces import MemberResponse
from api.services.invite_service import AcceptResult, invitation_service
from qahub.db.models import Role


router = APIRouter(
    prefix="/v1/invites", tags=["invites"], responses=INVITE_ERROR_RESPONSES
)


class InviteDetailsResponse(BaseModel):
    """What the accept page needs to show."""

    invite_id: UUID
    workspace_id: UUID
    workspace_name: str
    inviter_name: Optional[str]
    existing_user: bool
    email: str
    role: Role
    expires_at: datetime


class AcceptInviteResponse(BaseModel):
    """Result of accepting an invite."""

    workspace_id: UUID
    member: MemberResponse
    already_member: bool


def _accept_response(result: AcceptResult) -> AcceptInviteResponse:
    member = result.member
    return AcceptInviteResponse(
        workspace_id=member.workspace_id,
        member=MemberResponse(
            id=member.id,
            workspace_id=member.workspace_id,
            user_id=member.user_id,
            role=member.role,
            invited_by=member.invited_by,
            invited_at=member.invited_at,
            accepted_at=member.accepted_at,
        ),
        already_member=result.already_member,
    )


@router.get("/validate", response_model=InviteDetailsResponse)
def validate_invite(session: SessionDep, token: str = Query(...)):
    """Check an invite token and describe the invite.

    Errors: 400 malformed token, 404 unknown token, 410 expired,
    409 already accepted.
    """
    details = invitation_service.describe_invite(session, token)
    invite = details.invite
    return InviteDetailsResponse(
        invite_id=invite.id,
        workspace_id=invite.workspace_id,
        workspace_name=details.workspace_name,
        inviter_name=details.inviter_name,
        existing_user=details.existing_user,
        email=invite.email,
        role=invite.role,
        expires_at=invite.expires_at,
    )


@router.post("/accept", response_model=AcceptInviteResponse)
def accept_invite(
    current_user: CurrentUserDep, session: SessionDep, token: str = Query(...)
):
    """Accept an invite as the signed-in user.

    Accepting twice, or racing another accept, still succeeds; the second
    call reports already_member=true.
    """
    result = invitation_service.accept_invite(session, token, current_user.user)
    return _accept_response(result)


@router.post("/claim", response_model=list[AcceptInviteResponse])
def claim_invites(current_user: CurrentUserDep, session: SessionDep):
    """Accept every pending invite addressed to the caller's email."""
    results = invitation_service.claim_pending_invites(session, current_user.user)
    return [_accept_response(result) for result in results]
