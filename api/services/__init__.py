"""API services module."""

from api.services.audit_service import AuditService, audit_service
from api.services.email_service import EmailService, email_service
from api.services.invite_service import (
    AcceptResult,
    InvitationService,
    InviteDetails,
    InviteResult,
    invitation_service,
)
from api.services.member_service import AddMemberResult, MemberService, member_service
from api.services.workspace_service import WorkspaceService, workspace_service

__all__ = [
    "AuditService",
    "audit_service",
    "EmailService",
    "email_service",
    "AcceptResult",
    "InvitationService",
    "InviteDetails",
    "InviteResult",
    "invitation_service",
    "AddMemberResult",
    "MemberService",
    "member_service",
    "WorkspaceService",
    "workspace_service",
]
