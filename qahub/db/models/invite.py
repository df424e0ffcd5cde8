"""Workspace invite model.

An invite is an offer of membership addressed to an email that has no
account yet. Its id is the token carried in the invite link.

Lifecycle state is never stored. invite_status() derives it from
accepted_at and expires_at at read time, so expiry needs no sweeper:

    pending  --accept-->  accepted   (terminal)
       |
       +--now >= expires_at-->  expired   (terminal)
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from qahub.db.models.base import UUIDModel, utcnow
from qahub.db.models.membership import Role


class InviteStatus(str, Enum):
    """Computed lifecycle state of a workspace invite."""

    pending = "pending"
    expired = "expired"
    accepted = "accepted"


class WorkspaceInviteBase(SQLModel):
    """Base invite fields shared across Create/Read."""

    email: str = Field(index=True)
    role: Role = Field(default=Role.viewer)


class WorkspaceInvite(UUIDModel, WorkspaceInviteBase, table=True):
    """Workspace invite table."""

    __tablename__ = "workspace_invites"

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    invited_by: UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    expires_at: datetime = Field(nullable=False)
    accepted_at: Optional[datetime] = None


def invite_status(invite: WorkspaceInvite, now: Optional[datetime] = None) -> InviteStatus:
    """Derive the lifecycle state of an invite at a point in time.

    Acceptance wins over expiry: an accepted invite stays accepted after
    its window closes.
    """
    if invite.accepted_at is not None:
        return InviteStatus.accepted
    if (now or utcnow()) >= invite.expires_at:
        return InviteStatus.expired
    return InviteStatus.pending


class WorkspaceInviteRead(WorkspaceInviteBase):
    """Schema for reading invite data."""

    id: UUID
    workspace_id: UUID
    invited_by: UUID
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime]
    status: InviteStatus
