"""Workspace membership model and the role hierarchy.

Links users to workspaces with a role. The role set is closed and totally
ordered; every permission and role-management decision compares ranks.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from qahub.db.models.base import UUIDModel, utcnow


class Role(str, Enum):
    """Workspace role, declared from lowest to highest rank.

    - viewer: read-only access to test cases, runs, defects and reports
    - tester: create and execute test cases and runs, file defects
    - manager: all project and member management, deletes domain records
    - admin: workspace configuration, settings and deletion
    """

    viewer = "viewer"
    tester = "tester"
    manager = "manager"
    admin = "admin"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]


# Declaration order is the hierarchy: viewer=0 < tester=1 < manager=2 < admin=3
ROLE_RANKS: dict[Role, int] = {role: rank for rank, role in enumerate(Role)}


class WorkspaceMemberBase(SQLModel):
    """Base membership fields shared across Create/Read."""

    role: Role = Field(default=Role.viewer)


class WorkspaceMember(UUIDModel, WorkspaceMemberBase, table=True):
    """Workspace member table - binds a user to a role in a workspace.

    At most one row per (workspace_id, user_id). The unique constraint is
    the only concurrency control for membership creation: racing inserts
    resolve to exactly one surviving row.

    accepted_at is None for a member added directly who has not yet
    accepted; such a membership grants no access.
    """

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "user_id", name="uq_workspace_members_workspace_user"
        ),
    )

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    invited_by: Optional[UUID] = Field(default=None, foreign_key="users.id")
    invited_at: datetime = Field(default_factory=utcnow, nullable=False)
    accepted_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.accepted_at is not None


class WorkspaceMemberRead(WorkspaceMemberBase):
    """Schema for reading workspace membership data."""

    id: UUID
    workspace_id: UUID
    user_id: UUID
    invited_by: Optional[UUID]
    invited_at: datetime
    accepted_at: Optional[datetime]
    email: Optional[str] = None
    full_name: Optional[str] = None
