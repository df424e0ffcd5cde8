"""Workspace model for multi-tenancy.

Workspaces are the tenant boundary. Members, invites and (outside this
service) projects, test cases, runs and defects all belong to a workspace.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from qahub.db.models.base import UUIDModel, TimestampMixin


class WorkspaceBase(SQLModel):
    """Base workspace fields shared across Create/Read."""

    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = None


class Workspace(UUIDModel, WorkspaceBase, TimestampMixin, table=True):
    """Workspace table - the boundary of data isolation."""

    __tablename__ = "workspaces"

    created_by: UUID = Field(foreign_key="users.id", index=True)


class WorkspaceCreate(WorkspaceBase):
    """Schema for creating a new workspace."""

    created_by: UUID


class WorkspaceRead(WorkspaceBase):
    """Schema for reading workspace data."""

    id: UUID
    created_by: UUID
    created_at: datetime
