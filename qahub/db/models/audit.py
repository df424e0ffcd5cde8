"""Activity log model for tracking workspace changes.

Provides an append-only trail of membership, invite and workspace
changes. Records are written best-effort after the primary change has
committed; a missing record never invalidates the change itself.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from uuid import UUID

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON

from qahub.db.models.base import UUIDModel, utcnow


class ActionType(str, Enum):
    """Coarse action category. The specific action lives in details["action"]."""

    create = "create"
    update = "update"
    delete = "delete"


class ActivityLogBase(SQLModel):
    """Base activity log fields shared across Create/Read."""

    action_type: ActionType
    entity_type: str = Field(max_length=100)
    entity_id: Optional[UUID] = None
    entity_name: Optional[str] = Field(default=None, max_length=255)


class ActivityLog(UUIDModel, ActivityLogBase, table=True):
    """Activity log table.

    Every record captures:
    - Who did it (user_id)
    - In what context (workspace_id, project_id)
    - What kind of change (action_type) on what (entity_type, entity_id)
    - Free-form details, e.g. {"action": "role_changed", "old_role": ...}
    """

    __tablename__ = "activity_logs"

    user_id: UUID = Field(foreign_key="users.id", index=True)
    workspace_id: Optional[UUID] = Field(
        default=None, foreign_key="workspaces.id", ondelete="SET NULL", index=True
    )
    project_id: Optional[UUID] = None

    details: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    # Immutable, so no updated_at
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
    )


class ActivityLogRead(ActivityLogBase):
    """Schema for reading activity log data."""

    id: UUID
    user_id: UUID
    workspace_id: Optional[UUID]
    project_id: Optional[UUID]
    details: Optional[dict[str, Any]]
    created_at: datetime
