"""SQLModel table definitions.

This module exports all SQLModel table classes and their Create/Read variants.
All primary keys use UUID; invite ids double as invite tokens.

Model Categories:
- Identity: User
- Tenancy: Workspace, WorkspaceMember, Role
- Invitations: WorkspaceInvite, InviteStatus
- Audit: ActivityLog, ActionType
"""

# Base class
from qahub.db.models.base import UUIDModel, TimestampMixin, utcnow

# Identity
from qahub.db.models.user import User, UserCreate, UserRead

# Multi-tenancy models
from qahub.db.models.workspace import Workspace, WorkspaceCreate, WorkspaceRead
from qahub.db.models.membership import (
    Role, ROLE_RANKS,
    WorkspaceMember, WorkspaceMemberRead,
)

# Invitations
from qahub.db.models.invite import (
    InviteStatus, invite_status,
    WorkspaceInvite, WorkspaceInviteRead,
)

# Audit
from qahub.db.models.audit import (
    ActionType,
    ActivityLog, ActivityLogRead,
)

__all__ = [
    # Base
    "UUIDModel",
    "TimestampMixin",
    "utcnow",
    # User
    "User", "UserCreate", "UserRead",
    # Multi-tenancy
    "Workspace", "WorkspaceCreate", "WorkspaceRead",
    "Role", "ROLE_RANKS",
    "WorkspaceMember", "WorkspaceMemberRead",
    # Invitations
    "InviteStatus", "invite_status",
    "WorkspaceInvite", "WorkspaceInviteRead",
    # Audit
    "ActionType",
    "ActivityLog", "ActivityLogRead",
]
