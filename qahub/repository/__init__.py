"""Repositories over the access-control tables.

Each repository wraps a SQLModel Session and owns the queries for one
table. Repositories commit their own writes.
"""

from qahub.repository.user_repository import UserRepository
from qahub.repository.workspace_repository import WorkspaceRepository
from qahub.repository.membership_repository import MembershipRepository
from qahub.repository.invite_repository import InviteRepository

__all__ = [
    "UserRepository",
    "WorkspaceRepository",
    "MembershipRepository",
    "InviteRepository",
]
