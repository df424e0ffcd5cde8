"""User model.

Users are issued by the external identity provider; this table mirrors
the identities the access service needs to resolve (id, email, name).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from qahub.db.models.base import UUIDModel, TimestampMixin


class UserBase(SQLModel):
    """Base user fields shared across Create/Read."""

    full_name: Optional[str] = Field(default=None, index=True)
    email: str = Field(unique=True, index=True)


class User(UUIDModel, UserBase, TimestampMixin, table=True):
    """User table - global identity across workspaces."""

    __tablename__ = "users"

    is_active: bool = Field(default=True)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class UserCreate(UserBase):
    """Schema for creating a new user."""

    id: Optional[UUID] = None


class UserRead(UserBase):
    """Schema for reading user data."""

    id: UUID
    is_active: bool = True
    created_at: datetime
