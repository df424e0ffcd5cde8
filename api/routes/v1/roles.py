"""Role catalogue route.

Exposes the role hierarchy and permission matrix so clients can render
role pickers and hide actions the caller cannot take.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from api.auth.permissions import PERMISSION_MIN_ROLE, ROLE_CONFIGS
from qahub.db.models import Role


router = APIRouter(prefix="/v1", tags=["roles"])


class RoleInfo(BaseModel):
    """One role with its display metadata and granted permissions."""

    name: Role
    display_name: str
    description: str
    level: int
    permissions: list[str]


class RoleCatalogue(BaseModel):
    """All roles, lowest first, plus the permission matrix."""

    roles: list[RoleInfo]
    permission_min_role: dict[str, Role]


@router.get("/roles", response_model=RoleCatalogue)
def list_roles():
    """List roles and the minimum role for every permission."""
    roles = [
        RoleInfo(
            name=role,
            display_name=ROLE_CONFIGS[role].display_name,
            description=ROLE_CONFIGS[role].description,
            level=ROLE_CONFIGS[role].level,
            permissions=sorted(p.value for p in ROLE_CONFIGS[role].permissions),
        )
        for role in Role
    ]
    return RoleCatalogue(
        roles=roles,
        permission_min_role={p.value: role for p, role in PERMISSION_MIN_ROLE.items()},
    )
