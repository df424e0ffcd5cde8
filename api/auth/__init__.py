"""Authentication and authorization module for the API."""

from api.auth.jwt import create_access_token, verify_token
from api.auth.permissions import (
    Permission,
    PERMISSION_MIN_ROLE,
    ROLE_CONFIGS,
    RoleConfig,
    PermissionResolver,
    has_min_role,
    has_permission,
    can_manage_role,
    get_assignable_roles,
    get_permissions_for_role,
    get_role_config,
)
from api.auth.dependencies import CurrentUser, get_current_user

__all__ = [
    # JWT
    "create_access_token",
    "verify_token",
    # Permissions
    "Permission",
    "PERMISSION_MIN_ROLE",
    "ROLE_CONFIGS",
    "RoleConfig",
    "PermissionResolver",
    "has_min_role",
    "has_permission",
    "can_manage_role",
    "get_assignable_roles",
    "get_permissions_for_role",
    "get_role_config",
    # Dependencies
    "CurrentUser",
    "get_current_user",
]
