"""RBAC permissions and role-rank queries.

Every permission maps to exactly one minimum role. A role holds a
permission iff its rank is at least that minimum, so permission sets grow
monotonically up the hierarchy viewer < tester < manager < admin.

All queries here are pure and never raise: an unknown role (including
None) or an unknown permission string simply yields False.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from qahub.db.models import Role


class Permission(str, Enum):
    """Permission keys for RBAC.

    Keys follow the pattern: resource.action
    - workspace, settings: workspace configuration (admin)
    - project, member: workspace structure and team (manager)
    - test_case, test_run, defect, report: QA records
    """

    # Workspace permissions
    WORKSPACE_CREATE = "workspace.create"
    WORKSPACE_UPDATE = "workspace.update"
    WORKSPACE_DELETE = "workspace.delete"
    SETTINGS_MANAGE = "settings.manage"

    # Project permissions
    PROJECT_CREATE = "project.create"
    PROJECT_UPDATE = "project.update"
    PROJECT_DELETE = "project.delete"

    # Team permissions
    MEMBER_INVITE = "member.invite"
    MEMBER_UPDATE_ROLE = "member.update_role"
    MEMBER_REMOVE = "member.remove"

    # Test case permissions
    TEST_CASE_VIEW = "test_case.view"
    TEST_CASE_CREATE = "test_case.create"
    TEST_CASE_UPDATE = "test_case.update"
    TEST_CASE_DELETE = "test_case.delete"

    # Test run permissions
    TEST_RUN_VIEW = "test_run.view"
    TEST_RUN_CREATE = "test_run.create"
    TEST_RUN_UPDATE = "test_run.update"
    TEST_RUN_DELETE = "test_run.delete"

    # Defect permissions
    DEFECT_VIEW = "defect.view"
    DEFECT_CREATE = "defect.create"
    DEFECT_UPDATE = "defect.update"
    DEFECT_DELETE = "defect.delete"

    # Report permissions
    REPORT_VIEW = "report.view"
    REPORT_CREATE = "report.create"
    REPORT_UPDATE = "report.update"
    REPORT_DELETE = "report.delete"


_MIN_ROLE_GROUPS: dict[Role, tuple[Permission, ...]] = {
    Role.viewer: (
        Permission.TEST_CASE_VIEW,
        Permission.TEST_RUN_VIEW,
        Permission.DEFECT_VIEW,
        Permission.REPORT_VIEW,
    ),
    Role.tester: (
        Permission.TEST_CASE_CREATE,
        Permission.TEST_CASE_UPDATE,
        Permission.TEST_RUN_CREATE,
        Permission.TEST_RUN_UPDATE,
        Permission.DEFECT_CREATE,
        Permission.DEFECT_UPDATE,
        Permission.REPORT_CREATE,
    ),
    Role.manager: (
        Permission.PROJECT_CREATE,
        Permission.PROJECT_UPDATE,
        Permission.PROJECT_DELETE,
        Permission.MEMBER_INVITE,
        Permission.MEMBER_UPDATE_ROLE,
        Permission.MEMBER_REMOVE,
        Permission.TEST_CASE_DELETE,
        Permission.TEST_RUN_DELETE,
        Permission.DEFECT_DELETE,
        Permission.REPORT_UPDATE,
        Permission.REPORT_DELETE,
    ),
    Role.admin: (
        Permission.WORKSPACE_CREATE,
        Permission.WORKSPACE_UPDATE,
        Permission.WORKSPACE_DELETE,
        Permission.SETTINGS_MANAGE,
    ),
}

PERMISSION_MIN_ROLE: dict[Permission, Role] = {
    permission: role
    for role, permissions in _MIN_ROLE_GROUPS.items()
    for permission in permissions
}


def _check_matrix() -> None:
    """Every permission must have exactly one minimum role."""
    listed = [p for perms in _MIN_ROLE_GROUPS.values() for p in perms]
    duplicates = {p for p in listed if listed.count(p) > 1}
    if duplicates:
        raise RuntimeError(
            f"Permissions assigned more than one minimum role: {sorted(duplicates)}"
        )
    missing = set(Permission) - set(PERMISSION_MIN_ROLE)
    if missing:
        raise RuntimeError(f"Permissions without a minimum role: {sorted(missing)}")


_check_matrix()


@dataclass(frozen=True)
class RoleConfig:
    """Display metadata for a role."""

    role: Role
    display_name: str
    description: str

    @property
    def level(self) -> int:
        return self.role.rank

    @property
    def permissions(self) -> frozenset[Permission]:
        return get_permissions_for_role(self.role)


ROLE_CONFIGS: dict[Role, RoleConfig] = {
    Role.admin: RoleConfig(
        Role.admin, "Admin", "Full CRUD access + system configuration rights"
    ),
    Role.manager: RoleConfig(
        Role.manager, "Manager", "All CRUD operations across workspace"
    ),
    Role.tester: RoleConfig(
        Role.tester,
        "QA Tester",
        "Create test cases and test suites, execute and review",
    ),
    Role.viewer: RoleConfig(
        Role.viewer, "Developer", "View-only access to given resources"
    ),
}


RoleLike = Union[Role, str, None]
PermissionLike = Union[Permission, str]


def _coerce_role(role: RoleLike) -> Optional[Role]:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except (ValueError, TypeError):
        return None


def _coerce_permission(permission: PermissionLike) -> Optional[Permission]:
    if isinstance(permission, Permission):
        return permission
    try:
        return Permission(permission)
    except (ValueError, TypeError):
        return None


def has_min_role(subject_role: RoleLike, threshold: RoleLike) -> bool:
    """True iff subject_role ranks at or above threshold."""
    subject, minimum = _coerce_role(subject_role), _coerce_role(threshold)
    if subject is None or minimum is None:
        return False
    return subject.rank >= minimum.rank


def has_permission(subject_role: RoleLike, permission: PermissionLike) -> bool:
    """True iff subject_role meets the permission's minimum role."""
    perm = _coerce_permission(permission)
    if perm is None:
        return False
    return has_min_role(subject_role, PERMISSION_MIN_ROLE[perm])


def can_manage_role(subject_role: RoleLike, target_role: RoleLike) -> bool:
    """True iff subject_role ranks strictly above target_role.

    Nobody manages their own rank, so an admin cannot modify another admin.
    """
    subject, target = _coerce_role(subject_role), _coerce_role(target_role)
    if subject is None or target is None:
        return False
    return subject.rank > target.rank


def get_assignable_roles(subject_role: RoleLike) -> list[Role]:
    """Roles the subject may grant, lowest first."""
    return [role for role in Role if can_manage_role(subject_role, role)]


def get_permissions_for_role(role: RoleLike) -> frozenset[Permission]:
    """Get all permissions granted to a role."""
    return frozenset(p for p in Permission if has_permission(role, p))


def get_role_config(role: RoleLike) -> Optional[RoleConfig]:
    """Get display metadata for a role, None if the role is unknown."""
    resolved = _coerce_role(role)
    return ROLE_CONFIGS.get(resolved) if resolved else None


@dataclass(frozen=True)
class PermissionResolver:
    """Permission queries bound to one resolved role.

    Built once per request from the caller's membership and passed
    explicitly; there is no ambient "current role". A resolver for a
    non-member (role None) denies everything.
    """

    role: Optional[Role]

    def has_permission(self, permission: PermissionLike) -> bool:
        return has_permission(self.role, permission)

    def has_min_role(self, threshold: RoleLike) -> bool:
        return has_min_role(self.role, threshold)

    def can_manage_role(self, target_role: RoleLike) -> bool:
        return can_manage_role(self.role, target_role)

    def assignable_roles(self) -> list[Role]:
        return get_assignable_roles(self.role)

    def permissions(self) -> frozenset[Permission]:
        return get_permissions_for_role(self.role)

    @property
    def is_admin(self) -> bool:
        return self.has_min_role(Role.admin)

    @property
    def is_manager(self) -> bool:
        return self.has_min_role(Role.manager)

    @property
    def is_tester(self) -> bool:
        return self.has_min_role(Role.tester)
