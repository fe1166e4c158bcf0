"""Role-driven capabilities.

Independent of scope: a SUPER user scoped to one station may still
manage the hierarchy, and a GLOBAL basic user may not.  Compose with
:mod:`fleetcheck.authorization` when both questions matter.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum

from fleetcheck.exceptions import CapabilityError
from fleetcheck.models.settings import SystemSettings
from fleetcheck.models.user import Role, User


class Permission(StrEnum):
    VIEW_DASHBOARD = "view_dashboard"
    PERFORM_CHECKLIST = "perform_checklist"
    MANAGE_FLEET = "manage_fleet"
    VIEW_REPORTS = "view_reports"
    MANAGE_USERS = "manage_users"
    MANAGE_HIERARCHY = "manage_hierarchy"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    MANAGE_DATABASE = "manage_database"
    MANAGE_PARAMETERS = "manage_parameters"
    MANAGE_NOTICES = "manage_notices"


DEFAULT_ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = {
    Role.BASIC: frozenset({Permission.VIEW_DASHBOARD, Permission.PERFORM_CHECKLIST}),
    Role.ADMIN: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.PERFORM_CHECKLIST,
            Permission.VIEW_REPORTS,
            Permission.MANAGE_FLEET,
            Permission.MANAGE_USERS,
            Permission.MANAGE_NOTICES,
        }
    ),
    Role.SUPER: frozenset(Permission),
}


def _parse_permissions(values: Sequence[str]) -> frozenset[Permission]:
    parsed: set[Permission] = set()
    for value in values:
        try:
            parsed.add(Permission(value.strip().lower()))
        except ValueError:
            continue
    return frozenset(parsed)


def role_permissions(role: Role, settings: SystemSettings | None = None) -> frozenset[Permission]:
    """Permissions granted to *role*, honoring a remote override when present."""
    if settings is not None:
        override = settings.role_permissions.get(role.value)
        if override is not None:
            return _parse_permissions(override)
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def effective_permissions(user: User, settings: SystemSettings | None = None) -> frozenset[Permission]:
    """Role permissions plus the user's individually granted ones."""
    return role_permissions(user.role, settings) | _parse_permissions(user.custom_permissions)


def has_capability(user: User, permission: Permission, settings: SystemSettings | None = None) -> bool:
    return permission in effective_permissions(user, settings)


def require_capability(user: User, permission: Permission, settings: SystemSettings | None = None) -> None:
    if not has_capability(user, permission, settings):
        raise CapabilityError(permission.value, user_id=user.id)
