"""
Role-based permission checks.

All checks are set-membership tests against ROLE_PERMISSIONS. Ownership rules
("author or staff") live in the services; this module only answers what a
role may do.
"""

from typing import Optional, Union

from qup.constants import ROLE_PERMISSIONS
from qup.exceptions import PermissionDeniedError
from qup.enums import UserRole

RoleLike = Union[UserRole, str, None]


def _coerce_role(role: RoleLike) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def has_permission(role: RoleLike, permission: str) -> bool:
    """True when `permission` is granted to `role`. Unknown roles have no permissions."""
    coerced = _coerce_role(role)
    if coerced is None:
        return False
    return permission in ROLE_PERMISSIONS.get(coerced, frozenset())


def can_moderate(role: RoleLike) -> bool:
    return has_permission(role, "moderate_own_channel")


def can_delete_any_message(role: RoleLike) -> bool:
    return has_permission(role, "delete_any_message")


def can_manage_users(role: RoleLike) -> bool:
    return has_permission(role, "manage_users")


def can_manage_roles(role: RoleLike) -> bool:
    return has_permission(role, "manage_roles")


def is_staff(role: RoleLike) -> bool:
    """Moderators and admins may edit, close or remove other people's content."""
    return _coerce_role(role) in (UserRole.MODERATOR, UserRole.ADMIN)


def require_permission(user, permission: str, message: str = "Insufficient permissions") -> None:
    if not has_permission(user.role, permission):
        raise PermissionDeniedError(message, context={"permission": permission})


def require_role(user, required: UserRole) -> None:
    """Passes when the user holds exactly `required`, or is an ADMIN."""
    role = _coerce_role(user.role)
    if role != required and role != UserRole.ADMIN:
        raise PermissionDeniedError(context={"required_role": required.value})
