# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS, Permission
from .roles import ROLE_PERMISSIONS, Role


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        return None


def has_permission(role, permission) -> bool:
    """
    Check a role against the static permission table.

    Accepts enum members or their string values. Unknown roles and unknown
    permissions are never granted.
    """
    if not role or not permission:
        return False
    role = _coerce(Role, role)
    permission = _coerce(Permission, permission)
    if role is None or permission is None:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def get_role_permissions(role) -> list[str]:
    """Sorted permission codes granted to a role (empty for unknown roles)."""
    role = _coerce(Role, role)
    if role is None:
        return []
    return sorted(p.value for p in ROLE_PERMISSIONS.get(role, frozenset()))


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0].value for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0].value == code:
            return {
                "code": perm[0].value,
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_role(value) -> bool:
    """Check if a role name is valid."""
    return _coerce(Role, value) is not None
