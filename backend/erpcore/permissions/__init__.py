# Overview: Permission registry package.
# Re-exports the public API: the Permission and Role enums, the static
# role table and lookup helpers.

from .categories import PermissionCategory
from .definitions import (
    Permission,
    PERMISSION_DEFINITIONS,
    CUSTOMER_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    VENDOR_PERMISSIONS,
    REPORT_PERMISSIONS,
    USER_PERMISSIONS,
    TENANT_PERMISSIONS,
)
from .roles import Role, ROLE_PERMISSIONS
from .helpers import (
    has_permission,
    get_role_permissions,
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_role,
)

__all__ = [
    "PermissionCategory",
    "Permission",
    "PERMISSION_DEFINITIONS",
    "CUSTOMER_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "VENDOR_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "USER_PERMISSIONS",
    "TENANT_PERMISSIONS",
    "Role",
    "ROLE_PERMISSIONS",
    "has_permission",
    "get_role_permissions",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_role",
]
