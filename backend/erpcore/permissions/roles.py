# Overview: Static role -> permission table.

from enum import Enum

from .definitions import Permission


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    # Admin gets ALL permissions
    Role.ADMIN: frozenset(Permission),

    # Manager: day-to-day operations, no deletes, no user/tenant administration
    Role.MANAGER: frozenset({
        Permission.VIEW_CUSTOMERS,
        Permission.CREATE_CUSTOMER,
        Permission.EDIT_CUSTOMER,
        Permission.VIEW_INVENTORY,
        Permission.CREATE_PRODUCT,
        Permission.EDIT_PRODUCT,
        Permission.MANAGE_INVENTORY,
        Permission.VIEW_SALES,
        Permission.CREATE_SALE,
        Permission.EDIT_SALE,
        Permission.VIEW_VENDORS,
        Permission.CREATE_VENDOR,
        Permission.EDIT_VENDOR,
        Permission.VIEW_REPORTS,
    }),

    # User: read access plus ringing up sales
    Role.USER: frozenset({
        Permission.VIEW_CUSTOMERS,
        Permission.VIEW_INVENTORY,
        Permission.VIEW_SALES,
        Permission.CREATE_SALE,
        Permission.VIEW_VENDORS,
        Permission.VIEW_REPORTS,
    }),
}
