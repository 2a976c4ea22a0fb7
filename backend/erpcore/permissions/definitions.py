# Overview: All permission definitions organized by category.
# Each definition is: (permission, name, description, category)

from enum import Enum

from .categories import PermissionCategory


class Permission(str, Enum):
    VIEW_CUSTOMERS = "VIEW_CUSTOMERS"
    CREATE_CUSTOMER = "CREATE_CUSTOMER"
    EDIT_CUSTOMER = "EDIT_CUSTOMER"
    DELETE_CUSTOMER = "DELETE_CUSTOMER"

    VIEW_INVENTORY = "VIEW_INVENTORY"
    CREATE_PRODUCT = "CREATE_PRODUCT"
    EDIT_PRODUCT = "EDIT_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"
    MANAGE_INVENTORY = "MANAGE_INVENTORY"

    VIEW_SALES = "VIEW_SALES"
    CREATE_SALE = "CREATE_SALE"
    EDIT_SALE = "EDIT_SALE"
    DELETE_SALE = "DELETE_SALE"

    VIEW_VENDORS = "VIEW_VENDORS"
    CREATE_VENDOR = "CREATE_VENDOR"
    EDIT_VENDOR = "EDIT_VENDOR"
    DELETE_VENDOR = "DELETE_VENDOR"

    VIEW_REPORTS = "VIEW_REPORTS"

    MANAGE_USERS = "MANAGE_USERS"

    MANAGE_TENANT = "MANAGE_TENANT"


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        Permission.VIEW_CUSTOMERS,
        "View Customers",
        "View customers, their metrics and credit recommendations",
        PermissionCategory.CUSTOMERS,
    ),
    (
        Permission.CREATE_CUSTOMER,
        "Create Customer",
        "Create new customer accounts",
        PermissionCategory.CUSTOMERS,
    ),
    (
        Permission.EDIT_CUSTOMER,
        "Edit Customer",
        "Edit customer details and credit limits",
        PermissionCategory.CUSTOMERS,
    ),
    (
        Permission.DELETE_CUSTOMER,
        "Delete Customer",
        "Delete customers that have no sales",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        Permission.VIEW_INVENTORY,
        "View Inventory",
        "View products, locations and stock levels",
        PermissionCategory.INVENTORY,
    ),
    (
        Permission.CREATE_PRODUCT,
        "Create Product",
        "Create new products",
        PermissionCategory.INVENTORY,
    ),
    (
        Permission.EDIT_PRODUCT,
        "Edit Product",
        "Edit products and their images",
        PermissionCategory.INVENTORY,
    ),
    (
        Permission.DELETE_PRODUCT,
        "Delete Product",
        "Delete products with no stock and no sales",
        PermissionCategory.INVENTORY,
    ),
    (
        Permission.MANAGE_INVENTORY,
        "Manage Inventory",
        "Add, remove and transfer stock; manage locations",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        Permission.VIEW_SALES,
        "View Sales",
        "View sales and invoices",
        PermissionCategory.SALES,
    ),
    (
        Permission.CREATE_SALE,
        "Create Sale",
        "Create sales (decrements stock at hinted locations)",
        PermissionCategory.SALES,
    ),
    (
        Permission.EDIT_SALE,
        "Edit Sale",
        "Update sale status and record payments",
        PermissionCategory.SALES,
    ),
    (
        Permission.DELETE_SALE,
        "Delete Sale",
        "Delete sales that have no payments",
        PermissionCategory.SALES,
    ),
]


# -- VENDORS --

VENDOR_PERMISSIONS = [
    (
        Permission.VIEW_VENDORS,
        "View Vendors",
        "View vendor list",
        PermissionCategory.VENDORS,
    ),
    (
        Permission.CREATE_VENDOR,
        "Create Vendor",
        "Create new vendors",
        PermissionCategory.VENDORS,
    ),
    (
        Permission.EDIT_VENDOR,
        "Edit Vendor",
        "Edit vendor details",
        PermissionCategory.VENDORS,
    ),
    (
        Permission.DELETE_VENDOR,
        "Delete Vendor",
        "Delete vendors with no products",
        PermissionCategory.VENDORS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        Permission.VIEW_REPORTS,
        "View Reports",
        "View and execute reports and dashboards",
        PermissionCategory.REPORTS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        Permission.MANAGE_USERS,
        "Manage Users",
        "Create, edit and delete user accounts and roles",
        PermissionCategory.USERS,
    ),
]


# -- TENANT --

TENANT_PERMISSIONS = [
    (
        Permission.MANAGE_TENANT,
        "Manage Tenant",
        "Tenant administration: report definitions and dashboards",
        PermissionCategory.TENANT,
    ),
]


# Combined list of all permissions (preserves display ordering)
PERMISSION_DEFINITIONS = (
    CUSTOMER_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + VENDOR_PERMISSIONS
    + REPORT_PERMISSIONS
    + USER_PERMISSIONS
    + TENANT_PERMISSIONS
)
