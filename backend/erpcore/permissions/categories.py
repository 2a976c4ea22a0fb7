# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CUSTOMERS = "CUSTOMERS"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    VENDORS = "VENDORS"
    REPORTS = "REPORTS"
    USERS = "USERS"
    TENANT = "TENANT"
