# Overview: Pytest coverage for the static role -> permission table.

import pytest

from erpcore.permissions import (
    PERMISSION_DEFINITIONS,
    Permission,
    Role,
    get_all_permission_codes,
    get_permission_definition,
    get_role_permissions,
    has_permission,
    validate_role,
)


class TestHasPermission:
    @pytest.mark.parametrize("permission", list(Permission))
    def test_admin_holds_every_permission(self, permission):
        assert has_permission(Role.ADMIN, permission)

    def test_accepts_string_values(self):
        assert has_permission("ADMIN", "MANAGE_USERS")
        assert has_permission("manager", "VIEW_SALES")

    @pytest.mark.parametrize("permission", [
        Permission.DELETE_CUSTOMER,
        Permission.DELETE_PRODUCT,
        Permission.DELETE_SALE,
        Permission.DELETE_VENDOR,
        Permission.MANAGE_USERS,
        Permission.MANAGE_TENANT,
    ])
    def test_manager_denied_deletes_and_administration(self, permission):
        assert not has_permission(Role.MANAGER, permission)

    def test_user_can_sell_but_not_edit(self):
        assert has_permission(Role.USER, Permission.CREATE_SALE)
        assert not has_permission(Role.USER, Permission.EDIT_SALE)
        assert not has_permission(Role.USER, Permission.MANAGE_INVENTORY)

    def test_unknown_role_or_permission_never_granted(self):
        assert not has_permission("SUPERUSER", Permission.VIEW_SALES)
        assert not has_permission(Role.ADMIN, "LAUNCH_MISSILES")
        assert not has_permission(None, Permission.VIEW_SALES)
        assert not has_permission(Role.ADMIN, None)


class TestRegistryLookups:
    def test_role_permissions_sorted_codes(self):
        codes = get_role_permissions(Role.USER)
        assert codes == sorted(codes)
        assert "CREATE_SALE" in codes
        assert "DELETE_SALE" not in codes

    def test_unknown_role_has_no_permissions(self):
        assert get_role_permissions("GHOST") == []

    def test_every_permission_has_a_definition(self):
        assert set(get_all_permission_codes()) == {p.value for p in Permission}
        assert len(PERMISSION_DEFINITIONS) == len(Permission)

    def test_permission_definition_shape(self):
        definition = get_permission_definition("VIEW_REPORTS")
        assert definition["code"] == "VIEW_REPORTS"
        assert definition["name"]
        assert definition["category"]
        assert get_permission_definition("NOPE") is None

    def test_validate_role(self):
        assert validate_role("manager")
        assert not validate_role("OWNER")
