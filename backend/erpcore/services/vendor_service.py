# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Service

MULTI-TENANT: Vendors are scoped to tenants via tenant_id.
Vendor codes are unique within a tenant.

Products reference vendors; a vendor with products cannot be deleted
(RESOURCE_IN_USE, details.productsCount).
"""

from __future__ import annotations

from ..models import Product, Vendor
from ..validation import ModelValidationPolicy, validate_payload
from .repository import Dependent, TenantScopedRepository


VENDOR_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "code", "name", "contact_name", "email", "phone", "address", "city",
        "state", "zip_code", "notes", "is_active",
    }),
    required_on_create=frozenset({"code", "name"}),
)

VENDOR_FILTERS = {"city": "city", "state": "state"}
VENDOR_FLAGS = {"isActive": "is_active"}


def vendor_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        Vendor,
        resource_type="vendor",
        search_fields=("name", "code", "contact_name", "email"),
        unique_fields=("code",),
        dependents=(Dependent("productsCount", Product, "vendor_id"),),
        sortable=("id", "name", "code", "created_at"),
        default_sort="name",
    )


def list_vendors(session, tenant_id: int, list_query):
    return vendor_repository(session, tenant_id).find_many(list_query)


def get_vendor(session, tenant_id: int, vendor_id: int) -> Vendor:
    return vendor_repository(session, tenant_id).get(vendor_id)


def create_vendor(session, tenant_id: int, payload: dict) -> Vendor:
    patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)
    return vendor_repository(session, tenant_id).create(patch)


def update_vendor(session, tenant_id: int, vendor_id: int, payload: dict) -> Vendor:
    patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=True)
    return vendor_repository(session, tenant_id).update(vendor_id, patch)


def delete_vendor(session, tenant_id: int, vendor_id: int) -> None:
    vendor_repository(session, tenant_id).delete(vendor_id)
