# Overview: Service-layer operations for stock locations.

from __future__ import annotations

from ..models import InventoryRecord, Location, SaleItem
from ..validation import ModelValidationPolicy, validate_payload
from .repository import Dependent, TenantScopedRepository


LOCATION_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "address", "city", "state", "zip_code", "is_active"}),
    required_on_create=frozenset({"name"}),
)

LOCATION_FILTERS = {"city": "city", "state": "state"}
LOCATION_FLAGS = {"isActive": "is_active"}


def location_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        Location,
        resource_type="location",
        search_fields=("name", "address", "city"),
        unique_fields=("name",),
        dependents=(
            Dependent("inventoryCount", InventoryRecord, "location_id"),
            Dependent("saleItemsCount", SaleItem, "location_id"),
        ),
        sortable=("id", "name", "city", "created_at"),
        default_sort="name",
    )


def list_locations(session, tenant_id: int, list_query):
    return location_repository(session, tenant_id).find_many(list_query)


def get_location(session, tenant_id: int, location_id: int) -> Location:
    return location_repository(session, tenant_id).get(location_id)


def create_location(session, tenant_id: int, payload: dict) -> Location:
    patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
    return location_repository(session, tenant_id).create(patch)


def update_location(session, tenant_id: int, location_id: int, payload: dict) -> Location:
    patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=True)
    return location_repository(session, tenant_id).update(location_id, patch)


def delete_location(session, tenant_id: int, location_id: int) -> None:
    location_repository(session, tenant_id).delete(location_id)
