# Overview: Service-layer operations for products and their images.

"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are tenant-scoped.
- vendor_id, when given, must name a vendor of the same tenant
- sku is unique within the tenant when present

Delete is blocked while inventory records or sale items reference the
product (details.inventoryCount / details.saleItemsCount).

IMAGES: at most one image per product is primary.
- the first image added becomes primary
- marking an image primary clears the previous primary
- deleting the primary promotes the oldest remaining image
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..models import InventoryImage, InventoryRecord, Product, SaleItem
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import unit_of_work
from .repository import Dependent, TenantScopedRepository
from .vendor_service import vendor_repository


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "vendor_id", "sku", "name", "description", "category", "strain_type",
        "wholesale_price", "retail_price", "is_active",
    }),
    required_on_create=frozenset({"name"}),
    non_negative_fields=frozenset({"wholesale_price", "retail_price"}),
)

IMAGE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"image_url", "is_primary"}),
    required_on_create=frozenset({"image_url"}),
)

PRODUCT_FILTERS = {
    "category": "category",
    "strainType": "strain_type",
    "vendorId": "vendor_id",
}
PRODUCT_FLAGS = {"isActive": "is_active"}
PRODUCT_RANGES = {"retailPrice": "retail_price", "wholesalePrice": "wholesale_price"}


def product_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        Product,
        resource_type="product",
        search_fields=("name", "sku", "description", "category"),
        unique_fields=("sku",),
        dependents=(
            Dependent("inventoryCount", InventoryRecord, "product_id"),
            Dependent("saleItemsCount", SaleItem, "product_id"),
        ),
        sortable=("id", "name", "sku", "category", "retail_price", "wholesale_price", "created_at"),
        default_sort="name",
    )


def _check_vendor(session, tenant_id: int, patch: dict) -> None:
    vendor_id = patch.get("vendor_id")
    if vendor_id is not None:
        vendor_repository(session, tenant_id).get(vendor_id)


def _normalize_sku(patch: dict) -> None:
    # Blank SKU means "no SKU"
    if "sku" in patch and patch["sku"] == "":
        patch["sku"] = None


def list_products(session, tenant_id: int, list_query):
    return product_repository(session, tenant_id).find_many(list_query)


def get_product(session, tenant_id: int, product_id: int) -> Product:
    return product_repository(session, tenant_id).get(product_id)


def create_product(session, tenant_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    _normalize_sku(patch)
    _check_vendor(session, tenant_id, patch)
    return product_repository(session, tenant_id).create(patch)


def update_product(session, tenant_id: int, product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    _normalize_sku(patch)
    _check_vendor(session, tenant_id, patch)
    return product_repository(session, tenant_id).update(product_id, patch)


def delete_product(session, tenant_id: int, product_id: int) -> None:
    product_repository(session, tenant_id).delete(product_id)


# ---- images ----

def _get_image(session, product: Product, image_id: int) -> InventoryImage:
    image = session.query(InventoryImage).filter(
        InventoryImage.id == image_id,
        InventoryImage.product_id == product.id,
    ).first()
    if image is None:
        raise NotFoundError.for_resource("image", image_id)
    return image


def _clear_primary(session, product_id: int, keep_id: int | None = None) -> None:
    q = session.query(InventoryImage).filter(
        InventoryImage.product_id == product_id,
        InventoryImage.is_primary.is_(True),
    )
    if keep_id is not None:
        q = q.filter(InventoryImage.id != keep_id)
    q.update({InventoryImage.is_primary: False}, synchronize_session="fetch")


def list_images(session, tenant_id: int, product_id: int) -> list[InventoryImage]:
    product = get_product(session, tenant_id, product_id)
    return (
        session.query(InventoryImage)
        .filter(InventoryImage.product_id == product.id)
        .order_by(InventoryImage.is_primary.desc(), InventoryImage.id.asc())
        .all()
    )


def add_image(session, tenant_id: int, product_id: int, payload: dict) -> InventoryImage:
    patch = validate_payload(model=InventoryImage, payload=payload, policy=IMAGE_POLICY, partial=False)
    with unit_of_work(session):
        product = get_product(session, tenant_id, product_id)
        has_images = session.query(
            session.query(InventoryImage).filter(InventoryImage.product_id == product.id).exists()
        ).scalar()

        is_primary = bool(patch.get("is_primary")) or not has_images
        if is_primary:
            _clear_primary(session, product.id)

        image = InventoryImage(product_id=product.id, image_url=patch["image_url"], is_primary=is_primary)
        session.add(image)
        session.flush()
    return image


def update_image(session, tenant_id: int, product_id: int, image_id: int, payload: dict) -> InventoryImage:
    patch = validate_payload(model=InventoryImage, payload=payload, policy=IMAGE_POLICY, partial=True)
    if patch.get("is_primary") is False:
        raise ValidationError(
            "Mark another image as primary instead of clearing this one",
            {"field": "isPrimary"},
        )
    with unit_of_work(session):
        product = get_product(session, tenant_id, product_id)
        image = _get_image(session, product, image_id)
        if "image_url" in patch:
            image.image_url = patch["image_url"]
        if patch.get("is_primary"):
            _clear_primary(session, product.id, keep_id=image.id)
            image.is_primary = True
    return image


def delete_image(session, tenant_id: int, product_id: int, image_id: int) -> None:
    with unit_of_work(session):
        product = get_product(session, tenant_id, product_id)
        image = _get_image(session, product, image_id)
        was_primary = image.is_primary
        session.delete(image)
        session.flush()

        if was_primary:
            oldest = (
                session.query(InventoryImage)
                .filter(InventoryImage.product_id == product.id)
                .order_by(InventoryImage.id.asc())
                .first()
            )
            if oldest is not None:
                oldest.is_primary = True
