# Overview: Flask API routes for product operations and product images.

"""
Product Routes

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY
- Create requires CREATE_PRODUCT; update and image changes require EDIT_PRODUCT
- Delete requires DELETE_PRODUCT
"""

from flask import Blueprint, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import product_service
from .common import json_body, list_query_from_request


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_permission(Permission.VIEW_INVENTORY)
def list_products_route():
    """
    Query parameters: page, pageSize|limit, search, category, strainType,
    vendorId, isActive, retailPriceMin/Max, wholesalePriceMin/Max, sort, order.
    """
    query = list_query_from_request(
        filters=product_service.PRODUCT_FILTERS,
        flags=product_service.PRODUCT_FLAGS,
        ranges=product_service.PRODUCT_RANGES,
    )
    page = product_service.list_products(db.session, g.tenant_id, query)
    return jsonify(page.to_dict())


@products_bp.post("")
@require_permission(Permission.CREATE_PRODUCT)
def create_product_route():
    product = product_service.create_product(db.session, g.tenant_id, json_body())
    return jsonify(product.to_dict(include_images=True)), 201


@products_bp.get("/<int:product_id>")
@require_permission(Permission.VIEW_INVENTORY)
def get_product_route(product_id: int):
    product = product_service.get_product(db.session, g.tenant_id, product_id)
    data = product.to_dict(include_images=True)
    data["inventory"] = [r.to_dict() for r in product.inventory_records]
    return jsonify(data)


@products_bp.put("/<int:product_id>")
@products_bp.patch("/<int:product_id>")
@require_permission(Permission.EDIT_PRODUCT)
def update_product_route(product_id: int):
    product = product_service.update_product(db.session, g.tenant_id, product_id, json_body())
    return jsonify(product.to_dict(include_images=True))


@products_bp.delete("/<int:product_id>")
@require_permission(Permission.DELETE_PRODUCT)
def delete_product_route(product_id: int):
    product_service.delete_product(db.session, g.tenant_id, product_id)
    return jsonify({"success": True})


# ---- images ----

@products_bp.get("/<int:product_id>/images")
@require_permission(Permission.VIEW_INVENTORY)
def list_images_route(product_id: int):
    images = product_service.list_images(db.session, g.tenant_id, product_id)
    return jsonify({"data": [i.to_dict() for i in images]})


@products_bp.post("/<int:product_id>/images")
@require_permission(Permission.EDIT_PRODUCT)
def add_image_route(product_id: int):
    image = product_service.add_image(db.session, g.tenant_id, product_id, json_body())
    return jsonify(image.to_dict()), 201


@products_bp.put("/<int:product_id>/images/<int:image_id>")
@products_bp.patch("/<int:product_id>/images/<int:image_id>")
@require_permission(Permission.EDIT_PRODUCT)
def update_image_route(product_id: int, image_id: int):
    image = product_service.update_image(db.session, g.tenant_id, product_id, image_id, json_body())
    return jsonify(image.to_dict())


@products_bp.delete("/<int:product_id>/images/<int:image_id>")
@require_permission(Permission.EDIT_PRODUCT)
def delete_image_route(product_id: int, image_id: int):
    product_service.delete_image(db.session, g.tenant_id, product_id, image_id)
    return jsonify({"success": True})
