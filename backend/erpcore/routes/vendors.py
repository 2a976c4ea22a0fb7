# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

SECURITY: All routes require authentication.
- View operations require VIEW_VENDORS
- Create / update / delete require CREATE_VENDOR / EDIT_VENDOR / DELETE_VENDOR

Vendors are scoped to the session tenant.
"""

from flask import Blueprint, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import vendor_service
from .common import json_body, list_query_from_request


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
@require_permission(Permission.VIEW_VENDORS)
def list_vendors_route():
    query = list_query_from_request(
        filters=vendor_service.VENDOR_FILTERS,
        flags=vendor_service.VENDOR_FLAGS,
    )
    return jsonify(vendor_service.list_vendors(db.session, g.tenant_id, query).to_dict())


@vendors_bp.post("")
@require_permission(Permission.CREATE_VENDOR)
def create_vendor_route():
    vendor = vendor_service.create_vendor(db.session, g.tenant_id, json_body())
    return jsonify(vendor.to_dict()), 201


@vendors_bp.get("/<int:vendor_id>")
@require_permission(Permission.VIEW_VENDORS)
def get_vendor_route(vendor_id: int):
    return jsonify(vendor_service.get_vendor(db.session, g.tenant_id, vendor_id).to_dict())


@vendors_bp.put("/<int:vendor_id>")
@vendors_bp.patch("/<int:vendor_id>")
@require_permission(Permission.EDIT_VENDOR)
def update_vendor_route(vendor_id: int):
    vendor = vendor_service.update_vendor(db.session, g.tenant_id, vendor_id, json_body())
    return jsonify(vendor.to_dict())


@vendors_bp.delete("/<int:vendor_id>")
@require_permission(Permission.DELETE_VENDOR)
def delete_vendor_route(vendor_id: int):
    vendor_service.delete_vendor(db.session, g.tenant_id, vendor_id)
    return jsonify({"success": True})
