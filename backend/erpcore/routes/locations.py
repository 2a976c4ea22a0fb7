# Overview: Flask API routes for stock locations.

"""
Location Routes

Locations are part of inventory: viewing requires VIEW_INVENTORY, every
change requires MANAGE_INVENTORY.
"""

from flask import Blueprint, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import location_service
from .common import json_body, list_query_from_request


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
@require_permission(Permission.VIEW_INVENTORY)
def list_locations_route():
    query = list_query_from_request(
        filters=location_service.LOCATION_FILTERS,
        flags=location_service.LOCATION_FLAGS,
    )
    return jsonify(location_service.list_locations(db.session, g.tenant_id, query).to_dict())


@locations_bp.post("")
@require_permission(Permission.MANAGE_INVENTORY)
def create_location_route():
    location = location_service.create_location(db.session, g.tenant_id, json_body())
    return jsonify(location.to_dict()), 201


@locations_bp.get("/<int:location_id>")
@require_permission(Permission.VIEW_INVENTORY)
def get_location_route(location_id: int):
    return jsonify(location_service.get_location(db.session, g.tenant_id, location_id).to_dict())


@locations_bp.put("/<int:location_id>")
@locations_bp.patch("/<int:location_id>")
@require_permission(Permission.MANAGE_INVENTORY)
def update_location_route(location_id: int):
    location = location_service.update_location(db.session, g.tenant_id, location_id, json_body())
    return jsonify(location.to_dict())


@locations_bp.delete("/<int:location_id>")
@require_permission(Permission.MANAGE_INVENTORY)
def delete_location_route(location_id: int):
    location_service.delete_location(db.session, g.tenant_id, location_id)
    return jsonify({"success": True})
