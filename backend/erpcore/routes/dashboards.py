# Overview: Flask API routes for dashboards and their widgets.

from flask import Blueprint, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import dashboard_service
from .common import json_body, list_query_from_request


dashboards_bp = Blueprint("dashboards", __name__, url_prefix="/api/dashboards")


@dashboards_bp.get("")
@require_permission(Permission.VIEW_REPORTS)
def list_dashboards_route():
    query = list_query_from_request(flags=dashboard_service.DASHBOARD_FLAGS)
    page = dashboard_service.list_dashboards(db.session, g.tenant_id, query)
    return jsonify(page.to_dict())


@dashboards_bp.post("")
@require_permission(Permission.MANAGE_TENANT)
def create_dashboard_route():
    dashboard = dashboard_service.create_dashboard(
        db.session, g.tenant_id, json_body(), created_by_user_id=g.current_user.id
    )
    return jsonify(dashboard.to_dict(include_widgets=True)), 201


@dashboards_bp.get("/<int:dashboard_id>")
@require_permission(Permission.VIEW_REPORTS)
def get_dashboard_route(dashboard_id: int):
    dashboard = dashboard_service.get_dashboard(db.session, g.tenant_id, dashboard_id)
    return jsonify(dashboard.to_dict(include_widgets=True))


@dashboards_bp.put("/<int:dashboard_id>")
@dashboards_bp.patch("/<int:dashboard_id>")
@require_permission(Permission.MANAGE_TENANT)
def update_dashboard_route(dashboard_id: int):
    dashboard = dashboard_service.update_dashboard(db.session, g.tenant_id, dashboard_id, json_body())
    return jsonify(dashboard.to_dict(include_widgets=True))


@dashboards_bp.delete("/<int:dashboard_id>")
@require_permission(Permission.MANAGE_TENANT)
def delete_dashboard_route(dashboard_id: int):
    dashboard_service.delete_dashboard(db.session, g.tenant_id, dashboard_id)
    return jsonify({"success": True})


# ---- widgets ----

@dashboards_bp.post("/<int:dashboard_id>/widgets")
@require_permission(Permission.MANAGE_TENANT)
def add_widget_route(dashboard_id: int):
    widget = dashboard_service.add_widget(db.session, g.tenant_id, dashboard_id, json_body())
    return jsonify(widget.to_dict()), 201


@dashboards_bp.put("/<int:dashboard_id>/widgets/<int:widget_id>")
@dashboards_bp.patch("/<int:dashboard_id>/widgets/<int:widget_id>")
@require_permission(Permission.MANAGE_TENANT)
def update_widget_route(dashboard_id: int, widget_id: int):
    widget = dashboard_service.update_widget(db.session, g.tenant_id, dashboard_id, widget_id, json_body())
    return jsonify(widget.to_dict())


@dashboards_bp.delete("/<int:dashboard_id>/widgets/<int:widget_id>")
@require_permission(Permission.MANAGE_TENANT)
def delete_widget_route(dashboard_id: int, widget_id: int):
    dashboard_service.delete_widget(db.session, g.tenant_id, dashboard_id, widget_id)
    return jsonify({"success": True})
