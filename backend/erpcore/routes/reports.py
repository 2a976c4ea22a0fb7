# Overview: Flask API routes for report definitions, execution and execution history.

"""
Report Routes

SECURITY:
- Listing, viewing, executing and execution history require VIEW_REPORTS
- Creating, updating and deleting definitions require MANAGE_TENANT
- System reports cannot be modified or deleted
"""

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import report_service
from ..services.report_engine import ReportEngine
from .common import json_body, list_query_from_request


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("")
@require_permission(Permission.VIEW_REPORTS)
def list_reports_route():
    query = list_query_from_request(
        filters=report_service.REPORT_FILTERS,
        flags=report_service.REPORT_FLAGS,
    )
    page = report_service.list_reports(db.session, g.tenant_id, query)
    return jsonify(page.to_dict(lambda r: r.to_dict(include_parameters=True)))


@reports_bp.post("")
@require_permission(Permission.MANAGE_TENANT)
def create_report_route():
    report = report_service.create_report(
        db.session, g.tenant_id, json_body(), created_by_user_id=g.current_user.id
    )
    return jsonify(report.to_dict(include_parameters=True)), 201


@reports_bp.get("/<int:report_id>")
@require_permission(Permission.VIEW_REPORTS)
def get_report_route(report_id: int):
    report = report_service.get_report(db.session, g.tenant_id, report_id)
    return jsonify(report.to_dict(include_parameters=True))


@reports_bp.put("/<int:report_id>")
@reports_bp.patch("/<int:report_id>")
@require_permission(Permission.MANAGE_TENANT)
def update_report_route(report_id: int):
    report = report_service.update_report(db.session, g.tenant_id, report_id, json_body())
    return jsonify(report.to_dict(include_parameters=True))


@reports_bp.delete("/<int:report_id>")
@require_permission(Permission.MANAGE_TENANT)
def delete_report_route(report_id: int):
    report_service.delete_report(db.session, g.tenant_id, report_id)
    return jsonify({"success": True})


@reports_bp.post("/<int:report_id>/execute")
@require_permission(Permission.VIEW_REPORTS)
def execute_report_route(report_id: int):
    """Body: {"parameterValues": {...}}"""
    data = json_body()
    report = report_service.get_report(db.session, g.tenant_id, report_id, active_only=True)
    result = ReportEngine(db.session, g.tenant_id).execute(
        report,
        data.get("parameterValues") or {},
        user_id=g.current_user.id,
    )
    current_app.logger.info(
        "Report %s executed by user %s (execution %s)", report_id, g.current_user.id, result["executionId"]
    )
    return jsonify(result)


@reports_bp.get("/<int:report_id>/executions")
@require_permission(Permission.VIEW_REPORTS)
def list_executions_route(report_id: int):
    query = list_query_from_request()
    page = report_service.list_executions(db.session, g.tenant_id, report_id, query)
    return jsonify(page.to_dict())
