# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

"""
Customer Routes

SECURITY: All routes require authentication.
- View operations (list, get, metrics, credit recommendation) require VIEW_CUSTOMERS
- Create / update / delete require CREATE_CUSTOMER / EDIT_CUSTOMER / DELETE_CUSTOMER

Customers are scoped to the session tenant.
"""

from flask import Blueprint, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import customer_service
from .common import json_body, list_query_from_request


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_permission(Permission.VIEW_CUSTOMERS)
def list_customers_route():
    """
    Query parameters: page, pageSize|limit, search, city, state, paymentTerms,
    isActive, creditLimitMin, creditLimitMax, sort, order.
    """
    query = list_query_from_request(
        filters=customer_service.CUSTOMER_FILTERS,
        flags=customer_service.CUSTOMER_FLAGS,
        ranges=customer_service.CUSTOMER_RANGES,
    )
    page = customer_service.list_customers(db.session, g.tenant_id, query)
    return jsonify(page.to_dict())


@customers_bp.post("")
@require_permission(Permission.CREATE_CUSTOMER)
def create_customer_route():
    customer = customer_service.create_customer(db.session, g.tenant_id, json_body())
    return jsonify(customer.to_dict()), 201


@customers_bp.get("/<int:customer_id>")
@require_permission(Permission.VIEW_CUSTOMERS)
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(db.session, g.tenant_id, customer_id)
    return jsonify(customer.to_dict())


@customers_bp.put("/<int:customer_id>")
@customers_bp.patch("/<int:customer_id>")
@require_permission(Permission.EDIT_CUSTOMER)
def update_customer_route(customer_id: int):
    customer = customer_service.update_customer(db.session, g.tenant_id, customer_id, json_body())
    return jsonify(customer.to_dict())


@customers_bp.delete("/<int:customer_id>")
@require_permission(Permission.DELETE_CUSTOMER)
def delete_customer_route(customer_id: int):
    customer_service.delete_customer(db.session, g.tenant_id, customer_id)
    return jsonify({"success": True})


@customers_bp.get("/<int:customer_id>/metrics")
@require_permission(Permission.VIEW_CUSTOMERS)
def customer_metrics_route(customer_id: int):
    return jsonify(customer_service.customer_metrics(db.session, g.tenant_id, customer_id))


@customers_bp.get("/<int:customer_id>/credit-recommendation")
@require_permission(Permission.VIEW_CUSTOMERS)
def credit_recommendation_route(customer_id: int):
    return jsonify(customer_service.credit_recommendation(db.session, g.tenant_id, customer_id))
