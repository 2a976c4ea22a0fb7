# Overview: Flask API routes for sales and sale payments.

"""
Sales Routes

SECURITY:
- View operations require VIEW_SALES
- Create requires CREATE_SALE; header updates and payments require EDIT_SALE
- Delete requires DELETE_SALE

A sale is created atomically by SaleTransaction: customer check, product
checks, invoice number, line items and stock consumption either all happen
or none do.
"""

from flask import Blueprint, g, jsonify

from ..decorators import require_permission
from ..extensions import db
from ..permissions import Permission
from ..services import sales_service
from ..services.concurrency import run_with_retry
from ..services.sales_service import SaleTransaction
from .common import json_body, list_query_from_request


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_permission(Permission.VIEW_SALES)
def list_sales_route():
    """
    Query parameters: page, pageSize|limit, search (invoice, customer name/code),
    customerId, status, paymentStatus, startDate, endDate, totalMin/Max, sort, order.
    """
    query = list_query_from_request(
        filters=sales_service.SALE_FILTERS,
        ranges=sales_service.SALE_RANGES,
        date_range="sale_date",
    )
    page = sales_service.list_sales(db.session, g.tenant_id, query)
    return jsonify(page.to_dict())


@sales_bp.post("")
@require_permission(Permission.CREATE_SALE)
def create_sale_route():
    """
    Body:
    {
        "customerId": 1,
        "items": [{"productId": 1, "quantity": 2, "price": 10, "discount": 0,
                   "locationId": 1?, "batchNumber": "B1"?}],
        "saleDate"?, "notes"?, "status"?, "paymentStatus"?, "paymentDate"?
    }
    """
    data = json_body()
    transaction = SaleTransaction(db.session, g.tenant_id)
    sale = run_with_retry(db.session, lambda: transaction.create_sale(
        data.get("customerId", data.get("customer_id")),
        data.get("items"),
        sale_date=data.get("saleDate"),
        notes=data.get("notes"),
        status=data.get("status"),
        payment_status=data.get("paymentStatus"),
        payment_date=data.get("paymentDate"),
        created_by_user_id=g.current_user.id,
    ))
    return jsonify(sale.to_dict(include_items=True)), 201


@sales_bp.get("/<int:sale_id>")
@require_permission(Permission.VIEW_SALES)
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(db.session, g.tenant_id, sale_id)
    return jsonify(sale.to_dict(include_items=True))


@sales_bp.put("/<int:sale_id>")
@sales_bp.patch("/<int:sale_id>")
@require_permission(Permission.EDIT_SALE)
def update_sale_route(sale_id: int):
    sale = sales_service.update_sale(db.session, g.tenant_id, sale_id, json_body())
    return jsonify(sale.to_dict(include_items=True))


@sales_bp.delete("/<int:sale_id>")
@require_permission(Permission.DELETE_SALE)
def delete_sale_route(sale_id: int):
    sales_service.delete_sale(db.session, g.tenant_id, sale_id)
    return jsonify({"success": True})


@sales_bp.get("/<int:sale_id>/payments")
@require_permission(Permission.VIEW_SALES)
def list_payments_route(sale_id: int):
    sale = sales_service.get_sale(db.session, g.tenant_id, sale_id)
    return jsonify({"data": [p.to_dict() for p in sale.payments]})


@sales_bp.post("/<int:sale_id>/payments")
@require_permission(Permission.EDIT_SALE)
def record_payment_route(sale_id: int):
    """Body: {amount, method? (CASH|CHECK|CARD|TRANSFER|OTHER), reference?, paidAt?}"""
    payment = sales_service.record_payment(
        db.session,
        g.tenant_id,
        sale_id,
        json_body(),
        created_by_user_id=g.current_user.id,
    )
    sale = sales_service.get_sale(db.session, g.tenant_id, sale_id)
    return jsonify({"payment": payment.to_dict(), "sale": sale.to_dict()}), 201
