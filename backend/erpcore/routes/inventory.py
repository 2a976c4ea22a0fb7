# Overview: Flask API routes for stock records: listing, add, remove and transfer.

"""
Inventory Routes

SECURITY:
- Listing requires VIEW_INVENTORY
- add / remove / transfer require MANAGE_INVENTORY

Quantities change only through the InventoryLedger; a record that reaches
zero is deleted and the response carries {"depleted": true, ...} instead of
the record.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_permission
from ..errors import InvalidInputError
from ..extensions import db
from ..permissions import Permission
from ..serialization import to_decimal, to_number
from ..services.concurrency import run_with_retry
from ..services.inventory_ledger import DepletionNotice, InventoryLedger
from .common import bool_arg, json_body, list_query_from_request


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

INVENTORY_FILTERS = {
    "productId": "product_id",
    "locationId": "location_id",
    "batchNumber": "batch_number",
}


def _ledger() -> InventoryLedger:
    return InventoryLedger(db.session, g.tenant_id)


def _required(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise InvalidInputError(
            f"Missing required fields: {', '.join(missing)}",
            {"missingFields": missing},
        )


def _int_field(data: dict, field: str) -> int:
    value = data.get(field)
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer", {"field": field})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be an integer", {"field": field})


def _result_dict(result) -> dict:
    if isinstance(result, DepletionNotice):
        return result.to_dict()
    return result.to_dict(include_refs=True)


@inventory_bp.get("")
@require_permission(Permission.VIEW_INVENTORY)
def list_inventory_route():
    """
    Query parameters: page, pageSize|limit, search (product name, sku, batch),
    productId, locationId, batchNumber, category, lowStock, threshold,
    quantityMin/Max, sort, order.
    """
    query = list_query_from_request(
        filters=INVENTORY_FILTERS,
        ranges={"quantity": "quantity"},
    )
    threshold = request.args.get("threshold")
    if threshold not in (None, ""):
        try:
            threshold = to_decimal(threshold, field="threshold")
        except ValueError as exc:
            raise InvalidInputError(str(exc), {"field": "threshold"})
    else:
        threshold = None

    page = _ledger().list_records(
        query,
        low_stock=bool(bool_arg("lowStock")),
        threshold=threshold,
        category=request.args.get("category") or None,
    )
    return jsonify(page.to_dict(lambda record: record.to_dict(include_refs=True)))


@inventory_bp.post("/add")
@require_permission(Permission.MANAGE_INVENTORY)
def add_inventory_route():
    """Body: {productId, locationId, quantity, batchNumber?}"""
    data = json_body()
    _required(data, "productId", "locationId", "quantity")
    ledger = _ledger()
    record = run_with_retry(db.session, lambda: ledger.add(
        _int_field(data, "productId"),
        _int_field(data, "locationId"),
        data["quantity"],
        data.get("batchNumber"),
    ))
    db.session.refresh(record)
    return jsonify(record.to_dict(include_refs=True))


@inventory_bp.post("/remove")
@require_permission(Permission.MANAGE_INVENTORY)
def remove_inventory_route():
    """Body: {productId, locationId, quantity, batchNumber?}"""
    data = json_body()
    _required(data, "productId", "locationId", "quantity")
    ledger = _ledger()
    result = run_with_retry(db.session, lambda: ledger.remove(
        _int_field(data, "productId"),
        _int_field(data, "locationId"),
        data["quantity"],
        data.get("batchNumber"),
    ))
    return jsonify(_result_dict(result))


@inventory_bp.post("/transfer")
@require_permission(Permission.MANAGE_INVENTORY)
def transfer_inventory_route():
    """
    Body: {productId, sourceLocationId, destinationLocationId, quantity,
           sourceBatchNumber?, destinationBatchNumber?}
    """
    data = json_body()
    _required(data, "productId", "sourceLocationId", "destinationLocationId", "quantity")
    ledger = _ledger()
    result = run_with_retry(db.session, lambda: ledger.transfer(
        _int_field(data, "productId"),
        _int_field(data, "sourceLocationId"),
        _int_field(data, "destinationLocationId"),
        data["quantity"],
        data.get("sourceBatchNumber"),
        data.get("destinationBatchNumber"),
    ))
    current_app.logger.info("Inventory transfer by user %s", g.current_user.id)
    return jsonify({
        "source": _result_dict(result["source"]),
        "destination": _result_dict(result["destination"]),
        "transferQuantity": to_number(result["transferQuantity"]),
    })
