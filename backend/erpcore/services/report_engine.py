# Overview: Executes parameterized report definitions against tenant data and records each run.

"""
ReportEngine

execute(report, parameter_values, user_id):
1. require every is_required parameter from the caller (MISSING_PARAMETERS,
   details.missingParameters); defaults only fill optional parameters
2. write a Running ReportExecutionHistory row and commit it
3. dispatch on report.report_type to a generator
4. finalize the row as Success, or Failed with the error message; the row is
   finalized even when the generator raises

Generators only read. They receive the session, the tenant id, the merged
parameters and "now", and return plain JSON-ready dicts. Period grouping
(day / week / month) is done in Python so it works on any database.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload

from ..errors import (
    InvalidInputError,
    MissingParametersError,
    NotFoundError,
    ReportExecutionError,
    ServiceError,
)
from ..models import (
    Customer,
    InventoryRecord,
    Payment,
    Product,
    ReportExecutionHistory,
    Sale,
    SaleItem,
    Vendor,
)
from ..models.reporting import EXECUTION_FAILED, EXECUTION_RUNNING, EXECUTION_SUCCESS
from ..serialization import to_number
from ..time_utils import days_ago, end_of_day, parse_iso_datetime, to_utc_z, utcnow
from .concurrency import unit_of_work
from .inventory_ledger import resolve_low_stock_threshold


logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30
SALES_GROUPINGS = ("day", "week", "month", "customer", "product", "category")
ANALYTICS_PERIODS = {"all": None, "30days": 30, "90days": 90, "year": 365}
DEFAULT_TOP_COUNT = 10
ZERO = Decimal("0")


# ---- parameter parsing ----

def _param_datetime(params: dict, name: str):
    value = params.get(name)
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be an ISO-8601 date", {"parameter": name})


def _param_bool(params: dict, name: str, default: bool = False) -> bool:
    value = params.get(name)
    if value in (None, ""):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _param_int(params: dict, name: str, default=None):
    value = params.get(name)
    if value in (None, ""):
        return default
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an integer", {"parameter": name})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be an integer", {"parameter": name})


def _date_range(params: dict, now):
    start = _param_datetime(params, "startDate") or days_ago(DEFAULT_RANGE_DAYS, now=now)
    end = _param_datetime(params, "endDate")
    end = end_of_day(end) if end is not None else now
    if start > end:
        raise InvalidInputError("startDate must not be after endDate", {"parameter": "startDate"})
    return start, end


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _average(total: Decimal, count: int) -> Decimal:
    return (total / count).quantize(Decimal("0.01")) if count else ZERO


# ---- generators ----

def _period_key(dt, group_by: str) -> str:
    if group_by == "day":
        return dt.date().isoformat()
    if group_by == "week":
        year, week, _ = dt.isocalendar()
        return f"{year}-W{week:02d}"
    return dt.strftime("%Y-%m")


def sales_summary(session, tenant_id: int, params: dict, now) -> dict:
    start, end = _date_range(params, now)
    group_by = (params.get("groupBy") or "day").lower()
    if group_by not in SALES_GROUPINGS:
        raise InvalidInputError(
            f"groupBy must be one of {', '.join(SALES_GROUPINGS)}",
            {"parameter": "groupBy"},
        )

    sales = (
        session.query(Sale)
        .options(
            joinedload(Sale.customer),
            selectinload(Sale.items).joinedload(SaleItem.product),
        )
        .filter(Sale.tenant_id == tenant_id, Sale.sale_date >= start, Sale.sale_date <= end)
        .order_by(Sale.sale_date.asc(), Sale.id.asc())
        .all()
    )

    groups: "OrderedDict[object, dict]" = OrderedDict()
    if group_by in ("day", "week", "month"):
        for sale in sales:
            key = _period_key(sale.sale_date, group_by)
            row = groups.setdefault(key, {group_by: key, "count": 0, "total": ZERO, "items": 0})
            row["count"] += 1
            row["total"] += sale.total
            row["items"] += len(sale.items)
        rows = sorted(groups.values(), key=lambda r: r[group_by])
    elif group_by == "customer":
        for sale in sales:
            row = groups.setdefault(sale.customer_id, {
                "customerId": sale.customer_id,
                "customerName": sale.customer.name,
                "customerCode": sale.customer.code,
                "count": 0,
                "total": ZERO,
            })
            row["count"] += 1
            row["total"] += sale.total
        rows = sorted(groups.values(), key=lambda r: r["total"], reverse=True)
    else:
        for sale in sales:
            for item in sale.items:
                if group_by == "product":
                    key = item.product_id
                    template = {"productId": item.product_id, "productName": item.product.name}
                else:
                    key = item.product.category or "uncategorized"
                    template = {"category": key}
                row = groups.setdefault(key, {**template, "quantity": ZERO, "revenue": ZERO, "sales": set()})
                row["quantity"] += item.quantity
                row["revenue"] += item.line_total
                row["sales"].add(sale.id)
        rows = []
        for row in sorted(groups.values(), key=lambda r: r["revenue"], reverse=True):
            row["count"] = len(row.pop("sales"))
            rows.append(row)

    total_revenue = sum((s.total for s in sales), start=ZERO)
    return {
        "summary": {
            "totalSales": len(sales),
            "totalRevenue": to_number(total_revenue),
            "averageOrderValue": to_number(_average(total_revenue, len(sales))),
            "startDate": to_utc_z(start),
            "endDate": to_utc_z(end),
            "groupBy": group_by,
        },
        "groupedData": [
            {k: to_number(v) for k, v in row.items()} for row in rows
        ],
    }


def inventory_summary(session, tenant_id: int, params: dict, now) -> dict:
    location_id = _param_int(params, "locationId")
    category = params.get("category") or None
    low_stock_only = _param_bool(params, "lowStock")
    threshold = resolve_low_stock_threshold(session, tenant_id, params.get("threshold"))

    q = (
        session.query(InventoryRecord)
        .join(Product, InventoryRecord.product_id == Product.id)
        .options(joinedload(InventoryRecord.product), joinedload(InventoryRecord.location))
        .filter(InventoryRecord.tenant_id == tenant_id)
    )
    if location_id is not None:
        q = q.filter(InventoryRecord.location_id == location_id)
    if category:
        q = q.filter(Product.category == category)
    if low_stock_only:
        q = q.filter(InventoryRecord.quantity <= threshold)
    records = q.order_by(Product.name.asc(), InventoryRecord.id.asc()).all()

    by_category: dict[str, dict] = {}
    items = []
    total_quantity = ZERO
    total_value = ZERO
    low_count = 0
    for record in records:
        price = record.product.wholesale_price or ZERO
        value = record.quantity * price
        is_low = record.quantity <= threshold
        low_count += is_low
        total_quantity += record.quantity
        total_value += value

        cat = record.product.category or "uncategorized"
        bucket = by_category.setdefault(cat, {"count": 0, "quantity": ZERO, "value": ZERO})
        bucket["count"] += 1
        bucket["quantity"] += record.quantity
        bucket["value"] += value

        items.append({
            "id": record.id,
            "productId": record.product_id,
            "productName": record.product.name,
            "category": record.product.category,
            "strainType": record.product.strain_type,
            "locationId": record.location_id,
            "location": record.location.name,
            "batchNumber": record.batch_number,
            "quantity": to_number(record.quantity),
            "value": to_number(value),
            "isLowStock": is_low,
        })

    return {
        "summary": {
            "totalItems": len(records),
            "totalQuantity": to_number(total_quantity),
            "totalValue": to_number(total_value),
            "lowStockItems": low_count,
            "lowStockThreshold": to_number(threshold),
        },
        "byCategory": {
            cat: {k: to_number(v) for k, v in bucket.items()}
            for cat, bucket in sorted(by_category.items())
        },
        "items": items,
    }


def customer_analytics(session, tenant_id: int, params: dict, now) -> dict:
    period = (params.get("period") or "all").lower()
    if period not in ANALYTICS_PERIODS:
        raise InvalidInputError(
            f"period must be one of {', '.join(ANALYTICS_PERIODS)}",
            {"parameter": "period"},
        )
    top_count = _param_int(params, "topCount", DEFAULT_TOP_COUNT)
    if top_count < 1:
        raise InvalidInputError("topCount must be at least 1", {"parameter": "topCount"})

    days = ANALYTICS_PERIODS[period]
    start = days_ago(days, now=now) if days is not None else None

    agg = session.query(
        Sale.customer_id,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total), 0),
        func.max(Sale.sale_date),
    ).filter(Sale.tenant_id == tenant_id, Sale.sale_date <= now)
    if start is not None:
        agg = agg.filter(Sale.sale_date >= start)
    stats = {cid: (count, _dec(total), last) for cid, count, total, last in agg.group_by(Sale.customer_id)}

    customers = session.query(Customer).filter(Customer.tenant_id == tenant_id).order_by(Customer.name.asc()).all()
    metrics = []
    for customer in customers:
        count, total, last = stats.get(customer.id, (0, ZERO, None))
        metrics.append({
            "id": customer.id,
            "name": customer.name,
            "code": customer.code,
            "email": customer.email,
            "phone": customer.phone,
            "totalSpent": total,
            "orderCount": count,
            "averageOrderValue": _average(total, count),
            "lastPurchaseDate": last,
            "daysSinceLastPurchase": (now - last).days if last else None,
        })

    total_revenue = sum((m["totalSpent"] for m in metrics), start=ZERO)
    total_orders = sum(m["orderCount"] for m in metrics)
    top = sorted(metrics, key=lambda m: m["totalSpent"], reverse=True)[:top_count]

    def _out(m: dict) -> dict:
        return {
            **m,
            "totalSpent": to_number(m["totalSpent"]),
            "averageOrderValue": to_number(m["averageOrderValue"]),
            "lastPurchaseDate": to_utc_z(m["lastPurchaseDate"]),
        }

    return {
        "summary": {
            "totalCustomers": len(customers),
            "totalRevenue": to_number(total_revenue),
            "totalOrders": total_orders,
            "averageRevenuePerCustomer": to_number(_average(total_revenue, len(customers))),
            "period": period,
            "startDate": to_utc_z(start),
            "endDate": to_utc_z(now),
        },
        "topCustomers": [_out(m) for m in top],
        "customers": [_out(m) for m in metrics],
    }


def vendor_performance(session, tenant_id: int, params: dict, now) -> dict:
    start, end = _date_range(params, now)

    product_counts = dict(
        session.query(Product.vendor_id, func.count(Product.id))
        .filter(Product.tenant_id == tenant_id, Product.vendor_id.isnot(None))
        .group_by(Product.vendor_id)
        .all()
    )
    line_total = SaleItem.price * SaleItem.quantity - SaleItem.discount
    sold = {
        vendor_id: (units, revenue, sales_count)
        for vendor_id, units, revenue, sales_count in (
            session.query(
                Product.vendor_id,
                func.coalesce(func.sum(SaleItem.quantity), 0),
                func.coalesce(func.sum(line_total), 0),
                func.count(func.distinct(Sale.id)),
            )
            .join(Product, SaleItem.product_id == Product.id)
            .join(Sale, SaleItem.sale_id == Sale.id)
            .filter(
                Sale.tenant_id == tenant_id,
                Product.vendor_id.isnot(None),
                Sale.sale_date >= start,
                Sale.sale_date <= end,
            )
            .group_by(Product.vendor_id)
            .all()
        )
    }

    vendors = session.query(Vendor).filter(Vendor.tenant_id == tenant_id).order_by(Vendor.name.asc()).all()
    rows = []
    for vendor in vendors:
        units, revenue, sales_count = sold.get(vendor.id, (0, 0, 0))
        rows.append({
            "vendorId": vendor.id,
            "vendorName": vendor.name,
            "vendorCode": vendor.code,
            "productCount": product_counts.get(vendor.id, 0),
            "unitsSold": _dec(units),
            "revenue": _dec(revenue).quantize(Decimal("0.01")),
            "salesCount": sales_count,
        })
    rows.sort(key=lambda r: r["revenue"], reverse=True)

    total_revenue = sum((r["revenue"] for r in rows), start=ZERO)
    return {
        "summary": {
            "totalVendors": len(vendors),
            "activeVendors": sum(1 for r in rows if r["salesCount"]),
            "totalRevenue": to_number(total_revenue),
            "startDate": to_utc_z(start),
            "endDate": to_utc_z(end),
        },
        "vendors": [{k: to_number(v) for k, v in r.items()} for r in rows],
    }


def financial_summary(session, tenant_id: int, params: dict, now) -> dict:
    """Cancelled sales are counted but excluded from every money figure."""
    start, end = _date_range(params, now)
    in_range = (
        Sale.tenant_id == tenant_id,
        Sale.sale_date >= start,
        Sale.sale_date <= end,
    )

    cancelled = session.query(func.count(Sale.id)).filter(*in_range, Sale.status == "CANCELLED").scalar()
    live = session.query(Sale).filter(*in_range, Sale.status != "CANCELLED")

    revenue = _dec(live.with_entities(func.coalesce(func.sum(Sale.total), 0)).scalar())
    discounts = _dec(
        session.query(func.coalesce(func.sum(SaleItem.discount), 0))
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(*in_range, Sale.status != "CANCELLED")
        .scalar()
    )
    collected = _dec(
        session.query(func.coalesce(func.sum(Payment.amount), 0))
        .join(Sale, Payment.sale_id == Sale.id)
        .filter(*in_range, Sale.status != "CANCELLED")
        .scalar()
    )
    by_payment = (
        live.with_entities(Sale.payment_status, func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0))
        .group_by(Sale.payment_status)
        .all()
    )
    sales_count = live.count()

    return {
        "summary": {
            "salesCount": sales_count,
            "cancelledSales": cancelled,
            "grossSales": to_number(revenue + discounts),
            "discounts": to_number(discounts),
            "revenue": to_number(revenue),
            "paymentsReceived": to_number(collected),
            "outstandingBalance": to_number(max(revenue - collected, ZERO)),
            "averageSaleValue": to_number(_average(revenue, sales_count)),
            "startDate": to_utc_z(start),
            "endDate": to_utc_z(end),
        },
        "byPaymentStatus": {
            status: {"count": count, "amount": to_number(_dec(amount))}
            for status, count, amount in by_payment
        },
    }


GENERATORS = {
    "SalesSummary": sales_summary,
    "InventorySummary": inventory_summary,
    "CustomerAnalytics": customer_analytics,
    "VendorPerformance": vendor_performance,
    "FinancialSummary": financial_summary,
}


class ReportEngine:
    def __init__(self, session, tenant_id: int, *, clock=utcnow):
        self.session = session
        self.tenant_id = tenant_id
        self.clock = clock

    def resolve_parameters(self, report, parameter_values: dict | None) -> dict:
        if parameter_values is not None and not isinstance(parameter_values, dict):
            raise InvalidInputError("parameterValues must be an object", {"field": "parameterValues"})
        provided = dict(parameter_values or {})

        merged = {}
        missing = []
        for param in report.parameters:
            value = provided.get(param.name)
            if value in (None, ""):
                if param.is_required:
                    missing.append(param.name)
                    continue
                value = param.default_value
            if value in (None, ""):
                continue
            merged[param.name] = value

        if missing:
            raise MissingParametersError(
                "Required parameters are missing",
                {"missingParameters": missing},
            )

        # Values for undeclared parameters pass through untouched
        for name, value in provided.items():
            merged.setdefault(name, value)
        return merged

    def _finish(self, execution_id: int, status: str, error: str | None = None) -> None:
        with unit_of_work(self.session):
            execution = self.session.get(ReportExecutionHistory, execution_id)
            execution.status = status
            execution.completed_at = self.clock()
            execution.error_message = error

    def execute(self, report, parameter_values: dict | None, user_id: int | None = None) -> dict:
        if report.tenant_id != self.tenant_id:
            raise NotFoundError.for_resource("report", report.id)

        params = self.resolve_parameters(report, parameter_values)

        with unit_of_work(self.session):
            execution = ReportExecutionHistory(
                report_id=report.id,
                tenant_id=self.tenant_id,
                user_id=user_id,
                status=EXECUTION_RUNNING,
                parameters=params,
                started_at=self.clock(),
            )
            self.session.add(execution)
        execution_id = execution.id

        generator = GENERATORS.get(report.report_type)
        try:
            if generator is None:
                raise ValueError(f"Unsupported report type: {report.report_type}")
            data = generator(self.session, self.tenant_id, params, self.clock())
        except ServiceError as exc:
            self.session.rollback()
            self._finish(execution_id, EXECUTION_FAILED, exc.message)
            raise
        except Exception as exc:
            self.session.rollback()
            logger.exception("Report %s (%s) failed", report.id, report.report_type)
            self._finish(execution_id, EXECUTION_FAILED, str(exc))
            raise ReportExecutionError(
                "Failed to execute report",
                {"error": str(exc), "executionId": execution_id},
            ) from exc

        self._finish(execution_id, EXECUTION_SUCCESS)
        logger.info("Report %s (%s) executed for tenant %s", report.id, report.report_type, self.tenant_id)

        return {
            "executionId": execution_id,
            "reportId": report.id,
            "reportName": report.name,
            "reportType": report.report_type,
            "executionTime": to_utc_z(self.clock()),
            "parameters": params,
            "data": data,
        }
