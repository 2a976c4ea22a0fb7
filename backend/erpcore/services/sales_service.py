# Overview: Sale creation with invoice numbering and stock decrement, plus sale reads, updates and payments.

"""
Sales Service

SaleTransaction.create_sale runs as one unit of work:
1. validate input (customer, non-empty items, productId/quantity/price)
2. customer and every product must exist in the tenant
3. allocate the next invoice number from the tenant's InvoiceSequence
4. total = sum(price * quantity - discount)
5. persist Sale + SaleItems
6. for each item with a location hint, draw stock from the ledger; a missing
   record at that location is skipped, a record that reaches zero is deleted

Any failure rolls back all of it, including the invoice number.

INVOICE NUMBERS: the sequence row is advanced with
UPDATE ... SET next_number = next_number + 1, which serializes concurrent
sales of one tenant on that row. The row is seeded on first use from the
numeric suffix of the tenant's highest existing invoice number, or from
Config.INVOICE_START.
"""

from __future__ import annotations

import re
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..config import Config
from ..errors import InvalidInputError, NotFoundError, ResourceInUseError
from ..models import Customer, InvoiceSequence, Payment, Product, Sale, SaleItem
from ..models.sales import PAYMENT_STATUSES, SALE_STATUSES
from ..serialization import to_decimal
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import camel_to_snake, require_positive_quantity
from .concurrency import lock_for_update, unit_of_work
from .inventory_ledger import InventoryLedger, normalize_batch
from .repository import TenantScopedRepository


_TRAILING_NUMBER = re.compile(r"(\d+)$")

SALE_FILTERS = {
    "customerId": "customer_id",
    "status": "status",
    "paymentStatus": "payment_status",
}
SALE_RANGES = {"total": "total"}

PAYMENT_METHODS = ("CASH", "CHECK", "CARD", "TRANSFER", "OTHER")


def sale_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        Sale,
        resource_type="sale",
        search_fields=(Sale.invoice_number, Customer.name, Customer.code),
        joins=((Customer, Sale.customer_id == Customer.id),),
        sortable=("id", "invoice_number", "sale_date", "total", "status", "payment_status", "created_at"),
        default_sort="sale_date",
    )


def _parse_datetime(value, field: str):
    if value is None or value == "":
        return None
    try:
        parsed = parse_iso_datetime(value)
    except (TypeError, ValueError):
        parsed = None
    if parsed is None:
        raise InvalidInputError(f"{field} must be an ISO-8601 datetime", {"field": field})
    return parsed


def _parse_choice(value, choices, field: str, default=None):
    if value is None or value == "":
        return default
    normalized = str(value).strip().upper()
    if normalized not in choices:
        raise InvalidInputError(f"Invalid {field}: {value}", {"field": field, "allowed": list(choices)})
    return normalized


def _parse_money(value, field: str, *, default=None) -> Decimal:
    if value is None or value == "":
        if default is not None:
            return default
        raise InvalidInputError(f"{field} is required", {"field": field})
    try:
        amount = to_decimal(value, field=field)
    except ValueError as exc:
        raise InvalidInputError(str(exc), {"field": field})
    if amount < 0:
        raise InvalidInputError(f"{field} must be >= 0", {"field": field})
    return amount


def _parse_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer id", {"field": field})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be an integer id", {"field": field})


def _parse_item(raw, index: int) -> dict:
    if not isinstance(raw, dict):
        raise InvalidInputError(f"items[{index}] must be an object")
    item = {camel_to_snake(k): v for k, v in raw.items()}

    missing = [
        name for key, name in (("product_id", "productId"), ("quantity", "quantity"), ("price", "price"))
        if item.get(key) in (None, "")
    ]
    if missing:
        raise InvalidInputError(
            f"items[{index}] requires productId, quantity and price",
            {"index": index, "missingFields": missing},
        )

    parsed = {
        "product_id": _parse_id(item["product_id"], f"items[{index}].productId"),
        "quantity": require_positive_quantity(item["quantity"], field_name=f"items[{index}].quantity"),
        "price": _parse_money(item["price"], f"items[{index}].price"),
        "discount": _parse_money(item.get("discount"), f"items[{index}].discount", default=Decimal("0")),
        "location_id": (
            _parse_id(item["location_id"], f"items[{index}].locationId")
            if item.get("location_id") not in (None, "") else None
        ),
        "batch_number": normalize_batch(item.get("batch_number")),
        "notes": item.get("notes"),
    }
    return parsed


class SaleTransaction:
    def __init__(self, session, tenant_id: int, *, invoice_prefix: str | None = None):
        self.session = session
        self.tenant_id = tenant_id
        self.invoice_prefix = invoice_prefix or Config.INVOICE_PREFIX

    # ---- invoice numbers ----

    def _seed_number(self) -> int:
        highest = None
        rows = self.session.query(Sale.invoice_number).filter(Sale.tenant_id == self.tenant_id).all()
        for (invoice_number,) in rows:
            match = _TRAILING_NUMBER.search(invoice_number or "")
            if match:
                n = int(match.group(1))
                highest = n if highest is None else max(highest, n)
        return Config.INVOICE_START if highest is None else highest + 1

    def _advance_sequence(self) -> int | None:
        stmt = (
            update(InvoiceSequence)
            .where(
                InvoiceSequence.tenant_id == self.tenant_id,
                InvoiceSequence.prefix == self.invoice_prefix,
            )
            .values(next_number=InvoiceSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )
        if not self.session.execute(stmt).rowcount:
            return None
        current = (
            self.session.query(InvoiceSequence.next_number)
            .filter_by(tenant_id=self.tenant_id, prefix=self.invoice_prefix)
            .scalar()
        )
        return current - 1

    def next_invoice_number(self) -> str:
        """
        Allocate the next invoice number. Must run inside the sale's unit of work.

        The first sale of a tenant seeds the sequence row inside a savepoint;
        if a concurrent sale seeded it first, the insert fails on the unique
        constraint and the number is taken from the existing row instead.
        """
        number = self._advance_sequence()
        if number is None:
            number = self._seed_number()
            try:
                with self.session.begin_nested():
                    self.session.add(InvoiceSequence(
                        tenant_id=self.tenant_id,
                        prefix=self.invoice_prefix,
                        next_number=number + 1,
                    ))
            except IntegrityError:
                number = self._advance_sequence()
                if number is None:
                    raise
        return f"{self.invoice_prefix}-{number}"

    # ---- create ----

    def create_sale(
        self,
        customer_id,
        items,
        sale_date=None,
        notes=None,
        status=None,
        payment_status=None,
        payment_date=None,
        *,
        created_by_user_id: int | None = None,
    ) -> Sale:
        if customer_id in (None, ""):
            raise InvalidInputError("customerId is required", {"field": "customerId"})
        if not isinstance(items, list) or not items:
            raise InvalidInputError("At least one item is required", {"field": "items"})
        customer_id = _parse_id(customer_id, "customerId")

        lines = [_parse_item(raw, i) for i, raw in enumerate(items)]
        sale_date = _parse_datetime(sale_date, "saleDate") or utcnow()
        payment_date = _parse_datetime(payment_date, "paymentDate")
        status = _parse_choice(status, SALE_STATUSES, "status", default="PENDING")
        payment_status = _parse_choice(payment_status, PAYMENT_STATUSES, "paymentStatus", default="UNPAID")

        with unit_of_work(self.session):
            customer = self.session.query(Customer).filter(
                Customer.tenant_id == self.tenant_id,
                Customer.id == customer_id,
            ).first()
            if customer is None:
                raise NotFoundError.for_resource("customer", customer_id)

            product_ids = {line["product_id"] for line in lines}
            found = {
                pid for (pid,) in self.session.query(Product.id).filter(
                    Product.tenant_id == self.tenant_id,
                    Product.id.in_(product_ids),
                )
            }
            for line in lines:
                if line["product_id"] not in found:
                    raise NotFoundError.for_resource("product", line["product_id"])

            total = sum(
                (line["price"] * line["quantity"] - line["discount"] for line in lines),
                start=Decimal("0"),
            )

            sale = Sale(
                tenant_id=self.tenant_id,
                customer_id=customer.id,
                created_by_user_id=created_by_user_id,
                invoice_number=self.next_invoice_number(),
                sale_date=sale_date,
                total=total.quantize(Decimal("0.01")),
                status=status,
                payment_status=payment_status,
                payment_date=payment_date,
                notes=notes,
            )
            sale.items = [SaleItem(**line) for line in lines]
            self.session.add(sale)
            self.session.flush()

            ledger = InventoryLedger(self.session, self.tenant_id)
            for line in lines:
                if line["location_id"] is not None:
                    ledger.consume(
                        line["product_id"],
                        line["location_id"],
                        line["quantity"],
                        line["batch_number"],
                    )

        return sale


# ---- reads / header updates / payments ----

def list_sales(session, tenant_id: int, list_query):
    return sale_repository(session, tenant_id).find_many(list_query)


def get_sale(session, tenant_id: int, sale_id: int) -> Sale:
    return sale_repository(session, tenant_id).get(sale_id)


def update_sale(session, tenant_id: int, sale_id: int, payload: dict) -> Sale:
    """Only header fields change; items are fixed once the sale exists."""
    data = {camel_to_snake(k): v for k, v in (payload or {}).items()}
    allowed = {"status", "payment_status", "payment_date", "notes"}
    unknown = sorted(set(data) - allowed - {"id", "tenant_id"})
    if unknown:
        raise InvalidInputError(f"Field not allowed: {unknown[0]}", {"field": unknown[0]})

    with unit_of_work(session):
        sale = get_sale(session, tenant_id, sale_id)
        if "status" in data:
            sale.status = _parse_choice(data["status"], SALE_STATUSES, "status", default=sale.status)
        if "payment_status" in data:
            sale.payment_status = _parse_choice(
                data["payment_status"], PAYMENT_STATUSES, "paymentStatus", default=sale.payment_status
            )
        if "payment_date" in data:
            sale.payment_date = _parse_datetime(data["payment_date"], "paymentDate")
        if "notes" in data:
            sale.notes = data["notes"]
    return sale


def delete_sale(session, tenant_id: int, sale_id: int) -> None:
    with unit_of_work(session):
        sale = get_sale(session, tenant_id, sale_id)
        payments = session.query(Payment).filter(Payment.sale_id == sale.id).count()
        if payments:
            raise ResourceInUseError(
                "Cannot delete a sale with recorded payments",
                {"paymentsCount": payments},
            )
        session.delete(sale)


def record_payment(
    session,
    tenant_id: int,
    sale_id: int,
    payload: dict,
    *,
    created_by_user_id: int | None = None,
) -> Payment:
    """
    Record a payment and recompute the sale's payment status:
    PAID once payments cover the total, otherwise PARTIAL.
    """
    data = {camel_to_snake(k): v for k, v in (payload or {}).items()}
    amount = _parse_money(data.get("amount"), "amount")
    if amount <= 0:
        raise InvalidInputError("amount must be greater than 0", {"field": "amount"})
    method = _parse_choice(data.get("method"), PAYMENT_METHODS, "method", default="CASH")
    paid_at = _parse_datetime(data.get("paid_at"), "paidAt") or utcnow()

    with unit_of_work(session):
        sale = lock_for_update(sale_repository(session, tenant_id).query().filter(Sale.id == sale_id)).first()
        if sale is None:
            raise NotFoundError.for_resource("sale", sale_id)

        payment = Payment(
            sale_id=sale.id,
            amount=amount,
            method=method,
            reference=data.get("reference"),
            paid_at=paid_at,
            created_by_user_id=created_by_user_id,
        )
        session.add(payment)
        session.flush()

        paid = session.query(Payment.amount).filter(Payment.sale_id == sale.id).all()
        paid_total = sum((row.amount for row in paid), start=Decimal("0"))
        if paid_total >= sale.total:
            sale.payment_status = "PAID"
            sale.payment_date = paid_at
        else:
            sale.payment_status = "PARTIAL"
    return payment
