from __future__ import annotations

from ..extensions import db
from ..serialization import to_number
from ..time_utils import to_utc_z


SALE_STATUSES = ("PENDING", "COMPLETED", "CANCELLED")
PAYMENT_STATUSES = ("UNPAID", "PARTIAL", "PAID")


class Sale(db.Model):
    """
    Sale header (invoice).

    LIFECYCLE:
    - status: PENDING -> COMPLETED, or CANCELLED
    - payment_status: UNPAID -> PARTIAL -> PAID (driven by recorded payments)

    invoice_number is unique per tenant and allocated from InvoiceSequence.
    total is computed once at creation from the line items.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "invoice_number", name="uq_sales_tenant_invoice"),
        db.Index("ix_sales_tenant_date", "tenant_id", "sale_date"),
        db.Index("ix_sales_tenant_customer", "tenant_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    sale_date = db.Column(db.DateTime, nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)
    payment_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    created_by = db.relationship("User", backref=db.backref("sales_created", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )
    payments = db.relationship(
        "Payment",
        backref="sale",
        lazy=True,
        order_by="Payment.paid_at",
    )

    def amount_paid(self):
        return sum((p.amount for p in self.payments), start=0)

    def to_dict(self, *, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "customerId": self.customer_id,
            "createdByUserId": self.created_by_user_id,
            "invoiceNumber": self.invoice_number,
            "saleDate": to_utc_z(self.sale_date),
            "total": to_number(self.total),
            "status": self.status,
            "paymentStatus": self.payment_status,
            "paymentDate": to_utc_z(self.payment_date),
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if self.customer is not None:
            data["customer"] = {
                "id": self.customer.id,
                "code": self.customer.code,
                "name": self.customer.name,
            }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
            data["amountPaid"] = to_number(self.amount_paid())
        return data


class SaleItem(db.Model):
    """
    Sale line item.

    location_id is a hint for where stock was pulled from; when set, the sale
    decrements inventory at that location. Line total is
    price * quantity - discount.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    batch_number = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    product = db.relationship("Product", backref=db.backref("sale_items", lazy=True))

    @property
    def line_total(self):
        return self.price * self.quantity - (self.discount or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "productId": self.product_id,
            "locationId": self.location_id,
            "batchNumber": self.batch_number,
            "quantity": to_number(self.quantity),
            "price": to_number(self.price),
            "discount": to_number(self.discount),
            "lineTotal": to_number(self.line_total),
            "notes": self.notes,
        }


class Payment(db.Model):
    """Payment received against a sale. Payments block sale deletion."""
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False, default="CASH")  # CASH, CHECK, CARD, TRANSFER
    reference = db.Column(db.String(128), nullable=True)
    paid_at = db.Column(db.DateTime, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "amount": to_number(self.amount),
            "method": self.method,
            "reference": self.reference,
            "paidAt": to_utc_z(self.paid_at),
            "createdByUserId": self.created_by_user_id,
        }


class InvoiceSequence(db.Model):
    """
    Per-tenant invoice counter.

    next_number is advanced with an atomic UPDATE so two concurrent sales in
    the same tenant never receive the same invoice number.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "prefix", name="uq_invoice_sequences_tenant_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    prefix = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False)
