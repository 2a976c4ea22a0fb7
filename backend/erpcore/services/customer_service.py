# Overview: Service-layer operations for customers; CRUD, sales metrics and credit recommendation.

"""
Customer Service

MULTI-TENANT: Every operation goes through a TenantScopedRepository bound to
the caller's tenant. Customer codes are unique within a tenant.

A customer with sales cannot be deleted (RESOURCE_IN_USE, details.salesCount).
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from sqlalchemy import func

from ..models import Customer, Sale
from ..serialization import to_number
from ..time_utils import to_utc_z, utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .repository import Dependent, TenantScopedRepository


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "code", "name", "contact_name", "email", "phone", "address", "city",
        "state", "zip_code", "credit_limit", "payment_terms", "notes", "is_active",
    }),
    required_on_create=frozenset({"code", "name"}),
    non_negative_fields=frozenset({"credit_limit"}),
)

CUSTOMER_FILTERS = {"city": "city", "state": "state", "paymentTerms": "payment_terms"}
CUSTOMER_FLAGS = {"isActive": "is_active"}
CUSTOMER_RANGES = {"creditLimit": "credit_limit"}

# Credit recommendation
CREDIT_MONTHS_OF_SPEND = 3
CREDIT_LIMIT_CAP = Decimal("100000.00")
RECENT_SALES_LIMIT = 5


def customer_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        Customer,
        resource_type="customer",
        search_fields=("name", "code", "contact_name", "email", "phone"),
        unique_fields=("code",),
        dependents=(Dependent("salesCount", Sale, "customer_id"),),
        sortable=("id", "name", "code", "city", "credit_limit", "created_at"),
        default_sort="name",
    )


def list_customers(session, tenant_id: int, list_query):
    return customer_repository(session, tenant_id).find_many(list_query)


def get_customer(session, tenant_id: int, customer_id: int) -> Customer:
    return customer_repository(session, tenant_id).get(customer_id)


def create_customer(session, tenant_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    return customer_repository(session, tenant_id).create(patch)


def update_customer(session, tenant_id: int, customer_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    return customer_repository(session, tenant_id).update(customer_id, patch)


def delete_customer(session, tenant_id: int, customer_id: int) -> None:
    customer_repository(session, tenant_id).delete(customer_id)


def _customer_sales(session, tenant_id: int, customer_id: int):
    return session.query(Sale).filter(
        Sale.tenant_id == tenant_id,
        Sale.customer_id == customer_id,
    )


def customer_metrics(session, tenant_id: int, customer_id: int) -> dict:
    """
    Sales metrics for one customer:
    - totalSales / totalAmount
    - salesByStatus: {status: count}
    - paymentStatus: {paymentStatus: {count, amount}}
    - recentSales: five most recent sales by sale date
    """
    customer = get_customer(session, tenant_id, customer_id)
    sales = _customer_sales(session, tenant_id, customer.id)

    total_sales = sales.count()
    total_amount = sales.with_entities(func.coalesce(func.sum(Sale.total), 0)).scalar()

    by_status = (
        sales.with_entities(Sale.status, func.count(Sale.id))
        .group_by(Sale.status)
        .all()
    )
    by_payment = (
        sales.with_entities(Sale.payment_status, func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0))
        .group_by(Sale.payment_status)
        .all()
    )
    recent = sales.order_by(Sale.sale_date.desc(), Sale.id.desc()).limit(RECENT_SALES_LIMIT).all()

    return {
        "customer": {"id": customer.id, "name": customer.name, "code": customer.code},
        "metrics": {
            "totalSales": total_sales,
            "totalAmount": to_number(total_amount),
            "salesByStatus": {status: count for status, count in by_status},
            "paymentStatus": {
                status: {"count": count, "amount": to_number(amount)}
                for status, count, amount in by_payment
            },
            "recentSales": [s.to_dict() for s in recent],
        },
    }


def _risk_level(score: int) -> str:
    if score < 25:
        return "Low"
    if score < 50:
        return "Medium"
    return "High"


def credit_recommendation(session, tenant_id: int, customer_id: int) -> dict:
    """
    Recommend a credit limit from the customer's sales history.

    recommendedCreditLimit = average monthly spend * 3, capped at
    CREDIT_LIMIT_CAP. The months of history run from the first sale to now
    (at least one). riskScore is the percentage of sales not yet paid
    (0 = every sale paid).
    """
    customer = get_customer(session, tenant_id, customer_id)
    sales = _customer_sales(session, tenant_id, customer.id)

    count, total, first_sale = sales.with_entities(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total), 0),
        func.min(Sale.sale_date),
    ).one()
    paid = sales.filter(Sale.payment_status == "PAID").count()

    now = utcnow()
    if count:
        months = max(Decimal(1), Decimal((now - first_sale) / timedelta(days=30)).quantize(Decimal("0.01")))
        average_monthly = (Decimal(total) / months).quantize(Decimal("0.01"))
        recommended = min(average_monthly * CREDIT_MONTHS_OF_SPEND, CREDIT_LIMIT_CAP)
        paid_pct = round(paid * 100 / count)
    else:
        average_monthly = Decimal("0.00")
        recommended = Decimal(customer.credit_limit or 0)
        paid_pct = 0

    risk_score = 100 - paid_pct if count else 100

    return {
        "customer": {"id": customer.id, "name": customer.name, "code": customer.code},
        "creditRecommendation": {
            "customerId": customer.id,
            "currentCreditLimit": to_number(customer.credit_limit),
            "recommendedCreditLimit": to_number(recommended.quantize(Decimal("0.01"))),
            "averageMonthlySpend": to_number(average_monthly),
            "riskScore": risk_score,
            "riskLevel": _risk_level(risk_score),
            "paymentHistory": {
                "salesCount": count,
                "paidSales": paid_pct,
                "unpaidSales": 100 - paid_pct if count else 0,
            },
            "lastUpdated": to_utc_z(now),
        },
    }
