# Overview: Pytest coverage for customer CRUD rules, metrics and credit recommendations.

from decimal import Decimal

import pytest

from erpcore.services import customer_service
from erpcore.services.sales_service import SaleTransaction


@pytest.fixture
def sale_for(db_session, tenant_a, product_a):
    def make(customer, price, payment_status="UNPAID", status=None):
        return SaleTransaction(db_session, tenant_a.id).create_sale(
            customer.id,
            [{"productId": product_a.id, "quantity": 1, "price": price}],
            payment_status=payment_status,
            status=status,
        )
    return make


class TestCustomerCrud:
    def test_create_and_get(self, client, manager_headers):
        resp = client.post("/api/customers", json={
            "code": "C-100",
            "name": "Green Leaf",
            "creditLimit": "2500.50",
            "paymentTerms": "NET30",
        }, headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json["creditLimit"] == 2500.5

        resp = client.get(f"/api/customers/{resp.json['id']}", headers=manager_headers)
        assert resp.json["paymentTerms"] == "NET30"

    def test_required_fields(self, client, manager_headers):
        resp = client.post("/api/customers", json={"name": "No Code"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "VALIDATION_ERROR"

    def test_negative_credit_limit_rejected(self, client, manager_headers):
        resp = client.post(
            "/api/customers",
            json={"code": "C-1", "name": "X", "creditLimit": -5},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_body_must_be_object(self, client, manager_headers):
        resp = client.post("/api/customers", json=["code"], headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_INPUT"

    def test_delete_blocked_by_sales(self, client, admin_headers, customer_a, sale_for):
        sale_for(customer_a, 10)
        sale_for(customer_a, 20)

        resp = client.delete(f"/api/customers/{customer_a.id}", headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "RESOURCE_IN_USE"
        assert resp.json["error"]["details"] == {"salesCount": 2}

    def test_delete_without_sales(self, client, admin_headers, customer_a):
        resp = client.delete(f"/api/customers/{customer_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json == {"success": True}
        assert client.get(f"/api/customers/{customer_a.id}", headers=admin_headers).status_code == 404

    def test_unknown_customer(self, client, admin_headers, db_session):
        resp = client.get("/api/customers/424242", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json["error"]["details"] == {"resourceType": "customer", "resourceId": 424242}


class TestCustomerMetrics:
    def test_metrics(self, db_session, tenant_a, customer_a, sale_for):
        sale_for(customer_a, 10, payment_status="PAID", status="COMPLETED")
        sale_for(customer_a, 30)

        data = customer_service.customer_metrics(db_session, tenant_a.id, customer_a.id)["metrics"]

        assert data["totalSales"] == 2
        assert data["totalAmount"] == 40
        assert data["salesByStatus"] == {"COMPLETED": 1, "PENDING": 1}
        assert data["paymentStatus"]["PAID"] == {"count": 1, "amount": 10}
        assert len(data["recentSales"]) == 2

    def test_metrics_route(self, client, user_headers, customer_a):
        resp = client.get(f"/api/customers/{customer_a.id}/metrics", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json["metrics"]["totalSales"] == 0
        assert resp.json["metrics"]["recentSales"] == []


class TestCreditRecommendation:
    def test_no_history_keeps_current_limit(self, db_session, tenant_a, customer_a):
        customer_a.credit_limit = Decimal("500")
        db_session.commit()

        rec = customer_service.credit_recommendation(db_session, tenant_a.id, customer_a.id)["creditRecommendation"]

        assert rec["recommendedCreditLimit"] == 500
        assert rec["riskScore"] == 100
        assert rec["riskLevel"] == "High"

    def test_recent_spend_tripled(self, db_session, tenant_a, customer_a, sale_for):
        sale_for(customer_a, 100, payment_status="PAID")
        sale_for(customer_a, 200, payment_status="PAID")
        sale_for(customer_a, 300, payment_status="PAID")
        sale_for(customer_a, 400)

        rec = customer_service.credit_recommendation(db_session, tenant_a.id, customer_a.id)["creditRecommendation"]

        # One month of history: 1000 * 3
        assert rec["averageMonthlySpend"] == 1000
        assert rec["recommendedCreditLimit"] == 3000
        assert rec["riskScore"] == 25
        assert rec["riskLevel"] == "Medium"
        assert rec["paymentHistory"] == {"salesCount": 4, "paidSales": 75, "unpaidSales": 25}

    def test_recommendation_is_capped(self, db_session, tenant_a, customer_a, sale_for):
        sale_for(customer_a, 90000, payment_status="PAID")
        rec = customer_service.credit_recommendation(db_session, tenant_a.id, customer_a.id)["creditRecommendation"]
        assert rec["recommendedCreditLimit"] == 100000
        assert rec["riskLevel"] == "Low"
