# Overview: Pytest coverage for tenant user management.

import pytest

from conftest import PASSWORD, auth_headers, get_auth_token
from erpcore.errors import InvalidInputError, ValidationError
from erpcore.models import ReportDefinition, SessionToken
from erpcore.services import dashboard_service, report_service, user_service
from erpcore.services.report_engine import ReportEngine
from erpcore.services.sales_service import SaleTransaction


class TestCreateUser:
    def test_create_defaults(self, client, admin_headers):
        resp = client.post("/api/users", json={
            "email": "New.Person@Acme.Test",
            "name": "New Person",
            "password": "S3cret!!",
        }, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.json["email"] == "new.person@acme.test"
        assert resp.json["role"] == "USER"
        assert "passwordHash" not in resp.json and "password_hash" not in resp.json

        token = get_auth_token(client, "ACME", "new.person@acme.test", "S3cret!!")
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 200

    def test_password_required(self, db_session, tenant_a):
        with pytest.raises(ValidationError) as exc:
            user_service.create_user(db_session, tenant_a.id, {"email": "x@acme.test"})
        assert exc.value.details == {"missingFields": ["password"]}

    def test_invalid_role(self, client, admin_headers):
        resp = client.post("/api/users", json={
            "email": "x@acme.test", "password": "pw", "role": "OWNER",
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "VALIDATION_ERROR"

    def test_role_case_insensitive(self, db_session, tenant_a):
        user = user_service.create_user(
            db_session, tenant_a.id, {"email": "m@acme.test", "password": "pw", "role": "manager"}, bcrypt_rounds=4
        )
        assert user.role == "MANAGER"

    def test_duplicate_email(self, client, admin_headers, admin_a):
        resp = client.post("/api/users", json={"email": "ADMIN@acme.test", "password": "pw"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "DUPLICATE_CODE"

    def test_manager_cannot_manage_users(self, client, manager_headers):
        assert client.get("/api/users", headers=manager_headers).status_code == 403
        assert client.post("/api/users", json={"email": "y@acme.test", "password": "pw"}, headers=manager_headers).status_code == 403


class TestUpdateUser:
    def test_deactivation_revokes_sessions(self, client, db_session, admin_headers, user_a, user_headers):
        assert client.get("/api/auth/me", headers=user_headers).status_code == 200

        resp = client.patch(f"/api/users/{user_a.id}", json={"isActive": False}, headers=admin_headers)

        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=user_headers).status_code == 401
        active = db_session.query(SessionToken).filter_by(user_id=user_a.id, is_revoked=False).count()
        assert active == 0

    def test_password_change_revokes_sessions(self, client, admin_headers, user_a, user_headers):
        client.put(f"/api/users/{user_a.id}", json={"password": "Changed1!"}, headers=admin_headers)

        assert client.get("/api/auth/me", headers=user_headers).status_code == 401
        login = client.post("/api/auth/login", json={
            "tenantCode": "ACME", "email": user_a.email, "password": PASSWORD,
        })
        assert login.status_code == 401
        get_auth_token(client, "ACME", user_a.email, "Changed1!")

    def test_rename_keeps_sessions(self, client, admin_headers, user_a, user_headers):
        client.patch(f"/api/users/{user_a.id}", json={"name": "Renamed"}, headers=admin_headers)
        resp = client.get("/api/auth/me", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["name"] == "Renamed"


class TestDeleteUser:
    def test_cannot_delete_self(self, db_session, tenant_a, admin_a):
        with pytest.raises(InvalidInputError):
            user_service.delete_user(db_session, tenant_a.id, admin_a.id, acting_user_id=admin_a.id)

    def test_cannot_delete_self_over_http(self, client, admin_headers, admin_a):
        resp = client.delete(f"/api/users/{admin_a.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_INPUT"

    def test_delete_user_with_sessions(self, client, db_session, admin_headers, user_a, user_headers):
        resp = client.delete(f"/api/users/{user_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.query(SessionToken).filter_by(user_id=user_a.id).count() == 0
        assert client.get("/api/auth/me", headers=user_headers).status_code == 401

    def test_delete_blocked_by_sales(self, client, db_session, tenant_a, admin_headers, user_a, customer_a, product_a):
        SaleTransaction(db_session, tenant_a.id).create_sale(
            customer_a.id,
            [{"productId": product_a.id, "quantity": 1, "price": 5}],
            created_by_user_id=user_a.id,
        )
        resp = client.delete(f"/api/users/{user_a.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["details"] == {"salesCount": 1}

    def test_delete_blocked_by_reporting_history(self, client, db_session, tenant_a, admin_headers, user_a):
        report_service.seed_system_reports(db_session, tenant_a.id)
        report = db_session.query(ReportDefinition).filter_by(
            tenant_id=tenant_a.id, report_type="InventorySummary"
        ).one()
        ReportEngine(db_session, tenant_a.id).execute(report, {}, user_id=user_a.id)
        dashboard_service.create_dashboard(db_session, tenant_a.id, {"name": "Mine"}, created_by_user_id=user_a.id)

        resp = client.delete(f"/api/users/{user_a.id}", headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "RESOURCE_IN_USE"
        assert resp.json["error"]["details"] == {"reportExecutionsCount": 1, "dashboardsCount": 1}
