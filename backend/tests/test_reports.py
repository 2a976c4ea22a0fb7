# Overview: Pytest coverage for report definitions, execution and execution history.

from datetime import datetime

import pytest

from erpcore.errors import MissingParametersError, ReportExecutionError
from erpcore.models import ReportDefinition, ReportExecutionHistory
from erpcore.services import report_engine, report_service
from erpcore.services.inventory_ledger import InventoryLedger
from erpcore.services.report_engine import ReportEngine
from erpcore.services.sales_service import SaleTransaction


@pytest.fixture
def system_reports(db_session, tenant_a):
    report_service.seed_system_reports(db_session, tenant_a.id)
    return {r.report_type: r for r in db_session.query(ReportDefinition).filter_by(tenant_id=tenant_a.id)}


@pytest.fixture
def custom_report(db_session, tenant_a):
    return report_service.create_report(db_session, tenant_a.id, {
        "name": "Range Sales",
        "reportType": "SalesSummary",
        "parameters": [
            {"name": "startDate", "type": "date", "isRequired": True},
            {"name": "groupBy", "type": "select", "defaultValue": "month"},
        ],
    })


@pytest.fixture
def two_sales(db_session, tenant_a, customer_a, product_a):
    tx = SaleTransaction(db_session, tenant_a.id)
    tx.create_sale(customer_a.id, [{"productId": product_a.id, "quantity": 2, "price": 10}])
    tx.create_sale(customer_a.id, [{"productId": product_a.id, "quantity": 1, "price": 15}])


def _history(db_session, report):
    return db_session.query(ReportExecutionHistory).filter_by(report_id=report.id).all()


class TestSeeding:
    def test_seed_is_idempotent(self, db_session, tenant_a):
        first = report_service.seed_system_reports(db_session, tenant_a.id)
        second = report_service.seed_system_reports(db_session, tenant_a.id)
        assert len(first) == 5
        assert second == []

    def test_system_reports_are_protected(self, client, admin_headers, system_reports):
        report = system_reports["SalesSummary"]
        resp = client.put(f"/api/reports/{report.id}", json={"name": "Mine"}, headers=admin_headers)
        assert resp.status_code == 403
        resp = client.delete(f"/api/reports/{report.id}", headers=admin_headers)
        assert resp.status_code == 403


class TestParameters:
    def test_missing_required_parameter(self, db_session, tenant_a, custom_report):
        engine = ReportEngine(db_session, tenant_a.id)
        with pytest.raises(MissingParametersError) as exc:
            engine.execute(custom_report, {})
        assert exc.value.details == {"missingParameters": ["startDate"]}
        assert _history(db_session, custom_report) == []

    def test_default_does_not_satisfy_required_parameter(self, db_session, tenant_a):
        report = report_service.create_report(db_session, tenant_a.id, {
            "name": "Since Date",
            "reportType": "SalesSummary",
            "parameters": [{"name": "startDate", "type": "date", "isRequired": True, "defaultValue": "2026-01-01"}],
        })
        with pytest.raises(MissingParametersError) as exc:
            ReportEngine(db_session, tenant_a.id).resolve_parameters(report, {})
        assert exc.value.details == {"missingParameters": ["startDate"]}

    def test_defaults_applied(self, db_session, tenant_a, custom_report):
        params = ReportEngine(db_session, tenant_a.id).resolve_parameters(
            custom_report, {"startDate": "2026-01-01", "extra": 1}
        )
        assert params == {"startDate": "2026-01-01", "groupBy": "month", "extra": 1}

    def test_missing_parameters_over_http(self, client, db_session, admin_headers, custom_report):
        resp = client.post(f"/api/reports/{custom_report.id}/execute", json={}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "MISSING_PARAMETERS"
        assert resp.json["error"]["details"]["missingParameters"] == ["startDate"]
        statuses = [h.status for h in _history(db_session, custom_report)]
        assert "Success" not in statuses


class TestExecution:
    def test_success_recorded(self, db_session, tenant_a, system_reports, two_sales):
        report = system_reports["SalesSummary"]
        result = ReportEngine(db_session, tenant_a.id).execute(report, {"groupBy": "customer"})

        assert result["reportType"] == "SalesSummary"
        assert result["data"]["summary"]["totalSales"] == 2
        assert result["data"]["summary"]["totalRevenue"] == 35
        assert result["data"]["groupedData"][0]["count"] == 2

        history = _history(db_session, report)
        assert [h.status for h in history] == ["Success"]
        assert history[0].completed_at is not None
        assert history[0].id == result["executionId"]

    def test_unexpected_failure_recorded(self, db_session, tenant_a, system_reports, monkeypatch):
        def boom(*args):
            raise RuntimeError("disk on fire")

        monkeypatch.setitem(report_engine.GENERATORS, "SalesSummary", boom)
        report = system_reports["SalesSummary"]

        with pytest.raises(ReportExecutionError) as exc:
            ReportEngine(db_session, tenant_a.id).execute(report, {})

        history = _history(db_session, report)
        assert [h.status for h in history] == ["Failed"]
        assert history[0].error_message == "disk on fire"
        assert exc.value.details["executionId"] == history[0].id

    def test_bad_parameter_value_recorded_as_failed(self, client, db_session, admin_headers, system_reports):
        report = system_reports["SalesSummary"]
        resp = client.post(
            f"/api/reports/{report.id}/execute",
            json={"parameterValues": {"groupBy": "hour"}},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_INPUT"
        assert [h.status for h in _history(db_session, report)] == ["Failed"]

    def test_failure_over_http_is_500(self, client, admin_headers, system_reports, monkeypatch):
        monkeypatch.setitem(report_engine.GENERATORS, "FinancialSummary", lambda *a: 1 / 0)
        report = system_reports["FinancialSummary"]
        resp = client.post(f"/api/reports/{report.id}/execute", json={}, headers=admin_headers)
        assert resp.status_code == 500
        assert resp.json["error"]["code"] == "REPORT_EXECUTION_FAILED"

    def test_inactive_report_not_executable(self, client, db_session, admin_headers, custom_report):
        custom_report.is_active = False
        db_session.commit()
        resp = client.post(
            f"/api/reports/{custom_report.id}/execute",
            json={"parameterValues": {"startDate": "2026-01-01"}},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    def test_executions_listing(self, client, user_headers, system_reports, two_sales):
        report = system_reports["FinancialSummary"]
        for _ in range(2):
            assert client.post(f"/api/reports/{report.id}/execute", json={}, headers=user_headers).status_code == 200
        resp = client.get(f"/api/reports/{report.id}/executions", headers=user_headers)
        assert resp.json["pagination"]["total"] == 2


class TestGenerators:
    NOW = datetime(2026, 3, 15, 12, 0, 0)

    def test_period_keys(self):
        dt = datetime(2026, 1, 1)
        assert report_engine._period_key(dt, "day") == "2026-01-01"
        assert report_engine._period_key(dt, "week") == "2026-W01"
        assert report_engine._period_key(dt, "month") == "2026-01"

    def test_financial_summary_excludes_cancelled(self, db_session, tenant_a, customer_a, product_a):
        tx = SaleTransaction(db_session, tenant_a.id)
        line = [{"productId": product_a.id, "quantity": 1, "price": 10}]
        tx.create_sale(customer_a.id, line, sale_date="2026-03-10")
        tx.create_sale(customer_a.id, line, sale_date="2026-03-11", status="CANCELLED")

        data = report_engine.financial_summary(db_session, tenant_a.id, {}, self.NOW)

        assert data["summary"]["salesCount"] == 1
        assert data["summary"]["cancelledSales"] == 1
        assert data["summary"]["revenue"] == 10

    def test_sales_summary_by_month(self, db_session, tenant_a, customer_a, product_a):
        tx = SaleTransaction(db_session, tenant_a.id)
        line = [{"productId": product_a.id, "quantity": 1, "price": 10}]
        tx.create_sale(customer_a.id, line, sale_date="2026-02-20")
        tx.create_sale(customer_a.id, line, sale_date="2026-03-01")
        tx.create_sale(customer_a.id, line, sale_date="2026-03-02")

        data = report_engine.sales_summary(
            db_session, tenant_a.id, {"startDate": "2026-02-01", "groupBy": "month"}, self.NOW
        )

        assert [(g["month"], g["count"]) for g in data["groupedData"]] == [("2026-02", 1), ("2026-03", 2)]

    def test_inventory_summary(self, db_session, tenant_a, product_a, location_a):
        InventoryLedger(db_session, tenant_a.id).add(product_a.id, location_a.id, 5)

        data = report_engine.inventory_summary(db_session, tenant_a.id, {"lowStock": "true"}, self.NOW)

        assert data["summary"]["totalItems"] == 1
        assert data["summary"]["totalValue"] == 20
        assert data["byCategory"]["Flower"]["quantity"] == 5
        assert data["items"][0]["isLowStock"] is True


class TestReportRoutes:
    def test_manager_cannot_create(self, client, manager_headers):
        resp = client.post("/api/reports", json={"name": "X", "reportType": "SalesSummary"}, headers=manager_headers)
        assert resp.status_code == 403

    def test_create_update_delete(self, client, admin_headers):
        resp = client.post("/api/reports", json={
            "name": "Weekly",
            "reportType": "SalesSummary",
            "parameters": [{"name": "groupBy", "type": "select", "defaultValue": "week"}],
        }, headers=admin_headers)
        assert resp.status_code == 201
        report_id = resp.json["id"]
        assert resp.json["parameters"][0]["name"] == "groupBy"

        resp = client.put(f"/api/reports/{report_id}", json={
            "parameters": [{"name": "groupBy", "type": "select", "defaultValue": "day"}],
        }, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["parameters"][0]["defaultValue"] == "day"

        assert client.delete(f"/api/reports/{report_id}", headers=admin_headers).status_code == 200

    def test_invalid_report_type(self, client, admin_headers):
        resp = client.post("/api/reports", json={"name": "X", "reportType": "Astrology"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "VALIDATION_ERROR"
