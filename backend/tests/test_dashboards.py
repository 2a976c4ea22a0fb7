# Overview: Pytest coverage for dashboards, widgets and the system dashboard.

import pytest

from erpcore.errors import ForbiddenError, ValidationError
from erpcore.models import Dashboard, DashboardWidget
from erpcore.services import dashboard_service


def _widget(name, x=0, y=0, **extra):
    return {"widgetType": "kpi", "name": name, "positionX": x, "positionY": y, **extra}


@pytest.fixture
def system_dashboard(db_session, tenant_a):
    return dashboard_service.seed_system_dashboard(db_session, tenant_a.id)


class TestSystemDashboard:
    def test_seed_is_idempotent(self, db_session, tenant_a, system_dashboard):
        assert system_dashboard.is_system_dashboard is True
        assert len(system_dashboard.widgets) == 4
        assert dashboard_service.seed_system_dashboard(db_session, tenant_a.id) is None
        assert db_session.query(Dashboard).filter_by(tenant_id=tenant_a.id).count() == 1

    def test_cannot_update_or_delete(self, db_session, tenant_a, system_dashboard):
        with pytest.raises(ForbiddenError):
            dashboard_service.update_dashboard(db_session, tenant_a.id, system_dashboard.id, {"name": "Mine"})
        with pytest.raises(ForbiddenError):
            dashboard_service.delete_dashboard(db_session, tenant_a.id, system_dashboard.id)
        db_session.refresh(system_dashboard)
        assert system_dashboard.name == "Overview"

    def test_widgets_are_read_only(self, client, admin_headers, system_dashboard):
        widget_id = system_dashboard.widgets[0].id
        base = f"/api/dashboards/{system_dashboard.id}/widgets"

        assert client.post(base, json=_widget("Extra"), headers=admin_headers).status_code == 403
        assert client.put(f"{base}/{widget_id}", json={"width": 2}, headers=admin_headers).status_code == 403
        assert client.delete(f"{base}/{widget_id}", headers=admin_headers).status_code == 403

    def test_visible_to_users(self, client, user_headers, system_dashboard):
        resp = client.get(f"/api/dashboards/{system_dashboard.id}", headers=user_headers)
        assert resp.status_code == 200
        assert [w["positionY"] for w in resp.json["widgets"]] == [0, 0, 2, 4]


class TestDashboardCrud:
    def test_create_with_widgets(self, client, admin_headers, admin_a):
        resp = client.post("/api/dashboards", json={
            "name": "Ops",
            "widgets": [_widget("Top", 0, 0), _widget("Bottom", 0, 3, width=6, height=2)],
        }, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.json["isSystemDashboard"] is False
        assert resp.json["createdByUserId"] == admin_a.id
        assert [w["name"] for w in resp.json["widgets"]] == ["Top", "Bottom"]
        assert resp.json["widgets"][1]["width"] == 6

    def test_client_cannot_create_system_dashboard(self, client, admin_headers):
        resp = client.post("/api/dashboards", json={"name": "Sneaky", "isSystemDashboard": True}, headers=admin_headers)
        assert resp.status_code == 400

    def test_user_cannot_create(self, client, user_headers):
        assert client.post("/api/dashboards", json={"name": "X"}, headers=user_headers).status_code == 403

    def test_update_replaces_widgets(self, client, db_session, admin_headers):
        created = client.post("/api/dashboards", json={
            "name": "Ops",
            "widgets": [_widget("A"), _widget("B", 4)],
        }, headers=admin_headers).json

        resp = client.put(f"/api/dashboards/{created['id']}", json={
            "description": "reworked",
            "widgets": [_widget("C", 0, 1)],
        }, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["description"] == "reworked"
        assert [w["name"] for w in resp.json["widgets"]] == ["C"]
        assert db_session.query(DashboardWidget).filter_by(dashboard_id=created["id"]).count() == 1

    def test_invalid_widget_leaves_dashboard_untouched(self, client, db_session, admin_headers):
        created = client.post("/api/dashboards", json={"name": "Ops", "widgets": [_widget("A")]}, headers=admin_headers).json

        resp = client.put(f"/api/dashboards/{created['id']}", json={
            "name": "Renamed",
            "widgets": [_widget("Broken", width=0)],
        }, headers=admin_headers)

        assert resp.status_code == 400
        dashboard = db_session.get(Dashboard, created["id"])
        assert dashboard.name == "Ops"
        assert [w.name for w in dashboard.widgets] == ["A"]

    def test_delete_removes_widgets(self, client, db_session, admin_headers):
        created = client.post("/api/dashboards", json={"name": "Ops", "widgets": [_widget("A")]}, headers=admin_headers).json
        assert client.delete(f"/api/dashboards/{created['id']}", headers=admin_headers).json == {"success": True}
        assert db_session.query(DashboardWidget).count() == 0


class TestWidgets:
    @pytest.fixture
    def dashboard(self, db_session, tenant_a):
        return dashboard_service.create_dashboard(db_session, tenant_a.id, {"name": "Mine"})

    def test_add_update_delete(self, client, admin_headers, dashboard):
        base = f"/api/dashboards/{dashboard.id}/widgets"
        widget = client.post(base, json=_widget("Sales", config={"reportType": "SalesSummary"}), headers=admin_headers).json
        assert widget["config"] == {"reportType": "SalesSummary"}
        assert widget["width"] == 4 and widget["height"] == 3

        resp = client.patch(f"{base}/{widget['id']}", json={"positionX": 5}, headers=admin_headers)
        assert resp.json["positionX"] == 5

        assert client.delete(f"{base}/{widget['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/dashboards/{dashboard.id}", headers=admin_headers).json["widgets"] == []

    @pytest.mark.parametrize("payload", [
        _widget("Thin", width=0),
        _widget("Flat", height=-1),
        _widget("Offscreen", x=-2),
        {"name": "Untyped"},
    ])
    def test_invalid_widget(self, db_session, tenant_a, dashboard, payload):
        with pytest.raises(ValidationError):
            dashboard_service.add_widget(db_session, tenant_a.id, dashboard.id, payload)

    def test_widget_of_other_dashboard(self, client, db_session, tenant_a, admin_headers, dashboard):
        other = dashboard_service.create_dashboard(db_session, tenant_a.id, {"name": "Other"})
        widget = dashboard_service.add_widget(db_session, tenant_a.id, other.id, _widget("W"))

        resp = client.delete(f"/api/dashboards/{dashboard.id}/widgets/{widget.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_foreign_tenant_dashboard(self, client, admin_b_headers, dashboard):
        resp = client.post(f"/api/dashboards/{dashboard.id}/widgets", json=_widget("X"), headers=admin_b_headers)
        assert resp.status_code == 404
