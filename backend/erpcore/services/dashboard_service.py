# Overview: Dashboards and their widgets; system dashboards are read-only.

"""
Dashboard Service

MULTI-TENANT: Dashboards are tenant-scoped; widgets are reached only through
their dashboard, so they inherit its tenant.

SYSTEM DASHBOARDS: is_system_dashboard rows reject every mutation,
including widget add/update/delete (FORBIDDEN).

Updating a dashboard with a "widgets" list replaces all of its widgets in
the same unit of work as the header change.
"""

from __future__ import annotations

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models import Dashboard, DashboardWidget
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import unit_of_work
from .repository import ListQuery, Page, TenantScopedRepository


DASHBOARD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "is_active"}),
    required_on_create=frozenset({"name"}),
)

WIDGET_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "widget_type", "name", "config", "position_x", "position_y", "width", "height",
    }),
    required_on_create=frozenset({"widget_type", "name"}),
    non_negative_fields=frozenset({"position_x", "position_y"}),
)

DASHBOARD_FLAGS = {"isActive": "is_active", "isSystemDashboard": "is_system_dashboard"}

SYSTEM_DASHBOARD = {
    "name": "Overview",
    "description": "Sales, inventory and customer highlights",
    "widgets": [
        {"widgetType": "report", "name": "Sales (30 days)", "config": {"reportType": "SalesSummary", "groupBy": "day"},
         "positionX": 0, "positionY": 0, "width": 8, "height": 4},
        {"widgetType": "kpi", "name": "Inventory Value", "config": {"reportType": "InventorySummary", "metric": "totalValue"},
         "positionX": 8, "positionY": 0, "width": 4, "height": 2},
        {"widgetType": "kpi", "name": "Low Stock Items", "config": {"reportType": "InventorySummary", "metric": "lowStockItems"},
         "positionX": 8, "positionY": 2, "width": 4, "height": 2},
        {"widgetType": "table", "name": "Top Customers", "config": {"reportType": "CustomerAnalytics", "topCount": 5},
         "positionX": 0, "positionY": 4, "width": 12, "height": 4},
    ],
}


def dashboard_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        Dashboard,
        resource_type="dashboard",
        search_fields=("name", "description"),
        sortable=("id", "name", "created_at"),
        default_sort="name",
    )


def _require_mutable(dashboard: Dashboard) -> None:
    if dashboard.is_system_dashboard:
        raise ForbiddenError(
            "System dashboards cannot be modified or deleted",
            {"dashboardId": dashboard.id},
        )


def _check_size(patch: dict) -> None:
    for key in ("width", "height"):
        if key in patch and patch[key] is not None and patch[key] < 1:
            raise ValidationError(f"{key} must be at least 1", {"field": key})


def _build_widgets(raw) -> list[DashboardWidget]:
    if not isinstance(raw, list):
        raise ValidationError("widgets must be a list", {"field": "widgets"})
    widgets = []
    for item in raw:
        patch = validate_payload(model=DashboardWidget, payload=item, policy=WIDGET_POLICY, partial=False)
        _check_size(patch)
        widgets.append(DashboardWidget(**patch))
    return widgets


def list_dashboards(session, tenant_id: int, list_query: ListQuery) -> Page:
    return dashboard_repository(session, tenant_id).find_many(list_query)


def get_dashboard(session, tenant_id: int, dashboard_id: int) -> Dashboard:
    return dashboard_repository(session, tenant_id).get(dashboard_id)


def create_dashboard(session, tenant_id: int, payload: dict, *, created_by_user_id: int | None = None) -> Dashboard:
    data = dict(payload or {})
    raw_widgets = data.pop("widgets", None)
    patch = validate_payload(model=Dashboard, payload=data, policy=DASHBOARD_POLICY, partial=False)
    widgets = _build_widgets(raw_widgets) if raw_widgets is not None else []

    with unit_of_work(session):
        patch["created_by_user_id"] = created_by_user_id
        patch["is_system_dashboard"] = False
        dashboard = dashboard_repository(session, tenant_id).create(patch)
        dashboard.widgets = widgets
        session.flush()
    return dashboard


def update_dashboard(session, tenant_id: int, dashboard_id: int, payload: dict) -> Dashboard:
    data = dict(payload or {})
    raw_widgets = data.pop("widgets", None)
    patch = validate_payload(model=Dashboard, payload=data, policy=DASHBOARD_POLICY, partial=True)

    with unit_of_work(session):
        repo = dashboard_repository(session, tenant_id)
        _require_mutable(repo.get(dashboard_id))
        dashboard = repo.update(dashboard_id, patch)
        if raw_widgets is not None:
            dashboard.widgets = _build_widgets(raw_widgets)
            session.flush()
    return dashboard


def delete_dashboard(session, tenant_id: int, dashboard_id: int) -> None:
    with unit_of_work(session):
        repo = dashboard_repository(session, tenant_id)
        _require_mutable(repo.get(dashboard_id))
        repo.delete(dashboard_id)


# ---- widgets ----

def _mutable_dashboard(session, tenant_id: int, dashboard_id: int) -> Dashboard:
    dashboard = get_dashboard(session, tenant_id, dashboard_id)
    _require_mutable(dashboard)
    return dashboard


def _get_widget(session, dashboard: Dashboard, widget_id: int) -> DashboardWidget:
    widget = session.query(DashboardWidget).filter(
        DashboardWidget.id == widget_id,
        DashboardWidget.dashboard_id == dashboard.id,
    ).first()
    if widget is None:
        raise NotFoundError.for_resource("widget", widget_id)
    return widget


def add_widget(session, tenant_id: int, dashboard_id: int, payload: dict) -> DashboardWidget:
    patch = validate_payload(model=DashboardWidget, payload=payload, policy=WIDGET_POLICY, partial=False)
    _check_size(patch)
    with unit_of_work(session):
        dashboard = _mutable_dashboard(session, tenant_id, dashboard_id)
        widget = DashboardWidget(dashboard_id=dashboard.id, **patch)
        session.add(widget)
        session.flush()
    return widget


def update_widget(session, tenant_id: int, dashboard_id: int, widget_id: int, payload: dict) -> DashboardWidget:
    patch = validate_payload(model=DashboardWidget, payload=payload, policy=WIDGET_POLICY, partial=True)
    _check_size(patch)
    with unit_of_work(session):
        dashboard = _mutable_dashboard(session, tenant_id, dashboard_id)
        widget = _get_widget(session, dashboard, widget_id)
        for key, value in patch.items():
            setattr(widget, key, value)
    return widget


def delete_widget(session, tenant_id: int, dashboard_id: int, widget_id: int) -> None:
    with unit_of_work(session):
        dashboard = _mutable_dashboard(session, tenant_id, dashboard_id)
        session.delete(_get_widget(session, dashboard, widget_id))


def seed_system_dashboard(session, tenant_id: int) -> Dashboard | None:
    """Create the system overview dashboard for a tenant unless it exists."""
    with unit_of_work(session):
        exists = session.query(Dashboard.id).filter(
            Dashboard.tenant_id == tenant_id,
            Dashboard.is_system_dashboard.is_(True),
            Dashboard.name == SYSTEM_DASHBOARD["name"],
        ).first()
        if exists:
            return None
        dashboard = Dashboard(
            tenant_id=tenant_id,
            name=SYSTEM_DASHBOARD["name"],
            description=SYSTEM_DASHBOARD["description"],
            is_system_dashboard=True,
            is_active=True,
        )
        dashboard.widgets = _build_widgets(SYSTEM_DASHBOARD["widgets"])
        session.add(dashboard)
        session.flush()
    return dashboard
