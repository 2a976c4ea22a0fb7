from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


REPORT_TYPES = (
    "SalesSummary",
    "InventorySummary",
    "CustomerAnalytics",
    "VendorPerformance",
    "FinancialSummary",
)

EXECUTION_RUNNING = "Running"
EXECUTION_SUCCESS = "Success"
EXECUTION_FAILED = "Failed"


class ReportDefinition(db.Model):
    """
    Saved, parameterized report.

    SYSTEM REPORTS: is_system_report rows are seeded per tenant and are
    immutable through the API (update/delete -> FORBIDDEN).
    """
    __tablename__ = "report_definitions"
    __table_args__ = (
        db.Index("ix_report_definitions_tenant_category", "tenant_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)
    report_type = db.Column(db.String(64), nullable=False)

    is_system_report = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    parameters = db.relationship(
        "ReportParameter",
        backref="report",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ReportParameter.position",
    )
    executions = db.relationship(
        "ReportExecutionHistory",
        backref="report",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self, *, include_parameters: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "reportType": self.report_type,
            "isSystemReport": self.is_system_report,
            "isActive": self.is_active,
            "createdByUserId": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_parameters:
            data["parameters"] = [p.to_dict() for p in self.parameters]
        return data


class ReportParameter(db.Model):
    __tablename__ = "report_parameters"
    __table_args__ = (
        db.UniqueConstraint("report_id", "name", name="uq_report_parameters_report_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("report_definitions.id"), nullable=False, index=True)

    name = db.Column(db.String(64), nullable=False)
    label = db.Column(db.String(255), nullable=True)
    param_type = db.Column(db.String(32), nullable=False, default="string")  # string, number, date, boolean, select
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    default_value = db.Column(db.String(255), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "type": self.param_type,
            "isRequired": self.is_required,
            "defaultValue": self.default_value,
            "position": self.position,
        }


class ReportExecutionHistory(db.Model):
    """
    Audit trail of report runs.

    A row is written as Running before the generator starts and finalized as
    Success or Failed (with error_message) afterwards.
    """
    __tablename__ = "report_execution_history"
    __table_args__ = (
        db.Index("ix_report_exec_report_started", "report_id", "started_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("report_definitions.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=EXECUTION_RUNNING)
    parameters = db.Column(db.JSON, nullable=False, default=dict)
    started_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    error_message = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reportId": self.report_id,
            "userId": self.user_id,
            "status": self.status,
            "parameters": self.parameters or {},
            "startedAt": to_utc_z(self.started_at),
            "completedAt": to_utc_z(self.completed_at),
            "errorMessage": self.error_message,
        }


class Dashboard(db.Model):
    """
    Named collection of widgets.

    System dashboards (is_system_dashboard) reject every mutation, including
    widget changes.
    """
    __tablename__ = "dashboards"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_system_dashboard = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    widgets = db.relationship(
        "DashboardWidget",
        backref="dashboard",
        lazy=True,
        cascade="all, delete-orphan",
        order_by=lambda: [DashboardWidget.position_y, DashboardWidget.position_x],
    )

    def to_dict(self, *, include_widgets: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "isSystemDashboard": self.is_system_dashboard,
            "isActive": self.is_active,
            "createdByUserId": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_widgets:
            data["widgets"] = [w.to_dict() for w in self.widgets]
        return data


class DashboardWidget(db.Model):
    __tablename__ = "dashboard_widgets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    dashboard_id = db.Column(db.Integer, db.ForeignKey("dashboards.id"), nullable=False, index=True)

    widget_type = db.Column(db.String(64), nullable=False)  # e.g. chart, kpi, table, report
    name = db.Column(db.String(255), nullable=False)
    config = db.Column(db.JSON, nullable=False, default=dict)

    position_x = db.Column(db.Integer, nullable=False, default=0)
    position_y = db.Column(db.Integer, nullable=False, default=0)
    width = db.Column(db.Integer, nullable=False, default=4)
    height = db.Column(db.Integer, nullable=False, default=3)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dashboardId": self.dashboard_id,
            "widgetType": self.widget_type,
            "name": self.name,
            "config": self.config or {},
            "positionX": self.position_x,
            "positionY": self.position_y,
            "width": self.width,
            "height": self.height,
        }
