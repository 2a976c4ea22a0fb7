# Overview: Report definition management, execution history listing and system report seeding.

"""
Report Definition Service

MULTI-TENANT: Definitions, parameters and execution history are tenant-scoped.

SYSTEM REPORTS: is_system_report definitions are seeded per tenant and can
be listed, read and executed, but every update or delete is rejected with
FORBIDDEN regardless of the caller's role.

Parameter lists are replaced wholesale on update, inside the same unit of
work as the header change.
"""

from __future__ import annotations

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models import ReportDefinition, ReportExecutionHistory, ReportParameter
from ..models.reporting import REPORT_TYPES
from ..validation import ModelValidationPolicy, camel_to_snake, validate_payload
from .concurrency import unit_of_work
from .repository import ListQuery, Page, TenantScopedRepository


REPORT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "category", "report_type", "is_active"}),
    required_on_create=frozenset({"name", "report_type"}),
)

PARAMETER_TYPES = ("string", "number", "date", "boolean", "select")

REPORT_FILTERS = {"category": "category", "reportType": "report_type"}
REPORT_FLAGS = {"isActive": "is_active", "isSystemReport": "is_system_report"}


SYSTEM_REPORTS = (
    {
        "name": "Sales Summary",
        "description": "Sales totals grouped by period, customer, product or category",
        "category": "Sales",
        "report_type": "SalesSummary",
        "parameters": [
            {"name": "startDate", "label": "Start Date", "type": "date"},
            {"name": "endDate", "label": "End Date", "type": "date"},
            {"name": "groupBy", "label": "Group By", "type": "select", "defaultValue": "day"},
        ],
    },
    {
        "name": "Inventory Summary",
        "description": "On-hand quantity and wholesale value by category",
        "category": "Inventory",
        "report_type": "InventorySummary",
        "parameters": [
            {"name": "locationId", "label": "Location", "type": "number"},
            {"name": "category", "label": "Category", "type": "string"},
            {"name": "lowStock", "label": "Low Stock Only", "type": "boolean", "defaultValue": "false"},
            {"name": "threshold", "label": "Low Stock Threshold", "type": "number"},
        ],
    },
    {
        "name": "Customer Analytics",
        "description": "Spend, order count and recency per customer",
        "category": "Customers",
        "report_type": "CustomerAnalytics",
        "parameters": [
            {"name": "period", "label": "Period", "type": "select", "defaultValue": "all"},
            {"name": "topCount", "label": "Top Customers", "type": "number", "defaultValue": "10"},
        ],
    },
    {
        "name": "Vendor Performance",
        "description": "Products, units sold and revenue per vendor",
        "category": "Vendors",
        "report_type": "VendorPerformance",
        "parameters": [
            {"name": "startDate", "label": "Start Date", "type": "date"},
            {"name": "endDate", "label": "End Date", "type": "date"},
        ],
    },
    {
        "name": "Financial Summary",
        "description": "Revenue, discounts, payments received and outstanding balance",
        "category": "Finance",
        "report_type": "FinancialSummary",
        "parameters": [
            {"name": "startDate", "label": "Start Date", "type": "date"},
            {"name": "endDate", "label": "End Date", "type": "date"},
        ],
    },
)


def report_repository(session, tenant_id: int) -> TenantScopedRepository:
    return TenantScopedRepository(
        session,
        tenant_id,
        ReportDefinition,
        resource_type="report",
        search_fields=("name", "description", "category"),
        sortable=("id", "name", "category", "report_type", "created_at"),
        default_sort="name",
    )


def _check_report_type(patch: dict) -> None:
    if "report_type" in patch and patch["report_type"] not in REPORT_TYPES:
        raise ValidationError(
            f"Invalid report type: {patch['report_type']}",
            {"field": "reportType", "allowed": list(REPORT_TYPES)},
        )


def _parse_parameters(raw) -> list[ReportParameter]:
    if not isinstance(raw, list):
        raise ValidationError("parameters must be a list", {"field": "parameters"})

    params = []
    seen = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"parameters[{index}] must be an object", {"index": index})
        data = {camel_to_snake(k): v for k, v in item.items()}

        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError(f"parameters[{index}].name is required", {"index": index})
        if name in seen:
            raise ValidationError(f"Duplicate parameter name: {name}", {"index": index})
        seen.add(name)

        param_type = str(data.get("type") or "string").lower()
        if param_type not in PARAMETER_TYPES:
            raise ValidationError(
                f"Invalid parameter type: {param_type}",
                {"index": index, "allowed": list(PARAMETER_TYPES)},
            )

        default = data.get("default_value")
        position = data.get("position", index)
        if not isinstance(position, int) or isinstance(position, bool):
            position = index
        params.append(ReportParameter(
            name=name,
            label=data.get("label") or name,
            param_type=param_type,
            is_required=bool(data.get("is_required", False)),
            default_value=None if default is None else str(default),
            position=position,
        ))
    return params


def _split_parameters(payload: dict | None) -> tuple[dict, object]:
    data = dict(payload or {})
    return data, data.pop("parameters", None)


def _require_mutable(report: ReportDefinition) -> None:
    if report.is_system_report:
        raise ForbiddenError(
            "System reports cannot be modified or deleted",
            {"reportId": report.id},
        )


def list_reports(session, tenant_id: int, list_query: ListQuery) -> Page:
    return report_repository(session, tenant_id).find_many(list_query)


def get_report(session, tenant_id: int, report_id: int, *, active_only: bool = False) -> ReportDefinition:
    report = report_repository(session, tenant_id).get(report_id)
    if active_only and not report.is_active:
        raise NotFoundError(
            f"Report with ID {report_id} not found or is inactive",
            {"resourceType": "report", "resourceId": report_id},
        )
    return report


def create_report(session, tenant_id: int, payload: dict, *, created_by_user_id: int | None = None) -> ReportDefinition:
    data, raw_params = _split_parameters(payload)
    patch = validate_payload(model=ReportDefinition, payload=data, policy=REPORT_POLICY, partial=False)
    _check_report_type(patch)
    params = _parse_parameters(raw_params) if raw_params is not None else []

    with unit_of_work(session):
        patch["created_by_user_id"] = created_by_user_id
        patch["is_system_report"] = False
        report = report_repository(session, tenant_id).create(patch)
        report.parameters = params
        session.flush()
    return report


def update_report(session, tenant_id: int, report_id: int, payload: dict) -> ReportDefinition:
    data, raw_params = _split_parameters(payload)
    patch = validate_payload(model=ReportDefinition, payload=data, policy=REPORT_POLICY, partial=True)
    _check_report_type(patch)

    with unit_of_work(session):
        repo = report_repository(session, tenant_id)
        _require_mutable(repo.get(report_id))
        report = repo.update(report_id, patch)
        if raw_params is not None:
            new_params = _parse_parameters(raw_params)
            # Old rows must be gone before names are reused
            report.parameters = []
            session.flush()
            report.parameters = new_params
            session.flush()
    return report


def delete_report(session, tenant_id: int, report_id: int) -> None:
    """Deletes the definition with its parameters and execution history."""
    with unit_of_work(session):
        repo = report_repository(session, tenant_id)
        _require_mutable(repo.get(report_id))
        repo.delete(report_id)


def list_executions(session, tenant_id: int, report_id: int, list_query: ListQuery) -> Page:
    report = get_report(session, tenant_id, report_id)
    repo = TenantScopedRepository(
        session,
        tenant_id,
        ReportExecutionHistory,
        resource_type="execution",
        sortable=("id", "started_at", "status"),
        default_sort="started_at",
    )
    return repo.find_many(list_query, criteria=(ReportExecutionHistory.report_id == report.id,))


def seed_system_reports(session, tenant_id: int) -> list[ReportDefinition]:
    """Create any missing system report definitions for a tenant. Idempotent."""
    created = []
    with unit_of_work(session):
        existing = {
            name for (name,) in session.query(ReportDefinition.name).filter(
                ReportDefinition.tenant_id == tenant_id,
                ReportDefinition.is_system_report.is_(True),
            )
        }
        for definition in SYSTEM_REPORTS:
            if definition["name"] in existing:
                continue
            report = ReportDefinition(
                tenant_id=tenant_id,
                name=definition["name"],
                description=definition["description"],
                category=definition["category"],
                report_type=definition["report_type"],
                is_system_report=True,
                is_active=True,
            )
            report.parameters = _parse_parameters(definition["parameters"])
            session.add(report)
            created.append(report)
        session.flush()
    return created
