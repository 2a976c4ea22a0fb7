# Overview: Tenant-scoped generic data access with search, pagination, uniqueness and dependent checks.

"""
TenantScopedRepository

One repository instance is bound to one SQLAlchemy session, one tenant and
one model. Every query it builds starts from

    SELECT ... FROM <model> WHERE <model>.tenant_id = :tenant_id

and everything else (filters, search, ranges, flags) is ANDed onto that, so
caller-supplied data can never widen the scope. tenant_id and id are stripped
from caller data and filters before use.

Uniqueness is checked before writing (DUPLICATE_CODE) and IntegrityError from
the database is translated to the same error as a backstop for races.

delete() counts the declared dependents first and refuses with
RESOURCE_IN_USE, reporting one count per blocking dependent
(e.g. details.salesCount).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..config import Config
from ..errors import (
    DuplicateCodeError,
    InvalidInputError,
    NotFoundError,
    ResourceInUseError,
)
from .concurrency import unit_of_work


_PROTECTED_FIELDS = ("id", "tenant_id")


@dataclass
class ListQuery:
    page: int = 1
    page_size: int = Config.DEFAULT_PAGE_SIZE
    search: str | None = None
    filters: dict[str, Any] = field(default_factory=dict)
    # {field: {"gte": value, "lte": value}}
    ranges: dict[str, dict[str, Any]] = field(default_factory=dict)
    flags: dict[str, bool] = field(default_factory=dict)
    sort: str | None = None
    order: str = "asc"

    def normalized(self, max_page_size: int = Config.MAX_PAGE_SIZE) -> "ListQuery":
        if not isinstance(self.page, int) or self.page < 1:
            raise InvalidInputError("page must be a positive integer", {"field": "page"})
        if not isinstance(self.page_size, int) or self.page_size < 1:
            raise InvalidInputError("pageSize must be a positive integer", {"field": "pageSize"})
        order = (self.order or "asc").lower()
        if order not in ("asc", "desc"):
            raise InvalidInputError("order must be 'asc' or 'desc'", {"field": "order"})
        self.page_size = min(self.page_size, max_page_size)
        self.order = order
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class Page:
    items: list
    total: int
    page: int
    page_size: int

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    def to_dict(self, serialize=None) -> dict:
        serialize = serialize or (lambda item: item.to_dict())
        return {
            "data": [serialize(item) for item in self.items],
            "pagination": {
                "total": self.total,
                "page": self.page,
                "pageSize": self.page_size,
                "pageCount": self.page_count,
            },
        }


@dataclass(frozen=True)
class Dependent:
    """
    A model whose rows block deletion of the parent.

    key is the details key reported on RESOURCE_IN_USE (e.g. "salesCount");
    column names the foreign key on the dependent model.
    """
    key: str
    model: Any
    column: str


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class TenantScopedRepository:
    def __init__(
        self,
        session,
        tenant_id: int,
        model,
        *,
        resource_type: str,
        search_fields: Sequence[Any] = (),
        unique_fields: Sequence[str] = (),
        dependents: Sequence[Dependent] = (),
        sortable: Sequence[str] = ("id",),
        default_sort: str = "id",
        joins: Sequence[tuple] = (),
        max_page_size: int = Config.MAX_PAGE_SIZE,
    ):
        if tenant_id is None:
            raise ValueError("tenant_id is required")
        self.session = session
        self.tenant_id = tenant_id
        self.model = model
        self.resource_type = resource_type
        self.search_fields = tuple(
            getattr(model, f) if isinstance(f, str) else f for f in search_fields
        )
        self.unique_fields = tuple(unique_fields)
        self.dependents = tuple(dependents)
        self.sortable = tuple(sortable)
        self.default_sort = default_sort
        self.joins = tuple(joins)
        self.max_page_size = max_page_size
        self._columns = {c.key for c in model.__mapper__.columns}

    # ---- reads ----

    def query(self):
        """Base query: always restricted to this tenant."""
        return self.session.query(self.model).filter(self.model.tenant_id == self.tenant_id)

    def find(self, entity_id):
        if entity_id is None:
            return None
        return self.query().filter(self.model.id == entity_id).first()

    def get(self, entity_id):
        entity = self.find(entity_id)
        if entity is None:
            raise NotFoundError.for_resource(self.resource_type, entity_id)
        return entity

    def _column(self, name: str, kind: str):
        if name in _PROTECTED_FIELDS or name not in self._columns:
            raise InvalidInputError(f"Unknown {kind} field: {name}", {"field": name})
        return getattr(self.model, name)

    def _filtered(self, list_query: ListQuery, criteria: Sequence[Any] = ()):
        q = self.query()
        for target, onclause in self.joins:
            q = q.join(target, onclause)

        for name, value in list_query.filters.items():
            if name in _PROTECTED_FIELDS or value is None:
                continue
            q = q.filter(self._column(name, "filter") == value)

        for name, flag in list_query.flags.items():
            if flag is None:
                continue
            q = q.filter(self._column(name, "flag").is_(bool(flag)))

        for name, bounds in list_query.ranges.items():
            col = self._column(name, "range")
            if bounds.get("gte") is not None:
                q = q.filter(col >= bounds["gte"])
            if bounds.get("lte") is not None:
                q = q.filter(col <= bounds["lte"])

        term = (list_query.search or "").strip()
        if term and self.search_fields:
            pattern = f"%{_escape_like(term.lower())}%"
            q = q.filter(or_(*(func.lower(f).like(pattern, escape="\\") for f in self.search_fields)))

        for criterion in criteria:
            q = q.filter(criterion)
        return q

    def count(self, list_query: ListQuery | None = None, *, criteria: Sequence[Any] = ()) -> int:
        q = self._filtered(list_query or ListQuery(), criteria)
        return q.order_by(None).count()

    def find_many(self, list_query: ListQuery | None = None, *, criteria: Sequence[Any] = ()) -> Page:
        list_query = (list_query or ListQuery()).normalized(self.max_page_size)

        sort = list_query.sort or self.default_sort
        if sort not in self.sortable:
            raise InvalidInputError(
                f"Cannot sort by '{sort}'",
                {"field": "sort", "allowed": [_camel(s) for s in self.sortable]},
            )

        q = self._filtered(list_query, criteria)
        total = q.order_by(None).count()

        sort_col = getattr(self.model, sort)
        sort_col = sort_col.desc() if list_query.order == "desc" else sort_col.asc()
        items = (
            q.order_by(sort_col, self.model.id.asc())
            .offset(list_query.offset)
            .limit(list_query.page_size)
            .all()
        )
        return Page(items=items, total=total, page=list_query.page, page_size=list_query.page_size)

    # ---- writes ----

    def _clean(self, data: dict) -> dict:
        return {k: v for k, v in (data or {}).items() if k not in _PROTECTED_FIELDS}

    def _check_unique(self, data: dict, exclude_id=None) -> None:
        for name in self.unique_fields:
            value = data.get(name)
            if value is None:
                continue
            q = self.query().filter(getattr(self.model, name) == value)
            if exclude_id is not None:
                q = q.filter(self.model.id != exclude_id)
            if self.session.query(q.exists()).scalar():
                raise DuplicateCodeError(
                    f"{self.resource_type.capitalize()} with {_camel(name)} '{value}' already exists",
                    {"field": _camel(name), "value": value},
                )

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCodeError(
                f"{self.resource_type.capitalize()} violates a uniqueness constraint",
                {"fields": [_camel(n) for n in self.unique_fields]},
            ) from exc

    def create(self, data: dict):
        data = self._clean(data)
        with unit_of_work(self.session):
            self._check_unique(data)
            entity = self.model(tenant_id=self.tenant_id, **data)
            self.session.add(entity)
            self._flush()
        return entity

    def update(self, entity_id, data: dict):
        data = self._clean(data)
        with unit_of_work(self.session):
            entity = self.get(entity_id)
            self._check_unique(data, exclude_id=entity.id)
            for key, value in data.items():
                setattr(entity, key, value)
            self._flush()
        return entity

    def blocking_dependents(self, entity_id) -> dict[str, int]:
        counts = {}
        for dep in self.dependents:
            q = self.session.query(func.count()).select_from(dep.model).filter(
                getattr(dep.model, dep.column) == entity_id
            )
            if hasattr(dep.model, "tenant_id"):
                q = q.filter(dep.model.tenant_id == self.tenant_id)
            n = q.scalar() or 0
            if n:
                counts[dep.key] = n
        return counts

    def delete(self, entity_id) -> None:
        with unit_of_work(self.session):
            entity = self.get(entity_id)
            blocking = self.blocking_dependents(entity.id)
            if blocking:
                raise ResourceInUseError(
                    f"Cannot delete {self.resource_type}: it is referenced by other records",
                    blocking,
                )
            self.session.delete(entity)
            try:
                self.session.flush()
            except IntegrityError as exc:
                raise ResourceInUseError(
                    f"Cannot delete {self.resource_type}: it is referenced by other records",
                    {"resourceType": self.resource_type, "resourceId": entity_id},
                ) from exc
