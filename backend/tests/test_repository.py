# Overview: Pytest coverage for tenant-scoped listing: pagination, filters, search and sorting.

import pytest
from sqlalchemy import text

from erpcore.errors import InvalidInputError, ResourceInUseError
from erpcore.models import Customer
from erpcore.services import location_service
from erpcore.services.sales_service import SaleTransaction
from erpcore.services.customer_service import customer_repository
from erpcore.services.repository import ListQuery, Page, TenantScopedRepository


@pytest.fixture
def many_customers(db_session, tenant_a):
    for i in range(45):
        db_session.add(Customer(
            tenant_id=tenant_a.id,
            code=f"C-{i:03d}",
            name=f"Customer {i:03d}",
            city="Denver" if i % 3 == 0 else "Boulder",
            credit_limit=i * 100,
            is_active=i % 5 != 0,
        ))
    db_session.commit()


class TestPageMath:
    @pytest.mark.parametrize("total,page_size,expected", [
        (0, 20, 0),
        (1, 20, 1),
        (20, 20, 1),
        (21, 20, 2),
        (45, 20, 3),
    ])
    def test_page_count(self, total, page_size, expected):
        assert Page(items=[], total=total, page=1, page_size=page_size).page_count == expected

    def test_offset(self):
        assert ListQuery(page=3, page_size=20).offset == 40

    def test_page_size_capped(self):
        assert ListQuery(page_size=500).normalized(100).page_size == 100

    @pytest.mark.parametrize("query", [
        ListQuery(page=0),
        ListQuery(page_size=0),
        ListQuery(order="sideways"),
    ])
    def test_invalid_query(self, query):
        with pytest.raises(InvalidInputError):
            query.normalized(100)


class TestFindMany:
    def test_last_page(self, db_session, tenant_a, many_customers):
        page = customer_repository(db_session, tenant_a.id).find_many(ListQuery(page=3, page_size=20))
        assert page.total == 45
        assert page.page_count == 3
        assert len(page.items) == 5

    def test_page_past_end_is_empty(self, db_session, tenant_a, many_customers):
        page = customer_repository(db_session, tenant_a.id).find_many(ListQuery(page=9, page_size=20))
        assert page.items == []
        assert page.total == 45

    def test_filter_flag_and_range(self, db_session, tenant_a, many_customers):
        q = ListQuery(
            filters={"city": "Denver"},
            flags={"is_active": True},
            ranges={"credit_limit": {"gte": 1000, "lte": 3000}},
            page_size=100,
        )
        page = customer_repository(db_session, tenant_a.id).find_many(q)
        codes = [c.code for c in page.items]
        # i in 10..30, divisible by 3, not divisible by 5
        assert codes == ["C-012", "C-018", "C-021", "C-024", "C-027"]

    def test_search_is_case_insensitive(self, db_session, tenant_a, many_customers):
        page = customer_repository(db_session, tenant_a.id).find_many(ListQuery(search="customer 04"))
        assert page.total == 5

    def test_sort_desc(self, db_session, tenant_a, many_customers):
        page = customer_repository(db_session, tenant_a.id).find_many(
            ListQuery(sort="code", order="desc", page_size=2)
        )
        assert [c.code for c in page.items] == ["C-044", "C-043"]

    def test_unknown_sort_rejected(self, db_session, tenant_a):
        with pytest.raises(InvalidInputError) as exc:
            customer_repository(db_session, tenant_a.id).find_many(ListQuery(sort="password"))
        assert "code" in exc.value.details["allowed"]

    def test_tenant_filter_cannot_be_overridden(self, db_session, tenant_a, tenant_b, many_customers):
        page = customer_repository(db_session, tenant_b.id).find_many(
            ListQuery(filters={"tenant_id": tenant_a.id})
        )
        assert page.total == 0


class TestListEndpoint:
    def test_pagination_envelope(self, client, admin_headers, many_customers):
        resp = client.get("/api/customers?page=2&pageSize=20", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["pagination"] == {"total": 45, "page": 2, "pageSize": 20, "pageCount": 3}
        assert len(resp.json["data"]) == 20

    def test_limit_alias_and_cap(self, client, admin_headers, many_customers):
        resp = client.get("/api/customers?limit=1000", headers=admin_headers)
        assert resp.json["pagination"]["pageSize"] == 100
        assert len(resp.json["data"]) == 45

    def test_query_filters(self, client, admin_headers, many_customers):
        resp = client.get(
            "/api/customers?city=Denver&isActive=false&sort=creditLimit&order=desc",
            headers=admin_headers,
        )
        codes = [c["code"] for c in resp.json["data"]]
        assert codes == ["C-030", "C-015", "C-000"]

    @pytest.mark.parametrize("qs", ["page=0", "pageSize=abc", "order=up", "sort=secret", "isActive=maybe"])
    def test_bad_query_is_invalid_input(self, client, admin_headers, qs):
        resp = client.get(f"/api/customers?{qs}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_INPUT"


class TestSearchWildcards:
    def test_percent_and_underscore_match_literally(self, db_session, tenant_a):
        for code, name in (("C-1", "Ten % Off"), ("C-2", "Plain Name"), ("C-3", "under_score")):
            db_session.add(Customer(tenant_id=tenant_a.id, code=code, name=name))
        db_session.commit()
        repo = customer_repository(db_session, tenant_a.id)

        assert [c.name for c in repo.find_many(ListQuery(search="%")).items] == ["Ten % Off"]
        assert [c.name for c in repo.find_many(ListQuery(search="_")).items] == ["under_score"]
        assert repo.find_many(ListQuery(search="plain")).total == 1


class TestDeleteConstraint:
    @pytest.fixture
    def enforced_foreign_keys(self, db_session):
        db_session.commit()
        db_session.execute(text("PRAGMA foreign_keys=ON"))
        yield
        db_session.rollback()
        db_session.execute(text("PRAGMA foreign_keys=OFF"))

    def test_integrity_error_becomes_resource_in_use(
        self, db_session, tenant_a, customer_a, product_a, location_a, monkeypatch, enforced_foreign_keys
    ):
        SaleTransaction(db_session, tenant_a.id).create_sale(customer_a.id, [
            {"productId": product_a.id, "quantity": 1, "price": 5, "locationId": location_a.id},
        ])
        monkeypatch.setattr(TenantScopedRepository, "blocking_dependents", lambda self, entity_id: {})

        with pytest.raises(ResourceInUseError) as exc:
            location_service.delete_location(db_session, tenant_a.id, location_a.id)

        assert exc.value.details == {"resourceType": "location", "resourceId": location_a.id}
