# Overview: Pytest coverage for products, product images and locations.

from erpcore.models import InventoryImage
from erpcore.services.inventory_ledger import InventoryLedger
from erpcore.services.sales_service import SaleTransaction


class TestProducts:
    def test_create_with_vendor(self, client, manager_headers):
        vendor = client.post("/api/vendors", json={"code": "V-1", "name": "Grower"}, headers=manager_headers).json
        resp = client.post("/api/products", json={
            "name": "Blue Dream 3.5g",
            "sku": "BD-35",
            "category": "Flower",
            "strainType": "Hybrid",
            "vendorId": vendor["id"],
            "wholesalePrice": 12.5,
            "retailPrice": 25,
        }, headers=manager_headers)
        assert resp.status_code == 201
        assert resp.json["vendorId"] == vendor["id"]
        assert resp.json["retailPrice"] == 25

    def test_foreign_vendor_rejected(self, client, manager_headers, admin_b_headers):
        vendor = client.post("/api/vendors", json={"code": "V-B", "name": "Beta Grower"}, headers=admin_b_headers).json
        resp = client.post("/api/products", json={"name": "X", "vendorId": vendor["id"]}, headers=manager_headers)
        assert resp.status_code == 404

    def test_duplicate_sku(self, client, manager_headers, product_a):
        resp = client.post("/api/products", json={"name": "Copy", "sku": "PROD-A-001"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "DUPLICATE_CODE"

    def test_blank_skus_do_not_collide(self, client, manager_headers):
        for name in ("One", "Two"):
            resp = client.post("/api/products", json={"name": name, "sku": "  "}, headers=manager_headers)
            assert resp.status_code == 201
            assert resp.json["sku"] is None

    def test_price_range_filter(self, client, user_headers, product_a):
        assert client.get("/api/products?retailPriceMin=5&retailPriceMax=10", headers=user_headers).json["pagination"]["total"] == 1
        assert client.get("/api/products?retailPriceMin=11", headers=user_headers).json["pagination"]["total"] == 0

    def test_delete_blocked_by_inventory(self, client, db_session, tenant_a, admin_headers, product_a, location_a):
        InventoryLedger(db_session, tenant_a.id).add(product_a.id, location_a.id, 1)
        resp = client.delete(f"/api/products/{product_a.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["details"] == {"inventoryCount": 1}

    def test_manager_cannot_delete(self, client, manager_headers, product_a):
        assert client.delete(f"/api/products/{product_a.id}", headers=manager_headers).status_code == 403


class TestProductImages:
    def _add(self, client, headers, product, url, **extra):
        return client.post(
            f"/api/products/{product.id}/images",
            json={"imageUrl": url, **extra},
            headers=headers,
        )

    def test_first_image_becomes_primary(self, client, manager_headers, product_a):
        first = self._add(client, manager_headers, product_a, "https://img/1.jpg").json
        second = self._add(client, manager_headers, product_a, "https://img/2.jpg").json
        assert first["isPrimary"] is True
        assert second["isPrimary"] is False

    def test_new_primary_clears_previous(self, client, db_session, manager_headers, product_a):
        self._add(client, manager_headers, product_a, "https://img/1.jpg")
        self._add(client, manager_headers, product_a, "https://img/2.jpg", isPrimary=True)

        primaries = db_session.query(InventoryImage).filter_by(product_id=product_a.id, is_primary=True).all()
        assert [i.image_url for i in primaries] == ["https://img/2.jpg"]

    def test_cannot_unset_primary(self, client, manager_headers, product_a):
        image = self._add(client, manager_headers, product_a, "https://img/1.jpg").json
        resp = client.put(
            f"/api/products/{product_a.id}/images/{image['id']}",
            json={"isPrimary": False},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_deleting_primary_promotes_oldest(self, client, manager_headers, product_a):
        first = self._add(client, manager_headers, product_a, "https://img/1.jpg").json
        self._add(client, manager_headers, product_a, "https://img/2.jpg")
        self._add(client, manager_headers, product_a, "https://img/3.jpg")

        resp = client.delete(f"/api/products/{product_a.id}/images/{first['id']}", headers=manager_headers)
        assert resp.status_code == 200

        images = client.get(f"/api/products/{product_a.id}/images", headers=manager_headers).json["data"]
        assert [(i["imageUrl"], i["isPrimary"]) for i in images] == [
            ("https://img/2.jpg", True),
            ("https://img/3.jpg", False),
        ]


class TestLocations:
    def test_unique_name_per_tenant(self, client, manager_headers, admin_b_headers, location_a):
        resp = client.post("/api/locations", json={"name": "Main Warehouse"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "DUPLICATE_CODE"
        resp = client.post("/api/locations", json={"name": "Main Warehouse"}, headers=admin_b_headers)
        assert resp.status_code == 201

    def test_delete_blocked_by_inventory(self, client, db_session, tenant_a, manager_headers, product_a, location_a):
        InventoryLedger(db_session, tenant_a.id).add(product_a.id, location_a.id, 3)
        resp = client.delete(f"/api/locations/{location_a.id}", headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["details"] == {"inventoryCount": 1}

    def test_delete_blocked_by_sale_items(self, client, db_session, tenant_a, manager_headers, customer_a, product_a, location_a):
        SaleTransaction(db_session, tenant_a.id).create_sale(customer_a.id, [
            {"productId": product_a.id, "quantity": 1, "price": 5, "locationId": location_a.id},
        ])
        resp = client.delete(f"/api/locations/{location_a.id}", headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["details"] == {"saleItemsCount": 1}

    def test_user_can_read_but_not_write(self, client, user_headers, location_a):
        assert client.get("/api/locations", headers=user_headers).status_code == 200
        assert client.post("/api/locations", json={"name": "X"}, headers=user_headers).status_code == 403


class TestProductDetail:
    def test_includes_inventory_and_images(self, client, db_session, tenant_a, user_headers, product_a, location_a):
        InventoryLedger(db_session, tenant_a.id).add(product_a.id, location_a.id, 7, batch_number="B-1")

        resp = client.get(f"/api/products/{product_a.id}", headers=user_headers)

        assert resp.status_code == 200
        assert resp.json["images"] == []
        assert [(r["locationId"], r["quantity"], r["batchNumber"]) for r in resp.json["inventory"]] == [
            (location_a.id, 7, "B-1"),
        ]
