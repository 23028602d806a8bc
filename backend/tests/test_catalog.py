"""Products and suppliers."""

from shopdesk.services import supplier_service


class TestProducts:

    def test_create_requires_name_and_price(self, client, stock_headers):
        resp = client.post("/api/products", json={"name": "Lamp"}, headers=stock_headers)
        assert resp.status_code == 400
        assert "sale_price_cents" in resp.json["error"]

    def test_create_and_fetch_with_stock(self, client, stock_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Lamp", "sale_price_cents": 4500, "purchase_price_cents": 3000, "barcode": "555"},
            headers=stock_headers,
        )
        assert resp.status_code == 201
        product_id = resp.json["id"]
        assert resp.json["min_sale_quantity"] == 1

        fetched = client.get(f"/api/products/{product_id}", headers=stock_headers)
        assert fetched.json["stock"] == 0

    def test_rejects_float_price(self, client, stock_headers):
        resp = client.post("/api/products", json={"name": "Lamp", "sale_price_cents": 45.5}, headers=stock_headers)
        assert resp.status_code == 400

    def test_duplicate_barcode(self, client, stock_headers, products):
        resp = client.post(
            "/api/products",
            json={"name": "Copy", "sale_price_cents": 100, "barcode": products["widget"].barcode},
            headers=stock_headers,
        )
        assert resp.status_code == 409

    def test_barcode_lookup(self, client, cashier_headers, products):
        resp = client.get(f"/api/products/barcode/{products['gadget'].barcode}", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["name"] == "Gadget"
        assert resp.json["stock"] == 5

    def test_pagination(self, client, viewer_headers, products):
        resp = client.get("/api/products?page=1&per_page=1", headers=viewer_headers)
        assert resp.json["count"] == 1
        assert resp.json["pagination"]["total"] == 2
        assert resp.json["pagination"]["has_next"] is True

    def test_product_with_history_cannot_be_deleted(self, client, stock_headers, products):
        resp = client.delete(f"/api/products/{products['widget'].id}", headers=stock_headers)
        assert resp.status_code == 409

    def test_links_suppliers(self, client, stock_headers, users):
        supplier = supplier_service.add_supplier({"name": "Acme"}, added_by=users["stock"].id)
        resp = client.post(
            "/api/products",
            json={"name": "Lamp", "sale_price_cents": 4500, "supplier_ids": [supplier.id]},
            headers=stock_headers,
        )
        assert resp.status_code == 201
        assert resp.json["supplier_ids"] == [supplier.id]

    def test_unknown_supplier_id(self, client, stock_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Lamp", "sale_price_cents": 4500, "supplier_ids": [404]},
            headers=stock_headers,
        )
        assert resp.status_code == 400


class TestSuppliers:

    def test_create_and_deactivate(self, client, stock_headers):
        resp = client.post(
            "/api/suppliers",
            json={"name": "Acme", "category": "Technology", "products": ["Cables"]},
            headers=stock_headers,
        )
        assert resp.status_code == 201
        supplier_id = resp.json["id"]

        assert client.post(f"/api/suppliers/{supplier_id}/deactivate", headers=stock_headers).status_code == 200
        active = client.get("/api/suppliers?active=true", headers=stock_headers)
        assert active.json["count"] == 0
        assert client.get("/api/suppliers", headers=stock_headers).json["count"] == 1

    def test_unknown_category(self, client, stock_headers):
        resp = client.post("/api/suppliers", json={"name": "Acme", "category": "Weapons"}, headers=stock_headers)
        assert resp.status_code == 400

    def test_missing_supplier(self, client, stock_headers):
        assert client.put("/api/suppliers/999", json={"name": "X"}, headers=stock_headers).status_code == 404
