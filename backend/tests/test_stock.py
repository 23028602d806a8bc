"""
Stock ledger tests.

On-hand quantity is never stored: it is always SUM(in) - SUM(out) over the
product's movements.
"""

from datetime import datetime

import pytest

from shopdesk.services import stock_service
from shopdesk.services.stock_service import StockError
from conftest import make_product


class TestDerivedStock:

    def test_no_movements_is_zero(self, db_session):
        product = make_product("Empty", 500)
        assert stock_service.get_product_stock(product.id) == 0

    def test_stock_is_in_minus_out(self, db_session):
        product = make_product("Tea", 300)
        for kind, qty in (("in", 10), ("in", 5), ("out", 7), ("out", 1)):
            stock_service.add_stock_movement({"product_id": product.id, "type": kind, "quantity": qty})
        assert stock_service.get_product_stock(product.id) == 7

    def test_ledger_allows_negative(self, db_session):
        product = make_product("Coffee", 300)
        stock_service.add_stock_movement({"product_id": product.id, "type": "out", "quantity": 3})
        assert stock_service.get_product_stock(product.id) == -3

    def test_other_products_do_not_leak(self, db_session, products):
        assert stock_service.get_product_stock(products["widget"].id) == 10
        assert stock_service.get_product_stock(products["gadget"].id) == 5

    def test_delete_movement_recomputes(self, db_session):
        product = make_product("Sugar", 100)
        stock_service.add_stock_movement({"product_id": product.id, "type": "in", "quantity": 4})
        mid = stock_service.add_stock_movement({"product_id": product.id, "type": "out", "quantity": 3})
        stock_service.delete_stock_movement(mid)
        assert stock_service.get_product_stock(product.id) == 4


class TestMovements:

    def test_rejects_unknown_type(self, db_session):
        product = make_product("Salt", 100)
        with pytest.raises(StockError):
            stock_service.add_stock_movement({"product_id": product.id, "type": "adjust", "quantity": 1})

    def test_rejects_unknown_product(self, db_session):
        with pytest.raises(StockError):
            stock_service.add_stock_movement({"product_id": 999, "type": "in", "quantity": 1})

    def test_newest_first(self, db_session):
        product = make_product("Rice", 100)
        old = stock_service.add_stock_movement({"product_id": product.id, "type": "in", "quantity": 1, "date": datetime(2026, 1, 1)})
        new = stock_service.add_stock_movement({"product_id": product.id, "type": "in", "quantity": 1, "date": "2026-02-01T10:00:00Z"})
        ids = [m.id for m in stock_service.get_stock_movements(product.id)]
        assert ids == [new, old]

    def test_delete_missing_movement(self, db_session):
        with pytest.raises(StockError):
            stock_service.delete_stock_movement(12345)


class TestStockLevels:

    def test_low_stock_flag_and_value(self, db_session):
        product = make_product("Low", 100, purchase_cents=40)
        product.min_sale_quantity = 5
        db_session.commit()
        stock_service.add_stock_movement({"product_id": product.id, "type": "in", "quantity": 3})

        row = next(r for r in stock_service.get_stock_levels() if r["product_id"] == product.id)
        assert row["stock"] == 3
        assert row["low_stock"] is True
        assert row["stock_value_cents"] == 120


class TestStockRoutes:

    def test_add_movement_requires_positive_quantity(self, client, stock_headers, products):
        resp = client.post(
            "/api/stock/movements",
            json={"product_id": products["widget"].id, "type": "in", "quantity": 0},
            headers=stock_headers,
        )
        assert resp.status_code == 400

    def test_add_movement_returns_new_stock(self, client, stock_headers, products):
        resp = client.post(
            "/api/stock/movements",
            json={"product_id": products["widget"].id, "type": "in", "quantity": 4, "note": "Restock"},
            headers=stock_headers,
        )
        assert resp.status_code == 201
        assert resp.json["stock"] == 14

    def test_cashier_cannot_add_movement(self, client, cashier_headers, products):
        resp = client.post(
            "/api/stock/movements",
            json={"product_id": products["widget"].id, "type": "in", "quantity": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_only_admin_deletes_movements(self, client, admin_headers, stock_headers, products):
        movement = stock_service.get_stock_movements(products["gadget"].id)[0]
        assert client.delete(f"/api/stock/movements/{movement.id}", headers=stock_headers).status_code == 403
        assert client.delete(f"/api/stock/movements/{movement.id}", headers=admin_headers).status_code == 200
        assert stock_service.get_product_stock(products["gadget"].id) == 0
