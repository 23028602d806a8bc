"""Customers, loyalty points and purchase history."""

from datetime import datetime
from decimal import Decimal

import pytest

from shopdesk.extensions import db
from shopdesk.models import Sale, SaleLine
from shopdesk.services import customer_service
from shopdesk.services.customer_service import calculate_loyalty_points
from shopdesk.validation import ConflictError


class TestLoyaltyPoints:

    @pytest.mark.parametrize(
        "amount,points",
        [(0, 0), (9.99, 0), (99, 9), (100, 10), (Decimal("257.07"), 25), (-50, 0)],
    )
    def test_one_point_per_ten_units(self, amount, points):
        assert calculate_loyalty_points(amount) == points


class TestCustomers:

    def test_phone_must_be_unique(self, db_session):
        customer_service.add_customer({"name": "Mona", "phone": "0100"})
        with pytest.raises(ConflictError):
            customer_service.add_customer({"name": "Other", "phone": "0100"})

    def test_update_keeps_own_phone(self, db_session):
        customer = customer_service.add_customer({"name": "Mona", "phone": "0100"})
        updated = customer_service.update_customer(customer.id, {"phone": "0100", "notes": "VIP"})
        assert updated.notes == "VIP"

    def test_search_by_name_or_phone(self, db_session):
        customer_service.add_customer({"name": "Mona Adel", "phone": "0100111"})
        customer_service.add_customer({"name": "Karim", "phone": "0122999"})
        assert [c.name for c in customer_service.search_customers("mona")] == ["Mona Adel"]
        assert [c.name for c in customer_service.search_customers("2299")] == ["Karim"]
        assert customer_service.search_customers("  ") == []

    def test_purchase_updates_running_totals(self, db_session):
        customer = customer_service.add_customer({"name": "Mona", "phone": "0100"})
        customer_service.add_customer_purchase({
            "customer_id": customer.id,
            "amount_cents": 12000,
            "points_earned": 12,
            "products": [{"name": "Widget", "quantity": 1}],
        })
        db_session.refresh(customer)
        assert customer.total_purchases_cents == 12000
        assert customer.loyalty_points == 12
        assert customer.last_purchase_at is not None


class TestPurchaseHistory:

    def test_empty_id_returns_nothing(self, db_session):
        assert customer_service.get_customer_purchases(None) == []
        assert customer_service.get_customer_purchases(0) == []

    def test_falls_back_to_sales(self, db_session, products):
        customer = customer_service.add_customer({"name": "Mona", "phone": "0100"})
        sale = Sale(
            invoice_number="INV-20260105-0001-ABCD",
            customer_name="Mona",
            customer_id=customer.id,
            subtotal_cents=10000,
            total_cents=11400,
            tax_cents=1400,
            date=datetime(2026, 1, 5),
        )
        sale.lines.append(SaleLine(product_id=products["widget"].id, name="Widget", quantity=1, price_cents=10000))
        db.session.add(sale)
        db.session.commit()

        history = customer_service.get_customer_purchases(customer.id)
        assert len(history) == 1
        assert history[0]["sale_id"] == sale.id
        assert history[0]["points_earned"] == 11
        assert history[0]["date"] == "2026-01-05T00:00:00Z"
        assert history[0]["products"][0]["name"] == "Widget"


class TestCustomerRoutes:

    def test_create_and_lookup_by_phone(self, client, cashier_headers):
        resp = client.post("/api/customers", json={"name": "Mona", "phone": "0100"}, headers=cashier_headers)
        assert resp.status_code == 201

        resp = client.get("/api/customers?phone=0100", headers=cashier_headers)
        assert resp.json["count"] == 1

    def test_duplicate_phone_conflict(self, client, cashier_headers):
        client.post("/api/customers", json={"name": "Mona", "phone": "0100"}, headers=cashier_headers)
        resp = client.post("/api/customers", json={"name": "Other", "phone": "0100"}, headers=cashier_headers)
        assert resp.status_code == 409

    def test_discount_out_of_range(self, client, cashier_headers):
        resp = client.post(
            "/api/customers",
            json={"name": "Mona", "phone": "0100", "discount_pct": 150},
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_stock_clerk_cannot_view(self, client, stock_headers):
        assert client.get("/api/customers", headers=stock_headers).status_code == 403
