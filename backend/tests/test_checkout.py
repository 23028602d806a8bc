"""
Checkout tests.

A completed sale writes its lines, stock movements, payment, income
transaction, shift totals, customer purchase and audit entry together;
a rejected cart writes none of them.
"""

import pytest

from shopdesk.extensions import db
from shopdesk.models import AuditLog, Customer, Payment, Sale, StockMovement, Transaction
from shopdesk.services import customer_service, pos_service, stock_service
from shopdesk.services.pos_service import SaleError, compute_totals


def _cart(products, widget=2, gadget=1):
    items = []
    if widget:
        items.append({"product_id": products["widget"].id, "quantity": widget})
    if gadget:
        items.append({"product_id": products["gadget"].id, "quantity": gadget})
    return items


class TestComputeTotals:

    def test_tax_on_subtotal(self):
        assert compute_totals(22550, 0, 14) == {
            "subtotal_cents": 22550,
            "discount_cents": 0,
            "tax_cents": 3157,
            "total_cents": 25707,
        }

    def test_tax_applies_after_discount(self):
        totals = compute_totals(22550, 10, 14)
        assert totals["discount_cents"] == 2255
        assert totals["tax_cents"] == 2841
        assert totals["total_cents"] == 20295 + 2841

    def test_half_cents_round_up(self):
        assert compute_totals(5, 0, 10)["tax_cents"] == 1
        assert compute_totals(25, 10, 0)["discount_cents"] == 3


class TestCheckout:

    def test_successful_sale(self, db_session, users, products, cashier_shift):
        sale = pos_service.checkout(user_id=users["cashier"].id, items=_cart(products))

        assert sale.subtotal_cents == 22550
        assert sale.tax_cents == 3157
        assert sale.total_cents == 25707
        assert sale.shift_id == cashier_shift.id
        assert sale.customer_name == "Walk-in customer"
        assert [(l.name, l.quantity) for l in sale.lines] == [("Widget", 2), ("Gadget", 1)]

        assert stock_service.get_product_stock(products["widget"].id) == 8
        assert stock_service.get_product_stock(products["gadget"].id) == 4

        payment = db_session.query(Payment).filter_by(sale_id=sale.id).one()
        assert payment.amount_cents == 25707
        assert payment.type == "cash"

        tx = db_session.query(Transaction).filter_by(sale_id=sale.id).one()
        assert (tx.type, tx.category, tx.amount_cents, tx.currency) == ("income", "Sales", 25707, "EGP")

        audit = db_session.query(AuditLog).filter_by(action="sale.completed").one()
        assert audit.invoice_number == sale.invoice_number

    def test_duplicate_lines_are_merged(self, db_session, users, products, cashier_shift):
        items = [
            {"product_id": products["gadget"].id, "quantity": 2},
            {"product_id": products["gadget"].id, "quantity": 3},
        ]
        sale = pos_service.checkout(user_id=users["cashier"].id, items=items, tax_rate_pct=0)
        assert len(sale.lines) == 1
        assert sale.lines[0].quantity == 5
        assert stock_service.get_product_stock(products["gadget"].id) == 0

    def test_shift_totals_accumulate(self, db_session, users, products, cashier_shift):
        cashier_id = users["cashier"].id
        first = pos_service.checkout(user_id=cashier_id, items=_cart(products, 1, 0), tax_rate_pct=0)
        second = pos_service.checkout(user_id=cashier_id, items=_cart(products, 0, 2), tax_rate_pct=0, payment_type="card")

        shift = pos_service.get_open_shift(cashier_id)
        assert shift.sales_count == 2
        assert shift.total_sales_cents == first.total_cents + second.total_cents
        assert shift.total_cash_cents == first.total_cents
        assert shift.total_card_cents == second.total_cents

    def test_invoice_numbers_increment(self, db_session, users, products, cashier_shift):
        cashier_id = users["cashier"].id
        first = pos_service.checkout(user_id=cashier_id, items=_cart(products, 1, 0))
        second = pos_service.checkout(user_id=cashier_id, items=_cart(products, 1, 0))
        assert int(first.invoice_number.split("-")[2]) + 1 == int(second.invoice_number.split("-")[2])

    def test_requires_open_shift(self, db_session, users, products):
        with pytest.raises(SaleError, match="No open shift"):
            pos_service.checkout(user_id=users["cashier"].id, items=_cart(products))

    def test_empty_cart(self, db_session, users, products, cashier_shift):
        with pytest.raises(SaleError, match="Cart is empty"):
            pos_service.checkout(user_id=users["cashier"].id, items=[])

    def test_bad_payment_type(self, db_session, users, products, cashier_shift):
        with pytest.raises(SaleError):
            pos_service.checkout(user_id=users["cashier"].id, items=_cart(products), payment_type="cheque")

    def test_insufficient_stock_writes_nothing(self, db_session, users, products, cashier_shift):
        with pytest.raises(SaleError) as excinfo:
            pos_service.checkout(user_id=users["cashier"].id, items=_cart(products, widget=11))

        assert str(excinfo.value) == "Insufficient stock"
        item = excinfo.value.details["items"][0]
        assert item["product_id"] == products["widget"].id
        assert item["on_hand"] == 10

        assert db_session.query(Sale).count() == 0
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(StockMovement).filter_by(type="out").count() == 0
        assert stock_service.get_product_stock(products["widget"].id) == 10

    def test_unknown_product(self, db_session, users, products, cashier_shift):
        with pytest.raises(SaleError, match="Product not found"):
            pos_service.checkout(user_id=users["cashier"].id, items=[{"product_id": 999, "quantity": 1}])


class TestCheckoutCustomers:

    def test_new_customer_is_created_and_credited(self, db_session, users, products, cashier_shift):
        sale = pos_service.checkout(
            user_id=users["cashier"].id,
            items=_cart(products),
            customer={"name": "Mona", "phone": "01000000001"},
        )

        customer = db_session.query(Customer).filter_by(phone="01000000001").one()
        assert sale.customer_id == customer.id
        assert customer.total_purchases_cents == 25707
        assert customer.loyalty_points == 25
        assert customer.last_purchase_at is not None

        history = customer_service.get_customer_purchases(customer.id)
        assert len(history) == 1
        assert history[0]["amount_cents"] == 25707

    def test_existing_customer_discount_applies(self, db_session, users, products, cashier_shift):
        customer = customer_service.add_customer({"name": "Omar", "phone": "01000000002", "discount_pct": 10.0})
        sale = pos_service.checkout(
            user_id=users["cashier"].id,
            items=_cart(products),
            customer={"id": customer.id},
        )
        assert sale.discount_cents == 2255
        assert sale.total_cents == 23136

    def test_known_phone_reuses_customer(self, db_session, users, products, cashier_shift):
        customer = customer_service.add_customer({"name": "Omar", "phone": "01000000003"})
        sale = pos_service.checkout(
            user_id=users["cashier"].id,
            items=_cart(products, 1, 0),
            customer={"name": "Someone else", "phone": "01000000003"},
        )
        assert sale.customer_id == customer.id
        assert db.session.query(Customer).count() == 1

    def test_invalid_customer_id_rolls_back(self, db_session, users, products, cashier_shift):
        with pytest.raises(SaleError, match="Invalid customer id"):
            pos_service.checkout(
                user_id=users["cashier"].id,
                items=_cart(products),
                customer={"id": "abc"},
            )
        assert db_session.query(Sale).count() == 0
        assert stock_service.get_product_stock(products["widget"].id) == 10


class TestCheckoutRoutes:

    def test_checkout_route(self, client, cashier_headers, products, cashier_shift):
        resp = client.post(
            "/api/pos/checkout",
            json={"items": _cart(products), "payment_type": "card"},
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        assert resp.json["total_cents"] == 25707
        assert resp.json["payment_type"] == "card"
        assert len(resp.json["lines"]) == 2

    def test_insufficient_stock_route(self, client, cashier_headers, products, cashier_shift):
        resp = client.post(
            "/api/pos/checkout",
            json={"items": _cart(products, widget=50)},
            headers=cashier_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient stock"
        assert resp.json["details"]["items"][0]["requested_quantity"] == 50

    @pytest.mark.parametrize("body", [
        {"customer": {"id": "abc"}},
        {"tax_rate_pct": "nan"},
        {"tax_rate_pct": "inf"},
        {"tax_rate_pct": 120},
    ])
    def test_bad_checkout_input_is_rejected(self, client, cashier_headers, products, cashier_shift, body):
        resp = client.post(
            "/api/pos/checkout",
            json={"items": _cart(products), **body},
            headers=cashier_headers,
        )
        assert resp.status_code == 400
        assert "error" in resp.json
        assert stock_service.get_product_stock(products["widget"].id) == 10

    def test_stock_clerk_cannot_sell(self, client, stock_headers, products):
        resp = client.post("/api/pos/checkout", json={"items": _cart(products)}, headers=stock_headers)
        assert resp.status_code == 403

    def test_search_by_partial_invoice(self, client, cashier_headers, users, products, cashier_shift):
        sale = pos_service.checkout(user_id=users["cashier"].id, items=_cart(products, 1, 0))
        fragment = sale.invoice_number[4:12]
        resp = client.get(f"/api/pos/sales/search?q={fragment.lower()}", headers=cashier_headers)
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json["items"]] == [sale.id]
